"""Configuration model and loaders for Chaptervoice.

Responsibilities:
- Define service configuration as a typed dataclass.
- Provide deterministic precedence resolution for Yandex provider credentials.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `ChaptervoiceConfig`: normalized settings for runs, catalog, and server.
- `ProviderRuntimeConfig`: resolved provider credentials.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `ChaptervoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import normalize_optional_string, parse_positive_float, parse_positive_int
from .tts.voices import VoiceProfile

_PATH_KEYS = frozenset({"output_dir", "data_dir", "upload_dir"})
_INT_KEYS = frozenset(
    {
        "max_tts_chars",
        "min_chapter_minutes",
        "words_per_minute",
        "llm_max_input_chars",
        "llm_max_tokens",
        "port",
    }
)
_FLOAT_KEYS = frozenset(
    {
        "tts_speed",
        "speech_timeout_seconds",
        "llm_timeout_seconds",
        "heartbeat_seconds",
    }
)
_OPTIONAL_KEYS = frozenset({"api_key", "iam_token", "folder_id"})

# Unprefixed names match existing deployment environments; the rest are prefixed.
_ENV_KEYS: dict[str, str] = {
    "YANDEX_API_KEY": "api_key",
    "YANDEX_IAM_TOKEN": "iam_token",
    "YANDEX_FOLDER_ID": "folder_id",
    "TTS_VOICE": "tts_voice",
    "TTS_ROLE": "tts_role",
    "TTS_SPEED": "tts_speed",
    "MAX_TTS_CHARS": "max_tts_chars",
    "MIN_CHAPTER_MINUTES": "min_chapter_minutes",
    "WPM": "words_per_minute",
    "DATA_DIR": "data_dir",
    "OUTPUT_DIR": "output_dir",
    "PORT": "port",
    "CHAPTERVOICE_UPLOAD_DIR": "upload_dir",
    "CHAPTERVOICE_LLM_MODEL": "llm_model",
    "CHAPTERVOICE_LLM_MAX_INPUT_CHARS": "llm_max_input_chars",
    "CHAPTERVOICE_LLM_TEMPERATURE": "llm_temperature",
    "CHAPTERVOICE_LLM_MAX_TOKENS": "llm_max_tokens",
    "CHAPTERVOICE_SPEECH_TIMEOUT_SECONDS": "speech_timeout_seconds",
    "CHAPTERVOICE_LLM_TIMEOUT_SECONDS": "llm_timeout_seconds",
    "CHAPTERVOICE_PUBLIC_OUTPUT_PREFIX": "public_output_prefix",
    "CHAPTERVOICE_HOST": "host",
    "CHAPTERVOICE_HEARTBEAT_SECONDS": "heartbeat_seconds",
}

_RUNTIME_ENV_KEYS: dict[str, str] = {
    "api_key": "YANDEX_API_KEY",
    "iam_token": "YANDEX_IAM_TOKEN",
    "folder_id": "YANDEX_FOLDER_ID",
}


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderRuntimeConfig:
    """Resolved Yandex Cloud credentials for one process.

    Attributes:
        api_key: Service-account API key; wins over `iam_token` when both exist.
        iam_token: Short-lived IAM token.
        folder_id: Cloud folder identifier used for model URIs and IAM calls.
    """

    folder_id: str
    api_key: str | None = None
    iam_token: str | None = None

    @property
    def auth_mode(self) -> str:
        """Return `api_key` or `iam_token`, whichever will be sent."""

        return "api_key" if self.api_key else "iam_token"


@dataclass(slots=True)
class ChaptervoiceConfig:
    """Settings for document runs, the record catalog, and the HTTP server.

    Attributes:
        output_dir: Root directory for per-run chapter audio.
        data_dir: Directory holding the record catalog database.
        upload_dir: Directory for temporary multipart uploads.
        tts_voice: Default speech voice.
        tts_role: Default speech role (emotion).
        tts_speed: Default speech speed multiplier.
        max_tts_chars: Initial chunk limit for speech synthesis.
        min_chapter_minutes: Minimum target chapter length in minutes.
        words_per_minute: Listening rate used for time estimates.
        llm_model: Foundation model name for chaptering.
        llm_max_input_chars: Document prefix length sent to the model.
        llm_temperature: Sampling temperature for chaptering.
        llm_max_tokens: Completion token limit for chaptering.
        speech_timeout_seconds: Timeout for one speech request.
        llm_timeout_seconds: Timeout for one completion request.
        public_output_prefix: URL prefix under which `output_dir` is served.
        host: HTTP bind host.
        port: HTTP bind port.
        heartbeat_seconds: Interval between upload keep-alive lines.
        api_key: Optional Yandex API key.
        iam_token: Optional Yandex IAM token.
        folder_id: Optional Yandex folder id.
        runtime_sources: Optional runtime source overrides injected by CLI.
    """

    output_dir: Path = Path("output")
    data_dir: Path = Path("data")
    upload_dir: Path = Path("uploads")
    tts_voice: str = "ermil"
    tts_role: str = "friendly"
    tts_speed: float = 1.0
    max_tts_chars: int = 4000
    min_chapter_minutes: int = 30
    words_per_minute: int = 150
    llm_model: str = "yandexgpt"
    llm_max_input_chars: int = 250_000
    llm_temperature: float = 0.3
    llm_max_tokens: int = 12_000
    speech_timeout_seconds: float = 120.0
    llm_timeout_seconds: float = 600.0
    public_output_prefix: str = "/output"
    host: str = "127.0.0.1"
    port: int = 3001
    heartbeat_seconds: float = 15.0
    api_key: str | None = None
    iam_token: str | None = None
    folder_id: str | None = None
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before use."""

        for key in sorted(_INT_KEYS):
            if getattr(self, key) <= 0:
                raise ValueError(f"`{key}` must be a positive integer.")
        for key in sorted(_FLOAT_KEYS):
            if getattr(self, key) <= 0:
                raise ValueError(f"`{key}` must be a positive number.")
        if not 0.0 <= self.llm_temperature <= 1.0:
            raise ValueError("`llm_temperature` must be between 0 and 1.")
        self._require_non_empty(self.tts_voice, "tts_voice")
        self._require_non_empty(self.tts_role, "tts_role")
        self._require_non_empty(self.llm_model, "llm_model")
        if not self.public_output_prefix.startswith("/"):
            raise ValueError("`public_output_prefix` must start with `/`.")

    def voice_profile(
        self,
        voice: str | None = None,
        role: str | None = None,
        speed: float | None = None,
    ) -> VoiceProfile:
        """Return a voice profile with per-request overrides applied."""

        return VoiceProfile(
            voice=normalize_optional_string(voice) or self.tts_voice,
            role=normalize_optional_string(role) or self.tts_role,
            speed=self.tts_speed if speed is None else speed,
        )

    def resolved_provider_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> ProviderRuntimeConfig:
        """Resolve provider credentials with deterministic source precedence.

        Precedence for each key is:
        `cli` > `secure` > `env` > config field default.

        Raises:
            ValueError: If neither an API key nor an IAM token is available, or
                the folder id is missing.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources
        values = {
            key: self._resolve_optional_runtime_value(
                key=key,
                env_key=env_key,
                default_value=getattr(self, key),
                sources=resolved_sources,
            )
            for key, env_key in _RUNTIME_ENV_KEYS.items()
        }
        if values["api_key"] is None and values["iam_token"] is None:
            raise ValueError(
                "Yandex credentials are missing; set YANDEX_API_KEY or YANDEX_IAM_TOKEN."
            )
        if values["folder_id"] is None:
            raise ValueError("`folder_id` is missing; set YANDEX_FOLDER_ID.")
        return ProviderRuntimeConfig(
            folder_id=values["folder_id"],
            api_key=values["api_key"],
            iam_token=values["iam_token"],
        )

    def _resolve_optional_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional runtime value from sources in deterministic order."""

        for mapping, lookup_key in (
            (sources.cli, key),
            (sources.secure, key),
            (sources.env, env_key),
        ):
            value = self._normalized_lookup(mapping, lookup_key)
            if value is not None:
                return value
        return normalize_optional_string(default_value)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `ChaptervoiceConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        item.name for item in fields(ChaptervoiceConfig) if item.name != "runtime_sources"
    )

    @staticmethod
    def from_yaml(path: Path) -> ChaptervoiceConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")

        source_label = f"YAML `{path}`"
        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        values = {
            key: ConfigLoader._coerce_value(key, raw_value, f"{source_label} field `{key}`")
            for key, raw_value in payload.items()
        }
        config = ChaptervoiceConfig(
            **{key: value for key, value in values.items() if value is not None}
        )
        config.validate()
        return config

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ChaptervoiceConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env

        values: dict[str, Any] = {}
        for env_key, key in _ENV_KEYS.items():
            if env_key not in env_map:
                continue
            value = ConfigLoader._coerce_value(
                key, env_map.get(env_key), f"Environment variable `{env_key}`"
            )
            if value is not None:
                values[key] = value

        runtime_env = {
            env_key: value
            for env_key, value in env_map.items()
            if env_key in _RUNTIME_ENV_KEYS.values()
            and normalize_optional_string(value) is not None
        }

        config = ChaptervoiceConfig(
            **values,
            runtime_sources=RuntimeConfigSources(env=runtime_env),
        )
        config.validate()
        return config

    @staticmethod
    def _coerce_value(key: str, raw_value: object, source_label: str) -> Any:
        """Normalize one raw setting to its field type; blank values become `None`."""

        if key in _INT_KEYS:
            if normalize_optional_string(raw_value) is None:
                return None
            return ConfigLoader._labelled(parse_positive_int, raw_value, source_label)
        if key in _FLOAT_KEYS:
            if normalize_optional_string(raw_value) is None:
                return None
            return ConfigLoader._labelled(parse_positive_float, raw_value, source_label)
        if key == "llm_temperature":
            normalized = normalize_optional_string(raw_value)
            if normalized is None:
                return None
            try:
                return float(normalized)
            except ValueError as exc:
                raise ValueError(f"{source_label} must be a number.") from exc

        normalized = normalize_optional_string(raw_value)
        if normalized is None:
            if key in _OPTIONAL_KEYS:
                return None
            raise ValueError(f"{source_label} must be a non-empty string.")
        if key in _PATH_KEYS:
            return Path(normalized)
        return normalized

    @staticmethod
    def _labelled(parser: Any, raw_value: object, source_label: str) -> Any:
        """Run a value parser, re-labelling its error with the source of the value."""

        try:
            return parser(raw_value, "value")
        except ValueError as exc:
            message = str(exc).replace("`value`", source_label)
            raise ValueError(message) from exc
