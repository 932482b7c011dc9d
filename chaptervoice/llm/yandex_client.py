"""Yandex Cloud HTTP client utilities for chaptering and speech stages.

Responsibilities:
- Send completion requests to the Foundation Models REST API.
- Stream SpeechKit v3 utterance synthesis into WAV files.
- Raise provider exceptions with a structured failure kind for pipeline-level
  error mapping, including the recoverable "text too long" rejection.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
import re
import socket
from typing import TYPE_CHECKING, Any

import requests

from ..errors import TEXT_TOO_LONG, ProviderError

if TYPE_CHECKING:
    from ..tts.voices import VoiceProfile

_TEXT_TOO_LONG_RE = re.compile(r"too long text", re.IGNORECASE)


def is_text_too_long_message(message: str) -> bool:
    """Return whether a speech-service error message reports an oversized input."""

    return bool(_TEXT_TOO_LONG_RE.search(message))


class YandexProviderError(ProviderError):
    """Raised when a Yandex provider request fails or returns malformed output."""


class _YandexBaseClient:
    """Shared Yandex HTTP settings and helpers used by stage-specific clients."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None = None,
        iam_token: str | None = None,
        folder_id: str | None = None,
        base_url: str,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize Yandex HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.iam_token = iam_token.strip() if isinstance(iam_token, str) else ""
        self.folder_id = folder_id.strip() if isinstance(folder_id, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _auth_headers(self) -> dict[str, str]:
        """Build authorization headers, preferring an API key over an IAM token."""

        if self.api_key:
            return {"Authorization": f"Api-Key {self.api_key}"}
        if self.iam_token:
            headers = {"Authorization": f"Bearer {self.iam_token}"}
            if self.folder_id:
                headers["x-folder-id"] = self.folder_id
            return headers
        raise YandexProviderError(
            "Missing Yandex credentials. Set `YANDEX_API_KEY` or `YANDEX_IAM_TOKEN`, "
            "use `--api-key`, or `chaptervoice credentials --set-api-key`.",
            failure_kind="invalid_api_key",
        )

    def _execute_json_post_bytes(
        self,
        *,
        endpoint_path: str,
        payload: dict[str, Any],
    ) -> bytes:
        """Execute a JSON POST request and map failures consistently."""

        endpoint = f"{self.base_url}{endpoint_path}"
        headers = {"Content-Type": "application/json", **self._auth_headers()}
        try:
            response = requests.post(
                endpoint,
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            return bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            raise self._transport_error(exc) from exc
        except TimeoutError as exc:
            raise YandexProviderError(
                "Yandex request timed out.",
                failure_kind="timeout",
            ) from exc

    @classmethod
    def _transport_error(cls, exc: BaseException) -> YandexProviderError:
        """Convert a network-layer failure into a provider error."""

        failure_kind = cls._classify_transport_failure(exc)
        if failure_kind == "timeout":
            return YandexProviderError("Yandex request timed out.", failure_kind="timeout")
        return YandexProviderError(
            f"Yandex request transport error: {cls._short_message(str(exc))}",
            failure_kind=failure_kind,
        )

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact credential-like tokens from provider error content."""

        redacted = re.sub(r"\bAQVN[A-Za-z0-9_-]{8,}\b", "[redacted-key]", text)
        redacted = re.sub(r"\bt1\.[A-Za-z0-9._-]{12,}", "[redacted-token]", redacted)
        redacted = re.sub(
            r"(?i)(bearer|api-key)\s+[A-Za-z0-9._-]{12,}",
            r"\1 [redacted]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract the full redacted provider message and optional provider error code."""

        if not body:
            return "", None

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._redact_sensitive_tokens(body), None

        provider_code: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error", payload)
            if isinstance(error_payload, dict):
                code_value = error_payload.get("code", error_payload.get("grpcCode"))
                if code_value is not None and str(code_value).strip():
                    provider_code = str(code_value).strip()
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()

        if message is None:
            message = body

        return cls._redact_sensitive_tokens(message), provider_code

    @staticmethod
    def _classify_http_failure(status_code: int, provider_message: str) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        if is_text_too_long_message(provider_message):
            return TEXT_TOO_LONG
        if status_code in {401, 403} or "api key" in message_lower or "iam token" in message_lower:
            return "invalid_api_key"
        if status_code in {408, 504} or "timeout" in message_lower or "timed out" in message_lower:
            return "timeout"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _provider_error_for_status(
        cls,
        *,
        label: str,
        status_code: int,
        body: str,
    ) -> YandexProviderError:
        """Build a provider error for a non-success HTTP status and response body."""

        provider_message, provider_code = cls._extract_provider_message(body)
        failure_kind = cls._classify_http_failure(status_code, provider_message)
        detail = f"{label} {status_code}: {cls._short_message(provider_message) or 'Bad Request'}"
        return YandexProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> YandexProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        body = ""
        if response is not None:
            body = bytes(response.content).decode("utf-8", errors="replace").strip()
        return cls._provider_error_for_status(
            label="Yandex request failed",
            status_code=status_code,
            body=body,
        )


class YandexGPTClient(_YandexBaseClient):
    """Minimal requests-based Foundation Models completion client."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        iam_token: str | None = None,
        folder_id: str | None = None,
        base_url: str = "https://llm.api.cloud.yandex.net",
        timeout_seconds: float = 600.0,
    ) -> None:
        """Initialize completion client settings."""

        super().__init__(
            api_key=api_key,
            iam_token=iam_token,
            folder_id=folder_id,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )

    def complete_json(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, Any],
        temperature: float = 0.3,
        max_tokens: int = 12000,
    ) -> str:
        """Return the first alternative's text from a schema-constrained completion."""

        if not self.folder_id:
            raise YandexProviderError(
                "Missing Yandex folder id. Set `YANDEX_FOLDER_ID`.",
                failure_kind="invalid_api_key",
            )

        payload = {
            "modelUri": f"gpt://{self.folder_id}/{model}",
            "completionOptions": {
                "stream": False,
                "temperature": temperature,
                "maxTokens": str(max_tokens),
                "reasoningOptions": {"mode": "DISABLED"},
            },
            "jsonSchema": {"schema": json_schema},
            "messages": [
                {"role": "system", "text": system_prompt},
                {"role": "user", "text": user_prompt},
            ],
        }
        raw_payload = self._execute_json_post_bytes(
            endpoint_path="/foundationModels/v1/completion",
            payload=payload,
        ).decode("utf-8")
        return self._extract_alternative_text(raw_payload)

    @staticmethod
    def _extract_alternative_text(raw_payload: str) -> str:
        """Extract `result.alternatives[0].message.text` from a completion payload."""

        try:
            payload = json.loads(raw_payload)
        except json.JSONDecodeError as exc:
            raise YandexProviderError("Yandex returned invalid JSON payload.") from exc

        result = payload.get("result") if isinstance(payload, dict) else None
        alternatives = result.get("alternatives") if isinstance(result, dict) else None
        if not isinstance(alternatives, list) or not alternatives:
            raise YandexProviderError(
                "Yandex completion response has no alternatives.",
                failure_kind="empty_response",
            )

        first = alternatives[0]
        message = first.get("message") if isinstance(first, dict) else None
        text = message.get("text") if isinstance(message, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise YandexProviderError(
                "Yandex completion response text is empty.",
                failure_kind="empty_response",
            )
        return text.strip()


class YandexSpeechClient(_YandexBaseClient):
    """Requests-based SpeechKit v3 client streaming WAV audio to disk."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        iam_token: str | None = None,
        folder_id: str | None = None,
        base_url: str = "https://tts.api.cloud.yandex.net",
        timeout_seconds: float = 120.0,
    ) -> None:
        """Initialize speech client settings."""

        super().__init__(
            api_key=api_key,
            iam_token=iam_token,
            folder_id=folder_id,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )

    def synthesize_to_file(self, text: str, output_path: Path, voice: VoiceProfile) -> Path:
        """Synthesize one chunk and write the streamed WAV bytes to `output_path`.

        Raises:
            YandexProviderError: On non-success status (`text_too_long` when the
                service rejects the input length), timeouts, transport errors,
                or a stream that carried no audio.
        """

        payload = {
            "text": text,
            "hints": [
                {"voice": str(voice.voice)},
                {"role": str(voice.role)},
                {"speed": str(voice.speed)},
            ],
            "unsafeMode": True,
            "outputAudioSpec": {"containerAudio": {"containerAudioType": "WAV"}},
        }
        headers = {"Content-Type": "application/json", **self._auth_headers()}
        output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            response = requests.post(
                f"{self.base_url}/tts/v3/utteranceSynthesis",
                headers=headers,
                json=payload,
                stream=True,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise self._transport_error(exc) from exc

        try:
            if response.status_code != 200:
                body = bytes(response.content).decode("utf-8", errors="replace").strip()
                raise self._provider_error_for_status(
                    label="TTS v3",
                    status_code=response.status_code,
                    body=body,
                )
            written = self._write_audio_events(response, output_path)
        except requests.RequestException as exc:
            raise self._transport_error(exc) from exc
        finally:
            response.close()

        if written == 0:
            raise YandexProviderError(
                "Speech response stream contained no audio.",
                failure_kind="empty_response",
            )
        return output_path

    @staticmethod
    def _write_audio_events(response: requests.Response, output_path: Path) -> int:
        """Append base64 audio payloads of newline-delimited events; return bytes written."""

        written = 0
        with output_path.open("wb") as audio_file:
            for line in response.iter_lines():
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except (json.JSONDecodeError, UnicodeDecodeError):
                    continue
                encoded = YandexSpeechClient._audio_chunk_data(event)
                if encoded is None:
                    continue
                try:
                    chunk = base64.b64decode(encoded)
                except (binascii.Error, ValueError):
                    continue
                audio_file.write(chunk)
                written += len(chunk)
        return written

    @staticmethod
    def _audio_chunk_data(event: object) -> str | None:
        """Return `result.audioChunk.data` from one stream event when present."""

        if not isinstance(event, dict):
            return None
        result = event.get("result")
        if not isinstance(result, dict):
            return None
        audio_chunk = result.get("audioChunk")
        if not isinstance(audio_chunk, dict):
            return None
        data = audio_chunk.get("data")
        return data if isinstance(data, str) and data else None
