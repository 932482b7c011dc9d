"""Runtime wiring for document pipelines.

Responsibilities:
- Validate configuration and resolve provider credentials with stage-aware errors.
- Assemble Yandex clients, chaptering, synthesis, and the document pipeline.
"""

from __future__ import annotations

import os

from ..config import ChaptervoiceConfig, ProviderRuntimeConfig, RuntimeConfigSources
from ..errors import PipelineStageError
from ..llm.chaptering import YandexChapteringService
from ..llm.yandex_client import YandexGPTClient, YandexSpeechClient
from ..telemetry.logger import RunLogger
from ..tts.synthesizer import ChapterSynthesizer
from .document import DocumentPipeline
from .orchestrator import ChapteringOrchestrator


def validate_config(config: ChaptervoiceConfig) -> None:
    """Validate top-level configuration and map failures to stage-aware error."""

    try:
        config.validate()
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=str(exc),
            hint="Fix the config file, environment, or command options and rerun.",
        ) from exc


def resolve_runtime_config(config: ChaptervoiceConfig) -> ProviderRuntimeConfig:
    """Resolve provider credentials with deterministic source precedence."""

    try:
        runtime_sources = RuntimeConfigSources(
            cli=config.runtime_sources.cli,
            secure=config.runtime_sources.secure,
            env=config.runtime_sources.env or os.environ,
        )
        return config.resolved_provider_runtime(runtime_sources)
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=str(exc),
            hint=(
                "Provide YANDEX_API_KEY (or `--api-key`) or YANDEX_IAM_TOKEN, "
                "and YANDEX_FOLDER_ID."
            ),
        ) from exc


def build_document_pipeline(
    config: ChaptervoiceConfig,
    run_logger: RunLogger | None = None,
    runtime: ProviderRuntimeConfig | None = None,
) -> DocumentPipeline:
    """Create a document pipeline backed by the Yandex completion and speech APIs."""

    validate_config(config)
    resolved = runtime if runtime is not None else resolve_runtime_config(config)
    credentials = {
        "api_key": resolved.api_key,
        "iam_token": resolved.iam_token,
        "folder_id": resolved.folder_id,
    }
    chaptering = YandexChapteringService(
        YandexGPTClient(timeout_seconds=config.llm_timeout_seconds, **credentials),
        model=config.llm_model,
        max_input_chars=config.llm_max_input_chars,
        temperature=config.llm_temperature,
        max_tokens=config.llm_max_tokens,
    )
    synthesizer = ChapterSynthesizer(
        YandexSpeechClient(timeout_seconds=config.speech_timeout_seconds, **credentials),
        run_logger=run_logger,
    )
    return DocumentPipeline(
        ChapteringOrchestrator(chaptering, synthesizer, run_logger=run_logger),
        run_logger=run_logger,
        output_root=config.output_dir,
        public_prefix=config.public_output_prefix,
    )
