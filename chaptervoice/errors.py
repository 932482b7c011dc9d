"""Domain exceptions for pipeline, provider, and CLI diagnostics.

Key types:
- `InvalidArgumentError`: invalid call arguments (limits, rates).
- `InputError`: no usable document text.
- `ChapteringError`: chaptering service returned no usable chapters.
- `SynthesisError`: speech service hard failure.
- `ProviderError`: classified failure of a chaptering or speech client.
- `FormatError`: malformed or incompatible WAV containers.
- `NotFoundError`: record or input lookup miss.
- `PipelineStageError`: stage-scoped wrapper used by CLI diagnostics.

Filesystem failures surface as the built-in `OSError`.
"""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Raised when an operation receives an argument outside its contract."""


class InputError(ValueError):
    """Raised when a run has no usable input text."""


class ChapteringError(RuntimeError):
    """Raised when the chaptering service response cannot be turned into chapters."""


class SynthesisError(RuntimeError):
    """Raised when speech synthesis fails for a reason other than recoverable length."""


TEXT_TOO_LONG = "text_too_long"


class ProviderError(RuntimeError):
    """Raised by provider clients; `failure_kind` classifies the failure."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code

    @property
    def is_text_too_long(self) -> bool:
        """Whether the provider rejected the input as too long."""

        return self.failure_kind == TEXT_TOO_LONG


class FormatError(ValueError):
    """Raised when an audio container is malformed or incompatible."""


class NotFoundError(LookupError):
    """Raised when a requested record or input set does not exist."""


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
