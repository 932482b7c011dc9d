"""Voice profile models for synthesis configuration.

Responsibilities:
- Represent speech-service voice hints for one run.
- Decouple pipeline logic from provider-specific request shapes.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by the speech client.

    Attributes:
        voice: Provider-native voice identifier (for example `ermil`).
        role: Provider-native speaking role (for example `friendly`).
        speed: Relative speaking rate multiplier.
    """

    voice: str
    role: str
    speed: float = 1.0
