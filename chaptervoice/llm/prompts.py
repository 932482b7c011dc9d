"""Prompt template library for the chaptering stage.

Responsibilities:
- Centralize prompt and output-schema construction for chaptering requests.
- Keep prompts deterministic for identical inputs.
"""

from __future__ import annotations

from typing import Any


class PromptLibrary:
    """Build prompt strings and schemas for supported LLM tasks."""

    def chaptering_system_prompt(self, max_minutes: int, words_per_minute: int) -> str:
        """Return the editor/producer system prompt for cleanup and chaptering."""

        return "\n".join(
            [
                "You are an experienced editor and audiobook producer.",
                "1) Clean the input document: remove links/URLs, image captions, "
                "advertising and junk blocks, OCR artifacts, headers/footers, and "
                "page numbers.",
                "2) Keep normal paragraphs and coherent text in the language of the source.",
                "3) Split the text into logical chapters. Each chapter must take at most "
                f"{max_minutes} minutes to read at about {words_per_minute} words per minute.",
                "Titles are about 3-12 words. Do not cut a thought in half.",
                "Return STRICTLY one JSON object matching the given schema, with no "
                "commentary outside the JSON.",
            ]
        )

    def chaptering_user_prompt(self, raw_text: str, max_input_chars: int) -> str:
        """Return the user prompt carrying the (truncated) source text."""

        return "\n".join(
            [
                "Source text between the dashes:",
                "-----",
                raw_text[:max_input_chars],
                "-----",
            ]
        )

    def chapter_schema(self) -> dict[str, Any]:
        """Return the JSON schema every chaptering response must satisfy."""

        return {
            "type": "object",
            "properties": {
                "chapters": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string", "minLength": 3},
                            "text": {"type": "string", "minLength": 200},
                        },
                        "required": ["title", "text"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["chapters"],
            "additionalProperties": False,
        }
