"""Analyzer configuration."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_PROMPT = (
    "Analyze the attached input and describe it as a design document. "
    "Respond with a single JSON object with the keys width, height, "
    "backgroundColor and elements."
)


class AnalyzerSettings(BaseModel):
    """Tunable knobs for :class:`~design_stream.analyzer.DesignAnalyzer`.

    Parameters:
        max_attempts: Total attempts per request, including the first.
        timeout_seconds: Wall-clock budget for each attempt.
        backoff_base_seconds: Retry delay is ``base * 2**attempt`` whole seconds.
        progress_start: Lowest percentage reported while streaming.
        progress_end: Highest percentage reported while streaming; the rest
            of the bar belongs to downstream stages.
        estimated_response_bytes: Response size that maps to ``progress_end``.
        claude_model: Anthropic model id.
        openai_model: OpenAI model id.
        gemini_model: Gemini model id.
        claude_max_tokens: Output token cap sent to Anthropic.
        openai_max_tokens: Output token cap sent to OpenAI.
        gemini_max_output_tokens: Output token cap sent to Gemini.
        prompt: Instruction text sent alongside the input.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=2, ge=1)
    timeout_seconds: float = Field(default=120.0, gt=0)
    backoff_base_seconds: int = Field(default=1, ge=0)

    progress_start: float = Field(default=10.0, ge=0, le=100)
    progress_end: float = Field(default=58.0, ge=0, le=100)
    estimated_response_bytes: int = Field(default=30_000, gt=0)

    claude_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o"
    gemini_model: str = "gemini-3-pro-preview"
    claude_max_tokens: int = Field(default=32_768, gt=0)
    openai_max_tokens: int = Field(default=32_768, gt=0)
    gemini_max_output_tokens: int = Field(default=65_536, gt=0)

    prompt: str = DEFAULT_PROMPT

    @model_validator(mode="after")
    def validate_progress_range(self) -> Self:
        if self.progress_start > self.progress_end:
            msg = (
                f"progress_start ({self.progress_start}) must not exceed "
                f"progress_end ({self.progress_end})"
            )
            raise ValueError(msg)
        return self
