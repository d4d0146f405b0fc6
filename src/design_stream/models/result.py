"""Result and warning models returned by the analyzer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from design_stream.exceptions import ErrorKind

from .design import DesignDocument


class AnalysisWarning(BaseModel):
    """A non-fatal condition observed while producing a document."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class AnalysisResult(BaseModel):
    """Outcome of one successful ``analyze`` call.

    ``truncated`` means the vendor reported a length stop; ``repaired`` means
    the JSON had to be structurally completed before it parsed.
    """

    model_config = ConfigDict(frozen=True)

    document: DesignDocument
    provider: str
    warnings: list[AnalysisWarning] = Field(default_factory=list)
    truncated: bool = False
    repaired: bool = False
    received_bytes: int = 0
