"""Canonical stream events and outbound request descriptors."""

from __future__ import annotations

from typing import Annotated, Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field


class AppendText(BaseModel):
    """An incremental text fragment, in arrival order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["append_text"] = "append_text"
    text: str


class Truncated(BaseModel):
    """The vendor reported it stopped because of its output length limit."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["truncated"] = "truncated"


class Finished(BaseModel):
    """The response body is complete."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["finished"] = "finished"


StreamEvent: TypeAlias = Annotated[
    AppendText | Truncated | Finished, Field(discriminator="kind")
]


class RequestSpec(BaseModel):
    """One outbound HTTP call, as handed to the request executor."""

    model_config = ConfigDict(frozen=True)

    method: str = "POST"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: dict[str, Any] | None = None
