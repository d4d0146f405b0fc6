"""Design document models: the validated, render-ready output tree.

Field names are snake_case in Python and camelCase on the wire
(``backgroundColor``, ``layoutMode``, ``fontSize``...).  Vendor fields the
models do not name (corner radius, opacity, icon hints...) are preserved as
extra attributes so renderers can still use them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    extra="allow",
    alias_generator=to_camel,
    populate_by_name=True,
)


class Fill(BaseModel):
    """A paint fill. Colors are ``#``-prefixed hex strings."""

    model_config = _WIRE_CONFIG

    type: str = "SOLID"
    color: str | None = None
    opacity: float | None = None


class Stroke(BaseModel):
    """An outline stroke."""

    model_config = _WIRE_CONFIG

    color: str | None = None
    width: float | None = None


class Effect(BaseModel):
    """A shadow effect."""

    model_config = _WIRE_CONFIG

    type: str = "DROP_SHADOW"
    color: str | None = None


class TextProperties(BaseModel):
    """Text payload of a text element. The only place a text color lives."""

    model_config = _WIRE_CONFIG

    content: str = ""
    font_size: float = Field(default=16, ge=1, le=200)
    font_weight: float | None = None
    font_family: str = "Inter"
    color: str = "#000000"
    text_align: str | None = None


class Element(BaseModel):
    """A single node of the design tree.

    ``x``/``y`` are absent for children placed by an auto-flow parent.
    ``children`` is always present, possibly empty.
    """

    model_config = _WIRE_CONFIG

    id: str
    type: str
    name: str
    x: float | None = None
    y: float | None = None
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    fills: list[Fill] | None = None
    stroke: Stroke | None = None
    effects: list[Effect] | None = None
    text: TextProperties | None = None

    layout_mode: str | None = None
    item_spacing: float | None = None
    padding_top: float | None = None
    padding_right: float | None = None
    padding_bottom: float | None = None
    padding_left: float | None = None
    primary_axis_align_items: str | None = None
    counter_axis_align_items: str | None = None
    layout_sizing_horizontal: str | None = None
    layout_sizing_vertical: str | None = None
    layout_positioning: str | None = None

    children: list[Element] = Field(default_factory=list)

    def walk(self) -> list[Element]:
        """Return this element and all descendants, depth-first."""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.walk())
        return nodes


class DesignDocument(BaseModel):
    """The sanitized design tree handed to the render layer.

    Constructed once per request and immutable afterwards.
    """

    model_config = _WIRE_CONFIG

    width: float = Field(ge=1, le=4096)
    height: float = Field(ge=1, le=4096)
    background_color: str = "#FFFFFF"
    elements: list[Element] = Field(default_factory=list)

    def walk(self) -> list[Element]:
        """Return every element in the tree, depth-first."""
        nodes: list[Element] = []
        for element in self.elements:
            nodes.extend(element.walk())
        return nodes

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase dict shape renderers consume."""
        return self.model_dump(by_alias=True, exclude_none=True)
