"""Sanitize a parsed design tree into the canonical, render-ready shape.

Every function here is total: malformed input is clamped, defaulted or
dropped, never rejected.  The input is not mutated; new dicts are built.
"""

from __future__ import annotations

import copy
import logging
import math
import uuid
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel

from design_stream.models.design import (
    DesignDocument,
    Effect,
    Element,
    Fill,
    Stroke,
    TextProperties,
)

logger = logging.getLogger(__name__)

MAX_CANVAS_SIZE = 4096
DEFAULT_SIZE = 100
DEFAULT_BACKGROUND = "#FFFFFF"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_FONT_SIZE = 16
MAX_FONT_SIZE = 200
DEFAULT_ELEMENT_TYPE = "frame"
MAX_DEPTH = 64

AUTO_FLOW_MODES = frozenset({"HORIZONTAL", "VERTICAL"})
BREAK_OUT_OF_FLOW = "ABSOLUTE"

_LAYOUT_STRING_KEYS = (
    "layoutMode",
    "primaryAxisAlignItems",
    "counterAxisAlignItems",
    "layoutSizingHorizontal",
    "layoutSizingVertical",
    "layoutPositioning",
)
_LAYOUT_NUMBER_KEYS = (
    "itemSpacing",
    "paddingTop",
    "paddingRight",
    "paddingBottom",
    "paddingLeft",
)


def _field_keys(model: type[BaseModel]) -> frozenset[str]:
    """Every key, by name or alias, that maps onto a declared field."""
    keys: set[str] = set()
    for name, info in model.model_fields.items():
        keys.add(name)
        if info.alias:
            keys.add(info.alias)
    return frozenset(keys)


_ELEMENT_KEYS = _field_keys(Element)
_FILL_KEYS = _field_keys(Fill)
_STROKE_KEYS = _field_keys(Stroke)
_EFFECT_KEYS = _field_keys(Effect)
_TEXT_KEYS = _field_keys(TextProperties)


def _extras(raw: dict[str, Any], reserved: frozenset[str]) -> dict[str, Any]:
    """Copy vendor fields the models do not declare."""
    return {
        key: copy.deepcopy(value)
        for key, value in raw.items()
        if isinstance(key, str) and key not in reserved
    }


def _as_float(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None`` if it is not one."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _clamp_size(value: Any, bound: float) -> float:
    number = _as_float(value)
    if number is None:
        number = DEFAULT_SIZE
    return max(1.0, min(bound, number))


def normalize_hex(value: Any, default: str | None = None) -> str | None:
    """Prefix a color with ``#``; non-strings and blanks become ``default``."""
    if not isinstance(value, str) or not value.strip():
        return default
    value = value.strip()
    return value if value.startswith("#") else f"#{value}"


def _synthesize_id() -> str:
    return f"el_{uuid.uuid4().hex[:6]}"


def _validate_fill(raw: dict[str, Any]) -> dict[str, Any]:
    fill = _extras(raw, _FILL_KEYS)
    fill["type"] = _as_text(raw.get("type")) or "SOLID"
    color = normalize_hex(raw.get("color"))
    if color is not None:
        fill["color"] = color
    opacity = _as_float(raw.get("opacity"))
    if opacity is not None:
        fill["opacity"] = opacity
    stops = fill.get("gradientStops")
    if isinstance(stops, list):
        fill["gradientStops"] = [
            {**stop, "color": normalize_hex(stop.get("color"), DEFAULT_TEXT_COLOR)}
            for stop in stops
            if isinstance(stop, dict)
        ]
    return fill


def _validate_stroke(raw: dict[str, Any]) -> dict[str, Any]:
    stroke = _extras(raw, _STROKE_KEYS)
    color = normalize_hex(raw.get("color"))
    if color is not None:
        stroke["color"] = color
    width = _as_float(raw.get("width"))
    if width is not None:
        stroke["width"] = width
    return stroke


def _validate_effect(raw: dict[str, Any]) -> dict[str, Any]:
    effect = _extras(raw, _EFFECT_KEYS)
    effect["type"] = _as_text(raw.get("type")) or "DROP_SHADOW"
    color = normalize_hex(raw.get("color"))
    if color is not None:
        effect["color"] = color
    return effect


def _validate_text(raw: dict[str, Any]) -> dict[str, Any]:
    text = _extras(raw, _TEXT_KEYS)
    text["content"] = _as_text(raw.get("content")) or ""

    size = _as_float(raw.get("fontSize"))
    if size is None or size < 1:
        size = DEFAULT_FONT_SIZE
    text["fontSize"] = min(MAX_FONT_SIZE, size)

    weight = _as_float(raw.get("fontWeight"))
    if weight is not None:
        text["fontWeight"] = weight
    text["color"] = normalize_hex(raw.get("color"), DEFAULT_TEXT_COLOR)
    family = raw.get("fontFamily")
    if not isinstance(family, str) or not family.strip():
        family = DEFAULT_FONT_FAMILY
    text["fontFamily"] = family
    align = _as_text(raw.get("textAlign"))
    if align is not None:
        text["textAlign"] = align
    return text


def _dicts(value: Any) -> Iterable[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _validate_element(
    raw: dict[str, Any],
    bound_w: float,
    bound_h: float,
    parent_is_auto_flow: bool,
    depth: int,
) -> dict[str, Any]:
    el = _extras(raw, _ELEMENT_KEYS)

    el_type = _as_text(raw.get("type"))
    el["id"] = _as_text(raw.get("id")) or _synthesize_id()
    el["name"] = _as_text(raw.get("name")) or el_type or "Element"
    el["type"] = el_type or DEFAULT_ELEMENT_TYPE

    el["width"] = _clamp_size(raw.get("width"), bound_w)
    el["height"] = _clamp_size(raw.get("height"), bound_h)

    for key in _LAYOUT_STRING_KEYS:
        value = _as_text(raw.get(key))
        if value is not None:
            el[key] = value
    for key in _LAYOUT_NUMBER_KEYS:
        number = _as_float(raw.get(key))
        if number is not None:
            el[key] = number

    # Under an auto-flow parent x/y survive only on break-out children.
    if not parent_is_auto_flow or el.get("layoutPositioning") == BREAK_OUT_OF_FLOW:
        for key in ("x", "y"):
            number = _as_float(raw.get(key))
            if number is not None:
                el[key] = number

    if isinstance(raw.get("fills"), list) and el["type"] != "text":
        el["fills"] = [_validate_fill(fill) for fill in _dicts(raw["fills"])]
    if isinstance(raw.get("stroke"), dict):
        el["stroke"] = _validate_stroke(raw["stroke"])
    if isinstance(raw.get("effects"), list):
        el["effects"] = [_validate_effect(effect) for effect in _dicts(raw["effects"])]
    text = raw.get("text")
    if isinstance(text, str):
        text = {"content": text}
    if isinstance(text, dict):
        el["text"] = _validate_text(text)

    if depth >= MAX_DEPTH:
        if raw.get("children"):
            logger.warning("Dropping children of %r nested deeper than %d", el["id"], MAX_DEPTH)
        el["children"] = []
    else:
        el["children"] = validate_elements(
            raw.get("children"),
            el["width"],
            el["height"],
            el.get("layoutMode") in AUTO_FLOW_MODES,
            _depth=depth + 1,
        )
    return el


def validate_elements(
    elements: Any,
    bound_w: float,
    bound_h: float,
    parent_is_auto_flow: bool,
    *,
    _depth: int = 0,
) -> list[dict[str, Any]]:
    """Sanitize a list of raw element dicts, depth-first.

    Each element gets an id, name and type; width and height clamped into
    ``(0, bound]`` (defaulting to 100 when non-numeric); x/y removed under an
    auto-flow parent unless ``layoutPositioning`` is ``"ABSOLUTE"``;
    ``#``-prefixed paint colors; no fills on text elements; a defaulted text
    payload; and a ``children`` list validated against its own size.

    Non-list input yields ``[]`` and non-dict entries are dropped.

    Parameters:
        elements: The raw ``elements``/``children`` value.
        bound_w: Width of the parent; no child may exceed it.
        bound_h: Height of the parent; no child may exceed it.
        parent_is_auto_flow: Whether the parent lays out its children.

    Returns:
        New, sanitized element dicts with camelCase keys.
    """
    return [
        _validate_element(raw, bound_w, bound_h, parent_is_auto_flow, _depth)
        for raw in _dicts(elements)
    ]


def validate_document(data: Any) -> DesignDocument:
    """Clamp and repair a parsed document into a :class:`DesignDocument`.

    Never raises for any JSON-shaped input.  Width and height end up in
    ``[1, 4096]``, the background color is ``#``-prefixed (``#FFFFFF`` by
    default) and ``elements`` is always a list.
    """
    raw = data if isinstance(data, dict) else {}

    width = _as_float(raw.get("width"))
    height = _as_float(raw.get("height"))
    width = max(1.0, min(MAX_CANVAS_SIZE, DEFAULT_SIZE if width is None else width))
    height = max(1.0, min(MAX_CANVAS_SIZE, DEFAULT_SIZE if height is None else height))

    background = normalize_hex(raw.get("backgroundColor"), DEFAULT_BACKGROUND)
    elements = validate_elements(raw.get("elements"), width, height, False)

    return DesignDocument.model_validate(
        {
            "width": width,
            "height": height,
            "backgroundColor": background,
            "elements": elements,
        }
    )
