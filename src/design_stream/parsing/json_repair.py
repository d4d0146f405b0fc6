"""Locate, parse and structurally repair the JSON body of a model response."""

from __future__ import annotations

import json
import logging
import re
from enum import StrEnum
from typing import Any, NamedTuple

from design_stream.exceptions import ParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_TRAILING_COMMA_RE = re.compile(r",\s*$")

# What the innermost open container expects next.
_KEY = "key"  # after "{" or "," inside an object
_COLON = "colon"  # after a key
_VALUE = "value"  # after ":" inside an object
_ARRAY_VALUE = "array_value"  # after "[" or "," inside an array
_AFTER_VALUE = "after_value"  # a complete value was just read


class ParseStatus(StrEnum):
    OK = "ok"
    NEEDS_REPAIR = "needs_repair"
    FAILED = "failed"


class ParseOutcome(NamedTuple):
    """Result of one parse attempt: ``Ok(data) | NeedsRepair(error) | Failed(error)``."""

    status: ParseStatus
    data: dict[str, Any] | None = None
    error: str | None = None


class ParsedResponse(NamedTuple):
    """A parsed document body and whether it needed repair to parse."""

    data: dict[str, Any]
    repaired: bool


def extract_json(text: str) -> str:
    """Find the JSON body inside free-form model output.

    Prefers the first fenced code block, then the span from the first ``{``
    to the last ``}``, and finally the stripped text itself.
    """
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        return text[first : last + 1]
    # A truncated body may have lost its closing brace entirely.
    if first != -1:
        return text[first:].strip()
    return text.strip()


def parse_document(text: str) -> ParseOutcome:
    """Parse ``text`` as a document object without raising.

    Any ordinary failure, including a JSON value that is not an object with
    numeric ``width`` and ``height``, routes to ``NEEDS_REPAIR``.  Only empty
    input is ``FAILED`` outright.
    """
    if not text.strip():
        return ParseOutcome(ParseStatus.FAILED, error="Empty response body")
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        return ParseOutcome(ParseStatus.NEEDS_REPAIR, error=str(exc))
    if not isinstance(data, dict):
        return ParseOutcome(ParseStatus.NEEDS_REPAIR, error="Response is not a JSON object")
    if not _is_number(data.get("width")) or not _is_number(data.get("height")):
        return ParseOutcome(ParseStatus.NEEDS_REPAIR, error="Invalid dimensions in response")
    return ParseOutcome(ParseStatus.OK, data=data)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _complete_literal(literal: str) -> bool:
    try:
        json.loads(literal)
    except ValueError:
        return False
    return True


def repair_json(text: str) -> str | None:
    """Close a truncated JSON document so it parses.

    A single left-to-right scan tracks whether the cursor is inside a string
    and keeps a stack of unmatched ``{``/``[`` seen outside strings.  If the
    stack is empty at the end, the input was not truncated and ``None`` is
    returned.  Otherwise the tail is completed:

    1. an open string is closed (dropping a half-written escape);
    2. a half-written literal such as ``tru`` or ``1.`` is removed;
    3. one trailing comma is stripped;
    4. a dangling key gets ``:null`` and a dangling ``:`` gets ``null``;
    5. every open bracket is closed in reverse order.

    For any unbalanced prefix of a well-formed document the result parses.
    """
    stack: list[str] = []
    expect: list[str] = []
    in_string = False
    escape_next = False
    escape_start = -1
    literal_start = -1

    for i, c in enumerate(text):
        if in_string:
            if escape_next:
                escape_next = False
            elif c == "\\":
                escape_next = True
                escape_start = i
            elif c == '"':
                in_string = False
                if expect:
                    expect[-1] = _COLON if expect[-1] == _KEY else _AFTER_VALUE
            continue

        if literal_start != -1:
            if c.isspace() or c in ",:]}":
                literal_start = -1
            else:
                continue

        if c == '"':
            in_string = True
        elif c in "{[":
            if expect:
                expect[-1] = _AFTER_VALUE
            stack.append(c)
            expect.append(_KEY if c == "{" else _ARRAY_VALUE)
        elif c in "}]":
            if stack:
                stack.pop()
                expect.pop()
        elif c == ":":
            if expect:
                expect[-1] = _VALUE
        elif c == ",":
            if stack:
                expect[-1] = _KEY if stack[-1] == "{" else _ARRAY_VALUE
        elif not c.isspace():
            literal_start = i
            if expect:
                expect[-1] = _AFTER_VALUE

    if not stack:
        return None

    repaired = text
    state = expect[-1]

    if in_string:
        if escape_next or (
            escape_start != -1
            and repaired[escape_start + 1 : escape_start + 2] == "u"
            and len(repaired) - escape_start < 6
        ):
            repaired = repaired[:escape_start]
        repaired += '"'
        state = _COLON if state == _KEY else _AFTER_VALUE
    elif literal_start != -1 and not _complete_literal(repaired[literal_start:].strip()):
        repaired = repaired[:literal_start]
        state = _VALUE if stack[-1] == "{" else _ARRAY_VALUE

    repaired = repaired.rstrip()
    if _TRAILING_COMMA_RE.search(repaired):
        repaired = _TRAILING_COMMA_RE.sub("", repaired)
        state = _AFTER_VALUE

    if state == _COLON:
        repaired += ":null"
    elif state == _VALUE:
        repaired += "null"

    for opener in reversed(stack):
        repaired += "}" if opener == "{" else "]"
    return repaired


def parse_response(text: str) -> ParsedResponse:
    """Extract, parse and if necessary repair the document in ``text``.

    Raises:
        ParseError: When the body cannot be recovered even after repair.
    """
    body = extract_json(text)
    outcome = parse_document(body)
    if outcome.status is ParseStatus.OK and outcome.data is not None:
        return ParsedResponse(outcome.data, repaired=False)

    if outcome.status is ParseStatus.NEEDS_REPAIR:
        repaired = repair_json(body)
        if repaired is not None:
            second = parse_document(repaired)
            if second.status is ParseStatus.OK and second.data is not None:
                logger.info("Recovered truncated response body (%d chars)", len(body))
                return ParsedResponse(second.data, repaired=True)

    logger.error(
        "Failed to parse AI response (%s). Attempted to parse: %.500s", outcome.error, body
    )
    raise ParseError()
