"""Decoding and classification of router telemetry frames.

A frame is turned into zero or more JSON payloads by ``decode_frame``; each
payload is then classified by ``interpret_payload`` as a full snapshot or an
incremental delta using an ordered rule table.
"""

import inspect
import json
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, Union

from app.services.normalizer import ROUTER_FIELD_ALIASES, pick_identifier, pick_string, resolve

_ITEM_CONTAINERS = ("routers", "data", "items", "result")
_SINGLE_ITEM_KEYS = ("router", "device")


@dataclass
class FullSnapshot:
    """Complete replacement of the router table."""

    routers: List[Any] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.routers


@dataclass
class DeltaUpdate:
    """Routers added, updated and removed since the previous message."""

    added: List[Any] = field(default_factory=list)
    updated: List[Any] = field(default_factory=list)
    removed: List[Any] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)


MonitoringUpdate = Union[FullSnapshot, DeltaUpdate]


# ---------------------------------------------------------------------------
# Frame decoding
# ---------------------------------------------------------------------------


def _parse_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def decode_text(text: str) -> List[Any]:
    """Decode a text frame into the payloads it carries.

    The whole frame is tried as JSON first. Otherwise every non-empty line
    is parsed on its own, keeping the raw line when it is not JSON. A frame
    that yields nothing else comes back as its trimmed text.
    """
    trimmed = text.strip()
    if not trimmed:
        return []

    parsed, value = _parse_json(trimmed)
    if parsed:
        return [] if value is None else [value]

    segments = [line.strip() for line in trimmed.splitlines() if line.strip()]
    if len(segments) > 1:
        payloads = []
        for segment in segments:
            parsed, value = _parse_json(segment)
            payload = value if parsed else segment
            if payload is not None and payload != "":
                payloads.append(payload)
        if payloads:
            return payloads

    return [trimmed]


async def decode_frame(data: Any) -> List[Any]:
    """Decode a raw transport frame into payloads.

    Accepts text, bytes-like frames, or a streamed frame exposing ``read()``
    (sync or async). Binary content must be UTF-8.

    Raises:
        UnicodeDecodeError: If binary content is not valid UTF-8.
    """
    if data is None:
        return []
    if isinstance(data, str):
        return decode_text(data)
    if isinstance(data, (bytes, bytearray, memoryview)):
        return decode_text(bytes(data).decode("utf-8"))
    if hasattr(data, "read"):
        content = data.read()
        if inspect.isawaitable(content):
            content = await content
        if isinstance(content, str):
            return decode_text(content)
        return decode_text(bytes(content).decode("utf-8"))
    return [data]


# ---------------------------------------------------------------------------
# Shape interpretation
# ---------------------------------------------------------------------------


def _is_record(value: Any) -> bool:
    return isinstance(value, dict)


def _announced_type(value: Any) -> Optional[str]:
    if _is_record(value) and isinstance(value.get("type"), str):
        return value["type"].lower()
    return None


def _list_or_empty(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def extract_router_items(record: Any) -> List[Any]:
    """Pull router items out of an object with no announced shape."""
    if isinstance(record, list):
        return list(record)
    if not _is_record(record) or not record:
        return []

    for key in _ITEM_CONTAINERS:
        if isinstance(record.get(key), list):
            return list(record[key])
    for key in _SINGLE_ITEM_KEYS:
        if record.get(key):
            return [record[key]]

    nested = [value for value in record.values() if _is_record(value)]
    if nested and len(nested) == len(record):
        return nested

    return [record]


def _typed_full_items(value: dict) -> Optional[List[Any]]:
    data = value.get("data")
    if isinstance(data, list) and data:
        return list(data)
    if _is_record(data) and isinstance(data.get("routers"), list):
        return list(data["routers"])
    return None


def _nested_routers(value: dict) -> Optional[List[Any]]:
    data = value.get("data")
    if _is_record(data) and isinstance(data.get("routers"), list):
        return list(data["routers"])
    return None


def _extract_delta(value: dict) -> DeltaUpdate:
    routers = value.get("routers")
    if not _is_record(routers):
        routers = {}
    return DeltaUpdate(
        added=_list_or_empty(routers.get("added")),
        updated=_list_or_empty(routers.get("updated")),
        removed=_list_or_empty(routers.get("removed")),
    )


@dataclass(frozen=True)
class ShapeRule:
    """One entry of the classification table: first matching rule wins."""

    name: str
    matches: Callable[[Any], bool]
    extract: Callable[[Any], MonitoringUpdate]


SHAPE_RULES: Tuple[ShapeRule, ...] = (
    ShapeRule(
        "array",
        lambda value: isinstance(value, list),
        lambda value: FullSnapshot(list(value)),
    ),
    ShapeRule(
        "delta",
        lambda value: _announced_type(value) == "delta",
        _extract_delta,
    ),
    ShapeRule(
        "typed-full",
        lambda value: _announced_type(value) == "full" and _typed_full_items(value) is not None,
        lambda value: FullSnapshot(_typed_full_items(value)),
    ),
    ShapeRule(
        "routers",
        lambda value: _is_record(value) and isinstance(value.get("routers"), list),
        lambda value: FullSnapshot(list(value["routers"])),
    ),
    ShapeRule(
        "nested-routers",
        lambda value: _is_record(value) and _nested_routers(value) is not None,
        lambda value: FullSnapshot(_nested_routers(value)),
    ),
    ShapeRule(
        "fallback",
        _is_record,
        lambda value: FullSnapshot(extract_router_items(value)),
    ),
)


def classify_payload(value: Any) -> Optional[ShapeRule]:
    """Return the first rule matching ``value``."""
    for rule in SHAPE_RULES:
        if rule.matches(value):
            return rule
    return None


def interpret_payload(value: Any) -> Optional[MonitoringUpdate]:
    """Classify a decoded payload; None when it carries no router data."""
    rule = classify_payload(value)
    if rule is None:
        return None
    update = rule.extract(value)
    if update.is_empty():
        return None
    return update


def extract_router_identifiers(entries: List[Any]) -> List[str]:
    """Identifiers named by a delta's ``removed`` list, de-duplicated."""
    identifiers: List[str] = []
    for entry in entries:
        identifier = None
        if isinstance(entry, str):
            identifier = pick_string(entry)
        elif isinstance(entry, (int, float)):
            identifier = pick_identifier(entry)
        elif _is_record(entry):
            identifier = resolve(entry, ROUTER_FIELD_ALIASES["identifier"], pick_identifier)
            if identifier is None:
                identifier = pick_string(entry.get("router")) or pick_string(entry.get("name"))
        if identifier and identifier not in identifiers:
            identifiers.append(identifier)
    return identifiers
