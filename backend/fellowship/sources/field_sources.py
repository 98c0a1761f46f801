from __future__ import annotations

import json
from typing import Any, Mapping

from fellowship.aliases import is_known_key
from fellowship.sources.base import SourceProbe


def coerce_mapping(value: object, label: str) -> tuple[Mapping[str, Any] | None, str | None, bool]:
    """Return ``(mapping, warning, decoded_from_json)`` for a stored value.

    Strings are decoded as JSON exactly once. A decode failure is reported as a
    warning and treated as "not found".
    """
    if isinstance(value, Mapping):
        return value, None, False
    if not isinstance(value, str) or not value.strip():
        return None, None, False

    try:
        decoded = json.loads(value)
    except json.JSONDecodeError as exc:
        return None, f"MalformedAnswerSource: {label} is not valid JSON ({exc.msg})", False
    if not isinstance(decoded, dict):
        return None, f"MalformedAnswerSource: {label} decoded to {type(decoded).__name__}, expected an object", False
    return decoded, None, True


class FieldAnswerSource:
    def __init__(self, *path: str) -> None:
        if not path:
            raise ValueError("FieldAnswerSource needs at least one path segment")
        self.path = path
        self.source_id = ".".join(path)

    def find(self, record: Mapping[str, Any]) -> SourceProbe:
        current: object = record
        decoded_any = False
        for depth, segment in enumerate(self.path):
            if depth > 0:
                label = ".".join(self.path[:depth])
                mapping, warning, decoded = coerce_mapping(current, label)
                if mapping is None:
                    return SourceProbe(source_id=self.source_id, data=None, warning=warning)
                decoded_any = decoded_any or decoded
                current = mapping
            current = current.get(segment) if isinstance(current, Mapping) else None
            if current is None:
                return SourceProbe(source_id=self.source_id, data=None)

        mapping, warning, decoded = coerce_mapping(current, self.source_id)
        if not mapping:
            return SourceProbe(source_id=self.source_id, data=None, warning=warning)
        source_id = f"{self.source_id} (json)" if decoded or decoded_any else self.source_id
        return SourceProbe(source_id=source_id, data=mapping)


class RecordAnswerSource:
    """Answers promoted directly onto the record; only used as a last resort."""

    source_id = "record"

    def find(self, record: Mapping[str, Any]) -> SourceProbe:
        if any(is_known_key(key) for key in record.keys()):
            return SourceProbe(source_id=self.source_id, data=record)
        return SourceProbe(source_id=self.source_id, data=None)
