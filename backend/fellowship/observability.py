from __future__ import annotations

from contextvars import ContextVar, Token
from datetime import datetime, timezone
import json
import logging
import re
from typing import Any, Mapping
from uuid import uuid4


REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="-")
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
HANDLER_NAME = "fellowship-json"

# Application records carry applicant demographics; none of it belongs in logs.
SENSITIVE_KEY_NAMES = frozenset(
    {
        "authorization",
        "cookie",
        "set_cookie",
        "password",
        "email",
        "phone",
        "phone_number",
        "phonenumber",
        "dob",
        "dateofbirth",
        "full_name",
        "fullname",
        "first_name",
        "last_name",
        "pin_code",
        "pincode",
    }
)
SENSITIVE_KEY_FRAGMENTS = ("secret", "token", "api_key", "birth", "address")

# Order matters: dates are masked before the looser phone pattern sees their digits.
_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*"), "Bearer [REDACTED]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[REDACTED_EMAIL]"),
    (re.compile(r"\b(?:19|20)\d{2}-\d{2}-\d{2}\b"), "[REDACTED_DATE]"),
    (re.compile(r"(?<!\w)\+?\d[\d\s().-]{7,}\d\b"), "[REDACTED_PHONE]"),
)

# Every attribute a bare LogRecord has is bookkeeping; anything else came from ``extra=``.
_RESERVED_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def normalize_request_id(candidate: str | None) -> str:
    trimmed = (candidate or "").strip()
    if REQUEST_ID_PATTERN.fullmatch(trimmed):
        return trimmed
    return str(uuid4())


def set_request_id(request_id: str) -> Token[str]:
    return REQUEST_ID_CONTEXT.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    REQUEST_ID_CONTEXT.reset(token)


def get_request_id() -> str:
    return REQUEST_ID_CONTEXT.get()


def is_sensitive_key(key: str) -> bool:
    normalized = key.strip().lower().replace("-", "_")
    if normalized in SENSITIVE_KEY_NAMES:
        return True
    return any(fragment in normalized for fragment in SENSITIVE_KEY_FRAGMENTS)


def redact_text(value: str, *, max_length: int = 240) -> str:
    for pattern, replacement in _REDACTIONS:
        value = pattern.sub(replacement, value)
    if len(value) > max_length:
        return f"{value[:max_length]}...[truncated]"
    return value


def sanitize_for_logging(value: Any, *, max_string_length: int = 240) -> Any:
    """Return a log-safe copy of ``value``.

    Values under sensitive keys are replaced wholesale, free text is scrubbed
    of emails, dates and phone numbers, and bytes are reduced to their length.
    """
    if isinstance(value, Mapping):
        return {
            str(key): "[REDACTED]"
            if is_sensitive_key(str(key))
            else sanitize_for_logging(item, max_string_length=max_string_length)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        cleaned = [sanitize_for_logging(item, max_string_length=max_string_length) for item in value]
        return cleaned if isinstance(value, list) else tuple(cleaned)
    if isinstance(value, bytes):
        return f"[{len(value)} bytes]"
    if isinstance(value, str):
        return redact_text(value, max_length=max_string_length)
    return value


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", get_request_id()),
        }
        extras = {key: value for key, value in vars(record).items() if key not in _RESERVED_RECORD_ATTRS}
        payload.update(sanitize_for_logging(extras))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level_name: str) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    if any(handler.get_name() == HANDLER_NAME for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
