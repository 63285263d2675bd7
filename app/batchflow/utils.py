from __future__ import annotations

from datetime import datetime, timezone

from flask import request

from app.batchflow.errors import ValidationError, field_error


def parse_datetime(raw: object) -> datetime | None:
    """
    Parse an ISO-8601 timestamp (date-only and trailing "Z" accepted).
    Aware values are normalized to naive UTC, matching the DB columns.
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError("must be an ISO-8601 string")
    value = raw.strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def require_int(payload: dict, key: str, errors: list[dict[str, str]], *, minimum: int | None = None) -> int | None:
    """Read a required integer field, appending a field error when invalid."""
    raw = payload.get(key)
    if raw is None or raw == "":
        errors.append(field_error(key, "Required"))
        return None
    return optional_int(payload, key, errors, minimum=minimum)


def optional_int(payload: dict, key: str, errors: list[dict[str, str]], *, minimum: int | None = None) -> int | None:
    raw = payload.get(key)
    if raw is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(raw, bool):
        errors.append(field_error(key, "Expected an integer"))
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        errors.append(field_error(key, "Expected an integer"))
        return None
    if isinstance(raw, float) and raw != value:
        errors.append(field_error(key, "Expected an integer"))
        return None
    if minimum is not None and value < minimum:
        errors.append(field_error(key, f"Must be at least {minimum}"))
        return None
    return value


def optional_text(payload: dict, key: str, errors: list[dict[str, str]]) -> str | None:
    raw = payload.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        errors.append(field_error(key, "Expected a string"))
        return None
    return raw.strip() or None


def require_text(payload: dict, key: str, errors: list[dict[str, str]]) -> str | None:
    value = optional_text(payload, key, errors)
    if value is None and not any(e["field"] == key for e in errors):
        errors.append(field_error(key, "Required"))
    return value


def optional_datetime(payload: dict, key: str, errors: list[dict[str, str]]) -> datetime | None:
    try:
        return parse_datetime(payload.get(key))
    except ValueError:
        errors.append(field_error(key, "Expected an ISO-8601 date/time"))
        return None


def parse_bool_arg(raw: str | None) -> bool:
    """Query-string flag (?includeRelations=true)."""
    return (raw or "").strip().lower() in ("1", "true", "yes")


def json_body() -> dict:
    """The request's JSON object body; anything else is a validation error."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload
