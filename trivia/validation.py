# trivia/validation.py
from __future__ import annotations

from typing import Any, Dict, Iterable

from flask import request

from trivia.errors import ValidationError

MAX_TEXT_CHARS = 500


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        if request.data:
            raise ValidationError("Invalid JSON.")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Payload must be a JSON object.")
    return data


def require_str(data: Dict[str, Any], name: str, *, required: bool = True,
                max_chars: int = MAX_TEXT_CHARS, options: Iterable[str] | None = None,
                default: str | None = None) -> str | None:
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return default
        if required:
            raise ValidationError(f'"{name}" is required.')
        return None
    if not isinstance(value, str):
        raise ValidationError(f'"{name}" must be a string.')
    value = value.strip()
    if max_chars and len(value) > max_chars:
        raise ValidationError(f'"{name}" is too long (limit {max_chars} characters).')
    if options is not None:
        allowed = list(options)
        if value not in allowed:
            raise ValidationError(f'"{name}" must be one of: {", ".join(str(o) for o in allowed)}.')
    return value


def require_int(data: Dict[str, Any], name: str, *, required: bool = True,
                minimum: int | None = None, maximum: int | None = None,
                default: int | None = None) -> int | None:
    value = data.get(name)
    if value is None or value == "":
        if default is not None:
            return default
        if required:
            raise ValidationError(f'"{name}" is required.')
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(f'"{name}" must be an integer.')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'"{name}" must be an integer.')
    if isinstance(value, float) and number != value:
        raise ValidationError(f'"{name}" must be an integer.')
    if minimum is not None and number < minimum:
        raise ValidationError(f'"{name}" must be at least {minimum}.')
    if maximum is not None and number > maximum:
        raise ValidationError(f'"{name}" must be at most {maximum}.')
    return number


def response_text(data: Dict[str, Any], name: str = "response") -> str:
    """A user's answer. Empty strings are allowed (and simply wrong)."""
    value = data.get(name, "")
    if value is None:
        value = ""
    if isinstance(value, bool):
        value = "true" if value else "false"
    if not isinstance(value, (str, int, float)):
        raise ValidationError(f'"{name}" must be a string.')
    value = str(value)
    if len(value) > MAX_TEXT_CHARS:
        raise ValidationError(f'"{name}" is too long (limit {MAX_TEXT_CHARS} characters).')
    return value
