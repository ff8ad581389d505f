"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from typing import Any, Iterable

from flask import Request
from werkzeug.exceptions import BadRequest


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON object body or raise a 400 error.

    ``required_keys`` must be present and truthy; strings are checked after
    stripping whitespace.
    """

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=False)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not clean_string(data.get(key), keep=True)]
        if missing:
            raise BadRequest(f"Missing required fields: {', '.join(sorted(missing))}.")

    return data


def clean_string(value: Any, *, keep: bool = False) -> str:
    """Strip a string field; anything else becomes ``""``.

    With ``keep`` other truthy values (numbers, lists) count as present
    and are returned as their ``str`` form.
    """

    if isinstance(value, str):
        return value.strip()
    if keep and value:
        return str(value)
    return ""


def parse_id_list(raw_ids: Any) -> list[int]:
    """Validate a JSON ``ids`` value as a non-empty list of integer ids."""

    if not isinstance(raw_ids, list) or not raw_ids:
        raise BadRequest("A non-empty list of ids is required.")
    try:
        return [int(value) for value in raw_ids]
    except (TypeError, ValueError):
        raise BadRequest("ids must be integers.") from None
