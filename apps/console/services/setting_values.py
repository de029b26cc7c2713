"""Parsing of stored setting values.

Rows in ``system_settings`` carry values written by several generations of
the console, so a single key may hold any of these shapes:

* a bare scalar: ``"4000"``, ``4000``, ``True``;
* a wrapper object ``{"value": <scalar>}``;
* an object keyed by the setting name ``{"pricing_vat_rate": <scalar>}``.

Anything else (lists, nested objects, ``None``) is treated as absent. The
``parse_*`` helpers never raise: unusable input logs a warning and yields the
caller's fallback.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any, Union

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool]

_TRUE_VALUES = (True, "true", "1", 1)
_FALSE_VALUES = (False, "false", "0", 0)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def extract_primitive(value: Any, key: str) -> Scalar | None:
    """Unwrap one of the accepted wire shapes into a scalar, or None."""
    if value is None:
        return None
    if _is_scalar(value):
        return value
    if isinstance(value, dict):
        if "value" in value and _is_scalar(value["value"]):
            return value["value"]
        if key in value and _is_scalar(value[key]):
            return value[key]
    return None


def to_number(raw: Any) -> int | float | None:
    """Numeric reading of a scalar; integral values come back as int."""
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        number = float(raw)
    elif isinstance(raw, str):
        try:
            number = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def parse_number_setting(value: Any, key: str, fallback: float) -> int | float:
    raw = extract_primitive(value, key)
    if raw is None or raw == "":
        return fallback
    number = to_number(raw)
    if number is None:
        logger.warning("Invalid numeric value for %s, using default", key)
        return fallback
    return number


def parse_int_setting(value: Any, key: str, fallback: int) -> int:
    raw = extract_primitive(value, key)
    if raw is None or raw == "":
        return fallback
    number = to_number(raw)
    if not isinstance(number, int):
        logger.warning("Invalid integer value for %s, using default", key)
        return fallback
    return number


def parse_boolean_setting(value: Any, key: str, fallback: bool) -> bool:
    raw = extract_primitive(value, key)
    if raw is None or raw == "":
        return fallback
    if isinstance(raw, str):
        raw = raw.strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    logger.warning("Invalid boolean value for %s, using default", key)
    return fallback


def parse_text_setting(value: Any, key: str, fallback: str) -> str:
    raw = extract_primitive(value, key)
    if raw is None or isinstance(raw, bool):
        return fallback
    return str(raw)


def parse_json_setting(value: Any, key: str) -> Any:
    """Decode a JSON-valued setting. Already decoded objects pass through."""
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        # wrapper objects around a JSON string
        raw = extract_primitive(value, key)
        if not isinstance(raw, str):
            return value
        value = raw
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Invalid JSON value for %s, ignoring", key)
        return None
