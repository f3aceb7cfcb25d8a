"""
Helpers for reading JSON request bodies

Clients may send either camelCase (``homeScore``) or snake_case (``home_score``)
keys; both spellings resolve to the same parameter.
"""

from flask import request


def to_camel_case(name):
    """home_score -> homeScore"""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def get_json_body():
    """Request body as a dict (empty for missing or non-object bodies)"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def has_param(data, name):
    """Whether the body carries name in either spelling"""
    return name in data or to_camel_case(name) in data


def get_param(data, name, default=None):
    """Fetch name from data, preferring the camelCase spelling"""
    camel = to_camel_case(name)
    if camel in data:
        return data[camel]
    return data.get(name, default)


def parse_bool(value):
    """Interpret JSON/form style booleans ("true", "1", 1, True)"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return False
