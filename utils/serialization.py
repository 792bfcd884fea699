"""Key-case conversion and value cleanup shared by the JSON blueprints."""
import re
from datetime import datetime, date


def snake_to_camel(s: str) -> str:
    parts = s.split('_')
    return parts[0] + ''.join(p.title() for p in parts[1:]) if parts else s


def camel_to_snake(name: str) -> str:
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', name)
    return re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1).lower()


def json_value(value):
    """Return a JSON-friendly representation of a column value."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def camelize(d: dict) -> dict:
    """Return a shallow copy of d with keys converted to camelCase and dates as ISO strings."""
    return {snake_to_camel(k): json_value(v) for k, v in d.items()}


def strip_null_bytes(value):
    """Remove NUL characters from strings, recursing into lists and dicts.

    PostgreSQL rejects text containing 0x00, and pasted rich text occasionally
    carries them.
    """
    if isinstance(value, str):
        return value.replace('\x00', '')
    if isinstance(value, list):
        return [strip_null_bytes(v) for v in value]
    if isinstance(value, dict):
        return {k: strip_null_bytes(v) for k, v in value.items()}
    return value


def normalize_input(payload) -> dict:
    """Normalize incoming JSON keys to snake_case and strip NUL bytes from values."""
    if not payload or not isinstance(payload, dict):
        return {}
    out = {}
    for k, v in payload.items():
        nk = camel_to_snake(k) if any(c.isupper() for c in k) else k
        out[nk] = strip_null_bytes(v)
    return out
