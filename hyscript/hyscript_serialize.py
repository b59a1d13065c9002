from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from hyscript.hyscript_errors import EvaluationError
from hyscript.hyscript_file import FileListValue, FileValue
from hyscript.hyscript_values import (
    BaseValue, BooleanValue, FunctionValue, ListValue, NullValue,
    NumberValue, StringListValue, StringValue, Value, unwrap,
)


# --------------------------
# Wire data
# --------------------------

def _charset(content_type: Optional[str]) -> Optional[str]:
    """The `charset` parameter of a Content-Type header, if any."""
    for param in (content_type or "").split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset":
            return value.strip().strip("\"'") or None
    return None


def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        try:
            return data.decode(encoding or 'utf-8', errors='replace')
        except LookupError:
            return data.decode('utf-8', errors='replace')
    return data


def deserialize(data: bytes | bytearray | str, *, content_type: Optional[str] = None) -> Any:
    """
    Decode a response body. YAML when the Content-Type says so, JSON otherwise.
    An empty body decodes to None.
    """
    text = _norm_text(data, encoding=_charset(content_type))
    if not text.strip():
        return None
    ct = (content_type or "").lower()
    try:
        if 'yaml' in ct:
            return yaml.safe_load(text)
        return json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise EvaluationError(f"Could not decode response body: {e}") from e


# --------------------------
# Native values <-> Values
# --------------------------

def to_value(native: Any) -> Value:
    """
    Convert plain Python data into a Value.
    Mappings are taken to be Hydrus file metadata records.
    """
    match native:
        case BaseValue():
            return native
        case None:
            return NullValue()
        case bool():
            return BooleanValue(native)
        case int() | float():
            return NumberValue(native)
        case str():
            return StringValue(native)
        case dict():
            return FileValue(native)
        case list() | tuple():
            items = list(native)
            if all(isinstance(x, str) for x in items):
                return StringListValue(items)
            if all(isinstance(x, dict) for x in items):
                return FileListValue(items)
            return ListValue([to_value(x) for x in items])
    raise TypeError(f"Cannot convert {type(native).__name__} to a hyscript value")


def from_value(value: Value) -> Any:
    """Convert a Value back into plain Python data."""
    value = unwrap(value)
    match value:
        case NumberValue():
            n = value.value
            if math.isfinite(n) and n.is_integer():
                return int(n)
            return n
        case ListValue():
            return [from_value(item) for item in value.value]
        case FunctionValue():
            raise TypeError("Cannot convert a Function to plain data")
    return value.raw()


def _is_file(text: str) -> bool:
    if '\n' in text:
        return False
    try:
        return Path(text).is_file()
    except OSError:
        # e.g. a one-line document longer than the platform path limit
        return False


def load_bindings(source: str | Path) -> Dict[str, Value]:
    """
    Load global bindings from a YAML (or JSON) document.
    `source` is a path to an existing file, or the document text itself.
    """
    text = str(source)
    if isinstance(source, Path) or _is_file(text):
        text = Path(text).read_text(encoding='utf-8')
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError("Bindings must be a mapping of names to values")
    return {str(k): to_value(v) for k, v in data.items()}


def dump_value(value: Value, fmt: str = 'json', pretty: bool = False) -> str:
    """Render a Value as JSON or YAML text."""
    built = from_value(value)
    f = (fmt or '').lower()
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "to_value",
    "from_value",
    "load_bindings",
    "dump_value",
]
