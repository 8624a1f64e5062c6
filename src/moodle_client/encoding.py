"""
Encoding of web service function arguments.

Moodle reads its arguments through PHP's request parsing, so nested
structures have to be flattened into bracketed keys:

    {"a": [0, "b", 2]}                ->  a[0]=0&a[1]=b&a[2]=2
    {"c": [{"x": 1, "y": 2}]}          ->  c[0][x]=1&c[0][y]=2

The same flattening is used for GET query strings and POST form bodies.
"""

from typing import Any, List, Mapping, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel

from moodle_client.exceptions import ConfigurationError

Pairs = List[Tuple[str, str]]


def encode_scalar(value: Any) -> str:
    """Convert a leaf value to its wire representation."""
    if value is None:
        return ""
    # bool before int: PARAM_BOOL expects 1/0
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigurationError(f"Argument bytes are not valid UTF-8: {e}") from e
    return str(value)


def _flatten(prefix: str, value: Any, pairs: Pairs) -> None:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)

    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, pairs)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten(f"{prefix}[{index}]", item, pairs)
    else:
        pairs.append((prefix, encode_scalar(value)))


def flatten_params(params: Mapping[str, Any]) -> Pairs:
    """
    Flatten a mapping of arguments into ordered (key, value) pairs.

    Args:
        params: Top-level argument mapping. Values may be scalars, lists,
            tuples, mappings or pydantic models, nested to any depth.

    Returns:
        List of (key, value) string pairs in insertion order.
    """
    pairs: Pairs = []
    for key, value in params.items():
        _flatten(str(key), value, pairs)
    return pairs


def urlencode_params(params: Mapping[str, Any]) -> str:
    """Flatten params and encode them as application/x-www-form-urlencoded."""
    return urlencode(flatten_params(params))
