"""Payload codec for session data.

Session payloads are written as a small JSON document in which every value
carries its kind tag, so integers and floats, lists and tuples, and mappings
keyed by non-string scalars all come back as they went in::

    {"v": 1, "data": {"cart": ["l", [["i", 3], ["f", 2.5]]]}}

The format is private to this package and may change between versions; a
blob written by another version fails with ``DecodeError``.
"""

from __future__ import annotations

import json
import math
from typing import Any, Mapping

from .errors import DecodeError, EncodeError
from .models import SCALAR_KINDS, ValueKind

FORMAT_VERSION = 1

_TAGS = {kind.value: kind for kind in ValueKind}

# exact types only; subclasses such as str enums are rejected rather than flattened
_KINDS = {
    bool: ValueKind.BOOL,
    int: ValueKind.INT,
    float: ValueKind.FLOAT,
    str: ValueKind.STRING,
    list: ValueKind.LIST,
    tuple: ValueKind.TUPLE,
    dict: ValueKind.MAPPING,
}


def kind_of(value: Any) -> ValueKind:
    """Return the kind of ``value`` or raise ``EncodeError`` when unsupported."""
    kind = _KINDS.get(type(value))
    if kind is not None:
        return kind
    raise EncodeError(f"Unsupported session value type: {type(value).__name__}")


def encode(mapping: Mapping[str, Any]) -> bytes:
    """Serialise a session mapping to bytes."""
    if not isinstance(mapping, Mapping):
        raise EncodeError(f"Session data must be a mapping, got {type(mapping).__name__}")

    data: dict[str, list] = {}
    try:
        for key, value in mapping.items():
            if type(key) is not str:
                raise EncodeError(f"Session keys must be strings, got {type(key).__name__}")
            data[key] = _encode_value(value)
    except RecursionError:
        raise EncodeError("Session data is nested too deeply or contains a cycle") from None

    document = {"v": FORMAT_VERSION, "data": data}
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def decode(blob: bytes) -> dict[str, Any]:
    """Rebuild a session mapping from bytes produced by :func:`encode`.

    Either the whole mapping is returned or ``DecodeError`` is raised.
    """
    if not isinstance(blob, (bytes, bytearray, memoryview)):
        raise DecodeError(f"Expected bytes, got {type(blob).__name__}")
    try:
        document = json.loads(bytes(blob).decode("utf-8"), object_pairs_hook=_reject_duplicates)
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise DecodeError(f"Malformed session payload: {exc}") from exc

    if not isinstance(document, dict):
        raise DecodeError("Session payload is not a document")
    version = document.get("v")
    if version != FORMAT_VERSION or isinstance(version, bool):
        raise DecodeError(f"Unsupported session payload version: {version!r}")
    data = document.get("data")
    if not isinstance(data, dict):
        raise DecodeError("Session payload has no data mapping")

    try:
        return {key: _decode_value(node) for key, node in data.items()}
    except RecursionError:
        raise DecodeError("Session payload is nested too deeply") from None


def values_equal(left: Any, right: Any) -> bool:
    """Compare two session values, treating the kind as part of the value.

    ``values_equal(1, 1.0)`` is False and ``values_equal([1], (1,))`` is False,
    unlike ``==``. NaN compares equal to NaN.
    """
    try:
        kind = kind_of(left)
        if kind_of(right) is not kind:
            return False
    except EncodeError:
        return False

    if kind is ValueKind.FLOAT:
        return left == right or (math.isnan(left) and math.isnan(right))
    if kind in SCALAR_KINDS:
        return left == right
    if kind in (ValueKind.LIST, ValueKind.TUPLE):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))

    if len(left) != len(right):
        return False
    for key, value in left.items():
        match = next((other for other in right if other == key and values_equal(other, key)), _MISSING)
        if match is _MISSING or not values_equal(value, right[match]):
            return False
    return True


_MISSING = object()


def _encode_value(value: Any) -> list:
    kind = kind_of(value)
    if kind in SCALAR_KINDS:
        return [kind.value, value]
    if kind in (ValueKind.LIST, ValueKind.TUPLE):
        return [kind.value, [_encode_value(item) for item in value]]
    return [kind.value, [[_encode_key(key), _encode_value(item)] for key, item in value.items()]]


def _encode_key(key: Any) -> list:
    kind = kind_of(key)
    if kind is ValueKind.TUPLE:
        return [kind.value, [_encode_key(item) for item in key]]
    if kind not in SCALAR_KINDS:
        raise EncodeError(f"Mapping keys must be scalars or tuples of scalars, got {type(key).__name__}")
    return _encode_value(key)


def _decode_value(node: Any) -> Any:
    kind, payload = _split(node)
    if kind is ValueKind.BOOL:
        if not isinstance(payload, bool):
            raise DecodeError("Boolean value has a non-boolean payload")
        return payload
    if kind is ValueKind.INT:
        if isinstance(payload, bool) or not isinstance(payload, int):
            raise DecodeError("Integer value has a non-integer payload")
        return payload
    if kind is ValueKind.FLOAT:
        if isinstance(payload, bool) or not isinstance(payload, (int, float)):
            raise DecodeError("Float value has a non-numeric payload")
        return float(payload)
    if kind is ValueKind.STRING:
        if not isinstance(payload, str):
            raise DecodeError("String value has a non-string payload")
        return payload

    if not isinstance(payload, list):
        raise DecodeError(f"Container value {kind.name} has a non-list payload")
    if kind is ValueKind.LIST:
        return [_decode_value(item) for item in payload]
    if kind is ValueKind.TUPLE:
        return tuple(_decode_value(item) for item in payload)

    result: dict[Any, Any] = {}
    for pair in payload:
        if not isinstance(pair, list) or len(pair) != 2:
            raise DecodeError("Mapping entry is not a key/value pair")
        key = _decode_key(pair[0])
        if key in result:
            raise DecodeError(f"Mapping contains duplicate key {key!r}")
        result[key] = _decode_value(pair[1])
    return result


def _decode_key(node: Any) -> Any:
    kind, payload = _split(node)
    if kind is ValueKind.TUPLE:
        if not isinstance(payload, list):
            raise DecodeError("Tuple key has a non-list payload")
        return tuple(_decode_key(item) for item in payload)
    if kind not in SCALAR_KINDS:
        raise DecodeError(f"Mapping key of kind {kind.name} is not hashable")
    return _decode_value(node)


def _split(node: Any) -> tuple[ValueKind, Any]:
    if not isinstance(node, list) or len(node) != 2 or not isinstance(node[0], str):
        raise DecodeError("Value is not a [tag, payload] pair")
    kind = _TAGS.get(node[0])
    if kind is None:
        raise DecodeError(f"Unknown value tag {node[0]!r}")
    return kind, node[1]


def _reject_duplicates(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    document: dict[str, Any] = {}
    for key, value in pairs:
        if key in document:
            raise ValueError(f"duplicate key {key!r}")
        document[key] = value
    return document
