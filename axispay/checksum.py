"""
Bank checksum canonicalization and digest.

The bank recomputes an MD5 digest over every non-checksum field of a request
or response body and rejects the message when it disagrees. The digest input
is a flattening of the body that must match the bank's reference
implementation byte for byte:

- Fields are visited in insertion order; the top-level ``checksum`` field is
  skipped.
- Only values contribute. Keys of the body, of nested mappings and of list
  records never appear in the digest input.
- Lists of records, lists of scalars and nested mappings are flattened
  recursively, left to right.
- ``None`` contributes the empty string.
- Fragments are concatenated without separators and only the final string is
  stripped of surrounding whitespace.

Python dicts keep insertion order, so bodies parsed with ``json.loads`` or
dumped from pydantic models can be passed in directly.
"""

import math
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from .errors import ChecksumMismatchError
from .util import constant_time_compare, md5_hex

CHECKSUM_FIELD = "checksum"

Scalar = Union[str, int, float, Decimal, bool, None]
Value = Union[Scalar, List["Value"], Mapping[str, "Value"]]

_SCALAR_TYPES = (str, int, float, Decimal, bool)


class ValueKind(str, Enum):
    """The closed set of shapes a body value can take."""
    NULL = "null"
    SCALAR = "scalar"
    RECORDS = "records"
    LIST = "list"
    MAPPING = "mapping"


def classify(value: Any) -> ValueKind:
    """
    Classify a body value.

    A list is a list of records when its first element is a mapping; every
    other list (including the empty list) is a plain list.

    Raises:
        TypeError: for values outside the JSON data model
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, _SCALAR_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        if value and isinstance(value[0], Mapping):
            return ValueKind.RECORDS
        return ValueKind.LIST
    raise TypeError(f"Cannot canonicalize type: {type(value).__name__}")


def stringify(value: Scalar) -> str:
    """
    Render a scalar the way the bank's reference implementation does.

    Booleans are lowercase, integral floats drop the fraction, other numbers
    use plain positional notation. Never locale-formatted, never quoted.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("Non-finite numbers cannot be canonicalized")
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)), "f")
    if isinstance(value, Decimal):
        return format(value, "f")
    raise TypeError(f"Cannot stringify type: {type(value).__name__}")


def _append(value: Value, parts: List[str]) -> None:
    kind = classify(value)
    if kind is ValueKind.NULL:
        parts.append("")
    elif kind is ValueKind.SCALAR:
        parts.append(stringify(value))
    elif kind is ValueKind.MAPPING:
        for inner in value.values():
            _append(inner, parts)
    else:
        # Records and plain lists flatten the same way: element by element,
        # and for a record, its values in field order.
        for item in value:
            _append(item, parts)


def canonicalize(body: Mapping[str, Value]) -> str:
    """
    Flatten a body into the canonical string the checksum is computed over.

    Args:
        body: Ordered mapping of field name to value

    Returns:
        Concatenated, stripped string of all non-checksum values
    """
    if not isinstance(body, Mapping):
        raise TypeError("Checksum body must be a mapping")

    parts: List[str] = []
    for key, value in body.items():
        if key == CHECKSUM_FIELD:
            continue
        _append(value, parts)
    return "".join(parts).strip()


def digest(body: Mapping[str, Value]) -> str:
    """
    Compute the bank checksum of a body.

    Returns:
        Lowercase hex MD5 of the UTF-8 canonical string
    """
    return md5_hex(canonicalize(body))


def verify(body: Mapping[str, Value]) -> bool:
    """
    Check the checksum stored in a body against a recomputed one.

    The comparison is case-insensitive. A missing or empty stored checksum
    never verifies.
    """
    stored = body.get(CHECKSUM_FIELD) if isinstance(body, Mapping) else None
    if stored is None or stored == "":
        return False
    return constant_time_compare(digest(body), str(stored).lower())


def with_checksum(body: Mapping[str, Value]) -> Dict[str, Value]:
    """
    Return a copy of ``body`` with its checksum computed and set.

    An existing ``checksum`` field keeps its position; otherwise it is
    appended as the last field.
    """
    stamped = dict(body)
    stamped[CHECKSUM_FIELD] = digest(body)
    return stamped


def require_valid_checksum(body: Mapping[str, Value]) -> None:
    """
    Raise ChecksumMismatchError unless the body carries a valid checksum.
    """
    if not verify(body):
        raise ChecksumMismatchError("Body checksum does not match its contents")


# Names used by the bank integration guide
checksum = digest
verify_checksum = verify
