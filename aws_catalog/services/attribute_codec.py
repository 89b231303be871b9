"""
Typed value codec for comparison attributes.

Attribute values are stored as JSON text in service_attribute_values.value.
The attribute's data_type decides how a raw request value is validated and
coerced before storage, and how the stored text is read back:

- TEXT: any value, coerced to its string form ("" is legal)
- NUMBER: finite decimal number, stored and decoded as float
- BOOLEAN: strict parsing of true/false, 1/0, yes/no, on/off
- URL: absolute URL with scheme and host, stored verbatim

BOOLEAN parsing is strict: the string "false" is False, and anything that is
not a recognised boolean spelling is rejected.
"""
import json
import math
import re
from enum import Enum
from typing import Any, List, Union
from urllib.parse import urlsplit

from aws_catalog.errors import InvalidValueFormatError, ValidationError

TypedValue = Union[str, float, bool]

# Optional sign, digits with optional fraction (or bare fraction), optional exponent
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


class DataType(str, Enum):
    """Declared data type of a comparison attribute."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    URL = "URL"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


def parse_data_type(value: Any) -> DataType:
    """
    Resolve a data type name to a DataType.

    Args:
        value: Data type name as sent by the client (exact, upper-case)

    Returns:
        Matching DataType

    Raises:
        ValidationError: INVALID_DATA_TYPE if value is not one of the enumerated names
    """
    if isinstance(value, str) and value in DataType.values():
        return DataType(value)
    raise ValidationError(
        message="無効なデータ型です。",
        details={"validTypes": DataType.values(), "provided": value},
        code="INVALID_DATA_TYPE",
    )


def to_text(value: Any) -> str:
    """
    Convert a value to the string form used for display and TEXT storage.

    Examples:
        >>> to_text(True)
        'true'
        >>> to_text(3.0)
        '3'
        >>> to_text(2.5)
        '2.5'
        >>> to_text(None)
        ''
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def parse_number(raw: Any) -> float:
    """Parse a raw value as a finite number; raise InvalidValueFormatError otherwise."""
    if isinstance(raw, bool):
        raise InvalidValueFormatError(DataType.NUMBER.value, raw)

    try:
        if isinstance(raw, (int, float)):
            number = float(raw)
        elif isinstance(raw, str) and _DECIMAL_PATTERN.fullmatch(raw.strip()):
            number = float(raw.strip())
        else:
            raise InvalidValueFormatError(DataType.NUMBER.value, raw)
    except OverflowError:
        # Integers beyond the float range
        raise InvalidValueFormatError(DataType.NUMBER.value, raw)

    if not math.isfinite(number):
        raise InvalidValueFormatError(DataType.NUMBER.value, raw)
    return number


def parse_boolean(raw: Any) -> bool:
    """Parse a raw value as a boolean; raise InvalidValueFormatError otherwise."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in TRUE_STRINGS:
            return True
        if normalized in FALSE_STRINGS:
            return False
    raise InvalidValueFormatError(DataType.BOOLEAN.value, raw)


def parse_url(raw: Any) -> str:
    """Validate an absolute URL (scheme + host); raise InvalidValueFormatError otherwise."""
    if not isinstance(raw, str) or raw != raw.strip() or not raw:
        raise InvalidValueFormatError(DataType.URL.value, raw)
    try:
        parts = urlsplit(raw)
        # Accessing hostname validates bracketed IPv6 literals
        hostname = parts.hostname
    except ValueError:
        raise InvalidValueFormatError(DataType.URL.value, raw)
    if not parts.scheme or not parts.netloc or not hostname:
        raise InvalidValueFormatError(DataType.URL.value, raw)
    return raw


def coerce_value(data_type: Union[DataType, str], raw: Any) -> TypedValue:
    """
    Validate and coerce a raw value for the given data type.

    Args:
        data_type: Declared data type of the attribute
        raw: Raw value from the request body

    Returns:
        Typed Python value (str, float or bool)

    Raises:
        InvalidValueFormatError: If raw does not fit data_type
    """
    data_type = DataType(data_type)
    if data_type is DataType.NUMBER:
        return parse_number(raw)
    if data_type is DataType.BOOLEAN:
        return parse_boolean(raw)
    if data_type is DataType.URL:
        return parse_url(raw)
    return to_text(raw)


def encode_value(data_type: Union[DataType, str], raw: Any) -> str:
    """
    Encode a raw value into the stored JSON text for the given data type.

    Examples:
        >>> encode_value("NUMBER", "42")
        '42.0'
        >>> encode_value("BOOLEAN", "false")
        'false'
        >>> encode_value("TEXT", "従量課金")
        '"従量課金"'
    """
    return json.dumps(coerce_value(data_type, raw), ensure_ascii=False)


def decode_value(data_type: Union[DataType, str], stored: str) -> Any:
    """
    Decode stored JSON text back into a typed value.

    Text that is not valid JSON is returned unchanged.
    """
    try:
        value = json.loads(stored)
    except (TypeError, ValueError):
        return stored

    if DataType(data_type) is DataType.NUMBER and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value
