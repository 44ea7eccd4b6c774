import datetime
import enum
import math
import numbers
import re
import types
import typing


class _Missing:
    """Marks a key or index that does not exist (distinct from ``None``)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING: typing.Any = _Missing()


class ValueType(str, enum.Enum):
    UNDEFINED = "undefined"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    FUNCTION = "function"
    NULL = "null"
    ARRAY = "array"
    DATE = "date"
    REGEXP = "regexp"
    MATH = "math"
    OBJECT = "object"


_FUNCTION_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
)

# Classifications the differencer descends into.
CONTAINER_TYPES = frozenset({ValueType.ARRAY, ValueType.OBJECT})


def classify(value: typing.Any) -> ValueType:
    """
    Return the extended type of `value`.

    Order matters: bool is tested before numbers since ``True == 1``,
    and datetimes are tested before the generic object fallback.
    Tuples are not arrays: patches only write into lists, so a tuple is
    compared whole.
    Total over all inputs; never raises.
    """
    if value is MISSING:
        return ValueType.UNDEFINED
    if value is None:
        return ValueType.NULL
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, numbers.Number):
        return ValueType.NUMBER
    if isinstance(value, (str, bytes)):
        return ValueType.STRING
    if isinstance(value, _FUNCTION_TYPES):
        return ValueType.FUNCTION
    if isinstance(value, list):
        return ValueType.ARRAY
    if isinstance(value, datetime.datetime):
        return ValueType.DATE
    if isinstance(value, re.Pattern):
        return ValueType.REGEXP
    if value is math:
        return ValueType.MATH
    return ValueType.OBJECT


def is_nan(value: typing.Any) -> bool:
    if not isinstance(value, numbers.Number) or isinstance(value, bool):
        return False
    try:
        return bool(value != value)
    except ArithmeticError:
        # Signaling decimal NaNs refuse to compare.
        return True


def pattern_text(pattern: re.Pattern) -> str:
    """Canonical ``/source/flags`` form; two patterns are equal when it matches."""
    return f"/{pattern.pattern}/{pattern.flags}"
