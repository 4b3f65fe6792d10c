"""
Value model for frontmatter and templates

Values are plain Python data with fixed meanings:

    int    Int64 (arithmetic wraps to 64 bits)
    float  Float64
    str    String
    bool   Bool (never treated as a number)
    None   Nil
    list   List
    dict   Map with str keys
    other  Opaque host object (HostObject capability)

Arithmetic, comparison, equality and truthiness are matched on those
kinds explicitly; any combination not listed is an EvalError.
"""

import html
import json
from typing import Any, Callable, Dict

from ..models.host import HostObject
from .errors import EvalError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def kind_get(value: Any) -> str:
    """
    Classify a value

    Returns:
        One of "bool", "int", "float", "string", "nil", "list", "map", "opaque"
    """
    # bool first: bool is an int subclass
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "nil"
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "map"
    return "opaque"


def typeName_get(value: Any) -> str:
    kind = kind_get(value)
    if kind == "opaque":
        return type(value).__name__
    return kind


def int64_wrap(value: int) -> int:
    """Wrap an arbitrary-precision int to signed 64-bit"""
    value &= 0xFFFFFFFFFFFFFFFF
    if value > INT64_MAX:
        value -= 2**64
    return value


def int_divide(left: int, right: int) -> int:
    """Integer division truncating toward zero"""
    quotient = abs(left) // abs(right)
    if (left < 0) != (right < 0):
        quotient = -quotient
    return int64_wrap(quotient)


def _numeric_pair(left: Any, right: Any) -> str:
    """Return "int" or "float" when both operands share that kind, else ""."""
    left_kind, right_kind = kind_get(left), kind_get(right)
    if left_kind == right_kind and left_kind in ("int", "float"):
        return left_kind
    return ""


def _invalid(op: str, left: Any, right: Any) -> EvalError:
    return EvalError(
        f"invalid operands for {op}: {typeName_get(left)} and {typeName_get(right)}"
    )


def value_add(left: Any, right: Any) -> Any:
    pair = _numeric_pair(left, right)
    if pair == "int":
        return int64_wrap(left + right)
    if pair == "float":
        return left + right
    if kind_get(left) == "string" and kind_get(right) == "string":
        return left + right
    raise _invalid("+", left, right)


def value_sub(left: Any, right: Any) -> Any:
    pair = _numeric_pair(left, right)
    if pair == "int":
        return int64_wrap(left - right)
    if pair == "float":
        return left - right
    raise _invalid("-", left, right)


def value_mul(left: Any, right: Any) -> Any:
    pair = _numeric_pair(left, right)
    if pair == "int":
        return int64_wrap(left * right)
    if pair == "float":
        return left * right
    raise _invalid("*", left, right)


def value_div(left: Any, right: Any) -> Any:
    pair = _numeric_pair(left, right)
    if pair and right == 0:
        raise EvalError("division by zero")
    if pair == "int":
        return int_divide(left, right)
    if pair == "float":
        return left / right
    raise _invalid("/", left, right)


def _ordering(op: str, compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def apply(left: Any, right: Any) -> bool:
        if not _numeric_pair(left, right):
            raise _invalid(op, left, right)
        return compare(left, right)

    return apply


def values_equal(left: Any, right: Any) -> bool:
    """
    Structural equality

    Nil equals only Nil; otherwise kinds must match and lists/maps are
    compared element by element. 1 and 1.0 are different values, as are
    true and 1.
    """
    left_kind, right_kind = kind_get(left), kind_get(right)
    if left_kind == "nil" or right_kind == "nil":
        return left_kind == right_kind
    if left_kind != right_kind:
        return False
    if left_kind == "list":
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if left_kind == "map":
        return left.keys() == right.keys() and all(
            values_equal(left[key], right[key]) for key in left
        )
    if left_kind == "opaque":
        return left is right or left == right
    return left == right


def logical_and(left: Any, right: Any) -> bool:
    # Non-bool operands yield false rather than an error
    if kind_get(left) == "bool" and kind_get(right) == "bool":
        return left and right
    return False


def logical_or(left: Any, right: Any) -> bool:
    if kind_get(left) == "bool" and kind_get(right) == "bool":
        return left or right
    return False


BINARY_OPERATIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "+": value_add,
    "-": value_sub,
    "*": value_mul,
    "/": value_div,
    "==": values_equal,
    "!=": lambda left, right: not values_equal(left, right),
    "<": _ordering("<", lambda a, b: a < b),
    "<=": _ordering("<=", lambda a, b: a <= b),
    ">": _ordering(">", lambda a, b: a > b),
    ">=": _ordering(">=", lambda a, b: a >= b),
    "&&": logical_and,
    "||": logical_or,
}


def binary_apply(op: str, left: Any, right: Any) -> Any:
    """
    Apply a binary operator to two evaluated operands

    Raises:
        EvalError: Unsupported operator, operand kind mismatch, division by zero
    """
    operation = BINARY_OPERATIONS.get(op)
    if operation is None:
        raise EvalError(f"unsupported binary operator: {op}")
    return operation(left, right)


def unary_apply(op: str, operand: Any) -> Any:
    kind = kind_get(operand)
    if op == "-" and kind == "int":
        return int64_wrap(-operand)
    if op == "-" and kind == "float":
        return -operand
    if op == "!" and kind == "bool":
        return not operand
    raise EvalError(f"unsupported unary operator {op} for {typeName_get(operand)}")


def value_truthy(value: Any) -> bool:
    """
    Truthiness used by the `if` directive for bound values

    Bool as-is, numbers non-zero, strings/lists non-empty, Nil false,
    everything else (maps, host objects) true.
    """
    kind = kind_get(value)
    if kind == "bool":
        return value
    if kind in ("int", "float"):
        return value != 0
    if kind in ("string", "list"):
        return len(value) > 0
    if kind == "nil":
        return False
    return True


def value_format(value: Any, escape: bool = False) -> str:
    """
    Render a value as template text

    Example:
        >>> value_format(True), value_format(3.0), value_format(["a", 1])
        ('true', '3', 'a, 1')
    """
    kind = kind_get(value)
    if kind == "bool":
        text = "true" if value else "false"
    elif kind == "nil":
        text = ""
    elif kind == "float":
        text = repr(value)
        if text.endswith(".0"):
            text = text[:-2]
    elif kind == "list":
        text = ", ".join(value_format(item) for item in value)
    elif kind == "map":
        text = json.dumps(value, default=str)
    else:
        text = str(value)
    if escape:
        text = html.escape(text)
    return text


def value_normalize(value: Any) -> Any:
    """
    Convert a host-supplied value into the value model

    Tuples and sets become lists, dict keys must be strings. HostObjects
    and other opaque objects pass through unchanged.

    Raises:
        EvalError: For maps with non-string keys
    """
    if isinstance(value, (tuple, set, frozenset)):
        return [value_normalize(item) for item in value]
    if isinstance(value, list):
        return [value_normalize(item) for item in value]
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise EvalError(f"map keys must be strings, got {typeName_get(key)}")
            result[key] = value_normalize(item)
        return result
    if isinstance(value, int) and not isinstance(value, bool):
        return int64_wrap(value)
    return value


def field_select(target: Any, name: str) -> Any:
    """
    Evaluate target.name

    Maps yield the key's value (Nil when missing); host objects go through
    their field_get capability.

    Raises:
        EvalError: For other kinds or unknown host fields
    """
    kind = kind_get(target)
    if kind == "map":
        return target.get(name)
    if isinstance(target, HostObject):
        try:
            return value_normalize(target.field_get(name))
        except (AttributeError, TypeError) as exc:
            raise EvalError(f"cannot select field {name} from {typeName_get(target)}: {exc}") from exc
    raise EvalError(f"cannot select field {name} from type {typeName_get(target)}")
