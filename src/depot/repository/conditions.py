"""Compile find_where-style conditions into SQLAlchemy expressions.

Accepted shapes:

    {"status": "published"}                      # equality
    {"views": (">", 100)}                        # (operator, value)
    [("views", ">", 100), ("status", "draft")]   # (field, operator, value) / (field, value)
"""

from enum import Enum
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.sql.elements import ColumnElement

from ..errors import UnknownFieldError


class Operator(Enum):
    """Operators accepted in conditions"""
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    LIKE = "like"
    ILIKE = "ilike"
    NOT_LIKE = "not like"
    IN = "in"
    NOT_IN = "not in"
    BETWEEN = "between"
    IS_NULL = "null"
    IS_NOT_NULL = "not null"


_ALIASES = {
    "==": Operator.EQUALS,
    "<>": Operator.NOT_EQUALS,
    "not_in": Operator.NOT_IN,
    "not_like": Operator.NOT_LIKE,
    "is null": Operator.IS_NULL,
    "is not null": Operator.IS_NOT_NULL,
}

Conditions = Union[Mapping[str, Any], Iterable[Sequence[Any]]]


def parse_operator(operator: Union[str, Operator]) -> Operator:
    if isinstance(operator, Operator):
        return operator
    key = operator.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return Operator(key)
    except ValueError:
        raise ValueError(f"Unsupported operator: {operator!r}") from None


def column_for(model: type, field: str):
    """Mapped column attribute for field, or UnknownFieldError."""
    if field not in inspect(model).column_attrs:
        raise UnknownFieldError(model.__name__, field)
    return getattr(model, field)


def build_condition(model: type, field: str, operator: Union[str, Operator], value: Any = None) -> ColumnElement:
    column = column_for(model, field)
    op = parse_operator(operator)

    if op == Operator.EQUALS:
        return column.is_(None) if value is None else column == value
    elif op == Operator.NOT_EQUALS:
        return column.is_not(None) if value is None else column != value
    elif op == Operator.GREATER_THAN:
        return column > value
    elif op == Operator.GREATER_THAN_OR_EQUAL:
        return column >= value
    elif op == Operator.LESS_THAN:
        return column < value
    elif op == Operator.LESS_THAN_OR_EQUAL:
        return column <= value
    elif op == Operator.LIKE:
        return column.like(value)
    elif op == Operator.ILIKE:
        return column.ilike(value)
    elif op == Operator.NOT_LIKE:
        return column.not_like(value)
    elif op == Operator.IN:
        return column.in_(list(value))
    elif op == Operator.NOT_IN:
        return column.not_in(list(value))
    elif op == Operator.BETWEEN:
        low, high = _bounds(value)
        return column.between(low, high)
    elif op == Operator.IS_NULL:
        return column.is_(None)
    else:
        return column.is_not(None)


def _bounds(value: Any) -> Tuple[Any, Any]:
    bounds = list(value)
    if len(bounds) != 2:
        raise ValueError(f"between needs exactly two bounds, got {len(bounds)}")
    return bounds[0], bounds[1]


def compile_conditions(model: type, conditions: Conditions) -> List[ColumnElement]:
    """
    Turn conditions into a list of expressions (AND-ed by the caller).

    Args:
        model: Mapped model class the fields belong to
        conditions: Mapping or sequence of tuples (see module docstring)

    Returns:
        One expression per condition, in input order

    Raises:
        UnknownFieldError: If a field is not a column of model
        ValueError: If an operator or condition shape is not understood
    """
    expressions = []
    if isinstance(conditions, Mapping):
        for field, value in conditions.items():
            if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], (str, Operator)):
                expressions.append(build_condition(model, field, value[0], value[1]))
            else:
                expressions.append(build_condition(model, field, Operator.EQUALS, value))
        return expressions

    for condition in conditions:
        condition = tuple(condition)
        if len(condition) == 3:
            expressions.append(build_condition(model, *condition))
        elif len(condition) == 2:
            expressions.append(build_condition(model, condition[0], Operator.EQUALS, condition[1]))
        else:
            raise ValueError(f"Condition must be (field, value) or (field, operator, value): {condition!r}")
    return expressions
