from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Query

from ..contracts.criteria import Criterion
from ..repository.conditions import build_condition, column_for


@dataclass(frozen=True)
class WhereCriterion(Criterion):
    """Filter by one condition, e.g. WhereCriterion("status", "=", "published")."""
    field: str
    operator: str = "="
    value: Any = None

    def apply(self, query: Query, repository) -> Query:
        return query.filter(build_condition(repository.get_model(), self.field, self.operator, self.value))


@dataclass(frozen=True)
class OrderByCriterion(Criterion):
    column: str
    direction: str = "asc"

    def __post_init__(self):
        if self.direction.lower() not in ("asc", "desc"):
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got {self.direction!r}")

    def apply(self, query: Query, repository) -> Query:
        attr = column_for(repository.get_model(), self.column)
        return query.order_by(attr.desc() if self.direction.lower() == "desc" else attr.asc())
