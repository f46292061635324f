"""Request-parameter search over a repository's searchable fields.

Parameter names come from settings.criteria.params. With the defaults:

    search=john                         every searchable field, OR-joined
    search=name:john;email:j@x.io       per field
    searchFields=name:like;email:=      restrict fields / override conditions
    searchJoin=and                      AND the field conditions instead of OR
    filter=id;name                      load only these columns
    orderBy=name&sortedBy=desc          ordering
    with=author;tags                    eager load relations
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import and_, inspect, or_
from sqlalchemy.orm import Query, load_only, selectinload

from ..contracts.criteria import Criterion
from ..errors import RelationError
from ..repository.conditions import column_for
from ..utils.logging import get_logger

logger = get_logger(__name__)


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(";") if part.strip()]


def parse_search(search: str) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Split a search parameter into per-field values and a bare term.

    Returns:
        (field -> value, bare term or None)
    """
    values: Dict[str, str] = {}
    term = None
    for segment in _split(search):
        if ":" in segment:
            name, value = segment.split(":", 1)
            values[name.strip()] = value.strip()
        else:
            term = segment
    return values, term


class SearchCriterion(Criterion):
    """Applies search, filter, ordering and eager loading from request parameters."""

    def __init__(self, params: Mapping[str, Any]):
        self.params = dict(params)

    def __eq__(self, other):
        return isinstance(other, SearchCriterion) and other.params == self.params

    def __repr__(self):
        return f"SearchCriterion({self.params!r})"

    def apply(self, query: Query, repository) -> Query:
        names = repository.settings.criteria.params
        model = repository.get_model()

        search = self.params.get(names.search)
        if search:
            query = self._apply_search(query, repository, str(search))

        columns = _split(self.params.get(names.filter))
        if columns:
            query = query.options(load_only(*[column_for(model, c) for c in columns]))

        direction = str(self.params.get(names.sorted_by) or "asc").lower()
        if direction not in ("asc", "desc"):
            direction = "asc"
        for column in _split(self.params.get(names.order_by)):
            attr = column_for(model, column)
            query = query.order_by(attr.desc() if direction == "desc" else attr.asc())

        for relation in _split(self.params.get(names.with_)):
            if relation not in inspect(model).relationships:
                logger.debug(f"Search requested unknown relation {model.__name__}.{relation}")
                raise RelationError(model.__name__, relation)
            query = query.options(selectinload(getattr(model, relation)))

        return query

    def _fields(self, repository) -> Dict[str, str]:
        settings = repository.settings.criteria
        searchable = repository.get_fields_searchable()
        requested = _split(self.params.get(settings.params.search_fields))
        if not requested:
            return searchable

        fields: Dict[str, str] = {}
        for entry in requested:
            name, _, condition = entry.partition(":")
            name = name.strip()
            if name not in searchable:
                continue
            condition = condition.strip().lower() or searchable[name]
            if condition not in settings.accepted_conditions:
                raise ValueError(
                    f"Condition '{condition}' for '{name}' is not accepted: {settings.accepted_conditions}"
                )
            fields[name] = condition
        return fields

    def _apply_search(self, query: Query, repository, search: str) -> Query:
        model = repository.get_model()
        values, term = parse_search(search)
        join = str(self.params.get(repository.settings.criteria.params.search_join) or "or").lower()

        clauses = []
        for name, condition in self._fields(repository).items():
            value = values.get(name, term)
            if value is None:
                continue
            column = column_for(model, name)
            if condition == "like":
                clauses.append(column.ilike(f"%{value}%"))
            else:
                clauses.append(column == value)

        if not clauses:
            logger.debug(f"Search '{search}' matched no searchable fields on {model.__name__}")
            return query
        return query.filter(and_(*clauses) if join == "and" else or_(*clauses))
