"""Base repository: criteria, scope and presenter orchestration over a SQLAlchemy query.

Every read runs the same pipeline:

    resolve query -> criteria (unless skipped) -> one-shot scope ->
    operation filter -> execute -> drop query and scope -> presenter

The query is dropped after every terminating call, success or failure, so
ordering, eager loads and scopes never leak into the next call. Criteria are
kept until reset_criteria().

A repository holds per-request state. Do not share one instance between
concurrent requests; build one per unit of work.
"""

from abc import abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import and_, func, inspect, select
from sqlalchemy.orm import Query, Session, load_only, selectinload

from ..config.loader import RepositorySettings, default_settings
from ..contracts.criteria import Criterion
from ..contracts.presenter import Presentable, Presenter
from ..contracts.repository import Columns, RepositoryCriteriaInterface, RepositoryInterface, ScopeFn
from ..database.schema import RecordMixin
from ..errors import InvalidHandleError, NotFoundError, RelationError, RepositoryError, ResolutionError, UnknownFieldError
from ..pagination import LengthAwarePage, SimplePage
from ..resolvers import ModelRegistry, ModelResolver, PresenterRegistry, PresenterResolver
from ..utils.logging import get_logger
from .conditions import Conditions, column_for, compile_conditions

logger = get_logger(__name__)

_DIRECTIONS = ("asc", "desc")


@dataclass
class _PendingShape:
    """Result shaping requested for the current query only."""
    hidden: List[str] = field(default_factory=list)
    visible: List[str] = field(default_factory=list)
    count_labels: List[str] = field(default_factory=list)


class BaseRepository(RepositoryInterface, RepositoryCriteriaInterface):
    """
    Repository over one mapped model.

    Subclasses implement model() and may override presenter(), boot() and
    field_searchable:

        class PostRepository(BaseRepository):
            field_searchable = {"title": "like", "status": "="}

            def model(self):
                return Post

            def boot(self):
                self.push_criteria(PublishedCriterion())
    """

    field_searchable: Union[Mapping[str, str], Sequence[str]] = {}

    def __init__(
        self,
        session: Session,
        model_resolver: Optional[ModelResolver] = None,
        presenter_resolver: Optional[PresenterResolver] = None,
        settings: Optional[RepositorySettings] = None,
    ):
        self.session = session
        self.settings = settings or default_settings()
        self._models = model_resolver or ModelRegistry(session)
        self._presenters = presenter_resolver or PresenterRegistry()

        self._query: Optional[Query] = None
        self._entity: Optional[type] = None
        self._pending = _PendingShape()
        self._criteria: List[Criterion] = []
        self._skip_criteria = False
        self._skip_presenter = False
        self._scope: Optional[ScopeFn] = None
        self._presenter: Optional[Presenter] = None

        self.make_model()
        self.make_presenter()
        self.boot()

    def boot(self) -> None:
        """Hook for subclasses, e.g. to push default criteria."""
        pass

    @abstractmethod
    def model(self) -> Union[str, type]:
        """Mapped model class, or a name registered with the model resolver."""

    def presenter(self) -> Union[str, type, Presenter, None]:
        """Default presenter identifier, or None."""
        return None

    # Model / query handle

    def make_model(self) -> Query:
        """Resolve a fresh query for model() and make it the current one."""
        identifier = self.model()
        resolution = self._models.resolve(identifier)
        if not resolution.ok:
            logger.warning(f"Could not resolve model {identifier!r}: {resolution.error}")
            raise ResolutionError(resolution.error)

        query = resolution.value
        if not isinstance(query, Query):
            raise InvalidHandleError(
                f"Model {identifier!r} resolved to {type(query).__name__}, expected a sqlalchemy Query"
            )
        entity = query.column_descriptions[0].get("entity") if query.column_descriptions else None
        if not isinstance(entity, type):
            raise InvalidHandleError(f"Query for {identifier!r} does not select a mapped model")

        self._query = query
        self._entity = entity
        self._pending = _PendingShape()
        logger.debug(f"Resolved query for {entity.__name__}")
        return query

    def reset_model(self) -> None:
        """Drop the current query; the next operation resolves a new one."""
        self._query = None
        self._pending = _PendingShape()

    def get_model(self) -> type:
        if self._entity is None:
            self.make_model()
        return self._entity

    def _handle(self) -> Query:
        if self._query is None:
            self.make_model()
        return self._query

    # Presenter

    def make_presenter(self, presenter: Union[str, type, Presenter, None] = None) -> Optional[Presenter]:
        presenter = presenter if presenter is not None else self.presenter()
        if presenter is None:
            return None

        resolution = self._presenters.resolve(presenter)
        if not resolution.ok:
            logger.warning(f"Could not resolve presenter {presenter!r}: {resolution.error}")
            raise ResolutionError(resolution.error)

        self._presenter = resolution.value
        return self._presenter

    def set_presenter(self, presenter: Union[str, type, Presenter]) -> "BaseRepository":
        self.make_presenter(presenter)
        return self

    def skip_presenter(self, status: bool = True) -> "BaseRepository":
        self._skip_presenter = status
        return self

    def parse_result(self, result: Any) -> Any:
        """
        Run a result through the attached presenter.

        Presentable items of list and page results get the presenter attached
        before the whole result is presented. Without a presenter, or while
        presentation is skipped, the result is returned unchanged.
        """
        if self._presenter is None or self._skip_presenter:
            return result

        if isinstance(result, (list, LengthAwarePage, SimplePage)):
            for item in result:
                if isinstance(item, Presentable):
                    item.set_presenter(self._presenter)
        elif isinstance(result, Presentable):
            result.set_presenter(self._presenter)

        return self._presenter.present(result)

    # Criteria

    def push_criteria(self, criteria: Union[Criterion, type]) -> "BaseRepository":
        if isinstance(criteria, type) and issubclass(criteria, Criterion):
            criteria = criteria()
        if not isinstance(criteria, Criterion):
            raise RepositoryError(f"{type(criteria).__name__} must implement Criterion")
        self._criteria.append(criteria)
        return self

    def pop_criteria(self, criteria: Union[Criterion, type]) -> "BaseRepository":
        for index, existing in enumerate(self._criteria):
            if isinstance(criteria, type):
                matched = isinstance(existing, criteria)
            else:
                matched = existing is criteria or existing == criteria
            if matched:
                del self._criteria[index]
                break
        return self

    def get_criteria(self) -> Tuple[Criterion, ...]:
        return tuple(self._criteria)

    def skip_criteria(self, status: bool = True) -> "BaseRepository":
        self._skip_criteria = status
        return self

    def reset_criteria(self) -> "BaseRepository":
        self._criteria = []
        return self

    def get_by_criteria(self, criteria: Criterion) -> Any:
        with self._reading(criteria=[criteria]) as query:
            results = self._shape(query.all())
        return self.parse_result(results)

    def _apply_criteria(self, criteria: Optional[Sequence[Criterion]]) -> None:
        if criteria is None:
            if self._skip_criteria:
                return
            criteria = list(self._criteria)
        for criterion in criteria:
            self._query = criterion.apply(self._query, self)
            logger.debug(f"Applied criterion {type(criterion).__name__}")

    # Scope

    def scope_query(self, scope: ScopeFn) -> "BaseRepository":
        self._scope = scope
        return self

    def reset_scope(self) -> "BaseRepository":
        self._scope = None
        return self

    def _take_scope(self) -> Optional[ScopeFn]:
        scope, self._scope = self._scope, None
        return scope

    def _apply_scope(self) -> None:
        scope = self._take_scope()
        if scope is not None:
            self._query = scope(self._query)
            logger.debug("Applied query scope")

    @contextmanager
    def _reading(self, criteria: Optional[Sequence[Criterion]] = None) -> Iterator[Query]:
        """
        Prepare the current query for one terminating operation.

        Args:
            criteria: None applies the stack (unless skipped); a sequence
                applies exactly those criteria, () applies none

        Yields:
            Query with criteria and scope applied
        """
        try:
            self._handle()
            self._apply_criteria(criteria)
            self._apply_scope()
            yield self._query
        finally:
            self.reset_model()
            self.reset_scope()

    # Result shaping

    def _select(self, query: Query, columns: Columns) -> Query:
        if not columns or list(columns) == ["*"]:
            return query
        entity = self.get_model()
        return query.options(load_only(*[column_for(entity, c) for c in columns]))

    def _shape_one(self, row: Any) -> Any:
        if row is None:
            return None
        record = row
        if self._pending.count_labels:
            record = row[0]
            for label in self._pending.count_labels:
                setattr(record, label, row._mapping[label])
        # records are shared through the session identity map; always overwrite
        if isinstance(record, RecordMixin):
            record.set_hidden(self._pending.hidden)
            record.set_visible(self._pending.visible)
        return record

    def _shape(self, rows: Iterable[Any]) -> List[Any]:
        return [self._shape_one(row) for row in rows]

    def _identity(self, id: Any):
        primary_key = inspect(self.get_model()).primary_key
        values = id if isinstance(id, tuple) else (id,)
        if len(values) != len(primary_key):
            raise ValueError(f"Expected {len(primary_key)} primary key value(s), got {len(values)}")
        return and_(*[column == value for column, value in zip(primary_key, values)])

    def _equals(self, attributes: Mapping[str, Any]) -> List[Any]:
        entity = self.get_model()
        return [column_for(entity, key) == value for key, value in attributes.items()]

    # Reads

    def all(self, columns: Columns = None) -> Any:
        with self._reading() as query:
            results = self._shape(self._select(query, columns).all())
        return self.parse_result(results)

    def first(self, columns: Columns = None) -> Any:
        with self._reading() as query:
            record = self._shape_one(self._select(query, columns).first())
        return self.parse_result(record)

    def count(self, conditions: Optional[Conditions] = None) -> int:
        with self._reading() as query:
            if conditions:
                query = query.filter(*compile_conditions(self.get_model(), conditions))
            return query.order_by(None).count()

    def find(self, id: Any, columns: Columns = None) -> Any:
        with self._reading() as query:
            record = self._shape_one(self._select(query, columns).filter(self._identity(id)).first())
        if record is None:
            logger.debug(f"{self.get_model().__name__} {id!r} not found")
            raise NotFoundError(self.get_model().__name__, id)
        return self.parse_result(record)

    def find_by_field(self, field: str, value: Any, columns: Columns = None) -> Any:
        with self._reading() as query:
            column = column_for(self.get_model(), field)
            results = self._shape(self._select(query, columns).filter(column == value).all())
        return self.parse_result(results)

    def find_where(self, conditions: Conditions, columns: Columns = None) -> Any:
        with self._reading() as query:
            expressions = compile_conditions(self.get_model(), conditions)
            results = self._shape(self._select(query, columns).filter(*expressions).all())
        return self.parse_result(results)

    def find_where_in(self, field: str, values: Iterable[Any], columns: Columns = None) -> Any:
        with self._reading() as query:
            column = column_for(self.get_model(), field)
            results = self._shape(self._select(query, columns).filter(column.in_(list(values))).all())
        return self.parse_result(results)

    def find_where_not_in(self, field: str, values: Iterable[Any], columns: Columns = None) -> Any:
        with self._reading() as query:
            column = column_for(self.get_model(), field)
            results = self._shape(self._select(query, columns).filter(column.not_in(list(values))).all())
        return self.parse_result(results)

    def find_where_between(self, field: str, values: Sequence[Any], columns: Columns = None) -> Any:
        with self._reading() as query:
            bounds = list(values)
            if len(bounds) != 2:
                raise ValueError(f"find_where_between needs exactly two bounds, got {len(bounds)}")
            column = column_for(self.get_model(), field)
            results = self._shape(self._select(query, columns).filter(column.between(*bounds)).all())
        return self.parse_result(results)

    def paginate(self, limit: Optional[int] = None, columns: Columns = None, page: int = 1) -> Any:
        with self._reading() as query:
            limit = self._page_size(limit, page)
            query = self._select(query, columns)
            total = query.order_by(None).count()
            rows = query.limit(limit).offset((page - 1) * limit).all()
            items = self._shape(rows)
        return self.parse_result(LengthAwarePage(items=items, total=total, per_page=limit, current_page=page))

    def simple_paginate(self, limit: Optional[int] = None, columns: Columns = None, page: int = 1) -> Any:
        with self._reading() as query:
            limit = self._page_size(limit, page)
            rows = self._select(query, columns).limit(limit + 1).offset((page - 1) * limit).all()
            items = self._shape(rows[:limit])
        result = SimplePage(items=items, per_page=limit, current_page=page, has_more=len(rows) > limit)
        return self.parse_result(result)

    def _page_size(self, limit: Optional[int], page: int) -> int:
        limit = self.settings.pagination.limit if limit is None else limit
        if limit <= 0:
            raise ValueError(f"Page size must be positive, got {limit}")
        if page < 1:
            raise ValueError(f"Page number must be at least 1, got {page}")
        return limit

    def lists(self, column: str, key: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        return self.pluck(column, key)

    def pluck(self, column: str, key: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        with self._reading() as query:
            entity = self.get_model()
            value_column = column_for(entity, column)
            if key is None:
                return [row[0] for row in query.with_entities(value_column).all()]
            key_column = column_for(entity, key)
            return {row[0]: row[1] for row in query.with_entities(key_column, value_column).all()}

    def raw_query(self, apply_criteria: bool = True) -> Query:
        """
        Escape hatch: the current query with criteria and scope applied.

        The caller owns the returned query. The repository drops its own
        query and scope, exactly as after any other terminating call.
        """
        with self._reading(criteria=None if apply_criteria else ()) as query:
            return query

    # Writes

    def _check_attributes(self, attributes: Mapping[str, Any]) -> type:
        entity = self.get_model()
        mapper = inspect(entity)
        for key in attributes:
            if key not in mapper.column_attrs and key not in mapper.relationships:
                raise UnknownFieldError(entity.__name__, key)
        return entity

    def _new(self, attributes: Mapping[str, Any]) -> Any:
        entity = self._check_attributes(attributes)
        return entity(**attributes)

    def _fill(self, record: Any, attributes: Mapping[str, Any]) -> None:
        # validate every key before touching the record, so a rejected
        # update leaves nothing dirty in the session
        self._check_attributes(attributes)
        for key, value in attributes.items():
            setattr(record, key, value)

    def _persist(self) -> None:
        if self.settings.writes.commit:
            self.session.commit()
        else:
            self.session.flush()

    def create(self, attributes: Mapping[str, Any]) -> Any:
        try:
            record = self._new(attributes)
            self.session.add(record)
            self._persist()
        finally:
            self.reset_model()
            self.reset_scope()
        logger.debug(f"Created {type(record).__name__}")
        return self.parse_result(record)

    def update(self, attributes: Mapping[str, Any], id: Any) -> Any:
        with self._reading(criteria=()) as query:
            record = self._shape_one(query.filter(self._identity(id)).first())
        if record is None:
            logger.debug(f"{self.get_model().__name__} {id!r} not found for update")
            raise NotFoundError(self.get_model().__name__, id)
        self._fill(record, attributes)
        self._persist()
        logger.debug(f"Updated {type(record).__name__} {id!r}")
        return self.parse_result(record)

    def update_or_create(self, attributes: Mapping[str, Any], values: Optional[Mapping[str, Any]] = None) -> Any:
        values = dict(values or {})
        with self._reading(criteria=()) as query:
            record = self._shape_one(query.filter(*self._equals(attributes)).first())
        if record is None:
            record = self._new({**attributes, **values})
            self.session.add(record)
        else:
            self._fill(record, values)
        self._persist()
        logger.debug(f"Upserted {type(record).__name__} matching {sorted(attributes)}")
        return self.parse_result(record)

    def delete(self, id: Any) -> int:
        with self._reading(criteria=()) as query:
            records = self._shape(query.filter(self._identity(id)).all())
        for record in records:
            self.session.delete(record)
        if records:
            self._persist()
        logger.debug(f"Deleted {len(records)} {self.get_model().__name__} row(s) for {id!r}")
        return len(records)

    def first_or_new(self, attributes: Optional[Mapping[str, Any]] = None) -> Any:
        attributes = dict(attributes or {})
        with self._reading() as query:
            record = self._shape_one(query.filter(*self._equals(attributes)).first())
        if record is None:
            record = self._new(attributes)
        return self.parse_result(record)

    def first_or_create(self, attributes: Optional[Mapping[str, Any]] = None) -> Any:
        attributes = dict(attributes or {})
        with self._reading() as query:
            record = self._shape_one(query.filter(*self._equals(attributes)).first())
        if record is None:
            record = self._new(attributes)
            self.session.add(record)
            self._persist()
        return self.parse_result(record)

    def sync(self, id: Any, relation: str, ids: Iterable[Any], detaching: bool = True) -> Dict[str, List[Any]]:
        """
        Make a many-to-many relation hold the given related ids.

        Args:
            id: Primary key of the owning record
            relation: Name of a many-to-many relationship on the model
            ids: Primary keys of related records
            detaching: Detach related records not listed in ids

        Returns:
            {"attached": [...], "detached": [...], "updated": []}

        Raises:
            RelationError: If relation is not a many-to-many relationship
            NotFoundError: If the owner or any related id does not exist
        """
        entity = self.get_model()
        with self._reading(criteria=()) as query:
            prop = self._relationship(relation, entity)
            if prop.secondary is None:
                logger.debug(f"Refusing to sync {entity.__name__}.{relation}: not many-to-many")
                raise RelationError(entity.__name__, relation, "is not a many-to-many relation and cannot be synced")
            record = self._shape_one(query.filter(self._identity(id)).first())
        if record is None:
            logger.debug(f"{entity.__name__} {id!r} not found for sync")
            raise NotFoundError(entity.__name__, id)

        related = prop.mapper.class_
        related_mapper = inspect(related)
        pk_key = related_mapper.get_property_by_column(related_mapper.primary_key[0]).key
        wanted = list(dict.fromkeys(ids))
        collection = getattr(record, relation)
        current = {getattr(item, pk_key): item for item in collection}

        to_attach = [i for i in wanted if i not in current]
        to_detach = [i for i in current if i not in wanted] if detaching else []

        found = {}
        if to_attach:
            rows = self.session.query(related).filter(getattr(related, pk_key).in_(to_attach)).all()
            found = {getattr(row, pk_key): row for row in rows}
        missing = [i for i in to_attach if i not in found]
        if missing:
            logger.debug(f"Cannot sync {entity.__name__}.{relation}: missing {related.__name__} ids {missing}")
            raise NotFoundError(related.__name__, missing)

        for i in to_detach:
            collection.remove(current[i])
        add = getattr(collection, "append", None) or collection.add
        for i in to_attach:
            add(found[i])
        self._persist()

        logger.debug(f"Synced {entity.__name__}.{relation} for {id!r}: +{to_attach} -{to_detach}")
        return {"attached": to_attach, "detached": to_detach, "updated": []}

    def sync_without_detaching(self, id: Any, relation: str, ids: Iterable[Any]) -> Dict[str, List[Any]]:
        return self.sync(id, relation, ids, detaching=False)

    # Query composition

    def _relationship(self, name: str, model: Optional[type] = None):
        model = model or self.get_model()
        relationships = inspect(model).relationships
        if name not in relationships:
            logger.debug(f"Unknown relation {model.__name__}.{name}")
            raise RelationError(model.__name__, name)
        return relationships[name]

    def order_by(self, column: str, direction: str = "asc") -> "BaseRepository":
        direction = direction.lower()
        if direction not in _DIRECTIONS:
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")
        attr = column_for(self.get_model(), column)
        self._query = self._handle().order_by(attr.asc() if direction == "asc" else attr.desc())
        return self

    def with_relations(self, relations: Union[str, Sequence[str]]) -> "BaseRepository":
        if isinstance(relations, str):
            relations = [relations]
        query = self._handle()
        for path in relations:
            model = self.get_model()
            loader = None
            for part in path.split("."):
                prop = self._relationship(part, model)
                attr = getattr(model, part)
                loader = selectinload(attr) if loader is None else loader.selectinload(attr)
                model = prop.mapper.class_
            query = query.options(loader)
        self._query = query
        return self

    def where_has(self, relation: str, predicate: Optional[Callable[[Any], Any]] = None) -> "BaseRepository":
        prop = self._relationship(relation)
        attr = getattr(self.get_model(), relation)
        expression = predicate(prop.mapper.class_) if predicate is not None else None
        method = attr.any if prop.uselist else attr.has
        clause = method(expression) if expression is not None else method()
        self._query = self._handle().filter(clause)
        return self

    def with_count(self, relations: Union[str, Sequence[str]]) -> "BaseRepository":
        if isinstance(relations, str):
            relations = [relations]
        entity = self.get_model()
        query = self._handle()
        for relation in relations:
            prop = self._relationship(relation, entity)
            target = prop.secondary if prop.secondary is not None else prop.mapper.local_table
            counter = (
                select(func.count())
                .select_from(target)
                .where(prop.primaryjoin)
                .correlate(inspect(entity).local_table)
                .scalar_subquery()
            )
            label = f"{relation}_count"
            query = query.add_columns(counter.label(label))
            self._pending.count_labels.append(label)
        self._query = query
        return self

    def hidden(self, fields: Sequence[str]) -> "BaseRepository":
        self._handle()
        self._pending.hidden = list(fields)
        return self

    def visible(self, fields: Sequence[str]) -> "BaseRepository":
        self._handle()
        self._pending.visible = list(fields)
        return self

    def get_fields_searchable(self) -> Dict[str, str]:
        if isinstance(self.field_searchable, Mapping):
            return {name: condition.lower() for name, condition in self.field_searchable.items()}
        return {name: "=" for name in self.field_searchable}
