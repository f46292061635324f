"""Capability interfaces callers depend on instead of concrete repositories."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Query

from .criteria import Criterion
from .presenter import Presenter

Columns = Optional[Sequence[str]]
ScopeFn = Callable[[Query], Query]


class RepositoryInterface(ABC):
    """Read, write and query-composition operations of a repository."""

    @abstractmethod
    def all(self, columns: Columns = None) -> Any:
        """Retrieve all records."""

    @abstractmethod
    def first(self, columns: Columns = None) -> Any:
        """Retrieve the first record, or None."""

    @abstractmethod
    def count(self, conditions: Optional[Any] = None) -> int:
        """Count records, optionally narrowed by find_where-style conditions."""

    @abstractmethod
    def paginate(self, limit: Optional[int] = None, columns: Columns = None, page: int = 1) -> Any:
        """Retrieve one page of records with the total count."""

    @abstractmethod
    def simple_paginate(self, limit: Optional[int] = None, columns: Columns = None, page: int = 1) -> Any:
        """Retrieve one page of records without counting the total."""

    @abstractmethod
    def find(self, id: Any, columns: Columns = None) -> Any:
        """Find a record by primary key; raises NotFoundError on miss."""

    @abstractmethod
    def find_by_field(self, field: str, value: Any, columns: Columns = None) -> Any:
        """Find records whose field equals value."""

    @abstractmethod
    def find_where(self, conditions: Any, columns: Columns = None) -> Any:
        """Find records matching every condition."""

    @abstractmethod
    def find_where_in(self, field: str, values: Iterable[Any], columns: Columns = None) -> Any:
        """Find records whose field is one of values."""

    @abstractmethod
    def find_where_not_in(self, field: str, values: Iterable[Any], columns: Columns = None) -> Any:
        """Find records whose field is none of values."""

    @abstractmethod
    def find_where_between(self, field: str, values: Sequence[Any], columns: Columns = None) -> Any:
        """Find records whose field lies between two bounds (inclusive)."""

    @abstractmethod
    def lists(self, column: str, key: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        """Column values, or a key -> value dict when key is given."""

    @abstractmethod
    def pluck(self, column: str, key: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        """Column values, or a key -> value dict when key is given."""

    @abstractmethod
    def create(self, attributes: Mapping[str, Any]) -> Any:
        """Save a new record."""

    @abstractmethod
    def update(self, attributes: Mapping[str, Any], id: Any) -> Any:
        """Update a record by primary key."""

    @abstractmethod
    def update_or_create(self, attributes: Mapping[str, Any], values: Optional[Mapping[str, Any]] = None) -> Any:
        """Update the record matching attributes with values, or create it."""

    @abstractmethod
    def delete(self, id: Any) -> int:
        """Delete a record by primary key and return the number deleted."""

    @abstractmethod
    def sync(self, id: Any, relation: str, ids: Iterable[Any], detaching: bool = True) -> Dict[str, List[Any]]:
        """Make a many-to-many relation hold exactly (or at least) the given ids."""

    @abstractmethod
    def sync_without_detaching(self, id: Any, relation: str, ids: Iterable[Any]) -> Dict[str, List[Any]]:
        """Attach the given ids to a many-to-many relation, keeping existing ones."""

    @abstractmethod
    def first_or_new(self, attributes: Optional[Mapping[str, Any]] = None) -> Any:
        """First record matching attributes, or a new unsaved one."""

    @abstractmethod
    def first_or_create(self, attributes: Optional[Mapping[str, Any]] = None) -> Any:
        """First record matching attributes, or a newly created one."""

    @abstractmethod
    def order_by(self, column: str, direction: str = "asc") -> "RepositoryInterface":
        """Order the next read by column."""

    @abstractmethod
    def with_relations(self, relations: Union[str, Sequence[str]]) -> "RepositoryInterface":
        """Eager load relations on the next read."""

    @abstractmethod
    def where_has(self, relation: str, predicate: Optional[Callable[[Any], Any]] = None) -> "RepositoryInterface":
        """Restrict the next read to records with related rows matching predicate."""

    @abstractmethod
    def with_count(self, relations: Union[str, Sequence[str]]) -> "RepositoryInterface":
        """Attach <relation>_count to each record of the next read."""

    @abstractmethod
    def hidden(self, fields: Sequence[str]) -> "RepositoryInterface":
        """Hide fields on the records of the next read."""

    @abstractmethod
    def visible(self, fields: Sequence[str]) -> "RepositoryInterface":
        """Show only these fields on the records of the next read."""

    @abstractmethod
    def scope_query(self, scope: ScopeFn) -> "RepositoryInterface":
        """Customize the next terminating operation's query once."""

    @abstractmethod
    def reset_scope(self) -> "RepositoryInterface":
        """Drop a pending scope without applying it."""

    @abstractmethod
    def raw_query(self, apply_criteria: bool = True) -> Query:
        """Hand the current query to the caller."""

    @abstractmethod
    def get_fields_searchable(self) -> Dict[str, str]:
        """Searchable field name -> default condition."""

    @abstractmethod
    def set_presenter(self, presenter: Union[str, type, Presenter]) -> "RepositoryInterface":
        """Resolve and attach a presenter."""

    @abstractmethod
    def skip_presenter(self, status: bool = True) -> "RepositoryInterface":
        """Return raw results while status is True."""


class RepositoryCriteriaInterface(ABC):
    """Criteria stack management."""

    @abstractmethod
    def push_criteria(self, criteria: Union[Criterion, type]) -> "RepositoryCriteriaInterface":
        """Push a criterion onto the stack."""

    @abstractmethod
    def pop_criteria(self, criteria: Union[Criterion, type]) -> "RepositoryCriteriaInterface":
        """Remove the first matching criterion from the stack."""

    @abstractmethod
    def get_criteria(self) -> Tuple[Criterion, ...]:
        """Criteria in application order."""

    @abstractmethod
    def get_by_criteria(self, criteria: Criterion) -> Any:
        """Read with this criterion only, leaving the stack alone."""

    @abstractmethod
    def skip_criteria(self, status: bool = True) -> "RepositoryCriteriaInterface":
        """Bypass the stack while status is True."""

    @abstractmethod
    def reset_criteria(self) -> "RepositoryCriteriaInterface":
        """Empty the stack."""
