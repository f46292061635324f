from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from sqlalchemy.orm import Query

if TYPE_CHECKING:
    from .repository import RepositoryInterface


class Criterion(ABC):
    """
    A single, order-sensitive query transform.

    Criteria receive the current query and must return the query to use from
    then on. Equality is used to pop a criterion off a repository's stack, so
    parameterized criteria should compare by value (frozen dataclasses do).
    """

    @abstractmethod
    def apply(self, query: Query, repository: "RepositoryInterface") -> Query:
        """
        Apply this criterion to a query.

        Args:
            query: Query as transformed by the criteria applied before this one
            repository: Repository running the read (for searchable fields, settings)

        Returns:
            The query to hand to the next step
        """
