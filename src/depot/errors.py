"""Exceptions raised by repositories and their collaborators."""

from typing import Any, Optional


class RepositoryError(Exception):
    """Base exception for repository operations."""
    pass


class ResolutionError(RepositoryError):
    """Raised when a model or presenter identifier cannot be resolved."""
    pass


class InvalidHandleError(RepositoryError):
    """Raised when a resolved model does not yield a usable query handle."""
    pass


class NotFoundError(RepositoryError):
    """Raised when a lookup by identifier finds no record."""

    def __init__(self, model: str, identifier: Any):
        self.model = model
        self.identifier = identifier
        super().__init__(f"No {model} found for identifier {identifier!r}")


class RelationError(RepositoryError):
    """
    Raised when a named relation does not exist on the model, or exists but
    cannot be used for the requested operation.

    Pass detail for the second case; it replaces the "has no relation" text.
    """

    def __init__(self, model: str, relation: str, detail: Optional[str] = None):
        self.model = model
        self.relation = relation
        self.detail = detail
        if detail:
            message = f"{model}.{relation} {detail}"
        else:
            message = f"{model} has no relation '{relation}'"
        super().__init__(message)


class UnknownFieldError(RepositoryError):
    """Raised when a column name does not exist on the model."""

    def __init__(self, model: str, field: str):
        self.model = model
        self.field = field
        super().__init__(f"{model} has no column '{field}'")
