"""Registries that turn model and presenter identifiers into usable objects.

Resolution never raises for an unknown identifier: callers get a Resolution
and decide. Repositories turn failed resolutions into ResolutionError.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Protocol, TypeVar, Union

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Query, Session

from .contracts.presenter import Presenter

T = TypeVar("T")

ModelIdentifier = Union[str, type]
PresenterIdentifier = Union[str, type, Presenter]


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Result of a resolve() call: a value, or the reason there is none."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Resolution[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Resolution[T]":
        return cls(error=error)


class ModelResolver(Protocol):
    def resolve(self, identifier: ModelIdentifier) -> Resolution[Query]:
        ...


class PresenterResolver(Protocol):
    def resolve(self, identifier: PresenterIdentifier) -> Resolution[Presenter]:
        ...


def _is_mapped(model: Any) -> bool:
    try:
        inspect(model)
    except NoInspectionAvailable:
        return False
    return isinstance(model, type)


def _identifier_name(identifier: Any) -> str:
    return identifier if isinstance(identifier, str) else getattr(identifier, "__name__", repr(identifier))


class ModelRegistry:
    """
    Resolves model identifiers to fresh queries on one session.

    A mapped class resolves to session.query(cls) without registration.
    Names are registered with register(), either to a mapped class or to a
    factory taking the session and returning a query.
    """

    def __init__(self, session: Session):
        self.session = session
        self._models: Dict[str, Union[type, Callable[[Session], Any]]] = {}

    def register(self, name: str, model_or_factory: Union[type, Callable[[Session], Any]]) -> "ModelRegistry":
        self._models[name] = model_or_factory
        return self

    def resolve(self, identifier: ModelIdentifier) -> Resolution[Query]:
        target = identifier
        if isinstance(identifier, str):
            if identifier not in self._models:
                return Resolution.failure(f"No model registered under '{identifier}'")
            target = self._models[identifier]

        if _is_mapped(target):
            return Resolution.success(self.session.query(target))

        if callable(target) and not isinstance(target, type):
            try:
                return Resolution.success(target(self.session))
            except Exception as e:
                return Resolution.failure(f"Model factory for '{_identifier_name(identifier)}' failed: {e}")

        return Resolution.failure(f"{_identifier_name(target)} is not a mapped model class")


class PresenterRegistry:
    """
    Resolves presenter identifiers.

    Accepts Presenter instances as-is, instantiates Presenter subclasses with
    no arguments, and looks names up among registered presenters (instances,
    classes or zero-argument factories).
    """

    def __init__(self):
        self._presenters: Dict[str, Union[Presenter, type, Callable[[], Presenter]]] = {}

    def register(self, name: str, presenter: Union[Presenter, type, Callable[[], Presenter]]) -> "PresenterRegistry":
        self._presenters[name] = presenter
        return self

    def resolve(self, identifier: PresenterIdentifier) -> Resolution[Presenter]:
        target: Any = identifier
        if isinstance(identifier, str):
            if identifier not in self._presenters:
                return Resolution.failure(f"No presenter registered under '{identifier}'")
            target = self._presenters[identifier]

        if isinstance(target, Presenter):
            return Resolution.success(target)

        if callable(target):
            try:
                presenter = target()
            except Exception as e:
                return Resolution.failure(f"Could not build presenter '{_identifier_name(identifier)}': {e}")
            if isinstance(presenter, Presenter):
                return Resolution.success(presenter)
            return Resolution.failure(f"'{_identifier_name(identifier)}' did not produce a Presenter")

        return Resolution.failure(f"{target!r} is not a presenter")
