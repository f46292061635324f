from abc import ABC, abstractmethod
from typing import Any, Optional


class Presenter(ABC):
    """Transforms a repository result into its external representation."""

    @abstractmethod
    def present(self, data: Any) -> Any:
        """Prepare data to present."""


class Presentable:
    """
    Opt-in capability for record types that can carry a presenter.

    Repositories only attach presenters to results that are instances of this
    class. It is a plain mixin so ORM models can inherit it alongside their
    declarative base.
    """

    _presenter = None

    def set_presenter(self, presenter: Presenter) -> "Presentable":
        self._presenter = presenter
        return self

    def presenter(self) -> Optional[Presenter]:
        return self._presenter

    def presented(self) -> Any:
        """This record through its attached presenter, or itself if none."""
        if self._presenter is None:
            return self
        return self._presenter.present(self)
