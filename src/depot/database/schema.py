"""Declarative base and the record mixin repositories know how to shape."""

from typing import Any, Dict, Iterable, List

from sqlalchemy import Engine, inspect
from sqlalchemy.orm import declarative_base

from ..contracts.presenter import Presentable

Base = declarative_base()


class RecordMixin(Presentable):
    """
    Mixin for ORM records served through a repository.

    Adds presenter support (Presentable) and per-instance hidden/visible
    field lists that to_dict() and the stock presenter honor.
    """

    _hidden = None
    _visible = None

    def set_hidden(self, fields: Iterable[str]) -> None:
        self._hidden = list(fields)

    def set_visible(self, fields: Iterable[str]) -> None:
        self._visible = list(fields)

    def get_hidden(self) -> List[str]:
        return list(self._hidden or [])

    def get_visible(self) -> List[str]:
        return list(self._visible or [])

    def shape(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Drop hidden keys, then keep only visible keys if any are set."""
        hidden = set(self.get_hidden())
        visible = set(self.get_visible())
        return {
            key: value
            for key, value in data.items()
            if key not in hidden and (not visible or key in visible)
        }

    def to_dict(self) -> Dict[str, Any]:
        """Loaded column attributes as a dict (unloaded columns are skipped)."""
        state = inspect(self)
        data = {
            attr.key: getattr(self, attr.key)
            for attr in state.mapper.column_attrs
            if attr.key not in state.unloaded
        }
        return self.shape(data)


def create_all(engine: Engine) -> None:
    Base.metadata.create_all(engine)
