"""Pydantic-backed presenter producing {"data": ..., "meta": ...} envelopes."""

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from ..contracts.presenter import Presenter
from ..database.schema import RecordMixin
from ..pagination import LengthAwarePage, SimplePage


class ModelPresenter(Presenter):
    """
    Render records through a pydantic schema.

    Pass the schema to the constructor or set it on a subclass:

        class PostPresenter(ModelPresenter):
            schema = PostOut

    Hidden/visible fields set on RecordMixin records are dropped from the
    rendered dicts.
    """

    schema: Optional[Type[BaseModel]] = None

    def __init__(self, schema: Optional[Type[BaseModel]] = None):
        if schema is not None:
            self.schema = schema
        if self.schema is None:
            raise ValueError(f"{type(self).__name__} needs a pydantic schema")

    def transform(self, record: Any) -> Dict[str, Any]:
        data = self.schema.model_validate(record, from_attributes=True).model_dump()
        if isinstance(record, RecordMixin):
            data = record.shape(data)
        return data

    def present(self, data: Any) -> Dict[str, Any]:
        if data is None:
            return {"data": None}
        if isinstance(data, (LengthAwarePage, SimplePage)):
            return {
                "data": [self.transform(item) for item in data],
                "meta": {"pagination": data.pagination_meta()},
            }
        if isinstance(data, (list, tuple)):
            return {"data": [self.transform(item) for item in data]}
        return {"data": self.transform(data)}
