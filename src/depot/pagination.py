"""Page containers returned by paginate() and simple_paginate()."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List


@dataclass
class LengthAwarePage:
    """A page of records plus the total number of matching records."""
    items: List[Any]
    total: int
    per_page: int
    current_page: int = 1

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]

    @property
    def last_page(self) -> int:
        return max(math.ceil(self.total / self.per_page), 1)

    @property
    def has_more(self) -> bool:
        return self.current_page < self.last_page

    def pagination_meta(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "count": len(self.items),
            "per_page": self.per_page,
            "current_page": self.current_page,
            "total_pages": self.last_page,
        }


@dataclass
class SimplePage:
    """A page of records that only knows whether another page follows."""
    items: List[Any] = field(default_factory=list)
    per_page: int = 15
    current_page: int = 1
    has_more: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def pagination_meta(self) -> Dict[str, Any]:
        return {
            "count": len(self.items),
            "per_page": self.per_page,
            "current_page": self.current_page,
            "has_more": self.has_more,
        }
