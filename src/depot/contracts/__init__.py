"""Contracts: the interfaces repositories, criteria and presenters implement.

Callers type against these, never against BaseRepository:

1. RepositoryInterface + RepositoryCriteriaInterface - the repository surface
2. Criterion - query transforms pushed onto a repository
3. Presenter / Presentable - result presentation and the record opt-in
"""

from .criteria import Criterion
from .presenter import Presentable, Presenter
from .repository import RepositoryCriteriaInterface, RepositoryInterface

__all__ = [
    "Criterion",
    "Presentable",
    "Presenter",
    "RepositoryCriteriaInterface",
    "RepositoryInterface",
]
