from .common import OrderByCriterion, WhereCriterion
from .search import SearchCriterion

__all__ = ["OrderByCriterion", "SearchCriterion", "WhereCriterion"]
