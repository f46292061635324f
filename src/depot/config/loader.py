from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = Path("depot.config.yaml")

ALLOWED_CONDITIONS = ("=", "like")

BASE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "pagination": {
        "limit": 15,
    },
    "criteria": {
        "params": {
            "search": "search",
            "search_fields": "searchFields",
            "filter": "filter",
            "order_by": "orderBy",
            "sorted_by": "sortedBy",
            "with": "with",
            "search_join": "searchJoin",
        },
        "accepted_conditions": list(ALLOWED_CONDITIONS),
    },
    "writes": {
        "commit": False,
    },
}


class PaginationSettings(BaseModel):
    limit: int = Field(default=15, gt=0, description="Default page size")


class CriteriaParams(BaseModel):
    """Request parameter names read by SearchCriterion."""

    search: str = "search"
    search_fields: str = "searchFields"
    filter: str = "filter"
    order_by: str = "orderBy"
    sorted_by: str = "sortedBy"
    with_: str = Field(default="with", alias="with")
    search_join: str = "searchJoin"

    model_config = {"populate_by_name": True}


class CriteriaSettings(BaseModel):
    params: CriteriaParams = Field(default_factory=CriteriaParams)
    accepted_conditions: List[str] = Field(default_factory=lambda: list(ALLOWED_CONDITIONS))

    @field_validator("accepted_conditions")
    @classmethod
    def _known_conditions(cls, value: List[str]) -> List[str]:
        unknown = [c for c in value if c.lower() not in ALLOWED_CONDITIONS]
        if unknown:
            raise ValueError(f"Unsupported search conditions: {unknown}")
        return [c.lower() for c in value]


class WriteSettings(BaseModel):
    commit: bool = Field(default=False, description="Commit after each mutation instead of flushing")


class RepositorySettings(BaseModel):
    """Runtime settings shared by every repository."""

    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    criteria: CriteriaSettings = Field(default_factory=CriteriaSettings)
    writes: WriteSettings = Field(default_factory=WriteSettings)


def _merge_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay user sections on the built-in defaults, one level deep."""
    merged = deepcopy(BASE_DEFAULTS)
    for section, values in config.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section] = {**merged[section], **values}
        else:
            merged[section] = values
    params = (config.get("criteria") or {}).get("params")
    if isinstance(params, dict):
        merged["criteria"]["params"] = {**BASE_DEFAULTS["criteria"]["params"], **params}
    return merged


def default_settings() -> RepositorySettings:
    return RepositorySettings.model_validate(deepcopy(BASE_DEFAULTS))


def load_config(path: Path | None = None) -> RepositorySettings:
    """
    Load repository settings from a YAML file.

    Args:
        path: Optional path to the config file. Defaults to depot.config.yaml
            in the working directory; when that file is absent the built-in
            defaults are returned.

    Returns:
        Validated RepositorySettings

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValueError: If the document is not a mapping
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return default_settings()
        cfg_path = DEFAULT_CONFIG_PATH
    else:
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ValueError("Repository config must be a dictionary")

    return RepositorySettings.model_validate(_merge_defaults(config))
