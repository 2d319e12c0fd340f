from __future__ import annotations  # Reasoning route configuration loaded from JSON

from pathlib import Path
from typing import Dict, Iterable

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):  # Reasoning endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    fallback_model: str = ""
    timeout_s: float = Field(default=20.0, ge=0.1)
    api_key_env: str | None = None
    response_format: str | None = "json_object"
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False
    repair_json: bool = True


class AppConfig(BaseModel):  # Route table plus pipeline -> route mapping
    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_routes(cfg: AppConfig, keys: Iterable[str]) -> Dict[str, LlmRoute]:  # Map pipeline keys to their routes
    resolved: Dict[str, LlmRoute] = {}
    for target in keys:
        if target not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{target}'")
        route_id = cfg.registry[target]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{target}'")
        resolved[target] = cfg.llm_routes[route_id]
    return resolved
