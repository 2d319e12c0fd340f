"""Configuration package for the interview conductor."""
from .registry import (
    ANALYZER_KEY,
    CONTROLLER_KEY,
    FINAL_EVALUATOR_KEY,
    bind_model,
    clear_models,
    get_model,
)
from .routes import AppConfig, LlmRoute, load_config, resolve_routes
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_config",
    "resolve_routes",
    "ANALYZER_KEY",
    "CONTROLLER_KEY",
    "FINAL_EVALUATOR_KEY",
    "bind_model",
    "clear_models",
    "get_model",
    "Settings",
    "settings",
]
