"""In-memory registry of reasoning calls used by the interview pipelines."""
from typing import Any, Callable, Dict

_REGISTRY: Dict[str, Callable[..., Any]] = {}


def bind_model(key: str, fn: Callable[..., Any]) -> None:
    """Bind a callable implementation to a registry key."""
    _REGISTRY[key] = fn


def get_model(key: str) -> Callable[..., Any]:
    """Retrieve a callable from the registry.

    Raises:
        KeyError: If no callable has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


def clear_models() -> None:
    """Drop every binding; used by tests and on reconfiguration."""
    _REGISTRY.clear()


CONTROLLER_KEY = "models.interview_controller"
ANALYZER_KEY = "models.answer_analyzer"
FINAL_EVALUATOR_KEY = "models.final_evaluator"
