"""Reasoning pipelines with deterministic fallbacks."""
from .analyzer import fallback_analysis, run_analyzer, sanitize_analyzer_output
from .controller import fallback_plan, run_controller, sanitize_controller_output
from .final_evaluator import fallback_evaluation, recommend, run_final_evaluator, sanitize_final_output

__all__ = [
    "fallback_analysis",
    "fallback_evaluation",
    "fallback_plan",
    "recommend",
    "run_analyzer",
    "run_controller",
    "run_final_evaluator",
    "sanitize_analyzer_output",
    "sanitize_controller_output",
    "sanitize_final_output",
]
