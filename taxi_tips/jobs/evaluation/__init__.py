"""
Model Evaluation

Held-out scoring, R², diagnostic plots and the markdown report.
"""

from .evaluator import EvaluationResult, InsufficientRowsError, evaluate_model
from .metrics import r_squared, reference_line
from .report import write_report

__all__ = [
    "EvaluationResult",
    "InsufficientRowsError",
    "evaluate_model",
    "r_squared",
    "reference_line",
    "write_report",
]
