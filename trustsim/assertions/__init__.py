"""
Scenario assertions: named checks run against a finished simulation.
"""

from .evaluator import (
    AssertionResult,
    evaluate_all_assertions,
    format_assertion_results,
)
from .registry import (
    ASSERTION_HANDLERS,
    register_assertion_handler,
)

__all__ = [
    "AssertionResult",
    "evaluate_all_assertions",
    "format_assertion_results",
    "ASSERTION_HANDLERS",
    "register_assertion_handler",
]
