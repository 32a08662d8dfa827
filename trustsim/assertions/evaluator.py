"""
Checks a finished run against its scenario's assertions.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from ..scenarios.schema import ScenarioAssertion
from .registry import ASSERTION_HANDLERS


@dataclass
class AssertionResult:
    """Outcome of one scenario assertion for one run."""
    assertion_type: str
    description: str
    passed: bool
    message: str

    def __str__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return f"[{status}] {self.description}: {self.message}"


def _check(assertion: ScenarioAssertion, state: Dict[str, Any]) -> Tuple[bool, str]:
    handler = ASSERTION_HANDLERS.get(assertion.type)
    if handler is None:
        return False, f"Unknown assertion type: {assertion.type}"
    try:
        return handler(assertion.params, state)
    except (KeyError, TypeError, ValueError) as e:
        # Bad params or missing run state
        return False, f"Cannot check {assertion.type}: {e}"


def evaluate_all_assertions(
    assertions: List[ScenarioAssertion],
    state: Dict[str, Any],
) -> List[AssertionResult]:
    """
    Evaluate assertions against a run's state.

    `state` holds the run's "summary" and, for single runs, its "simulation".
    An assertion that cannot be checked is reported as failed.
    """
    results = []
    for assertion in assertions:
        passed, message = _check(assertion, state)
        results.append(AssertionResult(assertion.type, assertion.description, passed, message))
    return results


def format_assertion_results(results: List[AssertionResult]) -> str:
    passed = sum(1 for r in results if r.passed)
    lines = [f"Assertions: {passed}/{len(results)} passed"]
    lines.extend(f"  {r}" for r in results)
    return "\n".join(lines)
