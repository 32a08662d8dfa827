"""
Assertion Handler Registry

Maps assertion types to their evaluation functions.
"""

from typing import Any, Callable, Dict

from ..entities import CANONICAL_HASH
from ..simulation import RunStatus


# Type for assertion handlers
# Handler(assertion_params, run_state) -> (passed, message)
AssertionHandler = Callable[[Dict[str, Any], Dict[str, Any]], tuple]


# Global registry of assertion handlers
ASSERTION_HANDLERS: Dict[str, AssertionHandler] = {}


def register_assertion_handler(assertion_type: str):
    """
    Decorator to register an assertion handler.

    Usage:
        @register_assertion_handler("run_completed")
        def check_run_completed(params, state):
            ...
            return (True, "Run completed")
    """
    def decorator(func: AssertionHandler) -> AssertionHandler:
        ASSERTION_HANDLERS[assertion_type] = func
        return func
    return decorator


# =============================================================================
# Built-in Assertion Handlers
# =============================================================================

@register_assertion_handler("run_completed")
def check_run_completed(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """Check that every job was completed."""
    summary = state["summary"]
    if summary.status == RunStatus.COMPLETED:
        return (True, f"All {summary.total_jobs} jobs done at tick {summary.final_tick}")
    return (False, f"Run ended {summary.status.value}: {summary.message}")


@register_assertion_handler("run_stalled")
def check_run_stalled(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """Check that the run gave up for lack of assignable work."""
    summary = state["summary"]
    if summary.status == RunStatus.STALLED:
        return (True, f"Run stalled at tick {summary.final_tick}")
    return (False, f"Run ended {summary.status.value}, expected stalled")


@register_assertion_handler("no_wrong_consensus")
def check_no_wrong_consensus(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """Check that no fabricated hash reached consensus."""
    summary = state["summary"]
    if summary.status == RunStatus.WRONG_CONSENSUS:
        return (False, summary.message)
    return (True, "No fabricated result was accepted")


@register_assertion_handler("wrong_consensus_detected")
def check_wrong_consensus_detected(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """Check that the run ended because a fabricated hash won."""
    summary = state["summary"]
    if summary.status == RunStatus.WRONG_CONSENSUS:
        return (True, summary.message)
    return (False, f"Run ended {summary.status.value}, no wrong consensus")


@register_assertion_handler("max_redundancy")
def check_max_redundancy(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check results sent per completed job.

    Params:
        value: Highest acceptable results-per-job ratio
    """
    limit = float(params.get("value", 0.0))
    summary = state["summary"]
    if summary.jobs_done == 0:
        return (False, "No jobs done")
    if summary.redundancy <= limit:
        return (True, f"Redundancy {summary.redundancy:.2f} <= {limit}")
    return (False, f"Redundancy {summary.redundancy:.2f} > {limit}")


@register_assertion_handler("min_jobs_done")
def check_min_jobs_done(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check the number of completed jobs.

    Params:
        value: Minimum number of jobs done
    """
    minimum = int(params.get("value", 0))
    done = state["summary"].jobs_done
    if done >= minimum:
        return (True, f"{done} jobs done (>= {minimum})")
    return (False, f"{done} jobs done, expected at least {minimum}")


@register_assertion_handler("tracked_trust_score_above")
def check_tracked_trust_score(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """
    Check a tracked node's final trust score.

    Params:
        node: 1-based index among tracked nodes
        value: Score the node must exceed
    """
    simulation = state["simulation"]
    index = int(params.get("node", 1))
    threshold = float(params.get("value", 0.0))

    tracked = simulation.telemetry.tracked_ids()
    if not 1 <= index <= len(tracked):
        return (False, f"Tracked node {index} not found")

    node = simulation.project.nodes[tracked[index - 1]]
    score = simulation.project.trust_score(node)
    if score > threshold:
        return (True, f"Node {index} trust score {score:.3f} > {threshold}")
    return (False, f"Node {index} trust score {score:.3f} <= {threshold}")


@register_assertion_handler("all_winners_canonical")
def check_all_winners_canonical(params: Dict[str, Any], state: Dict[str, Any]) -> tuple:
    """Check that every completed job closed on the canonical hash."""
    jobs = state["simulation"].project.jobs
    done = [job for job in jobs.values() if job.is_done]
    wrong = [job.job_id for job in done if job.winning_hash != CANONICAL_HASH]
    if wrong:
        return (False, f"Jobs closed on fabricated hashes: {wrong}")
    return (True, f"All {len(done)} completed jobs closed on the canonical hash")
