"""
Assignment scheduler.

The Project keeps the two orders the simulation runs on:
- jobs, active before inactive, then most corroborated first
- nodes, earliest next_action_time first (the event queue)

and decides which job a node should work on next.
"""

from typing import Dict, List, Optional, Tuple

from .entities import COMPLETION_THRESHOLD, Job, Node, Registry
from .errors import InvariantViolation
from .ordering import OrderedQueue
from .randomness import RandomSource

# =============================================================================
# Parameters
# =============================================================================

TRUST_FLOOR = 0.1  # Score every node gets on top of its relative trust
TARGET_LOW = 1.0  # Range of the randomized target confidence before
TARGET_HIGH = 1.3  # subtracting the node's trust score


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def job_sort_key(job: Job) -> Tuple:
    return (not job.active, -job.get_correctness())


def node_sort_key(node: Node) -> Tuple:
    return (node.next_action_time,)


class Project:
    """Owns the job and node orders and the trust normalisation."""

    def __init__(self, registry: Registry, rng: RandomSource):
        self.registry = registry
        self.rng = rng
        self.best_trust = 0.0
        self.job_order = OrderedQueue(job_sort_key, lambda job: job.job_id)
        self.node_order = OrderedQueue(node_sort_key, lambda node: node.node_id)

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    @property
    def jobs(self) -> Dict[int, Job]:
        return self.registry.jobs

    @property
    def nodes(self) -> Dict[int, Node]:
        return self.registry.nodes

    def add_job(self, job: Job):
        self.job_order.insert(job)

    def add_node(self, node: Node):
        """Queue a node by its next_action_time and record its trust."""
        self.node_order.insert(node)
        self.record_trust(node)

    # -------------------------------------------------------------------------
    # Trust
    # -------------------------------------------------------------------------

    def trust_score(self, node: Node) -> float:
        """Node trust relative to the best trust seen, plus a floor."""
        if self.best_trust == 0.0:
            return TRUST_FLOOR

        if node.trust > self.best_trust:
            raise InvariantViolation(
                f"Node {node.node_id} trust {node.trust:.4f} exceeds tracked "
                f"maximum {self.best_trust:.4f}"
            )
        return clamp(TRUST_FLOOR + node.trust / self.best_trust, 0.0, 1.0)

    def record_trust(self, node: Node):
        """Must be called whenever a node's trust may have changed."""
        if node.trust > self.best_trust:
            self.best_trust = node.trust

    # -------------------------------------------------------------------------
    # Job order
    # -------------------------------------------------------------------------

    def take_job(self, job: Job):
        """Remove a job from the order before mutating it."""
        self.job_order.remove(job)

    def put_job(self, job: Job):
        """Re-insert a job after mutating it."""
        self.job_order.insert(job)

    def find_job_for_node(self, node: Node) -> Optional[Job]:
        """
        Pick the job a node should work on next and take it out of the order.

        The search starts at a randomized target confidence that is lower for
        trusted nodes, then falls back to scanning every active job.
        Returns None when no eligible job exists.
        """
        target = clamp(
            self.rng.uniform_range(TARGET_LOW, TARGET_HIGH) - self.trust_score(node),
            0.0,
            1.0,
        )

        job = self._scan_jobs(node, target)
        if job is None:
            job = self._scan_jobs(node, COMPLETION_THRESHOLD)
        return job

    def _scan_jobs(self, node: Node, target: float) -> Optional[Job]:
        for job in self.job_order.iter_from((False, -target)):
            if not job.active:
                break
            if job.get_correctness() >= COMPLETION_THRESHOLD:
                continue
            if node.has_submitted(job):
                continue

            self.job_order.remove(job)
            return job
        return None

    def activate_job(self) -> Optional[Job]:
        """
        Activate the highest-priority inactive job.

        Returns the activated job, or None when every job is already active.
        """
        for job in self.job_order.iter_from((True,)):
            self.job_order.remove(job)
            job.active = True
            self.job_order.insert(job)
            return job
        return None

    # -------------------------------------------------------------------------
    # Node order
    # -------------------------------------------------------------------------

    def pop_due_nodes(self, tick: int) -> List[Node]:
        """Remove and return every node due at or before `tick`, earliest first."""
        due = []
        for node in self.node_order:
            if node.next_action_time > tick:
                break
            due.append(node)

        for node in due:
            self.node_order.remove(node)
        return due
