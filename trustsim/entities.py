"""
Jobs, nodes and the consensus bookkeeping between them.

Contains:
- Reservation and Result records
- Job with the reserve/finalize protocol and trust payout
- Node with the start/finish work lifecycle
- Registry, the arena that owns every entity and hands out integer handles
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from .errors import InvariantViolation, WrongConsensusError
from .randomness import RandomSource

# =============================================================================
# Parameters
# =============================================================================

CANONICAL_HASH = 0  # The objectively correct computation result
COMPLETION_THRESHOLD = 1.0  # Correctness a single hash needs to close a job
CORRECTNESS_EPSILON = 0.01  # Rounding slack on released reservations
DELAY_SCALE = 100  # Ticks of work for difficulty 1.0 at performance 0.0


# =============================================================================
# Records
# =============================================================================

@dataclass
class Reservation:
    """A node's pending claim on a job, carrying a provisional correctness."""
    job_id: int
    node_id: int
    correctness: float


@dataclass(frozen=True)
class Result:
    """A finalized submission of one hash by one node for one job."""
    hash: int
    node_id: int
    job_id: int
    correctness: float


# =============================================================================
# Job
# =============================================================================

@dataclass
class Job:
    """A unit of work that is replicated until weighted agreement reaches 1.0."""
    job_id: int
    difficulty: float = 1.0
    active: bool = False
    assumed_correctness: float = 0.0
    best_correctness: float = 0.0
    total_reserved: float = 0.0
    winning_hash: Optional[int] = None
    correctness_per_hash: Dict[int, float] = field(default_factory=dict)
    reservations: Dict[int, Reservation] = field(default_factory=dict)
    results: Dict[int, List[Result]] = field(default_factory=dict)

    def get_correctness(self) -> float:
        """In-flight plus best submitted correctness; the scheduling priority."""
        return self.assumed_correctness + self.best_correctness

    @property
    def is_done(self) -> bool:
        return self.best_correctness >= COMPLETION_THRESHOLD

    def iter_results(self) -> Iterator[Result]:
        """Yield stored results ordered by hash, then submission order."""
        for result_hash in sorted(self.results):
            yield from self.results[result_hash]

    def reserve(self, reservation: Reservation):
        """Register a node's in-flight work against this job."""
        if reservation.node_id in self.reservations:
            raise InvariantViolation(
                f"Job {self.job_id} already reserved for node {reservation.node_id}"
            )
        self.assumed_correctness += reservation.correctness
        self.total_reserved += reservation.correctness
        self.reservations[reservation.node_id] = reservation

    def finalize(
        self,
        reservation: Reservation,
        result_hash: int,
        nodes: Dict[int, "Node"],
    ) -> Optional[Result]:
        """
        Release a reservation and record the submitted hash.

        Returns None when the job was already done (a late submission).
        When this submission closes the job, every node that agreed with the
        winning hash is credited best_correctness minus its own correctness.

        Raises:
            InvariantViolation: the reservation is unknown or releasing it
                drives assumed correctness below -epsilon
            WrongConsensusError: the job closed on a non-canonical hash
        """
        held = self.reservations.pop(reservation.node_id, None)
        if held is not reservation:
            raise InvariantViolation(
                f"Job {self.job_id} holds no reservation for node {reservation.node_id}"
            )

        self.assumed_correctness -= reservation.correctness
        if self.assumed_correctness < -CORRECTNESS_EPSILON:
            raise InvariantViolation(
                f"Job {self.job_id} assumed correctness dropped to "
                f"{self.assumed_correctness:.4f}"
            )

        if self.is_done:
            return None

        result = Result(
            hash=result_hash,
            node_id=reservation.node_id,
            job_id=self.job_id,
            correctness=reservation.correctness,
        )
        self.results.setdefault(result_hash, []).append(result)

        total = self.correctness_per_hash.get(result_hash, 0.0) + result.correctness
        self.correctness_per_hash[result_hash] = total
        if total > self.best_correctness:
            self.best_correctness = total

        if self.is_done:
            self.winning_hash = result_hash
            self._pay_out(result_hash, nodes)
            if result_hash != CANONICAL_HASH:
                raise WrongConsensusError(self.job_id, result_hash, self.best_correctness)

        return result

    def _pay_out(self, winning_hash: int, nodes: Dict[int, "Node"]):
        # Reward is the corroboration received from everyone else.
        for result in self.results[winning_hash]:
            nodes[result.node_id].trust += self.best_correctness - result.correctness


# =============================================================================
# Node
# =============================================================================

@dataclass
class Node:
    """A simulated worker with speed, honesty and accumulated trust."""
    node_id: int
    label: str = ""
    trust: float = 0.0
    performance: float = 0.0
    false_ratio: float = 0.0
    next_action_time: int = 0
    last_action_time: int = 0  # 0 means no deadline
    current_reservation: Optional[Reservation] = None
    submitted_jobs: Set[int] = field(default_factory=set)
    results: List[Result] = field(default_factory=list)

    def __post_init__(self):
        if not self.label:
            self.label = f"node-{self.node_id}"

    @property
    def is_idle(self) -> bool:
        return self.current_reservation is None

    def is_retired(self, now: int) -> bool:
        """True once the node's deadline (if any) lies before `now`."""
        return self.last_action_time != 0 and self.last_action_time < now

    def has_submitted(self, job: Job) -> bool:
        return job.job_id in self.submitted_jobs

    def work_delay(self, job: Job) -> int:
        """Ticks until a job started now is ready to finalize."""
        return 1 + math.floor(DELAY_SCALE * job.difficulty * (1.0 - self.performance))

    def start_work(self, job: Job, correctness: float, now: int):
        """Reserve the job with the given correctness and schedule completion."""
        if self.current_reservation is not None:
            raise InvariantViolation(
                f"Node {self.node_id} is already working on job "
                f"{self.current_reservation.job_id}"
            )
        reservation = Reservation(
            job_id=job.job_id,
            node_id=self.node_id,
            correctness=correctness,
        )
        job.reserve(reservation)
        self.current_reservation = reservation
        self.next_action_time = now + self.work_delay(job)

    def finish_work(
        self,
        job: Job,
        rng: RandomSource,
        nodes: Dict[int, "Node"],
    ) -> Optional[Result]:
        """
        Submit a hash for the current reservation.

        With probability false_ratio the node reports a fabricated hash
        instead of the canonical one.
        """
        reservation = self.current_reservation
        if reservation is None or reservation.job_id != job.job_id:
            raise InvariantViolation(f"Node {self.node_id} has no work on job {job.job_id}")

        result_hash = CANONICAL_HASH
        if self.false_ratio > 0.0 and rng.uniform() < self.false_ratio:
            result_hash = rng.fabricated_hash()

        try:
            result = job.finalize(reservation, result_hash, nodes)
        finally:
            self.current_reservation = None

        if result is not None:
            self.results.append(result)
            self.submitted_jobs.add(job.job_id)
        return result


# =============================================================================
# Registry
# =============================================================================

class Registry:
    """Owns all jobs and nodes; entities refer to each other by handle."""

    def __init__(self):
        self.jobs: Dict[int, Job] = {}
        self.nodes: Dict[int, Node] = {}
        self._counter = 0

    def _next_id(self) -> int:
        self._counter += 1
        return self._counter

    def create_job(self, difficulty: float = 1.0, active: bool = False) -> Job:
        """Create a job and return it."""
        if difficulty < 0:
            raise ValueError(f"Job difficulty must be non-negative, got {difficulty}")
        job = Job(job_id=self._next_id(), difficulty=difficulty, active=active)
        self.jobs[job.job_id] = job
        return job

    def create_node(
        self,
        performance: float = 0.0,
        false_ratio: float = 0.0,
        trust: float = 0.0,
        last_action_time: int = 0,
        label: str = "",
    ) -> Node:
        """Create a node and return it."""
        if not 0.0 <= performance <= 1.0:
            raise ValueError(f"Node performance must be in [0, 1], got {performance}")
        if not 0.0 <= false_ratio <= 1.0:
            raise ValueError(f"Node false_ratio must be in [0, 1], got {false_ratio}")
        if trust < 0:
            raise ValueError(f"Node trust must be non-negative, got {trust}")
        node = Node(
            node_id=self._next_id(),
            label=label,
            trust=trust,
            performance=performance,
            false_ratio=false_ratio,
            last_action_time=last_action_time,
        )
        self.nodes[node.node_id] = node
        return node

    def job_for(self, reservation: Reservation) -> Job:
        return self.jobs[reservation.job_id]
