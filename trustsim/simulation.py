"""
Discrete-event simulation driver.

Each tick drains the nodes that are due, finalizes their outstanding work,
hands them new jobs and puts them back in the node order. The run ends when
every job is done, when no work could be handed out for too long, or when a
fabricated result wins consensus.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .entities import Job, Node
from .errors import WrongConsensusError
from .project import Project, clamp
from .telemetry import TelemetryRecorder

# =============================================================================
# Parameters
# =============================================================================

STALL_TICKS = 1000  # Ticks without any assignment before giving up
CORRECTNESS_JITTER = 0.1  # Noise added to a node's trust score at assignment
MAX_SUBMISSION_CORRECTNESS = 0.99  # No single submission can close a job alone


class RunStatus(Enum):
    COMPLETED = "completed"
    STALLED = "stalled"
    WRONG_CONSENSUS = "wrong_consensus"
    TICK_LIMIT = "tick_limit"


@dataclass
class SimulationConfig:
    """Per-run driver settings."""
    stall_ticks: int = STALL_TICKS
    max_ticks: Optional[int] = None
    quiet: bool = False
    # Treat ticks with reservations outstanding as progress for the stall counter
    count_in_flight_as_progress: bool = False


@dataclass
class RunSummary:
    """Outcome of one simulation run."""
    status: RunStatus
    final_tick: int
    jobs_done: int
    total_jobs: int
    results_sent: int
    best_trust: float
    message: str = ""
    wrong_consensus: Optional[WrongConsensusError] = None

    @property
    def completed(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def redundancy(self) -> float:
        """Results sent per completed job."""
        if self.jobs_done == 0:
            return 0.0
        return self.results_sent / self.jobs_done

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "final_tick": self.final_tick,
            "jobs_done": self.jobs_done,
            "total_jobs": self.total_jobs,
            "results_sent": self.results_sent,
            "redundancy": self.redundancy,
            "best_trust": self.best_trust,
            "message": self.message,
        }

    def __str__(self) -> str:
        if self.status != RunStatus.COMPLETED:
            return f"{self.status.value.upper()} at tick {self.final_tick}: {self.message}"
        return (
            f"DONE, after tick {self.final_tick} "
            f"(jobs: {self.jobs_done}, results total: {self.results_sent})\n"
            f"correctness ratio: {self.redundancy:g}"
        )


class Simulation:
    """Runs the tick loop over a populated Project."""

    def __init__(
        self,
        project: Project,
        telemetry: Optional[TelemetryRecorder] = None,
        config: Optional[SimulationConfig] = None,
    ):
        self.project = project
        self.telemetry = telemetry or TelemetryRecorder()
        self.config = config or SimulationConfig()

        self.current_tick = 0
        self.jobs_done = 0
        self.results_sent = 0
        self.in_flight = 0
        self.no_work_for = 0

    @property
    def total_jobs(self) -> int:
        return len(self.project.jobs)

    def run(self) -> RunSummary:
        """Run until completion, stall, tick limit or wrong consensus."""
        while True:
            try:
                status = self.step()
            except WrongConsensusError as e:
                if not self.config.quiet:
                    print(str(e))
                return self._summary(RunStatus.WRONG_CONSENSUS, str(e), wrong_consensus=e)

            if status is not None:
                return self._summary(status, self._status_message(status))
            self.current_tick += 1

    def step(self) -> Optional[RunStatus]:
        """
        Process one tick.

        Returns the terminal status if the run ended on this tick, else None.
        """
        tick = self.current_tick
        found_work = False

        processed: List[Node] = []
        for node in self.project.pop_due_nodes(tick):
            if not node.is_idle:
                self._finalize(node)

            if node.is_retired(tick):
                continue

            if self._assign(node):
                found_work = True
            else:
                node.next_action_time = tick
            processed.append(node)

        if found_work or (self.config.count_in_flight_as_progress and self.in_flight > 0):
            self.no_work_for = 0
        else:
            self.no_work_for += 1

        self._record_tick(tick)

        for node in processed:
            self.project.add_node(node)
        if processed and not self.config.quiet:
            print(f"tick: {tick} jobs: {self.jobs_done}")

        if self.jobs_done > 0:
            self.telemetry.record_confirmations(tick, self.results_sent / self.jobs_done)

        if self.total_jobs > 0 and self.jobs_done >= self.total_jobs:
            return RunStatus.COMPLETED
        if self.no_work_for > self.config.stall_ticks:
            if not self.config.quiet:
                print(f"No jobs assigned for {self.config.stall_ticks} ticks, bailing out.")
            return RunStatus.STALLED
        if self.config.max_ticks is not None and tick >= self.config.max_ticks:
            return RunStatus.TICK_LIMIT
        return None

    def _finalize(self, node: Node):
        project = self.project
        job = project.registry.job_for(node.current_reservation)
        was_done = job.is_done

        project.take_job(job)
        self.in_flight -= 1
        self.results_sent += 1
        try:
            node.finish_work(job, project.rng, project.nodes)
        finally:
            project.put_job(job)

        if not was_done and job.is_done:
            project.activate_job()
            self.jobs_done += 1

        self._record_contributors(job)

    def _record_contributors(self, job: Job):
        for result in job.iter_results():
            self.project.record_trust(self.project.nodes[result.node_id])

    def _assign(self, node: Node) -> bool:
        project = self.project
        job = project.find_job_for_node(node)
        if job is None:
            return False

        score = project.trust_score(node)
        self.telemetry.record_assignment(self.current_tick, node.node_id, score)

        jitter = project.rng.uniform_range(-CORRECTNESS_JITTER, CORRECTNESS_JITTER)
        correctness = clamp(score + jitter, 0.0, MAX_SUBMISSION_CORRECTNESS)

        node.start_work(job, correctness, self.current_tick)
        project.put_job(job)
        self.in_flight += 1
        return True

    def _record_tick(self, tick: int):
        for node_id in self.telemetry.tracked_ids():
            node = self.project.nodes[node_id]
            self.telemetry.record_tick(tick, node_id, self.project.trust_score(node), node.trust)

    def _status_message(self, status: RunStatus) -> str:
        if status == RunStatus.STALLED:
            return f"No jobs assigned for {self.config.stall_ticks} ticks"
        if status == RunStatus.TICK_LIMIT:
            return f"Tick limit {self.config.max_ticks} reached"
        return ""

    def _summary(
        self,
        status: RunStatus,
        message: str,
        wrong_consensus: Optional[WrongConsensusError] = None,
    ) -> RunSummary:
        return RunSummary(
            status=status,
            final_tick=self.current_tick,
            jobs_done=self.jobs_done,
            total_jobs=self.total_jobs,
            results_sent=self.results_sent,
            best_trust=self.project.best_trust,
            message=message,
            wrong_consensus=wrong_consensus,
        )
