"""
Trust Simulation for Volunteer Computing

A discrete event simulation of trust-weighted redundant verification: jobs are
replicated across worker nodes until matching results carry enough correctness
weight, and nodes that corroborate the winning result earn trust.
"""

from .errors import (
    InvariantViolation,
    ValidationError,
    WrongConsensusError,
)
from .randomness import RandomSource
from .entities import (
    CANONICAL_HASH,
    COMPLETION_THRESHOLD,
    Job,
    Node,
    Registry,
    Reservation,
    Result,
)
from .ordering import OrderedQueue
from .project import Project
from .telemetry import TelemetryRecorder
from .simulation import (
    RunStatus,
    RunSummary,
    Simulation,
    SimulationConfig,
)
from .scenarios import (
    Scenario,
    build_simulation,
    load_scenario,
    parse_scenario,
)
from .runner import (
    BatchResult,
    ScenarioRunResult,
    ScenarioRunner,
    run_batch,
    run_scenario,
)

__all__ = [
    # Errors
    "InvariantViolation",
    "ValidationError",
    "WrongConsensusError",
    # Entities
    "RandomSource",
    "CANONICAL_HASH",
    "COMPLETION_THRESHOLD",
    "Job",
    "Node",
    "Registry",
    "Reservation",
    "Result",
    # Scheduling
    "OrderedQueue",
    "Project",
    # Driver
    "TelemetryRecorder",
    "RunStatus",
    "RunSummary",
    "Simulation",
    "SimulationConfig",
    # Scenarios
    "Scenario",
    "build_simulation",
    "load_scenario",
    "parse_scenario",
    # Runner
    "BatchResult",
    "ScenarioRunResult",
    "ScenarioRunner",
    "run_batch",
    "run_scenario",
]
