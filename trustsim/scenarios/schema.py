"""
Scenario schema definitions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..simulation import STALL_TICKS

# A parameter drawn uniformly per entity; (x, x) means the fixed value x.
ValueRange = Tuple[float, float]

DEFAULT_SEED = 42
DEFAULT_ACTIVE_JOBS = 10


@dataclass
class NodeGroupSpec:
    """A group of nodes sharing the same parameter ranges."""
    count: int
    performance: ValueRange = (0.0, 0.0)
    false_ratio: ValueRange = (0.0, 0.0)
    trust: float = 0.0
    last_action_time: int = 0
    label: str = ""


@dataclass
class JobSpec:
    """The job backlog."""
    count: int
    difficulty: ValueRange = (1.0, 1.0)
    active: int = DEFAULT_ACTIVE_JOBS


@dataclass
class ScenarioAssertion:
    """An outcome check evaluated after the run."""
    type: str
    description: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Scenario:
    """A population, its workload and the checks to run against the outcome."""
    name: str
    description: str
    nodes: List[NodeGroupSpec]
    jobs: JobSpec
    seed: int = DEFAULT_SEED
    stall_ticks: int = STALL_TICKS
    max_ticks: Optional[int] = None
    tracked_nodes: List[int] = field(default_factory=list)
    assertions: List[ScenarioAssertion] = field(default_factory=list)

    @property
    def node_count(self) -> int:
        return sum(group.count for group in self.nodes)
