"""
Scenario files: population, workload and outcome checks for a run.
"""

from .schema import (
    JobSpec,
    NodeGroupSpec,
    Scenario,
    ScenarioAssertion,
)
from .parser import parse_scenario, load_scenario
from .builder import build_simulation

__all__ = [
    # Schema
    "JobSpec",
    "NodeGroupSpec",
    "Scenario",
    "ScenarioAssertion",
    # Parser
    "parse_scenario",
    "load_scenario",
    # Builder
    "build_simulation",
]
