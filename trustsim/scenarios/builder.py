"""
Build a runnable Simulation from a Scenario.

Node and job parameters are drawn from the run's RandomSource, so the seed
fixes the population as well as the run.
"""

from typing import Optional

from ..entities import Registry
from ..project import Project
from ..randomness import RandomSource
from ..simulation import Simulation, SimulationConfig
from ..telemetry import TelemetryRecorder
from .schema import Scenario, ValueRange


def draw(rng: RandomSource, bounds: ValueRange) -> float:
    """Draw a value from a range; fixed values consume no randomness."""
    lo, hi = bounds
    if lo == hi:
        return lo
    return rng.uniform_range(lo, hi)


def build_simulation(
    scenario: Scenario,
    seed: Optional[int] = None,
    quiet: bool = True,
    max_ticks: Optional[int] = None,
) -> Simulation:
    """
    Create the registry, project, telemetry and driver for a scenario.

    Args:
        scenario: The parsed scenario
        seed: Overrides the scenario's seed when given
        quiet: Suppress per-tick progress output
        max_ticks: Overrides the scenario's tick limit when given

    Returns:
        A Simulation ready to run
    """
    rng = RandomSource(scenario.seed if seed is None else seed)
    registry = Registry()
    project = Project(registry, rng)

    nodes = []
    for group in scenario.nodes:
        for i in range(group.count):
            label = f"{group.label}-{i}" if group.label else ""
            node = registry.create_node(
                performance=draw(rng, group.performance),
                false_ratio=draw(rng, group.false_ratio),
                trust=group.trust,
                last_action_time=group.last_action_time,
                label=label,
            )
            nodes.append(node)
            project.add_node(node)

    for i in range(scenario.jobs.count):
        job = registry.create_job(
            difficulty=draw(rng, scenario.jobs.difficulty),
            active=i < scenario.jobs.active,
        )
        project.add_job(job)

    tracked = [nodes[index] for index in scenario.tracked_nodes]
    telemetry = TelemetryRecorder(
        [node.node_id for node in tracked],
        labels={node.node_id: node.label for node in tracked if node.label},
    )

    config = SimulationConfig(
        stall_ticks=scenario.stall_ticks,
        max_ticks=scenario.max_ticks if max_ticks is None else max_ticks,
        quiet=quiet,
    )
    return Simulation(project, telemetry=telemetry, config=config)
