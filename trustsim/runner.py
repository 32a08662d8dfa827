"""
Scenario Runner

Ties together:
- Scenario parsing
- Population setup
- Simulation execution
- Assertion evaluation
and repeats a scenario over several seeds for batch experiments.
"""

import statistics
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .assertions import AssertionResult, evaluate_all_assertions
from .scenarios import Scenario, build_simulation
from .simulation import RunStatus, RunSummary, Simulation


@dataclass
class ScenarioRunResult:
    """Result of running a scenario once."""
    scenario_name: str
    seed: int
    summary: RunSummary
    assertion_results: List[AssertionResult]
    all_passed: bool
    simulation: Optional[Simulation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario_name,
            "seed": self.seed,
            "summary": self.summary.to_dict(),
            "assertions": [
                {"type": r.assertion_type, "passed": r.passed, "message": r.message}
                for r in self.assertion_results
            ],
            "all_passed": self.all_passed,
        }

    def __str__(self) -> str:
        status = "PASSED" if self.all_passed else "FAILED"
        return (
            f"Scenario '{self.scenario_name}' (seed {self.seed}): {status}\n"
            f"  Status: {self.summary.status.value}, Ticks: {self.summary.final_tick}\n"
            f"  Jobs: {self.summary.jobs_done}/{self.summary.total_jobs}, "
            f"Results: {self.summary.results_sent}, "
            f"Redundancy: {self.summary.redundancy:.2f}\n"
            f"  Assertions: {sum(1 for a in self.assertion_results if a.passed)}"
            f"/{len(self.assertion_results)} passed"
        )


class ScenarioRunner:
    """Runs one scenario with one seed."""

    def __init__(
        self,
        scenario: Scenario,
        seed: Optional[int] = None,
        quiet: bool = True,
        max_ticks: Optional[int] = None,
    ):
        self.scenario = scenario
        self.seed = scenario.seed if seed is None else seed
        self.simulation = build_simulation(
            scenario, seed=self.seed, quiet=quiet, max_ticks=max_ticks,
        )

    def run(self) -> ScenarioRunResult:
        summary = self.simulation.run()
        state = {"summary": summary, "simulation": self.simulation}
        results = evaluate_all_assertions(self.scenario.assertions, state)

        # Without assertions a run passes when every job got done.
        if results:
            passed = all(r.passed for r in results)
        else:
            passed = summary.completed

        return ScenarioRunResult(
            scenario_name=self.scenario.name,
            seed=self.seed,
            summary=summary,
            assertion_results=results,
            all_passed=passed,
            simulation=self.simulation,
        )


def run_scenario(
    scenario: Scenario,
    seed: Optional[int] = None,
    quiet: bool = True,
    max_ticks: Optional[int] = None,
) -> ScenarioRunResult:
    """Convenience function to run a scenario once."""
    return ScenarioRunner(scenario, seed=seed, quiet=quiet, max_ticks=max_ticks).run()


@dataclass
class BatchResult:
    """Results of one scenario run over several seeds."""
    scenario_name: str
    runs: List[ScenarioRunResult] = field(default_factory=list)

    @property
    def all_passed(self) -> bool:
        return all(run.all_passed for run in self.runs)

    def status_counts(self) -> Dict[str, int]:
        return dict(Counter(run.summary.status.value for run in self.runs))

    def completed_runs(self) -> List[ScenarioRunResult]:
        return [run for run in self.runs if run.summary.status == RunStatus.COMPLETED]

    def mean_redundancy(self) -> float:
        completed = self.completed_runs()
        if not completed:
            return 0.0
        return statistics.mean(run.summary.redundancy for run in completed)

    def mean_final_tick(self) -> float:
        completed = self.completed_runs()
        if not completed:
            return 0.0
        return statistics.mean(run.summary.final_tick for run in completed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario_name,
            "runs": [run.to_dict() for run in self.runs],
            "status_counts": self.status_counts(),
            "mean_redundancy": self.mean_redundancy(),
            "mean_final_tick": self.mean_final_tick(),
        }

    def __str__(self) -> str:
        counts = ", ".join(f"{k}: {v}" for k, v in sorted(self.status_counts().items()))
        return (
            f"Scenario '{self.scenario_name}': {len(self.runs)} runs ({counts})\n"
            f"  Mean redundancy (completed runs): {self.mean_redundancy():.2f}\n"
            f"  Mean final tick (completed runs): {self.mean_final_tick():.1f}"
        )


def run_batch(
    scenario: Scenario,
    samples: int,
    base_seed: Optional[int] = None,
    quiet: bool = True,
    max_ticks: Optional[int] = None,
) -> BatchResult:
    """
    Run a scenario with consecutive seeds.

    A run that ends in wrong consensus is recorded and the batch continues.
    """
    start = scenario.seed if base_seed is None else base_seed
    batch = BatchResult(scenario_name=scenario.name)
    for sample in range(samples):
        result = run_scenario(scenario, seed=start + sample, quiet=quiet, max_ticks=max_ticks)
        result.simulation = None
        batch.runs.append(result)
    return batch
