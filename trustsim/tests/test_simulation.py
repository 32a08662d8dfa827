"""
Simulation Driver Tests

Tests for:
- Completion of an honest pool
- Stall detection on an empty backlog and on an exhausted job
- Node retirement after last_action_time
- Wrong consensus surfaced as a run status
- Invariants checked tick by tick over a mixed population
- Determinism for a fixed seed
"""

import pytest

from trustsim.entities import CANONICAL_HASH, Registry
from trustsim.project import Project
from trustsim.randomness import RandomSource
from trustsim.simulation import (
    RunStatus, RunSummary, Simulation, SimulationConfig,
)
from trustsim.telemetry import TelemetryRecorder


def make_simulation(
    seed=11,
    honest=0,
    dishonest=0,
    false_ratio=1.0,
    jobs=1,
    active=None,
    performance=1.0,
    difficulty=1.0,
    tracked=(),
    **config,
):
    registry = Registry()
    rng = RandomSource(seed)
    project = Project(registry, rng)

    nodes = []
    for _ in range(honest):
        nodes.append(registry.create_node(performance=performance))
    for _ in range(dishonest):
        nodes.append(registry.create_node(performance=performance, false_ratio=false_ratio))
    for node in nodes:
        project.add_node(node)

    active = jobs if active is None else active
    for i in range(jobs):
        project.add_job(registry.create_job(difficulty=difficulty, active=i < active))

    telemetry = TelemetryRecorder([nodes[i].node_id for i in tracked])
    config.setdefault("quiet", True)
    return Simulation(project, telemetry=telemetry, config=SimulationConfig(**config))


# =============================================================================
# Completion Tests
# =============================================================================

class TestCompletion:
    def test_honest_pool_completes_all_jobs(self):
        """An honest pool finishes the backlog with canonical winners only."""
        sim = make_simulation(honest=30, jobs=3)
        summary = sim.run()

        assert summary.status == RunStatus.COMPLETED
        assert summary.completed
        assert summary.jobs_done == 3
        assert summary.total_jobs == 3
        for job in sim.project.jobs.values():
            assert job.is_done
            assert job.winning_hash == CANONICAL_HASH
        assert summary.results_sent >= summary.jobs_done
        assert summary.redundancy == summary.results_sent / summary.jobs_done

    def test_working_set_grows_as_jobs_complete(self):
        """Each completed job activates one more backlog job."""
        sim = make_simulation(honest=30, jobs=4, active=1)
        summary = sim.run()

        assert summary.status == RunStatus.COMPLETED
        assert summary.jobs_done == 4
        assert all(job.active for job in sim.project.jobs.values())

    def test_contributors_gain_trust(self):
        """Trust only grows and someone ends up trusted."""
        sim = make_simulation(honest=30, jobs=2)
        sim.run()

        trusts = [node.trust for node in sim.project.nodes.values()]
        assert all(t >= 0 for t in trusts)
        assert max(trusts) > 0
        assert sim.project.best_trust == max(trusts)

    def test_summary_text(self):
        """The completed summary reports tick, jobs, results and the ratio."""
        summary = RunSummary(
            status=RunStatus.COMPLETED, final_tick=120, jobs_done=4,
            total_jobs=4, results_sent=30, best_trust=2.0,
        )
        text = str(summary)
        assert "DONE, after tick 120 (jobs: 4, results total: 30)" in text
        assert "correctness ratio: 7.5" in text


# =============================================================================
# Termination Tests
# =============================================================================

class TestStall:
    def test_empty_backlog_stalls(self):
        """Nodes with no jobs end the run after the stall window."""
        sim = make_simulation(honest=3, jobs=0)
        summary = sim.run()

        assert summary.status == RunStatus.STALLED
        assert summary.final_tick == 1000
        assert summary.jobs_done == 0
        assert summary.redundancy == 0.0

    def test_custom_stall_window(self):
        sim = make_simulation(honest=2, jobs=0, stall_ticks=10)
        assert sim.run().final_tick == 10

    def test_lone_dishonest_node_never_completes(self):
        """A single fabricated submission stays below full weight forever."""
        sim = make_simulation(dishonest=1, jobs=1, stall_ticks=50)
        summary = sim.run()

        job = next(iter(sim.project.jobs.values()))
        assert summary.status == RunStatus.STALLED
        assert not job.is_done
        assert job.winning_hash is None
        assert job.active
        assert job.correctness_per_hash.get(CANONICAL_HASH) is None
        assert job.best_correctness < 1.0

    def test_busy_nodes_without_new_assignments_stall(self):
        """Outstanding work does not reset the stall counter by default."""
        sim = make_simulation(honest=20, jobs=1, performance=0.0, difficulty=20.0)
        summary = sim.run()

        assert summary.status == RunStatus.STALLED
        assert summary.final_tick == 1001
        assert summary.jobs_done == 0
        assert sim.in_flight > 0

    def test_in_flight_work_can_count_as_progress(self):
        """With the opt-in flag, outstanding work keeps the run alive."""
        sim = make_simulation(
            honest=20, jobs=1, performance=0.0, difficulty=20.0,
            count_in_flight_as_progress=True,
        )
        summary = sim.run()

        assert summary.status == RunStatus.COMPLETED
        assert summary.final_tick == 2001

    def test_tick_limit(self):
        """max_ticks caps a run that would otherwise continue."""
        sim = make_simulation(honest=3, jobs=0, max_ticks=20)
        summary = sim.run()

        assert summary.status == RunStatus.TICK_LIMIT
        assert summary.final_tick == 20


class TestRetirement:
    def test_retired_nodes_leave_the_queue(self):
        """A node past its deadline is not rescheduled once idle."""
        sim = make_simulation(honest=3, jobs=0, stall_ticks=30)
        leaver = next(iter(sim.project.nodes.values()))
        leaver.last_action_time = 5

        sim.run()

        assert leaver not in sim.project.node_order
        assert len(sim.project.node_order) == 2

    def test_retiring_node_finalizes_outstanding_work(self):
        """Work in progress is still submitted when the deadline passes."""
        sim = make_simulation(honest=1, jobs=1, performance=0.0, stall_ticks=200)
        node = next(iter(sim.project.nodes.values()))
        node.last_action_time = 10

        sim.run()

        assert node.is_idle
        assert len(node.results) == 1
        assert node not in sim.project.node_order


# =============================================================================
# Wrong Consensus Tests
# =============================================================================

class TestWrongConsensus:
    def test_fabricated_consensus_surfaces_as_status(self):
        """A fabricated winner ends the run with a distinguishable status."""
        sim = make_simulation(dishonest=2, jobs=1, stall_ticks=20)
        project = sim.project
        job = next(iter(project.jobs.values()))
        a, b = project.nodes.values()

        # Replay b's draws so a can submit the hash b is about to fabricate.
        project.rng = RandomSource(99)
        replay = RandomSource(99)
        replay.uniform()
        shared_hash = replay.fabricated_hash()

        project.node_order.remove(a)
        project.node_order.remove(b)
        project.take_job(job)
        a.start_work(job, 0.6, now=0)
        job.finalize(a.current_reservation, shared_hash, project.nodes)
        a.current_reservation = None
        b.start_work(job, 0.5, now=0)
        project.put_job(job)
        project.add_node(b)
        sim.in_flight = 1

        summary = sim.run()

        assert summary.status == RunStatus.WRONG_CONSENSUS
        assert summary.wrong_consensus is not None
        assert summary.wrong_consensus.winning_hash == shared_hash
        assert "Incorrect result got accepted" in summary.message


# =============================================================================
# Invariant Tests
# =============================================================================

class TestRunInvariants:
    def test_invariants_hold_every_tick(self):
        """Conservation, monotone best correctness and no repeat assignment."""
        sim = make_simulation(
            honest=20, dishonest=5, false_ratio=0.3, jobs=6, active=3,
            performance=0.8, max_ticks=2000,
        )
        best_seen = {job_id: 0.0 for job_id in sim.project.jobs}

        status = None
        while status is None:
            status = sim.step()
            sim.current_tick += 1

            for job in sim.project.jobs.values():
                assert job.assumed_correctness >= -0.01
                assert job.assumed_correctness + job.best_correctness <= job.total_reserved + 1e-9
                assert job.best_correctness >= best_seen[job.job_id]
                best_seen[job.job_id] = job.best_correctness

            for node in sim.project.nodes.values():
                if node.current_reservation is not None:
                    assert node.current_reservation.job_id not in node.submitted_jobs
                assert node.trust <= sim.project.best_trust

        assert status in (RunStatus.COMPLETED, RunStatus.STALLED, RunStatus.TICK_LIMIT)
        for job in sim.project.jobs.values():
            if job.is_done:
                assert job.winning_hash == CANONICAL_HASH


# =============================================================================
# Determinism and Telemetry Tests
# =============================================================================

class TestDeterminism:
    def test_same_seed_same_trajectories(self):
        """Two runs with one seed produce identical trust series."""
        first = make_simulation(seed=5, honest=15, dishonest=3, false_ratio=0.2,
                                jobs=4, performance=0.7, tracked=(0, 1, 15))
        second = make_simulation(seed=5, honest=15, dishonest=3, false_ratio=0.2,
                                 jobs=4, performance=0.7, tracked=(0, 1, 15))

        s1 = first.run()
        s2 = second.run()

        assert s1.to_dict() == s2.to_dict()
        assert first.telemetry.to_dict() == second.telemetry.to_dict()

    def test_tracked_nodes_recorded_every_tick(self):
        """Each tracked node gets one score and one raw trust sample per tick."""
        sim = make_simulation(honest=30, jobs=2, tracked=(0, 1))
        summary = sim.run()

        for node_id in sim.telemetry.tracked_ids():
            series = sim.telemetry.series_for(node_id)
            assert len(series.trust) == summary.final_tick + 1
            assert len(series.trust_abs) == summary.final_tick + 1
            assert [t for t, _ in series.trust] == list(range(summary.final_tick + 1))
            assert all(0.0 <= score <= 1.0 for _, score in series.trust)
        assert sim.telemetry.confirmations
        assert sim.telemetry.confirmations[-1][1] == pytest.approx(summary.redundancy)

    def test_assignments_recorded(self):
        """Each assignment of a tracked node is recorded with its score."""
        sim = make_simulation(honest=30, jobs=2, tracked=(0,))
        sim.run()

        node_id = sim.telemetry.tracked_ids()[0]
        node = sim.project.nodes[node_id]
        series = sim.telemetry.series_for(node_id)
        assert len(series.jobs) >= len(node.results)


class TestProgressOutput:
    def test_progress_lines_printed(self, capsys):
        """Without quiet, ticks with activity print a progress line."""
        sim = make_simulation(honest=2, jobs=0, stall_ticks=3, quiet=False)
        sim.run()

        out = capsys.readouterr().out
        assert "tick: 0 jobs: 0" in out
        assert "No jobs assigned for 3 ticks, bailing out." in out

    def test_quiet_prints_nothing(self, capsys):
        sim = make_simulation(honest=2, jobs=0, stall_ticks=3)
        sim.run()
        assert capsys.readouterr().out == ""
