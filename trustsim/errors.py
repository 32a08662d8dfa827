"""
Exception types raised by the simulation.

Two failure classes are kept apart:
- InvariantViolation: the simulator itself is broken (never caught by the driver)
- WrongConsensusError: the simulated trust scheme accepted a fabricated result
"""


class InvariantViolation(AssertionError):
    """A core bookkeeping invariant was broken."""


class WrongConsensusError(Exception):
    """A non-canonical hash reached full correctness on a job."""

    def __init__(self, job_id: int, winning_hash: int, correctness: float):
        self.job_id = job_id
        self.winning_hash = winning_hash
        self.correctness = correctness
        super().__init__(
            f"Incorrect result got accepted: job {job_id} closed on hash "
            f"{winning_hash} with correctness {correctness:.3f}"
        )


class ValidationError(ValueError):
    """Raised when a scenario file is invalid."""
