"""Models for execution results."""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class ExecutionSummary:
    """Aggregate counters of a finished run."""

    total: int
    failed: int
    errors: int
    skipped: int
    time: float

    @property
    def has_failures(self) -> bool:
        """Whether the run should exit with a failing status.

        Skipped tests never count.
        """
        return self.failed > 0 or self.errors > 0

    def format_line(self) -> str:
        """Render the one-line aggregate shown at the end of a run."""
        return (
            f"Tests run: {self.total}, Errors: {self.errors}, "
            f"Failures: {self.failed}, Skipped: {self.skipped}. "
            f"Time: {self.time:.3f}s"
        )
