"""Data models for npmrm."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class ScanOptions(BaseModel):
    """Options chosen for a single run."""

    root: Path = Field(..., description="Root directory to scan")
    follow_symlinks: bool = Field(False, description="Follow symbolic links while walking")
    max_depth: Optional[int] = Field(
        None, ge=0, description="Maximum traversal depth (None for unlimited)"
    )
    skip_confirmation: bool = Field(False, description="Delete without prompting")
    json_output: bool = Field(False, description="Emit a JSON report instead of a table")

    @property
    def interactive(self) -> bool:
        """Whether spinners and progress bars should be shown."""
        return not self.json_output


class SizeResult(BaseModel):
    """Measured size of one node_modules directory."""

    path: str = Field(..., description="Absolute path of the node_modules directory")
    size_bytes: Optional[int] = Field(
        None, ge=0, description="Total size in bytes, None if it could not be measured"
    )
    error: Optional[str] = Field(None, description="Error message if measuring failed")

    @property
    def measured(self) -> bool:
        return self.size_bytes is not None

    @property
    def effective_bytes(self) -> int:
        """Size used for totals and sorting (failed measurements count as zero)."""
        return self.size_bytes or 0


class ScanReport(BaseModel):
    """Sizes of all node_modules found under a root, largest first."""

    root: str = Field(..., description="Absolute root that was scanned")
    rows: list[SizeResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, root: str, results: list[SizeResult]) -> "ScanReport":
        """Build a report with rows sorted by size descending."""
        rows = sorted(results, key=lambda r: r.effective_bytes, reverse=True)
        return cls(root=root, rows=rows)

    @property
    def total_bytes(self) -> int:
        return sum(r.effective_bytes for r in self.rows)

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def paths(self) -> list[str]:
        return [r.path for r in self.rows]


class DeletionOutcome(BaseModel):
    """Result of removing a single directory."""

    path: str = Field(..., description="Directory that was removed")
    success: bool = Field(..., description="Whether the directory is gone")
    error: Optional[str] = Field(None, description="Error message if removal failed")
    attempts: int = Field(1, ge=0, description="Number of removal attempts made")


class DeletionFailure(BaseModel):
    """A directory that could not be removed."""

    path: str
    error_message: str


class DeletionSummary(BaseModel):
    """Totals for a batch of removals."""

    outcomes: list[DeletionOutcome] = Field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def failures(self) -> list[DeletionFailure]:
        return [
            DeletionFailure(path=o.path, error_message=o.error or "unknown error")
            for o in self.outcomes
            if not o.success
        ]
