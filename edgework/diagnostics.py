"""
Diagnostics returned by lifecycle operations.

Operations never raise at their boundary; they hand back a Diagnostics list
and the host decides what a failure means (exit code, exception, ...).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List


class Severity(str, Enum):
    """Diagnostic severity levels."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single structured error or warning."""

    severity: Severity
    summary: str
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "severity": self.severity.value,
            "summary": self.summary,
            "detail": self.detail,
        }

    def __str__(self) -> str:
        if self.detail:
            return f"{self.summary}: {self.detail}"
        return self.summary


@dataclass
class Diagnostics:
    """Ordered list of diagnostics produced by one operation."""

    entries: List[Diagnostic] = field(default_factory=list)

    def add_error(self, summary: str, detail: str = "") -> None:
        self.entries.append(Diagnostic(Severity.ERROR, summary, detail))

    def add_warning(self, summary: str, detail: str = "") -> None:
        self.entries.append(Diagnostic(Severity.WARNING, summary, detail))

    def extend(self, other: "Diagnostics") -> None:
        self.entries.extend(other.entries)

    def has_error(self) -> bool:
        """True if any entry is an error; the host treats that as failure."""
        return any(entry.severity is Severity.ERROR for entry in self.entries)

    def errors(self) -> List[Diagnostic]:
        return [entry for entry in self.entries if entry.severity is Severity.ERROR]

    def warnings(self) -> List[Diagnostic]:
        return [entry for entry in self.entries if entry.severity is Severity.WARNING]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
