"""
Operation log - append-only record of destructive actions in one cleanup run.

The persisted log is the only input to revert.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path


def utc_now() -> str:
    """Current time as an ISO string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class OperationLogEntry:
    """A single trash or move action."""

    type: str  # "trash" or "move"
    source: str
    destination: str | None
    size: int
    timestamp: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> OperationLogEntry:
        return cls(
            type=data["type"],
            source=data["source"],
            destination=data.get("destination"),
            size=int(data.get("size") or 0),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class OperationLog:
    """All destructive actions of one run, in execution order."""

    timestamp: str = field(default_factory=utc_now)
    operations: list[OperationLogEntry] = field(default_factory=list)

    def add_trash(self, source: Path, size: int):
        self.operations.append(
            OperationLogEntry(type="trash", source=str(source), destination=None, size=size, timestamp=utc_now())
        )

    def add_move(self, source: Path, destination: Path, size: int):
        self.operations.append(
            OperationLogEntry(
                type="move", source=str(source), destination=str(destination), size=size, timestamp=utc_now()
            )
        )

    def __len__(self) -> int:
        return len(self.operations)

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "operations": [op.to_dict() for op in self.operations]}

    @classmethod
    def from_dict(cls, data: dict) -> OperationLog:
        return cls(
            timestamp=data.get("timestamp", ""),
            operations=[OperationLogEntry.from_dict(op) for op in data.get("operations") or ()],
        )
