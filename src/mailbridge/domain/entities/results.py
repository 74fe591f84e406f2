"""Uniform return shapes for mutating operations."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class OperationResult:
    """Result of archive, delete, star, label, mark and similar operations."""

    success: bool
    error: str | None = None

    @classmethod
    def ok(cls, **kwargs) -> "OperationResult":
        return cls(success=True, **kwargs)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


@dataclass
class SendResult(OperationResult):
    message_id: str | None = None
    thread_id: str | None = None
    send_at: str | None = None


@dataclass
class DraftResult(OperationResult):
    draft_id: str | None = None
    message_id: str | None = None
    thread_id: str | None = None


@dataclass
class ReplyResult(OperationResult):
    """Outcome of a reply or forward: a sent message or a saved draft."""

    draft_id: str | None = None
    message_id: str | None = None
    thread_id: str | None = None


@dataclass
class SnoozeResult(OperationResult):
    reminder_id: str | None = None


@dataclass
class CalendarResult(OperationResult):
    event_id: str | None = None


@dataclass
class BatchResult:
    """Per-thread outcomes of a sequential bulk operation."""

    results: list[tuple[str, OperationResult]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for _, r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def failures(self) -> list[tuple[str, OperationResult]]:
        return [(thread_id, r) for thread_id, r in self.results if not r.success]
