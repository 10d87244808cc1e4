from __future__ import annotations


class GamificationError(Exception):
    """Base class for errors raised by the scoring engine and its services."""


class ValidationError(GamificationError, ValueError):
    pass


class NotFound(GamificationError, LookupError):
    pass


class AlreadyCompleted(GamificationError):
    def __init__(self, task_id: int | None = None) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} already completed; revert it first")
