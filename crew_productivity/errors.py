"""Workflow exceptions.

Referential gaps inside the analytics engine never raise; these errors are
reserved for precondition violations in single-entity workflow actions.
"""

from __future__ import annotations


class CrewProductivityError(Exception):
    """Base exception for workflow errors."""

    def __init__(self, message: str, code: str = "CREW_PRODUCTIVITY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class TaskNotFoundError(CrewProductivityError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(message=f"Task {task_id} not found", code="TASK_NOT_FOUND")


class EntryNotFoundError(CrewProductivityError):
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(message=f"Time entry {entry_id} not found", code="ENTRY_NOT_FOUND")


class PreconditionError(CrewProductivityError):
    """Raised when an entity is in the wrong state for the requested action."""

    def __init__(self, message: str):
        super().__init__(message=message, code="PRECONDITION_FAILED")
