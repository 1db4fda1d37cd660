"""Typed errors for the esxcloud CPI.

Every ``CPIError`` carries the category and retry flag the director sees in
the response envelope. Anything else raised by a handler is reported as a
non-retryable ``CloudError`` by the dispatcher.
"""

from __future__ import annotations

from typing import Optional

from cpi.constants import (
    CLOUD_ERROR,
    DISK_NOT_ATTACHED_ERROR,
    DISK_NOT_FOUND_ERROR,
    NOT_IMPLEMENTED_ERROR,
    TASK_TIMEOUT_ERROR,
    VM_NOT_FOUND_ERROR,
)


class ConfigError(RuntimeError):
    """Raised on unrecoverable configuration or startup errors."""


class CPIError(RuntimeError):
    """An error with a director-visible category and retry flag."""

    def __init__(self, error_type: str, can_retry: bool, message: str, *args: object) -> None:
        if args:
            message = message % args
        super().__init__(message)
        self.error_type = error_type
        self.can_retry = can_retry


class CloudError(CPIError):
    def __init__(self, message: str, *args: object, can_retry: bool = False) -> None:
        super().__init__(CLOUD_ERROR, can_retry, message, *args)


class NotImplementedMethodError(CPIError):
    def __init__(self, method: str) -> None:
        super().__init__(NOT_IMPLEMENTED_ERROR, False, "Method %s not implemented in esxcloud CPI.", method)


class ArgumentError(CloudError):
    """Raised when a request argument is missing or has the wrong type."""


class ApiError(CloudError):
    """Non-2xx or transport failure talking to the esxcloud API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaskError(CloudError):
    """The remote system reported a task as failed."""

    def __init__(self, task_id: str, detail: str) -> None:
        super().__init__("Task %s failed: %s", task_id, detail)
        self.task_id = task_id


class TaskPollError(CloudError):
    """The task state could not be read; retrying the poll is safe."""

    def __init__(self, task_id: str, detail: str) -> None:
        super().__init__("Failed to poll task %s: %s", task_id, detail, can_retry=True)
        self.task_id = task_id


class TaskTimeoutError(CPIError):
    def __init__(self, task_id: str, timeout: float) -> None:
        super().__init__(TASK_TIMEOUT_ERROR, True, "Task %s did not finish within %ss", task_id, timeout)
        self.task_id = task_id


class VMNotFoundError(CPIError):
    def __init__(self, vm_id: str) -> None:
        super().__init__(VM_NOT_FOUND_ERROR, False, "VM %s not found", vm_id)


class DiskNotFoundError(CPIError):
    def __init__(self, disk_id: str) -> None:
        super().__init__(DISK_NOT_FOUND_ERROR, False, "Disk %s not found", disk_id)


class DiskNotAttachedError(CPIError):
    def __init__(self, vm_id: str, disk_id: str) -> None:
        super().__init__(DISK_NOT_ATTACHED_ERROR, False, "Disk %s is not attached to VM %s", disk_id, vm_id)


class AgentEnvNotFoundError(CloudError):
    def __init__(self, vm_id: str) -> None:
        super().__init__("No agent settings stored for VM %s", vm_id)
        self.vm_id = vm_id
