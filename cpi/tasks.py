"""Waiting on asynchronous esxcloud tasks."""

from __future__ import annotations

import time

import requests

from cpi.constants import (
    DEFAULT_TASK_POLL_INTERVAL,
    DEFAULT_TASK_TIMEOUT,
    TASK_COMPLETED,
    TASK_ERROR,
)
from cpi.exceptions import ApiError, TaskError, TaskPollError, TaskTimeoutError
from cpi.models import Task
from cpi.utils import log


def wait_for_task(
    client,
    task_id: str,
    timeout: float = DEFAULT_TASK_TIMEOUT,
    interval: float = DEFAULT_TASK_POLL_INTERVAL,
) -> Task:
    """Poll a task until it reaches a terminal state.

    Returns the completed task. A task the API reports as failed raises
    ``TaskError`` (not retryable); a failed poll raises ``TaskPollError``
    (retryable, the task itself may still succeed); running past ``timeout``
    raises ``TaskTimeoutError``.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            task = client.get_task(task_id)
        except (ApiError, requests.RequestException) as exc:
            raise TaskPollError(task_id, str(exc)) from exc
        log("DEBUG", f"Task {task_id} ({task.operation or 'unknown'}): {task.state}")

        if task.state == TASK_COMPLETED:
            return task
        if task.state == TASK_ERROR:
            detail = "; ".join(task.errors) if task.errors else f"operation {task.operation or 'unknown'} failed"
            raise TaskError(task_id, detail)

        if time.monotonic() >= deadline:
            raise TaskTimeoutError(task_id, timeout)
        time.sleep(interval)
