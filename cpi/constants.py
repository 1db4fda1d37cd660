"""Global constants for the esxcloud CPI."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CONFIG_PATH = Path("/var/vcap/jobs/cpi/config/cpi.yml")
TRUTHY = {"1", "true", "yes", "on"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY

# Error categories reported back to the director
NOT_IMPLEMENTED_ERROR = "NotImplemented"
CLOUD_ERROR = "CloudError"
TASK_TIMEOUT_ERROR = "TaskTimeout"
VM_NOT_FOUND_ERROR = "VMNotFound"
DISK_NOT_FOUND_ERROR = "DiskNotFound"
DISK_NOT_ATTACHED_ERROR = "DiskNotAttached"

# Remote task states
TASK_COMPLETED = "COMPLETED"
TASK_ERROR = "ERROR"

DEFAULT_TASK_TIMEOUT = 600
DEFAULT_TASK_POLL_INTERVAL = 2
DEFAULT_REQUEST_TIMEOUT = 60

# ISO 9660 level 1 limits names to 8.3, so the agent settings file is just "env"
ENV_ISO_FILENAME = "env"
ISO_TOOL = "genisoimage"

EPHEMERAL_DISKS = {"ephemeral": "1"}
DEFAULT_DISK_FLAVOR = "core-100"
DEFAULT_BOOT_DISK_FLAVOR = "core-100"
USER_AGENT = "bosh-esxcloud-cpi/1.0"
