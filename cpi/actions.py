"""CPI method handlers.

Every handler takes the process ``Context`` and the raw argument list, and
returns the JSON-serializable result. Failures are raised; the dispatcher
turns them into error responses.
"""

from __future__ import annotations

import math
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List

from cpi.agentenv import build_agent_env, create_env_iso
from cpi.arguments import (
    dict_arg,
    int_arg,
    optional_list_arg,
    optional_string_arg,
    require_args,
    string_arg,
    string_properties,
)
from cpi.constants import DEFAULT_BOOT_DISK_FLAVOR, DEFAULT_DISK_FLAVOR
from cpi.exceptions import (
    ApiError,
    ArgumentError,
    DiskNotAttachedError,
    DiskNotFoundError,
    VMNotFoundError,
)
from cpi.models import Context, Task
from cpi.tasks import wait_for_task
from cpi.utils import log

ActionFn = Callable[[Context, List[Any]], Any]


def _wait(ctx: Context, task: Task) -> Task:
    cloud = ctx.config.cloud
    return wait_for_task(ctx.client, task.id, timeout=cloud.task_timeout, interval=cloud.task_poll_interval)


# Stemcells


def create_stemcell(ctx: Context, args: List[Any]) -> str:
    require_args(args, 1, "create_stemcell", max_count=2)
    image_path = string_arg(args, 0, "image_path")
    dict_arg(args, 1, "cloud_properties", required=False)
    if not Path(image_path).is_file():
        raise ArgumentError("Stemcell image not found: %s", image_path)
    log("INFO", f"Uploading stemcell image {image_path}")
    task = _wait(ctx, ctx.client.create_image(image_path))
    log("SUCCESS", f"Created stemcell {task.entity.id}")
    return task.entity.id


def delete_stemcell(ctx: Context, args: List[Any]) -> None:
    require_args(args, 1, "delete_stemcell", max_count=1)
    stemcell_id = string_arg(args, 0, "stemcell_cid")
    _wait(ctx, ctx.client.delete_image(stemcell_id))
    log("SUCCESS", f"Deleted stemcell {stemcell_id}")
    return None


# Disks


def create_disk(ctx: Context, args: List[Any]) -> str:
    require_args(args, 1, "create_disk", max_count=3)
    size_mb = int_arg(args, 0, "size")
    cloud_props = string_properties(dict_arg(args, 1, "cloud_properties", required=False), "cloud_properties")
    vm_id = optional_string_arg(args, 2, "vm_locality")

    spec: Dict[str, Any] = {
        "name": f"disk-{uuid.uuid4()}",
        "kind": "persistent-disk",
        "flavor": cloud_props.get("disk_flavor", DEFAULT_DISK_FLAVOR),
        "capacityGb": int(math.ceil(size_mb / 1024.0)),
    }
    if vm_id:
        spec["affinities"] = [{"id": vm_id, "kind": "vm"}]
    log("INFO", f"Creating disk {spec['name']} ({spec['capacityGb']} GB, flavor={spec['flavor']})")
    task = _wait(ctx, ctx.client.create_disk(spec))
    log("SUCCESS", f"Created disk {task.entity.id}")
    return task.entity.id


def delete_disk(ctx: Context, args: List[Any]) -> None:
    require_args(args, 1, "delete_disk", max_count=1)
    disk_id = string_arg(args, 0, "disk_cid")
    try:
        task = ctx.client.delete_disk(disk_id)
    except ApiError as exc:
        if exc.status_code == 404:
            raise DiskNotFoundError(disk_id) from exc
        raise
    _wait(ctx, task)
    log("SUCCESS", f"Deleted disk {disk_id}")
    return None


def has_disk(ctx: Context, args: List[Any]) -> bool:
    require_args(args, 1, "has_disk", max_count=1)
    disk_id = string_arg(args, 0, "disk_cid")
    return ctx.client.disk_exists(disk_id)


def attach_disk(ctx: Context, args: List[Any]) -> None:
    require_args(args, 2, "attach_disk", max_count=2)
    vm_id = string_arg(args, 0, "vm_cid")
    disk_id = string_arg(args, 1, "disk_cid")

    # Settings must exist before the disk is attached
    env = ctx.env_store.get(vm_id)
    _wait(ctx, ctx.client.attach_disk(vm_id, disk_id))

    persistent = dict(env.disks.get("persistent") or {})
    persistent[disk_id] = {"id": disk_id}
    env.disks["persistent"] = persistent
    ctx.env_store.put(vm_id, env)
    log("SUCCESS", f"Attached disk {disk_id} to VM {vm_id}")
    return None


def detach_disk(ctx: Context, args: List[Any]) -> None:
    require_args(args, 2, "detach_disk", max_count=2)
    vm_id = string_arg(args, 0, "vm_cid")
    disk_id = string_arg(args, 1, "disk_cid")

    env = ctx.env_store.get(vm_id)
    persistent = dict(env.disks.get("persistent") or {})
    if disk_id not in persistent:
        raise DiskNotAttachedError(vm_id, disk_id)
    _wait(ctx, ctx.client.detach_disk(vm_id, disk_id))

    del persistent[disk_id]
    env.disks["persistent"] = persistent
    ctx.env_store.put(vm_id, env)
    log("SUCCESS", f"Detached disk {disk_id} from VM {vm_id}")
    return None


# VMs


def create_vm(ctx: Context, args: List[Any]) -> str:
    require_args(args, 3, "create_vm", max_count=6)
    agent_id = string_arg(args, 0, "agent_id")
    stemcell_id = string_arg(args, 1, "stemcell_cid")
    cloud_props = string_properties(dict_arg(args, 2, "cloud_properties"), "cloud_properties")
    networks = dict_arg(args, 3, "networks", required=False)
    optional_list_arg(args, 4, "disk_locality")
    env = dict_arg(args, 5, "env", required=False)

    flavor = cloud_props.get("vm_flavor") or cloud_props.get("flavor")
    if not flavor:
        raise ArgumentError("cloud_properties must set vm_flavor")

    vm_name = f"vm-{uuid.uuid4()}"
    spec = {
        "name": vm_name,
        "flavor": flavor,
        "sourceImageId": stemcell_id,
        "attachedDisks": [
            {
                "name": "boot-disk",
                "flavor": cloud_props.get("disk_flavor", DEFAULT_BOOT_DISK_FLAVOR),
                "kind": "ephemeral-disk",
                "bootDisk": True,
            },
        ],
    }
    log("INFO", f"Creating VM {vm_name} from stemcell {stemcell_id} (flavor={flavor})")
    task = _wait(ctx, ctx.client.create_vm(spec))
    vm_id = task.entity.id

    agent_env = build_agent_env(ctx, agent_id, vm_id, vm_name, networks, env)
    ctx.env_store.put(vm_id, agent_env)

    if ctx.config.agent.env_iso:
        iso_path = create_env_iso(agent_env)
        try:
            _wait(ctx, ctx.client.attach_iso(vm_id, iso_path))
        finally:
            Path(iso_path).unlink(missing_ok=True)
        _wait(ctx, ctx.client.start_vm(vm_id))

    log("SUCCESS", f"Created VM {vm_id}")
    return vm_id


def delete_vm(ctx: Context, args: List[Any]) -> None:
    require_args(args, 1, "delete_vm", max_count=1)
    vm_id = string_arg(args, 0, "vm_cid")
    try:
        task = ctx.client.delete_vm(vm_id)
    except ApiError as exc:
        if exc.status_code == 404:
            raise VMNotFoundError(vm_id) from exc
        raise
    _wait(ctx, task)
    # Stored agent settings for the VM are not removed
    log("SUCCESS", f"Deleted VM {vm_id}")
    return None


def has_vm(ctx: Context, args: List[Any]) -> bool:
    require_args(args, 1, "has_vm", max_count=1)
    vm_id = string_arg(args, 0, "vm_cid")
    return ctx.client.vm_exists(vm_id)


ACTIONS: Dict[str, ActionFn] = {
    "create_stemcell": create_stemcell,
    "delete_stemcell": delete_stemcell,
    "create_disk": create_disk,
    "delete_disk": delete_disk,
    "has_disk": has_disk,
    "attach_disk": attach_disk,
    "detach_disk": detach_disk,
    "create_vm": create_vm,
    "delete_vm": delete_vm,
    "has_vm": has_vm,
}
