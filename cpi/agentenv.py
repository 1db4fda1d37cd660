"""BOSH agent settings: assembly, storage and the env ISO."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from cpi.constants import ENV_ISO_FILENAME, EPHEMERAL_DISKS, ISO_TOOL
from cpi.exceptions import AgentEnvNotFoundError, CloudError
from cpi.models import AgentEnv, BlobstoreSpec, Context, VMSpec
from cpi.utils import log, run


def build_agent_env(
    ctx: Context,
    agent_id: str,
    vm_id: str,
    vm_name: str,
    networks: Optional[Dict[str, Any]] = None,
    env: Optional[Dict[str, Any]] = None,
) -> AgentEnv:
    agent = ctx.config.agent
    return AgentEnv(
        agent_id=agent_id,
        vm=VMSpec(id=vm_id, name=vm_name),
        mbus=agent.mbus,
        blobstore=BlobstoreSpec(
            provider=agent.blobstore.provider,
            options=dict(agent.blobstore.options),
        ),
        networks=dict(networks or {}),
        env=dict(env or {}),
        ntp=list(agent.ntp),
        disks=dict(EPHEMERAL_DISKS),
    )


class AgentEnvStore:
    """Key-value storage for agent settings, keyed by VM id."""

    def get(self, vm_id: str) -> AgentEnv:
        raise NotImplementedError

    def put(self, vm_id: str, env: AgentEnv) -> None:
        raise NotImplementedError


class FileAgentEnvStore(AgentEnvStore):
    """Stores each VM's settings as a JSON file named after the VM id.

    Stand-in for a per-VM metadata API: entries are not visible across hosts
    and are left behind when the VM is deleted.
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())

    def _path(self, vm_id: str) -> Path:
        if not vm_id or "/" in vm_id or vm_id in (".", ".."):
            raise CloudError("Invalid VM id for agent settings: %r", vm_id)
        return self.directory / vm_id

    def get(self, vm_id: str) -> AgentEnv:
        path = self._path(vm_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise AgentEnvNotFoundError(vm_id)
        return AgentEnv.from_dict(json.loads(raw))

    def put(self, vm_id: str, env: AgentEnv) -> None:
        path = self._path(vm_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(env.to_dict())
        # Write to a sibling file and rename so readers never see a partial document
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", delete=False, dir=self.directory, prefix=f".{vm_id}."
        ) as tmp:
            tmp_path = Path(tmp.name)
            try:
                tmp.write(payload)
            except Exception:
                tmp_path.unlink(missing_ok=True)
                raise
        try:
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        log("DEBUG", f"Stored agent settings for VM {vm_id} at {path}")


def _discard(path: Optional[Path]) -> None:
    if path is not None:
        path.unlink(missing_ok=True)


def create_env_iso(env: AgentEnv, runner=run) -> str:
    """Render the agent settings into a single-file ISO image and return its path."""
    env_dir = Path(tempfile.mkdtemp(prefix="agent-iso-dir"))
    iso_path: Optional[Path] = None
    try:
        fd, iso_name = tempfile.mkstemp(prefix="agent-env-iso", suffix=".iso")
        os.close(fd)
        iso_path = Path(iso_name)
        env_file = env_dir / ENV_ISO_FILENAME
        env_file.write_text(json.dumps(env.to_dict()), encoding="utf-8")
        cmd = [ISO_TOOL, "-o", str(iso_path), str(env_file)]
        runner(cmd, capture_output=True)
    except subprocess.CalledProcessError as exc:
        _discard(iso_path)
        output = "".join(part for part in (exc.stdout, exc.stderr) if part)
        raise CloudError("Failed to generate ISO for agent settings: %s\n%s", exc, output)
    except OSError as exc:
        _discard(iso_path)
        raise CloudError("Failed to generate ISO for agent settings: %s\n", exc)
    finally:
        shutil.rmtree(env_dir, ignore_errors=True)
    log("DEBUG", f"Generated agent settings ISO {iso_path}")
    return str(iso_path)
