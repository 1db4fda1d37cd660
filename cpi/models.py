"""Data models for the esxcloud CPI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cpi.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TASK_POLL_INTERVAL,
    DEFAULT_TASK_TIMEOUT,
)


@dataclass(frozen=True)
class Request:
    method: str
    arguments: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Request":
        if not isinstance(data, dict):
            raise ValueError("request must be a JSON object")
        method = data.get("method")
        if not isinstance(method, str):
            raise ValueError("request 'method' must be a string")
        arguments = data.get("arguments")
        if arguments is None:
            arguments = []
        if not isinstance(arguments, list):
            raise ValueError("request 'arguments' must be a list")
        return cls(method=method, arguments=list(arguments))


@dataclass
class ResponseError:
    type: str
    message: str
    can_retry: bool = False


@dataclass
class Response:
    result: Any = None
    error: Optional[ResponseError] = None

    def to_dict(self) -> Dict[str, Any]:
        error = None
        if self.error is not None:
            error = {
                "type": self.error.type,
                "message": self.error.message,
                "can_retry": self.error.can_retry,
            }
        return {"result": self.result, "error": error}


@dataclass
class Entity:
    id: str = ""
    kind: str = ""


@dataclass
class Task:
    id: str
    state: str
    operation: str = ""
    entity: Entity = field(default_factory=Entity)
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        entity = data.get("entity") or {}
        errors = []
        for item in data.get("errors") or []:
            # Some API versions nest error lists per step
            items = item if isinstance(item, list) else [item]
            for err in items:
                if isinstance(err, dict):
                    errors.append(str(err.get("message") or err.get("code") or err))
                else:
                    errors.append(str(err))
        return cls(
            id=str(data.get("id", "")),
            state=str(data.get("state", "")),
            operation=str(data.get("operation", "")),
            entity=Entity(id=str(entity.get("id", "")), kind=str(entity.get("kind", ""))),
            errors=errors,
        )


@dataclass
class VMSpec:
    id: str
    name: str


@dataclass
class BlobstoreSpec:
    provider: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentEnv:
    """Settings document read by the BOSH agent inside a new VM."""

    agent_id: str
    vm: VMSpec
    mbus: str
    blobstore: BlobstoreSpec
    networks: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, Any] = field(default_factory=dict)
    ntp: List[str] = field(default_factory=list)
    disks: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "vm": {"id": self.vm.id, "name": self.vm.name},
            "networks": self.networks,
            "env": self.env,
            "mbus": self.mbus,
            "ntp": self.ntp,
            "disks": self.disks,
            "blobstore": {"provider": self.blobstore.provider, "options": self.blobstore.options},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentEnv":
        vm = data.get("vm") or {}
        blobstore = data.get("blobstore") or {}
        return cls(
            agent_id=data.get("agent_id", ""),
            vm=VMSpec(id=vm.get("id", ""), name=vm.get("name", "")),
            mbus=data.get("mbus", ""),
            blobstore=BlobstoreSpec(
                provider=blobstore.get("provider", ""),
                options=blobstore.get("options") or {},
            ),
            networks=data.get("networks") or {},
            env=data.get("env") or {},
            ntp=list(data.get("ntp") or []),
            disks=data.get("disks") or {},
        )


@dataclass(frozen=True)
class CloudConfig:
    endpoint: str
    project_id: str
    task_timeout: int = DEFAULT_TASK_TIMEOUT
    task_poll_interval: float = DEFAULT_TASK_POLL_INTERVAL
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class AgentConfig:
    mbus: str
    blobstore: BlobstoreSpec
    ntp: List[str] = field(default_factory=list)
    env_store_dir: Optional[str] = None
    env_iso: bool = False


@dataclass(frozen=True)
class Config:
    cloud: CloudConfig
    agent: AgentConfig


@dataclass(frozen=True)
class Context:
    """Process-wide, read-only state handed to every action."""

    client: Any
    config: Config
    env_store: Any
