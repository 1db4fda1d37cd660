"""Configuration loading for the esxcloud CPI."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from cpi.agentenv import FileAgentEnvStore
from cpi.client import EsxCloudClient
from cpi.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TASK_POLL_INTERVAL,
    DEFAULT_TASK_TIMEOUT,
)
from cpi.exceptions import ConfigError
from cpi.models import AgentConfig, BlobstoreSpec, CloudConfig, Config, Context
from cpi.utils import get_env, get_env_bool, log, parse_int_env


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name)
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' is missing or not a mapping")
    return section


def _required_str(section: Dict[str, Any], section_name: str, key: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Config value '{section_name}.{key}' must be a non-empty string")
    return value.strip()


def _positive_number(section: Dict[str, Any], section_name: str, key: str, default: float, min_val: float = 1):
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Config value '{section_name}.{key}' must be a number (got {value!r})")
    if value < min_val:
        raise ConfigError(f"Config value '{section_name}.{key}' must be >= {min_val} (got {value})")
    return value


def resolve_config_path(config_path: Optional[str] = None) -> Path:
    if config_path:
        return Path(config_path)
    env_path = get_env("CPI_CONFIG_PATH")
    if env_path and env_path.strip():
        return Path(env_path.strip())
    return DEFAULT_CONFIG_PATH


def parse_config(data: Any) -> Config:
    """Validate a decoded config document and apply environment overrides."""
    if not isinstance(data, dict):
        raise ConfigError("CPI config must be a mapping")

    cloud = _section(data, "cloud")
    endpoint = _required_str(cloud, "cloud", "endpoint")
    if not endpoint.startswith(("http://", "https://")):
        raise ConfigError(f"Config value 'cloud.endpoint' must start with http:// or https:// (got '{endpoint}')")
    project_id = _required_str(cloud, "cloud", "project_id")

    task_timeout = _positive_number(cloud, "cloud", "task_timeout", DEFAULT_TASK_TIMEOUT)
    if get_env("CPI_TASK_TIMEOUT") is not None:
        task_timeout = parse_int_env("CPI_TASK_TIMEOUT", str(DEFAULT_TASK_TIMEOUT))
    poll_interval = _positive_number(cloud, "cloud", "task_poll_interval", DEFAULT_TASK_POLL_INTERVAL, min_val=0)
    if get_env("CPI_TASK_POLL_INTERVAL") is not None:
        poll_interval = parse_int_env("CPI_TASK_POLL_INTERVAL", str(DEFAULT_TASK_POLL_INTERVAL), min_val=0)
    request_timeout = _positive_number(cloud, "cloud", "request_timeout", DEFAULT_REQUEST_TIMEOUT)

    agent = _section(data, "agent")
    mbus = _required_str(agent, "agent", "mbus")

    ntp_raw = agent.get("ntp") or []
    if not isinstance(ntp_raw, list) or not all(isinstance(item, str) for item in ntp_raw):
        raise ConfigError("Config value 'agent.ntp' must be a list of strings")
    ntp: List[str] = list(ntp_raw)

    blobstore = _section(agent, "blobstore")
    provider = _required_str(blobstore, "agent.blobstore", "provider")
    options = blobstore.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigError("Config value 'agent.blobstore.options' must be a mapping")

    env_store_dir = agent.get("env_store_dir")
    if env_store_dir is not None and not isinstance(env_store_dir, str):
        raise ConfigError("Config value 'agent.env_store_dir' must be a string")
    env_iso = get_env_bool("CPI_ENV_ISO", bool(agent.get("env_iso", False)))

    return Config(
        cloud=CloudConfig(
            endpoint=endpoint,
            project_id=project_id,
            task_timeout=task_timeout,
            task_poll_interval=poll_interval,
            request_timeout=int(request_timeout),
        ),
        agent=AgentConfig(
            mbus=mbus,
            blobstore=BlobstoreSpec(provider=provider, options=options),
            ntp=ntp,
            env_store_dir=env_store_dir or None,
            env_iso=env_iso,
        ),
    )


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load the CPI config file. JSON configs work too, as YAML is a superset."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    if not config_path.exists():
        raise ConfigError(f"CPI config missing: {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Unable to parse CPI config {config_path}: {exc}")
    config = parse_config(data)
    log("DEBUG", f"Loaded config from {config_path} (endpoint={config.cloud.endpoint})")
    return config


def build_context(config: Config, session=None) -> Context:
    client = EsxCloudClient(
        config.cloud.endpoint,
        config.cloud.project_id,
        session=session,
        timeout=config.cloud.request_timeout,
    )
    store_dir = Path(config.agent.env_store_dir) if config.agent.env_store_dir else None
    return Context(client=client, config=config, env_store=FileAgentEnvStore(store_dir))
