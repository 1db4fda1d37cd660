"""bosh-esxcloud-cpi package."""

__all__ = [
    "actions",
    "agentenv",
    "arguments",
    "cli",
    "client",
    "config",
    "constants",
    "dispatch",
    "exceptions",
    "models",
    "tasks",
    "utils",
]
