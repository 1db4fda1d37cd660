"""CLI entry point: one director request in, one response out."""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional, TextIO

from cpi.actions import ACTIONS
from cpi.config import build_context, load_config, resolve_config_path
from cpi.dispatch import dispatch
from cpi.exceptions import ConfigError
from cpi.models import Request
from cpi.utils import log


def read_request(stream: TextIO) -> Request:
    raw = stream.read()
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ConfigError(f"Error deserializing JSON request from bosh: {exc}")
    try:
        return Request.from_dict(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid request from bosh: {exc}")


def main(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    parser = argparse.ArgumentParser(description="BOSH CPI for esxcloud")
    parser.add_argument(
        "--config-path",
        "-configPath",
        dest="config_path",
        default=None,
        help="Path to the CPI config file (defaults to $CPI_CONFIG_PATH)",
    )
    args = parser.parse_args(argv)
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    try:
        request = read_request(stdin)
        config_path = resolve_config_path(args.config_path)
        context = build_context(load_config(config_path))
    except ConfigError as exc:
        log("ERROR", str(exc))
        return 1

    log("INFO", f"Dispatching {request.method} ({len(request.arguments)} argument(s))")
    response = dispatch(context, ACTIONS, request.method, request.arguments)
    stdout.write(response)
    stdout.flush()
    return 0
