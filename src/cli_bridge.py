"""CLI entry point for the FeedBridge server.

Loads configuration (YAML file, then CLI flags), sets up logging and runs the
aiohttp server until interrupted.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import sys
from typing import Any, Dict, Optional

import yaml

from constants import Constants, ExitCodes
from common.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def _is_local_bind_host(host: str) -> bool:
    """Return True if host is a loopback/local bind target."""
    if not host:
        return False
    host_lower = host.strip().lower()
    if host_lower in ("localhost",):
        return True
    try:
        return ipaddress.ip_address(host_lower).is_loopback
    except ValueError:
        # Non-IP hostnames are treated as non-local unless explicitly allowed.
        return False


def _enforce_local_binding(host: str, allow_external: bool) -> None:
    """Enforce local-only binding unless explicitly allowed."""
    if _is_local_bind_host(host):
        return
    if not allow_external:
        sys.stderr.write(
            "ERROR: Non-local bindings require --allow-external.\n"
        )
        sys.exit(ExitCodes.BIND_ERROR.value)
    logger.warning(
        "Binding bridge to non-local address (%s). Ensure network controls are in place.",
        host,
    )


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load bridge settings from a YAML file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The ``bridge`` section if present, else the whole mapping; empty when
        no path is given.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        sys.stderr.write(f"ERROR: Config file not found: {config_path}\n")
        sys.exit(ExitCodes.CONFIG_ERROR.value)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        sys.stderr.write(f"ERROR: Failed to load config {config_path}: {e}\n")
        sys.exit(ExitCodes.CONFIG_ERROR.value)

    if data is None:
        return {}
    if not isinstance(data, dict):
        sys.stderr.write(f"ERROR: Config file {config_path} is not a mapping\n")
        sys.exit(ExitCodes.CONFIG_ERROR.value)
    section = data.get("bridge", data)
    return section if isinstance(section, dict) else {}


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if os.environ.get(Constants.ENV_LOG_LEVEL):
        configure_logging()
    else:
        configure_logging(getattr(args, "LOG_LEVEL", None))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def run_bridge_server(args: Any) -> None:
    """Entry point for the bridge server command.

    Args:
        args: Parsed CLI arguments namespace.
    """
    _setup_logging(args)

    from bridge.server import BridgeConfig, run_bridge_server_sync  # pylint: disable=import-outside-toplevel

    config_path = getattr(args, "CONFIG", None)
    file_settings = load_config_file(config_path)
    if file_settings:
        logger.info("Loaded bridge config from: %s", config_path)

    try:
        config = BridgeConfig.from_mapping(file_settings).apply_args(args)
    except TypeError as e:
        sys.stderr.write(f"ERROR: Invalid bridge configuration: {e}\n")
        sys.exit(ExitCodes.CONFIG_ERROR.value)
    _enforce_local_binding(config.host, config.allow_external)

    print(
        f"\n"
        f"  FeedBridge\n"
        f"  ==========\n"
        f"  Listening: http://{config.host}:{config.port}\n"
        f"  Upstream:  {config.upstream}\n"
        f"\n"
        f"  Configure your NuGet client source:\n"
        f"    http://{config.host}:{config.port}/index.json\n"
        f"\n"
        f"  Press Ctrl+C to stop\n"
    )

    run_bridge_server_sync(config)
