"""CLI entry point for the gemgate server.

This module wires argument parsing, the optional config file and logging
together before handing control to the aiohttp gateway.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Optional

import yaml

from common.logging_utils import configure_logging
from constants import Constants, ExitCodes

logger = logging.getLogger(__name__)


def _load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load gateway configuration from file.

    Args:
        config_path: Path to a YAML/JSON config file.

    Returns:
        Configuration dict; empty when no path is given.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        sys.stderr.write(f"ERROR: Config file not found: {config_path}\n")
        sys.exit(ExitCodes.FILE_ERROR.value)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        sys.stderr.write(f"ERROR: Failed to load config {config_path}: {e}\n")
        sys.exit(ExitCodes.FILE_ERROR.value)

    if data is None:
        return {}
    if not isinstance(data, dict):
        sys.stderr.write(f"ERROR: Config file {config_path} must contain a mapping\n")
        sys.exit(ExitCodes.FILE_ERROR.value)
    # Extract gateway section if present
    section = data.get("gateway", data)
    if not isinstance(section, dict):
        sys.stderr.write(f"ERROR: Config section 'gateway' in {config_path} must be a mapping\n")
        sys.exit(ExitCodes.FILE_ERROR.value)
    return section


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    # Add file handler if --logfile specified
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def run_gateway_server(args: Any, usage: Optional[str] = None) -> None:
    """Entry point for the gateway command.

    Args:
        args: Parsed CLI arguments namespace.
        usage: Usage text printed alongside configuration errors.
    """
    _setup_logging(args)

    from gateway.server import GatewayConfig, run_gateway_server_sync  # pylint: disable=import-outside-toplevel

    config_path = getattr(args, "CONFIG", None)
    file_config = _load_config_file(config_path)
    if file_config:
        logger.info("Loaded config from: %s", config_path)

    try:
        config = GatewayConfig.from_args(args, file_config)
        config.validate()
    except (TypeError, ValueError) as e:
        sys.stderr.write(f"{e}\n")
        if usage:
            sys.stderr.write(usage)
        sys.exit(ExitCodes.CONFIG_ERROR.value)

    repo_lines = "".join(
        f"    {priority}. {repo}\n" for priority, repo in enumerate(config.repositories)
    )
    print(
        f"\n"
        f"  gemgate\n"
        f"  =======\n"
        f"  Listening: http://{config.host}:{config.port}\n"
        f"  Upstreams (highest priority first):\n"
        f"{repo_lines}"
        f"\n"
        f"  Configure bundler:\n"
        f"    bundle config mirror.https://rubygems.org http://{config.host}:{config.port}\n"
        f"\n"
        f"  Press Ctrl+C to stop\n"
    )

    run_gateway_server_sync(config)
