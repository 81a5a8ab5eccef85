"""
Service Starter - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for running a set of units.

- Provides argparse-based CLI
- Loads units from "module:attr" references
- Loads configuration from environment (.env supported) and CLI
- Queries a running instance's health probe

============================================================
USAGE
============================================================
service-starter --unit myapp.db:Database --unit myapp.web:WebServer
service-starter --unit myapp.units:build_worker --stop-on-error
service-starter --check-health
service-starter --check-health --health-port 8099

============================================================
"""

import argparse
import asyncio
import dataclasses
import importlib
import json
import logging
import sys
from multiprocessing.connection import Connection
from typing import List, Optional

from dotenv import load_dotenv

from starter_core.exceptions import ConfigurationError, StarterException

from . import __version__
from .adapters import request_health
from .core import OrchestratorFactory
from .log import setup_logging
from .models import OrchestratorConfig
from .runner import run
from .unit import Unit


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="service-starter",
        description="Start, supervise and stop the service units of one process",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Units start in the order given and stop in reverse order.
If one fails to start, the ones already started are stopped again.

Exit codes:
  0  normal shutdown
  1  system error (unhandled exception, bad arguments)
  2  a unit failed or triggered the stop

Examples:
  %(prog)s --unit app.db:Database --unit app.http:Server
  %(prog)s --unit app.units:build --stop-on-error --log-format json
  %(prog)s --check-health
        """
    )

    parser.add_argument(
        "--unit", "-u",
        dest="units",
        action="append",
        default=[],
        metavar="MODULE:ATTR",
        help="Unit class or zero-argument factory to register (repeatable)",
    )

    parser.add_argument(
        "--name",
        type=str,
        help="Orchestrator name used in logs",
    )

    # --------------------------------------------------------
    # Policy Options
    # --------------------------------------------------------
    policy_group = parser.add_argument_group("Policy Options")

    policy_group.add_argument(
        "--stop-on-error",
        action="store_true",
        default=None,
        help="Stop everything when a unit reports a runtime error",
    )

    policy_group.add_argument(
        "--keep-running-on-unhandled",
        action="store_true",
        help="Do not stop on unhandled exceptions",
    )

    # --------------------------------------------------------
    # Health Options
    # --------------------------------------------------------
    health_group = parser.add_argument_group("Health Options")

    health_group.add_argument(
        "--no-health-probe",
        action="store_true",
        help="Do not serve the HTTP health probe",
    )

    health_group.add_argument(
        "--health-socket",
        type=str,
        metavar="PATH",
        help="Unix socket for the HTTP health probe",
    )

    health_group.add_argument(
        "--health-host",
        type=str,
        help="TCP host for the HTTP health probe",
    )

    health_group.add_argument(
        "--health-port",
        type=int,
        metavar="PORT",
        help="TCP port for the HTTP health probe (instead of the socket)",
    )

    health_group.add_argument(
        "--ipc-fd",
        type=int,
        metavar="FD",
        help="File descriptor of a multiprocessing pipe to answer health requests on",
    )

    health_group.add_argument(
        "--check-health",
        action="store_true",
        help="Query a running instance's health probe and exit",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Returns:
        List of validation errors
    """
    errors = []

    if not args.check_health and not args.units:
        errors.append("at least one --unit is required")

    for ref in args.units:
        module_name, _, attr = ref.partition(":")
        if not module_name or not attr:
            errors.append(f"--unit must look like module:attr, got {ref!r}")

    if args.health_port is not None and not 0 < args.health_port < 65536:
        errors.append("--health-port must be between 1 and 65535")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(
    args: argparse.Namespace,
    base: Optional[OrchestratorConfig] = None,
) -> OrchestratorConfig:
    """
    Build orchestrator configuration: environment first, CLI on top.

    Args:
        args: Parsed arguments
        base: Starting configuration (default: from environment)
    """
    config = base or OrchestratorConfig.from_env()
    overrides = {}

    if args.name:
        overrides["name"] = args.name
    if args.stop_on_error:
        overrides["stop_on_error"] = True
    if args.keep_running_on_unhandled:
        overrides["stop_on_unhandled_exception"] = False
    if args.no_health_probe:
        overrides["health_probe_enabled"] = False
    if args.health_socket:
        overrides["health_probe_socket"] = args.health_socket
    if args.health_host:
        overrides["health_probe_host"] = args.health_host
    if args.health_port is not None:
        overrides["health_probe_port"] = args.health_port
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format

    return dataclasses.replace(config, **overrides)


# ============================================================
# UNIT LOADING
# ============================================================

def load_unit(ref: str) -> Unit:
    """
    Instantiate a unit from a "module:attr" reference.

    ``attr`` may be a Unit subclass or any zero-argument callable
    returning a Unit.

    Raises:
        ConfigurationError: If the reference cannot be resolved
    """
    module_name, _, attr = ref.partition(":")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            message=f"Cannot import unit module {module_name}",
            config_key="unit",
            actual_value=ref,
            cause=e,
        )

    target = getattr(module, attr, None)
    if target is None or not callable(target):
        raise ConfigurationError(
            message=f"{ref} is not a unit class or factory",
            config_key="unit",
            actual_value=ref,
        )

    unit = target()
    if not isinstance(unit, Unit):
        raise ConfigurationError(
            message=f"{ref} produced {type(unit).__name__}, expected a Unit",
            config_key="unit",
            actual_value=ref,
        )
    return unit


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def check_health(config: OrchestratorConfig) -> int:
    """Print a running instance's health report. Returns 0 if healthy."""
    payload = await request_health(
        socket_path=config.health_probe_socket,
        host=config.health_probe_host,
        port=config.health_probe_port,
    )
    print(json.dumps(payload, indent=2))
    return 0 if payload.get("healthy") else 1


async def async_main(
    args: argparse.Namespace,
    config: OrchestratorConfig,
    factory: Optional[OrchestratorFactory] = None,
) -> int:
    """
    Async main entry point.

    Returns:
        Exit code
    """
    factory = factory or OrchestratorFactory()
    orchestrator = factory.create(config)

    for ref in args.units:
        orchestrator.register(load_unit(ref))

    connection = Connection(args.ipc_fd) if args.ipc_fd is not None else None

    return await run(orchestrator, ipc_connection=connection)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 1

    config_errors = config.validate()
    if config_errors:
        for error in config_errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    if args.check_health:
        try:
            return asyncio.run(check_health(config))
        except StarterException as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    setup_logging(level=config.log_level, log_format=config.log_format, name=config.name)

    try:
        return asyncio.run(async_main(args, config))
    except StarterException as e:
        logging.error(e.to_log_format())
        return 1


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
