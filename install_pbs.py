#!/usr/bin/env python3
"""
Entry point for the OpenPBS installer.

Provisions the local machine as a PBS server, compute (execution) node or
both, and reports a step-by-step summary. Exit code 0 means success or an
operator cancellation, 1 a halting failure.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from common.core_utils import run_log_paths, setup_logging
from common.logging_config import setup_audit_logging
from pbs_config import config as static_config
from pbs_config.config_loader import load_app_settings
from pbs_config.config_models import (
    LOG_DIR_DEFAULT,
    LOG_PREFIX_DEFAULT,
    SYMBOLS_DEFAULT,
    NodeRole,
)
from provisioner.errors import ConfigurationError
from provisioner.models import AuditTrail
from provisioner.orchestrator import ProvisioningOrchestrator
from provisioner.reporter import Reporter

LOGGER_NAME = "pbs_installer"

EPILOG = """\
Environment Variables:
  PBS_VERSION    OpenPBS version to install (default: master)
  PBS_PREFIX     Installation prefix (default: /opt/pbs)
  PBS_HOME       PBS home directory (default: /var/spool/pbs)

Examples:
  # Interactive installation
  sudo pbs-install

  # Install PBS server
  sudo pbs-install --node-type=server --cluster-name=hpc-cluster

  # Install compute node
  sudo pbs-install --node-type=compute --server-hostname=pbs-server.local

  # Install server with accounting
  sudo pbs-install --node-type=server --enable-accounting --install-database
"""


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="pbs-install",
        description=f"{static_config.SCRIPT_NAME} v{static_config.SCRIPT_VERSION}: "
        "installs and configures an OpenPBS server or compute node.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--node-type",
        choices=[role.value for role in NodeRole],
        default=None,
        help="Type of node to install. Giving a node type disables the interactive wizard.",
    )
    parser.add_argument(
        "--server-hostname",
        default=None,
        help="PBS server hostname (required for compute nodes).",
    )
    parser.add_argument(
        "--cluster-name",
        default=None,
        help=f"Name of the PBS cluster (default: {static_config.DEFAULT_CLUSTER_NAME}).",
    )
    parser.add_argument(
        "--enable-accounting",
        action="store_true",
        help="Enable PBS accounting with PostgreSQL (server nodes only).",
    )
    parser.add_argument(
        "--install-database",
        "--install-postgres",
        dest="install_database",
        action="store_true",
        help="Install the PostgreSQL server packages.",
    )
    parser.add_argument(
        "--database-password",
        "--postgres-password",
        dest="database_password",
        default=None,
        help="Password for the PostgreSQL 'postgres' user.",
    )
    parser.add_argument(
        "--force-reinstall",
        action="store_true",
        help="Overwrite an existing installation.",
    )
    parser.add_argument(
        "--without-interaction",
        action="store_true",
        help="Never prompt; missing values are an error.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (default: /etc/pbs-installer.yaml if present).",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )

    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the installer.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Exit code (0 for success or cancellation, 1 for failure).
    """
    parsed_args = parse_args(args)
    started_at = datetime.now()

    settings_error: Optional[ConfigurationError] = None
    try:
        app_settings = load_app_settings(parsed_args, parsed_args.config)
    except ConfigurationError as e:
        app_settings = None
        settings_error = e

    log_dir = app_settings.log_dir if app_settings else LOG_DIR_DEFAULT
    log_file, audit_file = run_log_paths(log_dir, started_at)
    setup_logging(
        log_level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        log_file=str(log_file),
        log_prefix=app_settings.log_prefix if app_settings else LOG_PREFIX_DEFAULT,
    )
    logger = logging.getLogger(LOGGER_NAME)

    if settings_error is not None or app_settings is None:
        logger.error(f"{SYMBOLS_DEFAULT['error']} {settings_error}")
        logger.error(f"Check log file: {log_file}")
        return 1

    logger.info(
        f"{static_config.SCRIPT_NAME} v{static_config.SCRIPT_VERSION}"
    )
    logger.info(f"Log file: {log_file}")

    audit_trail = AuditTrail(setup_audit_logging(audit_file))
    orchestrator = ProvisioningOrchestrator(app_settings, logger, audit_trail)
    try:
        exit_code = orchestrator.run()
    except KeyboardInterrupt:
        logger.error("Interrupted by operator.")
        exit_code = 1

    Reporter(app_settings, logger).report(
        orchestrator.context,
        exit_code,
        log_file=log_file,
        audit_file=audit_file,
        cancelled=orchestrator.cancelled,
    )
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
