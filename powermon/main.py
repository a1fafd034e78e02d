"""
powermon Application Entry Point

Runs an action whenever the host switches between battery and mains
power. Handles command-line arguments, configuration loading, logging,
single-instance registration and signal handling, then hands over to a
MonitorSession.

Usage:
    powermon --action ~/bin/on-power-change
    powermon --action '$HOME/bin/on-power-change' --verbose --log-file /tmp/powermon.log
    powermon --config ~/.config/powermon/config.yaml --dry-run

The action is run as ``<action> <STATE>`` with STATE one of UNKNOWN,
ON_BATTERY or AC_POWER: once at startup, then on every change.

Entry Points:
    - CLI: `powermon` command (via pyproject.toml)
    - Direct: `python -m powermon.main`
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any, Optional

from powermon import __version__
from powermon.config import PowermonConfig, load_config, merge_overrides
from powermon.exceptions import ConfigurationError, PowermonError, SetupError
from powermon.logging_config import LOG_LEVELS, get_logger, setup_logging
from powermon.session import MonitorSession
from services.instance_lock import SessionNameClaim
from services.upower import UPowerSource

__all__ = ["main", "async_main", "create_parser", "GracefulShutdown"]

logger = get_logger(__name__)


# =============================================================================
# Argument Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="powermon",
        description="Run a command when the host switches between battery and AC power",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-a",
        "--action",
        type=str,
        metavar="CMD",
        help="Run this command when 'on battery' state changes",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file (default: auto-discover)",
    )

    # Logging
    parser.add_argument(
        "--log-file",
        "--logfile",
        dest="log_file",
        type=str,
        metavar="PATH",
        help="Log to this path instead of stderr",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Log status updates. Be quiet when not set.",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        type=str.upper,
        choices=sorted(LOG_LEVELS),
        default=None,
        help="Set logging level explicitly (overrides --verbose)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit without monitoring",
    )

    return parser


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Config overrides from parsed arguments; unset flags are None."""
    return {
        "action": args.action,
        "log": {
            "verbose": args.verbose,
            "file": args.log_file,
            "level": args.log_level,
        },
    }


# =============================================================================
# Signal Handlers
# =============================================================================


class GracefulShutdown:
    """Turns SIGINT/SIGTERM into a shutdown request.

    A second signal while the first is being handled forces an
    immediate exit.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self) -> None:
        self._shutdown_requested = False
        self._signal_name: Optional[str] = None
        self._shutdown_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested

    @property
    def signal_name(self) -> Optional[str]:
        """Name of the signal that requested shutdown, if any."""
        return self._signal_name

    def install_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Install signal handlers on the running event loop."""
        self._loop = loop
        for sig in self.SIGNALS:
            loop.add_signal_handler(sig, self.handle_signal, sig)
        logger.debug("Signal handlers installed for graceful shutdown")

    def restore_handlers(self) -> None:
        """Remove the handlers installed by install_handlers()."""
        if self._loop is None:
            return
        for sig in self.SIGNALS:
            self._loop.remove_signal_handler(sig)
        self._loop = None
        logger.debug("Signal handlers removed")

    def handle_signal(self, signum: int) -> None:
        """Handle shutdown signal.

        Args:
            signum: Signal number received
        """
        signal_name = signal.Signals(signum).name
        if self._shutdown_requested:
            logger.warning(f"received {signal_name} again - forcing immediate exit")
            sys.exit(1)

        logger.info(f"received signal {signal_name}. shutting down...")
        self._shutdown_requested = True
        self._signal_name = signal_name
        self.get_shutdown_event().set()

    def get_shutdown_event(self) -> asyncio.Event:
        """Get or create async shutdown event.

        Returns:
            Event that is set when shutdown is requested
        """
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
        return self._shutdown_event


# =============================================================================
# Main Entry Points
# =============================================================================


async def async_main(
    config: PowermonConfig,
    claim: Optional[SessionNameClaim] = None,
    source: Optional[UPowerSource] = None,
    shutdown: Optional[GracefulShutdown] = None,
) -> int:
    """Claim the instance name, start the monitor and run until a signal.

    Args:
        config: Validated configuration with a non-empty action
        claim: Single-instance claim (session bus name by default)
        source: Power state source (UPower by default)
        shutdown: Signal to shutdown bridge

    Returns:
        Exit code (0 for clean shutdown, 1 for setup failure)
    """
    claim = claim or SessionNameClaim(config.instance_name)
    source = source or UPowerSource()
    shutdown = shutdown or GracefulShutdown()

    session = MonitorSession(config, source)
    try:
        claim.acquire()
        source.connect()
        await session.start()
    except SetupError as e:
        logger.error(f"Setup failure: {e}")
        source.close()
        claim.release()
        return 1

    shutdown.install_handlers(asyncio.get_running_loop())
    run_task = asyncio.create_task(session.run())
    signal_task = asyncio.create_task(shutdown.get_shutdown_event().wait())

    try:
        await asyncio.wait({run_task, signal_task}, return_when=asyncio.FIRST_COMPLETED)
        await session.shutdown()
        await run_task
    finally:
        signal_task.cancel()
        shutdown.restore_handlers()
        claim.release()

    logger.debug(f"final session state: {session.to_dict()}")
    logger.info("goodbye")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for powermon.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Quiet until configuration says otherwise
    setup_logging(log_level=args.log_level or ("INFO" if args.verbose else "WARNING"))

    try:
        config = load_config(args.config)
        config = merge_overrides(config, cli_overrides(args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(log_level=config.log.effective_level(), log_file=config.log.file)
    logger.info(f"powermon v{__version__} starting...")

    if not config.action:
        logger.error("No action to run on state change. Pass --action='/some/command'.")
        return 1

    if args.dry_run:
        logger.info("Dry run mode - configuration valid, exiting")
        print(f"Configuration is valid (action: {config.action})")
        return 0

    try:
        return asyncio.run(async_main(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130  # Standard exit code for SIGINT
    except PowermonError as e:
        logger.error(f"powermon error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
