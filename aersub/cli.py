"""Command-Line Interface handler for the AerSub runtime server."""

import argparse
import logging
import sys
from typing import List, Optional

from .config_loader import ConfigLoader
from .log_setup import setup_logging
from .protocol import RuntimeServer
from .exceptions import ConfigurationError, OutputStreamError

logger = logging.getLogger(__name__) # Get logger for this module

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

def load_settings(config_path: Optional[str]) -> dict:
    """Loads the optional YAML settings file; exits with status 1 on failure."""
    if not config_path:
        return {}
    try:
        return ConfigLoader().load_config(config_path)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.critical(f"Failed to load configuration from {config_path}: {e}")
        sys.exit(1)

def configure_logging(args: argparse.Namespace, settings: dict) -> None:
    """Applies logging settings: CLI flag, then settings file, then INFO."""
    level_name = (args.log_level or settings.get('log_level') or "INFO").upper()
    if level_name not in LOG_LEVELS:
        logger.warning(f"Unknown log level '{level_name}', using INFO")
        level_name = "INFO"
    setup_logging(
        log_level=getattr(logging, level_name),
        log_dir=settings.get('log_dir'),
        log_file=settings.get('log_file', 'aersub.log'),
    )

class CLIHandler:
    """Parses arguments and serves the line protocol on stdin/stdout."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="AerSub runtime: line-delimited JSON server for GPU probing and batch transcription.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "-c", "--config",
            default=None,
            help="Optional YAML file with log_level, log_dir and log_file settings."
        )
        parser.add_argument(
            "--log-level",
            default=None,
            choices=LOG_LEVELS,
            help="Logging level for stderr and file output (overrides the config file)."
        )
        return parser

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Parses arguments, sets up logging and serves until stdin closes."""
        args = self.parser.parse_args(argv)

        # Console logging first so settings-file errors are reported.
        setup_logging(log_level=logging.INFO)
        settings = load_settings(args.config)
        configure_logging(args, settings)

        for stream in (sys.stdin, sys.stdout):
            encoding = (getattr(stream, "encoding", None) or "").lower().replace("_", "-")
            if encoding != "utf-8" and hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding="utf-8")

        server = RuntimeServer()
        try:
            server.serve(sys.stdin, sys.stdout)
        except OutputStreamError as e:
            logger.critical(f"Output stream failed, shutting down: {e}")
            sys.exit(2)
        except (OSError, UnicodeDecodeError) as e:
            logger.critical(f"Input stream failed, shutting down: {e}")
            sys.exit(2)
        except KeyboardInterrupt:
            logger.warning("Interrupted. Exiting.")
            sys.exit(1)
        sys.exit(0)

def main() -> None:
    CLIHandler().run()
