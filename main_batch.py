#!/usr/bin/env python3
"""
AerSub Batch Processing Entry Point

Runs one transcription job straight from the command line, without the JSON
line protocol. Progress messages go to the log and a tqdm bar tracks files.
"""

import argparse
import logging
import sys
import time

from aersub.cli import LOG_LEVELS, configure_logging, load_settings
from aersub.config_resolver import resolve_transcribe_config
from aersub.log_setup import setup_logging
from aersub.subtitle_generator import TranscriptionJob
from aersub.exceptions import AerSubError

# Initialize logger for this script
logger = logging.getLogger(__name__)

class LogEventSink:
    """Routes job progress events to the logger instead of stdout."""

    def log(self, message: str) -> None:
        logger.info(message)

def build_params(args: argparse.Namespace) -> dict:
    """Turns command-line flags into transcribe request parameters."""
    params = {
        "input_path": args.input,
        "output_dir": args.output_dir,
        "language": args.language,
        "threads": args.threads,
        "dry_run": args.dry_run,
    }
    if args.no_translate:
        params["translate"] = False
    return {key: value for key, value in params.items() if value is not None}

def run_batch_processing():
    """Parses arguments, sets up, and runs the batch transcription."""
    parser = argparse.ArgumentParser(
        description="AerSub Batch: transcribe every media file under a path into SRT subtitles.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-i", "--input",
        required=True,
        help="Media file or directory containing media files."
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=None,
        help="Directory for the .srt files (default: beside each input)."
    )
    parser.add_argument(
        "--language",
        default=None,
        help="Spoken language code passed to whisper-cli (default: auto)."
    )
    parser.add_argument(
        "--no-translate",
        action="store_true",
        help="Keep the spoken language instead of translating to English."
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="whisper-cli thread count (default: logical core count)."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report the commands that would run."
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
        help="Set the logging level for console and file output."
    )

    args = parser.parse_args()

    setup_logging(log_level=logging.INFO)
    settings = load_settings(args.config)
    configure_logging(args, settings)

    batch_start_time = time.time()
    try:
        config = resolve_transcribe_config(build_params(args))
        result = TranscriptionJob(config, LogEventSink(), show_progress=True).run()
    except AerSubError as e:
        logger.error(f"Batch transcription failed: {e}")
        sys.exit(1)
    except OSError as e:
        logger.error(f"Could not launch external tool: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Batch process interrupted by user (Ctrl+C). Exiting.")
        sys.exit(1)

    logger.info(f"--- Batch Transcription Finished ---")
    logger.info(f"Total time: {time.time() - batch_start_time:.2f} seconds")
    logger.info(f"Subtitles: {len(result.outputs)}")
    for output in result.outputs:
        logger.info(f"  {output}")
    sys.exit(0)


if __name__ == "__main__":
    if sys.version_info < (3, 8):
        sys.stderr.write("AerSub requires Python 3.8 or later.\n")
        sys.exit(1)

    run_batch_processing()
