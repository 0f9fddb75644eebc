"""Utility functions for AerSub."""

import os
import re
import logging
import sys
from typing import Iterator, List

from .exceptions import FileSystemError, MissingResourceError, SubtitleParseError

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = ("mp4", "mkv", "mov", "wav", "mp3", "m4a")

_TIMESTAMP_RE = re.compile(r"(\d+):(\d+):(\d+),(\d+)")

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it (and any parents) if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def default_binary_name(base: str) -> str:
    """Returns the platform file name for a bundled executable."""
    if sys.platform.startswith("win"):
        return f"{base}.exe"
    return base

def display_text(text: str) -> str:
    """
    Makes text safe to encode as UTF-8.

    Undecodable file-name bytes (surrogate escapes) and any other lone
    surrogates become U+FFFD.
    """
    try:
        return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    except UnicodeEncodeError:
        return "".join("�" if 0xD800 <= ord(ch) <= 0xDFFF else ch for ch in text)

def display_path(path: str) -> str:
    """Lossy, printable form of a file system path."""
    return display_text(os.fspath(path))

def has_media_extension(path: str) -> bool:
    ext = os.path.splitext(path)[1].lstrip(".").lower()
    return ext in MEDIA_EXTENSIONS

def _walk_media(dir_path: str, ancestors: frozenset) -> Iterator[str]:
    real_dir = os.path.realpath(dir_path)
    if real_dir in ancestors:
        logger.debug(f"Not descending into symlink loop: {dir_path}")
        return
    ancestors = ancestors | {real_dir}
    try:
        with os.scandir(dir_path) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        raise FileSystemError(f"Could not read directory {dir_path}: {e}") from e

    for entry in entries:
        if entry.is_dir():
            yield from _walk_media(entry.path, ancestors)
        elif entry.is_file():
            if has_media_extension(entry.name):
                yield entry.path
        else:
            logger.debug(f"Skipping non-regular or broken entry: {entry.path}")

def find_media_files(input_path: str) -> List[str]:
    """
    Lists the media files a job should process.

    A file path is returned as-is regardless of its extension. A directory is
    walked depth-first, following symlinks, and every regular file with a
    known media extension is returned in traversal order. A directory reached
    through several links is listed once per path; only a link back to one of
    its own ancestors is not followed.

    Args:
        input_path: A media file or a directory containing media files.

    Returns:
        A list of file paths (possibly empty).

    Raises:
        MissingResourceError: If the input path does not exist.
        FileSystemError: If a directory cannot be read during the walk.
    """
    if not os.path.exists(input_path):
        raise MissingResourceError(f"Input path does not exist: {input_path}")
    if os.path.isfile(input_path):
        return [input_path]

    logger.info(f"Scanning directory for media files: {input_path}")
    media_files = list(_walk_media(input_path, frozenset()))
    logger.info(f"Found {len(media_files)} media files under {input_path}")
    return media_files

def timestamp_to_ms(timestamp: str) -> int:
    """
    Parses an SRT timestamp (HH:MM:SS,mmm) into milliseconds.

    Raises:
        SubtitleParseError: If any component is missing or not a number.
    """
    match = _TIMESTAMP_RE.fullmatch(timestamp.strip())
    if not match:
        raise SubtitleParseError(f"Invalid timestamp: {timestamp!r}")
    hours, minutes, seconds, millis = (int(part) for part in match.groups())
    return (hours * 3600 + minutes * 60 + seconds) * 1000 + millis

def ms_to_timestamp(milliseconds: int) -> str:
    """
    Formats milliseconds into SRT time format HH:MM:SS,mmm.

    Args:
        milliseconds: Time in milliseconds.

    Returns:
        Formatted time string.
    """
    if milliseconds < 0:
        milliseconds = 0 # Ensure non-negative time
    hrs = milliseconds // 3600000
    milliseconds %= 3600000
    mins = milliseconds // 60000
    milliseconds %= 60000
    secs = milliseconds // 1000
    milliseconds %= 1000
    return f"{hrs:02d}:{mins:02d}:{secs:02d},{milliseconds:03d}"
