"""Merges repeated adjacent cues in SRT files written by whisper-cli."""

import logging
from typing import List

from .models import SubtitleCue
from .utils import ms_to_timestamp, timestamp_to_ms

logger = logging.getLogger(__name__)

TIMING_SEPARATOR = "-->"

def normalize_text(text: str) -> str:
    """Comparison key for a cue: whitespace runs collapsed, case-folded."""
    return " ".join(text.split()).lower()

def parse_srt(content: str) -> List[SubtitleCue]:
    """
    Parses SRT content into cues.

    Blocks without a timing line are skipped, as are blocks whose text is
    empty. The index line is ignored; cues are re-numbered on render.

    Raises:
        SubtitleParseError: If a timing line holds an invalid timestamp.
    """
    cues = []
    for block in content.split("\n\n"):
        lines = block.split("\n")
        if len(lines) < 2 or TIMING_SEPARATOR not in lines[1]:
            continue
        stamps = lines[1].split(TIMING_SEPARATOR)
        start_ms = timestamp_to_ms(stamps[0])
        end_ms = timestamp_to_ms(stamps[1])
        text = "\n".join(lines[2:]).strip()
        if not text:
            continue
        cues.append(SubtitleCue(start_ms=start_ms, end_ms=end_ms, text=text, norm=normalize_text(text)))
    return cues

def merge_cues(cues: List[SubtitleCue], merge_gap_ms: int) -> List[SubtitleCue]:
    """
    Collapses adjacent cues with the same normalized text.

    A cue is folded into the previous merged cue when their keys match and it
    starts no later than merge_gap_ms after the previous cue ends. The earlier
    cue keeps its text and start; its end becomes the later of the two ends.
    """
    merged: List[SubtitleCue] = []
    for cue in cues:
        if merged:
            prev = merged[-1]
            if prev.norm == cue.norm and cue.start_ms <= prev.end_ms + merge_gap_ms:
                prev.end_ms = max(prev.end_ms, cue.end_ms)
                continue
        merged.append(SubtitleCue(start_ms=cue.start_ms, end_ms=cue.end_ms, text=cue.text, norm=cue.norm))
    return merged

def render_srt(cues: List[SubtitleCue]) -> str:
    parts = []
    for index, cue in enumerate(cues, start=1):
        parts.append(f"{index}\n{ms_to_timestamp(cue.start_ms)} --> {ms_to_timestamp(cue.end_ms)}\n{cue.text}\n\n")
    return "".join(parts).rstrip() + "\n"

def dedup_srt(path: str, merge_gap_sec: float) -> None:
    """
    Rewrites an SRT file in place with repeated adjacent cues merged.

    An unreadable or blank file is left untouched. Running this twice gives the
    same bytes as running it once.

    Args:
        path: The SRT file to rewrite.
        merge_gap_sec: Largest gap, in seconds, bridged by a merge.

    Raises:
        SubtitleParseError: If the file holds a malformed timing line.
        OSError: If the merged result cannot be written back.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Skipping subtitle dedup, could not read {path}: {e}")
        return

    content = content.replace("\r\n", "\n")
    if not content.strip():
        logger.info(f"Subtitle file is empty, nothing to dedup: {path}")
        return

    cues = parse_srt(content)
    merge_gap_ms = round(merge_gap_sec * 1000)
    merged = merge_cues(cues, merge_gap_ms)

    with open(path, 'w', encoding='utf-8', newline='\n') as f:
        f.write(render_srt(merged))
    logger.info(f"Deduplicated {path}: {len(cues)} cues -> {len(merged)} cues")
