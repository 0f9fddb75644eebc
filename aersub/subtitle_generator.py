"""Orchestrates the batch transcription pipeline."""

import logging
import os
import sys
import tempfile
import time
from typing import Any

from tqdm import tqdm

from .audio_extractor import AudioExtractor
from .command_runner import CommandRunner
from .config_resolver import resolve_transcribe_config
from .exceptions import FileSystemError, MissingResourceError
from .models import JobResult, TranscribeConfig
from .subtitle_dedup import dedup_srt
from .transcriber import WhisperCliTranscriber
from .utils import display_path, ensure_dir_exists, find_media_files

logger = logging.getLogger(__name__)

def ensure_path_exists(label: str, path: str) -> None:
    if not os.path.exists(path):
        raise MissingResourceError(f"{label} not found at {path}")

def ensure_executable_available(label: str, path: str) -> None:
    """Checks an executable given as a path; bare command names are left to PATH lookup."""
    if os.path.isabs(path) or os.sep in path or (os.altsep and os.altsep in path):
        ensure_path_exists(label, path)

def is_up_to_date(input_path: str, output_path: str) -> bool:
    """True when output_path exists and is not older than input_path."""
    try:
        output_mtime = os.stat(output_path).st_mtime_ns
        input_mtime = os.stat(input_path).st_mtime_ns
    except OSError:
        return False
    return output_mtime >= input_mtime

class TranscriptionJob:
    """
    Runs one transcription job: every input file goes through audio
    extraction, whisper-cli and subtitle dedup, strictly in sequence.
    """

    def __init__(self, config: TranscribeConfig, events, show_progress: bool = False):
        """
        Initializes the TranscriptionJob.

        Args:
            config: The resolved job settings.
            events: Sink with a log(message) method for progress events.
            show_progress: Draw a tqdm progress bar on stderr.
        """
        self.config = config
        self.events = events
        self.show_progress = show_progress
        self.runner = CommandRunner(events, dry_run=config.dry_run, vk_icd_filenames=config.vk_icd_filenames)
        self.audio_extractor = AudioExtractor(self.runner, ffmpeg_path=config.ffmpeg_path)
        self.transcriber = WhisperCliTranscriber(self.runner, config)

    def validate_resources(self) -> None:
        """
        Raises:
            MissingResourceError: If a tool or model required for a real run is missing.
        """
        config = self.config
        ensure_executable_available("whisper-cli", config.whisper_path)
        ensure_path_exists("Whisper model", config.model_path)
        ensure_path_exists("VAD model", config.vad_model_path)
        ensure_executable_available("ffmpeg", config.ffmpeg_path)

    def resolve_output_base(self, input_path: str) -> str:
        """
        Returns the output path without extension for one input file.

        Raises:
            FileSystemError: If the input has no file name or the output
                             directory cannot be created.
        """
        file_name = os.path.basename(input_path)
        stem = os.path.splitext(file_name)[0]
        if not stem or file_name in (".", ".."):
            raise FileSystemError(f"Invalid input filename: {input_path}")
        if self.config.output_dir:
            ensure_dir_exists(self.config.output_dir)
            return os.path.join(self.config.output_dir, stem)
        return os.path.join(os.path.dirname(input_path), stem)

    def _cleanup_temp_files(self, *file_paths: str) -> None:
        """Removes temporary files specified."""
        for file_path in file_paths:
            if file_path and os.path.exists(file_path):
                try:
                    os.remove(file_path)
                    logger.debug(f"Cleaned up temporary file: {file_path}")
                except OSError as e:
                    logger.warning(f"Could not remove temporary file {file_path}: {e}")

    def _create_temp_wav(self) -> str:
        handle = tempfile.NamedTemporaryFile(prefix="aersub_", suffix=".wav", delete=False)
        handle.close()
        return handle.name

    def process_file(self, input_path: str) -> str:
        """
        Produces the SRT for one input file, skipping it when up to date.

        Returns:
            Path of the SRT file.
        """
        output_base = self.resolve_output_base(input_path)
        output_srt = f"{output_base}.srt"

        if is_up_to_date(input_path, output_srt):
            logger.info(f"Skipping {input_path}, {output_srt} is up to date")
            self.events.log(f"SKIP (up-to-date): {display_path(input_path)}")
            return output_srt

        self.events.log(f"Processing {display_path(input_path)}")
        file_start = time.time()

        temp_wav = None
        if self.config.dry_run:
            audio_path = f"{output_base}.__tmp__.wav"
        else:
            temp_wav = self._create_temp_wav()
            audio_path = temp_wav

        try:
            self.audio_extractor.extract_audio(input_path, audio_path)
            self.transcriber.transcribe(audio_path, output_base)
            if self.config.dry_run:
                self.events.log(f"DRY-RUN post-process SRT: {display_path(output_srt)}")
            else:
                dedup_srt(output_srt, self.config.dedup_merge_gap_sec)
        finally:
            self._cleanup_temp_files(temp_wav)

        logger.info(f"Finished {input_path} in {time.time() - file_start:.2f} seconds")
        self.events.log(f"Wrote: {display_path(output_srt)}")
        return output_srt

    def run(self) -> JobResult:
        """
        Executes the job over every input file.

        Returns:
            JobResult listing the SRT path of each input in enumeration order.

        Raises:
            AerSubError: For missing inputs or resources, failed commands and
                         malformed subtitle output. The first failure ends the job.
            OSError: If an external tool cannot be launched.
        """
        config = self.config
        inputs = find_media_files(config.input_path)
        if not inputs:
            raise MissingResourceError(f"No media files found at {config.input_path}")

        if not config.dry_run:
            self.validate_resources()

        logger.info(f"--- Starting transcription of {len(inputs)} file(s) (dry_run={config.dry_run}) ---")
        job_start = time.time()
        result = JobResult()
        for input_path in tqdm(inputs, unit="file", file=sys.stderr, disable=not self.show_progress):
            result.outputs.append(display_path(self.process_file(input_path)))

        logger.info(f"--- Transcription finished in {time.time() - job_start:.2f} seconds ---")
        return result

def transcribe(params: Any, events) -> dict:
    """Handler for the "transcribe" method."""
    config = resolve_transcribe_config(params)
    return TranscriptionJob(config, events).run().to_dict()
