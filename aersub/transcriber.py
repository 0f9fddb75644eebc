"""Handles Speech-to-Text transcription through the whisper-cli executable."""

import logging
from abc import ABC, abstractmethod
from typing import List

from .command_runner import CommandRunner
from .models import TranscribeConfig

logger = logging.getLogger(__name__)

def format_number(value) -> str:
    """Renders a number in its shortest form; whole floats lose their '.0'."""
    if isinstance(value, float):
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text
    return str(value)

class Transcriber(ABC):
    """Abstract base class for transcription backends."""

    @abstractmethod
    def transcribe(self, audio_path: str, output_base: str) -> str:
        """
        Transcribes the given audio file into an SRT file.

        Args:
            audio_path: Path to the 16kHz mono WAV file.
            output_base: Output path without extension.

        Returns:
            The path of the SRT file the backend writes.
        """
        pass

class WhisperCliTranscriber(Transcriber):
    """Implements transcription by running whisper.cpp's whisper-cli."""

    def __init__(self, runner: CommandRunner, config: TranscribeConfig):
        self.runner = runner
        self.config = config

    def build_args(self, audio_path: str, output_base: str) -> List[str]:
        config = self.config
        args = [
            "-m", config.model_path,
            "-f", audio_path,
            "-l", config.language,
        ]
        if config.translate:
            args.append("-tr")
        args.extend([
            "-t", format_number(config.threads),
            "-bs", format_number(config.beam_size),
            "-bo", format_number(config.best_of),
            "-nth", format_number(config.no_speech_thold),
            "-mc", format_number(config.max_context),
            "--suppress-nst",
            "--vad",
            "-vm", config.vad_model_path,
            "-vt", format_number(config.vad_threshold),
            "-vspd", format_number(config.vad_min_speech_ms),
            "-vsd", format_number(config.vad_min_sil_ms),
            "-vp", format_number(config.vad_pad_ms),
            "-ml", format_number(config.max_len_chars),
            "-osrt",
            "-of", output_base,
            "-pp",
        ])
        if config.split_on_word:
            args.append("-sow")
        return args

    def transcribe(self, audio_path: str, output_base: str) -> str:
        """
        Runs whisper-cli over audio_path, writing <output_base>.srt.

        Raises:
            CommandError: If whisper-cli exits unsuccessfully.
            OSError: If whisper-cli cannot be launched.
        """
        logger.info(f"Transcribing {audio_path} (language={self.config.language}, translate={self.config.translate})")
        self.runner.run(self.config.whisper_path, self.build_args(audio_path, output_base))
        return f"{output_base}.srt"
