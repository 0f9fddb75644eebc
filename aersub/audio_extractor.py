"""Builds the ffmpeg invocation that extracts a speech-ready WAV track."""

import ffmpeg
import logging
from typing import List

from .command_runner import CommandRunner

logger = logging.getLogger(__name__)

# Downmix with fixed channel weights, then EBU R128 loudness normalization.
AUDIO_FILTER_CHAIN = (
    "pan=mono|c0=0.35*FL+0.35*FR+0.80*FC+0.15*SL+0.15*SR,"
    "loudnorm=I=-16:LRA=11:TP=-1.5"
)
SAMPLE_RATE = 16000
AUDIO_CODEC = "pcm_s16le"

class AudioExtractor:
    """Extracts a mono 16kHz PCM track from media files."""

    def __init__(self, runner: CommandRunner, ffmpeg_path: str = "ffmpeg"):
        """
        Initializes the AudioExtractor.

        Args:
            runner: CommandRunner used to execute (or report) ffmpeg.
            ffmpeg_path: Path to the ffmpeg executable, or a bare command name
                         resolved through the system PATH.
        """
        self.runner = runner
        self.ffmpeg_cmd = ffmpeg_path
        logger.debug(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def build_args(self, media_path: str, output_audio_path: str) -> List[str]:
        """Returns the ffmpeg arguments (without the program itself)."""
        stream = (
            ffmpeg
            .input(media_path)
            .output(
                output_audio_path,
                vn=None,
                af=AUDIO_FILTER_CHAIN,
                ar=SAMPLE_RATE,
                acodec=AUDIO_CODEC,
            )
            .global_args('-hide_banner', '-loglevel', 'error')
            .overwrite_output()
        )
        return stream.compile(cmd=self.ffmpeg_cmd)[1:]

    def extract_audio(self, media_path: str, output_audio_path: str) -> str:
        """
        Writes the normalized audio track of media_path to output_audio_path.

        Returns:
            output_audio_path.

        Raises:
            CommandError: If ffmpeg exits unsuccessfully.
            OSError: If ffmpeg cannot be launched.
        """
        logger.info(f"Extracting audio from {media_path} to {output_audio_path}")
        self.runner.run(self.ffmpeg_cmd, self.build_args(media_path, output_audio_path))
        return output_audio_path
