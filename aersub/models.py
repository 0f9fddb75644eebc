"""Data models for the AerSub runtime."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

@dataclass
class RpcRequest:
    """One decoded request line."""
    id: int
    method: str
    params: Any = field(default_factory=dict)

@dataclass
class RpcResponse:
    """Reply to one request. Exactly one of result/error is set."""
    id: int
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id}
        if self.error is not None:
            data["error"] = {"message": self.error}
        else:
            data["result"] = self.result
        return data

@dataclass(frozen=True)
class TranscribeConfig:
    """Fully resolved settings for one transcription job."""
    input_path: str
    output_dir: Optional[str]
    model_path: str
    vad_model_path: str
    whisper_path: str
    ffmpeg_path: str
    vk_icd_filenames: Optional[str]
    threads: int
    beam_size: int
    best_of: int
    max_len_chars: int
    split_on_word: bool
    vad_threshold: float
    vad_min_speech_ms: int
    vad_min_sil_ms: int
    vad_pad_ms: int
    no_speech_thold: float
    max_context: int
    dedup_merge_gap_sec: float
    translate: bool
    language: str
    dry_run: bool

@dataclass
class SubtitleCue:
    """A single timed subtitle entry."""
    start_ms: int
    end_ms: int
    text: str
    norm: str

@dataclass
class JobResult:
    """Outcome of a transcription job."""
    outputs: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"jobs": len(self.outputs), "outputs": list(self.outputs)}

@dataclass
class AdapterInfo:
    """Description of a compute adapter as reported by torch."""
    name: str
    vendor: int
    device: int
    device_type: str
    backend: str
    driver: str
    driver_info: str
