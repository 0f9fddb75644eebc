"""Resolves raw transcribe parameters into a complete TranscribeConfig."""

import logging
import math
import os
import sys
from typing import Any, Optional

from .exceptions import ConfigurationError
from .models import TranscribeConfig
from .utils import default_binary_name

logger = logging.getLogger(__name__)

ASSET_DIR_ENV = "AER_ASSET_DIR"

MODEL_FILE = "models/ggml-large-v3.bin"
VAD_MODEL_FILE = "models/ggml-silero-v6.2.0.bin"
WHISPER_FALLBACK = "./build/bin/whisper-cli"
FFMPEG_FALLBACK = "ffmpeg"

STRING_FIELDS = (
    "input_path", "output_dir", "model_path", "vad_model_path",
    "whisper_path", "ffmpeg_path", "vk_icd_filenames", "language",
)
INT_FIELDS = (
    "threads", "beam_size", "best_of", "max_len_chars",
    "vad_min_speech_ms", "vad_min_sil_ms", "vad_pad_ms", "max_context",
)
FLOAT_FIELDS = ("vad_threshold", "no_speech_thold", "dedup_merge_gap_sec")
BOOL_FIELDS = ("split_on_word", "translate", "dry_run")

DEFAULTS = {
    "beam_size": 8,
    "best_of": 8,
    "max_len_chars": 60,
    "split_on_word": True,
    "vad_threshold": 0.35,
    "vad_min_speech_ms": 200,
    "vad_min_sil_ms": 250,
    "vad_pad_ms": 80,
    "no_speech_thold": 0.75,
    "max_context": 0,
    "dedup_merge_gap_sec": 0.6,
    "translate": True,
    "language": "auto",
    "dry_run": False,
}

def _executable_dir() -> Optional[str]:
    if getattr(sys, "frozen", False):
        return os.path.dirname(os.path.abspath(sys.executable))
    if sys.argv and sys.argv[0]:
        return os.path.dirname(os.path.abspath(sys.argv[0]))
    return None

def resolve_asset_dir() -> Optional[str]:
    """
    Finds the directory holding bundled models and binaries.

    Candidates, first existing wins: $AER_ASSET_DIR, <executable dir>/assets,
    ./runtime/assets, ./assets.
    """
    env_dir = os.environ.get(ASSET_DIR_ENV)
    if env_dir and os.path.exists(env_dir):
        return env_dir

    candidates = []
    exe_dir = _executable_dir()
    if exe_dir:
        candidates.append(os.path.join(exe_dir, "assets"))
    cwd = os.getcwd()
    candidates.append(os.path.join(cwd, "runtime", "assets"))
    candidates.append(os.path.join(cwd, "assets"))

    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None

def resolve_optional_path(value: Optional[str], asset_default: Optional[str], fallback: str) -> str:
    """Returns the trimmed explicit value, else the asset default, else the fallback."""
    if value is not None and value.strip():
        return value.strip()
    if asset_default is not None:
        return asset_default
    return fallback

def _check_types(params: dict) -> None:
    for name in STRING_FIELDS:
        value = params.get(name)
        if value is not None and not isinstance(value, str):
            raise ConfigurationError(f"Invalid transcribe params: `{name}` must be a string, got {value!r}")
    for name in INT_FIELDS:
        value = params.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(f"Invalid transcribe params: `{name}` must be a non-negative integer, got {value!r}")
    for name in FLOAT_FIELDS:
        value = params.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"Invalid transcribe params: `{name}` must be a number, got {value!r}")
        try:
            finite = math.isfinite(value)
        except OverflowError:
            finite = False
        if not finite:
            raise ConfigurationError(f"Invalid transcribe params: `{name}` must be a finite number, got {value!r}")
    for name in BOOL_FIELDS:
        value = params.get(name)
        if value is not None and not isinstance(value, bool):
            raise ConfigurationError(f"Invalid transcribe params: `{name}` must be a boolean, got {value!r}")

def resolve_transcribe_config(params: Any, asset_dir: Optional[str] = None) -> TranscribeConfig:
    """
    Builds a TranscribeConfig from request parameters.

    Args:
        params: The decoded "params" value of a transcribe request.
        asset_dir: Asset directory to use; discovered when None. An empty
                   string disables asset defaults.

    Returns:
        A TranscribeConfig with every field set.

    Raises:
        ConfigurationError: If params has the wrong shape or input_path is
                            missing or blank.
    """
    if not isinstance(params, dict):
        raise ConfigurationError(f"Invalid transcribe params: expected an object, got {params!r}")
    if params.get("input_path") is None:
        raise ConfigurationError("Invalid transcribe params: missing field `input_path`")
    _check_types(params)

    input_path = params["input_path"]
    if not input_path.strip():
        raise ConfigurationError("input_path is required")

    if asset_dir is None:
        asset_dir = resolve_asset_dir()
    if asset_dir:
        logger.debug(f"Using asset directory: {asset_dir}")

    def from_assets(*parts: str) -> Optional[str]:
        return os.path.join(asset_dir, *parts) if asset_dir else None

    def setting(name: str):
        value = params.get(name)
        return DEFAULTS[name] if value is None else value

    output_dir = params.get("output_dir")
    vk_icd_filenames = params.get("vk_icd_filenames")
    threads = params.get("threads")

    return TranscribeConfig(
        input_path=input_path,
        output_dir=output_dir if output_dir and output_dir.strip() else None,
        model_path=resolve_optional_path(params.get("model_path"), from_assets(*MODEL_FILE.split("/")), MODEL_FILE),
        vad_model_path=resolve_optional_path(params.get("vad_model_path"), from_assets(*VAD_MODEL_FILE.split("/")), VAD_MODEL_FILE),
        whisper_path=resolve_optional_path(params.get("whisper_path"), from_assets("bin", default_binary_name("whisper-cli")), WHISPER_FALLBACK),
        ffmpeg_path=resolve_optional_path(params.get("ffmpeg_path"), from_assets("bin", default_binary_name("ffmpeg")), FFMPEG_FALLBACK),
        vk_icd_filenames=vk_icd_filenames if vk_icd_filenames and vk_icd_filenames.strip() else None,
        threads=threads if threads is not None else (os.cpu_count() or 1),
        beam_size=setting("beam_size"),
        best_of=setting("best_of"),
        max_len_chars=setting("max_len_chars"),
        split_on_word=setting("split_on_word"),
        vad_threshold=float(setting("vad_threshold")),
        vad_min_speech_ms=setting("vad_min_speech_ms"),
        vad_min_sil_ms=setting("vad_min_sil_ms"),
        vad_pad_ms=setting("vad_pad_ms"),
        no_speech_thold=float(setting("no_speech_thold")),
        max_context=setting("max_context"),
        dedup_merge_gap_sec=float(setting("dedup_merge_gap_sec")),
        translate=setting("translate"),
        language=setting("language"),
        dry_run=setting("dry_run"),
    )
