import os
import re
import stat
import sys

import pytest

from aersub.config_resolver import resolve_transcribe_config
from aersub.exceptions import CommandError, FileSystemError, MissingResourceError, SubtitleParseError
from aersub.subtitle_generator import TranscriptionJob, ensure_executable_available, is_up_to_date

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="fake tools are shell scripts")

DUPLICATE_SRT = (
    "1\\n00:00:01,000 --> 00:00:02,000\\nHello\\n\\n"
    "2\\n00:00:02,100 --> 00:00:03,000\\nhello\\n\\n"
)


def write_script(path, body):
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def toolchain(tmp_path):
    """Fake ffmpeg/whisper-cli plus model files; the tools log their calls."""
    tools = tmp_path / "tools"
    tools.mkdir()
    calls = tmp_path / "calls.log"
    ffmpeg = write_script(tools / "ffmpeg", f"""
for arg in "$@"; do
  case "$arg" in *.wav) echo "$arg" >> "{tmp_path / 'wav.log'}";; esac
done
echo ffmpeg >> "{calls}"
exit 0
""")
    whisper = write_script(tools / "whisper-cli", f"""
out=""
while [ $# -gt 0 ]; do
  if [ "$1" = "-of" ]; then out="$2"; fi
  shift
done
echo whisper >> "{calls}"
printf '{DUPLICATE_SRT}' > "$out.srt"
""")
    model = tools / "model.bin"
    vad = tools / "vad.bin"
    model.write_text("m")
    vad.write_text("v")
    return {
        "ffmpeg_path": ffmpeg,
        "whisper_path": whisper,
        "model_path": str(model),
        "vad_model_path": str(vad),
        "calls": calls,
        "wav_log": tmp_path / "wav.log",
    }


def make_job(events, tool_params=None, **params):
    merged = dict(tool_params or {})
    merged.update(params)
    for key in ("calls", "wav_log"):
        merged.pop(key, None)
    config = resolve_transcribe_config(merged, asset_dir="")
    return TranscriptionJob(config, events)


def tool_calls(toolchain):
    calls = toolchain["calls"]
    return calls.read_text().split() if calls.exists() else []


def test_dry_run_single_file(events, tmp_path):
    media = tmp_path / "clip.mp3"
    media.write_text("x")

    result = make_job(events, input_path=str(media), dry_run=True).run()

    assert result.to_dict() == {"jobs": 1, "outputs": [str(tmp_path / "clip.srt")]}
    assert events.messages[0] == f"Processing {media}"
    dry = [m for m in events.messages if m.startswith("DRY-RUN ")]
    assert len(dry) == 3
    assert str(tmp_path / "clip.__tmp__.wav") in dry[0]
    assert dry[2] == f"DRY-RUN post-process SRT: {tmp_path / 'clip.srt'}"
    assert events.messages[-1] == f"Wrote: {tmp_path / 'clip.srt'}"
    assert not (tmp_path / "clip.__tmp__.wav").exists()


def test_dry_run_skips_resource_validation(events, tmp_path):
    (tmp_path / "a.wav").write_text("x")
    job = make_job(events, input_path=str(tmp_path), dry_run=True,
                   whisper_path=str(tmp_path / "missing" / "whisper-cli"))
    assert job.run().to_dict()["jobs"] == 1


def test_output_dir_is_created(events, tmp_path):
    media = tmp_path / "talk.mkv"
    media.write_text("x")
    out_dir = tmp_path / "subs" / "nested"

    result = make_job(events, input_path=str(media), output_dir=str(out_dir), dry_run=True).run()

    assert out_dir.is_dir()
    assert result.outputs == [str(out_dir / "talk.srt")]


def test_directory_enumeration_ignores_other_extensions(events, tmp_path):
    (tmp_path / "clip.mp4").write_text("x")
    (tmp_path / "notes.txt").write_text("x")

    result = make_job(events, input_path=str(tmp_path), dry_run=True).run()

    assert result.outputs == [str(tmp_path / "clip.srt")]


def test_stem_with_dots_is_kept(events, tmp_path):
    media = tmp_path / "ep.01.final.mp4"
    media.write_text("x")
    result = make_job(events, input_path=str(media), dry_run=True).run()
    assert result.outputs == [str(tmp_path / "ep.01.final.srt")]


def test_no_media_found(events, tmp_path):
    (tmp_path / "notes.txt").write_text("x")
    with pytest.raises(MissingResourceError, match="No media files found"):
        make_job(events, input_path=str(tmp_path), dry_run=True).run()


def test_missing_input(events, tmp_path):
    with pytest.raises(MissingResourceError, match="Input path does not exist"):
        make_job(events, input_path=str(tmp_path / "gone.mp4"), dry_run=True).run()


@pytest.mark.parametrize("missing, message", [
    ("whisper_path", "whisper-cli not found"),
    ("model_path", "Whisper model not found"),
    ("vad_model_path", "VAD model not found"),
    ("ffmpeg_path", "ffmpeg not found"),
])
def test_missing_resources_abort_before_processing(events, tmp_path, toolchain, missing, message):
    media = tmp_path / "clip.mp3"
    media.write_text("x")
    overrides = {missing: str(tmp_path / "nowhere" / "thing")}

    with pytest.raises(MissingResourceError, match=message):
        make_job(events, toolchain, input_path=str(media), **overrides).run()
    assert events.messages == []
    assert tool_calls(toolchain) == []


def test_bare_executable_names_are_not_prevalidated(tmp_path):
    ensure_executable_available("ffmpeg", "surely-not-installed-tool")
    with pytest.raises(MissingResourceError):
        ensure_executable_available("ffmpeg", str(tmp_path / "bin" / "ffmpeg"))


def test_up_to_date_output_is_skipped(events, tmp_path, toolchain):
    media = tmp_path / "clip.mp3"
    media.write_text("x")
    srt = tmp_path / "clip.srt"
    srt.write_text("existing")
    os.utime(media, (1_000_000, 1_000_000))
    os.utime(srt, (2_000_000, 2_000_000))

    result = make_job(events, toolchain, input_path=str(media)).run()

    assert result.outputs == [str(srt)]
    assert events.messages == [f"SKIP (up-to-date): {media}"]
    assert tool_calls(toolchain) == []
    assert srt.read_text() == "existing"


def test_is_up_to_date_rules(tmp_path):
    media = tmp_path / "clip.mp3"
    srt = tmp_path / "clip.srt"
    media.write_text("x")
    assert not is_up_to_date(str(media), str(srt))

    srt.write_text("y")
    os.utime(media, (2_000_000, 2_000_000))
    os.utime(srt, (1_000_000, 1_000_000))
    assert not is_up_to_date(str(media), str(srt))

    os.utime(srt, (2_000_000, 2_000_000))
    assert is_up_to_date(str(media), str(srt))


@posix_only
def test_real_run_extracts_transcribes_and_dedups(events, tmp_path, toolchain):
    media = tmp_path / "clip.mp3"
    media.write_text("x")

    result = make_job(events, toolchain, input_path=str(media), dedup_merge_gap_sec=0.5).run()

    srt = tmp_path / "clip.srt"
    assert result.outputs == [str(srt)]
    assert tool_calls(toolchain) == ["ffmpeg", "whisper"]
    assert srt.read_text(encoding="utf-8") == "1\n00:00:01,000 --> 00:00:03,000\nHello\n"
    assert events.messages == [f"Processing {media}", f"Wrote: {srt}"]
    temp_wav = toolchain["wav_log"].read_text().strip()
    assert temp_wav.endswith(".wav")
    assert not os.path.exists(temp_wav)


@posix_only
def test_failed_extraction_aborts_batch_and_removes_temp_audio(events, tmp_path, toolchain):
    (tmp_path / "a.mp3").write_text("x")
    (tmp_path / "b.mp3").write_text("x")
    failing = write_script(tmp_path / "tools" / "bad-ffmpeg", f"""
for arg in "$@"; do
  case "$arg" in *.wav) echo "$arg" >> "{toolchain['wav_log']}";; esac
done
exit 1
""")
    params = dict(toolchain, ffmpeg_path=failing)

    with pytest.raises(CommandError, match=re.escape("Command failed: " + failing)):
        make_job(events, params, input_path=str(tmp_path)).run()

    assert events.messages == [f"Processing {tmp_path / 'a.mp3'}"]
    assert tool_calls(toolchain) == []
    temp_wav = toolchain["wav_log"].read_text().strip()
    assert not os.path.exists(temp_wav)


@posix_only
def test_malformed_srt_fails_the_job(events, tmp_path, toolchain):
    (tmp_path / "clip.mp3").write_text("x")
    whisper = write_script(tmp_path / "tools" / "bad-whisper", """
out=""
while [ $# -gt 0 ]; do
  if [ "$1" = "-of" ]; then out="$2"; fi
  shift
done
printf '1\\nnot-a-time --> 00:00:01,000\\nHi\\n' > "$out.srt"
""")
    params = dict(toolchain, whisper_path=whisper)

    with pytest.raises(SubtitleParseError, match="Invalid timestamp"):
        make_job(events, params, input_path=str(tmp_path / "clip.mp3")).run()


@posix_only
def test_missing_srt_from_recognizer_is_tolerated(events, tmp_path, toolchain):
    (tmp_path / "clip.mp3").write_text("x")
    whisper = write_script(tmp_path / "tools" / "quiet-whisper", "exit 0\n")
    params = dict(toolchain, whisper_path=whisper)

    result = make_job(events, params, input_path=str(tmp_path / "clip.mp3")).run()

    assert result.outputs == [str(tmp_path / "clip.srt")]
    assert not (tmp_path / "clip.srt").exists()


def test_invalid_input_filename(events, tmp_path):
    job = make_job(events, input_path=str(tmp_path), dry_run=True)
    with pytest.raises(FileSystemError, match="Invalid input filename"):
        job.resolve_output_base(str(tmp_path) + os.sep)
