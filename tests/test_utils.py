import os
import sys

import pytest

from aersub.exceptions import FileSystemError, MissingResourceError, SubtitleParseError
from aersub.utils import (
    default_binary_name,
    display_text,
    ensure_dir_exists,
    find_media_files,
    ms_to_timestamp,
    timestamp_to_ms,
)


@pytest.mark.parametrize("stamp", ["00:00:00,000", "01:02:03,004", "10:59:59,999", "99:00:00,001"])
def test_timestamp_round_trip(stamp):
    assert ms_to_timestamp(timestamp_to_ms(stamp)) == stamp


def test_timestamp_to_ms_value():
    assert timestamp_to_ms(" 01:02:03,004 ") == 3723004


@pytest.mark.parametrize("stamp", ["", "00:00:01", "00:01,000", "00-00-01,000", "aa:00:01,000", "00:00:01,", "00:00:01.000"])
def test_timestamp_to_ms_rejects_malformed(stamp):
    with pytest.raises(SubtitleParseError):
        timestamp_to_ms(stamp)


def test_ms_to_timestamp_clamps_negative():
    assert ms_to_timestamp(-5) == "00:00:00,000"


def test_find_media_files_filters_extensions(tmp_path):
    (tmp_path / "clip.mp4").write_text("x")
    (tmp_path / "note.txt").write_text("x")

    assert find_media_files(str(tmp_path)) == [str(tmp_path / "clip.mp4")]


def test_find_media_files_recurses_case_insensitively(tmp_path):
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    (nested / "TALK.MKV").write_text("x")
    (tmp_path / "song.M4a").write_text("x")
    (tmp_path / "readme").write_text("x")

    found = find_media_files(str(tmp_path))

    assert sorted(found) == sorted([str(nested / "TALK.MKV"), str(tmp_path / "song.M4a")])


def test_find_media_files_returns_single_file_as_is(tmp_path):
    media = tmp_path / "anything.bin"
    media.write_text("x")
    assert find_media_files(str(media)) == [str(media)]


def test_find_media_files_missing_input(tmp_path):
    with pytest.raises(MissingResourceError, match="Input path does not exist"):
        find_media_files(str(tmp_path / "missing"))


def test_find_media_files_empty_directory(tmp_path):
    assert find_media_files(str(tmp_path)) == []


@pytest.mark.skipif(sys.platform.startswith("win"), reason="symlinks need privileges on Windows")
def test_find_media_files_lists_each_path_to_a_linked_directory(tmp_path):
    real = tmp_path / "real"
    real.mkdir()
    (real / "clip.wav").write_text("x")
    os.symlink(str(real), str(tmp_path / "linked"))
    os.symlink(str(tmp_path), str(real / "loop"))

    found = find_media_files(str(tmp_path))

    assert found == [str(tmp_path / "linked" / "clip.wav"), str(real / "clip.wav")]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="symlinks need privileges on Windows")
def test_find_media_files_does_not_follow_link_to_ancestor(tmp_path):
    (tmp_path / "a.mp3").write_text("x")
    nested = tmp_path / "sub"
    nested.mkdir()
    os.symlink(str(tmp_path), str(nested / "back"))

    assert find_media_files(str(tmp_path)) == [str(tmp_path / "a.mp3")]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="symlinks need privileges on Windows")
def test_find_media_files_skips_broken_links(tmp_path):
    (tmp_path / "a.mp3").write_text("x")
    os.symlink(str(tmp_path / "gone.mp3"), str(tmp_path / "b.mp3"))

    assert find_media_files(str(tmp_path)) == [str(tmp_path / "a.mp3")]


def test_display_text_replaces_undecodable_bytes():
    assert display_text(os.fsdecode(b"clip\xff.mp3")) == "clip�.mp3"
    assert display_text("lone \ud800 surrogate") == "lone � surrogate"
    assert display_text("café.mkv") == "café.mkv"


def test_ensure_dir_exists_creates_nested(tmp_path):
    target = tmp_path / "x" / "y"
    ensure_dir_exists(str(target))
    assert target.is_dir()


def test_ensure_dir_exists_rejects_file(tmp_path):
    target = tmp_path / "file"
    target.write_text("x")
    with pytest.raises(FileSystemError):
        ensure_dir_exists(str(target))


def test_default_binary_name(monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    assert default_binary_name("ffmpeg") == "ffmpeg.exe"
    monkeypatch.setattr(sys, "platform", "linux")
    assert default_binary_name("ffmpeg") == "ffmpeg"
