from pathlib import Path

import pytest

from shortslab.domain.workspace import RunWorkspace
from shortslab.exceptions import ConfigurationError


def test_workspace_paths(tmp_path: Path) -> None:
    ws = RunWorkspace.create(str(tmp_path / ".shortslab"), run_id="abc123")
    assert ws.root.name == "abc123"
    assert ws.audio_wav.name == "clip-abc123.wav"
    assert ws.audio_wav.parent == ws.audio_dir
    assert ws.subtitle_ass.name == "captions-abc123.ass"
    assert ws.transcript_base.name == "captions-abc123"
    assert ws.transcript_base.parent == ws.captions_dir


def test_generated_run_ids_are_unique(tmp_path: Path) -> None:
    ids = {RunWorkspace.create(str(tmp_path), run_id=None).run_id for _ in range(20)}
    assert len(ids) == 20


def test_cleanup_removes_tracked_files_and_is_idempotent(tmp_path: Path) -> None:
    ws = RunWorkspace.create(str(tmp_path / ".shortslab"), run_id="r1")
    ws.audio_wav.write_bytes(b"RIFF")
    ws.subtitle_ass.write_text("[Script Info]\n", encoding="utf-8")
    outside = ws.track(tmp_path / "out" / "short.partial.mp4")
    outside.parent.mkdir(parents=True)
    outside.write_bytes(b"partial")

    ws.cleanup()
    ws.cleanup()

    assert not ws.root.exists()
    assert not outside.exists()
    assert outside.parent.exists()


def test_track_does_not_duplicate(tmp_path: Path) -> None:
    ws = RunWorkspace.create(str(tmp_path), run_id="r2")
    ws.audio_wav
    ws.audio_wav
    assert len(ws.tracked) == 1


@pytest.mark.parametrize("run_id", ["..", ".", "a/b", "../escape", "x" * 65, "sp ace", "abc\n"])
def test_unsafe_run_ids_are_rejected(tmp_path: Path, run_id: str) -> None:
    workdir = tmp_path / "work"
    keep = tmp_path / "keep.txt"
    keep.write_text("user data", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        RunWorkspace.create(str(workdir), run_id=run_id)

    assert keep.exists()


def test_run_directory_in_use_is_rejected(tmp_path: Path) -> None:
    first = RunWorkspace.create(str(tmp_path), run_id="busy")
    first.audio_wav.write_bytes(b"RIFF")

    with pytest.raises(ConfigurationError, match="already in use"):
        RunWorkspace.create(str(tmp_path), run_id="busy")

    assert first.audio_wav.exists()


def test_workdir_that_is_a_file_is_a_configuration_error(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Cannot create run directory"):
        RunWorkspace.create(str(blocker), run_id="r3")
