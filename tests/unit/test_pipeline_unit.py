from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from shortslab.config.settings import Settings
from shortslab.domain.models import SelectionWindow, TranscriptArtifacts
from shortslab.domain.workspace import RunWorkspace
from shortslab.exceptions import ConfigurationError, TranscriptionError
from shortslab.pipeline import Pipeline, process

SRT = "1\n00:00:00,000 --> 00:00:00,900\nhello world\n"
WTS = "0.00 0.40 hello\n0.40 0.90 world\n"


# -----------------------
# Fake services (deterministic)
# -----------------------
@dataclass
class FakeTranscriber:
    wts: str | None = WTS
    fail: bool = False
    windows: list[SelectionWindow] = field(default_factory=list)

    def transcribe(self, source_path, window, settings, workspace, on_progress=None):  # noqa: ANN001
        self.windows.append(window)
        if self.fail:
            raise TranscriptionError("whisper-cli exited with code 1")
        audio = workspace.audio_wav
        audio.write_bytes(b"RIFF")
        srt = workspace.track(Path(f"{workspace.transcript_base}.srt"))
        srt.write_text(SRT, encoding="utf-8")
        wts = None
        if self.wts is not None and settings.word_level_captions:
            wts = workspace.track(Path(f"{workspace.transcript_base}.wts"))
            wts.write_text(self.wts, encoding="utf-8")
        return TranscriptArtifacts(line_subtitle_path=srt, audio_path=audio, word_timing_path=wts)


@dataclass
class FakeEncoder:
    subtitles: list[str | None] = field(default_factory=list)

    def encode(self, source_path, window, inputs, output_path, workspace, on_progress=None):  # noqa: ANN001
        path = inputs.subtitle_path
        self.subtitles.append(path.read_text(encoding="utf-8") if path else None)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"FAKE_MP4_BYTES")
        return output_path


@dataclass(frozen=True)
class OffsetPolicy:
    start: float
    duration: float

    def resolve(self, source_path: Path, settings: Settings) -> SelectionWindow:
        return SelectionWindow(self.start, self.duration)


def _source(tmp_path: Path) -> Path:
    src = tmp_path / "videos" / "talk.mp4"
    src.parent.mkdir(parents=True)
    src.write_bytes(b"FAKE_SOURCE")
    return src


def _settings(tmp_path: Path, **overrides) -> Settings:  # noqa: ANN003
    settings = Settings(workdir=str(tmp_path / ".shortslab"), auto_caption_offset=False)
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def _dialogues(doc: str) -> list[str]:
    return [line for line in doc.splitlines() if line.startswith("Dialogue:")]


def test_pipeline_unit_end_to_end(tmp_path: Path) -> None:
    settings = _settings(tmp_path, word_level_captions=True)
    encoder = FakeEncoder()
    progress: list[tuple[int, str]] = []

    out = Pipeline(transcriber=FakeTranscriber(), encoder=encoder).run(
        _source(tmp_path),
        settings,
        on_progress=lambda pct, msg: progress.append((pct, msg)),
        run_id="unit1",
    )

    assert out == (tmp_path / "videos" / "shorts-lab" / "output" / "short-unit1.mp4").resolve()
    assert out.read_bytes() == b"FAKE_MP4_BYTES"
    assert _dialogues(encoder.subtitles[0]) == [
        "Dialogue: 0,0:00:00.00,0:00:00.40,Default,,0,0,0,,hello",
        "Dialogue: 0,0:00:00.40,0:00:00.90,Default,,0,0,0,,world",
    ]
    assert progress[0] == (5, "Selecting clip window...")
    assert (32, "Building captions...") in progress
    assert progress[-1] == (100, "Short created")
    assert not (tmp_path / ".shortslab" / "unit1").exists()


def test_captions_are_relative_to_the_trimmed_audio(tmp_path: Path) -> None:
    transcriber = FakeTranscriber()
    encoder = FakeEncoder()
    settings = _settings(tmp_path, word_level_captions=True)

    Pipeline(
        selection=OffsetPolicy(start=40.0, duration=20.0),
        transcriber=transcriber,
        encoder=encoder,
    ).run(_source(tmp_path), settings, run_id="unit2")

    assert transcriber.windows == [SelectionWindow(40.0, 20.0)]
    assert _dialogues(encoder.subtitles[0])[0].startswith("Dialogue: 0,0:00:00.00,0:00:00.40,")


def test_line_level_captions_and_style(tmp_path: Path) -> None:
    encoder = FakeEncoder()
    settings = _settings(tmp_path, caption_style="punchy", caption_position="middle", caption_max_words=1)

    Pipeline(transcriber=FakeTranscriber(), encoder=encoder).run(
        _source(tmp_path), settings, run_id="unit3"
    )

    doc = encoder.subtitles[0]
    assert "Impact,56," in doc
    lines = _dialogues(doc)
    assert [line.rsplit(",", 1)[-1] for line in lines] == ["hello", "world"]
    assert lines[1].startswith("Dialogue: 0,0:00:00.45,0:00:00.90,")


def test_auto_offset_uses_detected_silence(tmp_path: Path) -> None:
    encoder = FakeEncoder()
    seen: list[Path] = []

    def detector(audio, *, ffmpeg_binary):  # noqa: ANN001
        seen.append(audio)
        return 0.5

    settings = _settings(tmp_path, word_level_captions=True, auto_caption_offset=True)
    Pipeline(transcriber=FakeTranscriber(), encoder=encoder, silence_detector=detector).run(
        _source(tmp_path), settings, run_id="unit4"
    )

    assert seen and seen[0].name == "clip-unit4.wav"
    assert _dialogues(encoder.subtitles[0])[0].startswith("Dialogue: 0,0:00:00.50,0:00:00.90,")


def test_no_burn_skips_transcription(tmp_path: Path) -> None:
    transcriber = FakeTranscriber()
    encoder = FakeEncoder()
    settings = _settings(tmp_path, burn_captions=False)

    Pipeline(transcriber=transcriber, encoder=encoder).run(_source(tmp_path), settings, run_id="unit5")

    assert transcriber.windows == []
    assert encoder.subtitles == [None]


def test_output_dir_setting(tmp_path: Path) -> None:
    settings = _settings(tmp_path, output_dir=str(tmp_path / "exports"))
    out = Pipeline(transcriber=FakeTranscriber(), encoder=FakeEncoder()).run(
        _source(tmp_path), settings, run_id="unit6"
    )
    assert out == (tmp_path / "exports" / "short-unit6.mp4").resolve()


def test_missing_source_is_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        Pipeline(transcriber=FakeTranscriber(), encoder=FakeEncoder()).run(
            tmp_path / "nope.mp4", _settings(tmp_path)
        )


def test_failure_cleans_workspace_and_process_reports_it(tmp_path: Path) -> None:
    encoder = FakeEncoder()
    pipeline = Pipeline(transcriber=FakeTranscriber(fail=True), encoder=encoder)

    result = process(_source(tmp_path), _settings(tmp_path), run_id="unit7", pipeline=pipeline)

    assert not result.ok
    assert isinstance(result.error, TranscriptionError)
    assert result.message == "Transcription error: whisper-cli exited with code 1"
    assert encoder.subtitles == []
    assert not (tmp_path / ".shortslab" / "unit7").exists()


def test_process_success_result(tmp_path: Path) -> None:
    pipeline = Pipeline(transcriber=FakeTranscriber(), encoder=FakeEncoder())
    result = process(_source(tmp_path), _settings(tmp_path), run_id="unit8", pipeline=pipeline)

    assert result.ok
    assert result.output_path is not None and result.output_path.exists()


def test_workspace_is_never_shared_between_runs(tmp_path: Path) -> None:
    a = RunWorkspace.create(str(tmp_path))
    b = RunWorkspace.create(str(tmp_path))
    assert a.root != b.root


def test_process_reports_unusable_workdir(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    settings = Settings(workdir=str(blocker), auto_caption_offset=False)
    pipeline = Pipeline(transcriber=FakeTranscriber(), encoder=FakeEncoder())

    result = process(_source(tmp_path), settings, run_id="unit9", pipeline=pipeline)

    assert not result.ok
    assert isinstance(result.error, ConfigurationError)
    assert result.message.startswith("Configuration error: Cannot create run directory")


def test_process_rejects_run_id_outside_workdir(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    keep = tmp_path / "keep.txt"
    keep.write_text("user data", encoding="utf-8")
    pipeline = Pipeline(transcriber=FakeTranscriber(), encoder=FakeEncoder())

    result = process(_source(tmp_path), settings, run_id="..", pipeline=pipeline)

    assert isinstance(result.error, ConfigurationError)
    assert keep.exists()
    assert (tmp_path / "videos" / "talk.mp4").exists()


def test_process_wraps_stray_os_errors(tmp_path: Path) -> None:
    class BrokenEncoder(FakeEncoder):
        def encode(self, *args, **kwargs):  # noqa: ANN002, ANN003
            raise PermissionError("denied")

    pipeline = Pipeline(transcriber=FakeTranscriber(), encoder=BrokenEncoder())
    result = process(_source(tmp_path), _settings(tmp_path), run_id="unit10", pipeline=pipeline)

    assert not result.ok
    assert result.message == "Runtime error: PermissionError: denied"
    assert not (tmp_path / ".shortslab" / "unit10").exists()
