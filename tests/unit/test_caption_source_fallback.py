from __future__ import annotations

import json
from pathlib import Path

from shortslab.domain.models import TimedUnit, TranscriptArtifacts
from shortslab.services.transcription import caption_providers, select_caption_source

SRT = "1\n00:00:00,000 --> 00:00:00,900\nhello world\n"


def _artifacts(tmp_path: Path, *, wts: str | None = None, data: dict | str | None = None) -> TranscriptArtifacts:
    srt_path = tmp_path / "captions.srt"
    srt_path.write_text(SRT, encoding="utf-8")
    wts_path = None
    data_path = None
    if wts is not None:
        wts_path = tmp_path / "captions.wts"
        wts_path.write_text(wts, encoding="utf-8")
    if data is not None:
        data_path = tmp_path / "captions.json"
        raw = data if isinstance(data, str) else json.dumps(data)
        data_path.write_text(raw, encoding="utf-8")
    return TranscriptArtifacts(
        line_subtitle_path=srt_path,
        audio_path=tmp_path / "a.wav",
        word_timing_path=wts_path,
        token_data_path=data_path,
    )


def test_provider_order() -> None:
    artifacts = TranscriptArtifacts(line_subtitle_path=Path("a.srt"), audio_path=Path("a.wav"))
    assert [p.name for p in caption_providers(artifacts, True)] == [
        "word_timing",
        "token_data",
        "line_subtitles",
    ]
    assert [p.name for p in caption_providers(artifacts, False)] == ["line_subtitles"]


def test_word_timing_wins_when_present(tmp_path: Path) -> None:
    artifacts = _artifacts(tmp_path, wts="0.00 0.40 hello\n0.40 0.90 world\n")
    messages: list[str] = []
    source = select_caption_source(artifacts, True, lambda _pct, msg: messages.append(msg))

    assert source.name == "word_timing"
    assert source.word_level is True
    assert source.units == [TimedUnit(0.0, 0.4, "hello"), TimedUnit(0.4, 0.9, "world")]
    assert messages == []


def test_falls_back_to_token_data(tmp_path: Path) -> None:
    data = {"transcription": [{"tokens": [{"text": "hi", "offsets": {"from": 0, "to": 500}}]}]}
    artifacts = _artifacts(tmp_path, wts="", data=data)
    progress: list[tuple[int, str]] = []
    source = select_caption_source(artifacts, True, lambda pct, msg: progress.append((pct, msg)))

    assert source.name == "token_data"
    assert source.word_level is True
    assert progress == [(35, "Word timestamps missing, trying token data...")]


def test_falls_back_to_line_subtitles(tmp_path: Path) -> None:
    artifacts = _artifacts(tmp_path, data="{broken")
    messages: list[str] = []
    source = select_caption_source(artifacts, True, lambda _pct, msg: messages.append(msg))

    assert source.name == "line_subtitles"
    assert source.word_level is False
    assert source.units == [TimedUnit(0.0, 0.9, "hello world")]
    assert messages == [
        "Word timestamps missing, trying token data...",
        "Word timestamps not supported by this engine. Using line captions.",
    ]


def test_line_level_never_reads_word_artifacts(tmp_path: Path) -> None:
    artifacts = _artifacts(tmp_path, wts="0.00 0.40 hello\n")
    source = select_caption_source(artifacts, False)
    assert source.name == "line_subtitles"


def test_empty_line_subtitles_are_returned_not_raised(tmp_path: Path) -> None:
    srt = tmp_path / "empty.srt"
    srt.write_text("", encoding="utf-8")
    artifacts = TranscriptArtifacts(line_subtitle_path=srt, audio_path=tmp_path / "a.wav")
    source = select_caption_source(artifacts, False)
    assert source.units == []
