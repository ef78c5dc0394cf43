from __future__ import annotations

import os
from pathlib import Path

import pytest

from shortslab.config.settings import Settings
from shortslab.pipeline import process


@pytest.mark.integration
def test_integration_runs_when_env_present(tmp_path: Path) -> None:
    """
    Integration test for the real speech engine and encoder.

    Skips automatically unless a source video and a provisioned engine exist.
    """
    if not os.getenv("SHORTSLAB_LIVE_TESTS"):
        pytest.skip("Set SHORTSLAB_LIVE_TESTS=1 to run live integration.")
    source = os.getenv("SHORTSLAB_TEST_SOURCE")
    if not source:
        pytest.skip("Missing SHORTSLAB_TEST_SOURCE")

    source_path = Path(source).expanduser()
    if not source_path.exists():
        pytest.skip(f"Source video not found: {source_path}")

    settings = Settings()
    settings.workdir = str(tmp_path / ".shortslab")
    settings.output_dir = str(tmp_path / "out")
    settings.target_duration = 15
    settings.word_level_captions = True

    result = process(source_path, settings, run_id="live1")

    assert result.ok, result.message
    assert result.output_path is not None
    assert result.output_path.exists()
