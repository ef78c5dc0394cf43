from __future__ import annotations

import subprocess
import sys
import tempfile
from pathlib import Path

from shortslab.config.settings import Settings
from shortslab.exceptions import ConfigurationError
from shortslab.services.provisioning import model_path_for


def _run_cmd(cmd: list[str]) -> tuple[int, str]:
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except (FileNotFoundError, PermissionError):
        return 1, ""
    return proc.returncode, proc.stdout.strip() or proc.stderr.strip()


def _check_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, delete=True):
            return True
    except OSError:
        return False


def _get_version() -> str:
    try:
        import importlib.metadata

        return importlib.metadata.version("shortslab")
    except Exception:
        return "unknown"


def _ffmpeg_hint() -> str:
    if sys.platform.startswith("darwin"):
        return "Install ffmpeg: brew install ffmpeg"
    if sys.platform.startswith("win"):
        return "Install ffmpeg: winget install Gyan.FFmpeg"
    return "Install ffmpeg: sudo apt-get install ffmpeg"


def _whisper_hint() -> str:
    return (
        "Build whisper.cpp (https://github.com/ggml-org/whisper.cpp) and put "
        "whisper-cli on PATH, or set SHORTSLAB_WHISPER_BINARY."
    )


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def _first_line(output: str) -> str:
    return output.splitlines()[0] if output else "available"


def run_doctor(settings: Settings) -> int:
    """
    Print an environment report and return 0 when everything a captioned
    run needs is present, 1 otherwise.

    A missing speech engine only fails the report when captions are enabled.
    """
    required_ok = True
    lines: list[str] = []

    lines.append("ShortsLab Doctor")
    lines.append("")

    python_version = sys.version.split()[0]
    lines.append(_status_line(True, "Python", f": {python_version}"))
    lines.append(_status_line(True, "ShortsLab version", f": {_get_version()}"))

    workdir = Path(settings.workdir).expanduser().resolve()
    writable = _check_writable(workdir)
    if not writable:
        required_ok = False
    lines.append(_status_line(writable, "Workdir writable", f": {workdir}"))

    ffmpeg_code, ffmpeg_out = _run_cmd([settings.ffmpeg_binary, "-version"])
    if ffmpeg_code != 0:
        required_ok = False
        lines.append(_status_line(False, "ffmpeg", " (not found)"))
        lines.append(f"   {_ffmpeg_hint()}")
    else:
        lines.append(_status_line(True, "ffmpeg", f": {_first_line(ffmpeg_out)}"))

    speech_required = settings.burn_captions
    whisper_code, _ = _run_cmd([settings.whisper_binary, "-h"])
    if whisper_code != 0:
        if speech_required:
            required_ok = False
            lines.append(_status_line(False, "whisper-cli", " (not found)"))
        else:
            lines.append(_warn_line("whisper-cli", " (not found, captions disabled)"))
        lines.append(f"   {_whisper_hint()}")
    else:
        lines.append(_status_line(True, "whisper-cli", f": {settings.whisper_binary}"))

    try:
        model = model_path_for(settings)
    except ConfigurationError as exc:
        required_ok = required_ok and not speech_required
        lines.append(_status_line(False, "Speech model", f": {exc.message}"))
    else:
        present = model.is_file()
        if not present and speech_required:
            required_ok = False
        if present or speech_required:
            lines.append(_status_line(present, "Speech model", f": {model}"))
        else:
            lines.append(_warn_line("Speech model", f": {model} (missing)"))

    lines.append(
        _status_line(
            True,
            "Captions",
            f": {settings.caption_style} / {settings.caption_position} / "
            f"{'word' if settings.word_level_captions else 'line'} level",
        )
    )

    print("\n".join(lines))
    return 0 if required_ok else 1
