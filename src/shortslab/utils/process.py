from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable

from shortslab.exceptions import ProvisioningError
from shortslab.utils.logging import get_logger

log = get_logger(__name__)


def run_streaming(
    cmd: list[str],
    *,
    on_line: Callable[[str], None] | None = None,
    cwd: Path | None = None,
) -> int:
    """
    Run an external engine and hand each line of its combined output to
    `on_line` as soon as it arrives.

    stderr is merged into stdout so a single reader drains both pipes.
    Text mode uses universal newlines, so ffmpeg's carriage-return
    progress updates arrive as separate lines.
    """
    log.debug("exec: %s", " ".join(cmd))
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            bufsize=1,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as exc:
        raise ProvisioningError(f"Executable not found: {cmd[0]}") from exc

    assert proc.stdout is not None
    try:
        for raw in proc.stdout:
            line = raw.rstrip("\n")
            if line.strip() and on_line is not None:
                on_line(line)
    except BaseException:
        proc.kill()
        proc.wait()
        raise
    finally:
        proc.stdout.close()
    return proc.wait()
