from __future__ import annotations

import re
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from shortslab.exceptions import ConfigurationError
from shortslab.utils.logging import get_logger

log = get_logger(__name__)

RUN_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")


@dataclass
class RunWorkspace:
    """
    Transient artifact storage for one pipeline invocation.

    Every path handed out through `artifact()` (or registered with `track()`)
    is deleted by `cleanup()`, together with the run directory itself.
    Run ids are random unless the caller supplies one, so concurrent runs
    never share artifact names.
    """

    root: Path
    run_id: str
    _tracked: list[Path] = field(default_factory=list, repr=False)
    _cleaned: bool = field(default=False, repr=False)

    @classmethod
    def create(cls, workdir: str, run_id: str | None = None) -> "RunWorkspace":
        rid = run_id or uuid.uuid4().hex[:12]
        if not RUN_ID_RE.fullmatch(rid):
            raise ConfigurationError(
                f"Invalid run id {rid!r}: use 1-64 letters, digits, '-' or '_'."
            )
        base = Path(workdir).expanduser().resolve()
        root = base / rid
        if root.parent != base:
            raise ConfigurationError(f"Run directory {root} is not inside workdir {base}.")
        if root.exists() and any(root.iterdir()):
            raise ConfigurationError(f"Run directory already in use: {root}")
        try:
            root.mkdir(parents=True, exist_ok=True)
            (root / "audio").mkdir(exist_ok=True)
            (root / "captions").mkdir(exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(f"Cannot create run directory in workdir {base}: {exc}") from exc
        return cls(root=root, run_id=rid)

    @property
    def audio_dir(self) -> Path:
        return self.root / "audio"

    @property
    def captions_dir(self) -> Path:
        return self.root / "captions"

    def artifact(self, relative: str) -> Path:
        p = self.root / relative
        p.parent.mkdir(parents=True, exist_ok=True)
        return self.track(p)

    def track(self, path: Path) -> Path:
        if path not in self._tracked:
            self._tracked.append(path)
        return path

    @property
    def tracked(self) -> tuple[Path, ...]:
        return tuple(self._tracked)

    @property
    def audio_wav(self) -> Path:
        return self.artifact(f"audio/clip-{self.run_id}.wav")

    @property
    def transcript_base(self) -> Path:
        """Output prefix handed to the speech engine (it appends .srt/.wts/.json)."""
        return self.captions_dir / f"captions-{self.run_id}"

    @property
    def subtitle_ass(self) -> Path:
        return self.artifact(f"captions/captions-{self.run_id}.ass")

    def cleanup(self) -> None:
        """Delete every tracked artifact and the run directory. Never raises."""
        if self._cleaned:
            return
        for path in self._tracked:
            try:
                if path.exists():
                    path.unlink()
            except OSError as exc:
                log.debug("Cleanup could not delete %s: %s", path, exc)
        shutil.rmtree(self.root, ignore_errors=True)
        self._cleaned = True
