from __future__ import annotations

import shutil
from pathlib import Path

from shortslab.exceptions import ProvisioningError


def resolve_binary(binary: str) -> str | None:
    """Return an executable path for a name or explicit path, if one exists."""
    candidate = Path(binary).expanduser()
    if candidate.parent != Path(".") and candidate.is_file():
        return str(candidate)
    return shutil.which(binary)


def require_binary(binary: str) -> str:
    found = resolve_binary(binary)
    if found is None:
        raise ProvisioningError(
            f"Missing required dependency '{binary}'. Install it and try again."
        )
    return found
