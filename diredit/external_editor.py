"""``$EDITOR`` launch helper for editing a listing outside the process.

Returns an error message string instead of raising so the CLI can report it
the same way it reports adapter failures.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path


def launch_editor(target: Path) -> str | None:
    editor_env = os.environ.get("VISUAL", "").strip() or os.environ.get("EDITOR", "").strip()
    if not editor_env:
        return "Cannot edit: $EDITOR is not set."
    cmd = shlex.split(editor_env)
    if not cmd:
        return "Cannot edit: $EDITOR is empty."

    try:
        completed = subprocess.run([*cmd, str(target)], check=False)
    except OSError as exc:
        return f"Failed to launch editor: {exc}"
    if completed.returncode != 0:
        return f"Editor exited with status {completed.returncode}"
    return None


__all__ = ["launch_editor"]
