"""File helpers shared by the write_file and edit_file tools."""

import difflib
import os
import tempfile
from pathlib import Path

DIFF_CONTEXT_LINES = 3


def read_text_if_exists(path: Path) -> str | None:
    """Return the file's text, or None if it does not exist.

    Raises:
        IsADirectoryError: If path is a directory.
        PermissionError: If the file cannot be read.
    """
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None


def atomic_write_text(path: Path, content: str) -> None:
    """Write content atomically (temp file in the same directory + rename).

    Parent directories are created as needed.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def unified_diff(file_name: str, old: str, new: str) -> str:
    """Unified diff of old -> new, empty if they are identical."""
    lines = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"a/{file_name}",
        tofile=f"b/{file_name}",
        n=DIFF_CONTEXT_LINES,
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def diff_stat(diff: str) -> dict[str, int]:
    """Count added and removed lines in a unified diff."""
    additions = 0
    deletions = 0
    for line in diff.splitlines():
        if line.startswith(("+++", "---")):
            continue
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return {"additions": additions, "deletions": deletions, "changes": additions + deletions}


def add_line_numbers(lines: list[str], start_line: int = 1) -> str:
    """Render lines in ``cat -n`` format."""
    return "\n".join(f"{n:6}\t{line}" for n, line in enumerate(lines, start=start_line))
