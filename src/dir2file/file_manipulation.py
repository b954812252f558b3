from __future__ import annotations

import os
import re
import tempfile
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from dir2file.config import EntryKind, PathEntry
from dir2file.exceptions import FileReadError

if TYPE_CHECKING:
    from collections.abc import Sequence

_DIGITS = re.compile(r"(\d+)")


class WriteMode(StrEnum):
    """How a rule file is written when it already exists."""

    OVERWRITE = auto()
    APPEND = auto()


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path).replace("\\", "/")


def natural_key(name: str) -> tuple[tuple[int, int | str], ...]:
    """Build a case-insensitive, numeric-aware sort key (``file2`` before ``file10``).

    Args:
        name (str): the entry name

    Returns:
        tuple: a key comparing digit runs by value and text runs case-insensitively
    """
    parts: list[tuple[int, int | str]] = []
    for chunk in _DIGITS.split(name):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk.casefold()))
    return tuple(parts)


def entry_sort_key(entry: PathEntry) -> tuple[int, tuple[tuple[int, int | str], ...], str]:
    """Order directories before files, then by natural name, then by raw name.

    Args:
        entry (PathEntry): the entry to sort

    Returns:
        tuple: the sort key
    """
    return (0 if entry.is_dir else 1, natural_key(entry.name), entry.name)


def scan_directory(directory: Path, root: Path) -> list[PathEntry]:
    """List the regular files and directories directly under ``directory``, sorted.

    Symbolic links to directories are not followed; other special files are skipped.

    Args:
        directory (Path): directory to list
        root (Path): project root the entries are made relative to

    Raises:
        OSError: if the directory cannot be listed

    Returns:
        list[PathEntry]: the entries, directories first, in natural order
    """
    entries: list[PathEntry] = []
    with os.scandir(directory) as it:
        for dirent in it:
            rel = relpath(Path(dirent.path), root)
            try:
                if dirent.is_dir(follow_symlinks=False):
                    entries.append(PathEntry(rel=rel, kind=EntryKind.DIRECTORY))
                elif dirent.is_file():
                    entries.append(PathEntry(rel=rel, kind=EntryKind.FILE, size=dirent.stat().st_size))
            except OSError:
                continue
    return sorted(entries, key=entry_sort_key)


def read_file_text(path: Path) -> str:
    """Read a file's bytes and decode them as UTF-8, replacing invalid sequences.

    Args:
        path (Path): the file to read

    Raises:
        FileReadError: if the file cannot be read

    Returns:
        str: the decoded content
    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise FileReadError(path=path, reason=exc.strerror or str(exc)) from exc
    return raw.decode("utf-8", errors="replace")


def write_text_atomically(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` through a temporary sibling file and a rename.

    Readers see either the previous file or the complete new one.

    Args:
        path (Path): destination file; its directory must exist
        content (str): text to write, encoded as UTF-8
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def split_patterns(text: str) -> list[str]:
    """Split a comma-separated pattern list as typed by the user.

    Args:
        text (str): e.g. ``"dist/, *.log"``

    Returns:
        list[str]: trimmed, non-empty patterns
    """
    return [item.strip() for item in text.split(",") if item.strip()]


def seed_patterns_from_gitignore(root: Path) -> list[str]:
    """Collect the non-empty, non-comment lines of the project's ``.gitignore``.

    Args:
        root (Path): project root

    Returns:
        list[str]: patterns to pre-fill a new ignore file with
    """
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return []
    lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    return [ln.strip() for ln in lines if ln.strip() and not ln.strip().startswith("#")]


def create_rule_file(path: Path, patterns: Sequence[str], mode: WriteMode = WriteMode.OVERWRITE) -> Path:
    """Write patterns to a rule file, one per line.

    Args:
        path (Path): the ignore or include file
        patterns (Sequence[str]): patterns to write
        mode (WriteMode): overwrite the file or append to it

    Returns:
        Path: the written file
    """
    body = "".join(f"{p}\n" for p in patterns)
    if mode is WriteMode.APPEND and path.exists():
        existing = path.read_text(encoding="utf-8")
        if existing and not existing.endswith("\n"):
            body = "\n" + body
        with path.open("a", encoding="utf-8") as handle:
            handle.write(body)
    else:
        write_text_atomically(path, body)
    return path
