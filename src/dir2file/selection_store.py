from __future__ import annotations

import json
from typing import TYPE_CHECKING

from dir2file.exceptions import ConfigurationError
from dir2file.file_manipulation import write_text_atomically
from dir2file.patterns import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

STATE_DIR = ".dir2file"
SELECTION_FILE = "selection.json"


def selection_path(root: Path) -> Path:
    return root / STATE_DIR / SELECTION_FILE


def load_selection(root: Path) -> list[str]:
    """Load the remembered selection of a project.

    Args:
        root (Path): project root

    Raises:
        ConfigurationError: if the state file exists but is not a JSON list of strings

    Returns:
        list[str]: normalized relative paths, empty when nothing was remembered
    """
    path = selection_path(root)
    if not path.is_file():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(path=path, message=f"cannot read remembered selection: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise ConfigurationError(path=path, message="remembered selection must be a list of paths")
    return [normalize_path(item) for item in data if normalize_path(item)]


def save_selection(root: Path, paths: Iterable[str]) -> Path:
    """Persist a selection, normalized and de-duplicated in first-seen order.

    Args:
        root (Path): project root
        paths (Iterable[str]): relative paths to remember

    Returns:
        Path: the state file
    """
    seen: dict[str, None] = {}
    for item in paths:
        rel = normalize_path(item)
        if rel:
            seen.setdefault(rel, None)
    path = selection_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_text_atomically(path, json.dumps(list(seen), indent=2) + "\n")
    return path
