from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dir2file.exceptions import ExportCancelledError
from dir2file.file_manipulation import scan_directory
from dir2file.logging import get_logger
from dir2file.progress import CancellationToken

if TYPE_CHECKING:
    from pathlib import Path

    import structlog

    from dir2file.config import PathEntry
    from dir2file.selection import SelectionEngine

LARGE_TREE_CHOICES = ("Continue", "Cancel")


@dataclass
class WalkResult:
    """Output of one walk: the display tree and the ordered export list."""

    tree_lines: list[str] = field(default_factory=list)
    files_to_process: list[str] = field(default_factory=list)
    visible_files: int = 0


class TreeBuilder:
    """Walk a project tree once, producing the display tree and the files to export.

    Entries are visited depth-first, directories before files, in natural
    case-insensitive order. An entry is visible when the ignore rules keep it
    or when an include rule covers the entry itself; invisible directories are
    pruned without being listed.
    """

    def __init__(
        self,
        engine: SelectionEngine,
        *,
        token: CancellationToken | None = None,
        large_tree_threshold: int = 0,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.engine = engine
        self.token = token if token is not None else CancellationToken()
        self.large_tree_threshold = large_tree_threshold
        self.log = get_logger("tree", logger)
        self._root: Path | None = None
        self._confirmed_large_tree = False

    def walk(self, root: Path, *, allow_prompt: bool = True) -> WalkResult:
        """Walk ``root`` and collect the tree lines and the export file list.

        Args:
            root (Path): project root
            allow_prompt (bool): let the selection engine ask about ignored-but-included files

        Raises:
            ExportCancelledError: if the token is cancelled or the user declines a large walk

        Returns:
            WalkResult: tree lines and files, in walk order
        """
        self._root = root
        self._confirmed_large_tree = False
        result = WalkResult()
        self._descend(root, 0, result, allow_prompt=allow_prompt)
        self.log.info(
            "walk completed",
            root=str(root),
            entries=len(result.tree_lines),
            files=len(result.files_to_process),
        )
        return result

    def is_visible(self, entry: PathEntry) -> bool:
        """Check whether an entry shows in the tree (and, for directories, is descended into).

        Args:
            entry (PathEntry): the entry

        Returns:
            bool: True unless the entry is ignored and not itself covered by an include rule
        """
        decision = self.engine.decide(entry.rel, apply_include_rules=False, allow_prompt=False, is_dir=entry.is_dir)
        if decision.included:
            return True
        return self.engine.rules.is_included(entry.rel, is_dir=entry.is_dir)

    def _descend(self, directory: Path, depth: int, result: WalkResult, *, allow_prompt: bool) -> None:
        self.token.raise_if_cancelled()
        try:
            entries = scan_directory(directory, self._root or directory)
        except OSError as exc:
            self.log.warning("cannot list directory", path=str(directory), error=str(exc))
            return

        indent = "  " * depth
        for entry in entries:
            self.token.raise_if_cancelled()
            if not self.is_visible(entry):
                self.log.debug("pruned", path=entry.rel, kind=entry.kind)
                continue
            if entry.is_dir:
                result.tree_lines.append(f"{indent}{entry.name}/")
                self._descend(directory / entry.name, depth + 1, result, allow_prompt=allow_prompt)
                continue

            result.tree_lines.append(f"{indent}{entry.name}")
            result.visible_files += 1
            self._check_large_tree(result.visible_files)
            if self._selected_for_export(entry, allow_prompt=allow_prompt):
                result.files_to_process.append(entry.rel)

    def _selected_for_export(self, entry: PathEntry, *, allow_prompt: bool) -> bool:
        rules = self.engine.rules
        if rules.has_include_rules and not rules.is_included(entry.rel):
            return False
        return self.engine.decide(entry.rel, allow_prompt=allow_prompt).included

    def _check_large_tree(self, count: int) -> None:
        if not self.large_tree_threshold or self._confirmed_large_tree or count <= self.large_tree_threshold:
            return
        asker = self.engine.asker
        prompt = f"The project has more than {self.large_tree_threshold} files. Continue exporting?"
        answer = asker.ask(prompt, LARGE_TREE_CHOICES) if asker is not None else None
        if answer != LARGE_TREE_CHOICES[0]:
            self.log.info("large tree declined", threshold=self.large_tree_threshold)
            raise ExportCancelledError
        self._confirmed_large_tree = True
