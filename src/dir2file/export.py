"""One export run: rules, walk, assembly and the final atomic write.

An :class:`ExportOperation` owns the per-run state (the user-choice cache and
the output buffer) and must not be shared between concurrent exports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from dir2file.config import ACTIVE_TABS_HEADING, SELECTED_FILES_HEADING, DescriptionKey
from dir2file.exceptions import OutputDirectoryError
from dir2file.file_manipulation import relpath, write_text_atomically
from dir2file.logging import get_logger
from dir2file.output_construction import ExportAssembler
from dir2file.patterns import normalize_path
from dir2file.progress import CancellationToken, NullProgress
from dir2file.rules import build_rule_set
from dir2file.selection import SelectionEngine, UserChoiceCache
from dir2file.settings import HostConfig, resolve_description
from dir2file.tree import TreeBuilder, WalkResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    import structlog

    from dir2file.output_construction import AssembledDocument
    from dir2file.progress import ProgressReporter
    from dir2file.selection import Asker
    from dir2file.settings import ExportConfig

CREATE_DIRECTORY_CHOICES = ("Yes", "No")


@dataclass
class ExportResult:
    """Outcome of a successful export."""

    output: Path
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ExportOperation:
    """Run one export of a project, from rule loading to the written document."""

    def __init__(
        self,
        root: Path,
        config: ExportConfig,
        host: HostConfig | None = None,
        *,
        asker: Asker | None = None,
        progress: ProgressReporter | None = None,
        token: CancellationToken | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.root = root.resolve()
        self.config = config
        self.host = host if host is not None else HostConfig()
        self.asker = asker
        self.progress = progress if progress is not None else NullProgress()
        self.token = token if token is not None else CancellationToken()
        self.logger = logger
        self.log = get_logger("export", logger)
        self.cache = UserChoiceCache()

    @property
    def output_path(self) -> Path:
        return self.root / self.config.output

    def build_engine(self) -> SelectionEngine:
        """Start a run: forget earlier directory answers and reload the rules.

        Raises:
            RuleFileError: if a rule file is unreadable or invalid

        Returns:
            SelectionEngine: the engine for this run
        """
        self.cache.clear()
        rules = build_rule_set(self.root, self.config, self.host)
        self.log.info(
            "rules loaded",
            root=str(self.root),
            ignore_rules=len(rules.ignore),
            include_rules=len(rules.include),
        )
        return SelectionEngine(rules, self.asker, cache=self.cache, logger=self.logger)

    def walk(self, engine: SelectionEngine, *, allow_prompt: bool = True) -> WalkResult:
        builder = TreeBuilder(
            engine,
            token=self.token,
            large_tree_threshold=self.config.large_tree_threshold,
            logger=self.logger,
        )
        return builder.walk(self.root, allow_prompt=allow_prompt)

    def run(self) -> ExportResult:
        """Export every selected file of the project.

        Raises:
            ConfigurationError: if the configuration or a rule file is invalid
            ExportCancelledError: if the run is cancelled; nothing is written
            NothingToExportError: if no file was selected

        Returns:
            ExportResult: the written document and its files
        """
        engine = self.build_engine()
        walked = self.walk(engine)
        output_rel = relpath(self.output_path, self.root)
        files = [rel for rel in walked.files_to_process if rel != output_rel]
        doc = self._assembler().assemble(
            files,
            tree_lines=walked.tree_lines if self.config.include_project_structure else None,
            description=resolve_description(self.root, self.config, DescriptionKey.MAIN),
        )
        return self._write(doc)

    def run_for_paths(self, paths: Sequence[str | Path]) -> ExportResult:
        """Export an explicit list of files, such as the files open in an editor.

        Files the rules keep are exported directly. Files the rules drop are
        exported when ``allowIgnoredOnTabsExport`` is set, and otherwise only
        if the user approves them.

        Args:
            paths (Sequence[str | Path]): files, absolute or relative to the root

        Returns:
            ExportResult: the written document and its files
        """
        engine = self.build_engine()
        files: list[str] = []
        for rel in self._existing_files(paths):
            self.token.raise_if_cancelled()
            decision = engine.decide(rel, allow_prompt=False)
            ignored = engine.rules.is_ignored(rel)
            if decision.included and not ignored:
                files.append(rel)
                continue
            excluded_by = "ignored" if ignored else "not in the include rules"
            if self.config.allow_ignored_on_tabs_export or engine.confirm_override(rel, excluded_by=excluded_by):
                self.log.info("rule override", path=rel, reason=decision.reason)
                files.append(rel)
        doc = self._assembler().assemble(
            files,
            tree_lines=self._display_tree(engine),
            description=resolve_description(self.root, self.config, DescriptionKey.ACTIVE_TABS),
            heading=ACTIVE_TABS_HEADING,
        )
        return self._write(doc)

    def run_for_selection(self, paths: Sequence[str | Path]) -> ExportResult:
        """Export a user selection of files and directories, as picked.

        Directories expand to the files a prompt-free walk finds beneath them;
        selecting the project root itself (``.``) selects the whole walk.

        Args:
            paths (Sequence[str | Path]): selected files and directories

        Returns:
            ExportResult: the written document and its files
        """
        engine = self.build_engine()
        selected = [self._relativize(p) for p in paths]
        directories = [rel for rel in selected if not rel or (self.root / rel).is_dir()]
        walked = self.walk(engine, allow_prompt=False) if directories or self.config.include_project_structure else None

        files: list[str] = []
        for rel in selected:
            if not rel and walked is not None:
                files.extend(walked.files_to_process)
            elif rel in directories and walked is not None:
                files.extend(f for f in walked.files_to_process if f.startswith(rel + "/"))
            elif (self.root / rel).is_file():
                files.append(rel)
            else:
                self.log.warning("selected path not found", path=rel)
        files = list(dict.fromkeys(files))

        tree_lines = walked.tree_lines if walked is not None and self.config.include_project_structure else None
        doc = self._assembler().assemble(
            files,
            tree_lines=tree_lines,
            description=resolve_description(self.root, self.config, DescriptionKey.MAIN),
            heading=SELECTED_FILES_HEADING,
        )
        return self._write(doc)

    def _assembler(self) -> ExportAssembler:
        return ExportAssembler(
            self.root,
            self.config,
            strip_extensions=self.host.strip_comment_extensions,
            progress=self.progress,
            token=self.token,
            logger=self.logger,
        )

    def _display_tree(self, engine: SelectionEngine) -> list[str] | None:
        if not self.config.include_project_structure:
            return None
        return self.walk(engine, allow_prompt=False).tree_lines

    def _relativize(self, path: str | Path) -> str:
        candidate = Path(path)
        if candidate.is_absolute():
            rel = relpath(candidate.resolve(), self.root)
        else:
            rel = normalize_path(str(path))
        return "" if rel == "." else rel

    def _existing_files(self, paths: Sequence[str | Path]) -> list[str]:
        out: list[str] = []
        for path in paths:
            rel = self._relativize(path)
            if rel and (self.root / rel).is_file():
                out.append(rel)
            else:
                self.log.warning("file not found", path=str(path))
        return list(dict.fromkeys(out))

    def _ensure_output_directory(self) -> Path:
        output = self.output_path
        folder = output.parent
        if folder.is_dir():
            return output
        prompt = f"Output directory {folder} does not exist. Create it?"
        answer = self.asker.ask(prompt, CREATE_DIRECTORY_CHOICES) if self.asker is not None else None
        if answer != CREATE_DIRECTORY_CHOICES[0]:
            raise OutputDirectoryError(folder=folder)
        folder.mkdir(parents=True, exist_ok=True)
        self.log.info("created output directory", path=str(folder))
        return output

    def _write(self, doc: AssembledDocument) -> ExportResult:
        self.token.raise_if_cancelled()
        output = self._ensure_output_directory()
        write_text_atomically(output, doc.text)
        self.log.info("output written", path=str(output), files=len(doc.files))
        return ExportResult(output=output, files=doc.files, warnings=doc.warnings)
