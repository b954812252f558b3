from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dir2file.comments import is_supported, strip_comments
from dir2file.config import STRUCTURE_HEADING, extension_of
from dir2file.exceptions import FileReadError, NothingToExportError
from dir2file.file_manipulation import read_file_text
from dir2file.logging import get_logger
from dir2file.progress import CancellationToken, NullProgress

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    import structlog

    from dir2file.progress import ProgressReporter
    from dir2file.settings import ExportConfig


def file_section(rel: str, extension: str, content: str) -> str:
    """Render one file as a Markdown section with a fenced code block.

    Args:
        rel (str): path relative to the project root
        extension (str): file extension used as the fence language
        content (str): file content; trailing whitespace is trimmed

    Returns:
        str: the section text
    """
    return f"## {rel}\n\n```{extension}\n{content.rstrip()}\n```\n\n"


def too_large_section(rel: str, size: int) -> str:
    return f"## {rel}\n\nFile is too large to process ({size} bytes)\n\n"


def structure_block(tree_lines: Sequence[str]) -> str:
    """Render the indented project tree as a fenced block under its heading.

    Args:
        tree_lines (Sequence[str]): tree lines as produced by the walk

    Returns:
        str: the structure block
    """
    return f"{STRUCTURE_HEADING}\n\n```\n" + "\n".join(tree_lines) + "\n```\n\n"


@dataclass
class AssembledDocument:
    """The rendered export and what went into it."""

    text: str
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ExportAssembler:
    """Turn an ordered file list into the final Markdown document.

    Per-file problems never fail the export: oversized files become a
    placeholder and unreadable files are skipped with a warning. Cancellation
    is checked before every file.
    """

    def __init__(
        self,
        root: Path,
        config: ExportConfig,
        *,
        strip_extensions: Sequence[str] = (),
        progress: ProgressReporter | None = None,
        token: CancellationToken | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.root = root
        self.config = config
        self.strip_extensions = {ext.lower().lstrip(".") for ext in strip_extensions}
        self.progress = progress if progress is not None else NullProgress()
        self.token = token if token is not None else CancellationToken()
        self.log = get_logger("assembler", logger)

    def assemble(
        self,
        files: Sequence[str],
        *,
        tree_lines: Sequence[str] | None = None,
        description: str = "",
        heading: str = "",
    ) -> AssembledDocument:
        """Build the document for ``files``, in the given order.

        Args:
            files (Sequence[str]): relative paths to export
            tree_lines (Sequence[str] | None): project tree to prepend, or None for no structure block
            description (str): free text placed first
            heading (str): entry-point heading placed before the file sections

        Raises:
            ExportCancelledError: if the token is cancelled between files
            NothingToExportError: if no file section was produced

        Returns:
            AssembledDocument: the text, the exported files and the recorded warnings
        """
        out = io.StringIO()
        doc = AssembledDocument(text="")
        warned_extensions: set[str] = set()

        if description:
            out.write(f"{description}\n\n")
        if tree_lines is not None:
            out.write(structure_block(tree_lines))
        if heading:
            out.write(f"{heading}\n\n")

        total = len(files)
        for index, rel in enumerate(files, start=1):
            self.token.raise_if_cancelled()
            self.progress.report(index, total, f"Processing: {rel}")
            try:
                section = self.render_file(rel, doc, warned_extensions)
            except FileReadError as exc:
                self.log.warning("skipped unreadable file", path=str(exc.path), reason=exc.reason)
                doc.warnings.append(str(exc))
                continue
            out.write(section)
            doc.files.append(rel)
            self.log.debug("processed file", path=rel)

        if not doc.files:
            raise NothingToExportError
        doc.text = out.getvalue()
        self.log.info("document assembled", files=len(doc.files), warnings=len(doc.warnings))
        return doc

    def render_file(self, rel: str, doc: AssembledDocument, warned_extensions: set[str]) -> str:
        """Render one file section, applying the size limit and comment removal.

        Args:
            rel (str): path relative to the project root
            doc (AssembledDocument): document collecting warnings
            warned_extensions (set[str]): extensions already warned about in this run

        Raises:
            FileReadError: if the file cannot be stat'ed or read

        Returns:
            str: the section text
        """
        path = self.root / rel
        try:
            size = path.stat().st_size
        except OSError as exc:
            raise FileReadError(path=path, reason=exc.strerror or str(exc)) from exc
        if size > self.config.max_file_size:
            self.log.warning("file too large", path=rel, size=size, limit=self.config.max_file_size)
            doc.warnings.append(f"{rel}: file is too large to process ({size} bytes)")
            return too_large_section(rel, size)

        content = read_file_text(path)
        extension = extension_of(rel)
        if self.config.remove_comments:
            ext = extension.lower()
            if ext in self.strip_extensions and is_supported(ext):
                content = strip_comments(content, ext)
            elif ext not in warned_extensions:
                warned_extensions.add(ext)
                kind = f"'.{ext}' files" if ext else "files without extension"
                message = f"comment removal not supported for {kind}; kept as is"
                self.log.warning("comments kept", path=rel, extension=ext)
                doc.warnings.append(message)
        return file_section(rel, extension, content)
