from __future__ import annotations

from enum import StrEnum, auto

from pydantic import BaseModel, ConfigDict, Field, computed_field

CONFIG_FILE_NAMES = ("exportconfig.json", "exportconfig.yaml", "exportconfig.yml")

DEFAULT_IGNORE_FILE = ".export-ignore"
DEFAULT_INCLUDE_FILE = ".export-include"
DEFAULT_OUTPUT = "export.md"
DEFAULT_MAX_FILE_SIZE = 1024 * 1024
DEFAULT_LARGE_TREE_THRESHOLD = 10_000

DEFAULT_IGNORE_RULES: tuple[str, ...] = (
    # version control
    ".git/",
    ".svn/",
    ".hg/",
    # dependencies
    "node_modules/",
    ".venv/",
    "venv/",
    "__pycache__/",
    # build output
    "dist/",
    "build/",
    "out/",
    # editor settings
    ".vscode/",
    ".idea/",
    ".dir2file/",
    # packaged archives
    "*.vsix",
    "*.zip",
    "*.tar.gz",
    "*.whl",
)

DEFAULT_STRIP_COMMENT_EXTENSIONS: tuple[str, ...] = (
    "js",
    "ts",
    "jsx",
    "tsx",
    "css",
    "less",
    "scss",
    "html",
    "xml",
    "svg",
    "yaml",
    "yml",
    "py",
    "rb",
    "php",
    "java",
    "c",
    "cpp",
    "cs",
    "go",
    "rs",
    "swift",
    "kt",
)

STRUCTURE_HEADING = "# Project Structure"
ACTIVE_TABS_HEADING = "# Active Tabs Content"
SELECTED_FILES_HEADING = "# Selected Files Content"


def extension_of(rel: str) -> str:
    """Return the extension of the last path segment, without the dot.

    Dotfiles such as ``.gitignore`` have no extension.

    Args:
        rel (str): a relative POSIX path

    Returns:
        str: the extension, or an empty string
    """
    name = rel.rsplit("/", 1)[-1]
    stem, dot, suffix = name.rpartition(".")
    return suffix if dot and stem else ""


class EntryKind(StrEnum):
    """Kind of filesystem node met during a walk."""

    FILE = auto()
    DIRECTORY = auto()


class RuleKind(StrEnum):
    """Whether a pattern narrows (include) or removes (ignore) paths."""

    IGNORE = auto()
    INCLUDE = auto()


class RuleSource(StrEnum):
    """Provenance of a rule, in increasing order of precedence."""

    DEFAULT = auto()
    GLOBAL = auto()
    PROJECT = auto()


class Verdict(StrEnum):
    """Outcome of a selection decision."""

    INCLUDE = auto()
    EXCLUDE = auto()
    ASK = auto()


class UserChoice(StrEnum):
    """Answers offered by the interactive override prompt."""

    YES = "Yes"
    NO = "No"
    YES_ALL = "Yes to all in this directory"
    NO_ALL = "No to all in this directory"


class DescriptionKey(StrEnum):
    """Entry points that may carry their own description file."""

    MAIN = "main"
    ACTIVE_TABS = "activeTabs"


class PathEntry(BaseModel):
    """A filesystem node seen by a walk.

    Attributes:
        rel: Path relative to the project root, with POSIX separators.
        kind: File or directory.
        size: Size in bytes for files; None for directories.
    """

    model_config = ConfigDict(frozen=True)

    rel: str = Field(..., description="Path relative to the project root")
    kind: EntryKind = Field(..., description="File or directory")
    size: int | None = Field(default=None, ge=0, description="File size in bytes")

    @computed_field
    @property
    def name(self) -> str:
        """Last segment of the relative path."""
        return self.rel.rsplit("/", 1)[-1]

    @computed_field
    @property
    def is_dir(self) -> bool:
        """Whether the entry is a directory."""
        return self.kind is EntryKind.DIRECTORY

    @computed_field
    @property
    def extension(self) -> str:
        """Extension without the leading dot, as used for code fences."""
        return extension_of(self.rel)


class SelectionDecision(BaseModel):
    """The include/exclude verdict for one path, with the rule that produced it."""

    model_config = ConfigDict(frozen=True)

    path: str
    verdict: Verdict
    reason: str = ""
    pattern: str | None = None

    @property
    def included(self) -> bool:
        return self.verdict is Verdict.INCLUDE
