from dataclasses import dataclass
from pathlib import Path


@dataclass
class Dir2FileError(Exception):
    """Base exception for errors in the dir2file package."""

    def __str__(self) -> str:
        return getattr(self, "message", "") or self.__class__.__name__


@dataclass
class ConfigurationError(Dir2FileError):
    """Raised when a configuration file cannot be read or validated."""

    path: Path
    message: str = "Invalid configuration."

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class RuleFileError(ConfigurationError):
    """Raised when an ignore or include rule file holds an invalid line."""

    line: int = 0
    message: str = "Invalid rule."

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: {self.message}"


@dataclass
class FileReadError(Dir2FileError):
    """Raised when a single file cannot be read during an export."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Cannot read {self.path}: {self.reason}"


@dataclass
class ExportCancelledError(Dir2FileError):
    """Raised when the user cancels an export; not a failure."""

    message: str = "Export operation was cancelled."


@dataclass
class NothingToExportError(Dir2FileError):
    """Raised when an export completes without including a single file."""

    message: str = "No files were processed."


@dataclass
class OutputDirectoryError(Dir2FileError):
    """Raised when the output directory is missing and was not created."""

    folder: Path
    message: str = "Output directory does not exist and was not created."

    def __str__(self) -> str:
        return f"{self.message} ({self.folder})"
