from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from dir2file.config import (
    CONFIG_FILE_NAMES,
    DEFAULT_IGNORE_FILE,
    DEFAULT_INCLUDE_FILE,
    DEFAULT_LARGE_TREE_THRESHOLD,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_OUTPUT,
    DEFAULT_STRIP_COMMENT_EXTENSIONS,
    DescriptionKey,
)
from dir2file.exceptions import ConfigurationError

ENV_PREFIX = "DIR2FILE_"


def split_rule_list(value: object) -> list[str]:
    """Split a comma- or newline-separated string into trimmed, non-empty items.

    Args:
        value (object): a string, a sequence of strings or None

    Returns:
        list[str]: the items
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.replace("\n", ",").split(",")
    elif isinstance(value, (list, tuple)):
        raw = [str(v) for v in value]
    else:
        raw = [str(value)]
    return [item.strip() for item in raw if item.strip()]


class ExportConfig(BaseModel):
    """Project configuration read from ``exportconfig.json`` (or ``.yaml``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True)

    ignore_file: str = Field(default=DEFAULT_IGNORE_FILE, description="Project ignore-rule file.")
    include_file: str = Field(default=DEFAULT_INCLUDE_FILE, description="Project include-rule file.")
    output: str = Field(default=DEFAULT_OUTPUT, description="Destination file, relative to the root.")
    include_project_structure: bool = Field(default=False, description="Prepend the project tree.")
    remove_comments: bool = Field(default=False, description="Strip comments from supported languages.")
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, ge=0, description="Files above are stubbed.")
    allow_ignored_on_tabs_export: bool = Field(
        default=False,
        description="Export rule-excluded files of an explicit list without prompting.",
    )
    large_tree_threshold: int = Field(
        default=DEFAULT_LARGE_TREE_THRESHOLD,
        ge=0,
        description="Ask before walking past this many files (0 disables).",
    )
    description: str | dict[str, str] = Field(
        default="",
        description="Description file or text, or a map of entry point to description file.",
    )
    descriptions: dict[str, str] = Field(
        default_factory=dict,
        description="Map of entry point (main, activeTabs) to description file.",
    )

    def description_sources(self, key: DescriptionKey) -> list[str]:
        """List description candidates for an entry point, most specific first.

        Args:
            key (DescriptionKey): the entry point

        Returns:
            list[str]: file paths or literal texts to try, in order
        """
        out: list[str] = []
        if self.descriptions.get(key.value):
            out.append(self.descriptions[key.value])
        if isinstance(self.description, dict):
            if self.description.get(key.value):
                out.append(self.description[key.value])
        elif self.description and key is DescriptionKey.MAIN:
            out.append(self.description)
        return out


class HostConfig(BaseModel):
    """Host-wide rules applied to every project, before project rule files."""

    model_config = ConfigDict(frozen=True)

    global_ignore_rules: list[str] = Field(default_factory=list, description="Always-applied ignore rules.")
    global_include_rules: list[str] = Field(default_factory=list, description="Always-applied include rules.")
    strip_comment_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STRIP_COMMENT_EXTENSIONS),
        description="Extensions whose comments are stripped when removeComments is set.",
    )

    @field_validator("global_ignore_rules", "global_include_rules", mode="before")
    @classmethod
    def _split_rules(cls, value: object) -> list[str]:
        return split_rule_list(value)

    @field_validator("strip_comment_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value: object) -> list[str]:
        return [ext.lower().lstrip(".") for ext in split_rule_list(value)]


class Settings(BaseModel):
    """Run settings for one CLI invocation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    command: str = Field(default="export", description="Subcommand to run.")
    root: Path = Field(default_factory=Path.cwd, description="Project root.")
    output: str | None = Field(default=None, description="Override the configured output file.")
    structure: bool | None = Field(default=None, description="Override includeProjectStructure.")
    remove_comments: bool | None = Field(default=None, description="Override removeComments.")
    max_file_size: int | None = Field(default=None, description="Override maxFileSize.")
    assume: bool | None = Field(default=None, description="Answer every prompt yes (True) or no (False).")
    log_file: str = Field(default="", description="Log file path.")
    verbose: bool = Field(default=False, description="Log every selection decision.")
    paths: list[str] = Field(default_factory=list, description="Paths for export-files / export-selected / check.")
    remember: bool = Field(default=False, description="Persist the selection for export-selected.")
    patterns: str | None = Field(default=None, description="Comma-separated patterns for create-ignore/include.")
    append: bool = Field(default=False, description="Append to an existing rule file.")

    def apply_overrides(self, config: ExportConfig) -> ExportConfig:
        """Overlay the CLI overrides on the project configuration.

        Args:
            config (ExportConfig): configuration loaded from the project

        Returns:
            ExportConfig: a copy with every explicitly given override applied
        """
        updates: dict[str, Any] = {}
        if self.output is not None:
            updates["output"] = self.output
        if self.structure is not None:
            updates["include_project_structure"] = self.structure
        if self.remove_comments is not None:
            updates["remove_comments"] = self.remove_comments
        if self.max_file_size is not None:
            updates["max_file_size"] = self.max_file_size
        return config.model_copy(update=updates)


def _parse_config_text(path: Path, text: str) -> Any:  # noqa: ANN401
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_export_config(root: Path) -> ExportConfig:
    """Load the project configuration from the first config file found in ``root``.

    Args:
        root (Path): project root

    Raises:
        ConfigurationError: if the file cannot be read, parsed or validated

    Returns:
        ExportConfig: the configuration, or defaults when no config file exists
    """
    for name in CONFIG_FILE_NAMES:
        path = root / name
        if not path.is_file():
            continue
        try:
            data = _parse_config_text(path, path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigurationError(path=path, message=f"cannot read configuration: {exc}") from exc
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(path=path, message=f"malformed configuration: {exc}") from exc
        if data is None:
            return ExportConfig()
        if not isinstance(data, dict):
            raise ConfigurationError(path=path, message="configuration must be a mapping")
        try:
            return ExportConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(path=path, message=f"invalid configuration: {exc}") from exc
    return ExportConfig()


def load_host_config(environ: dict[str, str] | None = None, *, env_file: str | None = None) -> HostConfig:
    """Load host-wide rules from the environment, falling back to a ``.env`` file.

    Args:
        environ (dict[str, str] | None): environment mapping; ``os.environ`` when None
        env_file (str | None): explicit dotenv file; the nearest ``.env`` from the cwd when None

    Returns:
        HostConfig: the host-wide configuration
    """
    env = dict(os.environ) if environ is None else dict(environ)
    dotenv_path = env_file if env_file is not None else find_dotenv(usecwd=True)
    file_values = {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None} if dotenv_path else {}
    merged = {**file_values, **env}

    data: dict[str, Any] = {}
    for field_name in HostConfig.model_fields:
        key = ENV_PREFIX + field_name.upper()
        if key in merged:
            data[field_name] = merged[key]
    return HostConfig.model_validate(data)


def resolve_description(root: Path, config: ExportConfig, key: DescriptionKey) -> str:
    """Resolve the description text for an entry point.

    A configured value naming an existing file yields the file content; the
    single ``description`` string falls back to being the text itself.

    Args:
        root (Path): project root
        config (ExportConfig): project configuration
        key (DescriptionKey): the entry point

    Raises:
        ConfigurationError: if a description file exists but cannot be read

    Returns:
        str: the description, or an empty string
    """
    for source in config.description_sources(key):
        candidate = root / source
        if os.path.isfile(candidate):  # noqa: PTH113
            try:
                return candidate.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise ConfigurationError(path=candidate, message=f"cannot read description: {exc}") from exc
        if source == config.description:
            return source
    return ""
