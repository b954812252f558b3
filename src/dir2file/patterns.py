"""Evaluate a single candidate path against a single rule.

Ignore rules follow gitignore syntax and are compiled by ``pathspec``. Include
rules keep the looser semantics of the original whitelist files: quoted
literals, ``dir/**`` prefixes, globs and bare path prefixes. An include glob
matches whole paths: ``*`` stays within one segment and only ``**`` crosses
``/``, so ``src/*`` does not reach into ``src/gen/``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum, auto
from pathlib import PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING

from pathspec.patterns import GitWildMatchPattern

from dir2file.config import RuleKind

if TYPE_CHECKING:
    from pathlib import Path

_DESCENDANTS_SUFFIX = "(?:(?P<ps_d>/).*)?$"


class PatternKind(StrEnum):
    """How a pattern is evaluated."""

    GLOB = auto()
    LITERAL = auto()
    PREFIX = auto()


@dataclass(frozen=True)
class Pattern:
    """One parsed rule line.

    Attributes:
        source: The line as written in the rule source.
        rule_kind: Whether the pattern ignores or includes.
        kind: How the pattern is evaluated.
        value: Literal path, directory prefix or glob text, without quotes or ``!``.
        negated: True for ``!pattern`` ignore rules (re-inclusion).
        directory_only: True for ``name/`` and ``name/**`` patterns.
        regex: Compiled matcher for glob patterns.
    """

    source: str
    rule_kind: RuleKind
    kind: PatternKind
    value: str
    negated: bool = False
    directory_only: bool = False
    regex: re.Pattern[str] | None = None


def normalize_path(path: str) -> str:
    """Normalize a relative path to forward slashes without leading ``./`` or ``/``.

    Args:
        path (str): the path to normalize, with either separator

    Returns:
        str: the POSIX form of ``path`` with no leading or trailing slash
    """
    rel = path.replace("\\", "/")
    while rel.startswith("./"):
        rel = rel[2:]
    return rel.strip("/")


def _is_quoted(text: str) -> bool:
    return len(text) >= 2 and text.startswith('"') and text.endswith('"')  # noqa: PLR2004


def _literal_value(text: str, root: Path | None) -> str:
    unquoted = text[1:-1].strip()
    is_absolute = PurePosixPath(unquoted).is_absolute() or PureWindowsPath(unquoted).is_absolute()
    if is_absolute and root is not None:
        try:
            return PurePosixPath(unquoted.replace("\\", "/")).relative_to(root.as_posix()).as_posix()
        except ValueError:
            return normalize_path(unquoted)
    return normalize_path(unquoted)


def _compile_glob(text: str) -> re.Pattern[str] | None:
    compiled = GitWildMatchPattern(text)
    return compiled.regex


def _compile_include_glob(text: str) -> re.Pattern[str] | None:
    # include globs match a single path, never everything below a matching directory
    regex, _ = GitWildMatchPattern.pattern_to_regex(text)
    if regex is None:
        return None
    if regex.endswith(_DESCENDANTS_SUFFIX):
        regex = regex[: -len(_DESCENDANTS_SUFFIX)] + "$"
    return re.compile(regex)


def parse_pattern(line: str, rule_kind: RuleKind = RuleKind.IGNORE, *, root: Path | None = None) -> Pattern | None:
    """Parse one rule line into a :class:`Pattern`.

    Blank lines and ``#`` comments produce None. Include rules never carry
    negation; callers reject ``!`` lines before parsing them as includes.

    Args:
        line (str): the raw rule line
        rule_kind (RuleKind): whether the line comes from an ignore or include source
        root (Path | None): project root used to relativise absolute quoted literals

    Raises:
        ValueError: if the glob cannot be compiled

    Returns:
        Pattern | None: the parsed pattern, or None for blank and comment lines
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    if _is_quoted(text):
        value = _literal_value(text, root)
        if not value:
            return None
        return Pattern(source=text, rule_kind=rule_kind, kind=PatternKind.LITERAL, value=value)

    if rule_kind is RuleKind.IGNORE:
        negated = text.startswith("!")
        body = text[1:] if negated else text
        if _is_quoted(body):
            value = _literal_value(body, root)
            return Pattern(
                source=text,
                rule_kind=rule_kind,
                kind=PatternKind.LITERAL,
                value=value,
                negated=negated,
            )
        regex = _compile_glob(text)
        if regex is None:
            return None
        return Pattern(
            source=text,
            rule_kind=rule_kind,
            kind=PatternKind.GLOB,
            value=body,
            negated=negated,
            directory_only=body.endswith(("/", "/**")),
            regex=regex,
        )

    text = text.replace("\\", "/")
    if text.endswith("/**"):
        return Pattern(
            source=text,
            rule_kind=rule_kind,
            kind=PatternKind.PREFIX,
            value=normalize_path(text[:-3]),
            directory_only=True,
        )
    if "*" in text:
        regex = _compile_include_glob(text)
        if regex is None:
            return None
        return Pattern(source=text, rule_kind=rule_kind, kind=PatternKind.GLOB, value=text, regex=regex)
    return Pattern(source=text, rule_kind=rule_kind, kind=PatternKind.PREFIX, value=normalize_path(text))


def matches(pattern: Pattern, relative_path: str, *, is_dir: bool = False) -> bool:
    """Check whether ``relative_path`` is matched by ``pattern``.

    Matching is case-sensitive and independent of negation: a negated ignore
    pattern "matches" the paths it re-includes.

    Args:
        pattern (Pattern): the parsed rule
        relative_path (str): path relative to the project root; a trailing ``/`` marks a directory
        is_dir (bool): whether the path names a directory

    Returns:
        bool: True if the pattern applies to the path
    """
    is_dir = is_dir or relative_path.endswith(("/", "\\"))
    rel = normalize_path(relative_path)
    if not rel:
        return False

    if pattern.kind is PatternKind.LITERAL:
        return rel == pattern.value or rel.rsplit("/", 1)[-1] == pattern.value

    if pattern.kind is PatternKind.PREFIX:
        prefix = pattern.value
        if not prefix:
            return True
        return rel == prefix or rel.startswith(prefix + "/")

    if pattern.regex is None:
        return False
    if pattern.regex.match(rel) is not None:
        return True
    return is_dir and pattern.regex.match(rel + "/") is not None
