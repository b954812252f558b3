from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dir2file.config import DEFAULT_IGNORE_RULES, RuleKind, RuleSource
from dir2file.exceptions import RuleFileError
from dir2file.patterns import Pattern, matches, parse_pattern

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from dir2file.settings import ExportConfig, HostConfig


@dataclass(frozen=True)
class Rule:
    """A pattern tagged with the source it was loaded from."""

    pattern: Pattern
    source: RuleSource


@dataclass
class RuleSet:
    """Ordered ignore and include rules merged from every rule source.

    Ignore rules follow gitignore semantics (last match wins, ``!`` re-includes).
    Include rules are OR-ed and, when present, narrow the export to the paths
    they match.
    """

    ignore: list[Rule] = field(default_factory=list)
    include: list[Rule] = field(default_factory=list)

    @property
    def has_include_rules(self) -> bool:
        return bool(self.include)

    def add(self, patterns: Iterable[Pattern], source: RuleSource) -> None:
        """Append parsed patterns, keeping their order.

        Args:
            patterns (Iterable[Pattern]): patterns to append
            source (RuleSource): where the patterns come from
        """
        for pattern in patterns:
            target = self.ignore if pattern.rule_kind is RuleKind.IGNORE else self.include
            target.append(Rule(pattern=pattern, source=source))

    def last_ignore_match(self, path: str, *, is_dir: bool = False) -> Rule | None:
        """Return the last ignore rule matching ``path``, negated or not.

        Args:
            path (str): relative POSIX path
            is_dir (bool): whether the path is a directory

        Returns:
            Rule | None: the deciding ignore rule, or None when nothing matches
        """
        for rule in reversed(self.ignore):
            if matches(rule.pattern, path, is_dir=is_dir):
                return rule
        return None

    def first_include_match(self, path: str, *, is_dir: bool = False) -> Rule | None:
        """Return the first include rule matching ``path``.

        Args:
            path (str): relative POSIX path
            is_dir (bool): whether the path is a directory

        Returns:
            Rule | None: the matching include rule, or None
        """
        for rule in self.include:
            if matches(rule.pattern, path, is_dir=is_dir):
                return rule
        return None

    def is_ignored(self, path: str, *, is_dir: bool = False) -> bool:
        """Check whether the last matching ignore pattern is a non-negated one."""
        rule = self.last_ignore_match(path, is_dir=is_dir)
        return rule is not None and not rule.pattern.negated

    def is_included(self, path: str, *, is_dir: bool = False) -> bool:
        """Check whether include rules exist and at least one of them matches."""
        return self.has_include_rules and self.first_include_match(path, is_dir=is_dir) is not None

    def explain(self, path: str, *, is_dir: bool = False) -> list[Rule]:
        """List every rule that matches ``path``, ignore rules first, in evaluation order.

        Args:
            path (str): relative POSIX path
            is_dir (bool): whether the path is a directory

        Returns:
            list[Rule]: the matching rules
        """
        hits = [rule for rule in self.ignore if matches(rule.pattern, path, is_dir=is_dir)]
        hits.extend(rule for rule in self.include if matches(rule.pattern, path, is_dir=is_dir))
        return hits


def parse_rule_lines(
    lines: Sequence[str],
    rule_kind: RuleKind,
    *,
    origin: Path,
    root: Path | None = None,
) -> list[Pattern]:
    """Parse rule lines, skipping blanks and ``#`` comments.

    A trailing ``/`` on an include line expands to ``/**`` so the directory
    and everything below it is included.

    Args:
        lines (Sequence[str]): raw lines
        rule_kind (RuleKind): ignore or include
        origin (Path): file (or pseudo-file) the lines come from, for error messages
        root (Path | None): project root used for absolute quoted literals

    Raises:
        RuleFileError: if an include line is negated or a glob is invalid

    Returns:
        list[Pattern]: the parsed patterns, in order
    """
    patterns: list[Pattern] = []
    for lineno, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or text.startswith("#"):
            continue
        if rule_kind is RuleKind.INCLUDE:
            if text.startswith("!"):
                message = f"negation is not supported in include rules: {text}"
                raise RuleFileError(path=origin, line=lineno, message=message)
            if text.endswith("/") and not text.startswith('"'):
                text += "**"
        try:
            pattern = parse_pattern(text, rule_kind, root=root)
        except ValueError as exc:
            raise RuleFileError(path=origin, line=lineno, message=f"invalid pattern {text!r}: {exc}") from exc
        if pattern is not None:
            patterns.append(pattern)
    return patterns


def read_rule_file(path: Path, rule_kind: RuleKind, *, root: Path | None = None) -> list[Pattern]:
    """Read a project rule file; a missing file yields no rules.

    Args:
        path (Path): the ignore or include file
        rule_kind (RuleKind): ignore or include
        root (Path | None): project root used for absolute quoted literals

    Raises:
        RuleFileError: if the file cannot be read or holds an invalid line

    Returns:
        list[Pattern]: the parsed patterns
    """
    if not path.is_file():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise RuleFileError(path=path, message=f"cannot read rule file: {exc}") from exc
    return parse_rule_lines(text.splitlines(), rule_kind, origin=path, root=root)


def build_rule_set(root: Path, config: ExportConfig, host: HostConfig) -> RuleSet:
    """Build the rule set for one export, in precedence order.

    1. built-in default ignores,
    2. host-wide global ignore and include rules,
    3. the project's ignore and include files.

    Args:
        root (Path): project root
        config (ExportConfig): project configuration naming the rule files
        host (HostConfig): host-wide rules

    Returns:
        RuleSet: the merged rules
    """
    rules = RuleSet()
    defaults_origin = root / "<defaults>"
    global_origin = root / "<global>"
    rules.add(parse_rule_lines(DEFAULT_IGNORE_RULES, RuleKind.IGNORE, origin=defaults_origin), RuleSource.DEFAULT)
    rules.add(
        parse_rule_lines(host.global_ignore_rules, RuleKind.IGNORE, origin=global_origin, root=root),
        RuleSource.GLOBAL,
    )
    rules.add(
        parse_rule_lines(host.global_include_rules, RuleKind.INCLUDE, origin=global_origin, root=root),
        RuleSource.GLOBAL,
    )
    rules.add(read_rule_file(root / config.ignore_file, RuleKind.IGNORE, root=root), RuleSource.PROJECT)
    rules.add(read_rule_file(root / config.include_file, RuleKind.INCLUDE, root=root), RuleSource.PROJECT)
    return rules
