from __future__ import annotations

from pathlib import Path

import pytest

from dir2file.config import RuleKind, RuleSource
from dir2file.exceptions import RuleFileError
from dir2file.patterns import PatternKind
from dir2file.rules import RuleSet, build_rule_set, parse_rule_lines, read_rule_file
from dir2file.settings import ExportConfig, HostConfig

ORIGIN = Path(".export-ignore")


def make_rules(ignore: list[str], include: list[str] | None = None) -> RuleSet:
    rules = RuleSet()
    rules.add(parse_rule_lines(ignore, RuleKind.IGNORE, origin=ORIGIN), RuleSource.PROJECT)
    rules.add(parse_rule_lines(include or [], RuleKind.INCLUDE, origin=ORIGIN), RuleSource.PROJECT)
    return rules


@pytest.mark.unit
def test_parse_rule_lines_skips_blanks_and_comments() -> None:
    patterns = parse_rule_lines(["# build output", "", "dist/", "  ", "*.log"], RuleKind.IGNORE, origin=ORIGIN)

    assert [p.source for p in patterns] == ["dist/", "*.log"]


@pytest.mark.unit
def test_parse_rule_lines_rejects_negated_include_with_line_number() -> None:
    with pytest.raises(RuleFileError) as exc_info:
        parse_rule_lines(["src/", "", "!src/gen"], RuleKind.INCLUDE, origin=Path(".export-include"))

    expected_line = 3
    assert exc_info.value.line == expected_line
    assert str(exc_info.value).startswith(".export-include:3: negation is not supported")


@pytest.mark.unit
def test_include_directory_line_covers_everything_below() -> None:
    (pattern,) = parse_rule_lines(["docs/"], RuleKind.INCLUDE, origin=ORIGIN)

    assert pattern.kind is PatternKind.PREFIX
    assert pattern.value == "docs"


@pytest.mark.unit
def test_last_matching_ignore_rule_wins() -> None:
    rules = make_rules(["*.log", "!keep.log"])

    assert rules.is_ignored("debug.log")
    assert not rules.is_ignored("keep.log")
    last = rules.last_ignore_match("keep.log")
    assert last is not None
    assert last.pattern.negated is True


@pytest.mark.unit
def test_include_rules_are_ored() -> None:
    rules = make_rules([], ["src/**", "README.md"])

    assert rules.has_include_rules
    assert rules.is_included("src/a.ts")
    assert rules.is_included("README.md")
    assert not rules.is_included("docs/a.md")


@pytest.mark.unit
def test_is_included_is_false_without_include_rules() -> None:
    rules = make_rules(["dist/"])

    assert not rules.has_include_rules
    assert not rules.is_included("src/a.ts")


@pytest.mark.unit
def test_explain_lists_ignore_rules_then_include_rules() -> None:
    rules = make_rules(["src/gen/", "*.ts"], ["src/**"])

    hits = rules.explain("src/gen/y.ts")

    assert [(r.pattern.rule_kind, r.pattern.source) for r in hits] == [
        (RuleKind.IGNORE, "src/gen/"),
        (RuleKind.IGNORE, "*.ts"),
        (RuleKind.INCLUDE, "src/**"),
    ]


@pytest.mark.unit
def test_read_rule_file_missing_file_yields_no_rules(tmp_path: Path) -> None:
    assert read_rule_file(tmp_path / ".export-ignore", RuleKind.IGNORE) == []


@pytest.mark.unit
def test_read_rule_file_parses_lines(tmp_path: Path) -> None:
    path = tmp_path / ".export-ignore"
    path.write_text("# generated\nsrc/gen/\n*.map\n", encoding="utf-8")

    patterns = read_rule_file(path, RuleKind.IGNORE)

    assert [p.source for p in patterns] == ["src/gen/", "*.map"]


@pytest.mark.unit
def test_build_rule_set_orders_sources(tmp_path: Path) -> None:
    (tmp_path / ".export-ignore").write_text("*.map\n", encoding="utf-8")
    (tmp_path / ".export-include").write_text("src/\n", encoding="utf-8")
    host = HostConfig(global_ignore_rules="*.tmp", global_include_rules=["README.md"])

    rules = build_rule_set(tmp_path, ExportConfig(), host)

    sources = [r.source for r in rules.ignore]
    assert sources[0] is RuleSource.DEFAULT
    assert sources[-2:] == [RuleSource.GLOBAL, RuleSource.PROJECT]
    assert [r.pattern.source for r in rules.ignore[-2:]] == ["*.tmp", "*.map"]
    assert [(r.source, r.pattern.value) for r in rules.include] == [
        (RuleSource.GLOBAL, "README.md"),
        (RuleSource.PROJECT, "src"),
    ]


@pytest.mark.unit
def test_build_rule_set_applies_default_ignores(tmp_path: Path) -> None:
    rules = build_rule_set(tmp_path, ExportConfig(), HostConfig())

    assert rules.is_ignored("node_modules", is_dir=True)
    assert rules.is_ignored(".git", is_dir=True)
    assert rules.is_ignored("release.vsix")
    assert not rules.is_ignored("src/app.ts")


@pytest.mark.unit
def test_build_rule_set_uses_configured_rule_file_names(tmp_path: Path) -> None:
    (tmp_path / "custom.ignore").write_text("secret.txt\n", encoding="utf-8")
    config = ExportConfig(ignoreFile="custom.ignore")

    rules = build_rule_set(tmp_path, config, HostConfig())

    assert rules.is_ignored("secret.txt")
