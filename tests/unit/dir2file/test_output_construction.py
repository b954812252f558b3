from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dir2file.config import ACTIVE_TABS_HEADING
from dir2file.exceptions import ExportCancelledError, FileReadError, NothingToExportError
from dir2file.file_manipulation import read_file_text
from dir2file.output_construction import ExportAssembler, file_section, structure_block, too_large_section
from dir2file.progress import CancellationToken
from dir2file.settings import ExportConfig

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_file_section_format() -> None:
    assert file_section("src/a.ts", "ts", "let a = 1;\n\n\n") == "## src/a.ts\n\n```ts\nlet a = 1;\n```\n\n"


@pytest.mark.unit
def test_structure_block_format() -> None:
    assert structure_block(["src/", "  a.ts"]) == "# Project Structure\n\n```\nsrc/\n  a.ts\n```\n\n"


@pytest.mark.unit
def test_too_large_section_names_the_size() -> None:
    assert too_large_section("big.bin", 2048) == "## big.bin\n\nFile is too large to process (2048 bytes)\n\n"


@pytest.mark.unit
def test_assemble_orders_description_structure_heading_and_files(
    make_tree: Callable[[dict[str, str]], Path],
) -> None:
    root = make_tree({"src/a.ts": "let a = 1;\n", "Makefile": "all:\n"})

    doc = ExportAssembler(root, ExportConfig()).assemble(
        ["src/a.ts", "Makefile"],
        tree_lines=["src/", "  a.ts", "Makefile"],
        description="About this project.",
        heading=ACTIVE_TABS_HEADING,
    )

    assert doc.text == (
        "About this project.\n\n"
        "# Project Structure\n\n```\nsrc/\n  a.ts\nMakefile\n```\n\n"
        "# Active Tabs Content\n\n"
        "## src/a.ts\n\n```ts\nlet a = 1;\n```\n\n"
        "## Makefile\n\n```\nall:\n```\n\n"
    )
    assert doc.files == ["src/a.ts", "Makefile"]
    assert doc.warnings == []


@pytest.mark.unit
def test_oversized_file_becomes_placeholder_with_byte_size(make_tree: Callable[[dict[str, str]], Path]) -> None:
    root = make_tree({"big.txt": "x" * 50, "small.txt": "ok"})
    config = ExportConfig(maxFileSize=10)

    doc = ExportAssembler(root, config).assemble(["big.txt", "small.txt"])

    assert "## big.txt\n\nFile is too large to process (50 bytes)\n\n" in doc.text
    assert "x" * 50 not in doc.text
    assert doc.files == ["big.txt", "small.txt"]
    assert doc.warnings == ["big.txt: file is too large to process (50 bytes)"]


@pytest.mark.unit
def test_invalid_utf8_is_replaced(make_tree: Callable[[dict[str, str]], Path]) -> None:
    root = make_tree({})
    (root / "latin.txt").write_bytes(b"caf\xe9\n")

    doc = ExportAssembler(root, ExportConfig()).assemble(["latin.txt"])

    assert "caf�" in doc.text


@pytest.mark.unit
def test_unreadable_file_is_skipped_with_warning(
    make_tree: Callable[[dict[str, str]], Path],
    mocker: MockerFixture,
) -> None:
    root = make_tree({"a.txt": "a", "b.txt": "b"})
    real_read = read_file_text

    def flaky(path: Path) -> str:
        if path.name == "a.txt":
            raise FileReadError(path=path, reason="Permission denied")
        return real_read(path)

    mocker.patch("dir2file.output_construction.read_file_text", side_effect=flaky)

    doc = ExportAssembler(root, ExportConfig()).assemble(["a.txt", "b.txt"])

    assert doc.files == ["b.txt"]
    assert "## a.txt" not in doc.text
    assert len(doc.warnings) == 1
    assert "a.txt" in doc.warnings[0]
    assert "Permission denied" in doc.warnings[0]


@pytest.mark.unit
def test_missing_file_is_skipped(make_tree: Callable[[dict[str, str]], Path]) -> None:
    root = make_tree({"b.txt": "b"})

    doc = ExportAssembler(root, ExportConfig()).assemble(["gone.txt", "b.txt"])

    assert doc.files == ["b.txt"]
    assert "gone.txt" in doc.warnings[0]


@pytest.mark.unit
def test_zero_files_is_an_error(make_tree: Callable[[dict[str, str]], Path]) -> None:
    root = make_tree({})

    with pytest.raises(NothingToExportError):
        ExportAssembler(root, ExportConfig()).assemble([], description="only a description")


@pytest.mark.unit
def test_comments_stripped_for_configured_extensions(make_tree: Callable[[dict[str, str]], Path]) -> None:
    root = make_tree({"a.ts": "let a = 1; // note\n", "b.sql": "-- c\nselect 1;\n", "c.sql": "select 2;\n"})
    config = ExportConfig(removeComments=True)

    doc = ExportAssembler(root, config, strip_extensions=["ts", "sql"]).assemble(["a.ts", "b.sql", "c.sql"])

    assert "```ts\nlet a = 1;\n```" in doc.text
    assert "-- c\nselect 1;" in doc.text
    assert doc.warnings == ["comment removal not supported for '.sql' files; kept as is"]


@pytest.mark.unit
def test_comments_kept_for_extensions_outside_the_strip_set(make_tree: Callable[[dict[str, str]], Path]) -> None:
    root = make_tree({"a.ts": "let a = 1; // note\n"})
    config = ExportConfig(removeComments=True)

    doc = ExportAssembler(root, config, strip_extensions=["py"]).assemble(["a.ts"])

    assert "// note" in doc.text
    assert doc.warnings == ["comment removal not supported for '.ts' files; kept as is"]


@pytest.mark.unit
def test_progress_is_reported_per_file(
    make_tree: Callable[[dict[str, str]], Path],
    mocker: MockerFixture,
) -> None:
    root = make_tree({"a.txt": "a", "b.txt": "b"})
    reporter = mocker.Mock()

    ExportAssembler(root, ExportConfig(), progress=reporter).assemble(["a.txt", "b.txt"])

    assert reporter.report.call_args_list == [
        mocker.call(1, 2, "Processing: a.txt"),
        mocker.call(2, 2, "Processing: b.txt"),
    ]


@pytest.mark.unit
def test_cancellation_between_files_stops_assembly(
    make_tree: Callable[[dict[str, str]], Path],
    mocker: MockerFixture,
) -> None:
    root = make_tree({f"f{i}.txt": str(i) for i in range(5)})
    token = CancellationToken()
    reporter = mocker.Mock()
    reporter.report.side_effect = lambda done, total, message: token.cancel() if done == 2 else None  # noqa: ARG005

    assembler = ExportAssembler(root, ExportConfig(), progress=reporter, token=token)
    with pytest.raises(ExportCancelledError):
        assembler.assemble([f"f{i}.txt" for i in range(5)])

    expected_reports = 2
    assert reporter.report.call_count == expected_reports
