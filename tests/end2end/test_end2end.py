from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from dir2file import cli
from dir2file.selection_store import selection_path

if TYPE_CHECKING:
    from pathlib import Path


def build_project(root: Path) -> None:
    files = {
        "src/app.py": "import os  # stdlib\n\n\ndef main():\n    return os.sep\n",
        "src/util10.py": "TEN = 10\n",
        "src/util2.py": "TWO = 2\n",
        "src/gen/schema.py": "SCHEMA = {}\n",
        "node_modules/pkg/index.js": "module.exports = {}\n",
        "docs/guide.md": "# Guide\n",
        "assets/big.bin": "0" * 4096,
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.mark.end2end
def test_end_to_end_project_export(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    build_project(tmp_path)
    (tmp_path / "exportconfig.json").write_text(
        json.dumps({"output": "out/export.md", "maxFileSize": 1024, "removeComments": True}),
        encoding="utf-8",
    )
    (tmp_path / ".export-ignore").write_text("src/gen/\nexportconfig.json\n.export-ignore\n", encoding="utf-8")

    exit_code = cli.main(["export", "--root", str(tmp_path), "--structure", "--yes-all"])

    assert exit_code == cli.EXIT_OK
    output = tmp_path / "out" / "export.md"
    text = output.read_text(encoding="utf-8")
    assert text.startswith("# Project Structure\n\n```\nassets/\n  big.bin\ndocs/\n  guide.md\nsrc/\n  app.py\n")
    assert "node_modules" not in text
    assert "gen/" not in text
    assert "## assets/big.bin\n\nFile is too large to process (4096 bytes)\n\n" in text
    assert "## src/app.py\n\n```py\nimport os\n\n\ndef main():\n    return os.sep\n```\n\n" in text
    assert text.index("## src/util2.py") < text.index("## src/util10.py")
    assert f"Files exported to {output} files=5" in capsys.readouterr().out


@pytest.mark.end2end
def test_end_to_end_include_rules_with_rejected_override(tmp_path: Path) -> None:
    build_project(tmp_path)
    (tmp_path / ".export-include").write_text("src/\n", encoding="utf-8")
    (tmp_path / ".export-ignore").write_text("src/gen/\n", encoding="utf-8")

    exit_code = cli.main(["--root", str(tmp_path), "--no-all"])

    text = (tmp_path / "export.md").read_text(encoding="utf-8")
    assert exit_code == cli.EXIT_OK
    assert "## src/app.py" in text
    assert "## src/gen/schema.py" not in text
    assert "## docs/guide.md" not in text


@pytest.mark.end2end
def test_end_to_end_remembered_selection(tmp_path: Path) -> None:
    build_project(tmp_path)

    first = cli.main(["export-selected", "--root", str(tmp_path), "docs", "src/util2.py", "--remember"])
    (tmp_path / "export.md").unlink()
    second = cli.main(["export-selected", "--root", str(tmp_path)])

    assert first == cli.EXIT_OK
    assert second == cli.EXIT_OK
    assert json.loads(selection_path(tmp_path).read_text(encoding="utf-8")) == ["docs", "src/util2.py"]
    text = (tmp_path / "export.md").read_text(encoding="utf-8")
    assert text == (
        "# Selected Files Content\n\n"
        "## docs/guide.md\n\n```md\n# Guide\n```\n\n"
        "## src/util2.py\n\n```py\nTWO = 2\n```\n\n"
    )


@pytest.mark.end2end
def test_end_to_end_export_files(tmp_path: Path) -> None:
    build_project(tmp_path)

    exit_code = cli.main(
        ["export-files", "--root", str(tmp_path), "src/app.py", "node_modules/pkg/index.js", "--no-all"],
    )

    text = (tmp_path / "export.md").read_text(encoding="utf-8")
    assert exit_code == cli.EXIT_OK
    assert text.startswith("# Active Tabs Content\n\n## src/app.py")
    assert "node_modules" not in text


@pytest.mark.end2end
def test_end_to_end_invalid_config_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    build_project(tmp_path)
    (tmp_path / "exportconfig.json").write_text('{"outputFile": "x.md"}', encoding="utf-8")

    exit_code = cli.main(["--root", str(tmp_path)])

    assert exit_code == cli.EXIT_ERROR
    assert "exportconfig.json" in capsys.readouterr().err
    assert not (tmp_path / "export.md").exists()
