from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path


class ScriptedAsker:
    """Answer prompts from a fixed list and record what was asked."""

    def __init__(self, answers: Sequence[str | None] = ()) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []
        self.choices: list[tuple[str, ...]] = []

    def ask(self, prompt: str, choices: Sequence[str]) -> str | None:
        self.prompts.append(prompt)
        self.choices.append(tuple(choices))
        if not self.answers:
            return None
        return self.answers.pop(0)


def write_files(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def asker() -> Callable[..., ScriptedAsker]:
    def _make(*answers: str | None) -> ScriptedAsker:
        return ScriptedAsker(answers)

    return _make


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    def _make(files: dict[str, str]) -> Path:
        write_files(tmp_path, files)
        return tmp_path

    return _make
