from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING, Protocol

from dir2file.config import SelectionDecision, UserChoice, Verdict
from dir2file.logging import get_logger
from dir2file.patterns import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    import structlog

    from dir2file.rules import RuleSet

OVERRIDE_CHOICES: tuple[str, ...] = tuple(choice.value for choice in UserChoice)


class Asker(Protocol):
    """Interactive capability: present ``choices`` and return the picked one, or None."""

    def ask(self, prompt: str, choices: Sequence[str]) -> str | None: ...


class UserChoiceCache:
    """Directory-scoped "yes/no to all" answers for a single export run."""

    def __init__(self) -> None:
        self._choices: dict[str, UserChoice] = {}

    def get(self, directory: str) -> UserChoice | None:
        return self._choices.get(directory)

    def remember(self, directory: str, choice: UserChoice) -> None:
        if choice in {UserChoice.YES_ALL, UserChoice.NO_ALL}:
            self._choices[directory] = choice

    def clear(self) -> None:
        self._choices.clear()

    def __contains__(self, directory: object) -> bool:
        return directory in self._choices

    def __len__(self) -> int:
        return len(self._choices)

    def __iter__(self) -> Iterator[str]:
        return iter(self._choices)


def parent_directory(path: str) -> str:
    """Return the cache key for the directory holding ``path`` (``"."`` at the root).

    Args:
        path (str): relative POSIX path

    Returns:
        str: the parent directory
    """
    return posixpath.dirname(normalize_path(path)) or "."


def _to_choice(answer: str | None) -> UserChoice:
    if answer is None:
        return UserChoice.NO
    try:
        return UserChoice(answer)
    except ValueError:
        return UserChoice.NO


class SelectionEngine:
    """Combine a :class:`RuleSet` with the interactive override protocol.

    With ``allow_prompt=False`` every decision is a pure function of the path
    and the rules; otherwise ignored-but-included paths are put to the
    :class:`Asker`, and directory-wide answers are remembered in the
    :class:`UserChoiceCache` for the rest of the run.
    """

    def __init__(
        self,
        rules: RuleSet,
        asker: Asker | None = None,
        *,
        cache: UserChoiceCache | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.rules = rules
        self.asker = asker
        self.cache = cache if cache is not None else UserChoiceCache()
        self.log = get_logger("selection", logger)

    def decide(
        self,
        path: str,
        apply_include_rules: bool = True,  # noqa: FBT001, FBT002
        allow_prompt: bool = True,  # noqa: FBT001, FBT002
        *,
        is_dir: bool = False,
    ) -> SelectionDecision:
        """Decide whether ``path`` is part of the export.

        Args:
            path (str): path relative to the project root
            apply_include_rules (bool): honor include rules; False gives an ignore-only check
            allow_prompt (bool): allow asking the user about ignored-but-included paths
            is_dir (bool): whether the path is a directory

        Returns:
            SelectionDecision: an include or exclude verdict with its reason
        """
        rel = normalize_path(path)
        ignore_rule = self.rules.last_ignore_match(rel, is_dir=is_dir)
        ignored = ignore_rule is not None and not ignore_rule.pattern.negated
        ignore_source = ignore_rule.pattern.source if ignore_rule is not None else None

        if self.rules.has_include_rules and apply_include_rules:
            include_rule = self.rules.first_include_match(rel, is_dir=is_dir)
            if include_rule is None:
                decision = SelectionDecision(path=rel, verdict=Verdict.EXCLUDE, reason="not in include rules")
            elif ignored and allow_prompt:
                approved = self.resolve_override(rel, f"{rel} is ignored but included. Process it?")
                decision = SelectionDecision(
                    path=rel,
                    verdict=Verdict.INCLUDE if approved else Verdict.EXCLUDE,
                    reason=(
                        "user approved ignored but included file"
                        if approved
                        else "user rejected ignored but included file"
                    ),
                    pattern=ignore_source,
                )
            elif ignored:
                decision = SelectionDecision(
                    path=rel,
                    verdict=Verdict.INCLUDE,
                    reason="ignored but included, prompting disabled",
                    pattern=include_rule.pattern.source,
                )
            else:
                decision = SelectionDecision(
                    path=rel,
                    verdict=Verdict.INCLUDE,
                    reason="explicitly included",
                    pattern=include_rule.pattern.source,
                )
        elif ignored:
            decision = SelectionDecision(path=rel, verdict=Verdict.EXCLUDE, reason="ignored", pattern=ignore_source)
        else:
            decision = SelectionDecision(
                path=rel,
                verdict=Verdict.INCLUDE,
                reason="re-included by negation" if ignore_rule is not None else "not ignored",
                pattern=ignore_source,
            )

        self.log.debug("decision", path=rel, verdict=decision.verdict, reason=decision.reason)
        return decision

    def preview(self, path: str, *, is_dir: bool = False) -> SelectionDecision:
        """Decide without prompting; paths that would be put to the user come back as ``ask``.

        Args:
            path (str): path relative to the project root
            is_dir (bool): whether the path is a directory

        Returns:
            SelectionDecision: an include, exclude or ask verdict
        """
        decision = self.decide(path, allow_prompt=False, is_dir=is_dir)
        if decision.included and self.rules.has_include_rules and self.rules.is_ignored(decision.path, is_dir=is_dir):
            return decision.model_copy(
                update={"verdict": Verdict.ASK, "reason": "ignored but included, needs confirmation"},
            )
        return decision

    def resolve_override(self, path: str, prompt: str) -> bool:
        """Run the interactive override protocol for one path.

        A cached directory answer is reused without prompting. A missing or
        unknown answer counts as ``No``.

        Args:
            path (str): path relative to the project root
            prompt (str): question shown to the user

        Returns:
            bool: True if the user approved including the path
        """
        directory = parent_directory(path)
        cached = self.cache.get(directory)
        if cached is not None:
            self.log.debug("cached choice", path=path, directory=directory, choice=cached)
            return cached is UserChoice.YES_ALL

        answer = self.asker.ask(prompt, OVERRIDE_CHOICES) if self.asker is not None else None
        choice = _to_choice(answer)
        self.cache.remember(directory, choice)
        self.log.info("user choice", path=path, choice=choice)
        return choice in {UserChoice.YES, UserChoice.YES_ALL}

    def confirm_override(self, path: str, *, excluded_by: str = "ignored") -> bool:
        """Ask whether a path the rules exclude should be exported anyway.

        Args:
            path (str): path relative to the project root
            excluded_by (str): why the rules drop the path, worded to follow "is"

        Returns:
            bool: True if the user approved including the path
        """
        rel = normalize_path(path)
        return self.resolve_override(rel, f"{rel} is {excluded_by}. Process it?")
