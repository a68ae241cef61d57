"""
Pattern rule parsing and evaluation.

Given a pattern file and a filename, this module decides whether the
file is sensitive:
- a basename is selected iff it matches at least one include rule
  and none of the exclude rules
- patterns are shell-style globs matched against the basename only

Rules DO NOT touch files. They only return decisions.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

from .config import DEFAULT_PATTERNS, PATTERNS_FILENAME
from .errors import ConfigError, DirectoryNotFound

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
EXCLUDE_PREFIX = "!"


def glob_match(pattern: str, name: str) -> bool:
    """Case-sensitive shell-glob match of a single name, like `find -name`."""
    return fnmatch.fnmatchcase(name, pattern)


@dataclass(frozen=True)
class PatternRule:
    pattern: str
    exclude: bool = False

    def matches(self, name: str) -> bool:
        return glob_match(self.pattern, name)


@dataclass(frozen=True)
class PatternSet:
    rules: Tuple[PatternRule, ...] = ()

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "PatternSet":
        """
        Load a pattern file.

        Raises:
            ConfigError: if the file is missing or unreadable
        """

        path = Path(path)
        if not path.is_file():
            raise ConfigError(
                f"No {path.name} file found in {path.parent}",
                hint=f"Run 'secure-env encrypt --init {path.parent}' to create one",
            )

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read pattern file {path}: {e}") from e

        patterns = cls.parse(text.splitlines())
        logger.debug(
            "Loaded %d include and %d exclude rule(s) from %s",
            len(patterns.includes),
            len(patterns.excludes),
            path,
        )
        return patterns

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "PatternSet":
        rules: List[PatternRule] = []

        for raw in lines:
            line = raw.strip()
            if not line or line.startswith(COMMENT_PREFIX):
                continue

            if line.startswith(EXCLUDE_PREFIX):
                pattern = line[len(EXCLUDE_PREFIX):].strip()
                if pattern:
                    rules.append(PatternRule(pattern, exclude=True))
                continue

            rules.append(PatternRule(line))

        return cls(tuple(rules))

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    @property
    def includes(self) -> List[PatternRule]:
        return [r for r in self.rules if not r.exclude]

    @property
    def excludes(self) -> List[PatternRule]:
        return [r for r in self.rules if r.exclude]

    @property
    def is_empty(self) -> bool:
        """True when no include rule is configured; nothing is ever selected."""
        return not self.includes

    def matches(self, filename: str | Path) -> bool:
        name = Path(filename).name

        if not any(rule.matches(name) for rule in self.includes):
            return False

        return not any(rule.matches(name) for rule in self.excludes)


def write_default_patterns(
    directory: str | Path,
    filename: str = PATTERNS_FILENAME,
    overwrite: bool = False,
) -> Path | None:
    """
    Write the default pattern file into `directory`.

    Returns the written path, or None when a file already exists and
    `overwrite` is False.
    """

    directory = Path(directory)
    if not directory.is_dir():
        raise DirectoryNotFound(directory)

    target = directory / filename
    if target.exists() and not overwrite:
        return None

    target.write_text(DEFAULT_PATTERNS, encoding="utf-8")
    logger.debug("Wrote default patterns to %s", target)
    return target
