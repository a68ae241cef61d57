"""
Filesystem scanning and pattern application.

This module is responsible for:
- walking the target directory tree
- applying the pattern set to every regular file
- returning the ordered, deduplicated candidate list

This module does NOT:
- encrypt or decrypt data
- modify files
- prompt the user
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Tuple

from .config import ENCRYPTED_SUFFIX
from .errors import DirectoryNotFound
from .patterns import PatternSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateFile:
    """
    A file selected for transformation.

    `source` is the file that is read, `target` the file that is written.
    `target_exists` only decides the overwrite notice; it never gates
    selection.
    """

    source: Path
    target: Path
    target_exists: bool


FileSelection = Tuple[CandidateFile, ...]


def encrypted_path(path: Path) -> Path:
    return path.with_name(path.name + ENCRYPTED_SUFFIX)


def decrypted_path(path: Path) -> Path:
    return path.with_name(path.name[: -len(ENCRYPTED_SUFFIX)])


class FileScanner:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _walk(self) -> Iterator[Path]:
        """Yield regular files under root in lexicographic path order."""

        if not self.root.is_dir():
            raise DirectoryNotFound(self.root)

        logger.debug("Scanning %s", self.root)

        # Symlinks are not followed, like `find -type f`: this also keeps
        # directory loops out of the walk.
        for path in sorted(self.root.rglob("*")):
            if path.is_symlink() or not path.is_file():
                continue
            yield path

    def discover(self, patterns: PatternSet) -> FileSelection:
        """
        Return the files that should be encrypted.

        Raises:
            DirectoryNotFound: if root is missing or not a directory
        """

        selected = []
        seen = set()

        for path in self._walk():
            if path.name.endswith(ENCRYPTED_SUFFIX):
                continue

            if not patterns.matches(path.name):
                continue

            if path in seen:
                continue
            seen.add(path)

            output = encrypted_path(path)
            selected.append(
                CandidateFile(source=path, target=output, target_exists=output.exists())
            )
            logger.debug("Selected %s", path)

        logger.debug("%d file(s) selected under %s", len(selected), self.root)
        return tuple(selected)

    def discover_encrypted(self) -> FileSelection:
        """
        Return every .enc artifact under root, independent of patterns.
        """

        selected = []

        for path in self._walk():
            if not path.name.endswith(ENCRYPTED_SUFFIX) or path.name == ENCRYPTED_SUFFIX:
                continue

            output = decrypted_path(path)
            selected.append(
                CandidateFile(source=path, target=output, target_exists=output.exists())
            )

        logger.debug("%d encrypted file(s) found under %s", len(selected), self.root)
        return tuple(selected)
