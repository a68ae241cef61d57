"""
Batch orchestration.

    Idle -> Discovering -> (Empty | Selecting) -> AcquiringPassword
         -> Transforming -> Reporting -> Done

Configuration and discovery errors propagate and abort the run.
Per-file crypto errors are recorded in the summary and the batch moves
on to the next file.
"""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional

from .config import ToolConfig
from .console import Colors, Console
from .errors import CryptoError, DirectoryNotFound
from .file_scanner import FileScanner, FileSelection
from .password import (
    Abort,
    ReadSecret,
    Secret,
    acquire_existing_password,
    acquire_new_password,
)
from .patterns import PatternSet, write_default_patterns

if TYPE_CHECKING:
    from .transformer import Transformer

logger = logging.getLogger(__name__)

ENCRYPT = "encrypt"
DECRYPT = "decrypt"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

INTERRUPTED_REASON = "not processed (interrupted)"


class BatchState(Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    EMPTY = "empty"
    SELECTING = "selecting"
    ACQUIRING_PASSWORD = "acquiring_password"
    TRANSFORMING = "transforming"
    REPORTING = "reporting"
    DONE = "done"


@dataclass(frozen=True)
class TransformOutcome:
    source: Path
    output: Optional[Path] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass
class BatchSummary:
    mode: str
    root: Path
    selection: FileSelection = ()
    outcomes: List[TransformOutcome] = field(default_factory=list)
    aborted: Optional[str] = None
    interrupted: bool = False

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failure_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def exit_code(self) -> int:
        if self.interrupted:
            return EXIT_INTERRUPTED
        if self.aborted:
            return EXIT_FAILURE
        # Partial encryption still exits 0; any decryption failure does not.
        if self.mode == DECRYPT and self.failure_count:
            return EXIT_FAILURE
        return EXIT_OK


class BatchRunner:
    def __init__(
        self,
        config: ToolConfig,
        console: Console,
        read_secret: ReadSecret,
        transformer: Optional[Transformer] = None,
    ):
        self.config = config
        self.console = console
        self.read_secret = read_secret
        self._transformer = transformer
        self.state = BatchState.IDLE

    @property
    def transformer(self) -> Transformer:
        """Cipher backend, imported on first use so --init works without it."""
        if self._transformer is None:
            from .transformer import Transformer

            self._transformer = Transformer(self.config.crypto)
        return self._transformer

    def _enter(self, state: BatchState) -> None:
        logger.debug("Batch state %s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, root: str | Path) -> BatchSummary:
        """
        Encrypt every sensitive file under root.

        Raises:
            DirectoryNotFound, ConfigError
        """

        root = Path(root)
        summary = BatchSummary(mode=ENCRYPT, root=root)
        con = self.console

        self._enter(BatchState.DISCOVERING)
        if not root.is_dir():
            raise DirectoryNotFound(root)

        patterns_path = root / self.config.patterns_file
        patterns = PatternSet.load(patterns_path)
        if patterns.is_empty:
            con.warning(f"No patterns found in {self.config.patterns_file}")
            con.hint(f"Edit {patterns_path} to add file patterns")
            return self._finish_empty(summary)

        con.log(f"🔐 Encrypting sensitive files in folder: {root}")
        con.hint(f"Using patterns from {self.config.patterns_file}")
        con.hint(f"\nLooking for sensitive files in {root}/...")

        summary.selection = FileScanner(root).discover(patterns)
        if not summary.selection:
            con.hint(f"No sensitive files found in {root}/")
            return self._finish_empty(summary)

        self._enter(BatchState.SELECTING)
        con.log(con.colored("\nFiles to be encrypted:", Colors.GREEN))
        for candidate in summary.selection:
            if candidate.target_exists:
                note = con.colored("(will overwrite existing .enc)", Colors.RED)
                con.log(f"  {con.colored('📄', Colors.YELLOW)} {candidate.source} {note}")
            else:
                note = con.colored("(new)", Colors.GREEN)
                con.log(f"  {con.colored('📄', Colors.GREEN)} {candidate.source} {note}")
        con.hint(f"\nTotal: {len(summary.selection)} file(s) will be encrypted")

        self._enter(BatchState.ACQUIRING_PASSWORD)
        result = acquire_new_password(
            self.read_secret,
            self.config.password,
            prompt=f'Enter encryption key for all files of "{root}": ',
            report_error=con.error,
            report_hint=con.hint,
        )
        if isinstance(result, Abort):
            return self._finish_aborted(summary, result.reason)
        con.success("Password meets security requirements")

        con.log(con.colored(f"\nEncrypting {len(summary.selection)} file(s)", Colors.GREEN))
        self._transform(summary, result.secret, self.transformer.encrypt_file)

        self._enter(BatchState.REPORTING)
        self._report_encrypt(summary)
        self._enter(BatchState.DONE)
        return summary

    def decrypt(self, root: str | Path) -> BatchSummary:
        """
        Decrypt every .enc artifact under root. Patterns are not consulted.

        Raises:
            DirectoryNotFound
        """

        root = Path(root)
        summary = BatchSummary(mode=DECRYPT, root=root)
        con = self.console

        self._enter(BatchState.DISCOVERING)
        summary.selection = FileScanner(root).discover_encrypted()

        con.log(f"🔓 Decrypting sensitive files in folder: {root}")

        if not summary.selection:
            con.hint(f"No encrypted (.enc) files found in {root}/")
            return self._finish_empty(summary)

        self._enter(BatchState.SELECTING)
        con.log(con.colored("\nFiles to be decrypted:", Colors.GREEN))
        for candidate in summary.selection:
            if candidate.target_exists:
                note = con.colored("(will overwrite existing)", Colors.RED)
                icon = con.colored("🔓", Colors.YELLOW)
            else:
                note = con.colored("(new)", Colors.GREEN)
                icon = con.colored("🔓", Colors.GREEN)
            con.log(f"  {icon} {candidate.source} → {candidate.target} {note}")
        con.hint(f"\nTotal: {len(summary.selection)} file(s) will be decrypted")

        existing = [c for c in summary.selection if c.target_exists]
        if existing:
            con.hint(f"\n⚠️  {len(existing)} unencrypted file(s) will be overwritten")
            con.hint("Press Ctrl+C to cancel or continue with password entry")

        self._enter(BatchState.ACQUIRING_PASSWORD)
        result = acquire_existing_password(
            self.read_secret,
            prompt=f'Enter decryption key for all files of "{root}": ',
        )
        if isinstance(result, Abort):
            return self._finish_aborted(summary, result.reason)

        self._transform(summary, result.secret, self.transformer.decrypt_file)

        self._enter(BatchState.REPORTING)
        self._report_decrypt(summary)
        self._enter(BatchState.DONE)
        return summary

    def init_patterns(
        self,
        root: str | Path,
        force: bool = False,
        confirm: Optional[Callable[[str], str]] = None,
    ) -> Optional[Path]:
        """
        Write the default pattern file into root.

        An existing file is kept unless `force` is set or the user answers
        yes to the overwrite question.

        Raises:
            DirectoryNotFound
        """

        root = Path(root)
        con = self.console

        written = write_default_patterns(root, self.config.patterns_file, overwrite=force)
        if written is None:
            existing = root / self.config.patterns_file
            con.hint(f"File already exists: {existing}")
            answer = ""
            if confirm is not None:
                try:
                    answer = confirm("Overwrite? (y/N): ")
                except EOFError:
                    answer = ""
            if answer.strip().lower() not in ("y", "yes"):
                con.log("Keeping existing file.")
                return None
            written = write_default_patterns(root, self.config.patterns_file, overwrite=True)

        con.success(f"Created {written}")
        con.hint("Edit this file to customize which files to encrypt")
        return written

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transform(
        self,
        summary: BatchSummary,
        secret: Secret,
        operation: Callable[[Path, bytearray], Path],
    ) -> None:
        self._enter(BatchState.TRANSFORMING)
        con = self.console
        verb = "Encrypted" if summary.mode == ENCRYPT else "Decrypted"

        with secret, _deferred_interrupt() as interrupted:
            for index, candidate in enumerate(summary.selection):
                if interrupted.is_set():
                    summary.interrupted = True
                    for skipped in summary.selection[index:]:
                        summary.outcomes.append(
                            TransformOutcome(skipped.source, reason=INTERRUPTED_REASON)
                        )
                    con.warning(
                        f"Interrupted: {len(summary.selection) - index} file(s) not processed"
                    )
                    break

                try:
                    output = operation(candidate.source, secret.value)
                except CryptoError as e:
                    summary.outcomes.append(TransformOutcome(candidate.source, reason=e.reason))
                    con.failure(f"Failed to {summary.mode}: {candidate.source}")
                    if summary.mode == DECRYPT:
                        con.failure(f"  Error: {e.reason}")
                    else:
                        con.log_verbose(e.reason)
                    continue

                summary.outcomes.append(TransformOutcome(candidate.source, output=output))
                con.success(f"{verb}: {candidate.source} -> {output}")
            else:
                # SIGINT during the last file
                if interrupted.is_set():
                    summary.interrupted = True
                    con.warning("Interrupted: all files were processed")

        logger.debug(
            "%s batch finished: %d ok, %d failed",
            summary.mode,
            summary.success_count,
            summary.failure_count,
        )

    def _finish_empty(self, summary: BatchSummary) -> BatchSummary:
        self._enter(BatchState.EMPTY)
        self._enter(BatchState.DONE)
        return summary

    def _finish_aborted(self, summary: BatchSummary, reason: str) -> BatchSummary:
        summary.aborted = reason
        self.console.error(f"Aborted: {reason}")
        self._enter(BatchState.DONE)
        return summary

    def _report_encrypt(self, summary: BatchSummary) -> None:
        con = self.console

        con.log("")
        con.rule()
        con.success(f"Encryption complete for {summary.root}!")
        con.log(con.colored(f"  Total files encrypted: {summary.success_count}", Colors.GREEN))
        if summary.failure_count:
            con.log(con.colored(f"  Failed to encrypt: {summary.failure_count}", Colors.RED))
        con.rule()

        if summary.success_count:
            con.log(con.colored("\nEncrypted files:", Colors.GREEN))
            for outcome in sorted(summary.outcomes, key=lambda o: o.source):
                if outcome.ok:
                    con.log(f"  {con.colored('✓', Colors.GREEN)} {outcome.output}")

        con.hint("\n⚠️  Important reminders:")
        con.log("  1. Keep your encryption password safe!")
        con.log("  2. Never commit the unencrypted files")
        con.log(f"  3. Add *.enc files to git: git add {summary.root}/*.enc")
        con.log("  4. Keep the unencrypted files in .gitignore")

    def _report_decrypt(self, summary: BatchSummary) -> None:
        con = self.console

        con.log("")
        con.rule()
        if summary.failure_count == 0:
            con.success(f"Decryption complete for {summary.root}!")
        else:
            con.hint("⚠️  Decryption finished with errors")
        con.log(con.colored(f"  Successfully decrypted: {summary.success_count}", Colors.GREEN))
        if summary.failure_count:
            # Printed even in quiet mode: callers grep for "Failed to decrypt".
            print(
                con.colored(f"  Failed to decrypt: {summary.failure_count}", Colors.RED),
                file=con.out,
            )
            con.hint("  Wrong password? Try again with correct password")
        con.rule()

        con.hint("\n⚠️  Security reminders:")
        con.log("  1. Never commit unencrypted sensitive files!")
        con.log("  2. Keep these files in .gitignore for your protection")
        con.log("  3. Keep decrypted files secure on your local machine")


@contextmanager
def _deferred_interrupt() -> Iterator[threading.Event]:
    """
    Turn SIGINT into a flag for the duration of the block.

    The batch checks the flag between files, so a file that is being
    written is always finished first. Outside the main thread signal
    handlers cannot be installed and the flag is never set.
    """

    interrupted = threading.Event()

    if threading.current_thread() is not threading.main_thread():
        yield interrupted
        return

    def handler(signum, frame):
        logger.debug("Interrupt received, stopping after the current file")
        interrupted.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield interrupted
    finally:
        signal.signal(signal.SIGINT, previous)
