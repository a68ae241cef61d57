"""
Password policy validation and interactive acquisition.

Validation reports every violated rule in one pass so the user gets a
complete list of what to fix. Acquisition loops until a validated and
confirmed secret is entered, or the input stream ends.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union

from .config import PasswordPolicy
from .errors import ValidationError

logger = logging.getLogger(__name__)

SPECIAL_CHARS_HINT = "!@#$%^&*()_+-=[]{}|;:,.<>?"

ReadSecret = Callable[[str], str]
Report = Callable[[str], None]


class Violation(Enum):
    EMPTY = "empty"
    TAB = "tab"
    TOO_SHORT = "too_short"
    NO_LOWERCASE = "no_lowercase"
    NO_UPPERCASE = "no_uppercase"
    NO_DIGIT = "no_digit"
    NO_SPECIAL = "no_special"


@dataclass
class ValidationResult:
    violations: List[Violation] = field(default_factory=list)
    length: int = 0
    min_length: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.violations

    def messages(self) -> List[str]:
        return [describe(v, self) for v in self.violations]


def describe(violation: Violation, result: ValidationResult) -> str:
    if violation is Violation.EMPTY:
        return "Password cannot be empty"
    if violation is Violation.TAB:
        return "Password contains tab character. Please avoid using tabs."
    if violation is Violation.TOO_SHORT:
        return (
            f"At least {result.min_length} characters required "
            f"(current: {result.length})"
        )
    if violation is Violation.NO_LOWERCASE:
        return "At least one lowercase letter required"
    if violation is Violation.NO_UPPERCASE:
        return "At least one uppercase letter required"
    if violation is Violation.NO_DIGIT:
        return "At least one number required"
    return f"At least one special character required ({SPECIAL_CHARS_HINT})"


def validate(candidate: str, policy: PasswordPolicy) -> ValidationResult:
    """
    Check a candidate secret against the policy.

    Empty/whitespace-only and tab-containing secrets are rejected on
    their own, whatever the policy says; those rejections short-circuit
    the character-class checks.
    """

    result = ValidationResult(length=len(candidate), min_length=policy.min_length)

    if "\t" in candidate:
        result.violations.append(Violation.TAB)
        return result

    if not candidate.strip():
        result.violations.append(Violation.EMPTY)
        return result

    if policy.min_length is not None and len(candidate) < policy.min_length:
        result.violations.append(Violation.TOO_SHORT)
    if policy.require_lowercase and not re.search(r"[a-z]", candidate):
        result.violations.append(Violation.NO_LOWERCASE)
    if policy.require_uppercase and not re.search(r"[A-Z]", candidate):
        result.violations.append(Violation.NO_UPPERCASE)
    if policy.require_digit and not re.search(r"[0-9]", candidate):
        result.violations.append(Violation.NO_DIGIT)
    if policy.require_special and not re.search(r"[^a-zA-Z0-9]", candidate):
        result.violations.append(Violation.NO_SPECIAL)

    return result


def require_valid(candidate: str, policy: PasswordPolicy) -> None:
    """
    Raises:
        ValidationError: listing every violated rule, or carrying the
            single tab/empty rejection message
    """

    result = validate(candidate, policy)
    if result.ok:
        return

    if result.violations[0] in (Violation.TAB, Violation.EMPTY):
        raise ValidationError(result.messages()[0])

    raise ValidationError(
        "Password does not meet security requirements:", result.messages()
    )


# ---------------------------------------------------------------------------
# Secret holder
# ---------------------------------------------------------------------------


class Secret:
    """
    Password bytes held in a mutable buffer that can be zeroed.

    Python may still keep copies (the str returned by the prompt, KDF
    internals); wiping narrows the exposure window, nothing more.
    """

    def __init__(self, value: str):
        self._buf = bytearray(value.encode("utf-8"))

    @property
    def value(self) -> bytearray:
        if self._buf is None:
            raise ValueError("Secret has been wiped")
        return self._buf

    @property
    def wiped(self) -> bool:
        return self._buf is None

    def wipe(self) -> None:
        if self._buf is None:
            return
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._buf = None

    def __enter__(self) -> "Secret":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return "Secret(***)"


# ---------------------------------------------------------------------------
# Acquisition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Accepted:
    secret: Secret


@dataclass(frozen=True)
class Abort:
    reason: str


AcquireResult = Union[Accepted, Abort]


def acquire_new_password(
    read_secret: ReadSecret,
    policy: PasswordPolicy,
    prompt: str,
    report_error: Report,
    report_hint: Report,
    max_attempts: Optional[int] = None,
) -> AcquireResult:
    """
    Ask for a new secret until it passes the policy and is confirmed.

    A rejected or mismatched entry restarts the loop; running out of
    input (EOF) or attempts aborts.
    """

    attempts = 0
    while max_attempts is None or attempts < max_attempts:
        attempts += 1

        try:
            candidate = read_secret(prompt)
        except EOFError:
            return Abort("no password entered")

        try:
            require_valid(candidate, policy)
        except ValidationError as e:
            report_error(str(e))
            if e.violations:
                for message in e.violations:
                    report_hint(f"  ✗ {message}")
                report_hint("Please choose a stronger password")
            continue

        try:
            confirmation = read_secret("Confirm encryption key: ")
        except EOFError:
            return Abort("no confirmation entered")

        if candidate != confirmation:
            report_error("Passwords don't match")
            continue

        logger.debug("Password accepted after %d attempt(s)", attempts)
        return Accepted(Secret(candidate))

    return Abort(f"no valid password after {attempts} attempt(s)")


def acquire_existing_password(read_secret: ReadSecret, prompt: str) -> AcquireResult:
    """Single, unvalidated prompt used to unlock existing artifacts."""

    try:
        candidate = read_secret(prompt)
    except EOFError:
        return Abort("no password entered")

    return Accepted(Secret(candidate))
