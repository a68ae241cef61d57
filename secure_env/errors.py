"""
Error taxonomy.

Configuration and discovery errors abort the whole run. Crypto errors
are raised per file and are caught by the batch runner so the remaining
files are still processed.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional


class SecureEnvError(RuntimeError):
    """Base class for all tool errors."""


class ConfigError(SecureEnvError):
    """Missing or unreadable pattern/settings file, invalid settings."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class DiscoveryError(SecureEnvError):
    pass


class DirectoryNotFound(DiscoveryError):
    def __init__(self, path: str | Path):
        super().__init__(f"directory '{path}' not found")
        self.path = Path(path)


class ValidationError(SecureEnvError):
    """A candidate secret was rejected. Recoverable: the user is asked again."""

    def __init__(self, message: str, violations: Optional[List[str]] = None):
        super().__init__(message)
        self.violations = list(violations or [])


class CryptoError(SecureEnvError):
    def __init__(self, path: str | Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class EncryptionFailed(CryptoError):
    pass


class DecryptionFailed(CryptoError):
    # CBC carries no authentication tag, so a wrong password and a
    # corrupted artifact cannot be told apart.
    REASON = "Wrong password or corrupted file"

    def __init__(self, path: str | Path, reason: str = REASON):
        super().__init__(path, reason)


class BackendUnavailable(SecureEnvError):
    pass
