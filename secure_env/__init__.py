"""
Secure Env Tools

Finds files matching sensitive-data patterns in a directory tree and
encrypts them into sibling .enc artifacts that can be committed to Git,
while the plaintext originals stay untracked.
"""

__version__ = "1.0.0"

from .config import ToolConfig, CryptoConfig, PasswordPolicy, load_config
from .errors import (
    SecureEnvError,
    ConfigError,
    DiscoveryError,
    DirectoryNotFound,
    ValidationError,
    CryptoError,
    EncryptionFailed,
    DecryptionFailed,
    BackendUnavailable,
)
from .patterns import PatternSet, PatternRule, glob_match
from .file_scanner import FileScanner, CandidateFile
from .password import validate, ValidationResult, Violation

__all__ = [
    "ToolConfig",
    "CryptoConfig",
    "PasswordPolicy",
    "load_config",
    "SecureEnvError",
    "ConfigError",
    "DiscoveryError",
    "DirectoryNotFound",
    "ValidationError",
    "CryptoError",
    "EncryptionFailed",
    "DecryptionFailed",
    "BackendUnavailable",
    "PatternSet",
    "PatternRule",
    "glob_match",
    "FileScanner",
    "CandidateFile",
    "validate",
    "ValidationResult",
    "Violation",
]
