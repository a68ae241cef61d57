"""
Global configuration and settings handling.

This module is responsible for:
- Defining the cipher/KDF compatibility constants
- Defining global defaults (pattern file name, password policy)
- Loading the optional YAML settings file into an immutable ToolConfig

Nothing in this file should depend on:
- the filesystem walk
- pattern evaluation
- CLI arguments

If the encryption constants change, previously produced .enc artifacts
can no longer be decrypted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Final, Optional

import yaml

from .errors import ConfigError

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_SETTINGS_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "1.0.0"

# ---------------------------------------------------------------------------
# Encryption compatibility contract
# (same artifact layout as `openssl enc -aes-256-cbc -pbkdf2 -iter N -salt`)
# ---------------------------------------------------------------------------

ENCRYPTION_ALGORITHM: Final[str] = "aes-256-cbc"
PBKDF2_ITERATIONS: Final[int] = 100000
PBKDF2_DIGEST: Final[str] = "sha256"

AES_KEY_SIZE: Final[int] = 32
AES_IV_SIZE: Final[int] = 16
SALT_SIZE: Final[int] = 8
SALT_MAGIC: Final[bytes] = b"Salted__"

SUPPORTED_ALGORITHMS: Final[frozenset] = frozenset({ENCRYPTION_ALGORITHM})

# ---------------------------------------------------------------------------
# File naming
# ---------------------------------------------------------------------------

ENCRYPTED_SUFFIX: Final[str] = ".enc"
DECRYPT_TEMP_SUFFIX: Final[str] = ".tmp_decrypt"
PATTERNS_FILENAME: Final[str] = ".sensitive-file-patterns"

# ---------------------------------------------------------------------------
# Password policy defaults
# ---------------------------------------------------------------------------

MIN_PASSWORD_LENGTH: Final[int] = 12

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_CONFIG_PATH: Final[str] = "SECURE_ENV_CONFIG"
ENV_NO_COLOR: Final[str] = "NO_COLOR"

# ---------------------------------------------------------------------------
# Default pattern file written by `encrypt --init`
# ---------------------------------------------------------------------------

DEFAULT_PATTERNS: Final[str] = """\
# Sensitive file patterns for encryption
# One pattern per line, supports wildcards (*)
# Lines starting with # are comments
# Lines starting with ! exclude matching files
# Add patterns specific to your project

# Credentials files
credentials.*

# Environment files
*.env
.env
.env.*
# Exclude example files (uncomment if needed)
# !.env.example
# !.env.sample

# SSL/TLS certificates and keys
*.pem
*.key
*.crt

# SSH keys
id_rsa
id_ed25519
id_ecdsa
id_dsa

# Database configs
database.yml
database.json
db.conf

# AWS credentials
# credentials
# config

# API keys and tokens (be careful with wildcards)
# *apikey*
# *token*
# *secret*
"""


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CryptoConfig:
    algorithm: str = ENCRYPTION_ALGORITHM
    iterations: int = PBKDF2_ITERATIONS
    digest: str = PBKDF2_DIGEST


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: Optional[int] = MIN_PASSWORD_LENGTH
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_digit: bool = True
    require_special: bool = True


@dataclass(frozen=True)
class ToolConfig:
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    password: PasswordPolicy = field(default_factory=PasswordPolicy)
    patterns_file: str = PATTERNS_FILENAME

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "ToolConfig":
        """
        Load and validate a YAML settings file.

        Args:
            path: Path to the settings file

        Raises:
            ConfigError: if the file is missing or invalid

        Returns:
            ToolConfig
        """

        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid settings file {path}: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")

        return cls._from_dict(raw)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "ToolConfig":
        version = data.get("version", SUPPORTED_SETTINGS_VERSION)
        if version != SUPPORTED_SETTINGS_VERSION:
            raise ConfigError(f"Unsupported settings version: {version}")

        patterns_file = data.get("patterns_file", PATTERNS_FILENAME)
        if not isinstance(patterns_file, str) or not patterns_file.strip():
            raise ConfigError("'patterns_file' must be a non-empty string")

        return cls(
            crypto=cls._parse_crypto(_section(data, "encryption")),
            password=cls._parse_password(_section(data, "password")),
            patterns_file=patterns_file,
        )

    @staticmethod
    def _parse_crypto(data: Dict[str, Any]) -> CryptoConfig:
        algorithm = str(data.get("algorithm", ENCRYPTION_ALGORITHM)).lower()
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigError(f"Unsupported encryption algorithm: {algorithm}")

        iterations = data.get("pbkdf2_iterations", PBKDF2_ITERATIONS)
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations <= 0:
            raise ConfigError(
                f"'pbkdf2_iterations' must be a positive integer, got {iterations!r}"
            )

        return CryptoConfig(algorithm=algorithm, iterations=iterations)

    @staticmethod
    def _parse_password(data: Dict[str, Any]) -> PasswordPolicy:
        min_length = data.get("min_length", MIN_PASSWORD_LENGTH)
        if min_length is not None and (
            isinstance(min_length, bool) or not isinstance(min_length, int) or min_length < 0
        ):
            raise ConfigError(
                f"'min_length' must be a non-negative integer or null, got {min_length!r}"
            )

        return PasswordPolicy(
            min_length=min_length,
            require_lowercase=bool(data.get("require_lowercase", True)),
            require_uppercase=bool(data.get("require_uppercase", True)),
            require_digit=bool(data.get("require_digit", True)),
            require_special=bool(data.get("require_special", True)),
        )


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(path: Optional[str | Path] = None) -> ToolConfig:
    """
    Build the ToolConfig for this invocation.

    An explicit path wins; otherwise the path named by SECURE_ENV_CONFIG
    is used; otherwise built-in defaults apply.
    """

    path = path or os.getenv(ENV_CONFIG_PATH)
    if not path:
        return ToolConfig()
    return ToolConfig.load(path)


def color_enabled() -> bool:
    """Return False when the NO_COLOR convention is in effect."""
    return not os.getenv(ENV_NO_COLOR)
