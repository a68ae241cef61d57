"""
Content transformation: password-based encryption and decryption.

This module performs the actual file transformations. It is
intentionally dumb about patterns and filesystem traversal.

Artifact layout (same as `openssl enc -aes-256-cbc -pbkdf2 -salt`):

    b"Salted__" | salt (8 bytes) | AES-256-CBC(PKCS#7 padded plaintext)

Key and IV come from one PBKDF2-HMAC-SHA256 derivation of 48 bytes:
the first 32 are the key, the last 16 the IV.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Tuple

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes
from Crypto.Util.Padding import pad, unpad

from .config import (
    AES_IV_SIZE,
    AES_KEY_SIZE,
    DECRYPT_TEMP_SUFFIX,
    ENCRYPTED_SUFFIX,
    SALT_MAGIC,
    SALT_SIZE,
    CryptoConfig,
)
from .errors import DecryptionFailed, EncryptionFailed
from .file_scanner import decrypted_path, encrypted_path

logger = logging.getLogger(__name__)

HEADER_SIZE = len(SALT_MAGIC) + SALT_SIZE

Password = bytes | bytearray


class Transformer:
    def __init__(self, config: CryptoConfig):
        self.config = config

    # ------------------------------------------------------------------
    # Byte-level API
    # ------------------------------------------------------------------

    def derive(self, password: Password, salt: bytes) -> Tuple[bytes, bytes]:
        """Return (key, iv) for a password and salt."""

        material = PBKDF2(
            bytes(password),
            salt,
            dkLen=AES_KEY_SIZE + AES_IV_SIZE,
            count=self.config.iterations,
            hmac_hash_module=SHA256,
        )
        return material[:AES_KEY_SIZE], material[AES_KEY_SIZE:]

    def encrypt_bytes(self, data: bytes, password: Password) -> bytes:
        salt = get_random_bytes(SALT_SIZE)
        key, iv = self.derive(password, salt)

        cipher = AES.new(key, AES.MODE_CBC, iv=iv)
        return SALT_MAGIC + salt + cipher.encrypt(pad(data, AES.block_size))

    def decrypt_bytes(self, data: bytes, password: Password) -> bytes:
        """
        Raises:
            ValueError: if the header, length or padding is invalid.
                A wrong password surfaces as a padding error.
        """

        if len(data) < HEADER_SIZE or not data.startswith(SALT_MAGIC):
            raise ValueError("missing salt header")

        salt = data[len(SALT_MAGIC):HEADER_SIZE]
        ciphertext = data[HEADER_SIZE:]
        if not ciphertext or len(ciphertext) % AES.block_size:
            raise ValueError("ciphertext length is not a multiple of the block size")

        key, iv = self.derive(password, salt)
        cipher = AES.new(key, AES.MODE_CBC, iv=iv)
        return unpad(cipher.decrypt(ciphertext), AES.block_size)

    # ------------------------------------------------------------------
    # File-level API
    # ------------------------------------------------------------------

    def encrypt_file(self, path: str | Path, password: Password) -> Path:
        """
        Encrypt `path` into its `.enc` sibling, replacing any existing one.

        The whole file is read and encrypted in memory before the output
        is opened. On any failure the `.enc` sibling is removed, including
        one left by an earlier run.

        Raises:
            EncryptionFailed
        """

        path = Path(path)
        output = encrypted_path(path)

        try:
            payload = self.encrypt_bytes(path.read_bytes(), password)
        except (OSError, ValueError) as e:
            _remove_quietly(output)
            raise EncryptionFailed(path, str(e)) from e

        try:
            output.write_bytes(payload)
        except OSError as e:
            _remove_quietly(output)
            raise EncryptionFailed(path, str(e)) from e

        logger.debug("Encrypted %s -> %s", path, output)
        return output

    def decrypt_file(self, path: str | Path, password: Password) -> Path:
        """
        Decrypt `path` (a `.enc` artifact) into the file it was made from.

        Plaintext goes to a temporary sibling first and is renamed over
        the target only once fully written, so an existing target is
        untouched on any failure.

        Raises:
            DecryptionFailed
        """

        path = Path(path)
        if not path.name.endswith(ENCRYPTED_SUFFIX):
            raise DecryptionFailed(path, f"not a {ENCRYPTED_SUFFIX} file")

        target = decrypted_path(path)
        temp = target.with_name(target.name + DECRYPT_TEMP_SUFFIX)

        try:
            data = path.read_bytes()
        except OSError as e:
            raise DecryptionFailed(path, str(e)) from e

        try:
            plaintext = self.decrypt_bytes(data, password)
        except ValueError as e:
            logger.debug("Decryption of %s failed: %s", path, e)
            raise DecryptionFailed(path) from e

        try:
            temp.write_bytes(plaintext)
            os.replace(temp, target)
        except OSError as e:
            _remove_quietly(temp)
            raise DecryptionFailed(path, str(e)) from e

        logger.debug("Decrypted %s -> %s", path, target)
        return target


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)
