"""Tests for single-file encryption and decryption."""

import shutil
import subprocess
from pathlib import Path

import pytest

from secure_env.config import PBKDF2_ITERATIONS, SALT_MAGIC, SALT_SIZE, CryptoConfig
from secure_env.errors import DecryptionFailed, EncryptionFailed
from secure_env.transformer import Transformer

from .conftest import FAST_CRYPTO, TEST_PASSWORD

PASSWORD = TEST_PASSWORD.encode()


@pytest.fixture
def transformer():
    return Transformer(FAST_CRYPTO)


class TestBytes:
    """Test the byte-level cipher wrapper."""

    def test_layout(self, transformer):
        blob = transformer.encrypt_bytes(b"secret data", PASSWORD)
        assert blob.startswith(SALT_MAGIC)
        ciphertext = blob[len(SALT_MAGIC) + SALT_SIZE:]
        assert len(ciphertext) == 16

    def test_random_salt(self, transformer):
        assert transformer.encrypt_bytes(b"x", PASSWORD) != transformer.encrypt_bytes(b"x", PASSWORD)

    def test_round_trip(self, transformer):
        for data in (b"", b"a", b"0123456789abcdef", bytes(range(256)) * 3):
            assert transformer.decrypt_bytes(transformer.encrypt_bytes(data, PASSWORD), PASSWORD) == data

    def test_bytearray_password(self, transformer):
        blob = transformer.encrypt_bytes(b"data", bytearray(PASSWORD))
        assert transformer.decrypt_bytes(blob, PASSWORD) == b"data"

    def test_missing_header(self, transformer):
        with pytest.raises(ValueError):
            transformer.decrypt_bytes(b"not an artifact at all!", PASSWORD)

    def test_truncated_ciphertext(self, transformer):
        blob = transformer.encrypt_bytes(b"some secret", PASSWORD)
        with pytest.raises(ValueError):
            transformer.decrypt_bytes(blob[:-3], PASSWORD)

    def test_iterations_are_part_of_the_key(self):
        salt = b"12345678"
        first = Transformer(CryptoConfig(iterations=1000)).derive(PASSWORD, salt)
        second = Transformer(CryptoConfig(iterations=1001)).derive(PASSWORD, salt)
        assert first != second
        assert [len(part) for part in first] == [32, 16]

    def test_default_iterations(self):
        assert Transformer(CryptoConfig()).config.iterations == PBKDF2_ITERATIONS == 100000


class TestEncryptFile:
    """Test encrypting files to .enc siblings."""

    def test_writes_sibling(self, transformer, tmp_path):
        source = tmp_path / ".env"
        source.write_bytes(b"DB_PASSWORD=secret\n")

        output = transformer.encrypt_file(source, PASSWORD)

        assert output == tmp_path / ".env.enc"
        assert output.read_bytes().startswith(SALT_MAGIC)
        assert source.read_bytes() == b"DB_PASSWORD=secret\n"

    def test_overwrites_existing(self, transformer, tmp_path):
        source = tmp_path / "a.env"
        source.write_bytes(b"new")
        (tmp_path / "a.env.enc").write_bytes(b"stale")

        output = transformer.encrypt_file(source, PASSWORD)

        assert output.read_bytes() != b"stale"

    def test_missing_source(self, transformer, tmp_path):
        with pytest.raises(EncryptionFailed):
            transformer.encrypt_file(tmp_path / "missing.env", PASSWORD)
        assert not (tmp_path / "missing.env.enc").exists()

    def test_unreadable_source_removes_stale_artifact(self, transformer, tmp_path, monkeypatch):
        source = tmp_path / "a.env"
        source.write_bytes(b"old secret")
        stale = transformer.encrypt_file(source, PASSWORD)
        assert stale.exists()

        def unreadable(self):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "read_bytes", unreadable)

        with pytest.raises(EncryptionFailed):
            transformer.encrypt_file(source, PASSWORD)

        assert not stale.exists()

    def test_failed_write_leaves_no_artifact(self, transformer, tmp_path, monkeypatch):
        source = tmp_path / "a.env"
        source.write_bytes(b"data")
        original_write = Path.write_bytes

        def broken_write(self, data):
            original_write(self, data[:5])
            raise OSError("disk full")

        monkeypatch.setattr(Path, "write_bytes", broken_write)

        with pytest.raises(EncryptionFailed) as exc:
            transformer.encrypt_file(source, PASSWORD)

        assert "disk full" in exc.value.reason
        assert not (tmp_path / "a.env.enc").exists()


class TestDecryptFile:
    """Test decrypting .enc artifacts."""

    def test_round_trip(self, transformer, tmp_path):
        source = tmp_path / "credentials.json"
        data = b'{"key": "value"}\n' * 100
        source.write_bytes(data)
        enc = transformer.encrypt_file(source, PASSWORD)
        source.unlink()

        restored = transformer.decrypt_file(enc, PASSWORD)

        assert restored == source
        assert restored.read_bytes() == data
        assert not (tmp_path / "credentials.json.tmp_decrypt").exists()

    def test_overwrites_existing_target(self, transformer, tmp_path):
        source = tmp_path / "a.env"
        source.write_bytes(b"original")
        enc = transformer.encrypt_file(source, PASSWORD)
        source.write_bytes(b"edited locally")

        transformer.decrypt_file(enc, PASSWORD)

        assert source.read_bytes() == b"original"

    def test_wrong_password_keeps_target(self, transformer, tmp_path):
        source = tmp_path / "a.env"
        source.write_bytes(b"original contents that must survive")
        enc = transformer.encrypt_file(source, PASSWORD)
        source.write_bytes(b"pre-existing plaintext")

        with pytest.raises(DecryptionFailed) as exc:
            transformer.decrypt_file(enc, b"WrongPass123!@#")

        assert exc.value.reason == "Wrong password or corrupted file"
        assert source.read_bytes() == b"pre-existing plaintext"
        assert not (tmp_path / "a.env.tmp_decrypt").exists()

    def test_corrupted_artifact(self, transformer, tmp_path):
        enc = tmp_path / "a.env.enc"
        enc.write_bytes(b"garbage that is not an artifact")

        with pytest.raises(DecryptionFailed) as exc:
            transformer.decrypt_file(enc, PASSWORD)

        assert exc.value.reason == "Wrong password or corrupted file"
        assert not (tmp_path / "a.env").exists()

    def test_failed_rename_keeps_target(self, transformer, tmp_path, monkeypatch):
        source = tmp_path / "a.env"
        source.write_bytes(b"original")
        enc = transformer.encrypt_file(source, PASSWORD)
        source.write_bytes(b"keep me")

        def broken_replace(src, dst):
            raise OSError("rename failed")

        monkeypatch.setattr("secure_env.transformer.os.replace", broken_replace)

        with pytest.raises(DecryptionFailed):
            transformer.decrypt_file(enc, PASSWORD)

        assert source.read_bytes() == b"keep me"
        assert not (tmp_path / "a.env.tmp_decrypt").exists()

    def test_rejects_non_enc(self, transformer, tmp_path):
        path = tmp_path / "a.env"
        path.write_bytes(b"x")
        with pytest.raises(DecryptionFailed):
            transformer.decrypt_file(path, PASSWORD)


@pytest.mark.skipif(shutil.which("openssl") is None, reason="openssl binary not available")
class TestOpenSSLCompatibility:
    """Artifacts interoperate with `openssl enc -aes-256-cbc -pbkdf2`."""

    def openssl(self, *args):
        return subprocess.run(
            ["openssl", "enc", "-aes-256-cbc", "-pbkdf2", "-iter", "1000", *args,
             "-pass", f"pass:{TEST_PASSWORD}"],
            capture_output=True,
            check=False,
        )

    def test_openssl_decrypts_ours(self, transformer, tmp_path):
        source = tmp_path / "a.env"
        source.write_bytes(b"API_KEY=xyz123\n")
        enc = transformer.encrypt_file(source, PASSWORD)

        result = self.openssl("-d", "-in", str(enc))

        if result.returncode != 0 and b"pbkdf2" in result.stderr.lower():
            pytest.skip("openssl without -pbkdf2 support")
        assert result.returncode == 0
        assert result.stdout == b"API_KEY=xyz123\n"

    def test_we_decrypt_openssl(self, transformer, tmp_path):
        plain = tmp_path / "plain.txt"
        plain.write_bytes(b"STRIPE_KEY=sk_test_123\n")
        enc = tmp_path / "b.env.enc"

        result = self.openssl("-salt", "-in", str(plain), "-out", str(enc))

        if result.returncode != 0:
            pytest.skip("openssl without -pbkdf2 support")
        restored = transformer.decrypt_file(enc, PASSWORD)
        assert restored.read_bytes() == b"STRIPE_KEY=sk_test_123\n"
