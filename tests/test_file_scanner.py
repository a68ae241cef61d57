"""Tests for file discovery."""

import os

import pytest

from secure_env.errors import DirectoryNotFound
from secure_env.file_scanner import FileScanner, decrypted_path, encrypted_path
from secure_env.patterns import PatternSet

from .conftest import PATTERNS, SENSITIVE_FILES


def parse(text):
    return PatternSet.parse(text.splitlines())


class TestDiscover:
    """Test selection of files to encrypt."""

    def test_nested_tree(self, project):
        selection = FileScanner(project).discover(parse(PATTERNS))

        selected = {c.source.relative_to(project).as_posix() for c in selection}
        assert selected == set(SENSITIVE_FILES)

    def test_sorted_order(self, project):
        selection = FileScanner(project).discover(parse(PATTERNS))

        sources = [c.source for c in selection]
        assert sources == sorted(sources)

    def test_enc_files_never_selected(self, tmp_path):
        (tmp_path / "local.env").write_text("x")
        (tmp_path / "local.env.enc").write_text("x")

        selection = FileScanner(tmp_path).discover(parse("*"))

        assert [c.source.name for c in selection] == ["local.env"]

    def test_target_exists_flag(self, tmp_path):
        (tmp_path / "a.env").write_text("a")
        (tmp_path / "b.env").write_text("b")
        (tmp_path / "b.env.enc").write_text("old")

        selection = FileScanner(tmp_path).discover(parse("*.env"))

        flags = {c.source.name: c.target_exists for c in selection}
        assert flags == {"a.env": False, "b.env": True}
        assert selection[1].target == tmp_path / "b.env.enc"

    def test_exclude_rules(self, tmp_path):
        for name in (".env.local", ".env.example", ".env.sample"):
            (tmp_path / name).write_text("x")

        selection = FileScanner(tmp_path).discover(parse(".env.*\n!.env.example\n!.env.sample\n"))

        assert [c.source.name for c in selection] == [".env.local"]

    def test_pattern_scenario(self, tmp_path):
        matching = ["credentials.json", "credentials.yaml", "test.env", "local.env", "server.pem", "client.pem"]
        other = ["config.json", "package.json", "server.crt", "notes.txt"]
        for name in matching + other:
            (tmp_path / name).write_text("test")

        without_crt = FileScanner(tmp_path).discover(parse(PATTERNS))
        with_crt = FileScanner(tmp_path).discover(parse(PATTERNS + "*.crt\n"))

        assert sorted(c.source.name for c in without_crt) == sorted(matching)
        assert len(with_crt) == 7

    def test_empty_directory(self, tmp_path):
        assert FileScanner(tmp_path).discover(parse(PATTERNS)) == ()

    def test_directories_not_selected(self, tmp_path):
        (tmp_path / "prod.env").mkdir()
        (tmp_path / "prod.env" / "inner.txt").write_text("x")

        assert FileScanner(tmp_path).discover(parse("*.env")) == ()

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_skipped(self, tmp_path):
        real = tmp_path / "real.env"
        real.write_text("x")
        (tmp_path / "link.env").symlink_to(real)
        (tmp_path / "loop").symlink_to(tmp_path, target_is_directory=True)

        selection = FileScanner(tmp_path).discover(parse("*.env"))

        assert [c.source.name for c in selection] == ["real.env"]

    def test_missing_root(self, tmp_path):
        with pytest.raises(DirectoryNotFound) as exc:
            FileScanner(tmp_path / "nonexistent").discover(parse(PATTERNS))
        assert "directory" in str(exc.value)
        assert "not found" in str(exc.value)

    def test_root_is_file(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(DirectoryNotFound):
            FileScanner(path).discover(parse(PATTERNS))


class TestDiscoverEncrypted:
    """Test selection of files to decrypt."""

    def test_all_enc_files(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "a.env.enc").write_text("x")
        (tmp_path / "sub" / "notes.txt.enc").write_text("x")
        (tmp_path / "a.env").write_text("plain")
        (tmp_path / "other.txt").write_text("x")

        selection = FileScanner(tmp_path).discover_encrypted()

        assert [c.source for c in selection] == [tmp_path / "a.env.enc", tmp_path / "sub" / "notes.txt.enc"]
        assert [c.target_exists for c in selection] == [True, False]
        assert selection[1].target == tmp_path / "sub" / "notes.txt"

    def test_missing_root(self, tmp_path):
        with pytest.raises(DirectoryNotFound):
            FileScanner(tmp_path / "nope").discover_encrypted()


class TestPathHelpers:
    def test_round_trip_names(self, tmp_path):
        path = tmp_path / ".env"
        assert encrypted_path(path).name == ".env.enc"
        assert decrypted_path(encrypted_path(path)) == path
