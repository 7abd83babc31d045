"""Integration tests for the mkg CLI."""

import json
from pathlib import Path

import pytest

from merkle_guard import CONFIG_FILE
from merkle_guard.cli import main
from merkle_guard.digests import sha256_hex
from merkle_guard.tree import MerkleTree
from tests.conftest import sha256_upper, write_items


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    """Run CLI commands from an empty temporary directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MKG_DIGEST_ALGORITHM", raising=False)
    monkeypatch.delenv("MKG_ENCODING", raising=False)
    return tmp_path


class TestCLIEntry:
    """Tests for the CLI entry point."""

    def test_version_flag(self, cli_runner):
        """--version shows version info."""
        result = cli_runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "mkg" in result.output
        assert "0.1.0" in result.output

    def test_help_flag(self, cli_runner):
        """--help shows usage info."""
        result = cli_runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Merkle Guard" in result.output
        assert "verify" in result.output


class TestInit:
    def test_init_writes_config(self, cli_runner, workdir: Path):
        result = cli_runner.invoke(main, ["init", "--digest", "blake2s"])

        assert result.exit_code == 0
        data = json.loads((workdir / CONFIG_FILE).read_text())
        assert data["digest_algorithm"] == "blake2s"

    def test_init_refuses_overwrite(self, cli_runner, workdir: Path):
        cli_runner.invoke(main, ["init"])

        result = cli_runner.invoke(main, ["init"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, cli_runner, workdir: Path):
        cli_runner.invoke(main, ["init"])

        result = cli_runner.invoke(main, ["init", "--force", "--digest", "sha3_256"])

        assert result.exit_code == 0
        assert json.loads((workdir / CONFIG_FILE).read_text())["digest_algorithm"] == "sha3_256"


class TestRootAndShow:
    def test_root_prints_hash(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["data1", "", "  data2  "])

        result = cli_runner.invoke(main, ["root", str(items)])

        expected = MerkleTree.from_items(["data1", "data2"], sha256_hex).compute_root_hash()
        assert result.exit_code == 0
        assert result.output.strip() == expected

    def test_root_single_item(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["data1"])

        result = cli_runner.invoke(main, ["root", str(items)])

        assert result.output.strip() == sha256_upper("data1")

    def test_root_uses_configured_algorithm(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["data1"])
        cli_runner.invoke(main, ["init", "--digest", "sha3_256"])

        result = cli_runner.invoke(main, ["root", str(items)])

        assert result.exit_code == 0
        assert result.output.strip() != sha256_upper("data1")

    def test_root_empty_file(self, cli_runner, workdir: Path):
        items = workdir / "empty.txt"
        items.write_text("\n\n")

        result = cli_runner.invoke(main, ["root", str(items)])

        assert result.exit_code == 0
        assert "No items" in result.output

    def test_root_missing_file(self, cli_runner, workdir: Path):
        result = cli_runner.invoke(main, ["root", "nope.txt"])

        assert result.exit_code == 2

    def test_show_renders_tree(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["alpha", "beta", "gamma"])

        result = cli_runner.invoke(main, ["show", str(items)])

        assert result.exit_code == 0
        assert "'alpha'" in result.output
        assert "'gamma'" in result.output
        assert "duplicate" in result.output
        assert "3 leaves, 3 internal nodes, height 2" in result.output


class TestVerifyAndDiff:
    def test_verify_match(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["a", "b", "c"])
        expected = MerkleTree.from_items(["a", "b", "c"], sha256_hex).compute_root_hash()

        result = cli_runner.invoke(main, ["verify", str(items), expected.lower()])

        assert result.exit_code == 0
        assert "OK" in result.output

    def test_verify_mismatch(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["a", "b", "c"])

        result = cli_runner.invoke(main, ["verify", str(items), "0" * 64])

        assert result.exit_code == 1
        assert "Mismatch" in result.output

    def test_verify_rejects_malformed_hash(self, cli_runner, workdir: Path):
        items = write_items(workdir / "items.txt", ["a"])

        result = cli_runner.invoke(main, ["verify", str(items), "xyz"])

        assert result.exit_code == 2

    def test_diff_in_sync(self, cli_runner, workdir: Path):
        old = write_items(workdir / "old.txt", ["a", "b"])
        new = write_items(workdir / "new.txt", ["a", "b"])

        result = cli_runner.invoke(main, ["diff", str(old), str(new)])

        assert result.exit_code == 0
        assert "In sync" in result.output

    def test_diff_reports_changes(self, cli_runner, workdir: Path):
        old = write_items(workdir / "old.txt", ["a", "b", "c"])
        new = write_items(workdir / "new.txt", ["a", "c", "d"])

        result = cli_runner.invoke(main, ["diff", str(old), str(new)])

        assert result.exit_code == 1
        assert "added" in result.output
        assert "removed" in result.output

    def test_diff_reports_reorder(self, cli_runner, workdir: Path):
        old = write_items(workdir / "old.txt", ["a", "b"])
        new = write_items(workdir / "new.txt", ["b", "a"])

        result = cli_runner.invoke(main, ["diff", str(old), str(new)])

        assert result.exit_code == 1
        assert "order differs" in result.output

    def test_diff_trailing_duplicate_not_in_sync(self, cli_runner, workdir: Path):
        """Files whose roots match because of a repeated last line still differ."""
        old = write_items(workdir / "old.txt", ["a", "b", "c"])
        new = write_items(workdir / "new.txt", ["a", "b", "c", "c"])

        result = cli_runner.invoke(main, ["diff", str(old), str(new)])

        assert result.exit_code == 1
        assert "In sync" not in result.output
        assert "added" in result.output
