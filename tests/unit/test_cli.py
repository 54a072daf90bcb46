"""
Module 09C - CLI Unit Tests
Tests for idreg_cli/main.py and its commands

Each invocation builds a fresh engine from config, so state is carried
between calls only by the data directory (records, local ledger file
and directory snapshot store).
"""
import json
import os

import pytest

from idreg_cli.common import EXIT_REJECTED, EXIT_RUNTIME_ERROR, EXIT_SUCCESS
from idreg_cli.main import create_parser, main


ALICE_ARGS = [
    "--national-id", "3201012345670001",
    "--name", "Alice Wijaya",
    "--birth-date", "19900101",
    "--key", "alice-secret",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith("IDREG_") or name.startswith("PINATA_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("IDREG_TREE_DEPTH", "4")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def run(tmp_path, capsys):
    """Run the CLI against a temp data dir; returns (exit code, stdout, stderr)."""
    data_dir = str(tmp_path / "registry")

    def _run(*argv):
        code = main(["--data-dir", data_dir, *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


def run_json(run, *argv):
    code, out, _ = run(*argv, "--json")
    return code, json.loads(out)


class TestParser:
    """Tests for argument parsing."""

    def test_identity_options_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["submit", "alice", "--name", "Alice"])

    def test_snapshot_action_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["snapshot"])

    def test_no_command(self, capsys):
        assert main([]) == EXIT_RUNTIME_ERROR


class TestLifecycle:
    """submit -> approve -> verify -> revoke across separate invocations."""

    def test_full_lifecycle(self, run):
        code, data = run_json(run, "submit", "alice", *ALICE_ARGS)
        assert code == EXIT_SUCCESS
        assert data["record"]["status"] == "pending"

        code, data = run_json(run, "approve", "alice")
        assert code == EXIT_SUCCESS
        assert data["record"]["leaf_index"] == 0
        assert data["publish"]["tx_ref"].startswith("0x")

        code, data = run_json(run, "verify", "alice", *ALICE_ARGS)
        assert code == EXIT_SUCCESS
        assert data["status"] == "verified"
        assert data["reloaded"] is False

        code, data = run_json(run, "status", "alice")
        assert data["record"]["status"] == "verified"
        assert data["record"]["approved"] is True

        code, data = run_json(run, "revoke", "alice", "--reason", "lost key")
        assert code == EXIT_SUCCESS
        assert data["record"]["status"] == "revoked"

    def test_plain_output(self, run):
        code, out, _ = run("submit", "alice", *ALICE_ARGS)
        assert code == EXIT_SUCCESS
        assert "status: pending" in out
        assert "alice-secret" not in out

    def test_pending(self, run):
        run("submit", "alice", *ALICE_ARGS)
        code, data = run_json(run, "pending")
        assert data["count"] == 1
        assert data["records"][0]["subject_id"] == "alice"

        run("approve", "alice")
        code, out, _ = run("pending")
        assert "No pending records" in out


class TestExitCodes:
    """Rejected requests exit with 2, environment failures with 1."""

    def test_not_found(self, run):
        code, out, err = run("approve", "nobody")
        assert code == EXIT_REJECTED
        assert "NOT_FOUND" in err

    def test_not_found_json(self, run):
        code, out, _ = run("status", "nobody", "--json")
        assert code == EXIT_REJECTED
        assert json.loads(out)["error"]["code"] == "NOT_FOUND"

    def test_identity_mismatch(self, run):
        run("submit", "alice", *ALICE_ARGS)
        run("approve", "alice")
        wrong = [*ALICE_ARGS[:-1], "wrong-secret"]
        code, _, err = run("verify", "alice", *wrong)
        assert code == EXIT_REJECTED
        assert "IDENTITY_MISMATCH" in err

    def test_encoding_error(self, run):
        args = ["--national-id", "12AB", *ALICE_ARGS[2:]]
        code, _, err = run("submit", "alice", *args)
        assert code == EXIT_REJECTED
        assert "ENCODING_ERROR" in err

    def test_unknown_backend_is_runtime_error(self, run, monkeypatch):
        monkeypatch.setenv("IDREG_LEDGER_BACKEND", "carrier-pigeon")
        code, _, err = run("info")
        assert code == EXIT_RUNTIME_ERROR
        assert "Unknown ledger backend" in err

    def test_reset_requires_confirmation(self, run):
        run("submit", "alice", *ALICE_ARGS)
        assert run("reset")[0] == EXIT_RUNTIME_ERROR
        assert run("status", "alice")[0] == EXIT_SUCCESS

        assert run("reset", "--yes")[0] == EXIT_SUCCESS
        assert run("status", "alice")[0] == EXIT_REJECTED


class TestRegistryCommands:
    """Tests for info, rebuild, reload and snapshot commands."""

    def test_info(self, run):
        run("submit", "alice", *ALICE_ARGS)
        run("approve", "alice")

        code, data = run_json(run, "info")
        assert code == EXIT_SUCCESS
        assert data["info"]["leaf_count"] == 1
        assert data["info"]["depth"] == 4
        assert data["info"]["in_sync"] is True

    def test_rebuild_is_idempotent(self, run):
        run("submit", "alice", *ALICE_ARGS)
        _, approved = run_json(run, "approve", "alice")

        code, data = run_json(run, "rebuild")
        assert code == EXIT_SUCCESS
        assert data["root"] == approved["publish"]["root"]

    def test_snapshot_save_show_reload(self, run):
        run("submit", "alice", *ALICE_ARGS)
        _, approved = run_json(run, "approve", "alice")
        root = approved["publish"]["root"]

        _, saved = run_json(run, "snapshot", "save")
        _, shown = run_json(run, "snapshot", "show", saved["snapshot_id"])
        assert shown["root"] == root
        assert shown["leaf_count"] == 1

        _, reloaded = run_json(run, "reload")
        assert reloaded["root"] == root
        assert reloaded["record_count"] == 1

    def test_reload_after_reset(self, run):
        run("submit", "alice", *ALICE_ARGS)
        run("approve", "alice")
        run("reset", "--yes")

        code, _ = run_json(run, "reload")
        assert code == EXIT_SUCCESS
        code, data = run_json(run, "verify", "alice", *ALICE_ARGS)
        assert code == EXIT_SUCCESS
        assert data["status"] == "verified"


class TestConfigCommand:
    """Tests for the config command."""

    def test_init_creates_template(self, run, tmp_path):
        path = tmp_path / "custom.json"
        code, out, _ = run("config", "--init", "--path", str(path))

        assert code == EXIT_SUCCESS
        assert json.loads(path.read_text())["registry"]["tree_depth"] == 16

        code, _, err = run("config", "--init", "--path", str(path))
        assert code == EXIT_RUNTIME_ERROR
        assert "already exists" in err

    def test_show_masks_secrets(self, run, monkeypatch):
        monkeypatch.setenv("PINATA_JWT", "very-secret")
        code, out, _ = run("config", "--show")

        assert code == EXIT_SUCCESS
        data = json.loads(out)
        assert data["snapshot_store"]["jwt"] == "***"
        assert data["registry"]["tree_depth"] == 4
