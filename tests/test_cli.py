"""Tests for argument parsing and the CLI commands."""

from unittest.mock import MagicMock, patch

import pytest

import flutterfix
from args import parse_args
from cli_backup import run_backups, run_rollback
from cli_sync import run_sync
from constants import ExitCodes
from errors import ManifestError, ManualDecisionRequired, NoVersionSignal, RegistryUnavailable
from resolution.attempt import BackupStore
from resolution.orchestrator import ResolutionReport, ResolutionStatus
from versioning.models import DuplicatePrecedence
from versioning.semver import SemVer

from conftest import read_bytes


class TestParseArgs:
    """Subcommands and flags."""

    def test_sync_defaults(self):
        args = parse_args(["sync"])
        assert args.COMMAND == "sync"
        assert args.PROJECT_DIR == "."
        assert args.ALIGN_SDK is None
        assert args.USE_FVM is None
        assert not args.ERROR_ON_WARNINGS

    def test_sync_flags(self):
        args = parse_args([
            "sync", "-d", "app", "--loglevel", "debug", "--runtime", "3.5.0",
            "--duplicates", "FIRST", "--no-sdk-align", "--accept-upgrade", "--keep-backup",
        ])
        assert args.PROJECT_DIR == "app"
        assert args.LOG_LEVEL == "DEBUG"
        assert args.RUNTIME_VERSION == "3.5.0"
        assert args.DUPLICATE_PRECEDENCE == "first"
        assert args.ALIGN_SDK is False
        assert args.ACCEPT_UPGRADE and args.KEEP_BACKUP

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_rollback_id(self):
        assert parse_args(["rollback", "--id", "1700000000000"]).BACKUP_ID == "1700000000000"


def _sync_args(tmp_path, *extra):
    return parse_args(["sync", "-d", str(tmp_path), "--fvm", *extra])


@patch("cli_sync.ResolutionOrchestrator")
class TestRunSync:
    """Exit codes."""

    def test_success(self, mock_orchestrator, tmp_path, capsys):
        report = ResolutionReport(status=ResolutionStatus.RESOLVED, resolved={"http_parser": SemVer(4, 0, 2)})
        mock_orchestrator.return_value.sync.return_value = report
        assert run_sync(_sync_args(tmp_path)) is ExitCodes.SUCCESS
        assert "fixed http_parser -> ^4.0.2" in capsys.readouterr().out

        config = mock_orchestrator.call_args.args[0]
        assert config.resolution_command[0] == "fvm"

    def test_overrides_reach_config(self, mock_orchestrator, tmp_path):
        mock_orchestrator.return_value.sync.return_value = ResolutionReport()
        run_sync(_sync_args(tmp_path, "--runtime", "3.5.4", "--duplicates", "first", "--no-sdk-align"))
        config = mock_orchestrator.call_args.args[0]
        assert config.active_runtime_version == SemVer(3, 5, 4)
        assert config.duplicate_precedence is DuplicatePrecedence.FIRST
        assert config.align_sdk_constraint is False

    def test_warnings(self, mock_orchestrator, tmp_path):
        mock_orchestrator.return_value.sync.return_value = ResolutionReport(
            status=ResolutionStatus.PARTIAL_RESOLUTION)
        assert run_sync(_sync_args(tmp_path)) is ExitCodes.SUCCESS
        assert run_sync(_sync_args(tmp_path, "--error-on-warnings")) is ExitCodes.EXIT_WARNINGS

    @pytest.mark.parametrize("error, code", [
        (NoVersionSignal(), ExitCodes.NO_VERSION_SIGNAL),
        (ManualDecisionRequired(["http_parser"]), ExitCodes.MANUAL_DECISION),
        (ManifestError("pubspec.yaml", "file not found"), ExitCodes.FILE_ERROR),
        (RegistryUnavailable("flutter/flutter", "HTTP 403"), ExitCodes.CONNECTION_ERROR),
    ])
    def test_errors(self, mock_orchestrator, tmp_path, error, code):
        mock_orchestrator.return_value.sync.side_effect = error
        assert run_sync(_sync_args(tmp_path)) is code

    def test_invalid_config(self, mock_orchestrator, tmp_path):
        assert run_sync(_sync_args(tmp_path, "--runtime", "latest")) is ExitCodes.FILE_ERROR
        mock_orchestrator.assert_not_called()


class TestBackupCommands:
    """Listing and restoring backups."""

    def test_list_and_clear(self, tmp_path, project, capsys):
        BackupStore(str(tmp_path)).create(project, "Resolve dependency conflicts")
        assert run_backups(parse_args(["backups", "-d", str(tmp_path)])) is ExitCodes.SUCCESS
        assert "Resolve dependency conflicts" in capsys.readouterr().out

        assert run_backups(parse_args(["backups", "-d", str(tmp_path), "--clear"])) is ExitCodes.SUCCESS
        assert "Deleted 1 backup(s)" in capsys.readouterr().out

    def test_rollback_latest(self, tmp_path, project):
        before = read_bytes(project)
        BackupStore(str(tmp_path)).create(project, "sync")
        with open(project, "w", encoding="utf-8") as handle:
            handle.write("name: changed\n")
        assert run_rollback(parse_args(["rollback", "-d", str(tmp_path)])) is ExitCodes.SUCCESS
        assert read_bytes(project) == before

    def test_rollback_unknown_id(self, tmp_path):
        args = parse_args(["rollback", "-d", str(tmp_path), "--id", "42"])
        assert run_rollback(args) is ExitCodes.FILE_ERROR


class TestMain:

    @patch("flutterfix.configure_logging")
    def test_exit_code(self, _configure, tmp_path):
        handler = MagicMock(return_value=ExitCodes.MANUAL_DECISION)
        with patch.dict(flutterfix.COMMANDS, {"sync": handler}):
            with pytest.raises(SystemExit) as exc_info:
                flutterfix.main(["sync", "-d", str(tmp_path)])
        assert exc_info.value.code == ExitCodes.MANUAL_DECISION.value
        handler.assert_called_once()
