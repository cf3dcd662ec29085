"""Tests for validation CLI commands."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nugate.validation.aggregator import aggregate_issues
from nugate.validation.cli import check_command, fix_command, gate_command, hook_command
from nugate.validation.config import CONFIG_FILENAME
from nugate.validation.fixer import FixResult
from nugate.validation.models import Issue, Severity

CLEAN = aggregate_issues("x.nu", [])
FAILED = aggregate_issues(
    "x.nu",
    [Issue(severity=Severity.CRITICAL, rule="syntax_error", message="Unclosed [paren]", line=3)],
)
UNFORMATTED = aggregate_issues(
    "x.nu",
    [
        Issue(
            severity=Severity.STYLE,
            rule="needs_formatting",
            message="File is not formatted",
            fixable=True,
        )
    ],
)


def write_script(tmp_path: Path, content: str = "let x = 1\n") -> Path:
    script = tmp_path / "x.nu"
    script.write_text(content)
    return script


class TestCheckCommand:
    """Test nugate check command."""

    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_check_passing(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Passing report returns 0."""
        mock_run.return_value = CLEAN
        assert check_command(write_script(tmp_path)) == 0

    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_check_failing(
        self, mock_run: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Failing report returns 1 and prints issues."""
        mock_run.return_value = FAILED

        exit_code = check_command(write_script(tmp_path))

        assert exit_code == 1
        out = capsys.readouterr().out
        assert "Nushell validation failed" in out
        assert "Unclosed [paren]" in out

    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_check_json(
        self, mock_run: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """JSON output is the full report."""
        mock_run.return_value = FAILED

        check_command(write_script(tmp_path), format="json")

        data = json.loads(capsys.readouterr().out)
        assert data["passed"] is False
        assert data["critical"][0]["line"] == 3
        assert data["summary"] == "1 critical issue"

    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_check_jsonl(
        self, mock_run: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """JSONL output is one line per issue plus a summary."""
        mock_run.return_value = FAILED

        check_command(write_script(tmp_path), format="jsonl")

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert lines[0]["bucket"] == "critical"
        assert lines[-1] == {
            "passed": False,
            "file": "x.nu",
            "summary": "1 critical issue",
            "total_issues": 1,
        }

    def test_bad_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Invalid configuration is reported and returns 1."""
        (tmp_path / CONFIG_FILENAME).write_text("max_line_length = -1\n")

        exit_code = check_command(write_script(tmp_path), format="json")

        assert exit_code == 1
        assert "error" in json.loads(capsys.readouterr().out)


class TestGateCommand:
    """Test nugate gate command."""

    @patch("shutil.which", return_value=None)
    def test_denied(
        self, mock_which: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Guideline violations return 1."""
        script = write_script(tmp_path, "export def foo [x] { }\n")

        exit_code = gate_command(script)

        assert exit_code == 1
        assert "guideline violations" in capsys.readouterr().out

    @patch("shutil.which", return_value=None)
    def test_approved_json(
        self, mock_which: MagicMock, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Approved decision serialises with its issues."""
        exit_code = gate_command(write_script(tmp_path), format="json")

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["action"] == "approve"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Unreadable files return 1."""
        assert gate_command(tmp_path / "gone.nu") == 1


class TestFixCommand:
    """Test nugate fix command."""

    @patch("nugate.validation.cli.apply_fix")
    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_fix_then_recheck(
        self, mock_run: MagicMock, mock_fix: MagicMock, tmp_path: Path
    ) -> None:
        """Formatter runs after the check and the file is checked again."""
        script = write_script(tmp_path)
        mock_run.side_effect = [UNFORMATTED, CLEAN]
        mock_fix.return_value = FixResult(
            success=True,
            file=str(script),
            fix_command=["nufmt", str(script)],
            message=f"Successfully formatted {script}",
            duration_ms=12,
        )

        exit_code = fix_command(script)

        assert exit_code == 0
        assert mock_run.call_count == 2
        mock_fix.assert_called_once()

    @patch("nugate.validation.cli.apply_fix")
    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_nothing_to_fix(
        self, mock_run: MagicMock, mock_fix: MagicMock, tmp_path: Path
    ) -> None:
        """No fixable issues means no formatter run."""
        mock_run.return_value = FAILED

        exit_code = fix_command(write_script(tmp_path))

        assert exit_code == 1
        mock_fix.assert_not_called()

    @patch("nugate.validation.cli.apply_fix")
    @patch("nugate.validation.orchestrator.PostWriteOrchestrator.run")
    def test_fix_failure(self, mock_run: MagicMock, mock_fix: MagicMock, tmp_path: Path) -> None:
        """A failed formatter run returns 1 without re-checking."""
        script = write_script(tmp_path)
        mock_run.return_value = UNFORMATTED
        mock_fix.return_value = FixResult(
            success=False,
            file=str(script),
            fix_command=None,
            message="nufmt not found in PATH; cannot apply fixes",
            duration_ms=0,
        )

        assert fix_command(script) == 1
        assert mock_run.call_count == 1


class TestHookCommand:
    """Test hook_command dispatch."""

    @patch("shutil.which", return_value=None)
    def test_pre_write_prints_json(
        self, mock_which: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Hook output goes to stdout as one JSON line."""
        payload = json.dumps({"tool_input": {"file_path": "x.nu", "content": "let x = 1\n"}})

        exit_code = hook_command("pre-write", payload)

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == {"action": "approve"}

    def test_post_write_silent(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Silent success prints nothing."""
        assert hook_command("post-write", "{}") == 0
        assert capsys.readouterr().out == ""

    def test_unknown_hook(self) -> None:
        """Unknown hook names are a programming error."""
        with pytest.raises(ValueError):
            hook_command("pre-commit", "{}")
