"""Tests for hook entry points."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nugate.validation.config import CONFIG_FILENAME, GateConfig
from nugate.validation.errors import HookInputError
from nugate.validation.hooks import (
    HookResponse,
    extract_file_path,
    parse_hook_input,
    post_write_hook,
    pre_write_hook,
    session_init_hook,
)
from nugate.validation.models import ToolOutput
from nugate.validation.tools import ToolRunner


def pre_payload(file_path: str, content: str) -> str:
    return json.dumps({"tool_input": {"file_path": file_path, "content": content}})


class TestHookInput:
    """Test payload decoding."""

    def test_parse_object(self) -> None:
        """JSON objects are accepted."""
        assert parse_hook_input('{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "not json", "[1, 2]"])
    def test_parse_rejects(self, text: str) -> None:
        """Anything else raises HookInputError."""
        with pytest.raises(HookInputError):
            parse_hook_input(text)

    def test_file_path_sources(self) -> None:
        """tool_input wins, tool_result is the fallback."""
        assert extract_file_path({"tool_input": {"file_path": "a.nu"}}) == "a.nu"
        assert extract_file_path({"tool_result": {"file_path": "b.nu"}}) == "b.nu"
        assert extract_file_path({"tool_input": "weird"}) is None

    def test_render(self) -> None:
        """Responses without output render as nothing."""
        assert HookResponse().render() == ""
        assert HookResponse(output={"action": "approve"}).render() == '{"action": "approve"}'


@patch("shutil.which", return_value=None)
class TestPreWriteHook:
    """Test pre_write_hook function."""

    def test_approve(self, mock_which: MagicMock) -> None:
        """Clean content is approved with exit 0."""
        response = pre_write_hook(pre_payload("x.nu", "def helper [] { 1 }\n"), GateConfig())
        assert response.exit_code == 0
        assert response.output == {"action": "approve"}

    def test_deny(self, mock_which: MagicMock) -> None:
        """Guideline violations deny with exit 2."""
        response = pre_write_hook(pre_payload("x.nu", "export def foo [x] { }\n"), GateConfig())

        assert response.exit_code == 2
        assert response.output is not None
        assert response.output["action"] == "deny"
        assert "Missing return type annotation for 'foo'" in response.output["message"]

    def test_non_target(self, mock_which: MagicMock) -> None:
        """Other files are approved."""
        response = pre_write_hook(pre_payload("x.py", "export def foo [x] { }"), GateConfig())
        assert response.output == {"action": "approve"}

    def test_malformed_input_approves(self, mock_which: MagicMock) -> None:
        """Bad JSON never blocks a write."""
        response = pre_write_hook("{oops", GateConfig())
        assert response.exit_code == 0
        assert response.output == {"action": "approve"}

    def test_missing_content_approves(self, mock_which: MagicMock) -> None:
        """Payloads without content approve."""
        response = pre_write_hook(json.dumps({"tool_input": {"file_path": "x.nu"}}))
        assert response.output == {"action": "approve"}

    def test_invalid_config_falls_back(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """A broken config file does not break the hook."""
        (tmp_path / CONFIG_FILENAME).write_text("timeout_seconds = = 1\n")
        target = str(tmp_path / "x.nu")

        response = pre_write_hook(pre_payload(target, "export def foo [x] { }\n"))

        assert response.exit_code == 2

    def test_config_file_applies(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """Rules disabled in the nearest config file are honoured."""
        (tmp_path / CONFIG_FILENAME).write_text(
            'disabled_rules = ["missing_return_type", "missing_param_type",'
            ' "missing_documentation"]\n'
        )
        target = str(tmp_path / "x.nu")

        response = pre_write_hook(pre_payload(target, "export def foo [x] { }\n"))

        assert response.exit_code == 0

    def test_config_file_log_level(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """log_level from the nearest config file sets the nugate logger level."""
        (tmp_path / CONFIG_FILENAME).write_text('log_level = "debug"\n')

        pre_write_hook(pre_payload(str(tmp_path / "x.nu"), "def helper [] { 1 }\n"))

        assert logging.getLogger("nugate").level == logging.DEBUG


@patch("shutil.which", return_value=None)
class TestPostWriteHook:
    """Test post_write_hook function."""

    def test_success_is_silent(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """Passing files exit 0 with no output."""
        script = tmp_path / "x.nu"
        script.write_text("let x = 1\n")

        response = post_write_hook(json.dumps({"tool_input": {"file_path": str(script)}}))

        assert response.exit_code == 0
        assert response.output is None
        assert response.render() == ""

    def test_verbose_success(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """Verbose mode announces the pass."""
        script = tmp_path / "x.nu"
        script.write_text("let x = 1\n")

        response = post_write_hook(
            json.dumps({"tool_result": {"file_path": str(script)}}),
            GateConfig(verbose=True),
        )

        assert response.exit_code == 0
        assert response.output == {
            "systemMessage": f"✅ Nushell validation passed for {script}"
        }

    def test_verbose_from_environment(
        self, mock_which: MagicMock, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """VERBOSE=1 turns on the pass message."""
        monkeypatch.setenv("VERBOSE", "1")
        script = tmp_path / "x.nu"
        script.write_text("let x = 1\n")

        response = post_write_hook(json.dumps({"tool_input": {"file_path": str(script)}}))

        assert response.output is not None

    def test_missing_file_fails(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """A target that vanished is reported."""
        gone = str(tmp_path / "gone.nu")

        response = post_write_hook(json.dumps({"tool_input": {"file_path": gone}}))

        assert response.exit_code == 2
        assert response.output is not None
        assert response.output["systemMessage"].startswith("❌ Nushell validation failed")

    def test_strict_failure(self, mock_which: MagicMock, tmp_path: Path) -> None:
        """Strict mode fails on heuristic findings."""
        script = tmp_path / "x.nu"
        script.write_text("export def foo [x] { }\n")

        response = post_write_hook(
            json.dumps({"tool_input": {"file_path": str(script)}}), strict=True
        )

        assert response.exit_code == 2

    def test_non_target_and_malformed(self, mock_which: MagicMock) -> None:
        """Nothing to validate means silent success."""
        assert post_write_hook(json.dumps({"tool_input": {"file_path": "a.md"}})).exit_code == 0
        assert post_write_hook("garbage").exit_code == 0
        assert post_write_hook("{}").output is None


class TestPostWriteHookWithTools:
    """Post-write with a failing syntax tool."""

    @patch("shutil.which", return_value="/usr/bin/tool")
    @patch("subprocess.run")
    def test_failure_message(
        self, mock_run: MagicMock, mock_which: MagicMock, tmp_path: Path, nu_syntax_error: str
    ) -> None:
        """Failing validation returns the report as systemMessage."""
        script = tmp_path / "x.nu"
        script.write_text("export def foo [x] {\n    let y = (1 + 2\n}\n")

        def fake_run(command: list[str], **kwargs: object) -> MagicMock:
            if command[0] == "nu" and "--commands" in command:
                return MagicMock(returncode=1, stdout="", stderr=nu_syntax_error)
            return MagicMock(returncode=0, stdout="", stderr="")

        mock_run.side_effect = fake_run

        response = post_write_hook(json.dumps({"tool_input": {"file_path": str(script)}}))

        assert response.exit_code == 2
        assert response.output is not None
        message = response.output["systemMessage"]
        assert "Critical issues:" in message
        assert "Line 3: Unclosed delimiter. [unclosed (]" in message
        assert message.endswith("Summary: 1 critical issue")


class TestSessionInitHook:
    """Test session_init_hook function."""

    def test_banner(self) -> None:
        """Session banner describes the toolchain and continues."""
        runner = MagicMock(spec=ToolRunner)
        runner.version.return_value = "0.101.0"
        runner.locate.return_value = "/usr/bin/x"
        runner.run_args.return_value = ToolOutput(
            tool="nu", command=["nu"], exit_code=0, stdout="0\n"
        )

        response = session_init_hook("", GateConfig(), runner)

        assert response.exit_code == 0
        assert response.output is not None
        assert response.output["continue"] is True
        assert response.output["systemMessage"].startswith(
            "Nushell Development Environment: Nushell v0.101.0 detected."
        )

    @patch("shutil.which", return_value=None)
    def test_without_nu(self, mock_which: MagicMock) -> None:
        """Missing Nushell still produces a banner."""
        response = session_init_hook('{"cwd": "/nonexistent"}')
        assert response.exit_code == 0
        assert response.output is not None
        assert "not found" in response.output["systemMessage"]
