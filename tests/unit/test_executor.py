"""
Unit tests for the command executor.
"""

from queuectl.types.job import ExecutionResult
from queuectl.worker.executor import run_command


class TestRunCommand:
    """Tests for run_command."""

    async def test_success_captures_stdout(self):
        result = await run_command("echo hello")

        assert result.success is True
        assert result.exit_code == 0
        assert result.stdout == "hello\n"
        assert result.stderr == ""
        assert result.error is None

    async def test_nonzero_exit_is_failure(self):
        result = await run_command("echo boom >&2; exit 3")

        assert result.success is False
        assert result.exit_code == 3
        assert result.stderr == "boom\n"
        assert result.failure_reason == "boom"

    async def test_failure_without_stderr_reports_exit_code(self):
        result = await run_command("exit 2")

        assert result.success is False
        assert result.failure_reason == "Command exited with code 2"

    async def test_unknown_command_fails(self):
        result = await run_command("queuectl-no-such-command-xyz")

        assert result.success is False
        assert result.exit_code == 127

    async def test_timeout_kills_command(self):
        result = await run_command("sleep 5; echo never", timeout=0.2)

        assert result.success is False
        assert result.exit_code is None
        assert result.error == "Command timed out after 0.2s"
        assert "never" not in result.stdout
        assert result.duration_seconds < 5

    async def test_no_timeout_by_default(self):
        result = await run_command("sleep 0.2")

        assert result.success is True
        assert result.duration_seconds >= 0.2


class TestExecutionResult:
    """Tests for ExecutionResult.failure_reason."""

    def test_error_takes_precedence(self):
        result = ExecutionResult(success=False, exit_code=None, stderr="noise", error="spawn failed")
        assert result.failure_reason == "spawn failed"

    def test_stderr_is_stripped(self):
        result = ExecutionResult(success=False, exit_code=1, stderr="  bad input\n")
        assert result.failure_reason == "bad input"
