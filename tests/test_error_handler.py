"""Tests for the command error boundary."""

import click
import pytest

from containerguard.utils.error_handler import InputError, handle_exceptions
from containerguard.utils.exit_codes import ExitCodes


@pytest.fixture
def error_log(isolated_cwd):
    return isolated_cwd / ".containerguard" / "error.log"


class TestHandleExceptions:
    """handle_exceptions decorator."""

    def test_return_value_passes_through(self, isolated_cwd):
        @handle_exceptions
        def ok():
            return 42

        assert ok() == 42

    def test_click_exceptions_untouched(self, error_log):
        @handle_exceptions
        def usage():
            raise click.UsageError("bad flag")

        with pytest.raises(click.UsageError):
            usage()
        assert not error_log.exists()

    def test_input_error_exits_task_incomplete(self, error_log):
        """Test that ValueError subclasses map to exit code 3, not 1."""

        @handle_exceptions
        def lint():
            raise ValueError("Dockerfile too large")

        with pytest.raises(InputError) as exc_info:
            lint()
        assert exc_info.value.exit_code == ExitCodes.TASK_INCOMPLETE
        assert exc_info.value.message == "ValueError: Dockerfile too large"
        assert "cguard lint" in error_log.read_text(encoding="utf-8")

    def test_decode_error_is_an_input_error(self, error_log):
        @handle_exceptions
        def lint():
            b"\xff\xfe".decode("utf-8")

        with pytest.raises(InputError):
            lint()

    def test_unexpected_error_points_at_log(self, error_log):
        @handle_exceptions
        def audit():
            raise KeyError("services")

        with pytest.raises(click.ClickException) as exc_info:
            audit()
        assert not isinstance(exc_info.value, InputError)
        assert exc_info.value.exit_code == 1
        assert exc_info.value.message.startswith("KeyError:")
        assert "error.log" in exc_info.value.message
        assert "Traceback" in error_log.read_text(encoding="utf-8")

    def test_log_follows_root_option(self, isolated_cwd, error_log):
        """Test that error.log lands beside the config read from --root."""
        project = isolated_cwd / "project"

        @handle_exceptions
        def lint(root):
            raise ValueError("bad config")

        with pytest.raises(InputError):
            lint(root=str(project))
        assert (project / ".containerguard" / "error.log").exists()
        assert not error_log.exists()
