"""Tests for deployrun.cli.main."""

from deployrun import __version__
from deployrun.cli.main import app


class TestCallback:
    """Test the global options."""

    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"deployrun version {__version__}" in result.output

    def test_no_args_shows_help(self, runner):
        result = runner.invoke(app, [])
        assert "Usage" in result.output
        for command in ("serve", "deploy", "latest", "history", "show"):
            assert command in result.output

    def test_unknown_log_level(self, runner, config_file):
        result = runner.invoke(
            app, ["--log-level", "verbose", "history", "--config", str(config_file())]
        )
        assert result.exit_code == 2
        assert "unknown log level" in result.output

    def test_log_level_alias(self, runner, config_file):
        result = runner.invoke(app, ["--log-level", "warn", "history", "-c", str(config_file())])
        assert result.exit_code == 0
