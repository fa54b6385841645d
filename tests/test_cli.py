"""Tests for the bulkget command line: flag handling, help, and setup errors.

Downloads are replaced with a recorder so that only the configuration handed
to the download session is checked.
"""

import io
import logging
import os

import aiohttp
import pytest
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from typer.testing import CliRunner

from bulkget import __main__ as main_module
from bulkget.cli import app as app_module
from bulkget.cli.app import app, build_log_handler
from bulkget.core.download_manager import DownloadManager
from bulkget.exceptions import DestinationError
from bulkget.models.config import USER_AGENTS
from bulkget.models.stats import DownloadStats

runner = CliRunner()


@pytest.fixture
def captured_runs(monkeypatch):
    """Records the configuration of every download session instead of running it."""
    runs = []

    async def fake_run_downloads(config):
        runs.append(config)
        return DownloadStats()

    monkeypatch.setattr(app_module, "run_downloads", fake_run_downloads)
    return runs


class TestListAgents:
    def test_prints_agents_to_stdout(self, captured_runs):
        result = runner.invoke(app, ["-list-agents"])
        assert result.exit_code == 0
        assert result.stdout == "\n".join(USER_AGENTS) + "\n"

    def test_overrides_everything_else(self, captured_runs, workdir):
        result = runner.invoke(
            app,
            ["-list-agents", "-c", "3", "-dest", "elsewhere", "http://h/file.txt"],
        )
        assert result.exit_code == 0
        assert result.stdout == "\n".join(USER_AGENTS) + "\n"
        assert captured_runs == []
        assert not (workdir / "elsewhere").exists()


class TestUsage:
    def test_no_sources_prints_usage(self, captured_runs):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Usage" in result.output
        assert captured_runs == []

    def test_flags_without_sources_print_usage(self, captured_runs):
        result = runner.invoke(app, ["-c", "4", "-over"])
        assert result.exit_code == 0
        assert "Usage" in result.output
        assert captured_runs == []

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "bulkget" in result.output


class TestOptions:
    def test_defaults(self, captured_runs, workdir):
        result = runner.invoke(app, ["http://h/a", "http://h/b"])
        assert result.exit_code == 0

        [config] = captured_runs
        assert config.connections == 1
        assert config.overwrite is False
        assert config.dest_dir == "."
        assert config.user_agent == ""
        assert config.wait == 0
        assert config.random_wait is False
        assert config.urls == ["http://h/a", "http://h/b"]

    def test_all_flags(self, captured_runs, workdir):
        (workdir / "one.txt").write_text("http://h/1\n")
        (workdir / "two.txt").write_text("http://h/2\n")
        expected_files = [os.path.abspath("one.txt"), os.path.abspath("two.txt")]

        result = runner.invoke(
            app,
            [
                "-c", "5",
                "-over",
                "-wait", "2",
                "-random-wait",
                "-custom-agent", "MyAgent/2.0",
                "-i", "one.txt",
                "-i", "two.txt",
                "http://h/3",
            ],
        )
        assert result.exit_code == 0

        [config] = captured_runs
        assert config.connections == 5
        assert config.overwrite is True
        assert config.wait == 2
        assert config.random_wait is True
        assert config.user_agent == "MyAgent/2.0"
        assert config.input_files == expected_files
        assert config.urls == ["http://h/3"]

    def test_input_files_alone_are_enough(self, captured_runs, workdir):
        (workdir / "urls.txt").write_text("http://h/1\n")
        expected = os.path.abspath("urls.txt")
        result = runner.invoke(app, ["-i", "urls.txt"])
        assert result.exit_code == 0
        assert captured_runs[0].input_files == [expected]

    def test_double_dash_spelling(self, captured_runs, workdir):
        result = runner.invoke(app, ["--over", "--wait", "1", "http://h/a"])
        assert result.exit_code == 0
        assert captured_runs[0].overwrite is True
        assert captured_runs[0].wait == 1

    @pytest.mark.parametrize("value", ["0", "-4"])
    def test_non_positive_connections_become_one(self, captured_runs, workdir, value):
        result = runner.invoke(app, ["-c", value, "http://h/a"])
        assert result.exit_code == 0
        assert captured_runs[0].connections == 1

    def test_negative_wait_becomes_zero(self, captured_runs, workdir):
        result = runner.invoke(app, ["-wait", "-3", "http://h/a"])
        assert result.exit_code == 0
        assert captured_runs[0].wait == 0


class TestUserAgent:
    def test_random_agent_comes_from_list(self, captured_runs, workdir):
        result = runner.invoke(app, ["-random-agent", "http://h/a"])
        assert result.exit_code == 0
        assert captured_runs[0].user_agent in USER_AGENTS

    def test_custom_agent_wins(self, captured_runs, workdir):
        result = runner.invoke(
            app, ["-random-agent", "-custom-agent", "Custom/1.0", "http://h/a"]
        )
        assert result.exit_code == 0
        assert captured_runs[0].user_agent == "Custom/1.0"


class TestDestination:
    def test_creates_and_enters_directory(self, captured_runs, workdir):
        target = workdir / "deep" / "er"
        result = runner.invoke(app, ["-dest", str(target), "http://h/a"])

        assert result.exit_code == 0
        assert target.is_dir()
        assert os.getcwd() == str(target.resolve())
        assert len(captured_runs) == 1

    def test_relative_input_file_survives_directory_change(self, monkeypatch, workdir):
        (workdir / "urls.txt").write_text("http://h/1\nhttp://h/2\n")
        dispatched = []

        class RecordingDownloader:
            async def download(self, url):
                dispatched.append((os.getcwd(), url))
                return True

        async def run_with_recorder(config):
            async with aiohttp.ClientSession() as session:
                manager = DownloadManager(config, session)
                manager.downloader = RecordingDownloader()
                return await manager.execute_downloads()

        monkeypatch.setattr(app_module, "run_downloads", run_with_recorder)

        result = runner.invoke(app, ["-dest", "out", "-i", "urls.txt", "http://h/3"])

        assert result.exit_code == 0
        out = str((workdir / "out").resolve())
        assert dispatched == [(out, "http://h/1"), (out, "http://h/2"), (out, "http://h/3")]

    def test_unusable_directory_exits_with_error(self, captured_runs, workdir):
        (workdir / "blocker").write_text("not a directory")
        result = runner.invoke(app, ["-dest", "blocker/sub", "http://h/a"])

        assert result.exit_code == 1
        assert captured_runs == []


class TestConfigFile:
    def test_file_values_are_defaults(self, captured_runs, workdir):
        config_file = workdir / "bulkget.ini"
        config_file.write_text(
            "[DEFAULT]\nconnections = 4\nwait = 3\nrandom_wait = true\n"
            "user_agent = FromFile/1.0\n"
        )

        result = runner.invoke(
            app, ["--config", str(config_file), "-c", "2", "http://h/a"]
        )
        assert result.exit_code == 0

        [config] = captured_runs
        assert config.connections == 2
        assert config.wait == 3
        assert config.random_wait is True
        assert config.user_agent == "FromFile/1.0"

    def test_missing_file_exits_with_error(self, captured_runs, workdir):
        result = runner.invoke(app, ["--config", "absent.ini", "http://h/a"])
        assert result.exit_code == 1
        assert captured_runs == []


class TestSummary:
    def test_verbose_prints_summary(self, monkeypatch, workdir):
        async def finished_run(config):
            stats = DownloadStats(urls_dispatched=3)
            stats.record_success(2048)
            stats.record_success(1024)
            stats.record_failure()
            return stats

        monkeypatch.setattr(app_module, "run_downloads", finished_run)

        result = runner.invoke(app, ["-v", "http://h/a"])

        assert result.exit_code == 0
        assert "Download Summary" in result.output
        assert "3.0 KiB" in result.output

    def test_no_summary_by_default(self, captured_runs, workdir):
        result = runner.invoke(app, ["http://h/a"])
        assert result.exit_code == 0
        assert "Download Summary" not in result.output


class TestLogHandler:
    def test_redirected_stderr_gets_one_line_per_message(self, monkeypatch):
        stream = io.StringIO()
        logger = logging.getLogger("bulkget.redirected")
        handler = build_log_handler(Console(file=stream, width=80, force_terminal=False))
        logger.addHandler(handler)
        monkeypatch.setattr(logger, "propagate", False)
        url = "http://example.com/" + "a" * 300 + "?q=[abc]"

        try:
            logger.error(f"[red]error downloading {escape(url)}: connection refused[/red]")
        finally:
            logger.removeHandler(handler)

        assert stream.getvalue() == f"error downloading {url}: connection refused\n"

    def test_terminal_keeps_rich_output(self):
        console = Console(file=io.StringIO(), force_terminal=True)
        assert isinstance(build_log_handler(console), RichHandler)


class TestInterrupt:
    def test_ctrl_c_exits_130(self, monkeypatch, workdir, caplog):
        async def interrupted_run(config):
            raise KeyboardInterrupt

        monkeypatch.setattr(app_module, "run_downloads", interrupted_run)

        with caplog.at_level(logging.WARNING):
            result = runner.invoke(app, ["http://h/a"])

        assert result.exit_code == 130
        assert "interrupted" in caplog.text


class TestMain:
    def test_bulkget_error_exits_1(self, monkeypatch):
        def failing():
            raise DestinationError("cannot enter out")

        monkeypatch.setattr(main_module, "app", failing)

        with pytest.raises(SystemExit) as exc_info:
            main_module.main()

        assert exc_info.value.code == 1
