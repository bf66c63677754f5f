"""Tests for the output formatting system and logging setup.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb colour disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON and plain renderings of documents and tables
- RichHandler installation for the package logger
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from oauthdesk.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)
from oauthdesk import output as output_module


@pytest.fixture(autouse=True)
def _reset_global_output():
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("oauthdesk.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("oauthdesk.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello")
        captured = capfd.readouterr()
        assert captured.out == "hello\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("a diagnostic")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "a diagnostic" in captured.err

    def test_error_prefix(self, capfd, non_tty):
        OutputManager(no_color=True).error("broken")
        assert capfd.readouterr().err == "Error: broken\n"

    def test_markup_in_messages_is_not_interpreted(self, capfd, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager(format=OutputFormat.PLAIN).info("scope [bold]user[/bold]")
        assert "[bold]user[/bold]" in capfd.readouterr().err


class TestQuietVerbose:
    def test_quiet_suppresses_info_but_not_errors(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden too")
        mgr.suggest("hidden hint")
        mgr.error("shown as well")
        err = capfd.readouterr().err
        assert "hidden" not in err
        assert "shown as well" in err

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(no_color=True).debug("quiet debug")
        OutputManager(no_color=True, verbose=True).debug("loud debug")
        err = capfd.readouterr().err
        assert "quiet debug" not in err
        assert "[debug] loud debug" in err


class TestDataRendering:
    def test_json_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"access_token": "t", "expires_in": 1})
        assert json.loads(capfd.readouterr().out) == {"access_token": "t", "expires_in": 1}

    def test_json_reformats_json_text(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response('{"a":1}')
        assert capfd.readouterr().out == '{\n  "a": 1\n}\n'

    def test_plain_dict_is_tab_separated(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"token_type": "bearer", "scope": "user"})
        assert capfd.readouterr().out == "token_type\tbearer\nscope\tuser\n"

    def test_table_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(["name", "method"], [["github", "POST"]])
        assert json.loads(capfd.readouterr().out) == [{"name": "github", "method": "POST"}]

    def test_table_plain(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(["name", "method"], [["pingcode", "GET"]])
        assert capfd.readouterr().out == "name\tmethod\npingcode\tGET\n"


class TestConfigureLogging:
    def test_installs_single_rich_handler(self):
        mgr = OutputManager(no_color=True)
        configure_logging(mgr)
        logger = configure_logging(mgr)

        handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_verbose_enables_debug(self):
        logger = configure_logging(OutputManager(no_color=True, verbose=True))
        assert logger.level == logging.DEBUG
        assert logging.getLogger("oauthdesk.oauth.session").isEnabledFor(logging.DEBUG)

    def test_quiet_shows_errors_only(self):
        logger = configure_logging(OutputManager(no_color=True, quiet=True))
        assert logger.level == logging.ERROR


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_output_is_used_by_helpers(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("via helper")
        output_module.error("helper error")
        captured = capfd.readouterr()
        assert captured.out == "via helper\n"
        assert "helper error" in captured.err
