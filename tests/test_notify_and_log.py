"""Tests for user notices and the plain-text error log."""

import logging
import re
import subprocess
import sys
import time

import pytest

from auto_updater.logs.error_log import (
    ErrorLogFormatter,
    attach_error_log,
    open_error_log,
    severity_letter,
)
from auto_updater.notify.notifier import (
    COMPLETED_TITLE,
    NOTICE_COMPLETED,
    NOTICE_HISTORY_SIZE,
    NOTICE_WAITING,
    WAITING_TITLE,
    Notifier,
)
from auto_updater.update.update_config import ERROR_LOG_FILE_NAME

LINE_RE = re.compile(r"^\d{4}/\d{1,2}/\d{1,2} \d{1,2}:\d{1,2}:\d{1,2} [EW]: .+$")


def make_record(level, msg, created=None):
    record = logging.LogRecord("auto_updater.test", level, __file__, 1, msg, None, None)
    if created is not None:
        record.created = created
    return record


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------

class TestNotifier:
    def test_waiting_notice(self):
        n = Notifier(enable_desktop=False)
        notice = n.update_waiting("MyApp.exe")
        assert notice.kind == NOTICE_WAITING
        assert notice.title == WAITING_TITLE
        assert "MyApp.exe" in notice.message
        assert notice.delivered

    def test_completed_notice(self):
        n = Notifier(enable_desktop=False)
        notice = n.update_completed()
        assert notice.kind == NOTICE_COMPLETED
        assert notice.title == COMPLETED_TITLE

    def test_notices_recorded_in_order(self):
        n = Notifier(enable_desktop=False)
        n.update_waiting("a.exe")
        n.update_completed()
        assert [x.kind for x in n.notices] == [NOTICE_WAITING, NOTICE_COMPLETED]
        assert len(n.get_notices_by_kind(NOTICE_COMPLETED)) == 1

    def test_missing_desktop_tool_is_not_fatal(self, monkeypatch):
        def no_tool(*args, **kwargs):
            raise FileNotFoundError("notify-send")

        monkeypatch.setattr(subprocess, "Popen", no_tool)
        n = Notifier(enable_desktop=True)
        n._system = "Linux"
        notice = n.update_completed()
        assert notice.delivered is False

    def test_notice_history_is_bounded(self):
        n = Notifier(enable_desktop=False)
        for i in range(NOTICE_HISTORY_SIZE + 25):
            n.update_waiting(f"app{i}.exe")
        n.update_completed()

        assert len(n.notices) == NOTICE_HISTORY_SIZE
        assert n.notices[-1].kind == NOTICE_COMPLETED
        assert "app0.exe" not in n.notices[0].message

    def test_osascript_quotes_escaped(self, monkeypatch):
        launched = []
        monkeypatch.setattr(subprocess, "Popen", lambda args, **kwargs: launched.append(args))
        n = Notifier(enable_desktop=True)
        n._system = "Darwin"

        assert n.update_waiting('My"App\\beta.exe').delivered

        script = launched[0][2]
        assert 'Please close My\\"App\\\\beta.exe and wait' in script
        assert script.endswith('with title "Update available"')


# ---------------------------------------------------------------------------
# Error log format
# ---------------------------------------------------------------------------

class TestErrorLogFormatter:
    def test_severity_letters(self):
        assert severity_letter(logging.WARNING) == "W"
        assert severity_letter(logging.ERROR) == "E"
        assert severity_letter(logging.CRITICAL) == "E"

    def test_line_format(self):
        created = time.mktime((2024, 3, 7, 9, 5, 2, 0, 0, -1))
        line = ErrorLogFormatter().format(
            make_record(logging.WARNING, "Unable to open zip file x.zip", created),
        )
        assert line == "2024/3/7 9:5:2 W: Unable to open zip file x.zip"

    def test_critical_uses_e(self):
        line = ErrorLogFormatter().format(make_record(logging.CRITICAL, "No process name given"))
        assert LINE_RE.match(line)
        assert " E: No process name given" in line

    def test_exception_kept_on_one_line(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "t", logging.ERROR, __file__, 1, "cycle failed", None, sys.exc_info(),
            )
        line = ErrorLogFormatter().format(record)
        assert "\n" not in line
        assert line.endswith("(ValueError: boom)")


class TestErrorLogFile:
    def test_created_fresh_each_run(self, tmp_path):
        path = tmp_path / ERROR_LOG_FILE_NAME
        path.write_text("stale line from last run\n")

        handler = open_error_log(tmp_path)
        handler.close()

        assert path.read_text() == ""

    def test_only_warnings_and_above(self, tmp_path):
        log = logging.getLogger("auto_updater.test_error_log")
        log.setLevel(logging.DEBUG)
        log.propagate = False
        handler = open_error_log(tmp_path)
        attach_error_log(handler, log)
        try:
            log.info("routine")
            log.warning("File %s does not exist", "a.txt")
            log.critical("Config file doesn't exist")
        finally:
            log.removeHandler(handler)
            handler.close()

        lines = (tmp_path / ERROR_LOG_FILE_NAME).read_text().splitlines()
        assert len(lines) == 2
        assert all(LINE_RE.match(line) for line in lines)
        assert lines[0].endswith("W: File a.txt does not exist")
        assert lines[1].endswith("E: Config file doesn't exist")
