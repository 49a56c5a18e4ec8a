"""Unit tests for `altquery/query.py`"""

import os
import subprocess
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest
from typeguard import TypeCheckError

from altquery.config import Consts
from altquery.model import Alternative
from altquery.parser import MalformedLineError, UnexpectedKeyError
from altquery.query import (QueryCancelledError, QueryError, _Watchdog,
                            query_alternatives)

_QUERY_OUTPUT = """Name: editor
Link: /usr/bin/editor
Slaves:
 editor.1.gz /usr/share/man/man1/editor.1.gz
Status: auto
Best: /usr/bin/vim.basic
Value: /usr/bin/vim.basic

Alternative: /bin/nano
Priority: 40
Slaves:
 editor.1.gz /usr/share/man/man1/nano.1.gz

Alternative: /usr/bin/vim.basic
Priority: 50
Slaves:
 editor.1.gz /usr/share/man/man1/vim.1.gz
"""


def _write_command(tmp_path: Path, body: str) -> str:
    """write a fake `update-alternatives` shell script having the given body"""
    script = tmp_path / "update-alternatives"
    script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    script.chmod(0o755)
    return str(script)


def _use_command(cmd: str):  # type: ignore
    """patch the environment to use the given `update-alternatives` executable"""
    return patch.dict(os.environ, {Consts.update_alternatives_env_var(): cmd})


def test_query_success(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    """check successful query passing the expected arguments to the command"""
    cmd = _write_command(tmp_path, f"""[ "$1" = "--query" -a "$2" = "editor" ] || exit 3
cat << 'EOF'
{_QUERY_OUTPUT}EOF""")
    with _use_command(cmd):
        result = query_alternatives("editor")
    assert result.name == "editor"
    assert result.link == "/usr/bin/editor"
    assert result.slaves == {"editor.1.gz": "/usr/share/man/man1/editor.1.gz"}
    assert result.is_auto
    assert result.alternatives == (
        Alternative("/bin/nano", 40, {"editor.1.gz": "/usr/share/man/man1/nano.1.gz"}),
        Alternative("/usr/bin/vim.basic", 50, {"editor.1.gz": "/usr/share/man/man1/vim.1.gz"}))
    assert result.selected == result.alternatives[1]
    assert capsys.readouterr().err == ""
    # arguments should be passed as is
    with _use_command(cmd):
        with pytest.raises(QueryError) as cm:
            query_alternatives("java")
    assert cm.value.exit_status == 3


def test_query_stderr_warning(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    """standard error of a successful command should be shown as a warning"""
    cmd = _write_command(tmp_path, """echo "Name: $2"
echo "some warning" >&2""")
    with _use_command(cmd):
        result = query_alternatives("java")
    assert result.name == "java"
    assert result.alternatives == ()
    assert "some warning" in capsys.readouterr().err


def test_query_failure(tmp_path: Path):
    """non-zero exit of the command should raise :class:`QueryError` with its standard error"""
    cmd = _write_command(
        tmp_path, """echo "update-alternatives: error: no alternatives for $2" >&2
exit 2""")
    with _use_command(cmd):
        with pytest.raises(QueryError) as cm:
            query_alternatives("nothing")
    assert cm.value.exit_status == 2
    assert cm.value.message == "update-alternatives: error: no alternatives for nothing"
    assert str(cm.value) == \
        "error querying alternatives: update-alternatives: error: no alternatives for nothing"


def test_query_failure_supersedes_parse(tmp_path: Path):
    """:class:`QueryError` should take precedence over the parse result or parse error"""
    cmd = _write_command(tmp_path, "echo 'not a valid line'\nexit 1")
    with _use_command(cmd):
        with pytest.raises(QueryError) as cm:
            query_alternatives("java")
    assert cm.value.exit_status == 1
    assert "exited with status 1" in cm.value.message
    cmd = _write_command(tmp_path, f"""cat << 'EOF'
{_QUERY_OUTPUT}EOF
exit 4""")
    with _use_command(cmd):
        with pytest.raises(QueryError) as cm:
            query_alternatives("editor")
    assert cm.value.exit_status == 4


def test_query_parse_error(tmp_path: Path):
    """parse errors should be raised as is when the command succeeds"""
    cmd = _write_command(tmp_path, "echo 'not a valid line'")
    with _use_command(cmd):
        with pytest.raises(MalformedLineError):
            query_alternatives("java")
    cmd = _write_command(tmp_path, "printf 'Name: java\\nPriority: 1\\n'")
    with _use_command(cmd):
        with pytest.raises(UnexpectedKeyError):
            query_alternatives("java")
        # unknown keys can be skipped
        cmd = _write_command(tmp_path, "printf 'Name: java\\nFuture: field\\n'")
        assert query_alternatives("java", strict=False).name == "java"


def test_query_early_parse_failure(tmp_path: Path):
    """a parse failure at the start of a large output should not block on the command"""
    cmd = _write_command(tmp_path, "echo 'bad line'\nyes 'Key: value' | head -n 200000")
    with _use_command(cmd):
        # `head` gets SIGPIPE once the output is closed, so the command fails
        with pytest.raises(QueryError) as cm:
            query_alternatives("java", timeout=30.0)
    assert cm.value.exit_status != 0


def test_query_failure_non_utf8_stderr(tmp_path: Path):
    """standard error that is not valid UTF-8 should still give :class:`QueryError`"""
    cmd = _write_command(tmp_path, "printf 'erreur: \\351chec\\n' >&2\nexit 2")
    with _use_command(cmd):
        with pytest.raises(QueryError) as cm:
            query_alternatives("java")
    assert cm.value.exit_status == 2
    assert cm.value.message.startswith("erreur: ")
    assert cm.value.message.endswith("chec")


def test_watchdog_completed_process():
    """an expired timeout or set cancel event should not mark a completed process as killed"""
    with subprocess.Popen(["/bin/true"]) as proc:
        proc.wait()
        cancel = threading.Event()
        cancel.set()
        with _Watchdog(proc, 0.0, cancel) as watchdog:
            time.sleep(Consts.watchdog_poll_interval() * 4)
        assert watchdog.reason is None
        assert proc.returncode == 0
        # nothing changes once the watchdog is stopped
        watchdog = _Watchdog(proc, 0.0, None)
        watchdog.stop()
        assert watchdog.reason is None


def test_query_timeout(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    """a command that does not finish in time should be killed"""
    cmd = _write_command(tmp_path, "echo 'Name: java'\nexec sleep 30")
    start = time.monotonic()
    with _use_command(cmd):
        with pytest.raises(QueryCancelledError) as cm:
            query_alternatives("java", timeout=0.5)
    assert time.monotonic() - start < 20
    assert cm.value.reason == "timed out"
    assert "did not complete" in capsys.readouterr().err


def test_query_cancel(tmp_path: Path):
    """setting the `cancel` event should kill the command"""
    marker = tmp_path / "started"
    cmd = _write_command(tmp_path, f"touch '{marker}'\necho 'Name: java'\nexec sleep 30")
    cancel = threading.Event()
    timer = threading.Timer(0.5, cancel.set)
    timer.start()
    try:
        with _use_command(cmd):
            with pytest.raises(QueryCancelledError) as cm:
                query_alternatives("java", cancel=cancel)
    finally:
        timer.cancel()
    assert cm.value.reason == "cancelled"
    assert str(cm.value) == "alternatives query cancelled"
    assert marker.exists()
    # an already cancelled query should not run the command at all
    marker.unlink()
    with _use_command(cmd):
        with pytest.raises(QueryCancelledError):
            query_alternatives("java", cancel=cancel)
    assert not marker.exists()


def test_query_not_cancelled(tmp_path: Path):
    """a query completing before the timeout or cancellation should succeed"""
    cmd = _write_command(tmp_path, "echo 'Name: java'")
    with _use_command(cmd):
        result = query_alternatives("java", timeout=30.0, cancel=threading.Event())
    assert result.name == "java"


def test_query_bad_command(tmp_path: Path):
    """failure to find or run the command should raise the underlying error"""
    not_exec = tmp_path / "update-alternatives"
    not_exec.write_text("#!/bin/sh\n", encoding="utf-8")
    not_exec.chmod(0o644)
    with _use_command(str(not_exec)):
        with pytest.raises(PermissionError):
            query_alternatives("java")
    with _use_command(str(tmp_path)):
        # a directory passes the access check but cannot be executed
        with pytest.raises(OSError):
            query_alternatives("java")
    with pytest.raises(TypeCheckError):
        query_alternatives(["java"])  # type: ignore
