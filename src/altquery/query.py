"""
Run `update-alternatives --query` for an alternatives group and parse its output.
"""

import subprocess
import tempfile
import threading
import time
from typing import Optional, Union

from typeguard import typechecked

from .config import Consts
from .env import get_update_alternatives_command
from .model import Alternatives
from .parser import AlternativesParser, ParseError
from .print import print_info, print_notice, print_warn


class QueryError(Exception):
    """Raised when `update-alternatives --query` exits with a non-zero status."""

    def __init__(self, exit_status: int, message: str):
        super().__init__(f"error querying alternatives: {message}")
        self.exit_status = exit_status
        self.message = message


class QueryCancelledError(Exception):
    """Raised when a query was cancelled by the caller or did not complete in time."""

    def __init__(self, reason: str):
        super().__init__(f"alternatives query {reason}")
        self.reason = reason


class _Watchdog:
    """
    Kill a running process when the `cancel` event gets set or when `timeout` expires.
    Nothing is watched if neither is given.

    Usage:
        with _Watchdog(proc, timeout, cancel) as watchdog:
          <read from proc>
        if watchdog.reason:
          <proc was killed>
    """

    def __init__(self, proc: subprocess.Popen, timeout: Optional[float],
                 cancel: Optional[threading.Event]):
        self._proc = proc
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._cancel = cancel
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        # set to "cancelled" or "timed out" if the process was killed
        self.reason: Optional[str] = None

    def __enter__(self) -> "_Watchdog":
        if self._deadline is not None or self._cancel is not None:
            self._thread = threading.Thread(target=self._watch, daemon=True)
            self._thread.start()
        return self

    def __exit__(self, ex_type, ex_value, ex_traceback):  # type: ignore
        self.stop()

    def stop(self) -> None:
        """stop watching; `reason` does not change after this returns"""
        with self._lock:
            self._done.set()
        if self._thread:
            self._thread.join()

    def _watch(self) -> None:
        poll = Consts.watchdog_poll_interval()
        while not self._done.wait(poll):
            if self._cancel is not None and self._cancel.is_set():
                reason = "cancelled"
            elif self._deadline is not None and time.monotonic() >= self._deadline:
                reason = "timed out"
            else:
                continue
            with self._lock:
                # a process that already completed is not reported as killed
                if not self._done.is_set() and self._proc.poll() is None:
                    self.reason = reason
                    self._proc.kill()
            return


@typechecked
def query_alternatives(name: str, timeout: Optional[float] = None,
                       cancel: Optional[threading.Event] = None,
                       strict: bool = True) -> Alternatives:
    """
    Execute `update-alternatives --query <name>` and parse its output while it is produced.

    A non-zero exit status of the command takes precedence over any parse result or parse error.
    Cancellation or timeout takes precedence over both since the process gets killed.

    :param name: name of the alternatives group e.g. "java"
    :param timeout: maximum time in seconds to wait for the command (None for no limit)
    :param cancel: an optional event which when set kills the command and cancels the query
    :param strict: whether unknown keys in the output should fail the parse
                   (see :class:`AlternativesParser`)
    :return: the parsed :class:`Alternatives` for the group
    """
    if cancel is not None and cancel.is_set():
        raise QueryCancelledError("cancelled")
    cmd = [get_update_alternatives_command(), Consts.query_flag(), name]
    result: Optional[Alternatives] = None
    parse_err: Optional[Union[ParseError, UnicodeDecodeError]] = None
    # stderr goes to a file so that it can never block the process while stdout is being read
    with tempfile.TemporaryFile() as stderr_fd:
        with subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=stderr_fd) as proc:
            assert proc.stdout is not None
            with _Watchdog(proc, timeout, cancel) as watchdog:
                try:
                    result = AlternativesParser(proc.stdout, strict=strict).parse()
                except (ParseError, UnicodeDecodeError) as err:
                    parse_err = err
                finally:
                    # unblock the process if parse ended before the end of output
                    proc.stdout.close()
                returncode = proc.wait()
                watchdog.stop()
        stderr_fd.seek(0)
        error_text = stderr_fd.read().decode("utf-8", errors="replace").strip()

    if watchdog.reason:
        if watchdog.reason == "cancelled":
            print_info(f"Cancelled query for alternatives '{name}'")
        else:
            print_notice(f"Query for alternatives '{name}' did not complete in {timeout} seconds")
        raise QueryCancelledError(watchdog.reason)
    if returncode != 0:
        raise QueryError(returncode,
                         error_text or f"'{' '.join(cmd)}' exited with status {returncode}")
    if error_text:
        print_warn(error_text)
    if parse_err:
        raise parse_err
    assert result is not None
    return result
