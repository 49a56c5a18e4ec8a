"""
Utility classes and methods to print diagnostics in color on terminal/console.
"""

import sys
from dataclasses import dataclass
from typing import IO, Optional


@dataclass(frozen=True)
class TermColors:
    """basic ASCII color strings for terminals"""
    orange: str
    blue: str
    purple: str
    reset: str


# foreground colors in the terminal
fgcolor = TermColors("\033[33m", "\033[34m", "\033[35m", "\033[00m")


def print_color(msg: str, fg: Optional[str] = None, end: str = "\n",
                file: Optional[IO[str]] = None) -> None:
    """
    Display given string with a foreground color, if provided. Colors are skipped when the
    target is not a terminal so that redirected output does not have escape sequences.

    :param msg: the string to be displayed
    :param fg: the foreground color of the string
    :param end: the terminating string which is newline by default (or can be empty for example)
    :param file: the text-mode file object to use for writing (defaults to `sys.stdout`)
    """
    out = file or sys.stdout
    full_msg = f"{fg}{msg}{fgcolor.reset}" if fg and out.isatty() else msg
    # force flush the output if it doesn't end in a newline
    print(full_msg, end=end, file=out, flush=end != "\n")


def print_warn(msg: str, end: str = "\n", file: Optional[IO[str]] = None):
    """
    Display a warning string in purple foreground.

    :param msg: the string to be displayed
    :param end: the terminating string which is newline by default (or can be empty for example)
    :param file: the text-mode file object to use for writing (defaults to `sys.stderr`)
    """
    print_color(msg, fg=fgcolor.purple, end=end, file=file or sys.stderr)


def print_notice(msg: str, end: str = "\n", file: Optional[IO[str]] = None):
    """
    Display a string in orange foreground.

    :param msg: the string to be displayed
    :param end: the terminating string which is newline by default (or can be empty for example)
    :param file: the text-mode file object to use for writing (defaults to `sys.stderr`)
    """
    print_color(msg, fg=fgcolor.orange, end=end, file=file or sys.stderr)


def print_info(msg: str, end: str = "\n", file: Optional[IO[str]] = None):
    """
    Display an informational string in blue foreground.

    :param msg: the string to be displayed
    :param end: the terminating string which is newline by default (or can be empty for example)
    :param file: the text-mode file object to use for writing (defaults to `sys.stdout`)
    """
    print_color(msg, fg=fgcolor.blue, end=end, file=file)
