"""
Parser for the output of `update-alternatives --query <name>`.

The output has a header with the group's fields followed by zero or more blank line separated
`Alternative:` blocks, for example:

    Name: java
    Link: /usr/bin/java
    Slaves:
     java.1.gz /usr/share/man/man1/java.1.gz
    Status: auto
    Best: /usr/lib/jvm/java-21-openjdk-amd64/bin/java
    Value: /usr/lib/jvm/java-21-openjdk-amd64/bin/java

    Alternative: /usr/lib/jvm/java-21-openjdk-amd64/bin/java
    Priority: 2111
    Slaves:
     java.1.gz /usr/lib/jvm/java-21-openjdk-amd64/man/man1/java.1.gz
"""

import io
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Optional, Union

from typeguard import typechecked

from .model import Alternative, Alternatives

# header keys mapped to the corresponding field names of `Alternatives`
_HEADER_FIELDS = {"Name": "name", "Link": "link", "Status": "status", "Best": "best",
                  "Value": "value"}
_SLAVES_KEY = "Slaves"
_ALTERNATIVE_KEY = "Alternative"
_PRIORITY_KEY = "Priority"
_KNOWN_KEYS = frozenset((*_HEADER_FIELDS, _SLAVES_KEY, _ALTERNATIVE_KEY, _PRIORITY_KEY))
# `Priority:` is a plain decimal integer that may be negative
_PRIORITY_RE = re.compile(r"[+-]?[0-9]+")


class ParseError(Exception):
    """Raised when the output of `update-alternatives --query` could not be parsed."""

    def __init__(self, message: str, line: int):
        super().__init__(f"error parsing alternatives: {line}: {message}")
        self.message = message
        self.line = line


class MalformedLineError(ParseError):
    """A line that should have started a `Key: value` pair has no colon."""

    def __init__(self, line: int):
        super().__init__("malformed line", line)


class UnexpectedKeyError(ParseError):
    """A key that is unknown, or is not valid at the position where it appeared."""

    def __init__(self, key: str, line: int):
        super().__init__(f"unexpected key: {key}", line)
        self.key = key


class MalformedSlavesLineError(ParseError):
    """An entry in a `Slaves:` list does not have a space separating the name and path."""

    def __init__(self, line: int):
        super().__init__("malformed slaves line", line)


class InvalidPriorityError(ParseError):
    """The value of `Priority:` is not an integer."""

    def __init__(self, value: str, line: int):
        super().__init__(f"invalid priority value '{value}'", line)
        self.value = value


class ParseState(Enum):
    """State of :class:`AlternativesParser` while assembling the result"""
    HEADER = 1
    IN_ALTERNATIVE = 2


class LineReader:
    """
    Read lines one at a time from a binary or text stream with a single line of lookahead.
    Lines are returned without the trailing newline (`\\n` or `\\r\\n`) and the number of lines
    consumed so far is tracked in `line_no`.
    """

    def __init__(self, stream: Union[IO[bytes], IO[str]]):
        """
        Initialize the reader with a stream.

        :param stream: any object having a `readline()` method returning `bytes` or `str`
                       (e.g. an open file, :class:`io.BytesIO`, or the stdout pipe of a process)
        """
        self._stream = stream
        self._peeked = False
        self._next: Optional[str] = None
        self.line_no = 0

    def _read_raw(self) -> Optional[str]:
        line = self._stream.readline()
        if not line:
            return None
        if isinstance(line, bytes):
            return line.decode("utf-8")
        return line

    def peek(self) -> Optional[str]:
        """
        Return the next raw line (including any line terminator) without consuming it.

        :return: the next line or None at the end of the stream
        """
        if not self._peeked:
            self._next = self._read_raw()
            self._peeked = True
        return self._next

    def readline(self) -> Optional[str]:
        """
        Consume the next line and return it with its line terminator removed.

        :return: the next line or None at the end of the stream
        """
        if self._peeked:
            line = self._next
            self._peeked = False
            self._next = None
        else:
            line = self._read_raw()
        if line is None:
            return None
        self.line_no += 1
        return _strip_newline(line)


def _strip_newline(line: str) -> str:
    """remove trailing `\\n` and a `\\r` before it, if present"""
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


@dataclass
class _PendingAlternative:
    """an `Alternative:` block that is still being read"""
    path: str
    priority: int = 0
    slaves: dict[str, str] = field(default_factory=dict)

    def build(self) -> Alternative:
        return Alternative(self.path, self.priority, self.slaves)


class AlternativesParser:
    """
    Parse the output of `update-alternatives --query` from a stream in a single pass.

    Usage:
        with open("java.query", "rb") as query_fd:
            alternatives = AlternativesParser(query_fd).parse()
    """

    def __init__(self, stream: Union[IO[bytes], IO[str], LineReader], strict: bool = True):
        """
        Initialize the parser for the given stream.

        :param stream: the stream to be parsed, either an existing :class:`LineReader` or
                       a stream object accepted by :class:`LineReader`
        :param strict: if True (the default) then an unknown key fails the parse with
                       :class:`UnexpectedKeyError`, else unknown keys are skipped; known keys
                       in a wrong position are always an error
        """
        self._reader = stream if isinstance(stream, LineReader) else LineReader(stream)
        self._strict = strict

    @property
    def line_no(self) -> int:
        """the number of lines consumed so far"""
        return self._reader.line_no

    def read_key_value(self) -> Optional[tuple[str, str]]:
        """
        Read the next `Key: value` pair skipping any blank lines before it. Lines following the
        key that start with a space are continuations of the value and get appended to it
        separated by newlines.

        :return: the next (key, value) pair, or None at the end of the stream
        """
        reader = self._reader
        while True:
            line = reader.readline()
            if line is None:
                return None
            if line:
                break

        key, sep, value = line.partition(":")
        if not sep:
            raise MalformedLineError(reader.line_no)
        if value.startswith(" "):
            value = value[1:]
        value = value.rstrip("\r")

        while (next_line := reader.peek()) is not None and next_line.startswith(" "):
            cont = reader.readline()
            assert cont is not None
            cont = cont.lstrip(" ").rstrip("\r")
            value = f"{value}\n{cont}" if value else cont
        return key, value

    def parse_slaves(self, value: str) -> dict[str, str]:
        """
        Parse the value of `Slaves:` having one "<name> <path>" entry on each line.

        :param value: the multi-line value as returned by :meth:`read_key_value`
        :return: a dictionary of slave names to their paths
        """
        slaves: dict[str, str] = {}
        if not value:
            return slaves
        for entry in value.split("\n"):
            name, sep, path = entry.partition(" ")
            if not sep:
                raise MalformedSlavesLineError(self.line_no)
            slaves[name] = path
        return slaves

    def parse(self) -> Alternatives:
        """
        Parse the whole stream.

        :return: the parsed :class:`Alternatives`
        """
        header: dict[str, str] = {}
        slaves: dict[str, str] = {}
        alternatives: list[Alternative] = []
        state = ParseState.HEADER
        current: Optional[_PendingAlternative] = None

        while (pair := self.read_key_value()) is not None:
            key, value = pair
            if state is ParseState.HEADER:
                if key in _HEADER_FIELDS:
                    header[_HEADER_FIELDS[key]] = value
                elif key == _SLAVES_KEY:
                    slaves = self.parse_slaves(value)
                elif key == _ALTERNATIVE_KEY:
                    current = _PendingAlternative(value)
                    state = ParseState.IN_ALTERNATIVE
                else:
                    self._unexpected_key(key)
            else:
                assert current is not None
                if key == _PRIORITY_KEY:
                    if not _PRIORITY_RE.fullmatch(value):
                        raise InvalidPriorityError(value, self.line_no)
                    current.priority = int(value)
                elif key == _SLAVES_KEY:
                    current.slaves = self.parse_slaves(value)
                elif key == _ALTERNATIVE_KEY:
                    alternatives.append(current.build())
                    current = _PendingAlternative(value)
                else:
                    self._unexpected_key(key)

        if current is not None:
            alternatives.append(current.build())
        return Alternatives(slaves=slaves, alternatives=tuple(alternatives), **header)

    def _unexpected_key(self, key: str) -> None:
        """fail for a key out of its place, or for an unknown key when parsing strictly"""
        if self._strict or key in _KNOWN_KEYS:
            raise UnexpectedKeyError(key, self.line_no)


@typechecked
def parse_string(text: str, strict: bool = True) -> Alternatives:
    """
    Parse the full output of `update-alternatives --query` given as a string.

    :param text: the output to be parsed
    :param strict: whether unknown keys should fail the parse (see :class:`AlternativesParser`)
    :return: the parsed :class:`Alternatives`
    """
    return AlternativesParser(io.StringIO(text), strict=strict).parse()
