"""Reader for the UTF-16 text form of MSTS data files.

A file is a ``SIMISA`` heading followed by a sequence of items.  Each
item is either a string or a parenthesised list of items.  A named block
is written as a name followed by a list, so looking up a block means
finding the name and taking the item after it.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

_SPACE_RE = re.compile(r"[ \t\n\r]*")
_TOKEN_RE = re.compile(
    r'([()])|"((?:[^"\\]|\\.)*)"|([^ \t\n\r()"][^ \t\n\r()]*)', re.S
)
_ESCAPE_RE = re.compile(r"\\(.)", re.S)


class MSTSFileError(Exception):
    """Raised when an MSTS file cannot be opened or parsed."""


@dataclass
class FileNode:
    """One item of an MSTS file: a string value or a list of children."""

    value: str | None = None
    children: list[FileNode] = field(default_factory=list)

    @property
    def is_list(self) -> bool:
        return self.value is None

    def child(self, n: int) -> FileNode | None:
        """Return the n-th child, or None when there is no such child."""
        if 0 <= n < len(self.children):
            return self.children[n]
        return None

    def find(self, name: str) -> FileNode | None:
        """Return the item that follows the child named ``name``."""
        return find_after(self.children, name)

    def cat_children(self) -> str:
        """Join the string children, leaving out ``+`` separators."""
        return "".join(
            c.value for c in self.children if c.value is not None and c.value != "+"
        )


def find_after(nodes: Iterable[FileNode], name: str) -> FileNode | None:
    """Return the node following the first node whose value is ``name``."""
    it = iter(nodes)
    for node in it:
        if node.value == name:
            return next(it, None)
    return None


def decode_text(data: bytes) -> str:
    """Decode UTF-16 file contents, byte order taken from the mark.

    Characters outside the single-byte range become ``?``.
    """
    if len(data) < 2:
        raise MSTSFileError("file does not start with a byte order mark")
    little_endian = data[0] == 0xFF
    chars = []
    for first, second in zip(data[2::2], data[3::2]):
        low, high = (first, second) if little_endian else (second, first)
        chars.append("?" if high else chr(low))
    return "".join(chars)


def _unescape(match: re.Match) -> str:
    ch = match.group(1)
    return "\n" if ch == "n" else ch


def tokenize(text: str) -> Iterator[str]:
    """Yield the tokens of the text: parentheses, quoted strings and words."""
    pos = 0
    end = len(text)
    while True:
        pos = _SPACE_RE.match(text, pos).end()
        if pos >= end:
            return
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise MSTSFileError("unterminated quoted string")
        paren, quoted, word = match.groups()
        if quoted is not None:
            yield _ESCAPE_RE.sub(_unescape, quoted)
        else:
            yield paren or word
        pos = match.end()


def _parse_list(tokens: Iterator[str], out: list[FileNode]) -> bool:
    """Fill ``out`` up to the closing parenthesis; False on end of input."""
    for token in tokens:
        if token == ")":
            return True
        if token == "(":
            node = FileNode()
            out.append(node)
            if not _parse_list(tokens, node.children):
                return False
        else:
            out.append(FileNode(token))
    return False


def parse_text(text: str) -> list[FileNode]:
    """Parse decoded file text into its top-level nodes."""
    tokens = tokenize(text)
    heading = next(tokens, "")
    if not heading.startswith("SIMISA"):
        raise MSTSFileError("heading not found")
    nodes: list[FileNode] = []
    for token in tokens:
        if token == "(":
            node = FileNode()
            if not _parse_list(tokens, node.children):
                log.warning("unexpected end of file")
        else:
            node = FileNode(token)
        nodes.append(node)
    if nodes and nodes[-1].value is not None:
        log.warning("last item in file is a string %s", nodes[-1].value)
    return nodes


def fix_filename_case(path) -> str:
    """Return ``path`` with its components matched case-insensitively
    against the directory entries that exist.  Unmatched paths come back
    unchanged."""
    path = os.fspath(path)
    head, sep, name = path.rpartition("/")
    if not sep:
        return path
    dir_path = head
    try:
        entries = os.listdir(dir_path or "/")
    except OSError:
        dir_path = fix_filename_case(dir_path)
        try:
            entries = os.listdir(dir_path or "/")
        except OSError:
            log.warning("cannot read directory %s", dir_path)
            return path
    if name in entries:
        return f"{dir_path}/{name}"
    wanted = name.lower()
    for entry in entries:
        if entry.lower() == wanted:
            return f"{dir_path}/{entry}"
    return path


def _read_bytes(path) -> bytes:
    path = os.fspath(path)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as err:
        fixed = fix_filename_case(path)
        if fixed != path:
            try:
                with open(fixed, "rb") as f:
                    return f.read()
            except OSError:
                pass
        raise MSTSFileError(f"cannot open file {path}") from err


def _tree_lines(nodes: Iterable[FileNode], indent: str) -> Iterator[str]:
    for node in nodes:
        if node.value is not None:
            yield f"{indent}node value {node.value}\n"
        else:
            yield f"{indent}no value\n"
        yield from _tree_lines(node.children, indent + " ")


class MSTSFile:
    """A parsed MSTS text file."""

    def __init__(self) -> None:
        self.nodes: list[FileNode] = []

    def read_file(self, path) -> None:
        """Read and parse the file at ``path``."""
        self.nodes = []
        self.nodes = parse_text(decode_text(_read_bytes(path)))

    def find(self, name: str) -> FileNode | None:
        """Return the top-level item following the one named ``name``."""
        return find_after(self.nodes, name)

    def format_tree(self) -> str:
        """Return an indented listing of every node."""
        return "".join(_tree_lines(self.nodes, ""))