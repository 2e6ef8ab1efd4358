"""Consist files and a tree listing helper for parsed MSTS files."""

from __future__ import annotations

from collections.abc import Iterable

from .mstsfile import FileNode, MSTSFile


def format_tree(nodes: Iterable[FileNode], indent: str = "") -> str:
    """Return an indented listing of the nodes and all their descendants."""
    parts = []
    for node in nodes:
        if node.value is not None:
            parts.append(f"{indent}node value {node.value}\n")
        else:
            parts.append(f"{indent}no value\n")
        parts.append(format_tree(node.children, indent + " "))
    return "".join(parts)


class Consist:
    """The contents of an MSTS consist file."""

    def __init__(self) -> None:
        self.nodes: list[FileNode] = []

    def read_file(self, path) -> None:
        """Read and parse the consist file at ``path``."""
        file = MSTSFile()
        file.read_file(path)
        self.nodes = file.nodes