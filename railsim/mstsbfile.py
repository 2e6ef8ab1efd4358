"""Reader for MSTS binary files, plain or zlib compressed."""

from __future__ import annotations

import os
import struct
import zlib
from typing import BinaryIO

from .mstsfile import fix_filename_case

BUFSZ = 4096
HEADER_SIZE = 16


class BinaryFileError(Exception):
    """Raised when a binary MSTS file cannot be opened or read."""


class BinaryReader:
    """Sequential reader over the body of an MSTS binary file.

    The stream must start with the 16 byte ``SIMISA`` header; an ``F`` at
    offset 7 marks a zlib compressed body.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        magic = stream.read(HEADER_SIZE)
        if len(magic) != HEADER_SIZE or not magic.startswith(b"SIMISA"):
            raise BinaryFileError("not an MSTS binary file")
        self.position = HEADER_SIZE
        self.compressed = magic[7:8] == b"F"
        self._inflater = zlib.decompressobj() if self.compressed else None
        self._buffer = bytearray()
        self._input_done = False

    def __enter__(self) -> BinaryReader:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying stream."""
        self._stream.close()

    def _fill(self, n: int) -> None:
        while len(self._buffer) < n and not self._input_done:
            chunk = self._stream.read(BUFSZ)
            try:
                if chunk:
                    self._buffer += self._inflater.decompress(chunk)
                else:
                    self._buffer += self._inflater.flush()
                    self._input_done = True
            except zlib.error as err:
                raise BinaryFileError(f"inflate error: {err}") from err

    def get_bytes(self, n: int) -> bytes:
        """Return up to ``n`` bytes; fewer at the end of the file."""
        if n <= 0:
            return b""
        if not self.compressed:
            data = self._stream.read(n)
        else:
            self._fill(n)
            data = bytes(self._buffer[:n])
            del self._buffer[:n]
        self.position += len(data)
        return data

    def skip(self, n: int) -> int:
        """Discard ``n`` bytes and return how many were skipped."""
        return len(self.get_bytes(n))

    def get_byte(self) -> int:
        data = self.get_bytes(1)
        return data[0] if len(data) == 1 else 0

    def get_short(self) -> int:
        """Signed 16 bit little-endian value; 0 at end of file."""
        data = self.get_bytes(2)
        return struct.unpack("<h", data)[0] if len(data) == 2 else 0

    def get_int(self) -> int:
        """Signed 32 bit little-endian value; 0 at end of file."""
        data = self.get_bytes(4)
        return struct.unpack("<i", data)[0] if len(data) == 4 else 0

    def get_float(self) -> float:
        """32 bit little-endian float; 0.0 at end of file."""
        data = self.get_bytes(4)
        return struct.unpack("<f", data)[0] if len(data) == 4 else 0.0

    def get_string(self, n: int | None = None) -> str:
        """Read ``n`` UTF-16 code units; without ``n`` a count byte comes first."""
        if n is None:
            n = self.get_byte()
        data = self.get_bytes(2 * n)
        return data.decode("utf-16-le", errors="replace")

    def seek(self, offset: int) -> None:
        """Move to an absolute file offset; compressed files go forward only."""
        if not self.compressed:
            self._stream.seek(offset)
            self.position = offset
            return
        if offset < self.position:
            raise BinaryFileError("cannot seek backwards in a compressed file")
        self.skip(offset - self.position)


def open_binary(path) -> BinaryReader:
    """Open the binary file at ``path``, trying a case-corrected name too."""
    path = os.fspath(path)
    try:
        stream = open(path, "rb")
    except OSError as err:
        fixed = fix_filename_case(path)
        try:
            if fixed == path:
                raise
            stream = open(fixed, "rb")
        except OSError:
            raise BinaryFileError(f"cannot open {path}") from err
    try:
        return BinaryReader(stream)
    except BinaryFileError:
        stream.close()
        raise