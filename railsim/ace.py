"""Reader for MSTS ACE texture files.

An ACE file is an MSTS binary file whose body holds a small header, a
table of channel descriptions and then the image rows, either as planar
colour channels or as DXT1 compressed blocks, optionally followed by a
chain of mipmaps down to 4x4.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from .mstsbfile import BinaryFileError, BinaryReader, open_binary

FLAG_MIPMAPS = 0o1
FLAG_DXT = 0o20

_VALID_SIZES = frozenset(1 << i for i in range(2, 12))


class AceError(Exception):
    """Raised when an ACE file cannot be read or is malformed."""


class TextureFormat(Enum):
    """Pixel layout of a decoded ACE image."""

    R8G8B8 = "r8g8b8"
    R8G8B8A8 = "r8g8b8a8"
    BC1_RGB = "bc1_rgb"
    BC1_RGBA = "bc1_rgba"

    @property
    def is_block_compressed(self) -> bool:
        return self in (TextureFormat.BC1_RGB, TextureFormat.BC1_RGBA)


@dataclass
class AceImage:
    """A decoded texture: one byte string per mipmap level, largest first."""

    width: int
    height: int
    format: TextureFormat
    levels: list[bytes] = field(default_factory=list)

    @property
    def mip_levels(self) -> int:
        return len(self.levels)

    @property
    def block_size(self) -> int:
        """Edge length in pixels of one storage block."""
        return 4 if self.format.is_block_compressed else 1

    @property
    def data(self) -> bytes:
        """All mipmap levels joined together."""
        return b"".join(self.levels)


def _padded(data: bytes, n: int) -> bytes:
    n = max(n, 0)
    return data if len(data) >= n else data + bytes(n - len(data))


def _read_pixels(reader: BinaryReader, w: int, h: int, colors: int) -> bytes:
    row_size = 3 * w
    if colors > 3:
        row_size += 1 if w < 8 else w // 8
    if colors > 4:
        row_size += w
    mask_start = 3 * w
    alpha_start = 3 * w + w // 8
    out = bytearray()
    for _ in range(h):
        row = _padded(reader.get_bytes(row_size), row_size)
        reds = row[:w]
        greens = row[w : 2 * w]
        blues = row[2 * w : 3 * w]
        for k, (r, g, b) in enumerate(zip(reds, greens, blues)):
            out += bytes((r, g, b))
            if colors == 4:
                bit = row[mask_start + k // 8] & (0x80 >> (k % 8))
                out.append(255 if bit else 0)
            elif colors == 5:
                out.append(row[alpha_start + k])
            elif colors > 5:
                out.append(255)
    return bytes(out)


def _decode(reader: BinaryReader, path: str) -> AceImage:
    reader.get_int()
    flags = reader.get_int()
    width = reader.get_int()
    height = reader.get_int()
    reader.get_int()
    colors = reader.get_int()
    if colors < 0:
        raise AceError(f"bad ace {path}: {colors} colour channels")
    reader.seek(168 + 16 * colors)
    offset = reader.get_int()
    if width not in _VALID_SIZES or width != height:
        raise AceError(f"bad ace {path} {flags} {width} {height} {colors} {offset}")
    reader.seek(offset + 16)
    dxt = bool(flags & FLAG_DXT)
    mipmaps = bool(flags & FLAG_MIPMAPS)
    levels = []
    w = h = width
    while True:
        if dxt:
            n = reader.get_int()
            levels.append(_padded(reader.get_bytes(n), n))
        else:
            levels.append(_read_pixels(reader, w, h, colors))
        if not mipmaps or w <= 4 or h <= 4:
            break
        w //= 2
        h //= 2
    if dxt:
        fmt = TextureFormat.BC1_RGBA if colors > 3 else TextureFormat.BC1_RGB
    else:
        fmt = TextureFormat.R8G8B8A8 if colors > 3 else TextureFormat.R8G8B8
    return AceImage(width, height, fmt, levels)


def read_ace(path) -> AceImage:
    """Read and decode the ACE file at ``path``."""
    path = os.fspath(path)
    try:
        with open_binary(path) as reader:
            return _decode(reader, path)
    except (BinaryFileError, OSError) as err:
        raise AceError(f"cannot read ace {path}: {err}") from err


class AceCache:
    """Keeps decoded ACE images so each file is read only once."""

    def __init__(self) -> None:
        self._images: dict[str, AceImage] = {}

    def __len__(self) -> int:
        return len(self._images)

    def __contains__(self, path) -> bool:
        return os.fspath(path) in self._images

    def read(self, path) -> AceImage:
        """Return the image for ``path``, reading it on first use."""
        key = os.fspath(path)
        image = self._images.get(key)
        if image is None:
            image = read_ace(key)
            self._images[key] = image
        return image

    def clear(self) -> None:
        """Forget every cached image."""
        self._images.clear()