import struct
import zlib

import pytest

from railsim.ace import AceCache, AceError, TextureFormat, read_ace

PLAIN_MAGIC = b"SIMISA@@@@@@@@@@"
ZIP_MAGIC = b"SIMISA@F@@@@@@@@"


def make_ace(width, height, colors, flags, body, compressed=False):
    content = struct.pack("<6i", 1, flags, width, height, 0xE, colors)
    table_end = 168 + 16 * colors
    content += bytes(table_end - 16 - len(content))
    content += struct.pack("<i", table_end + 4 - 16)
    content += body
    if compressed:
        return ZIP_MAGIC + zlib.compress(content)
    return PLAIN_MAGIC + content


def rgb_rows(w, h):
    body = b""
    for j in range(h):
        body += bytes((j * w + k) % 100 for k in range(w))
        body += bytes(100 + (j * w + k) % 100 for k in range(w))
        body += bytes(200 + (j * w + k) % 50 for k in range(w))
    return body


def write(tmp_path, name, data):
    path = tmp_path / name
    path.write_bytes(data)
    return path


def test_rgb_image_interleaves_planes(tmp_path):
    path = write(tmp_path, "a.ace", make_ace(4, 4, 3, 0, rgb_rows(4, 4)))
    image = read_ace(path)
    assert image.format is TextureFormat.R8G8B8
    assert image.width == 4 and image.height == 4
    assert image.mip_levels == 1
    assert len(image.data) == 4 * 4 * 3
    assert image.data[0:3] == bytes((0, 100, 200))
    assert image.data[3:6] == bytes((1, 101, 201))
    assert image.data[-3:] == bytes((15, 115, 215))


def test_mask_alpha_from_bits(tmp_path):
    body = b""
    for _ in range(4):
        body += bytes(12) + bytes([0b10100000])
    image = read_ace(write(tmp_path, "m.ace", make_ace(4, 4, 4, 0, body)))
    assert image.format is TextureFormat.R8G8B8A8
    alphas = image.data[3::4]
    assert len(alphas) == 16
    assert list(alphas[:4]) == [255, 0, 255, 0]


def test_alpha_channel(tmp_path):
    body = b""
    for j in range(8):
        body += bytes(24) + bytes([0]) + bytes(10 * j + k for k in range(8))
    image = read_ace(write(tmp_path, "al.ace", make_ace(8, 8, 5, 0, body)))
    alphas = image.data[3::4]
    assert list(alphas[:8]) == list(range(8))
    assert alphas[8] == 10


def test_mipmap_chain_stops_at_four(tmp_path):
    body = rgb_rows(8, 8) + rgb_rows(4, 4)
    image = read_ace(write(tmp_path, "mip.ace", make_ace(8, 8, 3, 1, body)))
    assert image.mip_levels == 2
    assert [len(level) for level in image.levels] == [8 * 8 * 3, 4 * 4 * 3]
    assert image.levels[1][0:3] == bytes((0, 100, 200))


def test_dxt_blocks(tmp_path):
    block = bytes(range(8))
    body = struct.pack("<i", 8) + block
    image = read_ace(write(tmp_path, "d.ace", make_ace(4, 4, 3, 0o20, body)))
    assert image.format is TextureFormat.BC1_RGB
    assert image.block_size == 4
    assert image.data == block
    alpha = read_ace(write(tmp_path, "d5.ace", make_ace(4, 4, 5, 0o20, body)))
    assert alpha.format is TextureFormat.BC1_RGBA


def test_compressed_matches_plain(tmp_path):
    body = rgb_rows(8, 8) + rgb_rows(4, 4)
    plain = read_ace(write(tmp_path, "p.ace", make_ace(8, 8, 3, 1, body)))
    packed = read_ace(
        write(tmp_path, "z.ace", make_ace(8, 8, 3, 1, body, compressed=True))
    )
    assert packed.levels == plain.levels
    assert packed.format is plain.format


@pytest.mark.parametrize(
    "width,height", [(4, 8), (6, 6), (2, 2), (4096, 4096)]
)
def test_bad_dimensions_rejected(tmp_path, width, height):
    path = write(tmp_path, "bad.ace", make_ace(width, height, 3, 0, b""))
    with pytest.raises(AceError):
        read_ace(path)


def test_bad_magic_rejected(tmp_path):
    data = b"NOTACE" + make_ace(4, 4, 3, 0, rgb_rows(4, 4))[6:]
    with pytest.raises(AceError):
        read_ace(write(tmp_path, "x.ace", data))


def test_missing_file(tmp_path):
    with pytest.raises(AceError):
        read_ace(tmp_path / "missing.ace")


def test_cache_reuses_images(tmp_path):
    path = write(tmp_path, "c.ace", make_ace(4, 4, 3, 0, rgb_rows(4, 4)))
    cache = AceCache()
    first = cache.read(path)
    assert cache.read(path) is first
    assert path in cache
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
    again = cache.read(path)
    assert again is not first
    assert again.data == first.data


def test_cache_propagates_errors(tmp_path):
    cache = AceCache()
    with pytest.raises(AceError):
        cache.read(tmp_path / "none.ace")
    assert len(cache) == 0