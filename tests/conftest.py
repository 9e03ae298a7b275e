from __future__ import annotations

import struct

import pytest

from esp_image_tool.firmware.layout import CHECKSUM_SEED, ESP_IMAGE_MAGIC, HEADER_FMT


def build_header(entry: int, segment_count: int, magic: int = ESP_IMAGE_MAGIC) -> bytes:
    return struct.pack(
        HEADER_FMT,
        magic, segment_count, 0x02, 0x20, entry,
        0xEE, 0, 0, 0, 0x0009, 0, 0, 0xFFFF, b"\0" * 4, 1,
    )


def build_image(entry: int, segments: list[tuple[int, bytes]], checksum: bool = False,
                count: int | None = None, magic: int = ESP_IMAGE_MAGIC) -> bytes:
    out = bytearray(build_header(entry, len(segments) if count is None else count, magic))
    for address, data in segments:
        out += struct.pack("<II", address, len(data)) + data
    if checksum:
        value = CHECKSUM_SEED
        for _, data in segments:
            for b in data:
                value ^= b
        out += b"\0" * (15 - len(out) % 16)
        out.append(value)
    return bytes(out)


SAMPLE_SEGMENTS = [
    (0x3FFB0000, bytes([0x01, 0x02, 0x03, 0x04])),
    (0x40080000, bytes([0xAA, 0xBB])),
]


@pytest.fixture
def sample_image() -> bytes:
    return build_image(0x40080000, SAMPLE_SEGMENTS)


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "app.bin"
    path.write_bytes(build_image(0x40080000, SAMPLE_SEGMENTS, checksum=True))
    return path
