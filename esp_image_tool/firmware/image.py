# firmware/image.py
"""Read-only decoder for ESP-IDF application images.

An image is a fixed 24-byte header followed by ``segment_count`` records,
each an 8-byte segment header (load address, payload length) and the
payload itself. Nothing here copies payload bytes: every ``CodeSegment``
holds a read-only ``memoryview`` into the buffer handed to
``EspFirmwareImage``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator, Protocol

from .errors import (
    InvalidMagic,
    TruncatedChecksum,
    TruncatedHeader,
    TruncatedPayload,
    TruncatedSegmentHeader,
)
from .layout import (
    CHECKSUM_ALIGN,
    CHECKSUM_SEED,
    ENTRY_FMT,
    ESP_IMAGE_MAGIC,
    ESP_LAYOUT,
    HEADER_FMT,
    SEGMENT_HEADER_FMT,
    ImageLayout,
)


@dataclass(frozen=True)
class CodeSegment:
    """A segment's load address and a view of its payload."""

    address: int
    data: memoryview
    index: int = 0
    offset: int = 0  # file offset of the segment header

    def __len__(self) -> int:
        return len(self.data)

    @property
    def end(self) -> int:
        return self.address + len(self.data)


@dataclass(frozen=True)
class ImageHeader:
    magic: int
    segment_count: int
    flash_mode: int
    flash_config: int
    entry: int
    wp_pin: int
    clk_q_drv: int
    d_cs_drv: int
    gd_wp_drv: int
    chip_id: int
    min_rev: int
    min_chip_rev_full: int
    max_chip_rev_full: int
    reserved: bytes
    append_digest: int

    @property
    def flash_size(self) -> int:
        return self.flash_config >> 4

    @property
    def flash_freq(self) -> int:
        return self.flash_config & 0x0F


class FirmwareImage(Protocol):
    def entry(self) -> int: ...
    def segments(self) -> Iterator[CodeSegment]: ...


class SegmentIter:
    """
    Forward-only stream over the segment records of one image.

    The stream stops after ``remaining`` records. A framing error is raised
    at the step that hits it; the stream is finished afterwards.
    """

    def __init__(self, data: memoryview, pos: int, remaining: int,
                 layout: ImageLayout = ESP_LAYOUT):
        self._data = data
        self._layout = layout
        self.position = pos
        self.remaining = remaining
        self.index = 0

    def __iter__(self) -> SegmentIter:
        return self

    def __next__(self) -> CodeSegment:
        if self.remaining == 0:
            raise StopIteration

        pos = self.position
        head_size = self._layout.segment_header_size
        available = len(self._data) - pos

        if available < head_size:
            self.remaining = 0
            raise TruncatedSegmentHeader(self.index, pos, available)

        address, length = struct.unpack_from(SEGMENT_HEADER_FMT, self._data, pos)
        start = pos + head_size
        end = start + length
        if end > len(self._data):
            self.remaining = 0
            raise TruncatedPayload(self.index, pos, length, len(self._data) - start)

        segment = CodeSegment(address, self._data[start:end], index=self.index, offset=pos)
        self.position = end
        self.remaining -= 1
        self.index += 1
        return segment


class EspFirmwareImage:
    """View over a whole ESP application image held in memory."""

    layout = ESP_LAYOUT

    def __init__(self, image_data):
        view = memoryview(image_data)
        if view.ndim != 1 or view.format != "B":
            view = view.cast("B")
        self.image_data = view.toreadonly()

    def __len__(self) -> int:
        return len(self.image_data)

    def _require_header(self) -> None:
        if len(self.image_data) < self.layout.header_size:
            raise TruncatedHeader(len(self.image_data), self.layout.header_size)

    def entry(self) -> int:
        self._require_header()
        (entry,) = struct.unpack_from(ENTRY_FMT, self.image_data, self.layout.entry_offset)
        return entry

    def segment_count(self) -> int:
        self._require_header()
        return self.image_data[self.layout.count_offset]

    def segments(self) -> SegmentIter:
        count = self.segment_count()
        return SegmentIter(self.image_data, self.layout.header_size, count, self.layout)

    def header(self) -> ImageHeader:
        self._require_header()
        return ImageHeader(*struct.unpack_from(HEADER_FMT, self.image_data, 0))

    def validate(self) -> ImageHeader:
        """Check the magic byte and the framing of every segment."""
        header = self.header()
        if header.magic != ESP_IMAGE_MAGIC:
            raise InvalidMagic(header.magic, ESP_IMAGE_MAGIC)
        for _ in self.segments():
            pass
        return header

    def segments_end(self) -> int:
        it = self.segments()
        for _ in it:
            pass
        return it.position

    def checksum_offset(self) -> int:
        end = self.segments_end()
        return end + (CHECKSUM_ALIGN - 1) - (end % CHECKSUM_ALIGN)

    def stored_checksum(self) -> int:
        offset = self.checksum_offset()
        if offset >= len(self.image_data):
            raise TruncatedChecksum(offset, len(self.image_data))
        return self.image_data[offset]

    def calculate_checksum(self) -> int:
        return calculate_checksum(self.segments())

    def checksum_valid(self) -> bool:
        return self.stored_checksum() == self.calculate_checksum()


def calculate_checksum(segments, seed: int = CHECKSUM_SEED) -> int:
    """XOR of every payload byte, starting from ``seed``."""
    checksum = seed
    for segment in segments:
        for b in segment.data:
            checksum ^= b
    return checksum & 0xFF
