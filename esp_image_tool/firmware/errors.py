# firmware/errors.py
"""Decode errors for firmware application images.

Each error names the check that failed and carries the offsets needed to
locate the damage in the file.
"""


class ImageError(ValueError):
    """Base class: the buffer is not a well-formed image."""


class TruncatedHeader(ImageError):
    def __init__(self, size: int, expected: int):
        self.size = size
        self.expected = expected
        super().__init__(
            f"Truncated image header: got {size} bytes, need {expected}"
        )


class TruncatedSegmentHeader(ImageError):
    def __init__(self, index: int, offset: int, available: int):
        self.index = index
        self.offset = offset
        self.available = available
        super().__init__(
            f"Segment {index}: truncated segment header at offset 0x{offset:X} "
            f"({available} bytes left)"
        )


class TruncatedPayload(ImageError):
    def __init__(self, index: int, offset: int, length: int, available: int):
        self.index = index
        self.offset = offset
        self.length = length
        self.available = available
        super().__init__(
            f"Segment {index}: payload at offset 0x{offset:X} declares {length} bytes, "
            f"only {available} available"
        )


class InvalidMagic(ImageError):
    def __init__(self, magic: int, expected: int):
        self.magic = magic
        self.expected = expected
        super().__init__(f"Invalid image magic 0x{magic:02X} (expected 0x{expected:02X})")


class TruncatedChecksum(ImageError):
    def __init__(self, offset: int, size: int):
        self.offset = offset
        self.size = size
        super().__init__(
            f"Checksum byte at offset 0x{offset:X} is past the end of the image ({size} bytes)"
        )
