# firmware/layout.py
from dataclasses import dataclass
import struct

ESP_IMAGE_MAGIC = 0xE9

# magic, segment_count, flash_mode, flash_config, entry
COMMON_HEADER_FMT = "<BBBBI"
# wp_pin, clk_q_drv, d_cs_drv, gd_wp_drv, chip_id, min_rev,
# min_chip_rev_full, max_chip_rev_full, reserved[4], append_digest
EXTENDED_HEADER_FMT = "<BBBBHBHH4sB"
HEADER_FMT = COMMON_HEADER_FMT + EXTENDED_HEADER_FMT[1:]
HEADER_SIZE = struct.calcsize(HEADER_FMT)  # 24

# address, length
SEGMENT_HEADER_FMT = "<II"
SEGMENT_HEADER_SIZE = struct.calcsize(SEGMENT_HEADER_FMT)  # 8

ENTRY_FMT = "<I"
ENTRY_OFFSET = 4
SEGMENT_COUNT_OFFSET = 1

# Checksum byte closes a 16-byte aligned block after the last segment
CHECKSUM_ALIGN = 16
CHECKSUM_SEED = 0xEF


@dataclass(frozen=True)
class ImageLayout:
    name: str
    header_size: int
    entry_offset: int
    count_offset: int
    segment_header_size: int = SEGMENT_HEADER_SIZE


ESP_LAYOUT = ImageLayout(
    "esp-idf",
    header_size=HEADER_SIZE,
    entry_offset=ENTRY_OFFSET,
    count_offset=SEGMENT_COUNT_OFFSET,
)
