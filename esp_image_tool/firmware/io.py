# firmware/io.py
from __future__ import annotations
from pathlib import Path
from typing import Protocol, Iterable
from .image import FirmwareImage, EspFirmwareImage

# ---- Load target protocol ----
class MemoryBackend(Protocol):
    def write_block(self, address: int, data: bytes) -> None: ...
    def info(self) -> dict: ...

# ---- Loader ----
def read_image(path: Path) -> bytes:
    return Path(path).read_bytes()

def open_image(path: Path) -> EspFirmwareImage:
    return EspFirmwareImage(read_image(path))

# ---- High-level operations ----
def iter_chunks(data: bytes | memoryview | None, chunk_size: int) -> Iterable[bytes | memoryview]:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if not data:
        return
    for i in range(0, len(data), chunk_size):
        yield data[i:i+chunk_size]

def load_segments(backend: MemoryBackend, image: FirmwareImage, chunk: int = 0x1000) -> dict:
    """Write every segment of the image to the backend, chunk by chunk."""
    if chunk <= 0:
        raise ValueError(f"chunk must be positive, got {chunk}")
    count = 0
    written = 0
    for segment in image.segments():
        for i, part in enumerate(iter_chunks(segment.data, chunk)):
            backend.write_block(segment.address + i * chunk, part)
            written += len(part)
        count += 1
    return {"segments": count, "bytes": written, "entry": f"0x{image.entry():08X}", "info": backend.info()}

def save_segments(image: FirmwareImage, out_dir: Path, stem: str = "segment") -> list[Path]:
    """Save each segment as its own binary, prefixed with its load address."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for segment in image.segments():
        path = out_dir / f"{segment.address:#010x}_{stem}.bin"
        path.write_bytes(segment.data)
        paths.append(path)
    return paths

def describe_image(image: EspFirmwareImage) -> dict:
    header = image.header()
    segments = [
        {
            "index": s.index,
            "address": f"0x{s.address:08X}",
            "length": len(s),
            "offset": f"0x{s.offset:X}",
        }
        for s in image.segments()
    ]
    return {
        "magic": f"0x{header.magic:02X}",
        "entry": f"0x{header.entry:08X}",
        "segment_count": header.segment_count,
        "flash_mode": header.flash_mode,
        "flash_size": header.flash_size,
        "flash_freq": header.flash_freq,
        "chip_id": header.chip_id,
        "min_rev": header.min_rev,
        "append_digest": header.append_digest,
        "size": len(image),
        "segments": segments,
    }
