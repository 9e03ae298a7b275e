# firmware/simulate.py
import zlib
from dataclasses import dataclass, field

ADDRESS_SPACE = 1 << 32


@dataclass
class Region:
    start: int
    data: bytearray

    @property
    def end(self) -> int:
        return self.start + len(self.data)


@dataclass
class SimTarget:
    """
    Very small load target:
    - keeps written blocks in memory, merging contiguous writes into regions
    - reads back bytes from written regions
    - reports a CRC32 over everything written
    """
    name: str = "sim"
    regions: list = field(default_factory=list)

    def write_block(self, address: int, data: bytes) -> None:
        end = address + len(data)
        if address < 0 or end > ADDRESS_SPACE:
            raise ValueError("Write out of range")
        # overlapping or adjacent regions fold into one, new bytes win
        touching, keep = [], []
        for region in self.regions:
            (touching if region.start <= end and address <= region.end else keep).append(region)
        start = min([address] + [r.start for r in touching])
        stop = max([end] + [r.end for r in touching])
        buf = bytearray(stop - start)
        for region in touching:
            buf[region.start - start:region.end - start] = region.data
        buf[address - start:end - start] = data
        keep.append(Region(start, buf))
        keep.sort(key=lambda r: r.start)
        self.regions = keep

    def read(self, address: int, size: int) -> bytes:
        for region in self.regions:
            if region.start <= address and address + size <= region.end:
                off = address - region.start
                return bytes(region.data[off:off + size])
        raise ValueError("Read out of range")

    def crc32(self) -> int:
        crc = 0
        for region in sorted(self.regions, key=lambda r: r.start):
            crc = zlib.crc32(region.data, crc)
        return crc & 0xFFFFFFFF

    def info(self) -> dict:
        return {
            "backend": self.name,
            "regions": [{"start": f"0x{r.start:08X}", "size": len(r.data)} for r in self.regions],
            "bytes": sum(len(r.data) for r in self.regions),
            "crc32": f"0x{self.crc32():08X}",
        }
