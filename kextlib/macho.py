import logging
from pathlib import Path

import lief
from binpatch.io import readBytesFromPath

from .errors import AddressNotMapped, RecordTruncated
from .lzsscode import decompress, isCompressedKernel
from .types import KernelVirtualAddress, MachOSection
from .utils import readBuffer

log = logging.getLogger(__name__)


class MachOImage:
    """Read-only view of a parsed 64-bit Mach-O image.

    Wraps a ``lief.MachO.Binary`` together with the raw bytes it was parsed
    from. Only the handful of lookups the kernelcache readers need are
    exposed, so any object with the same methods can stand in for it.
    """

    def __init__(self, binary, data: bytes) -> None:
        if not isinstance(data, bytes):
            raise TypeError(f'Data must be of type: {bytes}')

        self.binary = binary
        self.data = data

    def __enter__(self) -> 'MachOImage':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self.binary is None

    def close(self) -> None:
        self.binary = None
        self.data = None

    def _checkOpen(self) -> None:
        if self.closed:
            raise ValueError('Image is closed!')

    def getSection(self, segment: str, name: str) -> MachOSection | None:
        self._checkOpen()

        for section in self.binary.sections:
            if section.segment_name == segment and section.name == name:
                return MachOSection(segment, name, section.virtual_address, section.offset, section.size)

        return None

    def getSectionData(self, section: MachOSection) -> bytes:
        if not isinstance(section, MachOSection):
            raise TypeError(f'Section must be of type: {MachOSection}')

        return self.readAt(section.offset, section.size)

    def getOffset(self, address: KernelVirtualAddress) -> int:
        self._checkOpen()

        for segment in self.binary.segments:
            if not segment.file_size:
                continue

            start = segment.virtual_address

            if start <= address < start + segment.file_size:
                return segment.file_offset + (address - start)

        raise AddressNotMapped(address)

    def readAt(self, offset: int, size: int) -> bytes:
        self._checkOpen()

        if not isinstance(offset, int):
            raise TypeError(f'Offset must be of type: {int}')

        if not isinstance(size, int):
            raise TypeError(f'Size must be of type: {int}')

        return readBuffer(self.data, offset, size)

    def getCString(self, address: KernelVirtualAddress) -> str:
        offset = self.getOffset(address)
        end = self.data.find(b'\x00', offset)

        if end == -1:
            raise RecordTruncated(f'Unterminated string at {address:#x}!')

        return self.data[offset:end].decode('utf-8', errors='replace')

    def getBaseAddress(self) -> int:
        self._checkOpen()
        return self.binary.imagebase


def parseMachO(data: bytes, path: Path | None = None):
    if path is not None:
        binary = lief.parse(str(path))
    else:
        binary = lief.parse(data)

    if not isinstance(binary, lief.MachO.Binary):
        raise ValueError('Input is not a Mach-O image!')

    return binary


def openImage(path: Path) -> MachOImage:
    if not isinstance(path, Path):
        raise TypeError(f'Path must be of type: {Path}')

    data = readBytesFromPath(path)

    if isCompressedKernel(data):
        log.info('%s is an lzss compressed kernelcache', path)
        data = decompress(data)
        binary = parseMachO(data)
    else:
        binary = parseMachO(data, path)

    log.debug('Opened %s (%#x bytes, base %#x)', path, len(data), binary.imagebase)
    return MachOImage(binary, data)
