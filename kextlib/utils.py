from struct import calcsize, unpack, unpack_from

from binpatch.utils import getBufferAtIndex

from .errors import RecordTruncated

POINTER_SIZE = 8


def isAligned(n: int, align: int) -> bool:
    if not isinstance(n, int):
        raise TypeError(f'N must be of type: {int}')

    if not isinstance(align, int):
        raise TypeError(f'Align must be of type: {int}')

    return n % align == 0


def unpackPointers(data: bytes) -> list[int]:
    """Interpret data as a packed array of little-endian 64-bit values.

    A trailing partial entry is ignored, the same way a section size that is
    not a multiple of 8 is floored when counting entries.
    """
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    count = len(data) // POINTER_SIZE
    return list(unpack_from(f'<{count}Q', data, 0))


def unpackRecord(fmt: str, data: bytes, offset: int = 0) -> tuple:
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    return unpack(fmt, readBuffer(data, offset, calcsize(fmt)))


def trimTrailingNulls(data: bytes) -> bytes:
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    return data.rstrip(b'\x00')


def bytesToStr(data: bytes) -> str:
    return data.split(b'\x00', 1)[0].decode('utf-8', errors='replace')


def readBuffer(data: bytes, index: int, length: int) -> bytes:
    if not isinstance(index, int):
        raise TypeError(f'Index must be of type: {int}')

    if not isinstance(length, int):
        raise TypeError(f'Length must be of type: {int}')

    if length == 0:
        return b''

    if index < 0 or length < 0:
        raise RecordTruncated(f'Bad read of {length:#x} bytes at {index:#x}!')

    try:
        buffer = getBufferAtIndex(data, index, length)
    except (IndexError, ValueError) as e:
        raise RecordTruncated(f'Expected {length:#x} bytes at {index:#x}: {e}') from e

    if len(buffer) != length:
        raise RecordTruncated(f'Expected {length:#x} bytes at {index:#x}, got {len(buffer):#x}!')

    return buffer
