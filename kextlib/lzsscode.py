import logging
from struct import unpack
from zlib import adler32

import lzss

from .types import PrelinkedKernelHeader
from .utils import readBuffer

log = logging.getLogger(__name__)

LZSS_HEAD_SIZE = 0x180
LZSS_STRUCT_SIZE = 0x18
LZSS_SIGNATURE = b'comp'
LZSS_COMPRESSTYPE = b'lzss'


def isCompressedKernel(data: bytes) -> bool:
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    return data[:4] == LZSS_SIGNATURE


def parsePrelinkedKernelHeader(data: bytes) -> PrelinkedKernelHeader:
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    if len(data) < LZSS_STRUCT_SIZE:
        raise ValueError(f'Data buffer must be of size: {LZSS_STRUCT_SIZE}!')

    fields = unpack('>4s4s4I', readBuffer(data, 0, LZSS_STRUCT_SIZE))
    return PrelinkedKernelHeader(*fields)


def decompress(data: bytes) -> bytes:
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    if not data:
        raise ValueError('No data to read!')

    header = parsePrelinkedKernelHeader(data)

    if header.signature != LZSS_SIGNATURE:
        raise ValueError(f'Unknown signature. Expected {LZSS_SIGNATURE}, got {header.signature}!')

    if header.compressType != LZSS_COMPRESSTYPE:
        raise ValueError(f'Unknown compress type. Expected {LZSS_COMPRESSTYPE}, got {header.compressType}!')

    realData = readBuffer(data, LZSS_HEAD_SIZE, header.compressedSize)
    realDataSize = len(realData)

    log.debug('Decompressing %#x bytes of lzss kernelcache', realDataSize)

    uncompressedData = lzss.decompress(realData)
    uncompressedDataSize = len(uncompressedData)

    if uncompressedDataSize != header.uncompressedSize:
        raise ValueError(f'Size mismatch! Expected {header.uncompressedSize}, got {uncompressedDataSize}!')

    if adler32(uncompressedData) != header.adler32:
        raise ValueError('Adler32 mismatch!')

    return uncompressedData
