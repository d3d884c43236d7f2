import logging
from struct import calcsize

from .errors import SectionMissing
from .fixups import fixupPointer
from .tagged import withTagMask
from .types import KmodInfo
from .utils import POINTER_SIZE, bytesToStr, isAligned, unpackPointers, unpackRecord

log = logging.getLogger(__name__)

PRELINK_INFO_SEGMENT = '__PRELINK_INFO'
KMOD_START_SECTION = '__kmod_start'
KMOD_INFO_SECTION = '__kmod_info'

# next_addr, info_version, id, name, version, reference_count,
# reference_list, address, size, hdr_size, start, stop
KMOD_INFO_FORMAT = '<QiI64s64siQQQQQQ'
KMOD_INFO_SIZE = calcsize(KMOD_INFO_FORMAT)


def readPointerSection(image, segment: str, name: str) -> list[int]:
    section = image.getSection(segment, name)

    if section is None:
        raise SectionMissing(segment, name)

    if not isAligned(section.size, POINTER_SIZE):
        log.warning('%s.%s size %#x is not pointer aligned', segment, name, section.size)

    ptrs = unpackPointers(image.getSectionData(section))
    log.debug('%s.%s: %d pointers', segment, name, len(ptrs))

    return ptrs


def getKextStartVMAddrs(image) -> list[int]:
    return readPointerSection(image, PRELINK_INFO_SEGMENT, KMOD_START_SECTION)


def parseKmodInfo(data: bytes) -> KmodInfo:
    return KmodInfo(*unpackRecord(KMOD_INFO_FORMAT, data))


def getKextInfos(image) -> list[KmodInfo]:
    infos = []

    for ptr in readPointerSection(image, PRELINK_INFO_SEGMENT, KMOD_INFO_SECTION):
        offset = image.getOffset(withTagMask(ptr))
        info = parseKmodInfo(image.readAt(offset, KMOD_INFO_SIZE))

        info.startAddr = fixupPointer(image, info.startAddr)
        info.stopAddr = fixupPointer(image, info.stopAddr)

        infos.append(info)

    return infos


def kmodInfoToString(info: KmodInfo) -> str:
    if not isinstance(info, KmodInfo):
        raise TypeError(f'Info must be of type: {KmodInfo}')

    return (
        f'id: {info.id:#x}, name: {bytesToStr(info.name)}, version: {bytesToStr(info.version)}, '
        f'ref_cnt: {info.referenceCount}, ref_list: {info.referenceListAddr:#x}, '
        f'addr: {info.address:#x}, size: {info.size:#x}, header_size: {info.headerSize:#x}, '
        f'start: {info.startAddr:#x}, stop: {info.stopAddr:#x}, '
        f'next: {info.nextAddr:#x}, info_ver: {info.infoVersion}'
    )
