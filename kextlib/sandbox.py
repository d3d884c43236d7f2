"""Best-effort recovery of sandbox data from a kernelcache.

Neither scan follows a documented format. The operation-name walk relies on
the layout the compiler emits for the Sandbox kext's operation name table,
and the profile scan only locates candidate boundaries.
"""

import logging
from pathlib import Path

from .errors import AddressNotMapped, RecordTruncated
from .macho import openImage
from .tagged import getTag, withTagMask
from .utils import unpackPointers

log = logging.getLogger(__name__)

DATA_CONST_SEGMENT = '__DATA_CONST'
TEXT_SEGMENT = '__TEXT'
CONST_SECTION = '__const'

FIRST_OPERATION = 'default'

# Observed on every entry of the name table that is directly followed by
# another name pointer.
CHAINED_NAME_TAG = 0x17

PROFILE_MARKER = b'\x00\x80'


def getSandboxOperations(image) -> list[str]:
    section = image.getSection(DATA_CONST_SEGMENT, CONST_SECTION)

    if section is None:
        log.warning('%s.%s not found, no sandbox operations', DATA_CONST_SEGMENT, CONST_SECTION)
        return []

    operations = []
    found = False

    for ptr in unpackPointers(image.getSectionData(section)):
        if ptr == 0:
            continue

        try:
            string = image.getCString(withTagMask(ptr))
        except (AddressNotMapped, RecordTruncated):
            if found:
                break

            continue

        if string == FIRST_OPERATION:
            found = True

        if found:
            operations.append(string)

            if getTag(ptr) != CHAINED_NAME_TAG:
                break

    if not found:
        log.warning('Sandbox operation table not found')

    return operations


def findSandboxProfileBoundaries(image) -> list[int]:
    section = image.getSection(TEXT_SEGMENT, CONST_SECTION)

    if section is None:
        log.warning('%s.%s not found, no sandbox profiles', TEXT_SEGMENT, CONST_SECTION)
        return []

    data = image.getSectionData(section)
    boundaries = []
    index = data.find(PROFILE_MARKER)

    while index != -1:
        boundaries.append(index)
        index = data.find(PROFILE_MARKER, index + 1)

    log.debug('Found %d candidate sandbox profile boundaries', len(boundaries))

    return boundaries


def listSandboxOperations(path: Path) -> list[str]:
    with openImage(path) as image:
        return getSandboxOperations(image)


def listSandboxProfileBoundaries(path: Path) -> list[int]:
    with openImage(path) as image:
        return findSandboxProfileBoundaries(image)
