"""Decoding of the ``__PRELINK_INFO,__info`` bundle directory.

The kernel's OSSerialize writer emits an XML plist without the usual
``<?xml>``/``<plist>`` preamble and deduplicates repeated values: the first
occurrence carries ``ID="n"`` and later ones are empty elements carrying
``IDREF="n"``. plistlib understands neither, so the XML is normalised with
ElementTree before decoding.
"""

import copy
import logging
import plistlib
import xml.etree.ElementTree as ET
from typing import Any
from xml.parsers.expat import ExpatError

from .errors import PlistDecodeError, SectionMissing
from .kmod import PRELINK_INFO_SEGMENT
from .types import KextBundle
from .utils import trimTrailingNulls

log = logging.getLogger(__name__)

PRELINK_INFO_SECTION = '__info'
PRELINK_INFO_DICTIONARY = '_PrelinkInfoDictionary'

BPLIST_MAGIC = b'bplist'

# plist key: (KextBundle field, expected type)
BUNDLE_KEYS = {
    'CFBundleIdentifier': ('identifier', str),
    'CFBundleName': ('name', str),

    'DTSDKName': ('sdk', str),
    'DTSDKBuild': ('sdkBuild', str),
    'DTXcode': ('xcode', str),
    'DTXcodeBuild': ('xcodeBuild', str),
    'NSHumanReadableCopyright': ('copyright', str),
    'BuildMachineOSBuild': ('buildMachineOSBuild', str),
    'CFBundleDevelopmentRegion': ('developmentRegion', str),
    'DTPlatformName': ('platformName', str),
    'DTPlatformVersion': ('platformVersion', str),
    'DTPlatformBuild': ('platformBuild', str),
    'CFBundlePackageType': ('packageType', str),
    'CFBundleVersion': ('version', str),
    'CFBundleShortVersionString': ('shortVersionString', str),
    'OSBundleCompatibleVersion': ('compatibleVersion', str),
    'MinimumOSVersion': ('minimumOSVersion', str),
    'CFBundleSupportedPlatforms': ('supportedPlatforms', list),
    'CFBundleSignature': ('signature', str),

    'IOKitPersonalities': ('ioKitPersonalities', dict),
    'OSBundleLibraries': ('libraries', dict),
    'UIDeviceFamily': ('deviceFamily', list),

    'OSBundleRequired': ('required', str),
    'UIRequiredDeviceCapabilities': ('requiredDeviceCapabilities', list),

    'AppleSecurityExtension': ('securityExtension', bool),

    'CFBundleInfoDictionaryVersion': ('infoDictionaryVersion', str),
    'OSKernelResource': ('kernelResource', bool),
    'CFBundleGetInfoString': ('getInfoString', str),
    'OSBundleAllowUserLoad': ('allowUserLoad', bool),
    '_PrelinkExecutableLoadAddr': ('executableLoadAddr', int),

    'ModuleIndex': ('moduleIndex', int),
    'CFBundleExecutable': ('executable', str),
    '_PrelinkBundlePath': ('bundlePath', str),
    '_PrelinkExecutableRelativePath': ('relativePath', str)
}


def resolveIDRefs(element: ET.Element, ids: dict[str, ET.Element]) -> None:
    for i, child in enumerate(element):
        ref = child.get('IDREF')

        if ref is not None:
            if ref not in ids:
                raise PlistDecodeError(f'Unknown IDREF: {ref}')

            resolved = copy.deepcopy(ids[ref])
            resolved.tail = child.tail
            element[i] = resolved
            continue

        resolveIDRefs(child, ids)

        ident = child.get('ID')

        if ident is not None:
            ids[ident] = child


def normalizeXML(data: bytes) -> bytes:
    text = data.lstrip()

    if text.startswith(b'<?xml'):
        end = text.find(b'?>')

        if end == -1:
            raise PlistDecodeError('Unterminated XML declaration!')

        text = text[end + 2:].lstrip()

    if text.startswith(b'<!DOCTYPE'):
        end = text.find(b'>')

        if end == -1:
            raise PlistDecodeError('Unterminated DOCTYPE!')

        text = text[end + 1:].lstrip()

    if not text.startswith(b'<plist'):
        text = b'<plist version="1.0">' + text + b'</plist>'

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise PlistDecodeError(f'Malformed prelink XML: {e}') from e

    resolveIDRefs(root, {})

    return ET.tostring(root)


def loadPrelinkInfo(data: bytes) -> Any:
    if not isinstance(data, bytes):
        raise TypeError(f'Data must be of type: {bytes}')

    data = trimTrailingNulls(data)

    if not data:
        raise PlistDecodeError('Prelink info is empty!')

    if not data.startswith(BPLIST_MAGIC):
        data = normalizeXML(data)

    try:
        return plistlib.loads(data)
    except (AttributeError, ExpatError, TypeError, ValueError) as e:
        raise PlistDecodeError(f'Failed to decode prelink info: {e}') from e


def parseKextBundle(bundleDict: dict) -> KextBundle:
    if not isinstance(bundleDict, dict):
        raise PlistDecodeError(f'Bundle must be a dictionary, got {type(bundleDict).__name__}!')

    values = {}

    for key, (name, kind) in BUNDLE_KEYS.items():
        if key not in bundleDict:
            continue

        value = bundleDict[key]

        if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
            raise PlistDecodeError(f'{key} must be of type: {kind.__name__}, got {type(value).__name__}!')

        if kind is int and value < 0:
            raise PlistDecodeError(f'{key} must not be negative, got {value}!')

        values[name] = value

    return KextBundle(**values)


def parseKextBundles(data: bytes) -> list[KextBundle]:
    prelinkInfo = loadPrelinkInfo(data)

    if not isinstance(prelinkInfo, dict):
        raise PlistDecodeError('Prelink info root is not a dictionary!')

    bundles = prelinkInfo.get(PRELINK_INFO_DICTIONARY, [])

    if not isinstance(bundles, list):
        raise PlistDecodeError(f'{PRELINK_INFO_DICTIONARY} must be an array!')

    return [parseKextBundle(bundle) for bundle in bundles]


def getKextBundles(image) -> list[KextBundle]:
    section = image.getSection(PRELINK_INFO_SEGMENT, PRELINK_INFO_SECTION)

    if section is None:
        raise SectionMissing(PRELINK_INFO_SEGMENT, PRELINK_INFO_SECTION)

    bundles = parseKextBundles(image.getSectionData(section))
    log.debug('Decoded %d prelinked bundles', len(bundles))

    return bundles
