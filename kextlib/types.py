from dataclasses import dataclass, field
from typing import Any, NewType

TaggedPointer = NewType('TaggedPointer', int)
KernelVirtualAddress = NewType('KernelVirtualAddress', int)


@dataclass
class MachOSection:
    segment: str
    name: str
    address: int
    offset: int
    size: int


# https://github.com/apple-oss-distributions/xnu/blob/main/osfmk/mach/kmod.h
@dataclass
class KmodInfo:
    nextAddr: int
    infoVersion: int
    id: int
    name: bytes
    version: bytes
    referenceCount: int
    referenceListAddr: int
    address: int
    size: int
    headerSize: int
    startAddr: int
    stopAddr: int


@dataclass
class ChainedKernelCacheRebase:
    target: int
    cacheLevel: int
    diversity: int
    addrDiv: int
    key: int
    next: int
    isAuth: int


@dataclass
class KextBundle:
    identifier: str = ''
    name: str = ''

    sdk: str = ''
    sdkBuild: str = ''
    xcode: str = ''
    xcodeBuild: str = ''
    copyright: str = ''
    buildMachineOSBuild: str = ''
    developmentRegion: str = ''
    platformName: str = ''
    platformVersion: str = ''
    platformBuild: str = ''
    packageType: str = ''
    version: str = ''
    shortVersionString: str = ''
    compatibleVersion: str = ''
    minimumOSVersion: str = ''
    supportedPlatforms: list[str] = field(default_factory=list)
    signature: str = ''

    ioKitPersonalities: dict[str, Any] = field(default_factory=dict)
    libraries: dict[str, str] = field(default_factory=dict)
    deviceFamily: list[int] = field(default_factory=list)

    required: str = ''
    requiredDeviceCapabilities: list[str] = field(default_factory=list)

    securityExtension: bool = False

    infoDictionaryVersion: str = ''
    kernelResource: bool = False
    getInfoString: str = ''
    allowUserLoad: bool = False
    executableLoadAddr: int = 0

    moduleIndex: int = 0
    executable: str = ''
    bundlePath: str = ''
    relativePath: str = ''


@dataclass
class KextCatalogEntry:
    loadAddress: KernelVirtualAddress
    bundleID: str
    version: str


# https://github.com/apple-oss-distributions/kext_tools/blob/main/kernelcache.h
# prelinkVersion value >= 1 means KASLR supported (iOS 6+)
@dataclass
class PrelinkedKernelHeader:
    signature: bytes
    compressType: bytes
    adler32: int
    uncompressedSize: int
    compressedSize: int
    prelinkVersion: int
