import logging
from pathlib import Path

from .errors import IndexOutOfRange
from .kmod import getKextInfos, getKextStartVMAddrs
from .macho import openImage
from .prelink import getKextBundles
from .tagged import withTagMask
from .types import KernelVirtualAddress, KextBundle, KextCatalogEntry, KmodInfo

log = logging.getLogger(__name__)

# Kernel resources are linked into the kernel itself and have no load address.
KERNEL_RESOURCE_ADDRESS = KernelVirtualAddress(0)


def getKextLoadAddress(bundle: KextBundle, kextStartAddrs: list[int]) -> KernelVirtualAddress:
    if not isinstance(bundle, KextBundle):
        raise TypeError(f'Bundle must be of type: {KextBundle}')

    if bundle.kernelResource:
        return KERNEL_RESOURCE_ADDRESS

    if not 0 <= bundle.moduleIndex < len(kextStartAddrs):
        raise IndexOutOfRange(
            f'{bundle.identifier}: ModuleIndex {bundle.moduleIndex} is out of range '
            f'for {len(kextStartAddrs)} kext start addresses!'
        )

    return withTagMask(kextStartAddrs[bundle.moduleIndex])


def buildKextCatalog(bundles: list[KextBundle], kextStartAddrs: list[int]) -> list[KextCatalogEntry]:
    if not isinstance(bundles, list):
        raise TypeError(f'Bundles must be of type: {list}')

    if not isinstance(kextStartAddrs, list):
        raise TypeError(f'kextStartAddrs must be of type: {list}')

    catalog = []

    for bundle in bundles:
        address = getKextLoadAddress(bundle, kextStartAddrs)
        catalog.append(KextCatalogEntry(address, bundle.identifier, bundle.version))

    return catalog


def kextList(image) -> list[KextCatalogEntry]:
    kextStartAddrs = getKextStartVMAddrs(image)
    bundles = getKextBundles(image)

    catalog = buildKextCatalog(bundles, kextStartAddrs)
    log.info('Found %d kexts', len(catalog))

    return catalog


def listKexts(path: Path) -> list[KextCatalogEntry]:
    with openImage(path) as image:
        return kextList(image)


def listKmodInfos(path: Path) -> list[KmodInfo]:
    with openImage(path) as image:
        return getKextInfos(image)


def kextEntryToString(entry: KextCatalogEntry) -> str:
    return f'{entry.loadAddress:#x}: {entry.bundleID} ({entry.version})'
