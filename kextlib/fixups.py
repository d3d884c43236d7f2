from .errors import FixupDecodeError
from .types import ChainedKernelCacheRebase, KernelVirtualAddress

# https://github.com/apple-oss-distributions/dyld/blob/main/include/mach-o/fixup-chains.h
# struct dyld_chained_ptr_64_kernel_cache_rebase
KC_REBASE_FIELDS = (
    ('target', 30),
    ('cacheLevel', 2),
    ('diversity', 16),
    ('addrDiv', 1),
    ('key', 2),
    ('next', 12),
    ('isAuth', 1)
)

UINT64_MAX = (1 << 64) - 1


def parseKernelCacheRebase(raw: int) -> ChainedKernelCacheRebase:
    if not isinstance(raw, int):
        raise TypeError(f'Raw must be of type: {int}')

    if raw < 0 or raw > UINT64_MAX:
        raise FixupDecodeError(f'Chained pointer {raw:#x} is not a 64-bit value!')

    values = {}
    shift = 0

    for name, width in KC_REBASE_FIELDS:
        values[name] = (raw >> shift) & ((1 << width) - 1)
        shift += width

    return ChainedKernelCacheRebase(**values)


def fixupPointer(image, raw: int) -> KernelVirtualAddress:
    rebase = parseKernelCacheRebase(raw)
    return KernelVirtualAddress(rebase.target + image.getBaseAddress())
