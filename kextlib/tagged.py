from .types import KernelVirtualAddress, TaggedPointer

TAG_PTR_MASK = 0xFFFF000000000000
TAG_SHIFT = 48
PAYLOAD_MASK = (1 << TAG_SHIFT) - 1


def getTag(ptr: TaggedPointer) -> int:
    if not isinstance(ptr, int):
        raise TypeError(f'Ptr must be of type: {int}')

    return ptr >> TAG_SHIFT


def unTag(ptr: TaggedPointer) -> KernelVirtualAddress:
    if not isinstance(ptr, int):
        raise TypeError(f'Ptr must be of type: {int}')

    return KernelVirtualAddress((ptr & PAYLOAD_MASK) | TAG_PTR_MASK)


# Packed arrays store pointers with the top 16 bits cleared.
def withTagMask(ptr: TaggedPointer) -> KernelVirtualAddress:
    if not isinstance(ptr, int):
        raise TypeError(f'Ptr must be of type: {int}')

    return KernelVirtualAddress(ptr | TAG_PTR_MASK)
