class KernelCacheError(ValueError):
    pass


class SectionMissing(KernelCacheError):
    def __init__(self, segment: str, section: str) -> None:
        super().__init__(f'section {segment}.{section} not found')
        self.segment = segment
        self.section = section


class AddressNotMapped(KernelCacheError):
    def __init__(self, address: int) -> None:
        super().__init__(f'address {address:#x} is not within any mapped segment')
        self.address = address


class RecordTruncated(KernelCacheError):
    pass


class FixupDecodeError(KernelCacheError):
    pass


class PlistDecodeError(KernelCacheError):
    pass


class IndexOutOfRange(KernelCacheError, IndexError):
    pass
