from kextlib import sandbox
from kextlib.sandbox import (findSandboxProfileBoundaries, getSandboxOperations,
                             listSandboxOperations, listSandboxProfileBoundaries)

from kcbuilder import FakeKernelCache, tagPointer


def addOperationTable(kc, entries):
    ptrs = []

    for entry in entries:
        if isinstance(entry, int):
            ptrs.append(entry)
            continue

        string, tag = entry
        ptrs.append(tagPointer(kc.addString(string), tag))

    kc.addPointerSection('__DATA_CONST', '__const', ptrs)


def test_operations():
    kc = FakeKernelCache()
    addOperationTable(kc, [
        ('foo', 0x17),
        ('bar', 0x17),
        ('default', 0x17),
        ('read', 0x17),
        ('write', 0x03)
    ])

    assert getSandboxOperations(kc.build()) == ['default', 'read', 'write']


def test_skipsBeforeDefault():
    kc = FakeKernelCache()
    addOperationTable(kc, [
        0,
        tagPointer(0xFFFFFFF0DEAD0000, 0x17),
        ('default', 0x17),
        0,
        ('file-read*', 0x17),
        ('file-write*', 0x10),
        ('mach-lookup', 0x17)
    ])

    assert getSandboxOperations(kc.build()) == ['default', 'file-read*', 'file-write*']


def test_unmappedEndsRun():
    kc = FakeKernelCache()
    addOperationTable(kc, [
        ('default', 0x17),
        ('read', 0x17),
        tagPointer(0xFFFFFFF0DEAD0000, 0x17),
        ('write', 0x17)
    ])

    assert getSandboxOperations(kc.build()) == ['default', 'read']


def test_noDefault():
    kc = FakeKernelCache()
    addOperationTable(kc, [('foo', 0x17), ('bar', 0x17)])

    assert getSandboxOperations(kc.build()) == []


def test_missingSection():
    assert getSandboxOperations(FakeKernelCache().build()) == []


def test_profileBoundaries():
    kc = FakeKernelCache()
    kc.addSection('__TEXT', '__const', b'\x01\x00\x80\x02\x00\x80\x00\x80\x03')

    assert findSandboxProfileBoundaries(kc.build()) == [1, 4, 6]


def test_profileBoundariesNone():
    kc = FakeKernelCache()
    kc.addSection('__TEXT', '__const', b'\x80\x00\x01')

    assert findSandboxProfileBoundaries(kc.build()) == []
    assert findSandboxProfileBoundaries(FakeKernelCache().build()) == []


def test_listSandboxOperations(monkeypatch, tmp_path):
    kc = FakeKernelCache()
    addOperationTable(kc, [('default', 0x03)])
    image = kc.build()

    monkeypatch.setattr(sandbox, 'openImage', lambda path: image)

    assert listSandboxOperations(tmp_path / 'kernelcache') == ['default']
    assert image.closed


def test_listSandboxProfileBoundaries(monkeypatch, tmp_path):
    kc = FakeKernelCache()
    kc.addSection('__TEXT', '__const', b'\x00\x80\x01\x00\x80')
    image = kc.build()

    monkeypatch.setattr(sandbox, 'openImage', lambda path: image)

    assert listSandboxProfileBoundaries(tmp_path / 'kernelcache') == [0, 3]
    assert image.closed
