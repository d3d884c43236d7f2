import pytest

from kextlib.tagged import TAG_PTR_MASK, getTag, unTag, withTagMask

SAMPLES = (
    0,
    0x0000000012340000,
    0x0017FFF007004000,
    0xFFFFFFF007004000,
    0x8011FFF0071A2B3C,
    (1 << 64) - 1
)


@pytest.mark.parametrize('ptr', SAMPLES)
def test_getTag(ptr):
    assert getTag(ptr) == ptr >> 48


def test_getTagValues():
    assert getTag(0x0017FFF007004000) == 0x17
    assert getTag(0x0000000012340000) == 0


@pytest.mark.parametrize('ptr', (0, 0x12340000, 0xFFF007004000, 0xFFFFFFFFFFFF))
def test_unTagWithTagMask(ptr):
    address = unTag(withTagMask(ptr))

    assert address >> 48 == 0xFFFF
    assert address & 0xFFFFFFFFFFFF == ptr & 0xFFFFFFFFFFFF


def test_unTagReplacesTag():
    assert unTag(0x0017FFF007004000) == 0xFFFFFFF007004000


def test_withTagMask():
    assert withTagMask(0x0000000012340000) == 0xFFFF000012340000
    assert withTagMask(0) == TAG_PTR_MASK


def test_badType():
    with pytest.raises(TypeError):
        getTag('0x1234')

    with pytest.raises(TypeError):
        withTagMask(None)
