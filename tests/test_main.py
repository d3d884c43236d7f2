import json
import sys

import pytest

from kextlib import __main__ as cli

from kcbuilder import BASE_ADDRESS, FakeKernelCache, packKmodInfo, prelinkInfo, tagPointer


@pytest.fixture
def image(monkeypatch):
    kc = FakeKernelCache()
    kc.addPointerSection('__PRELINK_INFO', '__kmod_start', [0x12340000])
    record = kc.add(packKmodInfo(b'com.example.test', b'1.0', 0x10, 0x20))
    kc.addPointerSection('__PRELINK_INFO', '__kmod_info', [tagPointer(record)])
    kc.addSection('__PRELINK_INFO', '__info', prelinkInfo([
        {'CFBundleIdentifier': 'com.example.test', 'CFBundleVersion': '1.0', 'ModuleIndex': 0}
    ], 0x10))
    image = kc.build()

    monkeypatch.setattr(cli, 'openImage', lambda path: image)
    return image


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', ['kextlib', '-i', 'kernelcache', *args])
    return cli.main()


def test_kexts(image, monkeypatch, capsys):
    assert run(monkeypatch, '--kexts') is None

    out = capsys.readouterr().out.splitlines()

    assert out == ['FOUND: 1', '0xffff000012340000: com.example.test (1.0)']
    assert image.closed


def test_kextsJSON(image, monkeypatch, capsys):
    run(monkeypatch, '--kexts', '--json')

    entries = json.loads(capsys.readouterr().out)

    assert entries == [{'loadAddress': 0xFFFF000012340000, 'bundleID': 'com.example.test', 'version': '1.0'}]


def test_output(image, monkeypatch, tmp_path):
    output = tmp_path / 'kexts.txt'

    run(monkeypatch, '--kexts', '-o', str(output))

    assert output.read_text() == 'FOUND: 1\n0xffff000012340000: com.example.test (1.0)\n'


def test_outputExists(image, monkeypatch, tmp_path, capsys):
    output = tmp_path / 'kexts.txt'
    output.write_text('keep')

    assert run(monkeypatch, '--kexts', '-o', str(output)) == 1
    assert 'already exists' in capsys.readouterr().err
    assert output.read_text() == 'keep'


def test_kmodJSON(image, monkeypatch, capsys):
    run(monkeypatch, '--kmod', '--json')

    infos = json.loads(capsys.readouterr().out)

    assert infos[0]['name'] == 'com.example.test'
    assert infos[0]['startAddr'] == BASE_ADDRESS + 0x10
    assert infos[0]['stopAddr'] == BASE_ADDRESS + 0x20


def test_error(monkeypatch, capsys):
    image = FakeKernelCache().build()
    monkeypatch.setattr(cli, 'openImage', lambda path: image)

    assert run(monkeypatch, '--kexts') == 1
    assert 'section __PRELINK_INFO.__kmod_start not found' in capsys.readouterr().err
    assert image.closed


def test_nothingSelected(monkeypatch, capsys):
    assert run(monkeypatch) is None
    assert 'usage' in capsys.readouterr().out
