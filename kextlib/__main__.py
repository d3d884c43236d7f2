import json
import logging
import sys
from argparse import ArgumentParser
from dataclasses import asdict
from pathlib import Path

from binpatch.io import writeBytesToPath

from .kext import kextEntryToString, kextList
from .kmod import getKextInfos, kmodInfoToString
from .macho import openImage
from .sandbox import findSandboxProfileBoundaries, getSandboxOperations
from .utils import bytesToStr


def kmodInfoToJSON(info) -> dict:
    fields = asdict(info)
    fields['name'] = bytesToStr(info.name)
    fields['version'] = bytesToStr(info.version)
    return fields


def renderKexts(image, asJSON: bool) -> str:
    catalog = kextList(image)

    if asJSON:
        return json.dumps([asdict(entry) for entry in catalog], indent=2)

    lines = [f'FOUND: {len(catalog)}']
    lines.extend(kextEntryToString(entry) for entry in catalog)
    return '\n'.join(lines)


def renderKmodInfos(image, asJSON: bool) -> str:
    infos = getKextInfos(image)

    if asJSON:
        return json.dumps([kmodInfoToJSON(info) for info in infos], indent=2)

    return '\n'.join(kmodInfoToString(info) for info in infos)


def renderSandboxOperations(image, asJSON: bool) -> str:
    operations = getSandboxOperations(image)

    if asJSON:
        return json.dumps(operations, indent=2)

    return '\n'.join(operations)


def renderProfileBoundaries(image, asJSON: bool) -> str:
    boundaries = findSandboxProfileBoundaries(image)

    if asJSON:
        return json.dumps(boundaries, indent=2)

    return '\n'.join(f'{offset:#x}' for offset in boundaries)


def main():
    parser = ArgumentParser()

    parser.add_argument('-i', help='input file (kernelcache)', metavar='kernelcache', type=Path)
    parser.add_argument('-o', help='output file', metavar='', type=Path)

    parser.add_argument('--kexts', action='store_true', help='list prelinked kexts')
    parser.add_argument('--kmod', action='store_true', help='print kmod_info records')
    parser.add_argument('--sandbox', action='store_true', help='list sandbox operations')
    parser.add_argument('--profiles', action='store_true', help='print candidate sandbox profile offsets')

    parser.add_argument('--json', action='store_true', help='output as json')
    parser.add_argument('-v', action='store_true', help='verbose logging')

    args = parser.parse_args()

    logging.basicConfig(
        format='%(levelname)s %(name)s: %(message)s',
        level=logging.DEBUG if args.v else logging.WARNING
    )

    if not args.i:
        return parser.print_help()

    renderers = (
        (args.kexts, renderKexts),
        (args.kmod, renderKmodInfos),
        (args.sandbox, renderSandboxOperations),
        (args.profiles, renderProfileBoundaries)
    )

    selected = [renderer for enabled, renderer in renderers if enabled]

    if not selected:
        return parser.print_help()

    if args.o and args.o.exists():
        print(f'Error: {args.o} already exists!', file=sys.stderr)
        return 1

    try:
        with openImage(args.i) as image:
            output = '\n'.join(renderer(image, args.json) for renderer in selected)
    except ValueError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    if args.o:
        writeBytesToPath(args.o, (output + '\n').encode())
        return

    print(output)


if __name__ == '__main__':
    sys.exit(main())
