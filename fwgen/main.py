#! /usr/bin/env python3
#
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import sys

import click

from fwgen import fwgen_version
from fwgen.catalog import load_catalog, load_router
from fwgen.errors import FwgenError
from fwgen.fetch import BlobFetcher
from fwgen.image import Assembler, DEFAULT_OUTFILE
from fwgen.mac import MAC_RE
from fwgen.report import Reporter, dump_report, format_part

MIN_PYTHON_VERSION = (3, 7)
if sys.version_info < MIN_PYTHON_VERSION:
    sys.exit("Python %s.%s or newer is required by fwgen."
             % MIN_PYTHON_VERSION)


class EchoReporter(Reporter):
    """Print build status on the terminal, keep progress in the debug log."""

    def message(self, text):
        click.echo(text)

    def part(self, name, action, offset, extra=""):
        click.echo(format_part(name, action, offset, extra))


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return int(value, 0)
        except ValueError:
            self.fail('%s is not a valid integer. Please use code literals '
                      'prefixed with 0b/0B, 0o/0O, or 0x/0X as necessary.'
                      % value, param, ctx)


def validate_mac(ctx, param, value):
    value = (value or "").strip()
    if value and not MAC_RE.fullmatch(value):
        raise click.BadParameter(
            "Invalid MAC format {} (expected AA:BB:CC:DD:EE:FF)".format(value))
    return value


def load_part_files(parts):
    user_files = {}
    for name, path in parts:
        if name in user_files:
            raise click.UsageError('Partition %s given more than once.' % name)
        try:
            with open(path, 'rb') as f:
                user_files[name] = f.read()
        except FileNotFoundError:
            raise click.UsageError("Input file not found ({})".format(path))
    return user_files


def open_router(repo, router):
    try:
        return load_router(load_catalog(repo), router)
    except FwgenError as e:
        raise click.ClickException(str(e))


repo_option = click.option('-r', '--repo', metavar='path-or-url',
                           required=True,
                           help='Firmware repository holding routers.json '
                                'and the default blobs (directory or URL)')


@repo_option
@click.command(help='List the routers known to a repository')
def routers(repo):
    try:
        catalog = load_catalog(repo)
    except FwgenError as e:
        raise click.ClickException(str(e))
    for router_id, name in catalog.routers.items():
        print("{}: {}".format(router_id, name))


@click.argument('router')
@repo_option
@click.command(help='List the flash layouts and partitions of a router')
def layouts(repo, router):
    router_catalog = open_router(repo, router)
    for layout_id, layout in router_catalog.layouts.items():
        print("{} ({}), flash size {}".format(
            layout_id, layout.name, hex(layout.flash_size)))
        for name, offset in layout.map.items():
            part = router_catalog.parts.get(name)
            size_info = ""
            if part is not None and part.max_size:
                size_info = "(<= {} KB)".format(round(part.max_size / 1024))
            print("    " + format_part(name, size_info, offset))


@click.argument('layout')
@click.argument('router')
@repo_option
@click.option('-v', '--verbose', default=False, is_flag=True,
              help='Log fetch and build progress')
@click.option('--manifest', metavar='filename', required=False,
              help='Save a YAML description of the built image')
@click.option('-x', '--hex-addr', type=BasedIntParamType(), required=False,
              help='Base address of the Intel HEX output (defaults to 0).')
@click.option('-o', '--outfile', metavar='filename', default=DEFAULT_OUTFILE,
              show_default=True,
              help='Output image; Intel HEX if it has a .hex extension')
@click.option('--mac', callback=validate_mac, default='', metavar='MAC',
              help='MAC address written into partitions that carry one, as '
                   'AA:BB:CC:DD:EE:FF. A random locally administered address '
                   'is used if omitted.')
@click.option('-p', '--part', nargs=2, multiple=True, default=[],
              metavar='[name] [filename]',
              help='Use filename instead of the default blob for partition '
                   'name. Specify the option multiple times for several '
                   'partitions.')
@click.command(help='''Assemble a full flash image\n
               Every partition of LAYOUT is taken from the given --part file
               or from the ROUTER's default blob, then written at its offset
               into an image pre-filled with 0xff.''')
def build(part, mac, outfile, hex_addr, manifest, verbose, repo, router,
          layout):
    if verbose:
        logging.basicConfig(format='%(levelname)5s: %(message)s',
                            level=logging.DEBUG, stream=sys.stdout)
    user_files = load_part_files(part)
    router_catalog = open_router(repo, router)
    assembler = Assembler(BlobFetcher(repo), EchoReporter())
    try:
        image = assembler.build(router_catalog, layout, user_files, mac)
    except FwgenError as e:
        raise click.ClickException(str(e))

    try:
        image.save(outfile, hex_addr)
        if manifest is not None:
            dump_report(image, assembler.placements, manifest)
    except OSError as e:
        raise click.ClickException("Cannot write output: {}".format(e))
    print("Image saved to {} ({} bytes)".format(outfile, len(image)))


class AliasesGroup(click.Group):

    _aliases = {
        "assemble": "build",
    }

    def list_commands(self, ctx):
        cmds = [k for k in self.commands]
        aliases = [k for k in self._aliases]
        return sorted(cmds + aliases)

    def get_command(self, ctx, cmd_name):
        rv = click.Group.get_command(self, ctx, cmd_name)
        if rv is not None:
            return rv
        if cmd_name in self._aliases:
            return click.Group.get_command(self, ctx, self._aliases[cmd_name])
        return None


@click.command(help='Print fwgen version information')
def version():
    print(fwgen_version)


@click.command(cls=AliasesGroup,
               context_settings=dict(help_option_names=['-h', '--help']))
def fwgen():
    pass


fwgen.add_command(routers)
fwgen.add_command(layouts)
fwgen.add_command(build)
fwgen.add_command(version)


if __name__ == '__main__':
    fwgen()
