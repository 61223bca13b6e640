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

"""
Flash image assembly.

A build walks the partitions of one layout in order, resolves the bytes of
each one (user file or default blob, size check, MAC patch) and writes them
into a buffer of exactly ``flash_size`` bytes pre-filled with the erased
value.  The first error aborts the build; no partial image is returned.
"""
import functools
import logging
import os.path
import threading
from collections import namedtuple
from enum import Enum

from intelhex import IntelHex

from .catalog import check_layout, get_layout, merge_part
from .errors import (BoundsError, BuildInProgressError, LayoutError,
                     SizeExceededError)
from .mac import format_mac, inject_mac
from .report import Reporter

logger = logging.getLogger(__name__)

ERASED_VAL = 0xff
INTEL_HEX_EXT = "hex"
DEFAULT_OUTFILE = "full.bin"


class Provenance(Enum):
    USER = 'user'
    DEFAULT = 'default'


BuildState = Enum('BuildState',
                  ['IDLE', 'FETCHING', 'PATCHED', 'UNPATCHED', 'WRITTEN',
                   'COMPLETED', 'ABORTED'])

Placement = namedtuple('Placement', ['name', 'offset', 'data', 'provenance',
                                     'source', 'mac'])


def select_default(config, layout_id):
    """Pick the default blob name, honouring 128/256 flash variants."""
    if config.default_128 and config.default_256 and layout_id:
        if "128" in layout_id:
            return config.default_128
        return config.default_256
    return config.default


class PartResolver():
    def __init__(self, fetcher, router, layout_id, mac_input="",
                 reporter=None):
        self.fetcher = fetcher
        self.router = router
        self.layout_id = layout_id
        self.mac_input = mac_input
        self.reporter = reporter or Reporter()

    def resolve(self, name, config, user_bytes=None):
        if user_bytes is not None:
            data = bytearray(user_bytes)
            provenance = Provenance.USER
            source = Provenance.USER.value
        else:
            source = select_default(config, self.layout_id)
            data = self.fetcher.fetch(
                name, self.router, source,
                compressed=bool(config.compressed),
                progress=functools.partial(self.reporter.progress, name))
            provenance = Provenance.DEFAULT

        if config.max_size and len(data) > config.max_size:
            raise SizeExceededError(name, len(data), config.max_size)

        mac = None
        # User supplied files are never patched.
        if config.inject_mac and provenance is Provenance.DEFAULT:
            data, mac = inject_mac(name, data, config.mac_offset,
                                   self.mac_input)
        return Placement(name, config.offset, data, provenance, source, mac)


class FlashImage():
    def __init__(self, flash_size, erased_val=ERASED_VAL, router=None,
                 layout=None):
        self.flash_size = flash_size
        self.erased_val = erased_val
        self.router = router
        self.layout = layout
        self.data = bytearray([erased_val]) * flash_size
        self.written = []

    def __len__(self):
        return len(self.data)

    def write(self, name, offset, data):
        """Copy ``data`` to ``offset``; ranges may not leave the flash or
        overlap a partition written earlier."""
        end = offset + len(data)
        if end > self.flash_size:
            raise BoundsError(name, len(data), offset,
                              what="partition (flash size {})".format(
                                  hex(self.flash_size)))
        if data:
            for other, start, other_end in self.written:
                if offset < other_end and start < end:
                    raise LayoutError(
                        self.layout,
                        "{} [{}, {}) overlaps {} [{}, {})".format(
                            name, hex(offset), hex(end),
                            other, hex(start), hex(other_end)))
            self.written.append((name, offset, end))
        self.data[offset:end] = data

    def save(self, path, hex_addr=None):
        """Save the image; Intel HEX if ``path`` has a .hex extension."""
        ext = os.path.splitext(path)[1][1:].lower()
        if ext == INTEL_HEX_EXT:
            h = IntelHex()
            h.frombytes(bytes(self.data), offset=hex_addr or 0)
            h.tofile(path, 'hex')
        else:
            with open(path, 'wb') as f:
                f.write(self.data)


class Assembler():
    """Drives one build at a time over a router catalog."""

    def __init__(self, fetcher, reporter=None):
        self.fetcher = fetcher
        self.reporter = reporter or Reporter()
        self.state = BuildState.IDLE
        self.placements = []
        self._lock = threading.Lock()

    def build(self, router_catalog, layout_id, user_files=None,
              mac_input=""):
        if not self._lock.acquire(blocking=False):
            raise BuildInProgressError()
        try:
            self.state = BuildState.IDLE
            self.placements = []
            return self._build(router_catalog, layout_id,
                               user_files or {}, mac_input)
        except Exception:
            self.state = BuildState.ABORTED
            raise
        finally:
            self._lock.release()

    def _build(self, router_catalog, layout_id, user_files, mac_input):
        layout = get_layout(router_catalog, layout_id)
        check_layout(layout)
        unknown = sorted(set(user_files) - set(layout.map))
        if unknown:
            raise LayoutError(layout.id, "no partition named {}".format(
                ", ".join(unknown)))

        image = FlashImage(layout.flash_size, router=router_catalog.router,
                           layout=layout.id)
        resolver = PartResolver(self.fetcher, router_catalog.router,
                                layout.id, mac_input, self.reporter)
        placements = []
        total = len(layout.map)
        logger.debug("Building %s/%s: %d partitions, flash size %s",
                     router_catalog.router, layout.id, total,
                     hex(layout.flash_size))

        for count, name in enumerate(layout.map, 1):
            config = merge_part(router_catalog.parts.get(name), layout, name)
            self.state = BuildState.FETCHING
            placement = resolver.resolve(name, config, user_files.get(name))
            if placement.mac is not None:
                self.state = BuildState.PATCHED
            else:
                self.state = BuildState.UNPATCHED

            image.write(name, placement.offset, placement.data)
            self.state = BuildState.WRITTEN
            placements.append(placement)

            extra = placement.source
            if placement.mac is not None:
                extra += " MAC " + format_mac(placement.mac)
            self.reporter.part(name, "written", placement.offset, extra)
            self.reporter.progress("build", count / total)

        self.state = BuildState.COMPLETED
        self.placements = placements
        self.reporter.message("Build complete")
        return image
