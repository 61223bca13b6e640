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
Build progress reporting and the YAML build report.
"""
import hashlib
import logging

import yaml

from .mac import format_mac

logger = logging.getLogger("fwgen")

_COLUMNS = (12, 25, 14)


def format_part(name, action, offset, extra=""):
    """Format one partition status line in fixed columns."""
    col1 = name.ljust(_COLUMNS[0])
    col2 = action.ljust(_COLUMNS[1])
    col3 = "@ 0x{:X}".format(offset).ljust(_COLUMNS[2])
    return (col1 + col2 + col3 + extra).rstrip()


class Reporter():
    """Receives status lines and progress fractions from a build.

    The default implementation sends everything to the ``fwgen`` logger;
    subclasses can redirect it, e.g. to a progress bar.
    """

    def message(self, text):
        logger.info(text)

    def part(self, name, action, offset, extra=""):
        logger.info(format_part(name, action, offset, extra))

    def progress(self, label, fraction):
        logger.debug("%s: %d%%", label, round(fraction * 100))


def build_report(image, placements):
    parts = []
    for p in placements:
        entry = {"name": p.name,
                 "offset": hex(p.offset),
                 "size": len(p.data),
                 "provenance": p.provenance.value,
                 "source": p.source}
        if p.mac is not None:
            entry["mac"] = format_mac(p.mac)
        parts.append(entry)
    return {"router": image.router,
            "layout": image.layout,
            "flash_size": hex(image.flash_size),
            "sha256": hashlib.sha256(image.data).hexdigest(),
            "partitions": parts}


def dump_report(image, placements, outfile):
    """Save a description of a finished build to ``outfile`` as YAML."""
    with open(outfile, "w") as outf:
        # sort_keys - from pyyaml 5.1
        yaml.dump(build_report(image, placements), outf, sort_keys=False)
