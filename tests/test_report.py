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

import hashlib

import yaml

from fwgen.image import Assembler
from fwgen.report import build_report, dump_report, format_part
from tests.constants import FACTORY_BLOB

MAC = "02:11:22:33:44:55"


def test_format_part():
    line = format_part("boot", "written", 0x4000, "boot.bin")
    assert line == "boot        written                  @ 0x4000      boot.bin"
    assert format_part("firmware", "written", 0) == \
        "firmware    written                  @ 0x0"


def test_build_report(router_catalog, fetcher):
    assembler = Assembler(fetcher)
    image = assembler.build(router_catalog, "fw-128", {"boot": b"\x01" * 4},
                            MAC)
    report = build_report(image, assembler.placements)
    assert report["router"] == "wr3000"
    assert report["layout"] == "fw-128"
    assert report["flash_size"] == "0x10000"
    assert report["sha256"] == hashlib.sha256(image.data).hexdigest()
    assert [p["name"] for p in report["partitions"]] == \
        ["boot", "factory", "firmware"]

    boot, factory, firmware = report["partitions"]
    assert boot["provenance"] == "user"
    assert boot["size"] == 4
    assert "mac" not in boot
    assert factory["provenance"] == "default"
    assert factory["source"] == "factory.bin.gz"
    assert factory["size"] == len(FACTORY_BLOB)
    assert factory["mac"] == MAC
    assert firmware["offset"] == "0x8000"


def test_dump_report(tmp_path, router_catalog, fetcher):
    assembler = Assembler(fetcher)
    image = assembler.build(router_catalog, "fw-256", mac_input=MAC)
    outfile = tmp_path / "report.yaml"
    dump_report(image, assembler.placements, str(outfile))
    with open(outfile) as f:
        loaded = yaml.safe_load(f)
    assert loaded == build_report(image, assembler.placements)
    assert list(loaded) == ["router", "layout", "flash_size", "sha256",
                            "partitions"]
