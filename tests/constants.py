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

import gzip

ROUTER = "wr3000"
ROUTERS = {ROUTER: "Router WR3000", "ax1800": "Router AX1800"}

BOOT_BLOB = b"\x10" * 0x1000
FACTORY_BLOB = bytes(range(256))
FW128_BLOB = b"\x28" * 0x2000
FW256_BLOB = b"\x56" * 0x3000

# filename -> contents as stored in the repository
BLOBS = {
    "boot.bin": BOOT_BLOB,
    "factory.bin.gz": gzip.compress(FACTORY_BLOB),
    "fw128.bin": FW128_BLOB,
    "fw256.bin": FW256_BLOB,
}

FACTORY_MAC_OFFSET = 0x4
FACTORY_MAC_OFFSET_256 = 0x10

LAYOUTS = {
    "layouts": {
        "fw-128": {
            "name": "128 MB",
            "flash_size": 0x10000,
            "map": {
                "boot": {"offset": 0},
                "factory": {"offset": 0x4000},
                "firmware": {"offset": 0x8000},
            },
        },
        "fw-256": {
            "name": "256 MB",
            "flash_size": 0x20000,
            "map": {
                "boot": {"offset": 0},
                "factory": {"offset": 0x4000, "mac_offset": "0x10"},
                "firmware": {"offset": 0x8000},
            },
        },
    },
    "parts": {
        "boot": {"max_size": 0x4000, "default": "boot.bin"},
        "factory": {"max_size": 0x4000, "default": "factory.bin.gz",
                    "compressed": True, "inject_mac": True,
                    "mac_offset": "4"},
        "firmware": {"default_128": "fw128.bin",
                     "default_256": "fw256.bin"},
    },
}
