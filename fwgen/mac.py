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
Hardware address handling: parsing, generation and patching into a blob.
"""
import os
import re

from .errors import BoundsError, ValidationError

MAC_LEN = 6

MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")


def parse_mac(text):
    """Decode a MAC written as AA:BB:CC:DD:EE:FF (either case)."""
    if not MAC_RE.fullmatch(text):
        raise ValidationError("bad MAC format")
    return bytes(int(octet, 16) for octet in text.split(':'))


def generate_mac():
    """Return a random unicast, locally administered address."""
    mac = bytearray(os.urandom(MAC_LEN))
    mac[0] = (mac[0] & 0xfe) | 0x02
    return bytes(mac)


def format_mac(mac):
    return ':'.join("{:02X}".format(b) for b in mac)


def inject_mac(partition, data, offset, mac_input=""):
    """Write a MAC address into ``data`` at ``offset``, in place.

    ``mac_input`` is the user supplied address; when empty, a random one is
    generated.  Returns the patched buffer and the address that was written.
    """
    mac_input = (mac_input or "").strip()
    if mac_input:
        mac = parse_mac(mac_input)
    else:
        mac = generate_mac()

    if offset is None or offset + MAC_LEN > len(data):
        raise BoundsError(partition, len(data),
                          0 if offset is None else offset)
    data[offset:offset + MAC_LEN] = mac
    return data, mac
