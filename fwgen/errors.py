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
Errors raised while assembling a flash image.

Every failure carries one human-readable message; the build is aborted on the
first one and no partial image is ever produced.
"""


class FwgenError(Exception):
    """Base class for all build failures."""
    pass


class ValidationError(FwgenError):
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class SizeExceededError(FwgenError):
    def __init__(self, partition, actual, limit):
        super().__init__("{}: size {} exceeds limit {}".format(
            partition, actual, limit))
        self.partition = partition
        self.actual = actual
        self.limit = limit


class MissingDefaultError(FwgenError):
    def __init__(self, partition, filename):
        if filename:
            msg = "No default file for {}: {}".format(partition, filename)
        else:
            msg = "No default file configured for {}".format(partition)
        super().__init__(msg)
        self.partition = partition
        self.filename = filename


class DecodeError(FwgenError):
    def __init__(self, partition, detail=None):
        msg = "{}: cannot decompress default blob".format(partition)
        if detail:
            msg += " ({})".format(detail)
        super().__init__(msg)
        self.partition = partition


class BoundsError(FwgenError):
    def __init__(self, partition, length, offset, what="MAC"):
        super().__init__("{}: {} does not fit. Length {}, offset {}".format(
            partition, what, length, hex(offset)))
        self.partition = partition
        self.length = length
        self.offset = offset


class LayoutError(FwgenError):
    def __init__(self, layout, reason):
        super().__init__("Layout {}: {}".format(layout, reason))
        self.layout = layout
        self.reason = reason


class CatalogError(FwgenError):
    pass


class BuildInProgressError(FwgenError):
    """Raised when a build is requested while another one is running."""

    def __init__(self):
        super().__init__("Another build is already running")


class TransferError(FwgenError):
    """Raised when a default blob download is cut off or malformed."""

    def __init__(self, partition, filename, detail):
        super().__init__("{}: download of {} failed ({})".format(
            partition, filename, detail))
        self.partition = partition
        self.filename = filename
