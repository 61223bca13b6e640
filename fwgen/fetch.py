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
Retrieval of default partition blobs from a repository.
"""
import contextlib
import gzip
import http.client
import logging
import urllib.error
import urllib.parse
import urllib.request
import zlib

from .catalog import repo_url
from .errors import DecodeError, MissingDefaultError, TransferError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def content_length(response):
    """Return the advertised body length, or None when there is none."""
    value = response.headers.get("Content-Length")
    try:
        total = int(value) if value is not None else None
    except ValueError:
        return None
    return total if total else None


def iter_chunks(response, chunk_size=DEFAULT_CHUNK_SIZE):
    """Yield the body of ``response`` chunk by chunk, in arrival order.

    The generator is single use: the response is consumed as it goes.
    """
    while True:
        chunk = response.read(chunk_size)
        if not chunk:
            return
        yield chunk


class BlobFetcher():
    def __init__(self, repo, opener=urllib.request.urlopen,
                 chunk_size=DEFAULT_CHUNK_SIZE):
        self.base = repo_url(repo)
        self.opener = opener
        self.chunk_size = chunk_size

    def blob_url(self, router, filename):
        return "{}/routers/{}/defaults/{}".format(
            self.base, urllib.parse.quote(router),
            urllib.parse.quote(filename))

    def fetch(self, partition, router, filename, compressed=False,
              progress=None):
        """Download a default blob and return it as a bytearray.

        ``progress`` is called with the fraction received after each chunk,
        but only when the transport advertises the total length.
        """
        if not filename:
            raise MissingDefaultError(partition, filename)
        url = self.blob_url(router, filename)
        logger.debug("Fetching %s for %s", url, partition)
        try:
            with contextlib.closing(self.opener(url)) as response:
                data = self._receive(response, partition, filename,
                                     progress)
        except (urllib.error.URLError, OSError) as e:
            logger.debug("%s: %s", url, e)
            raise MissingDefaultError(partition, filename)
        except http.client.HTTPException as e:
            raise TransferError(partition, filename, repr(e))
        logger.debug("Received %d bytes for %s", len(data), partition)

        if compressed:
            try:
                data = bytearray(gzip.decompress(bytes(data)))
            except (OSError, EOFError, zlib.error) as e:
                raise DecodeError(partition, e)
            logger.debug("Decompressed %s to %d bytes", partition, len(data))
        return data

    def _receive(self, response, partition, filename, progress):
        total = content_length(response)
        data = bytearray()
        received = 0
        for chunk in iter_chunks(response, self.chunk_size):
            data += chunk
            received += len(chunk)
            if total and progress is not None:
                progress(min(1.0, received / total))
        if total and received < total:
            raise TransferError(partition, filename,
                                "received {} of {} bytes".format(
                                    received, total))
        return data
