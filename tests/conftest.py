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

import copy
import io
import json
import urllib.error

import pytest

from fwgen.catalog import router_from_dict
from fwgen.fetch import BlobFetcher
from tests.constants import BLOBS, LAYOUTS, ROUTER, ROUTERS


class FakeResponse(io.BytesIO):
    """Minimal stand-in for the object returned by urlopen."""

    def __init__(self, data, advertise=True):
        super().__init__(data)
        self.headers = {}
        if advertise:
            self.headers["Content-Length"] = str(len(data))


class FakeOpener():
    """Serve blobs by file name and remember the requested URLs."""

    def __init__(self, blobs, advertise=True):
        self.blobs = dict(blobs)
        self.advertise = advertise
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        filename = url.rsplit('/', 1)[-1]
        if filename not in self.blobs:
            raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)
        return FakeResponse(self.blobs[filename], self.advertise)


@pytest.fixture
def layouts_dict():
    return copy.deepcopy(LAYOUTS)


@pytest.fixture
def router_catalog(layouts_dict):
    return router_from_dict(ROUTER, layouts_dict)


@pytest.fixture
def opener():
    return FakeOpener(BLOBS)


@pytest.fixture
def fetcher(opener):
    return BlobFetcher("http://example.com/fw", opener=opener)


@pytest.fixture
def repo(tmp_path):
    """An on-disk firmware repository."""
    (tmp_path / "routers.json").write_text(json.dumps(ROUTERS))
    router_dir = tmp_path / "routers" / ROUTER
    defaults = router_dir / "defaults"
    defaults.mkdir(parents=True)
    (router_dir / "layouts.json").write_text(json.dumps(LAYOUTS))
    for name, data in BLOBS.items():
        (defaults / name).write_bytes(data)
    return tmp_path
