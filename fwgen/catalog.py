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
Router and layout catalog.

A repository holds ``routers.json`` (router id -> display name) and, for each
router, ``routers/<id>/layouts.json`` describing its layouts and partitions.
YAML descriptors (``.yaml``/``.yml``) are accepted as well.  Everything is
normalized once at load time into immutable values.
"""
import contextlib
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from collections import namedtuple
from pathlib import Path
from types import MappingProxyType

import yaml

from .errors import CatalogError, LayoutError, ValidationError

logger = logging.getLogger(__name__)

DESCRIPTOR_EXTS = ("json", "yaml", "yml")
URL_SCHEMES = ("http", "https", "file")

PART_FIELDS = ('max_size', 'default', 'default_128', 'default_256',
               'compressed', 'inject_mac', 'mac_offset')

PartDescriptor = namedtuple('PartDescriptor', ('name',) + PART_FIELDS,
                            defaults=(None,) * len(PART_FIELDS))

EffectivePartConfig = namedtuple('EffectivePartConfig',
                                 ('name', 'offset') + PART_FIELDS,
                                 defaults=(None,) * len(PART_FIELDS))

LayoutDescriptor = namedtuple('LayoutDescriptor',
                              ['id', 'name', 'flash_size', 'map',
                               'overrides'])

RouterCatalog = namedtuple('RouterCatalog', ['router', 'layouts', 'parts'])

Catalog = namedtuple('Catalog', ['repo', 'routers'])


def repo_url(repo):
    """Return the repository root as a URL without a trailing slash.

    Plain paths are turned into ``file://`` URIs so local directories and
    web servers are read the same way.
    """
    scheme = urllib.parse.urlparse(repo).scheme
    if scheme in URL_SCHEMES:
        return repo.rstrip('/')
    return Path(repo).resolve().as_uri()


def parse_offset(value, field='offset'):
    """Normalize an offset given as an integer or a hexadecimal string."""
    if isinstance(value, bool):
        raise ValidationError("{}: expected integer or hex string, got {!r}"
                              .format(field, value))
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        try:
            result = int(value.strip(), 16)
        except ValueError:
            raise ValidationError("{}: {!r} is not a valid hex value"
                                  .format(field, value))
    else:
        raise ValidationError("{}: expected integer or hex string, got {!r}"
                              .format(field, value))
    if result < 0:
        raise ValidationError("{}: negative value {}".format(field, result))
    return result


def parse_size(value, field):
    if isinstance(value, bool):
        raise ValidationError("{}: {!r} is not a valid integer"
                              .format(field, value))
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            raise ValidationError("{}: {!r} is not a valid integer"
                                  .format(field, value))
    if isinstance(value, int):
        return value
    raise ValidationError("{}: {!r} is not a valid integer"
                          .format(field, value))


def _part_fields(name, raw):
    """Normalize the part fields present in ``raw``; absent fields are
    left out so that merging can tell them apart from explicit values."""
    if not isinstance(raw, dict):
        raise CatalogError("Part {}: expected a mapping, got {!r}"
                           .format(name, raw))
    fields = {}
    for key, value in raw.items():
        if key == 'offset':
            continue
        if key not in PART_FIELDS:
            logger.debug("Part %s: ignoring unknown field %s", name, key)
            continue
        if key == 'max_size':
            value = parse_size(value, "{}.max_size".format(name))
            if value <= 0:
                value = None
        elif key == 'mac_offset':
            value = parse_offset(value, "{}.mac_offset".format(name))
        elif key in ('compressed', 'inject_mac'):
            value = bool(value)
        fields[key] = value
    return fields


def parse_part(name, raw):
    return PartDescriptor(name=name, **_part_fields(name, raw))


def parse_layout(layout_id, raw):
    if not isinstance(raw, dict) or 'flash_size' not in raw:
        raise CatalogError("Layout {}: flash_size is missing"
                           .format(layout_id))
    flash_size = parse_size(raw['flash_size'],
                            "{}.flash_size".format(layout_id))
    offsets = {}
    overrides = {}
    for name, entry in (raw.get('map') or {}).items():
        if not isinstance(entry, dict) or 'offset' not in entry:
            raise CatalogError("Layout {}: partition {} has no offset"
                               .format(layout_id, name))
        offsets[name] = parse_offset(entry['offset'],
                                     "{}.{}.offset".format(layout_id, name))
        overrides[name] = MappingProxyType(_part_fields(name, entry))
    return LayoutDescriptor(id=layout_id,
                            name=raw.get('name', layout_id),
                            flash_size=flash_size,
                            map=MappingProxyType(offsets),
                            overrides=MappingProxyType(overrides))


def merge_part(part, layout, name):
    """Build the effective configuration of partition ``name``.

    Field precedence, applied field by field:

    - ``offset`` always comes from the layout map;
    - any part field present in the layout map entry wins;
    - otherwise the router-level part descriptor is used;
    - a partition without a router-level descriptor merges against an
      empty one, so only its layout entry applies.
    """
    fields = {} if part is None else part._asdict()
    fields.pop('name', None)
    fields.update(layout.overrides.get(name, {}))
    return EffectivePartConfig(name=name, offset=layout.map[name], **fields)


def check_layout(layout):
    """Reject layouts that cannot possibly produce a valid image."""
    if layout.flash_size <= 0:
        raise LayoutError(layout.id, "flash_size must be positive")
    seen = {}
    for name, offset in layout.map.items():
        if offset >= layout.flash_size:
            raise LayoutError(layout.id,
                              "{} offset {} is beyond flash size {}".format(
                                  name, hex(offset), hex(layout.flash_size)))
        if offset in seen:
            raise LayoutError(layout.id,
                              "{} and {} share offset {}".format(
                                  seen[offset], name, hex(offset)))
        seen[offset] = name


def _parse_descriptor(url, raw):
    try:
        if url.endswith(('.yaml', '.yml')):
            return yaml.safe_load(raw)
        return json.loads(raw)
    except (ValueError, yaml.YAMLError) as e:
        raise CatalogError("Cannot parse {}: {}".format(url, e))


def read_descriptor(repo, path, opener=urllib.request.urlopen):
    """Read ``path`` (without extension) below ``repo``, trying each of the
    supported descriptor formats in turn."""
    base = repo_url(repo)
    for ext in DESCRIPTOR_EXTS:
        url = "{}/{}.{}".format(base, path, ext)
        try:
            with contextlib.closing(opener(url)) as response:
                raw = response.read()
        except (urllib.error.URLError, OSError) as e:
            logger.debug("%s: %s", url, e)
            continue
        logger.debug("Loaded %s", url)
        return _parse_descriptor(url, raw)
    raise CatalogError("Descriptor {}/{} not found".format(base, path))


def load_catalog(repo, opener=urllib.request.urlopen):
    routers = read_descriptor(repo, "routers", opener)
    if not isinstance(routers, dict):
        raise CatalogError("routers: expected a mapping of id to name")
    return Catalog(repo=repo, routers=MappingProxyType(dict(routers)))


def load_router(catalog, router, opener=urllib.request.urlopen):
    if router not in catalog.routers:
        raise CatalogError("Unknown router {}".format(router))
    raw = read_descriptor(catalog.repo,
                          "routers/{}/layouts".format(router), opener)
    return router_from_dict(router, raw)


def router_from_dict(router, raw):
    if not isinstance(raw, dict):
        raise CatalogError("Router {}: expected a mapping".format(router))
    layouts = {layout_id: parse_layout(layout_id, entry)
               for layout_id, entry in (raw.get('layouts') or {}).items()}
    parts = {name: parse_part(name, entry)
             for name, entry in (raw.get('parts') or {}).items()}
    return RouterCatalog(router=router,
                         layouts=MappingProxyType(layouts),
                         parts=MappingProxyType(parts))


def get_layout(router_catalog, layout_id):
    try:
        return router_catalog.layouts[layout_id]
    except KeyError:
        raise CatalogError("Router {} has no layout {}".format(
            router_catalog.router, layout_id))
