#!/usr/bin/env python3
#
# apps.py - part of metascoop
# Copyright (C) 2026, The metascoop authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Read the apps.yaml registry and map GitHub releases to repo files.

The registry is a mapping of a key to an entry like this::

    SomeApp:
      git: https://github.com/someone/some-app
      summary: Does things
      categories:
        - Internet

The key is used as the app name unless `name:` is set, and it is also
the stable part of the filenames of the downloaded APKs.

"""

import collections
import logging
import math
import os
import string
import unicodedata
from pathlib import Path
from urllib.parse import urlparse

import ruamel.yaml

from . import _
from . import common
from ._yaml import yaml
from .exception import InvalidRegistryEntry, InvalidRepoUrl

APK_EXTENSION = 'apk'
UPLOADED_STATE = 'uploaded'
RELEASE_FILENAME_ALLOWED = frozenset(string.ascii_letters + string.digits + '_-.')
# str.isspace() is also true for these, but they are not Unicode White_Space
NOT_WHITESPACE = frozenset('\x1c\x1d\x1e\x1f')

app_string_fields = ('git', 'summary', 'author', 'name', 'description', 'license')
app_list_fields = ('categories', 'anti_features')

RepoIdentity = collections.namedtuple('RepoIdentity', ['author', 'name', 'host'])


class AppInfo(dict):
    """One entry of the apps.yaml registry.

    Keys from the registry file are accessible as attributes.  The
    derived keys `key_name`, `repo_author` and `release_description`
    are filled in while parsing and while processing the releases.

    """

    def __init__(self, copydict=None):
        if copydict:
            super().__init__(copydict)
            return
        super().__init__()

        self.git = ''
        self.summary = ''
        self.author = ''
        self.name = ''
        self.description = ''
        self.categories = []
        self.anti_features = []
        self.license = ''

        self.key_name = ''
        self.repo_author = ''
        self.release_description = ''

    def __getattr__(self, name):
        if name in self:
            return self[name]
        else:
            raise AttributeError("No such attribute: " + name)

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        if name in self:
            del self[name]
        else:
            raise AttributeError("No such attribute: " + name)

    def app_name(self):
        if self.key_name:
            return self.key_name
        return self.name

    def author_name(self):
        if self.author:
            return self.author
        return self.repo_author

    def copy(self):
        return AppInfo(self)


def _normalize_type_string(k, v):
    """Normalize scalars to str, YAML can turn things like "1.0" into floats."""
    if v is None:
        return ''
    if isinstance(v, bool):
        return 'true' if v else 'false'
    if isinstance(v, float):
        if math.isnan(v):
            return '.nan'
        if math.isinf(v):
            return '.inf' if v > 0 else '-.inf'
    if isinstance(v, (str, int, float)):
        return str(v)
    raise InvalidRegistryEntry(
        _('{field} must be a string, found: {value}').format(field=k, value=v)
    )


def _normalize_type_list(k, v):
    """Normalize any data to a list of strings."""
    if v is None:
        return []
    if isinstance(v, dict):
        raise InvalidRegistryEntry(
            _('{field} must be list or string, found: {value}').format(field=k, value=v)
        )
    elif type(v) not in (list, tuple):
        v = [v]
    return [_normalize_type_string(k, i) for i in v]


def repo_info(repo_url):
    """Get the (author, name, host) identity of a source repository URL.

    Raises
    ------
    InvalidRepoUrl
        when the URL is not absolute or its path does not start with
        two non-empty segments, the owner and the project name.

    """
    if not isinstance(repo_url, str):
        raise InvalidRepoUrl(_('URL must be a string, not {value!r}').format(value=repo_url))
    try:
        url = urlparse(repo_url.strip())
        host = url.hostname or ''
    except ValueError as e:
        raise InvalidRepoUrl(_('Invalid URL {url!r}').format(url=repo_url), str(e)) from e
    if not url.scheme or not url.netloc:
        raise InvalidRepoUrl(_('{url!r} is not an absolute URL').format(url=repo_url))

    path_segments = url.path.split('/')[1:]
    if len(path_segments) < 2 or not path_segments[0] or not path_segments[1]:
        raise InvalidRepoUrl(
            _('URL path of {url!r} must have at least 2 segments').format(url=repo_url)
        )

    name = path_segments[1]
    if name.endswith('.git') and len(name) > 4:
        name = name[:-4]
    if host.startswith('www.'):
        host = host[4:]
    return RepoIdentity(author=path_segments[0], name=name, host=host)


def parse_app(key, entry):
    """Turn one registry entry into an AppInfo, raising InvalidRegistryEntry."""
    key_name = _normalize_type_string('key', key).strip() if key is not None else ''
    if not key_name:
        raise InvalidRegistryEntry(_('App key must not be empty'), key=key)
    if not isinstance(entry, dict):
        raise InvalidRegistryEntry(
            _('Entry for {key} must be a "key: value" dict, found: {value}')
            .format(key=key_name, value=entry),
            key=key_name,
        )

    app = AppInfo()
    for field, value in entry.items():
        try:
            if field in app_string_fields:
                app[field] = _normalize_type_string(field, value)
            elif field in app_list_fields:
                app[field] = _normalize_type_list(field, value)
            else:
                logging.warning(
                    _("Ignoring unrecognised field '{field}' for {key}")
                    .format(field=field, key=key_name)
                )
        except InvalidRegistryEntry as e:
            e.key = key_name
            raise e

    if not app.git:
        raise InvalidRegistryEntry(
            _('{key} has no git URL').format(key=key_name), key=key_name
        )
    try:
        repo = repo_info(app.git)
    except InvalidRepoUrl as e:
        raise InvalidRegistryEntry(
            _('Invalid git URL {url!r} for app with key {key!r}').format(url=app.git, key=key_name),
            str(e),
            key=key_name,
        ) from e

    app.key_name = key_name
    app.repo_author = repo.author
    return app


def parse_apps(data):
    """Parse all the entries of a loaded registry.

    A broken entry only affects itself: it is logged and its error is
    collected, the rest of the registry is still parsed.

    Returns
    -------
    A tuple of the list of AppInfo instances and the list of
    InvalidRegistryEntry errors.

    """
    apps = []
    errors = []
    for key, entry in data.items():
        try:
            apps.append(parse_app(key, entry))
        except InvalidRegistryEntry as e:
            logging.error(str(e))
            errors.append(e)
    return apps, errors


def parse_app_file(filepath):
    """Read and parse the apps.yaml registry.

    Raises
    ------
    InvalidRegistryEntry
        when the file cannot be read or is not a YAML "key: value" dict,
        since then none of it can be trusted.

    """
    filepath = Path(filepath)
    try:
        with filepath.open(encoding='utf-8') as fp:
            data = yaml.load(fp)
    except (OSError, UnicodeDecodeError, ruamel.yaml.YAMLError) as e:
        raise InvalidRegistryEntry(
            _("could not parse '{path}'").format(path=filepath), str(e)
        ) from e

    if data is None or data == '':
        data = dict()
    if not isinstance(data, dict):
        raise InvalidRegistryEntry(
            _("'{path}' has invalid format, it should be a dictionary!").format(path=filepath)
        )
    return parse_apps(data)


def is_release_eligible(release):
    """Check whether a release should be considered at all.

    Returns
    -------
    A tuple of a bool and a message explaining why a release was
    skipped, or None.

    """
    tag_name = release.get('tag_name') or ''
    if release.get('prerelease'):
        return False, _('Skipping prerelease {tag!r}').format(tag=tag_name)
    if release.get('draft'):
        return False, _('Skipping draft {tag!r}').format(tag=tag_name)
    if not tag_name:
        return False, _('Skipping release with empty tag name')
    return True, None


def find_apk_release(release):
    """Return the first uploaded .apk asset of a release, or None."""
    for asset in release.get('assets') or []:
        name = asset.get('name') or ''
        if asset.get('state') == UPLOADED_STATE and name.endswith('.' + APK_EXTENSION):
            return asset
    return None


def generate_release_filename(app_name, tag_name, extension=APK_EXTENSION):
    """Generate a filesystem safe filename for a release.

    Accented letters are decomposed and lose their accent, whitespace
    becomes "_" and everything else outside of ASCII letters, digits,
    "_", "-" and "." is dropped.  The result can be empty.

    """
    normal_name = '{}_{}.{}'.format(app_name, tag_name, extension)
    normalized = unicodedata.normalize('NFD', normal_name)
    chars = []
    for c in normalized:
        if c in RELEASE_FILENAME_ALLOWED:
            chars.append(c)
        elif c.isspace() and c not in NOT_WHITESPACE:
            chars.append('_')
    return ''.join(chars)


def is_screenshot(path, extensions=None):
    if extensions is None:
        extensions = common.default_config['screenshot_extensions']
    if 'screenshot' not in str(path).lower():
        return False
    _ignored, extension = common.get_extension(str(path))
    return extension in extensions


def find_metadata(cloned_repo_path, extensions=None):
    """Search a cloned source repo for screenshots.

    Returns
    -------
    A dict with the sorted list of screenshot paths under "screenshots".

    """
    screenshots = []
    for root, dirs, files in os.walk(cloned_repo_path):
        dirs[:] = sorted(d for d in dirs if d != '.git')
        for f in sorted(files):
            path = Path(root) / f
            relpath = path.relative_to(cloned_repo_path)
            if path.is_file() and not path.is_symlink() and is_screenshot(relpath, extensions):
                screenshots.append(path)
    return {'screenshots': screenshots}
