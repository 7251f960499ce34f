#!/usr/bin/env python3
#
# index.py - part of metascoop
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

"""Read index-v1.json as written by `fdroid update` and compare versions of it."""

import json
import logging
from pathlib import Path

from . import _
from .exception import IndexReadFailure, MetascoopException

INDEX_SECTIONS = ('repo', 'requests', 'apps', 'packages')
PACKAGES_LOCATION = 'packages'


class RepoIndex(dict):
    """The parsed index-v1.json: "repo", "requests", "apps" and "packages"."""

    @property
    def repo(self):
        return self['repo']

    @property
    def requests(self):
        return self['requests']

    @property
    def apps(self):
        return self['apps']

    @property
    def packages(self):
        return self['packages']

    def find_latest_package(self, package_name):
        return find_latest_package(self.packages.get(package_name) or [])


def _normalize_package(package):
    if not isinstance(package, dict):
        raise ValueError(_('package entries must be dicts, found: {value}').format(value=package))
    package = dict(package)
    version_code = package.get('versionCode')
    if version_code is None:
        version_code = 0
    package['versionCode'] = int(version_code)
    package['versionName'] = str(package.get('versionName') or '')
    if package.get('nativecode') is None:
        package['nativecode'] = []
    return package


def parse_index(data):
    """Check and normalize the data of an index-v1.json file."""
    if not isinstance(data, dict):
        raise ValueError(_('index must be a JSON object'))
    index = RepoIndex()
    index['repo'] = data.get('repo') or {}
    index['requests'] = data.get('requests') or {}
    index['apps'] = data.get('apps') or []
    packages = data.get('packages')
    if packages is None:
        packages = {}
    if not isinstance(packages, dict):
        raise ValueError(_('"packages" must be a JSON object'))
    index['packages'] = {
        name: [_normalize_package(p) for p in pkgs] for name, pkgs in packages.items()
    }
    if not isinstance(index['apps'], list):
        raise ValueError(_('"apps" must be a JSON list'))
    return index


def read_index(path):
    """Read the index file, any problem reading it is fatal.

    Raises
    ------
    IndexReadFailure
        when the file is missing or is not a valid index.

    """
    path = Path(path)
    try:
        with path.open(encoding='utf-8') as fp:
            return parse_index(json.load(fp))
    except (OSError, ValueError, TypeError) as e:
        raise IndexReadFailure(
            _('Failed to read index file {path}').format(path=path), str(e)
        ) from e


def _version_key(package):
    return (package.get('versionCode', 0), package.get('versionName', ''))


def find_latest_package(packages):
    """Return the package with the highest versionCode, or None.

    versionName breaks ties between equal versionCodes.  The given
    list is not modified.

    """
    if not packages:
        return None
    return sorted(packages, key=_version_key)[-1]


def changed_packages(old_packages, new_packages):
    """List the package names that were added, removed or whose records differ."""
    names = set(old_packages) | set(new_packages)
    return sorted(n for n in names if old_packages.get(n) != new_packages.get(n))


def has_significant_changes(old, new):
    """Compare the packages of two indexes.

    Only the "packages" section is considered, the repo description,
    the requests and the app summaries are ignored.

    Returns
    -------
    A tuple of where the change was found and whether there was one.

    """
    old_packages = old.get(PACKAGES_LOCATION) or {}
    new_packages = new.get(PACKAGES_LOCATION) or {}
    if old_packages != new_packages:
        logging.info(_('Changed packages: {names}')
                     .format(names=', '.join(changed_packages(old_packages, new_packages))))
        return PACKAGES_LOCATION, True
    return '', False


def is_index_file(filename):
    return 'index' in filename


def assess_changes(old, new, changed_files):
    """Decide whether a run changed the repo enough to publish it.

    When the packages in the index are unchanged, this falls back to
    the list of files changed in the repo.  The index files are
    regenerated with a new timestamp on every run, so they alone do
    not count.

    Parameters
    ----------
    old
      the index from before the run
    new
      the index from after the run
    changed_files
      a list of changed filenames, or a callable returning one, which
      is then only called when needed

    Returns
    -------
    A tuple of where the change was found and whether there was one.

    """
    location, significant = has_significant_changes(old, new)
    if significant:
        logging.info(_('The index had a significant change at JSON path {path!r}')
                     .format(path=location))
        return location, True

    logging.info(_("The index files didn't change significantly"))
    if callable(changed_files):
        try:
            changed_files = changed_files()
        except MetascoopException as e:
            logging.error(_('Getting changed files: {error}').format(error=e))
            changed_files = []

    location = ''
    for fname in changed_files:
        if not is_index_file(fname):
            logging.info(_('File {path!r} is a significant change').format(path=fname))
            if not location:
                location = fname

    if location:
        return location, True
    logging.info(_("It doesn't look like there were any relevant changes"))
    return '', False
