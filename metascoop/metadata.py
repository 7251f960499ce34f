#!/usr/bin/env python3
#
# metadata.py - part of metascoop
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

"""Fill in the metadata/<packageName>.yml files from apps.yaml and the index.

`fdroid update --create-metadata` creates stub metadata files for every
new APK, with placeholder values like "Unknown" for the License.  This
module overwrites those stubs with what is known from the registry and
from GitHub, without clobbering values that were set by hand when
there is nothing better to put there.

"""

import logging
import os
import shutil
from pathlib import Path

import ruamel.yaml

from . import _
from . import common
from ._yaml import yaml_dumper
from .exception import MetadataWriteFailure, MetascoopException

UNKNOWN_VALUE = 'Unknown'
TRUNCATION_MARKER = '...'
MAX_SUMMARY_LENGTH = 80
DEFAULT_LOCALE = 'en-US'


def read_meta_file(path):
    """Read a metadata file, keeping its order and comments."""
    path = Path(path)
    try:
        with path.open(encoding='utf-8') as fp:
            meta = yaml_dumper.load(fp)
    except (OSError, UnicodeDecodeError, ruamel.yaml.YAMLError) as e:
        raise MetascoopException(
            _("could not parse '{path}'").format(path=path), str(e)
        ) from e
    if meta is None or meta == '':
        meta = ruamel.yaml.comments.CommentedMap()
    if not isinstance(meta, dict):
        raise MetascoopException(
            _("'{path}' has invalid format, it should be a dictionary!").format(path=path)
        )
    return meta


def write_meta_file(path, meta):
    """Write a metadata file, replacing the old one atomically.

    The data is written to a temporary file next to the target first,
    so a failed write never leaves a truncated metadata file behind.

    """
    path = Path(path)
    tmp_path = path.with_name(path.name + '.tmp')
    try:
        with tmp_path.open('w', encoding='utf-8') as fp:
            yaml_dumper.dump(meta, fp)
        os.replace(tmp_path, path)
    except (OSError, ruamel.yaml.YAMLError) as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise MetadataWriteFailure(
            _('Failed to write {path}').format(path=path), str(e)
        ) from e


def set_non_empty(meta, key, value):
    """Set a string field, unless that would blank out a real value.

    An empty value only gets written when the current value is the
    "Unknown" placeholder.

    Returns
    -------
    True if the field was written.

    """
    if value is None:
        value = ''
    if value or meta.get(key) == UNKNOWN_VALUE:
        meta[key] = value
        logging.info(_('Set {key} to {value!r}').format(key=key, value=value))
        return True
    return False


def truncate_summary(summary, max_length=MAX_SUMMARY_LENGTH):
    if len(summary) <= max_length:
        return summary
    summary = summary[:max_length - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
    logging.info(_('Truncated summary to length of {length} (max length)')
                 .format(length=len(summary)))
    return summary


def get_friendly_name(app):
    if app.name:
        return app.name
    return app.app_name()


def apply_app_info(meta, app, package, max_summary_length=MAX_SUMMARY_LENGTH):
    """Merge what is known about an app into its metadata.

    Parameters
    ----------
    meta
      the metadata mapping as read by read_meta_file(), it is modified
      in place
    app
      the AppInfo of the release that produced the package
    package
      the latest package of this app in the index

    """
    set_non_empty(meta, 'AuthorName', app.author_name())
    set_non_empty(meta, 'Name', get_friendly_name(app))
    set_non_empty(meta, 'SourceCode', app.git)
    set_non_empty(meta, 'License', app.license)
    set_non_empty(meta, 'Description', app.description)
    set_non_empty(meta, 'Summary', truncate_summary(app.summary, max_summary_length))

    if app.categories:
        meta['Categories'] = list(app.categories)

    if app.anti_features:
        meta['AntiFeatures'] = ','.join(app.anti_features)

    # the index is the authority on versions, even blank ones
    meta['CurrentVersion'] = package['versionName']
    meta['CurrentVersionCode'] = package['versionCode']
    logging.info(_('Set current version info to versionName={name!r}, versionCode={code}')
                 .format(name=package['versionName'], code=package['versionCode']))
    return meta


def get_localized_dir(metadata_dir, package_name, locale=DEFAULT_LOCALE):
    return Path(metadata_dir) / package_name / locale


def write_changelog(metadata_dir, package_name, version_code, text):
    """Write the release notes as the changelog of a version.

    Returns
    -------
    The path of the changelog, or None when there are no release notes.

    """
    if not text:
        return None
    changelog_path = get_localized_dir(metadata_dir, package_name) / 'changelogs' / '{}.txt'.format(version_code)
    changelog_path.parent.mkdir(parents=True, exist_ok=True)
    changelog_path.write_text(text, encoding='utf-8')
    logging.info(_('Wrote release notes to {path}').format(path=changelog_path))
    return changelog_path


def copy_screenshots(screenshots, metadata_dir, package_name):
    """Move screenshots into phoneScreenshots/, named 1.png, 2.jpg and so on.

    Whatever was in phoneScreenshots/ before is removed first.  A
    screenshot that cannot be moved is logged and skipped, it does not
    use up a number.

    Returns
    -------
    The phoneScreenshots directory.

    """
    screenshots_path = get_localized_dir(metadata_dir, package_name) / 'phoneScreenshots'
    if screenshots_path.exists():
        shutil.rmtree(screenshots_path)

    counter = 1
    for screenshot in screenshots:
        _ignored, extension = common.get_extension(str(screenshot))
        if not extension:
            continue
        new_file_path = screenshots_path / '{}.{}'.format(counter, extension)
        new_file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            common.move_file(screenshot, new_file_path)
        except OSError as e:
            logging.error(_('Moving screenshot file {src} to {dest}: {error}')
                          .format(src=screenshot, dest=new_file_path, error=e))
            continue
        logging.info(_('Wrote screenshot to {path}').format(path=new_file_path))
        counter += 1
    return screenshots_path
