#!/usr/bin/env python3
#
# readme.py - part of metascoop
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

import logging
from pathlib import Path

from . import _
from .exception import MetascoopException

TABLE_START = '<!-- This table is auto-generated. Do not edit -->'
TABLE_END = '<!-- end apps table -->'

TABLE_HEADER = """
| Icon | Name | Description | Version |
| --- | --- | --- | --- |
"""

TABLE_ROW = (
    '| <a href="{sourceCode}"><img src="fdroid/repo/icons/{packageName}.{suggestedVersionCode}.png"'
    ' alt="{name} icon" width="36px" height="36px"></a>'
    ' | [**{name}**]({sourceCode}) | {summary} | {suggestedVersionName} ({suggestedVersionCode}) |\n'
)

TABLE_FIELDS = ('sourceCode', 'packageName', 'suggestedVersionCode', 'name',
                'summary', 'suggestedVersionName')


def _escape_cell(value):
    if value is None:
        return ''
    return str(value).replace('|', '\\|').replace('\n', ' ')


def make_apps_table(apps):
    """Render the Markdown table of apps from the "apps" section of the index."""
    table = TABLE_HEADER
    for app in apps:
        table += TABLE_ROW.format(**{k: _escape_cell(app.get(k)) for k in TABLE_FIELDS})
    return table


def regenerate_readme(readme_path, index):
    """Replace the apps table in the README between its marker comments.

    Raises
    ------
    MetascoopException
        when the README cannot be read or written, or lacks the markers.

    """
    readme_path = Path(readme_path)
    try:
        content = readme_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise MetascoopException(
            _('Failed to read README {path}').format(path=readme_path), str(e)
        ) from e

    table_start_idx = content.find(TABLE_START)
    if table_start_idx < 0:
        raise MetascoopException(
            _('Cannot find table start in {path}').format(path=readme_path)
        )
    table_end_idx = content.find(TABLE_END, table_start_idx)
    if table_end_idx < 0:
        raise MetascoopException(
            _('Cannot find table end in {path}').format(path=readme_path)
        )

    new_content = (
        content[:table_start_idx]
        + TABLE_START
        + make_apps_table(index.get('apps') or [])
        + content[table_end_idx:]
    )
    if new_content != content:
        try:
            readme_path.write_text(new_content, encoding='utf-8')
        except OSError as e:
            raise MetascoopException(
                _('Failed to write README {path}').format(path=readme_path), str(e)
            ) from e
        logging.info(_('Updated the apps table in {path}').format(path=readme_path))
