#!/usr/bin/env python3
#
# readapps.py - part of metascoop
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
import sys
from argparse import ArgumentParser

from . import _
from . import apps
from . import common


def main():
    parser = ArgumentParser()
    common.setup_global_opts(parser)
    parser.add_argument("-a", "--apps-path", default=None,
                        help=_("Path to apps.yaml file"))
    options = common.parse_args(parser)
    config = common.read_config()

    apps_path = options.apps_path or config['apps_path']
    app_list, errors = apps.parse_app_file(apps_path)
    for app in sorted(app_list, key=lambda a: a.key_name.lower()):
        repo = apps.repo_info(app.git)
        logging.info(_('{key}: {author}/{name} on {host}')
                     .format(key=app.key_name, author=repo.author, name=repo.name, host=repo.host))
    if errors:
        logging.error(_('{count} invalid entries in {path}').format(count=len(errors), path=apps_path))
        sys.exit(1)
    logging.debug(_('Finished'))


if __name__ == "__main__":
    main()
