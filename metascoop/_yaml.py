#!/usr/bin/env python3
#
# _yaml.py - part of metascoop
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

"""Standard YAML parsing and dumping for metadata files.

The metadata files in fdroid/metadata/ are first generated by `fdroid
update --create-metadata` and then edited by hand or by metascoop.  They
are read and written in the "round trip" aka "rt" mode so that key order,
comments and fields metascoop does not touch survive a rewrite.

The indenting matches what `fdroid rewritemeta` produces, so running
that tool on a repo maintained by metascoop does not cause churn.

"""

import ruamel.yaml

yaml = ruamel.yaml.YAML(typ='safe')
yaml.version = (1, 2)

yaml_dumper = ruamel.yaml.YAML(typ='rt')
yaml_dumper.indent(mapping=2, sequence=4, offset=2)
yaml_dumper.width = 4096
