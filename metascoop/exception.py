#!/usr/bin/env python3
#
# exception.py - part of metascoop
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


class MetascoopException(Exception):
    def __init__(self, value=None, detail=None):
        super().__init__()
        self.value = value
        self.detail = detail

    def shortened_detail(self):
        if len(self.detail) < 16000:
            return self.detail
        return '[...]\n' + self.detail[-16000:]

    def __str__(self):
        if self.value is None:
            ret = __name__
        else:
            ret = str(self.value)
        if self.detail:
            ret += (
                "\n==== detail begin ====\n%s\n==== detail end ===="
                % ''.join(self.detail).strip()
            )
        return ret


class InvalidRepoUrl(MetascoopException):
    pass


class InvalidRegistryEntry(MetascoopException):
    """An apps.yaml entry, or the whole document, could not be used."""

    def __init__(self, value=None, detail=None, key=None):
        super().__init__(value, detail)
        self.key = key


class IndexReadFailure(MetascoopException):
    pass


class MetadataWriteFailure(MetascoopException):
    pass


class ConfigurationException(MetascoopException):
    pass
