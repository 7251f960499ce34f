#!/usr/bin/env python3
#
# vcs.py - part of metascoop
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

"""The git operations metascoop needs, done with GitPython."""

import logging
import os
import shutil
import tempfile

import git

from . import _
from .exception import MetascoopException


def clone_repo(git_url):
    """Clone a source repo into a new temporary directory.

    Only the latest commit is fetched, that is enough to search the
    working tree.  The caller owns the returned directory and has to
    remove it.

    Raises
    ------
    MetascoopException
        when git fails, the temporary directory is removed then.

    """
    dir_path = tempfile.mkdtemp(prefix='metascoop-')
    logging.debug(_('Cloning {url} into {path}').format(url=git_url, path=dir_path))
    try:
        git.Repo.clone_from(git_url, dir_path, depth=1)
    except git.exc.GitCommandError as e:
        shutil.rmtree(dir_path, ignore_errors=True)
        raise MetascoopException(
            _('Git clone of {url} failed').format(url=git_url), e.stderr
        ) from e
    return dir_path


def get_changed_file_names(repo_path):
    """List the files in repo_path that differ from the last commit.

    The names are relative to the top of the git repo that contains
    repo_path, like `git diff --name-only` prints them.

    """
    repo_path = os.path.abspath(repo_path)
    try:
        repo = git.Repo(repo_path, search_parent_directories=True)
        output = repo.git.diff('--name-only', '--', repo_path)
    # See https://github.com/PyCQA/pylint/issues/2856 .
    # pylint: disable-next=no-member
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError,
            git.exc.GitCommandError) as e:
        raise MetascoopException(
            _('Git diff in {path} failed').format(path=repo_path), str(e)
        ) from e
    return [line.strip() for line in output.splitlines() if line.strip()]
