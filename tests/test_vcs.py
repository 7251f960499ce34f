#!/usr/bin/env python3

import os
import shutil
import unittest
from pathlib import Path

from git import Repo

from metascoop import vcs
from metascoop.exception import MetascoopException
from .testcommon import mkdtemp, TmpCwd


class VCSTest(unittest.TestCase):
    def setUp(self):
        self._td = mkdtemp()
        self.testdir = Path(self._td.name)

    def tearDown(self):
        self._td.cleanup()

    def _make_repo(self, name, files):
        repo = Repo.init(self.testdir / name)
        for path, content in files.items():
            f = Path(repo.working_dir) / path
            f.parent.mkdir(parents=True, exist_ok=True)
            f.write_text(content)
        repo.index.add([os.path.join(repo.working_dir, p) for p in files])
        repo.index.commit("initial commit")
        return repo

    def test_clone_repo(self):
        upstream = self._make_repo(
            'upstream', {'README.md': 'Hello World!', 'fastlane/screenshots/1.png': 'png'}
        )
        cloned = vcs.clone_repo('file://' + upstream.working_dir)
        try:
            self.assertTrue(os.path.basename(cloned).startswith('metascoop-'))
            self.assertEqual('Hello World!', (Path(cloned) / 'README.md').read_text())
            self.assertTrue((Path(cloned) / 'fastlane' / 'screenshots' / '1.png').exists())
            self.assertEqual(upstream.head.commit.hexsha, Repo(cloned).head.commit.hexsha)
        finally:
            shutil.rmtree(cloned, ignore_errors=True)

    def test_clone_repo_failure(self):
        with self.assertRaises(MetascoopException):
            vcs.clone_repo('file://' + str(self.testdir / 'does-not-exist'))

    def test_get_changed_file_names(self):
        repo = self._make_repo(
            'checkout',
            {
                'README.md': 'readme',
                'fdroid/repo/index-v1.json': '{}',
                'fdroid/repo/app.apk': 'apk',
                'fdroid/metadata/org.example.app.yml': 'Name: App\n',
            },
        )
        workdir = Path(repo.working_dir)
        repo_dir = workdir / 'fdroid' / 'repo'
        self.assertEqual([], vcs.get_changed_file_names(repo_dir))

        (repo_dir / 'index-v1.json').write_text('{"repo": {}}')
        (workdir / 'fdroid' / 'metadata' / 'org.example.app.yml').write_text('Name: New\n')
        (workdir / 'README.md').write_text('new readme')
        (repo_dir / 'untracked.apk').write_text('apk')

        self.assertEqual(['fdroid/repo/index-v1.json'], vcs.get_changed_file_names(repo_dir))
        self.assertEqual(
            ['fdroid/metadata/org.example.app.yml', 'fdroid/repo/index-v1.json'],
            sorted(vcs.get_changed_file_names(workdir / 'fdroid')),
        )

    def test_get_changed_file_names_relative_path(self):
        repo = self._make_repo('checkout', {'repo/a.txt': 'a'})
        (Path(repo.working_dir) / 'repo' / 'a.txt').write_text('b')
        with TmpCwd(repo.working_dir):
            self.assertEqual(['repo/a.txt'], vcs.get_changed_file_names('repo'))

    def test_get_changed_file_names_not_a_repo(self):
        plain = self.testdir / 'plain'
        plain.mkdir()
        with self.assertRaises(MetascoopException):
            vcs.get_changed_file_names(plain)
