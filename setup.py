#!/usr/bin/env python3

import subprocess
import sys

from setuptools import Command, setup


class VersionCheckCommand(Command):
    """Make sure git tag and version match before uploading."""

    user_options = []

    def initialize_options(self):
        """Abstract method that is required to be overwritten."""

    def finalize_options(self):
        """Abstract method that is required to be overwritten."""

    def run(self):
        version = self.distribution.get_version()
        version_git = (
            subprocess.check_output(['git', 'describe', '--tags', '--always'])
            .rstrip()
            .decode('utf-8')
        )
        if version != version_git:
            print(
                'ERROR: Release version mismatch! setup.py (%s) does not match git (%s)'
                % (version, version_git)
            )
            sys.exit(1)
        print('Upload using: twine upload --sign dist/metascoop-%s.tar.gz' % version)


with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='metascoop',
    version='1.0.0',
    description='Keep an F-Droid repo in sync with GitHub releases',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='The metascoop authors',
    license='AGPL-3.0',
    packages=['metascoop'],
    entry_points={'console_scripts': ['metascoop=metascoop.__main__:main']},
    python_requires='>=3.9',
    cmdclass={
        'versioncheck': VersionCheckCommand,
    },
    install_requires=[
        'GitPython',
        'PyYAML',
        'ruamel.yaml >= 0.15',
        'requests >= 2.5.2, != 2.11.0, != 2.12.2, != 2.18.0',
    ],
    # fdroidserver is run as an external `fdroid` command, it does not
    # need to be installed into the same environment
    extras_require={
        'fdroid': ['fdroidserver'],
        'docs': [
            'sphinx',
            'numpydoc',
            'pydata_sphinx_theme',
            'pydocstyle',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: GNU Affero General Public License v3 or later (AGPLv3+)',
        'Operating System :: POSIX',
        'Operating System :: Unix',
        'Topic :: Utilities',
    ],
)
