#!/usr/bin/env python3
#
# sync.py - part of metascoop
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

"""Download new releases from GitHub and update the F-Droid repo with them.

The steps are:

1. read apps.yaml and the current index-v1.json
2. for every app, download the APK of every eligible release
3. run `fdroid update --create-metadata` to index the new APKs
4. fill in the metadata files from apps.yaml and GitHub
5. run `fdroid update` again so the metadata ends up in the index
6. regenerate the apps table in the README
7. decide whether anything changed that is worth publishing

The exit code is 1 if there was any error, 2 if there were no
significant changes and 0 otherwise.

"""

import logging
import os
import shutil
import sys
from argparse import ArgumentParser
from pathlib import Path

from . import _
from . import apps as apps_module
from . import common
from . import index
from . import metadata
from . import net
from . import readme
from . import vcs
from .exception import MetadataWriteFailure, MetascoopException
from .github import GithubApi

EXIT_ERROR = 1
EXIT_NO_SIGNIFICANT_CHANGES = 2

config = None
options = None


def run_fdroid_update(fdroid_dir, create_metadata=False):
    """Run `fdroid update` in the F-Droid repo root.

    Raises
    ------
    MetascoopException
        when the command fails, the whole run cannot continue then.

    """
    fdroid = common.get_config()['fdroid']
    commands = [fdroid, 'update', '--pretty']
    if create_metadata:
        commands.append('--create-metadata')
    commands.append('--delete-unknown')
    p = common.MetascoopPopen(commands, cwd=str(fdroid_dir))
    if p.returncode != 0:
        raise MetascoopException(
            _('Error while running "{command}"').format(command=' '.join(commands)),
            p.output,
        )


def lookup_repo_facts(app, api):
    """Take the summary and license from the GitHub repo, when it has them."""
    description, license_id = api.get_description_and_license()
    if description:
        app.summary = description
    if license_id:
        app.license = license_id
    logging.info(_('Data from GitHub: summary={summary!r}, license={license!r}')
                 .format(summary=app.summary, license=app.license))


def process_release(app, release, repo_dir, api, download=net.download_file, retries=3):
    """Download the APK of one release, if it is eligible and not there yet.

    Returns
    -------
    A tuple of the target APK filename and the AppInfo copy carrying
    the release notes, or (None, None) when the release was skipped.

    Raises
    ------
    OSError or requests.RequestException
        when the download fails.

    """
    eligible, reason = apps_module.is_release_eligible(release)
    if not eligible:
        logging.info(reason)
        return None, None

    tag_name = release['tag_name']
    logging.info(_('Working on release with tag name {tag!r}').format(tag=tag_name))

    apk = apps_module.find_apk_release(release)
    if apk is None:
        logging.info(_("Couldn't find a release asset with extension \".apk\""))
        return None, None

    apk_name = apps_module.generate_release_filename(app.app_name(), tag_name)
    logging.info(_('Target APK name: {name}').format(name=apk_name))

    release_app = app.copy()
    release_app.release_description = release.get('body') or ''
    if release_app.release_description:
        logging.info(_('Release notes: {notes}').format(notes=release_app.release_description))

    app_target_path = Path(repo_dir) / apk_name
    if app_target_path.exists():
        logging.info(_('Already have APK for version {tag!r} at {path}')
                     .format(tag=tag_name, path=app_target_path))
        return apk_name, release_app

    logging.info(_('Downloading APK {asset!r} from release {tag!r} to {path}')
                 .format(asset=apk['name'], tag=tag_name, path=app_target_path))
    download(api.get_asset_url(apk['id']), app_target_path,
             headers=api.get_asset_download_headers(), retries=retries)
    logging.info(_('Successfully downloaded app for version {tag!r}').format(tag=tag_name))
    return apk_name, release_app


def fetch_releases(apps, repo_dir, api_token=None, github_factory=GithubApi.from_repo_info,
                   download=net.download_file, retries=3):
    """Download the APKs of all apps.

    Returns
    -------
    A tuple of a dict mapping APK filenames to the AppInfo of their
    release, and whether there was an error.

    """
    apk_info_map = dict()
    have_error = False
    for app in apps:
        print(_('App: {author}/{name}').format(author=app.author_name(), name=app.app_name()))
        repo = apps_module.repo_info(app.git)
        logging.info(_('Looking up {author}/{name} on GitHub').format(author=repo.author, name=repo.name))
        api = github_factory(api_token, repo)

        try:
            lookup_repo_facts(app, api)
        except (OSError, ValueError) as e:
            logging.error(_('Error while looking up repo: {error}').format(error=e))

        try:
            releases = api.list_releases()
        except (OSError, ValueError) as e:
            logging.error(_('Error while listing repo releases for {url!r}: {error}')
                          .format(url=app.git, error=e))
            have_error = True
            continue
        logging.info(_('Received {count} releases').format(count=len(releases)))

        for release in releases:
            with common.log_group(_('Release {tag}').format(tag=release.get('tag_name') or '')):
                try:
                    apk_name, release_app = process_release(app, release, repo_dir, api,
                                                            download=download, retries=retries)
                except (OSError, ValueError) as e:
                    logging.error(_('Error while downloading app: {error}').format(error=e))
                    have_error = True
                    continue
                if apk_name is not None:
                    apk_info_map[apk_name] = release_app
    return apk_info_map, have_error


def update_app_metadata(metadata_path, fdroid_index, apk_info_map, metadata_dir,
                        clone=vcs.clone_repo, max_summary_length=metadata.MAX_SUMMARY_LENGTH,
                        screenshot_extensions=None):
    """Fill in one metadata file, its changelog and its screenshots.

    Returns
    -------
    The phoneScreenshots directory that was filled, or None.  It only
    needs to exist until `fdroid update` has copied the screenshots
    into the repo.

    Raises
    ------
    MetascoopException
        when the metadata file cannot be read or written.

    """
    package_name = Path(metadata_path).stem
    logging.info(_('Working on {name!r}').format(name=package_name))

    meta = metadata.read_meta_file(metadata_path)

    latest_package = fdroid_index.find_latest_package(package_name)
    if latest_package is None:
        return None
    logging.info(_('The latest version is {name!r} with versionCode {code}')
                 .format(name=latest_package['versionName'], code=latest_package['versionCode']))

    apk_info = apk_info_map.get(latest_package.get('apkName'))
    if apk_info is None:
        logging.info(_('Cannot find apk info for {name!r}').format(name=latest_package.get('apkName')))
        return None

    metadata.apply_app_info(meta, apk_info, latest_package, max_summary_length)
    metadata.write_meta_file(metadata_path, meta)
    logging.info(_('Updated metadata file {path}').format(path=metadata_path))

    package_name = latest_package.get('packageName') or package_name
    metadata.write_changelog(metadata_dir, package_name, latest_package['versionCode'],
                             apk_info.release_description)

    logging.info(_('Cloning git repository to search for screenshots'))
    try:
        git_repo_path = clone(apk_info.git)
    except MetascoopException as e:
        logging.error(_('Cloning git repo from {url!r}: {error}').format(url=apk_info.git, error=e))
        return None
    try:
        repo_metadata = apps_module.find_metadata(git_repo_path, screenshot_extensions)
        logging.info(_('Found {count} screenshots').format(count=len(repo_metadata['screenshots'])))
        return metadata.copy_screenshots(repo_metadata['screenshots'], metadata_dir, package_name)
    except OSError as e:
        logging.error(_('Finding metadata in git repo {path}: {error}').format(path=git_repo_path, error=e))
        return None
    finally:
        shutil.rmtree(git_repo_path, ignore_errors=True)


def fill_metadata(fdroid_index, apk_info_map, metadata_dir, clone=vcs.clone_repo,
                  max_summary_length=metadata.MAX_SUMMARY_LENGTH, screenshot_extensions=None):
    """Update all metadata files that belong to a downloaded release.

    Returns
    -------
    A tuple of the list of screenshot directories to remove after the
    next `fdroid update`, and whether there was an error.

    """
    to_remove_paths = []
    have_error = False
    for metadata_path in sorted(Path(metadata_dir).glob('*.yml')):
        if not metadata_path.is_file():
            continue
        with common.log_group(metadata_path.stem):
            try:
                screenshots_path = update_app_metadata(
                    metadata_path, fdroid_index, apk_info_map, metadata_dir,
                    clone=clone, max_summary_length=max_summary_length,
                    screenshot_extensions=screenshot_extensions,
                )
            except MetadataWriteFailure as e:
                logging.error(_('Writing meta file {path}: {error}').format(path=metadata_path, error=e))
                have_error = True
                continue
            except (MetascoopException, OSError) as e:
                logging.error(_('Updating meta file {path}: {error}').format(path=metadata_path, error=e))
                have_error = True
                continue
            if screenshots_path is not None:
                to_remove_paths.append(screenshots_path)
    return to_remove_paths, have_error


def sync(apps_path, repo_dir, api_token=None, debug=False, readme_path=None,
         github_factory=GithubApi.from_repo_info, download=net.download_file,
         indexer=run_fdroid_update, clone=vcs.clone_repo,
         changed_files=vcs.get_changed_file_names):
    """Run the whole update of the repo.

    All the network, git and `fdroid` access goes through the
    collaborator arguments, so they can be swapped out.

    Returns
    -------
    A tuple of whether there was an error, where a significant change
    was found and whether there was one.

    Raises
    ------
    InvalidRegistryEntry
        when apps.yaml cannot be read at all
    IndexReadFailure
        when index-v1.json is missing or broken
    MetascoopException
        when `fdroid update` fails

    """
    thisconfig = common.get_config()
    repo_dir = Path(repo_dir)
    fdroid_dir = common.get_fdroid_dir(repo_dir)
    metadata_dir = fdroid_dir / 'metadata'
    index_path = repo_dir / thisconfig['index_name']
    if readme_path is None:
        readme_path = fdroid_dir.parent / 'README.md'

    with common.log_group(_('Initializing')):
        apps, registry_errors = apps_module.parse_app_file(apps_path)
        have_error = bool(registry_errors)
        initial_index = index.read_index(index_path)
        os.makedirs(repo_dir, exist_ok=True)

    apk_info_map, fetch_error = fetch_releases(
        apps, repo_dir, api_token=api_token, github_factory=github_factory,
        download=download, retries=thisconfig['download_retries'],
    )
    have_error = have_error or fetch_error

    if not debug:
        with common.log_group(_('F-Droid: Creating metadata stubs')):
            indexer(fdroid_dir, create_metadata=True)

    print(_('Filling in metadata'))
    fdroid_index = index.read_index(index_path)
    to_remove_paths, metadata_error = fill_metadata(
        fdroid_index, apk_info_map, metadata_dir, clone=clone,
        max_summary_length=thisconfig['char_limits']['summary'],
        screenshot_extensions=thisconfig['screenshot_extensions'],
    )
    have_error = have_error or metadata_error

    if not debug:
        with common.log_group(_('F-Droid: Reading updated metadata')):
            indexer(fdroid_dir, create_metadata=False)

    with common.log_group(_('Assessing changes')):
        fdroid_index = index.read_index(index_path)

        for rm_path in to_remove_paths:
            shutil.rmtree(rm_path, ignore_errors=True)

        try:
            readme.regenerate_readme(readme_path, fdroid_index)
        except MetascoopException as e:
            logging.error(_('Error generating {path}: {error}').format(path=readme_path, error=e))

        change_path, significant = index.assess_changes(
            initial_index, fdroid_index, lambda: changed_files(repo_dir)
        )

    return have_error, change_path, significant


def main():
    global config, options

    parser = ArgumentParser()
    common.setup_global_opts(parser)
    parser.add_argument("-a", "--apps-path", default=None,
                        help=_("Path to apps.yaml file"))
    parser.add_argument("-r", "--repo-dir", default=None,
                        help=_('Path to fdroid "repo" directory'))
    parser.add_argument("-p", "--personal-access-token", default=None,
                        help=_("GitHub personal access token, defaults to $GITHUB_TOKEN"))
    parser.add_argument("--readme", default=None,
                        help=_("Path to the README.md with the apps table"))
    parser.add_argument("-d", "--debug", action="store_true", default=False,
                        help=_("Debug mode won't run the fdroid command"))
    options = common.parse_args(parser)

    config = common.read_config()
    apps_path = options.apps_path or config['apps_path']
    repo_dir = options.repo_dir or config['repo_dir']
    api_token = options.personal_access_token or config['github_api_token']
    readme_path = options.readme or config['readme_path']

    have_error, change_path, significant = sync(
        apps_path, repo_dir, api_token=api_token, debug=options.debug, readme_path=readme_path
    )

    if significant:
        logging.info(_('Significant change found at {path!r}').format(path=change_path))
    if have_error:
        logging.error(_('There were errors during the update, see above'))
        sys.exit(EXIT_ERROR)
    if not significant:
        sys.exit(EXIT_NO_SIGNIFICANT_CHANGES)


if __name__ == "__main__":
    main()
