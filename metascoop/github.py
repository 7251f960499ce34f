#!/usr/bin/env python3
#
# github.py - part of metascoop
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

import json
import urllib.parse
import urllib.request

GITHUB_API_URL = 'https://api.github.com'
RELEASES_PER_PAGE = 100


def get_api_url(host):
    """Get the REST API base URL for github.com or a GitHub Enterprise host."""
    if not host or host == 'github.com':
        return GITHUB_API_URL
    return f'https://{host}/api/v3'


class GithubApi:
    """Wrapper for the few calls to the GitHub Json/REST API that metascoop needs.

    This is not intended to be a general API wrapper.  It returns the
    decoded JSON of the repo and its releases, the decisions about
    what to do with them are made elsewhere.

    With the GitHub API, the token is optional, but it has pretty
    severe rate limiting.

    """

    def __init__(self, api_token, repo_path, api_url=GITHUB_API_URL):
        self._api_token = api_token
        self._api_url = api_url.rstrip('/')
        if repo_path.startswith("https://github.com/"):
            self._repo_path = repo_path[19:]
        else:
            self._repo_path = repo_path

    @classmethod
    def from_repo_info(cls, api_token, repo):
        return cls(api_token, f'{repo.author}/{repo.name}', get_api_url(repo.host))

    def _headers(self, accept="application/vnd.github+json"):
        h = {
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._api_token:
            h["Authorization"] = f"Bearer {self._api_token}"
        return h

    def _req(self, url, data=None):
        return urllib.request.Request(
            url,
            headers=self._headers(),
            data=data,
        )

    def _get_json(self, url):
        req = self._req(url)
        with urllib.request.urlopen(req) as resp:  # nosec CWE-22 disable bandit warning
            return json.load(resp)

    def get_repo(self):
        """Get the repo description, license and the like."""
        return self._get_json(f"{self._api_url}/repos/{self._repo_path}")

    def get_description_and_license(self):
        """Get the repo description and the SPDX ID of its license.

        Either can be None.  GitHub reports licenses it cannot identify
        as "NOASSERTION", those are also returned as None.

        """
        data = self.get_repo()
        description = data.get('description')
        license_id = None
        if data.get('license'):
            license_id = data['license'].get('spdx_id')
            if license_id == 'NOASSERTION':
                license_id = None
        return description, license_id

    def list_releases(self):
        """List all releases of this repo, newest first, following pagination."""
        releases = []
        page = 1
        while True:
            query = urllib.parse.urlencode({'per_page': RELEASES_PER_PAGE, 'page': page})
            batch = self._get_json(
                f"{self._api_url}/repos/{self._repo_path}/releases?{query}"
            )
            releases.extend(batch)
            if len(batch) < RELEASES_PER_PAGE:
                break
            page += 1
        return releases

    def get_asset_url(self, asset_id):
        return f"{self._api_url}/repos/{self._repo_path}/releases/assets/{asset_id}"

    def get_asset_download_headers(self):
        """Headers that make the asset URL redirect to the binary download."""
        return self._headers(accept="application/octet-stream")
