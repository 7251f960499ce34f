#!/usr/bin/env python3

import json
import unittest
import unittest.mock

from .testcommon import mock_urlopen
from metascoop import github
from metascoop.apps import RepoIdentity


def _resp(body):
    resp = unittest.mock.MagicMock()
    resp.read.return_value = body
    resp.__enter__.return_value = resp
    return resp


class GithubApiTest(unittest.TestCase):
    def test__init(self):
        api = github.GithubApi('faketoken', 'fakerepopath')
        self.assertEqual(api._api_token, 'faketoken')
        self.assertEqual(api._repo_path, 'fakerepopath')
        self.assertEqual(api._api_url, 'https://api.github.com')

    def test__init_full_url(self):
        api = github.GithubApi(None, 'https://github.com/someone/some-app')
        self.assertEqual(api._repo_path, 'someone/some-app')

    def test_from_repo_info(self):
        api = github.GithubApi.from_repo_info(
            'faketoken', RepoIdentity('someone', 'some-app', 'github.com')
        )
        self.assertEqual(api._repo_path, 'someone/some-app')
        self.assertEqual(api._api_url, 'https://api.github.com')

        api = github.GithubApi.from_repo_info(
            None, RepoIdentity('someone', 'some-app', 'git.example.com')
        )
        self.assertEqual(api._api_url, 'https://git.example.com/api/v3')

    def test_get_api_url(self):
        self.assertEqual('https://api.github.com', github.get_api_url('github.com'))
        self.assertEqual('https://api.github.com', github.get_api_url(''))
        self.assertEqual('https://ghe.example.org/api/v3', github.get_api_url('ghe.example.org'))

    def test__req(self):
        api = github.GithubApi('faketoken', 'fakerepopath')
        r = api._req('https://fakeurl', data='fakedata')
        self.assertEqual(r.full_url, 'https://fakeurl')
        self.assertEqual(r.data, "fakedata")
        self.assertDictEqual(
            r.headers,
            {
                'Accept': 'application/vnd.github+json',
                'Authorization': 'Bearer faketoken',
                'X-github-api-version': '2022-11-28',
            },
        )

    def test__req_without_token(self):
        api = github.GithubApi(None, 'fakerepopath')
        r = api._req('https://fakeurl')
        self.assertNotIn('Authorization', r.headers)

    def test_get_description_and_license(self):
        api = github.GithubApi('faketoken', 'someone/some-app')
        uomock = mock_urlopen(
            body='{"description": "Does things", "license": {"spdx_id": "GPL-3.0-only"}}'
        )
        with unittest.mock.patch("urllib.request.urlopen", uomock):
            result = api.get_description_and_license()
        self.assertEqual(('Does things', 'GPL-3.0-only'), result)
        self.assertEqual(
            'https://api.github.com/repos/someone/some-app',
            uomock.call_args[0][0].full_url,
        )

    def test_get_description_and_license_missing(self):
        api = github.GithubApi('faketoken', 'someone/some-app')
        for body in (
            '{"description": null, "license": null}',
            '{}',
            '{"description": null, "license": {"spdx_id": "NOASSERTION"}}',
        ):
            with unittest.mock.patch("urllib.request.urlopen", mock_urlopen(body=body)):
                self.assertEqual((None, None), api.get_description_and_license())

    def test_list_releases(self):
        api = github.GithubApi('faketoken', 'someone/some-app')
        uomock = mock_urlopen(body='[{"tag_name": "v2"}, {"tag_name": "v1"}]')
        with unittest.mock.patch("urllib.request.urlopen", uomock):
            result = api.list_releases()
        self.assertEqual(['v2', 'v1'], [r['tag_name'] for r in result])
        self.assertEqual(1, uomock.call_count)
        url = uomock.call_args[0][0].full_url
        self.assertTrue(url.startswith('https://api.github.com/repos/someone/some-app/releases?'))
        self.assertIn('per_page=100', url)
        self.assertIn('page=1', url)

    def test_list_releases_paginated(self):
        api = github.GithubApi('faketoken', 'someone/some-app')
        first = [{'tag_name': 'v%d' % i} for i in range(200, 100, -1)]
        second = [{'tag_name': 'v1'}]
        uomock = unittest.mock.Mock(
            side_effect=[_resp(json.dumps(first)), _resp(json.dumps(second))]
        )
        with unittest.mock.patch("urllib.request.urlopen", uomock):
            result = api.list_releases()
        self.assertEqual(101, len(result))
        self.assertEqual('v200', result[0]['tag_name'])
        self.assertEqual('v1', result[-1]['tag_name'])
        self.assertIn('page=2', uomock.call_args[0][0].full_url)

    def test_list_releases_empty(self):
        api = github.GithubApi('faketoken', 'someone/some-app')
        with unittest.mock.patch("urllib.request.urlopen", mock_urlopen(body='[]')):
            self.assertEqual([], api.list_releases())

    def test_asset_download(self):
        api = github.GithubApi('faketoken', 'someone/some-app')
        self.assertEqual(
            'https://api.github.com/repos/someone/some-app/releases/assets/42',
            api.get_asset_url(42),
        )
        headers = api.get_asset_download_headers()
        self.assertEqual('application/octet-stream', headers['Accept'])
        self.assertEqual('Bearer faketoken', headers['Authorization'])
