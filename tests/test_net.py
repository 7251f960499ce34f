#!/usr/bin/env python3

import os
import random
import socket
import tempfile
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests
from requests.exceptions import ChunkedEncodingError

from metascoop import net


class RetryServer:
    """A stupid simple HTTP server that can fail to connect.

    Proxy settings via environment variables can interfere with this
    test. The requests library will automatically pick up proxy
    settings from environment variables. Proxy settings can force the
    local connection over the proxy, which might not support that,
    then this fails with an error like 405 or others.

    """

    def __init__(self, port=None, failures=3):
        self.port = port
        if self.port is None:
            self.port = random.randint(1024, 65535)  # nosec B311
        self.failures = failures
        self.stop_event = threading.Event()
        threading.Thread(target=self.run_fake_server).start()

    def stop(self):
        self.stop_event.set()

    def run_fake_server(self):
        addr = ('localhost', self.port)
        # localhost might not be a valid name for all families, use the first available
        family = socket.getaddrinfo(addr[0], addr[1], type=socket.SOCK_STREAM)[0][0]
        server_sock = socket.create_server(addr, family=family)
        server_sock.listen(5)
        server_sock.settimeout(5)
        time.sleep(0.001)  # wait for it to start

        while not self.stop_event.is_set():
            self.failures -= 1
            conn = None
            try:
                conn, address = server_sock.accept()
                conn.settimeout(5)
            except TimeoutError:
                break
            if self.failures > 0:
                conn.close()
                continue
            conn.recv(8192)  # request ignored
            self.reply = b"""HTTP/1.1 200 OK
                Date: Mon, 26 Feb 2024 09:00:14 GMT
                Connection: close
                Content-Type: application/vnd.android.package-archive

                not really an APK
                """
            self.reply = self.reply.replace(b'                ', b'')  # dedent
            conn.sendall(self.reply)
            conn.shutdown(socket.SHUT_RDWR)
            conn.close()

            self.stop_event.wait(timeout=1)
        server_sock.shutdown(socket.SHUT_RDWR)
        server_sock.close()


class NetTest(unittest.TestCase):
    def setUp(self):
        self._cwd = os.getcwd()
        self.tempdir = tempfile.TemporaryDirectory()
        os.chdir(self.tempdir.name)
        Path('tmp').mkdir()

    def tearDown(self):
        os.chdir(self._cwd)
        self.tempdir.cleanup()

    @patch('requests.Session.get')
    def test_download_file_url_parsing(self, requests_get):
        # pylint: disable=unused-argument
        def _get(url, stream, allow_redirects, headers, timeout):
            return MagicMock()

        requests_get.side_effect = _get
        f = net.download_file('https://github.com/someone/some-app/releases/download/v1/app.apk')
        requests_get.assert_called()
        self.assertTrue(os.path.exists(f))
        self.assertEqual('tmp/app.apk', f)
        self.assertFalse(os.path.exists('tmp/app.apk.tmp'))

    @patch('requests.Session.get')
    def test_download_file_to_local_filename(self, requests_get):
        response = MagicMock()
        response.iter_content.return_value = [b'PK', b'', b'\x03\x04']
        requests_get.return_value = response
        target = Path('repo') / 'Some_App_v1.apk'
        target.parent.mkdir()
        headers = {'Accept': 'application/octet-stream', 'Authorization': 'Bearer faketoken'}
        f = net.download_file(
            'https://api.github.com/repos/someone/some-app/releases/assets/42',
            local_filename=target,
            headers=headers,
        )
        self.assertEqual(str(target), f)
        self.assertEqual(b'PK\x03\x04', target.read_bytes())
        sent_headers = requests_get.call_args[1]['headers']
        self.assertEqual('metascoop', sent_headers['User-Agent'])
        self.assertEqual('application/octet-stream', sent_headers['Accept'])
        self.assertEqual('Bearer faketoken', sent_headers['Authorization'])

    @patch('requests.get')
    def test_download_file_without_retries(self, requests_get):
        requests_get.return_value = MagicMock()
        f = net.download_file('https://example.com/repo/app.apk', retries=0)
        requests_get.assert_called_once()
        self.assertEqual('tmp/app.apk', f)

    @patch('metascoop.net.time.sleep')
    @patch('requests.Session.get')
    def test_download_file_chunked_encoding_error(self, requests_get, sleep):
        broken = MagicMock()
        broken.iter_content.side_effect = ChunkedEncodingError('boom')
        good = MagicMock()
        good.iter_content.return_value = [b'data']
        requests_get.side_effect = [broken, good]
        f = net.download_file('https://example.com/app.apk', retries=1)
        self.assertEqual(b'data', Path(f).read_bytes())
        self.assertEqual(2, requests_get.call_count)
        sleep.assert_called_once()

    @patch('metascoop.net.time.sleep')
    @patch('requests.Session.get')
    def test_download_file_chunked_encoding_error_gives_up(self, requests_get, sleep):
        broken = MagicMock()
        broken.iter_content.side_effect = ChunkedEncodingError('boom')
        requests_get.return_value = broken
        with self.assertRaises(ChunkedEncodingError):
            net.download_file('https://example.com/app.apk', retries=2)
        self.assertEqual(3, requests_get.call_count)
        self.assertEqual([], os.listdir('tmp'))

    @patch('requests.Session.get')
    def test_download_file_connection_lost_leaves_no_tmp_file(self, requests_get):
        for error in (requests.exceptions.ConnectionError('reset'),
                      requests.exceptions.ReadTimeout('timeout')):
            response = MagicMock()

            def _chunks(*args, error=error, **kwargs):
                yield b'PK'
                raise error

            response.iter_content.side_effect = _chunks
            requests_get.return_value = response
            with self.assertRaises(type(error)):
                net.download_file('https://example.com/app.apk')
            self.assertEqual([], os.listdir('tmp'))

    @patch('requests.Session.get')
    def test_download_file_write_error_leaves_no_tmp_file(self, requests_get):
        response = MagicMock()
        response.iter_content.return_value = [b'PK']
        requests_get.return_value = response
        with patch('os.fsync', side_effect=OSError(28, 'No space left on device')):
            with self.assertRaises(OSError):
                net.download_file('https://example.com/app.apk')
        self.assertEqual([], os.listdir('tmp'))

    @patch('requests.Session.get')
    def test_download_file_http_error(self, requests_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('404')
        requests_get.return_value = response
        with self.assertRaises(requests.exceptions.HTTPError):
            net.download_file('https://example.com/app.apk')
        self.assertEqual([], os.listdir('tmp'))

    @patch.dict(os.environ, clear=True)
    def test_download_file_no_git(self):
        with self.assertRaises(requests.exceptions.InvalidSchema):
            net.download_file('git://github.com/')

    @patch.dict(os.environ, clear=True)
    def test_download_file_retries(self):
        server = RetryServer()
        f = net.download_file(f'http://localhost:{server.port}/f.apk')
        # strip the HTTP headers and compare the reply
        self.assertEqual(server.reply.split(b'\n\n')[1], Path(f).read_bytes())
        server.stop()

    @patch.dict(os.environ, clear=True)
    def test_download_file_retries_not_forever(self):
        """The retry logic should eventually exit with an error."""
        server = RetryServer(failures=5)
        with self.assertRaises(requests.exceptions.ConnectionError):
            net.download_file(f'http://localhost:{server.port}/f.apk')
        server.stop()
