# Copyright 2025 Jared Hendrickson
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests the HTTP-01 challenge responder of the simple_acme_http package."""
import threading
import unittest

from simple_acme_http.responder import ChallengeResponder
from simple_acme_http.tests import TEST_CHALLENGE_CONTENT, TEST_CHALLENGE_PATH


class TestChallengeResponder(unittest.TestCase):
    """Tests publishing, serving and withdrawing HTTP-01 challenge content."""

    def setUp(self):
        """Creates an empty responder for each test."""
        self.responder = ChallengeResponder()

    def test_token(self):
        """Checks that tokens are only extracted from challenge paths."""
        token = TEST_CHALLENGE_PATH.rsplit("/", 1)[-1]

        self.assertEqual(ChallengeResponder.token(TEST_CHALLENGE_PATH), token)
        self.assertEqual(ChallengeResponder.token("/" + TEST_CHALLENGE_PATH), token)
        self.assertIsNone(ChallengeResponder.token("/.well-known/acme-challenge/"))
        self.assertIsNone(ChallengeResponder.token("/.well-known/acme-challenge/../etc/passwd"))
        self.assertIsNone(ChallengeResponder.token("/index.html"))
        self.assertIsNone(ChallengeResponder.token(None))

    def test_publish_and_respond(self):
        """Checks that published content is served for its challenge path."""
        self.responder.publish(TEST_CHALLENGE_PATH, TEST_CHALLENGE_CONTENT)

        self.assertEqual(self.responder.respond("/" + TEST_CHALLENGE_PATH), (200, TEST_CHALLENGE_CONTENT))
        self.assertEqual(len(self.responder), 1)

    def test_respond_unknown(self):
        """Checks that paths without published content are answered with 404."""
        self.assertEqual(self.responder.respond("/" + TEST_CHALLENGE_PATH), (404, ""))
        self.assertEqual(self.responder.respond("/index.html"), (404, ""))

    def test_publish_invalid_path(self):
        """Checks that content can only be published for challenge paths."""
        with self.assertRaises(ValueError):
            self.responder.publish("index.html", TEST_CHALLENGE_CONTENT)

    def test_withdraw(self):
        """Checks that withdrawn content is no longer served."""
        self.responder.publish(TEST_CHALLENGE_PATH, TEST_CHALLENGE_CONTENT)

        self.assertTrue(self.responder.withdraw(TEST_CHALLENGE_PATH))
        self.assertFalse(self.responder.withdraw(TEST_CHALLENGE_PATH))
        self.assertIsNone(self.responder.lookup(TEST_CHALLENGE_PATH))
        self.assertEqual(len(self.responder), 0)

    def test_wsgi(self):
        """Checks that the responder serves challenges as a WSGI application."""
        self.responder.publish(TEST_CHALLENGE_PATH, TEST_CHALLENGE_CONTENT)
        responses = []

        def start_response(status, headers):
            responses.append((status, dict(headers)))

        body = self.responder({"PATH_INFO": "/" + TEST_CHALLENGE_PATH}, start_response)
        self.assertEqual(b"".join(body), TEST_CHALLENGE_CONTENT.encode())
        self.assertEqual(responses[0][0], "200 OK")
        self.assertEqual(responses[0][1]["Content-Type"], "text/plain")

        body = self.responder({"PATH_INFO": "/missing"}, start_response)
        self.assertEqual(b"".join(body), b"")
        self.assertEqual(responses[1][0], "404 Not Found")

    def test_concurrent_publish(self):
        """Checks that challenges published from several threads are all kept."""
        paths = [f".well-known/acme-challenge/token{index}" for index in range(20)]
        threads = [threading.Thread(target=self.responder.publish, args=(path, path)) for path in paths]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(self.responder), 20)
        for path in paths:
            self.assertEqual(self.responder.lookup(path), path)


if __name__ == "__main__":
    unittest.main()
