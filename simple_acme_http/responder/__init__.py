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
"""Answers the ACME server's HTTP-01 validation requests with the published challenge content."""
import logging
import re
import threading

logger = logging.getLogger(__name__)

# Constants
CHALLENGE_PATH = re.compile(r'^/?\.well-known/acme-challenge/(?P<token>[A-Za-z0-9_-]+)$')


class ChallengeResponder:
    """
    A thread-safe map of HTTP-01 challenge tokens to their expected file content. Verification publishes content here
    before asking the ACME server to validate, and the web server answers `/.well-known/acme-challenge/<token>`
    requests from it. The object is itself a WSGI application that can be mounted by any WSGI server.
    """

    def __init__(self) -> None:
        self._contents = {}
        self._lock = threading.Lock()

    @staticmethod
    def token(path: str):
        """Extracts the token from a `.well-known/acme-challenge/<token>` path, or None if it doesn't match."""
        match = CHALLENGE_PATH.match(path or '')
        return match.group('token') if match else None

    def publish(self, filename: str, content: str) -> None:
        """
        Publishes `content` for the challenge at `filename`.

        Args:
            filename (str): The challenge path, e.g. `.well-known/acme-challenge/<token>`.
            content (str): The key authorization the ACME server expects to receive.

        Raises:
            ValueError: When `filename` is not an HTTP-01 challenge path.
        """
        token = self.token(filename)
        if not token:
            raise ValueError(f"'{filename}' is not an HTTP-01 challenge path.")

        with self._lock:
            self._contents[token] = content
        logger.info("Published HTTP-01 challenge '%s'", token)

    def withdraw(self, filename: str) -> bool:
        """Removes the challenge at `filename`. Returns whether anything was published for it."""
        with self._lock:
            removed = self._contents.pop(self.token(filename), None) is not None
        if removed:
            logger.info("Withdrew HTTP-01 challenge '%s'", self.token(filename))
        return removed

    def lookup(self, path: str):
        """Returns the content published for the challenge at `path`, or None."""
        token = self.token(path)
        with self._lock:
            return self._contents.get(token) if token else None

    def respond(self, path: str) -> tuple:
        """
        Answers a request for `path`.

        Returns:
            tuple: The HTTP status code and body. `(200, content)` for a published challenge, `(404, '')` otherwise.
        """
        content = self.lookup(path)
        if content is None:
            return 404, ''

        return 200, content

    def __len__(self) -> int:
        with self._lock:
            return len(self._contents)

    def __call__(self, environ: dict, start_response):
        """WSGI entry point serving published challenges as plain text."""
        status, content = self.respond(environ.get('PATH_INFO', ''))
        body = content.encode()
        start_response(
            '200 OK' if status == 200 else '404 Not Found',
            [('Content-Type', 'text/plain'), ('Content-Length', str(len(body)))]
        )
        return [body]


# The challenge responder shared by every Certificate of this process unless one is given explicitly
default_responder = ChallengeResponder()
