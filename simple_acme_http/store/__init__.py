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
"""Redis write-through store for issued certificates, keyed by domain."""
import logging

import redis
from redis.exceptions import RedisError

from .. import errors
from .. import tools

logger = logging.getLogger(__name__)


class StoredCertificate:
    """A certificate bundle and private key read back from the store."""
    # pylint: disable=too-few-public-methods

    def __init__(self, domain: str, certificate: bytes, key: bytes) -> None:
        self.domain = domain
        self.certificate = certificate
        self.key = key

    @property
    def expires_at(self):
        """The expiry date of the stored certificate."""
        return tools.not_after(self.certificate)


class RedisStore:
    """
    Keeps the certificate bundle of each domain at `<domain>.crt` and its private key at `<domain>.key` so web
    servers sharing the Redis database can load them.
    """

    def __init__(self, connection: redis.Redis) -> None:
        self.connection = connection

    @classmethod
    def from_url(cls, url: str) -> 'RedisStore':
        """Creates a store connected to the Redis database at `url`."""
        return cls(redis.from_url(url))

    @staticmethod
    def keys(domain: str) -> tuple:
        """Returns the Redis keys of the certificate and private key for `domain`."""
        return f"{domain}.crt", f"{domain}.key"

    def save(self, domain: str, certificate: bytes, key: bytes) -> bool:
        """
        Writes the certificate and key for `domain`. Nothing is written unless both are present, so a failed or
        partial attempt never replaces a good stored certificate.

        Returns:
            bool: Whether anything was written.

        Raises:
            simple_acme_http.errors.StoreError: When Redis cannot be written to.
        """
        if not certificate or not key:
            return False

        crt_key, key_key = self.keys(domain)
        logger.info("Saving the certificate for '%s' to Redis", domain)
        try:
            with self.connection.pipeline() as pipe:
                pipe.set(crt_key, certificate)
                pipe.set(key_key, key)
                pipe.execute()
        except RedisError as exc:
            raise errors.StoreError(f"Failed to save the certificate for '{domain}': {exc}") from exc

        return True

    def delete(self, domain: str) -> bool:
        """
        Deletes the certificate and key for `domain`. Deleting a domain with nothing stored does nothing.

        Returns:
            bool: Whether anything was deleted.

        Raises:
            simple_acme_http.errors.StoreError: When Redis cannot be read or written to.
        """
        try:
            if not self.connection.exists(*self.keys(domain)):
                return False

            logger.info("Deleting the certificate for '%s' from Redis", domain)
            self.connection.delete(*self.keys(domain))
        except RedisError as exc:
            raise errors.StoreError(f"Failed to delete the certificate for '{domain}': {exc}") from exc

        return True

    def load(self, domain: str):
        """
        Reads the certificate and key for `domain`.

        Returns:
            simple_acme_http.store.StoredCertificate: The stored certificate, or None unless both the certificate and
                key are stored and non-blank.

        Raises:
            simple_acme_http.errors.StoreError: When Redis cannot be read.
        """
        try:
            certificate, key = self.connection.mget(*self.keys(domain))
        except RedisError as exc:
            raise errors.StoreError(f"Failed to load the certificate for '{domain}': {exc}") from exc

        if not certificate or not key:
            return None

        return StoredCertificate(domain, certificate, key)
