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
"""
simple_acme_http is a Python ACME client specifically tailored to the HTTP-01 challenge. It manages the whole life of a
domain's certificate: verifying control of the domain, issuing and renewing the certificate, keeping it in Redis for
web servers to pick up, and revoking it. Although this module is intended for use with Let's Encrypt, it will support
any CA utilizing the ACME v2 protocol.
"""
import datetime
import logging
import random

from . import errors
from . import tools
from .authority import Authority, ACMEAuthority
from .config import Config
from .issuance import Issuer, SignedCertificate
from .polling import RetryPolicy
from .responder import ChallengeResponder, default_responder
from .store import RedisStore, StoredCertificate
from .verification import Verified, Verifier

logging.getLogger(__name__).addHandler(logging.NullHandler())
logger = logging.getLogger(__name__)

# Constants and Variables
UNISSUED = 'unissued'
VERIFYING = 'verifying'
ISSUING = 'issuing'
ISSUED = 'issued'
FAILED = 'failed'
__pdoc__ = {"tests": False}    # Excludes 'tests' submodule from documentation


class Certificate:
    """
    The certificate of a single domain and the operations that obtain, renew, store and revoke it.
    """
    # pylint: disable=too-many-instance-attributes,too-many-arguments

    def __init__(
            self,
            domain: str = None,
            authority: Authority = None,
            config: Config = None,
            store: RedisStore = None,
            responder: ChallengeResponder = None,
            key: bytes = b'',
            certificate: bytes = b''
    ):
        """
        Args:
            domain (str): The domain to request a certificate for.
            authority (simple_acme_http.authority.Authority): The ACME server to request the certificate from.
            config (simple_acme_http.config.Config): Settings for this certificate. Defaults to `Config()`.
            store (simple_acme_http.store.RedisStore): The store issued certificates are written through to. Created
                from `config.redis_url` on first use when not given.
            responder (simple_acme_http.responder.ChallengeResponder): Where HTTP-01 challenge content is published.
                Defaults to the process-wide responder.
            key (bytes): An existing PEM encoded private key to use. A new key is generated on issuance otherwise.
            certificate (bytes): An existing PEM encoded certificate.

        Examples:
            >>> import simple_acme_http
            >>> cert = simple_acme_http.Certificate(
            ...     domain="test.example.com",
            ...     authority=simple_acme_http.ACMEAuthority.connect(directory, account_key),
            ...     config=simple_acme_http.Config(save_to_redis=True)
            ... )
        """
        self.config = config or Config()
        self.responder = responder if responder is not None else default_responder
        self.verify_policy = RetryPolicy.from_config(self.config, 'verify')
        self.issue_policy = RetryPolicy.from_config(self.config, 'issue')
        self.acme_order = None
        self.expires_at = None
        self.renew_after = None
        self.store_error = None
        self.state = UNISSUED
        self._domain = tools.validate_domain(domain) if domain else None
        self._authority = authority
        self._store = store
        self._certificate = b''
        self._intermediaries = b''
        self._key = b''
        self.key = key
        self.certificate = certificate

    @classmethod
    def load(cls, domain: str, store: RedisStore = None, config: Config = None, **kwargs):
        """
        Loads the certificate stored for `domain`.

        Returns:
            simple_acme_http.Certificate: The stored certificate, or None if nothing usable is stored for `domain` (a
                blank or unparseable certificate) or `config.save_to_redis` is disabled.

        Raises:
            simple_acme_http.errors.StoreError: When the store cannot be read.

        Examples:
            >>> cert = simple_acme_http.Certificate.load("test.example.com", config=config)
        """
        obj = cls(domain=domain, store=store, config=config, **kwargs)
        if not obj.config.save_to_redis:
            return None

        stored = obj.store.load(obj.domain)
        if stored is None:
            return None

        # Other writers share the Redis database, so the stored value may not be a certificate at all
        try:
            obj.certificate, obj.intermediaries = tools.split_chain(stored.certificate)
            obj.expires_at = stored.expires_at
        except errors.InvalidCertificate as exc:
            logger.warning("Ignoring the stored certificate for '%s': %s", obj.domain, exc.message)
            return None

        obj.key = stored.key
        obj.renew_after = obj._renewal_date(obj.expires_at)
        obj.state = ISSUED
        return obj

    def get(self) -> 'Certificate':
        """
        Asks the ACME server for a new certificate: verifies the domain, issues the certificate and saves it to the
        store when enabled. Store failures do not undo the issuance, check `store_error` afterwards.

        Returns:
            simple_acme_http.Certificate: This object with its `certificate`, `key` and `expires_at` set.

        Raises:
            simple_acme_http.errors.VerificationError: When the domain could not be verified. Nothing is issued.
            simple_acme_http.errors.IssuanceError: When the verified order did not produce a certificate.

        Examples:
            >>> cert.get()
            >>> cert.certificate
            b'-----BEGIN CERTIFICATE-----\\nMIIEfzCCA2egAwI...
        """
        verified = self.verify()
        self.issue(verified)
        self.save()
        return self

    def renew(self) -> 'Certificate':
        """Requests a new certificate with a freshly generated private key, replacing the current one on success."""
        logger.info("Renewing the certificate for '%s'", self.domain)
        previous_key = self.key
        self.key = b''
        self.acme_order = None

        try:
            return self.get()
        except errors.SimpleAcmeHttpError:
            # Keep the key matching the current certificate when the renewal fails
            self.key = previous_key
            raise

    def verify(self) -> Verified:
        """
        Creates a new order for the domain and completes its HTTP-01 challenge.

        Returns:
            simple_acme_http.verification.Verified: The verified order, also kept as `acme_order`.
        """
        self.state = VERIFYING
        logger.info("Verifying '%s'", self.domain)
        verifier = Verifier(self.authority, responder=self.responder, policy=self.verify_policy)

        try:
            verified = verifier.verify(self.domain)
        except errors.SimpleAcmeHttpError:
            self.state = FAILED
            raise

        self.acme_order = verified.order
        return verified

    def issue(self, verified: Verified = None) -> SignedCertificate:
        """
        Finalizes the verified order and sets `certificate`, `intermediaries`, `key` and `expires_at`. A private key
        of `config.key_type` is generated first when no key is set.

        Args:
            verified (simple_acme_http.verification.Verified): The order to finalize. Defaults to `acme_order`.

        Returns:
            simple_acme_http.issuance.SignedCertificate: The issued certificate.
        """
        if not self.key:
            self.key = tools.generate_private_key(self.config.key_type)

        self.state = ISSUING
        logger.info("Getting certificate for '%s'", self.domain)

        try:
            if verified is None:
                verified = Verified([self.domain], self.acme_order or self._new_order())
            signed = Issuer(policy=self.issue_policy).issue(verified, self.key)
        except errors.SimpleAcmeHttpError:
            self.state = FAILED
            raise

        self.certificate = signed.certificate
        self.intermediaries = signed.intermediaries
        self.expires_at = signed.expires_at
        self.renew_after = self._renewal_date(signed.expires_at)
        self.acme_order = verified.order
        self.state = ISSUED
        return signed

    def save(self) -> bool:
        """
        Writes the certificate bundle and key to the store if `config.save_to_redis` is enabled. Blank certificates or
        keys are never written. Store failures are logged and kept in `store_error` rather than raised.

        Returns:
            bool: Whether the certificate was written to the store.
        """
        if not self.config.save_to_redis:
            return False
        if not self.certificate or not self.key:
            logger.debug("Not saving the certificate for '%s', certificate or key is blank", self.domain)
            return False

        try:
            saved = self.store.save(self.domain, self.bundle, self.key)
        except errors.StoreError as exc:
            logger.warning("Certificate for '%s' was issued but not saved: %s", self.domain, exc.message)
            self.store_error = exc
            return False

        self.store_error = None
        return saved

    def destroy(self) -> bool:
        """
        Deletes the certificate from the store if `config.save_to_redis` is enabled. Nothing is deleted for a
        certificate that was never saved.

        Returns:
            bool: Whether anything was deleted from the store.
        """
        if not self.config.save_to_redis:
            return False
        if not self.certificate or not self.key:
            return False

        try:
            deleted = self.store.delete(self.domain)
        except errors.StoreError as exc:
            logger.warning("Certificate for '%s' could not be deleted: %s", self.domain, exc.message)
            self.store_error = exc
            return False

        self.store_error = None
        return deleted

    def revoke(self, reason: int = 0) -> None:
        """
        Attempts to revoke the existing certificate from the issuing ACME server.

        Args:
            reason (int): The numeric reason for revocation identifier. In most cases, this can be left as `0`.
                For more information, refer to: https://letsencrypt.org/docs/revoking/#specifying-a-reason-code

        Raises:
            simple_acme_http.errors.InvalidCertificate: When there is no parseable certificate to revoke.
        """
        if not self.active:
            raise errors.InvalidCertificate(f"No certificate to revoke for '{self.domain}'.")

        self.authority.revoke(self.certificate, reason)
        logger.info("Revoked the certificate for '%s'", self.domain)

    def _new_order(self):
        """Creates an order for the domain, retrying transient errors within the issuance deadline."""
        deadline = self.issue_policy.start(errors.IssuanceTimeout, f"an order for '{self.domain}'")
        try:
            return deadline.call(self.authority.new_order, [self.domain])
        except errors.AuthorityError as exc:
            raise errors.IssuanceError(f"Creating an order for '{self.domain}' failed: {exc.message}") from exc

    def _renewal_date(self, expires_at: datetime.datetime) -> datetime.datetime:
        """Picks the date renewal should start at, spread over a few days so certificates don't all renew at once."""
        jitter = random.randint(0, self.config.renew_jitter_days)
        return expires_at - datetime.timedelta(days=self.config.renew_window_days) + datetime.timedelta(days=jitter)

    @staticmethod
    def _now() -> datetime.datetime:
        return datetime.datetime.now(datetime.timezone.utc)

    @staticmethod
    def _aware(value: datetime.datetime) -> datetime.datetime:
        """Treats naive datetimes as UTC."""
        return value if value.tzinfo else value.replace(tzinfo=datetime.timezone.utc)

    @property
    def active(self) -> bool:
        """Indicates whether a parseable certificate is set. No requests are made."""
        try:
            tools.load_certificate(self.certificate)
        except errors.InvalidCertificate:
            return False

        return True

    @property
    def expired(self) -> bool:
        """Indicates whether `expires_at` is in the past. A certificate without `expires_at` is never expired."""
        if self.expires_at is None:
            return False

        return self._aware(self.expires_at) < self._now()

    @property
    def renewable(self) -> bool:
        """Indicates whether the renewal date has been reached."""
        if self.renew_after is None:
            return False

        return self._aware(self.renew_after) <= self._now()

    @property
    def bundle(self) -> bytes:
        """The certificate followed by its intermediaries, as served by web servers."""
        return self.certificate + self.intermediaries

    @property
    def authority(self) -> Authority:
        """
        Getter for the `authority` property. This checks that an ACME server is set up whenever it's referenced.

        Raises:
            simple_acme_http.errors.InvalidAccount: When no authority is configured for this object.
        """
        if self._authority is None:
            msg = 'No ACME authority found. You must connect to an ACME server first.'
            raise errors.InvalidAccount(msg)

        return self._authority

    @authority.setter
    def authority(self, value: Authority) -> None:
        self._authority = value

    @property
    def store(self) -> RedisStore:
        """Getter for the `store` property. Connects to `config.redis_url` on first use when no store was given."""
        if self._store is None:
            self._store = RedisStore.from_url(self.config.redis_url)

        return self._store

    @property
    def domain(self) -> str:
        """
        Getter for the `domain` property. This checks that a domain is already set whenever it's referenced.

        Raises:
             simple_acme_http.errors.InvalidDomain: When no `domain` has been set.
        """
        if not self._domain:
            raise errors.InvalidDomain('No domain found. You must set the domain value first.')

        return self._domain

    @domain.setter
    def domain(self, value: str) -> None:
        """
        Setter for the `domain` property. This checks that the value is a FQDN that HTTP-01 can verify.

        Raises:
            simple_acme_http.errors.InvalidDomain: When the domain is invalid or a wildcard.
        """
        self._domain = tools.validate_domain(value)

    @property
    def certificate(self) -> bytes:
        """Getter for the `certificate` property. Returns the PEM encoded certificate, blank until issued."""
        return self._certificate

    @certificate.setter
    def certificate(self, value: bytes) -> None:
        """
        Setter for the 'certificate' property. This ensures the set value is a bytes-string.

        Raises:
            simple_acme_http.errors.InvalidCertificate: When the `certificate` value being set is not of type `bytes`.
        """
        if not isinstance(value, bytes):
            raise errors.InvalidCertificate("Certificate must be type 'bytes'.")

        self._certificate = value

    @property
    def intermediaries(self) -> bytes:
        """Getter for the `intermediaries` property. Returns the PEM encoded chain issued with the certificate."""
        return self._intermediaries

    @intermediaries.setter
    def intermediaries(self, value: bytes) -> None:
        if not isinstance(value, bytes):
            raise errors.InvalidCertificate("Intermediaries must be type 'bytes'.")

        self._intermediaries = value

    @property
    def key(self) -> bytes:
        """Getter for the 'key' property. Returns the PEM encoded private key, blank until set or generated."""
        return self._key

    @key.setter
    def key(self, value: bytes) -> None:
        """
        Setter for the 'key' property. This ensures the set value is a bytes-string.

        Raises:
            simple_acme_http.errors.InvalidPrivateKey: When the `key` value being set is not of type `bytes`.
        """
        if not isinstance(value, bytes):
            raise errors.InvalidPrivateKey("Private key must be type 'bytes'.")

        self._key = value
