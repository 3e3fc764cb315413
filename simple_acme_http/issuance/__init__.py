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
"""Finalizes verified orders and retrieves the signed certificate chain."""
import logging

from .. import errors
from .. import tools
from ..polling import RetryPolicy

logger = logging.getLogger(__name__)

# Constants
STATUS_INVALID = 'invalid'
AWAITING_AUTHORIZATION = ('pending',)
AWAITING_CERTIFICATE = ('ready', 'processing')


class SignedCertificate:
    """A certificate chain issued by the ACME server together with its private key."""
    # pylint: disable=too-few-public-methods

    def __init__(self, fullchain: bytes, key: bytes) -> None:
        self.fullchain = fullchain
        self.certificate, self.intermediaries = tools.split_chain(fullchain)
        self.key = key
        # The ACME server decides the validity period, so read it from the certificate itself
        self.expires_at = tools.not_after(self.certificate)
        self.issued_at = tools.not_before(self.certificate)


class Issuer:
    """Turns verified orders into signed certificates."""

    def __init__(self, policy: RetryPolicy = None) -> None:
        """
        Args:
            policy (simple_acme_http.polling.RetryPolicy): How long to poll and how long to wait between polls.
        """
        self.policy = policy or RetryPolicy()

    def issue(self, verified, private_key: bytes) -> SignedCertificate:
        """
        Finalizes the verified order with a CSR for its domains and waits for the certificate.

        Args:
            verified (simple_acme_http.verification.Verified): The order returned by a successful verification.
            private_key (bytes): The PEM encoded private key the certificate is issued for.

        Returns:
            simple_acme_http.issuance.SignedCertificate: The issued certificate chain, key and validity dates.

        Raises:
            simple_acme_http.errors.IssuanceFailed: When the ACME server marks the order invalid.
            simple_acme_http.errors.IssuanceTimeout: When the order does not produce a certificate in time.
            simple_acme_http.errors.IssuanceError: When the ACME server refuses a request outright.
        """
        order = verified.order
        csr = tools.make_csr(private_key, verified.domains)
        deadline = self.policy.start(errors.IssuanceTimeout, f"issuance of {verified.domains}")

        try:
            # Authorizations may take a moment to be reflected in the order status
            self._poll(order, deadline, AWAITING_AUTHORIZATION)
            deadline.call(order.finalize, csr)
            self._poll(order, deadline, AWAITING_CERTIFICATE)
            fullchain = deadline.call(order.certificate)
        except errors.AuthorityError as exc:
            raise errors.IssuanceError(f"Issuance for {verified.domains} failed: {exc.message}") from exc

        try:
            signed = SignedCertificate(fullchain, private_key)
        except errors.InvalidCertificate as exc:
            raise errors.IssuanceError(f"ACME server returned an unusable certificate: {exc.message}") from exc

        logger.info("Issued certificate for %s, expires at %s", verified.domains, signed.expires_at.isoformat())
        return signed

    @staticmethod
    def _poll(order, deadline, awaiting: tuple) -> str:
        """Reloads and reads the order status while it is one of `awaiting`. Returns the first other status."""
        while True:
            status = deadline.call(Issuer._read_status, order)

            if status == STATUS_INVALID:
                msg = "ACME server marked the order invalid"
                msg += f": {order.error}" if order.error else "."
                raise errors.IssuanceFailed(msg)
            if status not in awaiting:
                return status

            logger.debug("Order status is %s, polling again", status)
            deadline.wait()

    @staticmethod
    def _read_status(order) -> str:
        order.reload()
        return order.status()
