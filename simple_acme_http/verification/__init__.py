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
"""Drives the HTTP-01 challenges of a new order until the ACME server marks them valid or invalid."""
import logging

from .. import errors
from ..polling import RetryPolicy
from ..responder import default_responder

logger = logging.getLogger(__name__)

# Constants
STATUS_VALID = 'valid'
POLLING_STATUSES = ('pending', 'processing')


class Verified:
    """The outcome of a successful verification: an order whose authorizations are all valid."""
    # pylint: disable=too-few-public-methods

    def __init__(self, domains: list, order) -> None:
        self.domains = domains
        self.order = order

    @property
    def domain(self) -> str:
        """The primary domain of the verified order."""
        return self.domains[0]


class Verifier:
    """Verifies control of domains with the HTTP-01 challenge."""

    def __init__(self, authority, responder=None, policy: RetryPolicy = None) -> None:
        """
        Args:
            authority (simple_acme_http.authority.Authority): The ACME server to create and validate orders with.
            responder (simple_acme_http.responder.ChallengeResponder): Where challenge content is published for the
                ACME server to fetch. Defaults to the process-wide responder.
            policy (simple_acme_http.polling.RetryPolicy): How long to poll and how long to wait between polls.
        """
        self.authority = authority
        self.responder = responder if responder is not None else default_responder
        self.policy = policy or RetryPolicy()

    def verify(self, domain, order=None) -> Verified:
        """
        Creates a new order for `domain` (a domain or a list of domains) and completes the HTTP-01 challenge of each
        of its authorizations. The whole attempt shares a single deadline.

        Args:
            domain (str|list): The domain(s) to verify.
            order (simple_acme_http.authority.Order): An existing order to verify instead of creating a new one.

        Returns:
            simple_acme_http.verification.Verified: The verified order, ready to be finalized.

        Raises:
            simple_acme_http.errors.ChallengeInvalid: When the ACME server marks a challenge invalid.
            simple_acme_http.errors.VerificationTimeout: When a challenge does not reach a final status in time.
            simple_acme_http.errors.VerificationError: When the ACME server refuses a request outright.
        """
        domains = [domain] if isinstance(domain, str) else list(domain)
        deadline = self.policy.start(errors.VerificationTimeout, f"verification of {domains}")

        try:
            if order is None:
                order = deadline.call(self.authority.new_order, domains)

            for authorization in deadline.call(order.authorizations):
                self._complete_challenge(authorization.http(), deadline)
        except errors.AuthorityError as exc:
            raise errors.VerificationError(f"Verification of {domains} failed: {exc.message}") from exc

        logger.info("Verified control of %s", domains)
        return Verified(domains, order)

    def _complete_challenge(self, challenge, deadline) -> None:
        """Publishes the challenge, requests validation and polls the challenge until it is valid."""
        filename = challenge.filename
        # The ACME server reuses authorizations it validated recently
        if challenge.status() == STATUS_VALID:
            logger.info("HTTP-01 challenge at '%s' is already valid", filename)
            return

        self.responder.publish(filename, challenge.file_content)

        try:
            deadline.call(challenge.request_validation)
            status = self._poll(challenge, deadline)
        finally:
            self.responder.withdraw(filename)

        if status != STATUS_VALID:
            msg = f"HTTP-01 challenge at '{filename}' is {status}"
            msg += f": {challenge.error}" if challenge.error else "."
            raise errors.ChallengeInvalid(msg)

    @staticmethod
    def _poll(challenge, deadline) -> str:
        """Reloads and reads the challenge status until it is no longer pending. Returns the final status."""
        while True:
            try:
                challenge.reload()
                status = challenge.status()
            except errors.TransientAuthorityError as exc:
                # A stale nonce is not a verification failure, read the status again with a fresh request
                logger.warning("Transient ACME error reading challenge status, retrying: %s", exc.message)
                deadline.wait()
                continue

            if status not in POLLING_STATUSES:
                return status

            logger.debug("Challenge status is %s, polling again", status)
            deadline.wait()
