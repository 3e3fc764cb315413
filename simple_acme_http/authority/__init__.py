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
The ACME server (authority) capability used by the verification and issuance engines. The abstract classes describe
the operations the engines rely on; the `ACME*` classes implement them on top of `acme.client.ClientV2`.
"""
import abc
import contextlib
import logging

import josepy as jose
import requests
from acme import challenges
from acme import client
from acme import errors as acme_errors
from acme import messages
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .. import errors

logger = logging.getLogger(__name__)

# Constants
USER_AGENT = 'simple_acme_http/1.0.0'
TRANSIENT_ERROR_CODES = ('badNonce',)


class Challenge(abc.ABC):
    """An HTTP-01 challenge for one authorization."""

    @property
    @abc.abstractmethod
    def filename(self) -> str:
        """The path the challenge must be served at, relative to the web root (.well-known/acme-challenge/...)."""

    @property
    @abc.abstractmethod
    def file_content(self) -> str:
        """The content the ACME server expects to find at `filename`."""

    @property
    def error(self):
        """The reason the ACME server gave for an invalid challenge, if any."""
        return None

    @abc.abstractmethod
    def request_validation(self) -> None:
        """Tells the ACME server the challenge is ready to be validated."""

    @abc.abstractmethod
    def reload(self) -> None:
        """Refreshes the challenge from the ACME server."""

    @abc.abstractmethod
    def status(self) -> str:
        """The last known challenge status (e.g. `pending`, `valid`, `invalid`)."""


class Authorization(abc.ABC):
    """The proof of control required for one domain of an order."""
    # pylint: disable=too-few-public-methods

    @abc.abstractmethod
    def http(self) -> Challenge:
        """Returns the HTTP-01 challenge of this authorization."""


class Order(abc.ABC):
    """A certificate request for one or more domains."""

    @property
    def error(self):
        """The reason the ACME server gave for an invalid order, if any."""
        return None

    @abc.abstractmethod
    def authorizations(self) -> list:
        """Returns the Authorization objects of this order."""

    @abc.abstractmethod
    def reload(self) -> None:
        """Refreshes the order from the ACME server."""

    @abc.abstractmethod
    def status(self) -> str:
        """The last known order status (e.g. `pending`, `ready`, `processing`, `valid`, `invalid`)."""

    @abc.abstractmethod
    def finalize(self, csr: bytes) -> None:
        """Submits the PEM encoded CSR to finalize the order."""

    @abc.abstractmethod
    def certificate(self) -> bytes:
        """Downloads the PEM encoded certificate chain of a valid order."""


class Authority(abc.ABC):
    """An ACME server capable of creating orders and revoking certificates."""

    @abc.abstractmethod
    def new_order(self, domains: list) -> Order:
        """Creates a new order for `domains`."""

    @abc.abstractmethod
    def revoke(self, certificate: bytes, reason: int = 0) -> None:
        """Revokes the PEM encoded certificate."""


@contextlib.contextmanager
def translate_errors(action: str):
    """
    Converts errors raised by the acme package into simple_acme_http errors. Stale nonces and dropped connections
    become TransientAuthorityError so callers can simply retry, everything else becomes AuthorityError.
    """
    try:
        yield
    except acme_errors.BadNonce as exc:
        raise errors.TransientAuthorityError(f"Bad nonce while trying to {action}: {exc}") from exc
    except messages.Error as exc:
        if exc.code in TRANSIENT_ERROR_CODES:
            raise errors.TransientAuthorityError(f"ACME server asked to retry {action}: {exc}") from exc
        raise errors.AuthorityError(f"ACME server refused to {action}: {exc}") from exc
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
        raise errors.TransientAuthorityError(f"Connection failed while trying to {action}: {exc}") from exc
    except acme_errors.Error as exc:
        raise errors.AuthorityError(f"Failed to {action}: {exc}") from exc


def status_name(status) -> str:
    """Returns the plain status string of an acme.messages.Status value."""
    return getattr(status, 'name', status)


class ACMEChallenge(Challenge):
    """An HTTP-01 challenge backed by an acme.messages.ChallengeBody."""

    def __init__(self, authorization: 'ACMEAuthorization', challenge_body: messages.ChallengeBody) -> None:
        self.authorization = authorization
        self.body = challenge_body

    @property
    def _acme(self) -> client.ClientV2:
        return self.authorization.authority.acme_client

    @property
    def token(self) -> str:
        """The base64url encoded challenge token."""
        return self.body.chall.encode('token')

    @property
    def filename(self) -> str:
        return self.body.chall.path.lstrip('/')

    @property
    def file_content(self) -> str:
        return self.body.chall.validation(self._acme.net.key)

    @property
    def error(self):
        return self.body.error

    def request_validation(self) -> None:
        with translate_errors('answer the HTTP-01 challenge'):
            resource = self._acme.answer_challenge(self.body, self.body.response(self._acme.net.key))
        self.body = resource.body

    def reload(self) -> None:
        # The challenge is refreshed through its authorization, which lists the current state of each challenge
        self.authorization.reload()
        for challenge_body in self.authorization.resource.body.challenges:
            if challenge_body.uri == self.body.uri:
                self.body = challenge_body

    def status(self) -> str:
        return status_name(self.body.status)


class ACMEAuthorization(Authorization):
    """An authorization backed by an acme.messages.AuthorizationResource."""

    def __init__(self, authority: 'ACMEAuthority', resource: messages.AuthorizationResource) -> None:
        self.authority = authority
        self.resource = resource

    @property
    def domain(self) -> str:
        """The domain this authorization proves control of."""
        return self.resource.body.identifier.value

    def reload(self) -> None:
        """Refreshes the authorization from the ACME server."""
        with translate_errors(f"reload the authorization for '{self.domain}'"):
            self.resource, _ = self.authority.acme_client.poll(self.resource)

    def http(self) -> Challenge:
        """
        Returns the HTTP-01 challenge of this authorization.

        Raises:
            simple_acme_http.errors.ChallengeUnavailable: When the ACME server does not offer HTTP-01 for this domain.
        """
        for challenge_body in self.resource.body.challenges:
            if isinstance(challenge_body.chall, challenges.HTTP01):
                return ACMEChallenge(self, challenge_body)

        msg = f"ACME server at '{self.authority.directory}' does not offer the HTTP-01 challenge for '{self.domain}'."
        raise errors.ChallengeUnavailable(msg)


class ACMEOrder(Order):
    """An order backed by an acme.messages.Order body and its URL."""

    def __init__(self, authority: 'ACMEAuthority', body: messages.Order, uri: str) -> None:
        self.authority = authority
        self.body = body
        self.uri = uri
        self._authorizations = None

    @property
    def error(self):
        return self.body.error

    def authorizations(self) -> list:
        # Fetch each authorization once, challenges are refreshed through the authorization objects themselves
        if self._authorizations is None:
            self._authorizations = []
            for url in self.body.authorizations:
                with translate_errors('fetch an order authorization'):
                    response = self.authority.post_as_get(url)
                resource = messages.AuthorizationResource(
                    body=messages.Authorization.from_json(response.json()),
                    uri=url
                )
                self._authorizations.append(ACMEAuthorization(self.authority, resource))

        return self._authorizations

    def reload(self) -> None:
        with translate_errors('reload the order'):
            response = self.authority.post_as_get(self.uri)
        self.body = messages.Order.from_json(response.json())

    def status(self) -> str:
        return status_name(self.body.status)

    def finalize(self, csr: bytes) -> None:
        order_resource = messages.OrderResource(body=self.body, uri=self.uri, csr_pem=csr)
        with translate_errors('finalize the order'):
            order_resource = self.authority.acme_client.begin_finalization(order_resource)
        self.body = order_resource.body

    def certificate(self) -> bytes:
        if not self.body.certificate:
            raise errors.AuthorityError(f"Order at '{self.uri}' has no certificate to download yet.")

        with translate_errors('download the certificate'):
            response = self.authority.post_as_get(self.body.certificate)
        return response.text.encode()


class ACMEAuthority(Authority):
    """
    An ACME server reached through an `acme.client.ClientV2` object with an existing account. Registering new
    accounts is not handled here; `connect()` looks up the account belonging to an existing account key.
    """

    def __init__(self, acme_client: client.ClientV2, directory: str = None) -> None:
        """
        Args:
            acme_client (acme.client.ClientV2): A client whose network object carries the account key.
            directory (str): The ACME directory URL. Only used in log and error messages.
        """
        if not isinstance(acme_client, client.ClientV2):
            raise errors.InvalidAccount(f"Value '{acme_client}' is not an acme.client.ClientV2 object.")

        self.acme_client = acme_client
        self.directory = directory

    @classmethod
    def connect(
            cls,
            directory: str,
            account_key: bytes,
            account_uri: str = None,
            verify_ssl: bool = True
    ) -> 'ACMEAuthority':
        """
        Connects to the ACME server at `directory` using an existing account.

        Args:
            directory (str): The ACME directory URL to interact with.
            account_key (bytes): The PEM encoded RSA private key of the existing account.
            account_uri (str): The URL of the existing account. Looked up from the account key when not given.
            verify_ssl (bool): Verify the SSL certificate of the ACME server when making requests.

        Raises:
            simple_acme_http.errors.InvalidAccount: When the key cannot be loaded or no account exists for it.

        Examples:
            >>> authority = ACMEAuthority.connect(
            ...     "https://acme-staging-v02.api.letsencrypt.org/directory",
            ...     account_key=open("account.pem", "rb").read()
            ... )
        """
        try:
            jwk = jose.JWKRSA(key=serialization.load_pem_private_key(account_key, password=None))
        except (ValueError, TypeError) as exc:
            raise errors.InvalidAccount(f"Account key could not be loaded: {exc}") from exc

        net = client.ClientNetwork(jwk, user_agent=USER_AGENT, verify_ssl=verify_ssl)
        with translate_errors('load the ACME directory'):
            directory_obj = messages.Directory.from_json(net.get(directory).json())
        acme_client = client.ClientV2(directory_obj, net=net)

        if not account_uri:
            account_uri = cls._lookup_account(acme_client, directory)

        registration = messages.RegistrationResource(body=messages.Registration(key=jwk.public_key()), uri=account_uri)
        with translate_errors('load the ACME account'):
            acme_client.query_registration(registration)

        logger.info("Connected to ACME server at '%s' with account '%s'", directory, account_uri)
        return cls(acme_client, directory=directory)

    @staticmethod
    def _lookup_account(acme_client: client.ClientV2, directory: str) -> str:
        """Finds the URL of the account belonging to the client's key without registering a new account."""
        try:
            with translate_errors('look up the ACME account'):
                try:
                    registration = acme_client.new_account(
                        messages.NewRegistration.from_data(only_return_existing=True)
                    )
                # The ACME server answers with the existing account's URL
                except acme_errors.ConflictError as exc:
                    return exc.location
        except errors.AuthorityError as exc:
            raise errors.InvalidAccount(f"No ACME account found for this key at '{directory}'.") from exc

        return registration.uri

    def post_as_get(self, url: str) -> requests.Response:
        """Fetches an ACME resource with a signed POST-as-GET request."""
        return self.acme_client.net.post(url, None, new_nonce_url=self.acme_client.directory['newNonce'])

    def new_order(self, domains: list) -> Order:
        identifiers = [messages.Identifier(typ=messages.IDENTIFIER_FQDN, value=domain) for domain in domains]
        with translate_errors(f"create an order for {domains}"):
            response = self.acme_client.net.post(
                self.acme_client.directory['newOrder'],
                messages.NewOrder(identifiers=identifiers),
                new_nonce_url=self.acme_client.directory['newNonce']
            )
        order = ACMEOrder(self, messages.Order.from_json(response.json()), response.headers.get('Location'))
        logger.info("Created ACME order '%s' for %s", order.uri, domains)
        return order

    def revoke(self, certificate: bytes, reason: int = 0) -> None:
        with translate_errors('revoke the certificate'):
            self.acme_client.revoke(x509.load_pem_x509_certificate(certificate), reason)
