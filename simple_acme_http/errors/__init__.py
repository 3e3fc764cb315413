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
"""Custom exception classes for simple_acme_http."""


class SimpleAcmeHttpError(Exception):
    """Base class for every error raised by simple_acme_http"""
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidDomain(SimpleAcmeHttpError):
    """Error occurs when a domain is missing, malformed or cannot be validated over HTTP-01"""


class InvalidKeyType(SimpleAcmeHttpError):
    """Error occurs when the requested private key type is unsupported"""


class InvalidPrivateKey(SimpleAcmeHttpError):
    """Error occurs when the private key is not PEM encoded bytes or cannot be loaded."""


class InvalidCertificate(SimpleAcmeHttpError):
    """Error occurs when the certificate is invalid or does not exist."""


class InvalidConfig(SimpleAcmeHttpError):
    """Error occurs when a configuration value is out of range"""


class InvalidAccount(SimpleAcmeHttpError):
    """Error occurs when requests are made to the ACME server without an existing account"""


class AuthorityError(SimpleAcmeHttpError):
    """Error occurs when the ACME server rejects a request"""


class TransientAuthorityError(AuthorityError):
    """Error occurs when a request fails for a reason that a fresh request may fix (e.g. a stale nonce)"""


class ACMETimeout(SimpleAcmeHttpError):
    """Error occurs when the max time has been exceeded waiting for an ACME server event"""


class VerificationError(SimpleAcmeHttpError):
    """Error occurs when domain verification does not complete"""


class ChallengeInvalid(VerificationError):
    """Error occurs when the ACME server marks the HTTP-01 challenge as invalid"""


class ChallengeUnavailable(VerificationError):
    """Error occurs when the requested ACME server does not offer the HTTP-01 challenge"""


class VerificationTimeout(VerificationError, ACMETimeout):
    """Error occurs when the HTTP-01 challenge does not reach a final status in time"""


class IssuanceError(SimpleAcmeHttpError):
    """Error occurs when a verified order cannot be turned into a certificate"""


class IssuanceFailed(IssuanceError):
    """Error occurs when the ACME server marks the order as invalid"""


class IssuanceTimeout(IssuanceError, ACMETimeout):
    """Error occurs when the order does not reach a final status in time"""


class StoreError(SimpleAcmeHttpError):
    """Error occurs when the certificate store cannot be written to or deleted from"""
