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
"""Configuration values shared by the certificate lifecycle, its engines and its store."""
import os

from .. import errors
from .. import tools

# Constants
LETSENCRYPT_PRODUCTION = "https://acme-v02.api.letsencrypt.org/directory"
LETSENCRYPT_STAGING = "https://acme-staging-v02.api.letsencrypt.org/directory"
TRUTHY = ('1', 'true', 'yes', 'on')


class Config:
    """
    Explicit configuration for one or more Certificate objects. A Config is passed to each Certificate when it is
    created rather than read from global state, so certificates with different settings can be handled side by side.
    """
    # pylint: disable=too-many-instance-attributes,too-many-arguments

    def __init__(
            self,
            directory: str = None,
            use_staging: bool = True,
            save_to_redis: bool = False,
            redis_url: str = "redis://localhost:6379/0",
            key_type: str = "rsa4096",
            verify_timeout: int = 300,
            issue_timeout: int = 300,
            retry_interval: float = 1,
            max_retry_interval: float = 10,
            retry_backoff: float = 1.5,
            renew_window_days: int = 30,
            renew_jitter_days: int = 10,
            verify_ssl: bool = True
    ):
        """
        Args:
            directory (str): The ACME directory URL to interact with. Defaults to Let's Encrypt, see `use_staging`.
            use_staging (bool): Use the Let's Encrypt staging directory when no `directory` is set.
            save_to_redis (bool): Write issued certificates through to Redis and delete them on destroy.
            redis_url (str): The Redis connection URL used when `save_to_redis` is enabled.
            key_type (str): The private key type generated for new certificates.
            verify_timeout (int): Max seconds to wait for the HTTP-01 challenge to become valid.
            issue_timeout (int): Max seconds to wait for a finalized order to produce a certificate.
            retry_interval (float): Seconds to wait between polls and transient error retries.
            max_retry_interval (float): Upper bound for the growing wait between polls.
            retry_backoff (float): Factor the wait between polls grows by after each poll.
            renew_window_days (int): Days before expiry at which a certificate becomes renewable.
            renew_jitter_days (int): Max random days added to the renewal date to spread renewals out.
            verify_ssl (bool): Verify the SSL certificate of the ACME server when making requests.
        """
        self._directory = directory
        self.use_staging = use_staging
        self.save_to_redis = save_to_redis
        self.redis_url = redis_url
        self.key_type = key_type
        self.verify_timeout = verify_timeout
        self.issue_timeout = issue_timeout
        self.retry_interval = retry_interval
        self.max_retry_interval = max_retry_interval
        self.retry_backoff = retry_backoff
        self.renew_window_days = renew_window_days
        self.renew_jitter_days = renew_jitter_days
        self.verify_ssl = verify_ssl

    @classmethod
    def from_env(cls, environ: dict = None) -> 'Config':
        """
        Creates a Config from `ACME_*` and `REDIS_URL` environment variables. Unset variables keep their defaults.

        Examples:
            >>> config = Config.from_env({"ACME_SAVE_TO_REDIS": "true", "REDIS_URL": "redis://cache:6379/1"})
        """
        environ = os.environ if environ is None else environ
        config = cls()

        if environ.get('ACME_DIRECTORY'):
            config.directory = environ['ACME_DIRECTORY']
        if 'ACME_USE_STAGING' in environ:
            config.use_staging = environ['ACME_USE_STAGING'].lower() in TRUTHY
        if 'ACME_SAVE_TO_REDIS' in environ:
            config.save_to_redis = environ['ACME_SAVE_TO_REDIS'].lower() in TRUTHY
        if 'ACME_VERIFY_SSL' in environ:
            config.verify_ssl = environ['ACME_VERIFY_SSL'].lower() in TRUTHY
        if environ.get('REDIS_URL'):
            config.redis_url = environ['REDIS_URL']
        if environ.get('ACME_KEY_TYPE'):
            config.key_type = environ['ACME_KEY_TYPE']

        # Numeric values must parse, otherwise the misconfiguration is reported rather than ignored
        for variable, attribute in (
                ('ACME_VERIFY_TIMEOUT', 'verify_timeout'),
                ('ACME_ISSUE_TIMEOUT', 'issue_timeout'),
                ('ACME_RETRY_INTERVAL', 'retry_interval')
        ):
            if environ.get(variable):
                try:
                    setattr(config, attribute, float(environ[variable]))
                except ValueError as exc:
                    raise errors.InvalidConfig(f"{variable} must be a number, got '{environ[variable]}'.") from exc

        return config

    @property
    def directory(self) -> str:
        """
        Getter for the `directory` property. Falls back to the Let's Encrypt staging or production directory
        depending on `use_staging` when no directory was set explicitly.
        """
        if self._directory:
            return self._directory

        return LETSENCRYPT_STAGING if self.use_staging else LETSENCRYPT_PRODUCTION

    @directory.setter
    def directory(self, value: str) -> None:
        self._directory = value

    @property
    def key_type(self) -> str:
        """Getter for the `key_type` property."""
        return self._key_type

    @key_type.setter
    def key_type(self, value: str) -> None:
        """
        Setter for the `key_type` property. This ensures only supported private key types are configured.

        Raises:
            simple_acme_http.errors.InvalidConfig: When the `value` is not a supported key type.
        """
        if value not in tools.KEY_TYPES:
            raise errors.InvalidConfig(f"Invalid key type '{value}'. Options {tools.KEY_TYPES}")

        self._key_type = value

    @property
    def verify_timeout(self) -> float:
        """Getter for the `verify_timeout` property."""
        return self._verify_timeout

    @verify_timeout.setter
    def verify_timeout(self, value: float) -> None:
        self._verify_timeout = self._positive('verify_timeout', value)

    @property
    def issue_timeout(self) -> float:
        """Getter for the `issue_timeout` property."""
        return self._issue_timeout

    @issue_timeout.setter
    def issue_timeout(self, value: float) -> None:
        self._issue_timeout = self._positive('issue_timeout', value)

    @property
    def retry_interval(self) -> float:
        """Getter for the `retry_interval` property."""
        return self._retry_interval

    @retry_interval.setter
    def retry_interval(self, value: float) -> None:
        self._retry_interval = self._positive('retry_interval', value)

    @property
    def max_retry_interval(self) -> float:
        """Getter for the `max_retry_interval` property."""
        return self._max_retry_interval

    @max_retry_interval.setter
    def max_retry_interval(self, value: float) -> None:
        self._max_retry_interval = self._positive('max_retry_interval', value)

    @property
    def renew_window_days(self) -> int:
        """Getter for the `renew_window_days` property."""
        return self._renew_window_days

    @renew_window_days.setter
    def renew_window_days(self, value: int) -> None:
        self._renew_window_days = self._positive('renew_window_days', value, allow_zero=True)

    @property
    def renew_jitter_days(self) -> int:
        """Getter for the `renew_jitter_days` property."""
        return self._renew_jitter_days

    @renew_jitter_days.setter
    def renew_jitter_days(self, value: int) -> None:
        """
        Setter for the `renew_jitter_days` property. The jitter is a whole number of days.

        Raises:
            simple_acme_http.errors.InvalidConfig: When the `value` is not a non-negative integer.
        """
        if not isinstance(value, int):
            raise errors.InvalidConfig(f"renew_jitter_days must be a whole number of days, got '{value}'.")

        self._renew_jitter_days = self._positive('renew_jitter_days', value, allow_zero=True)

    @property
    def retry_backoff(self) -> float:
        """Getter for the `retry_backoff` property."""
        return self._retry_backoff

    @retry_backoff.setter
    def retry_backoff(self, value: float) -> None:
        if not isinstance(value, (int, float)) or value < 1:
            raise errors.InvalidConfig(f"retry_backoff must be a number of at least 1, got '{value}'.")

        self._retry_backoff = value

    @staticmethod
    def _positive(name: str, value, allow_zero: bool = False) -> float:
        """Checks that a numeric setting is positive (or zero when `allow_zero` is set)."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise errors.InvalidConfig(f"{name} must be a number, got '{value}'.")
        if value < 0 or (value == 0 and not allow_zero):
            raise errors.InvalidConfig(f"{name} must be a positive number, got '{value}'.")

        return value
