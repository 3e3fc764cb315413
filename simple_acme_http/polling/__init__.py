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
"""Bounded polling and retry of ACME server requests."""
import logging
import time

from .. import errors

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Describes how long to keep polling the ACME server and how long to wait between attempts. Each verification or
    issuance attempt starts its own `Deadline` from the policy.
    """
    # pylint: disable=too-few-public-methods,too-many-arguments

    def __init__(
            self,
            timeout: float = 300,
            interval: float = 1,
            max_interval: float = 10,
            backoff: float = 1.5,
            clock=None,
            sleep=None
    ):
        """
        Args:
            timeout (float): The max amount of time (in seconds) an attempt may keep polling.
            interval (float): The amount of time (in seconds) to wait before the first retry.
            max_interval (float): The upper bound (in seconds) the wait between retries may grow to.
            backoff (float): The factor the wait grows by after each retry.
            clock (callable): Returns the current time in seconds. Defaults to `time.monotonic`.
            sleep (callable): Pauses for the given amount of seconds. Defaults to `time.sleep`.

        Raises:
            simple_acme_http.errors.InvalidConfig: When `interval` is not positive or `backoff` is below 1.
        """
        # A zero wait would poll the ACME server in a tight loop until the deadline
        if interval <= 0:
            raise errors.InvalidConfig(f"Retry interval must be a positive number, got '{interval}'.")
        if backoff < 1:
            raise errors.InvalidConfig(f"Retry backoff must be at least 1, got '{backoff}'.")

        self.timeout = timeout
        self.interval = interval
        self.max_interval = max(max_interval, interval)
        self.backoff = backoff
        self.clock = clock or time.monotonic
        self.sleep = sleep or time.sleep

    @classmethod
    def from_config(cls, config, phase: str = 'verify', **kwargs) -> 'RetryPolicy':
        """Creates the policy for the `verify` or `issue` phase from a simple_acme_http.config.Config object."""
        timeout = config.verify_timeout if phase == 'verify' else config.issue_timeout
        return cls(
            timeout=timeout,
            interval=config.retry_interval,
            max_interval=config.max_retry_interval,
            backoff=config.retry_backoff,
            **kwargs
        )

    def start(self, error: type = errors.ACMETimeout, description: str = 'ACME request') -> 'Deadline':
        """
        Starts a new deadline from this policy.

        Args:
            error (type): The ACMETimeout subclass to raise once the deadline has passed.
            description (str): What is being waited for. Used in log and error messages.
        """
        return Deadline(self, error, description)


class Deadline:
    """A single bounded polling attempt started from a RetryPolicy."""

    def __init__(self, policy: RetryPolicy, error: type, description: str) -> None:
        self.policy = policy
        self.error = error
        self.description = description
        self.expires = policy.clock() + policy.timeout
        self.delay = policy.interval
        self.attempts = 0

    @property
    def remaining(self) -> float:
        """The amount of time (in seconds) left before the deadline passes."""
        return self.expires - self.policy.clock()

    @property
    def expired(self) -> bool:
        """Indicates whether the deadline has passed."""
        return self.remaining <= 0

    def wait(self) -> None:
        """
        Waits before the next attempt, growing the wait for the attempt after it.

        Raises:
            simple_acme_http.errors.ACMETimeout: The policy's error class, when the deadline has passed.
        """
        if self.expired:
            raise self.error(
                f"Gave up waiting for {self.description} after {self.policy.timeout} seconds "
                f"({self.attempts} attempts)."
            )

        self.attempts += 1
        self.policy.sleep(min(self.delay, max(self.remaining, 0)))
        self.delay = min(self.delay * self.policy.backoff, self.policy.max_interval)

    def call(self, func, *args, **kwargs):
        """
        Calls `func` until it succeeds, retrying on transient ACME server errors until the deadline has passed.
        Any other error is raised immediately.
        """
        while True:
            try:
                return func(*args, **kwargs)
            except errors.TransientAuthorityError as exc:
                logger.warning("Transient ACME error during %s, retrying: %s", self.description, exc.message)
                self.wait()
