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
"""Tests the configuration of the simple_acme_http package."""
import unittest

from simple_acme_http import errors
from simple_acme_http.config import LETSENCRYPT_PRODUCTION, LETSENCRYPT_STAGING, Config


class TestConfig(unittest.TestCase):
    """Tests the Config class and its validation."""

    def test_defaults(self):
        """Checks the default configuration."""
        config = Config()

        self.assertEqual(config.directory, LETSENCRYPT_STAGING)
        self.assertFalse(config.save_to_redis)
        self.assertEqual(config.key_type, "rsa4096")
        self.assertEqual(config.verify_timeout, 300)
        self.assertEqual(config.renew_window_days, 30)

    def test_directory(self):
        """Checks that an explicit directory wins over the Let's Encrypt defaults."""
        self.assertEqual(Config(use_staging=False).directory, LETSENCRYPT_PRODUCTION)
        self.assertEqual(Config(directory="https://localhost:14000/dir").directory, "https://localhost:14000/dir")

    def test_key_type_validation(self):
        """Checks that only supported key types can be configured."""
        with self.assertRaises(errors.InvalidConfig):
            Config(key_type="dsa1024")

    def test_timeout_validation(self):
        """Checks that timeouts must be positive numbers."""
        for value in (0, -1, "300", True):
            with self.assertRaises(errors.InvalidConfig):
                Config(verify_timeout=value)
        with self.assertRaises(errors.InvalidConfig):
            Config(issue_timeout=-5)

    def test_retry_validation(self):
        """Checks the retry interval and backoff limits. A zero interval would poll without waiting."""
        for value in (0, -1):
            with self.assertRaises(errors.InvalidConfig):
                Config(retry_interval=value)
        with self.assertRaises(errors.InvalidConfig):
            Config(max_retry_interval=0)
        with self.assertRaises(errors.InvalidConfig):
            Config(retry_backoff=0.5)

    def test_renewal_validation(self):
        """Checks that the renewal window and jitter must be whole, non-negative values."""
        config = Config(renew_window_days=0, renew_jitter_days=0)
        self.assertEqual((config.renew_window_days, config.renew_jitter_days), (0, 0))

        for value in (-1, 1.5, "10", True):
            with self.assertRaises(errors.InvalidConfig):
                Config(renew_jitter_days=value)
        with self.assertRaises(errors.InvalidConfig):
            Config(renew_window_days=-1)

    def test_from_env(self):
        """Checks that the configuration can be read from environment variables."""
        config = Config.from_env({
            "ACME_DIRECTORY": "https://localhost:14000/dir",
            "ACME_SAVE_TO_REDIS": "true",
            "ACME_VERIFY_SSL": "0",
            "REDIS_URL": "redis://cache:6379/1",
            "ACME_KEY_TYPE": "ec384",
            "ACME_VERIFY_TIMEOUT": "60",
            "ACME_RETRY_INTERVAL": "0.5",
        })

        self.assertEqual(config.directory, "https://localhost:14000/dir")
        self.assertTrue(config.save_to_redis)
        self.assertFalse(config.verify_ssl)
        self.assertEqual(config.redis_url, "redis://cache:6379/1")
        self.assertEqual(config.key_type, "ec384")
        self.assertEqual(config.verify_timeout, 60)
        self.assertEqual(config.retry_interval, 0.5)
        self.assertEqual(config.issue_timeout, 300)

    def test_from_env_empty(self):
        """Checks that an empty environment gives the default configuration."""
        config = Config.from_env({})

        self.assertEqual(config.directory, LETSENCRYPT_STAGING)
        self.assertFalse(config.save_to_redis)

    def test_from_env_invalid_number(self):
        """Checks that a non-numeric timeout is reported rather than ignored."""
        with self.assertRaises(errors.InvalidConfig):
            Config.from_env({"ACME_ISSUE_TIMEOUT": "soon"})


if __name__ == "__main__":
    unittest.main()
