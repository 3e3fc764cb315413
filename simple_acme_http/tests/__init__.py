"""Unit tests and testing tools for the simple_acme_http package."""

import os

TEST_DOMAIN = "example.com"
TEST_DIRECTORY = os.environ.get(
    "ACME_DIRECTORY", "https://acme-staging-v02.api.letsencrypt.org/directory"
)
TEST_CHALLENGE_PATH = ".well-known/acme-challenge/LoqXcYV8q5ONbJQxbmR7SCTNo3tiAXDfowyjxAjEuX0"
TEST_CHALLENGE_CONTENT = "LoqXcYV8q5ONbJQxbmR7SCTNo3tiAXDfowyjxAjEuX0.9jg46WB3rR_AHD-EBXdN7cBkH1WOu0tA3M9fm21mqTI"
