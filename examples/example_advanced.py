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
import logging
import sys

import simple_acme_http

logging.basicConfig(level=logging.DEBUG if "--verbose" in sys.argv else logging.INFO)

# Read the settings from ACME_* and REDIS_URL environment variables and keep issued certificates in Redis, where the
# web server serving our domains picks them up. The web server must also mount simple_acme_http.default_responder
# (a WSGI application) at /.well-known/acme-challenge/ so the ACME server can validate the HTTP-01 challenges.
config = simple_acme_http.Config.from_env()
config.save_to_redis = True
config.key_type = "ec256"

with open("account.pem", "rb") as account_key:
    authority = simple_acme_http.ACMEAuthority.connect(
        config.directory, account_key.read(), verify_ssl=config.verify_ssl
    )

for domain in ["test.example.com", "test2.example.com"]:
    # Load the stored certificate, or request a new one when nothing is stored for the domain yet
    cert = simple_acme_http.Certificate.load(domain, config=config, authority=authority)
    if cert is None:
        cert = simple_acme_http.Certificate(domain=domain, authority=authority, config=config)

    try:
        if not cert.active:
            cert.get()
        elif cert.renewable or cert.expired:
            cert.renew()
    except simple_acme_http.errors.VerificationError as exc:
        print(f"Could not verify {domain}: {exc.message}")
        continue
    except simple_acme_http.errors.IssuanceError as exc:
        print(f"Could not issue a certificate for {domain}: {exc.message}")
        continue

    # The certificate was issued, but Redis could not be updated
    if cert.store_error:
        print(f"Certificate for {domain} was not saved: {cert.store_error.message}")

    print(f"{domain} --> expires at {cert.expires_at}")

# Revoke a certificate and remove it from Redis
cert = simple_acme_http.Certificate.load("test2.example.com", config=config, authority=authority)
if cert is not None:
    cert.revoke()
    cert.destroy()
