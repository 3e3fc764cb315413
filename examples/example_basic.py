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
import threading
from wsgiref.simple_server import make_server

import simple_acme_http

logging.basicConfig(level=logging.INFO)

# Serve HTTP-01 challenges on port 80. The ACME server requests http://<domain>/.well-known/acme-challenge/<token>
server = make_server("0.0.0.0", 80, simple_acme_http.default_responder)
threading.Thread(target=server.serve_forever, daemon=True).start()

# Connect to the ACME server with an existing account. In this example, the Let's Encrypt staging environment.
config = simple_acme_http.Config(use_staging=True)
with open("account.pem", "rb") as account_key:
    authority = simple_acme_http.ACMEAuthority.connect(config.directory, account_key.read())

# Verify the domain and request the certificate. Both steps give up after config.verify_timeout/issue_timeout seconds.
cert = simple_acme_http.Certificate(domain="test.example.com", authority=authority, config=config)
try:
    cert.get()
except simple_acme_http.errors.SimpleAcmeHttpError as exc:
    print(f"Failed to issue certificate for {cert.domain}: {exc.message}")
    exit(1)
finally:
    server.shutdown()

print(cert.bundle.decode())
print(cert.key.decode())
print(f"Expires at {cert.expires_at}, renew after {cert.renew_after}")
