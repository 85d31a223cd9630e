# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
TLS settings shared by every API connection.

``VERIFY_SSL_CERT`` turns certificate verification on or off.
``CA_CERTS_PATH`` points at a PEM bundle to verify against. It defaults to
the ``SSL_CERT_FILE`` environment variable and otherwise to the bundle
shipped with requests.
"""

import os

__all__ = [
    'VERIFY_SSL_CERT',
    'CA_CERTS_PATH',
    'VERIFY_SSL_DISABLED_MSG'
]

VERIFY_SSL_CERT = True

VERIFY_SSL_DISABLED_MSG = (
    'TLS certificate verification for the RightScale API is disabled. '
    'Set rightscale_backup.security.VERIFY_SSL_CERT to True to enable it.'
)


def _ca_certs_from_environment():
    path = os.getenv('SSL_CERT_FILE')
    if path is None:
        return None

    if not os.path.isfile(path):
        raise ValueError('SSL_CERT_FILE %s is not a file' % (path))

    return path


CA_CERTS_PATH = _ca_certs_from_environment()
