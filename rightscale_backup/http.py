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
Thin wrapper around a :class:`requests.Session` which the API connection
classes talk to.
"""

import os
import warnings
from urllib import parse as urlparse

import requests

import rightscale_backup.security

__all__ = [
    'HTTPConnection',
    'HttpResponseProxy'
]

DEFAULT_TIMEOUT = 60

# Only a single proxy is used, https_proxy is the fallback for http_proxy
PROXY_ENV_VARIABLES = ('http_proxy', 'https_proxy')


class HTTPConnection(object):
    """
    A connection to a single API host.

    :param host: API hostname.
    :type host: ``str``

    :param port: API port. 443 always means HTTPS.
    :type port: ``int``

    :param secure: Whether to use HTTPS.
    :type secure: ``bool``

    :param timeout: Socket timeout in seconds.
    :type timeout: ``int``

    :param proxy_url: Proxy for all requests. Defaults to the
                      ``http_proxy`` or ``https_proxy`` variable.
    :type proxy_url: ``str``
    """

    proxy_scheme = None
    proxy_host = None
    proxy_port = None

    http_proxy_used = False

    response = None

    def __init__(self, host, port, secure=None, timeout=None, proxy_url=None):
        scheme = 'https' if secure or port == 443 else 'http'
        netloc = host if port in (80, 443) else '%s:%s' % (host, port)
        self.host = '%s://%s' % (scheme, netloc)
        self.timeout = timeout or DEFAULT_TIMEOUT

        self.session = requests.Session()
        self.verification = self._get_verification()

        if proxy_url is None:
            proxy_url = self._proxy_from_environment()

        if proxy_url:
            self.set_http_proxy(proxy_url=proxy_url)

    def _get_verification(self):
        """
        Value of the ``verify`` argument given to requests: ``False``, the
        CA bundle path or ``True`` for the bundle shipped with requests.
        """
        if not rightscale_backup.security.VERIFY_SSL_CERT:
            warnings.warn(rightscale_backup.security.VERIFY_SSL_DISABLED_MSG)
            return False

        return rightscale_backup.security.CA_CERTS_PATH or True

    def _proxy_from_environment(self):
        for name in PROXY_ENV_VARIABLES:
            if os.environ.get(name):
                return os.environ[name]

        return None

    def set_http_proxy(self, proxy_url):
        """
        Send all requests through a HTTP proxy.

        :param proxy_url: Proxy URL, e.g. http://<hostname>:<port>
        :type proxy_url: ``str``
        """
        parsed = urlparse.urlparse(proxy_url)

        if parsed.scheme not in ('http', 'https'):
            raise ValueError('Only http and https proxies are supported')

        if not parsed.hostname or not parsed.port:
            raise ValueError('proxy_url must be in the following format: '
                             '<scheme>://<proxy host>:<proxy port>')

        self.proxy_scheme = parsed.scheme
        self.proxy_host = parsed.hostname
        self.proxy_port = parsed.port
        self.http_proxy_used = True

        self.session.proxies = {
            'http': proxy_url,
            'https': proxy_url,
        }

    def request(self, method, url, body=None, headers=None):
        self.response = self.session.request(
            method=method.lower(),
            url=urlparse.urljoin(self.host, url),
            data=body,
            headers=self._normalize_headers(headers=headers),
            allow_redirects=True,
            timeout=self.timeout,
            verify=self.verification
        )

    def getresponse(self):
        return self.response

    def _normalize_headers(self, headers):
        headers = headers or {}

        # requests only accepts string header values
        for key, value in headers.items():
            if isinstance(value, (int, float)):
                headers[key] = str(value)

        return headers


class HttpResponseProxy(object):
    """
    Read-only view of a :class:`requests.Response` with the
    :class:`http.client.HTTPResponse` accessors the request log uses.
    """

    def __init__(self, response):
        self._response = response

    def read(self):
        return self._response.text

    def getheaders(self):
        return list(self._response.headers.items())

    @property
    def status(self):
        return self._response.status_code

    @property
    def reason(self):
        return self._response.reason
