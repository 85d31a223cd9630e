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

import json
import unittest
from http import client as httplib
from urllib import parse as urlparse

import requests_mock

from rightscale_backup.http import HTTPConnection

__all__ = [
    'unittest',
    'MockHttp',
    'MockHttpTestCase'
]


class MockHttp(HTTPConnection):
    """
    A mock HTTP client/server suitable for testing purposes. This replaces
    :class:`HTTPConnection` by implementing its API and returning a mock
    response.

    Define methods by request path, replacing slashes (/) with underscores
    (_). Each of these mock methods should return a tuple of:

        (int status, str body, dict headers, str reason)

    Every request is recorded in ``requests`` as a
    ``(method, url, body, headers)`` tuple.
    """
    type = None
    use_param = None  # will use this param to namespace the request function
    requests = None

    def __init__(self, *args, **kwargs):
        # Load assertion methods into the class, in case people want to
        # assert within a response
        if isinstance(self, unittest.TestCase):
            unittest.TestCase.__init__(self, '__init__')
        super(MockHttp, self).__init__(*args, **kwargs)

    def _get_request(self, method, url, body=None, headers=None):
        # Find a method we can use for this request
        parsed = urlparse.urlparse(url)
        path = parsed.path
        qs = urlparse.parse_qs(parsed.query)
        if path.endswith('/'):
            path = path[:-1]
        meth_name = self._get_method_name(type=self.type,
                                          use_param=self.use_param,
                                          qs=qs, path=path)
        meth = getattr(self, meth_name)

        if MockHttp.requests is not None:
            MockHttp.requests.append((method, url, body, headers))

        return meth(method, url, body, headers)

    def request(self, method, url, body=None, headers=None):
        headers = self._normalize_headers(headers=headers)
        r_status, r_body, r_headers, r_reason = self._get_request(
            method, url, body, headers)
        if r_body is None:
            r_body = ''

        # Registered by path only so any query string matches
        path = urlparse.urlparse(url).path

        with requests_mock.mock() as m:
            m.register_uri(method, path, text=r_body, reason=r_reason,
                           headers=r_headers, status_code=r_status)
            super(MockHttp, self).request(method=method, url=url, body=body,
                                          headers=headers)

    def _get_method_name(self, type, use_param, qs, path):
        meth_name = (
            path
            .replace('/', '_')
            .replace('.', '_')
            .replace('-', '_'))

        # Paths without a handler for the type use the default one
        if type and hasattr(self, '%s_%s' % (meth_name, type)):
            meth_name = '%s_%s' % (meth_name, type)

        if use_param and use_param in qs:
            param = qs[use_param][0].replace('.', '_').replace('-', '_')
            meth_name = '%s_%s' % (meth_name, param)

        if meth_name == '':
            meth_name = 'root'

        return meth_name

    @classmethod
    def reset(cls):
        cls.type = None
        MockHttp.requests = []

    @staticmethod
    def json_body(body):
        """
        Decode the JSON body of a recorded request.
        """
        return json.loads(body) if body else None

    def _response(self, status, body='', headers=None):
        headers = headers or {}
        headers.setdefault('content-type', 'application/json')
        return (status, body, headers, httplib.responses[status])


class MockHttpTestCase(MockHttp, unittest.TestCase):
    # Same as the MockHttp class, but you can also use assertions in the
    # classes which inherit from this one.
    def __init__(self, *args, **kwargs):
        unittest.TestCase.__init__(self)

        if kwargs.get('host', None) and kwargs.get('port', None):
            MockHttp.__init__(self, *args, **kwargs)

    def runTest(self):
        pass


if __name__ == '__main__':
    import doctest
    doctest.testmod()
