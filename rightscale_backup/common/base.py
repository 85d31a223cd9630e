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

import os
import json
from http import client as httplib
from urllib.parse import urlencode

import rightscale_backup

from rightscale_backup.http import HTTPConnection
from rightscale_backup.utils.misc import lowercase_keys
from rightscale_backup.utils.retry import Retry
from rightscale_backup.common.types import ProviderError
from rightscale_backup.common.types import MalformedResponseError

__all__ = [
    'Response',
    'JsonResponse',
    'Connection',
    'ConnectionKey',
    'ConnectionUserAndKey',
    'BaseDriver'
]

RETRY_FAILED_HTTP_REQUESTS_ENV = \
    'RIGHTSCALE_BACKUP_RETRY_FAILED_HTTP_REQUESTS'


class Response(object):
    """
    A base Response class to derive from.
    """

    status = httplib.OK
    headers = {}
    body = None
    object = None
    error = None
    connection = None

    # Set to True to parse the body even when it is empty
    parse_zero_length_body = False

    def __init__(self, response, connection):
        """
        :param response: HTTP response object. (optional)
        :type response: :class:`requests.Response`

        :param connection: Parent connection object.
        :type connection: :class:`.Connection`
        """
        self.connection = connection

        self.headers = lowercase_keys(dict(response.headers))
        self.error = response.reason
        self.status = response.status_code
        self.body = response.text.strip() if response.text is not None \
            else ''

        if not self.success():
            raise ProviderError(self.parse_error(), http_code=self.status,
                                driver=self.connection.driver)

        self.object = self.parse_body()

    def parse_body(self):
        """
        Parse response body.

        Override in a provider's subclass.

        :return: Parsed body.
        :rtype: ``str``
        """
        return self.body if self.body is not None else ''

    def parse_error(self):
        """
        Parse the error messages.

        Override in a provider's subclass.

        :return: Parsed error.
        :rtype: ``str``
        """
        return self.body

    def success(self):
        """
        Determine if our request was successful.

        :rtype: ``bool``
        :return: ``True`` or ``False``
        """
        return self.status in [httplib.OK, httplib.CREATED,
                               httplib.ACCEPTED, httplib.NO_CONTENT]


class JsonResponse(Response):
    """
    A Base JSON Response class to derive from.
    """

    def parse_body(self):
        if len(self.body) == 0 and not self.parse_zero_length_body:
            return self.body

        try:
            body = json.loads(self.body)
        except ValueError:
            raise MalformedResponseError(
                'Failed to parse JSON',
                body=self.body,
                driver=self.connection.driver)
        return body

    parse_error = parse_body


class Connection(object):
    """
    A Base Connection class to derive from.
    """
    conn_class = HTTPConnection

    responseCls = Response
    connection = None
    host = '127.0.0.1'
    port = 443
    timeout = None
    secure = 1
    driver = None
    action = None
    method = None
    proxy_url = None
    retry_delay = None
    backoff = None

    def __init__(self, secure=True, host=None, port=None, timeout=None,
                 proxy_url=None, retry_delay=None, backoff=None):
        self.secure = secure and 1 or 0

        if host:
            self.host = host

        if port is not None:
            self.port = port
        else:
            if self.secure == 1:
                self.port = 443
            else:
                self.port = 80

        self.timeout = timeout or self.timeout
        self.retry_delay = retry_delay
        self.backoff = backoff
        self.proxy_url = proxy_url

    def connect(self, host=None, port=None):
        """
        Establish a connection with the API server.

        :type host: ``str``
        :param host: Optional host to override our default

        :type port: ``int``
        :param port: Optional port to override our default

        :returns: A connection
        """
        host = host or self.host
        port = port or self.port

        kwargs = {'host': host, 'port': int(port), 'secure': self.secure}

        if self.timeout is not None:
            kwargs.update({'timeout': self.timeout})

        if self.proxy_url:
            kwargs.update({'proxy_url': self.proxy_url})

        connection = self.conn_class(**kwargs)
        self.connection = connection

        return connection

    def _user_agent(self):
        user_agent = 'rightscale_backup/%s' % (rightscale_backup.__version__)

        if self.driver:
            user_agent += ' (%s)' % (self.driver.name)

        return user_agent

    def request(self, action, params=None, data=None, headers=None,
                method='GET'):
        """
        Request a given `action`.

        Basically a wrapper around the connection
        object's `request` that does some helpful pre-processing.

        :type action: ``str``
        :param action: A path. This can include arguments. If included,
            any extra parameters are appended to the existing ones.

        :type params: ``dict``
        :param params: Optional mapping of additional parameters to send.
            Values which are lists are sent as repeated parameters.

        :type data: ``dict`` or ``str``
        :param data: A body of data to send with the request.

        :type headers: ``dict``
        :param headers: Extra headers to add to the request.

        :type method: ``str``
        :param method: An HTTP method such as "GET" or "POST".

        :return: An :class:`Response` instance.
        :rtype: :class:`Response` instance
        """
        if params is None:
            params = {}
        else:
            params = dict(params)

        if headers is None:
            headers = {}
        else:
            headers = dict(headers)

        action = self.morph_action_hook(action)
        self.action = action
        self.method = method

        # Extend default headers
        headers = self.add_default_headers(headers)

        # We always send a user-agent header
        headers.update({'User-Agent': self._user_agent()})

        # Encode data if necessary
        if data is not None:
            data = self.encode_data(data)

        if params:
            if '?' in action:
                url = '&'.join((action, urlencode(params, doseq=True)))
            else:
                url = '?'.join((action, urlencode(params, doseq=True)))
        else:
            url = action

        if self.connection is None:
            self.connect()

        if os.environ.get(RETRY_FAILED_HTTP_REQUESTS_ENV):
            retry_request = Retry(timeout=self.timeout,
                                  retry_delay=self.retry_delay,
                                  backoff=self.backoff)
            return retry_request(self._send)(method=method, url=url,
                                             body=data, headers=headers)

        return self._send(method=method, url=url, body=data, headers=headers)

    def _send(self, method, url, body, headers):
        self.connection.request(method=method, url=url, body=body,
                                headers=headers)
        return self.responseCls(response=self.connection.getresponse(),
                                connection=self)

    def morph_action_hook(self, action):
        if not action.startswith('/'):
            return '/' + action

        return action

    def add_default_headers(self, headers):
        """
        Adds default headers (such as Authorization, X-Foo-Bar)
        to the passed `headers`

        Should return a dictionary.
        """
        return headers

    def encode_data(self, data):
        """
        Encode body data.

        Override in a provider's subclass.
        """
        return data


class ConnectionKey(Connection):
    """
    Base connection class which accepts a single ``key`` argument.
    """
    def __init__(self, key, secure=True, host=None, port=None,
                 timeout=None, proxy_url=None, backoff=None,
                 retry_delay=None):
        """
        Initialize `key`; set `secure` to an ``int`` based on
        passed value.
        """
        super(ConnectionKey, self).__init__(secure=secure, host=host,
                                            port=port,
                                            timeout=timeout,
                                            proxy_url=proxy_url,
                                            backoff=backoff,
                                            retry_delay=retry_delay)
        self.key = key


class ConnectionUserAndKey(ConnectionKey):
    """
    Base connection class which accepts a ``user_id`` and ``key`` argument.
    """

    user_id = None

    def __init__(self, user_id, key, secure=True, host=None, port=None,
                 timeout=None, proxy_url=None, backoff=None,
                 retry_delay=None):
        super(ConnectionUserAndKey, self).__init__(key, secure=secure,
                                                   host=host, port=port,
                                                   timeout=timeout,
                                                   backoff=backoff,
                                                   retry_delay=retry_delay,
                                                   proxy_url=proxy_url)
        self.user_id = user_id


class BaseDriver(object):
    """
    Base driver class from which other classes can inherit from.
    """

    connectionCls = ConnectionKey
    name = None

    def __init__(self, key, secret=None, secure=True, host=None, port=None,
                 **kwargs):
        """
        :param    key:    API key or username to be used (required)
        :type     key:    ``str``

        :param    secret: Secret password to be used (required)
        :type     secret: ``str``

        :param    secure: Whether to use HTTPS or HTTP.
        :type     secure: ``bool``

        :param    host: Override hostname used for connections.
        :type     host: ``str``

        :param    port: Override port used for connections.
        :type     port: ``int``

        :return: ``None``
        """
        self.key = key
        self.secret = secret
        self.secure = secure
        args = [self.key]

        if self.secret is not None:
            args.append(self.secret)

        args.append(secure)

        if host is not None:
            args.append(host)

        if port is not None:
            args.append(port)

        conn_kwargs = self._ex_connection_class_kwargs()
        conn_kwargs.update({'timeout': kwargs.pop('timeout', None),
                            'retry_delay': kwargs.pop('retry_delay', None),
                            'backoff': kwargs.pop('backoff', None),
                            'proxy_url': kwargs.pop('proxy_url', None)})

        self.connection = self.connectionCls(*args, **conn_kwargs)
        self.connection.driver = self
        self.connection.connect()

    def _ex_connection_class_kwargs(self):
        """
        Return extra connection keyword arguments which are passed to the
        Connection class constructor.
        """
        return {}
