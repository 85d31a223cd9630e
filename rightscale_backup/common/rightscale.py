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
Common settings and connection objects for the RightScale API 1.5
(instance facing calls).
"""

import json
import logging
from http import client as httplib

from rightscale_backup.common.base import ConnectionUserAndKey
from rightscale_backup.common.base import JsonResponse
from rightscale_backup.common.types import InvalidCredsError
from rightscale_backup.common.types import ResourceNotFoundError
from rightscale_backup.common.types import ServiceUnavailableError
from rightscale_backup.common.types import GatewayTimeoutError
from rightscale_backup.common.types import RateLimitReachedError
from rightscale_backup.common.types import ProviderError

__all__ = [
    'API_VERSION',
    'DEFAULT_HOST',
    'RightScaleResponse',
    'RightScaleConnection'
]

logger = logging.getLogger(__name__)

API_VERSION = '1.5'
DEFAULT_HOST = 'my.rightscale.com'

LOGIN_PATH = '/api/session/instance'


class RightScaleResponse(JsonResponse):
    valid_response_codes = [httplib.OK, httplib.CREATED, httplib.ACCEPTED,
                            httplib.NO_CONTENT]

    def success(self):
        return self.status in self.valid_response_codes

    def parse_error(self):
        # RightScale answers errors with a plain text body
        message = self.body or self.error
        driver = self.connection.driver

        if self.status in [httplib.UNAUTHORIZED, httplib.FORBIDDEN]:
            raise InvalidCredsError(message, driver=driver)
        elif self.status == httplib.NOT_FOUND:
            raise ResourceNotFoundError(message, driver=driver)
        elif self.status == httplib.SERVICE_UNAVAILABLE:
            raise ServiceUnavailableError(message, driver=driver)
        elif self.status == httplib.GATEWAY_TIMEOUT:
            raise GatewayTimeoutError(message, driver=driver)
        elif self.status == httplib.TOO_MANY_REQUESTS:
            raise RateLimitReachedError(message, headers=self.headers,
                                        driver=driver)

        raise ProviderError(message, http_code=self.status, driver=driver)

    @property
    def location(self):
        """
        Href of the resource created by the request (``Location`` header).
        """
        return self.headers.get('location')


class RightScaleConnection(ConnectionUserAndKey):
    """
    Connection class for the RightScale API 1.5.

    ``user_id`` is the account id and ``key`` the instance token RightLink
    passes to the instance in ``RS_API_TOKEN``. A session is opened on the
    first request and its cookie is kept by the underlying HTTP session.
    """

    host = DEFAULT_HOST
    responseCls = RightScaleResponse
    api_version = API_VERSION

    logged_in = False

    def login(self):
        logger.debug('Opening instance facing API session for account %s',
                     self.user_id)
        data = {
            'account_href': '/api/accounts/%s' % (self.user_id),
            'instance_token': self.key
        }
        super(RightScaleConnection, self).request(LOGIN_PATH, data=data,
                                                  method='POST')
        self.logged_in = True

    def request(self, action, params=None, data=None, headers=None,
                method='GET'):
        relogin = self.logged_in

        if not self.logged_in:
            self.login()

        try:
            return super(RightScaleConnection, self).request(
                action, params=params, data=data, headers=headers,
                method=method)
        except InvalidCredsError:
            if not relogin:
                raise

            # Session cookies expire, open a new session once
            logger.info('API session expired, logging in again...')
            self.logged_in = False
            self.login()
            return super(RightScaleConnection, self).request(
                action, params=params, data=data, headers=headers,
                method=method)

    def add_default_headers(self, headers):
        headers['X-API-Version'] = self.api_version
        headers['Accept'] = 'application/json'
        headers['Content-Type'] = 'application/json'
        return headers

    def encode_data(self, data):
        if isinstance(data, (dict, list)):
            return json.dumps(data)

        return data
