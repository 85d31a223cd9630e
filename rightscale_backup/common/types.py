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

import time

from email.utils import parsedate_tz, mktime_tz

__all__ = [
    'BackupError',
    'MalformedResponseError',
    'ProviderError',
    'InvalidCredsError',
    'ResourceNotFoundError',
    'ServiceUnavailableError',
    'GatewayTimeoutError',
    'RateLimitReachedError',
    'LineageMissingError',
    'BackupNotFoundError',
    'ActionTimeoutError',
    'ConfigurationError'
]


class BackupError(Exception):
    """The base class for other rightscale_backup exceptions"""

    def __init__(self, value, driver=None):
        super(BackupError, self).__init__(value)
        self.value = value
        self.driver = driver

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return ('<%s in %r %r>' %
                (self.__class__.__name__, self.driver, self.value))


class MalformedResponseError(BackupError):
    """Exception for the cases when the API returns a malformed
    response, e.g. we request JSON and get back '<h3>something</h3>'
    from a proxy in the way."""

    def __init__(self, value, body=None, driver=None):
        super(MalformedResponseError, self).__init__(value, driver=driver)
        self.body = body

    def __repr__(self):
        return ('<MalformedResponseError in %r %r>: %r' %
                (self.driver, self.value, self.body))


class ProviderError(BackupError):
    """
    Exception used when the API gives back an error response (HTTP 4xx, 5xx)
    for a request.

    Specific sub types are derived for errors like
    HTTP 401 : InvalidCredsError
    HTTP 404 : ResourceNotFoundError
    HTTP 429 : RateLimitReachedError
    HTTP 504 : GatewayTimeoutError
    """

    def __init__(self, value, http_code, driver=None):
        super(ProviderError, self).__init__(value=value, driver=driver)
        self.http_code = http_code

    def __str__(self):
        return '%s (HTTP %s)' % (self.value, self.http_code)


class InvalidCredsError(ProviderError):
    """Exception used when invalid credentials are used."""

    def __init__(self, value='Invalid credentials with the provider',
                 driver=None):
        super(InvalidCredsError, self).__init__(value,
                                                http_code=401,
                                                driver=driver)


class ResourceNotFoundError(ProviderError):
    """Exception used when the API returns 404 Not Found."""

    def __init__(self, value='Resource not found', driver=None):
        super(ResourceNotFoundError, self).__init__(value,
                                                    http_code=404,
                                                    driver=driver)


class ServiceUnavailableError(ProviderError):
    """Exception used when the API returns 503 Service Unavailable."""

    def __init__(self, value='Service unavailable at provider', driver=None):
        super(ServiceUnavailableError, self).__init__(value,
                                                      http_code=503,
                                                      driver=driver)


class GatewayTimeoutError(ProviderError):
    """
    Exception used when the API returns 504 Gateway Timeout. RightScale
    answers restore requests with it while it waits for volumes to attach.
    """

    def __init__(self, value='Gateway timeout at provider', driver=None):
        super(GatewayTimeoutError, self).__init__(value,
                                                  http_code=504,
                                                  driver=driver)


class RateLimitReachedError(ProviderError):
    """
    Exception used when the API returns 429 Too Many Requests.

    ``retry_after`` holds the number of seconds the API asked us to wait.
    ``Retry-After`` may be given as delta-seconds or as an HTTP-date.
    """

    def __init__(self, value='Rate limit exceeded', headers=None,
                 driver=None):
        super(RateLimitReachedError, self).__init__(value,
                                                    http_code=429,
                                                    driver=driver)
        self.retry_after = self._parse_retry_after(
            (headers or {}).get('retry-after'))

    @staticmethod
    def _parse_retry_after(value):
        if not value:
            return 0

        try:
            return max(0, int(value))
        except ValueError:
            pass

        http_date = parsedate_tz(value)
        if http_date is None:
            return 0

        return max(0, int(mktime_tz(http_date) - time.time()))


class LineageMissingError(BackupError):
    """Exception used when an action is run on a resource without lineage."""

    def __init__(self, value=None, driver=None):
        if value is None:
            value = ("Backup lineage attribute is missing. Lineage is a "
                     "required attribute for all 'rightscale_backup' "
                     "actions. Specify backup lineage and try again.")
        super(LineageMissingError, self).__init__(value, driver=driver)


class BackupNotFoundError(BackupError):
    """Exception used when no backup matches a lineage and timestamp."""

    def __init__(self, lineage, timestamp, driver=None):
        value = ("No backups found in lineage '%s' within timestamp '%s'! "
                 "Please check the lineage and/or timestamp and try again." %
                 (lineage, timestamp))
        super(BackupNotFoundError, self).__init__(value, driver=driver)
        self.lineage = lineage
        self.timestamp = timestamp


class ActionTimeoutError(BackupError):
    """Exception used when an action does not finish within its timeout."""

    def __init__(self, value, timeout=None, driver=None):
        super(ActionTimeoutError, self).__init__(value, driver=driver)
        self.timeout = timeout


class ConfigurationError(BackupError):
    """Exception used when API credentials can't be found or parsed."""
    pass
