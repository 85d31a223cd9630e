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
import logging
from functools import wraps

import requests

from rightscale_backup.common.types import RateLimitReachedError
from rightscale_backup.common.types import ServiceUnavailableError

__all__ = [
    'Retry',
    'DEFAULT_TIMEOUT',
    'DEFAULT_DELAY',
    'DEFAULT_BACKOFF',
    'RETRY_EXCEPTIONS'
]

_logger = logging.getLogger(__name__)

# All the time values (timeout, delay, backoff) are in seconds
DEFAULT_TIMEOUT = 30  # default retry timeout
DEFAULT_DELAY = 1  # default sleep delay used in each iterator
DEFAULT_BACKOFF = 1  # retry backup multiplier
RETRY_EXCEPTIONS = (
    RateLimitReachedError,
    ServiceUnavailableError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


class Retry(object):
    def __init__(self, retry_exceptions=RETRY_EXCEPTIONS,
                 retry_delay=DEFAULT_DELAY, timeout=DEFAULT_TIMEOUT,
                 backoff=DEFAULT_BACKOFF):
        """
        Wrapper around retrying that helps to handle common transient
        exceptions.

        The wrapped callable is always invoked at least once. After that it
        is invoked again for as long as it raises one of ``retry_exceptions``
        and ``timeout`` seconds have not passed; the last exception is then
        re-raised.

        :param retry_exceptions: types of exceptions to retry on.
        :param retry_delay: retry delay between the attempts.
        :param timeout: maximum time to wait.
        :param backoff: multiplier added to delay between attempts.

        :Example:

        retry_request = Retry(retry_exceptions=(GatewayTimeoutError,),
                              timeout=60, retry_delay=2, backoff=1)
        retry_request(backup.restore)(instance_href)
        """
        if retry_exceptions is None:
            retry_exceptions = RETRY_EXCEPTIONS
        if retry_delay is None:
            retry_delay = DEFAULT_DELAY
        if timeout is None:
            timeout = DEFAULT_TIMEOUT
        if backoff is None:
            backoff = DEFAULT_BACKOFF

        self.retry_exceptions = retry_exceptions
        self.retry_delay = retry_delay
        self.timeout = max(timeout, 0)
        self.backoff = backoff

    def __call__(self, func):
        @wraps(func)
        def retry_loop(*args, **kwargs):
            current_delay = self.retry_delay
            end = time.time() + self.timeout

            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    if not self.should_retry(exc):
                        raise

                    if isinstance(exc, RateLimitReachedError):
                        _logger.debug('You are being rate limited, backing '
                                      'off...')

                        # Retry-After defaults to 0, use a more reasonable
                        # delay to prevent busy waiting.
                        delay = exc.retry_after if exc.retry_after else 2
                        current_delay = self.retry_delay
                    else:
                        delay = current_delay
                        current_delay *= self.backoff

                    if time.time() + delay > end:
                        raise

                    _logger.warning('%s! Retrying in %s seconds...',
                                    exc, delay)
                    time.sleep(delay)

        return retry_loop

    def should_retry(self, exception):
        return isinstance(exception, tuple(self.retry_exceptions))
