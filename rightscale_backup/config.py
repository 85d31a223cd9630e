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
API credentials lookup.

RightLink hands the instance its API credentials as ``RS_API_TOKEN``
(``<account id>:<instance token>``) and ``RS_SERVER`` (API host), both in the
environment of the scripts it runs and in the user-data dictionary it writes
to ``/var/spool/cloud/user-data.dict``.
"""

import os
import logging

from rightscale_backup.common.types import ConfigurationError

__all__ = [
    'USER_DATA_FILE',
    'Credentials',
    'read_user_data',
    'get_credentials'
]

logger = logging.getLogger(__name__)

USER_DATA_FILE = '/var/spool/cloud/user-data.dict'

API_TOKEN_NAME = 'RS_API_TOKEN'
SERVER_NAME = 'RS_SERVER'


class Credentials(object):
    def __init__(self, account_id, instance_token, host):
        self.account_id = account_id
        self.instance_token = instance_token
        self.host = host

    def __repr__(self):
        # Never show the token
        return ('<Credentials: account_id=%s, host=%s>' %
                (self.account_id, self.host))


def read_user_data(path=None):
    """
    Read a RightLink user-data dictionary (one ``KEY=value`` per line).

    :param path: Path to the file, defaults to ``RS_USER_DATA_FILE`` or
                 :data:`USER_DATA_FILE`.
    :type path: ``str``

    :return: The values, empty when the file does not exist.
    :rtype: ``dict``
    """
    path = path or os.environ.get('RS_USER_DATA_FILE', USER_DATA_FILE)

    if not os.path.isfile(path):
        logger.debug('No user-data file at %s', path)
        return {}

    values = {}
    with open(path, 'r') as fp:
        for line in fp:
            line = line.strip()

            if not line or line.startswith('#') or '=' not in line:
                continue

            key, value = line.split('=', 1)
            values[key.strip()] = value.strip()

    return values


def get_credentials(environ=None, user_data_path=None):
    """
    Return the API credentials of this instance.

    Values from the environment take precedence over the user-data file.

    :rtype: :class:`.Credentials`
    """
    environ = os.environ if environ is None else environ
    values = read_user_data(user_data_path)
    values.update(dict((key, environ[key])
                       for key in (API_TOKEN_NAME, SERVER_NAME)
                       if environ.get(key)))

    api_token = values.get(API_TOKEN_NAME)
    server = values.get(SERVER_NAME)

    if not api_token or not server:
        raise ConfigurationError(
            '%s and %s must be set in the environment or in the user-data '
            'file' % (API_TOKEN_NAME, SERVER_NAME))

    if ':' not in api_token:
        raise ConfigurationError(
            '%s must be in the <account id>:<instance token> format' %
            (API_TOKEN_NAME))

    account_id, instance_token = api_token.split(':', 1)

    if not account_id or not instance_token:
        raise ConfigurationError(
            '%s must be in the <account id>:<instance token> format' %
            (API_TOKEN_NAME))

    return Credentials(account_id=account_id, instance_token=instance_token,
                       host=server)
