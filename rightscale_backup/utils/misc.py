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

__all__ = [
    'lowercase_keys',
    'find_link',
    'href_to_id',
    'str2bool'
]


def lowercase_keys(dictionary):
    return dict(((k.lower(), v) for k, v in dictionary.items()))


def find_link(links, rel):
    """
    Return href of the first link with the given relation.

    :param links: ``links`` attribute of an API resource.
    :type links: ``list`` of ``dict``

    :param rel: Relation name (``self``, ``cloud``, ...).
    :type rel: ``str``

    :rtype: ``str`` or ``None``
    """
    for link in links or []:
        if link.get('rel') == rel:
            return link.get('href')

    return None


def href_to_id(href):
    """
    Return the last path segment of a resource href.

    >>> href_to_id('/api/backups/ABC123')
    'ABC123'
    """
    if not href:
        return None

    return href.rstrip('/').rsplit('/', 1)[-1]


def str2bool(value):
    """
    Convert an API boolean (``True``, ``'true'``, ``'false'``, None) to
    ``bool``.
    """
    if isinstance(value, bool):
        return value

    return str(value).lower() in ['true', '1', 'yes']
