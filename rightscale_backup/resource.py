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

import copy

from rightscale_backup.types import BackupAction

__all__ = [
    'Attribute',
    'BackupResource'
]


class Attribute(object):
    """
    A typed resource attribute with an optional default value.

    Values are checked on assignment, ``None`` is always accepted and resets
    the attribute to its default.
    """

    def __init__(self, kind, default=None):
        self.kind = kind
        self.default = default
        self.name = None

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, instance, owner):
        if instance is None:
            return self

        if self.name in instance.__dict__:
            return instance.__dict__[self.name]

        # Mutable defaults are copied per resource
        value = copy.deepcopy(self.default)

        if isinstance(value, (dict, list)):
            instance.__dict__[self.name] = value

        return value

    def __set__(self, instance, value):
        if value is None:
            instance.__dict__.pop(self.name, None)
            return

        # bool is a subclass of int
        if not isinstance(value, self.kind) or \
                (isinstance(value, bool) and self.kind is int):
            raise TypeError('%s must be of type %s, got %r' %
                            (self.name, self.kind.__name__, value))

        instance.__dict__[self.name] = value


class BackupResource(object):
    """
    Desired state of a volume backup.

    :Example:

    resource = BackupResource('db_backup', lineage='db', timeout=30)
    """

    allowed_actions = (BackupAction.NOTHING, BackupAction.CREATE,
                       BackupAction.RESTORE, BackupAction.CLEANUP)
    default_action = BackupAction.CREATE

    name = Attribute(str)

    #: Description for the backup
    description = Attribute(str)

    #: Lineage to which the backup belongs
    lineage = Attribute(str)

    #: UNIX timestamp bounding the backup to restore
    timestamp = Attribute(int)

    #: Devices restored from the backup
    devices = Attribute(list)

    #: Whether the backup is taken from a master (usually database) server
    from_master = Attribute(bool, default=False)

    #: Size in GB of the volumes created on restore
    size = Attribute(int)

    #: Timeout in minutes for every action
    timeout = Attribute(int, default=15)

    # Rotation policy used by the cleanup action
    keep_last = Attribute(int, default=60)
    dailies = Attribute(int, default=1)
    weeklies = Attribute(int, default=4)
    monthlies = Attribute(int, default=12)
    yearlies = Attribute(int, default=2)

    #: Cloud specific options, e.g. ``{'volume_type': 'SSD'}``
    options = Attribute(dict, default={})

    def __init__(self, name, action=None, **attributes):
        """
        :param name: Name of the backup
        :type name: ``str``

        :param action: Action to run, defaults to ``create``
        :type action: ``str``

        :param attributes: Any of the resource attributes
        :type attributes: ``dict``
        """
        if not name:
            raise ValueError('name is required')

        self.name = name
        self.action = action or self.default_action
        self.updated = False

        for key, value in attributes.items():
            if not isinstance(getattr(type(self), key, None), Attribute):
                raise TypeError('Unknown attribute: %s' % (key))

            setattr(self, key, value)

    @property
    def action(self):
        return self._action

    @action.setter
    def action(self, value):
        if value not in self.allowed_actions:
            raise ValueError('Action %s is not allowed, must be one of %s' %
                             (value, ', '.join(self.allowed_actions)))

        self._action = value

    def updated_by_last_action(self, value):
        """
        Record whether the last action changed anything.
        """
        self.updated = bool(value)

    def rotation(self):
        """
        Return the rotation policy used by the cleanup action.

        :rtype: ``dict``
        """
        return {
            'keep_last': self.keep_last,
            'dailies': self.dailies,
            'weeklies': self.weeklies,
            'monthlies': self.monthlies,
            'yearlies': self.yearlies
        }

    def __repr__(self):
        return ('<BackupResource: name=%s, lineage=%s, action=%s>' %
                (self.name, self.lineage, self.action))
