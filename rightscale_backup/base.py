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

from rightscale_backup.types import TaskState, UNKNOWN_DEVICE
from rightscale_backup.utils.misc import find_link

__all__ = [
    'Instance',
    'VolumeAttachment',
    'VolumeType',
    'Backup',
    'Task'
]


class Instance(object):
    """
    The instance the API session was opened for.
    """

    def __init__(self, id, href, name, links, driver, extra=None):
        """
        :param id: Instance id
        :type id: ``str``

        :param href: Instance href
        :type href: ``str``

        :param name: Name of the instance
        :type name: ``str``

        :param links: Links to related resources
        :type links: ``list`` of ``dict``

        :param driver: RightScaleBackupDriver instance.
        :type driver: :class:`.RightScaleBackupDriver`

        :param extra: (optional) Extra attributes.
        :type extra: ``dict``
        """
        self.id = str(id) if id else None
        self.href = href
        self.name = name
        self.links = links or []
        self.driver = driver
        self.extra = extra or {}

    @property
    def cloud_href(self):
        return find_link(self.links, 'cloud')

    def __repr__(self):
        return ('<Instance: id=%s, name=%s, href=%s>' %
                (self.id, self.name, self.href))


class VolumeAttachment(object):
    """
    A volume attached to an instance.
    """

    def __init__(self, id, href, device, resource_uid, state, driver,
                 extra=None):
        """
        :param id: Attachment id
        :type id: ``str``

        :param href: Attachment href
        :type href: ``str``

        :param device: Device the volume is attached to (``/dev/xvdb``) or
                       ``unknown``.
        :type device: ``str``

        :param resource_uid: Cloud specific attachment id.
        :type resource_uid: ``str``

        :param state: Attachment state (``attached``, ...).
        :type state: ``str``

        :param driver: RightScaleBackupDriver instance.
        :type driver: :class:`.RightScaleBackupDriver`

        :param extra: (optional) Extra attributes.
        :type extra: ``dict``
        """
        self.id = str(id) if id else None
        self.href = href
        self.device = device
        self.resource_uid = resource_uid
        self.state = state
        self.driver = driver
        self.extra = extra or {}

    def is_boot_disk(self):
        """
        Whether the attachment is the instance's boot disk.

        Clouds report the boot disk either without a device or, like Google
        Compute Engine, with a resource uid such as
        ``projects/example.com:test/disks/boot-i-12345``.

        :rtype: ``bool``
        """
        if self.device == UNKNOWN_DEVICE:
            return True

        if not self.resource_uid:
            return False

        return self.resource_uid.rstrip('/').rsplit('/', 1)[-1]\
            .startswith('boot')

    def __repr__(self):
        return ('<VolumeAttachment: id=%s, device=%s, state=%s>' %
                (self.id, self.device, self.state))


class VolumeType(object):
    """
    A volume type offered by a cloud (e.g. ``SATA`` and ``SSD`` on
    Rackspace Open Cloud).
    """

    def __init__(self, id, href, name, driver, extra=None):
        self.id = str(id) if id else None
        self.href = href
        self.name = name
        self.driver = driver
        self.extra = extra or {}

    def __repr__(self):
        return '<VolumeType: id=%s, name=%s>' % (self.id, self.name)


class Backup(object):
    """
    A backup of one or more volumes.
    """

    def __init__(self, id, href, name, lineage, committed, completed,
                 driver, description=None, from_master=False,
                 created_at=None, extra=None):
        """
        :param id: Backup id
        :type id: ``str``

        :param href: Backup href
        :type href: ``str``

        :param name: Name of the backup
        :type name: ``str``

        :param lineage: Lineage the backup belongs to
        :type lineage: ``str``

        :param committed: Whether the backup has been committed
        :type committed: ``bool``

        :param completed: Whether all volume snapshots have completed
        :type completed: ``bool``

        :param driver: RightScaleBackupDriver instance.
        :type driver: :class:`.RightScaleBackupDriver`

        :param description: (optional) Description of the backup
        :type description: ``str``

        :param from_master: (optional) Whether the backup was taken from a
                            master server
        :type from_master: ``bool``

        :param created_at: (optional) Creation time as returned by the API
        :type created_at: ``str``

        :param extra: (optional) Extra attributes.
        :type extra: ``dict``
        """
        self.id = str(id) if id else None
        self.href = href
        self.name = name
        self.lineage = lineage
        self.committed = committed
        self.completed = completed
        self.driver = driver
        self.description = description
        self.from_master = from_master
        self.created_at = created_at
        self.extra = extra or {}

    def reload(self):
        """
        Fetch the current state of this backup.

        :rtype: :class:`.Backup`
        """
        return self.driver.get_backup(self.href)

    def commit(self):
        return self.driver.update_backup(backup=self, committed=True)

    def restore(self, instance_href, name=None, description=None, size=None,
                volume_type_href=None):
        """
        Restore this backup onto an instance.

        :rtype: :class:`.Task`
        """
        return self.driver.restore_backup(backup=self,
                                          instance_href=instance_href,
                                          name=name,
                                          description=description,
                                          size=size,
                                          volume_type_href=volume_type_href)

    def __repr__(self):
        return ('<Backup: id=%s, name=%s, lineage=%s, completed=%s, '
                'committed=%s>' %
                (self.id, self.name, self.lineage, self.completed,
                 self.committed))


class Task(object):
    """
    An asynchronous API task, returned by a restore.
    """

    def __init__(self, id, href, summary, driver, extra=None):
        self.id = str(id) if id else None
        self.href = href
        self.summary = summary
        self.driver = driver
        self.extra = extra or {}

    @property
    def state(self):
        return TaskState.from_summary(self.summary)

    def reload(self):
        return self.driver.get_task(self.href)

    def __repr__(self):
        return '<Task: id=%s, summary=%s>' % (self.id, self.summary)
