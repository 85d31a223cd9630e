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
    'RightScaleBackupDriver'
]

from urllib import parse as urlparse

from rightscale_backup.base import Instance, VolumeAttachment, VolumeType,\
    Backup, Task
from rightscale_backup.common.base import BaseDriver
from rightscale_backup.common.rightscale import RightScaleConnection
from rightscale_backup.common.rightscale import DEFAULT_HOST
from rightscale_backup.common.types import MalformedResponseError
from rightscale_backup.utils.misc import find_link, href_to_id, str2bool


class RightScaleBackupDriver(BaseDriver):
    """
    Driver for the backup related calls of the RightScale API 1.5.
    """
    name = 'RightScale'
    website = 'https://www.rightscale.com/'
    connectionCls = RightScaleConnection

    def __init__(self, account_id, instance_token, host=DEFAULT_HOST,
                 secure=True, port=None, **kwargs):
        """
        :param account_id: RightScale account id
        :type account_id: ``str``

        :param instance_token: Instance API token
        :type instance_token: ``str``

        :param host: API host (``RS_SERVER``)
        :type host: ``str``
        """
        self._instance = None
        super(RightScaleBackupDriver, self).__init__(key=account_id,
                                                     secret=instance_token,
                                                     secure=secure,
                                                     host=host, port=port,
                                                     **kwargs)

    def get_instance(self):
        """
        Return the instance the API session belongs to.

        :rtype: :class:`.Instance`
        """
        if self._instance is None:
            response = self.connection.request('/api/sessions/instance')
            self._instance = self._to_instance(response.object)

        return self._instance

    def list_volume_attachments(self, instance_href, cloud_href=None):
        """
        List the volume attachments of an instance.

        :param instance_href: Href of the instance
        :type instance_href: ``str``

        :param cloud_href: Href of the cloud, defaults to the cloud of the
                           session instance.
        :type cloud_href: ``str``

        :rtype: ``list`` of :class:`.VolumeAttachment`
        """
        cloud_href = cloud_href or self.get_instance().cloud_href
        params = {'filter[]': ['instance_href==%s' % (instance_href)]}
        response = self.connection.request(
            '%s/volume_attachments' % (cloud_href), params=params)
        return [self._to_volume_attachment(item) for item in response.object]

    def list_volume_types(self, cloud_href=None):
        """
        List the volume types offered by a cloud.

        :rtype: ``list`` of :class:`.VolumeType`
        """
        cloud_href = cloud_href or self.get_instance().cloud_href
        response = self.connection.request('%s/volume_types' % (cloud_href))
        return [self._to_volume_type(item) for item in response.object]

    def create_backup(self, lineage, name, volume_attachment_hrefs,
                      description=None, from_master=None):
        """
        Start a backup of the given volume attachments.

        :param lineage: Lineage of the backup
        :type lineage: ``str``

        :param name: Name of the backup
        :type name: ``str``

        :param volume_attachment_hrefs: Attachments to back up
        :type volume_attachment_hrefs: ``list`` of ``str``

        :param description: (optional) Description of the backup
        :type description: ``str``

        :param from_master: (optional) Mark the backup as taken from a
                            master server
        :type from_master: ``bool``

        :rtype: :class:`.Backup`
        """
        backup = {
            'lineage': lineage,
            'name': name,
            'volume_attachment_hrefs': list(volume_attachment_hrefs)
        }

        if description:
            backup['description'] = description

        if from_master is not None:
            backup['from_master'] = from_master

        response = self.connection.request('/api/backups',
                                           data={'backup': backup},
                                           method='POST')
        return self.get_backup(self._get_location(response))

    def get_backup(self, href):
        """
        :param href: Href of the backup
        :type href: ``str``

        :rtype: :class:`.Backup`
        """
        response = self.connection.request(href)
        return self._to_backup(response.object)

    def update_backup(self, backup, committed=None, name=None,
                      description=None):
        """
        Update the attributes of a backup.

        :rtype: ``bool``
        """
        attributes = {}

        if committed is not None:
            attributes['committed'] = str(bool(committed)).lower()

        if name is not None:
            attributes['name'] = name

        if description is not None:
            attributes['description'] = description

        self.connection.request(backup.href, data={'backup': attributes},
                                method='PUT')
        return True

    def list_backups(self, lineage, filters=None):
        """
        List the backups of a lineage, newest first.

        :param lineage: Backup lineage
        :type lineage: ``str``

        :param filters: (optional) API filters, e.g. ``committed==true``
        :type filters: ``list`` of ``str``

        :rtype: ``list`` of :class:`.Backup`
        """
        params = {'lineage': lineage}

        if filters:
            params['filter[]'] = list(filters)

        response = self.connection.request('/api/backups', params=params)
        return [self._to_backup(item) for item in response.object]

    def restore_backup(self, backup, instance_href, name=None,
                       description=None, size=None, volume_type_href=None):
        """
        Restore a backup onto an instance.

        :param backup: Backup to restore
        :type backup: :class:`.Backup`

        :param instance_href: Href of the instance to restore to
        :type instance_href: ``str``

        :param name: (optional) Name of the restored volumes
        :type name: ``str``

        :param description: (optional) Description of the restored volumes
        :type description: ``str``

        :param size: (optional) Size of the restored volumes in GB
        :type size: ``int``

        :param volume_type_href: (optional) Volume type of the restored
                                 volumes
        :type volume_type_href: ``str``

        :return: The restore task
        :rtype: :class:`.Task`
        """
        attributes = {}

        if name is not None:
            attributes['name'] = name

        if description is not None:
            attributes['description'] = description

        if size is not None:
            attributes['size'] = size

        if volume_type_href is not None:
            attributes['volume_type_href'] = volume_type_href

        data = {'instance_href': instance_href, 'backup': attributes}
        response = self.connection.request('%s/restore' % (backup.href),
                                           data=data, method='POST')
        return self.get_task(self._get_location(response))

    def get_task(self, href):
        """
        :param href: Href of the task
        :type href: ``str``

        :rtype: :class:`.Task`
        """
        response = self.connection.request(href)
        return self._to_task(response.object)

    def cleanup_backups(self, lineage, cloud_href=None, keep_last=None,
                        dailies=None, weeklies=None, monthlies=None,
                        yearlies=None):
        """
        Delete old backups of a lineage according to a rotation policy.

        :param lineage: Backup lineage
        :type lineage: ``str``

        :param cloud_href: Cloud of the backups, defaults to the cloud of
                           the session instance.
        :type cloud_href: ``str``

        :rtype: ``bool``
        """
        data = {
            'cloud_href': cloud_href or self.get_instance().cloud_href,
            'lineage': lineage
        }

        rotation = {
            'keep_last': keep_last,
            'dailies': dailies,
            'weeklies': weeklies,
            'monthlies': monthlies,
            'yearlies': yearlies
        }
        data.update(dict((key, value) for key, value in rotation.items()
                         if value is not None))

        self.connection.request('/api/backups/cleanup', data=data,
                                method='POST')
        return True

    def _get_location(self, response):
        location = response.location

        if not location:
            raise MalformedResponseError('Response has no Location header',
                                         body=response.body, driver=self)

        # Some API hosts answer with an absolute URL
        return urlparse.urlparse(location).path

    def _to_instance(self, data):
        href = find_link(data.get('links'), 'self')
        return Instance(id=href_to_id(href),
                        href=href,
                        name=data.get('name'),
                        links=data.get('links'),
                        driver=self,
                        extra={'resource_uid': data.get('resource_uid'),
                               'state': data.get('state')})

    def _to_volume_attachment(self, data):
        href = find_link(data.get('links'), 'self')
        return VolumeAttachment(id=href_to_id(href),
                                href=href,
                                device=data.get('device'),
                                resource_uid=data.get('resource_uid'),
                                state=data.get('state'),
                                driver=self,
                                extra={'links': data.get('links', [])})

    def _to_volume_type(self, data):
        href = find_link(data.get('links'), 'self')
        return VolumeType(id=href_to_id(href),
                          href=href,
                          name=data.get('name'),
                          driver=self,
                          extra={'resource_uid': data.get('resource_uid'),
                                 'size': data.get('size')})

    def _to_backup(self, data):
        href = find_link(data.get('links'), 'self')
        return Backup(id=href_to_id(href),
                      href=href,
                      name=data.get('name'),
                      lineage=data.get('lineage'),
                      committed=str2bool(data.get('committed')),
                      completed=str2bool(data.get('completed')),
                      driver=self,
                      description=data.get('description'),
                      from_master=str2bool(data.get('from_master')),
                      created_at=data.get('created_at'),
                      extra={'volume_snapshots':
                             data.get('volume_snapshots', [])})

    def _to_task(self, data):
        href = find_link(data.get('links'), 'self')
        return Task(id=href_to_id(href),
                    href=href,
                    summary=data.get('summary'),
                    driver=self)
