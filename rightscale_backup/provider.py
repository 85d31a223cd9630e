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
Carries out the actions of a :class:`.BackupResource` against the API.
"""

import time
import logging
import datetime

from rightscale_backup.config import get_credentials
from rightscale_backup.driver import RightScaleBackupDriver
from rightscale_backup.resource import BackupResource
from rightscale_backup.types import Provider, TaskState, UNKNOWN_DEVICE
from rightscale_backup.utils.retry import Retry
from rightscale_backup.common.types import BackupError
from rightscale_backup.common.types import LineageMissingError
from rightscale_backup.common.types import BackupNotFoundError
from rightscale_backup.common.types import ActionTimeoutError
from rightscale_backup.common.types import GatewayTimeoutError

__all__ = [
    'NODE_KEY',
    'LATEST_BEFORE_FORMAT',
    'BackupProvider'
]

logger = logging.getLogger(__name__)

# Key of this provider's state in the node attributes
NODE_KEY = 'rightscale_backup'

# Timestamp format the API expects in the latest_before filter
LATEST_BEFORE_FORMAT = '%Y/%m/%d %H:%M:%S %z'

# Volume type used on Rackspace Open Cloud when none is requested
DEFAULT_RACKSPACE_VOLUME_TYPE = 'SATA'


class BackupProvider(object):
    """
    Provider for a :class:`.BackupResource`.

    :param new_resource: The desired state
    :type new_resource: :class:`.BackupResource`

    :param node: Node attributes. Restored devices are recorded under
                 ``node['rightscale_backup'][<backup name>]['devices']`` and
                 ``node['cloud']['provider']`` selects cloud specific
                 behaviour.
    :type node: ``dict``

    :param driver: API driver, created from the instance credentials when
                   not given.
    :type driver: :class:`.RightScaleBackupDriver`
    """

    # Seconds between two status checks
    poll_interval = 5

    # Seconds to wait before retrying a request which timed out at the
    # gateway
    gateway_retry_delay = 2

    def __init__(self, new_resource, node=None, driver=None):
        self.new_resource = new_resource
        self.node = node if node is not None else {}
        self.driver = driver
        self.current_resource = None
        self._instance_href = None

    def load_current_resource(self):
        """
        Load the current state of the backup from the node and set up the
        API driver.

        :rtype: :class:`.BackupResource`
        """
        self.current_resource = BackupResource(self.new_resource.name)
        self.node.setdefault(NODE_KEY, {})

        if self.driver is None:
            self.driver = self.initialize_api_client()

        state = self.node[NODE_KEY].get(self.new_resource.name)
        if state:
            self.current_resource.devices = state.get('devices')

        if self.new_resource.timeout:
            self.current_resource.timeout = self.new_resource.timeout

        return self.current_resource

    def run_action(self, action=None):
        """
        Run an action, defaults to the action of the resource.

        :param action: One of the resource's allowed actions
        :type action: ``str``
        """
        action = action or self.new_resource.action

        if action not in self.new_resource.allowed_actions:
            raise ValueError('Action %s is not allowed, must be one of %s' %
                             (action,
                              ', '.join(self.new_resource.allowed_actions)))

        self.load_current_resource()
        getattr(self, 'action_%s' % (action))()

    def action_nothing(self):
        pass

    def action_create(self):
        """
        Create a backup of all volumes currently attached to the instance.
        """
        self._require_lineage()

        logger.info('Creating backup of all volumes currently attached to '
                    'the instance...')

        # TODO: Back up only the devices listed in the resource once the
        # API can map a device to a volume attachment reliably.
        backup = self.create_backup(self.get_volume_attachment_hrefs())

        if backup is None:
            raise BackupError('Backup was not created successfully!')

        logger.info("Backup for devices '%s' created and committed "
                    "successfully.", backup.name)
        self.new_resource.updated_by_last_action(True)

    def action_restore(self):
        """
        Restore the latest backup of the lineage onto the instance.
        """
        self._require_lineage()

        # The API does not do an inclusive search for the timestamp
        if self.new_resource.timestamp is not None:
            timestamp = datetime.datetime.fromtimestamp(
                self.new_resource.timestamp + 1, tz=datetime.timezone.utc)
        else:
            timestamp = datetime.datetime.now(tz=datetime.timezone.utc)

        backup = self.find_latest_backup(self.new_resource.lineage,
                                         timestamp,
                                         self.new_resource.from_master)
        if backup is None:
            raise BackupNotFoundError(self.new_resource.lineage, timestamp)

        devices_before_restore = self.get_current_devices()
        restore_status = self.restore_backup(backup,
                                             self.new_resource.options)

        if restore_status != TaskState.COMPLETED:
            raise BackupError('Backups were not restored successfully!')

        restored_devices = [device for device in self.get_current_devices()
                            if device not in devices_before_restore]
        state = self.node[NODE_KEY].setdefault(self.new_resource.name, {})
        state['devices'] = restored_devices

        logger.info('Backups were restored successfully to %s',
                    ', '.join(restored_devices))
        self.new_resource.updated_by_last_action(True)

    def action_cleanup(self):
        """
        Clean up old backups of the lineage.
        """
        self._require_lineage()
        self.cleanup_backups(self.new_resource.lineage,
                             self.new_resource.rotation())

    def cleanup_backups(self, lineage, cleanup_options):
        """
        Clean up old backups in a lineage.

        :param lineage: The lineage of the backups to clean up
        :type lineage: ``str``

        :param cleanup_options: Rotation policy (``keep_last``, ``dailies``,
                                ``weeklies``, ``monthlies``, ``yearlies``)
        :type cleanup_options: ``dict``
        """
        params = {
            'cloud_href': self.get_cloud_href(),
            'lineage': lineage
        }
        params.update(cleanup_options)

        logger.info('Cleaning up backups with params %r...', params)
        return self.driver.cleanup_backups(**params)

    def create_backup(self, attachment_hrefs):
        """
        Create a backup of the given volume attachments, wait for it to
        complete and commit it.

        :param attachment_hrefs: Hrefs of the attached volumes
        :type attachment_hrefs: ``list`` of ``str``

        :rtype: :class:`.Backup`
        """
        timeout = self.current_resource.timeout * 60
        end = time.time() + timeout

        params = {
            'lineage': self.new_resource.lineage,
            'name': self.new_resource.name,
            'volume_attachment_hrefs': attachment_hrefs,
            'description': self.new_resource.description or None,
            'from_master': self.new_resource.from_master
        }

        logger.info('Creating a backup with the following parameters: '
                    '%r...', params)
        backup = self.driver.create_backup(**params)

        while backup.completed is not True:
            if time.time() >= end:
                raise ActionTimeoutError('Backup did not create within %s '
                                         'seconds!' % (timeout),
                                         timeout=timeout, driver=self.driver)

            logger.info("Waiting for backup to complete... Status is '%s'",
                        backup.completed)
            time.sleep(self.poll_interval)
            backup = backup.reload()

        logger.info('Backup completed. Committing the backup...')
        backup.commit()

        return backup

    def find_latest_backup(self, lineage, timestamp, from_master=None):
        """
        Get the latest committed and completed backup of a lineage taken
        before a point in time.

        :param lineage: The backup lineage
        :type lineage: ``str``

        :param timestamp: Latest acceptable backup time
        :type timestamp: :class:`datetime.datetime`

        :param from_master: Only look for master backups
        :type from_master: ``bool``

        :rtype: :class:`.Backup` or ``None``
        """
        utc_timestamp = timestamp.astimezone(datetime.timezone.utc)
        filters = [
            'latest_before==%s' % (
                utc_timestamp.strftime(LATEST_BEFORE_FORMAT)),
            'committed==true',
            'completed==true'
        ]

        if from_master:
            filters.append('from_master==true')

        backups = self.driver.list_backups(lineage=lineage, filters=filters)
        return backups[0] if backups else None

    def get_current_devices(self):
        """
        Get the devices of the volumes attached to the instance.

        :rtype: ``list`` of ``str``
        """
        attachments = self.driver.list_volume_attachments(
            self.get_instance_href())
        return sorted(attachment.device for attachment in attachments
                      if attachment.device and
                      attachment.device != UNKNOWN_DEVICE)

    def get_cloud_href(self):
        return self.driver.get_instance().cloud_href

    def get_instance_href(self):
        if self._instance_href is None:
            self._instance_href = self.driver.get_instance().href

        return self._instance_href

    def get_volume_attachment_hrefs(self):
        """
        Get the hrefs of all volumes attached to the instance except the
        boot disk.

        :rtype: ``list`` of ``str``
        """
        attachments = self.driver.list_volume_attachments(
            self.get_instance_href())
        return [attachment.href for attachment in attachments
                if not attachment.is_boot_disk()]

    def get_volume_type_href(self, volume_type):
        """
        Get the href of a volume type by name.

        Only Rackspace Open Cloud lets the volume type be chosen (SATA or
        SSD), ``None`` is returned on every other cloud.

        :param volume_type: The volume type name
        :type volume_type: ``str``

        :rtype: ``str`` or ``None``
        """
        cloud = self.node.get('cloud') or {}

        if cloud.get('provider') != Provider.RACKSPACE_NG:
            return None

        volume_type = volume_type or DEFAULT_RACKSPACE_VOLUME_TYPE

        for item in self.driver.list_volume_types(self.get_cloud_href()):
            if item.name.lower() == volume_type.lower():
                return item.href

        return None

    def restore_backup(self, backup, options=None):
        """
        Restore a backup and wait for the restore to complete.

        Requests answered with a gateway timeout (volumes still being
        attached) are retried until the action times out.

        :param backup: The backup to restore
        :type backup: :class:`.Backup`

        :param options: Cloud specific options, ``volume_type`` is used on
                        Rackspace Open Cloud
        :type options: ``dict``

        :return: The final restore status
        :rtype: ``str``
        """
        options = options or {}
        timeout = self.current_resource.timeout * 60
        end = time.time() + timeout

        params = {
            'instance_href': self.get_instance_href(),
            'name': self.new_resource.name,
            'description': self.new_resource.description,
            'size': self.new_resource.size
        }

        if options.get('volume_type'):
            volume_type_href = self.get_volume_type_href(
                options['volume_type'])

            if volume_type_href is not None:
                params['volume_type_href'] = volume_type_href

        logger.info('Restoring backup with the following parameters: '
                    '%r...', params)
        task = self._retry_gateway_timeout(backup.restore, end, timeout,
                                           **params)

        restore_status = task.state
        while restore_status != TaskState.COMPLETED:
            if restore_status == TaskState.FAILED:
                raise BackupError("Restore failed with status '%s'!" %
                                  (restore_status), driver=self.driver)

            if time.time() >= end:
                raise self._restore_timeout_error(timeout)

            logger.info('Waiting for restore to complete... Status is %s',
                        restore_status)
            time.sleep(self.poll_interval)
            task = self._retry_gateway_timeout(task.reload, end, timeout)
            restore_status = task.state

        return restore_status

    def initialize_api_client(self):
        """
        Create an API driver from the instance credentials.

        :rtype: :class:`.RightScaleBackupDriver`
        """
        credentials = get_credentials()
        return RightScaleBackupDriver(credentials.account_id,
                                      credentials.instance_token,
                                      host=credentials.host)

    def _retry_gateway_timeout(self, func, end, timeout, **kwargs):
        retry = Retry(retry_exceptions=(GatewayTimeoutError,),
                      retry_delay=self.gateway_retry_delay,
                      timeout=end - time.time(), backoff=1)
        try:
            return retry(func)(**kwargs)
        except GatewayTimeoutError:
            # Retries only give up once the restore deadline is reached
            raise self._restore_timeout_error(timeout)

    def _restore_timeout_error(self, timeout):
        return ActionTimeoutError('Restore did not complete within %s '
                                  'seconds!' % (timeout),
                                  timeout=timeout, driver=self.driver)

    def _require_lineage(self):
        if not self.new_resource.lineage:
            raise LineageMissingError()
