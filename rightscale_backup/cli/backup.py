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

import json

from rightscale_backup.provider import BackupProvider
from rightscale_backup.resource import BackupResource
from rightscale_backup.types import BackupAction

__all__ = [
    'add_subparsers',
    'run_action'
]

# Resource attributes which can be set from the command line, per action
ACTION_ATTRIBUTES = {
    BackupAction.CREATE: ['lineage', 'description', 'from_master',
                          'timeout'],
    BackupAction.RESTORE: ['lineage', 'description', 'timestamp',
                           'from_master', 'size', 'timeout'],
    BackupAction.CLEANUP: ['lineage', 'timeout', 'keep_last', 'dailies',
                           'weeklies', 'monthlies', 'yearlies']
}

ACTION_HELP = {
    BackupAction.CREATE: 'Back up all volumes attached to this instance',
    BackupAction.RESTORE: 'Restore the latest backup of a lineage',
    BackupAction.CLEANUP: 'Delete old backups of a lineage'
}


def add_subparsers(subparsers):
    for action in (BackupAction.CREATE, BackupAction.RESTORE,
                   BackupAction.CLEANUP):
        parser = subparsers.add_parser(action, help=ACTION_HELP[action])
        parser.set_defaults(action=action)
        parser.add_argument('name', help='Name of the backup')
        parser.add_argument('--lineage', dest='lineage', required=True,
                            help='Lineage of the backup')
        parser.add_argument('--timeout', dest='timeout', type=int,
                            default=None,
                            help='Timeout in minutes (default: 15)')
        parser.add_argument('--cloud-provider', dest='cloud_provider',
                            default=None,
                            help='Cloud provider of this instance, e.g. '
                                 'rackspace-ng')

        if action in (BackupAction.CREATE, BackupAction.RESTORE):
            parser.add_argument('--description', dest='description',
                                default=None,
                                help='Description of the backup')
            parser.add_argument('--from-master', dest='from_master',
                                action='store_true', default=None,
                                help='Backup is taken from a master server')

        if action == BackupAction.RESTORE:
            parser.add_argument('--timestamp', dest='timestamp', type=int,
                                default=None,
                                help='Restore the latest backup taken before '
                                     'this UNIX timestamp')
            parser.add_argument('--size', dest='size', type=int,
                                default=None,
                                help='Size in GB of the restored volumes')
            parser.add_argument('--volume-type', dest='volume_type',
                                default=None,
                                help='Volume type of the restored volumes '
                                     '(Rackspace Open Cloud only)')

        if action == BackupAction.CLEANUP:
            for attribute, default in (('keep_last', 60), ('dailies', 1),
                                       ('weeklies', 4), ('monthlies', 12),
                                       ('yearlies', 2)):
                parser.add_argument('--%s' % (attribute.replace('_', '-')),
                                    dest=attribute, type=int, default=None,
                                    help='Number of backups to keep '
                                         '(default: %s)' % (default))

    return subparsers


def run_action(args, driver=None, out=None):
    """
    Run the action selected on the command line.

    :return: The node attributes after the action
    :rtype: ``dict``
    """
    attributes = dict((name, getattr(args, name, None))
                      for name in ACTION_ATTRIBUTES[args.action])

    volume_type = getattr(args, 'volume_type', None)
    if volume_type:
        attributes['options'] = {'volume_type': volume_type}

    resource = BackupResource(args.name, action=args.action, **attributes)

    node = {}
    if args.cloud_provider:
        node['cloud'] = {'provider': args.cloud_provider}

    provider = BackupProvider(resource, node=node, driver=driver)
    provider.run_action()

    if out is not None:
        out.write(json.dumps(node, sort_keys=True, indent=4) + '\n')

    return node
