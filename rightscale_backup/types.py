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
    'Provider',
    'BackupAction',
    'TaskState',
    'UNKNOWN_DEVICE'
]

# Device name RightScale reports for volumes it can't map to a device,
# e.g. the boot disk
UNKNOWN_DEVICE = 'unknown'


class Provider(object):
    """
    Cloud providers as reported by the node's ``cloud.provider`` attribute.

    Only the providers with a special case in the backup logic are listed.
    """
    EC2 = 'ec2'
    GOOGLE = 'google'
    RACKSPACE_NG = 'rackspace-ng'


class BackupAction(object):
    """
    Actions supported by a backup resource.
    """
    NOTHING = 'nothing'
    CREATE = 'create'
    RESTORE = 'restore'
    CLEANUP = 'cleanup'


class TaskState(object):
    """
    The state of an asynchronous API task (e.g. a restore).
    """

    QUEUED = 'queued'
    IN_PROGRESS = 'in-progress'
    COMPLETED = 'completed'
    FAILED = 'failed'

    @classmethod
    def from_summary(cls, summary):
        """
        Return the state part of a task summary.

        A summary looks like ``"<state>: <description>"``, for example
        ``"completed: Attach volumes to instance through API"``.

        :param summary: Task summary
        :type summary: ``str``

        :rtype: ``str``
        """
        if summary is None:
            return None

        return summary.split(': ')[0]
