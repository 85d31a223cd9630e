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

import sys
import json
from urllib import parse as urlparse

from mock import patch

from rightscale_backup.base import Backup, Task
from rightscale_backup.common.types import BackupError
from rightscale_backup.common.types import InvalidCredsError
from rightscale_backup.common.types import ResourceNotFoundError
from rightscale_backup.common.types import GatewayTimeoutError
from rightscale_backup.common.types import ServiceUnavailableError
from rightscale_backup.common.types import MalformedResponseError
from rightscale_backup.common.types import ProviderError
from rightscale_backup.common.types import RateLimitReachedError
from rightscale_backup.driver import RightScaleBackupDriver
from rightscale_backup.provider import BackupProvider
from rightscale_backup.resource import BackupResource
from rightscale_backup.types import TaskState

from rightscale_backup.test import MockHttp, unittest
from rightscale_backup.test.file_fixtures import RightScaleFileFixtures
from rightscale_backup.test.secrets import RIGHTSCALE_PARAMS, RIGHTSCALE_HOST

INSTANCE_HREF = '/api/clouds/1/instances/4FQ9A1BSTL0C8'
BACKUP_HREF = '/api/backups/3A5N0K9T3BHLP'
TASK_HREF = '/api/clouds/1/instances/4FQ9A1BSTL0C8/live/tasks/ae-81234567'


class RightScaleBackupDriverTests(unittest.TestCase):

    def setUp(self):
        RightScaleBackupDriver.connectionCls.conn_class = RightScaleMockHttp
        RightScaleMockHttp.reset()
        self.driver = RightScaleBackupDriver(*RIGHTSCALE_PARAMS,
                                             host=RIGHTSCALE_HOST)

    def tearDown(self):
        del RightScaleBackupDriver.connectionCls.conn_class

    def _requests(self, method=None, path=None):
        return [request for request in MockHttp.requests
                if (method is None or request[0] == method) and
                (path is None or urlparse.urlparse(request[1]).path == path)]

    def test_login_on_first_request(self):
        self.driver.get_instance()

        method, url, body, headers = MockHttp.requests[0]
        self.assertEqual(method, 'POST')
        self.assertEqual(url, '/api/session/instance')
        self.assertEqual(json.loads(body), {
            'account_href': '/api/accounts/12345',
            'instance_token': RIGHTSCALE_PARAMS[1]
        })

    def test_login_once(self):
        self.driver.get_instance()
        self.driver.list_volume_types('/api/clouds/1')
        self.assertEqual(len(self._requests('POST', '/api/session/instance')),
                         1)

    def test_default_headers(self):
        self.driver.list_volume_types('/api/clouds/1')

        for _, _, _, headers in MockHttp.requests:
            self.assertEqual(headers['X-API-Version'], '1.5')
            self.assertEqual(headers['Content-Type'], 'application/json')
            self.assertTrue(headers['User-Agent'].startswith(
                'rightscale_backup/'))
            self.assertIn('(RightScale)', headers['User-Agent'])

    def test_invalid_creds(self):
        RightScaleMockHttp.type = 'UNAUTHORIZED'
        with self.assertRaises(InvalidCredsError) as context:
            self.driver.get_instance()
        self.assertEqual(context.exception.http_code, 401)
        self.assertEqual(len(self._requests('POST', '/api/session/instance')),
                         1)

    def test_expired_session_logs_in_again(self):
        self.driver.list_volume_types('/api/clouds/1')

        RightScaleMockHttp.type = 'EXPIRED'
        instance = self.driver.get_instance()

        self.assertEqual(instance.href, INSTANCE_HREF)
        self.assertEqual(len(self._requests('POST', '/api/session/instance')),
                         2)

    def test_get_instance(self):
        instance = self.driver.get_instance()
        self.assertEqual(instance.id, '4FQ9A1BSTL0C8')
        self.assertEqual(instance.href, INSTANCE_HREF)
        self.assertEqual(instance.name, 'db-master-1')
        self.assertEqual(instance.cloud_href, '/api/clouds/1')
        self.assertEqual(instance.extra['resource_uid'], 'i-0b1c2d3e')

    def test_get_instance_is_cached(self):
        first = self.driver.get_instance()
        second = self.driver.get_instance()
        self.assertTrue(first is second)
        self.assertEqual(len(self._requests('GET', '/api/sessions/instance')),
                         1)

    def test_list_volume_attachments(self):
        attachments = self.driver.list_volume_attachments(INSTANCE_HREF)
        self.assertEqual(len(attachments), 3)
        self.assertEqual(attachments[0].device, '/dev/xvdb')
        self.assertEqual(attachments[0].href,
                         '/api/clouds/1/volume_attachments/9T2RK3TD1J4QG')
        self.assertEqual(attachments[0].id, '9T2RK3TD1J4QG')
        self.assertFalse(attachments[0].is_boot_disk())
        self.assertTrue(attachments[2].is_boot_disk())

        url = self._requests('GET', '/api/clouds/1/volume_attachments')[0][1]
        qs = urlparse.parse_qs(urlparse.urlparse(url).query)
        self.assertEqual(qs['filter[]'], ['instance_href==' + INSTANCE_HREF])

    def test_list_volume_types(self):
        volume_types = self.driver.list_volume_types('/api/clouds/2175')
        self.assertEqual([item.name for item in volume_types],
                         ['SATA', 'SSD'])
        self.assertEqual(volume_types[1].href,
                         '/api/clouds/2175/volume_types/8B52MKOTEMDQ7')

    def test_create_backup(self):
        backup = self.driver.create_backup(
            lineage='db_lineage', name='db_backup',
            volume_attachment_hrefs=['/api/clouds/1/volume_attachments/1'],
            description='nightly', from_master=True)

        self.assertTrue(isinstance(backup, Backup))
        self.assertEqual(backup.href, BACKUP_HREF)
        self.assertEqual(backup.lineage, 'db_lineage')
        self.assertFalse(backup.completed)
        self.assertFalse(backup.committed)
        self.assertTrue(backup.from_master)
        self.assertEqual(len(backup.extra['volume_snapshots']), 2)

        body = json.loads(self._requests('POST', '/api/backups')[0][2])
        self.assertEqual(body, {
            'backup': {
                'lineage': 'db_lineage',
                'name': 'db_backup',
                'volume_attachment_hrefs': [
                    '/api/clouds/1/volume_attachments/1'],
                'description': 'nightly',
                'from_master': True
            }
        })

    def test_create_backup_without_optional_attributes(self):
        self.driver.create_backup(lineage='db_lineage', name='db_backup',
                                  volume_attachment_hrefs=[])

        body = json.loads(self._requests('POST', '/api/backups')[0][2])
        self.assertNotIn('description', body['backup'])
        self.assertNotIn('from_master', body['backup'])

    def test_create_backup_no_location(self):
        RightScaleMockHttp.type = 'NO_LOCATION'
        with self.assertRaises(MalformedResponseError):
            self.driver.create_backup(lineage='db_lineage', name='db_backup',
                                      volume_attachment_hrefs=[])

    def test_get_backup(self):
        RightScaleMockHttp.type = 'COMPLETED'
        backup = self.driver.get_backup(BACKUP_HREF)
        self.assertTrue(backup.completed)
        self.assertEqual(backup.description, 'nightly')
        self.assertEqual(backup.created_at, '2014/03/01 02:00:05 +0000')

    def test_get_backup_not_found(self):
        RightScaleMockHttp.type = 'NOT_FOUND'
        with self.assertRaises(ResourceNotFoundError) as context:
            self.driver.get_backup(BACKUP_HREF)
        self.assertEqual(context.exception.http_code, 404)

    def test_backup_reload(self):
        backup = self.driver.get_backup(BACKUP_HREF)
        self.assertFalse(backup.completed)

        RightScaleMockHttp.type = 'COMPLETED'
        self.assertTrue(backup.reload().completed)

    def test_update_backup(self):
        backup = self.driver.get_backup(BACKUP_HREF)
        self.assertTrue(self.driver.update_backup(backup, committed=True,
                                                  description='weekly'))

        body = json.loads(self._requests('PUT', BACKUP_HREF)[0][2])
        self.assertEqual(body, {'backup': {'committed': 'true',
                                           'description': 'weekly'}})

    def test_backup_commit(self):
        backup = self.driver.get_backup(BACKUP_HREF)
        self.assertTrue(backup.commit())

        body = json.loads(self._requests('PUT', BACKUP_HREF)[0][2])
        self.assertEqual(body, {'backup': {'committed': 'true'}})

    def test_list_backups(self):
        backups = self.driver.list_backups(
            'db_lineage', filters=['committed==true', 'completed==true'])
        self.assertEqual(len(backups), 2)
        self.assertEqual(backups[0].id, '7CQ1MH0V2D4E0')
        self.assertTrue(backups[0].committed)

        url = self._requests('GET', '/api/backups')[0][1]
        qs = urlparse.parse_qs(urlparse.urlparse(url).query)
        self.assertEqual(qs['lineage'], ['db_lineage'])
        self.assertEqual(qs['filter[]'],
                         ['committed==true', 'completed==true'])

    def test_list_backups_empty(self):
        RightScaleMockHttp.type = 'EMPTY'
        self.assertEqual(self.driver.list_backups('db_lineage'), [])

    def test_restore_backup(self):
        backup = self.driver.get_backup(BACKUP_HREF)
        task = self.driver.restore_backup(
            backup, instance_href=INSTANCE_HREF, name='db_backup',
            size=20, volume_type_href='/api/clouds/2175/volume_types/1')

        self.assertTrue(isinstance(task, Task))
        self.assertEqual(task.href, TASK_HREF)
        self.assertEqual(task.state, TaskState.IN_PROGRESS)

        body = json.loads(
            self._requests('POST', BACKUP_HREF + '/restore')[0][2])
        self.assertEqual(body, {
            'instance_href': INSTANCE_HREF,
            'backup': {
                'name': 'db_backup',
                'size': 20,
                'volume_type_href': '/api/clouds/2175/volume_types/1'
            }
        })

    def test_restore_backup_gateway_timeout(self):
        backup = self.driver.get_backup(BACKUP_HREF)

        RightScaleMockHttp.type = 'GATEWAY_TIMEOUT'
        with self.assertRaises(GatewayTimeoutError):
            backup.restore(instance_href=INSTANCE_HREF)

    def test_task_reload(self):
        backup = self.driver.get_backup(BACKUP_HREF)
        task = backup.restore(instance_href=INSTANCE_HREF)

        RightScaleMockHttp.type = 'COMPLETED'
        self.assertEqual(task.reload().state, TaskState.COMPLETED)

    def test_cleanup_backups(self):
        self.assertTrue(self.driver.cleanup_backups(
            'db_lineage', keep_last=10, dailies=2, yearlies=None))

        body = json.loads(self._requests('POST', '/api/backups/cleanup')[0][2])
        self.assertEqual(body, {
            'cloud_href': '/api/clouds/1',
            'lineage': 'db_lineage',
            'keep_last': 10,
            'dailies': 2
        })

    def test_service_unavailable(self):
        RightScaleMockHttp.type = 'UNAVAILABLE'
        with self.assertRaises(ServiceUnavailableError):
            self.driver.list_backups('db_lineage')

    def test_rate_limit(self):
        RightScaleMockHttp.type = 'RATE_LIMIT'
        with self.assertRaises(RateLimitReachedError) as context:
            self.driver.list_backups('db_lineage')
        self.assertEqual(context.exception.retry_after, 10)

    def test_unexpected_error(self):
        RightScaleMockHttp.type = 'SERVER_ERROR'
        with self.assertRaises(ProviderError) as context:
            self.driver.list_backups('db_lineage')
        self.assertEqual(context.exception.http_code, 500)
        self.assertIn('Internal failure', str(context.exception))

    def test_malformed_response(self):
        RightScaleMockHttp.type = 'MALFORMED'
        with self.assertRaises(MalformedResponseError):
            self.driver.list_backups('db_lineage')


class RightScaleBackupProviderTests(unittest.TestCase):

    def setUp(self):
        RightScaleBackupDriver.connectionCls.conn_class = RightScaleMockHttp
        RightScaleMockHttp.reset()
        self.driver = RightScaleBackupDriver(*RIGHTSCALE_PARAMS,
                                             host=RIGHTSCALE_HOST)
        self.node = {'cloud': {'provider': 'ec2'}}

        sleep_patcher = patch('time.sleep')
        self.sleep = sleep_patcher.start()
        self.addCleanup(sleep_patcher.stop)

    def tearDown(self):
        del RightScaleBackupDriver.connectionCls.conn_class

    def _run(self, action, **attributes):
        resource = BackupResource('db_backup', action=action,
                                  lineage='db_lineage', **attributes)
        BackupProvider(resource, node=self.node,
                       driver=self.driver).run_action()
        return resource

    def _bodies(self, method, path):
        return [json.loads(body) for m, url, body, _ in MockHttp.requests
                if m == method and urlparse.urlparse(url).path == path]

    def test_create(self):
        RightScaleMockHttp.type = 'CREATE'
        resource = self._run('create', description='nightly')

        self.assertTrue(resource.updated)
        self.assertEqual(self._bodies('POST', '/api/backups'), [{
            'backup': {
                'lineage': 'db_lineage',
                'name': 'db_backup',
                'volume_attachment_hrefs': [
                    '/api/clouds/1/volume_attachments/9T2RK3TD1J4QG',
                    '/api/clouds/1/volume_attachments/EQ5U7OCV2M1IL'],
                'description': 'nightly',
                'from_master': False
            }
        }])
        self.assertEqual(self._bodies('PUT', BACKUP_HREF),
                         [{'backup': {'committed': 'true'}}])
        self.sleep.assert_called_once_with(5)

    def test_restore(self):
        RightScaleMockHttp.type = 'RESTORE'
        resource = self._run('restore', size=20)

        self.assertTrue(resource.updated)
        self.assertEqual(self.node['rightscale_backup'],
                         {'db_backup': {'devices': ['/dev/xvde',
                                                    '/dev/xvdf']}})
        self.assertEqual(
            self._bodies('POST', '/api/backups/7CQ1MH0V2D4E0/restore'),
            [{'instance_href': INSTANCE_HREF,
              'backup': {'name': 'db_backup', 'size': 20}}])

    def test_restore_failed(self):
        RightScaleMockHttp.type = 'RESTORE_FAILED'

        with self.assertRaises(BackupError) as context:
            self._run('restore')

        self.assertEqual(str(context.exception),
                         "Restore failed with status 'failed'!")
        self.assertEqual(self.node['rightscale_backup'], {})

    def test_cleanup(self):
        resource = self._run('cleanup', keep_last=3)

        self.assertFalse(resource.updated)
        self.assertEqual(self._bodies('POST', '/api/backups/cleanup'), [{
            'cloud_href': '/api/clouds/1',
            'lineage': 'db_lineage',
            'keep_last': 3,
            'dailies': 1,
            'weeklies': 4,
            'monthlies': 12,
            'yearlies': 2
        }])


class RightScaleMockHttp(MockHttp):
    fixtures = RightScaleFileFixtures()
    expired_calls = 0
    calls = {}

    @classmethod
    def reset(cls):
        super(RightScaleMockHttp, cls).reset()
        RightScaleMockHttp.expired_calls = 0
        RightScaleMockHttp.calls = {}

    def _count(self, name):
        calls = RightScaleMockHttp.calls
        calls[name] = calls.get(name, 0) + 1
        return calls[name]

    def _api_session_instance(self, method, url, body, headers):
        return self._response(204)

    def _api_session_instance_UNAUTHORIZED(self, method, url, body, headers):
        return self._response(401, 'Session creation failed',
                              {'content-type': 'text/plain'})

    def _api_sessions_instance(self, method, url, body, headers):
        return self._response(200, self.fixtures.load('instance.json'))

    def _api_sessions_instance_EXPIRED(self, method, url, body, headers):
        RightScaleMockHttp.expired_calls += 1
        if RightScaleMockHttp.expired_calls == 1:
            return self._response(401, 'Session cookie is expired or invalid',
                                  {'content-type': 'text/plain'})
        return self._api_sessions_instance(method, url, body, headers)

    def _api_clouds_1_volume_attachments(self, method, url, body, headers):
        return self._response(200,
                              self.fixtures.load('volume_attachments.json'))

    def _api_clouds_1_volume_types(self, method, url, body, headers):
        return self._response(200, '[]')

    def _api_clouds_2175_volume_types(self, method, url, body, headers):
        return self._response(200, self.fixtures.load('volume_types.json'))

    def _api_backups(self, method, url, body, headers):
        if method == 'POST':
            return self._response(
                201, '',
                {'location': 'https://us-3.rightscale.com' + BACKUP_HREF})
        return self._response(200, self.fixtures.load('backups.json'))

    def _api_backups_NO_LOCATION(self, method, url, body, headers):
        return self._response(201)

    def _api_backups_EMPTY(self, method, url, body, headers):
        return self._response(200, '[]')

    def _api_backups_UNAVAILABLE(self, method, url, body, headers):
        return self._response(503, 'Service is down for maintenance',
                              {'content-type': 'text/plain'})

    def _api_backups_RATE_LIMIT(self, method, url, body, headers):
        return self._response(429, 'Too many requests',
                              {'content-type': 'text/plain',
                               'retry-after': '10'})

    def _api_backups_SERVER_ERROR(self, method, url, body, headers):
        return self._response(500, 'Internal failure',
                              {'content-type': 'text/plain'})

    def _api_backups_MALFORMED(self, method, url, body, headers):
        return self._response(200, '<html>Maintenance</html>')

    def _api_backups_3A5N0K9T3BHLP(self, method, url, body, headers):
        if method == 'PUT':
            return self._response(204)
        return self._response(200, self.fixtures.load('backup_pending.json'))

    def _api_backups_3A5N0K9T3BHLP_COMPLETED(self, method, url, body,
                                             headers):
        return self._response(200,
                              self.fixtures.load('backup_completed.json'))

    def _api_backups_3A5N0K9T3BHLP_NOT_FOUND(self, method, url, body,
                                             headers):
        return self._response(404, 'ResourceNotFound: Couldn\'t find Backup',
                              {'content-type': 'text/plain'})

    def _api_backups_3A5N0K9T3BHLP_restore(self, method, url, body,
                                           headers):
        return self._response(202, '', {'location': TASK_HREF})

    def _api_backups_3A5N0K9T3BHLP_restore_GATEWAY_TIMEOUT(self, method, url,
                                                           body, headers):
        return self._response(504, 'Gateway Time-out',
                              {'content-type': 'text/plain'})

    def _api_backups_cleanup(self, method, url, body, headers):
        return self._response(204)

    def _api_clouds_1_instances_4FQ9A1BSTL0C8_live_tasks_ae_81234567(
            self, method, url, body, headers):
        return self._response(200, self.fixtures.load('task_in_progress.json'))

    def _api_clouds_1_instances_4FQ9A1BSTL0C8_live_tasks_ae_81234567_COMPLETED(
            self, method, url, body, headers):
        return self._response(200, self.fixtures.load('task_completed.json'))

    def _api_clouds_1_volume_attachments_RESTORE(self, method, url, body,
                                                 headers):
        if self._count('volume_attachments') == 1:
            return self._api_clouds_1_volume_attachments(method, url, body,
                                                         headers)
        return self._response(
            200, self.fixtures.load('volume_attachments_restored.json'))

    def _api_backups_3A5N0K9T3BHLP_CREATE(self, method, url, body, headers):
        if method == 'PUT':
            return self._response(204)
        if self._count('backup') == 1:
            return self._response(200,
                                  self.fixtures.load('backup_pending.json'))
        return self._response(200,
                              self.fixtures.load('backup_completed.json'))

    def _api_backups_7CQ1MH0V2D4E0_restore(self, method, url, body, headers):
        return self._response(202, '', {'location': TASK_HREF})

    def _api_clouds_1_instances_4FQ9A1BSTL0C8_live_tasks_ae_81234567_RESTORE(
            self, method, url, body, headers):
        if self._count('task') == 1:
            return self._response(200, self.fixtures.load('task_queued.json'))
        return self._response(200, self.fixtures.load('task_completed.json'))

    def _api_clouds_1_instances_4FQ9A1BSTL0C8_live_tasks_ae_81234567_RESTORE_FAILED(  # NOQA
            self, method, url, body, headers):
        return self._response(200, self.fixtures.load('task_failed.json'))


if __name__ == '__main__':
    sys.exit(unittest.main())
