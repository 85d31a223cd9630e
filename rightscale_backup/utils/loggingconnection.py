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

import os
import json
from shlex import quote as pquote

from rightscale_backup.http import HTTPConnection, HttpResponseProxy

__all__ = [
    'LoggingConnection'
]

# Values of these headers are replaced in the log output
REDACTED_HEADERS = ['cookie', 'set-cookie']


class LoggingConnection(HTTPConnection):
    """
    Debug class to log all HTTP(s) requests as they could be made
    with the curl command.

    :cvar log: file-like object that logs entries are written to.
    """

    log = None

    def _log_response(self, r):
        rv = '# -------- begin %d:%d response ----------\n' % (id(self), id(r))
        ht = 'HTTP/1.1 %s %s\r\n' % (r.status, r.reason)
        body = r.read()
        if isinstance(body, (bytearray, bytes)):
            body = body.decode('utf-8')
        for h in r.getheaders():
            ht += '%s: %s\r\n' % (h[0].title(), self._header_value(*h))
        ht += '\r\n'

        headers = dict((k.lower(), v) for k, v in r.getheaders())
        content_type = headers.get('content-type', '')

        pretty_print = os.environ.get(
            'RIGHTSCALE_BACKUP_DEBUG_PRETTY_PRINT_RESPONSE', False)

        if pretty_print and content_type.startswith('application/'):
            try:
                body = json.dumps(json.loads(body), sort_keys=True, indent=4)
            except ValueError:
                # Server is lying about content-type
                pass

        ht += body

        rv += ht
        rv += ('\n# -------- end %d:%d response ----------\n'
               % (id(self), id(r)))

        return rv

    def _log_curl(self, method, url, body, headers):
        cmd = ['curl']

        if self.http_proxy_used:
            cmd.extend(['--proxy', pquote('%s://%s:%s' % (self.proxy_scheme,
                                                          self.proxy_host,
                                                          self.proxy_port))])

        cmd.extend(['-i', '-X', pquote(method)])

        for h in headers:
            cmd.extend(['-H', pquote('%s: %s' % (h, self._header_value(
                h, headers[h])))])

        if body is not None and len(body) > 0:
            if isinstance(body, (bytearray, bytes)):
                body = body.decode('utf-8')

            if 'instance_token' in body:
                body = '<redacted>'

            cmd.extend(['--data-binary', pquote(body)])

        cmd.extend(['--compress'])
        cmd.extend([pquote('%s%s' % (self.host, url))])
        return ' '.join(cmd)

    def _header_value(self, name, value):
        if name.lower() in REDACTED_HEADERS:
            return '<redacted>'

        return value

    def getresponse(self):
        original_response = HTTPConnection.getresponse(self)
        if self.log is not None:
            rv = self._log_response(HttpResponseProxy(original_response))
            self.log.write(rv + '\n')
            self.log.flush()
        return original_response

    def request(self, method, url, body=None, headers=None):
        headers = dict(headers or {})
        headers.update({'X-RSB-Request-ID': str(id(self))})
        if self.log is not None:
            pre = '# -------- begin %d request ----------\n' % id(self)
            self.log.write(pre +
                           self._log_curl(method, url, body, headers) +
                           '\n')
            self.log.flush()
        return HTTPConnection.request(self, method, url, body, headers)
