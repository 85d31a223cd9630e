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
import logging
import argparse

import rightscale_backup
from rightscale_backup.cli import backup
from rightscale_backup.common.types import BackupError

__all__ = [
    'get_parser',
    'main'
]

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def get_parser():
    parser = argparse.ArgumentParser(
        prog='rightscale-backup',
        description='Manage volume backups of this instance through the '
                    'RightScale API')
    parser.add_argument('--version', action='version',
                        version='%(prog)s ' + rightscale_backup.__version__)
    parser.add_argument('--debug', dest='debug', action='store_true',
                        default=False,
                        help='Log API requests and responses to stderr')
    parser.add_argument('--quiet', dest='quiet', action='store_true',
                        default=False, help='Only log warnings and errors')

    subparsers = parser.add_subparsers(dest='action', metavar='ACTION')
    subparsers.required = True
    backup.add_subparsers(subparsers)

    return parser


def main(argv=None, driver=None):
    parser = get_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format=LOG_FORMAT,
        level=logging.WARNING if args.quiet else logging.INFO)

    if args.debug:
        rightscale_backup.enable_debug(sys.stderr)

    try:
        backup.run_action(args, driver=driver, out=sys.stdout)
    except BackupError as e:
        sys.stderr.write('%s\n' % (e))
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
