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
import re
import fnmatch

from setuptools import setup

# Names that are excluded from globbing results:
EXCLUDE_NAMES = ['{arch}', 'CVS', '.cvsignore', '_darcs',
                 'RCS', 'SCCS', '.svn', '__pycache__']
EXCLUDE_PATTERNS = ['*.py[cdo]', '*.s[ol]', '.#*', '*~', '*.py']


def _filter_names(names):
    """
    Given a list of file names, return those names that should be copied.
    """
    names = [n for n in names
             if n not in EXCLUDE_NAMES]
    for pattern in EXCLUDE_PATTERNS:
        names = [n for n in names if not fnmatch.fnmatch(n, pattern)]
    return names


def get_packages(dname, pkgname=None, results=None):
    """
    Get all packages which are under dname.
    """
    bname = os.path.basename(dname)
    if results is None:
        results = []
    if pkgname is None:
        pkgname = []
    subfiles = os.listdir(dname)
    abssubfiles = [os.path.join(dname, x) for x in subfiles]

    if '__init__.py' in subfiles:
        results.append(pkgname + [bname])
        for subdir in filter(os.path.isdir, abssubfiles):
            get_packages(subdir, pkgname=pkgname + [bname], results=results)
    return ['.'.join(result) for result in results]


def get_data_files(dname, parent):
    """
    Get the non Python files (test fixtures) under dname, relative to the
    parent package directory.
    """
    result = []
    for directory, subdirectories, filenames in os.walk(dname):
        for exname in EXCLUDE_NAMES:
            if exname in subdirectories:
                subdirectories.remove(exname)
        for filename in _filter_names(filenames):
            file_path = os.path.join(directory, filename)
            result.append(os.path.relpath(file_path, parent))

    return result


INSTALL_REQUIREMENTS = [
    'requests>=2.5.0',
]

TEST_REQUIREMENTS = [
    'mock',
    'requests_mock',
    'pytest'
] + INSTALL_REQUIREMENTS


def read_version_string():
    version = None
    cwd = os.path.dirname(os.path.abspath(__file__))
    version_file = os.path.join(cwd, 'rightscale_backup/__init__.py')

    with open(version_file) as fp:
        content = fp.read()

    match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                      content, re.M)

    if match:
        version = match.group(1)
        return version

    raise Exception('Cannot find version in rightscale_backup/__init__.py')


setup(
    name='rightscale-backup',
    version=read_version_string(),
    description='Create, restore and clean up backups of the volumes ' +
                'attached to a RightScale managed instance.',
    long_description=open('README.rst').read(),
    author='RightScale, Inc.',
    install_requires=INSTALL_REQUIREMENTS,
    python_requires='>=3.6, <4',
    packages=get_packages('rightscale_backup'),
    package_dir={
        'rightscale_backup': 'rightscale_backup',
    },
    package_data={
        'rightscale_backup': get_data_files('rightscale_backup/test/fixtures',
                                            parent='rightscale_backup'),
    },
    license='Apache License (2.0)',
    tests_require=TEST_REQUIREMENTS,
    extras_require={
        'test': TEST_REQUIREMENTS,
    },
    entry_points={
        'console_scripts': [
            'rightscale-backup = rightscale_backup.cli:main',
        ],
    },
    zip_safe=False,
    classifiers=[
        'Development Status :: 5 - Production/Stable',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Topic :: System :: Archiving :: Backup',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: Implementation :: CPython'
    ]
)
