# -*- coding: utf-8 -*-
#
# Copyright (c), 2018-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
from setuptools import setup, find_packages

with open("README.rst") as readme:
    long_description = readme.read()

setup(
    name='xmlcontrol',
    version='1.0.0',
    packages=find_packages(include=['xmlcontrol', 'xmlcontrol.*']),
    package_data={'xmlcontrol': ['py.typed']},
    keywords=['XML', 'XPath', 'validation', 'testing', 'Pratt-parser', 'ElementTree', 'lxml'],
    license='MIT',
    description='Semantic validation of XML documents against control documents '
                'and XPath expressions',
    long_description=long_description,
    python_requires='>=3.8',
    install_requires=['structlog'],
    extras_require={
        'lxml': ['lxml'],
        'dev': ['tox', 'coverage', 'lxml', 'flake8', 'mypy', 'lxml-stubs']
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Programming Language :: Python :: Implementation :: CPython',
        'Topic :: Software Development :: Testing',
        'Topic :: Text Processing :: Markup :: XML',
    ]
)
