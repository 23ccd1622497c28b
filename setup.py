#!/usr/bin/env python
# -*- coding: utf-8 -*-
import os

from setuptools import setup

ROOT = os.path.dirname(os.path.abspath(__file__))

# There are problems running setup.py on Windows if the encoding is not set
with open(os.path.join(ROOT, 'README.md'), encoding='utf8') as readme_file:
    readme = readme_file.read()
with open(os.path.join(ROOT, 'keen', 'VERSION'), encoding='utf8') as version_file:
    version = version_file.read().strip()


setup(
    name='keen-client',
    version=version,
    description="Client for the Keen IO analytics API with a batched local event queue.",
    long_description=readme,
    long_description_content_type="text/markdown",
    author="keen-client contributors",
    packages=[
        'keen',
        'keen.config',
        'keen.queue',
        'keen.transport',
    ],
    package_dir={'keen': 'keen'},
    package_data={'keen': ['VERSION']},
    entry_points={
        'console_scripts': [
            'keen=keen.cli:cli'
        ]
    },
    include_package_data=True,
    install_requires=[
        'httpx>=0.23',
        'tenacity>=8.2',
        'typer>=0.9',
        'rich>=12.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    python_requires=">=3.8",
    license="MIT license",
    zip_safe=False,
    keywords='keen analytics events',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ]
)
