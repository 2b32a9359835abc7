#!/usr/bin/env python

from setuptools import setup, find_packages
import eulsword

LONG_DESCRIPTION = None
try:
    # read the description if it's there
    with open('README.rst') as desc_f:
        LONG_DESCRIPTION = desc_f.read()
except IOError:
    pass

CLASSIFIERS = [
    'Development Status :: 4 - Beta',
    'Framework :: Django',
    'Intended Audience :: Developers',
    'License :: OSI Approved :: Apache Software License',
    'Natural Language :: English',
    'Operating System :: OS Independent',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Topic :: Software Development :: Libraries :: Python Modules',
]

requirements = [
    'eulxml>=1.0.1',
    'lxml',
    'rdflib>=4.0',
    'requests>2.9',
    'requests-toolbelt>=0.6.0',
]

test_requirements = [
    'pytest',
    'mock',
]

dev_requirements = test_requirements + [
    'nose',
    'coverage',
    'Django',
    'tox',
]


setup(
    name='eulsword',
    version=eulsword.__version__,
    author='Emory University Libraries',
    author_email='libsysdev-l@listserv.cc.emory.edu',
    license='Apache License, Version 2.0',
    packages=find_packages(exclude=['test', 'test.*']),
    install_requires=requirements,
    # Django is optional; it is only used to read repository and
    # deposit settings from a project's settings.py
    extras_require={
        'django': ['Django'],
        'test': test_requirements,
        'dev': dev_requirements,
    },
    description='SWORD deposits of METS packages into a Fedora Commons repository',
    long_description=LONG_DESCRIPTION,
    classifiers=CLASSIFIERS,
)
