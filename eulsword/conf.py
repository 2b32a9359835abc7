# file eulsword/conf.py
#
#   Copyright 2016 Emory University Libraries & IT Services
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""
Default configuration for deposit handling.  Every value can be
overridden from Django settings, when Django is installed and
configured, by defining a setting with the same name::

    # eulsword deposit settings
    DATASTREAM_VERSIONING = True
    DEFAULT_COLLECTION = 'qucosa:all'
    CONTENT_MODEL = 'qucosa:CModel'
    OAI_ID_PREFIX = 'oai:qucosa:de:'

Settings are looked up when a
:class:`~eulsword.handler.DepositHandler` or
:class:`~eulsword.server.Repository` is initialized, and passed on
explicitly from there; explicit initialization parameters always
take precedence.

----
"""

import logging

logger = logging.getLogger(__name__)

#: mark newly created or replaced datastreams as versionable
DATASTREAM_VERSIONING = False
#: collection pid used when a deposit does not specify one
DEFAULT_COLLECTION = 'qucosa:all'
#: content model pid for deposited objects
CONTENT_MODEL = 'qucosa:CModel'
#: prefix for the OAI item id added to RELS-EXT
OAI_ID_PREFIX = 'oai:qucosa:de:'


def get_setting(name, default=None):
    '''Get a configuration value by name, preferring a Django setting
    when one is available, then the module default defined here, then
    the `default` passed in.'''
    value = globals().get(name, default)
    try:
        from django.conf import settings
        from django.core.exceptions import ImproperlyConfigured
    except ImportError:
        return value

    try:
        return getattr(settings, name, value)
    except ImproperlyConfigured:
        # django installed but not in use
        return value
