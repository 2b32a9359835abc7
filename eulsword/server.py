# file eulsword/server.py
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
:class:`eulsword.server.Repository` is the repository used by
:class:`~eulsword.handler.DepositHandler` to look up and change Fedora
objects.  It can pull connection parameters from Django settings, when
available, but it can also be used without Django.

Projects that configure the repository through Django should include
the following settings in their ``settings.py``::

    # Fedora Repository settings
    FEDORA_ROOT = 'http://fedora.host.name:8080/fedora/'
    FEDORA_USER = 'user'
    FEDORA_PASSWORD = 'password'
    FEDORA_PIDSPACE = 'qucosa'

If username and password are not specified, the Repository instance
will access Fedora as an anonymous user.  If pidspace is not
specified, new pids are minted in the default pidspace of the
configured Fedora instance.

----
"""

import logging

import requests
from eulxml import xmlmap

from eulsword.api import REST_API
from eulsword.conf import get_setting
from eulsword.models import Datastream, XmlDatastream, INLINE, LOCAL_FILE, REMOTE
from eulsword.util import RequestFailed, parse_xml_object
from eulsword.xml import DatastreamProfile, NewPids

logger = logging.getLogger(__name__)


class Repository(object):
    """Deposit-oriented interface to a single Fedora Commons
    repository instance.

    Connect by passing in connection parameters or based on
    configuration in Django settings.  Explicit parameters override
    any settings.

    Datastreams passed to this class must be plain datastreams; use
    :func:`eulsword.models.unwrap` on augmented datastreams first.
    """

    def __init__(self, root=None, username=None, password=None, pidspace=None):
        if root is None:
            root = get_setting('FEDORA_ROOT')
            if username is None and password is None:
                username = get_setting('FEDORA_USER')
                password = get_setting('FEDORA_PASSWORD')
        if pidspace is None:
            pidspace = get_setting('FEDORA_PIDSPACE')

        if root is None:
            raise Exception('Could not determine Fedora root url from django settings or parameter')

        logger.debug('Connecting to fedora at %s %s', root,
                     'as %s' % username if username else '(no user credentials)')
        self.api = REST_API(root, username, password)
        self.fedora_root = self.api.base_url
        self.default_pidspace = pidspace

    def mint_pid(self):
        'Request the next available pid from Fedora.'
        kwargs = {}
        if self.default_pidspace:
            kwargs['namespace'] = self.default_pidspace
        r = self.api.getNextPID(**kwargs)
        nextpids = parse_xml_object(NewPids, r.content, r.url)
        return nextpids.pids[0]

    def upload(self, content):
        'Upload file content; returns a Fedora upload id.'
        return self.api.upload(content)

    def ingest(self, obj, log_message=None):
        """Ingest a new object.  Local file content is uploaded to
        Fedora first.

        :param obj: :class:`~eulsword.models.DepositObject`
        :param log_message: optional log message
        :returns: pid of the new object
        """
        foxml = obj.build_foxml(upload=self.upload)
        r = self.api.ingest(foxml, logMessage=log_message)
        return r.text.strip()

    def _get_profile(self, pid, dsid):
        # datastream profile, or None if the datastream does not exist
        try:
            r = self.api.getDatastream(pid, dsid)
        except RequestFailed as rf:
            if rf.code == requests.codes.not_found:
                return None
            raise
        return parse_xml_object(DatastreamProfile, r.content, r.url)

    def has_datastream(self, pid, dsid):
        return self._get_profile(pid, dsid) is not None

    def get_datastream(self, pid, dsid, xmlclass=xmlmap.XmlObject):
        '''Get a datastream currently stored on an object.  Inline XML
        datastreams are returned as
        :class:`~eulsword.models.XmlDatastream` with content loaded
        as `xmlclass`; for other datastreams only profile information
        is returned.

        :returns: datastream, or None if the object does not have it
        '''
        profile = self._get_profile(pid, dsid)
        if profile is None:
            return None
        info = dict(label=profile.label, mimetype=profile.mimetype,
                    state=profile.state, versionable=profile.versionable,
                    checksum=profile.checksum, checksum_type=profile.checksum_type)
        if profile.control_group == 'X':
            r = self.api.getDatastreamDissemination(pid, dsid)
            return XmlDatastream(dsid, parse_xml_object(xmlclass, r.content, r.url), **info)
        return Datastream(dsid, **info)

    def _datastream_options(self, ds, log_message):
        if ds.kind not in (INLINE, LOCAL_FILE, REMOTE):
            raise TypeError('Cannot save %s datastream %s' % (ds.kind, ds.id))

        options = dict(dsLabel=ds.label, mimeType=ds.mimetype, logMessage=log_message,
                       versionable=ds.versionable, dsState=ds.state, formatURI=ds.format,
                       checksumType=ds.checksum_type, checksum=ds.checksum)
        if ds.kind == INLINE:
            options['content'] = ds.serialize()
        elif ds.kind == LOCAL_FILE:
            with open(ds.filename, 'rb') as content:
                options['dsLocation'] = self.upload(content)
        else:
            options['dsLocation'] = ds.ds_location
        return options

    def add_datastream(self, pid, ds, log_message=None):
        '''Add a datastream to an existing object.

        :raises TypeError: for void or augmented datastreams
        '''
        options = self._datastream_options(ds, log_message)
        options['controlGroup'] = ds.control_group
        self.api.addDatastream(pid, ds.id, **options)

    def modify_datastream(self, pid, ds, log_message=None):
        '''Replace a datastream on an existing object.

        :raises TypeError: for void or augmented datastreams
        '''
        options = self._datastream_options(ds, log_message)
        self.api.modifyDatastream(pid, ds.id, **options)

    def set_datastream_state(self, pid, dsid, state, log_message=None):
        return self.api.setDatastreamState(pid, dsid, state, logMessage=log_message)
