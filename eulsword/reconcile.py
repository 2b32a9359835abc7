# file eulsword/reconcile.py
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

'''
Turn the sections and files of a :class:`~eulsword.mets.METSPackage`
into datastream descriptors, and decide which repository calls are
needed to bring an existing object in line with a deposit.

Creating a new object::

    reconciler = DatastreamReconciler(versionable=True)
    datastreams = reconciler.build_datastreams(package)
    validate_datastreams(datastreams)

Updating an existing object::

    actions = reconciler.plan_updates(pid, file_datastreams, repo)
    apply_actions(repo, pid, actions)

----
'''

import logging
from collections import namedtuple

from eulxml import xmlmap

from eulsword.conf import get_setting
from eulsword.models import XmlDatastream, FileDatastream, VoidDatastream, \
    AugmentedDatastream, unwrap, find_datastream, INACTIVE, VOID, AUGMENTED
from eulsword.util import ValidationError
from eulsword.xml import SlubInfo

logger = logging.getLogger(__name__)

MODS_ID = 'MODS'
MODS_LABEL = 'Object Bibliographic Metadata'
MODS_MIMETYPE = 'application/mods+xml'
SLUB_INFO_ID = 'SLUB-INFO'
SLUB_INFO_LABEL = 'SLUB Administrative Metadata'
QUCOSA_XML_ID = 'QUCOSA-XML'
QUCOSA_XML_LABEL = 'Pristine Qucosa XML Metadata'
RELS_EXT_ID = 'RELS-EXT'

#: datastreams that may be created without a mimetype
MIMETYPE_OPTIONAL = (SLUB_INFO_ID, RELS_EXT_ID)

# repository actions
ADD = 'add'
MODIFY = 'modify'
SET_STATE = 'set_state'

DatastreamAction = namedtuple('DatastreamAction', ['action', 'datastream'])
'''A single repository call needed to apply a deposit: `action` is
one of ``add``, ``modify`` or ``set_state``; `datastream` is never an
augmented datastream.'''


class DatastreamReconciler(object):
    '''Build datastream descriptors for a deposit package.

    :param versionable: mark new and replaced datastreams as
        versionable; defaults to the ``DATASTREAM_VERSIONING`` setting
    '''

    def __init__(self, versionable=None):
        if versionable is None:
            versionable = get_setting('DATASTREAM_VERSIONING', False)
        self.versionable = bool(versionable)

    def mods_datastream(self, package):
        section = package.mods
        if section is None:
            return None
        return XmlDatastream(MODS_ID, xmlmap.XmlObject(section.content),
                             label=MODS_LABEL, mimetype=MODS_MIMETYPE,
                             versionable=self.versionable)

    def slub_info_datastream(self, package):
        section = package.slub_info
        if section is None:
            return None
        return XmlDatastream(SLUB_INFO_ID, SlubInfo(section.content),
                             label=SLUB_INFO_LABEL, mimetype=section.mimetype,
                             versionable=self.versionable)

    def qucosa_xml_datastream(self, package):
        section = package.qucosa_xml
        if section is None:
            return None
        # kept for provenance, not for display
        return XmlDatastream(QUCOSA_XML_ID, xmlmap.XmlObject(section.content),
                             label=QUCOSA_XML_LABEL, mimetype=section.mimetype,
                             state=INACTIVE, versionable=self.versionable)

    def file_datastream(self, entry):
        '''Datastream for a single :class:`~eulsword.mets.FileEntry`:
        a :class:`~eulsword.models.VoidDatastream` for deletion
        requests, otherwise a
        :class:`~eulsword.models.FileDatastream` wrapped with the
        rights flags of the file.'''
        if entry.delete:
            return VoidDatastream(entry.id)

        ds = FileDatastream(entry.id, entry.href, mimetype=entry.mimetype,
                            label=entry.label, temporary=entry.temporary,
                            checksum=entry.checksum, checksum_type=entry.checksum_type,
                            versionable=self.versionable)
        return AugmentedDatastream(ds, has_archival_value=entry.has_archival_value,
                                   is_downloadable=entry.is_downloadable)

    def file_datastreams(self, package):
        ''':raises PackageError: if any file entry is incomplete'''
        return [self.file_datastream(entry) for entry in package.files]

    def build_datastreams(self, package):
        '''All datastreams for a new object, in ingest order:
        SLUB-INFO, QUCOSA-XML, MODS (each only if present) followed by
        one datastream per file.  File datastreams are still augmented.
        '''
        datastreams = [ds for ds in [self.slub_info_datastream(package),
                                     self.qucosa_xml_datastream(package),
                                     self.mods_datastream(package)]
                       if ds is not None]
        datastreams.extend(self.file_datastreams(package))
        return datastreams

    def plan_updates(self, pid, datastreams, repository):
        '''Decide how each file datastream is applied to an existing
        object.  Deletion requests for datastreams the object has are
        turned into a state change to deleted (content is kept);
        deletion requests for unknown datastreams are dropped.  Other
        datastreams replace an existing datastream with the same id or
        are added.

        :param pid: pid of the object being updated
        :param datastreams: file datastreams, possibly augmented
        :param repository: repository collaborator
        :returns: list of :class:`DatastreamAction`
        '''
        actions = []
        for ds in datastreams:
            ds = unwrap(ds)
            exists = repository.has_datastream(pid, ds.id)
            if ds.kind == VOID:
                if exists:
                    actions.append(DatastreamAction(SET_STATE, ds))
                else:
                    logger.debug('Ignoring delete request for %s/%s; no such datastream',
                                 pid, ds.id)
            elif exists:
                actions.append(DatastreamAction(MODIFY, ds))
            else:
                actions.append(DatastreamAction(ADD, ds))
        return actions

    def plan_update(self, pid, datastream, repository, add_missing=True):
        '''Replace a metadata datastream if the object has it; add it
        otherwise, unless `add_missing` is False.  Returns a list with
        at most one :class:`DatastreamAction`; empty if `datastream` is
        None.'''
        if datastream is None:
            return []
        datastream = unwrap(datastream)
        if repository.has_datastream(pid, datastream.id):
            return [DatastreamAction(MODIFY, datastream)]
        elif add_missing:
            return [DatastreamAction(ADD, datastream)]
        return []


def apply_actions(repository, pid, actions, log_message=None):
    '''Make the repository calls for a list of
    :class:`DatastreamAction`, in order.  Repository errors are not
    caught.'''
    for action in actions:
        ds = action.datastream
        if ds.kind == AUGMENTED:
            raise TypeError('augmented datastream %s must be unwrapped' % ds.id)
        logger.debug('%s %s/%s', action.action, pid, ds.id)
        if action.action == SET_STATE:
            repository.set_datastream_state(pid, ds.id, ds.state, log_message)
        elif action.action == MODIFY:
            repository.modify_datastream(pid, ds, log_message)
        elif action.action == ADD:
            repository.add_datastream(pid, ds, log_message)
        else:
            raise ValueError('Unknown datastream action %s' % action.action)


def validate_datastreams(datastreams):
    '''Check that a list of datastreams can be used to create an object.

    :raises ValidationError: if there is no MODS datastream, or any
        datastream with content (other than SLUB-INFO and RELS-EXT) has
        no mimetype
    '''
    if find_datastream(datastreams, MODS_ID) is None:
        raise ValidationError('Missing MODS datastream in METS source')
    for ds in datastreams:
        ds = unwrap(ds)
        if ds.kind != VOID and ds.id not in MIMETYPE_OPTIONAL and not ds.mimetype:
            raise ValidationError('Missing mimetype for datastream %s' % ds.id)
