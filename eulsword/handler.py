# file eulsword/handler.py
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
Create and update Fedora objects from METS deposits.

:class:`DepositHandler` ties together the package reader, datastream
reconciliation, rights and relationship handling; the repository is
passed in, so anything with the interface of
:class:`eulsword.server.Repository` can be used::

    from eulsword.handler import Deposit, DepositHandler
    from eulsword.server import Repository

    handler = DepositHandler(Repository())
    with open('deposit.xml', 'rb') as content:
        obj = handler.ingest_deposit(Deposit(content, md5=md5, username='sword'))
    obj.pid

Nothing is written to the repository when a deposit cannot be read,
does not match its checksum, or fails validation; those conditions
are reported as :class:`~eulsword.util.DepositError`.

----
'''

import logging
import os

from eulsword.conf import get_setting
from eulsword.mets import METSPackage
from eulsword.models import DepositObject, DublinCoreDatastream, find_datastream, \
    unwrap_all, AUGMENTED, VOID
from eulsword.reconcile import DatastreamReconciler, apply_actions, validate_datastreams, \
    MODS_ID, QUCOSA_XML_ID, SLUB_INFO_ID
from eulsword.relations import build_relationships
from eulsword.rights import augment_rights, rights_for_update
from eulsword.util import ChecksumMismatch
from eulsword.xml import SlubInfo

logger = logging.getLogger(__name__)

NOOP_PID = 'noop:nopid'


class Deposit(object):
    '''A single deposit request, as received from the deposit
    protocol layer.

    :param content: METS package, as bytes or a file-like object
    :param md5: declared MD5 checksum of the content (optional)
    :param collection: pid of the target collection
    :param slug: requested pid for a new object
    :param username: authenticated user making the request
    :param on_behalf_of: user the deposit is made for; owner of new objects
    :param no_op: process the deposit without changing the repository
    :param pid: pid of the object to update
    '''

    def __init__(self, content, md5=None, collection=None, slug=None, username=None,
                 on_behalf_of=None, no_op=False, pid=None):
        self.content = content
        self.md5 = md5
        self.collection = collection
        self.slug = slug
        self.username = username
        self.on_behalf_of = on_behalf_of
        self.no_op = no_op
        self.pid = pid

    def __repr__(self):
        return '<Deposit %s>' % (self.pid or self.slug or 'new')

    @property
    def owner(self):
        return self.on_behalf_of or self.username


class DepositHandler(object):
    '''Apply METS deposits to a Fedora repository.

    :param repository: repository to read from and write to
    :param versionable: mark new and replaced datastreams as
        versionable; defaults to the ``DATASTREAM_VERSIONING`` setting
    :param default_collection: collection for deposits that do not
        specify one; defaults to the ``DEFAULT_COLLECTION`` setting
    '''

    def __init__(self, repository, versionable=None, default_collection=None,
                 content_model=None, oai_prefix=None):
        self.repository = repository
        self.reconciler = DatastreamReconciler(versionable)
        self.versionable = self.reconciler.versionable
        self.default_collection = default_collection or get_setting('DEFAULT_COLLECTION')
        self.content_model = content_model or get_setting('CONTENT_MODEL')
        self.oai_prefix = oai_prefix or get_setting('OAI_ID_PREFIX')

    def load_package(self, deposit):
        '''Read the deposit content and verify the declared checksum.

        :raises PackageError: if the package cannot be read
        :raises ChecksumMismatch: if the checksum does not match
        '''
        if not deposit.on_behalf_of:
            logger.warning('No on-behalf-of user for deposit; %s will be used as object owner',
                           deposit.username)
        package = METSPackage(deposit.content)
        if deposit.md5 and deposit.md5.strip().lower() != package.md5:
            raise ChecksumMismatch(deposit.md5, package.md5)
        return package

    def obtain_pid(self, deposit):
        'pid for a new object: the slug if given, otherwise a newly minted pid'
        if deposit.slug:
            return deposit.slug
        if deposit.no_op:
            # don't mint a pid for a dry run
            return NOOP_PID
        return self.repository.mint_pid()

    def log_message(self, deposit):
        if deposit.on_behalf_of and deposit.on_behalf_of != deposit.username:
            return 'Deposited by %s on behalf of %s' % (deposit.username, deposit.on_behalf_of)
        if deposit.username:
            return 'Deposited by %s' % deposit.username

    def relationships(self, pid, package, deposit):
        return build_relationships(pid, package, deposit.collection or self.default_collection,
                                   content_model=self.content_model, oai_prefix=self.oai_prefix)

    def ingest_deposit(self, deposit):
        '''Create a new object from a deposit.

        :param deposit: :class:`Deposit`
        :returns: :class:`~eulsword.models.DepositObject` that was
            ingested (or would have been, for a no-op deposit)
        :raises DepositError: if the deposit is unusable; the
            repository is not changed
        '''
        package = self.load_package(deposit)
        datastreams = self.reconciler.build_datastreams(package)
        validate_datastreams(datastreams)

        pid = self.obtain_pid(deposit)
        deposit.pid = pid

        slub_info = find_datastream(datastreams, SLUB_INFO_ID)
        rights = augment_rights(datastreams, slub_info, self.versionable)
        if rights is not None and slub_info is None:
            datastreams.insert(0, rights)

        obj = DepositObject(pid, label=package.title, owner=deposit.owner,
                            state=package.record_status)
        obj.dc = DublinCoreDatastream(package.title, package.identifiers)
        obj.rels_ext = self.relationships(pid, package, deposit)
        obj.datastreams = unwrap_all(datastreams)

        if deposit.no_op:
            logger.info('No-op deposit; not ingesting %s', pid)
            return obj

        pid = self.repository.ingest(obj, self.log_message(deposit))
        logger.info('Ingested %s with %d datastreams', pid, len(obj.datastreams))
        self.remove_temporary_files(package)
        return obj

    def update_deposit(self, deposit):
        '''Update an existing object (`deposit.pid`) from a deposit.
        Sections missing from the package are left unchanged; files
        marked for deletion are set to deleted state.

        :param deposit: :class:`Deposit`
        :returns: :class:`~eulsword.models.DepositObject` describing
            the updated object
        :raises DepositError: if the deposit is unusable; the
            repository is not changed
        '''
        package = self.load_package(deposit)
        pid = deposit.pid
        datastreams = self.reconciler.build_datastreams(package)
        mods = find_datastream(datastreams, MODS_ID)

        obj = DepositObject(pid, label=package.title)
        obj.dc = DublinCoreDatastream(package.title, package.identifiers)
        if mods is not None:
            # only rebuild relations from a deposit that has MODS
            obj.rels_ext = self.relationships(pid, package, deposit)

        if deposit.no_op:
            logger.info('No-op deposit; not updating %s', pid)
            return obj

        stored_rights = self.repository.get_datastream(pid, SLUB_INFO_ID, SlubInfo)
        rights = rights_for_update(datastreams, stored_rights, self.versionable)
        file_datastreams = [ds for ds in datastreams if ds.kind in (AUGMENTED, VOID)]

        actions = []
        plan = self.reconciler.plan_update
        if mods is not None:
            # DC is derived from MODS
            actions.extend(plan(pid, obj.dc, self.repository, add_missing=False))
            actions.extend(plan(pid, mods, self.repository, add_missing=False))
        actions.extend(self.reconciler.plan_updates(pid, file_datastreams, self.repository))
        actions.extend(plan(pid, obj.rels_ext, self.repository))
        actions.extend(plan(pid, rights, self.repository))
        actions.extend(plan(pid, find_datastream(datastreams, QUCOSA_XML_ID), self.repository))

        apply_actions(self.repository, pid, actions, self.log_message(deposit))
        logger.info('Updated %s: %d datastream changes', pid, len(actions))
        obj.datastreams = [action.datastream for action in actions
                           if action.datastream.id not in ('DC', 'RELS-EXT')]
        self.remove_temporary_files(package)
        return obj

    def remove_temporary_files(self, package):
        '''Remove local content marked as temporary in the package.
        Failures are logged and otherwise ignored.'''
        for filename in package.temporary_files:
            try:
                os.remove(filename)
            except OSError as err:
                logger.warning('Unsuccessful delete attempt for %s: %s', filename, err)
