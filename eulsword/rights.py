# file eulsword/rights.py
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
Record the archival and download flags of deposited files in the
**SLUB-INFO** administrative metadata datastream.

Each file gets a ``slub:attachment`` entry inside ``slub:rights``,
keyed by datastream id::

    <slub:info xmlns:slub="http://slub-dresden.de/">
      <slub:rights>
        <slub:attachment ref="ATT-1" hasArchivalValue="yes" isDownloadable="no"/>
      </slub:rights>
    </slub:info>

When an existing object is updated, entries already stored on the
object are kept unless the deposit says otherwise.

----
'''

import copy
import logging

from lxml import etree

from eulsword.models import XmlDatastream, find_datastream, AUGMENTED, VOID, DELETED, \
    INLINE
from eulsword.reconcile import SLUB_INFO_ID, SLUB_INFO_LABEL
from eulsword.xml import SlubInfo, Rights, RightsAttachment, SLUB_NS, select_node

logger = logging.getLogger(__name__)

YES = 'yes'
NO = 'no'


def yesno(value):
    return YES if value else NO


def is_yes(token):
    return token is not None and token.strip().lower() == YES


def _rights_container(info):
    # find or create slub:rights directly under the document root
    node = select_node(info.node, 'slub:rights')
    if node is None:
        node = etree.SubElement(info.node, '{%s}rights' % SLUB_NS)
    return Rights(node)


def _attachment_map(rights):
    if rights is None:
        return {}
    return dict((att.ref, att) for att in rights.attachments if att.ref is not None)


def attachment_flags(info):
    '''Read the attachment flags back from a rights document.

    :param info: :class:`~eulsword.xml.SlubInfo` or None
    :returns: dict of datastream id to a tuple of
        (has archival value, is downloadable)
    '''
    if info is None or info.rights is None:
        return {}
    return dict((ref, (is_yes(att.has_archival_value), is_yes(att.is_downloadable)))
                for ref, att in _attachment_map(info.rights).items())


def merge_rights(deposit_rights, stored_rights):
    '''Combine the rights document of a deposit with the one already
    stored on the object.  Neither document is modified.

    Without a deposit document, a copy of the stored one is used.
    With both, stored attachment entries for datastreams the deposit
    does not mention are copied into the deposit document; entries in
    the deposit document take precedence.

    :param deposit_rights: :class:`~eulsword.xml.SlubInfo` from the
        deposit, or None
    :param stored_rights: :class:`~eulsword.xml.SlubInfo` currently
        stored on the object, or None
    :returns: merged :class:`~eulsword.xml.SlubInfo`, or None if
        neither document exists
    '''
    if deposit_rights is None:
        if stored_rights is None:
            return None
        return SlubInfo(copy.deepcopy(stored_rights.node))

    merged = SlubInfo(copy.deepcopy(deposit_rights.node))
    if stored_rights is None:
        return merged

    rights = _rights_container(merged)
    known = _attachment_map(rights)
    for ref, attachment in _attachment_map(stored_rights.rights).items():
        if ref not in known:
            logger.debug('Keeping stored rights entry for %s', ref)
            rights.node.append(copy.deepcopy(attachment.node))
    return merged


def slub_info_datastream(info=None, versionable=False, mimetype=None):
    'new SLUB-INFO datastream; empty rights document unless one is given'
    if info is None:
        info = SlubInfo()
    return XmlDatastream(SLUB_INFO_ID, info, label=SLUB_INFO_LABEL,
                         mimetype=mimetype, versionable=versionable)


def augment_rights(datastreams, rights=None, versionable=False):
    '''Set the attachment entries of a SLUB-INFO datastream from the
    file datastreams of a deposit.

    Augmented datastreams get an entry with both flags set, replacing
    any entry with the same id.  Datastreams marked as deleted have
    their entry removed.  Augmenting twice with the same datastreams
    gives the same document.

    :param datastreams: deposit datastreams; only augmented and void
        datastreams are used
    :param rights: existing SLUB-INFO :class:`~eulsword.models.XmlDatastream`,
        or None
    :param versionable: versioning for a newly created SLUB-INFO
        datastream
    :returns: the updated (or newly created) SLUB-INFO datastream;
        `rights` unchanged when there are no file datastreams
    '''
    file_datastreams = [ds for ds in datastreams if ds.kind in (AUGMENTED, VOID)]
    if not file_datastreams:
        return rights

    if rights is None:
        rights = slub_info_datastream(versionable=versionable)
    container = _rights_container(rights.content)
    attachments = _attachment_map(container)

    for ds in file_datastreams:
        if ds.kind == AUGMENTED:
            attachment = attachments.get(ds.id)
            if attachment is None:
                attachment = RightsAttachment()
                container.node.append(attachment.node)
                attachments[ds.id] = attachment
            attachment.ref = ds.id
            attachment.has_archival_value = yesno(ds.has_archival_value)
            attachment.is_downloadable = yesno(ds.is_downloadable)
        elif ds.state == DELETED:
            attachment = attachments.pop(ds.id, None)
            if attachment is not None:
                container.node.remove(attachment.node)
    return rights


def _slub_info(ds):
    if ds is None:
        return None
    if ds.kind != INLINE:
        logger.warning('Ignoring %s content stored as %s; only inline XML is read',
                       ds.id, ds.control_group or ds.mimetype)
        return None
    return SlubInfo(ds.content.node)


def rights_for_update(datastreams, stored=None, versionable=False):
    '''SLUB-INFO datastream to write when updating an object: the
    deposit's own SLUB-INFO (if any) merged with the `stored` one and
    augmented with the file datastreams.  Returns None when there is
    nothing to write.

    :param datastreams: deposit datastreams, possibly augmented
    :param stored: SLUB-INFO :class:`~eulsword.models.XmlDatastream`
        currently on the object, or None
    '''
    deposit = find_datastream(datastreams, SLUB_INFO_ID)
    if deposit is None:
        if not any(ds.kind in (AUGMENTED, VOID) for ds in datastreams):
            # stored rights stay as they are
            return None
        if stored is None:
            return augment_rights(datastreams, None, versionable)

    merged = merge_rights(_slub_info(deposit), _slub_info(stored))
    if merged is None:
        merged = SlubInfo()
    base = deposit if deposit is not None else stored
    rights = XmlDatastream(SLUB_INFO_ID, merged, label=base.label or SLUB_INFO_LABEL,
                           mimetype=base.mimetype, state=base.state, versionable=versionable)
    return augment_rights(datastreams, rights, versionable)
