# file eulsword/relations.py
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
Build the **RELS-EXT** datastream for a deposited object from its
collection, content model and the related items of its MODS record.
'''

import logging

from eulsword.conf import get_setting
from eulsword.models import RelsExtDatastream
from eulsword.rdfns import relsext, relsext_open, oai

logger = logging.getLogger(__name__)

# MODS relatedItem/@type mapped to Fedora relation names.  otherVersion,
# otherFormat, isReferencedBy and references have no equivalent in the
# Fedora relations ontology and are passed through.
RELATED_ITEM_TYPES = {
    'preceding': 'isDerivationOf',
    'original': 'isDerivationOf',
    'succeeding': 'hasDerivation',
    'host': 'isPartOf',
    'constituent': 'isConstituentOf',
    'series': 'isConstituentOf',
    'reviewOf': 'isAnnotationOf',
}


def fedora_uri(pid):
    if pid.startswith('info:fedora/'):
        return pid
    return 'info:fedora/%s' % pid


def related_item_predicate(item_type):
    '''RELS-EXT predicate for a MODS related item type; unknown types
    are used as the relation name.'''
    name = RELATED_ITEM_TYPES.get(item_type, item_type)
    try:
        return relsext[name]
    except (KeyError, AttributeError):
        # not part of the published ontology
        return relsext_open[name]


def build_relationships(pid, package, collection=None, content_model=None,
                        oai_prefix=None):
    '''Build the relationship datastream for an object.

    Statements, in order: content model, collection membership (the
    default collection when `collection` is empty), one statement per
    related item identifier, and an OAI item id when `pid` is set.

    :param pid: object pid; may be None or empty for a dry run
    :param package: :class:`~eulsword.mets.METSPackage`
    :param collection: collection pid
    :rtype: :class:`~eulsword.models.RelsExtDatastream`
    '''
    if content_model is None:
        content_model = get_setting('CONTENT_MODEL')
    if oai_prefix is None:
        oai_prefix = get_setting('OAI_ID_PREFIX')
    if not collection:
        collection = get_setting('DEFAULT_COLLECTION')

    rels = RelsExtDatastream(pid)
    rels.add_model(fedora_uri(content_model))
    rels.add(relsext.isMemberOfCollection, fedora_uri(collection))

    for item in package.related_items:
        if not item.type:
            logger.debug('Skipping related item without type: %s', ', '.join(item.identifiers))
            continue
        predicate = related_item_predicate(item.type)
        for identifier in item.identifiers:
            if identifier:
                rels.add(predicate, fedora_uri(identifier))

    if pid:
        rels.add(oai.itemID, '%s%s' % (oai_prefix, pid))
    return rels
