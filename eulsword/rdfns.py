# file eulsword/rdfns.py
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
Predefined RDF namespaces used when building the RELS-EXT
relationship datastream for a deposited object.

Example usage::

  from eulsword.models import RelsExtDatastream
  from eulsword.rdfns import relsext

  rels = RelsExtDatastream('qucosa:1234')
  rels.add(relsext.isMemberOfCollection, 'info:fedora/qucosa:all')

----
'''

from rdflib import URIRef
from rdflib.namespace import ClosedNamespace, Namespace

RELSEXT_URI = 'info:fedora/fedora-system:def/relations-external#'

# ids copied from http://www.fedora.info/definitions/1/0/fedora-relsext-ontology.rdfs
fedora_rels = [
    'fedoraRelationship',
    'isPartOf',
    'hasPart',
    'isConstituentOf',
    'hasConstituent',
    'isMemberOf',
    'hasMember',
    'isSubsetOf',
    'hasSubset',
    'isMemberOfCollection',
    'hasCollectionMember',
    'isDerivationOf',
    'hasDerivation',
    'isDependentOf',
    'hasDependent',
    'isDescriptionOf',
    'HasDescription',
    'isMetadataFor',
    'HasMetadata',
    'isAnnotationOf',
    'HasAnnotation',
    'hasEquivalent',
]


relsext = ClosedNamespace(RELSEXT_URI, fedora_rels)
''':class:`rdflib.namespace.ClosedNamespace` for the `Fedora external
relations ontology
<http://www.fedora.info/definitions/1/0/fedora-relsext-ontology.rdfs>`_.
'''

relsext_open = Namespace(RELSEXT_URI)
'''Open :class:`rdflib.namespace.Namespace` on the same URI as
:data:`relsext`, for relation names outside the published ontology.'''

model = ClosedNamespace('info:fedora/fedora-system:def/model#', [
    'hasModel',
])
''':class:`rdflib.namespace.ClosedNamespace` for the Fedora model
namespace (currently only includes ``hasModel``).'''

# OAI provider terms; not published at the namespace URI
oai = ClosedNamespace(
    uri=URIRef("http://www.openarchives.org/OAI/2.0/"),
    terms=[
        "itemID", "setSpec", "setName"
    ]
)
''':class:`rdflib.namespace.ClosedNamespace` for the OAI relations
commonly used with Fedora and the PROAI OAI provider.'''
