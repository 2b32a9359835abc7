# file eulsword/models.py
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
Datastream descriptors built from a deposit, and the new object
that is ingested from them.

Every descriptor has a :attr:`Datastream.kind`, so code working with
a mixed list of descriptors can branch on the kind of datastream
rather than on its class:

 * ``inline`` - :class:`XmlDatastream` (and RELS-EXT, DC)
 * ``local-file`` / ``remote`` - :class:`FileDatastream`, depending on
   the scheme of the content URL
 * ``void`` - :class:`VoidDatastream`, a request to delete a datastream
 * ``augmented`` - :class:`AugmentedDatastream`, a file datastream
   carrying rights flags while the deposit is being processed

----
'''

import logging

from lxml import etree
from lxml.builder import ElementMaker
from rdflib import URIRef, Graph as RdfGraph, Literal
from rdflib.term import Identifier
from urllib.parse import urlparse
from urllib.request import url2pathname

from eulxml.xmlmap.dc import DublinCore

from eulsword.rdfns import model as modelns

logger = logging.getLogger(__name__)

# datastream and object states
ACTIVE = 'A'
INACTIVE = 'I'
DELETED = 'D'

# datastream kinds
INLINE = 'inline'
LOCAL_FILE = 'local-file'
REMOTE = 'remote'
VOID = 'void'
AUGMENTED = 'augmented'


class Datastream(object):
    """Description of a single datastream to be created or updated on
    a Fedora object.  Holds datastream profile information (label,
    mimetype, state, versioning, checksum); content is handled by the
    subclasses.

    :param id: datastream id
    :param label: datastream label
    :param mimetype: datastream mimetype
    :param state: datastream state (A/I/D)
    :param versionable: configure datastream versioning
    :param format: datastream format URI
    :param checksum: expected checksum of the datastream content
    :param checksum_type: checksum algorithm, e.g. MD5 or SHA-512
    """
    kind = None
    control_group = None
    default_mimetype = None

    def __init__(self, id, label=None, mimetype=None, state=ACTIVE,
                 versionable=False, format=None, checksum=None, checksum_type=None):
        self.id = id
        self.label = label
        self.mimetype = mimetype or self.default_mimetype
        self.state = state
        self.versionable = versionable
        self.format = format
        self.checksum = checksum
        self.checksum_type = checksum_type

    def __repr__(self):
        return '<%s %s>' % (self.__class__.__name__, self.id)

    def _content_as_node(self):
        # used for serializing inline xml datastreams at ingest
        return None


class XmlDatastream(Datastream):
    """Inline XML datastream; content is an instance of
    :class:`~eulxml.xmlmap.XmlObject`."""
    kind = INLINE
    control_group = 'X'
    default_mimetype = 'text/xml'

    def __init__(self, id, content, label=None, **kwargs):
        super(XmlDatastream, self).__init__(id, label, **kwargs)
        self.content = content

    def serialize(self):
        return self.content.serialize()

    def _content_as_node(self):
        return self.content.node


class DublinCoreDatastream(XmlDatastream):
    '''The Fedora **DC** datastream, populated from the title and
    identifiers of the deposited MODS record.'''

    def __init__(self, title=None, identifiers=None, **kwargs):
        kwargs.setdefault('format', 'http://www.openarchives.org/OAI/2.0/oai_dc/')
        super(DublinCoreDatastream, self).__init__('DC', DublinCore(),
                                                   label='Dublin Core', **kwargs)
        if title:
            self.content.title = title
        for identifier in identifiers or []:
            self.content.identifier_list.append(identifier)


class RelsExtDatastream(Datastream):
    '''The Fedora **RELS-EXT** datastream: an ordered list of
    relationship statements about a single object, serialized as
    RDF/XML.

    :param pid: pid of the object the statements are about
    '''
    kind = INLINE
    control_group = 'X'
    default_mimetype = 'application/rdf+xml'

    # prefixes for namespaces expected to be used in RELS-EXT
    default_namespaces = {
        'fedora-model': 'info:fedora/fedora-system:def/model#',
        'rel': 'info:fedora/fedora-system:def/relations-external#',
        'oai': 'http://www.openarchives.org/OAI/2.0/'
    }

    def __init__(self, pid, **kwargs):
        kwargs.setdefault('format', 'info:fedora/fedora-system:FedoraRELSExt-1.0')
        super(RelsExtDatastream, self).__init__('RELS-EXT', 'External Relations', **kwargs)
        self.pid = pid
        self.statements = []

    @property
    def uriref(self):
        "Fedora URI for the object, as an rdflib URI object"
        return URIRef('info:fedora/%s' % self.pid)

    def add(self, predicate, object):
        '''Add a relationship statement.

        :param predicate: predicate URI
        :param object: related object; an rdflib term is used as is;
            a string beginning with info:fedora/ is treated as a
            resource, any other string as a literal
        '''
        if not isinstance(object, Identifier):
            if object.startswith('info:fedora/'):
                object = URIRef(object)
            else:
                object = Literal(object)
        self.statements.append((URIRef(predicate), object))

    def add_model(self, cmodel):
        self.add(modelns.hasModel, URIRef(cmodel))

    def objects(self, predicate):
        'objects of all statements with the given predicate, in order'
        return [o for p, o in self.statements if p == URIRef(predicate)]

    @property
    def content(self):
        ':class:`rdflib.Graph` with all current statements'
        graph = RdfGraph()
        # bind prefixes so that serialized xml will be human-readable
        for prefix, namespace in self.default_namespaces.items():
            graph.bind(prefix, namespace)
        for predicate, object in self.statements:
            graph.add((self.uriref, predicate, object))
        return graph

    def serialize(self):
        return self.content.serialize(format='pretty-xml', encoding='utf-8')

    def _content_as_node(self):
        return etree.fromstring(self.serialize())


class FileDatastream(Datastream):
    """Datastream with file content referenced by URL.  Content at a
    ``file:`` URL is local to this server; anything else is a remote
    reference for Fedora to retrieve.

    :param ds_location: content URL
    :param temporary: content is a transient upload that should be
        removed once the deposit has been saved
    """
    control_group = 'M'
    default_mimetype = 'application/octet-stream'

    def __init__(self, id, ds_location, mimetype=None, label=None,
                 temporary=False, **kwargs):
        super(FileDatastream, self).__init__(id, label, mimetype, **kwargs)
        self.ds_location = ds_location
        self.temporary = temporary

    @property
    def kind(self):
        if urlparse(self.ds_location).scheme == 'file':
            return LOCAL_FILE
        return REMOTE

    @property
    def filename(self):
        'local path for ``file:`` content; None for remote content'
        if self.kind == LOCAL_FILE:
            return url2pathname(urlparse(self.ds_location).path)


class VoidDatastream(Datastream):
    '''Datastream without content, requesting that an existing
    datastream with the same id be marked as deleted.  Never
    serialized.'''
    kind = VOID

    def __init__(self, id):
        super(VoidDatastream, self).__init__(id, state=DELETED)


class AugmentedDatastream(object):
    '''Wrap a datastream with the rights flags of the file it was
    built from.  All other attributes are read from and written to
    the wrapped datastream.  Only used while a deposit is processed;
    use :func:`unwrap` before handing datastreams to a repository.

    :param datastream: wrapped :class:`Datastream`
    :param has_archival_value: file is marked for archiving
    :param is_downloadable: file is offered for download
    '''
    kind = AUGMENTED
    _own_attributes = ('datastream', 'has_archival_value', 'is_downloadable')

    def __init__(self, datastream, has_archival_value=False, is_downloadable=False):
        self.datastream = datastream
        self.has_archival_value = has_archival_value
        self.is_downloadable = is_downloadable

    def __getattr__(self, name):
        # only called for attributes not found on the wrapper itself
        if name in self._own_attributes:
            raise AttributeError(name)
        return getattr(self.datastream, name)

    def __setattr__(self, name, value):
        if name in self._own_attributes:
            object.__setattr__(self, name, value)
        else:
            setattr(self.datastream, name, value)

    def __repr__(self):
        return '<%s %r>' % (self.__class__.__name__, self.datastream)


def unwrap(datastream):
    'Return the plain datastream for a possibly augmented one.'
    while datastream.kind == AUGMENTED:
        datastream = datastream.datastream
    return datastream


def unwrap_all(datastreams):
    return [unwrap(ds) for ds in datastreams]


def find_datastream(datastreams, dsid):
    for ds in datastreams:
        if ds.id == dsid:
            return ds


class DepositObject(object):
    """A new Fedora object assembled from a deposit, ready to be
    ingested.

    :param pid: object pid
    :param label: object label (truncated to 255 characters)
    :param owner: owner id
    :param state: object state (A/I/D); defaults to active
    """

    FOXML_NS = 'info:fedora/fedora-system:def/foxml#'

    def __init__(self, pid, label=None, owner=None, state=None):
        self.pid = pid
        self.label = label
        self.owner = owner
        self.state = state or ACTIVE
        self.dc = None
        self.rels_ext = None
        self.datastreams = []

    def _get_label(self):
        return self._label

    def _set_label(self, val):
        # Fedora object label property has a maximum of 255 characters
        if val is not None and len(val) > 255:
            logger.warning('Attempting to set object label for %s to a value longer than 255 character max (%d); truncating',
                           self.pid, len(val))
            val = val[0:255]
        self._label = val
    label = property(_get_label, _set_label, None, "object label")

    def __repr__(self):
        return '<%s %s>' % (self.__class__.__name__, self.pid)

    @property
    def all_datastreams(self):
        'DC and RELS-EXT (when set) followed by all other datastreams'
        return [ds for ds in [self.dc, self.rels_ext] if ds is not None] + \
            list(self.datastreams)

    def build_foxml(self, upload=None, pretty=False):
        '''Serialize the object as FOXML for ingest.

        :param upload: optional callable taking an open file and
            returning a Fedora upload id; used for local file content.
            Without it, the content URL is passed on to Fedora.
        '''
        doc = self._build_foxml_doc(upload)
        print_opts = {'encoding': 'UTF-8'}
        if pretty:  # for easier debug
            print_opts['pretty_print'] = True
        return etree.tostring(doc, **print_opts)

    def _build_foxml_doc(self, upload=None):
        # make an lxml element builder - default namespace is foxml, display with foxml prefix
        E = ElementMaker(namespace=self.FOXML_NS, nsmap={'foxml': self.FOXML_NS})
        doc = E('digitalObject')
        doc.set('VERSION', '1.1')
        doc.set('PID', self.pid)
        doc.append(self._build_foxml_properties(E))

        for ds in self.all_datastreams:
            dsnode = self._build_foxml_datastream(E, unwrap(ds), upload)
            if dsnode is not None:
                doc.append(dsnode)
        return doc

    def _build_foxml_properties(self, E):
        props = E('objectProperties')
        state = E('property')
        state.set('NAME', 'info:fedora/fedora-system:def/model#state')
        state.set('VALUE', self.state)
        props.append(state)

        if self.label:
            label = E('property')
            label.set('NAME', 'info:fedora/fedora-system:def/model#label')
            label.set('VALUE', self.label)
            props.append(label)

        if self.owner:
            owner = E('property')
            owner.set('NAME', 'info:fedora/fedora-system:def/model#ownerId')
            owner.set('VALUE', self.owner)
            props.append(owner)

        return props

    def _build_foxml_datastream(self, E, ds, upload):
        # void datastreams only ever describe state changes
        if ds.kind == VOID:
            return None

        if ds.kind == INLINE:
            content_node = E('xmlContent')
            content_node.append(ds._content_as_node())
        else:
            content_node = self._build_foxml_file_content(E, ds, upload)

        ds_xml = E('datastream')
        ds_xml.set('ID', ds.id)
        ds_xml.set('CONTROL_GROUP', ds.control_group)
        ds_xml.set('STATE', ds.state)
        ds_xml.set('VERSIONABLE', str(bool(ds.versionable)).lower())

        ver_xml = E('datastreamVersion')
        ver_xml.set('ID', ds.id + '.0')
        if ds.mimetype:
            ver_xml.set('MIMETYPE', ds.mimetype)
        if ds.format:
            ver_xml.set('FORMAT_URI', ds.format)
        if ds.label:
            ver_xml.set('LABEL', ds.label)

        if ds.checksum or ds.checksum_type:
            digest_xml = E('contentDigest')
            # default to MD5 checksum if not specified
            digest_xml.set('TYPE', ds.checksum_type or 'MD5')
            if ds.checksum:
                digest_xml.set('DIGEST', ds.checksum)
            ver_xml.append(digest_xml)
        elif ds.kind in (LOCAL_FILE, REMOTE):
            logger.warning('Datastream ingested without a passed checksum or checksum type: %s/%s.',
                           self.pid, ds.id)

        ver_xml.append(content_node)
        ds_xml.append(ver_xml)
        return ds_xml

    def _build_foxml_file_content(self, E, ds, upload):
        if ds.kind == LOCAL_FILE and upload is not None:
            with open(ds.filename, 'rb') as content:
                content_uri = upload(content)
            uri_type = 'INTERNAL_ID'
        else:
            content_uri = ds.ds_location
            uri_type = 'URL'

        content_location = E('contentLocation')
        content_location.set('REF', content_uri)
        content_location.set('TYPE', uri_type)
        return content_location
