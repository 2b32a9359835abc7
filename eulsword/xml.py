# file eulsword/xml.py
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
:class:`~eulxml.xmlmap.XmlObject` mappings for the parts of a METS
deposit package, the SLUB-INFO administrative metadata, and the
Fedora REST API responses used when reconciling a deposit.

XPath queries against package content go through :func:`select_node`
and :func:`select_nodes`, which know about all of the namespaces
defined here.
'''

from eulxml import xmlmap

METS_NS = 'http://www.loc.gov/METS/'
MODS_NS = 'http://www.loc.gov/mods/v3'
XLINK_NS = 'http://www.w3.org/1999/xlink'
SLUB_NS = 'http://slub-dresden.de/'

FEDORA_MANAGE_NS = 'http://www.fedora.info/definitions/1/0/management/'

NAMESPACES = {
    'mets': METS_NS,
    'mods': MODS_NS,
    'xlink': XLINK_NS,
    'slub': SLUB_NS,
}


def select_nodes(node, xpath):
    '''Return all nodes matching an xpath, evaluated relative to the
    given lxml node or tree; empty list if nothing matches.'''
    return node.xpath(xpath, namespaces=NAMESPACES)


def select_node(node, xpath):
    '''Return the first node matching an xpath, or None.'''
    result = select_nodes(node, xpath)
    if result:
        return result[0]


class _MetsBase(xmlmap.XmlObject):
    '''Common namespace declarations for METS package content.'''
    ROOT_NAMESPACES = NAMESPACES


class FileLocation(_MetsBase):
    ''':class:`~eulxml.xmlmap.XmlObject` for a METS ``FLocat``, the
    location of file content.'''
    ROOT_NAME = 'FLocat'
    ROOT_NS = METS_NS
    href = xmlmap.StringField('@xlink:href')
    "content URL - `@xlink:href`"
    title = xmlmap.StringField('@xlink:title')
    "display label - `@xlink:title`"
    use = xmlmap.StringField('@USE')
    "`TEMPORARY` for transient uploads that should be removed after deposit"


class MetsFile(_MetsBase):
    ''':class:`~eulxml.xmlmap.XmlObject` for a single ``mets:file``
    in the METS file section.'''
    ROOT_NAME = 'file'
    ROOT_NS = METS_NS
    id = xmlmap.StringField('@ID')
    "file id; used as datastream id"
    mimetype = xmlmap.StringField('@MIMETYPE')
    use = xmlmap.StringField('@USE')
    "`ARCHIVE` for files with archival value, `DELETE` for deletion requests"
    checksum = xmlmap.StringField('@CHECKSUM')
    checksum_type = xmlmap.StringField('@CHECKSUMTYPE')
    location = xmlmap.NodeField('mets:FLocat', FileLocation)
    ":class:`FileLocation`"


class ModsIdentifier(_MetsBase):
    ROOT_NAME = 'identifier'
    ROOT_NS = MODS_NS
    type = xmlmap.StringField('@type')
    value = xmlmap.StringField('text()', normalize=True)


class RelatedItem(_MetsBase):
    ''':class:`~eulxml.xmlmap.XmlObject` for a MODS ``relatedItem``.'''
    ROOT_NAME = 'relatedItem'
    ROOT_NS = MODS_NS
    type = xmlmap.StringField('@type')
    "relation type token, e.g. `preceding` or `series`"
    identifiers = xmlmap.StringListField('mods:identifier', normalize=True)
    "identifiers of the related items"


class Mods(_MetsBase):
    ''':class:`~eulxml.xmlmap.XmlObject` for the bibliographic MODS
    record embedded in a METS package.'''
    ROOT_NAME = 'mods'
    ROOT_NS = MODS_NS
    title = xmlmap.StringField('mods:titleInfo/mods:title', normalize=True)
    "primary title"
    identifiers = xmlmap.NodeListField('mods:identifier', ModsIdentifier)
    "list of :class:`ModsIdentifier`"
    related_items = xmlmap.NodeListField('mods:relatedItem', RelatedItem)
    "list of :class:`RelatedItem`"


class Mets(_MetsBase):
    ''':class:`~eulxml.xmlmap.XmlObject` for the root of a METS
    deposit package.'''
    ROOT_NAME = 'mets'
    ROOT_NS = METS_NS
    record_status = xmlmap.StringField('mets:metsHdr/@RECORDSTATUS')
    files = xmlmap.NodeListField('mets:fileSec/mets:fileGrp/mets:file', MetsFile)
    "list of :class:`MetsFile`"


# SLUB-INFO administrative metadata

class _SlubBase(xmlmap.XmlObject):
    ROOT_NAMESPACES = {'slub': SLUB_NS}
    ROOT_NS = SLUB_NS


class RightsAttachment(_SlubBase):
    '''Rights flags for a single attached file, keyed by datastream id.
    Flag values are the tokens `yes` and `no`.'''
    ROOT_NAME = 'attachment'
    ref = xmlmap.StringField('@ref')
    "datastream id of the attachment"
    has_archival_value = xmlmap.StringField('@hasArchivalValue')
    is_downloadable = xmlmap.StringField('@isDownloadable')


class Rights(_SlubBase):
    ROOT_NAME = 'rights'
    attachments = xmlmap.NodeListField('slub:attachment', RightsAttachment)
    "list of :class:`RightsAttachment`"


class SlubInfo(_SlubBase):
    ''':class:`~eulxml.xmlmap.XmlObject` for the SLUB-INFO
    administrative metadata datastream.'''
    ROOT_NAME = 'info'
    rights = xmlmap.NodeField('slub:rights', Rights)
    ":class:`Rights`; None if the document has no rights section"


# xml objects to wrap around xml returns from fedora

class DatastreamProfile(xmlmap.XmlObject):
    """:class:`~eulxml.xmlmap.XmlObject` for datastream profile information
    returned by  :meth:`REST_API.getDatastream`."""
    # default namespace is fedora manage
    ROOT_NAME = 'datastreamProfile'
    ROOT_NAMESPACES = {'m': FEDORA_MANAGE_NS}
    label = xmlmap.StringField('m:dsLabel')
    "datastream label"
    state = xmlmap.StringField('m:dsState')
    "datastream state (A/I/D - Active, Inactive, Deleted)"
    mimetype = xmlmap.StringField('m:dsMIME')
    "datastream mimetype"
    control_group = xmlmap.StringField('m:dsControlGroup')
    "datastream control group (inline XML, Managed, etc)"
    versionable = xmlmap.SimpleBooleanField('m:dsVersionable', 'true', 'false')
    "boolean; indicates whether or not the datastream is currently being versioned"
    checksum = xmlmap.StringField('m:dsChecksum')
    "checksum for current datastream contents"
    checksum_type = xmlmap.StringField('m:dsChecksumType')
    "type of checksum"


class NewPids(xmlmap.XmlObject):
    """:class:`~eulxml.xmlmap.XmlObject` for a list of pids as returned by
    :meth:`REST_API.getNextPID`."""
    # NOTE: default namespace as of should be manage, but the
    # namespace was missing until Fedora 3.5.  Match with or without a
    # namespace, to support Fedora 3.5 as well as older versions.
    ROOT_NAMESPACES = {'m': FEDORA_MANAGE_NS}
    pids = xmlmap.StringListField('pid|m:pid')
