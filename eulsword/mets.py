# file eulsword/mets.py
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
Read a METS deposit package and provide access to the sections needed
to build or update a Fedora object.

Example usage::

    from eulsword.mets import METSPackage

    with open('deposit.xml', 'rb') as metsfile:
        package = METSPackage(metsfile)
    package.md5           # checksum of the bytes that were parsed
    package.mods          # MODS record, or None
    for entry in package.files:
        print(entry.id, entry.href)

----
'''

import copy
import io
import logging
import re
from collections import namedtuple
from urllib.parse import urlparse
from urllib.request import url2pathname

from lxml import etree

from eulsword.models import ACTIVE, INACTIVE, DELETED
from eulsword.util import DigestReader, PackageError, force_bytes
from eulsword.xml import Mets, Mods, select_node

logger = logging.getLogger(__name__)

DMDSEC_PREFIX = '/mets:mets/mets:dmdSec'
MODS_XPATH = DMDSEC_PREFIX + "/mets:mdWrap[@MDTYPE='MODS']/mets:xmlData/mods:mods"
QUCOSA_XML_XPATH = DMDSEC_PREFIX + \
    "/mets:mdWrap[@MDTYPE='OTHER' and @OTHERMDTYPE='QUCOSA-XML']/mets:xmlData/Opus"
SLUB_INFO_XPATH = "/mets:mets/mets:amdSec/mets:techMD" + \
    "/mets:mdWrap[@MDTYPE='OTHER' and @OTHERMDTYPE='SLUBINFO']/mets:xmlData/slub:info"

#: identifiers that already carry a URI-style scheme, e.g. ``urn:nbn:...``
SCHEME_QUALIFIED = re.compile(r'^[a-z][a-z0-9+.\-]*:', re.IGNORECASE)
#: characters that must be escaped in a URL
INVALID_URL_CHARS = re.compile(r'[\s<>"{}|\\^`]')

#: METS record status values mapped to Fedora object states
RECORD_STATUS = {
    'ACTIVE': ACTIVE,
    'INACTIVE': INACTIVE,
    'DELETED': DELETED,
}


Section = namedtuple('Section', ['content', 'mimetype'])
'''An embedded metadata section: cloned root element and the
mimetype declared on its ``mdWrap`` (may be None).'''

RelatedItemEntry = namedtuple('RelatedItemEntry', ['type', 'identifiers'])


class FileEntry(object):
    '''Information about a single file declared in the METS file
    section.  For deletion requests only :attr:`id` and
    :attr:`delete` are set.'''

    def __init__(self, id, delete=False, mimetype=None, href=None, label=None,
                 temporary=False, checksum=None, checksum_type=None,
                 has_archival_value=False, is_downloadable=False):
        self.id = id
        self.delete = delete
        self.mimetype = mimetype
        self.href = href
        self.label = label
        self.temporary = temporary
        self.checksum = checksum
        self.checksum_type = checksum_type
        self.has_archival_value = has_archival_value
        self.is_downloadable = is_downloadable

    def __repr__(self):
        return '<FileEntry %s%s>' % (self.id, ' (delete)' if self.delete else '')

    @property
    def is_local(self):
        return self.href is not None and urlparse(self.href).scheme == 'file'

    @property
    def filename(self):
        if self.is_local:
            return url2pathname(urlparse(self.href).path)

    @classmethod
    def from_xml(cls, mets_file):
        ''':param mets_file: :class:`~eulsword.xml.MetsFile`
        :raises PackageError: if required information is missing'''
        id = _required('file ID', mets_file.id)
        if mets_file.use == 'DELETE':
            return cls(id, delete=True)

        location = _required('FLocat element', mets_file.location)
        href = _required('file content URL', location.href)
        _check_url(href)
        mimetype = _required('mime type', mets_file.mimetype)

        checksum = checksum_type = None
        # checksum is only used when both value and type are present
        if mets_file.checksum and mets_file.checksum_type:
            checksum = mets_file.checksum
            checksum_type = mets_file.checksum_type

        parent = mets_file.node.getparent()
        return cls(id, mimetype=mimetype, href=href, label=location.title,
                   temporary=(location.use == 'TEMPORARY'),
                   checksum=checksum, checksum_type=checksum_type,
                   has_archival_value=(mets_file.use == 'ARCHIVE'),
                   is_downloadable=(parent is not None and parent.get('USE') == 'DOWNLOAD'))


def _required(description, value):
    if value is None:
        raise PackageError('Cannot obtain %s' % description)
    return value


def _check_url(href):
    try:
        parsed = urlparse(href)
    except ValueError as err:
        raise PackageError('Cannot obtain file content URL: %s' % err)
    if not parsed.scheme or INVALID_URL_CHARS.search(href):
        raise PackageError('Cannot obtain file content URL: %s is not a valid absolute URL' % href)


def qualify_identifier(value, authority):
    '''Prefix an identifier with its authority (``ppn:322202922``)
    unless it is already scheme-qualified or has no authority.'''
    if SCHEME_QUALIFIED.match(value) or not authority:
        return value
    return '%s:%s' % (authority, value)


class METSPackage(object):
    '''A parsed METS deposit package.

    The MD5 checksum of the content is calculated while it is being
    parsed, so :attr:`md5` always matches the bytes the package was
    built from.

    :param content: package content, as bytes or a file-like object
    :raises PackageError: if the content is not well-formed XML
    '''

    read_block_size = 64 * 1024

    def __init__(self, content):
        if not hasattr(content, 'read'):
            content = io.BytesIO(force_bytes(content))
        reader = DigestReader(content)
        try:
            self.tree = etree.parse(reader)
        except etree.XMLSyntaxError as err:
            raise PackageError("Couldn't build METS from deposit: %s" % err)
        # include anything the parser left unread in the checksum
        while reader.read(self.read_block_size):
            pass
        self.md5 = reader.hexdigest()
        self.mets = Mets(self.tree.getroot())

    def _section(self, xpath):
        node = select_node(self.tree, xpath)
        if node is None:
            return None
        # mdWrap/xmlData/<root>; mimetype is declared on the mdWrap
        md_wrap = node.getparent().getparent()
        return Section(copy.deepcopy(node), md_wrap.get('MIMETYPE'))

    @property
    def mods(self):
        ''':class:`Section` for the MODS bibliographic record, or None'''
        return self._section(MODS_XPATH)

    @property
    def slub_info(self):
        ''':class:`Section` for the SLUB-INFO rights record, or None'''
        return self._section(SLUB_INFO_XPATH)

    @property
    def qucosa_xml(self):
        ''':class:`Section` for the pristine Qucosa XML record, or None'''
        return self._section(QUCOSA_XML_XPATH)

    def _mods_record(self):
        node = select_node(self.tree, MODS_XPATH)
        if node is not None:
            return Mods(node)

    @property
    def title(self):
        'primary title from the MODS record'
        mods = self._mods_record()
        if mods is not None:
            return mods.title

    @property
    def identifiers(self):
        '''MODS identifiers, each prefixed with its declared authority
        unless it already includes a scheme'''
        mods = self._mods_record()
        if mods is None:
            return []
        return [qualify_identifier(ident.value, ident.type)
                for ident in mods.identifiers if ident.value]

    @property
    def related_items(self):
        'list of :class:`RelatedItemEntry` from the MODS record'
        mods = self._mods_record()
        if mods is None:
            return []
        return [RelatedItemEntry(item.type, list(item.identifiers))
                for item in mods.related_items]

    @property
    def files(self):
        '''list of :class:`FileEntry`, one for each METS file.

        :raises PackageError: if any file is missing required information
        '''
        return [FileEntry.from_xml(f) for f in self.mets.files]

    @property
    def record_status(self):
        'Fedora object state for the METS record status, or None'
        status = self.mets.record_status
        if status:
            return RECORD_STATUS.get(status.strip().upper())

    @property
    def temporary_files(self):
        'local paths for file content marked as temporary'
        return [entry.filename for entry in self.files
                if not entry.delete and entry.temporary and entry.is_local]

