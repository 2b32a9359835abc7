#!/usr/bin/env python

# file test_eulsword/test_mets.py
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

import hashlib
import io
import unittest

from eulsword.mets import METSPackage, FileEntry, qualify_identifier
from eulsword.models import INACTIVE
from eulsword.util import PackageError
from eulsword.xml import MODS_NS, SLUB_NS

from test_eulsword.base import load_fixture_data, fixture_path


METS_FILE_TEMPLATE = b'''<mets:mets xmlns:mets="http://www.loc.gov/METS/"
    xmlns:xlink="http://www.w3.org/1999/xlink">
  <mets:fileSec><mets:fileGrp USE="ORIGINAL">%s</mets:fileGrp></mets:fileSec>
</mets:mets>'''


def package_with_file(file_xml):
    return METSPackage(METS_FILE_TEMPLATE % file_xml)


class METSPackageTest(unittest.TestCase):

    def setUp(self):
        self.data = load_fixture_data('mets_ingest.xml')
        self.package = METSPackage(self.data)

    def test_md5(self):
        self.assertEqual(hashlib.md5(self.data).hexdigest(), self.package.md5)
        # same checksum when reading from a file
        with open(fixture_path('mets_ingest.xml'), 'rb') as metsfile:
            self.assertEqual(self.package.md5, METSPackage(metsfile).md5)

    def test_md5_unread_content(self):
        # trailing content the parser never needs is still checksummed
        data = self.data + b'\n\n'
        self.assertEqual(hashlib.md5(data).hexdigest(),
                         METSPackage(io.BytesIO(data)).md5)

    def test_invalid_xml(self):
        self.assertRaises(PackageError, METSPackage, b'<mets:mets>not xml')
        self.assertRaises(PackageError, METSPackage, b'')

    def test_mods(self):
        mods = self.package.mods
        self.assertEqual('{%s}mods' % MODS_NS, mods.content.tag)
        self.assertEqual('application/mods+xml', mods.mimetype)
        # content is a copy, detached from the package
        self.assertIsNone(mods.content.getparent())

    def test_slub_info(self):
        slub_info = self.package.slub_info
        self.assertEqual('{%s}info' % SLUB_NS, slub_info.content.tag)
        self.assertEqual('application/vnd.slub-info+xml', slub_info.mimetype)

    def test_qucosa_xml(self):
        qucosa_xml = self.package.qucosa_xml
        self.assertEqual('Opus', qucosa_xml.content.tag)
        self.assertEqual('application/vnd.slub.qucosa-xml', qucosa_xml.mimetype)

    def test_missing_sections(self):
        package = METSPackage(load_fixture_data('mets_update.xml'))
        self.assertIsNone(package.mods)
        self.assertIsNone(package.slub_info)
        self.assertIsNone(package.qucosa_xml)
        self.assertIsNone(package.title)
        self.assertEqual([], package.identifiers)
        self.assertEqual([], package.related_items)
        self.assertIsNone(package.record_status)

    def test_title(self):
        self.assertEqual('Qucosa: Quality Content of Saxony', self.package.title)

    def test_identifiers(self):
        self.assertEqual(['urn:nbn:de:bsz:14-qucosa-32992', 'ppn:322202922'],
                         self.package.identifiers)

    def test_related_items(self):
        items = self.package.related_items
        self.assertEqual(4, len(items))
        self.assertEqual('preceding', items[0].type)
        self.assertEqual(['qucosa:1'], items[0].identifiers)
        # identifiers are trimmed
        self.assertEqual(['qucosa:2'], items[1].identifiers)

    def test_record_status(self):
        self.assertEqual(INACTIVE, self.package.record_status)

    def test_files(self):
        files = self.package.files
        self.assertEqual(['ATT-1', 'ATT-2'], [f.id for f in files])

        att1 = files[0]
        self.assertFalse(att1.delete)
        self.assertEqual('application/pdf', att1.mimetype)
        self.assertEqual('Attachment', att1.label)
        self.assertTrue(att1.temporary)
        self.assertTrue(att1.is_local)
        self.assertEqual('/tmp/eulsword-test/1057131155078-6506.pdf', att1.filename)
        self.assertEqual('SHA-512', att1.checksum_type)
        self.assertEqual('0f3c8a2b7e91d4e5', att1.checksum)
        self.assertTrue(att1.has_archival_value)
        self.assertTrue(att1.is_downloadable)

        att2 = files[1]
        self.assertEqual('http://example.com/files/attachment.pdf', att2.href)
        self.assertFalse(att2.is_local)
        self.assertIsNone(att2.filename)
        self.assertFalse(att2.temporary)
        # checksum without checksum type is not used
        self.assertIsNone(att2.checksum)
        self.assertIsNone(att2.checksum_type)
        self.assertFalse(att2.has_archival_value)
        self.assertFalse(att2.is_downloadable)

    def test_delete_requests(self):
        package = METSPackage(load_fixture_data('mets_update.xml'))
        files = dict((f.id, f) for f in package.files)
        self.assertTrue(files['ATT-2'].delete)
        self.assertIsNone(files['ATT-2'].href)
        self.assertFalse(files['ATT-1'].delete)

    def test_temporary_files(self):
        self.assertEqual(['/tmp/eulsword-test/1057131155078-6506.pdf'],
                         self.package.temporary_files)

    def test_invalid_file_url(self):
        package = METSPackage(load_fixture_data('mets_invalid_url.xml'))
        self.assertRaises(PackageError, lambda: package.files)
        # relative references are not usable either
        package = package_with_file(b'<mets:file ID="ATT-1" MIMETYPE="text/plain">'
                                    b'<mets:FLocat xlink:href="files/readme.txt"/></mets:file>')
        self.assertRaises(PackageError, lambda: package.files)

    def test_incomplete_file(self):
        missing = {
            'file ID': b'<mets:file MIMETYPE="text/plain">'
                       b'<mets:FLocat xlink:href="http://example.com/a.txt"/></mets:file>',
            'FLocat element': b'<mets:file ID="ATT-1" MIMETYPE="text/plain"/>',
            'file content URL': b'<mets:file ID="ATT-1" MIMETYPE="text/plain">'
                                b'<mets:FLocat/></mets:file>',
            'mime type': b'<mets:file ID="ATT-1">'
                         b'<mets:FLocat xlink:href="http://example.com/a.txt"/></mets:file>',
        }
        for what, file_xml in missing.items():
            package = package_with_file(file_xml)
            with self.assertRaises(PackageError) as cm:
                package.files
            self.assertIn('Cannot obtain %s' % what, str(cm.exception))


class FileEntryTest(unittest.TestCase):

    def test_repr(self):
        self.assertEqual('<FileEntry ATT-1>', repr(FileEntry('ATT-1')))
        self.assertEqual('<FileEntry ATT-1 (delete)>', repr(FileEntry('ATT-1', delete=True)))


class QualifyIdentifierTest(unittest.TestCase):

    def test_authority_prefix(self):
        self.assertEqual('ppn:322202922', qualify_identifier('322202922', 'ppn'))

    def test_scheme_qualified(self):
        self.assertEqual('urn:nbn:de:bsz:14-qucosa-32992',
                         qualify_identifier('urn:nbn:de:bsz:14-qucosa-32992', 'urn'))
        self.assertEqual('URN:NBN:de:1', qualify_identifier('URN:NBN:de:1', 'urn'))
        self.assertEqual('doi+x.y-z:10.1000/1', qualify_identifier('doi+x.y-z:10.1000/1', 'doi'))

    def test_no_authority(self):
        self.assertEqual('322202922', qualify_identifier('322202922', None))
        self.assertEqual('322202922', qualify_identifier('322202922', ''))

    def test_not_a_scheme(self):
        # a scheme must start with a letter
        self.assertEqual('isbn:3-12:45', qualify_identifier('3-12:45', 'isbn'))
