#!/usr/bin/env python

# file test_eulsword/test_server.py
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

import os
import tempfile
import unittest

from eulxml import xmlmap
from lxml import etree
from mock import Mock, patch
from requests_toolbelt import MultipartEncoder

from eulsword import models
from eulsword.api import REST_API
from eulsword.server import Repository
from eulsword.util import RequestFailed, PermissionDenied
from eulsword.xml import SlubInfo

from test_eulsword.base import load_fixture_data


FEDORA_ROOT = 'http://fedora.example.com:8080/fedora'

DS_PROFILE = b'''<datastreamProfile xmlns="http://www.fedora.info/definitions/1/0/management/"
    pid="qucosa:1" dsID="%s">
  <dsLabel>%s</dsLabel>
  <dsVersionID>%s.0</dsVersionID>
  <dsState>A</dsState>
  <dsMIME>%s</dsMIME>
  <dsControlGroup>%s</dsControlGroup>
  <dsVersionable>true</dsVersionable>
  <dsChecksumType>DISABLED</dsChecksumType>
  <dsChecksum>none</dsChecksum>
</datastreamProfile>'''

NEW_PIDS = b'''<pidList xmlns="http://www.fedora.info/definitions/1/0/management/">
  <pid>qucosa:5</pid>
</pidList>'''


def response(status_code=200, content=b'', text=''):
    return Mock(status_code=status_code, content=content, text=text,
                url='%s/objects' % FEDORA_ROOT, headers={})


def profile_response(dsid, label, mimetype, control_group):
    return response(content=DS_PROFILE % (dsid.encode(), label.encode(), dsid.encode(),
                                          mimetype.encode(), control_group.encode()))


def not_found():
    return RequestFailed(response(404, text='no datastream'))


class RepositoryInitTest(unittest.TestCase):

    def test_explicit(self):
        repo = Repository(FEDORA_ROOT, 'user', 'pass', pidspace='qucosa')
        self.assertEqual(FEDORA_ROOT + '/', repo.fedora_root)
        self.assertEqual(('user', 'pass'), repo.api.request_options['auth'])
        self.assertEqual('qucosa', repo.default_pidspace)

    @patch('eulsword.server.get_setting')
    def test_settings(self, mockget_setting):
        settings = {
            'FEDORA_ROOT': 'http://localhost:8080/fedora/',
            'FEDORA_USER': 'fedoraAdmin',
            'FEDORA_PASSWORD': 'secret',
            'FEDORA_PIDSPACE': 'test',
        }
        mockget_setting.side_effect = lambda name, default=None: settings.get(name, default)
        repo = Repository()
        self.assertEqual('http://localhost:8080/fedora/', repo.fedora_root)
        self.assertEqual(('fedoraAdmin', 'secret'), repo.api.request_options['auth'])
        self.assertEqual('test', repo.default_pidspace)

    @patch('eulsword.server.get_setting')
    def test_no_root(self, mockget_setting):
        mockget_setting.return_value = None
        self.assertRaises(Exception, Repository)

    def test_anonymous(self):
        repo = Repository(FEDORA_ROOT)
        self.assertNotIn('auth', repo.api.request_options)


class RepositoryTest(unittest.TestCase):

    def setUp(self):
        self.repo = Repository(FEDORA_ROOT, 'user', 'pass', pidspace='qucosa')
        self.repo.api = Mock(spec=REST_API)
        self.api = self.repo.api

    def test_mint_pid(self):
        self.api.getNextPID.return_value = response(content=NEW_PIDS)
        self.assertEqual('qucosa:5', self.repo.mint_pid())
        self.api.getNextPID.assert_called_once_with(namespace='qucosa')

    def test_has_datastream(self):
        self.api.getDatastream.return_value = profile_response('MODS', 'MODS', 'application/mods+xml', 'X')
        self.assertTrue(self.repo.has_datastream('qucosa:1', 'MODS'))
        self.api.getDatastream.assert_called_once_with('qucosa:1', 'MODS')

        self.api.getDatastream.side_effect = not_found()
        self.assertFalse(self.repo.has_datastream('qucosa:1', 'ATT-9'))

    def test_has_datastream_error(self):
        self.api.getDatastream.side_effect = PermissionDenied(response(401, text='unauthorized'))
        self.assertRaises(PermissionDenied, self.repo.has_datastream, 'qucosa:1', 'MODS')

    def test_get_xml_datastream(self):
        self.api.getDatastream.return_value = profile_response(
            'SLUB-INFO', 'SLUB Administrative Metadata', 'application/vnd.slub-info+xml', 'X')
        self.api.getDatastreamDissemination.return_value = response(
            content=load_fixture_data('slub_info_stored.xml'))
        ds = self.repo.get_datastream('qucosa:1', 'SLUB-INFO', SlubInfo)
        self.assertEqual(models.INLINE, ds.kind)
        self.assertIsInstance(ds.content, SlubInfo)
        self.assertEqual(2, len(ds.content.rights.attachments))
        self.assertEqual('SLUB Administrative Metadata', ds.label)
        self.assertEqual('application/vnd.slub-info+xml', ds.mimetype)
        self.assertTrue(ds.versionable)

    def test_get_file_datastream(self):
        self.api.getDatastream.return_value = profile_response(
            'ATT-1', 'Attachment', 'application/pdf', 'M')
        ds = self.repo.get_datastream('qucosa:1', 'ATT-1')
        self.assertEqual('ATT-1', ds.id)
        self.assertEqual('application/pdf', ds.mimetype)
        self.api.getDatastreamDissemination.assert_not_called()

    def test_get_missing_datastream(self):
        self.api.getDatastream.side_effect = not_found()
        self.assertIsNone(self.repo.get_datastream('qucosa:1', 'SLUB-INFO'))

    def test_add_inline_datastream(self):
        mods = xmlmap.load_xmlobject_from_string(b'<mods xmlns="http://www.loc.gov/mods/v3"/>')
        ds = models.XmlDatastream('MODS', mods, label='Object Bibliographic Metadata',
                                  mimetype='application/mods+xml', versionable=True)
        self.repo.add_datastream('qucosa:1', ds, 'deposit')
        args, kwargs = self.api.addDatastream.call_args
        self.assertEqual(('qucosa:1', 'MODS'), args)
        self.assertEqual('X', kwargs['controlGroup'])
        self.assertEqual('application/mods+xml', kwargs['mimeType'])
        self.assertEqual('Object Bibliographic Metadata', kwargs['dsLabel'])
        self.assertEqual('deposit', kwargs['logMessage'])
        self.assertTrue(kwargs['versionable'])
        self.assertEqual('{http://www.loc.gov/mods/v3}mods', etree.fromstring(kwargs['content']).tag)
        self.assertNotIn('dsLocation', kwargs)

    def test_add_remote_datastream(self):
        ds = models.FileDatastream('ATT-1', 'http://example.com/a.pdf', mimetype='application/pdf',
                                   checksum='abc', checksum_type='SHA-512')
        self.repo.add_datastream('qucosa:1', ds)
        args, kwargs = self.api.addDatastream.call_args
        self.assertEqual('M', kwargs['controlGroup'])
        self.assertEqual('http://example.com/a.pdf', kwargs['dsLocation'])
        self.assertEqual('SHA-512', kwargs['checksumType'])
        self.assertEqual('abc', kwargs['checksum'])
        self.api.upload.assert_not_called()

    def test_add_local_datastream(self):
        tmp = tempfile.NamedTemporaryFile(suffix='.pdf', delete=False)
        tmp.write(b'%PDF-1.4')
        tmp.close()
        self.addCleanup(os.remove, tmp.name)

        self.api.upload.return_value = 'uploaded://17'
        ds = models.FileDatastream('ATT-1', 'file://%s' % tmp.name, mimetype='application/pdf')
        self.repo.add_datastream('qucosa:1', ds)
        self.assertEqual(1, self.api.upload.call_count)
        args, kwargs = self.api.addDatastream.call_args
        self.assertEqual('uploaded://17', kwargs['dsLocation'])

    def test_refuses_augmented(self):
        ds = models.AugmentedDatastream(models.FileDatastream('ATT-1', 'http://example.com/a.pdf'))
        self.assertRaises(TypeError, self.repo.add_datastream, 'qucosa:1', ds)
        self.assertRaises(TypeError, self.repo.modify_datastream, 'qucosa:1', ds)
        self.assertRaises(TypeError, self.repo.add_datastream, 'qucosa:1',
                          models.VoidDatastream('ATT-2'))
        self.assertEqual([], self.api.method_calls)

    def test_modify_datastream(self):
        ds = models.FileDatastream('ATT-1', 'http://example.com/b.pdf', mimetype='application/pdf')
        self.repo.modify_datastream('qucosa:1', ds)
        args, kwargs = self.api.modifyDatastream.call_args
        self.assertEqual(('qucosa:1', 'ATT-1'), args)
        self.assertEqual('http://example.com/b.pdf', kwargs['dsLocation'])
        self.assertNotIn('controlGroup', kwargs)

    def test_set_datastream_state(self):
        self.repo.set_datastream_state('qucosa:1', 'ATT-1', 'D', 'removed')
        self.api.setDatastreamState.assert_called_once_with('qucosa:1', 'ATT-1', 'D',
                                                            logMessage='removed')

    def test_ingest(self):
        obj = models.DepositObject('qucosa:1', label='Title')
        obj.dc = models.DublinCoreDatastream('Title')
        self.api.ingest.return_value = response(201, text='qucosa:1\n')
        self.assertEqual('qucosa:1', self.repo.ingest(obj, 'deposit'))
        args, kwargs = self.api.ingest.call_args
        foxml = etree.fromstring(args[0])
        self.assertEqual('qucosa:1', foxml.get('PID'))
        self.assertEqual('deposit', kwargs['logMessage'])


class REST_APITest(unittest.TestCase):

    def setUp(self):
        self.api = REST_API(FEDORA_ROOT, 'user', 'pass')
        self.api.session = Mock()
        for method in ('get', 'put', 'post'):
            getattr(self.api.session, method).__name__ = method

    def test_add_datastream(self):
        self.api.session.post.return_value = response(201)
        self.api.addDatastream('qucosa:1', 'ATT-1', dsLabel='Attachment',
                               dsLocation='http://example.com/a.pdf', controlGroup='M',
                               versionable=False, checksumType='MD5',
                               checksum='d41d8cd98f00b204e9800998ecf8427e')
        args, kwargs = self.api.session.post.call_args
        self.assertEqual(FEDORA_ROOT + '/objects/qucosa:1/datastreams/ATT-1', args[0])
        self.assertEqual({'dsLabel': 'Attachment', 'dsLocation': 'http://example.com/a.pdf',
                          'controlGroup': 'M', 'versionable': 'false', 'checksumType': 'MD5',
                          'checksum': 'd41d8cd98f00b204e9800998ecf8427e'}, kwargs['params'])
        self.assertEqual(('user', 'pass'), kwargs['auth'])
        self.assertNotIn('data', kwargs)

    def test_unknown_property(self):
        self.assertRaises(TypeError, self.api.addDatastream, 'qucosa:1', 'MODS', dsSize=12)
        self.api.session.post.assert_not_called()

    def test_add_datastream_content(self):
        self.api.session.post.return_value = response(201)
        self.api.addDatastream('qucosa:1', 'MODS', content=b'<mods/>', mimeType='text/xml')
        args, kwargs = self.api.session.post.call_args
        self.assertEqual(b'<mods/>', kwargs['data'])

    def test_modify_datastream(self):
        self.api.session.put.return_value = response(200)
        self.api.modifyDatastream('qucosa:1', 'MODS', content=b'<mods/>', logMessage='update')
        args, kwargs = self.api.session.put.call_args
        self.assertEqual(FEDORA_ROOT + '/objects/qucosa:1/datastreams/MODS', args[0])
        self.assertEqual({'logMessage': 'update'}, kwargs['params'])
        self.assertEqual(b'<mods/>', kwargs['data'])

    def test_set_datastream_state(self):
        self.api.session.put.return_value = response(200)
        self.assertTrue(self.api.setDatastreamState('qucosa:1', 'ATT-1', 'D'))
        args, kwargs = self.api.session.put.call_args
        self.assertEqual({'dsState': 'D'}, kwargs['params'])

    def test_errors(self):
        self.api.session.get.return_value = response(401, text='unauthorized')
        self.assertRaises(PermissionDenied, self.api.getDatastream, 'qucosa:1', 'MODS')
        self.api.session.get.return_value = response(404, text='not found')
        with self.assertRaises(RequestFailed) as cm:
            self.api.getDatastream('qucosa:1', 'MODS')
        self.assertEqual(404, cm.exception.code)

    def test_server_error_detail(self):
        error = response(500, text='java.lang.NullPointerException\n\tat Foo.bar')
        error.headers = {'content-type': 'text/plain'}
        self.api.session.put.return_value = error
        with self.assertRaises(RequestFailed) as cm:
            self.api.setDatastreamState('qucosa:1', 'ATT-1', 'D')
        self.assertEqual('java.lang.NullPointerException', cm.exception.detail)

    def test_upload(self):
        self.api.session.post.return_value = response(202, text='uploaded://17\n')
        self.assertEqual('uploaded://17', self.api.upload(b'%PDF-1.4', content_type='application/pdf'))
        args, kwargs = self.api.session.post.call_args
        self.assertEqual(FEDORA_ROOT + '/upload', args[0])
        self.assertIsInstance(kwargs['data'], MultipartEncoder)
        self.assertTrue(kwargs['headers']['Content-Type'].startswith('multipart/form-data'))

    def test_ingest(self):
        self.api.session.post.return_value = response(201, text='qucosa:1')
        self.api.ingest(b'<foxml/>', logMessage='deposit')
        args, kwargs = self.api.session.post.call_args
        self.assertEqual(FEDORA_ROOT + '/objects/new', args[0])
        self.assertEqual({'Content-Type': 'text/xml'}, kwargs['headers'])
        self.assertEqual({'logMessage': 'deposit'}, kwargs['params'])
