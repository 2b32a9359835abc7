# file eulsword/util.py
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
import logging
import re

import requests

from eulxml import xmlmap


logger = logging.getLogger(__name__)


def force_text(s, encoding='utf-8'):
    if isinstance(s, bytes):
        return str(s, encoding)
    return str(s)


def force_bytes(s, encoding='utf-8'):
    if isinstance(s, bytes):
        if encoding == 'utf-8':
            return s
        else:
            return s.decode('utf-8').encode(encoding)
    return str(s).encode(encoding)


class DepositError(Exception):
    '''Base class for errors that make a deposit unusable.  Nothing
    is written to the repository once one of these has been raised.'''


class PackageError(DepositError):
    '''The METS package could not be read: unparsable XML, a required
    attribute or element is missing, or a content URL is invalid.'''


class ChecksumMismatch(DepositError):
    '''The MD5 checksum declared for the deposit does not match the
    checksum calculated over the received content.'''

    def __init__(self, expected, actual):
        super(ChecksumMismatch, self).__init__(
            'Bad MD5 for submitted content: %s. Expected: %s' % (actual, expected))
        self.expected = expected
        self.actual = actual


class ValidationError(DepositError):
    '''The datastreams assembled from a deposit do not form a valid
    repository object (e.g., the MODS datastream is missing).'''


class RequestFailed(IOError):
    '''A Fedora REST request returned an error status.  Raised by
    :mod:`eulsword.api` and passed on untouched by the deposit handler.

    :attr:`code` is the HTTP status; for internal server errors
    :attr:`detail` holds the first line of the stack trace Fedora
    sends back, where one can be found.
    '''
    stacktrace_re = re.compile(r'<pre>.*\n(.*)\n', re.MULTILINE)

    def __init__(self, response):
        super(RequestFailed, self).__init__('%d %s' % (response.status_code, response.text))
        self.code = response.status_code
        self.reason = response.text
        self.detail = None
        if self.code == requests.codes.server_error:
            body = force_text(response.text or '')
            if response.headers.get('content-type') == 'text/plain':
                self.detail = body.split('\n')[0]
            else:
                found = self.stacktrace_re.search(body)
                if found:
                    self.detail = found.group(1)


class PermissionDenied(RequestFailed):
    '''Fedora refused the request (401 or 403).'''


def parse_xml_object(cls, data, url):
    doc = xmlmap.parseString(data, url)
    return cls(doc)


class DigestReader(object):
    '''File-like wrapper that calculates an MD5 checksum of everything
    read through it, so that a parser consuming the stream and the
    checksum see exactly the same bytes in a single pass.

    :param stream: file-like object to read from
    '''

    def __init__(self, stream):
        self.stream = stream
        self.md5 = hashlib.md5()

    def read(self, size=-1):
        data = self.stream.read(size)
        if data:
            data = force_bytes(data)
            self.md5.update(data)
        return data

    def hexdigest(self):
        'lowercase hex MD5 of the content read so far'
        return self.md5.hexdigest()
