# file eulsword/api.py
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

import io
import logging
import time
from urllib.parse import urljoin

import requests
from requests_toolbelt import MultipartEncoder, user_agent

from eulsword import __version__ as eulsword_version
from eulsword.util import RequestFailed, PermissionDenied, force_bytes

logger = logging.getLogger(__name__)


class HTTP_API_Base(object):

    def __init__(self, base_url, username=None, password=None):
        # standardize url format; ensure we have a trailing slash,
        # adding one if necessary
        if not base_url.endswith('/'):
            base_url = base_url + '/'

        self.session = requests.Session()
        # only headers common to *all* requests belong on the session
        # (i.e., do NOT include auth information here)
        self.session.headers = {
            'User-Agent': user_agent('eulsword', eulsword_version),
        }

        self.base_url = base_url
        self.username = username
        self.password = password
        self.request_options = {}
        if self.username is not None:
            # store basic auth option to pass when making requests
            self.request_options['auth'] = (self.username, self.password)

    def absurl(self, rel_url):
        return urljoin(self.base_url, rel_url)

    # thinnest possible wrappers around requests calls
    # - add auth, make urls absolute

    def _make_request(self, reqmeth, url, *args, **kwargs):
        # copy base request options and update with any keyword args
        rqst_options = self.request_options.copy()
        rqst_options.update(kwargs)
        start = time.time()
        response = reqmeth(self.absurl(url), *args, **rqst_options)
        total_time = time.time() - start
        logger.debug('%s %s=>%d: %f sec', reqmeth.__name__.upper(), url,
                     response.status_code, total_time)

        if response.status_code >= requests.codes.bad:  # 400 or worse
            # separate out 401 and 403 (permission errors) to enable
            # special handling in client code.
            if response.status_code in (requests.codes.unauthorized,
                                        requests.codes.forbidden):
                raise PermissionDenied(response)
            raise RequestFailed(response)
        return response

    def get(self, *args, **kwargs):
        return self._make_request(self.session.get, *args, **kwargs)

    def put(self, *args, **kwargs):
        return self._make_request(self.session.put, *args, **kwargs)

    def post(self, *args, **kwargs):
        return self._make_request(self.session.post, *args, **kwargs)


class REST_API(HTTP_API_Base):
    """Python object for the parts of
    `Fedora's REST API <https://wiki.duraspace.org/display/FEDORA38/REST+API>`_
    used when depositing: datastream lookups, datastream add/modify
    and state changes, object ingest, pid minting and content upload.

    Methods return an HTTP :class:`requests.models.Response`; XML
    responses can be loaded using models in :mod:`eulsword.xml`.
    """

    # datastream properties accepted by add and modify, in request order
    datastream_properties = ('dsLabel', 'mimeType', 'logMessage', 'controlGroup',
                             'dsLocation', 'versionable', 'dsState', 'formatURI',
                             'checksumType', 'checksum')

    def _datastream_url(self, pid, dsID, suffix=''):
        return 'objects/%s/datastreams/%s%s' % (pid, dsID, suffix)

    def _datastream_args(self, **kwargs):
        unknown = set(kwargs) - set(self.datastream_properties)
        if unknown:
            raise TypeError('Unsupported datastream properties: %s' % ', '.join(sorted(unknown)))
        http_args = {}
        for name in self.datastream_properties:
            value = kwargs.get(name)
            if name == 'versionable':
                if value is not None:
                    # lower-case booleans only
                    http_args[name] = str(bool(value)).lower()
            elif value:
                http_args[name] = value
        return http_args

    def getDatastream(self, pid, dsID):
        '''Datastream profile, as XML.  Fails with a 404
        :class:`~eulsword.util.RequestFailed` when the object has no
        such datastream.'''
        return self.get(self._datastream_url(pid, dsID), params={'format': 'xml'})

    def getDatastreamDissemination(self, pid, dsID, stream=False):
        '''Current content of a datastream.

        :param stream: return a streaming response (default: False)
        '''
        return self.get(self._datastream_url(pid, dsID, '/content'), stream=stream)

    def addDatastream(self, pid, dsID, content=None, **kwargs):
        '''Add a datastream to an existing object; responds with
        201 Created.

        Content is either passed as `content` (bytes, or a file-like
        object sent as a multipart file) or referenced by a
        `dsLocation` keyword argument.  Other keyword arguments are
        the datastream properties named in
        :attr:`datastream_properties`.
        '''
        http_args = self._datastream_args(**kwargs)
        if 'checksum' in http_args and 'checksumType' not in http_args:
            logger.warning('Checksum for %s/%s will be ignored; no checksum type specified',
                           pid, dsID)

        body = {}
        if content:
            if hasattr(content, 'read'):
                body['files'] = {'file': content}
            else:
                body['data'] = content
        return self.post(self._datastream_url(pid, dsID), params=http_args, **body)

    def modifyDatastream(self, pid, dsID, content=None, **kwargs):
        '''Replace content and properties of an existing datastream,
        with the same arguments as :meth:`addDatastream`.  Without
        content or `dsLocation` only properties change.  Responds with
        200 OK.'''
        http_args = self._datastream_args(**kwargs)
        body = {}
        if content:
            body['data'] = content
        return self.put(self._datastream_url(pid, dsID), params=http_args, **body)

    def setDatastreamState(self, pid, dsID, dsState, logMessage=None):
        '''Change the state (A/I/D) of a datastream.  Content is kept
        when a datastream is marked deleted.

        :returns: True when Fedora reports success
        '''
        http_args = {'dsState': dsState}
        if logMessage:
            http_args['logMessage'] = logMessage
        response = self.put(self._datastream_url(pid, dsID), params=http_args)
        return response.status_code == requests.codes.ok

    def ingest(self, text, logMessage=None):
        """Create a new object from FOXML.  Responds with 201 Created;
        the response body is the pid of the new object.

        :param text: FOXML document
        :param logMessage: optional audit log message
        """
        params = {'logMessage': logMessage} if logMessage else {}
        return self.post('objects/new', data=text, params=params,
                         headers={'Content-Type': 'text/xml'})

    def getNextPID(self, numPIDs=None, namespace=None):
        '''Mint new pids; the XML response lists them.

        :param numPIDs: number of pids to mint (Fedora default: 1)
        :param namespace: pid namespace, if not the repository default
        '''
        params = {'format': 'xml'}
        if numPIDs:
            params['numPIDs'] = numPIDs
        if namespace:
            params['namespace'] = namespace
        return self.post('objects/nextPID', params=params)

    def upload(self, data, content_type=None):
        '''Send file content to Fedora's upload endpoint, to be
        referenced as datastream location while ingesting or adding
        a managed datastream.

        :param data: bytes or file-like object
        :param content_type: optional content type of the data
        :returns: upload id (``uploaded://...``) on 202 Accepted,
            otherwise None
        '''
        if not hasattr(data, 'read'):
            data = io.BytesIO(force_bytes(data))

        # streamed, so large attachments are not read into memory
        menc = MultipartEncoder(fields={'file': ('file', data, content_type)})
        response = self.post('upload', data=menc, headers={'Content-Type': menc.content_type})
        if response.status_code == requests.codes.accepted:
            return response.text.strip()
