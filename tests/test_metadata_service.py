import os
import sys

import pytest
import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services import metadata_service
from services.errors import ValidationError

PAGE = """
<html><head>
<title>Fallback title</title>
<meta property="og:title" content="사회주택 &amp; 커뮤니티">
<meta name="description" content="기사 요약">
<meta property="og:image" content="/images/cover.jpg">
</head><body></body></html>
"""


class FakeResponse:
    def __init__(self, content, url, status=200):
        self.content = content.encode('utf-8') if isinstance(content, str) else content
        self.url = url
        self.encoding = 'utf-8'
        self.status = status
        self.chunks_read = 0
        self.closed = False

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f'{self.status} error')

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            self.chunks_read += 1
            yield self.content[start:start + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, timeout, kwargs.get('stream')))
        return self.response


def test_parse_metadata_prefers_open_graph():
    data = metadata_service.parse_metadata(PAGE, base_url='https://news.example.com/a/1')
    assert data == {
        'title': '사회주택 & 커뮤니티',
        'description': '기사 요약',
        'image': 'https://news.example.com/images/cover.jpg',
    }


def test_parse_metadata_falls_back_to_title_tag():
    data = metadata_service.parse_metadata('<html><title> 제목 </title></html>')
    assert data == {'title': '제목', 'description': None, 'image': None}


@pytest.mark.parametrize('page,title', [
    ('<meta property=og:title content=Hello><title>Fallback</title>', 'Hello'),
    ('<meta property="og:title" content="Tom > Jerry"><title>Fallback</title>', 'Tom > Jerry'),
    ("<META Property='OG:TITLE' Content='대문자 태그'>", '대문자 태그'),
    ('<meta name="twitter:title" content="트윗 제목"><title>Fallback</title>', '트윗 제목'),
    ('<meta property="og:title" content=""><title>Fallback</title>', 'Fallback'),
])
def test_parse_metadata_handles_real_world_markup(page, title):
    assert metadata_service.parse_metadata(page)['title'] == title


def test_body_read_stops_at_size_cap(app, monkeypatch):
    monkeypatch.setattr(metadata_service, 'MAX_HTML_BYTES', 100)
    monkeypatch.setattr(metadata_service, 'CHUNK_SIZE', 10)
    page = '<title>Short</title>' + 'x' * 10000
    response = FakeResponse(page, 'https://big.example.com')
    with app.app_context():
        data = metadata_service.extract_metadata('https://big.example.com', session=FakeSession(response))
    assert data['title'] == 'Short'
    assert response.chunks_read == 10
    assert response.closed


def test_extract_metadata_fetches_with_timeout(app):
    session = FakeSession(FakeResponse(PAGE, 'https://news.example.com/a/1'))
    with app.app_context():
        data = metadata_service.extract_metadata('https://news.example.com/a/1', session=session)
    assert data['title'] == '사회주택 & 커뮤니티'
    assert session.calls == [('GET', 'https://news.example.com/a/1', 10, True)]


def test_extract_metadata_http_error(app):
    session = FakeSession(FakeResponse('', 'https://x.example.com', status=404))
    with app.app_context():
        with pytest.raises(metadata_service.MetadataFetchError):
            metadata_service.extract_metadata('https://x.example.com', session=session)


@pytest.mark.parametrize('url', ['', 'javascript:alert(1)', 'ftp://example.com', 'https://'])
def test_extract_metadata_rejects_bad_urls(app, url):
    with app.app_context():
        with pytest.raises(ValidationError):
            metadata_service.extract_metadata(url)


def test_admin_endpoint_maps_fetch_failure_to_502(admin_client, monkeypatch):
    def fail(url):
        raise metadata_service.MetadataFetchError('timeout')

    monkeypatch.setattr(metadata_service, 'extract_metadata', fail)
    rv = admin_client.post('/api/admin/extract-metadata', json={'url': 'https://slow.example.com'})
    assert rv.status_code == 502
