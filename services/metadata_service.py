from typing import Dict, Optional
from urllib.parse import urlparse, urljoin

import requests
from bs4 import BeautifulSoup
from flask import current_app

from services.errors import ValidationError
from utils.http import get_session, request_with_timeout

MAX_HTML_BYTES = 2 * 1024 * 1024
CHUNK_SIZE = 64 * 1024


class MetadataFetchError(Exception):
    pass


def _meta_content(soup: BeautifulSoup, *keys: str) -> Optional[str]:
    """Content of the first <meta property=...> or <meta name=...> matching keys, in order."""
    for key in keys:
        for attr in ('property', 'name'):
            tag = soup.find('meta', attrs={attr: lambda v, key=key: v is not None and v.lower() == key})
            if tag is not None and (tag.get('content') or '').strip():
                return tag['content'].strip()
    return None


def parse_metadata(page: str, base_url: Optional[str] = None) -> Dict[str, Optional[str]]:
    soup = BeautifulSoup(page or '', 'html.parser')
    title = _meta_content(soup, 'og:title', 'twitter:title')
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()
    description = _meta_content(soup, 'og:description', 'twitter:description', 'description')
    image = _meta_content(soup, 'og:image', 'twitter:image')
    if image and base_url:
        image = urljoin(base_url, image)
    return {'title': title or None, 'description': description or None, 'image': image or None}


def _read_capped(response) -> bytes:
    body = bytearray()
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        body.extend(chunk)
        if len(body) >= MAX_HTML_BYTES:
            break
    response.close()
    return bytes(body[:MAX_HTML_BYTES])


def extract_metadata(url: str, session=None) -> Dict[str, Optional[str]]:
    """Fetch a page and pull its Open Graph title, description and image."""
    url = (url or '').strip()
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationError('Invalid URL', {'url': 'Must be an http(s) URL'})
    session = session or get_session(retries=1)
    try:
        response = request_with_timeout(session, 'GET', url, stream=True)
        body = _read_capped(response)
    except requests.RequestException as exc:
        current_app.logger.warning('Metadata fetch failed for %s: %s', url, exc)
        raise MetadataFetchError(str(exc)) from exc
    page = body.decode(response.encoding or 'utf-8', errors='replace')
    return parse_metadata(page, base_url=response.url or url)
