"""Helpers for rich-text content: video embeds, Markdown detection and HTML sanitizing.

Article bodies arrive as editor HTML and are cleaned before they are stored.
Resident reporter articles are stored as Markdown and rendered through
markdown_to_html() on the way out, so both paths end in the same sanitizer.
"""
import copy
import re

import markdown
import nh3

YOUTUBE_RE = re.compile(
    r'(?:youtube(?:-nocookie)?\.com/(?:watch\?(?:[^#\s]*&)?v=|embed/|shorts/|v/|live/)|youtu\.be/)'
    r'([A-Za-z0-9_-]{11})'
)
VIMEO_RE = re.compile(r'vimeo\.com/(?:video/|channels/[\w-]+/)?(\d+)')

MARKDOWN_MARKERS = ('#', '**', '- ', '`', '> ')

EMBED_PREFIXES = (
    'https://www.youtube.com/embed/',
    'https://www.youtube-nocookie.com/embed/',
    'https://player.vimeo.com/video/',
)

ALLOWED_TAGS = set(nh3.ALLOWED_TAGS) | {'iframe', 'span', 'u', 's'}
ALLOWED_ATTRIBUTES = copy.deepcopy(nh3.ALLOWED_ATTRIBUTES)
ALLOWED_ATTRIBUTES['iframe'] = {'src', 'width', 'height', 'frameborder', 'allowfullscreen', 'allow'}
ALLOWED_ATTRIBUTES.setdefault('*', set())
ALLOWED_ATTRIBUTES['*'] = set(ALLOWED_ATTRIBUTES['*']) | {'class'}
ALLOWED_ATTRIBUTES['img'] = set(ALLOWED_ATTRIBUTES.get('img', set())) | {'src', 'alt', 'width', 'height'}


def extract_embed_url(url):
    """Return the iframe src for a YouTube or Vimeo URL, or None."""
    if not url:
        return None
    url = url.strip()
    m = YOUTUBE_RE.search(url)
    if m:
        return f"https://www.youtube.com/embed/{m.group(1)}"
    m = VIMEO_RE.search(url)
    if m:
        return f"https://player.vimeo.com/video/{m.group(1)}"
    return None


def looks_like_markdown(text) -> bool:
    if not text:
        return False
    return any(marker in text for marker in MARKDOWN_MARKERS)


def _filter_attribute(element, attribute, value):
    # iframes may only point at the video players we generate embeds for
    if element == 'iframe' and attribute == 'src':
        return value if value.startswith(EMBED_PREFIXES) else None
    return value


def sanitize_html(html) -> str:
    if not html:
        return ''
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        attribute_filter=_filter_attribute,
    )


def markdown_to_html(text) -> str:
    if not text:
        return ''
    rendered = markdown.markdown(text, extensions=['extra', 'sane_lists', 'nl2br'])
    return sanitize_html(rendered)


def render_preview(text):
    """Return (is_markdown, html) for pasted text.

    Markdown-looking text goes through the Markdown renderer, anything else is
    treated as HTML and only sanitized.
    """
    if looks_like_markdown(text):
        return True, markdown_to_html(text)
    return False, sanitize_html(text)
