"""HTTP helpers: requests Session with retries and sensible timeouts.

Used for outbound calls to OAuth providers, Supabase Storage and pages
fetched for link previews.
"""
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible; HousingCMSBot/1.0)'
DEFAULT_TIMEOUT = 10


def get_session(retries=3, backoff_factor=0.3, status_forcelist=(500, 502, 503, 504), pool_maxsize=10,
                user_agent=DEFAULT_USER_AGENT):
    session = requests.Session()
    retry = Retry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        # token exchanges and uploads are POST/PUT; retry only on the statuses above
        allowed_methods=frozenset(['GET', 'POST', 'PUT', 'HEAD'])
    )
    adapter = HTTPAdapter(max_retries=retry, pool_maxsize=pool_maxsize)
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    session.headers['User-Agent'] = user_agent
    return session


def request_with_timeout(session, method, url, timeout=DEFAULT_TIMEOUT, **kwargs):
    """Wrapper around session.request that applies a default timeout and raises on 4xx/5xx."""
    response = session.request(method, url, timeout=timeout, **kwargs)
    response.raise_for_status()
    return response
