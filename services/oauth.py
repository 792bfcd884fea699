"""OAuth2 authorization-code flow for Google, Naver and Kakao.

Provider endpoints live in OAUTH_CONFIGS; client credentials come from app
config (GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET and so on). Each provider's
profile JSON is reduced to the same shape by normalize_profile() before it
reaches user_service.upsert_social_user().
"""
from typing import Dict, Any, Optional
from urllib.parse import urlencode

import requests
from flask import current_app

from utils.http import get_session, request_with_timeout

OAUTH_CONFIGS = {
    'google': {
        'auth_url': 'https://accounts.google.com/o/oauth2/v2/auth',
        'token_url': 'https://oauth2.googleapis.com/token',
        'userinfo_url': 'https://openidconnect.googleapis.com/v1/userinfo',
        'scope': 'openid email profile',
    },
    'naver': {
        'auth_url': 'https://nid.naver.com/oauth2.0/authorize',
        'token_url': 'https://nid.naver.com/oauth2.0/token',
        'userinfo_url': 'https://openapi.naver.com/v1/nid/me',
        'scope': None,
    },
    'kakao': {
        'auth_url': 'https://kauth.kakao.com/oauth/authorize',
        'token_url': 'https://kauth.kakao.com/oauth/token',
        'userinfo_url': 'https://kapi.kakao.com/v2/user/me',
        'scope': 'profile_nickname profile_image account_email',
    },
}


class OAuthError(Exception):
    pass


def _credentials(provider: str):
    prefix = provider.upper()
    return (
        current_app.config.get(f'{prefix}_CLIENT_ID'),
        current_app.config.get(f'{prefix}_CLIENT_SECRET'),
    )


def is_configured(provider: str) -> bool:
    if provider not in OAUTH_CONFIGS:
        return False
    client_id, client_secret = _credentials(provider)
    # Kakao works without a client secret unless the app enables one
    if provider == 'kakao':
        return bool(client_id)
    return bool(client_id and client_secret)


def authorization_url(provider: str, redirect_uri: str, state: str) -> str:
    config = OAUTH_CONFIGS[provider]
    client_id, _ = _credentials(provider)
    params = {
        'response_type': 'code',
        'client_id': client_id,
        'redirect_uri': redirect_uri,
        'state': state,
    }
    if config['scope']:
        params['scope'] = config['scope']
    if provider == 'google':
        params['prompt'] = 'select_account'
    return f"{config['auth_url']}?{urlencode(params)}"


def exchange_code(provider: str, code: str, redirect_uri: str, state: str, session=None) -> str:
    """Trade the authorization code for an access token."""
    config = OAUTH_CONFIGS[provider]
    client_id, client_secret = _credentials(provider)
    data = {
        'grant_type': 'authorization_code',
        'client_id': client_id,
        'code': code,
        'redirect_uri': redirect_uri,
    }
    if client_secret:
        data['client_secret'] = client_secret
    if provider == 'naver':
        data['state'] = state
    session = session or get_session()
    try:
        payload = request_with_timeout(session, 'POST', config['token_url'], data=data).json()
    except (requests.RequestException, ValueError) as exc:
        raise OAuthError(f'{provider} token exchange failed: {exc}') from exc
    token = payload.get('access_token')
    if not token:
        raise OAuthError(f"{provider} token exchange returned no access token: {payload.get('error')}")
    return token


def fetch_profile(provider: str, access_token: str, session=None) -> Dict[str, Any]:
    config = OAUTH_CONFIGS[provider]
    session = session or get_session()
    try:
        return request_with_timeout(
            session, 'GET', config['userinfo_url'],
            headers={'Authorization': f'Bearer {access_token}'},
        ).json()
    except (requests.RequestException, ValueError) as exc:
        raise OAuthError(f'{provider} profile request failed: {exc}') from exc


def normalize_profile(provider: str, raw: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Reduce a provider profile to provider_id, email, names and picture."""
    if provider == 'google':
        return {
            'provider_id': raw.get('sub') or raw.get('id'),
            'email': raw.get('email'),
            'first_name': raw.get('given_name'),
            'last_name': raw.get('family_name'),
            'display_name': raw.get('name'),
            'profile_image_url': raw.get('picture'),
        }
    if provider == 'naver':
        resp = raw.get('response') or {}
        return {
            'provider_id': resp.get('id'),
            'email': resp.get('email'),
            'first_name': None,
            'last_name': None,
            'display_name': resp.get('name') or resp.get('nickname'),
            'profile_image_url': resp.get('profile_image'),
        }
    if provider == 'kakao':
        account = raw.get('kakao_account') or {}
        profile = account.get('profile') or {}
        properties = raw.get('properties') or {}
        return {
            'provider_id': raw.get('id'),
            'email': account.get('email'),
            'first_name': None,
            'last_name': None,
            'display_name': profile.get('nickname') or properties.get('nickname'),
            'profile_image_url': profile.get('profile_image_url') or properties.get('profile_image'),
        }
    raise OAuthError(f'Unknown provider {provider}')
