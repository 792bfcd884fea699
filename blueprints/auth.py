import secrets

from flask import Blueprint, request, jsonify, redirect, session, url_for, current_app, abort
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf

from decorators import login_required_json
from extensions import limiter, AUTH_LIMIT
from metrics import track_login_attempt
from services import user_service, oauth
from services.errors import ValidationError
from utils.serialization import normalize_input

auth_bp = Blueprint('auth', __name__)

# --- local accounts -------------------------------------------------------------

@auth_bp.route('/register', methods=['POST'])
@limiter.limit(AUTH_LIMIT, methods=["POST"])
def register():
    data = normalize_input(request.get_json(silent=True) or {})
    user = user_service.register(data)
    login_user(user, remember=True)
    current_app.logger.info('Registered user %s', user.id)
    return jsonify(user_service.serialize_user(user)), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(AUTH_LIMIT, methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    user = user_service.authenticate(data.get('email'), data.get('password'))
    if user is None:
        track_login_attempt('local', success=False)
        current_app.logger.warning('Failed login for %s from %s', data.get('email'), request.remote_addr)
        return jsonify({'error': 'Invalid email or password'}), 401
    login_user(user, remember=True)
    track_login_attempt('local', success=True)
    return jsonify(user_service.serialize_user(user))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'message': 'Logged out'})


@auth_bp.route('/auth/user', methods=['GET'])
@login_required_json
def current_user_info():
    return jsonify(user_service.serialize_user(current_user))


@auth_bp.route('/auth/csrf', methods=['GET'])
def csrf_token():
    return jsonify({'csrfToken': generate_csrf()})


@auth_bp.route('/users/verify-real-name', methods=['POST'])
@login_required_json
def verify_real_name():
    data = normalize_input(request.get_json(silent=True) or {})
    user = user_service.verify_real_name(current_user, data.get('real_name'), data.get('phone_number'))
    return jsonify(user_service.serialize_user(user))


# --- social login -------------------------------------------------------------

def _redirect_uri(provider: str) -> str:
    base = current_app.config.get('OAUTH_REDIRECT_BASE')
    if base:
        return f"{base.rstrip('/')}/api/auth/{provider}/callback"
    return url_for('auth.oauth_callback', provider=provider, _external=True)


def _state_key(provider: str) -> str:
    return f'oauth_state_{provider}'


@auth_bp.route('/auth/<provider>', methods=['GET'])
def oauth_start(provider):
    if not oauth.is_configured(provider):
        abort(404)
    state = secrets.token_urlsafe(24)
    session[_state_key(provider)] = state
    return redirect(oauth.authorization_url(provider, _redirect_uri(provider), state))


@auth_bp.route('/auth/<provider>/callback', methods=['GET'])
def oauth_callback(provider):
    if provider not in oauth.OAUTH_CONFIGS:
        abort(404)
    failure = redirect(f'/auth?error={provider}_login_failed')
    expected_state = session.pop(_state_key(provider), None)
    code = request.args.get('code')

    if request.args.get('error') or not code:
        current_app.logger.warning('%s login cancelled or missing code: %s', provider, request.args.get('error'))
        track_login_attempt(provider, success=False)
        return failure
    if not expected_state or request.args.get('state') != expected_state:
        current_app.logger.warning('%s login rejected: state mismatch', provider)
        track_login_attempt(provider, success=False)
        return failure

    try:
        token = oauth.exchange_code(provider, code, _redirect_uri(provider), expected_state)
        profile = oauth.normalize_profile(provider, oauth.fetch_profile(provider, token))
        user = user_service.upsert_social_user(provider, profile)
    except (oauth.OAuthError, ValidationError) as exc:
        current_app.logger.warning('%s login failed: %s', provider, exc)
        track_login_attempt(provider, success=False)
        return failure

    login_user(user, remember=True)
    track_login_attempt(provider, success=True)
    current_app.logger.info('User %s signed in with %s', user.id, provider)
    return redirect('/dashboard' if user.is_admin else '/')
