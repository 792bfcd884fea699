import re
from typing import Optional, Dict, Any

from flask import current_app

from models import db, User
from password_validator import validate_password_strength
from services.errors import ValidationError, NotFoundError, ConflictError

EMAIL_RE = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

PROVIDER_COLUMNS = {
    'google': 'google_id',
    'naver': 'naver_id',
    'kakao': 'kakao_id',
}


def _normalize_email(email: Optional[str]) -> Optional[str]:
    email = (email or '').strip().lower()
    return email or None


def _commit(message: str, *args) -> None:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(message, *args)
        raise


def serialize_user(user: User) -> Dict[str, Any]:
    """Public view of a user. Never includes the password hash."""
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'profileImageUrl': user.profile_image_url,
        'role': user.role,
        'isVerified': bool(user.is_verified),
        'realName': user.real_name,
        'phoneNumber': user.phone_number,
        'hasPassword': bool(user.password_hash),
        'providers': [p for p, col in PROVIDER_COLUMNS.items() if getattr(user, col)],
        'createdAt': user.created_at.isoformat() if user.created_at else None,
        'updatedAt': user.updated_at.isoformat() if user.updated_at else None,
    }


def register(data: Dict[str, Any]) -> User:
    email = _normalize_email(data.get('email'))
    password = data.get('password') or ''
    details = {}
    if not email or not EMAIL_RE.match(email):
        details['email'] = 'A valid email is required'
    is_valid, error_message = validate_password_strength(password)
    if not is_valid:
        details['password'] = error_message
    if details:
        raise ValidationError('Invalid registration data', details)

    if User.query.filter_by(email=email).first():
        raise ConflictError('Email already registered', field='email')

    user = User(
        email=email,
        first_name=(data.get('first_name') or '').strip() or None,
        last_name=(data.get('last_name') or '').strip() or None,
        role='user',
    )
    user.set_password(password)
    db.session.add(user)
    _commit('Error registering user %s', email)
    return user


def authenticate(email: Optional[str], password: Optional[str]) -> Optional[User]:
    """Return the user when the credentials match, else None."""
    email = _normalize_email(email)
    if not email or not password:
        return None
    user = User.query.filter_by(email=email).first()
    if user and user.check_password(password):
        return user
    return None


def split_display_name(name: Optional[str]):
    """'홍 길동' -> ('홍', '길동'); single words become the first name."""
    name = (name or '').strip()
    if not name:
        return None, None
    parts = name.split(' ', 1)
    first = parts[0]
    last = parts[1].strip() if len(parts) > 1 else None
    return first, last or None


def upsert_social_user(provider: str, profile: Dict[str, Any]) -> User:
    """Find or create the user behind a provider profile.

    Lookup goes by provider id first, then by email (linking the provider id to
    the existing account). Creating a new account requires an email.
    """
    column = PROVIDER_COLUMNS.get(provider)
    if column is None:
        raise ValidationError('Unknown provider', {'provider': provider})
    provider_id = str(profile.get('provider_id') or '').strip()
    if not provider_id:
        raise ValidationError('Provider profile has no id', {'provider_id': 'missing'})
    email = _normalize_email(profile.get('email'))

    user = User.query.filter(getattr(User, column) == provider_id).first()
    if user is None and email:
        user = User.query.filter_by(email=email).first()
    if user is None:
        if not email:
            raise ValidationError('Email is required to create an account', {'email': 'missing'})
        user = User(email=email, role='user')
        db.session.add(user)

    setattr(user, column, provider_id)
    first_name = profile.get('first_name')
    last_name = profile.get('last_name')
    if not first_name and profile.get('display_name'):
        first_name, last_name = split_display_name(profile.get('display_name'))
    if first_name:
        user.first_name = first_name
    if last_name:
        user.last_name = last_name
    if profile.get('profile_image_url'):
        user.profile_image_url = profile['profile_image_url']
    if not user.email and email:
        user.email = email
    _commit('Error saving %s user', provider)
    return user


def list_users():
    return User.query.order_by(User.created_at.desc()).all()


def get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    return user


def set_role(user_id: str, role: str) -> User:
    user = get_user(user_id)
    try:
        user.set_role(role)
    except ValueError as exc:
        raise ValidationError('Invalid role', {'role': str(exc)})
    _commit('Error changing role of user %s', user_id)
    return user


def reset_password(user_id: str, password: str) -> User:
    user = get_user(user_id)
    is_valid, error_message = validate_password_strength(password or '')
    if not is_valid:
        raise ValidationError('Invalid password', {'password': error_message})
    user.set_password(password)
    _commit('Error resetting password of user %s', user_id)
    return user


def verify_real_name(user: User, real_name: str, phone_number: str) -> User:
    real_name = (real_name or '').strip()
    digits = re.sub(r'\D', '', phone_number or '')
    details = {}
    if not real_name:
        details['real_name'] = 'This field is required'
    if len(digits) < 9 or len(digits) > 11:
        details['phone_number'] = 'Invalid phone number'
    if details:
        raise ValidationError('Invalid verification data', details)
    user.real_name = real_name
    user.phone_number = digits
    user.is_verified = True
    _commit('Error verifying user %s', user.id)
    return user


def create_admin(email: str, password: str) -> User:
    """Create an admin account, or promote and re-password an existing one."""
    email = _normalize_email(email)
    if not email or not EMAIL_RE.match(email):
        raise ValidationError('Invalid email', {'email': 'A valid email is required'})
    is_valid, error_message = validate_password_strength(password or '')
    if not is_valid:
        raise ValidationError('Invalid password', {'password': error_message})
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email)
        db.session.add(user)
    user.role = User.ROLE_ADMIN
    user.set_password(password)
    _commit('Error creating admin %s', email)
    return user
