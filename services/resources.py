"""Descriptor-driven CRUD for the admin dashboard resources.

Each content type is described once by a ``ResourceSpec`` (its model, the
writable fields with their kinds and enum options, default ordering and the
visibility filter for public reads). The admin and public blueprints route
every ``/api/admin/<resource>`` and ``/api/<resource>`` call through the
functions at the bottom of this module, so adding a content type means adding
one descriptor.
"""
import json
import re
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from flask import current_app

from models import (
    db, Project, Article, Event, ResidentProgram, ProgramApplication, Partner,
    HistoryMilestone, SocialAccount, HousingRecruitment, CommunityPost,
    Inquiry, ResidentReporter,
)
from services.errors import ValidationError, NotFoundError
from services.rich_text import sanitize_html, markdown_to_html
from utils.serialization import camelize

PROJECT_CATEGORIES = [
    'youth', 'single', 'social-mix', 'local-anchor', 'senior', 'newlyweds',
    'startup', 'disabled', 'purchase-agreement', 'land-lease',
    'urban-regeneration', 'LH', 'SH', 'HUG', 'seoul', 'gyeonggi', 'IH', 'GH',
    'children', 'arts',
]
ARTICLE_CATEGORIES = ['column', 'media', 'library']
INQUIRY_TYPES = ['move-in', 'business', 'recruit']
SOCIAL_PLATFORMS = ['instagram', 'blog', 'facebook']

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
TRUE_VALUES = ('true', '1', 'on', 'yes')
FALSE_VALUES = ('false', '0', 'off', 'no')

# keys the client may echo back but never sets
SERVER_FIELDS = ('id', 'created_at', 'updated_at')

ALL_OPS = frozenset(['list', 'get', 'create', 'update', 'delete'])

# status flags and enumerations are never cleared on update
NON_NULL_KINDS = ('enum', 'bool')


class Field:
    """One writable column of a resource.

    kind is one of: str, text, html, email, int, bool, datetime, list, json,
    enum, enum_list.
    """

    def __init__(self, name, kind='str', required=False, choices=None, validator=None):
        self.name = name
        self.kind = kind
        self.required = required
        self.choices = list(choices) if choices else None
        self.validator = validator


class ResourceSpec:
    def __init__(self, name, model, fields, order_by=(), public=True, public_filter=None,
                 query_filters=None, member_filters=None, admin_ops=ALL_OPS, extras=None,
                 detail_extras=None, label=None):
        self.name = name
        self.model = model
        self.fields = {f.name: f for f in fields}
        self.order_by = order_by
        self.public = public
        self.public_filter = public_filter or {}
        # ?param=value -> column equality
        self.query_filters = query_filters or {}
        # ?param=value -> value contained in a JSON list column
        self.member_filters = member_filters or {}
        self.admin_ops = frozenset(admin_ops)
        self.extras = extras
        self.detail_extras = detail_extras
        self.label = label or name

    def serialize(self, obj, detail=False) -> dict:
        data = {c.name: getattr(obj, c.name) for c in obj.__table__.columns}
        out = camelize(data)
        if self.extras:
            out.update(self.extras(obj))
        if detail and self.detail_extras:
            out.update(self.detail_extras(obj))
        return out

    def is_public_visible(self, obj) -> bool:
        return all(getattr(obj, k) == v for k, v in self.public_filter.items())


# --- coercion helpers -------------------------------------------------------

def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            raise ValueError('Invalid date format')
    # stored naive in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_int(value) -> int:
    if isinstance(value, bool):
        raise ValueError('Invalid integer value')
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    try:
        return int(str(value).strip())
    except Exception:
        raise ValueError('Invalid integer value')


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError('Invalid boolean value')


def _parse_list(value) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith('['):
            try:
                parsed = json.loads(stripped)
            except ValueError:
                raise ValueError('Invalid list value')
            if not isinstance(parsed, list):
                raise ValueError('Invalid list value')
            return parsed
        # comma-separated fallback
        return [t.strip() for t in stripped.split(',') if t.strip()]
    raise ValueError('Invalid list value')


def _coerce_value(field: Field, value):
    kind = field.kind
    if kind in ('str', 'text', 'html', 'email', 'enum'):
        if isinstance(value, (dict, list, bool)):
            raise ValueError('Must be a string')
        value = str(value)
        if kind == 'html':
            return sanitize_html(value)
        if kind == 'email':
            value = value.strip()
            if not EMAIL_RE.match(value):
                raise ValueError('Invalid email address')
        if kind == 'enum':
            value = value.strip()
            if value not in field.choices:
                raise ValueError(f"Must be one of: {', '.join(field.choices)}")
        return value
    if kind == 'int':
        return _parse_int(value)
    if kind == 'bool':
        return _parse_bool(value)
    if kind == 'datetime':
        return _parse_datetime(value)
    if kind == 'list':
        return [str(v).strip() for v in _parse_list(value) if str(v).strip()]
    if kind == 'enum_list':
        items = [str(v).strip() for v in _parse_list(value) if str(v).strip()]
        bad = [v for v in items if v not in field.choices]
        if bad:
            raise ValueError(f"Unknown values: {', '.join(bad)}")
        # keep first occurrence order, drop duplicates
        return list(dict.fromkeys(items))
    if kind == 'json':
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                raise ValueError('Invalid JSON value')
        return value
    raise ValueError(f'Unsupported field kind {kind}')


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


def coerce_payload(spec: ResourceSpec, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a snake_case payload against the descriptor and return column values.

    On create (partial=False) missing required fields are errors and blank
    optional fields are dropped so model defaults apply. On update only the
    submitted keys are touched; an explicit null clears an optional field,
    except enum and bool fields, which must always hold a value.
    """
    values = {}
    details = {}
    for name, field in spec.fields.items():
        if name not in data:
            if field.required and not partial:
                details[name] = 'This field is required'
            continue
        raw = data[name]
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if field.required:
                details[name] = 'This field is required'
            elif partial and raw is None and field.kind in NON_NULL_KINDS:
                details[name] = 'Must not be null'
            elif partial and raw is None:
                values[name] = None
            continue
        try:
            value = _coerce_value(field, raw)
            if field.validator:
                field.validator(value)
        except ValueError as exc:
            details[name] = str(exc)
            continue
        if field.required and _is_blank(value):
            details[name] = 'This field is required'
            continue
        values[name] = value
    if details:
        raise ValidationError(f'Invalid {spec.label} data', details)
    return values


def _validate_links(value):
    if not isinstance(value, list):
        raise ValueError('Must be a list of {title, url}')
    for item in value:
        if not isinstance(item, dict) or not item.get('url'):
            raise ValueError('Each related article needs a url')


# --- descriptors -------------------------------------------------------------

def _event_extras(obj):
    return {'statusLabel': Event.STATUS_LABELS.get(obj.status)}


def _program_extras(obj):
    return {
        'typeLabel': ResidentProgram.TYPE_LABELS.get(obj.program_type),
        'statusLabel': ResidentProgram.STATUS_LABELS.get(obj.status),
    }


def _project_detail(obj):
    return {
        'subprojects': [camelize({c.name: getattr(s, c.name) for c in s.__table__.columns}) for s in obj.subprojects],
        'images': [camelize({c.name: getattr(i, c.name) for c in i.__table__.columns}) for i in obj.images],
    }


def _reporter_extras(obj):
    return {'contentHtml': markdown_to_html(obj.content)}


RESOURCES = {
    'projects': ResourceSpec(
        'projects', Project,
        [
            Field('title', required=True),
            Field('title_en'),
            Field('category', 'enum_list', required=True, choices=PROJECT_CATEGORIES),
            Field('location', required=True),
            Field('year', 'int', required=True),
            Field('completion_month', 'int'),
            Field('units', 'int'),
            Field('scale'),
            Field('site_area'),
            Field('gross_floor_area'),
            Field('description', 'html', required=True),
            Field('image_url'),
            Field('pdf_url'),
            Field('related_articles', 'json', validator=_validate_links),
            Field('partner_logos', 'list'),
            Field('featured', 'bool'),
            Field('display_order', 'int'),
        ],
        order_by=(Project.display_order, Project.created_at.desc()),
        member_filters={'category': 'category'},
        detail_extras=_project_detail,
        label='project',
    ),
    'articles': ResourceSpec(
        'articles', Article,
        [
            Field('title', required=True),
            Field('excerpt', 'text', required=True),
            Field('content', 'html', required=True),
            Field('author', required=True),
            Field('category', 'enum', required=True, choices=ARTICLE_CATEGORIES),
            Field('featured', 'bool'),
            Field('image_url'),
            Field('file_url'),
            Field('source_url'),
            Field('published_at', 'datetime'),
        ],
        order_by=(Article.published_at.desc(), Article.created_at.desc()),
        query_filters={'category': 'category'},
        label='article',
    ),
    'events': ResourceSpec(
        'events', Event,
        [
            Field('title', required=True),
            Field('description', 'text'),
            Field('date', 'datetime', required=True),
            Field('location', required=True),
            Field('status', 'enum', choices=list(Event.STATUS_LABELS)),
            Field('image_url'),
            Field('registration_url'),
            Field('published', 'bool'),
        ],
        order_by=(Event.date.desc(),),
        public_filter={'published': True},
        query_filters={'status': 'status'},
        extras=_event_extras,
        label='event',
    ),
    'programs': ResourceSpec(
        'programs', ResidentProgram,
        [
            Field('program_type', 'enum', required=True, choices=list(ResidentProgram.TYPE_LABELS)),
            Field('title', required=True),
            Field('description', 'text', required=True),
            Field('content', 'html'),
            Field('image_url'),
            Field('start_date', 'datetime'),
            Field('end_date', 'datetime'),
            Field('max_participants', 'int'),
            Field('status', 'enum', choices=list(ResidentProgram.STATUS_LABELS)),
            Field('published', 'bool'),
        ],
        order_by=(ResidentProgram.created_at.desc(),),
        public_filter={'published': True},
        query_filters={'type': 'program_type'},
        extras=_program_extras,
        label='program',
    ),
    'partners': ResourceSpec(
        'partners', Partner,
        [
            Field('name', required=True),
            Field('logo_url', required=True),
            Field('category', required=True),
            Field('display_order', 'int'),
        ],
        order_by=(Partner.display_order, Partner.created_at),
        query_filters={'category': 'category'},
        label='partner',
    ),
    'history': ResourceSpec(
        'history', HistoryMilestone,
        [
            Field('year', 'int', required=True),
            Field('month', 'int'),
            Field('title', required=True),
            Field('description', 'text', required=True),
            Field('image_url'),
            Field('link'),
            Field('is_highlight', 'bool'),
            Field('display_order', 'int'),
        ],
        order_by=(HistoryMilestone.year, HistoryMilestone.month, HistoryMilestone.display_order),
        label='milestone',
    ),
    'social-accounts': ResourceSpec(
        'social-accounts', SocialAccount,
        [
            Field('name', required=True),
            Field('platform', 'enum', required=True, choices=SOCIAL_PLATFORMS),
            Field('username'),
            Field('profile_url'),
            Field('profile_image_url'),
            Field('is_active', 'bool'),
        ],
        order_by=(SocialAccount.created_at,),
        public_filter={'is_active': True},
        label='social account',
    ),
    'recruitments': ResourceSpec(
        'recruitments', HousingRecruitment,
        [
            Field('title', required=True),
            Field('content', 'html', required=True),
            Field('file_url'),
            Field('published', 'bool'),
        ],
        order_by=(HousingRecruitment.created_at.desc(),),
        public_filter={'published': True},
        label='recruitment',
    ),
    'community-posts': ResourceSpec(
        'community-posts', CommunityPost,
        [
            Field('account_id'),
            Field('image_url'),
            Field('images', 'list'),
            Field('caption', 'text'),
            Field('hashtags', 'list'),
            Field('location'),
            Field('source_url'),
            Field('posted_at', 'datetime'),
        ],
        order_by=(CommunityPost.posted_at.desc(), CommunityPost.created_at.desc()),
        member_filters={'hashtag': 'hashtags'},
        label='community post',
    ),
    'inquiries': ResourceSpec(
        'inquiries', Inquiry,
        [
            Field('type', 'enum', required=True, choices=INQUIRY_TYPES),
            Field('name', required=True),
            Field('email', 'email', required=True),
            Field('phone'),
            Field('company'),
            Field('message', 'text', required=True),
        ],
        order_by=(Inquiry.created_at.desc(),),
        public=False,
        query_filters={'type': 'type'},
        admin_ops=('list', 'get', 'delete'),
        label='inquiry',
    ),
    'resident-reporter': ResourceSpec(
        'resident-reporter', ResidentReporter,
        [
            Field('title', required=True),
            Field('content', 'text', required=True),
            Field('author_name', required=True),
            Field('image_url'),
        ],
        order_by=(ResidentReporter.created_at.desc(),),
        public_filter={'status': 'approved'},
        query_filters={'status': 'status'},
        admin_ops=('list', 'get', 'update', 'delete'),
        extras=_reporter_extras,
        label='article',
    ),
    'applications': ResourceSpec(
        'applications', ProgramApplication,
        [
            Field('program_id', required=True),
            Field('name', required=True),
            Field('email', 'email', required=True),
            Field('phone'),
            Field('message', 'text'),
        ],
        order_by=(ProgramApplication.created_at.desc(),),
        public=False,
        query_filters={'programId': 'program_id', 'status': 'status'},
        admin_ops=('list', 'get', 'delete'),
        label='application',
    ),
}


def get_spec(name: str) -> ResourceSpec:
    spec = RESOURCES.get(name)
    if spec is None:
        raise NotFoundError(f'Unknown resource: {name}')
    return spec


# --- operations ---------------------------------------------------------------

def _normalize_member(value: str) -> str:
    return (value or '').strip().lstrip('#').lower()


def list_items(spec: ResourceSpec, public: bool = False, filters: Optional[Dict[str, str]] = None) -> List:
    q = db.session.query(spec.model)
    if public:
        q = q.filter_by(**spec.public_filter)
    filters = filters or {}
    for param, column in spec.query_filters.items():
        if filters.get(param):
            q = q.filter(getattr(spec.model, column) == filters[param])
    if spec.order_by:
        q = q.order_by(*spec.order_by)
    rows = q.all()
    for param, column in spec.member_filters.items():
        wanted = _normalize_member(filters.get(param))
        if wanted:
            rows = [r for r in rows if wanted in {_normalize_member(v) for v in (getattr(r, column) or [])}]
    return rows


def get_item(spec: ResourceSpec, item_id: str, public: bool = False):
    obj = db.session.get(spec.model, item_id)
    if obj is None or (public and not spec.is_public_visible(obj)):
        raise NotFoundError(f'{spec.label.capitalize()} not found')
    return obj


def create_item(spec: ResourceSpec, data: Dict[str, Any], **server_values):
    """Create a record from a client payload; server_values bypass validation (e.g. user_id)."""
    values = coerce_payload(spec, data, partial=False)
    values.update(server_values)
    obj = spec.model(**values)
    try:
        db.session.add(obj)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error creating %s', spec.label)
        raise
    return obj


def update_item(spec: ResourceSpec, item_id: str, data: Dict[str, Any]):
    obj = get_item(spec, item_id)
    values = coerce_payload(spec, data, partial=True)
    for key, value in values.items():
        setattr(obj, key, value)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error updating %s %s', spec.label, item_id)
        raise
    return obj


def delete_item(spec: ResourceSpec, item_id: str) -> None:
    obj = get_item(spec, item_id)
    try:
        db.session.delete(obj)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error deleting %s %s', spec.label, item_id)
        raise
