"""
Custom Prometheus metrics for the housing CMS
Tracks admin activity, uploads, engagement and logins
"""

from prometheus_client import Counter, Gauge
from flask_login import current_user
from functools import wraps

# Request counters by role
requests_by_role = Counter(
    'cms_requests_by_role_total',
    'Total requests grouped by user role',
    ['role', 'endpoint']
)

# Login metrics
login_attempts = Counter(
    'cms_login_attempts_total',
    'Total login attempts',
    ['provider', 'status']  # local/google/naver/kakao, success or failure
)

# Admin metrics
admin_actions = Counter(
    'cms_admin_actions_total',
    'Total admin actions performed',
    ['resource', 'action']  # create, update, delete, status
)

# Upload metrics
uploads = Counter(
    'cms_uploads_total',
    'Files stored through the upload endpoint',
    ['backend', 'status']  # s3/supabase/local, success or error
)

# Engagement metrics
engagement_events = Counter(
    'cms_engagement_total',
    'Likes and comments on public content',
    ['resource', 'kind']
)

# Database metrics
database_records = Gauge(
    'cms_database_records',
    'Total database records',
    ['table']
)


def track_role_request(endpoint_name):
    """Decorator to track requests by user role"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            role = current_user.role if current_user.is_authenticated else 'anonymous'
            requests_by_role.labels(role=role or 'unknown', endpoint=endpoint_name).inc()
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def track_login_attempt(provider='local', success=True):
    """Track login attempt"""
    status = 'success' if success else 'failure'
    login_attempts.labels(provider=provider, status=status).inc()


def track_admin_action(resource, action):
    """Track admin action"""
    admin_actions.labels(resource=resource, action=action).inc()


def track_upload(backend, status):
    uploads.labels(backend=backend, status=status).inc()


def track_engagement(resource, kind):
    engagement_events.labels(resource=resource, kind=kind).inc()


def update_database_metrics(stats):
    """Copy dashboard counts (from site_service.get_stats) into the gauge."""
    for name, value in stats.items():
        database_records.labels(table=name).set(value)
