from flask import Blueprint, jsonify, request, abort
from flask_login import current_user

from decorators import login_required_json
from extensions import limiter, PUBLIC_WRITE_LIMIT
from metrics import track_role_request
from services import resources, site_service, reporter_service, program_service, rich_text
from services.errors import ValidationError
from utils.pagination import paginate
from utils.serialization import normalize_input

public_bp = Blueprint('public', __name__)

FEED_DEFAULT_LIMIT = 20
FEED_MAX_LIMIT = 100


def _payload() -> dict:
    return normalize_input(request.get_json(silent=True) or {})


def _signed_in_user():
    return current_user if current_user.is_authenticated else None


def _public_spec(resource: str):
    spec = resources.get_spec(resource)
    if not spec.public:
        abort(404)
    return spec


def _list_response(spec, filters):
    rows = [spec.serialize(r) for r in resources.list_items(spec, public=True, filters=filters)]
    if 'page' in request.args:
        return jsonify(paginate(rows, request.args.get('page')))
    return jsonify(rows)


def _feed_limit(value) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return FEED_DEFAULT_LIMIT
    return max(1, min(limit, FEED_MAX_LIMIT))


# --- site-wide --------------------------------------------------------------

@public_bp.route('/home', methods=['GET'])
@track_role_request('home')
def home():
    projects = resources.get_spec('projects')
    reporters = resources.get_spec('resident-reporter')
    return jsonify({
        'projects': [projects.serialize(p) for p in site_service.home_projects()],
        'reporterArticles': [reporters.serialize(r) for r in reporter_service.latest_approved()],
        'companyStats': site_service.get_setting('company_stats')['value'],
    })


@public_bp.route('/community-feed', methods=['GET'])
def community_feed():
    return jsonify(site_service.community_feed(_feed_limit(request.args.get('limit'))))


@public_bp.route('/settings/<key>', methods=['GET'])
def get_setting(key):
    return jsonify(site_service.get_setting(key))


@public_bp.route('/pages/<slug>', methods=['GET'])
def get_page(slug):
    return jsonify(site_service.serialize_page(site_service.get_page(slug)))


@public_bp.route('/page-images', methods=['GET'])
def list_page_images():
    return jsonify([site_service.serialize_page_image(i) for i in site_service.list_page_images()])


@public_bp.route('/page-images/defaults', methods=['GET'])
def default_page_images():
    return jsonify(site_service.DEFAULT_PAGE_IMAGES)


@public_bp.route('/page-images/<page_key>', methods=['GET'])
def list_page_images_for_page(page_key):
    return jsonify([site_service.serialize_page_image(i) for i in site_service.list_page_images(page_key)])


# --- content reads ------------------------------------------------------------

@public_bp.route('/projects/category/<category>', methods=['GET'])
def projects_by_category(category):
    return _list_response(resources.get_spec('projects'), {'category': category})


@public_bp.route('/articles/category/<category>', methods=['GET'])
def articles_by_category(category):
    return _list_response(resources.get_spec('articles'), {'category': category})


@public_bp.route('/<resource>', methods=['GET'])
@track_role_request('public_list')
def list_resource(resource):
    return _list_response(_public_spec(resource), request.args.to_dict())


@public_bp.route('/<resource>/<item_id>', methods=['GET'])
def get_resource(resource, item_id):
    spec = _public_spec(resource)
    return jsonify(spec.serialize(resources.get_item(spec, item_id, public=True), detail=True))


# --- public submissions -------------------------------------------------------

@public_bp.route('/inquiries', methods=['POST'])
@limiter.limit(PUBLIC_WRITE_LIMIT)
def create_inquiry():
    spec = resources.get_spec('inquiries')
    inquiry = resources.create_item(spec, _payload())
    return jsonify(spec.serialize(inquiry)), 201


@public_bp.route('/applications', methods=['POST'])
@limiter.limit(PUBLIC_WRITE_LIMIT)
def create_application():
    application = program_service.apply(_payload(), _signed_in_user())
    return jsonify(resources.get_spec('applications').serialize(application)), 201


@public_bp.route('/my-applications', methods=['GET'])
@login_required_json
def my_applications():
    spec = resources.get_spec('applications')
    return jsonify([spec.serialize(a) for a in program_service.list_for_user(current_user.id)])


@public_bp.route('/resident-reporter', methods=['POST'])
@login_required_json
def submit_reporter_article():
    payload = _payload()
    # ownership and moderation state come from the session, never the client
    for key in ('user_id', 'status', 'likes', 'comment_count', 'approved_at'):
        payload.pop(key, None)
    article = reporter_service.submit_article(payload, current_user)
    return jsonify(resources.get_spec('resident-reporter').serialize(article)), 201


@public_bp.route('/my/resident-reporter', methods=['GET'])
@login_required_json
def my_reporter_articles():
    spec = resources.get_spec('resident-reporter')
    return jsonify([spec.serialize(a) for a in reporter_service.list_for_user(current_user.id)])


# --- rich text ------------------------------------------------------------------

@public_bp.route('/rich-text/preview', methods=['POST'])
@login_required_json
def rich_text_preview():
    text = _payload().get('text')
    if not isinstance(text, str):
        raise ValidationError('Invalid preview request', {'text': 'This field is required'})
    is_markdown, html = rich_text.render_preview(text)
    return jsonify({'isMarkdown': is_markdown, 'html': html})


@public_bp.route('/rich-text/embed', methods=['POST'])
def rich_text_embed():
    embed_url = rich_text.extract_embed_url(_payload().get('url'))
    if not embed_url:
        raise ValidationError('Unsupported video URL', {'url': 'Only YouTube and Vimeo links can be embedded'})
    return jsonify({'embedUrl': embed_url})
