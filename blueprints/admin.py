from flask import Blueprint, jsonify, request, abort, current_app
from flask_login import current_user

from decorators import admin_required
from metrics import track_admin_action, update_database_metrics
from models import db, Project, Subproject, ProjectImage
from services import resources, site_service, user_service, reporter_service, program_service, metadata_service
from services.errors import ValidationError, NotFoundError
from utils.pagination import paginate
from utils.serialization import normalize_input, camelize

admin_bp = Blueprint('admin', __name__)


def _payload() -> dict:
    return normalize_input(request.get_json(silent=True) or {})


def _spec(resource: str, op: str):
    spec = resources.get_spec(resource)
    if op not in spec.admin_ops:
        abort(405)
    return spec


def _log_action(resource: str, action: str, item_id=None):
    track_admin_action(resource, action)
    current_app.logger.info('admin %s %s %s %s', current_user.email, action, resource, item_id or '')


def _row(obj) -> dict:
    return camelize({c.name: getattr(obj, c.name) for c in obj.__table__.columns})


# --- generic resource CRUD -------------------------------------------------------

@admin_bp.route('/<resource>', methods=['GET'])
@admin_required
def list_resource(resource):
    spec = _spec(resource, 'list')
    rows = [spec.serialize(r) for r in resources.list_items(spec, filters=request.args.to_dict())]
    if 'page' in request.args:
        return jsonify(paginate(rows, request.args.get('page')))
    return jsonify(rows)


@admin_bp.route('/<resource>/<item_id>', methods=['GET'])
@admin_required
def get_resource(resource, item_id):
    spec = _spec(resource, 'get')
    return jsonify(spec.serialize(resources.get_item(spec, item_id), detail=True))


@admin_bp.route('/<resource>', methods=['POST'])
@admin_required
def create_resource(resource):
    spec = _spec(resource, 'create')
    obj = resources.create_item(spec, _payload())
    _log_action(resource, 'create', obj.id)
    return jsonify(spec.serialize(obj, detail=True)), 201


@admin_bp.route('/<resource>/<item_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_resource(resource, item_id):
    spec = _spec(resource, 'update')
    obj = resources.update_item(spec, item_id, _payload())
    _log_action(resource, 'update', item_id)
    return jsonify(spec.serialize(obj, detail=True))


@admin_bp.route('/<resource>/<item_id>', methods=['DELETE'])
@admin_required
def delete_resource(resource, item_id):
    spec = _spec(resource, 'delete')
    resources.delete_item(spec, item_id)
    _log_action(resource, 'delete', item_id)
    return '', 204


# --- workflow endpoints ------------------------------------------------------------

@admin_bp.route('/resident-reporter/<item_id>/status', methods=['PATCH', 'PUT'])
@admin_required
def set_reporter_status(item_id):
    article = reporter_service.set_status(item_id, _payload().get('status'))
    _log_action('resident-reporter', 'status', item_id)
    return jsonify(resources.get_spec('resident-reporter').serialize(article))


@admin_bp.route('/applications/<item_id>/status', methods=['PUT', 'PATCH'])
@admin_required
def set_application_status(item_id):
    application = program_service.set_status(item_id, _payload().get('status'))
    _log_action('applications', 'status', item_id)
    return jsonify(resources.get_spec('applications').serialize(application))


# --- project children ------------------------------------------------------------

SUBPROJECT_FIELDS = [
    resources.Field('name', required=True),
    resources.Field('location'),
    resources.Field('units', 'int'),
    resources.Field('scale'),
    resources.Field('site_area'),
    resources.Field('gross_floor_area'),
    resources.Field('completion_year', 'int'),
    resources.Field('completion_month', 'int'),
    resources.Field('display_order', 'int'),
]
SUBPROJECT_SPEC = resources.ResourceSpec('subprojects', Subproject, SUBPROJECT_FIELDS,
                                         order_by=(Subproject.display_order,), public=False,
                                         label='subproject')


def _project_or_404(project_id):
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError('Project not found')
    return project


@admin_bp.route('/projects/<project_id>/subprojects', methods=['GET'])
@admin_required
def list_subprojects(project_id):
    project = _project_or_404(project_id)
    return jsonify([_row(s) for s in project.subprojects])


@admin_bp.route('/projects/<project_id>/subprojects', methods=['POST'])
@admin_required
def create_subproject(project_id):
    _project_or_404(project_id)
    sub = resources.create_item(SUBPROJECT_SPEC, _payload(), parent_project_id=project_id)
    _log_action('subprojects', 'create', sub.id)
    return jsonify(_row(sub)), 201


@admin_bp.route('/subprojects/<item_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_subproject(item_id):
    sub = resources.update_item(SUBPROJECT_SPEC, item_id, _payload())
    _log_action('subprojects', 'update', item_id)
    return jsonify(_row(sub))


@admin_bp.route('/subprojects/<item_id>', methods=['DELETE'])
@admin_required
def delete_subproject(item_id):
    resources.delete_item(SUBPROJECT_SPEC, item_id)
    _log_action('subprojects', 'delete', item_id)
    return '', 204


@admin_bp.route('/projects/<project_id>/images', methods=['PUT'])
@admin_required
def replace_project_images(project_id):
    project = _project_or_404(project_id)
    images = _payload().get('images')
    if not isinstance(images, list) or not all(isinstance(u, str) and u.strip() for u in images):
        raise ValidationError('Invalid project images', {'images': 'Must be a list of URLs'})
    try:
        project.images = [ProjectImage(image_url=url.strip(), display_order=idx) for idx, url in enumerate(images)]
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error replacing images of project %s', project_id)
        raise
    _log_action('projects', 'images', project_id)
    return jsonify([_row(i) for i in project.images])


# --- settings / pages / page images -------------------------------------------------

@admin_bp.route('/settings', methods=['GET'])
@admin_required
def list_settings():
    return jsonify(site_service.list_settings())


@admin_bp.route('/settings/<key>', methods=['GET'])
@admin_required
def get_setting(key):
    return jsonify(site_service.get_setting(key))


@admin_bp.route('/settings/<key>', methods=['PUT'])
@admin_required
def put_setting(key):
    # value blobs keep their camelCase keys
    body = request.get_json(silent=True) or {}
    setting = site_service.upsert_setting(key, body.get('value'))
    _log_action('settings', 'update', key)
    return jsonify(site_service.serialize_setting(setting.key, setting.value, setting.updated_at))


@admin_bp.route('/pages', methods=['GET'])
@admin_required
def list_pages():
    return jsonify([site_service.serialize_page(p) for p in site_service.list_pages()])


@admin_bp.route('/pages/<slug>', methods=['GET'])
@admin_required
def get_page(slug):
    return jsonify(site_service.serialize_page(site_service.get_page(slug)))


@admin_bp.route('/pages/<slug>', methods=['PUT'])
@admin_required
def put_page(slug):
    page = site_service.upsert_page(slug, _payload())
    _log_action('pages', 'update', slug)
    return jsonify(site_service.serialize_page(page))


@admin_bp.route('/page-images', methods=['GET'])
@admin_required
def list_page_images():
    return jsonify([site_service.serialize_page_image(i) for i in site_service.list_page_images()])


@admin_bp.route('/page-images/<page_key>', methods=['GET'])
@admin_required
def list_page_images_for_page(page_key):
    return jsonify([site_service.serialize_page_image(i) for i in site_service.list_page_images(page_key)])


@admin_bp.route('/page-images', methods=['PUT'])
@admin_required
def put_page_image():
    image = site_service.upsert_page_image(_payload())
    _log_action('page-images', 'update', f'{image.page_key}/{image.image_key}')
    return jsonify(site_service.serialize_page_image(image))


@admin_bp.route('/page-images/<page_key>/<image_key>', methods=['PUT'])
@admin_required
def replace_page_images(page_key, image_key):
    images = site_service.replace_page_images(page_key, image_key, _payload().get('images'))
    _log_action('page-images', 'replace', f'{page_key}/{image_key}')
    return jsonify([site_service.serialize_page_image(i) for i in images])


@admin_bp.route('/page-images/<item_id>', methods=['DELETE'])
@admin_required
def delete_page_image(item_id):
    site_service.delete_page_image(item_id)
    _log_action('page-images', 'delete', item_id)
    return '', 204


# --- users ---------------------------------------------------------------------

@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    return jsonify([user_service.serialize_user(u) for u in user_service.list_users()])


@admin_bp.route('/users/<user_id>/role', methods=['PATCH', 'PUT'])
@admin_required
def set_user_role(user_id):
    role = _payload().get('role')
    if user_id == current_user.id and role != 'admin':
        raise ValidationError('Cannot remove your own admin role', {'role': 'self-demotion'})
    user = user_service.set_role(user_id, role)
    _log_action('users', 'role', user_id)
    return jsonify(user_service.serialize_user(user))


@admin_bp.route('/users/<user_id>/password', methods=['POST'])
@admin_required
def reset_user_password(user_id):
    user = user_service.reset_password(user_id, _payload().get('password'))
    _log_action('users', 'password', user_id)
    return jsonify(user_service.serialize_user(user))


# --- dashboard ------------------------------------------------------------------

@admin_bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    data = site_service.get_stats()
    update_database_metrics(data)
    return jsonify(data)


@admin_bp.route('/extract-metadata', methods=['POST'])
@admin_required
def extract_metadata():
    try:
        data = metadata_service.extract_metadata(_payload().get('url'))
    except metadata_service.MetadataFetchError as exc:
        return jsonify({'error': 'Failed to fetch URL', 'details': {'url': str(exc)}}), 502
    return jsonify(data)
