from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user

from decorators import admin_required
from extensions import limiter, PUBLIC_WRITE_LIMIT
from metrics import track_engagement
from services import engagement
from utils.serialization import normalize_input

engagement_bp = Blueprint('engagement', __name__)

# resident reporter comments carry the author's account name
AUTH_ONLY_COMMENTS = {'resident-reporter'}


@engagement_bp.route('/<resource>/<item_id>/like', methods=['POST'])
@limiter.limit(PUBLIC_WRITE_LIMIT)
def like(resource, item_id):
    target = engagement.get_target(resource)
    likes = engagement.like(target, item_id)
    track_engagement(resource, 'like')
    return jsonify({'likes': likes})


@engagement_bp.route('/<resource>/<item_id>/comments', methods=['GET'])
def list_comments(resource, item_id):
    target = engagement.get_target(resource)
    return jsonify([engagement.serialize_comment(c) for c in engagement.list_comments(target, item_id)])


@engagement_bp.route('/<resource>/<item_id>/comments', methods=['POST'])
@limiter.limit(PUBLIC_WRITE_LIMIT)
def add_comment(resource, item_id):
    target = engagement.get_target(resource)
    user = current_user if current_user.is_authenticated else None
    if user is None and resource in AUTH_ONLY_COMMENTS:
        return jsonify({'error': 'Authentication required'}), 401
    data = normalize_input(request.get_json(silent=True) or {})
    comment = engagement.add_comment(target, item_id, data, user=user)
    track_engagement(resource, 'comment')
    return jsonify(engagement.serialize_comment(comment)), 201


@engagement_bp.route('/<resource>/<item_id>/comments/<comment_id>', methods=['DELETE'])
@admin_required
def delete_comment(resource, item_id, comment_id):
    target = engagement.get_target(resource)
    engagement.delete_comment(target, item_id, comment_id)
    current_app.logger.info('admin %s deleted comment %s on %s %s', current_user.email, comment_id, resource, item_id)
    return '', 204
