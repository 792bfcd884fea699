from flask import Blueprint, jsonify, request, send_from_directory, current_app
from flask_login import current_user

from decorators import login_required_json
from extensions import limiter, UPLOAD_LIMIT
from services import file_utils

uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.route('/api/upload', methods=['POST'])
@limiter.limit(UPLOAD_LIMIT)
@login_required_json
def upload_image():
    fileobj = request.files.get('image')
    if fileobj is None or not fileobj.filename:
        return jsonify({'error': 'No file uploaded'}), 400
    url = file_utils.save_upload(fileobj)
    current_app.logger.info('User %s uploaded %s', current_user.id, url)
    return jsonify({'url': url}), 201


@uploads_bp.route('/api/upload/multiple', methods=['POST'])
@limiter.limit(UPLOAD_LIMIT)
@login_required_json
def upload_images():
    files = [f for f in request.files.getlist('images') if f and f.filename]
    if not files:
        return jsonify({'error': 'No files uploaded'}), 400
    result = file_utils.save_uploads(files)
    body = {
        'urls': [item['url'] for item in result['uploaded']],
        'uploaded': result['uploaded'],
        'failed': result['failed'],
    }
    if not result['uploaded']:
        body['error'] = 'No files were uploaded'
        return jsonify(body), 400
    # 207 Multi-Status when only part of the batch was stored
    return jsonify(body), 207 if result['failed'] else 201


@uploads_bp.route('/assets/<path:filename>', methods=['GET'])
def serve_asset(filename):
    return send_from_directory(file_utils.local_upload_dir(), filename)
