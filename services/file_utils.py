import io
import os
import random
import time
from typing import Dict, Any, List, Tuple

import boto3
from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.utils import secure_filename

from metrics import track_upload
from utils.http import get_session, request_with_timeout

ALLOWED_EXTENSIONS = {'jpeg', 'jpg', 'png', 'gif', 'webp', 'svg', 'pdf'}
# stored as-is, never decoded
PASSTHROUGH_EXTENSIONS = {'svg', 'pdf'}
CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'svg': 'image/svg+xml',
    'pdf': 'application/pdf',
}

MAX_FILE_SIZE = 20 * 1024 * 1024
MAX_IMAGE_WIDTH = 2560
WEBP_QUALITY = 80
LOCAL_URL_PREFIX = '/assets/'
TMP_UPLOAD_DIR = '/tmp/attached_assets'


class UploadError(ValueError):
    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


def _extension(filename: str) -> str:
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[-1].lower()


def generate_filename(ext: str) -> str:
    """image-<epoch ms>-<random>.<ext>, with jpeg spelled jpg."""
    ext = 'jpg' if ext == 'jpeg' else ext
    return f"image-{int(time.time() * 1000)}-{random.randint(0, 999999999)}.{ext}"


def process_image(data: bytes, ext: str) -> Tuple[bytes, str]:
    """Shrink images wider than MAX_IMAGE_WIDTH and re-encode as WebP.

    SVG and PDF pass through untouched. Returns (bytes, extension).
    """
    if ext in PASSTHROUGH_EXTENSIONS:
        return data, ext
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Image.DecompressionBombError as exc:
        raise UploadError('Image dimensions are too large') from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise UploadError('File is not a valid image') from exc

    try:
        img = ImageOps.exif_transpose(img)
        if img.width > MAX_IMAGE_WIDTH:
            height = max(1, round(img.height * MAX_IMAGE_WIDTH / img.width))
            img = img.resize((MAX_IMAGE_WIDTH, height), Image.LANCZOS)

        if img.mode not in ('RGB', 'RGBA'):
            has_alpha = img.mode in ('LA', 'PA') or (img.mode == 'P' and 'transparency' in img.info)
            img = img.convert('RGBA' if has_alpha else 'RGB')

        out = io.BytesIO()
        img.save(out, format='WEBP', quality=WEBP_QUALITY)
    except (OSError, ValueError) as exc:
        raise UploadError('Image could not be converted') from exc
    return out.getvalue(), 'webp'


def storage_backend() -> str:
    cfg = current_app.config
    if cfg.get('AWS_ACCESS_KEY_ID') and cfg.get('AWS_SECRET_ACCESS_KEY') and cfg.get('AWS_BUCKET_NAME'):
        return 's3'
    if cfg.get('SUPABASE_URL') and cfg.get('SUPABASE_SERVICE_ROLE_KEY'):
        return 'supabase'
    return 'local'


def _upload_s3(data: bytes, filename: str, content_type: str) -> str:
    cfg = current_app.config
    bucket = cfg['AWS_BUCKET_NAME']
    region = cfg.get('AWS_REGION') or 'ap-northeast-2'
    key = f"uploads/{filename}"
    s3 = boto3.client('s3',
                      aws_access_key_id=cfg['AWS_ACCESS_KEY_ID'],
                      aws_secret_access_key=cfg['AWS_SECRET_ACCESS_KEY'],
                      region_name=region)
    s3.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def _upload_supabase(data: bytes, filename: str, content_type: str) -> str:
    cfg = current_app.config
    base = cfg['SUPABASE_URL'].rstrip('/')
    bucket = cfg.get('SUPABASE_BUCKET') or 'uploads'
    key = cfg['SUPABASE_SERVICE_ROLE_KEY']
    session = get_session(retries=2)
    request_with_timeout(
        session, 'POST', f"{base}/storage/v1/object/{bucket}/{filename}",
        data=data,
        headers={
            'Authorization': f'Bearer {key}',
            'apikey': key,
            'Content-Type': content_type,
            'x-upsert': 'true',
        },
        timeout=30,
    )
    return f"{base}/storage/v1/object/public/{bucket}/{filename}"


def local_upload_dir() -> str:
    """Configured upload folder, or /tmp when it cannot be created (read-only deploys)."""
    folder = current_app.config.get('UPLOAD_FOLDER') or 'attached_assets'
    if not os.path.isabs(folder):
        folder = os.path.join(current_app.root_path, folder)
    try:
        os.makedirs(folder, exist_ok=True)
        if os.access(folder, os.W_OK):
            return folder
    except OSError:
        pass
    current_app.logger.warning('Upload folder %s not writable, using %s', folder, TMP_UPLOAD_DIR)
    os.makedirs(TMP_UPLOAD_DIR, exist_ok=True)
    return TMP_UPLOAD_DIR


def _save_local(data: bytes, filename: str) -> str:
    target_path = os.path.join(local_upload_dir(), filename)
    with open(target_path, 'wb') as fh:
        fh.write(data)
    return f"{LOCAL_URL_PREFIX}{filename}"


def _read_limited(fileobj) -> bytes:
    stream = getattr(fileobj, 'stream', fileobj)
    try:
        stream.seek(0)
    except (AttributeError, OSError):
        pass
    data = stream.read(MAX_FILE_SIZE + 1)
    if len(data) > MAX_FILE_SIZE:
        raise UploadError(f'File exceeds {MAX_FILE_SIZE // (1024 * 1024)}MB limit', status=413)
    if not data:
        raise UploadError('Empty file')
    return data


def save_upload(fileobj) -> str:
    """Validate, convert and store one FileStorage. Returns the public URL."""
    if not hasattr(fileobj, 'filename') or not hasattr(fileobj, 'read'):
        raise UploadError('Invalid file object')
    filename = secure_filename(fileobj.filename or '')
    # secure_filename drops non-ASCII names entirely; keep the raw extension
    ext = _extension(filename) or _extension(fileobj.filename or '')
    if ext not in ALLOWED_EXTENSIONS:
        raise UploadError('File type not allowed')

    data = _read_limited(fileobj)
    data, ext = process_image(data, 'jpg' if ext == 'jpeg' else ext)
    target_name = generate_filename(ext)
    content_type = CONTENT_TYPES.get(ext, 'application/octet-stream')

    backend = storage_backend()
    try:
        if backend == 's3':
            url = _upload_s3(data, target_name, content_type)
        elif backend == 'supabase':
            url = _upload_supabase(data, target_name, content_type)
        else:
            url = _save_local(data, target_name)
    except Exception as exc:
        track_upload(backend, 'error')
        current_app.logger.exception('Upload to %s failed for %s', backend, target_name)
        raise UploadError('Failed to store file', status=502) from exc

    track_upload(backend, 'success')
    current_app.logger.info('Stored upload %s via %s', target_name, backend)
    return url


def save_uploads(files: List[Any]) -> Dict[str, List[Dict[str, str]]]:
    """Store files one after another; a failing file does not stop the batch.

    Every file is reported, either under ``uploaded`` or ``failed``.
    """
    uploaded, failed = [], []
    for f in files:
        name = getattr(f, 'filename', None) or ''
        try:
            uploaded.append({'filename': name, 'url': save_upload(f)})
        except UploadError as exc:
            failed.append({'filename': name, 'error': exc.message})
        except Exception:
            current_app.logger.exception('Unexpected error storing upload %s', name)
            failed.append({'filename': name, 'error': 'Failed to process file'})
    return {'uploaded': uploaded, 'failed': failed}
