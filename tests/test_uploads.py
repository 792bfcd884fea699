import io
import os
import sys

import pytest
from PIL import Image

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services import file_utils


def _png(width=40, height=20, color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buf, format='PNG')
    return buf.getvalue()


def _upload(client, data, filename, field='image', url='/api/upload'):
    return client.post(url, data={field: (io.BytesIO(data), filename)}, content_type='multipart/form-data')


def test_upload_requires_login(client):
    assert _upload(client, _png(), 'a.png').status_code == 401


def test_disallowed_extension_rejected_before_storage(app, user_client):
    rv = _upload(user_client, b'MZ\x90\x00', 'setup.exe')
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'File type not allowed'
    folder = app.config['UPLOAD_FOLDER']
    assert not os.path.isdir(folder) or os.listdir(folder) == []


def test_missing_file_field(user_client):
    rv = user_client.post('/api/upload', data={}, content_type='multipart/form-data')
    assert rv.status_code == 400


def test_wide_image_resized_and_converted_to_webp(app, user_client):
    rv = _upload(user_client, _png(3000, 1500), 'wide.PNG')
    assert rv.status_code == 201
    url = rv.get_json()['url']
    assert url.startswith('/assets/image-') and url.endswith('.webp')

    stored = os.path.join(app.config['UPLOAD_FOLDER'], url.rsplit('/', 1)[-1])
    with Image.open(stored) as img:
        assert img.format == 'WEBP'
        assert img.size == (2560, 1280)

    served = user_client.get(url)
    assert served.status_code == 200
    served.close()


def test_small_image_not_enlarged(app, user_client):
    url = _upload(user_client, _png(300, 200), 'small.jpg').get_json()['url']
    with Image.open(os.path.join(app.config['UPLOAD_FOLDER'], url.rsplit('/', 1)[-1])) as img:
        assert img.size == (300, 200)


def test_svg_passes_through(app, user_client):
    svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"></svg>'
    url = _upload(user_client, svg, 'logo.svg').get_json()['url']
    assert url.endswith('.svg')
    with open(os.path.join(app.config['UPLOAD_FOLDER'], url.rsplit('/', 1)[-1]), 'rb') as fh:
        assert fh.read() == svg


def test_corrupt_image_rejected(user_client):
    rv = _upload(user_client, b'definitely not a png', 'broken.png')
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'File is not a valid image'


def test_file_too_large(monkeypatch, user_client):
    monkeypatch.setattr(file_utils, 'MAX_FILE_SIZE', 16)
    rv = _upload(user_client, _png(), 'big.png')
    assert rv.status_code == 413


def test_generate_filename_shape():
    name = file_utils.generate_filename('jpeg')
    assert name.startswith('image-') and name.endswith('.jpg')


def test_multiple_upload_reports_partial_failure(user_client):
    rv = user_client.post('/api/upload/multiple', data={
        'images': [
            (io.BytesIO(_png()), 'one.png'),
            (io.BytesIO(b'xx'), 'virus.exe'),
            (io.BytesIO(_png()), 'two.gif'),
        ],
    }, content_type='multipart/form-data')
    assert rv.status_code == 207
    body = rv.get_json()
    assert len(body['urls']) == 2
    assert [f['filename'] for f in body['uploaded']] == ['one.png', 'two.gif']
    assert body['failed'] == [{'filename': 'virus.exe', 'error': 'File type not allowed'}]


def test_multiple_upload_all_ok_and_all_failed(user_client):
    rv = user_client.post('/api/upload/multiple', data={
        'images': [(io.BytesIO(_png()), 'a.png'), (io.BytesIO(_png()), 'b.png')],
    }, content_type='multipart/form-data')
    assert rv.status_code == 201
    assert rv.get_json()['failed'] == []

    rv = user_client.post('/api/upload/multiple', data={
        'images': [(io.BytesIO(b'x'), 'a.exe')],
    }, content_type='multipart/form-data')
    assert rv.status_code == 400


def test_oversized_dimensions_rejected(monkeypatch, user_client):
    # 40x20 is more than twice the pixel ceiling, so Pillow refuses to open it
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 100)
    rv = _upload(user_client, _png(40, 20), 'huge.png')
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'Image dimensions are too large'


def test_multiple_upload_reports_oversized_image(monkeypatch, app, user_client):
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 100)
    rv = user_client.post('/api/upload/multiple', data={
        'images': [(io.BytesIO(_png(5, 5)), 'ok.png'), (io.BytesIO(_png(40, 20)), 'big.png')],
    }, content_type='multipart/form-data')
    assert rv.status_code == 207
    body = rv.get_json()
    assert [f['filename'] for f in body['uploaded']] == ['ok.png']
    assert body['failed'] == [{'filename': 'big.png', 'error': 'Image dimensions are too large'}]
    assert len(os.listdir(app.config['UPLOAD_FOLDER'])) == 1


def test_multiple_upload_survives_unexpected_error(monkeypatch, user_client):
    real_process = file_utils.process_image

    def flaky(data, ext):
        if ext == 'gif':
            raise RuntimeError('codec crashed')
        return real_process(data, ext)

    monkeypatch.setattr(file_utils, 'process_image', flaky)
    rv = user_client.post('/api/upload/multiple', data={
        'images': [(io.BytesIO(_png()), 'a.png'), (io.BytesIO(_png()), 'b.gif')],
    }, content_type='multipart/form-data')
    assert rv.status_code == 207
    body = rv.get_json()
    assert len(body['urls']) == 1
    assert body['failed'] == [{'filename': 'b.gif', 'error': 'Failed to process file'}]


class FakeS3:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def put_object(self, **kwargs):
        if self.fail:
            raise RuntimeError('bucket gone')
        self.calls.append(kwargs)


def _enable_s3(app):
    app.config.update({
        'AWS_ACCESS_KEY_ID': 'key',
        'AWS_SECRET_ACCESS_KEY': 'secret',
        'AWS_BUCKET_NAME': 'housing-assets',
        'AWS_REGION': None,
    })


def test_s3_backend_preferred(app, user_client, monkeypatch):
    _enable_s3(app)
    app.config.update({'SUPABASE_URL': 'https://proj.supabase.co', 'SUPABASE_SERVICE_ROLE_KEY': 'k'})
    fake = FakeS3()
    monkeypatch.setattr(file_utils.boto3, 'client', lambda *a, **kw: fake)

    rv = _upload(user_client, _png(), 'photo.png')
    assert rv.status_code == 201
    url = rv.get_json()['url']
    key = fake.calls[0]['Key']
    assert key.startswith('uploads/image-') and key.endswith('.webp')
    assert fake.calls[0]['ContentType'] == 'image/webp'
    assert url == f'https://housing-assets.s3.ap-northeast-2.amazonaws.com/{key}'


def test_storage_failure_is_502(app, user_client, monkeypatch):
    _enable_s3(app)
    monkeypatch.setattr(file_utils.boto3, 'client', lambda *a, **kw: FakeS3(fail=True))
    rv = _upload(user_client, _png(), 'photo.png')
    assert rv.status_code == 502


def test_supabase_backend(app, user_client, monkeypatch):
    app.config.update({'SUPABASE_URL': 'https://proj.supabase.co/', 'SUPABASE_SERVICE_ROLE_KEY': 'service-key'})
    calls = []

    class FakeResponse:
        def raise_for_status(self):
            return None

    class FakeSession:
        def request(self, method, url, timeout=None, **kwargs):
            calls.append((method, url, kwargs['headers']))
            return FakeResponse()

    monkeypatch.setattr(file_utils, 'get_session', lambda **kw: FakeSession())
    rv = _upload(user_client, _png(), 'photo.png')
    assert rv.status_code == 201
    method, url, headers = calls[0]
    assert method == 'POST'
    assert url.startswith('https://proj.supabase.co/storage/v1/object/uploads/image-')
    assert headers['x-upsert'] == 'true'
    assert rv.get_json()['url'].startswith('https://proj.supabase.co/storage/v1/object/public/uploads/image-')
