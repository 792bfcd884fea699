import os
import sys
from datetime import datetime

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services import resources
from services.errors import ValidationError, NotFoundError


def _project_payload(**overrides):
    data = {
        'title': '안암생활',
        'category': ['youth', 'LH'],
        'location': '서울 성북구',
        'year': '2020',
        'description': '<p>청년 공유주택</p>',
    }
    data.update(overrides)
    return data


def test_get_spec_unknown_resource():
    with pytest.raises(NotFoundError):
        resources.get_spec('nope')


def test_create_coerces_kinds():
    spec = resources.get_spec('projects')
    values = resources.coerce_payload(spec, _project_payload(units='48', featured='true', partner_logos='a.png, b.png'))
    assert values['year'] == 2020
    assert values['units'] == 48
    assert values['featured'] is True
    assert values['category'] == ['youth', 'LH']
    assert values['partner_logos'] == ['a.png', 'b.png']


def test_missing_required_fields_are_reported_together():
    spec = resources.get_spec('projects')
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(spec, {'title': 'x'})
    details = exc.value.details
    assert set(details) == {'category', 'location', 'year', 'description'}
    assert exc.value.message == 'Invalid project data'


def test_unknown_category_rejected():
    spec = resources.get_spec('projects')
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(spec, _project_payload(category=['youth', 'castle']))
    assert 'castle' in exc.value.details['category']


def test_category_accepts_comma_string_and_drops_duplicates():
    spec = resources.get_spec('projects')
    values = resources.coerce_payload(spec, _project_payload(category='youth, single, youth'))
    assert values['category'] == ['youth', 'single']


def test_bad_integer_and_bad_enum():
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(resources.get_spec('projects'), _project_payload(year='twenty'))
    assert exc.value.details == {'year': 'Invalid integer value'}

    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(resources.get_spec('articles'), {
            'title': 't', 'excerpt': 'e', 'content': 'c', 'author': 'a', 'category': 'blog',
        })
    assert 'category' in exc.value.details


def test_datetime_with_z_suffix_stored_as_naive_utc():
    spec = resources.get_spec('events')
    values = resources.coerce_payload(spec, {
        'title': '입주민 모임', 'date': '2025-03-01T10:00:00+09:00', 'location': '공유라운지',
    })
    assert values['date'] == datetime(2025, 3, 1, 1, 0, 0)

    values = resources.coerce_payload(spec, {'title': 't', 'date': '2025-03-01T10:00:00Z', 'location': 'l'})
    assert values['date'] == datetime(2025, 3, 1, 10, 0, 0)


def test_invalid_date_reported():
    spec = resources.get_spec('events')
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(spec, {'title': 't', 'date': 'next friday', 'location': 'l'})
    assert exc.value.details == {'date': 'Invalid date format'}


def test_partial_update_only_touches_submitted_keys():
    spec = resources.get_spec('projects')
    values = resources.coerce_payload(spec, {'units': 12, 'scale': ''}, partial=True)
    assert values == {'units': 12}


def test_partial_update_null_clears_optional_but_not_required():
    spec = resources.get_spec('projects')
    assert resources.coerce_payload(spec, {'pdf_url': None}, partial=True) == {'pdf_url': None}
    with pytest.raises(ValidationError):
        resources.coerce_payload(spec, {'title': None}, partial=True)


def test_partial_update_rejects_null_status_and_flags():
    spec = resources.get_spec('events')
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(spec, {'status': None, 'published': None}, partial=True)
    assert exc.value.details == {'status': 'Must not be null', 'published': 'Must not be null'}
    # text fields may still be cleared
    assert resources.coerce_payload(spec, {'description': None}, partial=True) == {'description': None}


def test_html_fields_are_sanitized():
    spec = resources.get_spec('projects')
    values = resources.coerce_payload(spec, _project_payload(description='<p>ok</p><script>alert(1)</script>'))
    assert '<script>' not in values['description']
    assert '<p>ok</p>' in values['description']


def test_related_articles_need_urls():
    spec = resources.get_spec('projects')
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(spec, _project_payload(related_articles=[{'title': 'no url'}]))
    assert 'related_articles' in exc.value.details


def test_inquiry_email_validated():
    spec = resources.get_spec('inquiries')
    with pytest.raises(ValidationError) as exc:
        resources.coerce_payload(spec, {'type': 'business', 'name': 'n', 'email': 'not-an-email', 'message': 'm'})
    assert exc.value.details == {'email': 'Invalid email address'}


def test_inquiries_and_applications_are_admin_read_only():
    assert 'create' not in resources.get_spec('inquiries').admin_ops
    assert 'update' not in resources.get_spec('applications').admin_ops
    assert not resources.get_spec('inquiries').public
