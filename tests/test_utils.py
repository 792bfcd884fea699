import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from utils.pagination import normalize_page, paginate
from utils.serialization import normalize_input, camelize, strip_null_bytes
from password_validator import validate_password_strength


@pytest.mark.parametrize('raw,expected', [(None, 1), ('0', 1), (-3, 1), ('abc', 1), ('2', 2), (7, 7)])
def test_normalize_page(raw, expected):
    assert normalize_page(raw) == expected


def test_paginate_45_items():
    items = list(range(1, 46))
    assert paginate(items, 1)['items'] == list(range(1, 21))
    page3 = paginate(items, 3)
    assert page3['items'] == [41, 42, 43, 44, 45]
    assert page3['totalPages'] == 3
    assert paginate(items, 4)['items'] == []
    assert paginate(items, 0)['page'] == 1


def test_paginate_empty_has_one_page():
    assert paginate([], 1) == {'items': [], 'page': 1, 'pageSize': 20, 'total': 0, 'totalPages': 1}


def test_normalize_input_snake_cases_keys_and_strips_nul():
    out = normalize_input({'imageUrl': 'a\x00b', 'tags': ['x\x00'], 'title': 't'})
    assert out == {'image_url': 'ab', 'tags': ['x'], 'title': 't'}
    assert normalize_input(['not', 'a', 'dict']) == {}


def test_camelize():
    from datetime import datetime
    assert camelize({'created_at': datetime(2025, 1, 2, 3, 4, 5), 'title_en': 'x'}) == {
        'createdAt': '2025-01-02T03:04:05', 'titleEn': 'x',
    }


def test_strip_null_bytes_nested():
    assert strip_null_bytes({'a': [{'b': 'c\x00'}]}) == {'a': [{'b': 'c'}]}


@pytest.mark.parametrize('password,ok', [
    ('short1', False),
    ('longenoughbutnodigits', False),
    ('12345678', False),
    ('password123', True),
])
def test_password_strength(password, ok):
    assert validate_password_strength(password)[0] is ok
