"""Site-wide content: settings blobs, editable pages, page image slots, dashboard
stats, the home payload and the merged community feed."""
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy import func

from models import (
    db, SiteSetting, EditablePage, PageImage, Project, Inquiry, Article,
    CommunityPost, Event, ResidentProgram, Partner, User, HistoryMilestone,
    ResidentReporter, ProgramApplication,
)
from services.errors import ValidationError, NotFoundError
from services.rich_text import sanitize_html
from utils.serialization import strip_null_bytes

MAX_SLOT_IMAGES = 5

DEFAULT_SETTINGS = {
    'company_stats': {
        'projectCount': {'value': '32+', 'label': '완공 프로젝트'},
        'householdCount': {'value': '2,500+', 'label': '입주 세대'},
        'yearsInBusiness': {'value': '13년', 'label': '업력'},
        'awardCount': {'value': '15+', 'label': '수상 실적'},
    },
    'footer_settings': {
        'companyName': '(주)아이부키',
        'address': '서울특별시 성동구 왕십리로 115',
        'phone': '02-1234-5678',
        'email': 'contact@ibookee.kr',
        'businessNumber': '110-81-77570',
        'copyright': '2025 IBOOKEE. All rights reserved.',
    },
    'ceo_message': {
        'title': 'CEO 인사말',
        'paragraphs': [
            '아이부키는 사회주택 전문 기업으로서 주거 취약계층의 주거 안정과 삶의 질 향상을 위해 노력하고 있습니다.',
            '우리는 단순히 집을 짓는 것이 아닌, 커뮤니티를 만들고 이웃과 함께하는 삶의 가치를 실현합니다.',
        ],
        'signature': '아이부키 대표',
    },
}

DEFAULT_PAGE_IMAGES = [
    {'pageKey': 'home', 'imageKey': 'hero', 'label': '홈 - 히어로 배경',
     'imageUrl': 'https://images.unsplash.com/photo-1522708323590-d24dbb6b0267?ixlib=rb-4.0.3&auto=format&fit=crop&w=2070&q=80'},
    {'pageKey': 'about', 'imageKey': 'office', 'label': 'About - 오피스 이미지',
     'imageUrl': 'https://images.unsplash.com/photo-1600607687939-ce8a6c25118c?ixlib=rb-4.0.3&auto=format&fit=crop&w=800&q=80'},
    {'pageKey': 'about', 'imageKey': 'ceo', 'label': 'About - CEO 프로필',
     'imageUrl': 'https://images.unsplash.com/photo-1560250097-0b93528c311a?ixlib=rb-4.0.3&auto=format&fit=crop&w=600&q=80'},
    {'pageKey': 'business', 'imageKey': 'solution-youth', 'label': 'Business - 청년주택 솔루션',
     'imageUrl': 'https://images.unsplash.com/photo-1545324418-cc1a3fa10c00?ixlib=rb-4.0.3&auto=format&fit=crop&w=600&q=80'},
    {'pageKey': 'business', 'imageKey': 'solution-single', 'label': 'Business - 1인가구 솔루션',
     'imageUrl': 'https://images.unsplash.com/photo-1560448204-e02f11c3d0e2?ixlib=rb-4.0.3&auto=format&fit=crop&w=600&q=80'},
    {'pageKey': 'business', 'imageKey': 'solution-family', 'label': 'Business - 가족형 솔루션',
     'imageUrl': 'https://images.unsplash.com/photo-1502672260266-1c1ef2d93688?ixlib=rb-4.0.3&auto=format&fit=crop&w=600&q=80'},
]


def _commit(message: str, *args) -> None:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception(message, *args)
        raise


# --- settings ---------------------------------------------------------------

def serialize_setting(key: str, value, updated_at=None) -> Dict[str, Any]:
    return {'key': key, 'value': value, 'updatedAt': updated_at.isoformat() if updated_at else None}


def get_setting(key: str) -> Dict[str, Any]:
    """Stored value for key, else the built-in default for known keys."""
    setting = SiteSetting.query.filter_by(key=key).first()
    if setting is not None:
        return serialize_setting(setting.key, setting.value, setting.updated_at)
    if key in DEFAULT_SETTINGS:
        return serialize_setting(key, DEFAULT_SETTINGS[key])
    raise NotFoundError('Setting not found')


def list_settings() -> List[Dict[str, Any]]:
    stored = {s.key: s for s in SiteSetting.query.order_by(SiteSetting.key).all()}
    out = [serialize_setting(s.key, s.value, s.updated_at) for s in stored.values()]
    for key, value in DEFAULT_SETTINGS.items():
        if key not in stored:
            out.append(serialize_setting(key, value))
    return sorted(out, key=lambda s: s['key'])


def upsert_setting(key: str, value) -> SiteSetting:
    if not key or not key.strip():
        raise ValidationError('Invalid setting', {'key': 'This field is required'})
    if value is None:
        raise ValidationError('Invalid setting', {'value': 'This field is required'})
    setting = SiteSetting.query.filter_by(key=key).first()
    if setting is None:
        setting = SiteSetting(key=key)
        db.session.add(setting)
    setting.value = strip_null_bytes(value)
    _commit('Error saving setting %s', key)
    return setting


# --- editable pages -----------------------------------------------------------

def serialize_page(page: EditablePage) -> Dict[str, Any]:
    return {
        'id': page.id,
        'slug': page.slug,
        'title': page.title,
        'content': page.content,
        'metaDescription': page.meta_description,
        'createdAt': page.created_at.isoformat() if page.created_at else None,
        'updatedAt': page.updated_at.isoformat() if page.updated_at else None,
    }


def get_page(slug: str) -> EditablePage:
    page = EditablePage.query.filter_by(slug=slug).first()
    if not page:
        raise NotFoundError('Page not found')
    return page


def list_pages() -> List[EditablePage]:
    return EditablePage.query.order_by(EditablePage.slug).all()


def upsert_page(slug: str, data: Dict[str, Any]) -> EditablePage:
    page = EditablePage.query.filter_by(slug=slug).first()
    if page is None:
        page = EditablePage(slug=slug)
        db.session.add(page)
    if 'title' in data:
        page.title = data.get('title')
    if 'content' in data:
        page.content = sanitize_html(data.get('content'))
    if 'meta_description' in data:
        page.meta_description = data.get('meta_description')
    _commit('Error saving page %s', slug)
    return page


# --- page images --------------------------------------------------------------

def serialize_page_image(image: PageImage) -> Dict[str, Any]:
    return {
        'id': image.id,
        'pageKey': image.page_key,
        'imageKey': image.image_key,
        'imageUrl': image.image_url,
        'altText': image.alt_text,
        'displayOrder': image.display_order,
        'createdAt': image.created_at.isoformat() if image.created_at else None,
    }


def list_page_images(page_key: Optional[str] = None) -> List[PageImage]:
    q = PageImage.query
    if page_key:
        q = q.filter_by(page_key=page_key)
    return q.order_by(PageImage.page_key, PageImage.image_key, PageImage.display_order).all()


def upsert_page_image(data: Dict[str, Any]) -> PageImage:
    """Set the single image of a (page_key, image_key) slot."""
    details = {}
    for field in ('page_key', 'image_key', 'image_url'):
        if not (data.get(field) or '').strip():
            details[field] = 'This field is required'
    if details:
        raise ValidationError('Invalid page image', details)

    image = PageImage.query.filter_by(page_key=data['page_key'], image_key=data['image_key']).first()
    if image is None:
        image = PageImage(page_key=data['page_key'], image_key=data['image_key'], display_order=0)
        db.session.add(image)
    image.image_url = data['image_url']
    image.alt_text = data.get('alt_text')
    _commit('Error saving page image %s/%s', data['page_key'], data['image_key'])
    return image


def replace_page_images(page_key: str, image_key: str, images: List[Any]) -> List[PageImage]:
    """Replace every image in a multi-image slot; order follows the list.

    Runs as one transaction so a failure leaves the previous slot intact.
    """
    if not isinstance(images, list):
        raise ValidationError('Invalid page images', {'images': 'Must be a list'})
    if len(images) > MAX_SLOT_IMAGES:
        raise ValidationError('Invalid page images', {'images': f'At most {MAX_SLOT_IMAGES} images'})
    rows = []
    for idx, item in enumerate(images):
        if isinstance(item, str):
            item = {'imageUrl': item}
        url = (item.get('imageUrl') or item.get('image_url') or '').strip() if isinstance(item, dict) else ''
        if not url:
            raise ValidationError('Invalid page images', {'images': f'Item {idx} has no imageUrl'})
        rows.append(PageImage(
            page_key=page_key,
            image_key=image_key,
            image_url=url,
            alt_text=item.get('altText') or item.get('alt_text'),
            display_order=idx,
        ))
    try:
        PageImage.query.filter_by(page_key=page_key, image_key=image_key).delete()
        db.session.add_all(rows)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error replacing page images %s/%s', page_key, image_key)
        raise
    return rows


def delete_page_image(image_id: str) -> None:
    image = db.session.get(PageImage, image_id)
    if not image:
        raise NotFoundError('Page image not found')
    db.session.delete(image)
    _commit('Error deleting page image %s', image_id)


# --- dashboard / home / feed ------------------------------------------------

def _count(model, *criteria) -> int:
    q = db.session.query(func.count(model.id))
    if criteria:
        q = q.filter(*criteria)
    return q.scalar() or 0


def get_stats() -> Dict[str, int]:
    return {
        'projectCount': _count(Project),
        'inquiryCount': _count(Inquiry),
        'articleCount': _count(Article),
        'communityPostCount': _count(CommunityPost),
        'eventCount': _count(Event),
        'programCount': _count(ResidentProgram),
        'partnerCount': _count(Partner),
        'userCount': _count(User),
        'adminCount': _count(User, User.role == 'admin'),
        'residentCount': _count(User, User.role == 'resident'),
        'milestoneCount': _count(HistoryMilestone),
        'reporterArticleCount': _count(ResidentReporter),
        'pendingReporterCount': _count(ResidentReporter, ResidentReporter.status == 'pending'),
        'approvedReporterCount': _count(ResidentReporter, ResidentReporter.status == 'approved'),
        'applicationCount': _count(ProgramApplication),
        'pendingApplicationCount': _count(ProgramApplication, ProgramApplication.status == 'pending'),
    }


def home_projects(limit: int = 10) -> List[Project]:
    return (
        Project.query
        .order_by(Project.featured.desc(), Project.display_order, Project.created_at.desc())
        .limit(limit)
        .all()
    )


def community_feed(limit: int = 20) -> List[Dict[str, Any]]:
    """Social posts, published programs and published events, newest first."""
    posts = CommunityPost.query.order_by(CommunityPost.posted_at.desc()).limit(limit).all()
    programs = (
        ResidentProgram.query.filter_by(published=True)
        .order_by(ResidentProgram.created_at.desc()).limit(limit).all()
    )
    events = Event.query.filter_by(published=True).order_by(Event.date.desc()).limit(limit).all()

    items = []
    for post in posts:
        items.append({
            'id': post.id,
            'type': 'social',
            'title': post.caption or '',
            'imageUrl': post.image_url or ((post.images or [None])[0]),
            'date': post.posted_at,
            'likes': post.likes or 0,
            'comments': post.comment_count or 0,
            'hashtags': post.hashtags or [],
        })
    for program in programs:
        items.append({
            'id': program.id,
            'type': 'program',
            'title': program.title,
            'imageUrl': program.image_url,
            'date': program.created_at,
        })
    for event in events:
        items.append({
            'id': event.id,
            'type': 'event',
            'title': event.title,
            'imageUrl': event.image_url,
            'date': event.date,
        })

    items.sort(key=lambda i: i['date'].timestamp() if i['date'] else 0, reverse=True)
    items = items[:limit]
    for item in items:
        item['date'] = item['date'].isoformat() if item['date'] else None
    return items
