from datetime import datetime
from typing import Dict, Any

from flask import current_app

from models import db, ResidentReporter
from services import resources
from services.errors import ValidationError, NotFoundError


def submit_article(data: Dict[str, Any], user) -> ResidentReporter:
    """Create a reporter article for the signed-in user. Always starts pending with no likes."""
    spec = resources.get_spec('resident-reporter')
    return resources.create_item(
        spec, data,
        user_id=user.id,
        status='pending',
        likes=0,
        comment_count=0,
    )


def set_status(article_id: str, status: str) -> ResidentReporter:
    status = (status or '').strip().lower()
    if status not in ResidentReporter.VALID_STATUSES:
        raise ValidationError('Invalid status', {'status': f"Must be one of: {', '.join(ResidentReporter.VALID_STATUSES)}"})
    article = db.session.get(ResidentReporter, article_id)
    if not article:
        raise NotFoundError('Article not found')
    article.status = status
    if status == 'approved':
        article.approved_at = datetime.utcnow()
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error updating reporter article status')
        raise
    return article


def list_for_user(user_id: str):
    return (
        db.session.query(ResidentReporter)
        .filter_by(user_id=user_id)
        .order_by(ResidentReporter.created_at.desc())
        .all()
    )


def latest_approved(limit: int = 6):
    return (
        db.session.query(ResidentReporter)
        .filter_by(status='approved')
        .order_by(ResidentReporter.approved_at.desc(), ResidentReporter.created_at.desc())
        .limit(limit)
        .all()
    )
