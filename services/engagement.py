"""Likes and comments on community posts and resident reporter articles."""
from typing import Dict, Any, Optional

from flask import current_app
from sqlalchemy import update, case

from models import (
    db, CommunityPost, CommunityPostComment, ResidentReporter, ResidentReporterComment,
)
from services.errors import ValidationError, NotFoundError

MAX_COMMENT_LENGTH = 2000
ANONYMOUS_NICKNAME = '익명'


class Target:
    """Parent model, comment model and foreign-key column of one engagement target."""

    def __init__(self, name, parent, comment, fk, public_filter=None):
        self.name = name
        self.parent = parent
        self.comment = comment
        self.fk = fk
        self.public_filter = public_filter or {}


TARGETS = {
    'community-posts': Target('community-posts', CommunityPost, CommunityPostComment, 'post_id'),
    'resident-reporter': Target('resident-reporter', ResidentReporter, ResidentReporterComment, 'article_id',
                                public_filter={'status': 'approved'}),
}


def get_target(name: str) -> Target:
    target = TARGETS.get(name)
    if target is None:
        raise NotFoundError(f'Unknown resource: {name}')
    return target


def _get_parent(target: Target, parent_id: str):
    parent = db.session.get(target.parent, parent_id)
    if parent is None or any(getattr(parent, k) != v for k, v in target.public_filter.items()):
        raise NotFoundError('Post not found')
    return parent


def like(target: Target, parent_id: str) -> int:
    """Add one like and return the new total. Repeated calls keep counting."""
    _get_parent(target, parent_id)
    model = target.parent
    try:
        db.session.execute(
            update(model).where(model.id == parent_id).values(likes=model.likes + 1)
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error liking %s %s', target.name, parent_id)
        raise
    return db.session.query(model.likes).filter(model.id == parent_id).scalar()


def list_comments(target: Target, parent_id: str):
    _get_parent(target, parent_id)
    model = target.comment
    return (
        db.session.query(model)
        .filter(getattr(model, target.fk) == parent_id)
        .order_by(model.created_at)
        .all()
    )


def add_comment(target: Target, parent_id: str, data: Dict[str, Any], user=None):
    """Create a comment and bump the parent's comment_count in the same transaction.

    Signed-in users comment under their display name; anonymous commenters may
    pick a nickname.
    """
    _get_parent(target, parent_id)
    content = (data.get('content') or '').strip()
    if not content:
        raise ValidationError('Invalid comment', {'content': 'This field is required'})
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError('Invalid comment', {'content': f'At most {MAX_COMMENT_LENGTH} characters'})

    if user is not None:
        nickname = user.display_name
        user_id = user.id
    else:
        nickname = (data.get('nickname') or '').strip()[:100] or ANONYMOUS_NICKNAME
        user_id = None

    comment = target.comment(nickname=nickname, content=content, user_id=user_id)
    setattr(comment, target.fk, parent_id)
    parent_model = target.parent
    try:
        db.session.add(comment)
        db.session.execute(
            update(parent_model)
            .where(parent_model.id == parent_id)
            .values(comment_count=parent_model.comment_count + 1)
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error adding comment to %s %s', target.name, parent_id)
        raise
    return comment


def delete_comment(target: Target, parent_id: str, comment_id: str) -> None:
    model = target.comment
    comment = db.session.get(model, comment_id)
    if comment is None or getattr(comment, target.fk) != parent_id:
        raise NotFoundError('Comment not found')
    parent_model = target.parent
    try:
        db.session.delete(comment)
        db.session.execute(
            update(parent_model)
            .where(parent_model.id == parent_id)
            .values(comment_count=case(
                (parent_model.comment_count > 0, parent_model.comment_count - 1),
                else_=0,
            ))
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error deleting comment %s', comment_id)
        raise


def serialize_comment(comment) -> Dict[str, Optional[str]]:
    return {
        'id': comment.id,
        'userId': comment.user_id,
        'nickname': comment.nickname,
        'content': comment.content,
        'createdAt': comment.created_at.isoformat() if comment.created_at else None,
    }
