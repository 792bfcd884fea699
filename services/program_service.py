from typing import Dict, Any

from flask import current_app

from models import db, ResidentProgram, ProgramApplication
from services import resources
from services.errors import ValidationError, NotFoundError


def apply(data: Dict[str, Any], user=None) -> ProgramApplication:
    """Submit an application to an open, published program."""
    program_id = data.get('program_id')
    program = db.session.get(ResidentProgram, program_id) if program_id else None
    if program is None or not program.published:
        if not program_id:
            raise ValidationError('Invalid application data', {'program_id': 'This field is required'})
        raise NotFoundError('Program not found')
    if program.status != 'open':
        raise ValidationError('Applications are closed', {'program_id': 'Program is not accepting applications'})

    spec = resources.get_spec('applications')
    extra = {'status': 'pending'}
    if user is not None:
        extra['user_id'] = user.id
    return resources.create_item(spec, data, **extra)


def set_status(application_id: str, status: str) -> ProgramApplication:
    status = (status or '').strip().lower()
    if status not in ProgramApplication.VALID_STATUSES:
        raise ValidationError('Invalid status', {'status': f"Must be one of: {', '.join(ProgramApplication.VALID_STATUSES)}"})
    application = db.session.get(ProgramApplication, application_id)
    if not application:
        raise NotFoundError('Application not found')
    application.status = status
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception('Error updating application status')
        raise
    return application


def list_for_user(user_id: str):
    return (
        db.session.query(ProgramApplication)
        .filter_by(user_id=user_id)
        .order_by(ProgramApplication.created_at.desc())
        .all()
    )
