# Abuse report service module
import logging

from shelter import db
from shelter.errors import ValidationError
from shelter.models import AbuseReport, ReviewStatus

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 2000


def format_report(report):
    return {
        'id': report.id,
        'user_id': report.user_id,
        'description': report.description,
        'photos': list(report.photos or []),
        'videos': list(report.videos or []),
        'status': report.status.value,
        'rejection_reason': report.rejection_reason,
        'created_at': report.created_at.isoformat(),
        'user': {
            'id': report.user.id,
            'name': report.user.name,
            'email': report.user.email,
        } if report.user else None,
    }


def submit_report(principal, description, photos=None, videos=None):
    description = (description or '').strip()
    if not description:
        raise ValidationError('Invalid abuse report', {'description': 'This field is required'})
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError('Invalid abuse report',
                              {'description': f'Must be at most {MAX_DESCRIPTION_LENGTH} characters'})
    report = AbuseReport(
        user_id=principal.id,
        description=description,
        photos=list(photos or []),
        videos=list(videos or []),
        status=ReviewStatus.PENDING
    )
    db.session.add(report)
    db.session.commit()
    logger.info(f"Abuse report {report.id} submitted by user {principal.id}")
    return report


def list_reports():
    return AbuseReport.query.order_by(AbuseReport.created_at.desc(), AbuseReport.id.desc()).all()
