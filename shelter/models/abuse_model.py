from datetime import datetime

from shelter import db
from shelter.models.adoption_model import ReviewStatus

DEFAULT_ABUSE_IMAGE = 'images/default-abuse.png'


class AbuseReport(db.Model):
    __tablename__ = 'abuse_report'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    description = db.Column(db.Text, nullable=False)
    photos = db.Column(db.JSON, nullable=False, default=list)
    videos = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.Enum(ReviewStatus), nullable=False, default=ReviewStatus.PENDING)
    rejection_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def cover_image(self):
        return self.photos[0] if self.photos else DEFAULT_ABUSE_IMAGE

    def __repr__(self):
        return f'<AbuseReport {self.id} by User {self.user_id} ({self.status})>'
