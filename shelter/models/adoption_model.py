import enum
from datetime import datetime

from shelter import db


class ReviewStatus(enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class AppointmentStatus(enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class AdoptionRequest(db.Model):
    __tablename__ = 'adoption_request'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    animal_id = db.Column(db.Integer, db.ForeignKey('animal.id', ondelete='CASCADE'), nullable=False)
    question1 = db.Column(db.Text, nullable=False)
    question2 = db.Column(db.Text, nullable=False)
    question3 = db.Column(db.Text, nullable=False)
    valid_id = db.Column(db.String(255), nullable=False)
    selfie_with_id = db.Column(db.String(255), nullable=False)
    status = db.Column(db.Enum(ReviewStatus), nullable=False, default=ReviewStatus.PENDING)
    rejection_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    appointments = db.relationship('AdoptionAppointment', backref='adoption_request', lazy=True,
                                   cascade='all, delete-orphan')

    @property
    def answers(self):
        return [self.question1, self.question2, self.question3]

    def __repr__(self):
        return f'<AdoptionRequest {self.id} for Animal {self.animal_id} ({self.status})>'


class AdoptionAppointment(db.Model):
    __tablename__ = 'adoption_appointment'
    id = db.Column(db.Integer, primary_key=True)
    adoption_request_id = db.Column(db.Integer, db.ForeignKey('adoption_request.id', ondelete='CASCADE'),
                                    nullable=False)
    appointment_date = db.Column(db.Date, nullable=False)
    appointment_time = db.Column(db.Time, nullable=False)
    status = db.Column(db.Enum(AppointmentStatus), nullable=False, default=AppointmentStatus.PENDING)
    notes = db.Column(db.Text)
    rejection_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_active(self):
        return self.status in ACTIVE_APPOINTMENT_STATUSES

    def __repr__(self):
        return f'<AdoptionAppointment {self.id} on {self.appointment_date} ({self.status})>'
