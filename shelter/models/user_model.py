import enum
from datetime import datetime, timedelta

from shelter import db


class Role(enum.Enum):
    USER = 'user'
    STAFF = 'staff'
    ADMIN = 'admin'


STAFF_ROLES = (Role.STAFF, Role.ADMIN)

# Fields an adopter must fill in before submitting an adoption request
PROFILE_REQUIRED_FIELDS = {
    'address': 'address',
    'phone_number': 'phone number',
    'age': 'age',
    'gender': 'gender',
    'civil_status': 'civil status',
}


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255))
    email = db.Column(db.String(120), unique=True, nullable=False)
    role = db.Column(db.Enum(Role), nullable=False, default=Role.USER)
    address = db.Column(db.String(255))
    phone_number = db.Column(db.String(20))
    age = db.Column(db.Integer)
    gender = db.Column(db.String(20))
    civil_status = db.Column(db.String(50))
    profile_photo = db.Column(db.String(255))
    last_activity_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    adoption_requests = db.relationship('AdoptionRequest', backref='user', lazy=True,
                                        cascade='all, delete-orphan')
    abuse_reports = db.relationship('AbuseReport', backref='user', lazy=True,
                                    cascade='all, delete-orphan')
    notifications = db.relationship('Notification', backref='user', lazy=True,
                                    cascade='all, delete-orphan')
    sent_messages = db.relationship('Message', foreign_keys='Message.sender_id', backref='sender',
                                    lazy=True, cascade='all, delete-orphan')
    received_messages = db.relationship('Message', foreign_keys='Message.receiver_id', backref='receiver',
                                        lazy=True, cascade='all, delete-orphan')

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    def is_online(self, window_seconds, now=None):
        if self.last_activity_at is None:
            return False
        now = now or datetime.utcnow()
        return self.last_activity_at > now - timedelta(seconds=window_seconds)

    def missing_profile_fields(self):
        return [label for field, label in PROFILE_REQUIRED_FIELDS.items()
                if getattr(self, field) in (None, '')]

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'
