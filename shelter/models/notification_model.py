from datetime import datetime

from shelter import db


class Notification(db.Model):
    __tablename__ = 'notification'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    image_path = db.Column(db.String(255))
    type = db.Column(db.String(100))
    read_at = db.Column(db.DateTime)
    appointment_date = db.Column(db.Date)
    appointment_time = db.Column(db.Time)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def is_read(self):
        return self.read_at is not None

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'message': self.message,
            'type': self.type,
            'image_path': self.image_path,
            'read_at': self.read_at.isoformat() if self.read_at else None,
            'appointment_date': self.appointment_date.isoformat() if self.appointment_date else None,
            'appointment_time': self.appointment_time.strftime('%H:%M') if self.appointment_time else None,
            'created_at': self.created_at.isoformat(),
        }

    def __repr__(self):
        return f'<Notification {self.id} for User {self.user_id}>'
