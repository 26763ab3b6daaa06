from datetime import datetime

from shelter import db


class Animal(db.Model):
    __tablename__ = 'animal'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    age = db.Column(db.Integer, nullable=False)
    breed = db.Column(db.String(255), nullable=False)
    species = db.Column(db.String(255), nullable=False)
    birthdate = db.Column(db.Date)
    color = db.Column(db.String(255), nullable=False)
    gender = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text)
    image = db.Column(db.String(255))
    medical_records = db.Column(db.Text)
    # Reserved while an adoption request for it is pending
    is_temporarily_adopted = db.Column(db.Boolean, nullable=False, default=False)
    is_adopted = db.Column(db.Boolean, nullable=False, default=False)
    device_id = db.Column(db.String(255))
    traccar_id = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    adoption_requests = db.relationship('AdoptionRequest', backref='animal', lazy=True,
                                        cascade='all, delete-orphan')

    @property
    def is_available(self):
        return not (self.is_adopted or self.is_temporarily_adopted)

    def __repr__(self):
        return f'<Animal {self.name} ({self.species})>'
