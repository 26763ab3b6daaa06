from datetime import datetime

from shelter import db


class Message(db.Model):
    __tablename__ = 'message'
    __table_args__ = (
        db.Index('ix_message_pair', 'sender_id', 'receiver_id'),
    )
    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    body = db.Column(db.Text, nullable=True)
    image_path = db.Column(db.String(255), nullable=True)
    video_path = db.Column(db.String(255), nullable=True)
    seen = db.Column(db.Boolean, nullable=False, default=False)
    unread = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'message': self.body,
            'image_path': self.image_path,
            'video_path': self.video_path,
            'unread': self.unread,
            'seen': self.seen,
            'timestamp': self.created_at.isoformat(),
        }

    def __repr__(self):
        return f'<Message {self.id} from User {self.sender_id} to User {self.receiver_id}>'
