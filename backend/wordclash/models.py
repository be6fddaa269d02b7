from wordclash import db, bcrypt
from flask_login import UserMixin


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    # Leaderboard
    wins = db.Column(db.Integer, default=0, nullable=False)
    last_win_at = db.Column(db.DateTime, nullable=True)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'wins': self.wins or 0,
        }

    def to_leaderboard_dict(self):
        return {
            'username': self.username,
            'wins': self.wins or 0,
            'last_win_at': self.last_win_at.isoformat() if self.last_win_at else None,
        }
