from datetime import datetime

from flask_login import UserMixin

from quizhub import bcrypt, db

ROLE_ADMIN = 'admin'
ROLE_PLAYER = 'player'


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_PLAYER)

    @property
    def is_host(self):
        return self.role == ROLE_ADMIN

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
        }


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    questions = db.relationship(
        'Question',
        back_populates='quiz',
        order_by=lambda: [Question.position, Question.id],
        cascade='all, delete-orphan',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'question_count': len(self.questions),
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(32), nullable=False, default='single_choice')  # single_choice, multiple_choice, true_false, fill_in_the_blank
    points = db.Column(db.Integer, nullable=False, default=10)
    quiz = db.relationship('Quiz', back_populates='questions')
    options = db.relationship(
        'Option',
        back_populates='question',
        order_by='Option.id',
        cascade='all, delete-orphan',
    )


class Option(db.Model):
    __tablename__ = 'option'
    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False, index=True)
    text = db.Column(db.String(500), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    question = db.relationship('Question', back_populates='options')


class QuizAttempt(db.Model):
    __tablename__ = 'quiz_attempt'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False, default=0)
    mode = db.Column(db.String(16), nullable=False, default='live')
    attempted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'quiz_id': self.quiz_id,
            'score': self.score,
            'mode': self.mode,
            'attempted_at': self.attempted_at.isoformat() if self.attempted_at else None,
        }
