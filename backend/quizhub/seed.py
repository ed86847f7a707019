from quizhub import db
from quizhub.models import ROLE_ADMIN, ROLE_PLAYER, Option, Question, Quiz, User

DEMO_QUESTIONS = [
    {
        'text': 'Which planet is known as the Red Planet?',
        'type': 'single_choice',
        'points': 10,
        'options': [('Venus', False), ('Mars', True), ('Jupiter', False), ('Mercury', False)],
    },
    {
        'text': 'Which of these are prime numbers?',
        'type': 'multiple_choice',
        'points': 20,
        'options': [('2', True), ('4', False), ('7', True), ('9', False)],
    },
    {
        'text': 'Python lists are immutable.',
        'type': 'true_false',
        'points': 10,
        'options': [('True', False), ('False', True)],
    },
    {
        'text': 'The chemical symbol for gold is ___.',
        'type': 'fill_in_the_blank',
        'points': 15,
        'options': [('Au', True)],
    },
]


def seed_demo_data():
    """Add an admin, three players and a demo quiz, then commit."""
    admin = User(username='admin', role=ROLE_ADMIN)
    admin.set_password('password')
    db.session.add(admin)
    for name in ['testuser1', 'testuser2', 'testuser3']:
        user = User(username=name, role=ROLE_PLAYER)
        user.set_password('password')
        db.session.add(user)

    quiz = Quiz(title='General Knowledge', description='A short demo quiz for live sessions.')
    for position, entry in enumerate(DEMO_QUESTIONS):
        question = Question(text=entry['text'], type=entry['type'], points=entry['points'], position=position)
        question.options = [Option(text=text, is_correct=correct) for text, correct in entry['options']]
        quiz.questions.append(question)
    db.session.add(quiz)
    db.session.commit()
    return quiz
