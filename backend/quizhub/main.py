from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from quizhub import db
from quizhub.models import User

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the QuizHub live server!'})

@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    if not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing username or password'}), 400

    if User.query.filter_by(username=data['username']).first():
        return jsonify({'error': 'Username already exists'}), 400

    # Host accounts are provisioned out of band; self-registration always makes players
    user = User(username=data['username'])
    user.set_password(data['password'])
    db.session.add(user)
    db.session.commit()
    login_user(user)

    return jsonify({'message': 'User created successfully', 'user': user.to_dict()}), 201

@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'message': 'Logged in successfully.', 'user': user.to_dict()})
    return jsonify({'error': 'Invalid username or password'}), 401

@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})

@main.route('/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})
