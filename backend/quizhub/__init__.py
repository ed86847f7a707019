from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Live session engine lives in app.extensions so handlers can reach it
    from quizhub.services.live import init_live_quiz
    init_live_quiz(flask_app, socketio)

    from quizhub.main import main
    flask_app.register_blueprint(main)

    from quizhub.api.live import live
    flask_app.register_blueprint(live, url_prefix='/api/live')

    from quizhub.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader
    from quizhub.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from quizhub.seed import seed_demo_data
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_demo_data()
            click.echo('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
