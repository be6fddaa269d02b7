from functools import partial

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
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

    # One game service (registry, sessions, timers) per app instance
    flask_app.extensions['wordclash'] = build_game_service(flask_app)

    # Import and register blueprints here
    from wordclash.main import main
    flask_app.register_blueprint(main)

    from wordclash.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from wordclash.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    # Register Socket.IO event handlers on the initialized socketio instance
    from wordclash.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader
    from wordclash.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    return flask_app


def build_game_service(flask_app):
    from wordclash.services.game import GameService, GameSettings, TurnTimer, WordValidator
    from wordclash.services.game.broadcast import NAMESPACE, SocketBroadcaster
    from wordclash.services.game.validator import DEFAULT_DICTIONARY_URL
    from wordclash.services.leaderboard import schedule_win

    cfg = flask_app.config
    timer = TurnTimer(
        spawn=socketio.start_background_task,
        sleep=socketio.sleep,
        # No countdown workers in TESTING unless explicitly enabled
        enabled=not (cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS')),
        heartbeat=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)),
        logger=flask_app.logger,
    )
    validator = WordValidator(
        cfg.get('DICTIONARY_API_URL') or DEFAULT_DICTIONARY_URL,
        timeout=float(cfg.get('DICTIONARY_TIMEOUT_SEC', 3)),
        logger=flask_app.logger,
    )

    def is_live(sid):
        return socketio.server.manager.is_connected(sid, NAMESPACE)

    return GameService(
        validator,
        timer=timer,
        settings=GameSettings.from_config(cfg),
        broadcaster=SocketBroadcaster(socketio, NAMESPACE, logger=flask_app.logger),
        is_live=is_live,
        on_win=partial(schedule_win, flask_app),
        logger=flask_app.logger,
    )
