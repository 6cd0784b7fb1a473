from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
import json
from config import Config
from gallery.manager import RoomManager

rooms = RoomManager()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    rooms.init_app(flask_app, socketio)

    from gallery.api.rooms import rooms_api
    flask_app.register_blueprint(rooms_api, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    from gallery.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('lineup')
    @click.option('--count', default=10, show_default=True, help='Number of targets.')
    @click.option('--rows', default=4, show_default=True, help='Number of target rows.')
    @click.option('--seed', type=int, default=None, help='Seed for a reproducible lineup.')
    def lineup_command(count, rows, seed):
        """Prints a random target lineup as JSON."""
        import random
        from gallery.messages import InvalidTargetCountError
        from gallery.targets import random_lineup

        rng = random.Random(seed) if seed is not None else None
        try:
            lineup = random_lineup(count, rows, rng)
        except InvalidTargetCountError as exc:
            raise click.BadParameter(str(exc))
        click.echo(json.dumps([t.to_dict() for t in lineup], indent=2))

    flask_app.cli.add_command(lineup_command)

    return flask_app
