import atexit
import logging
import os
import secrets
from functools import wraps

from flask import Blueprint, Flask, current_app, flash, g, jsonify, redirect, render_template, url_for
from flask_debugtoolbar import DebugToolbarExtension

from room_board.grid import error_utils
from room_board.grid.calendar_service import GoogleCalendarService
from room_board.grid.config import BoardConfig
from room_board.grid.grid_assembler import GridAssembler
from room_board.grid.preferences import Preferences, create_preference_store
from room_board.grid.runtime import BoardRuntime

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logger = logging.getLogger(__name__)

board = Blueprint("board", __name__)


def build_runtime(config: BoardConfig) -> BoardRuntime:
    service = GoogleCalendarService(config.calendar_ids, config.service_account_file,
                                    admin_email=config.admin_email, customer=config.directory_customer)
    preferences = Preferences(create_preference_store(config.database_url))
    # One service answers both the roster and the availability fetch
    assembler = GridAssembler(service, service, preferences, config)
    return BoardRuntime(assembler)


def create_app(runtime=None, config=None):
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    app = Flask(__name__)
    app.secret_key = secrets.token_hex(32) #256 bit
    app.config['SECRET_KEY'] = app.secret_key
    if not os.environ.get('FLASK_ENV') == 'production':
        app.config["DEBUG_TB_INTERCEPT_REDIRECTS"] = False  # Prevents redirect issues
    if runtime is None:
        runtime = build_runtime(config or BoardConfig.from_env())
        runtime.start()
        atexit.register(runtime.stop)
    app.extensions["room_board"] = runtime
    app.register_blueprint(board)
    app.register_error_handler(404, error_handler)
    return app


# Use decorator to expose the runtime as g.runtime for views that read or change the board
def with_runtime(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.runtime = current_app.extensions["room_board"]
        return f(*args, **kwargs)
    return decorated_function


def _load_grid():
    """
    Returns (grid, message). Exactly one of them is None.
    """
    assembler = g.runtime.assembler
    try:
        return g.runtime.call(assembler.assemble), None
    except error_utils.FetchError as e:
        return None, e.message
    except error_utils.EmptyDataError as e:
        if g.runtime.call(lambda: assembler.loading):
            return None, "Loading..."
        return None, e.message


@board.route('/')
def home():
    return redirect(url_for('board.get_board'))


@board.route("/board", methods=["GET"])
@with_runtime
def get_board():
    grid, message = _load_grid()
    return render_template('board.html', grid=grid, message=message)


@board.route("/board.json", methods=["GET"])
@with_runtime
def get_board_json():
    assembler = g.runtime.assembler
    try:
        grid = g.runtime.call(assembler.assemble)
    except error_utils.FetchError as e:
        return jsonify({"error": e.message}), 503
    except error_utils.EmptyDataError as e:
        return jsonify({"error": e.message, "loading": g.runtime.call(lambda: assembler.loading)}), 404
    return jsonify(grid.to_dict())


@board.route("/board/next", methods=["POST"])
@with_runtime
def next_page():
    g.runtime.call(g.runtime.assembler.next_page)
    return redirect(url_for('board.get_board'))


@board.route("/board/previous", methods=["POST"])
@with_runtime
def previous_page():
    g.runtime.call(g.runtime.assembler.previous_page)
    return redirect(url_for('board.get_board'))


# Out of range page numbers are clamped, not rejected
@board.route("/board/page/<int:page>", methods=["POST"])
@with_runtime
def jump_to_page(page):
    g.runtime.call(g.runtime.assembler.jump_to_page, page)
    return redirect(url_for('board.get_board'))


@board.route("/board/refresh", methods=["POST"])
@with_runtime
def refresh_board():
    g.runtime.refresh()
    flash("Refreshing availability.", "success")
    return redirect(url_for('board.get_board'))


@board.route("/preferences/upcoming-window", methods=["POST"])
@with_runtime
def toggle_upcoming_window():
    g.runtime.call(g.runtime.assembler.toggle_upcoming_window)
    return redirect(url_for('board.get_board'))


@board.route("/preferences/auto-advance", methods=["POST"])
@with_runtime
def toggle_auto_advance():
    g.runtime.call(g.runtime.assembler.toggle_auto_advance)
    return redirect(url_for('board.get_board'))


def error_handler(error):
    flash("An error occurred.", "error")
    return redirect(url_for('board.get_board'))


if __name__ == '__main__':
    app = create_app()
    # production
    if os.environ.get('FLASK_ENV') == 'production':
        app.run(debug=False)
    else:
        # Set to make Flask debug toolbar work
        app.debug = True
        toolbar = DebugToolbarExtension(app)
        # The reloader would start a second board runtime in the child process
        app.run(debug=True, port=5003, use_reloader=False)
