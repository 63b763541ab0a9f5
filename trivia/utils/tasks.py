# trivia/utils/tasks.py
import threading
import time

from sqlalchemy.exc import SQLAlchemyError

from trivia import answer_keys, game_state
from trivia.extensions import db


def purge_once(app):
    """Drop expired answer keys and game state. Returns (keys, states) removed."""
    with app.app_context():
        try:
            keys = answer_keys.purge_expired()
            states = game_state.purge_expired()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception("[purge] sweep failed")
            return 0, 0
        finally:
            db.session.remove()
    if keys or states:
        app.logger.info(f"[purge] removed {keys} answer keys, {states} game states")
    return keys, states


def start_periodic_purge(app, interval=600):
    def run():
        while True:
            purge_once(app)
            time.sleep(interval)
    threading.Thread(target=run, daemon=True).start()
