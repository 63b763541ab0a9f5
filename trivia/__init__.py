# trivia/__init__.py
from flask import Flask

from config import config
from trivia.extensions import db, login_manager


def create_app(config_name="default"):
    from flask_cors import CORS

    from trivia.errors import error_response, register_error_handlers
    from trivia.generator import OpenAICompletion

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Extensions
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.unauthorized_handler(
        lambda: error_response("UNAUTHENTICATED", "Sign in to play this mode.", 401)
    )

    CORS(app, supports_credentials=True)

    # LLM clients: question writing and short-answer grading
    timeout = app.config["OPENAI_TIMEOUT"]
    app.completion_client = OpenAICompletion(app.config["OPENAI_API_KEY"], app.config["OPENAI_MODEL"], timeout)
    app.grader_client = OpenAICompletion(app.config["OPENAI_API_KEY"], app.config["OPENAI_GRADER_MODEL"], timeout)

    # Blueprints
    from trivia.faceoff import faceoff_bp
    from trivia.jeopardy import jeopardy_bp
    from trivia.quiz import quiz_bp
    from trivia.survival import survival_bp
    from trivia.tower import tower_bp

    app.register_blueprint(survival_bp)
    app.register_blueprint(jeopardy_bp)
    app.register_blueprint(tower_bp)
    app.register_blueprint(quiz_bp)
    app.register_blueprint(faceoff_bp)

    register_error_handlers(app)

    @app.route("/health")
    def health():
        return {"ok": True}

    # --- housekeeping thread ---
    if app.config.get("START_BACKGROUND_TASKS"):
        from trivia.utils.tasks import start_periodic_purge

        start_periodic_purge(app, interval=app.config["PURGE_INTERVAL_SECONDS"])

    return app
