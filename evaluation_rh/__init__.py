# evaluation_rh/__init__.py
"""
Ce module est le cœur de l'application (paquet).
Il contient la factory de l'application `create_app`.
"""

import datetime
from typing import Any

from flask import Flask, flash, g, jsonify, redirect, request, url_for
from werkzeug.wrappers import Response

from . import politique
from .config import build_config
from .contexte import contexte_courant
from .extensions import csrf, db, login_manager, migrate
from .models import User

# Chemins servis en JSON (API et fonction de génération).
PREFIXES_API = ("/api/", "/admin/api/", "/functions/")


def load_session_context() -> None:
    """Construit le contexte de session explicite pour la requête en cours."""
    g.contexte = contexte_courant()


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    """Crée et configure une instance de l'application Flask (Application Factory)."""
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(build_config(test_config))

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Veuillez vous connecter pour accéder à cette page."
    login_manager.login_message_category = "info"

    @login_manager.unauthorized_handler
    def unauthorized_callback() -> tuple[Response, int] | Response:
        if request.path.startswith(PREFIXES_API):
            return jsonify({"success": False, "message": "Authentification requise."}), 401
        flash("Veuillez vous connecter pour accéder à cette page.", "info")
        return redirect(url_for("auth.login"))

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        return db.session.get(User, int(user_id))

    app.before_request(load_session_context)

    @app.context_processor
    def inject_global_data() -> dict[str, Any]:
        return {
            "contexte": getattr(g, "contexte", None),
            "politique": politique,
            "SCRIPT_YEAR": datetime.datetime.now().year,
        }

    from . import admin, api, auth, generation, views

    app.register_blueprint(auth.bp)
    app.register_blueprint(views.bp)
    app.add_url_rule("/", endpoint="index")
    app.register_blueprint(admin.bp)
    app.register_blueprint(api.bp)
    app.register_blueprint(generation.bp)
    csrf.exempt(generation.bp)

    from . import commands

    commands.init_app(app)

    app.logger.info("Application d'évaluation RH initialisée.")
    return app
