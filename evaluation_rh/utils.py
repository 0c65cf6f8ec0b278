# evaluation_rh/utils.py
"""
Décorateurs d'accès et utilitaires de réponse partagés par les blueprints.

Ils vivent hors de __init__.py pour que les blueprints puissent les importer
sans import circulaire. La table `_CODES_HTTP` traduit chaque erreur de
service en code HTTP pour les réponses JSON.
"""

from functools import wraps
from typing import Any, Callable

from flask import flash, g, jsonify, redirect, url_for
from flask_login import current_user
from werkzeug.wrappers import Response

from . import politique
from .contexte import contexte_courant
from .services import (
    ConfigurationError,
    DuplicateEntityError,
    EntityNotFoundError,
    ForeignKeyError,
    PermissionDeniedError,
    ServiceException,
    UpstreamError,
    ValidationError,
)


def contexte_requis() -> Any:
    """Retourne le contexte de session de la requête (construit avant la requête)."""
    contexte = getattr(g, "contexte", None)
    if contexte is None:
        contexte = g.contexte = contexte_courant()
    return contexte


def api_login_required(f: Callable[..., Any]) -> Callable[..., Any]:
    """
    Décorateur pour les routes d'API qui nécessitent une authentification.
    Si l'utilisateur n'est pas connecté, retourne une réponse JSON 401.
    """

    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> tuple[Response, int] | Any:
        if not current_user.is_authenticated:
            return jsonify({"success": False, "message": "Authentification requise."}), 401
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f: Callable[..., Any]) -> Callable[..., Any]:
    """
    Décorateur pour les routes de pages web nécessitant des privilèges d'administrateur.
    Si l'utilisateur n'est pas autorisé, redirige vers le tableau de bord.
    """

    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> Response | Any:
        if not current_user.is_authenticated:
            return redirect(url_for("auth.login"))
        if not politique.peut_gerer_utilisateurs_et_saisons(current_user.role):
            flash(
                "Vous n'avez pas les permissions suffisantes pour accéder à cette page.",
                "error",
            )
            return redirect(url_for("views.tableau_de_bord"))
        return f(*args, **kwargs)

    return decorated_function


def admin_api_required(f: Callable[..., Any]) -> Callable[..., Any]:
    """
    Décorateur pour les routes d'API nécessitant des privilèges d'administrateur.
    Retourne une erreur JSON 401 ou 403 si l'utilisateur n'est pas autorisé.
    """

    @wraps(f)
    def decorated_function(*args: Any, **kwargs: Any) -> tuple[Response, int] | Any:
        if not current_user.is_authenticated:
            return jsonify({"success": False, "message": "Authentification requise."}), 401
        if not politique.peut_gerer_utilisateurs_et_saisons(current_user.role):
            return (
                jsonify({"success": False, "message": "Permissions d'administrateur requises."}),
                403,
            )
        return f(*args, **kwargs)

    return decorated_function


# Code HTTP associé à chaque erreur de service, de la plus spécifique à la plus générale.
_CODES_HTTP: tuple[tuple[type[ServiceException], int], ...] = (
    (EntityNotFoundError, 404),
    (DuplicateEntityError, 409),
    (ForeignKeyError, 409),
    (PermissionDeniedError, 403),
    (ValidationError, 400),
    (UpstreamError, 502),
    (ConfigurationError, 500),
)


def code_http_pour(erreur: ServiceException) -> int:
    for classe, code in _CODES_HTTP:
        if isinstance(erreur, classe):
            return code
    return 500


def reponse_erreur(erreur: ServiceException) -> tuple[Response, int]:
    """Réponse JSON standard pour une erreur de service."""
    message = erreur.message_utilisateur() if isinstance(erreur, UpstreamError) else erreur.message
    return jsonify({"success": False, "message": message}), code_http_pour(erreur)
