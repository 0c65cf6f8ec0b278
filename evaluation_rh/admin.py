# evaluation_rh/admin.py
"""
Ce module contient le Blueprint pour les routes d'administration.

Il inclut les pages HTML et les points d'API RESTful pour la gestion des
saisons et des comptes utilisateurs, ainsi que l'export Excel du suivi d'une
saison. Toutes les routes sont réservées aux administrateurs ; la couche de
services fait le reste.
"""

from flask import (
    Blueprint,
    current_app,
    flash,
    jsonify,
    render_template,
    request,
)
from flask_login import current_user
from werkzeug.wrappers import Response

from . import exports, services
from .models import ROLES
from .services import EntityNotFoundError, ServiceException
from .utils import admin_api_required, admin_required, reponse_erreur

# Crée un Blueprint 'admin' avec un préfixe d'URL.
bp = Blueprint("admin", __name__, url_prefix="/admin")


# --- ROUTES DES PAGES (HTML) ---


@bp.route("/saisons")
@admin_required
def page_saisons() -> str:
    """Affiche la page de gestion des saisons."""
    try:
        saisons = services.get_all_saisons_service()
    except ServiceException as e:
        flash(f"Erreur lors de la récupération des saisons : {e.message}", "error")
        saisons = []
    return render_template("admin/saisons.html", saisons=saisons)


@bp.route("/utilisateurs")
@admin_required
def page_utilisateurs() -> str:
    """Affiche la page de gestion des utilisateurs."""
    try:
        users = services.get_all_users_service()
    except ServiceException as e:
        flash(f"Erreur lors de la récupération des utilisateurs : {e.message}", "error")
        users = []
    return render_template("admin/utilisateurs.html", users=users, roles=ROLES)


@bp.route("/saisons/<int:saison_id>/suivi.xlsx")
@admin_required
def export_suivi_saison(saison_id: int):
    """Exporte le suivi des évaluations d'une saison au format Excel."""
    try:
        suivi = services.get_suivi_saison_service(saison_id)
    except EntityNotFoundError as e:
        return jsonify({"success": False, "message": e.message}), 404
    mem_file = exports.generer_export_suivi_saison(suivi)
    nom_saison = "".join(c if c.isalnum() else "_" for c in suivi["saison"]["name"])
    filename = f"suivi_{nom_saison}.xlsx"
    current_app.logger.info(f"Génération du fichier d'export '{filename}'.")

    return Response(
        mem_file,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# --- API ENDPOINTS (JSON) ---

# --- API pour la gestion des saisons ---


@bp.route("/api/saisons", methods=["GET"])
@admin_api_required
def api_get_saisons() -> tuple[Response, int]:
    try:
        return jsonify({"success": True, "saisons": services.get_all_saisons_service()}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/api/saisons/creer", methods=["POST"])
@admin_api_required
def api_creer_saison() -> tuple[Response, int]:
    """API pour créer une nouvelle saison."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        saison = services.create_saison_service(data)
        current_app.logger.info(f"Saison '{saison['name']}' créée avec ID {saison['id']}.")
        return jsonify({"success": True, "message": f"Saison '{saison['name']}' créée.", "saison": saison}), 201
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/api/saisons/<int:saison_id>/modifier", methods=["POST"])
@admin_api_required
def api_modifier_saison(saison_id: int) -> tuple[Response, int]:
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        saison = services.update_saison_service(saison_id, data)
        current_app.logger.info(f"Saison ID {saison_id} mise à jour.")
        return jsonify({"success": True, "message": "Saison mise à jour.", "saison": saison}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/api/saisons/<int:saison_id>/supprimer", methods=["POST"])
@admin_api_required
def api_supprimer_saison(saison_id: int) -> tuple[Response, int]:
    try:
        services.delete_saison_service(saison_id)
        current_app.logger.info(f"Saison ID {saison_id} supprimée par l'utilisateur ID {current_user.id}.")
        return jsonify({"success": True, "message": "Saison supprimée."}), 200
    except ServiceException as e:
        return reponse_erreur(e)


# --- API pour la gestion des utilisateurs ---


@bp.route("/api/utilisateurs", methods=["GET"])
@admin_api_required
def api_get_all_users() -> tuple[Response, int]:
    try:
        users = services.get_all_users_service()
        return jsonify({"success": True, "users": users}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/api/utilisateurs/creer", methods=["POST"])
@admin_api_required
def api_create_user() -> tuple[Response, int]:
    """Crée un compte utilisateur (identifiants et profil)."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        user = services.create_user_service(data)
        current_app.logger.info(f"Utilisateur '{user['email']}' (rôle: {user['role']}) créé avec ID {user['id']}.")
        return jsonify({"success": True, "message": f"Utilisateur '{user['email']}' créé!", "user": user}), 201
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/api/utilisateurs/<int:user_id>/modifier", methods=["POST"])
@admin_api_required
def api_update_user(user_id: int) -> tuple[Response, int]:
    """Met à jour le profil et le rôle d'un utilisateur."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "message": "Données invalides."}), 400
    try:
        user = services.update_user_service(user_id, data)
        current_app.logger.info(f"Profil mis à jour pour l'user ID {user_id} (rôle: {user['role']}).")
        return jsonify({"success": True, "message": "Utilisateur mis à jour.", "user": user}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/api/utilisateurs/<int:user_id>/supprimer", methods=["POST"])
@admin_api_required
def api_delete_user(user_id: int) -> tuple[Response, int]:
    """Supprime un utilisateur."""
    try:
        services.delete_user_service(user_id, current_user.id)
        current_app.logger.info(f"User ID {user_id} supprimé par l'utilisateur '{current_user.email}'.")
        return jsonify({"success": True, "message": "Utilisateur supprimé."}), 200
    except ServiceException as e:
        return reponse_erreur(e)
