# evaluation_rh/api.py
"""
Ce module contient le Blueprint pour les API des écrans d'évaluation
(feedbacks et rapports).

Il agit comme une couche de contrôle, déléguant toute la logique métier à la
couche de services. Il gère la réception des requêtes API, le contexte de
session et le formatage des réponses JSON. Chaque erreur est renvoyée une
seule fois à l'écran appelant ; aucune opération n'est relancée.
"""

from typing import Any

from flask import Blueprint, current_app, jsonify, request
from werkzeug.wrappers import Response

from . import services
from .models import RAPPORT_BROUILLON
from .services import ServiceException, UpstreamError
from .synthese import ClientSynthese
from .utils import api_login_required, contexte_requis, reponse_erreur

bp = Blueprint("api", __name__, url_prefix="/api")


def _entier(data: dict[str, Any], cle: str) -> int | None:
    try:
        return int(data[cle])
    except (KeyError, TypeError, ValueError):
        return None


# --- Feedbacks ---


@bp.route("/collaborateurs/<int:collaborateur_id>/feedbacks", methods=["GET"])
@api_login_required
def api_get_feedbacks(collaborateur_id: int) -> tuple[Response, int]:
    """Liste les feedbacks d'un collaborateur pour une saison (du plus récent au plus ancien)."""
    saison_id = request.args.get("saison_id", type=int)
    if not saison_id:
        return jsonify({"success": False, "message": "Saison manquante."}), 400
    try:
        feedbacks = services.get_feedbacks_service(contexte_requis(), collaborateur_id, saison_id)
        return jsonify({"success": True, "feedbacks": feedbacks}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/feedbacks/creer", methods=["POST"])
@api_login_required
def api_creer_feedback() -> tuple[Response, int]:
    """Crée un feedback sur un collaborateur pour une saison."""
    data = request.get_json(silent=True)
    if not data or not (collaborateur_id := _entier(data, "collaborator_id")) or not (saison_id := _entier(data, "saison_id")):
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        feedback = services.create_feedback_service(contexte_requis(), collaborateur_id, saison_id, data.get("content"), data.get("mission"))
        return jsonify({"success": True, "message": "Feedback ajouté.", "feedback": feedback}), 201
    except ServiceException as e:
        current_app.logger.warning(f"Création de feedback refusée: {e.message}")
        return reponse_erreur(e)


@bp.route("/feedbacks/<int:feedback_id>/modifier", methods=["POST"])
@api_login_required
def api_modifier_feedback(feedback_id: int) -> tuple[Response, int]:
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        feedback = services.update_feedback_service(contexte_requis(), feedback_id, data)
        return jsonify({"success": True, "message": "Feedback modifié.", "feedback": feedback}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/feedbacks/<int:feedback_id>/supprimer", methods=["POST"])
@api_login_required
def api_supprimer_feedback(feedback_id: int) -> tuple[Response, int]:
    try:
        services.delete_feedback_service(contexte_requis(), feedback_id)
        return jsonify({"success": True, "message": "Feedback supprimé.", "feedback_id": feedback_id}), 200
    except ServiceException as e:
        return reponse_erreur(e)


# --- Rapports ---


@bp.route("/collaborateurs/<int:collaborateur_id>/rapport", methods=["GET"])
@api_login_required
def api_get_rapport(collaborateur_id: int) -> tuple[Response, int]:
    saison_id = request.args.get("saison_id", type=int)
    if not saison_id:
        return jsonify({"success": False, "message": "Saison manquante."}), 400
    try:
        rapport = services.get_rapport_service(contexte_requis(), collaborateur_id, saison_id)
        return jsonify({"success": True, "rapport": rapport}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/rapports/enregistrer", methods=["POST"])
@api_login_required
def api_enregistrer_rapport() -> tuple[Response, int]:
    """Crée ou met à jour le rapport d'un collaborateur pour une saison."""
    data = request.get_json(silent=True)
    if not data or not (collaborateur_id := _entier(data, "collaborator_id")) or not (saison_id := _entier(data, "saison_id")):
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        rapport = services.save_rapport_service(
            contexte_requis(),
            collaborateur_id,
            saison_id,
            data.get("content"),
            data.get("status") or RAPPORT_BROUILLON,
            generated=bool(data.get("generated")),
        )
        return jsonify({"success": True, "message": "Rapport enregistré.", "rapport": rapport}), 200
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/rapports/generer", methods=["POST"])
@api_login_required
def api_generer_rapport() -> tuple[Response, int]:
    """
    Génère le texte d'un rapport à partir des feedbacks de la saison. Le texte
    est retourné sans être enregistré ; l'écran l'enregistre via /rapports/enregistrer.
    """
    data = request.get_json(silent=True)
    if not data or not (collaborateur_id := _entier(data, "collaborator_id")) or not (saison_id := _entier(data, "saison_id")):
        return jsonify({"success": False, "message": "Données manquantes."}), 400

    try:
        feedbacks = services.get_feedbacks_service(contexte_requis(), collaborateur_id, saison_id)
        report = ClientSynthese.depuis_config(current_app.config).generer_rapport(feedbacks)
        current_app.logger.info(f"Rapport généré pour le collaborateur ID {collaborateur_id} (saison ID {saison_id}, {len(feedbacks)} feedbacks).")
        return jsonify({"success": True, "report": report}), 200
    except UpstreamError as e:
        current_app.logger.error(f"Erreur du service de génération (status {e.status}): {e.error} - {e.details}")
        return reponse_erreur(e)
    except ServiceException as e:
        return reponse_erreur(e)


@bp.route("/rapports/<int:rapport_id>/supprimer", methods=["POST"])
@api_login_required
def api_supprimer_rapport(rapport_id: int) -> tuple[Response, int]:
    contexte = contexte_requis()
    try:
        services.delete_rapport_service(contexte, rapport_id)
        current_app.logger.info(f"Rapport ID {rapport_id} supprimé par l'utilisateur ID {contexte.user_id}.")
        return jsonify({"success": True, "message": "Rapport supprimé."}), 200
    except ServiceException as e:
        return reponse_erreur(e)
