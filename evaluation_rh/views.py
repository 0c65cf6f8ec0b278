# evaluation_rh/views.py
"""
Ce module définit les vues principales (pages HTML) de l'application :
tableau de bord des collaborateurs à évaluer, dossier d'un collaborateur
(feedbacks et rapport de la saison) et téléchargement du rapport en PDF.
"""

from flask import (
    Blueprint,
    Response,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required

from . import exports
from .services import (
    EntityNotFoundError,
    PermissionDeniedError,
    ServiceException,
    get_collaborateur_service,
    get_collaborateurs_visibles_service,
    get_feedbacks_service,
    get_rapport_service,
    get_saison_active_service,
    get_saison_service,
    get_saisons_actives_service,
)
from .utils import contexte_requis

bp = Blueprint("views", __name__)


@bp.route("/")
def index():
    """Page d'accueil, redirige vers le tableau de bord ou la page de connexion."""
    if current_user.is_authenticated:
        return redirect(url_for("views.tableau_de_bord"))
    return redirect(url_for("auth.login"))


@bp.route("/tableau-de-bord")
@login_required
def tableau_de_bord():
    """Liste des collaborateurs que l'utilisateur connecté évalue."""
    contexte = contexte_requis()
    collaborateurs = []
    saison_active = None
    try:
        saison_active = get_saison_active_service()
        collaborateurs = get_collaborateurs_visibles_service(contexte)
    except ServiceException as e:
        current_app.logger.error(f"Erreur lors du chargement du tableau de bord: {e}", exc_info=True)
        flash(f"Erreur lors de la récupération des données : {e.message}", "error")
    return render_template("tableau_de_bord.html", collaborateurs=collaborateurs, saison_active=saison_active)


@bp.route("/collaborateurs/<int:collaborateur_id>")
@login_required
def page_collaborateur(collaborateur_id: int):
    """Dossier d'un collaborateur : historique des feedbacks et rapport pour la saison choisie."""
    contexte = contexte_requis()
    try:
        collaborateur = get_collaborateur_service(contexte, collaborateur_id)
    except EntityNotFoundError:
        abort(404)
    except PermissionDeniedError as e:
        current_app.logger.warning(f"Accès refusé au collaborateur ID {collaborateur_id} pour l'utilisateur ID {contexte.user_id}.")
        flash(e.message, "error")
        return redirect(url_for("views.tableau_de_bord"))

    saisons = get_saisons_actives_service()
    saison = None
    if saisons:
        saison_id = request.args.get("saison_id", type=int)
        saison = next((s for s in saisons if s["id"] == saison_id), saisons[0])

    feedbacks = []
    rapport = None
    if saison:
        try:
            feedbacks = get_feedbacks_service(contexte, collaborateur_id, saison["id"])
            rapport = get_rapport_service(contexte, collaborateur_id, saison["id"])
        except ServiceException as e:
            current_app.logger.error(f"Erreur lors du chargement de la saison: {e}", exc_info=True)
            flash(f"Erreur lors de la récupération des données : {e.message}", "error")

    return render_template(
        "collaborateur.html",
        collaborateur=collaborateur,
        saisons=saisons,
        saison=saison,
        feedbacks=feedbacks,
        rapport=rapport,
        onglet=request.args.get("onglet", "feedbacks"),
    )


@bp.route("/collaborateurs/<int:collaborateur_id>/rapport.pdf")
@login_required
def telecharger_rapport(collaborateur_id: int):
    """Exporte le rapport du collaborateur pour la saison demandée au format PDF."""
    contexte = contexte_requis()
    saison_id = request.args.get("saison_id", type=int)
    if not saison_id:
        abort(400)
    try:
        collaborateur = get_collaborateur_service(contexte, collaborateur_id)
        saison = get_saison_service(saison_id)
        rapport = get_rapport_service(contexte, collaborateur_id, saison_id)
    except EntityNotFoundError:
        abort(404)
    except PermissionDeniedError:
        abort(403)

    if rapport is None:
        flash("Aucun rapport n'a encore été enregistré pour cette saison.", "warning")
        return redirect(url_for("views.page_collaborateur", collaborateur_id=collaborateur_id, saison_id=saison_id, onglet="rapport"))
    if not (rapport["content"] or "").strip():
        flash("Le rapport est vide", "warning")
        return redirect(url_for("views.page_collaborateur", collaborateur_id=collaborateur_id, saison_id=saison_id, onglet="rapport"))

    mem_file = exports.generer_pdf_rapport(collaborateur, saison, rapport["content"], rapport["status"])
    filename = exports.nom_fichier_rapport(collaborateur, saison)
    current_app.logger.info(f"Génération du fichier d'export '{filename}'.")

    return Response(
        mem_file,
        mimetype="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
