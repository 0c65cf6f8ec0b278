# evaluation_rh/auth.py
"""
Ce module contient le Blueprint pour les routes d'authentification :
connexion, déconnexion, inscription du premier administrateur et changement
de mot de passe.
"""

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.wrappers import Response

from .extensions import db
from .models import User
from .services import (
    ServiceException,
    ValidationError,
    authenticate_service,
    change_password_service,
    register_first_admin_service,
)
from .utils import contexte_requis

bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.route("/login", methods=["GET", "POST"])
def login() -> str | Response:
    if current_user.is_authenticated:
        return redirect(url_for("views.tableau_de_bord"))
    first_user = db.session.query(User).first() is None
    if request.method == "POST":
        user = authenticate_service(request.form.get("email", ""), request.form.get("password", ""))
        if user:
            login_user(user)
            current_app.logger.info(f"Connexion de l'utilisateur ID {user.id} ({user.role}).")
            flash(f"Connexion réussie! Bienvenue, {user.first_name}.", "success")
            return redirect(request.args.get("next") or url_for("views.tableau_de_bord"))
        flash("Email ou mot de passe invalide.", "error")
    return render_template("login.html", first_user=first_user, email=request.form.get("email", ""))


@bp.route("/logout")
def logout() -> Response:
    logout_user()
    flash("Vous avez été déconnecté(e).", "info")
    return redirect(url_for("auth.login"))


@bp.route("/register", methods=["GET", "POST"])
def register() -> str | Response:
    """Gère l'inscription du premier administrateur."""
    user_count = db.session.query(User.id).count()

    if user_count > 0:
        flash("L'inscription publique est désactivée. Un administrateur doit créer les nouveaux comptes.", "warning")
        return redirect(url_for("auth.login"))

    if request.method == "POST":
        try:
            user = register_first_admin_service(
                request.form.get("email", "").strip(),
                request.form.get("first_name", "").strip(),
                request.form.get("last_name", "").strip(),
                request.form.get("password", ""),
                request.form.get("confirm_password", ""),
            )
            db.session.commit()
            flash(f"Compte admin '{user.email}' créé avec succès! Vous pouvez maintenant vous connecter.", "success")
            return redirect(url_for("auth.login"))
        except ValidationError as e:
            db.session.rollback()
            flash(e.message, "error")
        except ServiceException as e:
            db.session.rollback()
            current_app.logger.error(f"Erreur de service lors de l'inscription: {e}")
            flash("Une erreur inattendue est survenue.", "error")

    return render_template("register.html", form=request.form)


@bp.route("/mot-de-passe", methods=["GET", "POST"])
@login_required
def change_password() -> str | Response:
    """Changement du mot de passe de l'utilisateur connecté."""
    success = False
    if request.method == "POST":
        try:
            change_password_service(
                contexte_requis(),
                request.form.get("new_password", ""),
                request.form.get("confirm_password", ""),
            )
            success = True
            flash("Mot de passe modifié avec succès.", "success")
        except ValidationError as e:
            flash(e.message, "error")
        except ServiceException as e:
            current_app.logger.error(f"Erreur lors du changement de mot de passe: {e}", exc_info=True)
            flash(e.message or "Erreur lors du changement de mot de passe.", "error")
    return render_template("mot_de_passe.html", success=success)
