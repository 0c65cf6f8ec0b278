# evaluation_rh/services.py
"""
Ce module contient la logique métier de l'application (couche de services).

Il découple les règles de gestion des routes Flask (contrôleurs). Chaque
fonction réalise une seule opération sur une seule entité (lecture filtrée,
création, mise à jour partielle ou suppression), valide ou annule sa propre
transaction, et retourne des dictionnaires prêts à être sérialisés.

C'est aussi ici que s'appliquent les règles d'accès au niveau des lignes :
qui peut lire quel collaborateur, qui peut modifier quel feedback, qui peut
supprimer un rapport. Les prédicats de politique.py ne servent qu'à l'affichage ;
les contrôles ci-dessous sont ceux qui font foi.
"""

import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from . import politique
from .contexte import ContexteSession
from .extensions import db
from .models import (
    ROLE_ADMIN,
    ROLE_ASSISTANT,
    ROLE_CHEF_DE_MISSION,
    ROLES,
    SAISON_ACTIVE,
    STATUTS_SAISON,
    Feedback,
    Rapport,
    Saison,
    User,
)

LONGUEUR_MIN_MOT_DE_PASSE = 8


# --- Exceptions Personnalisées pour la Couche de Service ---
class ServiceException(Exception):
    """Exception de base pour les erreurs de la couche de service."""

    def __init__(self, message="Une erreur est survenue."):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(ServiceException):
    """Levée lorsqu'un paramètre de configuration requis est absent."""

    def __init__(self, message="Configuration manquante."):
        super().__init__(message)


class ValidationError(ServiceException):
    """Levée lorsqu'une saisie est invalide (champ requis vide, mot de passe trop court...)."""

    def __init__(self, message="Données invalides."):
        super().__init__(message)


class NoInputError(ValidationError):
    """Levée lorsqu'une génération de rapport est demandée sans aucun feedback."""

    def __init__(self, message="Aucun feedback disponible pour générer le rapport."):
        super().__init__(message)


class StoreError(ServiceException):
    """Erreur de persistance (contrainte, permission, entité introuvable)."""

    def __init__(self, message="Erreur lors de l'accès aux données."):
        super().__init__(message)


class EntityNotFoundError(StoreError):
    """Levée lorsqu'une entité n'est pas trouvée."""

    def __init__(self, message="L'entité n'a pas été trouvée."):
        super().__init__(message)


class DuplicateEntityError(StoreError):
    """Levée lors d'une tentative de création d'une entité qui existe déjà."""

    def __init__(self, message="Cette entité existe déjà."):
        super().__init__(message)


class ForeignKeyError(StoreError):
    """Levée lorsqu'une opération est bloquée par une contrainte de clé étrangère."""

    def __init__(self, message="Opération impossible, cette entité est référencée ailleurs."):
        super().__init__(message)


class PermissionDeniedError(StoreError):
    """Levée lorsqu'une règle d'accès au niveau des lignes refuse l'opération."""

    def __init__(self, message="Opération non autorisée."):
        super().__init__(message)


class UpstreamError(ServiceException):
    """Levée lorsque le service de génération de texte répond en erreur."""

    def __init__(self, status: int | None, error: str, details: str | None = None):
        self.status = status
        self.error = error
        self.details = details
        super().__init__(error)

    def message_utilisateur(self) -> str:
        if self.details:
            return f"{self.error}\n\nDétails: {self.details}\nStatus: {self.status}"
        return self.error


# --- Sérialisation ---
def _iso(valeur: datetime.date | datetime.datetime | None) -> str | None:
    return valeur.isoformat() if valeur else None


def _user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def _saison_to_dict(saison: Saison) -> dict[str, Any]:
    return {
        "id": saison.id,
        "name": saison.name,
        "start_date": _iso(saison.start_date),
        "end_date": _iso(saison.end_date),
        "status": saison.status,
        "created_at": _iso(saison.created_at),
    }


def _feedback_to_dict(feedback: Feedback) -> dict[str, Any]:
    return {
        "id": feedback.id,
        "content": feedback.content,
        "author_id": feedback.author_id,
        "collaborator_id": feedback.collaborator_id,
        "saison_id": feedback.saison_id,
        "mission": feedback.mission,
        "created_at": _iso(feedback.created_at),
        "updated_at": _iso(feedback.updated_at),
        "author": _user_to_dict(feedback.author),
    }


def _rapport_to_dict(rapport: Rapport) -> dict[str, Any]:
    return {
        "id": rapport.id,
        "collaborator_id": rapport.collaborator_id,
        "author_id": rapport.author_id,
        "saison_id": rapport.saison_id,
        "content": rapport.content,
        "status": rapport.status,
        "generated_at": _iso(rapport.generated_at),
        "updated_at": _iso(rapport.updated_at),
    }


def _parse_date(valeur: Any, libelle: str) -> datetime.date:
    if isinstance(valeur, datetime.date):
        return valeur
    try:
        return datetime.date.fromisoformat(str(valeur).strip())
    except ValueError:
        raise ValidationError(f"La date '{libelle}' est invalide (format attendu AAAA-MM-JJ).")


def _maintenant() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def _commit(message_erreur: str) -> None:
    """Valide la session ; toute erreur annule la transaction et est traduite en erreur de persistance."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if "foreign key" in str(e.orig).lower():
            raise ForeignKeyError(f"{message_erreur}: référence invalide ({e.orig}).")
        raise StoreError(f"{message_erreur}: violation de contrainte ({e.orig}).")
    except Exception as e:
        db.session.rollback()
        raise StoreError(f"{message_erreur}: {e}")


# --- Services - Utilisateurs et authentification ---
def _valider_mot_de_passe(password: str, confirm_password: str | None = None) -> None:
    if len(password or "") < LONGUEUR_MIN_MOT_DE_PASSE:
        raise ValidationError(f"Le mot de passe doit contenir au moins {LONGUEUR_MIN_MOT_DE_PASSE} caractères.")
    if confirm_password is not None and password != confirm_password:
        raise ValidationError("Les mots de passe ne correspondent pas.")


def register_first_admin_service(email: str, first_name: str, last_name: str, password: str, confirm_password: str) -> User:
    """
    Gère la logique d'inscription du premier admin.
    Lève des exceptions et retourne l'objet User prêt à être commit.
    """
    if db.session.query(User.id).count() > 0:
        raise ValidationError("L'inscription n'est autorisée que pour le premier utilisateur.")

    if not all([email, first_name, last_name, password, confirm_password]):
        raise ValidationError("Tous les champs sont requis.")
    _valider_mot_de_passe(password, confirm_password)

    new_admin = User(email=email.lower(), first_name=first_name, last_name=last_name, role=ROLE_ADMIN)
    new_admin.set_password(password)

    db.session.add(new_admin)
    return new_admin


def authenticate_service(email: str, password: str) -> User | None:
    """Retourne l'utilisateur si les identifiants sont valides, None sinon."""
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if user and user.check_password(password):
        return user
    return None


def change_password_service(contexte: ContexteSession, password: str, confirm_password: str) -> None:
    """Met à jour le mot de passe de l'utilisateur connecté."""
    _valider_mot_de_passe(password, confirm_password)

    user = db.session.get(User, contexte.user_id)
    if not user:
        raise EntityNotFoundError("Utilisateur non trouvé.")
    user.set_password(password)
    _commit("Le changement de mot de passe a échoué")


def get_all_users_service() -> list[dict[str, Any]]:
    """Récupère tous les utilisateurs, triés par nom de famille."""
    users = db.session.query(User).order_by(User.last_name.asc(), User.first_name.asc()).all()
    return [_user_to_dict(u) for u in users]


def create_user_service(data: dict[str, Any]) -> dict[str, Any]:
    """Crée un nouveau compte utilisateur avec son profil."""
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    first_name = (data.get("first_name") or "").strip()
    last_name = (data.get("last_name") or "").strip()
    role = data.get("role") or ROLE_ASSISTANT

    if not all([email, password, first_name, last_name]):
        raise ValidationError("Veuillez remplir tous les champs.")
    if role not in ROLES:
        raise ValidationError(f"Rôle inconnu : '{role}'.")
    _valider_mot_de_passe(password)

    if db.session.query(User).filter_by(email=email).first():
        raise DuplicateEntityError(f"Un compte existe déjà pour l'adresse '{email}'.")

    new_user = User(email=email, first_name=first_name, last_name=last_name, role=role)
    new_user.set_password(password)

    try:
        db.session.add(new_user)
        db.session.commit()
        return _user_to_dict(new_user)
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEntityError(f"Un compte existe déjà pour l'adresse '{email}'.")
    except Exception as e:
        db.session.rollback()
        raise StoreError(f"Erreur ORM lors de la création de l'utilisateur: {e}")


def update_user_service(user_id: int, data: dict[str, Any]) -> dict[str, Any]:
    """Met à jour partiellement le profil (prénom, nom, email, rôle) d'un utilisateur."""
    user = db.session.get(User, user_id)
    if not user:
        raise EntityNotFoundError("Utilisateur non trouvé.")

    for champ in ("first_name", "last_name"):
        if champ in data:
            valeur = (data[champ] or "").strip()
            if not valeur:
                raise ValidationError("Le prénom et le nom ne peuvent pas être vides.")
            setattr(user, champ, valeur)

    if "email" in data:
        email = (data["email"] or "").strip().lower()
        if not email:
            raise ValidationError("L'adresse email ne peut pas être vide.")
        if db.session.query(User).filter(User.email == email, User.id != user_id).first():
            raise DuplicateEntityError(f"Un compte existe déjà pour l'adresse '{email}'.")
        user.email = email

    if "role" in data:
        if data["role"] not in ROLES:
            raise ValidationError(f"Rôle inconnu : '{data['role']}'.")
        if user.role == ROLE_ADMIN and data["role"] != ROLE_ADMIN:
            admin_count = db.session.query(User).filter_by(role=ROLE_ADMIN).count()
            if admin_count <= 1:
                raise ValidationError("Impossible de retirer le rôle du dernier administrateur.")
        user.role = data["role"]

    _commit("La mise à jour de l'utilisateur a échoué")
    return _user_to_dict(user)


def delete_user_service(user_id_to_delete: int, current_user_id: int) -> None:
    """Supprime un utilisateur, avec des vérifications de règles métier."""
    if user_id_to_delete == current_user_id:
        raise PermissionDeniedError("Vous ne pouvez pas vous supprimer vous-même.")

    user_to_delete = db.session.get(User, user_id_to_delete)
    if not user_to_delete:
        raise EntityNotFoundError("Utilisateur non trouvé.")

    if user_to_delete.role == ROLE_ADMIN:
        admin_count = db.session.query(User).filter_by(role=ROLE_ADMIN).count()
        if admin_count <= 1:
            raise PermissionDeniedError("Impossible de supprimer le dernier administrateur.")

    db.session.delete(user_to_delete)
    _commit("La suppression de l'utilisateur a échoué")


# --- Services - Saisons ---
def get_all_saisons_service() -> list[dict[str, Any]]:
    """Récupère toutes les saisons, de la plus récente à la plus ancienne."""
    saisons = db.session.query(Saison).order_by(Saison.start_date.desc(), Saison.id.desc()).all()
    return [_saison_to_dict(s) for s in saisons]


def get_saisons_actives_service() -> list[dict[str, Any]]:
    saisons = db.session.query(Saison).filter_by(status=SAISON_ACTIVE).order_by(Saison.start_date.desc(), Saison.id.desc()).all()
    return [_saison_to_dict(s) for s in saisons]


def get_saison_active_service() -> dict[str, Any] | None:
    """
    Retourne la saison active. Par convention il n'y en a qu'une ; si plusieurs
    sont actives, la plus récente (date de début) est retenue.
    """
    saisons = get_saisons_actives_service()
    return saisons[0] if saisons else None


def get_saison_service(saison_id: int) -> dict[str, Any]:
    saison = db.session.get(Saison, saison_id)
    if not saison:
        raise EntityNotFoundError("Saison non trouvée.")
    return _saison_to_dict(saison)


def _appliquer_champs_saison(saison: Saison, data: dict[str, Any]) -> None:
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise ValidationError("Le nom de la saison est requis.")
        saison.name = name
    if "start_date" in data:
        saison.start_date = _parse_date(data["start_date"], "début")
    if "end_date" in data:
        saison.end_date = _parse_date(data["end_date"], "fin")
    if "status" in data:
        if data["status"] not in STATUTS_SAISON:
            raise ValidationError(f"Statut de saison inconnu : '{data['status']}'.")
        saison.status = data["status"]
    if saison.start_date and saison.end_date and saison.end_date < saison.start_date:
        raise ValidationError("La date de fin doit être postérieure à la date de début.")


def create_saison_service(data: dict[str, Any]) -> dict[str, Any]:
    """Crée une nouvelle saison (ACTIVE par défaut)."""
    if not all(data.get(k) for k in ("name", "start_date", "end_date")):
        raise ValidationError("Le nom et les dates de la saison sont requis.")

    saison = Saison(status=SAISON_ACTIVE)
    _appliquer_champs_saison(saison, data)

    db.session.add(saison)
    _commit("Erreur de base de données lors de la création de la saison")
    return _saison_to_dict(saison)


def update_saison_service(saison_id: int, data: dict[str, Any]) -> dict[str, Any]:
    saison = db.session.get(Saison, saison_id)
    if not saison:
        raise EntityNotFoundError("Saison non trouvée.")
    try:
        _appliquer_champs_saison(saison, data)
    except ValidationError:
        db.session.rollback()
        raise
    _commit("Erreur de base de données lors de la mise à jour de la saison")
    return _saison_to_dict(saison)


def delete_saison_service(saison_id: int) -> None:
    """Supprime une saison ainsi que ses feedbacks et rapports."""
    saison = db.session.get(Saison, saison_id)
    if not saison:
        raise EntityNotFoundError("Saison non trouvée.")
    db.session.delete(saison)
    _commit("La suppression de la saison a échoué")


# --- Services - Collaborateurs ---
def get_collaborateurs_visibles_service(contexte: ContexteSession) -> list[dict[str, Any]]:
    """Liste les collaborateurs que l'utilisateur connecté évalue, triés par nom."""
    roles = politique.collaborateurs_visibles(contexte.role)
    if not roles:
        return []
    users = db.session.query(User).filter(User.role.in_(roles)).order_by(User.last_name.asc(), User.first_name.asc()).all()
    return [_user_to_dict(u) for u in users]


def _get_collaborateur_autorise(contexte: ContexteSession, collaborateur_id: int) -> User:
    collaborateur = db.session.get(User, collaborateur_id)
    if not collaborateur:
        raise EntityNotFoundError("Collaborateur non trouvé.")
    if not politique.peut_voir_collaborateur(contexte.role, collaborateur.role):
        raise PermissionDeniedError("Vous n'êtes pas autorisé à consulter ce collaborateur.")
    return collaborateur


def get_collaborateur_service(contexte: ContexteSession, collaborateur_id: int) -> dict[str, Any]:
    return _user_to_dict(_get_collaborateur_autorise(contexte, collaborateur_id))


def _get_saison_existante(saison_id: int) -> Saison:
    saison = db.session.get(Saison, saison_id)
    if not saison:
        raise EntityNotFoundError("Saison non trouvée.")
    return saison


# --- Services - Feedbacks ---
def get_feedbacks_service(contexte: ContexteSession, collaborateur_id: int, saison_id: int) -> list[dict[str, Any]]:
    """Récupère les feedbacks d'un collaborateur pour une saison, du plus récent au plus ancien."""
    _get_collaborateur_autorise(contexte, collaborateur_id)
    feedbacks = (
        db.session.query(Feedback)
        .options(joinedload(Feedback.author))
        .filter_by(collaborator_id=collaborateur_id, saison_id=saison_id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )
    return [_feedback_to_dict(f) for f in feedbacks]


def _valider_contenu(content: Any) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Le contenu du feedback est requis.")
    return content


def create_feedback_service(contexte: ContexteSession, collaborateur_id: int, saison_id: int, content: str, mission: str | None = None) -> dict[str, Any]:
    """Crée un feedback rédigé par l'utilisateur connecté."""
    content = _valider_contenu(content)
    collaborateur = _get_collaborateur_autorise(contexte, collaborateur_id)
    if collaborateur.id == contexte.user_id:
        raise ValidationError("L'auteur et le collaborateur d'un feedback doivent être différents.")
    _get_saison_existante(saison_id)

    feedback = Feedback(
        content=content,
        mission=(mission or "").strip() or None,
        author_id=contexte.user_id,
        collaborator_id=collaborateur.id,
        saison_id=saison_id,
    )
    db.session.add(feedback)
    _commit("Erreur lors de la création du feedback")
    return _feedback_to_dict(feedback)


def _get_feedback_de_l_auteur(contexte: ContexteSession, feedback_id: int) -> Feedback:
    feedback = db.session.get(Feedback, feedback_id)
    if not feedback:
        raise EntityNotFoundError("Feedback non trouvé.")
    if not politique.peut_modifier_feedback(contexte.user_id, feedback):
        raise PermissionDeniedError("Seul l'auteur d'un feedback peut le modifier ou le supprimer.")
    return feedback


def update_feedback_service(contexte: ContexteSession, feedback_id: int, data: dict[str, Any]) -> dict[str, Any]:
    """Met à jour partiellement un feedback : seuls les champs présents dans `data` sont modifiés."""
    content = _valider_contenu(data["content"]) if "content" in data else None
    feedback = _get_feedback_de_l_auteur(contexte, feedback_id)
    if content is not None:
        feedback.content = content
    if "mission" in data:
        feedback.mission = (data["mission"] or "").strip() or None
    _commit("Erreur lors de la modification du feedback")
    return _feedback_to_dict(feedback)


def delete_feedback_service(contexte: ContexteSession, feedback_id: int) -> None:
    feedback = _get_feedback_de_l_auteur(contexte, feedback_id)
    db.session.delete(feedback)
    _commit("Erreur lors de la suppression du feedback")


# --- Services - Rapports ---
def get_rapport_service(contexte: ContexteSession, collaborateur_id: int, saison_id: int) -> dict[str, Any] | None:
    """Retourne le rapport du collaborateur pour la saison, ou None s'il n'existe pas encore."""
    _get_collaborateur_autorise(contexte, collaborateur_id)
    rapport = db.session.query(Rapport).filter_by(collaborator_id=collaborateur_id, saison_id=saison_id).first()
    return _rapport_to_dict(rapport) if rapport else None


def save_rapport_service(
    contexte: ContexteSession,
    collaborateur_id: int,
    saison_id: int,
    content: str | None,
    status: str,
    generated: bool = False,
) -> dict[str, Any]:
    """
    Enregistre le rapport d'un collaborateur pour une saison : mise à jour s'il
    existe déjà, création sinon. Un enregistrement identique au contenu en base
    ne modifie rien.
    """
    rapport = db.session.query(Rapport).filter_by(collaborator_id=collaborateur_id, saison_id=saison_id).first()
    if not politique.transition_statut_autorisee(rapport.status if rapport else None, status):
        raise ValidationError(f"Statut de rapport inconnu : '{status}'.")
    _get_collaborateur_autorise(contexte, collaborateur_id)
    _get_saison_existante(saison_id)

    if rapport:
        if not politique.peut_modifier_rapport(contexte.user_id, rapport):
            raise PermissionDeniedError("Seul l'auteur du rapport peut le modifier.")
        if rapport.content == content and rapport.status == status and not generated:
            return _rapport_to_dict(rapport)
        rapport.content = content
        rapport.status = status
        rapport.updated_at = _maintenant()
    else:
        rapport = Rapport(
            collaborator_id=collaborateur_id,
            author_id=contexte.user_id,
            saison_id=saison_id,
            content=content,
            status=status,
        )
        db.session.add(rapport)

    if generated:
        rapport.generated_at = _maintenant()

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEntityError("Un rapport existe déjà pour ce collaborateur et cette saison.")
    except Exception as e:
        db.session.rollback()
        raise StoreError(f"Erreur lors de la sauvegarde du rapport: {e}")
    return _rapport_to_dict(rapport)


def delete_rapport_service(contexte: ContexteSession, rapport_id: int) -> None:
    """Supprime un rapport ; réservé aux administrateurs."""
    if not politique.peut_supprimer_rapport(contexte.role):
        raise PermissionDeniedError("Seul un administrateur peut supprimer un rapport.")
    rapport = db.session.get(Rapport, rapport_id)
    if not rapport:
        raise EntityNotFoundError("Rapport non trouvé.")
    db.session.delete(rapport)
    _commit("Erreur lors de la suppression du rapport")


# --- Services - Suivi de saison (export) ---
def get_suivi_saison_service(saison_id: int) -> dict[str, Any]:
    """
    Rassemble, pour une saison, l'état d'avancement de chaque collaborateur évalué :
    nombre de feedbacks reçus et statut de son rapport.
    """
    saison = _get_saison_existante(saison_id)

    nb_feedbacks = dict(
        db.session.query(Feedback.collaborator_id, func.count(Feedback.id))
        .filter(Feedback.saison_id == saison_id)
        .group_by(Feedback.collaborator_id)
        .all()
    )
    rapports = {
        r.collaborator_id: r
        for r in db.session.query(Rapport).options(joinedload(Rapport.author)).filter_by(saison_id=saison_id).all()
    }
    collaborateurs = (
        db.session.query(User)
        .filter(User.role.in_([ROLE_CHEF_DE_MISSION, ROLE_ASSISTANT]))
        .order_by(User.role.desc(), User.last_name.asc(), User.first_name.asc())
        .all()
    )

    lignes = []
    for collaborateur in collaborateurs:
        rapport = rapports.get(collaborateur.id)
        lignes.append(
            {
                "last_name": collaborateur.last_name,
                "first_name": collaborateur.first_name,
                "role": politique.libelle_role(collaborateur.role),
                "nb_feedbacks": nb_feedbacks.get(collaborateur.id, 0),
                "statut_rapport": politique.libelle_statut(rapport.status) if rapport else "Aucun rapport",
                "auteur_rapport": rapport.author.nom_complet if rapport else "",
                "mis_a_jour": rapport.updated_at if rapport else None,
            }
        )
    return {"saison": _saison_to_dict(saison), "lignes": lignes}
