# evaluation_rh/models.py
"""
Ce module définit les modèles de données de l'application en utilisant SQLAlchemy ORM.

Quatre tables : les utilisateurs (collaborateurs et managers), les saisons,
les feedbacks rédigés au fil de la saison et les rapports annuels. Ces modèles
sont la source de vérité pour la structure de la base de données et sont
utilisés par Flask-Migrate pour générer les scripts de migration.
"""

import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db

ROLE_ADMIN = "ADMIN"
ROLE_CHEF_DE_MISSION = "CHEF_DE_MISSION"
ROLE_ASSISTANT = "ASSISTANT"
ROLES = (ROLE_ADMIN, ROLE_CHEF_DE_MISSION, ROLE_ASSISTANT)

SAISON_ACTIVE = "ACTIVE"
SAISON_ARCHIVEE = "ARCHIVED"
STATUTS_SAISON = (SAISON_ACTIVE, SAISON_ARCHIVEE)

RAPPORT_BROUILLON = "DRAFT"
RAPPORT_VALIDE = "VALIDATED"
STATUTS_RAPPORT = (RAPPORT_BROUILLON, RAPPORT_VALIDE)


def _maintenant() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class User(db.Model, UserMixin):
    """Modèle pour les utilisateurs de l'application (managers et collaborateurs)."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.Text, unique=True, nullable=False)
    first_name = db.Column(db.Text, nullable=False)
    last_name = db.Column(db.Text, nullable=False)
    role = db.Column(db.Text, nullable=False, default=ROLE_ASSISTANT)
    password_hash = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_maintenant)
    updated_at = db.Column(db.DateTime, nullable=False, default=_maintenant, onupdate=_maintenant)

    # Relations
    feedbacks_recus = db.relationship(
        "Feedback", foreign_keys="Feedback.collaborator_id", back_populates="collaborator", cascade="all, delete"
    )
    feedbacks_rediges = db.relationship("Feedback", foreign_keys="Feedback.author_id", back_populates="author", cascade="all, delete")
    rapports_recus = db.relationship("Rapport", foreign_keys="Rapport.collaborator_id", back_populates="collaborator", cascade="all, delete")
    rapports_rediges = db.relationship("Rapport", foreign_keys="Rapport.author_id", back_populates="author", cascade="all, delete")

    __table_args__ = (db.CheckConstraint(f"role IN {ROLES}", name="users_role_check"),)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def nom_complet(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Saison(db.Model):
    """Modèle pour les saisons (périodes d'évaluation)."""

    __tablename__ = "saisons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.Text, nullable=False, default=SAISON_ACTIVE)
    created_at = db.Column(db.DateTime, nullable=False, default=_maintenant)

    # Relations
    feedbacks = db.relationship("Feedback", back_populates="saison", cascade="all, delete-orphan")
    rapports = db.relationship("Rapport", back_populates="saison", cascade="all, delete-orphan")

    __table_args__ = (db.CheckConstraint(f"status IN {STATUTS_SAISON}", name="saisons_status_check"),)


class Feedback(db.Model):
    """Modèle pour les feedbacks rédigés par un manager sur un collaborateur."""

    __tablename__ = "feedbacks"

    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    collaborator_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    saison_id = db.Column(db.Integer, db.ForeignKey("saisons.id", ondelete="CASCADE"), nullable=False)
    mission = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=_maintenant)
    updated_at = db.Column(db.DateTime, nullable=False, default=_maintenant, onupdate=_maintenant)

    # Relations
    author = db.relationship("User", foreign_keys=[author_id], back_populates="feedbacks_rediges")
    collaborator = db.relationship("User", foreign_keys=[collaborator_id], back_populates="feedbacks_recus")
    saison = db.relationship("Saison", back_populates="feedbacks")

    __table_args__ = (db.CheckConstraint("author_id <> collaborator_id", name="feedbacks_author_collaborator_check"),)


class Rapport(db.Model):
    """Modèle pour les rapports d'évaluation annuelle."""

    __tablename__ = "rapports"

    id = db.Column(db.Integer, primary_key=True)
    collaborator_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    saison_id = db.Column(db.Integer, db.ForeignKey("saisons.id", ondelete="CASCADE"), nullable=False)
    content = db.Column(db.Text)
    status = db.Column(db.Text, nullable=False, default=RAPPORT_BROUILLON)
    generated_at = db.Column(db.DateTime)
    updated_at = db.Column(db.DateTime, nullable=False, default=_maintenant, onupdate=_maintenant)

    # Relations
    collaborator = db.relationship("User", foreign_keys=[collaborator_id], back_populates="rapports_recus")
    author = db.relationship("User", foreign_keys=[author_id], back_populates="rapports_rediges")
    saison = db.relationship("Saison", back_populates="rapports")

    __table_args__ = (
        db.UniqueConstraint("collaborator_id", "saison_id", name="rapports_collaborator_saison_key"),
        db.CheckConstraint(f"status IN {STATUTS_RAPPORT}", name="rapports_status_check"),
    )
