# tests/conftest.py
"""
Ce fichier contient les fixtures pytest partagées pour la suite de tests.
Il utilise une base de données SQLite en mémoire pour des tests isolés,
et fournit des clients déjà connectés pour chacun des trois rôles.
"""

import datetime
import logging
from sqlite3 import Connection as SQLite3Connection

import pytest
from sqlalchemy import event
from sqlalchemy.engine import Engine

from evaluation_rh import create_app
from evaluation_rh.contexte import ContexteSession
from evaluation_rh.extensions import db as _db
from evaluation_rh.models import (
    ROLE_ADMIN,
    ROLE_ASSISTANT,
    ROLE_CHEF_DE_MISSION,
    Feedback,
    Saison,
    User,
)

# Configuration du logging pour voir les messages de diagnostic
logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

MOT_DE_PASSE = "motdepasse123"


# S'applique à tous les moteurs SQLAlchemy créés après le chargement de ce module.
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Active les contraintes de clé étrangère pour les connexions SQLite."""
    if isinstance(dbapi_connection, SQLite3Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
def app():
    """
    Crée une nouvelle instance de l'application POUR CHAQUE TEST.
    C'est la clé de l'isolation.
    """
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "WTF_CSRF_ENABLED": False,
            "OPENAI_API_KEY": "sk-test",
        }
    )

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Fixture pour obtenir un client de test Flask."""
    return app.test_client()


@pytest.fixture
def db(app):
    """Fixture qui fournit l'objet de base de données."""
    return _db


def creer_utilisateur(db, email, role, first_name="Prénom", last_name="Nom"):
    user = User(email=email, first_name=first_name, last_name=last_name, role=role)
    user.set_password(MOT_DE_PASSE)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def sample_data(db):
    """
    Peuple la base avec un utilisateur par niveau de la hiérarchie (plus un
    second assistant et un second chef de mission) et une saison active.
    """
    admin = creer_utilisateur(db, "admin@fiduaudit.com", ROLE_ADMIN, "Marie", "Dupont")
    chef = creer_utilisateur(db, "chef@fiduaudit.com", ROLE_CHEF_DE_MISSION, "Pierre", "Martin")
    autre_chef = creer_utilisateur(db, "chef2@fiduaudit.com", ROLE_CHEF_DE_MISSION, "Claire", "Aubert")
    assistant = creer_utilisateur(db, "assistant1@fiduaudit.com", ROLE_ASSISTANT, "Sophie", "Bernard")
    autre_assistant = creer_utilisateur(db, "assistant2@fiduaudit.com", ROLE_ASSISTANT, "Lucas", "Petit")

    saison = Saison(name="Saison 2024/2025", start_date=datetime.date(2024, 9, 1), end_date=datetime.date(2025, 6, 30))
    db.session.add(saison)
    db.session.commit()

    return {
        "admin": admin,
        "chef": chef,
        "autre_chef": autre_chef,
        "assistant": assistant,
        "autre_assistant": autre_assistant,
        "saison": saison,
    }


@pytest.fixture
def feedback_du_chef(db, sample_data):
    """Un feedback rédigé par le chef de mission sur le premier assistant."""
    feedback = Feedback(
        content="Très bonne tenue du dossier de révision.",
        mission="Audit Alpha",
        author_id=sample_data["chef"].id,
        collaborator_id=sample_data["assistant"].id,
        saison_id=sample_data["saison"].id,
        created_at=datetime.datetime(2024, 11, 5, 10, 0),
    )
    db.session.add(feedback)
    db.session.commit()
    return feedback


def contexte_de(user):
    return ContexteSession.depuis_utilisateur(user)


def _connecter(client, email):
    client.post("/auth/login", data={"email": email, "password": MOT_DE_PASSE})
    return client


@pytest.fixture
def admin_client(client, sample_data):
    yield _connecter(client, "admin@fiduaudit.com")


@pytest.fixture
def chef_client(client, sample_data):
    yield _connecter(client, "chef@fiduaudit.com")


@pytest.fixture
def assistant_client(client, sample_data):
    yield _connecter(client, "assistant1@fiduaudit.com")
