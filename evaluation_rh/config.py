# evaluation_rh/config.py
"""
Lecture de la configuration depuis les variables d'environnement.

Toute variable requise absente provoque une ConfigurationError au démarrage,
avec la liste des variables manquantes, avant que la moindre requête ne soit
servie.
"""

import os
from typing import Any

from .services import ConfigurationError
from .synthese import MODELE_PAR_DEFAUT, URL_API_PAR_DEFAUT


def get_database_uri() -> str:
    """Construit l'URI de la base de données pour SQLAlchemy en se basant sur FLASK_ENV."""
    if database_url := os.environ.get("DATABASE_URL"):
        return database_url

    flask_env = os.environ.get("FLASK_ENV", "production")
    prefix = {"development": "DEV_", "test": "TEST_"}.get(flask_env, "PROD_")

    db_host = os.environ.get(f"{prefix}PGHOST")
    db_name = os.environ.get(f"{prefix}PGDATABASE")
    db_user = os.environ.get(f"{prefix}PGUSER")
    db_pass = os.environ.get(f"{prefix}PGPASSWORD")
    db_port = os.environ.get(f"{prefix}PGPORT", "5432")

    if not all([db_host, db_name, db_user, db_pass]):
        missing_vars = [
            var
            for var, val in {
                f"{prefix}PGHOST": db_host,
                f"{prefix}PGDATABASE": db_name,
                f"{prefix}PGUSER": db_user,
                f"{prefix}PGPASSWORD": db_pass,
            }.items()
            if not val
        ]
        raise ConfigurationError(
            f"Variables de BDD manquantes pour l'environnement '{flask_env}' : {', '.join(missing_vars)} (ou DATABASE_URL)."
        )

    return f"postgresql+psycopg2://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"


def get_secret_key() -> str:
    secret_key = os.environ.get("SECRET_KEY")
    if not secret_key:
        if os.environ.get("FLASK_ENV", "production") == "production":
            raise ConfigurationError("La variable SECRET_KEY est requise en production.")
        return "dev"
    return secret_key


def build_config(test_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Assemble la configuration de l'application. Les valeurs fournies par
    `test_config` remplacent celles de l'environnement ; la base de données et
    la clé secrète ne sont alors lues dans l'environnement que si elles manquent.
    """
    test_config = test_config or {}
    config: dict[str, Any] = {
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "OPENAI_API_KEY": os.environ.get("OPENAI_API_KEY"),
        "GENERATION_API_URL": os.environ.get("GENERATION_API_URL", URL_API_PAR_DEFAUT),
        "GENERATION_MODEL": os.environ.get("GENERATION_MODEL", MODELE_PAR_DEFAUT),
        "GENERATION_TIMEOUT": float(os.environ.get("GENERATION_TIMEOUT", "60")),
    }
    if "SQLALCHEMY_DATABASE_URI" not in test_config:
        config["SQLALCHEMY_DATABASE_URI"] = get_database_uri()
    if "SECRET_KEY" not in test_config:
        config["SECRET_KEY"] = get_secret_key()
    config.update(test_config)
    return config
