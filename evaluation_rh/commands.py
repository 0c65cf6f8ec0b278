# evaluation_rh/commands.py
"""
Ce module définit les commandes CLI personnalisées pour l'application Flask.

Ces commandes servent à l'initialisation de la base de données et à la
création des comptes de démonstration. Elles s'exécutent dans le contexte de
l'application, ce qui donne accès à la configuration et à la base.

Pour utiliser les commandes définies ici, exécutez depuis le terminal :
`flask --app evaluation_rh <nom_de_la_commande>`
Par exemple : `flask --app evaluation_rh init-db`
"""

import click
from flask import Flask
from flask.cli import with_appcontext

from .extensions import db
from .models import ROLE_ADMIN, ROLE_ASSISTANT, ROLE_CHEF_DE_MISSION
from .services import DuplicateEntityError, ServiceException, create_user_service

COMPTES_DEMO = [
    {"email": "admin@fiduaudit.com", "password": "Admin123!", "first_name": "Marie", "last_name": "Dupont", "role": ROLE_ADMIN},
    {"email": "chef@fiduaudit.com", "password": "Chef123!", "first_name": "Pierre", "last_name": "Martin", "role": ROLE_CHEF_DE_MISSION},
    {"email": "assistant1@fiduaudit.com", "password": "Assistant123!", "first_name": "Sophie", "last_name": "Bernard", "role": ROLE_ASSISTANT},
    {"email": "assistant2@fiduaudit.com", "password": "Assistant123!", "first_name": "Lucas", "last_name": "Petit", "role": ROLE_ASSISTANT},
]


@click.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """
    Crée les tables de la base de données à partir des modèles.

    Les tables existantes sont conservées ; utiliser Flask-Migrate
    (`flask db upgrade`) pour faire évoluer un schéma déjà en place.
    """
    click.echo("--- Début de l'initialisation de la base de données ---")
    db.create_all()
    click.secho("Les tables ont été créées avec succès.", fg="green")


@click.command("seed-users")
@with_appcontext
def seed_users_command() -> None:
    """Crée les comptes de démonstration (un admin, un chef de mission, deux assistants)."""
    click.echo("Création des comptes de démonstration...")
    for compte in COMPTES_DEMO:
        try:
            user = create_user_service(compte)
            click.secho(f"  {user['role']}: {user['email']} créé (ID {user['id']}).", fg="green")
        except DuplicateEntityError:
            click.secho(f"  {compte['email']} existe déjà, ignoré.", fg="yellow")
        except ServiceException as e:
            click.secho(f"  Erreur pour {compte['email']} : {e.message}", fg="red")


def init_app(app: Flask) -> None:
    """
    Enregistre les commandes CLI auprès de l'instance de l'application Flask.

    Args:
        app: L'instance de l'application Flask.
    """
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_users_command)
