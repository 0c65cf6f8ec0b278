# evaluation_rh/extensions.py
"""
Ce module initialise les extensions Flask partagées pour éviter les importations circulaires.

Les objets d'extension (SQLAlchemy, Migrate, CSRFProtect) sont instanciés ici
sans application, puis liés à l'instance Flask dans la factory `create_app`.
Les modèles et les blueprints peuvent ainsi les importer sans dépendre de
__init__.py.
"""

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

# Instance SQLAlchemy, liée à l'application dans la factory.
db = SQLAlchemy()

migrate = Migrate()

csrf = CSRFProtect()

login_manager = LoginManager()
