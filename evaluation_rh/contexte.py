# evaluation_rh/contexte.py
"""
Contexte de session explicite.

Chaque vue construit un `ContexteSession` à partir de l'utilisateur connecté et
le transmet aux services, au lieu de laisser ceux-ci consulter `current_user`.
Le contexte est créé à la connexion, disparaît à la déconnexion et n'est jamais
modifié en cours de requête.
"""

from dataclasses import dataclass
from typing import Any

from flask_login import current_user


@dataclass(frozen=True)
class ContexteSession:
    user_id: int
    role: str
    email: str
    first_name: str
    last_name: str

    @classmethod
    def depuis_utilisateur(cls, user: Any) -> "ContexteSession":
        return cls(
            user_id=user.id,
            role=user.role,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )

    @property
    def nom_complet(self) -> str:
        return f"{self.first_name} {self.last_name}"


def contexte_courant() -> ContexteSession | None:
    """Retourne le contexte de l'utilisateur connecté, ou None pour une session anonyme."""
    if not current_user.is_authenticated:
        return None
    return ContexteSession.depuis_utilisateur(current_user)
