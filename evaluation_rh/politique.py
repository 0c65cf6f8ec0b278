# evaluation_rh/politique.py
"""
Ce module regroupe les règles de visibilité et de cycle de vie, sous forme de
prédicats purs.

Les écrans les consultent à chaque rendu pour décider quels collaborateurs
lister et quelles actions proposer (modifier un feedback, supprimer un rapport,
accéder à la gestion des utilisateurs et des saisons). Un refus se traduit
simplement par l'absence du bouton : aucune fonction ici ne lève d'exception.

IMPORTANT : ces règles servent l'interface uniquement. La frontière de sécurité
est la couche de services (services.py), qui applique les mêmes règles au
niveau des lignes avant toute lecture ou écriture. Les deux niveaux doivent
rester synchronisés ; ne pas fusionner l'un dans l'autre.
"""

from typing import Any

from .models import (
    RAPPORT_VALIDE,
    ROLE_ADMIN,
    ROLE_ASSISTANT,
    ROLE_CHEF_DE_MISSION,
    STATUTS_RAPPORT,
)

# Hiérarchie linéaire : chaque rôle gère le rôle immédiatement inférieur.
_ROLE_GERE = {
    ROLE_ADMIN: ROLE_CHEF_DE_MISSION,
    ROLE_CHEF_DE_MISSION: ROLE_ASSISTANT,
}


def _attribut(objet: Any, nom: str) -> Any:
    """Lit un attribut sur un modèle ORM ou une clé sur un dictionnaire."""
    if isinstance(objet, dict):
        return objet.get(nom)
    return getattr(objet, nom, None)


def collaborateurs_visibles(role: str | None) -> frozenset[str]:
    """
    Retourne l'ensemble des rôles de collaborateurs visibles pour un rôle donné.

    ADMIN voit les chefs de mission, CHEF_DE_MISSION voit les assistants,
    ASSISTANT (ou un rôle inconnu) ne voit personne.
    """
    role_gere = _ROLE_GERE.get(role or "")
    return frozenset({role_gere}) if role_gere else frozenset()


def peut_voir_collaborateur(role: str | None, role_collaborateur: str | None) -> bool:
    return role_collaborateur in collaborateurs_visibles(role)


def peut_modifier_feedback(acteur_id: int | None, feedback: Any) -> bool:
    """Seul l'auteur d'un feedback peut le modifier ou le supprimer."""
    return acteur_id is not None and acteur_id == _attribut(feedback, "author_id")


def peut_modifier_rapport(acteur_id: int | None, rapport: Any) -> bool:
    """Un rapport inexistant peut être créé ; un rapport existant n'est modifiable que par son auteur."""
    if rapport is None:
        return acteur_id is not None
    return acteur_id is not None and acteur_id == _attribut(rapport, "author_id")


def peut_supprimer_rapport(role: str | None) -> bool:
    return role == ROLE_ADMIN


def peut_gerer_utilisateurs_et_saisons(role: str | None) -> bool:
    return role == ROLE_ADMIN


def transition_statut_autorisee(ancien_statut: str | None, nouveau_statut: str | None) -> bool:
    """
    Le formulaire permet de repasser un rapport validé en brouillon : toute
    transition entre deux statuts valides est acceptée.
    """
    if nouveau_statut not in STATUTS_RAPPORT:
        return False
    return ancien_statut is None or ancien_statut in STATUTS_RAPPORT


def libelle_role(role: str | None) -> str:
    return (role or "").replace("_", " ")


def libelle_statut(statut: str | None) -> str:
    return "Validé" if statut == RAPPORT_VALIDE else "Brouillon"

