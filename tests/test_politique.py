# tests/test_politique.py
"""
Tests des prédicats de visibilité et de cycle de vie (fonctions pures, sans BDD).
"""

import pytest

from evaluation_rh import politique
from evaluation_rh.models import (
    RAPPORT_BROUILLON,
    RAPPORT_VALIDE,
    ROLE_ADMIN,
    ROLE_ASSISTANT,
    ROLE_CHEF_DE_MISSION,
)


@pytest.mark.parametrize(
    "role, attendu",
    [
        (ROLE_ADMIN, {ROLE_CHEF_DE_MISSION}),
        (ROLE_CHEF_DE_MISSION, {ROLE_ASSISTANT}),
        (ROLE_ASSISTANT, set()),
        (None, set()),
        ("INCONNU", set()),
    ],
)
def test_collaborateurs_visibles(role, attendu):
    assert politique.collaborateurs_visibles(role) == frozenset(attendu)


def test_la_visibilite_n_est_pas_transitive():
    """Un admin ne voit pas les assistants, même s'ils sont gérés par des chefs de mission."""
    assert not politique.peut_voir_collaborateur(ROLE_ADMIN, ROLE_ASSISTANT)
    assert not politique.peut_voir_collaborateur(ROLE_ADMIN, ROLE_ADMIN)
    assert politique.peut_voir_collaborateur(ROLE_CHEF_DE_MISSION, ROLE_ASSISTANT)


def test_peut_modifier_feedback_seulement_pour_l_auteur():
    feedback = {"id": 1, "author_id": 7}
    assert politique.peut_modifier_feedback(7, feedback)
    assert not politique.peut_modifier_feedback(8, feedback)
    assert not politique.peut_modifier_feedback(None, feedback)


def test_peut_modifier_rapport():
    assert politique.peut_modifier_rapport(3, None)
    assert politique.peut_modifier_rapport(3, {"author_id": 3})
    assert not politique.peut_modifier_rapport(4, {"author_id": 3})


def test_suppression_de_rapport_et_administration_reservees_aux_admins():
    assert politique.peut_supprimer_rapport(ROLE_ADMIN)
    assert not politique.peut_supprimer_rapport(ROLE_CHEF_DE_MISSION)
    assert politique.peut_gerer_utilisateurs_et_saisons(ROLE_ADMIN)
    assert not politique.peut_gerer_utilisateurs_et_saisons(ROLE_ASSISTANT)


def test_transitions_de_statut():
    assert politique.transition_statut_autorisee(None, RAPPORT_BROUILLON)
    assert politique.transition_statut_autorisee(RAPPORT_BROUILLON, RAPPORT_VALIDE)
    assert politique.transition_statut_autorisee(RAPPORT_VALIDE, RAPPORT_BROUILLON)
    assert not politique.transition_statut_autorisee(RAPPORT_BROUILLON, "PUBLIE")


def test_libelles():
    assert politique.libelle_role(ROLE_CHEF_DE_MISSION) == "CHEF DE MISSION"
    assert politique.libelle_statut(RAPPORT_VALIDE) == "Validé"
    assert politique.libelle_statut(RAPPORT_BROUILLON) == "Brouillon"
