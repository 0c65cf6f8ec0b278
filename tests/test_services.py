# tests/test_services.py
"""
Tests pour la couche de services (logique métier et règles d'accès au niveau des lignes).
"""

import datetime

import pytest

from evaluation_rh import services
from evaluation_rh.models import (
    RAPPORT_BROUILLON,
    RAPPORT_VALIDE,
    ROLE_ASSISTANT,
    ROLE_CHEF_DE_MISSION,
    SAISON_ARCHIVEE,
    Feedback,
    Rapport,
    Saison,
    User,
)
from evaluation_rh.services import (
    DuplicateEntityError,
    EntityNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from tests.conftest import contexte_de

# --- Utilisateurs ---


def test_create_user_service(db):
    user = services.create_user_service(
        {"email": " Nouveau@FiduAudit.com ", "password": "password123", "first_name": "Léa", "last_name": "Roux", "role": ROLE_CHEF_DE_MISSION}
    )
    assert user["email"] == "nouveau@fiduaudit.com"
    assert user["role"] == ROLE_CHEF_DE_MISSION
    assert db.session.query(User).count() == 1


def test_create_user_service_doublon(sample_data):
    with pytest.raises(DuplicateEntityError):
        services.create_user_service(
            {"email": "chef@fiduaudit.com", "password": "password123", "first_name": "X", "last_name": "Y", "role": ROLE_ASSISTANT}
        )


def test_create_user_service_validation(db):
    with pytest.raises(ValidationError):
        services.create_user_service({"email": "a@b.c", "password": "court", "first_name": "X", "last_name": "Y"})
    with pytest.raises(ValidationError):
        services.create_user_service({"email": "a@b.c", "password": "password123", "first_name": "X", "last_name": "Y", "role": "STAGIAIRE"})
    with pytest.raises(ValidationError):
        services.create_user_service({"email": "", "password": "password123", "first_name": "X", "last_name": "Y"})


def test_authenticate_service(sample_data):
    assert services.authenticate_service("CHEF@fiduaudit.com", "motdepasse123").id == sample_data["chef"].id
    assert services.authenticate_service("chef@fiduaudit.com", "mauvais") is None
    assert services.authenticate_service("inconnu@fiduaudit.com", "motdepasse123") is None


def test_delete_user_service_refuse_de_se_supprimer(sample_data):
    admin = sample_data["admin"]
    with pytest.raises(PermissionDeniedError):
        services.delete_user_service(admin.id, admin.id)


def test_update_user_service_protege_le_dernier_admin(sample_data):
    with pytest.raises(ValidationError):
        services.update_user_service(sample_data["admin"].id, {"role": ROLE_ASSISTANT})


def test_update_user_service_email_deja_pris(sample_data):
    with pytest.raises(DuplicateEntityError):
        services.update_user_service(sample_data["assistant"].id, {"email": "chef@fiduaudit.com"})


def test_delete_user_service_supprime_ses_feedbacks(db, sample_data, feedback_du_chef):
    """Supprimer un utilisateur supprime les feedbacks qu'il a rédigés."""
    services.delete_user_service(sample_data["chef"].id, sample_data["admin"].id)

    assert db.session.get(User, sample_data["chef"].id) is None
    assert db.session.query(Feedback).count() == 0


def test_delete_user_service_introuvable(sample_data):
    with pytest.raises(EntityNotFoundError):
        services.delete_user_service(9999, sample_data["admin"].id)


# --- Saisons ---


def test_create_saison_service(db):
    saison = services.create_saison_service({"name": "Saison 2025/2026", "start_date": "2025-09-01", "end_date": "2026-06-30"})
    assert saison["status"] == "ACTIVE"
    assert saison["start_date"] == "2025-09-01"


def test_create_saison_service_dates_invalides(db):
    with pytest.raises(ValidationError):
        services.create_saison_service({"name": "S", "start_date": "2025-09-01", "end_date": "2025-01-01"})
    with pytest.raises(ValidationError):
        services.create_saison_service({"name": "S", "start_date": "01/09/2025", "end_date": "2026-06-30"})
    assert db.session.query(Saison).count() == 0


def test_get_saison_active_service_retient_la_plus_recente(db, sample_data):
    recente = services.create_saison_service({"name": "Saison 2025/2026", "start_date": "2025-09-01", "end_date": "2026-06-30"})
    assert services.get_saison_active_service()["id"] == recente["id"]

    services.update_saison_service(recente["id"], {"status": SAISON_ARCHIVEE})
    assert services.get_saison_active_service()["id"] == sample_data["saison"].id


def test_delete_saison_service_supprime_feedbacks_et_rapports(db, sample_data, feedback_du_chef):
    contexte = contexte_de(sample_data["chef"])
    services.save_rapport_service(contexte, sample_data["assistant"].id, sample_data["saison"].id, "Texte", RAPPORT_BROUILLON)

    services.delete_saison_service(sample_data["saison"].id)

    assert db.session.query(Feedback).count() == 0
    assert db.session.query(Rapport).count() == 0


# --- Collaborateurs ---


def test_get_collaborateurs_visibles_service(sample_data):
    noms_admin = [u["last_name"] for u in services.get_collaborateurs_visibles_service(contexte_de(sample_data["admin"]))]
    noms_chef = [u["last_name"] for u in services.get_collaborateurs_visibles_service(contexte_de(sample_data["chef"]))]

    assert noms_admin == ["Aubert", "Martin"]
    assert noms_chef == ["Bernard", "Petit"]
    assert services.get_collaborateurs_visibles_service(contexte_de(sample_data["assistant"])) == []


def test_get_collaborateur_service_hors_perimetre(sample_data):
    with pytest.raises(PermissionDeniedError):
        services.get_collaborateur_service(contexte_de(sample_data["assistant"]), sample_data["chef"].id)
    with pytest.raises(PermissionDeniedError):
        services.get_collaborateur_service(contexte_de(sample_data["admin"]), sample_data["assistant"].id)
    with pytest.raises(EntityNotFoundError):
        services.get_collaborateur_service(contexte_de(sample_data["admin"]), 9999)


# --- Feedbacks ---


def test_create_and_list_feedbacks(db, sample_data, feedback_du_chef):
    contexte = contexte_de(sample_data["chef"])
    assistant_id = sample_data["assistant"].id
    saison_id = sample_data["saison"].id

    cree = services.create_feedback_service(contexte, assistant_id, saison_id, "  Rigueur remarquable.  ", "Audit Beta")
    assert cree["content"] == "Rigueur remarquable."
    assert cree["author"]["first_name"] == "Pierre"

    feedbacks = services.get_feedbacks_service(contexte, assistant_id, saison_id)
    # Du plus récent au plus ancien.
    assert [f["id"] for f in feedbacks] == [cree["id"], feedback_du_chef.id]


def test_create_feedback_service_contenu_vide(sample_data):
    with pytest.raises(ValidationError):
        services.create_feedback_service(contexte_de(sample_data["chef"]), sample_data["assistant"].id, sample_data["saison"].id, "   ")


def test_create_feedback_service_hors_perimetre(db, sample_data):
    with pytest.raises(PermissionDeniedError):
        services.create_feedback_service(contexte_de(sample_data["chef"]), sample_data["admin"].id, sample_data["saison"].id, "Texte")
    assert db.session.query(Feedback).count() == 0


def test_create_feedback_service_saison_inconnue(sample_data):
    with pytest.raises(EntityNotFoundError):
        services.create_feedback_service(contexte_de(sample_data["chef"]), sample_data["assistant"].id, 9999, "Texte")


def test_update_feedback_service_reserve_a_l_auteur(db, sample_data, feedback_du_chef):
    with pytest.raises(PermissionDeniedError):
        services.update_feedback_service(contexte_de(sample_data["autre_chef"]), feedback_du_chef.id, {"content": "Réécrit"})

    modifie = services.update_feedback_service(contexte_de(sample_data["chef"]), feedback_du_chef.id, {"content": "Réécrit", "mission": ""})
    assert modifie["content"] == "Réécrit"
    assert modifie["mission"] is None


def test_update_feedback_service_partiel_conserve_la_mission(db, sample_data, feedback_du_chef):
    modifie = services.update_feedback_service(contexte_de(sample_data["chef"]), feedback_du_chef.id, {"content": "Contenu revu"})
    assert modifie["content"] == "Contenu revu"
    assert modifie["mission"] == "Audit Alpha"

    modifie = services.update_feedback_service(contexte_de(sample_data["chef"]), feedback_du_chef.id, {"mission": "Audit Beta"})
    assert modifie["content"] == "Contenu revu"
    assert modifie["mission"] == "Audit Beta"


def test_delete_feedback_service(db, sample_data, feedback_du_chef):
    with pytest.raises(PermissionDeniedError):
        services.delete_feedback_service(contexte_de(sample_data["autre_chef"]), feedback_du_chef.id)
    assert db.session.query(Feedback).count() == 1

    services.delete_feedback_service(contexte_de(sample_data["chef"]), feedback_du_chef.id)
    assert db.session.query(Feedback).count() == 0

    with pytest.raises(EntityNotFoundError):
        services.delete_feedback_service(contexte_de(sample_data["chef"]), feedback_du_chef.id)


# --- Rapports ---


def test_save_rapport_service_creation_puis_lecture(sample_data):
    contexte = contexte_de(sample_data["chef"])
    assistant_id = sample_data["assistant"].id
    saison_id = sample_data["saison"].id

    assert services.get_rapport_service(contexte, assistant_id, saison_id) is None

    rapport = services.save_rapport_service(contexte, assistant_id, saison_id, "Bilan global : bon.", RAPPORT_BROUILLON)
    lu = services.get_rapport_service(contexte, assistant_id, saison_id)

    assert lu["content"] == "Bilan global : bon."
    assert lu["status"] == RAPPORT_BROUILLON
    assert lu["author_id"] == sample_data["chef"].id
    assert lu["id"] == rapport["id"]
    assert lu["generated_at"] is None


def test_save_rapport_service_idempotent(db, sample_data):
    contexte = contexte_de(sample_data["chef"])
    args = (contexte, sample_data["assistant"].id, sample_data["saison"].id, "Texte", RAPPORT_VALIDE)

    premier = services.save_rapport_service(*args)
    second = services.save_rapport_service(*args)

    assert second == premier
    assert db.session.query(Rapport).count() == 1


def test_save_rapport_service_met_a_jour_et_horodate_la_generation(db, sample_data):
    contexte = contexte_de(sample_data["chef"])
    assistant_id = sample_data["assistant"].id
    saison_id = sample_data["saison"].id

    services.save_rapport_service(contexte, assistant_id, saison_id, "Brouillon", RAPPORT_BROUILLON)
    rapport = services.save_rapport_service(contexte, assistant_id, saison_id, "Texte généré", RAPPORT_BROUILLON, generated=True)

    assert rapport["content"] == "Texte généré"
    assert rapport["generated_at"] is not None
    assert db.session.query(Rapport).count() == 1

    revalide = services.save_rapport_service(contexte, assistant_id, saison_id, "Texte généré", RAPPORT_VALIDE)
    assert revalide["status"] == RAPPORT_VALIDE
    assert services.save_rapport_service(contexte, assistant_id, saison_id, "Texte généré", RAPPORT_BROUILLON)["status"] == RAPPORT_BROUILLON


def test_save_rapport_service_repasse_en_brouillon(db, sample_data):
    contexte = contexte_de(sample_data["chef"])
    assistant_id = sample_data["assistant"].id
    saison_id = sample_data["saison"].id

    services.save_rapport_service(contexte, assistant_id, saison_id, "Texte final", RAPPORT_VALIDE)
    rapport = db.session.query(Rapport).filter_by(collaborator_id=assistant_id, saison_id=saison_id).one()
    rapport.updated_at = datetime.datetime(2025, 1, 1, 9, 0)
    db.session.commit()

    services.save_rapport_service(contexte, assistant_id, saison_id, "Texte final", RAPPORT_BROUILLON)
    db.session.expire_all()

    relu = services.get_rapport_service(contexte, assistant_id, saison_id)
    assert relu["status"] == RAPPORT_BROUILLON
    assert relu["content"] == "Texte final"
    assert db.session.get(Rapport, relu["id"]).updated_at > datetime.datetime(2025, 1, 1, 9, 0)


def test_save_rapport_service_reserve_a_l_auteur(sample_data):
    assistant_id = sample_data["assistant"].id
    saison_id = sample_data["saison"].id
    services.save_rapport_service(contexte_de(sample_data["chef"]), assistant_id, saison_id, "Texte", RAPPORT_BROUILLON)

    with pytest.raises(PermissionDeniedError):
        services.save_rapport_service(contexte_de(sample_data["autre_chef"]), assistant_id, saison_id, "Autre", RAPPORT_BROUILLON)


def test_save_rapport_service_statut_inconnu(sample_data):
    with pytest.raises(ValidationError):
        services.save_rapport_service(contexte_de(sample_data["chef"]), sample_data["assistant"].id, sample_data["saison"].id, "Texte", "PUBLIE")


def test_delete_rapport_service_reserve_aux_admins(db, sample_data):
    rapport = services.save_rapport_service(contexte_de(sample_data["admin"]), sample_data["chef"].id, sample_data["saison"].id, "Texte", RAPPORT_BROUILLON)

    with pytest.raises(PermissionDeniedError):
        services.delete_rapport_service(contexte_de(sample_data["chef"]), rapport["id"])

    services.delete_rapport_service(contexte_de(sample_data["admin"]), rapport["id"])
    assert db.session.query(Rapport).count() == 0

    with pytest.raises(EntityNotFoundError):
        services.delete_rapport_service(contexte_de(sample_data["admin"]), rapport["id"])


# --- Suivi de saison ---


def test_get_suivi_saison_service(sample_data, feedback_du_chef):
    services.save_rapport_service(contexte_de(sample_data["chef"]), sample_data["assistant"].id, sample_data["saison"].id, "Texte", RAPPORT_VALIDE)

    suivi = services.get_suivi_saison_service(sample_data["saison"].id)

    assert suivi["saison"]["name"] == "Saison 2024/2025"
    assert [ligne["last_name"] for ligne in suivi["lignes"]] == ["Aubert", "Martin", "Bernard", "Petit"]
    bernard = suivi["lignes"][2]
    assert bernard["nb_feedbacks"] == 1
    assert bernard["statut_rapport"] == "Validé"
    assert bernard["auteur_rapport"] == "Pierre Martin"
    assert isinstance(bernard["mis_a_jour"], datetime.datetime)
    assert suivi["lignes"][3]["statut_rapport"] == "Aucun rapport"


def test_get_suivi_saison_service_introuvable(db):
    with pytest.raises(EntityNotFoundError):
        services.get_suivi_saison_service(9999)
