# tests/test_commands.py
"""
Tests des commandes CLI (init-db, seed-users).
"""

from evaluation_rh.models import User


def test_init_db_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["init-db"])
    assert result.exit_code == 0
    assert "Les tables ont été créées avec succès." in result.output


def test_seed_users_command(app, db):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed-users"])
    assert result.exit_code == 0
    assert db.session.query(User).count() == 4
    assert db.session.query(User).filter_by(email="chef@fiduaudit.com").one().check_password("Chef123!")

    relance = runner.invoke(args=["seed-users"])
    assert relance.exit_code == 0
    assert "existe déjà" in relance.output
    assert db.session.query(User).count() == 4
