from datetime import timedelta

from storefront.models import Status, TransactionStatus, User
from storefront.services import token_service


def test_system_init_seeds_statuses_once(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0
    assert "8 status rows created" in first.output
    assert "0 status rows created" in second.output
    assert db_session.query(Status).count() == 3
    assert db_session.query(TransactionStatus).count() == 5


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--first-name", "Cli", "--last-name", "User",
        "--email", "cli@example.com", "--password", "Password123!",
    ])

    assert result.exit_code == 0, result.output
    assert db_session.query(User).filter_by(email="cli@example.com").count() == 1
    assert "cli@example.com" in runner.invoke(args=["users", "list"]).output


def test_users_create_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create",
        "--first-name", "Cli", "--last-name", "User",
        "--email", "cli@example.com", "--password", "weak",
    ])

    assert result.exit_code != 0
    assert "Password validation failed" in result.output


def test_tokens_cleanup(app, staff_user):
    token = token_service.generate_token(staff_user.id, timedelta(seconds=-1))
    token_service.persist_token(token, staff_user)

    result = app.test_cli_runner().invoke(args=["tokens", "cleanup"])

    assert "Deleted 1 expired tokens" in result.output
