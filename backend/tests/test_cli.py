# Overview: Pytest coverage for the flask CLI command groups.

from hayledger.models import Invoice, Stack

from conftest import ORG_A, make_stack


def test_perms_list_all(app):
    result = app.test_cli_runner().invoke(args=["perms", "list"])
    assert result.exit_code == 0
    assert "users:manage" in result.output
    assert "Total: 7 permissions" in result.output


def test_perms_list_driver(app):
    result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "driver"])
    assert result.exit_code == 0
    assert "tickets:create" in result.output
    assert "tickets:manage" not in result.output


def test_perms_list_unknown_role(app):
    result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "owner"])
    assert "FAIL Role 'owner' not found" in result.output


def test_normalize_bale_sizes(app, db_session):
    make_stack(name="Old", bale_size="Round")
    make_stack(name="New", bale_size="3x3")

    result = app.test_cli_runner().invoke(args=["data", "normalize-bale-sizes"])

    assert result.exit_code == 0
    assert "PASS Normalized 1 stack(s)" in result.output
    db_session.expire_all()
    assert {s.bale_size for s in db_session.query(Stack).all()} == {"4x4", "3x3"}


def test_backfill_share_tokens(app, db_session):
    db_session.add(Invoice(org_id=ORG_A, invoice_number="INV-0001", created_by="seed", share_token=None))
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["data", "backfill-share-tokens"])

    assert result.exit_code == 0
    assert "PASS Generated 1 share token(s)" in result.output
    db_session.expire_all()
    assert len(db_session.query(Invoice).one().share_token) == 64
