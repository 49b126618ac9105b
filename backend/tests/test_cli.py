from decimal import Decimal

from kiosko.services import cash_register_service, settings_service


def test_system_init_seeds_settings(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "PASS Database ready" in result.output
    assert settings_service.get_sales_settings()["default_payment_method"] == "cash"


def test_set_tax_rate(app, db_session):
    runner = app.test_cli_runner()
    assert runner.invoke(args=["system", "set-tax-rate", "8"]).exit_code == 0
    assert settings_service.get_tax_rate() == Decimal("8")

    bad = runner.invoke(args=["system", "set-tax-rate", "-1"])
    assert bad.exit_code == 1
    assert "tax rate cannot be negative" in bad.output
    assert settings_service.get_tax_rate() == Decimal("8")

    junk = runner.invoke(args=["system", "set-tax-rate", "abc"])
    assert junk.exit_code == 1
    assert "FAIL" in junk.output


def test_registers_commands(app, db_session):
    runner = app.test_cli_runner()
    assert "No cash register session is open." in runner.invoke(args=["registers", "current"]).output

    session = cash_register_service.open_register("25")
    current = runner.invoke(args=["registers", "current"]).output
    assert f"Session {session.id}" in current
    assert "Expected:  25.00" in current

    cash_register_service.close_register("20", session_id=session.id)
    history = runner.invoke(args=["registers", "history", "--limit", "5"]).output
    assert "closed" in history
    assert "-5.00" in history
