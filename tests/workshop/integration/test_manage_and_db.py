"""Schema management against the default in-memory configuration."""

import pytest
from protean import current_domain

import manage
from workshop.domain import workshop
from workshop.utils.db import drop_db, setup_db


@pytest.fixture()
def no_reinit(monkeypatch):
    # The test bed already initialized the domain
    monkeypatch.setattr(workshop, "init", lambda: None)


def test_memory_provider_needs_no_schema():
    assert setup_db(current_domain) == []
    assert drop_db(current_domain) == []


def test_setup_and_drop_commands(no_reinit, capsys):
    assert manage.setup_databases() == []
    assert manage.drop_databases() == []
    out = capsys.readouterr().out
    assert "nothing to create" in out
    assert "nothing to drop" in out


def test_main_dispatches_subcommands(no_reinit, capsys):
    manage.main(["setup-db"])
    assert "Creating workshop database schema" in capsys.readouterr().out


def test_main_requires_a_subcommand():
    with pytest.raises(SystemExit):
        manage.main([])


def test_engine_runner_options():
    import server

    assert server.build_parser().parse_args(["--test-mode"]).test_mode is True
    assert server.build_parser().parse_args([]).test_mode is False
