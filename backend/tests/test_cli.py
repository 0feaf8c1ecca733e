from __future__ import annotations

from contextlib import contextmanager

import pytest

from greythr import cli


@pytest.fixture
def local_db(monkeypatch, session_factory):
    @contextmanager
    def scope():
        session = session_factory()
        try:
            yield session
            session.commit()
        finally:
            session.close()

    monkeypatch.setattr(cli, "session_scope", scope)
    monkeypatch.setattr(cli, "init_db", lambda: None)


def test_seed_creates_demo_accounts_once(capsys, local_db):
    cli.main(["seed"])

    first = capsys.readouterr().out.strip().splitlines()
    assert first == [
        "Created admin@greyhr.com (password: password)",
        "Created hr@greyhr.com (password: password)",
        "Created employee@greyhr.com (password: password)",
    ]

    cli.main(["seed"])

    assert capsys.readouterr().out.strip() == "Demo users already present"


def test_seeded_admin_can_log_in(client, local_db):
    cli.main(["seed"])

    response = client.post("/api/auth/login", json={"email": "admin@greyhr.com", "password": "password"})

    assert response.json()["user"]["role"] == "admin"


def test_serve_arguments():
    args = cli.build_parser().parse_args(["serve", "--port", "9000", "--reload"])

    assert args.port == 9000
    assert args.reload is True
    assert args.host == "0.0.0.0"
    assert args.func is cli.cmd_serve


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])
