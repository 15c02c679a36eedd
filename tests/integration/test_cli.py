"""Integration tests for the force-reconcile operator command."""

import json

import pytest

from admincore.cli import EXIT_DENIED, EXIT_MANIFEST, EXIT_OK, TOKEN_ENV, main
from admincore.kernel.identity import create_access_token


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


def test_force_reconcile_prints_report(database_url, capsys):
    token, _, _ = create_access_token("admin-1", "admin")

    code = main(["force-reconcile", "--token", token, "--database-url", database_url])

    assert code == EXIT_OK
    report = json.loads(capsys.readouterr().out)
    assert report["conflicts"] == []
    assert "run_at" in report


def test_token_from_environment(database_url, monkeypatch, capsys):
    token, _, _ = create_access_token("admin-1", "super_admin")
    monkeypatch.setenv(TOKEN_ENV, token)

    assert main(["force-reconcile", "--database-url", database_url]) == EXIT_OK


def test_moderator_is_denied(database_url, capsys):
    token, _, _ = create_access_token("mod-1", "moderator")

    code = main(["force-reconcile", "--token", token, "--database-url", database_url])

    assert code == EXIT_DENIED
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "all" in captured.err


def test_invalid_token(database_url, capsys):
    assert main(["force-reconcile", "--token", "garbage", "--database-url", database_url]) == EXIT_DENIED


def test_missing_token(database_url, monkeypatch):
    monkeypatch.delenv(TOKEN_ENV, raising=False)
    assert main(["force-reconcile", "--database-url", database_url]) == EXIT_DENIED


def test_duplicate_manifest_is_fatal(database_url, tmp_path, capsys):
    manifest = tmp_path / "manifest.json"
    manifest.write_text(json.dumps([
        {"id": "polls", "display_name": "Polls"},
        {"id": "polls", "display_name": "Polls"},
    ]))
    token, _, _ = create_access_token("admin-1", "admin")

    code = main([
        "force-reconcile", "--token", token,
        "--database-url", database_url,
        "--manifest", str(manifest),
    ])

    assert code == EXIT_MANIFEST
    assert "Duplicate" in capsys.readouterr().err


def test_custom_manifest_file(database_url, tmp_path, capsys):
    manifest = tmp_path / "manifest.json"
    manifest.write_text(json.dumps({"modules": [
        {"id": "dashboard", "display_name": "Dashboard"},
        {"id": "legacy", "display_name": "Legacy", "required_capability": "content"},
    ]}))
    token, _, _ = create_access_token("admin-1", "admin")

    code = main([
        "force-reconcile", "--token", token,
        "--database-url", database_url,
        "--manifest", str(manifest),
    ])

    assert code == EXIT_OK
    report = json.loads(capsys.readouterr().out)
    assert report["conflicts"] == []
