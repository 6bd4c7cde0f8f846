"""Tests for the check_status command-line probe."""

import json

import pytest

import check_status


@pytest.fixture
def odoo_env(monkeypatch):
    for key in ("ODOO_URL", "ODOO_DB", "ODOO_USER", "ODOO_APIKEY", "NODE_ENV", "STANDING_ENV"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ODOO_USER", "svc")
    monkeypatch.setenv("ODOO_APIKEY", "key")
    return monkeypatch


class TestCheckStatusScript:
    def test_missing_credentials(self, monkeypatch, capsys) -> None:
        monkeypatch.delenv("ODOO_USER", raising=False)
        monkeypatch.delenv("ODOO_APIKEY", raising=False)
        assert check_status.main(["8-1-1"]) == 2
        assert "ODOO_APIKEY" in capsys.readouterr().err

    def test_requires_identity_or_diagnose(self, odoo_env, capsys) -> None:
        assert check_status.main([]) == 2
        assert "--diagnose" in capsys.readouterr().err

    def test_prints_result(self, odoo_env, capsys) -> None:
        async def fake_run(args, config):
            assert args.identities == ["8-1-1"]
            assert config.odoo_user == "svc"
            return {"success": True, "identity": "8-1-1", "allowed": True, "reason": "exempt"}

        odoo_env.setattr(check_status, "_run", fake_run)
        assert check_status.main(["8-1-1"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["reason"] == "exempt"

    def test_failure_exit_code(self, odoo_env, capsys) -> None:
        async def fake_run(args, config):
            return {"success": False, "error": "Billing system unavailable."}

        odoo_env.setattr(check_status, "_run", fake_run)
        assert check_status.main(["8-1-1", "8-1-2"]) == 1
