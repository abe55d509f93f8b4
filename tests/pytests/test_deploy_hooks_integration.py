from __future__ import annotations

import subprocess
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from scripts.deploy import appservice_deploy, appservice_package
from scripts.deploy.env_schema import VarsEnum

HOOKS_SRC = """
LOG = []

def pre_provision(ctx, plan):
    LOG.append("pre_provision")
    plan.sku = "B1"
    plan.extra_metadata["owner"] = "team-a"

def post_provision(ctx, plan, webapp):
    LOG.append("post_provision:" + webapp["name"])

def pre_package(ctx, plan):
    LOG.append("pre_package:" + plan.archive_path.name)

def post_deploy(ctx, plan, url):
    LOG.append("post_deploy:" + url)

def on_error(ctx, exc):
    LOG.append("on_error:" + type(exc).__name__)
"""


def _fake_az(fail_deploy: bool = False):
    calls: list[list[str]] = []

    def fake(args, **kwargs):
        calls.append(list(args))
        if args[:2] == ["account", "show"]:
            return {"id": "sub-id"}
        if args[:2] == ["group", "exists"]:
            return True
        if args[:2] == ["webapp", "create"]:
            name = args[args.index("--name") + 1]
            return {"name": name, "defaultHostName": f"{name}.azurewebsites.net"}
        if args[:2] == ["webapp", "deploy"] and fail_deploy:
            raise subprocess.CalledProcessError(1, ["az"], stderr="boom")
        return None

    return fake, calls


@pytest.fixture
def setup(tmp_path, monkeypatch):
    for key in VarsEnum:
        monkeypatch.delenv(key.value, raising=False)
    (tmp_path / "tmp").mkdir()
    monkeypatch.setattr(appservice_package, "tempfile", SimpleNamespace(gettempdir=lambda: str(tmp_path / "tmp")))

    src = tmp_path / "site"
    src.mkdir()
    (src / "index.html").write_text("<h1>hi</h1>", encoding="utf-8")
    hooks_file = tmp_path / "myhooks.py"
    hooks_file.write_text(HOOKS_SRC, encoding="utf-8")
    env_file = tmp_path / ".env.deploy"
    env_file.write_text("", encoding="utf-8")

    argv = [
        "-g", "rg", "-n", "hooked", "-l", "westeurope", "-p", str(src),
        "--env-file", str(env_file), "--hooks-module", str(hooks_file),
    ]
    return argv


def _hooks_log() -> list[str]:
    import sys

    return sys.modules["deploy_customizations"].LOG


def test_hooks_called_in_order(setup, capsys):
    fake, calls = _fake_az()
    with patch("scripts.deploy.azure_utils.run_az_command", fake), \
            patch("scripts.deploy.appservice_provision.run_az_command", fake):
        appservice_deploy.main(setup)

    log = _hooks_log()
    assert [e.split(":")[0] for e in log] == ["pre_provision", "post_provision", "pre_package", "post_deploy"]
    assert log[-1].startswith("post_deploy:https://hooked-")

    # Hook changed the SKU before the plan was created.
    plan_cmd = next(c for c in calls if c[:3] == ["appservice", "plan", "create"])
    assert plan_cmd[plan_cmd.index("--sku") + 1] == "B1"

    # Metadata recorded by hooks is echoed with the final summary.
    assert "  owner: team-a" in capsys.readouterr().out


def test_on_error_hook_runs_and_error_propagates(setup):
    fake, _ = _fake_az(fail_deploy=True)
    with patch("scripts.deploy.azure_utils.run_az_command", fake), \
            patch("scripts.deploy.appservice_provision.run_az_command", fake):
        with pytest.raises(subprocess.CalledProcessError):
            appservice_deploy.main(setup)

    assert _hooks_log()[-1] == "on_error:CalledProcessError"
