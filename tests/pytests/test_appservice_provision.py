from unittest.mock import patch

from scripts.deploy.appservice_provision import (
    create_service_plan,
    create_webapp,
    ensure_resource_group,
    get_default_hostname,
    is_name_conflict,
    resource_group_exists,
)


def _az_args(mock_az) -> list[list[str]]:
    return [c.args[0] for c in mock_az.call_args_list]


def test_resource_group_exists_handles_bool_and_text():
    with patch("scripts.deploy.appservice_provision.run_az_command") as mock_az:
        mock_az.return_value = True
        assert resource_group_exists("rg") is True
        mock_az.return_value = "false"
        assert resource_group_exists("rg") is False


def test_ensure_resource_group_creates_when_missing():
    with patch("scripts.deploy.appservice_provision.run_az_command") as mock_az:
        mock_az.side_effect = [False, None]
        assert ensure_resource_group("rg-demo", "westeurope") is True

    calls = _az_args(mock_az)
    assert calls[0][:2] == ["group", "exists"]
    assert calls[1][:2] == ["group", "create"]
    assert "westeurope" in calls[1]


def test_ensure_resource_group_is_idempotent(capsys):
    with patch("scripts.deploy.appservice_provision.run_az_command") as mock_az:
        mock_az.return_value = True
        assert ensure_resource_group("rg-demo", "westeurope") is False
        assert ensure_resource_group("rg-demo", "westeurope") is False

    assert all(c[:2] == ["group", "exists"] for c in _az_args(mock_az))
    assert "already exists" in capsys.readouterr().out


def test_create_service_plan_args():
    with patch("scripts.deploy.appservice_provision.run_az_command") as mock_az:
        mock_az.return_value = {"name": "demo-plan"}
        res = create_service_plan(resource_group="rg", name="demo-plan", location="westeurope", sku="F1")

    assert res == {"name": "demo-plan"}
    cmd = mock_az.call_args[0][0]
    assert cmd[:3] == ["appservice", "plan", "create"]
    assert cmd[cmd.index("--sku") + 1] == "F1"
    assert cmd[cmd.index("--name") + 1] == "demo-plan"
    assert "--is-linux" in cmd


def test_create_webapp_args_and_result():
    with patch("scripts.deploy.appservice_provision.run_az_command") as mock_az:
        mock_az.return_value = {"name": "demo-abcde", "defaultHostName": "demo-abcde.azurewebsites.net"}
        res = create_webapp(resource_group="rg", plan_name="demo-plan", name="demo-abcde", runtime="PYTHON:3.11")

    assert res["defaultHostName"] == "demo-abcde.azurewebsites.net"
    cmd = mock_az.call_args[0][0]
    assert cmd[:2] == ["webapp", "create"]
    assert cmd[cmd.index("--plan") + 1] == "demo-plan"
    assert cmd[cmd.index("--runtime") + 1] == "PYTHON:3.11"


def test_create_webapp_without_json_output():
    with patch("scripts.deploy.appservice_provision.run_az_command", return_value=None):
        res = create_webapp(resource_group="rg", plan_name="p", name="demo-abcde", runtime="PYTHON:3.11")
    assert res == {"name": "demo-abcde"}


def test_get_default_hostname():
    with patch("scripts.deploy.appservice_provision.run_az_command", return_value="demo-abcde.azurewebsites.net"):
        assert get_default_hostname(resource_group="rg", name="demo-abcde") == "demo-abcde.azurewebsites.net"


def test_is_name_conflict():
    assert is_name_conflict("Website with given name demo-abcde already exists.")
    assert is_name_conflict("The name demo-abcde is not available.")
    assert not is_name_conflict("(Conflict) Another operation is in progress on the plan.")
    assert not is_name_conflict("AuthorizationFailed: does not have authorization")
    assert not is_name_conflict(None)
