"""Tests for client discovery and the LCU HTTP client."""
import base64
from unittest import mock

import pytest
import requests

from lockin import lcu
from lockin.lcu import (
    ConnectionInfo, ConnectionStatus, LcuClient, LcuRequestError, ClientNotFound,
    parse_client_cmdline, read_lockfile, discover_client
)


def test_credential_is_base64_of_riot_and_token():
    info = ConnectionInfo.from_token(51234, "s3cret")
    assert base64.b64decode(info.credential).decode() == "riot:s3cret"
    assert info.base_url == "https://127.0.0.1:51234"
    assert info.auth_header.startswith("Basic ")


def test_parse_cmdline():
    args = ["LeagueClientUx.exe", "--app-port=51234", "--remoting-auth-token=abc", "--locale=fr_FR"]
    assert parse_client_cmdline(args) == (51234, "abc")


def test_parse_cmdline_missing_token():
    assert parse_client_cmdline(["--app-port=51234"]) is None
    assert parse_client_cmdline(["--app-port=x", "--remoting-auth-token=abc"]) is None


def test_read_lockfile(tmp_path):
    path = tmp_path / "lockfile"
    path.write_text("LeagueClient:1234:60000:pw:https")
    assert read_lockfile(str(path)) == ConnectionInfo.from_token(60000, "pw")


def test_read_lockfile_rejects_garbage(tmp_path):
    path = tmp_path / "lockfile"
    path.write_text("garbage")
    with pytest.raises(ValueError):
        read_lockfile(str(path))


def test_discover_prefers_process_scan():
    proc = mock.Mock()
    proc.info = {"name": "LeagueClientUx.exe", "cmdline": ["--app-port=5000", "--remoting-auth-token=tok"]}
    with mock.patch("lockin.lcu.psutil.process_iter", return_value=[proc]):
        assert discover_client() == ConnectionInfo.from_token(5000, "tok")


def test_discover_falls_back_to_lockfile(tmp_path, monkeypatch):
    path = tmp_path / "lockfile"
    path.write_text("LeagueClient:1:6000:pw:https")
    monkeypatch.setenv("LOL_LOCKFILE", str(path))
    with mock.patch("lockin.lcu.psutil.process_iter", return_value=[]):
        assert discover_client().port == 6000


def test_discover_raises_when_nothing_found(monkeypatch):
    monkeypatch.setattr(lcu, "DEFAULT_LOCKFILE_PATHS", ())
    monkeypatch.delenv("LOL_LOCKFILE", raising=False)
    with mock.patch("lockin.lcu.psutil.process_iter", return_value=[]):
        with pytest.raises(ClientNotFound):
            discover_client()


def test_status_text():
    info = ConnectionInfo.from_token(5000, "tok")
    assert ConnectionStatus.found(info).text == "Connected to LeagueClient on https://127.0.0.1:5000"
    assert ConnectionStatus.not_found().text == "LeagueClient not found, may be closed."


def _client():
    session = mock.Mock(spec=requests.Session)
    session.headers = {}
    return LcuClient(ConnectionInfo.from_token(5000, "tok"), verify=False, session=session), session


def _response(status=200, body=None, text=None):
    r = mock.Mock()
    r.status_code = status
    r.text = text if text is not None else ("{}" if body is not None else "")
    r.json.return_value = body
    return r


def test_client_sets_auth_header():
    client, session = _client()
    assert session.headers["Authorization"] == client.conn.auth_header
    assert session.verify is False


def test_network_failure_becomes_lcu_error():
    client, session = _client()
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(LcuRequestError):
        client.gameflow_session()


def test_invalid_json_becomes_lcu_error():
    client, session = _client()
    bad = _response(text="<html>")
    bad.json.side_effect = ValueError("no json")
    session.request.return_value = bad
    with pytest.raises(LcuRequestError):
        client.champ_select_session()


def test_gameflow_error_body_has_no_phase():
    client, session = _client()
    session.request.return_value = _response(404, {"httpStatus": 404, "message": "No gameflow session"})
    assert "phase" not in client.gameflow_session()


def test_patch_action_sends_body():
    client, session = _client()
    session.request.return_value = _response(204)
    body = {"id": 7, "championId": 103}
    assert client.patch_action(7, body) is True
    session.request.assert_called_with(
        "PATCH", "https://127.0.0.1:5000/lol-champ-select/v1/session/actions/7", json=body, timeout=None
    )


def test_my_selection_failure_returns_false():
    client, session = _client()
    session.request.return_value = _response(500, text="boom")
    assert client.set_my_selection(4, 11) is False
    assert session.request.call_args.kwargs["json"] == {"spell1Id": 4, "spell2Id": 11}


def test_grid_error_status_raises():
    client, session = _client()
    session.request.return_value = _response(500, {"errorCode": "RPC_ERROR", "httpStatus": 500})
    with pytest.raises(LcuRequestError):
        client.grid_champion(17)


def test_champ_select_error_status_raises():
    client, session = _client()
    session.request.return_value = _response(404, {"errorCode": "RPC_ERROR", "httpStatus": 404})
    with pytest.raises(LcuRequestError):
        client.champ_select_session()
