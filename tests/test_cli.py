"""Tests for the command-line client (HTTP calls are stubbed)."""

import json

import pytest

from skillcanvas import cli


# ── Fixtures ──


@pytest.fixture
def calls(monkeypatch):
    """Record every API request and answer with a canned payload."""
    recorded = []

    def fake_request(method, endpoint, data=None, params=None, content=None):
        recorded.append({"method": method, "endpoint": endpoint, "data": data, "params": params, "content": content})
        return {"success": True, "meta": {"name": "Mage"}}

    monkeypatch.setattr(cli, "_api_request", fake_request)
    return recorded


def _run(argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    assert exc_info.value.code == 0
    return json.loads(capsys.readouterr().out)


class TestCommands:
    def test_get_world(self, calls, capsys):
        assert _run(["get-world"], capsys)["success"] is True
        assert calls[0]["method"] == "GET" and calls[0]["endpoint"] == "/world"

    def test_add_node(self, calls, capsys):
        _run(["add-node", "--name", "Frost", "--x", "40", "--y", "80", "--color", "violet"], capsys)
        assert calls[0]["endpoint"] == "/nodes"
        assert calls[0]["data"] == {"name": "Frost", "x": 40.0, "y": 80.0, "color": "violet", "size": "small"}

    def test_update_node_sends_only_given_fields(self, calls, capsys):
        _run(["update-node", "--node-id", "n1", "--name", "Ice"], capsys)
        assert calls[0]["method"] == "PATCH"
        assert calls[0]["endpoint"] == "/nodes/n1"
        assert calls[0]["data"] == {"name": "Ice"}

    def test_connect(self, calls, capsys):
        _run(["connect", "--from-id", "a", "--to-id", "b"], capsys)
        assert calls[0]["data"] == {"fromId": "a", "toId": "b"}

    @pytest.mark.parametrize("argv,method,endpoint", [
        (["delete-node", "--node-id", "n1"], "DELETE", "/nodes/n1"),
        (["delete-edge", "--edge-id", "e1"], "DELETE", "/edges/e1"),
        (["undo"], "POST", "/undo"),
        (["redo"], "POST", "/redo"),
        (["toggle-snap"], "POST", "/snap"),
        (["reset-view"], "POST", "/view/reset"),
        (["validate"], "GET", "/world/validate"),
        (["list-projects"], "GET", "/projects"),
    ])
    def test_simple_commands(self, calls, capsys, argv, method, endpoint):
        _run(argv, capsys)
        assert (calls[0]["method"], calls[0]["endpoint"]) == (method, endpoint)

    def test_send_event(self, calls, capsys):
        _run(["send-event", "--event", '{"type": "key-down", "key": "Escape"}'], capsys)
        assert calls[0]["data"] == {"type": "key-down", "key": "Escape"}

    def test_send_event_bad_json(self, calls, capsys):
        out = _run(["send-event", "--event", "{nope"], capsys)
        assert out["status"] == "error"
        assert calls == []

    def test_projects(self, calls, capsys):
        _run(["new", "--name", "Druid"], capsys)
        _run(["open", "--name", "Druid"], capsys)
        _run(["save"], capsys)
        assert calls[0]["params"] == {"name": "Druid"}
        assert calls[1]["data"] == {"name": "Druid"}
        assert calls[2]["data"] == {"name": None}

    def test_export_writes_file(self, calls, capsys, tmp_path):
        target = tmp_path / "out.json"
        out = _run(["export", "--output", str(target)], capsys)
        assert out == {"success": True, "path": str(target)}
        assert json.loads(target.read_text())["meta"]["name"] == "Mage"

    def test_import_sends_file_body(self, calls, capsys, tmp_path):
        source = tmp_path / "in.json"
        source.write_text('{"version": 1}')
        _run(["import", "--file-path", str(source)], capsys)
        assert calls[0]["endpoint"] == "/projects/import"
        assert calls[0]["content"] == b'{"version": 1}'

    def test_import_missing_file(self, calls, capsys, tmp_path):
        out = _run(["import", "--file-path", str(tmp_path / "nope.json")], capsys)
        assert out["status"] == "error"
        assert calls == []


class TestApiRequest:
    def test_connection_error_reported(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "API_BASE", "http://127.0.0.1:9/api")
        with pytest.raises(SystemExit):
            cli._api_request("GET", "/world")
        out = json.loads(capsys.readouterr().out)
        assert out["status"] == "error"
        assert "Connection failed" in out["error"]
