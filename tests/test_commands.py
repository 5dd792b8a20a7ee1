"""Tests for the command surface."""

import pytest

from keycraft.commands import CommandSurface
from keycraft.engine import CredentialStore
from keycraft.errors import IOFailure
from keycraft.storage import PersistenceLog


@pytest.fixture
def surface(store):
    return CommandSurface(store)


class TestTypedCalls:
    def test_add_list_reveal(self, surface, openai_fields):
        added = surface.add_key(openai_fields)
        assert added["masked_value"] == "sk-A...1234"
        assert "secret_value" not in added

        listed = surface.list_keys()
        assert len(listed) == 1
        assert "secret_value" not in listed[0]
        assert isinstance(listed[0]["created_at"], str)
        assert surface.reveal_key(added["id"]) == "sk-ABCDEFGH1234"

    def test_update_with_echoed_view(self, surface, openai_fields):
        added = surface.add_key(openai_fields)
        payload = dict(added, name="Renamed", secret_value="sk-ABCDEFGH1234")
        updated = surface.update_key(added["id"], payload)
        assert updated["name"] == "Renamed"
        assert updated["created_at"] == added["created_at"]

    def test_delete(self, surface, openai_fields):
        added = surface.add_key(openai_fields)
        assert surface.delete_key(added["id"]) is None
        assert surface.list_keys() == []


class TestDispatch:
    def test_round_trip(self, surface, openai_fields):
        added = surface.dispatch({"command": "add", "payload": openai_fields})
        assert added["ok"] is True
        entry_id = added["result"]["id"]

        listed = surface.dispatch({"command": "list"})
        assert listed == {"ok": True, "result": [added["result"]]}

        revealed = surface.dispatch({"command": "reveal", "id": entry_id})
        assert revealed == {"ok": True, "result": "sk-ABCDEFGH1234"}

        assert surface.dispatch({"command": "delete", "id": entry_id}) == {"ok": True, "result": None}
        assert surface.dispatch({"command": "list"})["result"] == []

    def test_command_name_aliases(self, surface, openai_fields):
        added = surface.dispatch({"command": "add_key", "payload": openai_fields})["result"]
        edited = dict(added, notes="rotated", secret_value="sk-ABCDEFGH1234")
        updated = surface.dispatch({"command": "update_key", "payload": edited})
        assert updated["ok"] is True
        assert updated["result"]["notes"] == "rotated"
        assert len(surface.dispatch({"command": "get_all_keys"})["result"]) == 1
        assert surface.dispatch({"command": "delete_key", "id": added["id"]})["ok"] is True

    def test_validation_error(self, surface):
        response = surface.dispatch({"command": "add", "payload": {"name": "", "vendor": "X", "secret_value": "y"}})
        assert response["ok"] is False
        assert response["error"]["kind"] == "validation"
        assert response["error"]["field"] == "name"
        assert surface.dispatch({"command": "list"})["result"] == []

    def test_not_found(self, surface):
        response = surface.dispatch({"command": "delete", "id": "nope"})
        assert response["error"] == {"kind": "not_found", "id": "nope", "message": "no entry with id 'nope'"}

    def test_persistence_error(self, surface, store, openai_fields, monkeypatch):
        def broken(entries):
            raise IOFailure("read-only filesystem")

        monkeypatch.setattr(store.log, "commit", broken)
        response = surface.dispatch({"command": "add", "payload": openai_fields})
        assert response["error"]["kind"] == "persistence"
        assert "read-only filesystem" in response["error"]["message"]

    def test_unavailable(self, vault_path):
        surface = CommandSurface(CredentialStore(PersistenceLog(str(vault_path))))
        assert surface.dispatch({"command": "list"})["error"]["kind"] == "unavailable"

    @pytest.mark.parametrize("request_", [
        "list",
        {},
        {"command": "explode"},
        {"command": 3},
        {"command": "add"},
        {"command": "add", "payload": []},
        {"command": "delete"},
        {"command": "reveal", "id": ""},
        {"command": "update", "payload": {"name": "n"}},
    ])
    def test_bad_requests(self, surface, request_):
        response = surface.dispatch(request_)
        assert response["ok"] is False
        assert response["error"]["kind"] == "bad_request"
