"""Tests for single-slot snapshot persistence."""

import json
from unittest.mock import patch

import pytest

from homesoc.errors import PersistError
from homesoc.network.models import Connection, ListeningPort, Snapshot
from homesoc.network.store import StateStore


def _snapshot() -> Snapshot:
    return Snapshot.build(
        [
            Connection(
                protocol="tcp",
                state="ESTAB",
                local_address="10.0.0.5:22",
                peer_address="10.0.0.9:51812",
                process_label='users:(("sshd",pid=7,fd=4))',
            )
        ],
        [ListeningPort(protocol="tcp", port=22, address="0.0.0.0:22")],
        timestamp="2026-10-17T08:30:00.000Z",
    )


class TestStateStore:
    def test_load_missing_file_is_none(self, tmp_path):
        assert StateStore(tmp_path / "state.json").load() is None

    def test_save_then_load(self, tmp_path):
        store = StateStore(tmp_path / "state.json")
        snapshot = _snapshot()

        store.save(snapshot)

        assert store.load() == snapshot

    def test_persisted_shape(self, tmp_path):
        path = tmp_path / "state.json"
        StateStore(path).save(_snapshot())

        data = json.loads(path.read_text())

        assert list(data) == ["timestamp", "connections", "ports", "stats"]
        assert data["stats"] == {
            "totalConnections": 1,
            "establishedConnections": 1,
            "listeningPorts": 1,
        }
        assert data["connections"][0]["localAddress"] == "10.0.0.5:22"
        assert data["connections"][0]["processLabel"] == 'users:(("sshd",pid=7,fd=4))'
        assert data["ports"][0] == {"protocol": "tcp", "port": 22, "address": "0.0.0.0:22"}

    def test_save_overwrites_single_slot(self, tmp_path):
        store = StateStore(tmp_path / "state.json")
        store.save(_snapshot())
        newer = Snapshot.build([], [], timestamp="2026-10-17T08:31:00.000Z")

        store.save(newer)

        assert store.load() == newer
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    @pytest.mark.parametrize("content", ["", "{not json", "[]", '{"timestamp": 1}'])
    def test_corrupt_file_is_no_baseline(self, tmp_path, content):
        path = tmp_path / "state.json"
        path.write_text(content)

        assert StateStore(path).load() is None

    def test_untraversable_path_is_no_baseline(self, tmp_path):
        store = StateStore(tmp_path / "state.json")

        with patch(
            "homesoc.network.store.open", side_effect=PermissionError("denied"), create=True
        ):
            assert store.load() is None

    def test_save_failure_raises_persist_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(PersistError):
            StateStore(blocker / "state.json").save(_snapshot())
