"""
Unit tests for the realtime store backends
Both backends must behave the same for path reads, writes and subscriptions
"""
import pytest

from cloudburst.core.error_handling import ValidationError
from cloudburst.store import InMemoryStore, SQLiteStore, join_path, split_path


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStore()
    else:
        backend = SQLiteStore.from_path(str(tmp_path / "store.db"))
    yield backend
    backend.close()


class TestPaths:

    @pytest.mark.unit
    def test_split_path(self):
        assert split_path("nodes/node1/metadata") == ["nodes", "node1", "metadata"]
        assert split_path("/nodes/") == ["nodes"]
        assert split_path("") == []

    @pytest.mark.unit
    @pytest.mark.parametrize("path", ["nodes//x", "nodes/a.b", "logs/$id", "a/[0]"])
    def test_invalid_paths_rejected(self, path):
        with pytest.raises(ValidationError):
            split_path(path)

    @pytest.mark.unit
    def test_join_path(self):
        assert join_path("nodes", "/node1/", "realtime") == "nodes/node1/realtime"


class TestRealtimeStore:

    @pytest.mark.unit
    def test_set_and_get(self, store):
        store.set("nodes/node1/metadata", {"name": "Ridge", "latitude": 30.5})
        assert store.get("nodes/node1/metadata") == {"name": "Ridge", "latitude": 30.5}
        assert store.get("nodes/node1/metadata/name") == "Ridge"
        assert store.get("nodes/node1") == {"metadata": {"name": "Ridge", "latitude": 30.5}}

    @pytest.mark.unit
    def test_missing_path_is_none(self, store):
        assert store.get("nodes/missing") is None
        assert store.exists("nodes/missing") is False

    @pytest.mark.unit
    def test_set_prunes_none_and_empty(self, store):
        store.set("nodes/node1", {"metadata": {"name": "A", "altitude": None}, "history": {}})
        assert store.get("nodes/node1") == {"metadata": {"name": "A"}}

    @pytest.mark.unit
    def test_set_prunes_inside_lists(self, store):
        store.set("notifications/n1", {
            "errors": [{"to": "+919123456780", "error": "unreachable", "code": None}, None],
            "affectedNodes": [],
        })
        assert store.get("notifications/n1") == {
            "errors": [{"to": "+919123456780", "error": "unreachable"}],
            "affectedNodes": [],
        }

    @pytest.mark.unit
    def test_set_replaces_subtree(self, store):
        store.set("settings/system", {"updateInterval": 10, "dataRetention": 7})
        store.set("settings/system", {"updateInterval": 20})
        assert store.get("settings/system") == {"updateInterval": 20}

    @pytest.mark.unit
    def test_update_merges_children(self, store):
        store.set("nodes/node1/metadata", {"name": "A", "latitude": 1.0})
        store.update("nodes/node1", {"metadata/name": "B", "realtime/temperature": 21.5})
        assert store.get("nodes/node1") == {
            "metadata": {"name": "B", "latitude": 1.0},
            "realtime": {"temperature": 21.5},
        }

    @pytest.mark.unit
    def test_remove(self, store):
        store.set("nodes/node1/metadata", {"name": "A"})
        store.set("nodes/node2/metadata", {"name": "B"})
        store.remove("nodes/node1")
        assert store.get("nodes") == {"node2": {"metadata": {"name": "B"}}}
        store.remove("nodes/does-not-exist")

    @pytest.mark.unit
    def test_values_keep_types(self, store):
        store.set("x", {"flag": False, "count": 0, "ratio": 0.5, "tags": ["a", "b"], "label": ""})
        assert store.get("x") == {"flag": False, "count": 0, "ratio": 0.5, "tags": ["a", "b"], "label": ""}

    @pytest.mark.unit
    def test_create_is_conditional(self, store):
        assert store.create("nodes/node1", {"metadata": {"name": "First"}}) is True
        assert store.create("nodes/node1", {"metadata": {"name": "Second"}}) is False
        assert store.get("nodes/node1/metadata/name") == "First"

    @pytest.mark.unit
    def test_children_ordering_and_window(self, store):
        for key in ("1700000000300", "1700000000100", "1700000000200"):
            store.set(f"history/{key}", {"v": int(key[-3:])})

        keys = [key for key, _ in store.children("history")]
        assert keys == ["1700000000100", "1700000000200", "1700000000300"]

        last_two = store.children("history", limit_to_last=2)
        assert [key for key, _ in last_two] == ["1700000000200", "1700000000300"]

        before = store.children("history", end_before="1700000000300", limit_to_last=1)
        assert before == [("1700000000200", {"v": 200})]

    @pytest.mark.unit
    def test_subscribe_delivers_current_value_and_changes(self, store):
        store.set("nodes/node1/metadata", {"name": "A"})
        received = []
        unsubscribe = store.subscribe("nodes", received.append)

        store.set("nodes/node2/metadata", {"name": "B"})
        store.set("alerts/a1", {"message": "unrelated"})
        unsubscribe()
        store.set("nodes/node3/metadata", {"name": "C"})

        assert len(received) == 2
        assert set(received[-1]) == {"node1", "node2"}

    @pytest.mark.unit
    def test_failing_subscriber_does_not_break_writes(self, store):
        def broken(_value):
            raise RuntimeError("boom")

        store.subscribe("nodes", broken)
        store.set("nodes/node1/metadata", {"name": "A"})
        assert store.get("nodes/node1/metadata/name") == "A"


class TestSQLiteStore:

    @pytest.mark.unit
    def test_data_survives_reopen(self, tmp_path):
        db_path = str(tmp_path / "persist.db")
        first = SQLiteStore.from_path(db_path)
        first.set("contacts/c1", {"name": "Asha", "phone": "+919876543210"})
        first.close()

        second = SQLiteStore.from_path(db_path)
        try:
            assert second.get("contacts/c1/phone") == "+919876543210"
        finally:
            second.close()
