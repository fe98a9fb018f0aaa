"""Session codec: flat key/value encoding of a session."""

from helpers import make_session, make_tab, make_tabs

from tabber.codec import apply_update, apply_updates, decode, encode, is_recognized_key, tab_position
from tabber.models.session import Session


class TestEncode:
    def test_emits_scalars_numtabs_and_one_key_per_tab(self):
        session = make_session(make_tabs("a", "b"), generation=3, update_time=42)
        record = encode(session)
        assert record["description"] == "default"
        assert record["generation"] == 3
        assert record["updateTime"] == 42
        assert record["numtabs"] == 2
        assert record["Tab_0"]["url"] == "a"
        assert record["Tab_1"]["windowId"] == 10
        assert "tabs" not in record
        assert set(record) == {"description", "generation", "updateTime", "numtabs", "Tab_0", "Tab_1"}

    def test_numtabs_follows_tab_list(self):
        session = make_session(make_tabs("a", "b", "c"))
        session.numtabs = 7
        assert encode(session)["numtabs"] == 3


class TestDecode:
    def test_round_trip(self):
        session = make_session(make_tabs("a", "b", "c", active=2), generation=5, update_time=99)
        session.description = "work"
        decoded, obsolete = decode(encode(session))
        assert obsolete == []
        assert decoded == session

    def test_unknown_keys_are_reported_obsolete(self):
        record = encode(make_session(make_tabs("a")))
        record["options"] = {"mode": "manual"}
        record["tabs"] = []
        _, obsolete = decode(record)
        assert sorted(obsolete) == ["options", "tabs"]

    def test_tab_slots_beyond_numtabs_are_obsolete(self):
        record = encode(make_session(make_tabs("a", "b")))
        record["Tab_2"] = make_tab("stale").model_dump(by_alias=True)
        record["Tab_9"] = make_tab("older").model_dump(by_alias=True)
        session, obsolete = decode(record)
        assert sorted(obsolete) == ["Tab_2", "Tab_9"]
        assert [t.url for t in session.tabs] == ["a", "b"]

    def test_empty_record_gives_generation_zero_without_tabs(self):
        session, obsolete = decode({})
        assert obsolete == []
        assert session.generation == 0
        assert session.tabs == []

    def test_malformed_known_keys_are_kept(self):
        record = {
            "numtabs": 2,
            "Tab_0": {"url": "a", "index": 0, "id": 1},
            "Tab_1": "garbage",
            "updateTime": 1.5,
            "junk": 1,
        }
        session, obsolete = decode(record)
        # only keys no session can hold are offered for removal
        assert obsolete == ["junk"]
        assert session.update_time is None
        assert session.tabs[0].url == "a"

    def test_malformed_numtabs_keeps_tab_slots(self):
        record = {
            "numtabs": "2",
            "Tab_0": {"url": "a", "index": 0, "id": 1},
            "Tab_1": {"url": "b", "index": 1, "id": 2},
        }
        session, obsolete = decode(record)
        assert obsolete == []
        assert session.tabs == []

    def test_tab_keys_apply_in_numeric_order(self):
        record = {
            "numtabs": 3,
            "Tab_2": {"url": "c", "index": 2, "id": 3},
            "Tab_0": {"url": "a", "index": 0, "id": 1},
            "Tab_1": {"url": "b", "index": 1, "id": 2},
        }
        session, _ = decode(record)
        assert [t.url for t in session.tabs] == ["a", "b", "c"]


class TestApplyUpdate:
    def test_recognized_keys(self):
        assert is_recognized_key("description")
        assert is_recognized_key("updateTime")
        assert is_recognized_key("numtabs")
        assert is_recognized_key("Tab_12")
        assert not is_recognized_key("tabs")
        assert not is_recognized_key("Tab_x")
        assert not is_recognized_key("")
        assert tab_position("Tab_12") == 12
        assert tab_position("generation") is None

    def test_tabs_key_is_never_settable(self):
        session = make_session(make_tabs("a"))
        assert not apply_update(session, "tabs", [])
        assert len(session.tabs) == 1

    def test_stale_tab_slot_rejected(self):
        session = make_session(make_tabs("a", "b"))
        assert not apply_update(session, "Tab_2", make_tab("c").model_dump())
        assert len(session.tabs) == 2

    def test_replaces_existing_tab(self):
        session = make_session(make_tabs("a", "b"))
        assert apply_update(session, "Tab_1", {"url": "z", "index": 1, "id": 9, "windowId": 10})
        assert session.tabs[1].url == "z"
        assert session.tabs[1].window_id == 10

    def test_shrinking_numtabs_truncates_tabs(self):
        session = make_session(make_tabs("a", "b", "c"))
        assert apply_update(session, "numtabs", 1)
        assert session.numtabs == 1
        assert [t.url for t in session.tabs] == ["a"]

    def test_growing_numtabs_opens_new_slots(self):
        session = make_session(make_tabs("a"))
        assert apply_update(session, "numtabs", 3)
        assert len(session.tabs) == 1
        assert apply_update(session, "Tab_2", {"url": "c", "index": 2, "id": 3})
        # the gap stays as an invalid placeholder until Tab_1 arrives
        assert len(session.tabs) == 3
        assert session.tabs[1].id == -1
        assert not session.is_valid()
        assert apply_update(session, "Tab_1", {"url": "b", "index": 1, "id": 2})
        assert [t.url for t in session.tabs] == ["a", "b", "c"]
        assert session.is_valid()

    def test_malformed_values_rejected(self):
        session = make_session(make_tabs("a"))
        assert not apply_update(session, "numtabs", "3")
        assert not apply_update(session, "generation", "7")
        assert not apply_update(session, "Tab_0", "not a tab")
        assert session.generation == 1
        assert session.tabs[0].url == "a"


class TestApplyUpdates:
    def test_numtabs_applied_before_tabs(self):
        session = make_session(make_tabs("a", "b", "c"))
        # Tab_2 comes first in the record but numtabs already trims it away
        obsolete = apply_updates(session, {"Tab_2": {"url": "x", "index": 2, "id": 3}, "numtabs": 2})
        assert obsolete == ["Tab_2"]
        assert [t.url for t in session.tabs] == ["a", "b"]

    def test_scalar_updates(self):
        session = Session(generation=0)
        obsolete = apply_updates(session, {"generation": 4, "updateTime": 7, "description": "home", "junk": 1})
        assert obsolete == ["junk"]
        assert session.generation == 4
        assert session.update_time == 7
        assert session.description == "home"
