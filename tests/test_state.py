from __future__ import annotations

import json

import pytest

from debtbomb.state import StateError, TicketState


def _state_file(root):
    return root / ".debtbomb" / "jira-map.json"


def test_missing_file_is_empty(tmp_path) -> None:
    st = TicketState.load(str(tmp_path))
    assert st.snapshot() == {}
    assert st.get("x") is None


def test_empty_file_is_empty(tmp_path) -> None:
    p = _state_file(tmp_path)
    p.parent.mkdir()
    p.write_text("", encoding="utf-8")
    assert TicketState.load(str(tmp_path)).snapshot() == {}


def test_round_trip_overwrites_whole_file(tmp_path) -> None:
    st = TicketState.load(str(tmp_path))
    st.set("a", "DEBT-1")
    st.set("b", "DEBT-2")
    st.save()
    assert json.loads(_state_file(tmp_path).read_text(encoding="utf-8")) == {"a": "DEBT-1", "b": "DEBT-2"}

    again = TicketState.load(str(tmp_path))
    again.remove("a")
    again.remove("not-there")
    again.save()
    assert json.loads(_state_file(tmp_path).read_text(encoding="utf-8")) == {"b": "DEBT-2"}
    assert not [p for p in _state_file(tmp_path).parent.iterdir() if p.name.endswith(".tmp")]


def test_snapshot_is_a_copy(tmp_path) -> None:
    st = TicketState.load(str(tmp_path))
    st.set("a", "DEBT-1")
    snap = st.snapshot()
    st.remove("a")
    assert snap == {"a": "DEBT-1"}
    assert len(st) == 0


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_malformed_file_raises(tmp_path, content) -> None:
    p = _state_file(tmp_path)
    p.parent.mkdir()
    p.write_text(content, encoding="utf-8")
    with pytest.raises(StateError):
        TicketState.load(str(tmp_path))


def test_save_failure_raises(tmp_path) -> None:
    (tmp_path / ".debtbomb").write_text("a file, not a directory", encoding="utf-8")
    st = TicketState(str(_state_file(tmp_path)))
    st.set("a", "DEBT-1")
    with pytest.raises(StateError):
        st.save()
