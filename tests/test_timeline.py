from apps.api.ui.timeline import EMPTY_HISTORY_MESSAGE, TimelineState, build_timeline


def _entry(sequence: int, timestamp: str, **extra):
    entry = {
        "id": f"h-{sequence}",
        "sequence": sequence,
        "action": "status_changed",
        "status": "In Progress",
        "changed_by": "e2",
        "notes": "",
        "timestamp": timestamp,
    }
    entry.update(extra)
    return entry


def test_empty_history_is_distinct_from_loading_and_error():
    empty = build_timeline([])
    loading = build_timeline(None)
    failed = build_timeline(None, error="[503] Could not load complaint history")

    assert empty.state is TimelineState.EMPTY
    assert empty.message == EMPTY_HISTORY_MESSAGE == "No history yet"
    assert loading.state is TimelineState.LOADING
    assert failed.state is TimelineState.ERROR
    assert failed.message.startswith("[503]")


def test_error_wins_over_stale_history():
    timeline = build_timeline([_entry(2, "2024-05-01T10:00:00+00:00")], error="boom")
    assert timeline.state is TimelineState.ERROR
    assert timeline.items == ()


def test_entries_are_oldest_first_and_described():
    history = [
        _entry(3, "2024-05-01T11:00:00+00:00", notes="working on it"),
        _entry(
            2,
            "2024-05-01T10:00:00+00:00",
            action="reassigned",
            status="New",
            changed_by="m",
            assigned_from="e1",
            assigned_to="e2",
        ),
    ]

    timeline = build_timeline(history, names={"e1": "Eli", "e2": "Eve", "m": "Mia"})

    assert timeline.state is TimelineState.ENTRIES
    assert [item.title for item in timeline.items] == [
        "Reassigned from Eli to Eve",
        "Status set to In Progress",
    ]
    assert timeline.items[0].actor == "Mia"
    assert timeline.items[1].notes == "working on it"


def test_same_timestamp_falls_back_to_sequence():
    history = [
        _entry(4, "2024-05-01T10:00:00+00:00", status="Completed"),
        _entry(3, "2024-05-01T10:00:00+00:00", status="In Progress"),
    ]

    timeline = build_timeline(history)

    assert [item.title for item in timeline.items] == ["Status set to In Progress", "Status set to Completed"]


def test_remark_updates_are_described():
    timeline = build_timeline([_entry(2, "2024-05-01T10:00:00+00:00", action="remark_updated", notes="waiting")])
    assert timeline.items[0].title == "Remark updated"
    assert timeline.items[0].notes == "waiting"
