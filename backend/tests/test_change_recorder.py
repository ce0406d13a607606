"""
test_change_recorder.py: Unit tests for the manual price-edit log.
"""

from app.services.change_recorder import ChangeRecorder


class TestChangeRecorder:
    """One entry per (service, field), net change against the first baseline."""

    def test_records_change_with_percent(self):
        recorder = ChangeRecorder("session-1")
        entry = recorder.record("saniclean", "per_visit", 80.0, 100.0)
        assert entry.change_amount == 20.0
        assert entry.change_percent == 25.0
        assert recorder.has_changes()

    def test_repeated_edits_keep_first_baseline(self):
        recorder = ChangeRecorder()
        recorder.record("saniclean", "per_visit", 80.0, 100.0)
        entry = recorder.record("saniclean", "per_visit", 100.0, 120.0)
        assert entry.original_value == 80.0
        assert entry.change_amount == 40.0
        assert len(recorder.changes()) == 1

    def test_reverting_to_baseline_drops_entry(self):
        recorder = ChangeRecorder()
        recorder.record("saniclean", "per_visit", 80.0, 100.0)
        assert recorder.record("saniclean", "per_visit", 100.0, 80.0) is None
        assert not recorder.has_changes()

    def test_zero_baseline_reports_zero_percent(self):
        recorder = ChangeRecorder()
        entry = recorder.record("saniclean", "trip_charge", 0, 8)
        assert entry.change_percent == 0.0
        assert entry.change_amount == 8.0

    def test_non_numeric_is_ignored(self):
        recorder = ChangeRecorder()
        assert recorder.record("saniclean", "soap_type", "standard", "luxury") is None
        assert not recorder.has_changes()

    def test_clear_by_service(self):
        recorder = ChangeRecorder()
        recorder.record("saniclean", "per_visit", 80.0, 100.0)
        recorder.record("carpet", "per_visit", 250.0, 300.0)
        recorder.clear("saniclean")
        assert [c.service_id for c in recorder.changes()] == ["carpet"]
        recorder.clear()
        assert recorder.changes() == []

    def test_remove_single_field(self):
        recorder = ChangeRecorder()
        recorder.record("saniclean", "per_visit", 80.0, 100.0)
        recorder.record("saniclean", "monthly", 346.4, 400.0)
        recorder.remove("saniclean", "per_visit")
        assert [c.field for c in recorder.changes("saniclean")] == ["monthly"]

    def test_payload_is_camel_case(self):
        recorder = ChangeRecorder()
        recorder.record("carpet", "per_visit", 250.0, 300.0)
        payload = recorder.to_payload()[0]
        assert payload["serviceId"] == "carpet"
        assert payload["originalValue"] == 250.0
        assert payload["newValue"] == 300.0
        assert payload["changePercent"] == 20.0
        assert "recordedAt" in payload
