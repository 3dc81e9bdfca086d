"""Unit tests for the application status table and update builders."""

from datetime import datetime, timedelta

import pytest

from smarttutors.models.application import (
    ALLOWED_TRANSITIONS,
    ApplicationStatus,
    InvalidStatusError,
    InvalidTransitionError,
    TERMINAL_STATUSES,
    check_transition,
    parse_status,
)
from smarttutors.services.application_workflow import build_auxiliary_update, build_status_update

NOW = datetime(2026, 3, 1, 10, 30)


class TestParseStatus:

    @pytest.mark.parametrize("value", [s.value for s in ApplicationStatus])
    def test_accepts_every_member(self, value):
        assert parse_status(value).value == value

    def test_legacy_confirmed_maps_to_fee_pending(self):
        assert parse_status("confirmed") is ApplicationStatus.CONFIRMED_FEE_PENDING

    def test_rejects_unknown_value(self):
        with pytest.raises(InvalidStatusError):
            parse_status("not-a-real-status")

    def test_is_case_sensitive(self):
        with pytest.raises(InvalidStatusError):
            parse_status("Pending")


class TestTransitionTable:

    def test_terminal_statuses_have_no_targets(self):
        for status in TERMINAL_STATUSES:
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(ApplicationStatus)

    def test_forward_move_allowed(self):
        check_transition("pending", "selected-for-demo")
        check_transition("selected-for-demo", "confirmed-fee-pending")
        check_transition("confirmed-fee-pending", "completed")

    def test_backward_move_from_completed_rejected(self):
        with pytest.raises(InvalidTransitionError) as exc:
            check_transition("completed", "pending")
        assert exc.value.old_status == "completed"
        assert exc.value.new_status == "pending"

    def test_completing_straight_from_pending_rejected(self):
        with pytest.raises(InvalidTransitionError):
            check_transition("pending", "completed")


class TestBuildStatusUpdate:

    def test_no_status_means_no_change(self):
        assert build_status_update({"status": "pending"}, None, NOW) == {}

    def test_same_status_is_a_no_op(self):
        current = {"status": "confirmed-fee-pending", "confirmed_at": NOW - timedelta(days=1)}
        assert build_status_update(current, "confirmed-fee-pending", NOW) == {}

    def test_legacy_alias_of_current_status_is_a_no_op(self):
        current = {"status": "confirmed-fee-pending", "confirmed_at": NOW - timedelta(days=1)}
        assert build_status_update(current, "confirmed", NOW) == {}

    def test_selected_for_demo_stamps_confirmed_at(self):
        update = build_status_update({"status": "pending", "confirmed_at": None}, "selected-for-demo", NOW)
        assert update == {"status": "selected-for-demo", "confirmed_at": NOW}

    def test_existing_milestone_is_not_overwritten(self):
        earlier = NOW - timedelta(days=3)
        current = {"status": "selected-for-demo", "confirmed_at": earlier}
        update = build_status_update(current, "confirmed-fee-pending", NOW)
        assert update == {"status": "confirmed-fee-pending"}

    def test_completed_stamps_completed_at(self):
        current = {"status": "confirmed-fee-pending", "confirmed_at": NOW}
        update = build_status_update(current, "completed", NOW)
        assert update["completed_at"] == NOW

    def test_rejected_stamps_rejected_at(self):
        update = build_status_update({"status": "pending"}, "rejected", NOW)
        assert update == {"status": "rejected", "rejected_at": NOW}

    def test_withdrawn_has_no_milestone(self):
        assert build_status_update({"status": "pending"}, "withdrawn", NOW) == {"status": "withdrawn"}

    def test_missing_stored_status_treated_as_pending(self):
        assert build_status_update({}, "rejected", NOW)["status"] == "rejected"

    def test_disallowed_move_raises(self):
        with pytest.raises(InvalidTransitionError):
            build_status_update({"status": "rejected"}, "pending", NOW)


class TestBuildAuxiliaryUpdate:

    def test_only_sent_fields_are_copied(self):
        update = build_auxiliary_update({"notes": "call after 5pm", "status": "pending"}, NOW)
        assert update == {"notes": "call after 5pm"}

    def test_falsy_values_still_overwrite(self):
        update = build_auxiliary_update({"demo_completed": False, "feedback": "", "demo_date": None}, NOW)
        assert update == {"demo_completed": False, "feedback": "", "demo_date": None}

    def test_guardian_contact_sent_stamps_time(self):
        update = build_auxiliary_update({"guardian_contact_sent": True}, NOW)
        assert update == {"guardian_contact_sent": True, "guardian_contact_sent_at": NOW}

    def test_guardian_contact_cleared_without_stamp(self):
        update = build_auxiliary_update({"guardian_contact_sent": False}, NOW)
        assert "guardian_contact_sent_at" not in update
