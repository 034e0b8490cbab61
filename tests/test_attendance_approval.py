from datetime import date

import pytest

from promoter_slots.domain.approval.service import ApprovalService
from promoter_slots.domain.attendance.service import AttendanceService
from promoter_slots.domain.slots.service import SlotService
from promoter_slots.errors import InvalidStateTransition, NotAttended, NotFoundError, ValidationError
from promoter_slots.models import Attendance, SlotRegistration, User

from .helpers import FakeNotifier, make_config, make_slot, make_user, make_users


@pytest.fixture
def slot(db_session):
    return make_slot(db_session, make_config(db_session))


def book(db_session, slot, users):
    for user in users:
        slot.registrations.append(SlotRegistration(user_id=user.id))
        user.slot_id = slot.id
        user.state = "scheduled"
    db_session.commit()


class TestMarkAttendance:
    def test_attended_moves_user_to_meeting_held(self, db_session, slot):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])

        record = AttendanceService(db_session).mark_attendance(user.id, slot.id, True, "Puntual", "admin")

        db_session.refresh(user)
        assert record.attended is True
        assert record.marked_at is not None
        assert record.notes == "Puntual"
        assert user.state == "meeting_held"
        assert user.attended is True

    def test_marking_twice_updates_single_record(self, db_session, slot):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])
        service = AttendanceService(db_session)

        service.mark_attendance(user.id, slot.id, False)
        record = service.mark_attendance(user.id, slot.id, True)

        assert db_session.query(Attendance).count() == 1
        assert record.attended is True

    def test_absent_clears_marked_at(self, db_session, slot):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])
        service = AttendanceService(db_session)
        service.mark_attendance(user.id, slot.id, True)

        record = service.mark_attendance(user.id, slot.id, False)

        db_session.refresh(user)
        assert record.marked_at is None
        assert user.attended is False
        # Forward-only workflow
        assert user.state == "meeting_held"

    def test_slot_defaults_to_users_current_slot(self, db_session, slot):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])

        record = AttendanceService(db_session).mark_attendance(user.id, None, True)

        assert record.slot_id == slot.id

    def test_user_without_slot_requires_slot_id(self, db_session):
        user = make_user(db_session, "ana@example.com")

        with pytest.raises(ValidationError):
            AttendanceService(db_session).mark_attendance(user.id, None, True)

    def test_unknown_user(self, db_session, slot):
        with pytest.raises(NotFoundError):
            AttendanceService(db_session).mark_attendance(999, slot.id, True)


class TestAttendanceReports:
    def test_bulk_create_skips_existing(self, db_session, slot):
        users = make_users(db_session, 3)
        book(db_session, slot, users)
        service = AttendanceService(db_session)
        service.mark_attendance(users[0].id, slot.id, True)

        result = service.bulk_create_for_slot(slot.id)

        assert result["skipped"] == [users[0].id]
        assert sorted(result["created"]) == sorted([users[1].id, users[2].id])
        assert result["failed"] == []

    def test_slot_stats_and_summary(self, db_session, slot):
        users = make_users(db_session, 4)
        book(db_session, slot, users)
        service = AttendanceService(db_session)
        service.mark_attendance(users[0].id, slot.id, True)
        service.mark_attendance(users[1].id, slot.id, True)
        service.mark_attendance(users[2].id, slot.id, False)

        assert service.slot_stats(slot.id) == {
            "slotId": slot.id,
            "registered": 4,
            "attended": 2,
            "absent": 1,
            "unmarked": 1,
        }
        summary = service.summary()
        assert summary["attended"] == 2
        assert summary["absent"] == 1
        assert summary["attendanceRate"] == 66.7

    def test_attendance_lists(self, db_session, slot):
        users = make_users(db_session, 3)
        book(db_session, slot, users)
        service = AttendanceService(db_session)
        service.mark_attendance(users[0].id, slot.id, True)
        service.mark_attendance(users[1].id, slot.id, False)

        lists = service.attendance_lists(date(2024, 6, 1), date(2024, 6, 30))

        assert [e["user"]["id"] for e in lists["attended"]] == [users[0].id]
        assert [e["user"]["id"] for e in lists["absent"]] == [users[1].id]
        assert [e["user"]["id"] for e in lists["pending"]] == [users[2].id]


class TestApproval:
    async def test_approval_requires_attendance(self, db_session, slot):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])

        with pytest.raises(NotAttended):
            await ApprovalService(db_session, notifier=FakeNotifier()).approve_user(user.id, "admin")

        db_session.refresh(user)
        assert user.state == "scheduled"

    async def test_approve_sends_email(self, db_session, slot, notifier):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])
        AttendanceService(db_session).mark_attendance(user.id, slot.id, True)

        user, attempt = await ApprovalService(db_session, notifier=notifier).approve_user(user.id, "admin")

        assert user.state == "approved"
        assert user.approved_by == "admin"
        assert user.approval_email_sent is True
        assert attempt.succeeded is True
        assert notifier.approvals == ["ana@example.com"]

    async def test_email_failure_keeps_approval(self, db_session, slot):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])
        AttendanceService(db_session).mark_attendance(user.id, slot.id, True)
        notifier = FakeNotifier(failing=("ana@example.com",))

        user, attempt = await ApprovalService(db_session, notifier=notifier).approve_user(user.id, "admin")

        assert user.state == "approved"
        assert user.approval_email_sent is False
        assert attempt.succeeded is False

    async def test_rejected_user_cannot_be_approved(self, db_session, slot, notifier):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])
        AttendanceService(db_session).mark_attendance(user.id, slot.id, True)
        service = ApprovalService(db_session, notifier=notifier)
        service.reject_user(user.id, "Perfil incompleto", "admin")

        with pytest.raises(InvalidStateTransition):
            await service.approve_user(user.id, "admin")

    def test_rejection_requires_reason(self, db_session):
        user = make_user(db_session, "ana@example.com")

        with pytest.raises(ValidationError):
            ApprovalService(db_session, notifier=FakeNotifier()).reject_user(user.id, "  ", "admin")

    async def test_bulk_approve_reports_each_user(self, db_session, slot, notifier):
        attended, absent = make_users(db_session, 2)
        book(db_session, slot, [attended, absent])
        AttendanceService(db_session).mark_attendance(attended.id, slot.id, True)

        results = await ApprovalService(db_session, notifier=notifier).bulk_approve(
            [attended.id, absent.id, 999], "admin"
        )

        assert [r["success"] for r in results] == [True, False, False]
        assert results[2]["message"] == "User not found"

    async def test_derived_counts(self, db_session, slot, notifier):
        users = make_users(db_session, 10)
        book(db_session, slot, users)
        attendance = AttendanceService(db_session)
        for user in users:
            attendance.mark_attendance(user.id, slot.id, True)

        approval = ApprovalService(db_session, notifier=notifier)
        await approval.approve_user(users[0].id, "admin")
        SlotService(db_session, meeting_provider=object(), notifier=notifier).approve_registration(
            slot.id, users[0].id, "admin"
        )

        stats = approval.approval_statistics()
        assert stats["approved"] == 1
        assert stats["meetingHeld"] == 9
        assert stats["pendingApproval"] == 9

        db_session.refresh(slot)
        assert slot.approved_count == 1
        assert slot.pending_count == 9

    async def test_candidates_sorted_by_latest_meeting(self, db_session, notifier):
        config = make_config(db_session)
        early = make_slot(db_session, config, day=date(2024, 6, 3))
        late = make_slot(db_session, config, day=date(2024, 6, 5))
        first, second = make_users(db_session, 2)
        book(db_session, early, [first])
        book(db_session, late, [second])
        attendance = AttendanceService(db_session)
        attendance.mark_attendance(first.id, early.id, True)
        attendance.mark_attendance(second.id, late.id, True)

        candidates = ApprovalService(db_session, notifier=notifier).list_attended_candidates()

        assert [c["user"].id for c in candidates] == [second.id, first.id]

    async def test_same_day_candidates_sorted_by_start_time(self, db_session, notifier):
        config = make_config(db_session)
        morning = make_slot(db_session, config, start_time="09:00")
        evening = make_slot(db_session, config, start_time="16:00")
        first, second = make_users(db_session, 2)
        book(db_session, morning, [first])
        book(db_session, evening, [second])
        attendance = AttendanceService(db_session)
        attendance.mark_attendance(first.id, morning.id, True)
        attendance.mark_attendance(second.id, evening.id, True)

        candidates = ApprovalService(db_session, notifier=notifier).list_attended_candidates()

        assert [c["user"].id for c in candidates] == [second.id, first.id]

    async def test_remove_candidate(self, db_session, slot, notifier):
        user = make_user(db_session, "ana@example.com")
        book(db_session, slot, [user])

        ApprovalService(db_session, notifier=notifier).remove_candidate(user.id)

        db_session.refresh(slot)
        assert db_session.query(User).count() == 0
        assert slot.registered_count == 0
