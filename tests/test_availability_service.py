from datetime import date

from app.application.ports.appointments_repo import NewAppointment
from app.application.ports.schedule_repo import WeeklyScheduleInput
from app.application.services.availability_service import AvailabilityCalculator, Window, slice_window
from app.application.services.time_utils import TimeOfDay


def _book(repos, day, start, end, status="confirmed", rut="11111111-1"):
    return repos.appointments.create(NewAppointment(day, start, end, 60, status, rut))


def _calc(repos, slot_minutes=60):
    return AvailabilityCalculator(repos.schedules, repos.appointments, repos.blocks, slot_minutes)


def test_weekly_window_is_sliced_into_slots(repos, monday):
    result = _calc(repos).available_slots(monday)
    assert result.start_times() == ["09:00", "10:00", "11:00"]
    assert result.total == 3


def test_booked_slot_is_removed(repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    assert _calc(repos).available_slots(monday).start_times() == ["09:00", "11:00"]


def test_closed_exception_overrides_weekly(repos, monday):
    repos.schedules.upsert_exception(monday, False, None, None, "Holiday")
    result = _calc(repos).available_slots(monday)
    assert result.slots == []
    assert result.windows == []


def test_open_exception_replaces_weekly_hours(repos, monday):
    repos.schedules.upsert_exception(monday, True, "15:00:00", "17:00:00", "Afternoon only")
    assert _calc(repos).available_slots(monday).start_times() == ["15:00", "16:00"]


def test_open_exception_without_hours_has_no_windows(repos, monday):
    repos.schedules.upsert_exception(monday, True, None, None, None)
    assert _calc(repos).resolve_windows(monday) == []


def test_exception_on_day_without_weekly_hours(repos):
    sunday = date(2030, 1, 6)
    assert _calc(repos).available_slots(sunday).slots == []
    repos.schedules.upsert_exception(sunday, True, "10:00:00", "12:00:00", None)
    assert _calc(repos).available_slots(sunday).start_times() == ["10:00", "11:00"]


def test_cancelled_and_completed_do_not_hold_slots(repos, monday):
    _book(repos, monday, "09:00:00", "10:00:00", status="cancelled")
    _book(repos, monday, "11:00:00", "12:00:00", status="completed")
    assert _calc(repos).available_slots(monday).start_times() == ["09:00", "10:00", "11:00"]


def test_pending_appointment_holds_slot(repos, monday):
    _book(repos, monday, "09:00:00", "10:00:00", status="pending")
    assert "09:00" not in _calc(repos).available_slots(monday).start_times()


def test_misaligned_booking_removes_every_overlapping_slot(repos, monday):
    _book(repos, monday, "09:30:00", "10:30:00")
    assert _calc(repos).available_slots(monday).start_times() == ["11:00"]


def test_manual_block_removes_overlapping_slots(repos, monday):
    repos.blocks.create(monday, "10:30:00", "11:30:00", "manual", "Supervision")
    assert _calc(repos).available_slots(monday).start_times() == ["09:00"]


def test_block_touching_slot_edge_keeps_slot(repos, monday):
    repos.blocks.create(monday, "12:00:00", "13:00:00", "lunch", None)
    assert _calc(repos).available_slots(monday).start_times() == ["09:00", "10:00", "11:00"]


def test_multiple_windows_are_sorted_and_deduplicated(repos, monday):
    repos.schedules.replace_weekly([
        WeeklyScheduleInput(1, "14:00:00", "16:00:00"),
        WeeklyScheduleInput(1, "09:00:00", "11:00:00"),
    ])
    assert _calc(repos).available_slots(monday).start_times() == ["09:00", "10:00", "14:00", "15:00"]


def test_inactive_weekly_entries_are_ignored(repos, monday):
    entry = repos.schedules.list_weekly(day_of_week=1)[0]
    repos.schedules.set_weekly_active(entry.id, False)
    assert _calc(repos).available_slots(monday).slots == []


def test_trailing_partial_slot_is_dropped():
    window = Window(TimeOfDay(9, 0), TimeOfDay(11, 30))
    assert [s.start.short() for s in slice_window(window, 60)] == ["09:00", "10:00"]
    assert [s.start.short() for s in slice_window(window, 90)] == ["09:00"]


def test_slots_are_inside_windows_and_free(repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    repos.blocks.create(monday, "11:15:00", "11:45:00", "manual", None)
    result = _calc(repos, slot_minutes=30).available_slots(monday)
    for slot in result.slots:
        assert any(w.contains(slot.start.minutes, slot.end.minutes) for w in result.windows)
        assert not (600 <= slot.start.minutes < 660)
    assert result.start_times() == ["09:00", "09:30"]


def test_calculation_does_not_change_state(repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    calc = _calc(repos)
    first = calc.available_slots(monday)
    second = calc.available_slots(monday)
    assert first.slots == second.slots
    assert len(repos.appointments.list_for_date(monday)) == 1


def test_long_session_only_offers_starts_where_it_fits(repos, monday):
    result = _calc(repos).available_slots(monday, duration_minutes=90)
    assert result.start_times() == ["09:00", "10:00"]
    assert [s.end.short() for s in result.slots] == ["10:30", "11:30"]


def test_long_session_skips_starts_that_run_into_a_booking(repos, monday):
    _book(repos, monday, "11:00:00", "12:00:00")
    assert _calc(repos).available_slots(monday, duration_minutes=90).start_times() == ["09:00"]


def test_short_session_keeps_hourly_steps():
    window = Window(TimeOfDay(9, 0), TimeOfDay(11, 0))
    slots = slice_window(window, 60, duration_minutes=30)
    assert [(s.start.short(), s.end.short()) for s in slots] == [("09:00", "09:30"), ("10:00", "10:30")]


def test_month_summary_has_one_entry_per_day(repos):
    days = _calc(repos).month_summary(2030, 2, duration_minutes=90)
    assert len(days) == 28
    assert days[0].date == date(2030, 2, 1)
    counts = {d.date: d.total for d in days}
    assert counts[date(2030, 2, 4)] == 2  # Monday
    assert counts[date(2030, 2, 5)] == 2  # Tuesday
    assert counts[date(2030, 2, 6)] == 0


def test_next_available_walks_forward(repos):
    sunday = date(2030, 1, 6)
    day, slot = _calc(repos).next_available(sunday, duration_minutes=90)
    assert (day, slot.start.short()) == (date(2030, 1, 7), "09:00")

    _book(repos, date(2030, 1, 7), "09:00:00", "10:00:00")
    _book(repos, date(2030, 1, 7), "10:00:00", "11:00:00", rut="22222222-2")
    day, slot = _calc(repos).next_available(sunday, duration_minutes=90)
    assert (day, slot.start.short()) == (date(2030, 1, 8), "09:00")


def test_next_available_applies_filter_and_horizon(repos):
    sunday = date(2030, 1, 6)

    def skip_mondays(day, slots):
        return [] if day.weekday() == 0 else slots

    day, _ = _calc(repos).next_available(sunday, slot_filter=skip_mondays)
    assert day == date(2030, 1, 8)
    assert _calc(repos).next_available(date(2030, 1, 9), days=4) is None
