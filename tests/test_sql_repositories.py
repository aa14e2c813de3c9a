from datetime import date

import pytest

from app.application.ports.appointments_repo import NewAppointment, SlotAlreadyBookedError
from app.application.ports.caller import PUBLIC_CALLER
from app.application.ports.patients_repo import PatientData
from app.application.ports.schedule_repo import WeeklyScheduleInput
from app.application.services.booking_policy import BookingPolicy
from app.application.services.conflict_validator import ValidationOutcome
from app.application.services.scheduling_service import SchedulingService
from app.application.services.time_utils import TimeOfDay
from app.config import Settings
from app.database import make_engine
from app.db.models import Appointment, Treatment
from app.exceptions import ErrorCode, SchedulingError
from app.infrastructure.persistence.sqlalchemy.sql_storage import SqlStorage

MONDAY = date(2030, 1, 7)


@pytest.fixture
def sql_storage():
    storage = SqlStorage(make_engine(Settings(DATABASE_URL="sqlite://", STORAGE_BACKEND="sql", DEBUG=False)))
    storage.init()
    return storage


def _new(start="10:00:00", end="11:00:00", status="confirmed", rut="12345678-5"):
    return NewAppointment(MONDAY, start, end, 60, status, rut)


def test_unique_active_slot_is_enforced(sql_storage):
    with sql_storage.unit() as repos:
        first = repos.appointments.create(_new())
        with pytest.raises(SlotAlreadyBookedError):
            repos.appointments.create(_new(end="10:30:00"))
        # the session is still usable after the rollback
        assert [a.id for a in repos.appointments.list_for_date(MONDAY)] == [first.id]


def test_cancelled_rows_free_the_slot(sql_storage):
    with sql_storage.unit() as repos:
        first = repos.appointments.create(_new())
        repos.appointments.update_status(first.id, "cancelled", cancellation_reason="sick")
        second = repos.appointments.create(_new(rut="11111111-1"))
        assert second.id != first.id
        with pytest.raises(SlotAlreadyBookedError):
            repos.appointments.update_status(first.id, "confirmed")
        assert len(repos.appointments.list_for_date(MONDAY, statuses=["confirmed"])) == 1


def test_reschedule_onto_taken_start_is_rejected(sql_storage):
    with sql_storage.unit() as repos:
        repos.appointments.create(_new())
        other = repos.appointments.create(_new("12:00:00", "13:00:00", rut="11111111-1"))
        with pytest.raises(SlotAlreadyBookedError):
            repos.appointments.update_schedule(other.id, MONDAY, "10:00:00", "11:00:00", 60)


def test_schedule_repository_maps_columns(sql_storage):
    with sql_storage.unit() as repos:
        repos.schedules.replace_weekly([WeeklyScheduleInput(1, "09:00:00", "12:00:00"), WeeklyScheduleInput(1, "14:00:00", "16:00:00", active=False)])
        assert len(repos.schedules.list_weekly(day_of_week=1)) == 2
        active = repos.schedules.list_weekly(day_of_week=1, active_only=True)
        assert [(w.start_time, w.active) for w in active] == [("09:00:00", True)]

        repos.schedules.upsert_exception(MONDAY, False, None, None, "Holiday")
        repos.schedules.upsert_exception(MONDAY, True, "10:00:00", "11:00:00", "Half day")
        exceptions = repos.schedules.list_exceptions()
        assert len(exceptions) == 1
        assert exceptions[0].date == MONDAY
        assert exceptions[0].is_available
        assert repos.schedules.delete_exception(MONDAY)
        assert repos.schedules.get_exception(MONDAY) is None


def test_block_and_patient_repositories(sql_storage):
    with sql_storage.unit() as repos:
        block = repos.blocks.create(MONDAY, "13:00:00", "14:00:00", "manual", "Supervision")
        assert repos.blocks.list_for_date(MONDAY)[0].date == MONDAY
        assert repos.blocks.update(block.id, MONDAY, "15:00:00", "16:00:00", "lunch", None).type == "lunch"
        assert repos.blocks.delete(block.id)
        assert repos.blocks.list_all() == []

        created = repos.patients.create(PatientData(rut="12345678-5", full_name="Ana Rojas", email="ana@example.com"))
        updated = repos.patients.update("12345678-5", PatientData(rut="12345678-5", full_name="Ana Rojas", email="ana@new.cl", phone="+569"))
        assert updated.id == created.id
        assert (updated.email, updated.phone) == ("ana@new.cl", "+569")


def test_booking_flow_on_sql_storage(sql_storage):
    with sql_storage.unit() as repos:
        repos.catalog.session.add(Treatment(id=1, name="Individual therapy", price=35000, duration_minutes=60))
        repos.catalog.session.commit()
        repos.schedules.replace_weekly([WeeklyScheduleInput(1, "09:00:00", "12:00:00")])
        service = SchedulingService.from_repositories(repos, policy=BookingPolicy(min_advance_hours=0, max_days_ahead=0))

        patient = PatientData(rut="12.345.678-5", full_name="Ana Rojas", email="ana@example.com")
        booked = service.create_appointment(PUBLIC_CALLER, MONDAY.isoformat(), "10:00", patient, treatment_id=1)
        assert booked.appointment.amount == 35000
        assert service.calculator.available_slots(MONDAY).start_times() == ["09:00", "11:00"]

        with pytest.raises(SchedulingError) as exc:
            service.create_appointment(PUBLIC_CALLER, MONDAY.isoformat(), "10:00", patient, treatment_id=1)
        assert exc.value.code == ErrorCode.SLOT_TAKEN


def test_stored_timestamps_are_timezone_aware(sql_storage):
    assert Appointment(appointment_date=MONDAY, start_time="10:00:00", end_time="11:00:00", duration_minutes=60, patient_rut="12345678-5").created_at.tzinfo is not None
    with sql_storage.unit() as repos:
        booked = repos.appointments.create(_new())
        repos.appointments.update_status(booked.id, "completed")
        moved = repos.appointments.update_schedule(booked.id, MONDAY, "11:00:00", "12:00:00", 60)
        assert moved.start_time == "11:00:00"
        assert moved.updated_at is not None

        repos.patients.create(PatientData(rut="11111111-1", full_name="Luis Soto", email="luis@example.com"))
        updated = repos.patients.update("11111111-1", PatientData(rut="11111111-1", full_name="Luis Soto", email="luis@new.cl"))
        assert updated.updated_at is not None


def test_lost_slot_race_keeps_patient_changes_out(sql_storage):
    class AcceptAllValidator:
        def validate(self, *args, **kwargs):
            return ValidationOutcome(accepted=True, start=TimeOfDay(10, 0), end=TimeOfDay(11, 0), duration_minutes=60)

    class RacingService(SchedulingService):
        @property
        def validator(self):
            return AcceptAllValidator()

    with sql_storage.unit() as repos:
        repos.schedules.replace_weekly([WeeklyScheduleInput(1, "09:00:00", "12:00:00")])
        service = RacingService.from_repositories(repos, policy=BookingPolicy(min_advance_hours=0, max_days_ahead=0))
        service.create_appointment(PUBLIC_CALLER, MONDAY.isoformat(), "10:00", PatientData(rut="12345678-5", full_name="Ana Rojas", email="ana@example.com"))

    with sql_storage.unit() as repos:
        service = RacingService.from_repositories(repos, policy=BookingPolicy(min_advance_hours=0, max_days_ahead=0))
        for patient in (
            PatientData(rut="11111111-1", full_name="Luis Soto", email="luis@example.com"),
            PatientData(rut="12345678-5", full_name="Ana Rojas", email="ana@changed.cl"),
        ):
            with pytest.raises(SchedulingError) as exc:
                service.create_appointment(PUBLIC_CALLER, MONDAY.isoformat(), "10:00", patient)
            assert exc.value.code == ErrorCode.SLOT_TAKEN

    with sql_storage.unit() as repos:
        assert repos.patients.get_by_rut("11111111-1") is None
        assert repos.patients.get_by_rut("12345678-5").email == "ana@example.com"
        assert len(repos.appointments.list_for_date(MONDAY)) == 1
