from datetime import date

import pytest

from app.application.ports.caller import CallerContext, PUBLIC_CALLER
from app.application.ports.notifier import AppointmentCancelled, AppointmentCreated, AppointmentRescheduled
from app.application.ports.patients_repo import PatientData
from app.application.services.scheduling_service import SchedulingService
from app.exceptions import ErrorCode, SchedulingError

ADMIN = CallerContext(role="admin", user_id="admin-1")


def _patient(rut="12.345.678-5", name="Ana Rojas", email="ana@example.com"):
    return PatientData(rut=rut, full_name=name, email=email, phone="+56911112222")


def _book(service, day, time="10:00", treatment_id=1, patient=None):
    return service.create_appointment(PUBLIC_CALLER, day.isoformat(), time, patient or _patient(), treatment_id=treatment_id)


def _code(exc_info):
    return exc_info.value.code


def test_public_booking_is_pending_with_treatment_price(service, repos, notifier, monday):
    result = _book(service, monday)
    appt = result.appointment
    assert appt.status == "pending"
    assert (appt.start_time, appt.end_time, appt.duration_minutes) == ("10:00:00", "11:00:00", 60)
    assert appt.amount == 35000
    assert appt.patient_rut == "12345678-5"
    assert result.patient.full_name == "Ana Rojas"
    assert repos.patients.get_by_rut("12345678-5") is not None
    assert isinstance(notifier.events[-1], AppointmentCreated)


def test_existing_patient_is_updated_not_duplicated(service, repos, monday):
    _book(service, monday, "09:00")
    _book(service, monday, "10:00", patient=_patient(email="ana.new@example.com"))
    assert repos.patients.get_by_rut("12345678-5").email == "ana.new@example.com"


def test_admin_booking_is_confirmed_and_skips_public_rules(service, monday):
    sunday = date(2030, 1, 6)
    result = service.create_appointment(ADMIN, sunday.isoformat(), "18:00", _patient(), end_time="19:30")
    assert result.appointment.status == "confirmed"
    assert result.appointment.duration_minutes == 90
    assert result.appointment.treatment_id is None


def test_admin_booking_honours_treatment_duration(service, monday):
    with pytest.raises(SchedulingError) as exc:
        service.create_appointment(ADMIN, monday.isoformat(), "15:00", _patient(), treatment_id=2, end_time="16:00")
    assert _code(exc) == ErrorCode.DURATION_TOO_SHORT


def test_end_defaults_to_treatment_duration(service, monday):
    appt = service.create_appointment(ADMIN, monday.isoformat(), "09:00", _patient(), treatment_id=2).appointment
    assert appt.end_time == "10:30:00"


def test_public_booking_outside_opening_hours(service, monday):
    with pytest.raises(SchedulingError) as exc:
        _book(service, monday, "13:00")
    assert _code(exc) == ErrorCode.OUTSIDE_SCHEDULE
    with pytest.raises(SchedulingError) as exc:
        _book(service, monday, "11:30")
    assert _code(exc) == ErrorCode.OUTSIDE_SCHEDULE


def test_public_booking_on_sunday_is_refused(service):
    with pytest.raises(SchedulingError) as exc:
        _book(service, date(2030, 1, 6))
    assert _code(exc) == ErrorCode.OUTSIDE_BOOKING_WINDOW


def test_second_booking_of_same_slot_is_rejected(service, repos, monday):
    _book(service, monday)
    with pytest.raises(SchedulingError) as exc:
        _book(service, monday, patient=_patient(rut="11.111.111-1", name="Luis Soto"))
    assert _code(exc) == ErrorCode.SLOT_TAKEN
    assert exc.value.status_code == 409
    assert "Ana Rojas" in exc.value.message
    assert len(repos.appointments.list_for_date(monday)) == 1


def test_store_level_slot_violation_becomes_slot_taken(repos, notifier, open_policy, monday):
    class RacingValidator:
        def validate(self, *args, **kwargs):
            from app.application.services.conflict_validator import ValidationOutcome
            from app.application.services.time_utils import TimeOfDay
            return ValidationOutcome(accepted=True, start=TimeOfDay(10, 0), end=TimeOfDay(11, 0), duration_minutes=60)

    class RacingService(SchedulingService):
        @property
        def validator(self):
            return RacingValidator()

    svc = RacingService.from_repositories(repos, notifier=notifier, policy=open_policy)
    _book(svc, monday)
    with pytest.raises(SchedulingError) as exc:
        _book(svc, monday, patient=_patient(rut="11111111-1"))
    assert _code(exc) == ErrorCode.SLOT_TAKEN
    assert len(notifier.events) == 1


def test_unknown_or_inactive_treatment_is_not_found(service, monday):
    for treatment_id in (99, 3):
        with pytest.raises(SchedulingError) as exc:
            _book(service, monday, treatment_id=treatment_id)
        assert _code(exc) == ErrorCode.NOT_FOUND
        assert exc.value.status_code == 404


@pytest.mark.parametrize("patient,field", [
    (PatientData(rut="12345678-9", full_name="X", email="x@example.com"), "rut"),
    (PatientData(rut="12345678-5", full_name="X", email="not-an-email"), "email"),
])
def test_patient_data_is_validated(service, monday, patient, field):
    with pytest.raises(SchedulingError) as exc:
        _book(service, monday, patient=patient)
    assert _code(exc) == ErrorCode.VALIDATION_ERROR
    assert field in exc.value.details


def test_missing_fields(service):
    with pytest.raises(SchedulingError) as exc:
        service.create_appointment(PUBLIC_CALLER, "", "", None)
    assert _code(exc) == ErrorCode.VALIDATION_ERROR
    assert "treatment_id" in exc.value.details["missing"]


def test_bad_date_and_time(service, monday):
    with pytest.raises(SchedulingError) as exc:
        service.create_appointment(PUBLIC_CALLER, "07-01-2030", "10:00", _patient(), treatment_id=1)
    assert _code(exc) == ErrorCode.VALIDATION_ERROR
    with pytest.raises(SchedulingError) as exc:
        service.create_appointment(PUBLIC_CALLER, monday.isoformat(), "25:00", _patient(), treatment_id=1)
    assert _code(exc) == ErrorCode.INVALID_TIME_FORMAT


def test_notifier_failure_does_not_fail_booking(repos, open_policy, monday):
    class BrokenNotifier:
        def publish(self, event):
            raise RuntimeError("smtp down")

    svc = SchedulingService.from_repositories(repos, notifier=BrokenNotifier(), policy=open_policy)
    result = _book(svc, monday)
    assert repos.appointments.get_by_id(result.appointment.id) is not None


def test_reschedule_may_overlap_its_own_old_range(service, notifier, monday):
    appt = _book(service, monday).appointment
    moved = service.reschedule(appt.id, monday.isoformat(), "10:30", "11:30")
    assert moved.id == appt.id
    assert (moved.start_time, moved.end_time) == ("10:30:00", "11:30:00")
    assert moved.patient_rut == appt.patient_rut
    event = notifier.events[-1]
    assert isinstance(event, AppointmentRescheduled)
    assert event.previous.start_time == "10:00:00"
    assert event.current.start_time == "10:30:00"


def test_reschedule_into_other_booking_conflicts(service, monday):
    first = _book(service, monday, "09:00").appointment
    _book(service, monday, "10:00", patient=_patient(rut="11111111-1", name="Luis Soto"))
    with pytest.raises(SchedulingError) as exc:
        service.reschedule(first.id, monday.isoformat(), "09:30", "10:30")
    assert _code(exc) == ErrorCode.RANGE_CONFLICT
    assert "Luis Soto" in exc.value.message


def test_reschedule_requires_treatment_duration(service, monday):
    appt = service.create_appointment(ADMIN, monday.isoformat(), "09:00", _patient(), treatment_id=2).appointment
    with pytest.raises(SchedulingError) as exc:
        service.reschedule(appt.id, monday.isoformat(), "14:00", "15:00")
    assert _code(exc) == ErrorCode.DURATION_TOO_SHORT


def test_reschedule_without_treatment_keeps_current_duration(service, monday):
    appt = service.create_appointment(ADMIN, monday.isoformat(), "14:00", _patient(), end_time="14:45").appointment
    with pytest.raises(SchedulingError) as exc:
        service.reschedule(appt.id, monday.isoformat(), "15:00", "15:30")
    assert _code(exc) == ErrorCode.DURATION_TOO_SHORT
    assert service.reschedule(appt.id, monday.isoformat(), "15:00", "15:45").duration_minutes == 45


def test_reschedule_errors(service, monday):
    with pytest.raises(SchedulingError) as exc:
        service.reschedule(999, monday.isoformat(), "10:00", "11:00")
    assert _code(exc) == ErrorCode.NOT_FOUND
    appt = _book(service, monday).appointment
    with pytest.raises(SchedulingError) as exc:
        service.reschedule(appt.id, monday.isoformat(), "11:00", "11:00")
    assert _code(exc) == ErrorCode.INVALID_RANGE
    service.cancel(appt.id)
    with pytest.raises(SchedulingError) as exc:
        service.reschedule(appt.id, monday.isoformat(), "11:00", "12:00")
    assert _code(exc) == ErrorCode.VALIDATION_ERROR


def test_cancel_frees_slot_and_notifies(service, notifier, monday):
    appt = _book(service, monday).appointment
    cancelled = service.cancel(appt.id, "Patient is travelling")
    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "Patient is travelling"
    assert isinstance(notifier.events[-1], AppointmentCancelled)
    assert "10:00" in service.calculator.available_slots(monday).start_times()
    # idempotent
    count = len(notifier.events)
    assert service.cancel(appt.id).status == "cancelled"
    assert len(notifier.events) == count


def test_change_status(service, monday):
    appt = _book(service, monday).appointment
    assert service.change_status(appt.id, "confirmed").status == "confirmed"
    assert service.change_status(appt.id, "completed").status == "completed"
    with pytest.raises(SchedulingError) as exc:
        service.change_status(appt.id, "archived")
    assert _code(exc) == ErrorCode.VALIDATION_ERROR
    assert exc.value.status_code == 400


def test_reviving_cancelled_appointment_into_taken_slot(service, monday):
    first = _book(service, monday).appointment
    service.cancel(first.id)
    _book(service, monday, patient=_patient(rut="11111111-1", name="Luis Soto"))
    with pytest.raises(SchedulingError) as exc:
        service.change_status(first.id, "confirmed")
    assert _code(exc) == ErrorCode.SLOT_TAKEN
    assert service.get_appointment(first.id).appointment.status == "cancelled"


def test_paid_payment_confirms_pending(service, monday):
    appt = _book(service, monday).appointment
    updated = service.update_payment(appt.id, "paid", payment_method="transfer", transaction_id="tx-1")
    assert updated.payment_status == "paid"
    assert updated.status == "confirmed"
    assert updated.transaction_id == "tx-1"
    with pytest.raises(SchedulingError) as exc:
        service.update_payment(appt.id, "maybe")
    assert _code(exc) == ErrorCode.VALIDATION_ERROR


def test_notes_listing_and_patient_lookup(service, monday):
    appt = _book(service, monday).appointment
    assert service.update_notes(appt.id, "First session").notes == "First session"
    assert [a.id for a in service.list_appointments(appointment_date=monday.isoformat())] == [appt.id]
    assert service.list_appointments(status="cancelled") == []
    assert service.find_patient("12.345.678-5").full_name == "Ana Rojas"
    with pytest.raises(SchedulingError) as exc:
        service.find_patient("11111111-1")
    assert _code(exc) == ErrorCode.NOT_FOUND
