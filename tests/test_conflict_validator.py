import pytest

from app.application.ports.appointments_repo import NewAppointment
from app.application.ports.patients_repo import PatientData
from app.application.services.conflict_validator import ConflictValidator
from app.exceptions import ErrorCode, SchedulingError


@pytest.fixture
def validator(repos):
    return ConflictValidator(repos.appointments, repos.blocks, repos.patients)


def _book(repos, day, start, end, status="confirmed", rut="11111111-1"):
    return repos.appointments.create(NewAppointment(day, start, end, 60, status, rut))


def test_accepts_free_range(validator, monday):
    outcome = validator.validate(monday, "14:00", "15:00")
    assert outcome.accepted
    assert outcome.start.isoformat() == "14:00:00"
    assert outcome.end.isoformat() == "15:00:00"
    assert outcome.duration_minutes == 60


def test_partial_overlap_is_range_conflict(validator, repos, monday):
    repos.patients.create(PatientData(rut="11111111-1", full_name="Ana Rojas", email="ana@example.com"))
    _book(repos, monday, "14:30:00", "15:30:00")
    outcome = validator.validate(monday, "14:00", "15:00")
    assert not outcome.accepted
    assert outcome.code == ErrorCode.RANGE_CONFLICT
    assert outcome.details["conflict_start"] == "14:30"
    assert outcome.details["conflict_end"] == "15:30"
    assert "Ana Rojas" in outcome.message


def test_end_equal_to_start_is_invalid_range(validator, monday):
    outcome = validator.validate(monday, "10:00", "10:00")
    assert outcome.code == ErrorCode.INVALID_RANGE


def test_end_before_start_is_invalid_range(validator, monday):
    assert validator.validate(monday, "11:00", "10:00").code == ErrorCode.INVALID_RANGE


def test_manual_block_rejects(validator, repos, monday):
    repos.blocks.create(monday, "13:00:00", "14:00:00", "manual", "Training")
    outcome = validator.validate(monday, "13:30", "14:30")
    assert outcome.code == ErrorCode.BLOCKED
    assert outcome.details["block_start"] == "13:00"


def test_same_start_is_slot_taken_naming_patient(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00", rut="22222222-2")
    outcome = validator.validate(monday, "10:00", "10:30")
    assert outcome.code == ErrorCode.SLOT_TAKEN
    assert outcome.details["patient"] == "22222222-2"


def test_malformed_time_is_rejected(validator, monday):
    outcome = validator.validate(monday, "10h", "11:00")
    assert outcome.code == ErrorCode.INVALID_TIME_FORMAT
    assert outcome.details["start_time"] == "invalid format"


def test_minimum_duration(validator, monday):
    outcome = validator.validate(monday, "10:00", "11:00", minimum_duration_minutes=90)
    assert outcome.code == ErrorCode.DURATION_TOO_SHORT
    assert outcome.details == {"required_minutes": 90, "given_minutes": 60}


def test_range_check_runs_before_conflicts(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    assert validator.validate(monday, "10:00", "09:00").code == ErrorCode.INVALID_RANGE


def test_adjacent_ranges_do_not_conflict(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    assert validator.validate(monday, "11:00", "12:00").accepted
    assert validator.validate(monday, "09:00", "10:00").accepted


def test_excluded_appointment_is_ignored(validator, repos, monday):
    own = _book(repos, monday, "10:00:00", "11:00:00")
    assert validator.validate(monday, "10:30", "11:30", exclude_appointment_id=own.id).accepted
    assert validator.validate(monday, "10:30", "11:30").code == ErrorCode.RANGE_CONFLICT


def test_cancelled_appointments_are_ignored(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00", status="cancelled")
    assert validator.validate(monday, "10:00", "11:00").accepted


def test_completed_appointments_still_conflict(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00", status="completed")
    assert validator.validate(monday, "10:30", "11:30").code == ErrorCode.RANGE_CONFLICT


def test_other_dates_do_not_conflict(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    tuesday = monday.replace(day=monday.day + 1)
    assert validator.validate(tuesday, "10:00", "11:00").accepted


def test_raise_for_rejection_maps_status(validator, repos, monday):
    _book(repos, monday, "10:00:00", "11:00:00")
    with pytest.raises(SchedulingError) as exc:
        validator.validate(monday, "10:00", "11:00").raise_for_rejection()
    assert exc.value.status_code == 409
    assert exc.value.code == ErrorCode.SLOT_TAKEN
