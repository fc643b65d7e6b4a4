import pytest

from app.core.day_range import to_day_range
from app.core.errors import DuplicateRecord, InvalidDate, InvalidStatus, RecordNotFound
from app.crud.attendance import (
    correct_attendance,
    delete_attendance,
    patch_attendance,
    upsert_attendance,
)
from app.db.models.attendance import Attendance

FIELDS = dict(class_name="5A", teacher="T1", username="u1")


@pytest.fixture
def record(db, students):
    upsert_attendance(db, [students[42]], to_day_range("2025-03-10"), status="Present", **FIELDS)
    return db.query(Attendance).one()


def test_correction_appends_entry(db, students, record):
    corrected, changed = correct_attendance(
        db, students[42], to_day_range("2025-03-10T12:00:00Z"), "Leave", reason="sick", actor="u1"
    )

    assert changed is True
    assert corrected.status == "Leave"
    assert len(corrected.correction_history) == 1
    entry = corrected.correction_history[0]
    assert (entry["from_status"], entry["to_status"], entry["reason"]) == ("Present", "Leave", "sick")
    assert entry["changed_by"] == "u1"
    assert entry["changed_at"]


def test_same_status_is_a_noop(db, students, record):
    corrected, changed = correct_attendance(db, students[42], to_day_range("2025-03-10"), "Present")
    assert changed is False
    assert corrected.correction_history == []


def test_correction_defaults(db, students, record):
    corrected, _ = correct_attendance(db, students[42], to_day_range("2025-03-10"), "Absent")
    entry = corrected.correction_history[0]
    assert entry["changed_by"] == "system"
    assert entry["reason"] == "manual correction"


def test_corrections_accumulate_in_order(db, students, record):
    day = to_day_range("2025-03-10")
    correct_attendance(db, students[42], day, "Absent")
    corrected, _ = correct_attendance(db, students[42], day, "Leave")
    assert [(e["from_status"], e["to_status"]) for e in corrected.correction_history] == [
        ("Present", "Absent"),
        ("Absent", "Leave"),
    ]


def test_correction_without_record(db, students, record):
    with pytest.raises(RecordNotFound):
        correct_attendance(db, students[43], to_day_range("2025-03-10"), "Leave")


def test_correction_invalid_status(db, students, record):
    with pytest.raises(InvalidStatus):
        correct_attendance(db, students[42], to_day_range("2025-03-10"), "Sick")


def test_patch_status_appends_with_patch_reason(db, record):
    updated = patch_attendance(db, record.id, status="Absent", username="u9")
    assert updated.status == "Absent"
    assert updated.username == "u9"
    entry = updated.correction_history[0]
    assert entry["reason"] == "manual patch"
    assert entry["changed_by"] == "u9"


def test_patch_other_fields_never_append(db, record):
    updated = patch_attendance(db, record.id, teacher="T2", class_name="5B", username="u2")
    assert (updated.teacher, updated.class_name, updated.username) == ("T2", "5B", "u2")
    assert updated.correction_history == []


def test_patch_same_status_does_not_append(db, record):
    updated = patch_attendance(db, record.id, status="Present", corrected_by="admin")
    assert updated.correction_history == []


def test_patch_date_is_normalized(db, record):
    updated = patch_attendance(db, record.id, date="2025-03-12T16:00:00Z")
    assert updated.day == to_day_range("2025-03-12").start


def test_patch_date_onto_existing_day_is_duplicate(db, students, record):
    upsert_attendance(db, [students[42]], to_day_range("2025-03-11"), status="Absent", **FIELDS)
    with pytest.raises(DuplicateRecord):
        patch_attendance(db, record.id, date="2025-03-11")
    assert db.query(Attendance).count() == 2


def test_patch_validates_before_lookup(db):
    with pytest.raises(InvalidStatus):
        patch_attendance(db, 12345, status="Sick")
    with pytest.raises(InvalidDate):
        patch_attendance(db, 12345, date="garbage")
    with pytest.raises(RecordNotFound):
        patch_attendance(db, 12345, teacher="T2")


def test_delete(db, record):
    delete_attendance(db, record.id)
    assert db.query(Attendance).count() == 0
    with pytest.raises(RecordNotFound):
        delete_attendance(db, record.id)
