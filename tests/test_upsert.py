import pytest

from app.core.day_range import to_day_range
from app.core.errors import InvalidStatus
from app.crud.attendance import insert_attendance, upsert_attendance
from app.db.models.attendance import Attendance
from app.db.models.student import Student

FIELDS = dict(class_name="5A", teacher="T1", username="u1")


def test_first_upsert_creates_record_at_midnight(db, students):
    day = to_day_range("2025-03-10T14:30:00Z")
    result = upsert_attendance(db, [students[42]], day, status="Present", **FIELDS)

    assert (result.created, result.updated) == (1, 0)
    record = db.query(Attendance).one()
    assert record.student_id == students[42].id
    assert record.day == to_day_range("2025-03-10").start
    assert record.status == "Present"
    assert record.correction_history == []


def test_reupsert_same_key_overwrites_without_duplicate(db, students):
    upsert_attendance(db, [students[42]], to_day_range("2025-03-10"), status="Present", **FIELDS)
    result = upsert_attendance(
        db,
        [students[42]],
        to_day_range("2025-03-10T09:15:00Z"),
        status="Absent",
        class_name="5A",
        teacher="T2",
        username="u2",
    )

    assert (result.created, result.updated) == (0, 1)
    records = db.query(Attendance).all()
    assert len(records) == 1
    assert (records[0].status, records[0].teacher, records[0].username) == ("Absent", "T2", "u2")
    # Перезапись через upsert — не исправление, журнал пуст
    assert records[0].correction_history == []


def test_bulk_counts_created_and_updated(db, students):
    day = to_day_range("2025-03-10")
    upsert_attendance(db, [students[42], students[43]], day, status="Present", **FIELDS)

    result = upsert_attendance(
        db, [students[42], students[43], students[44], students[50]], day, status="Leave", **FIELDS
    )

    assert (result.created, result.updated) == (2, 2)
    assert db.query(Attendance).count() == 4
    assert {r.status for r in db.query(Attendance)} == {"Leave"}


def test_unchanged_existing_record_still_counts_as_updated(db, students):
    day = to_day_range("2025-03-10")
    upsert_attendance(db, [students[42]], day, status="Present", **FIELDS)
    result = upsert_attendance(db, [students[42]], day, status="Present", **FIELDS)
    assert (result.created, result.updated) == (0, 1)


def test_same_student_twice_in_batch_is_written_once(db, students):
    day = to_day_range("2025-03-10")
    result = upsert_attendance(db, [students[42], students[42]], day, status="Present", **FIELDS)
    assert (result.created, result.updated) == (1, 0)
    assert db.query(Attendance).count() == 1


def test_different_days_are_different_records(db, students):
    upsert_attendance(db, [students[42]], to_day_range("2025-03-10"), status="Present", **FIELDS)
    upsert_attendance(db, [students[42]], to_day_range("2025-03-11"), status="Absent", **FIELDS)
    assert db.query(Attendance).count() == 2


def test_invalid_status_rejected_before_any_write(db, students):
    with pytest.raises(InvalidStatus):
        upsert_attendance(db, [students[42]], to_day_range("2025-03-10"), status="Sick", **FIELDS)
    assert db.query(Attendance).count() == 0


def test_insert_reports_duplicates_per_item(db, students):
    day = to_day_range("2025-03-10")
    upsert_attendance(db, [students[42]], day, status="Present", **FIELDS)

    result = insert_attendance(db, [students[42], students[43]], day, status="Absent", **FIELDS)

    assert result.created == 1
    assert result.duplicates == [students[42].id]
    # Существующая запись не тронута, новая создана
    by_student = {r.student_id: r.status for r in db.query(Attendance)}
    assert by_student == {students[42].id: "Present", students[43].id: "Absent"}


def test_concurrent_insert_collision_turns_into_update(db, students, monkeypatch):
    day = to_day_range("2025-03-10")
    upsert_attendance(db, [students[42]], day, status="Present", **FIELDS)

    # Другой запрос успел создать запись между чтением и вставкой
    monkeypatch.setattr("app.crud.attendance._existing_records", lambda *args: {})
    result = upsert_attendance(db, [students[42], students[43]], day, status="Absent", **FIELDS)

    assert (result.created, result.updated, result.failed) == (1, 1, [])
    records = {r.student_id: r.status for r in db.query(Attendance)}
    assert records == {students[42].id: "Absent", students[43].id: "Absent"}


def _ghost():
    # Ученик, которого уже нет в базе (удалён после разрешения ссылок)
    return Student(id="00000000-0000-0000-0000-000000000001", roll_number=77, full_name="Удалён", grade="5A")


def test_failed_key_does_not_abort_the_batch(db, students):
    ghost = _ghost()
    result = upsert_attendance(db, [ghost, students[43]], to_day_range("2025-03-10"), status="Present", **FIELDS)

    assert (result.created, result.updated) == (1, 0)
    assert result.failed == [ghost.id]
    assert [r.student_id for r in db.query(Attendance)] == [students[43].id]


def test_insert_reports_failed_keys_separately_from_duplicates(db, students):
    day = to_day_range("2025-03-10")
    insert_attendance(db, [students[42]], day, status="Present", **FIELDS)

    ghost = _ghost()
    result = insert_attendance(db, [students[42], ghost, students[43]], day, status="Present", **FIELDS)

    assert result.created == 1
    assert result.duplicates == [students[42].id]
    assert result.failed == [ghost.id]
    assert db.query(Attendance).count() == 2
