def test_students_by_grade(client, students, teacher_headers):
    resp = client.get("/api/students/grade/5A", headers=teacher_headers)
    assert resp.status_code == 200
    assert [s["rollNumber"] for s in resp.json()] == [42, 43, 44]


def test_student_by_reference(client, students, teacher_headers):
    by_roll = client.get("/api/students/50", headers=teacher_headers)
    assert by_roll.status_code == 200
    assert by_roll.json()["fullName"] == "Anna Smith"

    by_id = client.get(f"/api/students/{students[42].id}", headers=teacher_headers)
    assert by_id.json()["rollNumber"] == 42

    assert client.get("/api/students/999", headers=teacher_headers).status_code == 404
