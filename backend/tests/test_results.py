import csv
import io


def _quiz(client, headers, body):
    r = client.post("/quizzes", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["quiz_id"]


def _submit(client, headers, quiz_id, student_id, answers):
    r = client.post(
        f"/quizzes/{quiz_id}/submissions",
        json={"student_id": student_id, "student_name": f"Student {student_id}", "answers": answers, "time_spent_seconds": 120},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()["submission"]


def test_quiz_results_for_owner(client, faculty, student, other_student, make_quiz_body):
    quiz_id = _quiz(client, faculty["headers"], make_quiz_body(name="Results quiz"))
    _submit(client, student["headers"], quiz_id, "s-1", ["B", "True"])
    _submit(client, other_student["headers"], quiz_id, "s-2", ["A", "True"])

    r = client.get(f"/quizzes/{quiz_id}/results", headers=faculty["headers"])
    assert r.status_code == 200
    data = r.json()

    assert len(data["submissions"]) == 2
    stats = data["statistics"]
    assert stats["total_submissions"] == 2
    assert stats["average_score"] == 80.0
    assert stats["highest_score"] == 100.0
    assert stats["lowest_score"] == 60.0
    assert stats["pass_rate"] == 100.0
    assert stats["grade_distribution"]["A"] == 1
    assert stats["grade_distribution"]["D"] == 1
    assert stats["average_time_spent"] == 120
    assert all(s["answers"] for s in data["submissions"])


def test_results_hidden_from_students_and_other_faculty(client, faculty, other_faculty, student, make_quiz_body):
    quiz_id = _quiz(client, faculty["headers"], make_quiz_body())

    assert client.get(f"/quizzes/{quiz_id}/results", headers=student["headers"]).status_code == 403
    assert client.get(f"/quizzes/{quiz_id}/results", headers=other_faculty["headers"]).status_code == 404


def test_student_results_rank(client, faculty, student, other_student, make_quiz_body):
    quiz_id = _quiz(client, faculty["headers"], make_quiz_body())
    _submit(client, other_student["headers"], quiz_id, "s-2", ["B", "True"])
    _submit(client, student["headers"], quiz_id, "s-1", ["A", "True"])

    r = client.get(f"/quizzes/{quiz_id}/results/me", headers=student["headers"])
    assert r.status_code == 200
    data = r.json()

    assert data["submission"]["total_score"] == 3
    perf = data["performance"]
    assert perf["correct_answers"] == 1
    assert perf["incorrect_answers"] == 1
    assert perf["accuracy"] == 50
    assert perf["rank"] == 2
    assert perf["total_students"] == 2
    assert perf["better_than_percent"] == 0
    assert data["class_statistics"]["total_submissions"] == 2
    assert len(data["attempts"]) == 1


def test_student_results_without_submission(client, faculty, student, make_quiz_body):
    quiz_id = _quiz(client, faculty["headers"], make_quiz_body())
    r = client.get(f"/quizzes/{quiz_id}/results/me", headers=student["headers"])
    assert r.status_code == 404


def test_csv_export(client, faculty, student, make_quiz_body):
    quiz_id = _quiz(client, faculty["headers"], make_quiz_body(name="CSV / export"))
    _submit(client, student["headers"], quiz_id, "s-9", ["B", "False"])

    r = client.get(f"/quizzes/{quiz_id}/results.csv", headers=faculty["headers"])
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="CSV___export_results.csv"' in r.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(r.text)))
    assert rows[0] == ["studentName", "studentId", "score", "percentage", "grade", "timeSpent", "submittedAt"]
    assert rows[1][:6] == ["Student s-9", "s-9", "2/5", "40.00", "F", "120"]


def test_my_submissions(client, faculty, student, make_quiz_body):
    first = _quiz(client, faculty["headers"], make_quiz_body(name="Mine one"))
    second = _quiz(client, faculty["headers"], make_quiz_body(name="Mine two"))
    _submit(client, student["headers"], first, "s-1", ["B", "True"])
    _submit(client, student["headers"], second, "s-1", ["B"])

    r = client.get("/me/submissions", headers=student["headers"])
    assert r.status_code == 200
    subs = r.json()["submissions"]

    assert {s["quiz_name"] for s in subs} == {"Mine one", "Mine two"}
    assert all(s["answers"] is None for s in subs)
