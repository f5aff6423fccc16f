from __future__ import annotations

import pytest

from posture_app.gui.cli import build_parser, run

HIGH_HIP = {"shoulder_tilt": 1.0, "hip_tilt": -16.0, "spine_tilt": 2.0}


async def _run(app, *argv: str) -> int:
    return await run(build_parser().parse_args(list(argv)), app=app)


@pytest.mark.asyncio
async def test_students_and_add_student(app, backend, capsys):
    assert await _run(app, "students") == 0
    assert "No students yet." in capsys.readouterr().out

    assert await _run(app, "add-student", "--name", "Ioana", "--age", "8") == 0
    assert [s["name"] for s in backend.students.values()] == ["Ioana"]


@pytest.mark.asyncio
async def test_add_student_validation_exit_code(app, backend, recorder):
    assert await _run(app, "add-student", "--name", "Ioana", "--age", "eight") == 1
    assert recorder.titles == ["Error"]
    assert backend.students == {}


@pytest.mark.asyncio
async def test_detail_prints_flagged_axes(app, backend, capsys):
    student = backend.add_student("Mihai")
    backend.add_photo(student["id"], HIGH_HIP)
    backend.sessions[40] = {"id": 40, "student_id": student["id"], "session_date": "2024-03-09", "session_type": "corectie", "notes": "ok"}
    assert await _run(app, "detail", str(student["id"])) == 0
    out = capsys.readouterr().out
    assert "== Mihai" in out
    assert "09-03-2024 Correction: ok" in out
    assert "Hip tilt: -16.00° (!)" in out
    assert "Shoulder tilt: 1.00° |" in out


@pytest.mark.asyncio
async def test_unknown_student_fails(app, recorder):
    assert await _run(app, "detail", "77") == 1
    assert recorder.alerts == []


@pytest.mark.asyncio
async def test_add_measurement_and_session(app, backend):
    student = backend.add_student()
    sid = str(student["id"])
    assert await _run(app, "add-measurement", sid, "--height", "120", "--weight", "24,5") == 0
    assert await _run(app, "add-session", sid, "--date", "01-02-2024", "--type", "consolidare") == 0
    [m] = backend.measurements.values()
    [s] = backend.sessions.values()
    assert m["weight"] == 24.5
    assert s["session_date"] == "2024-02-01"


@pytest.mark.asyncio
async def test_capture_accept_and_retake(app, backend, capsys):
    student = backend.add_student()
    assert await _run(app, "capture", str(student["id"]), "--accept") == 0
    assert len(backend.photos) == 1
    assert "saved" in capsys.readouterr().out

    assert await _run(app, "capture", str(student["id"]), "--retake") == 0
    assert len(backend.photos) == 1
    assert "Photo discarded." in capsys.readouterr().out


@pytest.mark.asyncio
async def test_import_exit_code_reflects_failures(app, backend, image_files, capsys):
    student = backend.add_student()
    backend.fail_upload_names.add("img_1.jpg")
    code = await _run(app, "import", str(student["id"]), *map(str, image_files[:2]))
    assert code == 1
    out = capsys.readouterr().out
    assert "Photo 1 (" in out
    assert "Photo 2 (" in out and "analysis failed" in out


@pytest.mark.asyncio
async def test_delete_requires_owner_for_child_records(app, backend):
    student = backend.add_student()
    backend.measurements[8] = {"id": 8, "student_id": student["id"], "height": 1, "weight": 1}
    assert await _run(app, "delete", "measurement", "8") == 2
    assert await _run(app, "delete", "measurement", "8", "--student", str(student["id"])) == 0
    assert backend.measurements == {}


@pytest.mark.asyncio
async def test_about(app, capsys):
    assert await _run(app, "about") == 0
    assert capsys.readouterr().out.startswith("How the AI is used")


def test_parser_overrides():
    args = build_parser().parse_args(["--host", "10.0.0.5", "--port", "4000", "students"])
    assert (args.host, args.port, args.command) == ("10.0.0.5", 4000, "students")
    with pytest.raises(SystemExit):
        build_parser().parse_args(["capture", "1", "--accept", "--retake"])
