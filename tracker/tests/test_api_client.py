from __future__ import annotations

import base64
from datetime import date

import httpx
import pytest

from posture_app.api.client import TrackerApiClient
from posture_app.api.schemas import MeasurementIn, MeasurementUpdate, SessionIn, StudentIn
from posture_app.capture.sources import ImagePayload
from posture_app.core.errors import AnalysisError, HTTPError, NetworkError, UploadError


@pytest.mark.asyncio
async def test_created_student_is_listed_once(api, backend):
    created = await api.create_student(StudentIn(name="Ioana", age=8))
    students = await api.list_students()
    assert [s.id for s in students].count(created.id) == 1
    assert students[0].name == "Ioana"
    assert students[0].condition == ""


@pytest.mark.asyncio
async def test_measurement_round_trip(api, backend):
    student = backend.add_student()
    payload = MeasurementIn(
        student_id=student["id"],
        height=120,
        weight=25,
        head_circumference=50,
        chest_circumference=60,
        abdominal_circumference=55,
        physical_disability="scolioză",
    )
    await api.create_measurement(payload)
    [m] = await api.list_measurements(student["id"])
    assert (m.height, m.weight) == (120, 25)
    assert (m.head_circumference, m.chest_circumference, m.abdominal_circumference) == (50, 60, 55)
    assert m.physical_disability == "scolioză"
    assert m.created_at is not None


@pytest.mark.asyncio
async def test_update_measurement_never_sends_student_id(api, backend):
    student = backend.add_student()
    m = await api.create_measurement(MeasurementIn(student_id=student["id"], height=120, weight=25))
    sent = MeasurementUpdate(height=121, weight=26).model_dump(mode="json")
    assert "student_id" not in sent
    updated = await api.update_measurement(m.id, MeasurementUpdate(height=121, weight=26))
    assert updated is not None
    assert updated.student_id == student["id"]
    assert updated.height == 121


@pytest.mark.asyncio
async def test_session_date_travels_as_iso_date(api, backend):
    student = backend.add_student()
    await api.create_session(SessionIn(student_id=student["id"], session_date=date(2024, 3, 9), notes="first"))
    raw = next(iter(backend.sessions.values()))
    assert raw["session_date"] == "2024-03-09"
    [s] = await api.list_sessions(student["id"])
    assert s.session_date == date(2024, 3, 9)
    assert s.session_type == "evaluare"


@pytest.mark.asyncio
async def test_non_2xx_raises_http_error(api):
    with pytest.raises(HTTPError) as info:
        await api.update_student(999, StudentIn(name="X", age=1))
    assert info.value.status_code == 404
    assert "student not found" in info.value.body


@pytest.mark.asyncio
async def test_transport_failure_raises_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with TrackerApiClient("http://offline:3000", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError):
            await client.list_students()


@pytest.mark.asyncio
async def test_delete_of_missing_record_reports_false(api, backend):
    student = backend.add_student()
    m = await api.create_measurement(MeasurementIn(student_id=student["id"], height=1, weight=1))
    assert await api.delete_measurement(m.id) is True
    assert await api.delete_measurement(m.id) is False


@pytest.mark.asyncio
async def test_camel_case_payloads_are_accepted():
    body = [
        {
            "id": 4,
            "studentId": 2,
            "height": "118.5",
            "weight": 24,
            "headCircumference": 51,
            "physicalDisability": "",
            "createdAt": "2024-05-01T10:00:00Z",
        }
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    async with TrackerApiClient("http://legacy:3000", transport=httpx.MockTransport(handler)) as client:
        [m] = await client.list_measurements(2)
    assert m.student_id == 2
    assert m.height == 118.5
    assert m.head_circumference == 51
    assert m.chest_circumference is None


@pytest.mark.asyncio
async def test_upload_failure_is_upload_error(api, backend):
    student = backend.add_student()
    backend.fail_upload_names.add("bad.jpg")
    with pytest.raises(UploadError):
        await api.upload_photo(student["id"], ImagePayload(content=b"x", filename="bad.jpg"))
    assert backend.photos == {}


@pytest.mark.asyncio
async def test_backend_reported_failure_is_analysis_error(api, backend):
    student = backend.add_student()
    photo_id = await api.upload_photo(student["id"], ImagePayload(content=b"x"))
    backend.analyze_reports_error = True
    with pytest.raises(AnalysisError) as info:
        await api.analyze_photo(photo_id, ImagePayload(content=b"x"))
    assert "no person detected" in info.value.user_message


@pytest.mark.asyncio
async def test_analyze_returns_angles_and_overlay(api, backend):
    student = backend.add_student()
    backend.angles_by_name["photo.jpg"] = {"shoulder_tilt": 18.2, "hip_tilt": 5.0, "spine_tilt": 3.1}
    photo_id = await api.upload_photo(student["id"], ImagePayload(content=b"abc"))
    result = await api.analyze_photo(photo_id, ImagePayload(content=b"abc"))
    assert result.angles.shoulder_tilt == pytest.approx(18.2)
    assert result.posture is not None and result.posture.photo_id == photo_id
    assert api.overlay_url(result.overlay_uri) == "data:image/jpeg;base64,YWJj"


def test_overlay_url_resolution():
    client = TrackerApiClient("http://10.0.2.2:3000/")
    assert client.overlay_url(None) is None
    assert client.overlay_url("/overlays/3.jpg") == "http://10.0.2.2:3000/overlays/3.jpg"
    assert client.overlay_url("https://cdn.example/o.jpg") == "https://cdn.example/o.jpg"
    assert client.overlay_url("QUJD") == "data:image/jpeg;base64,QUJD"


@pytest.mark.asyncio
async def test_latest_analysis_is_newest_history_entry(api, backend):
    student = backend.add_student()
    photo = backend.add_photo(student["id"], {"shoulder_tilt": 1.0, "hip_tilt": 1.0, "spine_tilt": 1.0})
    backend._record_analysis(photo["id"], {"shoulder_tilt": 9.0, "hip_tilt": 2.0, "spine_tilt": 3.0}, "x")
    latest = await api.latest_analysis(photo["id"])
    assert latest is not None
    assert latest.shoulder_tilt == 9.0
    assert await api.latest_analysis(12345) is None


def test_inline_jpeg_overlay_is_not_a_server_path():
    client = TrackerApiClient("http://h:3000")
    inline = base64.b64encode(b"\xff\xd8\xff\xe0rest").decode("ascii")
    assert inline.startswith("/9j/")
    assert client.overlay_url(inline) == f"data:image/jpeg;base64,{inline}"
    assert client.overlay_url("/overlays/3.jpg") == "http://h:3000/overlays/3.jpg"


@pytest.mark.asyncio
async def test_undecodable_body_raises_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip at all")

    async with TrackerApiClient("http://broken:3000", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(NetworkError):
            await client.list_students()
