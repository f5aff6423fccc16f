from __future__ import annotations

import pytest

from posture_app.api.schemas import Student
from posture_app.core.errors import NavigationError
from posture_app.navigation.navigator import Navigator
from posture_app.navigation.routes import RouteName, StudentParams, StudentRef


def test_push_back_and_root():
    nav = Navigator()
    assert nav.current.name is RouteName.STUDENT_LIST
    assert nav.go_back() is None

    nav.navigate(RouteName.STUDENT_DETAIL, {"student_id": 3, "name": "Ana"})
    nav.navigate("camera", StudentRef(student_id=3, name="Ana"))
    assert [r.name for r in nav.stack] == [RouteName.STUDENT_LIST, RouteName.STUDENT_DETAIL, RouteName.CAMERA]

    back = nav.go_back()
    assert back is not None and back.name is RouteName.STUDENT_DETAIL
    assert back.params.student_id == 3


def test_replace_pop_to_and_pop_to_top():
    nav = Navigator()
    nav.navigate(RouteName.STUDENT_DETAIL, {"student_id": 1})
    nav.navigate(RouteName.CAMERA, {"student_id": 1})
    nav.replace(RouteName.GALLERY_IMPORT, {"student_id": 1})
    assert nav.current.name is RouteName.GALLERY_IMPORT
    assert len(nav.stack) == 3

    assert nav.pop_to(RouteName.ABOUT) is None
    assert len(nav.stack) == 3
    assert nav.pop_to(RouteName.STUDENT_DETAIL).name is RouteName.STUDENT_DETAIL
    assert len(nav.stack) == 2

    nav.navigate(RouteName.ABOUT)
    nav.pop_to_top()
    assert [r.name for r in nav.stack] == [RouteName.STUDENT_LIST]


def test_invalid_params_leave_stack_untouched():
    nav = Navigator()
    with pytest.raises(NavigationError):
        nav.navigate(RouteName.STUDENT_DETAIL, {})
    with pytest.raises(NavigationError):
        nav.navigate(RouteName.ADD_MEASUREMENT, {"studentId": 4})
    with pytest.raises(NavigationError):
        nav.navigate(RouteName.CAMERA, {"student_id": 4, "schema_version": 2})
    with pytest.raises(NavigationError):
        nav.navigate(RouteName.EDIT_STUDENT, StudentRef(student_id=4))
    with pytest.raises(NavigationError):
        nav.navigate("nowhere")
    assert len(nav.stack) == 1


def test_nested_entity_params_are_validated():
    nav = Navigator()
    student = Student(id=2, name="Mihai", age=10)
    route = nav.navigate(RouteName.EDIT_STUDENT, StudentParams(student=student))
    assert route.params.student.name == "Mihai"
    with pytest.raises(NavigationError):
        nav.navigate(RouteName.EDIT_STUDENT, {"student": {"id": 2}})


def test_listeners_see_removed_routes():
    nav = Navigator()
    events = []
    unsubscribe = nav.add_listener(events.append)
    nav.navigate(RouteName.STUDENT_DETAIL, {"student_id": 1})
    nav.navigate(RouteName.CAMERA, {"student_id": 1})
    nav.pop_to_top()
    assert [e.action for e in events] == ["navigate", "navigate", "pop_to_top"]
    assert [r.name for r in events[-1].removed] == [RouteName.CAMERA, RouteName.STUDENT_DETAIL]
    unsubscribe()
    nav.navigate(RouteName.ABOUT)
    assert len(events) == 3
