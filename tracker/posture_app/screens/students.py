"""Student list and the add/edit student forms."""
from __future__ import annotations

from typing import List, Optional

from loguru import logger

from posture_app.api.schemas import Student, StudentIn
from posture_app.core.errors import TrackerError, ValidationError
from posture_app.navigation.routes import NoParams, RouteName, StudentParams, StudentRef
from posture_app.screens.base import Screen, ScreenContext
from posture_app.screens.forms import FormScreen, parse_int


class StudentListScreen(Screen):
    route_name = RouteName.STUDENT_LIST

    def __init__(self, ctx: ScreenContext, params: NoParams) -> None:
        super().__init__(ctx, params)
        self.students: List[Student] = []
        self.initial_loading = True
        self.refreshing = False
        self._loaded = False

    async def on_focus(self) -> None:
        if self._loaded:
            await self.silent_refresh()
        else:
            await self.load()

    async def load(self) -> None:
        self._set(initial_loading=True)
        try:
            students = await self.api.list_students()
        except TrackerError as exc:
            self.alert("Error", exc.user_message)
        else:
            self._set(students=students)
            self._loaded = True
        finally:
            self._set(initial_loading=False)

    async def silent_refresh(self) -> None:
        try:
            students = await self.api.list_students()
        except TrackerError as exc:
            logger.debug("silent refresh of students failed: {}", exc.user_message)
            return
        self._set(students=students)

    async def refresh(self) -> None:
        """Pull-to-refresh."""
        if self.refreshing:
            return
        self._set(refreshing=True)
        try:
            students = await self.api.list_students()
        except TrackerError as exc:
            self.alert("Error", exc.user_message)
        else:
            self._set(students=students)
        finally:
            self._set(refreshing=False)

    async def delete_student(self, student: Student) -> bool:
        if not await self.ctx.confirm("Delete student", f"Delete {student.name} and all their records?"):
            return False
        try:
            await self.api.delete_student(student.id)
        except TrackerError as exc:
            self.alert("Error", f"Could not delete the student. {exc.user_message}")
            return False
        await self.silent_refresh()
        return True

    def open_student(self, student: Student) -> None:
        self.navigator.navigate(RouteName.STUDENT_DETAIL, StudentRef(student_id=student.id, name=student.name))

    def add_student(self) -> None:
        self.navigator.navigate(RouteName.ADD_STUDENT)

    def edit_student(self, student: Student) -> None:
        self.navigator.navigate(RouteName.EDIT_STUDENT, StudentParams(student=student))

    def open_about(self) -> None:
        self.navigator.navigate(RouteName.ABOUT)


class AddStudentScreen(FormScreen):
    route_name = RouteName.ADD_STUDENT
    fields = ("name", "age", "condition", "notes")
    success_message = "Student added."
    failure_message = "Could not add the student."

    def build_payload(self) -> StudentIn:
        name = self.values["name"].strip()
        if not name or not self.values["age"].strip():
            raise ValidationError("Fill in at least the student's name and age.", field="age" if name else "name")
        return StudentIn(
            name=name,
            age=parse_int(self.values["age"], "age", "Age"),
            condition=self.values["condition"].strip(),
            notes=self.values["notes"].strip(),
        )

    async def send(self, payload: StudentIn) -> None:
        student = await self.api.create_student(payload)
        logger.info("Created student {} ({})", student.id, student.name)


class EditStudentScreen(AddStudentScreen):
    route_name = RouteName.EDIT_STUDENT
    success_message = "Student updated."
    failure_message = "Could not update the student."

    def __init__(self, ctx: ScreenContext, params: StudentParams) -> None:
        super().__init__(ctx, params)
        self.student: Student = params.student
        self._prefill(
            [
                ("name", self.student.name),
                ("age", self.student.age),
                ("condition", self.student.condition),
                ("notes", self.student.notes),
            ]
        )

    async def send(self, payload: StudentIn) -> Optional[Student]:
        return await self.api.update_student(self.student.id, payload)
