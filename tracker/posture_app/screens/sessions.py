"""Add/edit therapy session forms."""
from __future__ import annotations

from datetime import date
from typing import Optional, Union

from posture_app.api.schemas import SESSION_TYPES, Session, SessionIn, SessionUpdate
from posture_app.core.errors import ValidationError
from posture_app.navigation.routes import RouteName, SessionParams, StudentRef
from posture_app.screens.base import ScreenContext
from posture_app.screens.forms import FormScreen, format_display_date, parse_display_date


class AddSessionScreen(FormScreen):
    route_name = RouteName.ADD_SESSION
    fields = ("session_date", "session_type", "notes")
    success_message = "Session saved."
    failure_message = "Could not save the session."

    def __init__(self, ctx: ScreenContext, params: StudentRef, *, today: Optional[date] = None) -> None:
        super().__init__(ctx, params)
        self.student_id = params.student_id
        self.today = today
        self.values["session_date"] = format_display_date(today or date.today())
        self.values["session_type"] = next(iter(SESSION_TYPES))

    def pick_date(self, value: Union[date, str]) -> None:
        self.values["session_date"] = format_display_date(value) if isinstance(value, date) else value

    def _update_payload(self) -> SessionUpdate:
        session_type = self.values["session_type"].strip().lower()
        if session_type not in SESSION_TYPES:
            raise ValidationError(
                f"Session type must be one of: {', '.join(SESSION_TYPES)}.", field="session_type"
            )
        return SessionUpdate(
            session_date=parse_display_date(self.values["session_date"], today=self.today),
            session_type=session_type,
            notes=self.values["notes"].strip(),
        )

    def build_payload(self) -> SessionIn:
        return SessionIn(student_id=self.student_id, **self._update_payload().model_dump())

    async def send(self, payload: SessionIn) -> None:
        await self.api.create_session(payload)


class EditSessionScreen(AddSessionScreen):
    route_name = RouteName.EDIT_SESSION
    success_message = "Session updated."
    failure_message = "Could not update the session."

    def __init__(self, ctx: ScreenContext, params: SessionParams, *, today: Optional[date] = None) -> None:
        FormScreen.__init__(self, ctx, params)
        self.session: Session = params.session
        self.student_id = self.session.student_id
        self.today = today
        self._prefill(
            [
                ("session_date", format_display_date(self.session.session_date)),
                ("session_type", self.session.session_type if self.session.session_type in SESSION_TYPES else "evaluare"),
                ("notes", self.session.notes),
            ]
        )

    def build_payload(self) -> SessionUpdate:
        return self._update_payload()

    async def send(self, payload: SessionUpdate) -> None:
        await self.api.update_session(self.session.id, payload)
