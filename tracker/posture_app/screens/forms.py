"""Form screen base and input parsing helpers."""
from __future__ import annotations

import re
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from loguru import logger
from pydantic import BaseModel

from posture_app.core.errors import TrackerError, ValidationError
from posture_app.navigation.routes import RouteParams
from posture_app.screens.base import Screen, ScreenContext

DISPLAY_DATE_RE = re.compile(r"^([0-2]\d|3[0-1])-(0\d|1[0-2])-(\d{4})$")


def require(raw: Optional[str], field: str, label: str) -> str:
    value = (raw or "").strip()
    if not value:
        raise ValidationError(f"{label} is required.", field=field)
    return value


def parse_float(raw: Optional[str], field: str, label: str, *, required: bool = False) -> Optional[float]:
    value = (raw or "").strip().replace(",", ".")
    if not value:
        if required:
            raise ValidationError(f"{label} is required.", field=field)
        return None
    try:
        number = float(value)
    except ValueError:
        raise ValidationError(f"{label} must be a number.", field=field) from None
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{label} must be a number.", field=field)
    if number < 0:
        raise ValidationError(f"{label} cannot be negative.", field=field)
    return number


def parse_int(raw: Optional[str], field: str, label: str) -> int:
    value = require(raw, field, label)
    if not value.isdecimal():
        raise ValidationError(f"{label} must be a whole number.", field=field)
    return int(value)


def parse_display_date(raw: Optional[str], field: str = "session_date", *, today: Optional[date] = None) -> date:
    """Parse ``DD-MM-YYYY``; rejects impossible and future dates."""
    value = (raw or "").strip()
    m = DISPLAY_DATE_RE.match(value)
    if not m:
        raise ValidationError("Date must be DD-MM-YYYY.", field=field)
    dd, mm, yyyy = (int(g) for g in m.groups())
    try:
        parsed = date(yyyy, mm, dd)
    except ValueError:
        raise ValidationError(f"{value} is not a valid date.", field=field) from None
    if parsed > (today or date.today()):
        raise ValidationError("Date cannot be in the future.", field=field)
    return parsed


def format_display_date(value: date) -> str:
    return value.strftime("%d-%m-%Y")


class FormScreen(Screen):
    """Collect inputs, validate locally, submit, then go back to the caller.

    Entered values are kept on any error so nothing typed is lost.
    """

    fields: Tuple[str, ...] = ()
    success_message = "Saved."
    failure_message = "Could not save."

    def __init__(self, ctx: ScreenContext, params: RouteParams) -> None:
        super().__init__(ctx, params)
        self.values: Dict[str, str] = {name: "" for name in self.fields}
        self.error: Optional[str] = None
        self.error_field: Optional[str] = None

    def fill(self, **values: object) -> None:
        for name, value in values.items():
            if name not in self.values:
                raise KeyError(f"{type(self).__name__} has no field {name!r}")
            self.values[name] = "" if value is None else str(value)

    def _prefill(self, pairs: Iterable[Tuple[str, object]]) -> None:
        for name, value in pairs:
            self.values[name] = "" if value is None else str(value)

    def build_payload(self) -> BaseModel:
        raise NotImplementedError

    async def send(self, payload: BaseModel) -> None:
        raise NotImplementedError

    async def submit(self) -> bool:
        if self.busy:
            return False
        try:
            payload = self.build_payload()
        except ValidationError as exc:
            self._set(error=exc.user_message, error_field=exc.field)
            self.alert("Error", exc.user_message)
            return False
        self._set(busy=True, error=None, error_field=None)
        try:
            await self.send(payload)
        except TrackerError as exc:
            logger.warning("{} submit failed: {}", type(self).__name__, exc.user_message)
            self._set(error=exc.user_message)
            self.alert("Error", f"{self.failure_message} {exc.user_message}")
            return False
        finally:
            self._set(busy=False)
        self.alert("Success", self.success_message)
        self.go_back()
        return True
