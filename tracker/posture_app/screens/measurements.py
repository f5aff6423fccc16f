"""Add/edit measurement forms."""
from __future__ import annotations

from posture_app.api.schemas import Measurement, MeasurementIn, MeasurementUpdate
from posture_app.core.errors import ValidationError
from posture_app.navigation.routes import MeasurementParams, RouteName, StudentRef
from posture_app.screens.base import ScreenContext
from posture_app.screens.forms import FormScreen, parse_float

LABELS = {
    "height": "Height (cm)",
    "weight": "Weight (kg)",
    "head_circumference": "Head circumference (cm)",
    "chest_circumference": "Chest circumference (cm)",
    "abdominal_circumference": "Abdominal circumference (cm)",
    "physical_disability": "Physical disability",
}


class AddMeasurementScreen(FormScreen):
    route_name = RouteName.ADD_MEASUREMENT
    fields = tuple(LABELS)
    success_message = "Measurement saved."
    failure_message = "Could not save the measurement."

    def __init__(self, ctx: ScreenContext, params: StudentRef) -> None:
        super().__init__(ctx, params)
        self.student_id = params.student_id

    def _update_payload(self) -> MeasurementUpdate:
        v = self.values
        if not v["height"].strip() or not v["weight"].strip():
            raise ValidationError("Enter the height and the weight.", field="weight" if v["height"].strip() else "height")
        return MeasurementUpdate(
            height=parse_float(v["height"], "height", LABELS["height"], required=True),
            weight=parse_float(v["weight"], "weight", LABELS["weight"], required=True),
            head_circumference=parse_float(v["head_circumference"], "head_circumference", LABELS["head_circumference"]),
            chest_circumference=parse_float(v["chest_circumference"], "chest_circumference", LABELS["chest_circumference"]),
            abdominal_circumference=parse_float(
                v["abdominal_circumference"], "abdominal_circumference", LABELS["abdominal_circumference"]
            ),
            physical_disability=v["physical_disability"].strip(),
        )

    def build_payload(self) -> MeasurementIn:
        return MeasurementIn(student_id=self.student_id, **self._update_payload().model_dump())

    async def send(self, payload: MeasurementIn) -> None:
        await self.api.create_measurement(payload)


class EditMeasurementScreen(AddMeasurementScreen):
    route_name = RouteName.EDIT_MEASUREMENT
    success_message = "Measurement updated."
    failure_message = "Could not update the measurement."

    def __init__(self, ctx: ScreenContext, params: MeasurementParams) -> None:
        FormScreen.__init__(self, ctx, params)
        self.measurement: Measurement = params.measurement
        self.student_id = self.measurement.student_id
        self._prefill((name, getattr(self.measurement, name)) for name in self.fields)

    def build_payload(self) -> MeasurementUpdate:
        # student_id is immutable once created
        return self._update_payload()

    async def send(self, payload: MeasurementUpdate) -> None:
        await self.api.update_measurement(self.measurement.id, payload)
