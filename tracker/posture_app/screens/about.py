"""Static explanation of how the posture analysis is used."""
from __future__ import annotations

from posture_app.navigation.routes import RouteName
from posture_app.screens.base import Screen

TITLE = "How the AI is used"

PARAGRAPHS = (
    "This application uses an artificial intelligence model to analyse students' posture from the "
    "uploaded images. The model detects body angles such as the tilt of the shoulders, hips and spine.",
    "The model has limitations and cannot replace the expertise of a specialist. Its results are "
    "indicative only and must be validated by a qualified professional.",
    "The goal of the tool is to give teachers an initial view of a student's posture; therapeutic and "
    "diagnostic decisions must be taken by a specialist.",
    "Use the application as a complementary instrument and consult a professional for a detailed evaluation.",
)


class AboutScreen(Screen):
    route_name = RouteName.ABOUT
    title = TITLE
    paragraphs = PARAGRAPHS
