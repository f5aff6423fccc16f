"""Terminal front-end for the posture tracker screens (CLI)."""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Callable, Iterable, Optional, Sequence, cast

from loguru import logger

from posture_app.api.schemas import SESSION_TYPES, Angles, Student
from posture_app.capture.sources import FileImageSource, ImageSource
from posture_app.core.config import Settings, get_settings
from posture_app.core.logging_config import setup_logging
from posture_app.gui.shell import App
from posture_app.screens.about import AboutScreen
from posture_app.screens.camera import AXIS_LABELS, CameraScreen, PhotoReviewScreen
from posture_app.screens.detail import StudentDetailScreen
from posture_app.screens.forms import FormScreen
from posture_app.screens.gallery import GalleryImportScreen
from posture_app.screens.students import StudentListScreen


def _print_alert(title: str, message: str) -> None:
    print(f"[{title}] {message}", file=sys.stderr)


async def _prompt_confirm(title: str, message: str) -> bool:
    answer = await asyncio.to_thread(input, f"{title}: {message} [y/N] ")
    return answer.strip().lower() in {"y", "yes", "d", "da"}


async def _always_yes(title: str, message: str) -> bool:
    return True


def _fmt_angles(angles: Angles, flagged: Iterable[str]) -> str:
    flagged = set(flagged)
    parts = []
    for axis, value in angles.as_dict().items():
        mark = " (!)" if axis in flagged else ""
        parts.append(f"{AXIS_LABELS[axis]}: {value:.2f}°{mark}")
    return " | ".join(parts)


def _fmt_num(value: Optional[float]) -> str:
    return "--" if value is None else f"{value:g}"


# ------------------------------------------------------------------ helpers --


async def _student(app: App, student_id: int) -> Optional[Student]:
    screen = cast(StudentListScreen, await app.screen())
    for s in screen.students:
        if s.id == student_id:
            return s
    _print_alert("Error", f"Student {student_id} not found.")
    return None


async def _detail(app: App, student_id: int) -> Optional[StudentDetailScreen]:
    student = await _student(app, student_id)
    if student is None:
        return None
    cast(StudentListScreen, await app.screen()).open_student(student)
    return cast(StudentDetailScreen, await app.screen())


async def _submit(app: App, open_form: Callable[[], None], **values: object) -> int:
    open_form()
    form = cast(FormScreen, await app.screen())
    form.fill(**{k: v for k, v in values.items() if v is not None})
    return 0 if await form.submit() else 1


# ----------------------------------------------------------------- commands --


async def cmd_students(app: App, args: argparse.Namespace) -> int:
    screen = cast(StudentListScreen, await app.screen())
    if not screen.students:
        print("No students yet.")
    for s in screen.students:
        print(f"{s.id:>4}  {s.name:<28} age {s.age:<3} {s.condition}")
    return 0


async def cmd_add_student(app: App, args: argparse.Namespace) -> int:
    screen = cast(StudentListScreen, await app.screen())
    return await _submit(app, screen.add_student, name=args.name, age=args.age, condition=args.condition, notes=args.notes)


async def cmd_edit_student(app: App, args: argparse.Namespace) -> int:
    student = await _student(app, args.student_id)
    if student is None:
        return 1
    screen = cast(StudentListScreen, await app.screen())
    return await _submit(
        app,
        lambda: screen.edit_student(student),
        name=args.name, age=args.age, condition=args.condition, notes=args.notes,
    )


async def cmd_detail(app: App, args: argparse.Namespace) -> int:
    detail = await _detail(app, args.student_id)
    if detail is None:
        return 1
    print(f"== {detail.name}")
    print("Measurements:")
    for m in detail.measurements:
        when = m.created_at.date().isoformat() if m.created_at else "--"
        print(
            f"  #{m.id} {when} H {_fmt_num(m.height)} cm, W {_fmt_num(m.weight)} kg, "
            f"head {_fmt_num(m.head_circumference)}, chest {_fmt_num(m.chest_circumference)}, "
            f"abd {_fmt_num(m.abdominal_circumference)} {m.physical_disability}".rstrip()
        )
    print("Sessions:")
    for s in detail.sessions:
        label = SESSION_TYPES.get(s.session_type, s.session_type)
        print(f"  #{s.id} {s.session_date.strftime('%d-%m-%Y')} {label}: {s.notes}")
    print("Posture photos:")
    for record in detail.photos:
        if record.latest is None:
            print(f"  #{record.photo.id} (no analysis)")
            continue
        print(f"  #{record.photo.id} {_fmt_angles(record.latest.angles, detail.flagged(record))}")
    return 0


async def cmd_add_measurement(app: App, args: argparse.Namespace) -> int:
    detail = await _detail(app, args.student_id)
    if detail is None:
        return 1
    return await _submit(
        app,
        detail.add_measurement,
        height=args.height,
        weight=args.weight,
        head_circumference=args.head,
        chest_circumference=args.chest,
        abdominal_circumference=args.abdomen,
        physical_disability=args.disability,
    )


async def cmd_add_session(app: App, args: argparse.Namespace) -> int:
    detail = await _detail(app, args.student_id)
    if detail is None:
        return 1
    return await _submit(
        app, detail.add_session, session_date=args.date, session_type=args.type, notes=args.notes
    )


async def cmd_capture(app: App, args: argparse.Namespace) -> int:
    detail = await _detail(app, args.student_id)
    if detail is None:
        return 1
    detail.open_camera()
    camera = cast(CameraScreen, await app.screen())
    review = await camera.take_photo()
    if review is None:
        return 1
    screen = cast(PhotoReviewScreen, await app.screen())
    print(_fmt_angles(screen.result.angles, screen.flagged_axes))
    if screen.overlay_url and not screen.overlay_url.startswith("data:"):
        print(f"Overlay: {screen.overlay_url}")
    decision = args.decision
    if decision is None:
        answer = await asyncio.to_thread(input, "Save this photo? [Y/n] ")
        decision = "retake" if answer.strip().lower() in {"n", "no", "nu"} else "accept"
    if decision == "retake":
        await screen.retake()
        print("Photo discarded.")
    else:
        await screen.save()
        print(f"Photo {review.photo_id} saved.")
    return 0


async def cmd_import(app: App, args: argparse.Namespace) -> int:
    detail = await _detail(app, args.student_id)
    if detail is None:
        return 1
    detail.open_gallery()
    gallery = cast(GalleryImportScreen, await app.screen())
    if not gallery.select(args.paths):
        return 1
    entries = await gallery.analyze()
    for e in entries:
        if e.ok and e.result is not None:
            print(f"Photo {e.index + 1} ({e.origin}): {_fmt_angles(e.result.angles, gallery.flagged(e))}")
        else:
            print(f"Photo {e.index + 1} ({e.origin}): analysis failed: {e.error}")
    return 0 if entries and all(e.ok for e in entries) else 1


async def cmd_delete(app: App, args: argparse.Namespace) -> int:
    if args.kind == "student":
        student = await _student(app, args.item_id)
        if student is None:
            return 1
        screen = cast(StudentListScreen, await app.screen())
        return 0 if await screen.delete_student(student) else 1
    if args.student is None:
        _print_alert("Error", f"--student is required to delete a {args.kind}.")
        return 2
    detail = await _detail(app, args.student)
    if detail is None:
        return 1
    remove = {
        "measurement": detail.delete_measurement,
        "session": detail.delete_session,
        "photo": detail.delete_photo,
    }[args.kind]
    return 0 if await remove(args.item_id) else 1


async def cmd_about(app: App, args: argparse.Namespace) -> int:
    cast(StudentListScreen, await app.screen()).open_about()
    screen = cast(AboutScreen, await app.screen())
    print(screen.title)
    print()
    for p in screen.paragraphs:
        print(p)
        print()
    return 0


COMMANDS = {
    "students": cmd_students,
    "add-student": cmd_add_student,
    "edit-student": cmd_edit_student,
    "detail": cmd_detail,
    "add-measurement": cmd_add_measurement,
    "add-session": cmd_add_session,
    "capture": cmd_capture,
    "import": cmd_import,
    "delete": cmd_delete,
    "about": cmd_about,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="posture-tracker", description="Student posture tracker")
    parser.add_argument("--host", default=None, help="Backend host (default: $API_HOST)")
    parser.add_argument("--port", type=int, default=None, help="Backend port (default: $API_PORT or 3000)")
    parser.add_argument("--log-level", default=None, help="Log level (default: $LOG_LEVEL)")
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("students", help="List students")

    for name in ("add-student", "edit-student"):
        p = sub.add_parser(name, help=f"{name.split('-')[0].title()} a student")
        if name == "edit-student":
            p.add_argument("student_id", type=int)
        required = name == "add-student"
        p.add_argument("--name", required=required)
        p.add_argument("--age", required=required)
        p.add_argument("--condition", default=None)
        p.add_argument("--notes", default=None)

    p = sub.add_parser("detail", help="Show measurements, sessions and posture photos")
    p.add_argument("student_id", type=int)

    p = sub.add_parser("add-measurement", help="Record a measurement")
    p.add_argument("student_id", type=int)
    p.add_argument("--height", required=True)
    p.add_argument("--weight", required=True)
    p.add_argument("--head", default=None)
    p.add_argument("--chest", default=None)
    p.add_argument("--abdomen", default=None)
    p.add_argument("--disability", default=None)

    p = sub.add_parser("add-session", help="Record a therapy session")
    p.add_argument("student_id", type=int)
    p.add_argument("--date", default=None, help="DD-MM-YYYY (default: today)")
    p.add_argument("--type", default=None, choices=list(SESSION_TYPES))
    p.add_argument("--notes", default=None)

    p = sub.add_parser("capture", help="Take a posture photo and review the analysis")
    p.add_argument("student_id", type=int)
    p.add_argument("--image", default=None, help="Use an image file instead of the camera")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--accept", dest="decision", action="store_const", const="accept")
    group.add_argument("--retake", dest="decision", action="store_const", const="retake")

    p = sub.add_parser("import", help="Analyze several images from disk, one after another")
    p.add_argument("student_id", type=int)
    p.add_argument("paths", nargs="+")

    p = sub.add_parser("delete", help="Delete a record")
    p.add_argument("kind", choices=["student", "measurement", "session", "photo"])
    p.add_argument("item_id", type=int)
    p.add_argument("--student", type=int, default=None, help="Owning student (not needed for students)")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sub.add_parser("about", help="How the AI analysis is used")
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    base = get_settings()
    overrides = {}
    if args.host:
        overrides["api_host"] = args.host
    if args.port:
        overrides["api_port"] = args.port
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file:
        overrides["log_file"] = args.log_file
    return base.model_copy(update=overrides)


async def run(args: argparse.Namespace, app: Optional[App] = None) -> int:
    own_app = app is None
    if app is None:
        settings = _settings_from_args(args)
        source_factory: Optional[Callable[[], ImageSource]] = None
        if getattr(args, "image", None):
            path = args.image
            source_factory = lambda: FileImageSource(path)  # noqa: E731
        confirm = _always_yes if getattr(args, "yes", False) else _prompt_confirm
        app = App(settings, alert=_print_alert, confirm=confirm, image_source_factory=source_factory)
    # every command starts from the student list
    app.navigator.pop_to_top()
    try:
        return await COMMANDS[args.command](app, args)
    finally:
        if own_app:
            await app.aclose()


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = _settings_from_args(args)
    setup_logging(settings.log_level, settings.log_file)
    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:  # pragma: no cover
        logger.info("Interrupted")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
