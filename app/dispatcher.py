"""Intent dispatch for the task webhook.

Each handler takes the parsed envelope, an open store session and the
settings, and returns the reply text. User-input problems and lookup misses
are answered here; store errors propagate to the HTTP layer.
"""

import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from . import crud, models, schemas
from .config import Settings
from .parsing import (
    DEFAULT_COURSE,
    day_bounds,
    extract_from_text,
    first_param,
    format_for_user,
    map_status,
    now_wib,
    resolve_due_at,
    resolve_priority,
    sanitize_course,
    title_from_params,
    to_wib,
)

logger = logging.getLogger(__name__)

UNHANDLED_REPLY = "Webhook aktif, tapi intent ini belum di-handle."
ERROR_REPLY = "Maaf, terjadi kendala di server saat memproses tugasmu. Coba lagi sebentar lagi ya."

Handler = Callable[[schemas.WebhookRequest, Session, Settings], str]


def _due_text(task: models.Task) -> str:
    return format_for_user(task.due_at) if task.due_at else "-"


def _render_rows(tasks: List[models.Task], limit: int, render: Callable[[models.Task], str]) -> str:
    lines = [render(task) for task in tasks[:limit]]
    hidden = len(tasks) - limit
    if hidden > 0:
        lines.append(f"...dan {hidden} lainnya")
    return "\n".join(lines)


# ===================
# OPERATIONS
# ===================

def add_task(body: schemas.WebhookRequest, db: Session, settings: Settings) -> str:
    params = body.parameters

    title = title_from_params(params)
    if not title:
        return "Judul tugasnya apa?"

    if len(title) > schemas.TITLE_MAX_LENGTH:
        return f"Judul tugasnya terlalu panjang. Coba singkat jadi maksimal {schemas.TITLE_MAX_LENGTH} karakter ya."

    course_raw = first_param(params, ("course",))
    course = sanitize_course(course_raw) or DEFAULT_COURSE
    if len(course) > schemas.COURSE_MAX_LENGTH:
        return f"Nama mata kuliahnya terlalu panjang. Coba singkat jadi maksimal {schemas.COURSE_MAX_LENGTH} karakter ya."

    priority = resolve_priority(params, body.user_text())
    due_at = resolve_due_at(params, now_wib())

    task = crud.create_task(db, schemas.TaskCreate(
        user_id=settings.user_id,
        title=title,
        course=course,
        due_at=due_at,
        priority=priority,
        status="todo",
    ))
    logger.info(f"Created task {task.id} '{title}' for course '{course}'")

    return (
        "✅ Oke, sudah aku simpan.\n"
        f"• Tugas: {title}\n"
        f"• MK: {course_raw or course}\n"
        f"• Deadline: {format_for_user(due_at)}\n"
        f"• Prioritas: {priority}"
    )


def list_tasks_by_course(body: schemas.WebhookRequest, db: Session, settings: Settings) -> str:
    params = body.parameters

    course_raw = first_param(params, ("course",))
    if not course_raw:
        return "Mata kuliahnya apa? Contoh: Kalkulus, Fisika Dasar, dst."

    course = sanitize_course(course_raw) or course_raw.lower()
    status = map_status(first_param(params, ("status",)), default="") or None

    tasks = crud.get_tasks_by_course(db, settings.user_id, course, status=status)
    if not tasks:
        if status:
            return f"Tidak ada tugas {course_raw} dengan status {status}."
        return f"Belum ada tugas (atau semua sudah selesai) untuk {course_raw}."

    text = _render_rows(
        tasks,
        settings.list_limit,
        lambda t: f"• {t.title} — {_due_text(t)} (prio: {t.priority}, status: {t.status})",
    )
    if status:
        return f"📚 Tugas {course_raw} dengan status {status}:\n{text}"
    return f"📚 Tugas {course_raw} yang belum selesai:\n{text}"


def list_tasks_by_date(body: schemas.WebhookRequest, db: Session, settings: Settings) -> str:
    day = to_wib(resolve_due_at(body.parameters, now_wib())).date()
    start, end = day_bounds(day)

    tasks = crud.get_tasks_due_between(db, settings.user_id, start, end)
    day_str = day.isoformat()
    if not tasks:
        return f"Tidak ada tugas yang belum selesai pada {day_str}."

    text = _render_rows(
        tasks,
        settings.list_limit,
        lambda t: f"• {t.title} [{t.course}] — {_due_text(t)} (prio: {t.priority})",
    )
    return f"📅 Tugas yang belum selesai pada {day_str}:\n{text}"


def update_task_status(body: schemas.WebhookRequest, db: Session, settings: Settings) -> str:
    params = body.parameters
    from_text = extract_from_text(body.user_text())

    status_raw = first_param(params, ("status",)) or (from_text.status if from_text else "")
    status = map_status(status_raw, default="done")

    title = title_from_params(params) or (from_text.title if from_text else "")
    if not title:
        return "Judul tugasnya apa yang mau diubah statusnya?\nContoh: Tandai tugas Quiz 1 selesai"

    task = crud.find_task_by_title(db, settings.user_id, title)
    if task is None:
        return f'Aku tidak menemukan tugas yang cocok dengan "{title}". Coba tulis judulnya lebih spesifik.'

    if status == "done" and settings.completion_policy == "delete":
        stored_title = task.title
        crud.delete_task(db, task)
        logger.info(f"Deleted completed task '{stored_title}'")
        return f'✅ Oke. "{stored_title}" sudah selesai dan aku hapus dari daftar.'

    task = crud.update_status(db, task, status)
    logger.info(f"Task {task.id} '{task.title}' set to {status}")
    return f'✅ Oke. Status "{task.title}" sudah jadi {task.status}.'


# ===================
# ROUTING
# ===================

INTENT_HANDLERS: Dict[str, Handler] = {
    "add_task": add_task,
    "tambah_tugas": add_task,
    "tambah tugas": add_task,
    "list_tasks_by_course": list_tasks_by_course,
    "course": list_tasks_by_course,
    "tugas_per_mata_kuliah": list_tasks_by_course,
    "list_tasks_by_date": list_tasks_by_date,
    "tugas_per_tanggal": list_tasks_by_date,
    "tugas_hari_ini": list_tasks_by_date,
    "update_status": update_task_status,
    "ubah_status_tugas": update_task_status,
    "ubah status tugas": update_task_status,
}


def resolve_handler(intent_name: str) -> Optional[Handler]:
    return INTENT_HANDLERS.get((intent_name or "").strip().lower())


def dispatch(body: schemas.WebhookRequest, db: Session, settings: Settings) -> str:
    handler = resolve_handler(body.intent_name)
    if handler is None:
        logger.info(f"Unhandled intent '{body.intent_name}'")
        return UNHANDLED_REPLY
    return handler(body, db, settings)
