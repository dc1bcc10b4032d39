from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
from . import models, schemas

def create_task(db: Session, task_in: schemas.TaskCreate) -> models.Task:
    task = models.Task(**task_in.model_dump())
    db.add(task)
    db.commit()
    db.refresh(task)
    return task

def get_tasks_by_course(db: Session, user_id: str, course: str, status: Optional[str] = None) -> List[models.Task]:
    query = db.query(models.Task).filter(models.Task.user_id == user_id, func.lower(models.Task.course) == course.lower())
    if status:
        query = query.filter(models.Task.status == status)
    else:
        query = query.filter(models.Task.status != "done")
    return query.order_by(models.Task.due_at.asc(), models.Task.id.asc()).all()

def get_tasks_due_between(db: Session, user_id: str, start: datetime, end: datetime) -> List[models.Task]:
    return (
        db.query(models.Task)
        .filter(models.Task.user_id == user_id, models.Task.due_at >= start, models.Task.due_at <= end,
                models.Task.status != "done")
        .order_by(models.Task.due_at.asc(), models.Task.id.asc())
        .all()
    )

def find_task_by_title(db: Session, user_id: str, title: str) -> Optional[models.Task]:
    """Earliest-due task whose title contains ``title``, ignoring case."""
    return (
        db.query(models.Task)
        .filter(models.Task.user_id == user_id, models.Task.title.icontains(title, autoescape=True))
        .order_by(models.Task.due_at.asc(), models.Task.id.asc())
        .first()
    )

def update_status(db: Session, db_task: models.Task, status: str) -> models.Task:
    db_task.status = status
    db.commit()
    db.refresh(db_task)
    return db_task

def delete_task(db: Session, db_task: models.Task):
    db.delete(db_task)
    db.commit()
