"""
Exercise plans.

An ``ExerciseTemplate`` is one logical exercise of a member, keyed by
(member, name, body part). Each ``ScheduledExercise`` row places it on a
weekday, or in the member's library when ``day_of_week`` is None. Bulk
operations address every row of a template at once.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from .errors import NotFoundError, ValidationError
from .models import BodyPart, DayOfWeek, ExerciseTemplate, Member, ScheduledExercise, utcnow
from .schemas import (
    BulkUpdateRequest,
    ExerciseCreate,
    ExerciseFilter,
    ExerciseOut,
    ExerciseUpdate,
)

logger = logging.getLogger(__name__)

ROW_FIELDS = ("day_of_week", "sets", "reps", "weight", "duration", "notes", "link", "completed")
DAY_ORDER = {day: index for index, day in enumerate(DayOfWeek)}
LIBRARY = "library"


def require_member(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if not member:
        raise ValidationError("Member not found")
    return member


def find_template(
    session: Session, member_id: int, name: str, body_part: BodyPart
) -> Optional[ExerciseTemplate]:
    return session.exec(
        select(ExerciseTemplate).where(
            ExerciseTemplate.member_id == member_id,
            ExerciseTemplate.name == name,
            ExerciseTemplate.body_part == body_part,
        )
    ).first()


def get_or_create_template(
    session: Session, member_id: int, name: str, body_part: BodyPart
) -> ExerciseTemplate:
    template = find_template(session, member_id, name, body_part)
    if template:
        return template
    template = ExerciseTemplate(member_id=member_id, name=name, body_part=body_part)
    session.add(template)
    session.flush()
    return template


def drop_if_unused(session: Session, template: ExerciseTemplate):
    remaining = session.exec(
        select(ScheduledExercise.id).where(ScheduledExercise.template_id == template.id)
    ).first()
    if remaining is None:
        session.delete(template)


def get_exercise(session: Session, exercise_id: int) -> ScheduledExercise:
    row = session.get(ScheduledExercise, exercise_id)
    if not row:
        raise NotFoundError("Exercise not found")
    return row


def exercise_out(session: Session, row: ScheduledExercise) -> ExerciseOut:
    return ExerciseOut.from_model(row, session.get(Member, row.template.member_id))


def _sort_key(row: ScheduledExercise):
    day_rank = DAY_ORDER[DayOfWeek(row.day_of_week)] if row.day_of_week else len(DAY_ORDER)
    return (day_rank, row.position, row.id)


def list_exercises(
    session: Session, member_id: Optional[int] = None, day_of_week: Optional[str] = None
) -> list[ScheduledExercise]:
    query = select(ScheduledExercise).join(
        ExerciseTemplate, ExerciseTemplate.id == ScheduledExercise.template_id
    )
    if member_id is not None:
        query = query.where(ExerciseTemplate.member_id == member_id)
    if day_of_week == LIBRARY:
        query = query.where(ScheduledExercise.day_of_week == None)  # noqa: E711
    elif day_of_week:
        try:
            day = DayOfWeek(day_of_week)
        except ValueError:
            raise ValidationError(f"Unknown day of week: {day_of_week}") from None
        query = query.where(ScheduledExercise.day_of_week == day)
    return sorted(session.exec(query).all(), key=_sort_key)


def _apply_row_fields(row: ScheduledExercise, changes: dict, now: datetime):
    for field in ROW_FIELDS:
        if field in changes:
            value = changes[field]
            if field == "completed" and value is None:
                continue
            setattr(row, field, value)
    if changes.get("order") is not None:
        row.position = changes["order"]
    row.updated_at = now


def create_exercise(session: Session, payload: ExerciseCreate) -> ScheduledExercise:
    require_member(session, payload.member)
    template = get_or_create_template(session, payload.member, payload.name, payload.body_part)
    row = ScheduledExercise(template_id=template.id)
    _apply_row_fields(row, payload.model_dump(), utcnow())
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def update_exercise(session: Session, exercise_id: int, payload: ExerciseUpdate) -> ScheduledExercise:
    """Update one scheduled row; identity changes move it to the matching template."""
    row = get_exercise(session, exercise_id)
    changes = payload.model_dump(exclude_unset=True)
    current = row.template
    member_id = changes.get("member") or current.member_id
    name = changes.get("name") or current.name
    body_part = changes.get("body_part") or current.body_part
    if (member_id, name, body_part) != (current.member_id, current.name, current.body_part):
        require_member(session, member_id)
        target = get_or_create_template(session, member_id, name, body_part)
        row.template_id = target.id
        row.template = target
        session.add(row)
        session.flush()
        drop_if_unused(session, current)
    _apply_row_fields(row, changes, utcnow())
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def delete_exercise(session: Session, exercise_id: int) -> ScheduledExercise:
    row = get_exercise(session, exercise_id)
    template = row.template
    session.delete(row)
    session.flush()
    drop_if_unused(session, template)
    session.commit()
    return row


def _require_triple(triple: Optional[ExerciseFilter], message: str) -> ExerciseFilter:
    if triple is None or not triple.is_complete():
        raise ValidationError(message)
    return triple


def bulk_update(session: Session, request: BulkUpdateRequest) -> tuple[list[ScheduledExercise], int]:
    """Apply ``request.updates`` to every row sharing the filter triple.

    Returns the rows of the (possibly renamed) template and how many were modified.
    """
    triple = _require_triple(
        request.filter, "Filter with name, bodyPart, and member is required"
    )
    template = find_template(session, triple.member, triple.name, triple.body_part)
    if template is None:
        return [], 0
    changes = request.updates.model_dump(exclude_unset=True)
    now = utcnow()
    rows = list(template.schedule)
    for row in rows:
        _apply_row_fields(row, changes, now)
        session.add(row)

    new_member = changes.get("member") or template.member_id
    new_name = changes.get("name") or template.name
    new_body_part = changes.get("body_part") or template.body_part
    if (new_member, new_name, new_body_part) != (template.member_id, template.name, template.body_part):
        require_member(session, new_member)
        existing = find_template(session, new_member, new_name, new_body_part)
        if existing:
            for row in rows:
                row.template = existing
                session.add(row)
            session.flush()
            session.delete(template)
            template = existing
        else:
            template.member_id = new_member
            template.name = new_name
            template.body_part = new_body_part
            template.updated_at = now
            session.add(template)
        session.flush()
        session.refresh(template)

    session.commit()
    logger.info("Bulk updated %d exercise rows for template %s", len(rows), template.id)
    refreshed = session.exec(
        select(ScheduledExercise).where(ScheduledExercise.template_id == template.id)
    ).all()
    return sorted(refreshed, key=_sort_key), len(rows)


def bulk_delete(session: Session, triple: ExerciseFilter) -> int:
    _require_triple(triple, "Name, bodyPart, and member are required")
    template = find_template(session, triple.member, triple.name, triple.body_part)
    if template is None:
        return 0
    deleted = len(template.schedule)
    session.delete(template)
    session.commit()
    logger.info("Bulk deleted %d exercise rows for %s", deleted, triple.name)
    return deleted


def delete_member_exercises(session: Session, member_id: int):
    templates = session.exec(
        select(ExerciseTemplate).where(ExerciseTemplate.member_id == member_id)
    ).all()
    for template in templates:
        session.delete(template)
