import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from .errors import NotFoundError, ValidationError
from .models import Member, Recurrence, Reminder, utcnow
from .recurrence import next_due
from .schemas import LeaderboardEntry, ReminderCreate, ReminderOut, ReminderUpdate

logger = logging.getLogger(__name__)


def get_reminder(session: Session, reminder_id: int) -> Reminder:
    reminder = session.get(Reminder, reminder_id)
    if not reminder:
        raise NotFoundError("Reminder not found")
    return reminder


def resolve_assignee(session: Session, reminder: Reminder) -> Optional[Member]:
    if reminder.assignee_id is None:
        return None
    return session.get(Member, reminder.assignee_id)


def check_assignee(session: Session, member_id: Optional[int]):
    if member_id is not None and session.get(Member, member_id) is None:
        raise ValidationError("Assignee is not a household member")


def reminder_out(session: Session, reminder: Reminder) -> ReminderOut:
    return ReminderOut.from_model(reminder, resolve_assignee(session, reminder))


def list_reminders(session: Session, completed: Optional[bool] = None) -> list[Reminder]:
    query = select(Reminder)
    if completed is not None:
        query = query.where(Reminder.completed == completed)
    return session.exec(query.order_by(Reminder.due_date, Reminder.id)).all()


def create_reminder(session: Session, payload: ReminderCreate, now: Optional[datetime] = None) -> Reminder:
    check_assignee(session, payload.assignee)
    data = payload.model_dump(exclude={"assignee"})
    reminder = Reminder(**data, assignee_id=payload.assignee)
    if reminder.completed:
        reminder.completed_at = now or utcnow()
    session.add(reminder)
    session.commit()
    session.refresh(reminder)
    return reminder


def _apply_update(reminder: Reminder, payload: ReminderUpdate, now: datetime):
    changes = payload.model_dump(exclude_unset=True)
    if "assignee" in changes:
        reminder.assignee_id = changes.pop("assignee")
    for field, value in changes.items():
        if value is None and field != "description":
            continue
        setattr(reminder, field, value)
    if changes.get("completed") is True:
        reminder.completed_at = now
    elif changes.get("completed") is False:
        reminder.completed_at = None
    reminder.updated_at = now


def update_reminder(
    session: Session,
    reminder_id: int,
    payload: ReminderUpdate,
    now: Optional[datetime] = None,
) -> Reminder:
    """Apply ``payload`` and return the reminder to show as the live item.

    Completing a recurring reminder marks it done and spawns its next
    occurrence, due one step after ``now`` rather than after the stale due
    date. Both rows are written in the same transaction and the successor is
    returned. Otherwise the updated reminder itself is returned.
    """
    now = now or utcnow()
    reminder = get_reminder(session, reminder_id)
    check_assignee(session, payload.assignee)
    rule = reminder.recurrence
    completing = payload.completed is True
    _apply_update(reminder, payload, now)
    session.add(reminder)

    if not (completing and rule != Recurrence.none):
        session.commit()
        session.refresh(reminder)
        return reminder

    try:
        successor = Reminder(
            title=reminder.title,
            description=reminder.description,
            due_date=next_due(now, rule),
            completed=False,
            recurrence=reminder.recurrence,
            category=reminder.category,
            priority=reminder.priority,
            points=reminder.points,
            assignee_id=reminder.assignee_id,
        )
        session.add(successor)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Rolling back completion of reminder %s", reminder_id)
        raise
    session.refresh(successor)
    logger.info(
        "Reminder %s completed; next %s occurrence %s due %s",
        reminder_id,
        rule.value,
        successor.id,
        successor.due_date.isoformat(),
    )
    return successor


def delete_reminder(session: Session, reminder_id: int):
    reminder = get_reminder(session, reminder_id)
    session.delete(reminder)
    session.commit()


def leaderboard(session: Session) -> list[LeaderboardEntry]:
    rows = session.exec(
        select(Reminder, Member)
        .join(Member, Member.id == Reminder.assignee_id)
        .where(Reminder.completed == True)  # noqa: E712
    ).all()
    entries: dict[int, LeaderboardEntry] = {}
    for reminder, member in rows:
        entry = entries.get(member.id)
        if entry is None:
            entry = LeaderboardEntry(
                member_id=member.id,
                member_name=member.name,
                member_color=member.color,
            )
            entries[member.id] = entry
        entry.total_points += reminder.points or 0
        entry.completed_count += 1
    return sorted(entries.values(), key=lambda e: e.total_points, reverse=True)
