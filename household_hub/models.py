from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    """Current UTC time without tzinfo; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"
    dessert = "dessert"


class BodyPart(str, Enum):
    chest = "chest"
    back = "back"
    legs = "legs"
    shoulders = "shoulders"
    arms = "arms"
    abs = "abs"
    cardio = "cardio"
    full_body = "full_body"


class DayOfWeek(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


class Recurrence(str, Enum):
    none = "none"
    daily = "daily"
    every_other_day = "every_other_day"
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class ReminderCategory(str, Enum):
    replace = "replace"
    maintenance = "maintenance"
    general = "general"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Member(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = None
    color: str = Field(default="#10b981")
    avatar: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Recipe(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    description: str
    meal_types: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    ingredients: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    instructions: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    prep_time: int = 0
    cook_time: int = 0
    servings: int = 1
    calories: Optional[int] = None
    image_url: str = ""
    source_url: str = ""
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Store(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    color: str = Field(default="#059669")
    event: str = Field(default="General")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    items: list["ShoppingItem"] = Relationship(
        back_populates="store",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "ShoppingItem.id"},
    )


class ShoppingItem(SQLModel, table=True):
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="store.id")
    name: str
    quantity: Optional[str] = None
    checked: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    store: Optional[Store] = Relationship(back_populates="items")


class ExerciseTemplate(SQLModel, table=True):
    """One logical exercise of a member, identified by (member, name, body part)."""

    __table_args__ = (UniqueConstraint("member_id", "name", "body_part"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(foreign_key="member.id")
    name: str
    body_part: BodyPart
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    schedule: list["ScheduledExercise"] = Relationship(
        back_populates="template",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class ScheduledExercise(SQLModel, table=True):
    """A template placed on a weekday; day_of_week None is the library copy."""

    id: Optional[int] = Field(default=None, primary_key=True)
    template_id: int = Field(foreign_key="exercisetemplate.id")
    day_of_week: Optional[DayOfWeek] = None
    sets: Optional[int] = None
    reps: Optional[str] = None
    weight: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    link: Optional[str] = None
    completed: bool = False
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    template: Optional[ExerciseTemplate] = Relationship(back_populates="schedule")


class Reminder(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    due_date: datetime = Field(sa_type=DateTime)
    completed: bool = False
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    recurrence: Recurrence = Field(default=Recurrence.none)
    category: ReminderCategory = Field(default=ReminderCategory.general)
    priority: Priority = Field(default=Priority.medium)
    points: int = Field(default=5)
    assignee_id: Optional[int] = Field(default=None, foreign_key="member.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


__all__ = [
    "MealType",
    "BodyPart",
    "DayOfWeek",
    "Recurrence",
    "ReminderCategory",
    "Priority",
    "Member",
    "Recipe",
    "Store",
    "ShoppingItem",
    "ExerciseTemplate",
    "ScheduledExercise",
    "Reminder",
    "utcnow",
]
