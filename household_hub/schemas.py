"""
Request and response payloads for the Household Hub API.

Table models in ``models`` stay snake_case; everything crossing the HTTP
boundary goes through these camelCase models.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import (
    BodyPart,
    DayOfWeek,
    MealType,
    Member,
    Priority,
    Recipe,
    Recurrence,
    Reminder,
    ReminderCategory,
    ScheduledExercise,
    ShoppingItem,
    Store,
)


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def strip_text(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def round_number(value: Any) -> Any:
    if isinstance(value, float):
        return int(round(value))
    return value


def number_to_text(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}"
    return value


def none_to_empty_text(value: Any) -> Any:
    return "" if value is None else value


def none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


Trimmed = Annotated[str, BeforeValidator(strip_text)]
OptionalRef = Annotated[Optional[int], BeforeValidator(blank_to_none)]
UtcDatetime = Annotated[datetime, AfterValidator(naive_utc)]
WholeNumber = Annotated[int, BeforeValidator(round_number)]
LooseText = Annotated[Optional[str], BeforeValidator(number_to_text), BeforeValidator(blank_to_none)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ------- Members -------
class MemberCreate(CamelModel):
    name: Trimmed = Field(min_length=1)
    email: Optional[Trimmed] = None
    color: Optional[str] = None
    avatar: Optional[Trimmed] = None


class MemberUpdate(CamelModel):
    name: Optional[Trimmed] = Field(default=None, min_length=1)
    email: Optional[Trimmed] = None
    color: Optional[str] = None
    avatar: Optional[Trimmed] = None


class MemberOut(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    color: str
    avatar: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, member: Optional[Member]) -> Optional["MemberOut"]:
        if member is None:
            return None
        return cls.model_validate(member, from_attributes=True)


# ------- Recipes -------
class IngredientLine(CamelModel):
    name: Trimmed = Field(min_length=1)
    amount: Annotated[str, BeforeValidator(none_to_empty_text), BeforeValidator(number_to_text)] = ""
    unit: Annotated[str, BeforeValidator(none_to_empty_text)] = ""


class RecipeCreate(CamelModel):
    title: Trimmed = Field(min_length=1, max_length=200)
    description: Trimmed = Field(min_length=1)
    meal_types: List[MealType] = Field(default_factory=list)
    ingredients: List[IngredientLine] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    prep_time: int = Field(ge=0)
    cook_time: int = Field(ge=0)
    servings: int = Field(ge=1)
    calories: Optional[int] = Field(default=None, ge=0)
    image_url: str = ""
    source_url: str = ""
    tags: List[str] = Field(default_factory=list)


class RecipeUpdate(CamelModel):
    title: Optional[Trimmed] = Field(default=None, min_length=1, max_length=200)
    description: Optional[Trimmed] = Field(default=None, min_length=1)
    meal_types: Optional[List[MealType]] = None
    ingredients: Optional[List[IngredientLine]] = None
    instructions: Optional[List[str]] = None
    prep_time: Optional[int] = Field(default=None, ge=0)
    cook_time: Optional[int] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)
    calories: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    tags: Optional[List[str]] = None


class RecipeOut(CamelModel):
    id: int
    title: str
    description: str
    meal_types: List[str]
    ingredients: List[IngredientLine]
    instructions: List[str]
    prep_time: int
    cook_time: int
    servings: int
    calories: Optional[int] = None
    image_url: str
    source_url: str
    tags: List[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, recipe: Recipe) -> "RecipeOut":
        return cls.model_validate(recipe, from_attributes=True)


# ------- Stores -------
class ItemCreate(CamelModel):
    name: Trimmed = Field(min_length=1)
    quantity: Optional[Trimmed] = None
    checked: bool = False


class ItemUpdate(CamelModel):
    item_id: int
    checked: Optional[bool] = None
    name: Optional[Trimmed] = Field(default=None, min_length=1)
    quantity: Optional[Trimmed] = None


class ItemRef(CamelModel):
    item_id: int


class ItemMove(CamelModel):
    item_id: int
    target_store_id: int


class StoreCreate(CamelModel):
    name: Trimmed = Field(min_length=1)
    color: Optional[str] = None
    event: Optional[Trimmed] = None
    items: List[ItemCreate] = Field(default_factory=list)


class StoreUpdate(CamelModel):
    name: Optional[Trimmed] = Field(default=None, min_length=1)
    color: Optional[str] = None
    event: Optional[Trimmed] = None


class ItemOut(CamelModel):
    id: int
    name: str
    quantity: Optional[str] = None
    checked: bool
    created_at: datetime


class StoreOut(CamelModel):
    id: int
    name: str
    color: str
    event: str
    items: List[ItemOut]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, store: Store, items: Optional[List[ShoppingItem]] = None) -> "StoreOut":
        return cls(
            id=store.id,
            name=store.name,
            color=store.color,
            event=store.event,
            items=[
                ItemOut.model_validate(item, from_attributes=True)
                for item in (store.items if items is None else items)
            ],
            created_at=store.created_at,
            updated_at=store.updated_at,
        )


# ------- Exercises -------
class ExerciseFields(CamelModel):
    """Per-day fields; everything except the (member, name, bodyPart) identity."""

    day_of_week: Annotated[Optional[DayOfWeek], BeforeValidator(blank_to_none)] = None
    sets: Optional[int] = Field(default=None, ge=0)
    reps: Optional[str] = None
    weight: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    link: Optional[str] = None
    completed: Optional[bool] = None
    order: Optional[int] = None


class ExerciseCreate(ExerciseFields):
    member: int
    name: Trimmed = Field(min_length=1)
    body_part: BodyPart


class ExerciseUpdate(ExerciseFields):
    member: Optional[int] = None
    name: Optional[Trimmed] = Field(default=None, min_length=1)
    body_part: Optional[BodyPart] = None


class ExerciseFilter(CamelModel):
    name: Annotated[Optional[str], BeforeValidator(blank_to_none)] = None
    body_part: Annotated[Optional[BodyPart], BeforeValidator(blank_to_none)] = None
    member: OptionalRef = None

    def is_complete(self) -> bool:
        return bool(self.name and self.body_part and self.member)


class BulkUpdateRequest(CamelModel):
    filter: Optional[ExerciseFilter] = None
    updates: ExerciseUpdate = Field(default_factory=ExerciseUpdate)


class ExerciseOut(CamelModel):
    id: int
    template_id: int
    member: Optional[MemberOut] = None
    name: str
    body_part: BodyPart
    day_of_week: Optional[DayOfWeek] = None
    sets: Optional[int] = None
    reps: Optional[str] = None
    weight: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    link: Optional[str] = None
    completed: bool
    order: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, row: ScheduledExercise, member: Optional[Member]) -> "ExerciseOut":
        template = row.template
        return cls(
            id=row.id,
            template_id=template.id,
            member=MemberOut.from_model(member),
            name=template.name,
            body_part=template.body_part,
            day_of_week=row.day_of_week,
            sets=row.sets,
            reps=row.reps,
            weight=row.weight,
            duration=row.duration,
            notes=row.notes,
            link=row.link,
            completed=row.completed,
            order=row.position,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


# ------- Reminders -------
class ReminderCreate(CamelModel):
    title: Trimmed = Field(min_length=1)
    description: Optional[Trimmed] = None
    due_date: UtcDatetime
    completed: bool = False
    recurrence: Recurrence = Recurrence.none
    category: ReminderCategory = ReminderCategory.general
    priority: Priority = Priority.medium
    points: int = Field(default=5, ge=1, le=10)
    assignee: OptionalRef = None


class ReminderUpdate(CamelModel):
    title: Optional[Trimmed] = Field(default=None, min_length=1)
    description: Optional[Trimmed] = None
    due_date: Optional[UtcDatetime] = None
    completed: Optional[bool] = None
    recurrence: Optional[Recurrence] = None
    category: Optional[ReminderCategory] = None
    priority: Optional[Priority] = None
    points: Optional[int] = Field(default=None, ge=1, le=10)
    assignee: OptionalRef = None


class ReminderOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    due_date: datetime
    completed: bool
    completed_at: Optional[datetime] = None
    recurrence: Recurrence
    category: ReminderCategory
    priority: Priority
    points: int
    assignee: Optional[MemberOut] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, reminder: Reminder, assignee: Optional[Member]) -> "ReminderOut":
        data = reminder.model_dump(exclude={"assignee_id"})
        data["assignee"] = MemberOut.from_model(assignee)
        return cls(**data)


class LeaderboardEntry(CamelModel):
    member_id: int
    member_name: str
    member_color: str
    total_points: int = 0
    completed_count: int = 0


# ------- Auth -------
class LoginRequest(CamelModel):
    pin: str = ""


# ------- AI -------
class ExtractRequest(CamelModel):
    type: Literal["url", "text"]
    content: str


class GenerateExercisesRequest(CamelModel):
    prompt: Annotated[Optional[str], BeforeValidator(blank_to_none)] = None
    member_id: OptionalRef = None
    day_of_week: Annotated[Optional[DayOfWeek], BeforeValidator(blank_to_none)] = None


class RecommendRequest(CamelModel):
    ingredients: List[str] = Field(default_factory=list)
    meal_type: Optional[str] = None
    preferences: Optional[str] = None


class ExtractedRecipe(CamelModel):
    """Recipe draft returned by the completion service; missing fields get defaults."""

    title: Annotated[str, BeforeValidator(none_to_empty_text)] = ""
    description: Annotated[str, BeforeValidator(none_to_empty_text)] = ""
    meal_types: Annotated[List[MealType], BeforeValidator(none_to_empty_list)] = Field(
        default_factory=list
    )
    ingredients: Annotated[List[IngredientLine], BeforeValidator(none_to_empty_list)] = Field(
        default_factory=list
    )
    instructions: Annotated[List[str], BeforeValidator(none_to_empty_list)] = Field(
        default_factory=list
    )
    prep_time: WholeNumber = Field(default=0, ge=0)
    cook_time: WholeNumber = Field(default=0, ge=0)
    servings: WholeNumber = Field(default=1, ge=1)
    calories: Optional[WholeNumber] = Field(default=None, ge=0)
    tags: Annotated[List[str], BeforeValidator(none_to_empty_list)] = Field(default_factory=list)


def _default_exercise_name(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "Unnamed Exercise"
    return value


def _default_body_part(value: Any) -> Any:
    return BodyPart.full_body if value in (None, "") else value


class GeneratedExercise(CamelModel):
    name: Annotated[str, BeforeValidator(_default_exercise_name)] = "Unnamed Exercise"
    body_part: Annotated[BodyPart, BeforeValidator(_default_body_part)] = BodyPart.full_body
    sets: Optional[WholeNumber] = Field(default=None, ge=0)
    reps: LooseText = None
    weight: LooseText = None
    duration: LooseText = None
    notes: LooseText = None


class PlannedExercise(GeneratedExercise):
    member: int
    day_of_week: DayOfWeek
    order: int
