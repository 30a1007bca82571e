import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import requests
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from . import exercises, recipes, reminders, shopping
from .ai import AIAssistant, PageFetcher, build_client
from .auth import (
    SESSION_MAX_AGE,
    hash_password,
    is_authenticated,
    login_household,
    logout_household,
    require_household,
)
from .config import Settings
from .db import Database, get_session
from .errors import AuthenticationError, HouseholdError, NotFoundError, ValidationError
from .log import setup_logging
from .models import Member, Reminder, utcnow
from .schemas import (
    BulkUpdateRequest,
    ExerciseCreate,
    ExerciseFilter,
    ExerciseOut,
    ExerciseUpdate,
    ExtractRequest,
    GenerateExercisesRequest,
    ItemCreate,
    ItemMove,
    ItemRef,
    ItemUpdate,
    LoginRequest,
    MemberCreate,
    MemberOut,
    MemberUpdate,
    RecipeCreate,
    RecipeOut,
    RecipeUpdate,
    RecommendRequest,
    ReminderCreate,
    ReminderUpdate,
    StoreCreate,
    StoreOut,
    StoreUpdate,
)

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def ok(data: Any = None, status_code: int = 200, headers: Optional[dict] = None, **extra) -> JSONResponse:
    body = {"success": True, "data": data if data is not None else {}}
    body.update(extra)
    return JSONResponse(body, status_code=status_code, headers=headers)


def fail(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def assistant(request: Request) -> AIAssistant:
    return request.app.state.assistant


# ------- Exception handlers -------
async def household_error_handler(request: Request, exc: HouseholdError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return fail(exc.message, exc.status_code)


def describe_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())[1:])
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(messages) or "Invalid request"


async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = describe_validation_errors(exc)
    logger.warning("%s %s invalid: %s", request.method, request.url.path, message)
    return fail(message, 400)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return fail(str(exc.detail), exc.status_code)


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error during %s %s", request.method, request.url.path)
    return fail("Database unavailable", 503)


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    return fail("Internal server error", 500)


# ------- Members -------
def get_member(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")
    return member


def unassign_member_reminders(session: Session, member_id: int):
    assigned = session.exec(select(Reminder).where(Reminder.assignee_id == member_id)).all()
    for reminder in assigned:
        reminder.assignee_id = None
        session.add(reminder)


auth_router = APIRouter(prefix="/api/auth")
api = APIRouter(prefix="/api", dependencies=[Depends(require_household)])


@auth_router.post("/login")
def login(request: Request, payload: LoginRequest):
    if not login_household(request, payload.pin):
        raise AuthenticationError("Invalid PIN")
    return ok()


@auth_router.post("/logout")
def logout(request: Request):
    logout_household(request)
    return ok()


@auth_router.get("/status")
def auth_status(request: Request):
    required = request.app.state.pin_hash is not None
    return ok({"required": required, "authenticated": not required or is_authenticated(request)})


@api.get("/members")
def list_members(session: Session = Depends(get_session)):
    members = session.exec(select(Member).order_by(Member.name)).all()
    return ok([MemberOut.from_model(m).to_json() for m in members])


@api.post("/members")
def create_member(payload: MemberCreate, session: Session = Depends(get_session)):
    member = Member(name=payload.name, email=payload.email, avatar=payload.avatar)
    if payload.color:
        member.color = payload.color
    session.add(member)
    session.commit()
    session.refresh(member)
    return ok(MemberOut.from_model(member).to_json(), status_code=201)


@api.get("/members/{member_id}")
def read_member(member_id: int, session: Session = Depends(get_session)):
    return ok(MemberOut.from_model(get_member(session, member_id)).to_json())


@api.put("/members/{member_id}")
def update_member(member_id: int, payload: MemberUpdate, session: Session = Depends(get_session)):
    member = get_member(session, member_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "color"):
            continue
        setattr(member, field, value)
    member.updated_at = utcnow()
    session.add(member)
    session.commit()
    session.refresh(member)
    return ok(MemberOut.from_model(member).to_json())


@api.delete("/members/{member_id}")
def delete_member(member_id: int, session: Session = Depends(get_session)):
    member = get_member(session, member_id)
    unassign_member_reminders(session, member_id)
    exercises.delete_member_exercises(session, member_id)
    session.delete(member)
    session.commit()
    logger.info("Deleted member %s", member_id)
    return ok()


# ------- Recipes -------
@api.get("/recipes")
def list_recipes(
    meal_type: Optional[str] = Query(None, alias="mealType"),
    ingredients: Optional[str] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    found = recipes.list_recipes(session, meal_type=meal_type, ingredients=ingredients, search=search)
    return ok([RecipeOut.from_model(r).to_json() for r in found])


@api.post("/recipes")
def create_recipe(payload: RecipeCreate, session: Session = Depends(get_session)):
    recipe = recipes.create_recipe(session, payload)
    return ok(RecipeOut.from_model(recipe).to_json(), status_code=201)


@api.get("/recipes/{recipe_id}")
def read_recipe(recipe_id: int, session: Session = Depends(get_session)):
    return ok(RecipeOut.from_model(recipes.get_recipe(session, recipe_id)).to_json())


@api.put("/recipes/{recipe_id}")
def update_recipe(recipe_id: int, payload: RecipeUpdate, session: Session = Depends(get_session)):
    recipe = recipes.update_recipe(session, recipe_id, payload)
    return ok(RecipeOut.from_model(recipe).to_json())


@api.delete("/recipes/{recipe_id}")
def delete_recipe(recipe_id: int, session: Session = Depends(get_session)):
    recipes.delete_recipe(session, recipe_id)
    return ok()


# ------- Stores -------
@api.get("/stores")
def list_stores(session: Session = Depends(get_session)):
    return ok([StoreOut.from_model(s).to_json() for s in shopping.list_stores(session)])


@api.post("/stores")
def create_store(payload: StoreCreate, session: Session = Depends(get_session)):
    store = shopping.create_store(session, payload)
    return ok(StoreOut.from_model(store).to_json(), status_code=201)


@api.get("/stores/{store_id}")
def read_store(store_id: int, session: Session = Depends(get_session)):
    return ok(StoreOut.from_model(shopping.get_store(session, store_id)).to_json())


@api.put("/stores/{store_id}")
def update_store(store_id: int, payload: StoreUpdate, session: Session = Depends(get_session)):
    store = shopping.update_store(session, store_id, payload)
    return ok(StoreOut.from_model(store).to_json())


@api.delete("/stores/{store_id}")
def delete_store(store_id: int, session: Session = Depends(get_session)):
    shopping.delete_store(session, store_id)
    return ok()


@api.post("/stores/{store_id}/items")
def add_store_item(store_id: int, payload: ItemCreate, session: Session = Depends(get_session)):
    store = shopping.add_item(session, store_id, payload)
    return ok(StoreOut.from_model(store).to_json())


@api.put("/stores/{store_id}/items")
def update_store_item(store_id: int, payload: ItemUpdate, session: Session = Depends(get_session)):
    store = shopping.update_item(session, store_id, payload)
    return ok(StoreOut.from_model(store).to_json())


@api.delete("/stores/{store_id}/items")
def remove_store_item(store_id: int, payload: ItemRef, session: Session = Depends(get_session)):
    store = shopping.remove_item(session, store_id, payload.item_id)
    return ok(StoreOut.from_model(store).to_json())


@api.post("/stores/{store_id}/items/move")
def move_store_item(store_id: int, payload: ItemMove, session: Session = Depends(get_session)):
    store = shopping.move_item(session, store_id, payload)
    return ok(StoreOut.from_model(store).to_json())


# ------- Exercises -------
@api.get("/exercises")
def list_exercises(
    member_id: Optional[int] = Query(None, alias="memberId"),
    day_of_week: Optional[str] = Query(None, alias="dayOfWeek"),
    session: Session = Depends(get_session),
):
    rows = exercises.list_exercises(session, member_id=member_id, day_of_week=day_of_week)
    return ok([exercises.exercise_out(session, row).to_json() for row in rows])


@api.post("/exercises")
def create_exercise(payload: ExerciseCreate, session: Session = Depends(get_session)):
    row = exercises.create_exercise(session, payload)
    return ok(exercises.exercise_out(session, row).to_json(), status_code=201)


@api.post("/exercises/bulk-update")
def bulk_update_exercises(payload: BulkUpdateRequest, session: Session = Depends(get_session)):
    rows, modified = exercises.bulk_update(session, payload)
    return ok(
        [exercises.exercise_out(session, row).to_json() for row in rows],
        modifiedCount=modified,
    )


@api.post("/exercises/bulk-delete")
def bulk_delete_exercises(payload: ExerciseFilter, session: Session = Depends(get_session)):
    deleted = exercises.bulk_delete(session, payload)
    return ok({"deletedCount": deleted})


@api.get("/exercises/{exercise_id}")
def read_exercise(exercise_id: int, session: Session = Depends(get_session)):
    row = exercises.get_exercise(session, exercise_id)
    return ok(exercises.exercise_out(session, row).to_json())


@api.put("/exercises/{exercise_id}")
def update_exercise(exercise_id: int, payload: ExerciseUpdate, session: Session = Depends(get_session)):
    row = exercises.update_exercise(session, exercise_id, payload)
    return ok(exercises.exercise_out(session, row).to_json())


@api.delete("/exercises/{exercise_id}")
def delete_exercise(exercise_id: int, session: Session = Depends(get_session)):
    row = exercises.get_exercise(session, exercise_id)
    snapshot = exercises.exercise_out(session, row)
    exercises.delete_exercise(session, exercise_id)
    return ok(snapshot.to_json())


# ------- Reminders -------
@api.get("/reminders")
def list_reminders(completed: Optional[bool] = None, session: Session = Depends(get_session)):
    found = reminders.list_reminders(session, completed=completed)
    return ok([reminders.reminder_out(session, r).to_json() for r in found])


@api.post("/reminders")
def create_reminder(payload: ReminderCreate, session: Session = Depends(get_session)):
    reminder = reminders.create_reminder(session, payload)
    return ok(reminders.reminder_out(session, reminder).to_json(), status_code=201)


@api.get("/reminders/stats")
def reminder_stats(session: Session = Depends(get_session)):
    board = reminders.leaderboard(session)
    return ok([entry.to_json() for entry in board], headers=NO_STORE_HEADERS)


@api.get("/reminders/{reminder_id}")
def read_reminder(reminder_id: int, session: Session = Depends(get_session)):
    reminder = reminders.get_reminder(session, reminder_id)
    return ok(reminders.reminder_out(session, reminder).to_json())


@api.put("/reminders/{reminder_id}")
def update_reminder(reminder_id: int, payload: ReminderUpdate, session: Session = Depends(get_session)):
    reminder = reminders.update_reminder(session, reminder_id, payload)
    return ok(reminders.reminder_out(session, reminder).to_json())


@api.delete("/reminders/{reminder_id}")
def delete_reminder(reminder_id: int, session: Session = Depends(get_session)):
    reminders.delete_reminder(session, reminder_id)
    return ok()


# ------- AI -------
@api.post("/ai/extract")
def ai_extract(payload: ExtractRequest, ai: AIAssistant = Depends(assistant)):
    recipe = ai.extract_recipe(payload.type, payload.content)
    return ok(recipe.to_json())


@api.post("/ai/generate-exercises")
def ai_generate_exercises(
    payload: GenerateExercisesRequest,
    ai: AIAssistant = Depends(assistant),
    session: Session = Depends(get_session),
):
    if not payload.prompt or not payload.member_id or not payload.day_of_week:
        raise ValidationError("Prompt, memberId, and dayOfWeek are required")
    exercises.require_member(session, payload.member_id)
    planned = ai.generate_exercises(payload.prompt, payload.member_id, payload.day_of_week)
    return ok([exercise.to_json() for exercise in planned])


@api.post("/ai/recommend")
def ai_recommend(
    payload: RecommendRequest,
    ai: AIAssistant = Depends(assistant),
    session: Session = Depends(get_session),
):
    result = ai.recommend(session, payload.ingredients, payload.meal_type, payload.preferences)
    return ok(result)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    ai_client: Optional[Any] = None,
    http_session: Optional[requests.Session] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        database.init_db()
        logger.info("Household Hub started")
        yield
        database.dispose()

    app = FastAPI(title="Household Hub", lifespan=lifespan)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="household-auth",
        max_age=SESSION_MAX_AGE,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.pin_hash = hash_password(settings.household_pin) if settings.household_pin else None
    app.state.assistant = AIAssistant(
        client=ai_client if ai_client is not None else build_client(settings.openai_api_key),
        fetcher=PageFetcher(
            char_limit=settings.ai_content_char_limit,
            timeout=settings.fetch_timeout,
            session=http_session,
        ),
        model=settings.openai_model,
        char_limit=settings.ai_content_char_limit,
    )

    app.add_exception_handler(HouseholdError, household_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(auth_router)
    app.include_router(api)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "household_hub.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=Settings.from_env().port,
    )
