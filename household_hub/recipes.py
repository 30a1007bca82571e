from typing import Optional

from sqlmodel import Session, select

from .errors import NotFoundError
from .models import Recipe, utcnow
from .schemas import RecipeCreate, RecipeUpdate


def get_recipe(session: Session, recipe_id: int) -> Recipe:
    recipe = session.get(Recipe, recipe_id)
    if not recipe:
        raise NotFoundError("Recipe not found")
    return recipe


def split_terms(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [term.strip().lower() for term in raw.split(",") if term.strip()]


def searchable_text(recipe: Recipe) -> str:
    parts = [recipe.title, recipe.description]
    parts.extend(ingredient.get("name", "") for ingredient in recipe.ingredients or [])
    parts.extend(recipe.tags or [])
    return " ".join(parts).lower()


def matches(
    recipe: Recipe,
    meal_type: Optional[str] = None,
    ingredients: Optional[list[str]] = None,
    search: Optional[str] = None,
) -> bool:
    if meal_type and meal_type != "all" and meal_type not in (recipe.meal_types or []):
        return False
    if ingredients:
        names = [ingredient.get("name", "").lower() for ingredient in recipe.ingredients or []]
        if not any(term in name for term in ingredients for name in names):
            return False
    if search:
        text = searchable_text(recipe)
        if not all(word in text for word in search.lower().split()):
            return False
    return True


def list_recipes(
    session: Session,
    meal_type: Optional[str] = None,
    ingredients: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Recipe]:
    """Newest first; meal type, ingredient and free-text filters are combined."""
    recipes = session.exec(select(Recipe).order_by(Recipe.created_at.desc(), Recipe.id.desc())).all()
    terms = split_terms(ingredients)
    found = [r for r in recipes if matches(r, meal_type, terms, search)]
    return found[:limit] if limit else found


def _json_fields(data: dict) -> dict:
    if "meal_types" in data and data["meal_types"] is not None:
        data["meal_types"] = [getattr(m, "value", m) for m in data["meal_types"]]
    return data


def create_recipe(session: Session, payload: RecipeCreate) -> Recipe:
    recipe = Recipe(**_json_fields(payload.model_dump()))
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    return recipe


def update_recipe(session: Session, recipe_id: int, payload: RecipeUpdate) -> Recipe:
    recipe = get_recipe(session, recipe_id)
    changes = _json_fields(payload.model_dump(exclude_unset=True))
    for field, value in changes.items():
        if value is None and field != "calories":
            continue
        setattr(recipe, field, value)
    recipe.updated_at = utcnow()
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    return recipe


def delete_recipe(session: Session, recipe_id: int):
    recipe = get_recipe(session, recipe_id)
    session.delete(recipe)
    session.commit()
