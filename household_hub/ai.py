"""
AI-assisted content for Household Hub.

Recipe extraction from pasted text or a fetched web page, workout generation,
and recipe recommendations. Every call is a single JSON-mode chat completion;
responses are validated against strict schemas and never retried.
"""

import json
import logging
import re
from typing import Annotated, Any, List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from openai import OpenAI, OpenAIError
from pydantic import BaseModel, BeforeValidator, Field
from pydantic import ValidationError as SchemaError
from sqlmodel import Session

from .errors import HouseholdError, ServiceNotConfiguredError, UpstreamError, ValidationError
from .models import DayOfWeek
from .recipes import list_recipes
from .schemas import ExtractedRecipe, GeneratedExercise, PlannedExercise, RecipeOut, none_to_empty_list

logger = logging.getLogger(__name__)

STRIPPED_TAGS = "script, style, nav, header, footer, aside"
CONTENT_SELECTORS = ("main", "article", ".recipe", ".content", "body")
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

RECIPE_EXTRACTION_PROMPT = """You are a recipe extraction assistant. Extract recipe information from the provided content and return it in the following JSON format. Be precise and thorough.

{
  "title": "Recipe title",
  "description": "A brief description of the dish (2-3 sentences)",
  "mealTypes": ["array of applicable meal types from: breakfast, lunch, dinner, snack, dessert"],
  "ingredients": [
    {"name": "ingredient name", "amount": "quantity", "unit": "measurement unit"}
  ],
  "instructions": ["Step 1...", "Step 2...", "..."],
  "prepTime": number (in minutes),
  "cookTime": number (in minutes),
  "servings": number,
  "calories": number (estimated calories per serving, null if unknown),
  "tags": ["tag1", "tag2", "..."]
}

Important:
- For mealTypes, include ALL applicable types. A recipe can suit several meals (e.g. ["lunch", "dinner"])
- For ingredients, separate the name from the amount and unit
- Instructions should be clear steps
- Estimate times and calories per serving if not stated
- Include relevant tags (cuisine type, dietary info, etc.)
- Always return valid JSON"""

EXERCISE_GENERATION_PROMPT = """You are a professional fitness trainer. Generate workout exercises based on the user's request.

Return a JSON object with this exact structure:
{
  "exercises": [
    {
      "name": "Exercise name",
      "bodyPart": "chest|back|legs|shoulders|arms|abs|cardio|full_body",
      "sets": 3,
      "reps": "10-12",
      "weight": "50 lbs",
      "duration": "30 min",
      "notes": "Additional notes"
    }
  ]
}

Rules:
- bodyPart MUST be one of: chest, back, legs, shoulders, arms, abs, cardio, full_body
- sets should be a number (2-5 typically)
- reps can be a range like "10-12" or a single number like "10"
- weight is optional, include the unit (lbs/kg)
- duration is optional, mainly for cardio (e.g. "30 min", "5 km")
- notes are optional tips or form cues
- Generate 3-8 exercises depending on the request
- Mix compound and isolation exercises appropriately"""

RECOMMENDATION_PROMPT = """You are a helpful chef assistant. Given a list of available ingredients and recipes, recommend the best recipes that can be made.

Return a JSON object with:
- "recommendations": array of recipe ids that can be made with the available ingredients, best match first
- "suggestions": array of objects {"recipeId": id, "missingIngredients": []} for recipes that need just a few more ingredients
- "tips": optional cooking tips based on the available ingredients

Always return valid JSON."""


def id_to_text(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def ids_to_text(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [id_to_text(item) for item in value]
    return value


RecipeId = Annotated[str, BeforeValidator(id_to_text)]


class Suggestion(BaseModel):
    recipeId: RecipeId
    missingIngredients: Annotated[List[str], BeforeValidator(none_to_empty_list)] = Field(
        default_factory=list
    )


class Ranking(BaseModel):
    """Recipe ids ranked by the completion service, best match first."""

    recommendations: Annotated[List[RecipeId], BeforeValidator(ids_to_text)] = Field(default_factory=list)
    suggestions: Annotated[List[Suggestion], BeforeValidator(none_to_empty_list)] = Field(
        default_factory=list
    )
    tips: Optional[Any] = None


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_page_text(html: str, char_limit: int) -> str:
    """Readable text of a page without scripts, styles or site chrome."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.select(STRIPPED_TAGS):
        tag.decompose()
    main = None
    for selector in CONTENT_SELECTORS:
        main = soup.select_one(selector)
        if main is not None:
            break
    text = (main or soup).get_text(" ")
    return collapse_whitespace(text)[:char_limit]


class PageFetcher:
    def __init__(self, char_limit: int = 8000, timeout: int = 15, session: Optional[requests.Session] = None):
        self.char_limit = char_limit
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def fetch_text(self, url: str) -> str:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("Invalid URL")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Fetching %s failed: %s", url, e)
            raise ValidationError("Failed to fetch content from URL") from e
        return extract_page_text(response.text, self.char_limit)


def parse_json(content: Optional[str]) -> Any:
    if not content:
        raise UpstreamError("No response from AI")
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("AI returned invalid JSON: %.200s", content)
        raise UpstreamError("Failed to parse AI response") from e


def build_client(api_key: Optional[str]) -> Optional[OpenAI]:
    return OpenAI(api_key=api_key) if api_key else None


class AIAssistant:
    """Thin layer over a chat-completions client.

    ``client`` is anything exposing ``chat.completions.create`` (an
    ``openai.OpenAI`` instance in production). None disables AI features.
    """

    def __init__(
        self,
        client: Optional[Any],
        fetcher: PageFetcher,
        model: str = "gpt-4o-mini",
        char_limit: int = 8000,
    ):
        self.client = client
        self.fetcher = fetcher
        self.model = model
        self.char_limit = char_limit

    def complete_json(self, system: str, user: str, temperature: float) -> Any:
        if self.client is None:
            raise ServiceNotConfiguredError()
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error("Completion request failed: %s", e)
            raise UpstreamError("AI service request failed") from e
        choices = getattr(completion, "choices", None) or []
        content = choices[0].message.content if choices else None
        return parse_json(content)

    # ------- Recipe extraction -------
    def source_text(self, kind: str, content: str) -> str:
        if kind == "url":
            return self.fetcher.fetch_text(content.strip())
        return collapse_whitespace(content)[: self.char_limit]

    def extract_recipe(self, kind: str, content: str) -> ExtractedRecipe:
        if not content or not content.strip():
            raise ValidationError("Content is required")
        text = self.source_text(kind, content)
        data = self.complete_json(
            RECIPE_EXTRACTION_PROMPT,
            f"Extract the recipe information from the following content:\n\n{text}",
            temperature=0.3,
        )
        if not isinstance(data, dict):
            raise UpstreamError("AI response is not a recipe object")
        try:
            recipe = ExtractedRecipe.model_validate(data)
        except SchemaError as e:
            logger.warning("Rejected extracted recipe: %s", e)
            raise UpstreamError("AI response did not match the recipe format") from e
        if kind == "url":
            logger.info("Extracted recipe %r from %s", recipe.title, content.strip())
        return recipe

    # ------- Exercise generation -------
    def generate_exercises(self, prompt: str, member_id: int, day_of_week: DayOfWeek) -> list[PlannedExercise]:
        data = self.complete_json(EXERCISE_GENERATION_PROMPT, prompt, temperature=0.7)
        if isinstance(data, dict):
            data = data.get("exercises")
        if not isinstance(data, list):
            raise UpstreamError("AI response is not a list of exercises")
        planned = []
        try:
            for index, entry in enumerate(data):
                if not isinstance(entry, dict):
                    raise UpstreamError("AI response contains a malformed exercise")
                exercise = GeneratedExercise.model_validate(entry)
                planned.append(
                    PlannedExercise(
                        **exercise.model_dump(),
                        member=member_id,
                        day_of_week=day_of_week,
                        order=index,
                    )
                )
        except SchemaError as e:
            logger.warning("Rejected generated exercises: %s", e)
            raise UpstreamError("AI response did not match the exercise format") from e
        logger.info("Generated %d exercises for member %s on %s", len(planned), member_id, day_of_week.value)
        return planned

    # ------- Recommendations -------
    def rank_recipes(self, recipes: list, ingredients: list[str], preferences: Optional[str]) -> Ranking:
        summaries = [
            {
                "id": str(r.id),
                "title": r.title,
                "ingredients": ", ".join(i.get("name", "") for i in r.ingredients or []),
                "mealTypes": r.meal_types,
            }
            for r in recipes
        ]
        lines = [f"Available ingredients: {', '.join(ingredients)}"]
        if preferences:
            lines.append(f"Preferences: {preferences}")
        lines.append("")
        lines.append("Available recipes:")
        lines.append(json.dumps(summaries, indent=2))
        lines.append("")
        lines.append("Which recipes can I make or almost make?")
        data = self.complete_json(RECOMMENDATION_PROMPT, "\n".join(lines), temperature=0.5)
        if not isinstance(data, dict):
            raise UpstreamError("AI response is not a recommendation object")
        try:
            return Ranking.model_validate(data)
        except SchemaError as e:
            logger.warning("Rejected recipe ranking: %s", e)
            raise UpstreamError("AI response did not match the recommendation format") from e

    def recommend(
        self,
        session: Session,
        ingredients: list[str],
        meal_type: Optional[str] = None,
        preferences: Optional[str] = None,
    ) -> dict:
        recipes = list_recipes(session, meal_type=meal_type)
        if not recipes:
            return {
                "recommendations": [],
                "suggestions": [],
                "message": "No recipes found in database. Add some recipes first!",
            }
        try:
            ranking = self.rank_recipes(recipes, ingredients, preferences)
        except HouseholdError as e:
            logger.warning("AI recommendations unavailable, falling back to recent recipes: %s", e)
            return {
                "recommendations": [RecipeOut.from_model(r).to_json() for r in recipes[:10]],
                "suggestions": [],
                "message": "AI recommendations unavailable, showing recent recipes",
            }
        by_id = {str(r.id): r for r in recipes}
        recommended = [
            RecipeOut.from_model(by_id[rid]).to_json() for rid in ranking.recommendations if rid in by_id
        ]
        suggested = []
        for suggestion in ranking.suggestions:
            recipe = by_id.get(suggestion.recipeId)
            if recipe is None:
                continue
            entry = RecipeOut.from_model(recipe).to_json()
            entry["missingIngredients"] = suggestion.missingIngredients
            suggested.append(entry)
        return {"recommendations": recommended, "suggestions": suggested, "tips": ranking.tips}
