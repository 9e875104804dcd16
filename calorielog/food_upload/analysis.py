# -*- coding: utf-8 -*-
"""Food upload — image nutrition analysis via an OpenAI-compatible vision model.

`analyze_food_image` never raises: every failure comes back as a
`FoodAnalysisError` with one of the codes below.
"""

from __future__ import annotations

import ast
import base64
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..nutrition.models import NutritionValues
from .models import AnalysisOutcome, FoodAnalysisError, FoodAnalysisResult

logger = logging.getLogger(__name__)

API_ERROR = "API_ERROR"
NO_ANALYSIS = "NO_ANALYSIS"
PARSE_ERROR = "PARSE_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"

PROMPT = (
    "Analyze this food image and respond with raw JSON only (no markdown, no code fences). "
    "Estimate for the pictured portion: the name of the food, a list of main ingredients, "
    "the portion weight in grams and its nutrition. Use this structure exactly: "
    '{"name": string, "ingredients": [string], "portion": number, '
    '"nutrition": {"calories": number, "protein": number, "carbs": number, "fat": number, '
    '"fiber": number, "sugar": number, "sodium": number}}. '
    "Calories in kcal, sodium in milligrams, everything else in grams."
)


@dataclass(frozen=True)
class AnalysisSettings:
    api_key: Optional[str]
    base_url: str
    model: str
    timeout: float
    max_tokens: int


def resolve_analysis_settings() -> AnalysisSettings:
    return AnalysisSettings(
        api_key=settings.analysis_api_key,
        base_url=settings.analysis_base_url.rstrip("/"),
        model=settings.analysis_model,
        timeout=settings.analysis_timeout,
        max_tokens=settings.analysis_max_tokens,
    )


def _skip_string(text: str, i: int) -> int:
    """Index just past the string literal that opens at text[i]."""
    escaped = False
    i += 1
    while i < len(text):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "\"":
            return i + 1
        i += 1
    return i


def _remove_trailing_commas(text: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\"":
            end = _skip_string(text, i)
            out.append(text[i:end])
            i = end
            continue
        if ch == ",":
            j = i + 1
            while j < len(text) and text[j] in " \t\r\n":
                j += 1
            if j < len(text) and text[j] in "}]":
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\s*```$", "", cleaned)


def _json_object_candidates(text: str) -> List[str]:
    """Balanced {...} spans of the text, outermost only, string literals respected."""
    cleaned = _strip_fences(text)
    candidates: List[str] = []
    depth = 0
    start: Optional[int] = None
    i = 0
    while i < len(cleaned):
        ch = cleaned[i]
        if ch == "\"":
            i = _skip_string(cleaned, i)
            continue
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                candidates.append(cleaned[start : i + 1])
                start = None
        i += 1
    return candidates


def _sanitize(text: str) -> str:
    cleaned = text.replace("“", "\"").replace("”", "\"").replace("‘", "'").replace("’", "'")
    cleaned = _remove_trailing_commas(cleaned)
    cleaned = re.sub(r"\bNaN\b", "null", cleaned, flags=re.IGNORECASE)
    return re.sub(r"-?\bInfinity\b", "null", cleaned, flags=re.IGNORECASE)


def parse_model_json(content: str) -> Dict[str, Any]:
    """Best-effort extraction of the first JSON object in a model reply."""
    last_error: Optional[Exception] = None
    for candidate in _json_object_candidates(content):
        sanitized = _sanitize(candidate)
        for attempt in (candidate, sanitized):
            try:
                parsed = json.loads(attempt)
            except (ValueError, RecursionError) as exc:
                last_error = exc
                continue
            if isinstance(parsed, dict):
                return parsed
        # Python-literal style dicts (single quotes, None/True/False).
        py = re.sub(r"\bnull\b", "None", sanitized)
        py = re.sub(r"\btrue\b", "True", py)
        py = re.sub(r"\bfalse\b", "False", py)
        try:
            parsed = ast.literal_eval(py)
        except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError) as exc:
            last_error = exc
            continue
        if isinstance(parsed, dict):
            return parsed
    raise ValueError(f"Failed to parse model JSON: {last_error or 'no JSON object found'}")


_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        m = _NUM_RE.search(value.replace(",", ""))
        if not m:
            return None
        number = float(m.group(0))
    else:
        return None
    return number if math.isfinite(number) else None


_NUTRIENT_ALIASES = {
    "calories": ("calories", "calorie", "kcal", "energy", "energy_kcal", "calories_kcal"),
    "protein": ("protein", "protein_g", "proteins"),
    "carbs": ("carbs", "carbs_g", "carbohydrates", "carbohydrate", "carb"),
    "fat": ("fat", "fat_g", "fats", "lipid"),
    "fiber": ("fiber", "fibre", "fiber_g", "dietary_fiber"),
    "sugar": ("sugar", "sugars", "sugar_g"),
    "sodium": ("sodium", "sodium_mg", "salt_mg"),
}


def _normalize_nutrition(raw: Dict[str, Any]) -> NutritionValues:
    lowered = {str(k).strip().lower(): v for k, v in raw.items()}
    values: Dict[str, float] = {}
    for field, aliases in _NUTRIENT_ALIASES.items():
        found = None
        for alias in aliases:
            found = _coerce_float(lowered.get(alias))
            if found is not None:
                break
        values[field] = max(0.0, found or 0.0)
    return NutritionValues(**values)


def _as_str_list(value: Any) -> List[str]:
    out: List[str] = []
    for item in value:
        s = str(item).strip() if item is not None else ""
        if s:
            out.append(s)
    return out


def to_analysis_result(parsed: Dict[str, Any]) -> AnalysisOutcome:
    name = parsed.get("name")
    ingredients = parsed.get("ingredients")
    nutrition = parsed.get("nutrition")
    if not isinstance(name, str) or not name.strip() or not isinstance(ingredients, list) or not isinstance(nutrition, dict):
        return FoodAnalysisError(code=INVALID_RESPONSE, message="Invalid analysis response structure")

    portion = None
    for key in ("portion", "grams", "weight", "portion_g"):
        portion = _coerce_float(parsed.get(key))
        if portion is not None:
            break
    return FoodAnalysisResult(
        name=name.strip(),
        ingredients=_as_str_list(ingredients),
        portion=max(0.0, portion or 0.0),
        nutrition=_normalize_nutrition(nutrition),
    )


def _extract_content(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    return ""


def _data_url(mime: str, image_bytes: bytes) -> str:
    b64 = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime};base64,{b64}"


def analyze_food_image(
    *,
    image_bytes: bytes,
    image_mime: str = "image/jpeg",
    transport: Optional[httpx.BaseTransport] = None,
) -> AnalysisOutcome:
    cfg = resolve_analysis_settings()
    if not cfg.api_key:
        logger.warning("food analysis requested but OPENAI_API_KEY is not configured")
        return FoodAnalysisError(code=API_ERROR, message="Analysis API key not configured")

    payload = {
        "model": cfg.model,
        "max_tokens": cfg.max_tokens,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": PROMPT},
                    {"type": "image_url", "image_url": {"url": _data_url(image_mime, image_bytes)}},
                ],
            }
        ],
    }
    headers = {"Authorization": f"Bearer {cfg.api_key}", "Content-Type": "application/json"}

    try:
        with httpx.Client(timeout=cfg.timeout, transport=transport) as client:
            resp = client.post(f"{cfg.base_url}/chat/completions", headers=headers, json=payload)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPStatusError as exc:
        logger.error("food analysis call failed with HTTP %s", exc.response.status_code)
        return FoodAnalysisError(code=API_ERROR, message=f"Analysis service returned HTTP {exc.response.status_code}")
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("food analysis call failed: %s", exc)
        return FoodAnalysisError(code=API_ERROR, message=str(exc) or exc.__class__.__name__)

    content = _extract_content(data)
    if not content.strip():
        return FoodAnalysisError(code=NO_ANALYSIS, message="Could not analyze the image")
    logger.debug("raw analysis reply: %s", content)

    try:
        parsed = parse_model_json(content)
    except ValueError as exc:
        logger.warning("food analysis output parse failed: %s", exc)
        return FoodAnalysisError(code=PARSE_ERROR, message="Could not parse the analysis response")

    return to_analysis_result(parsed)
