"""
Recommendations over the store's services and products.

Offerings are narrowed by the customer's stated preferences, then ranked
against their goal by keyword relevance. Hard filters (category, budget)
always apply; soft filters (level, time, day, duration) only apply while
at least two offerings survive them.
"""

import logging
import re
from typing import Any, Optional

from storechat.tools.context import ToolContext, ToolResult, clarification, failure
from storechat.tools.schema_resolver import load_store_tab

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3
MAX_LIMIT = 10
MIN_SOFT_MATCHES = 2

BUDGET_RANGES: dict[str, tuple[float, float]] = {
    "low": (0, 50),
    "medium": (30, 150),
    "high": (100, float("inf")),
}
LEVEL_KEYWORDS: dict[str, list[str]] = {
    "beginner": ["beginner", "intro", "introduction", "starter", "basic", "first time",
                 "newbie", "fundamentals", "level 1", "entry"],
    "intermediate": ["intermediate", "level 2", "continuing", "progression", "next level"],
    "advanced": ["advanced", "expert", "pro", "professional", "master", "level 3", "intensive"],
}
TIME_RANGES: dict[str, tuple[int, int]] = {
    "morning": (5, 12),
    "afternoon": (12, 17),
    "evening": (17, 23),
}
DAY_KEYWORDS: dict[str, list[str]] = {
    "weekday": ["monday", "tuesday", "wednesday", "thursday", "friday",
                "mon", "tue", "wed", "thu", "fri", "weekday"],
    "weekend": ["saturday", "sunday", "sat", "sun", "weekend"],
}
DURATION_RANGES: dict[str, tuple[int, int]] = {
    "quick": (0, 45),
    "standard": (45, 90),
    "extended": (90, 480),
}

PREFERENCE_FIELDS = [
    {"name": "goal", "label": "What are you looking for?", "type": "textarea", "required": True},
    {"name": "experience_level", "label": "Experience Level", "type": "select", "required": False,
     "options": ["beginner", "intermediate", "advanced", "any"]},
    {"name": "budget", "label": "Budget Range", "type": "select", "required": False,
     "options": ["low", "medium", "high", "any"]},
    {"name": "time_preference", "label": "Preferred Time", "type": "select", "required": False,
     "options": ["morning", "afternoon", "evening", "any"]},
]

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_HOUR_RE = re.compile(r"(\d{1,2}):(\d{2})")


def _number(value: Any) -> Optional[float]:
    match = _NUMBER_RE.search(str(value or ""))
    return float(match.group()) if match else None


def _hour(value: Any) -> Optional[int]:
    text = str(value or "").lower()
    match = _HOUR_RE.search(text)
    if not match:
        return None
    hour = int(match.group(1))
    if "pm" in text and hour < 12:
        hour += 12
    elif "am" in text and hour == 12:
        hour = 0
    return hour


def _text(item: dict[str, Any]) -> str:
    fields = (item.get("name"), item.get("tags"), item.get("description"), item.get("category"))
    return " ".join(str(f) for f in fields if f).lower()


def _soft(items: list[dict[str, Any]], keep) -> list[dict[str, Any]]:
    narrowed = [item for item in items if keep(item)]
    return narrowed if len(narrowed) >= MIN_SOFT_MATCHES else items


def apply_preference_filters(
    items: list[dict[str, Any]],
    category: Optional[str] = None,
    budget: Optional[str] = None,
    budget_max: Optional[float] = None,
    experience_level: Optional[str] = None,
    time_preference: Optional[str] = None,
    day_preference: Optional[str] = None,
    duration_preference: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Narrow offerings by preference; items without a price or time are never excluded."""
    if category:
        wanted = category.lower()
        items = [i for i in items if wanted in str(i.get("category") or "").lower()]

    if budget in BUDGET_RANGES:
        low, high = BUDGET_RANGES[budget]
        items = [i for i in items if not _number(i.get("price")) or low <= _number(i.get("price")) <= high]

    if budget_max:
        items = [i for i in items if not _number(i.get("price")) or _number(i.get("price")) <= budget_max]

    if experience_level in LEVEL_KEYWORDS:
        keywords = LEVEL_KEYWORDS[experience_level]
        items = _soft(items, lambda i: any(k in _text(i) for k in keywords))

    if time_preference in TIME_RANGES:
        start, end = TIME_RANGES[time_preference]

        def in_range(item: dict[str, Any]) -> bool:
            hour = _hour(item.get("startTime") or item.get("time"))
            return hour is None or start <= hour < end

        items = _soft(items, in_range)

    if day_preference in DAY_KEYWORDS:
        keywords = DAY_KEYWORDS[day_preference]

        def on_day(item: dict[str, Any]) -> bool:
            days = str(item.get("days") or "").lower()
            return not days or any(k in days for k in keywords)

        items = _soft(items, on_day)

    if duration_preference in DURATION_RANGES:
        low, high = DURATION_RANGES[duration_preference]

        def fits(item: dict[str, Any]) -> bool:
            minutes = _number(item.get("duration"))
            return not minutes or low <= minutes <= high

        items = _soft(items, fits)
    return items


def relevance_score(goal: str, item: dict[str, Any]) -> int:
    """Keyword relevance of an offering to the goal, 0-100."""
    query = goal.lower().strip()
    tokens = [t for t in query.split() if len(t) > 2]
    name = str(item.get("name") or "").lower()
    category = str(item.get("category") or "").lower()
    tags = [t.strip() for t in str(item.get("tags") or "").lower().split(",") if t.strip()]
    description = str(item.get("description") or "").lower()

    score = 0
    if name == query:
        score += 40
    elif query in name:
        score += 30
    score += 10 * sum(1 for t in tokens if t in name)
    if category and (query in category or any(t in category for t in tokens)):
        score += 20
    score += 15 * sum(1 for tag in tags if any(t in tag for t in tokens))
    if query in description or any(t in description for t in tokens):
        score += 10
    return min(score, 100)


def _limit(value: Any) -> int:
    number = _number(value)
    if number is None:
        return DEFAULT_LIMIT
    return max(1, min(int(number), MAX_LIMIT))


async def get_recommendations(
    ctx: ToolContext,
    goal: Optional[str] = None,
    category: Optional[str] = None,
    offering_type: Optional[str] = None,
    budget: Optional[str] = None,
    budget_max: Optional[str] = None,
    experience_level: Optional[str] = None,
    time_preference: Optional[str] = None,
    day_preference: Optional[str] = None,
    duration_preference: Optional[str] = None,
    limit: Optional[str] = None,
) -> ToolResult:
    """Suggest the offerings that best fit the customer's goal and preferences."""
    preferences = {
        "goal": goal,
        "experience_level": experience_level,
        "budget": budget,
        "time_preference": time_preference,
        "category": category,
    }
    if not goal and not category:
        result = clarification(
            "Tell us a bit about what you're looking for and we'll suggest the best fit.",
            ["goal"],
        )
        result["rich_content"] = {
            "type": "PreferencesForm",
            "props": {
                "fields": PREFERENCE_FIELDS,
                "defaultValues": {k: v for k, v in preferences.items() if v},
            },
        }
        return result

    kind = (offering_type or "both").lower()
    offerings: list[dict[str, Any]] = []
    if kind != "products":
        for row in await load_store_tab(ctx, "services") or []:
            offerings.append({**row, "name": row.get("serviceName") or row.get("name"), "type": "service"})
    if kind != "services":
        for row in await load_store_tab(ctx, "products") or []:
            offerings.append({**row, "name": row.get("name"), "type": "product"})
    if not offerings:
        return failure(
            "not_configured",
            "We don't have any services or products to recommend yet. Please contact the store directly.",
        )

    filtered = apply_preference_filters(
        offerings,
        category=category,
        budget=(budget or "").lower() or None,
        budget_max=_number(budget_max),
        experience_level=(experience_level or "").lower() or None,
        time_preference=(time_preference or "").lower() or None,
        day_preference=(day_preference or "").lower() or None,
        duration_preference=(duration_preference or "").lower() or None,
    )
    if goal:
        scored = [(relevance_score(goal, item), item) for item in filtered]
        scored.sort(key=lambda pair: pair[0], reverse=True)
    else:
        scored = [(0, item) for item in filtered]
    top = scored[:_limit(limit)]

    recommendations = [item for _, item in top]
    result: ToolResult = {
        "success": True,
        "data": {
            "recommendations": recommendations,
            "count": len(recommendations),
            "preferences_used": {k: v for k, v in preferences.items() if v},
            "total_available": len(offerings),
        },
        "message": (
            f"Based on your preferences, here {'is' if len(top) == 1 else 'are'} my top "
            f"{len(top)} recommendation{'' if len(top) == 1 else 's'} for you!"
            if top else
            "I couldn't find anything matching those preferences. "
            "Try adjusting them or browse all our options."
        ),
    }
    if top:
        result["rich_content"] = {
            "type": "RecommendationList",
            "props": {
                "recommendations": [{**item, "score": score} for score, item in top],
                "preferences": {k: v for k, v in preferences.items() if v},
            },
        }
    return result
