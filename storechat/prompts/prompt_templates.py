"""Dynamic prompt construction for the classifier and responder."""

import json
from typing import Any, Optional

from storechat.tools.registry import get_registered_tools, get_tool

MAX_DATA_CHARS = 6000
MAX_CATALOG_ITEMS = 30


def format_history(messages: list[dict[str, str]]) -> str:
    """Render chat turns as 'role: content' lines."""
    return "\n".join(f"{m['role']}: {m['content']}" for m in messages)


def build_function_list() -> str:
    lines = []
    for name in get_registered_tools():
        spec = get_tool(name)
        params = ", ".join(
            f"{p}{'*' if p in spec.required else ''} ({hint})" for p, hint in spec.parameters.items()
        )
        lines.append(f"- {name}: {spec.description}" + (f" Params: {params}" if params else ""))
    return "\n".join(lines)


def build_store_context(store_name: str, store_data: dict[str, list[dict[str, Any]]]) -> str:
    """Short catalog summary so the model can recognise service and product names."""
    lines = [f"STORE: {store_name or 'this store'}"]
    for label, key, field in [
        ("SERVICES", "services", "serviceName"),
        ("PRODUCTS", "products", "name"),
    ]:
        names = [str(r.get(field)) for r in store_data.get(key, []) if r.get(field)]
        if names:
            lines.append(f"{label}: {', '.join(names[:MAX_CATALOG_ITEMS])}")
    return "\n".join(lines)


def build_classification_prompt(
    history: list[dict[str, str]],
    last_message: str,
    today: str,
    tomorrow: str,
    store_context: str,
) -> str:
    """Build the user prompt for intent classification and parameter extraction."""
    return f"""Classify the customer's intent and extract parameters for function calling.

{store_context}

CONVERSATION:
{format_history(history)}
CURRENT: "{last_message}"
TODAY: {today} | TOMORROW: {tomorrow}

FUNCTIONS (* = required):
{build_function_list()}

BOOKING:
- "I want to book" or "Can I book X" -> get_booking_slots (put any stated date/time in prefill_date/prefill_time)
- "Is X available on <date> at <time>?" -> check_availability
- Booking details submitted from the calendar -> create_booking

LEADS AND RECOMMENDATIONS:
- "Can someone contact me", "I want a quote", or contact form details -> submit_lead
- "What would you recommend", "What suits a beginner" -> get_recommendations (goal = what they want to achieve)

EXTRACTION:
- Dates as YYYY-MM-DD (resolve today/tomorrow/weekdays using TODAY), times as 24h HH:MM
- Extract only what the customer stated. Never guess emails, names or phone numbers.
- Greetings and small talk: no function.

INTENTS: SERVICE_INQUIRY, PRODUCT_INQUIRY, INFO_REQUEST, BOOKING_REQUEST,
LEAD_GENERATION, RECOMMENDATION_REQUEST, GREETING, OTHER

OUTPUT JSON:
{{
  "intent": string,
  "confidence": number 0-100,
  "reasoning": string,
  "needs_clarification": boolean,
  "clarification_question": string|null,
  "function_to_call": string|null,
  "extracted_params": object,
  "user_language": ISO 639-1 code, default "en"
}}"""


def _compact(data: Any) -> str:
    text = json.dumps(data, ensure_ascii=False, default=str)
    if len(text) > MAX_DATA_CHARS:
        text = text[:MAX_DATA_CHARS] + "...(truncated)"
    return text


def build_result_guidance(function_name: str, result: dict[str, Any]) -> str:
    """Presentation guidance by result shape and failure kind."""
    if result.get("needs_clarification"):
        return (
            f"NEEDS INFO: {result.get('message', '')}\n"
            "Ask the customer for the missing detail in one friendly question."
        )
    if not result.get("success"):
        error = result.get("error", "")
        guidance = {
            "fully_booked": "Say that time is full and suggest picking another time from the booking calendar.",
            "no_class_scheduled": "Say nothing is scheduled at that time and offer to show available times.",
            "not_available": "Say it is not available then and offer to show available times.",
            "service_not_found": "Say you couldn't find that service and offer to list all services.",
            "service_not_linked": "Say this service can't be booked online and suggest contacting the store.",
            "not_configured": "Say this isn't available online and suggest contacting the store directly.",
        }.get(error, "Apologise briefly and suggest trying again or contacting the store.")
        return f"ERROR: {result.get('message', '')}\n{guidance}"

    if function_name == "create_booking":
        hint = "Confirm the booking explicitly with service, date, time, name and email."
    elif function_name == "get_booking_slots":
        hint = "Briefly introduce the booking calendar shown below your reply. Do not list every slot."
    elif function_name == "check_availability":
        hint = "State clearly whether it is available and offer to book."
    elif function_name == "submit_lead":
        hint = "Thank the customer and say the store will get back to them soon."
    elif function_name == "get_recommendations":
        hint = "Introduce the top picks shown below your reply and say briefly why they fit."
    else:
        hint = "Present the data descriptively. The widget shows the items as cards, so summarise."
    data = {k: v for k, v in result.items() if k not in ("rich_content", "success")}
    return f"[{function_name}] DATA: {_compact(data)}\n{hint}"


def build_responder_prompt(
    history: list[dict[str, str]],
    store_context: str,
    function_name: Optional[str],
    result: Optional[dict[str, Any]],
    clarification_question: Optional[str],
    user_language: str,
) -> str:
    """Build the user prompt for the response synthesizer."""
    sections = [store_context, f"CONVERSATION:\n{format_history(history)}"]
    if function_name and result is not None:
        sections.append(build_result_guidance(function_name, result))
    elif clarification_question:
        sections.append(f"NEEDS INFO: {clarification_question}\nAsk this naturally.")
    else:
        sections.append("No data lookup was needed. Reply conversationally and offer help.")

    if user_language and user_language != "en":
        sections.append(
            f"LANGUAGE: Reply in the customer's language ({user_language}), "
            "including the suggestions."
        )
    return "\n\n".join(sections)
