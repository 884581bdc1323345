"""
Deterministic reply text for tool results.

Used by the direct function endpoint, and by the responder whenever the
model is unavailable or its output fails the response guardrail.
"""

import logging
from typing import Any, Callable, Optional

from storechat.prompts.system_prompts import APOLOGY_MESSAGE

logger = logging.getLogger(__name__)

TemplateFunction = Callable[[dict[str, Any], dict[str, Any]], str]


def _count_phrase(items: list, noun: str, query: Optional[str]) -> str:
    count = len(items)
    matching = f' matching "{query}"' if query else ""
    return f"Here {'is' if count == 1 else 'are'} {count} {noun}{'' if count == 1 else 's'}{matching}:"


def _create_booking(result: dict[str, Any], params: dict[str, Any]) -> str:
    if not result.get("success"):
        service = params.get("service_name") or "this service"
        when = f"{params.get('date')} at {params.get('time')}"
        if result.get("error") == "fully_booked":
            return f"Sorry, **{service}** is fully booked on {when}. Would you like to try another time?"
        if result.get("error") == "no_class_scheduled":
            return (
                f"Sorry, **{service}** doesn't have anything scheduled on {when}. "
                "Would you like to try a different date?"
            )
        return f"Sorry, we couldn't complete your booking. {result.get('message') or 'Please try again.'}"
    return (
        "Booking confirmed!\n\n"
        f"**{result['service']}**\n"
        f"{result['date']} at {result['time']}\n"
        f"{result['customer_name']} ({result['customer_email']})\n\n"
        "A confirmation has been saved. See you there!"
    )


def _get_booking_slots(result: dict[str, Any], params: dict[str, Any]) -> str:
    if not result.get("success"):
        return result.get("message") or APOLOGY_MESSAGE
    if not result.get("slots"):
        service = params.get("service_name") or "this service"
        return f"Sorry, no available slots found for {service}. Would you like to try a different date?"
    return result.get("message") or "Select a slot to continue:"


def _check_availability(result: dict[str, Any], params: dict[str, Any]) -> str:
    service = result.get("service") or params.get("service_name") or "This service"
    if result.get("success"):
        if result.get("available"):
            return f"**{service}** is available on {result['date']} at {result['time']}! Would you like to book it?"
        return (
            f"Sorry, **{service}** is fully booked on {result['date']} at {result['time']}. "
            "Would you like to check another time?"
        )
    if result.get("error") == "not_available":
        return (
            f"Sorry, **{service}** is not available on {params.get('date')} at "
            f"{params.get('time')}. Would you like to see available times?"
        )
    return result.get("message") or APOLOGY_MESSAGE


def _listing(noun: str) -> TemplateFunction:
    def render(result: dict[str, Any], params: dict[str, Any]) -> str:
        if not result.get("success"):
            return result.get("message") or APOLOGY_MESSAGE
        items = (result.get("data") or {}).get(f"{noun}s") or []
        query = params.get("query")
        if not items:
            matching = f' matching "{query}"' if query else ""
            return f"Sorry, no {noun}s found{matching}. Would you like to see all our {noun}s?"
        return _count_phrase(items, noun, query)

    return render


def _submit_lead(result: dict[str, Any], params: dict[str, Any]) -> str:
    if result.get("success"):
        return "Thank you! We've received your information and will get back to you soon."
    if result.get("needs_clarification"):
        return "Please fill in your contact details below so we can get back to you."
    return result.get("message") or APOLOGY_MESSAGE


def _get_recommendations(result: dict[str, Any], params: dict[str, Any]) -> str:
    if result.get("needs_clarification"):
        return "Tell us a bit about what you're looking for and we'll suggest the best fit."
    if not result.get("success"):
        return result.get("message") or APOLOGY_MESSAGE
    count = len((result.get("data") or {}).get("recommendations") or [])
    if not count:
        return "Sorry, nothing matches those preferences. Would you like to see all our options?"
    return f"Here {'is' if count == 1 else 'are'} my top {count} pick{'' if count == 1 else 's'} for you:"


def _get_store_info(result: dict[str, Any], params: dict[str, Any]) -> str:
    if not result.get("success"):
        return "Sorry, I couldn't retrieve the store information. Please try again."
    return "Here's what you need to know:"


TEMPLATES: dict[str, TemplateFunction] = {
    "create_booking": _create_booking,
    "get_booking_slots": _get_booking_slots,
    "check_availability": _check_availability,
    "get_products": _listing("product"),
    "get_services": _listing("service"),
    "get_store_info": _get_store_info,
    "submit_lead": _submit_lead,
    "get_recommendations": _get_recommendations,
}


def get_template_response(
    function_name: str, result: dict[str, Any], params: dict[str, Any]
) -> Optional[str]:
    """Template text for a result, or None when no template exists."""
    template = TEMPLATES.get(function_name)
    if template is None:
        return None
    try:
        return template(result, params)
    except (KeyError, TypeError) as exc:
        logger.error("Template for %s failed on result keys %s: %s", function_name, list(result), exc)
        return None


def fallback_text(
    function_name: Optional[str], result: Optional[dict[str, Any]], params: dict[str, Any]
) -> str:
    """Best user-safe text without a model: template, then tool message, then apology."""
    if function_name and result is not None:
        text = get_template_response(function_name, result, params)
        if text:
            return text
        if result.get("message"):
            return result["message"]
    return APOLOGY_MESSAGE
