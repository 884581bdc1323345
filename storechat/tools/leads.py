"""
Lead capture into the store's "Leads" tab.

The row layout follows the tab's header columns as detected in the store's
schema. Contact fields are matched to columns by name; Date and Status
columns are filled in here.
"""

import logging
import time as _time
import uuid
from typing import Any, Optional

from storechat.tools.context import ToolContext, ToolResult, clarification, failure
from storechat.tools.schema_resolver import find_actual_tab_name
from storechat.tools.validators import describe_fields, find_invalid, find_missing

logger = logging.getLogger(__name__)

DEFAULT_LEAD_COLUMNS = ["Date", "Name", "Email", "Phone", "Message", "Status"]
REQUIRED_FIELDS = ["customer_name", "customer_email"]

# Column keyword -> tool parameter carrying its value.
COLUMN_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("email", "e-mail"), "customer_email"),
    (("phone", "mobile", "tel"), "customer_phone"),
    (("message", "note", "comment", "enquiry", "inquiry"), "message"),
    (("name",), "customer_name"),
]
FIELD_TYPES = {
    "customer_name": "text",
    "customer_email": "email",
    "customer_phone": "tel",
    "message": "textarea",
}


def new_lead_id() -> str:
    return f"lead_{int(_time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def lead_columns(schema_entry: Any) -> list[str]:
    """Header columns of the leads tab, or the default layout when none were detected."""
    columns = schema_entry.get("columns") if isinstance(schema_entry, dict) else None
    if isinstance(columns, list) and columns:
        return [str(c) for c in columns if str(c).strip()]
    return list(DEFAULT_LEAD_COLUMNS)


def column_field(column: str) -> Optional[str]:
    """Parameter name that fills a column, or None for columns set automatically."""
    lower = column.lower().strip()
    for keywords, param in COLUMN_KEYWORDS:
        if any(k in lower for k in keywords):
            return param
    return None


def _form_fields(columns: list[str]) -> list[dict[str, Any]]:
    fields = []
    seen = set()
    for column in columns:
        param = column_field(column)
        if param is None or param in seen:
            continue
        seen.add(param)
        fields.append({
            "name": param,
            "label": column,
            "type": FIELD_TYPES[param],
            "required": param in REQUIRED_FIELDS,
        })
    return fields


def build_lead_row(columns: list[str], values: dict[str, Any], submitted_at: str) -> dict[str, str]:
    row: dict[str, str] = {}
    for column in columns:
        lower = column.lower().strip()
        if lower in ("date", "timestamp", "created"):
            row[column] = submitted_at
        elif lower == "status":
            row[column] = "new"
        else:
            param = column_field(column)
            row[column] = str(values.get(param) or "") if param else ""
    return row


async def submit_lead(
    ctx: ToolContext,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    message: Optional[str] = None,
) -> ToolResult:
    """Save the customer's contact details so the store can follow up."""
    schema = ctx.store.detected_schema
    tab = find_actual_tab_name("leads", schema)
    if tab is None:
        logger.warning("Store %s has no leads tab", ctx.store_id)
        return failure(
            "not_configured",
            "We can't take your details online right now. Please contact the store directly.",
        )

    columns = lead_columns(schema.get(tab))
    values = {
        "customer_name": customer_name,
        "customer_email": customer_email,
        "customer_phone": customer_phone,
        "message": message,
    }
    missing = find_missing(values, REQUIRED_FIELDS)
    invalid = find_invalid(values)
    if missing or invalid:
        result = clarification(
            f"Please share your {describe_fields(missing + invalid)} so we can get back to you.",
            missing + invalid,
        )
        result["rich_content"] = {
            "type": "LeadForm",
            "props": {
                "fields": _form_fields(columns),
                "defaultValues": {k: v for k, v in values.items() if v},
            },
        }
        return result

    row = build_lead_row(columns, values, ctx.now.isoformat())
    await ctx.sheets.append_row(ctx.store_id, tab, row)
    lead_id = new_lead_id()
    logger.info("Lead %s saved for store %s in tab '%s'", lead_id, ctx.store_id, tab)
    return {
        "success": True,
        "data": {"lead_id": lead_id, "customer_name": customer_name, "customer_email": customer_email},
        "message": "Thank you! We've received your information and will get back to you soon.",
    }
