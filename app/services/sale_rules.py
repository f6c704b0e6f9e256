"""
Sale Rules - Pure validation, normalisation and permission rules for sales.

Nothing here touches the database; the workflow service in ``app.services.sales``
composes these with persistence. Every function is deterministic in its inputs
(``today`` is always passed in), which keeps them easy to property-test.
"""

import math
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from app.exceptions import ValidationFailedError
from app.models.api import DiscountMode, SaleStatus, SaleType
from app.models.domain import Actor, SaleData, SaleFields, SaleSubmission, SaleTypeInfo

SALE_TYPES: dict[SaleType, SaleTypeInfo] = {
    SaleType.PERCENTAGE: SaleTypeInfo(
        value=SaleType.PERCENTAGE,
        label="Percentage Off",
        has_value=True,
        unit="%",
        default_mode=DiscountMode.UPTO,
    ),
    SaleType.FIXED: SaleTypeInfo(
        value=SaleType.FIXED,
        label="Fixed Amount Off",
        has_value=True,
        unit="Rs.",
        default_mode=DiscountMode.FLAT,
    ),
    SaleType.BOGO: SaleTypeInfo(value=SaleType.BOGO, label="Buy 1 Get 1 Free"),
    SaleType.B2G1: SaleTypeInfo(value=SaleType.B2G1, label="Buy 2 Get 1 Free"),
    SaleType.DEAL: SaleTypeInfo(value=SaleType.DEAL, label="Special Deal", has_notes=True),
}

# Column limits in app.db.models: String(255), String(1024), Numeric(12, 2)
TITLE_MAX_LENGTH = 255
URL_MAX_LENGTH = 1024
DISCOUNT_VALUE_LIMIT = 10**10

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SALE_TYPE_CHOICES = ", ".join(t.value for t in SaleType)
_MODE_CHOICES = ", ".join(m.value for m in DiscountMode)
_STATUS_VALUES = frozenset(s.value for s in SaleStatus)
_STATUS_CHOICES = ", ".join(s.value for s in SaleStatus)


def parse_iso_date(value: Any) -> date | None:
    """Parse a strict ``YYYY-MM-DD`` calendar date; anything else is None."""
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _parse_sale_type(value: Any) -> SaleType | None:
    if not isinstance(value, str):
        return None
    try:
        return SaleType(value)
    except ValueError:
        return None


def _parse_mode(value: Any) -> DiscountMode | None:
    if not isinstance(value, str):
        return None
    try:
        return DiscountMode(value)
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def validate_sale_fields(fields: SaleFields) -> SaleSubmission:
    """
    Validate and normalise raw sale fields.

    Values arrive exactly as the client sent them (no coercion), so type
    checks live here too. All violations are collected before raising, so a
    client sees every problem with its submission at once.

    Raises:
        ValidationFailedError: with one message per violated rule
    """
    errors: list[str] = []

    if not isinstance(fields.brand_id, str) or not fields.brand_id.strip():
        errors.append('"brand_id" is required (UUID string).')

    if not isinstance(fields.title, str) or not fields.title.strip():
        errors.append('"title" is required.')
    elif len(fields.title.strip()) > TITLE_MAX_LENGTH:
        errors.append(f'"title" must be at most {TITLE_MAX_LENGTH} characters.')

    sale_type = _parse_sale_type(fields.sale_type)
    if sale_type is None:
        errors.append(f'"sale_type" is required and must be one of: {_SALE_TYPE_CHOICES}.')

    start = parse_iso_date(fields.start_date)
    if start is None:
        errors.append('"start_date" is required (YYYY-MM-DD format).')

    end = parse_iso_date(fields.end_date)
    if end is None:
        errors.append('"end_date" is required (YYYY-MM-DD format).')

    if start is not None and end is not None and start > end:
        errors.append('"start_date" must not be after "end_date".')

    type_info = SALE_TYPES.get(sale_type) if sale_type is not None else None
    value = fields.discount_value
    if value is not None and (not _is_number(value) or value < 0):
        errors.append('"discount_value" must be a non-negative number.')
    elif value is not None and value >= DISCOUNT_VALUE_LIMIT:
        errors.append(f'"discount_value" must be less than {DISCOUNT_VALUE_LIMIT}.')
    elif value is None and type_info is not None and type_info.has_value:
        errors.append(f'"discount_value" is required for {type_info.value.value} sales.')

    mode: DiscountMode | None = None
    if fields.discount_mode is not None:
        mode = _parse_mode(fields.discount_mode)
        if mode is None:
            errors.append(f'"discount_mode" must be one of: {_MODE_CHOICES}.')

    if fields.notes is not None and not isinstance(fields.notes, str):
        errors.append('"notes" must be a string.')

    if fields.sale_url is not None and not isinstance(fields.sale_url, str):
        errors.append('"sale_url" must be a string.')
    elif isinstance(fields.sale_url, str) and len(fields.sale_url.strip()) > URL_MAX_LENGTH:
        errors.append(f'"sale_url" must be at most {URL_MAX_LENGTH} characters.')

    if errors:
        raise ValidationFailedError(errors)

    # Narrowed by the checks above
    assert type_info is not None and start is not None and end is not None

    if type_info.has_value:
        discount_value = float(value) if value is not None else None
        discount_mode = mode or type_info.default_mode
    else:
        discount_value = None
        discount_mode = None

    return SaleSubmission(
        brand_id=fields.brand_id.strip(),
        title=fields.title.strip(),
        sale_type=type_info.value,
        discount_value=discount_value,
        discount_mode=discount_mode,
        notes=_clean(fields.notes) if type_info.has_notes else None,
        start_date=start,
        end_date=end,
        sale_url=_clean(fields.sale_url),
    )


def merge_sale_fields(existing: SaleData, changes: Mapping[str, Any]) -> SaleFields:
    """
    Overlay supplied update fields onto an existing sale.

    ``changes`` holds only the keys the client actually sent; an explicit
    ``None`` clears an optional field. The result is re-validated with the
    create rules.
    """
    current = SaleFields(
        brand_id=str(existing.brand_id),
        title=existing.title,
        sale_type=existing.sale_type.value,
        discount_value=existing.discount_value,
        discount_mode=existing.discount_mode.value if existing.discount_mode else None,
        notes=existing.notes,
        start_date=existing.start_date.isoformat(),
        end_date=existing.end_date.isoformat(),
        sale_url=existing.sale_url,
    )
    overlay = {
        key: value for key, value in changes.items() if key in SaleFields.__dataclass_fields__
    }
    return SaleFields(**{**current.__dict__, **overlay})


def initial_status(actor: Actor) -> SaleStatus:
    """Admins publish directly; everyone else goes through moderation."""
    return SaleStatus.APPROVED if actor.is_admin else SaleStatus.PENDING


def resolve_requested_status(requested: Any, actor: Actor) -> SaleStatus | None:
    """
    Decide which status change (if any) an update payload may apply.

    Editors never change status: the field is stripped silently. Admins may
    set any valid status.

    Raises:
        ValidationFailedError: admin supplied an unknown status
    """
    if requested is None or not actor.is_admin:
        return None
    if not isinstance(requested, str) or requested not in _STATUS_VALUES:
        raise ValidationFailedError([f'"status" must be one of: {_STATUS_CHOICES}.'])
    return SaleStatus(requested)


def can_modify(sale: SaleData, actor: Actor, pending_only: bool = True) -> bool:
    """Whether ``actor`` may edit or delete ``sale``."""
    if actor.is_admin:
        return True
    if not actor.owns(sale.created_by):
        return False
    return not pending_only or sale.status == SaleStatus.PENDING


def can_view(sale: SaleData, actor: Actor | None) -> bool:
    """Approved sales are public; others only to their creator and admins."""
    if sale.status == SaleStatus.APPROVED:
        return True
    if actor is None:
        return False
    return actor.is_admin or actor.owns(sale.created_by)


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def format_sale_label(
    sale_type: SaleType, discount_value: float | None, discount_mode: DiscountMode | None
) -> str:
    """Human-readable offer label, e.g. "Up to 25% OFF" or "Buy 1 Get 1 Free"."""
    type_info = SALE_TYPES[sale_type]
    if discount_mode == DiscountMode.UPTO:
        prefix = "Up to "
    elif discount_mode == DiscountMode.FLAT:
        prefix = "Flat "
    else:
        prefix = ""

    if sale_type == SaleType.PERCENTAGE and discount_value is not None:
        return f"{prefix}{_format_amount(discount_value)}% OFF"
    if sale_type == SaleType.FIXED and discount_value is not None:
        return f"{prefix}Rs. {_format_amount(discount_value)} OFF"
    return type_info.label
