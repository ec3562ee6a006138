"""Dosage, unit and form normalization for label text."""

import logging
import re

from supplement_scanner.domain.products import DosageUnit, ParsedDosage, ProductForm

_DOSAGE_PATTERN = re.compile(r"^\s*([\d.]+)\s*(.*)$", re.DOTALL)
_THOUSANDS_SEPARATOR = re.compile(r"(?<=\d),(?=\d{3})")

DEFAULT_AMOUNT = 1.0
DEFAULT_UNIT = DosageUnit.MG
DEFAULT_FORM = ProductForm.CAPSULE
DEFAULT_SERVINGS_PER_CONTAINER = 30

_logger = logging.getLogger(__name__)


def parse_dosage(text: str | None, form: str | None = None) -> ParsedDosage:
    """Parse free-text dosage into a storable (amount, unit, form) triple.

    Never raises. Unparseable amounts fall back to 1, unknown units to mg and
    unknown forms to capsule; ``low_confidence`` records that a fallback was used.
    """
    cleaned = _THOUSANDS_SEPARATOR.sub("", text or "")
    match = _DOSAGE_PATTERN.match(cleaned)
    amount: float | None = None
    unit: DosageUnit | None = None
    if match:
        amount = _parse_amount(match.group(1))
        unit = _match_unit(match.group(2))
    resolved_form, form_known = _match_form(form)
    low_confidence = amount is None or unit is None or not form_known
    if low_confidence:
        _logger.debug(
            "Dosage defaults applied: text=%r form=%r amount=%s unit=%s",
            text,
            form,
            amount,
            unit,
        )
    return ParsedDosage(
        amount=amount if amount is not None else DEFAULT_AMOUNT,
        unit=unit or DEFAULT_UNIT,
        form=resolved_form,
        low_confidence=low_confidence,
    )


def normalize_unit(unit: str | None) -> DosageUnit:
    """Map an already separated unit string onto the whitelist."""
    return _match_unit(unit or "") or DEFAULT_UNIT


def normalize_form(form: str | None) -> ProductForm:
    """Coerce a form value into the allowed set."""
    resolved, _known = _match_form(form)
    return resolved


def servings_or_default(value: int | float | None) -> int:
    """Return servings per container, defaulting to 30 and floored at 1."""
    if value is None:
        return DEFAULT_SERVINGS_PER_CONTAINER
    try:
        servings = int(value)
    except (TypeError, ValueError):
        return DEFAULT_SERVINGS_PER_CONTAINER
    return max(servings, 1)


def format_serving_size(dosage: ParsedDosage) -> str:
    """Render a dosage as a short serving size label."""
    amount = f"{dosage.amount:g}"
    return f"{amount} {dosage.unit.value} per {dosage.form.value}"


def _parse_amount(raw: str) -> float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    if value != value or value <= 0 or value == float("inf"):
        return None
    return value


def _match_unit(raw: str) -> DosageUnit | None:
    text = raw.strip().lower()
    if not text:
        return None
    for unit in DosageUnit:
        if text.startswith(unit.value.lower()):
            return unit
    return None


def _match_form(raw: str | None) -> tuple[ProductForm, bool]:
    text = (raw or "").strip().lower()
    try:
        return ProductForm(text), True
    except ValueError:
        return DEFAULT_FORM, False
