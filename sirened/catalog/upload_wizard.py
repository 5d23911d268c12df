"""
Book Upload Wizard

Authors submit a book through a fixed sequence of steps. Each step has
its own validation rules; a step can only be reached once every earlier
step validates. The same rules guard the create endpoint, so a submission
that skips the UI is held to the wizard's standard.

Steps:
    0 Basic Information   title, description
    1 Images              handled by object storage, always satisfied here
    2 Awards              at least one award when has_awards
    3 Formats             at least one known format
    4 Publication         published_date
    5 Genres              at least one taxonomy
    6 Book Details        optional fields
    7 Referral Links      every link needs an http(s) URL
    8 Preview
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from sirened.exceptions import ValidationError


BOOK_FORMATS = ("softback", "hardback", "digital", "audiobook")


def _get(form: Any, name: str, default=None):
    if isinstance(form, Mapping):
        value = form.get(name, default)
    else:
        value = getattr(form, name, default)
    return default if value is None else value


def _as_list(value) -> Optional[list]:
    """A list-like value as a list, or None for scalars, mappings and strings."""
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return None


def _as_number(value):
    """Numbers and numeric strings as a number, anything else as None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _basic_information(form) -> list[str]:
    errors = []
    if not str(_get(form, "title", "")).strip():
        errors.append("Title is required")
    if not str(_get(form, "description", "")).strip():
        errors.append("Description is required")
    return errors


def _images(form) -> list[str]:
    return []


def _awards(form) -> list[str]:
    if _get(form, "has_awards", False):
        awards = _as_list(_get(form, "awards", []))
        if awards is None:
            return ["Awards must be a list"]
        awards = [a for a in awards if str(a).strip()]
        if not awards:
            return ["At least one award is required when the book has awards"]
    return []


def _formats(form) -> list[str]:
    formats = _as_list(_get(form, "formats", []))
    if formats is None:
        return ["Formats must be a list"]
    if not formats:
        return ["At least one format is required"]
    unknown = [f for f in formats if getattr(f, "value", f) not in BOOK_FORMATS]
    if unknown:
        return [f"Unknown format: {', '.join(str(getattr(f, 'value', f)) for f in unknown)}"]
    return []


def _publication(form) -> list[str]:
    if not str(_get(form, "published_date", "")).strip():
        return ["Published date is required"]
    return []


def _genres(form) -> list[str]:
    genres = _as_list(_get(form, "genres", []))
    if genres is None:
        return ["Genres must be a list"]
    if not genres:
        return ["At least one genre is required"]
    return []


def _book_details(form) -> list[str]:
    page_count = _get(form, "page_count")
    if page_count is None:
        return []
    number = _as_number(page_count)
    if number is None or not math.isfinite(number):
        return ["Page count must be a number"]
    if number <= 0:
        return ["Page count must be positive"]
    return []


def _referral_links(form) -> list[str]:
    links = _as_list(_get(form, "referral_links", []))
    if links is None:
        return ["Referral links must be a list"]
    errors = []
    for i, link in enumerate(links):
        url = str(_get(link, "url", "")).strip()
        if not url:
            errors.append(f"Referral link {i + 1} needs a URL")
        elif not url.lower().startswith("http"):
            errors.append(f"Referral link {i + 1} must start with http:// or https://")
    return errors


def _preview(form) -> list[str]:
    return []


@dataclass(frozen=True)
class WizardStep:
    title: str
    validate: Callable[[Any], list[str]]


WIZARD_STEPS: tuple[WizardStep, ...] = (
    WizardStep("Basic Information", _basic_information),
    WizardStep("Images", _images),
    WizardStep("Awards", _awards),
    WizardStep("Formats", _formats),
    WizardStep("Publication", _publication),
    WizardStep("Genres", _genres),
    WizardStep("Book Details", _book_details),
    WizardStep("Referral Links", _referral_links),
    WizardStep("Preview", _preview),
)


def _step(step_index: int) -> WizardStep:
    if not 0 <= step_index < len(WIZARD_STEPS):
        raise ValidationError(
            "Unknown wizard step",
            detail=f"Step must be between 0 and {len(WIZARD_STEPS) - 1}",
        )
    return WIZARD_STEPS[step_index]


def step_errors(step_index: int, form: Any) -> list[str]:
    return _step(step_index).validate(form)


def can_proceed(step_index: int, form: Any) -> bool:
    """True when ``step_index`` validates and the author may move on."""
    return not step_errors(step_index, form)


def can_skip_to(step_index: int, current_step: int, form: Any) -> bool:
    """
    Whether the author may jump to ``step_index``.

    Going back is always allowed. Going forward needs every step before
    the target to validate.
    """
    _step(step_index)
    if step_index <= current_step:
        return True
    return all(can_proceed(i, form) for i in range(step_index))


def submission_errors(form: Any) -> dict[str, list[str]]:
    """Errors for every step, keyed by step title; valid steps are omitted."""
    errors = {}
    for step in WIZARD_STEPS:
        messages = step.validate(form)
        if messages:
            errors[step.title] = messages
    return errors


def validate_submission(form: Any) -> None:
    """
    Raise if the form would not pass the wizard.

    Raises:
        ValidationError: ``detail`` maps step title to messages.
    """
    errors = submission_errors(form)
    if errors:
        raise ValidationError("Book submission is incomplete", detail=errors)
