"""Listing creation steps, field rules and the editable-field set.

Nothing in here talks to Telegram or the database: the handlers feed one
inbound value per step and act on the :class:`StepResult`.  The draft is a
plain dict so it can live in the FSM storage.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, HttpUrl, StringConstraints, TypeAdapter, ValidationError

from .config import MAX_PHOTOS

SKIP_WORDS = {"skip"}
DONE_WORDS = {"/done", "done"}
CANCEL_WORDS = {"/cancel", "cancel"}

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=1000)]
Price = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]
Location = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
Contact = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


class ListingDraft(BaseModel):
    """The complete set of rules a listing must satisfy before it is saved."""

    title: Title
    description: Description
    price: Optional[Price] = None
    location: Location
    contact: Contact
    marketplace_link: Optional[HttpUrl] = None
    photos: List[str] = Field(default_factory=list, max_length=MAX_PHOTOS)


FIELD_LABELS = {
    "title": "Title",
    "description": "Description",
    "price": "Price",
    "location": "Location",
    "contact": "Contact",
    "marketplace_link": "Marketplace link",
    "photos": "Photos",
}

_FIELD_ADAPTERS = {
    "title": TypeAdapter(Title),
    "description": TypeAdapter(Description),
    "price": TypeAdapter(Price),
    "location": TypeAdapter(Location),
    "contact": TypeAdapter(Contact),
    "marketplace_link": TypeAdapter(HttpUrl),
}


class DraftInvalid(Exception):
    """Raised when a finished draft breaks one or more field rules."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def describe_error(field: str, error: Dict[str, Any]) -> str:
    """Turn one pydantic error entry into a sentence a user can act on."""
    label = FIELD_LABELS.get(field, field)
    kind = error.get("type")
    ctx = error.get("ctx") or {}
    if kind == "string_too_short":
        return f"{label} must be at least {ctx['min_length']} characters."
    if kind == "string_too_long":
        return f"{label} must be at most {ctx['max_length']} characters."
    if kind == "too_long":
        return f"{label}: at most {ctx['max_length']} allowed."
    if kind == "missing":
        return f"{label} is required."
    if kind.startswith("url"):
        return f"{label} must be a valid URL (for example https://example.com/item)."
    return f"{label}: {error.get('msg', 'invalid value')}."


def check_field(field: str, value: str) -> Optional[str]:
    """Validate one text field; return an error sentence or None."""
    try:
        _FIELD_ADAPTERS[field].validate_python(value)
    except ValidationError as e:
        return describe_error(field, e.errors()[0])
    return None


def finalize(draft: Dict[str, Any]) -> ListingDraft:
    """Validate the whole draft at once, reporting every broken rule."""
    try:
        return ListingDraft.model_validate(draft)
    except ValidationError as e:
        errors = []
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "listing"
            message = describe_error(field, err)
            if message not in errors:
                errors.append(message)
        raise DraftInvalid(errors) from e


class WizardStep(str, Enum):
    TITLE = "title"
    DESCRIPTION = "description"
    PRICE = "price"
    LOCATION = "location"
    CONTACT = "contact"
    MARKETPLACE_LINK = "marketplace_link"
    PHOTOS = "photos"


STEPS = list(WizardStep)

SKIPPABLE = {WizardStep.PRICE, WizardStep.MARKETPLACE_LINK}

PROMPTS = {
    WizardStep.TITLE: "Enter the title of your listing (3-100 characters):",
    WizardStep.DESCRIPTION: "Enter a description (10-1000 characters):",
    WizardStep.PRICE: "Enter a price, or press Skip:",
    WizardStep.LOCATION: "Enter your location:",
    WizardStep.CONTACT: "Enter your contact info (e.g. @username or phone):",
    WizardStep.MARKETPLACE_LINK: "Paste a marketplace link for this item, or press Skip:",
    WizardStep.PHOTOS: f"Send up to {MAX_PHOTOS} photos, then press Done (or send /done).",
}


def next_step(step: WizardStep) -> Optional[WizardStep]:
    index = STEPS.index(step)
    return STEPS[index + 1] if index + 1 < len(STEPS) else None


@dataclass
class StepResult:
    """Outcome of feeding one value to a step.

    ``step`` is where the wizard stands afterwards: the same step on error,
    the following one on success.
    """

    step: WizardStep
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def submit_text(draft: Dict[str, Any], step: WizardStep, text: str) -> StepResult:
    """Validate ``text`` for ``step`` and merge it into ``draft`` on success."""
    if step is WizardStep.PHOTOS:
        return StepResult(step, "Please send a photo, or press Done to finish.")
    value = (text or "").strip()
    if value.lower() in SKIP_WORDS:
        return submit_skip(draft, step)
    error = check_field(step.value, value)
    if error:
        return StepResult(step, error)
    draft[step.value] = value
    return StepResult(next_step(step))


def submit_skip(draft: Dict[str, Any], step: WizardStep) -> StepResult:
    if step not in SKIPPABLE:
        return StepResult(step, f"{FIELD_LABELS[step.value]} cannot be skipped.")
    draft[step.value] = None
    return StepResult(next_step(step))


def add_photo(draft: Dict[str, Any], file_id: str) -> bool:
    """Append a photo unless the draft already holds the maximum."""
    photos = list(draft.get("photos") or [])
    if len(photos) >= MAX_PHOTOS:
        return False
    photos.append(file_id)
    draft["photos"] = photos
    return True


class EditableField(str, Enum):
    """Fields offered in the edit menu, each naming the column it writes."""

    TITLE = "title"
    DESCRIPTION = "description"
    PRICE = "price"
    LOCATION = "location"
    CONTACT = "contact"

    @property
    def label(self) -> str:
        return FIELD_LABELS[self.value]

    @property
    def column(self) -> str:
        return self.value

    def parse(self, text: str):
        """Validate an edit reply; return ``(value, error)``."""
        value = (text or "").strip()
        if self is EditableField.PRICE and value.lower() in SKIP_WORDS:
            return None, None
        error = check_field(self.value, value)
        if error:
            return None, error
        return value, None
