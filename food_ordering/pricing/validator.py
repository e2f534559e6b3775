"""
Customization Validator

Checks a candidate selection against an item's customization groups and
reports every problem at once, so a client can fix them all in one pass.

validate() is pure and total: it never raises, and an empty list is the
only "valid" signal.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from food_ordering.pricing.catalog import Priceable, SelectionKind
from food_ordering.pricing.selection import SelectedCustomization


class ValidationCode(str, Enum):
    MISSING_REQUIRED = "missing_required"
    EMPTY_REQUIRED_TEXT = "empty_required_text"
    NO_OPTION_SELECTED = "no_option_selected"
    TOO_MANY_SELECTIONS = "too_many_selections"
    OPTION_UNAVAILABLE = "option_unavailable"
    DUPLICATE_GROUP = "duplicate_group"


@dataclass(frozen=True)
class CustomizationError:
    """
    A single reason a selection was refused.

    Attributes:
        code: Machine-readable error code
        group_id: Group the error refers to
        option_id: Offending option (OPTION_UNAVAILABLE only)
        max_selections: Allowed selections (TOO_MANY_SELECTIONS only)
        actual: Selections received (TOO_MANY_SELECTIONS only)
    """
    code: ValidationCode
    group_id: str
    option_id: Optional[str] = None
    max_selections: Optional[int] = None
    actual: Optional[int] = None

    @property
    def message(self) -> str:
        if self.code == ValidationCode.MISSING_REQUIRED:
            return f"Customization '{self.group_id}' is required"
        if self.code == ValidationCode.EMPTY_REQUIRED_TEXT:
            return f"Customization '{self.group_id}' requires a text value"
        if self.code == ValidationCode.NO_OPTION_SELECTED:
            return f"Select at least one option for '{self.group_id}'"
        if self.code == ValidationCode.TOO_MANY_SELECTIONS:
            return (
                f"At most {self.max_selections} option(s) allowed for "
                f"'{self.group_id}', got {self.actual}"
            )
        if self.code == ValidationCode.OPTION_UNAVAILABLE:
            return f"Option '{self.option_id}' is not available for '{self.group_id}'"
        return f"Customization '{self.group_id}' was selected more than once"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "group_id": self.group_id,
            "option_id": self.option_id,
            "max_selections": self.max_selections,
            "actual": self.actual,
            "message": self.message,
        }


class CustomizationValidationError(Exception):
    """Raised by callers that must not proceed with an invalid selection."""

    def __init__(self, errors: list[CustomizationError]):
        self.errors = errors
        codes = ", ".join(e.code.value for e in errors)
        super().__init__(f"Invalid customizations: {codes}")


def validate(
    item: Priceable,
    selections: Iterable[SelectedCustomization],
) -> list[CustomizationError]:
    """
    Validate selections for an item.

    Errors are reported in the item's group order first (required-group
    checks), then in selection order (per-selection checks).
    """
    selections = list(selections)
    errors: list[CustomizationError] = []

    by_group: dict[str, SelectedCustomization] = {}
    for selection in selections:
        by_group.setdefault(selection.group_id, selection)

    for group in item.customization_groups:
        if not group.required:
            continue
        selection = by_group.get(group.id)
        if selection is None:
            errors.append(CustomizationError(ValidationCode.MISSING_REQUIRED, group.id))
        elif group.kind == SelectionKind.TEXT:
            if not (selection.text_value or "").strip():
                errors.append(CustomizationError(ValidationCode.EMPTY_REQUIRED_TEXT, group.id))
        elif not selection.option_ids:
            errors.append(CustomizationError(ValidationCode.NO_OPTION_SELECTED, group.id))

    counts = Counter(s.group_id for s in selections)
    reported_duplicates: set[str] = set()

    for selection in selections:
        group = item.get_group(selection.group_id)

        if counts[selection.group_id] > 1 and selection.group_id not in reported_duplicates:
            reported_duplicates.add(selection.group_id)
            errors.append(CustomizationError(ValidationCode.DUPLICATE_GROUP, selection.group_id))

        if group is not None:
            limit = None
            if group.kind == SelectionKind.MULTI:
                limit = group.max_selections
            elif group.kind == SelectionKind.SINGLE:
                limit = 1
            if limit is not None and len(selection.option_ids) > limit:
                errors.append(CustomizationError(
                    ValidationCode.TOO_MANY_SELECTIONS,
                    group.id,
                    max_selections=limit,
                    actual=len(selection.option_ids),
                ))

        for option_id in selection.option_ids:
            option = group.get_option(option_id) if group is not None else None
            if option is None or not option.is_available:
                errors.append(CustomizationError(
                    ValidationCode.OPTION_UNAVAILABLE,
                    selection.group_id,
                    option_id=option_id,
                ))

    return errors
