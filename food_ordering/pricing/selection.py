"""
Selected customizations and their canonical comparison key.

Two selections are equivalent when they pick the same options in the
same groups with the same text values, regardless of the order in which
the client listed groups or options.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional


# (group_id, sorted option ids, text value)
CustomizationKey = tuple[tuple[str, tuple[str, ...], str], ...]


@dataclass(frozen=True)
class SelectedCustomization:
    """
    The options a customer picked for one customization group.

    Option ids are de-duplicated on construction (first occurrence
    kept), so an option can never be counted twice.
    """
    group_id: str
    option_ids: tuple[str, ...] = ()
    text_value: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "option_ids", tuple(dict.fromkeys(self.option_ids)))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SelectedCustomization":
        return cls(
            group_id=str(data["group_id"]),
            option_ids=tuple(str(o) for o in data.get("option_ids") or ()),
            text_value=data.get("text_value"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "option_ids": list(self.option_ids),
            "text_value": self.text_value,
        }


def canonical_key(selections: Iterable[SelectedCustomization]) -> CustomizationKey:
    """
    Build the order-independent comparison key for a selection list.

    Groups are sorted by id and option ids are sorted within each group.
    A missing text value and an empty one compare equal.
    """
    entries = [
        (s.group_id, tuple(sorted(s.option_ids)), s.text_value or "")
        for s in selections
    ]
    return tuple(sorted(entries))


def key_to_string(key: CustomizationKey) -> str:
    """Stable text form of a canonical key, used as a database column."""
    return json.dumps([[g, list(opts), text] for g, opts, text in key], separators=(",", ":"))


def selections_to_json(selections: Iterable[SelectedCustomization]) -> str:
    return json.dumps([s.to_dict() for s in selections])


def selections_from_json(raw: Optional[str]) -> tuple[SelectedCustomization, ...]:
    if not raw:
        return ()
    return tuple(SelectedCustomization.from_dict(entry) for entry in json.loads(raw))
