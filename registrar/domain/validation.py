"""
Name validation - naming rules for registrable names.

Rules are checked in order and the first failure wins:
empty, longer than 32 characters, characters outside [a-z0-9-],
leading or trailing hyphen, consecutive hyphens.
"""

import re
from dataclasses import dataclass

MAX_NAME_LENGTH = 32

_VALID_CHARS = re.compile(r"[a-z0-9-]+")


@dataclass(frozen=True)
class NameValidation:
    """Outcome of validate(); reason is set only when invalid."""

    valid: bool
    reason: str | None = None


def validate(name: str) -> NameValidation:
    """Check a candidate name against the naming rules. Pure."""
    if not name:
        return NameValidation(False, "Domain name is required")

    if len(name) > MAX_NAME_LENGTH:
        return NameValidation(False, f"Domain name cannot exceed {MAX_NAME_LENGTH} characters")

    if not _VALID_CHARS.fullmatch(name):
        return NameValidation(
            False, "Domain name can only contain lowercase letters, numbers, and hyphens"
        )

    if name.startswith("-") or name.endswith("-"):
        return NameValidation(False, "Domain name cannot start or end with a hyphen")

    if "--" in name:
        return NameValidation(False, "Domain name cannot contain consecutive hyphens")

    return NameValidation(True)
