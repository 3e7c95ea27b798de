"""Project name rules."""

from __future__ import annotations

import re

from repokit.core.prompts import ValidationResult

MAX_NAME_LENGTH = 64
NAME_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")

TOO_LONG_ERROR = "Project names should be 64 character or shorter"
PATTERN_ERROR = 'Names must start with a letter and can only contain letters, numbers and "-"'


def project_name_valid(name: str) -> ValidationResult:
    if len(name) > MAX_NAME_LENGTH:
        return ValidationResult(success=False, error=TOO_LONG_ERROR)
    return ValidationResult(success=NAME_PATTERN.fullmatch(name) is not None, error=PATTERN_ERROR)


def validate_project_name(answer: str) -> ValidationResult:
    """Prompt validator: lowercases the answer, then applies the name rules.

    The error text ends with a colon because it is shown right above the
    repeated question.
    """
    verdict = project_name_valid(answer.lower())
    return ValidationResult(success=verdict.success, error=f"{verdict.error}:")
