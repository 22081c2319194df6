"""State and validation logic for the sign-in / sign-up form.

The form never talks to the API: submitting only simulates a request. State
is an immutable ``FormState`` that changes exclusively through ``reduce``,
one action per user interaction::

    state = FormState()
    state = reduce(state, FieldChanged(field="email", value="ana@example.com"))
    state = reduce(state, ModeToggled())
"""
from __future__ import annotations

import asyncio
import logging
import re

from pydantic import BaseModel, ConfigDict, field_validator

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

STRENGTH_LABELS = ("Very Weak", "Weak", "Fair", "Good", "Strong")
STRENGTH_COLORS = ("red", "orange", "yellow", "light-green", "green")

FORM_FIELDS = ("email", "password", "confirm_password", "first_name", "last_name", "company")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_password(password: str) -> bool:
    return len(password) >= MIN_PASSWORD_LENGTH


def password_strength(password: str) -> int:
    """Count satisfied criteria: length, uppercase, lowercase, digit, symbol (0-5)."""
    checks = (
        len(password) >= MIN_PASSWORD_LENGTH,
        re.search(r"[A-Z]", password) is not None,
        re.search(r"[a-z]", password) is not None,
        re.search(r"\d", password) is not None,
        re.search(r"[^A-Za-z\d]", password) is not None,
    )
    return sum(checks)


def _strength_index(score: int) -> int:
    # A score of 0 has no slot of its own and shows as the weakest.
    return score - 1 if 1 <= score <= len(STRENGTH_LABELS) else 0


def strength_label(score: int) -> str:
    return STRENGTH_LABELS[_strength_index(score)]


def strength_color(score: int) -> str:
    return STRENGTH_COLORS[_strength_index(score)]


def strength_text_tone(score: int) -> str:
    """Colour of the strength caption: red below 3, yellow at 3, green from 4."""
    if score < 3:
        return "red"
    if score < 4:
        return "yellow"
    return "green"


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class FormState(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str = ""
    password: str = ""
    confirm_password: str = ""
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    is_sign_up: bool = False
    show_password: bool = False
    show_confirm_password: bool = False
    remember_me: bool = False
    is_loading: bool = False
    errors: dict[str, str] = {}

    @property
    def strength(self) -> int:
        return password_strength(self.password)

    @property
    def strength_label(self) -> str:
        return strength_label(self.strength)

    @property
    def strength_color(self) -> str:
        return strength_color(self.strength)

    @property
    def strength_text_tone(self) -> str:
        return strength_text_tone(self.strength)


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class FieldChanged(_Action):
    field: str
    value: str

    @field_validator("field")
    @classmethod
    def field_must_exist(cls, v: str) -> str:
        if v not in FORM_FIELDS:
            raise ValueError(f"unknown form field {v!r}")
        return v


class ModeToggled(_Action):
    pass


class PasswordVisibilityToggled(_Action):
    pass


class ConfirmVisibilityToggled(_Action):
    pass


class RememberMeToggled(_Action):
    pass


class SubmitStarted(_Action):
    pass


class SubmitFinished(_Action):
    pass


class ErrorsSet(_Action):
    errors: dict[str, str]


def reduce(state: FormState, action: _Action) -> FormState:
    """Return the state that follows *action*; *state* itself is never modified."""
    if isinstance(action, FieldChanged):
        errors = {k: v for k, v in state.errors.items() if k != action.field}
        return state.model_copy(update={action.field: action.value, "errors": errors})
    if isinstance(action, ModeToggled):
        return state.model_copy(update={"is_sign_up": not state.is_sign_up, "errors": {}})
    if isinstance(action, PasswordVisibilityToggled):
        return state.model_copy(update={"show_password": not state.show_password})
    if isinstance(action, ConfirmVisibilityToggled):
        return state.model_copy(update={"show_confirm_password": not state.show_confirm_password})
    if isinstance(action, RememberMeToggled):
        return state.model_copy(update={"remember_me": not state.remember_me})
    if isinstance(action, SubmitStarted):
        return state.model_copy(update={"is_loading": True})
    if isinstance(action, SubmitFinished):
        return state.model_copy(update={"is_loading": False})
    if isinstance(action, ErrorsSet):
        return state.model_copy(update={"errors": dict(action.errors)})
    raise ValueError(f"unsupported action {type(action).__name__}")


# ---------------------------------------------------------------------------
# Validation & submit
# ---------------------------------------------------------------------------


def validate_form(state: FormState) -> dict[str, str]:
    """Per-field error messages; an empty dict means the form can be submitted."""
    errors: dict[str, str] = {}

    if not state.email:
        errors["email"] = "Email is required"
    elif not is_valid_email(state.email):
        errors["email"] = "Please enter a valid email address"

    if not state.password:
        errors["password"] = "Password is required"
    elif not is_valid_password(state.password):
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"

    if state.is_sign_up:
        if not state.first_name:
            errors["first_name"] = "First name is required"
        if not state.last_name:
            errors["last_name"] = "Last name is required"
        if not state.company:
            errors["company"] = "Company name is required"
        if not state.confirm_password:
            errors["confirm_password"] = "Please confirm your password"
        elif state.password != state.confirm_password:
            errors["confirm_password"] = "Passwords do not match"

    return errors


async def submit(state: FormState, delay: float = 2.0) -> FormState:
    """Validate and simulate sending the form. No request leaves the process."""
    errors = validate_form(state)
    state = reduce(state, ErrorsSet(errors=errors))
    if errors:
        return state
    state = reduce(state, SubmitStarted())
    await asyncio.sleep(delay)
    log.info("%s successful for %s", "Sign up" if state.is_sign_up else "Sign in", state.email)
    return reduce(state, SubmitFinished())
