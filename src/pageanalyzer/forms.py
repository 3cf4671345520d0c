"""
Login-form detection.

A form is a login form when its ``action`` mentions "login" or "signin".
Otherwise the decision depends on its inputs and the chosen policy:

- ``PERMISSIVE``: any password input is enough.
- ``STRICT``: a password input, a text/email input and a submit control
  must all be present.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable

from bs4 import Tag

from pageanalyzer.models import FormDescriptor

LOGIN_ACTION_HINTS = ("login", "signin")
USERNAME_INPUT_TYPES = frozenset(("text", "email"))


class LoginPolicy(str, Enum):
    PERMISSIVE = "permissive"
    STRICT = "strict"


def action_suggests_login(form: Tag) -> bool:
    action = form.get("action") or ""
    return any(hint in action for hint in LOGIN_ACTION_HINTS)


def describe_form(form: Tag) -> FormDescriptor:
    """Collect the input composition of a form subtree."""
    descriptor = FormDescriptor(node=form, action_suggests_login=action_suggests_login(form))

    for control in form.find_all(["input", "button"]):
        input_type = control.get("type")
        if control.name == "input":
            if input_type == "password":
                descriptor.has_password_input = True
            elif input_type in USERNAME_INPUT_TYPES:
                descriptor.has_username_like_input = True
        if input_type == "submit":
            descriptor.has_submit_control = True

    return descriptor


def is_login_form(form: Tag, policy: LoginPolicy = LoginPolicy.PERMISSIVE) -> bool:
    if action_suggests_login(form):
        return True

    descriptor = describe_form(form)
    if policy is LoginPolicy.STRICT:
        return (
            descriptor.has_password_input
            and descriptor.has_username_like_input
            and descriptor.has_submit_control
        )
    return descriptor.has_password_input


def has_login_form(forms: Iterable[Tag], policy: LoginPolicy = LoginPolicy.PERMISSIVE) -> bool:
    """True if any of the forms is a login form. Stops at the first match."""
    return any(is_login_form(form, policy) for form in forms)
