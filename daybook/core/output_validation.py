"""Structured-output validation for intent inference results.

Nothing produced by the model reaches the data layer without passing
``validate_model_output``. A failed outcome means the turn is answered with
the fallback reply and no action runs.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from daybook.core.schemas_intents import ACTION_KINDS, IntentOutput


@dataclass
class ValidationOutcome:
    """Either a validated output or the list of reasons it was rejected."""

    output: IntentOutput | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.output is not None


def _format_error(err: dict) -> str:
    location = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
    return f"{location}: {err.get('msg', 'invalid')}"


def _precheck(raw: Any, max_actions: int) -> list[str]:
    """Shape checks that read better as explicit messages than pydantic errors."""
    if not isinstance(raw, dict):
        return [f"expected an object, got {type(raw).__name__}"]

    errors = []
    for key in ("reply", "transcript"):
        if raw.get(key) is not None and not isinstance(raw[key], str):
            errors.append(f"{key}: expected a string")

    actions = raw.get("actions", [])
    if not isinstance(actions, list):
        errors.append("actions: expected a list")
        return errors
    if len(actions) > max_actions:
        errors.append(f"actions: {len(actions)} items exceeds the limit of {max_actions}")

    for index, action in enumerate(actions):
        if not isinstance(action, dict):
            errors.append(f"actions.{index}: expected an object")
            continue
        if action.get("kind") not in ACTION_KINDS:
            errors.append(f"actions.{index}.kind: unrecognized kind {action.get('kind')!r}")
        params = action.get("params")
        if params is not None and not isinstance(params, dict):
            errors.append(f"actions.{index}.params: expected an object")
    return errors


def validate_model_output(raw: Any, max_actions: int = 10) -> ValidationOutcome:
    """
    Validate a raw inference result.

    Args:
        raw: Tool input dict, parsed JSON, or unparsed text from the model
        max_actions: Upper bound on the number of actions in one turn

    Returns:
        ValidationOutcome with either ``output`` or ``errors`` set
    """
    errors = _precheck(raw, max_actions)
    if errors:
        return ValidationOutcome(errors=errors)

    try:
        output = IntentOutput.model_validate(raw)
    except ValidationError as e:
        return ValidationOutcome(errors=[_format_error(err) for err in e.errors()])

    return ValidationOutcome(output=output)
