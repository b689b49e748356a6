"""Felicia onboarding: scripted dialogue that collects profile facts."""

from felicia.onboarding.engine import OnboardingEngine, SubmitResult
from felicia.onboarding.script import (
    DEFAULT_SCRIPT,
    OnboardingStep,
    ScriptError,
    Transition,
    UnresolvedPlaceholderError,
    render_step,
    validate_script,
)

__all__ = [
    "DEFAULT_SCRIPT",
    "OnboardingEngine",
    "OnboardingStep",
    "ScriptError",
    "SubmitResult",
    "Transition",
    "UnresolvedPlaceholderError",
    "render_step",
    "validate_script",
]
