"""Onboarding script: step definitions, prompt rendering, and static validation.

A script is an immutable, ordered tuple of ``OnboardingStep``. Each step's
prompt is either a template string with ``{fact}`` placeholders or a callable
that builds the text from the profile. Branching is declared per step as a
transition table (``token → target step id``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Union

from felicia.models import FOCUS_AREA, KNOWLEDGE_PATH, KNOWN_FACTS, NAME, OBSTACLES, ProfileFacts

FREE_TEXT = "free-text"
SINGLE_CHOICE = "single-choice"
MULTI_CHOICE = "multi-choice"
NO_INPUT = "none"
_INPUT_MODES = frozenset([FREE_TEXT, SINGLE_CHOICE, MULTI_CHOICE, NO_INPUT])

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

Prompt = Union[str, Callable[[ProfileFacts], str]]


class ScriptError(ValueError):
    """Raised when an onboarding script is structurally invalid."""


class UnresolvedPlaceholderError(KeyError):
    """Raised when a prompt references a profile fact that is not set yet."""


@dataclass(frozen=True)
class Transition:
    """Jump to *target* when *token* appears as a word in the answer."""

    token: str
    target: str

    def matches(self, answer: str) -> bool:
        return self.token.lower() in re.findall(r"\w+", answer.lower())


@dataclass(frozen=True)
class OnboardingStep:
    id: str
    prompt: Prompt
    input_mode: str = FREE_TEXT
    choices: tuple[str, ...] = ()
    saves_fact_as: str | None = None
    is_terminal: bool = False
    transitions: tuple[Transition, ...] = field(default_factory=tuple)

    def placeholders(self) -> list[str]:
        """Fact keys referenced by a template prompt (empty for callables)."""
        if callable(self.prompt):
            return []
        return _PLACEHOLDER_RE.findall(self.prompt)


def render_step(step: OnboardingStep, facts: ProfileFacts) -> str:
    """Return the prompt text for *step* with every placeholder substituted.

    Raises:
        UnresolvedPlaceholderError: If a placeholder names a fact not yet set.
    """
    if callable(step.prompt):
        return step.prompt(facts)

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in facts:
            raise UnresolvedPlaceholderError(
                f"Step '{step.id}' references unset profile fact '{key}'"
            )
        return facts.display(key)

    return _PLACEHOLDER_RE.sub(_sub, step.prompt)


def format_choices(step: OnboardingStep) -> str:
    """Render the numbered choice list shown under a choice step's prompt."""
    if not step.choices:
        return ""
    return "\n".join(f"  {i}. {choice}" for i, choice in enumerate(step.choices, start=1))


# ------------------------------------------------------------------
# Static validation
# ------------------------------------------------------------------


def _successors(index: int, step: OnboardingStep, ids: dict[str, int]) -> set[int]:
    if step.is_terminal:
        return set()
    targets = {index + 1}
    targets.update(ids[t.target] for t in step.transitions)
    return targets


def validate_script(script: tuple[OnboardingStep, ...]) -> None:
    """Check that *script* is well-formed.

    Enforced:
      - at least one step; unique step ids; known input modes and fact keys
      - exactly one terminal step, and it is the last step
      - ``none`` input mode only on the terminal step
      - transitions point at existing steps strictly ahead of their source
      - no fact key is saved by two steps
      - on every path from the first step, each placeholder is set by an
        earlier step

    Raises:
        ScriptError: Describing the first problem found.
    """
    if not script:
        raise ScriptError("Onboarding script is empty")

    ids: dict[str, int] = {}
    for i, step in enumerate(script):
        if step.id in ids:
            raise ScriptError(f"Duplicate step id '{step.id}'")
        ids[step.id] = i

    terminals = [i for i, s in enumerate(script) if s.is_terminal]
    if terminals != [len(script) - 1]:
        raise ScriptError("Script must have exactly one terminal step, placed last")

    saved: set[str] = set()
    for i, step in enumerate(script):
        if step.input_mode not in _INPUT_MODES:
            raise ScriptError(f"Step '{step.id}' has unknown input mode '{step.input_mode}'")
        if step.input_mode == NO_INPUT and not step.is_terminal:
            raise ScriptError(f"Step '{step.id}' expects no input but is not terminal")
        if step.input_mode in (SINGLE_CHOICE, MULTI_CHOICE) and not step.choices:
            raise ScriptError(f"Choice step '{step.id}' declares no choices")
        if step.saves_fact_as is not None:
            if step.saves_fact_as not in KNOWN_FACTS:
                raise ScriptError(
                    f"Step '{step.id}' saves unknown fact '{step.saves_fact_as}'"
                )
            if step.saves_fact_as in saved:
                raise ScriptError(f"Fact '{step.saves_fact_as}' is saved by two steps")
            saved.add(step.saves_fact_as)
        for t in step.transitions:
            if t.target not in ids:
                raise ScriptError(f"Step '{step.id}' jumps to unknown step '{t.target}'")
            if ids[t.target] <= i:
                raise ScriptError(f"Step '{step.id}' jumps backwards to '{t.target}'")

    # Facts guaranteed set on entry to each step: intersection over all paths.
    available: list[set[str] | None] = [None] * len(script)
    available[0] = set()
    for i, step in enumerate(script):
        on_entry = available[i]
        if on_entry is None:
            continue  # unreachable
        for key in step.placeholders():
            if key not in on_entry:
                raise ScriptError(
                    f"Step '{step.id}' references '{{{key}}}' which may be unset "
                    f"on some path"
                )
        on_exit = on_entry | ({step.saves_fact_as} if step.saves_fact_as else set())
        for j in _successors(i, step, ids):
            current = available[j]
            available[j] = set(on_exit) if current is None else current & on_exit


# ------------------------------------------------------------------
# Default script
# ------------------------------------------------------------------

DEFAULT_SCRIPT: tuple[OnboardingStep, ...] = (
    OnboardingStep(
        id="welcome",
        prompt=(
            "Welcome! I am FELICIA, your personal AI assistant.\n\n"
            "Before we begin, I would like to get to know you a little. "
            "That way I can become YOUR assistant rather than a generic chatbot.\n\n"
            "Shall we begin?"
        ),
    ),
    OnboardingStep(
        id="name",
        prompt="Wonderful! Let us start simple.\n\nWhat should I call you?",
        saves_fact_as=NAME,
    ),
    OnboardingStep(
        id="focus",
        prompt=(
            "Nice to meet you, {name}!\n\n"
            "If I could genuinely help you with ONE area of your life over the "
            "next year, what would that area be?\n\n"
            "Do not overthink it. Whatever comes to mind first."
        ),
        saves_fact_as=FOCUS_AREA,
    ),
    OnboardingStep(
        id="obstacles",
        prompt=(
            "That makes a lot of sense.\n\n"
            "When it comes to {focusArea}, what usually gets in your way? "
            "Pick any that apply (e.g. 1, 3) or describe it in your own words."
        ),
        input_mode=MULTI_CHOICE,
        choices=(
            "Procrastination",
            "Perfectionism",
            "Losing motivation",
            "Getting overwhelmed",
            "Self-doubt",
        ),
        saves_fact_as=OBSTACLES,
    ),
    OnboardingStep(
        id="knowledge",
        prompt=(
            "I hear you, {name}. Thank you for sharing that.\n\n"
            "I can also learn from YOUR documents: notes, files, anything you "
            "want me to know about. They stay private on your computer.\n\n"
            "Would you like to connect a knowledge folder? "
            "(Type YES to set it up, or SKIP to do it later)"
        ),
        input_mode=SINGLE_CHOICE,
        choices=("Yes", "Skip"),
        transitions=(Transition(token="skip", target="complete"),),
    ),
    OnboardingStep(
        id="folder",
        prompt=(
            "Great choice!\n\n"
            "Create a folder anywhere on your computer and put your notes in it.\n\n"
            "What folder path would you like to use? (e.g. ~/Documents/Felicia-Knowledge)"
        ),
        saves_fact_as=KNOWLEDGE_PATH,
    ),
    OnboardingStep(
        id="complete",
        prompt=(
            "Setup complete, {name}!\n\n"
            "I know your focus is {focusArea}, and I understand the challenges "
            "you face.\n\nHow can I help you today?"
        ),
        input_mode=NO_INPUT,
        is_terminal=True,
    ),
)
