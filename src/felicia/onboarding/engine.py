"""Onboarding finite-state machine.

The engine walks an onboarding script one answer at a time. Its only mutable
state is ``current_step_index``: it starts at 0 (or resumes from the persisted
index), only ever moves forward, and reaches ``len(script)`` once the
terminal step has been rendered. Profile facts and progress are persisted on
every advance; completion writes the completion flag exactly once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from felicia.models import ProfileFacts
from felicia.onboarding.script import (
    DEFAULT_SCRIPT,
    MULTI_CHOICE,
    SINGLE_CHOICE,
    OnboardingStep,
    format_choices,
    render_step,
    validate_script,
)
from felicia.store.session import SessionStore

logger = logging.getLogger(__name__)

_SELECTION_SPLIT_RE = re.compile(r"[,;\n]+")


@dataclass
class SubmitResult:
    """Outcome of a single ``OnboardingEngine.submit`` call.

    Attributes:
        facts: Profile facts after the answer was applied.
        step_index: Engine position after the call (``len(script)`` once complete).
        prompt: Rendered prompt of the destination step; None if nothing to show.
        complete: True once the terminal step has been reached.
        advanced: False when the call was a no-op (empty multi-choice, or
            onboarding already complete).
    """

    facts: ProfileFacts
    step_index: int
    prompt: str | None
    complete: bool
    advanced: bool = True


class OnboardingEngine:
    """Drive the onboarding script and collect answers into profile facts."""

    def __init__(
        self,
        session: SessionStore,
        script: tuple[OnboardingStep, ...] = DEFAULT_SCRIPT,
    ) -> None:
        validate_script(script)
        self.script = script
        self._session = session
        self._ids = {step.id: i for i, step in enumerate(script)}
        self.facts = session.load_profile()
        if session.is_onboarding_complete():
            self._index = len(script)
            return
        self._index = min(session.load_step(), len(script) - 1)
        self._skip_answered()
        if self.script[self._index].is_terminal:
            # Progress reached the terminal step but the flag was never saved.
            self._complete()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_step_index(self) -> int:
        return self._index

    @property
    def is_complete(self) -> bool:
        return self._index >= len(self.script)

    @property
    def current_step(self) -> OnboardingStep | None:
        return None if self.is_complete else self.script[self._index]

    def render(self, step_index: int, facts: ProfileFacts | None = None) -> str:
        """Render the prompt of ``script[step_index]`` (choices appended)."""
        step = self.script[step_index]
        text = render_step(step, self.facts if facts is None else facts)
        choices = format_choices(step)
        return f"{text}\n\n{choices}" if choices else text

    def current_prompt(self) -> str | None:
        return None if self.current_step is None else self.render(self._index)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit(self, raw_input: str | Sequence[str]) -> SubmitResult:
        """Apply an answer to the current step and advance.

        *raw_input* is the user's text, or an explicit list of selections for a
        multi-choice step. Answers are never rejected: unmatched choice input
        is kept verbatim as free text.
        """
        step = self.current_step
        if step is None:
            return SubmitResult(self.facts, self._index, None, True, advanced=False)

        answer = raw_input if isinstance(raw_input, str) else ", ".join(raw_input)

        if step.input_mode == MULTI_CHOICE:
            selections = _parse_selections(step, raw_input)
            if not selections:
                return SubmitResult(
                    self.facts, self._index, self.render(self._index), False, advanced=False
                )
            value: str | list[str] = selections
        elif step.input_mode == SINGLE_CHOICE:
            value = _match_choice(step, answer.strip())
        else:
            value = answer.strip()

        if step.saves_fact_as is not None:
            if step.saves_fact_as in self.facts:
                logger.debug("Fact '%s' already stored; keeping it", step.saves_fact_as)
            else:
                self.facts.set(step.saves_fact_as, value)

        target = self._next_index(step, value if isinstance(value, str) else ", ".join(value))
        prompt = self.render(target)

        if self.script[target].is_terminal:
            self._complete()
        else:
            self._index = target
            self._session.save_progress(self.facts, self._index)

        logger.debug("Onboarding step '%s' → index %d", step.id, self._index)
        return SubmitResult(self.facts, self._index, prompt, self.is_complete)

    def reset(self) -> None:
        """Forget all facts and return to the first step."""
        self.facts.clear()
        self._index = 0

    def _next_index(self, step: OnboardingStep, answer: str) -> int:
        for transition in step.transitions:
            if transition.matches(answer):
                return self._ids[transition.target]
        return self._index + 1

    def _skip_answered(self) -> None:
        """Move past steps whose fact is already stored (stale saved index)."""
        while self._index < len(self.script) - 1:
            key = self.script[self._index].saves_fact_as
            if key is None or key not in self.facts:
                return
            self._index += 1

    def _complete(self) -> None:
        if self.is_complete:
            return
        self._index = len(self.script)
        self._session.save_progress(self.facts, self._index, complete=True)
        logger.info("Onboarding complete (%d facts collected)", len(self.facts))


# ------------------------------------------------------------------
# Input parsing
# ------------------------------------------------------------------


def _match_choice(step: OnboardingStep, item: str) -> str:
    """Map a 1-based index or a case-insensitive choice name to the choice text."""
    if item.isdigit() and 1 <= int(item) <= len(step.choices):
        return step.choices[int(item) - 1]
    for choice in step.choices:
        if choice.lower() == item.lower():
            return choice
    return item


def _parse_selections(step: OnboardingStep, raw_input: str | Sequence[str]) -> list[str]:
    items = _SELECTION_SPLIT_RE.split(raw_input) if isinstance(raw_input, str) else raw_input
    selections: list[str] = []
    for item in items:
        item = item.strip()
        if not item:
            continue
        value = _match_choice(step, item)
        if value not in selections:
            selections.append(value)
    return selections
