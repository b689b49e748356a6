"""Tests for onboarding script rendering and static validation."""

from __future__ import annotations

import pytest

from felicia.models import ProfileFacts
from felicia.onboarding.script import (
    DEFAULT_SCRIPT,
    MULTI_CHOICE,
    NO_INPUT,
    OnboardingStep,
    ScriptError,
    Transition,
    UnresolvedPlaceholderError,
    format_choices,
    render_step,
    validate_script,
)


def _terminal(prompt: str = "Done.") -> OnboardingStep:
    return OnboardingStep(id="end", prompt=prompt, input_mode=NO_INPUT, is_terminal=True)


# ------------------------------------------------------------------
# render_step
# ------------------------------------------------------------------


def test_render_substitutes_placeholders():
    step = OnboardingStep(id="s", prompt="Hi {name}, about {focusArea}?")
    facts = ProfileFacts({"name": "Sam", "focusArea": "fitness"})
    assert render_step(step, facts) == "Hi Sam, about fitness?"


def test_render_joins_list_facts():
    step = OnboardingStep(id="s", prompt="Blocked by: {obstacles}")
    facts = ProfileFacts({"obstacles": ["Procrastination", "Self-doubt"]})
    assert render_step(step, facts) == "Blocked by: Procrastination, Self-doubt"


def test_render_unset_fact_raises():
    step = OnboardingStep(id="s", prompt="Hi {name}")
    with pytest.raises(UnresolvedPlaceholderError, match="name"):
        render_step(step, ProfileFacts())


def test_render_callable_prompt():
    step = OnboardingStep(id="s", prompt=lambda f: f"Hello {f.get('name', 'there')}")
    assert render_step(step, ProfileFacts()) == "Hello there"


def test_format_choices_numbers_from_one():
    step = OnboardingStep(id="s", prompt="?", input_mode=MULTI_CHOICE, choices=("A", "B"))
    assert format_choices(step) == "  1. A\n  2. B"


# ------------------------------------------------------------------
# validate_script
# ------------------------------------------------------------------


def test_default_script_is_valid():
    validate_script(DEFAULT_SCRIPT)


def test_default_script_placeholders_resolve_along_every_path():
    """Walk both branches of the default script in order and render each step."""
    facts_by_key = {
        "name": "Sam",
        "focusArea": "health",
        "obstacles": ["Self-doubt"],
        "knowledgePath": "~/notes",
    }
    ids = [s.id for s in DEFAULT_SCRIPT]
    skip_path = ids[: ids.index("knowledge") + 1] + ["complete"]
    for path in (ids, skip_path):
        facts = ProfileFacts()
        for step_id in path:
            step = DEFAULT_SCRIPT[ids.index(step_id)]
            assert "{" not in render_step(step, facts)
            if step.saves_fact_as:
                facts.set(step.saves_fact_as, facts_by_key[step.saves_fact_as])


def test_empty_script_rejected():
    with pytest.raises(ScriptError, match="empty"):
        validate_script(())


def test_duplicate_ids_rejected():
    script = (OnboardingStep(id="a", prompt="x"), OnboardingStep(id="a", prompt="y"), _terminal())
    with pytest.raises(ScriptError, match="Duplicate"):
        validate_script(script)


def test_terminal_must_be_last():
    script = (_terminal(), OnboardingStep(id="a", prompt="x"))
    with pytest.raises(ScriptError, match="terminal"):
        validate_script(script)


def test_placeholder_before_its_fact_rejected():
    script = (
        OnboardingStep(id="a", prompt="Hi {name}"),
        OnboardingStep(id="b", prompt="Name?", saves_fact_as="name"),
        _terminal(),
    )
    with pytest.raises(ScriptError, match="name"):
        validate_script(script)


def test_placeholder_unset_on_skip_path_rejected():
    """A jump past the step that saves a fact makes the fact unsafe downstream."""
    script = (
        OnboardingStep(id="q", prompt="Continue?", transitions=(Transition("skip", "end"),)),
        OnboardingStep(id="path", prompt="Path?", saves_fact_as="knowledgePath"),
        _terminal("Saved {knowledgePath}"),
    )
    with pytest.raises(ScriptError, match="knowledgePath"):
        validate_script(script)


def test_backward_transition_rejected():
    script = (
        OnboardingStep(id="a", prompt="x"),
        OnboardingStep(id="b", prompt="y", transitions=(Transition("again", "a"),)),
        _terminal(),
    )
    with pytest.raises(ScriptError, match="backwards"):
        validate_script(script)


def test_unknown_transition_target_rejected():
    script = (OnboardingStep(id="a", prompt="x", transitions=(Transition("go", "zzz"),)), _terminal())
    with pytest.raises(ScriptError, match="unknown step"):
        validate_script(script)


def test_fact_saved_twice_rejected():
    script = (
        OnboardingStep(id="a", prompt="x", saves_fact_as="name"),
        OnboardingStep(id="b", prompt="y", saves_fact_as="name"),
        _terminal(),
    )
    with pytest.raises(ScriptError, match="saved by two steps"):
        validate_script(script)


def test_choice_step_without_choices_rejected():
    script = (OnboardingStep(id="a", prompt="x", input_mode=MULTI_CHOICE), _terminal())
    with pytest.raises(ScriptError, match="no choices"):
        validate_script(script)


def test_no_input_step_must_be_terminal():
    script = (OnboardingStep(id="a", prompt="x", input_mode=NO_INPUT), _terminal())
    with pytest.raises(ScriptError, match="not terminal"):
        validate_script(script)


# ------------------------------------------------------------------
# Transition
# ------------------------------------------------------------------


@pytest.mark.parametrize("answer", ["skip", "SKIP", "Skip for now", "let's skip it."])
def test_transition_matches_token_case_insensitively(answer):
    assert Transition("skip", "end").matches(answer)


@pytest.mark.parametrize("answer", ["yes", "skipping", "no thanks"])
def test_transition_requires_whole_word(answer):
    assert not Transition("skip", "end").matches(answer)
