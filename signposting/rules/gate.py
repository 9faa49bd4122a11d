"""Eligibility and red-flag gate.

Runs before any classification. Ineligibility is terminal and is checked
first; red flags are all collected (never short-circuited) and override
every downstream rule.
"""

from dataclasses import dataclass
from typing import Callable, Union

from signposting.rules.models import LUTSInput


@dataclass(frozen=True)
class RedFlag:
    """A named escalation predicate with its escalation message."""

    name: str
    predicate: Callable[[LUTSInput], bool]
    message: str


# Declaration order is the order escalation messages are reported in
RED_FLAGS: tuple[RedFlag, ...] = (
    RedFlag(
        name="Visible haematuria",
        predicate=lambda i: i.visible_haematuria,
        message="Visible haematuria requires urgent urological assessment (NICE CG97)",
    ),
    RedFlag(
        name="Recurrent UTIs",
        predicate=lambda i: i.recurrent_utis,
        message="Recurrent or persistent UTIs require investigation and urological referral (NICE CG97)",
    ),
    RedFlag(
        name="Suspected urinary retention",
        predicate=lambda i: i.suspected_retention,
        message="Suspected retention requires immediate assessment",
    ),
    RedFlag(
        name="Neurological red flags",
        predicate=lambda i: i.neurological_red_flags,
        message="Neurological red flags require specialist neurological/urological assessment",
    ),
    RedFlag(
        name="Suspected prostate cancer",
        predicate=lambda i: i.suspected_prostate_cancer,
        message="Suspected prostate cancer requires urgent urological referral",
    ),
)


@dataclass(frozen=True)
class Pass:
    """No gate condition applies; continue to classification."""


@dataclass(frozen=True)
class NotEligible:
    reason: str


@dataclass(frozen=True)
class Escalate:
    """One or more red flags fired."""

    flags: tuple[str, ...]
    messages: tuple[str, ...]


GateResult = Union[Pass, NotEligible, Escalate]


def fired_red_flags(input: LUTSInput) -> tuple[RedFlag, ...]:
    """Return every red flag whose predicate holds, in declaration order."""
    return tuple(flag for flag in RED_FLAGS if flag.predicate(input))


def evaluate_gate(input: LUTSInput) -> GateResult:
    """Evaluate eligibility, then red flags.

    Args:
        input: Patient context

    Returns:
        NotEligible, Escalate with one message per fired flag, or Pass
    """
    if not input.adult_patient:
        return NotEligible(reason="Not an adult patient")

    fired = fired_red_flags(input)
    if fired:
        return Escalate(
            flags=tuple(flag.name for flag in fired),
            messages=tuple(flag.message for flag in fired),
        )

    return Pass()
