from __future__ import annotations

from dataclasses import dataclass, field

from ..core.enums import IntervalKind, PunchAction
from .strategies.base import PunchTransition
from .strategies.break_strategy import EndBreakTransition, StartBreakTransition
from .strategies.check_in_strategy import CheckInTransition
from .strategies.check_out_strategy import CheckOutTransition


def _default_transitions() -> dict[PunchAction, PunchTransition]:
    return {
        PunchAction.CHECK_IN: CheckInTransition(),
        PunchAction.BREAK_START: StartBreakTransition(IntervalKind.BREAK),
        PunchAction.BREAK_END: EndBreakTransition(IntervalKind.BREAK),
        PunchAction.BIO_START: StartBreakTransition(IntervalKind.BIO),
        PunchAction.BIO_END: EndBreakTransition(IntervalKind.BIO),
        PunchAction.CHECK_OUT: CheckOutTransition(),
    }


@dataclass
class PunchTransitionFactory:
    """Factory Pattern: choose the transition strategy for a punch action."""

    transitions: dict[PunchAction, PunchTransition] = field(default_factory=_default_transitions)

    def for_action(self, action: PunchAction) -> PunchTransition:
        return self.transitions[action]
