"""Workflow state machine using the ``transitions`` library.

Defines the run states of the pipeline and the triggers that move between
them. Stage sequencing itself lives in :mod:`workflow_runner.pipeline`; the
machine only guards which moves are legal from where.
"""

from __future__ import annotations

from typing import Any

from transitions.extensions.asyncio import AsyncMachine, AsyncState

# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------

ACTIVE_STATES: tuple[str, ...] = ("running", "waiting_for_decision", "remediating")
TERMINAL_STATES: tuple[str, ...] = ("completed", "aborted", "paused", "halted", "failed")

STATES: list[AsyncState] = [
    AsyncState("idle"),
    *(AsyncState(name) for name in ACTIVE_STATES),
    *(AsyncState(name) for name in TERMINAL_STATES),
]

# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

TRANSITIONS: list[dict[str, Any]] = [
    {"trigger": "start", "source": ["idle", *TERMINAL_STATES], "dest": "running"},
    {"trigger": "finish", "source": "running", "dest": "completed"},
    {"trigger": "halt", "source": "running", "dest": "halted"},
    {"trigger": "critical_failure", "source": list(ACTIVE_STATES), "dest": "failed"},
    {"trigger": "recoverable_failure", "source": "running", "dest": "waiting_for_decision"},
    # Operator decisions on a recoverable failure
    {"trigger": "fix", "source": "waiting_for_decision", "dest": "remediating"},
    {"trigger": "remediated", "source": "remediating", "dest": "running"},
    {"trigger": "skip", "source": "waiting_for_decision", "dest": "running"},
    {"trigger": "continue_anyway", "source": "waiting_for_decision", "dest": "running"},
    {"trigger": "manual", "source": "waiting_for_decision", "dest": "paused"},
    {"trigger": "abort", "source": "waiting_for_decision", "dest": "aborted"},
    {"trigger": "reset", "source": list(TERMINAL_STATES), "dest": "idle"},
]


class WorkflowModel:
    """State holder driven by the machine; ``state`` is set by ``transitions``."""

    state: str


def create_workflow_machine(model: Any, initial_state: str = "idle") -> AsyncMachine:
    """Create and return an ``AsyncMachine`` bound to *model*.

    Triggers become awaitable methods on *model* (``await model.start()``).
    Firing a trigger from a state that does not allow it raises
    ``transitions.MachineError``.

    Args:
        model: The object whose state the machine manages.
        initial_state: The initial state for the machine.

    Returns:
        Configured ``AsyncMachine`` instance.
    """
    machine = AsyncMachine(
        model=model,
        states=STATES,
        transitions=TRANSITIONS,
        initial=initial_state,
        auto_transitions=False,
        send_event=True,
        queued=True,
        ignore_invalid_triggers=False,
    )
    return machine
