"""Lifecycle finite state machine for the archive store.

One FSM instance lives on the process-wide ``LifecycleContext``. It is a
validation tool: the controller calls an event right before publishing
the matching blocking condition, and an illegal event raises
``TransitionNotAllowed`` instead of silently corrupting the lifecycle.
The FSM has no callbacks and performs no I/O.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class LifecycleSM(StateMachine):
    """Seven-state lifecycle of the store within one process.

    States:
        unresolved               -- Storage path not handed to the controller yet.
        opening                  -- open or create call in flight.
        opened                   -- Store open; the only state where checkpoints run.
        awaiting_creation        -- No store found; user may create one.
        awaiting_rollback_choice -- Corruption found; backup search / offer shown.
        rolling_back             -- Rollback commit in flight.
        blocked                  -- Fatal condition; only exit remains.

    ``blocked`` is final: no event leaves it.
    """

    unresolved = State("unresolved", initial=True, value="unresolved")
    opening = State("opening", value="opening")
    opened = State("open", value="open")
    awaiting_creation = State("awaiting_creation", value="awaiting_creation")
    awaiting_rollback_choice = State(
        "awaiting_rollback_choice", value="awaiting_rollback_choice"
    )
    rolling_back = State("rolling_back", value="rolling_back")
    blocked = State("blocked", value="blocked", final=True)

    begin_open = unresolved.to(opening)
    open_succeeded = opening.to(opened)
    store_missing = opening.to(awaiting_creation)
    begin_create = awaiting_creation.to(opening)
    corruption_detected = opening.to(awaiting_rollback_choice)
    begin_rollback = awaiting_rollback_choice.to(rolling_back)
    rolled_back = rolling_back.to(opened)
    block = (
        opening.to(blocked)
        | opened.to(blocked)
        | awaiting_creation.to(blocked)
        | awaiting_rollback_choice.to(blocked)
        | rolling_back.to(blocked)
    )


def create_fsm(current_state: str = "unresolved") -> LifecycleSM:
    """Create a lifecycle FSM positioned at *current_state*.

    Args:
        current_state: One of the ``LifecycleState`` values.
    """
    return LifecycleSM(start_value=current_state)
