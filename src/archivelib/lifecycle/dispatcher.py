"""Routes the action of a blocking condition to its handler.

The UI hands back the condition it rendered; the dispatcher refuses it
when the channel has since moved on (stale button) or when the same
publication is already being handled (double click).
"""

from __future__ import annotations

import logging
from typing import Callable

from archivelib.lifecycle.context import LifecycleContext
from archivelib.lifecycle.controller import LifecycleController
from archivelib.models import BlockingCondition, Command

logger = logging.getLogger(__name__)


class CommandDispatcher:
    def __init__(
        self,
        context: LifecycleContext,
        controller: LifecycleController,
        terminate: Callable[[], None],
    ) -> None:
        self._context = context
        self._controller = controller
        self._terminate = terminate
        self._in_flight: set[int] = set()

    async def invoke(self, condition: BlockingCondition) -> bool:
        """Run the command of *condition*. Returns False if it was ignored."""
        command = condition.action
        if command is None:
            logger.debug("Condition %r has no action", condition.title)
            return False
        if not self._context.channel.is_current(condition):
            logger.warning("Ignoring %s from a superseded condition", command.value)
            return False
        if condition.token in self._in_flight:
            logger.debug("Ignoring repeated %s", command.value)
            return False

        logger.info("Dispatching %s", command.value)
        self._in_flight.add(condition.token)
        try:
            await self.dispatch(command)
        finally:
            self._in_flight.discard(condition.token)
        return True

    async def dispatch(self, command: Command) -> None:
        if command is Command.CREATE_STORE:
            await self._controller.create_store()
        elif command is Command.BEGIN_ROLLBACK_DISCOVERY:
            await self._controller.begin_rollback_discovery()
        elif command is Command.COMMIT_ROLLBACK:
            await self._controller.commit_rollback()
        elif command is Command.TERMINATE_PROCESS:
            self._terminate()
        else:
            raise ValueError(f"Unknown command: {command!r}")
