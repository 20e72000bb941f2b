"""Polling support shared by resource snapshots (sandboxes, templates)."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Collection
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from agentrun._internal._models import Status
from agentrun.config import Config
from agentrun.exceptions import (
    ResourceFailedError,
    ResourceNotExistError,
    ResourceTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300
DEFAULT_INTERVAL_SECONDS = 5

R = TypeVar("R", bound="ResourceBase")
PreCheck = Callable[[Any], Any]


def _state_value(state: Any) -> Any:
    return state.value if isinstance(state, Enum) else state


async def _call_hook(hook: Optional[PreCheck], resource: Any) -> None:
    """Run a pre-check hook. Its errors are logged and never end the wait."""
    if hook is None:
        return
    try:
        result = hook(resource)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.warning("pre_check hook failed", exc_info=True)


class ResourceBase:
    """Mixin for resource snapshots that can be refreshed and polled.

    Subclasses implement ``refresh`` and ``delete`` and name the attributes
    holding their lifecycle state and its reason.
    """

    _resource_kind = "Resource"
    _state_field = "status"
    _state_reason_field = "status_reason"

    async def refresh(self: R, *, config: Optional[Config] = None) -> R:
        raise NotImplementedError

    async def delete(self: R, *, config: Optional[Config] = None) -> R:
        raise NotImplementedError

    @property
    def _current_state(self) -> Any:
        return _state_value(getattr(self, self._state_field, None))

    async def _poll(
        self,
        check: Callable[[], Awaitable[bool]],
        *,
        timeout_seconds: float,
        interval_seconds: float,
        description: str,
    ) -> None:
        """Run ``check`` until it returns True or the time budget runs out.

        The check runs before any sleep, so an already-satisfied condition
        returns without waiting. Sleeps never overrun the budget.
        """
        start = time.monotonic()
        while time.monotonic() - start < timeout_seconds:
            if await check():
                return
            remaining = timeout_seconds - (time.monotonic() - start)
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval_seconds, remaining))
        raise ResourceTimeoutError(
            f"Timeout waiting for {description} after {timeout_seconds} seconds",
            timeout_seconds=timeout_seconds,
            last_state=self._current_state,
        )

    async def wait_until(
        self: R,
        success_states: Collection[Any],
        failure_states: Collection[Any] = (),
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        pre_check: Optional[PreCheck] = None,
        config: Optional[Config] = None,
        description: Optional[str] = None,
    ) -> R:
        """Refresh this resource until it reaches a success or failure state.

        Each round refreshes the snapshot in place, calls ``pre_check`` with
        it, returns if the state is in ``success_states`` and raises if it is
        in ``failure_states``. Otherwise it sleeps ``interval_seconds``.

        Args:
            success_states: States that end the wait successfully.
            failure_states: States that end the wait with an error.
            timeout_seconds: Total time budget.
            interval_seconds: Delay between refreshes.
            pre_check: Hook called with the refreshed resource each round.
                May be sync or async. Its return value is ignored and an
                exception it raises is logged as a warning.
            config: Per-call configuration override for ``refresh``.
            description: What is being waited for, used in the timeout message.

        Returns:
            This resource, in a success state.

        Raises:
            ResourceFailedError: If a failure state is reached.
            ResourceTimeoutError: If the budget runs out first.
        """
        success = {_state_value(s) for s in success_states}
        failure = {_state_value(s) for s in failure_states}

        async def check() -> bool:
            await self.refresh(config=config)
            await _call_hook(pre_check, self)
            state = self._current_state
            logger.debug("%s state: %s", self._resource_kind, state)
            if state in success:
                return True
            if state in failure:
                reason = getattr(self, self._state_reason_field, None)
                raise ResourceFailedError(
                    f"{self._resource_kind} failed: {reason}",
                    state=state,
                    state_reason=reason,
                )
            return False

        await self._poll(
            check,
            timeout_seconds=timeout_seconds,
            interval_seconds=interval_seconds,
            description=description
            or f"{self._resource_kind} to reach {sorted(map(str, success))}",
        )
        return self

    async def wait_until_ready_or_failed(
        self: R,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        pre_check: Optional[PreCheck] = None,
        config: Optional[Config] = None,
    ) -> R:
        """Wait until the resource reaches any final status, failed or not."""
        final = [s for s in Status if Status.is_final(s)]
        return await self.wait_until(
            final,
            timeout_seconds=timeout_seconds,
            interval_seconds=interval_seconds,
            pre_check=pre_check,
            config=config,
            description=f"{self._resource_kind} to reach a final status",
        )

    async def delete_and_wait_until_finished(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        pre_check: Optional[PreCheck] = None,
        config: Optional[Config] = None,
    ) -> None:
        """Delete the resource and wait until it can no longer be found.

        Raises:
            ResourceTimeoutError: If the resource still exists after the budget.
        """
        try:
            await self.delete(config=config)
        except ResourceNotExistError:
            return

        async def check() -> bool:
            try:
                await self.refresh(config=config)
            except ResourceNotExistError:
                return True
            await _call_hook(pre_check, self)
            return False

        await self._poll(
            check,
            timeout_seconds=timeout_seconds,
            interval_seconds=interval_seconds,
            description=f"{self._resource_kind} to be deleted",
        )
