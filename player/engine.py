"""
Replay engine for Autoflow.

This module re-enacts a recorded workflow on a live page. It ties
together:

- An ElementLocator, to resolve each step's fingerprint to an element.
- A PageActuator, to dispatch the synthetic interaction.
- ReplayConfig, for the resolution deadline, poll cadence and pacing.

Each step goes through:

    PENDING -> RESOLVING -> RESOLVED -> ACTING -> SETTLED
    PENDING -> RESOLVING -> TIMED_OUT
    PENDING -> RESOLVING -> FAILED      (the locator raised)

RESOLVING retries once per frame until an element is found and visible
or the step deadline passes. Resolution tries the exact structural path
first and falls back to the text snippet among elements of the same tag.

Steps run strictly in order. The first step that times out, fails or is
cancelled ends the replay; elements already acted upon
are left as they are. Nothing is retried and nothing is undone.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from common.config import ReplayConfig
from common.models.actions import ActionEvent, EventType
from .locator import ElementLocator, PageActuator

LOG = logging.getLogger(__name__)

CLICK_SEQUENCE = ("mousedown", "mouseup", "click")
INPUT_SEQUENCE = ("input", "change")

FrameWaiter = Callable[[], Awaitable[None]]


class ReplayError(Exception):
    """Base class for errors that end a replay."""

    def __init__(self, message: str, *, step_index: int, action: ActionEvent) -> None:
        super().__init__(message)
        self.step_index = step_index
        self.action = action


class ElementResolutionTimeout(ReplayError):
    """Raised when a step's element is not found and visible in time."""


class ElementLookupError(ReplayError):
    """Raised when the locator itself fails while resolving a step's element."""


class ActionDispatchError(ReplayError):
    """Raised when dispatching a step's interaction fails."""


class ReplayCancelled(ReplayError):
    """Raised when the cancellation token is set during a replay."""


class StepState(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    ACTING = "acting"
    SETTLED = "settled"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ReplayStatus(str, Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """
    Cooperative cancellation flag checked at every suspension point of a
    replay (resolution polling and the settle delay).
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, delay: float) -> bool:
        """
        Sleep up to `delay` seconds, waking early on cancellation.

        Returns:
            True if the token was cancelled.
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True


@dataclass
class ReplayOutcome:
    """
    Result of one replay call.

    `failed_step` is the 0-based index of the step that ended the replay;
    it is None when every step settled.
    """

    status: ReplayStatus
    total_steps: int
    steps_completed: int = 0
    failed_step: Optional[int] = None
    failed_action: Optional[ActionEvent] = None
    reason: Optional[str] = None
    states: List[StepState] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.status == ReplayStatus.COMPLETED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "total_steps": self.total_steps,
            "steps_completed": self.steps_completed,
            "failed_step": self.failed_step,
            "failed_action": self.failed_action.to_dict() if self.failed_action else None,
            "reason": self.reason,
            "states": [s.value for s in self.states],
        }


class ReplayEngine:
    """
    Sequential re-enactment of ActionEvents on a live page.

    Typical usage from the page context:

        page = SnapshotPage(document)      # or a real browser bridge
        engine = ReplayEngine(locator=page, actuator=page)
        outcome = await engine.replay(workflow.actions)
        if not outcome.completed:
            report(outcome.failed_action, outcome.reason)

    `frame_waiter` replaces the default one-frame sleep; a browser bridge
    passes a coroutine that resolves on the next animation frame.
    """

    def __init__(
        self,
        *,
        locator: ElementLocator,
        actuator: PageActuator,
        config: Optional[ReplayConfig] = None,
        frame_waiter: Optional[FrameWaiter] = None,
    ) -> None:
        self._locator = locator
        self._actuator = actuator
        self._config = config or ReplayConfig()
        self._config.validate()
        self._frame_waiter = frame_waiter

    @property
    def config(self) -> ReplayConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def replay(
        self,
        actions: Sequence[ActionEvent],
        cancel: Optional[CancellationToken] = None,
    ) -> ReplayOutcome:
        """
        Replay `actions` in order.

        Returns:
            ReplayOutcome; a failure is reported in the outcome, never
            raised.
        """
        actions = list(actions)
        states = [StepState.PENDING] * len(actions)
        outcome = ReplayOutcome(
            status=ReplayStatus.COMPLETED,
            total_steps=len(actions),
            states=states,
        )
        LOG.info("Starting replay of %d step(s)", len(actions))

        for index, action in enumerate(actions):
            try:
                await self._run_step(index, action, states, cancel)
            except ReplayError as exc:
                outcome.status = _status_for(exc)
                outcome.failed_step = index
                outcome.failed_action = action
                outcome.reason = str(exc)
                LOG.error("Replay failed at step %d (%s): %s", index, action.fingerprint.css_path, exc)
                return outcome
            outcome.steps_completed += 1

        LOG.info("Replay completed (%d step(s))", len(actions))
        return outcome

    # ------------------------------------------------------------------ #
    # Step execution
    # ------------------------------------------------------------------ #

    async def _run_step(
        self,
        index: int,
        action: ActionEvent,
        states: List[StepState],
        cancel: Optional[CancellationToken],
    ) -> None:
        def enter(state: StepState) -> None:
            states[index] = state
            LOG.debug("Step %d -> %s", index, state.value)

        enter(StepState.RESOLVING)
        try:
            element = await self.wait_for_element(action, step_index=index, cancel=cancel)
        except ElementResolutionTimeout:
            enter(StepState.TIMED_OUT)
            raise
        except ReplayCancelled:
            enter(StepState.CANCELLED)
            raise
        except Exception as exc:
            enter(StepState.FAILED)
            raise ElementLookupError(
                f"Could not look up element {action.fingerprint.css_path}: {exc}",
                step_index=index,
                action=action,
            ) from exc
        enter(StepState.RESOLVED)

        enter(StepState.ACTING)
        try:
            try:
                self._actuator.scroll_into_view(element)
                self._actuator.set_highlight(element, self._config.highlight_style)
                self._perform(element, action)
            except Exception as exc:
                enter(StepState.FAILED)
                raise ActionDispatchError(
                    f"Could not dispatch {action.event_type.value}: {exc}",
                    step_index=index,
                    action=action,
                ) from exc
            cancelled = await self._pause(self._config.settle_delay, cancel)
        finally:
            self._clear_highlight(element)
        if cancelled:
            enter(StepState.CANCELLED)
            raise ReplayCancelled("Replay cancelled", step_index=index, action=action)
        enter(StepState.SETTLED)

    def _clear_highlight(self, element: Any) -> None:
        # Must not replace the error that ended the step.
        try:
            self._actuator.set_highlight(element, None)
        except Exception:
            LOG.warning("Could not remove highlight", exc_info=True)

    def _perform(self, element: Any, action: ActionEvent) -> None:
        if action.event_type == EventType.CLICK:
            for event_type in CLICK_SEQUENCE:
                self._actuator.dispatch(element, event_type)
        elif action.event_type == EventType.INPUT:
            self._actuator.focus(element)
            self._actuator.set_value(element, action.value or "")
            for event_type in INPUT_SEQUENCE:
                self._actuator.dispatch(element, event_type)
            self._actuator.blur(element)

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def resolve(self, action: ActionEvent) -> Optional[Any]:
        """
        Single resolution attempt.

        Returns the element only if it is also visible.
        """
        fingerprint = action.fingerprint
        element = self._locator.find_by_path(fingerprint.path)
        if element is None and fingerprint.snippet:
            element = self._locator.find_by_tag_and_text(
                fingerprint.tag_name, fingerprint.snippet
            )
        if element is not None and self._locator.is_visible(element):
            return element
        return None

    async def wait_for_element(
        self,
        action: ActionEvent,
        *,
        step_index: int = 0,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Poll `resolve()` once per frame until it succeeds.

        Raises:
            ElementResolutionTimeout once `resolve_timeout` has elapsed
            since the first attempt.
            ReplayCancelled if `cancel` is set while polling.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.resolve_timeout

        while True:
            if cancel is not None and cancel.cancelled:
                raise ReplayCancelled("Replay cancelled", step_index=step_index, action=action)

            element = self.resolve(action)
            if element is not None:
                return element

            if loop.time() >= deadline:
                raise ElementResolutionTimeout(
                    f"Element not found: {action.fingerprint.css_path}",
                    step_index=step_index,
                    action=action,
                )

            if await self._next_frame(cancel):
                raise ReplayCancelled("Replay cancelled", step_index=step_index, action=action)

    async def _next_frame(self, cancel: Optional[CancellationToken]) -> bool:
        if self._frame_waiter is not None:
            await self._frame_waiter()
            return cancel is not None and cancel.cancelled
        return await self._pause(self._config.frame_interval, cancel)

    @staticmethod
    async def _pause(delay: float, cancel: Optional[CancellationToken]) -> bool:
        if cancel is not None:
            return await cancel.sleep(delay)
        await asyncio.sleep(delay)
        return False


def _status_for(exc: ReplayError) -> ReplayStatus:
    if isinstance(exc, ElementResolutionTimeout):
        return ReplayStatus.TIMED_OUT
    if isinstance(exc, ReplayCancelled):
        return ReplayStatus.CANCELLED
    return ReplayStatus.FAILED
