"""
Pointer input as an explicit state machine (idle -> painting -> idle).

Hosts translate their native events into ``PointerEvent`` and feed them to
``InteractionController.dispatch``; nothing here depends on a windowing API.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging

from engine.session_manager import VisualizerSession
from visual.grid_mapper import GridMapper

logger = logging.getLogger(__name__)


class PointerKind(Enum):
    PRESS = "press"
    MOVE = "move"
    RELEASE = "release"
    LEAVE = "leave"
    CLICK = "click"


class InteractionState(Enum):
    IDLE = "idle"
    PAINTING = "painting"


@dataclass(frozen=True)
class PointerEvent:
    kind: PointerKind
    x: float
    y: float


class InteractionController:
    def __init__(self, session: VisualizerSession, mapper: GridMapper):
        self.session = session
        self.mapper = mapper
        self.state = InteractionState.IDLE

    def dispatch(self, event: PointerEvent) -> InteractionState:
        handler = {
            PointerKind.PRESS: self._on_press,
            PointerKind.MOVE: self._on_move,
            PointerKind.RELEASE: self._on_release,
            PointerKind.LEAVE: self._on_release,
            PointerKind.CLICK: self._on_click,
        }[event.kind]
        handler(event)
        return self.state

    def _on_press(self, event: PointerEvent) -> None:
        # tracking clicks take priority over painting when both modes are on
        if not self.session.brush_mode or self.session.tracking_mode:
            return
        self.state = InteractionState.PAINTING
        self._paint(event)

    def _on_move(self, event: PointerEvent) -> None:
        if self.state is InteractionState.PAINTING and self.session.brush_mode:
            self._paint(event)

    def _on_release(self, event: PointerEvent) -> None:
        self.state = InteractionState.IDLE
        if self.session.brush_mode:
            self.session.apply_inputs()

    def _on_click(self, event: PointerEvent) -> None:
        if not self.session.tracking_mode:
            return
        row, col = self.mapper.to_grid(event.x, event.y)
        if not self.mapper.in_bounds(row, col):
            return
        result = self.session.toggle_tracked(row, col)
        if result is None:
            logger.info(f"Tracked cell limit reached ({self.session.tracker.capacity})")

    def _paint(self, event: PointerEvent) -> None:
        row, col = self.mapper.to_grid(event.x, event.y)
        # stamp filters out-of-range cells
        self.session.stamp_at(row, col)
