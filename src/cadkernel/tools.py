"""Multi-pick tool state machines.

Each tool walks ``IDLE → AWAITING_SECOND_PICK → COMMITTED``; ``reset()``
returns it to ``IDLE`` and is how an interaction is cancelled. A pick made
after ``COMMITTED`` starts a new interaction.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable

from .fillet import FilletMode, fillet_entities
from .models import CADEntity, Line, ModifyResult, Point
from .offset import offset_entity
from .transform import mirror_entities

logger = logging.getLogger(__name__)


class ToolState(enum.Enum):
    IDLE = "idle"
    AWAITING_SECOND_PICK = "awaiting_second_pick"
    COMMITTED = "committed"


class _Tool:
    prompts: dict[ToolState, str] = {}

    def __init__(self) -> None:
        self.state = ToolState.IDLE

    @property
    def prompt(self) -> str:
        return self.prompts.get(self.state, "")

    def reset(self) -> None:
        self.state = ToolState.IDLE

    def _restart_if_committed(self) -> None:
        if self.state is ToolState.COMMITTED:
            self.reset()


class FilletTool(_Tool):
    """Pick two lines; the second pick rounds or bevels their corner."""

    prompts = {
        ToolState.IDLE: "Select first line",
        ToolState.AWAITING_SECOND_PICK: "Select second line",
        ToolState.COMMITTED: "Corner applied",
    }

    def __init__(self, radius: float, mode: FilletMode = "fillet") -> None:
        super().__init__()
        self.radius = radius
        self.mode = mode
        self.first: CADEntity | None = None

    def reset(self) -> None:
        super().reset()
        self.first = None

    def pick(self, entity: CADEntity) -> ModifyResult | None:
        self._restart_if_committed()
        if not isinstance(entity.data, Line):
            logger.debug("Fillet pick ignored: %s is not a line", entity.id)
            return None
        if self.state is ToolState.IDLE:
            self.first = entity
            self.state = ToolState.AWAITING_SECOND_PICK
            return None
        if self.first is None or entity.id == self.first.id:
            return None
        result = fillet_entities(self.first, entity, self.radius, self.mode)
        if result is None:
            # stay armed with the first line so another second pick can be tried
            return None
        self.first = None
        self.state = ToolState.COMMITTED
        return result


class OffsetTool(_Tool):
    """Pick an entity, then a point on the side to offset toward."""

    prompts = {
        ToolState.IDLE: "Select object to offset",
        ToolState.AWAITING_SECOND_PICK: "Specify point on side to offset",
        ToolState.COMMITTED: "Offset created",
    }

    def __init__(self, distance: float) -> None:
        super().__init__()
        self.distance = distance
        self.target: CADEntity | None = None

    def reset(self) -> None:
        super().reset()
        self.target = None

    def pick_entity(self, entity: CADEntity) -> None:
        self._restart_if_committed()
        self.target = entity
        self.state = ToolState.AWAITING_SECOND_PICK

    def pick_side(self, point: Point) -> CADEntity | None:
        if self.state is not ToolState.AWAITING_SECOND_PICK or self.target is None:
            return None
        created = offset_entity(self.target, self.distance, point)
        if created is None:
            self.reset()
            return None
        self.target = None
        self.state = ToolState.COMMITTED
        return created


class MirrorTool(_Tool):
    """Mirror a selection across the axis defined by two picked points."""

    prompts = {
        ToolState.IDLE: "Specify first point of mirror line",
        ToolState.AWAITING_SECOND_PICK: "Specify second point of mirror line",
        ToolState.COMMITTED: "Mirror applied",
    }

    def __init__(self, selection: Iterable[CADEntity], keep_original: bool = True) -> None:
        super().__init__()
        self.selection = tuple(selection)
        self.keep_original = keep_original
        self.axis_start: Point | None = None

    def reset(self) -> None:
        super().reset()
        self.axis_start = None

    def pick_point(self, point: Point) -> ModifyResult | None:
        self._restart_if_committed()
        if self.state is ToolState.IDLE or self.axis_start is None:
            self.axis_start = point
            self.state = ToolState.AWAITING_SECOND_PICK
            return None
        result = mirror_entities(self.selection, self.axis_start, point, self.keep_original)
        if result is None:
            return None
        self.axis_start = None
        self.state = ToolState.COMMITTED
        return result
