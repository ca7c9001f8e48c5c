"""
Gesture combo detection.

Combos are short ordered gesture sequences performed within a timeout.
Detection is optimistic: the first gesture matching a combo's opening
step activates that combo and fires COMBO_DETECTED straight away. Each
following gesture must match the next step. A mismatching gesture that
opens another combo switches to it; otherwise the active combo fails.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.constants import DEFAULT_COMBO_TIMEOUT_MS
from ..core.events import EventEmitter, EventType
from .gesture_types import GestureType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComboDefinition:
    """Static description of a gesture combo."""
    id: str
    name: str
    sequence: Tuple[GestureType, ...]
    description: str = ''
    effect: str = ''
    points: int = 0
    timeout_ms: int = DEFAULT_COMBO_TIMEOUT_MS


GESTURE_COMBOS: Dict[str, ComboDefinition] = {
    'POWER_UP': ComboDefinition(
        id='power_up',
        name='Power Up',
        sequence=(GestureType.CLOSED_FIST, GestureType.VICTORY, GestureType.THUMBS_UP),
        description='Fist -> Victory -> Thumbs Up',
        effect='Increases object interaction power',
        points=100,
    ),
    'MAGIC_TOUCH': ComboDefinition(
        id='magic_touch',
        name='Magic Touch',
        sequence=(GestureType.OPEN_HAND, GestureType.PINCH, GestureType.OK_SIGN),
        description='Open Hand -> Pinch -> OK Sign',
        effect='Creates magical particle effects',
        points=150,
    ),
    'ROCK_STAR': ComboDefinition(
        id='rock_star',
        name='Rock Star',
        sequence=(GestureType.ROCK_ON, GestureType.ROCK_ON, GestureType.VICTORY),
        description='Rock On -> Rock On -> Victory',
        effect='Activates special lighting effects',
        points=200,
    ),
    'PRECISION_MASTER': ComboDefinition(
        id='precision_master',
        name='Precision Master',
        sequence=(GestureType.POINT, GestureType.PINCH, GestureType.POINT),
        description='Point -> Pinch -> Point',
        effect='Enables precise object manipulation',
        points=120,
    ),
    'CELEBRATION': ComboDefinition(
        id='celebration',
        name='Celebration',
        sequence=(GestureType.THUMBS_UP, GestureType.VICTORY, GestureType.THUMBS_UP),
        description='Thumbs Up -> Victory -> Thumbs Up',
        effect='Triggers celebration animation',
        points=80,
    ),
}


@dataclass
class GestureHistoryEntry:
    gesture: GestureType
    confidence: float
    timestamp: int  # ms


@dataclass
class ActiveCombo:
    """A combo in progress."""
    combo: ComboDefinition
    matched: int
    start_time: int  # ms

    @property
    def id(self) -> str:
        return self.combo.id

    @property
    def progress(self) -> float:
        return self.matched / len(self.combo.sequence)


@dataclass
class SequenceMatch:
    is_partial: bool = False
    is_complete: bool = False
    progress: float = 0.0


def matches_sequence(current: Sequence[GestureType], target: Sequence[GestureType]) -> SequenceMatch:
    """
    Compare a gesture sequence against a combo sequence.

    ``is_complete`` when both are equal, ``is_partial`` when ``current``
    is a non-empty proper prefix of ``target``. Progress is the matched
    fraction of ``target``; 0 when neither holds.
    """
    current, target = list(current), list(target)
    if not current or not target:
        return SequenceMatch()

    if current == target:
        return SequenceMatch(is_complete=True, progress=1.0)

    if len(current) < len(target) and target[:len(current)] == current:
        return SequenceMatch(is_partial=True, progress=len(current) / len(target))

    return SequenceMatch()


def get_all_combos() -> List[ComboDefinition]:
    return list(GESTURE_COMBOS.values())


def get_combo_by_id(combo_id: str) -> Optional[ComboDefinition]:
    """Look up a combo by id (``power_up``) or key (``POWER_UP``)."""
    if combo_id in GESTURE_COMBOS:
        return GESTURE_COMBOS[combo_id]
    for combo in GESTURE_COMBOS.values():
        if combo.id == combo_id:
            return combo
    return None


def get_combo_by_sequence(sequence: Sequence[GestureType]) -> Optional[ComboDefinition]:
    sequence = tuple(sequence)
    for combo in GESTURE_COMBOS.values():
        if combo.sequence == sequence:
            return combo
    return None


class GestureSequenceDetector(EventEmitter):
    """
    Matches the stream of classified gestures against the combo library.

    Emits COMBO_DETECTED, COMBO_COMPLETED and COMBO_FAILED with the
    ComboDefinition concerned.
    """

    def __init__(self,
                 timeout_ms: int = DEFAULT_COMBO_TIMEOUT_MS,
                 combos: Optional[Sequence[ComboDefinition]] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the detector.

        Args:
            timeout_ms: History window; older gestures are purged
            combos: Combo library, defaults to GESTURE_COMBOS in definition order
            clock: Wall-clock source in seconds
        """
        super().__init__()
        self.timeout_ms = timeout_ms
        self.combos: List[ComboDefinition] = list(combos) if combos is not None else get_all_combos()
        self.clock = clock

        self.gesture_history: List[GestureHistoryEntry] = []
        self.active_combo: Optional[ActiveCombo] = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def set_event_handlers(self,
                           on_combo_detected: Optional[Callable[[ComboDefinition], Any]] = None,
                           on_combo_completed: Optional[Callable[[ComboDefinition], Any]] = None,
                           on_combo_failed: Optional[Callable[[ComboDefinition], Any]] = None) -> None:
        """Register callbacks for the three combo events."""
        for event_type, callback in ((EventType.COMBO_DETECTED, on_combo_detected),
                                     (EventType.COMBO_COMPLETED, on_combo_completed),
                                     (EventType.COMBO_FAILED, on_combo_failed)):
            if callback is not None:
                self.on(event_type, callback)

    def add_gesture(self, gesture: GestureType, confidence: float = 1.0) -> Optional[ActiveCombo]:
        """
        Record a gesture and advance combo matching.

        Args:
            gesture: Classified gesture
            confidence: Classification confidence

        Returns:
            The active combo after this gesture, or None
        """
        now = self._now_ms()
        self._clean_old_gestures(now)
        self._expire_active_combo(now)

        self.gesture_history.append(GestureHistoryEntry(gesture, confidence, now))
        self._check_for_combos(gesture, now)
        return self.active_combo

    def _clean_old_gestures(self, now: int) -> None:
        self.gesture_history = [entry for entry in self.gesture_history
                                if now - entry.timestamp < self.timeout_ms]

    def _expire_active_combo(self, now: int) -> None:
        active = self.active_combo
        if active is not None and now - active.start_time >= active.combo.timeout_ms:
            logger.debug(f"Combo {active.id} timed out")
            self._fail_combo()

    def _check_for_combos(self, gesture: GestureType, now: int) -> None:
        active = self.active_combo
        if active is not None:
            if active.combo.sequence[active.matched] == gesture:
                active.matched += 1
                if active.matched == len(active.combo.sequence):
                    self._complete_combo(now)
                return

            if not self._start_matching_combo(gesture, now):
                self._fail_combo()
            return

        self._start_matching_combo(gesture, now)

    def _start_matching_combo(self, gesture: GestureType, now: int) -> bool:
        for combo in self.combos:
            if combo.sequence and combo.sequence[0] == gesture:
                self.active_combo = ActiveCombo(combo, matched=1, start_time=now)
                logger.info(f"Combo detected: {combo.name}")
                self.emit(EventType.COMBO_DETECTED, combo)
                if len(combo.sequence) == 1:
                    self._complete_combo(now)
                return True
        return False

    def _complete_combo(self, now: int) -> None:
        active = self.active_combo
        logger.info(f"Combo completed: {active.combo.name} in {now - active.start_time}ms "
                    f"(+{active.combo.points} points)")
        self.active_combo = None
        self.gesture_history = []
        self.emit(EventType.COMBO_COMPLETED, active.combo)

    def _fail_combo(self) -> None:
        active = self.active_combo
        self.active_combo = None
        if active is not None:
            logger.info(f"Combo failed: {active.combo.name}")
            self.emit(EventType.COMBO_FAILED, active.combo)

    def matches_sequence(self, current: Sequence[GestureType], target: Sequence[GestureType]) -> SequenceMatch:
        return matches_sequence(current, target)

    def get_combo_status(self) -> Dict[str, Any]:
        return {
            'active_combo': self.active_combo,
            'gesture_history': list(self.gesture_history),
            'available_combos': list(self.combos),
        }

    def reset(self) -> None:
        self.active_combo = None
        self.gesture_history = []
