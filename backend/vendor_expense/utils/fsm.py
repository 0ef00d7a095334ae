from __future__ import annotations
"""Small finite state machine guard for lifecycle models.

Used by the grow-room cycle, where the graph maps a room phase to the
operations legal in that phase:

    from vendor_expense.utils.fsm import TransitionValidator
    ROOM_FSM = TransitionValidator({
        'UNSEEDED': {'INIT', 'MOVE'},
        'IN_STAGE': {'MOVE', 'ACTIVITY'},
    }, field_name='room stage')
    ROOM_FSM.assert_can_transition(phase, 'INIT')

Raises StateConflict if the operation is not allowed.
"""
from typing import Dict, Optional, Set

from vendor_expense.errors import StateConflict


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str, description: Optional[str] = None):
        if not self.can_transition(current, target):
            raise StateConflict(description or f"Invalid {self.field_name} transition {current} -> {target}")
        return True


__all__ = ['TransitionValidator']
