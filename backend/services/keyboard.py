"""
Keyboard and pointer navigation for location suggestion dropdowns.

Translates key presses into location field transitions. Indices wrap in both
directions; Enter selects the highlighted suggestion; Escape closes the
dropdown and moves focus away without touching the text or selection.
"""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from services.location_field import LocationField


class Key(str, Enum):
    ARROW_DOWN = "ArrowDown"
    ARROW_UP = "ArrowUp"
    ENTER = "Enter"
    ESCAPE = "Escape"


def next_index(current: int, count: int) -> int:
    return (current + 1) % count


def previous_index(current: int, count: int) -> int:
    # Nothing highlighted (-1) also wraps to the last item.
    return count - 1 if current <= 0 else current - 1


class KeyboardNavigator:
    def __init__(self, field: "LocationField"):
        self.field = field

    def handle_key(self, key: Union[Key, str]) -> bool:
        """
        Apply one key press to the field.

        Returns:
            True when the key was consumed (the caller should prevent the
            default action), False when it had no effect
        """
        try:
            key = Key(key)
        except ValueError:
            return False

        field = self.field
        count = len(field.suggestions)
        if not field.is_open or count == 0:
            if key is Key.ESCAPE:
                self._dismiss()
                return True
            return False

        if key is Key.ARROW_DOWN:
            field.active_index = next_index(field.active_index, count)
        elif key is Key.ARROW_UP:
            field.active_index = previous_index(field.active_index, count)
        elif key is Key.ENTER:
            if 0 <= field.active_index < count:
                field.select(field.active_index)
        elif key is Key.ESCAPE:
            self._dismiss()
        return True

    def hover(self, index: int) -> None:
        """Highlight without selecting."""
        if 0 <= index < len(self.field.suggestions):
            self.field.active_index = index

    def mouse_down(self, index: int) -> None:
        # Selection happens on mouse-down so it lands before the outside-click
        # handler closes the dropdown.
        self.field.select(index)

    def _dismiss(self) -> None:
        self.field.close_dropdown()
        self.field.blur()
