"""Light pen latch of the VIC-II video chip."""

from __future__ import annotations

_PAL_CYCLES_PER_LINE = 63
_NTSC_CYCLES_PER_LINE = 65

# Line cycle at which the x coordinate counter starts.
_FIRST_X_CYCLE = 13


class Lightpen:
    """Light pen emulation; model differences between chip revisions are ignored."""

    def __init__(self) -> None:
        self._last_line = 0
        self._cycles_per_line = _PAL_CYCLES_PER_LINE
        self._lpx = 0
        self._lpy = 0
        self._is_triggered = False

    def _xpos(self, line_cycle: int) -> int:
        """Transform a line cycle into the x coordinate divided by two."""
        if line_cycle < _FIRST_X_CYCLE:
            line_cycle += self._cycles_per_line
        line_cycle -= _FIRST_X_CYCLE

        # On NTSC the x position is not incremented at line cycle 61.
        if (
            self._cycles_per_line == _NTSC_CYCLES_PER_LINE
            and line_cycle > 61 - _FIRST_X_CYCLE
        ):
            line_cycle -= 1

        return (line_cycle << 2) & 0xFF

    def set_screen_size(self, height: int, width: int) -> None:
        """Set the number of raster lines and the cycles per line."""
        self._last_line = height - 1
        self._cycles_per_line = width

    def reset(self) -> None:
        """Clear the latched coordinates and the trigger flag."""
        self._lpx = 0
        self._lpy = 0
        self._is_triggered = False

    def x(self) -> int:
        """Low byte of the latched x coordinate."""
        return self._lpx & 0xFF

    def y(self) -> int:
        """Low byte of the latched y coordinate."""
        return self._lpy & 0xFF

    @property
    def triggered(self) -> bool:
        """Whether the light pen has fired in the current frame."""
        return self._is_triggered

    def retrigger(self) -> bool:
        """Retrigger on vertical blank; return whether an IRQ should be raised."""
        if self._is_triggered:
            return False
        self._is_triggered = True

        self._lpx = 0xD5 if self._cycles_per_line == _NTSC_CYCLES_PER_LINE else 0xD1
        self._lpy = 0
        return True

    def trigger(self, line_cycle: int, raster_y: int) -> bool:
        """Trigger from the CIA; return whether an IRQ should be raised."""
        if self._is_triggered:
            return False
        self._is_triggered = True

        # No latch on the last line, except on its first cycle.
        if raster_y == self._last_line and line_cycle > 0:
            return False

        self._lpx = self._xpos(line_cycle) + 2
        self._lpy = raster_y
        return True

    def untrigger(self) -> None:
        """Release the trigger so the light pen may fire again."""
        self._is_triggered = False