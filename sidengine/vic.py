"""MOS 6567/6569/6572/6573 (VIC-II) video chip, accurate enough for SID playback."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Callable, NamedTuple, Protocol

from sidengine.lightpen import Lightpen
from sidengine.sprites import Sprites


class Phase(IntEnum):
    """Half of the system clock cycle."""

    PHI1 = 0
    PHI2 = 1


class VicModel(Enum):
    """Supported VIC-II revisions."""

    MOS6567R56A = 0  # old NTSC
    MOS6567R8 = 1  # NTSC-M
    MOS6569 = 2  # PAL-B
    MOS6572 = 3  # PAL-N
    MOS6573 = 4  # PAL-M


class Event(Protocol):
    """Something the scheduler can fire."""

    def event(self) -> None:
        """Handle the event."""


class EventScheduler(Protocol):
    """The clock source the chip is driven by."""

    def get_time(self, phase: Phase) -> int:
        """Current time in cycles, as seen from ``phase``."""

    def phase(self) -> Phase:
        """Phase of the clock the scheduler is currently in."""

    def schedule(self, event: Event, cycles: int, phase: Phase | None = None) -> None:
        """Fire ``event`` after ``cycles`` cycles, at ``phase`` if given."""

    def cancel(self, event: Event) -> None:
        """Remove ``event`` from the queue if it is pending."""


class _Callback:
    """A named event that calls a function when fired."""

    def __init__(self, name: str, func: Callable[[], None]) -> None:
        self.name = name
        self._func = func

    def event(self) -> None:
        self._func()

    def __repr__(self) -> str:
        return f"<event {self.name!r}>"


class _ModelData(NamedTuple):
    raster_lines: int
    cycles_per_line: int
    clock: str


_MODEL_DATA = {
    VicModel.MOS6567R56A: _ModelData(262, 64, "_clock_old_ntsc"),
    VicModel.MOS6567R8: _ModelData(263, 65, "_clock_ntsc"),
    VicModel.MOS6569: _ModelData(312, 63, "_clock_pal"),
    VicModel.MOS6572: _ModelData(312, 65, "_clock_ntsc"),
    VicModel.MOS6573: _ModelData(263, 65, "_clock_ntsc"),
}

# Cycle at which the VIC takes the bus in a bad line (BA goes low).
_FETCH_CYCLE = 11
_SCREEN_TEXTCOLS = 40

_IRQ_RASTER = 1 << 0
_IRQ_LIGHTPEN = 1 << 3

_FIRST_DMA_LINE = 0x30
_LAST_DMA_LINE = 0xF7


class MOS656X(ABC):
    """VIC-II emulation; not cycle exact.

    Subclasses connect the chip to the rest of the machine by implementing
    :meth:`interrupt` and :meth:`set_ba`.
    """

    def __init__(self, scheduler: EventScheduler) -> None:
        self._scheduler = scheduler
        self._regs = [0] * 0x40
        self._lp = Lightpen()
        self._sprites = Sprites(self._regs)

        self._raster_clk = 0
        self._cycles_per_line = 0
        self._max_rasters = 0
        self._line_cycle = 0
        self._raster_y = 0
        self._yscroll = 0
        self._are_bad_lines_enabled = False
        self._is_bad_line = False
        self._raster_y_irq_condition = False
        self._vblanking = False
        self._lp_asserted = False
        self._irq_flags = 0
        self._irq_mask = 0
        self._clock: Callable[[], int] = self._clock_pal
        self._model = VicModel.MOS6569

        self._bad_line_state_change_event = _Callback(
            "Update AEC signal", self._bad_line_state_change
        )
        self._raster_y_irq_edge_detector_event = _Callback(
            "RasterY changed", self._raster_y_irq_edge_detector
        )
        self._lightpen_trigger_event = _Callback("Trigger lightpen", self._lightpen_trigger)

        self.chip(VicModel.MOS6569)

    # Environment interface

    @abstractmethod
    def interrupt(self, state: bool) -> None:
        """Assert (``True``) or release (``False``) the IRQ line."""

    @abstractmethod
    def set_ba(self, state: bool) -> None:
        """Drive the BA (bus available) line."""

    # Introspection

    @property
    def model(self) -> VicModel:
        """Selected chip revision."""
        return self._model

    @property
    def raster_lines(self) -> int:
        """Number of raster lines per frame."""
        return self._max_rasters

    @property
    def cycles_per_line(self) -> int:
        """Number of cycles per raster line."""
        return self._cycles_per_line

    @property
    def raster_y(self) -> int:
        """Current raster line."""
        return self._raster_y

    @property
    def line_cycle(self) -> int:
        """Current cycle within the raster line."""
        return self._line_cycle

    @staticmethod
    def credits() -> str:
        """Component description."""
        return "MOS6567/6569/6572/6573 (VIC II) Emulation\n"

    # Public operations

    def chip(self, model: VicModel) -> None:
        """Select the chip revision and reset the chip."""
        data = _MODEL_DATA[model]
        self._model = model
        self._max_rasters = data.raster_lines
        self._cycles_per_line = data.cycles_per_line
        self._clock = getattr(self, data.clock)
        self._lp.set_screen_size(self._max_rasters, self._cycles_per_line)
        self.reset()

    def reset(self) -> None:
        """Reset the chip and restart its raster event."""
        self._irq_flags = 0
        self._irq_mask = 0
        self._yscroll = 0
        self._raster_y = self._max_rasters - 1
        self._line_cycle = 0
        self._are_bad_lines_enabled = False
        self._is_bad_line = False
        self._raster_y_irq_condition = False
        self._raster_clk = 0
        self._vblanking = False
        self._lp_asserted = False

        # Cleared in place: the sprite unit reads this same register file.
        self._regs[:] = [0] * len(self._regs)

        self._lp.reset()
        self._sprites.reset()

        self._scheduler.cancel(self)
        self._scheduler.schedule(self, 0, Phase.PHI1)

    def trigger_lightpen(self) -> None:
        """Assert the light pen input."""
        self._lp_asserted = True
        self._scheduler.schedule(self._lightpen_trigger_event, 1)

    def clear_lightpen(self) -> None:
        """Release the light pen input."""
        self._lp_asserted = False

    def read(self, addr: int) -> int:
        """Read a VIC register."""
        addr &= 0x3F
        self._sync()

        if addr == 0x11:
            return (self._regs[addr] & 0x7F) | ((self._raster_y & 0x100) >> 1)
        if addr == 0x12:
            return self._raster_y & 0xFF
        if addr == 0x13:
            return self._lp.x()
        if addr == 0x14:
            return self._lp.y()
        if addr == 0x19:
            return self._irq_flags | 0x70
        if addr == 0x1A:
            return self._irq_mask | 0xF0
        if addr < 0x20:
            return self._regs[addr]
        if addr < 0x2F:
            return self._regs[addr] | 0xF0
        return 0xFF

    def write(self, addr: int, data: int) -> None:
        """Write a VIC register."""
        addr &= 0x3F
        data &= 0xFF
        self._regs[addr] = data
        self._sync()

        if addr == 0x11:
            self._write_control_1(data)
        if addr in (0x11, 0x12):
            # Raster IRQ condition is rechecked at the next PHI1.
            self._scheduler.schedule(self._raster_y_irq_edge_detector_event, 0, Phase.PHI1)
        elif addr == 0x17:
            self._sprites.line_crunch(data, self._line_cycle)
        elif addr == 0x19:
            self._irq_flags &= (~data & 0x0F) | 0x80
            self._handle_irq_state()
        elif addr == 0x1A:
            self._irq_mask = data & 0x0F
            self._handle_irq_state()

    def event(self) -> None:
        """Raster event: catch up with the scheduler and run the line logic."""
        scheduler = self._scheduler
        cycles = scheduler.get_time(scheduler.phase()) - self._raster_clk

        if cycles:
            self._raster_clk += cycles
            self._line_cycle = (self._line_cycle + cycles) % self._cycles_per_line
            delay = self._clock()
        else:
            delay = 1

        scheduler.schedule(self, delay - scheduler.phase(), Phase.PHI1)

    # Register helpers

    def _write_control_1(self, data: int) -> None:
        old_yscroll = self._yscroll
        self._yscroll = data & 0x7

        # Bad line tricks.
        was_enabled = self._are_bad_lines_enabled

        if self._raster_y == _FIRST_DMA_LINE and self._line_cycle == 0:
            self._are_bad_lines_enabled = self._read_den()

        if self._old_raster_y() == _FIRST_DMA_LINE and self._read_den():
            self._are_bad_lines_enabled = True

        if (
            old_yscroll != self._yscroll or self._are_bad_lines_enabled != was_enabled
        ) and _FIRST_DMA_LINE <= self._raster_y <= _LAST_DMA_LINE:
            was_bad_line = was_enabled and old_yscroll == (self._raster_y & 7)
            now_bad_line = self._are_bad_lines_enabled and self._yscroll == (self._raster_y & 7)

            if now_bad_line != was_bad_line:
                old_bad_line = self._is_bad_line

                if was_bad_line:
                    if self._line_cycle < _FETCH_CYCLE:
                        self._is_bad_line = False
                elif self._line_cycle <= _FETCH_CYCLE + _SCREEN_TEXTCOLS + 6:
                    # During the fetch interval or before the raster counter moves on.
                    self._is_bad_line = True

                if self._is_bad_line != old_bad_line:
                    self._scheduler.schedule(self._bad_line_state_change_event, 0, Phase.PHI1)

    def _read_raster_line_irq(self) -> int:
        return self._regs[0x12] + ((self._regs[0x11] & 0x80) << 1)

    def _read_den(self) -> bool:
        return (self._regs[0x11] & 0x10) != 0

    def _evaluate_is_bad_line(self) -> bool:
        return (
            self._are_bad_lines_enabled
            and _FIRST_DMA_LINE <= self._raster_y <= _LAST_DMA_LINE
            and (self._raster_y & 7) == self._yscroll
        )

    def _old_raster_y(self) -> int:
        return (self._raster_y if self._raster_y > 0 else self._max_rasters) - 1

    def _sync(self) -> None:
        self._scheduler.cancel(self)
        self.event()

    # Interrupts

    def _handle_irq_state(self) -> None:
        if self._irq_flags & self._irq_mask & 0x0F:
            if not self._irq_flags & 0x80:
                self.interrupt(True)
                self._irq_flags |= 0x80
        elif self._irq_flags & 0x80:
            self.interrupt(False)
            self._irq_flags &= 0x7F

    def _activate_irq_flag(self, flag: int) -> None:
        self._irq_flags |= flag
        self._handle_irq_state()

    def _bad_line_state_change(self) -> None:
        self.set_ba(not self._is_bad_line)

    def _raster_y_irq_edge_detector(self) -> None:
        old_condition = self._raster_y_irq_condition
        self._raster_y_irq_condition = self._raster_y == self._read_raster_line_irq()
        if not old_condition and self._raster_y_irq_condition:
            self._activate_irq_flag(_IRQ_RASTER)

    def _lightpen_trigger(self) -> None:
        self._sync()
        if self._lp.trigger(self._line_cycle, self._raster_y):
            self._activate_irq_flag(_IRQ_LIGHTPEN)

    # Line logic

    def _check_vblank(self) -> None:
        if self._raster_y == self._max_rasters - 1:
            self._vblanking = True

        # Check DEN on the first cycle of the line following the first DMA line.
        if (
            self._raster_y == _FIRST_DMA_LINE
            and not self._are_bad_lines_enabled
            and self._read_den()
        ):
            self._are_bad_lines_enabled = True

        # No bad lines after the last possible one.
        if self._raster_y == _LAST_DMA_LINE:
            self._are_bad_lines_enabled = False

        self._is_bad_line = False

        if not self._vblanking:
            self._raster_y += 1
            self._raster_y_irq_edge_detector()
            if self._raster_y == _FIRST_DMA_LINE and not self._are_bad_lines_enabled:
                self._are_bad_lines_enabled = self._read_den()

        if self._evaluate_is_bad_line():
            self._is_bad_line = True

    def _vblank(self) -> None:
        if self._vblanking:
            self._vblanking = False
            self._raster_y = 0
            self._raster_y_irq_edge_detector()
            self._lp.untrigger()
            if self._lp_asserted and self._lp.retrigger():
                self._activate_irq_flag(_IRQ_LIGHTPEN)

    def _start_dma(self, n: int) -> None:
        if n == 0:
            self.set_ba(not self._sprites.is_dma(0x01))
        elif self._sprites.is_dma(0x01 << n):
            self.set_ba(False)

    def _end_dma(self, n: int) -> None:
        if n == 7 or not self._sprites.is_dma(0x06 << n):
            self.set_ba(True)

    def _start_badline(self) -> None:
        if self._is_bad_line:
            self.set_ba(False)

    def _clock_pal(self) -> int:
        delay = 1
        sprites = self._sprites
        cycle = self._line_cycle

        match cycle:
            case 0:
                self._check_vblank()
                self._end_dma(2)
            case 1:
                self._vblank()
                self._start_dma(5)
                if not sprites.is_dma(0xF8):
                    delay = 10
            case 2:
                self._end_dma(3)
            case 3:
                self._start_dma(6)
            case 4:
                self._end_dma(4)
            case 5:
                self._start_dma(7)
            case 6:
                self._end_dma(5)
                delay = 2 if sprites.is_dma(0xC0) else 5
            case 7 | 9 | 13:
                pass
            case 8:
                self._end_dma(6)
                delay = 2
            case 10:
                self._end_dma(7)
            case 11:
                self._start_badline()
                delay = 3
            case 12:
                delay = 2
            case 14:
                sprites.update_mc()
            case 15:
                sprites.update_mc_base()
                delay = 39
            case 54:
                sprites.check_dma(self._raster_y, self._regs)
                self._start_dma(0)
            case 55:
                sprites.check_dma(self._raster_y, self._regs)
                sprites.check_exp()
                self._start_dma(0)
            case 56:
                self._start_dma(1)
            case 57:
                sprites.check_display()
                if not sprites.is_dma(0x1F):
                    delay = 6
            case 58:
                self._start_dma(2)
            case 59:
                self._end_dma(0)
            case 60:
                self._start_dma(3)
            case 61:
                self._end_dma(1)
            case 62:
                self._start_dma(4)
            case _:
                delay = 54 - cycle

        return delay

    def _clock_ntsc(self) -> int:
        delay = 1
        sprites = self._sprites
        cycle = self._line_cycle

        match cycle:
            case 0:
                self._check_vblank()
                self._start_dma(5)
            case 1:
                self._vblank()
                self._end_dma(3)
                if not sprites.is_dma(0xF0):
                    delay = 10
            case 2:
                self._start_dma(6)
            case 3:
                self._end_dma(4)
            case 4:
                self._start_dma(7)
            case 5:
                self._end_dma(5)
                delay = 2 if sprites.is_dma(0xC0) else 6
            case 6 | 8 | 10 | 13:
                pass
            case 7:
                self._end_dma(6)
                delay = 2
            case 9:
                self._end_dma(7)
                delay = 2
            case 11:
                self._start_badline()
                delay = 3
            case 12:
                delay = 2
            case 14:
                sprites.update_mc()
            case 15:
                sprites.update_mc_base()
                delay = 39
            case 54:
                self.set_ba(True)
            case 55:
                sprites.check_dma(self._raster_y, self._regs)
                sprites.check_exp()
                self._start_dma(0)
            case 56:
                sprites.check_dma(self._raster_y, self._regs)
                self._start_dma(0)
            case 57:
                self._start_dma(1)
            case 58:
                sprites.check_display()
                if not sprites.is_dma(0x1F):
                    delay = 7
            case 59:
                self._start_dma(2)
            case 60:
                self._end_dma(0)
            case 61:
                self._start_dma(3)
            case 62:
                self._end_dma(1)
            case 63:
                self._start_dma(4)
            case 64:
                self._end_dma(2)
            case _:
                delay = 54 - cycle

        return delay

    def _clock_old_ntsc(self) -> int:
        delay = 1
        sprites = self._sprites
        cycle = self._line_cycle

        match cycle:
            case 0:
                self._check_vblank()
                self._end_dma(2)
            case 1:
                self._vblank()
                self._start_dma(5)
                if not sprites.is_dma(0xF8):
                    delay = 10
            case 2:
                self._end_dma(3)
            case 3:
                self._start_dma(6)
            case 4:
                self._end_dma(4)
            case 5:
                self._start_dma(7)
            case 6:
                self._end_dma(5)
                delay = 2 if sprites.is_dma(0xC0) else 5
            case 7 | 9 | 13 | 58:
                pass
            case 8:
                self._end_dma(6)
                delay = 2
            case 10:
                self._end_dma(7)
            case 11:
                self._start_badline()
                delay = 3
            case 12:
                delay = 2
            case 14:
                sprites.update_mc()
            case 15:
                sprites.update_mc_base()
                delay = 39
            case 54:
                self.set_ba(True)
            case 55:
                sprites.check_dma(self._raster_y, self._regs)
                sprites.check_exp()
                self._start_dma(0)
            case 56:
                sprites.check_dma(self._raster_y, self._regs)
                self._start_dma(0)
            case 57:
                sprites.check_display()
                self._start_dma(1)
                delay = 2 if sprites.is_dma(0x1F) else 7
            case 59:
                self._start_dma(2)
            case 60:
                self._end_dma(0)
            case 61:
                self._start_dma(3)
            case 62:
                self._end_dma(1)
            case 63:
                self._start_dma(4)
            case _:
                delay = 54 - cycle

        return delay