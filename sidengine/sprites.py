"""Sprite DMA bookkeeping of the VIC-II video chip."""

from __future__ import annotations

from typing import MutableSequence, Sequence

SPRITES = 8

_REG_ENABLE = 0x15
_REG_Y_EXPANSION = 0x17


def _masks():
    return ((i, 1 << i) for i in range(SPRITES))


class Sprites:
    """Track sprite DMA, expansion flip-flops and memory counters.

    ``regs`` is the VIC register file; the enable and y-expansion registers
    are read from it live.
    """

    def __init__(self, regs: Sequence[int]) -> None:
        self._regs = regs
        self._exp_flop = 0xFF
        self._dma = 0
        self._mc_base: MutableSequence[int] = [0] * SPRITES
        self._mc: MutableSequence[int] = [0] * SPRITES
        self.reset()

    @property
    def dma(self) -> int:
        """Bit mask of sprites with active DMA."""
        return self._dma

    @property
    def exp_flop(self) -> int:
        """Bit mask of the y-expansion flip-flops."""
        return self._exp_flop

    @property
    def mc(self) -> tuple[int, ...]:
        """Memory counters of the eight sprites."""
        return tuple(self._mc)

    @property
    def mc_base(self) -> tuple[int, ...]:
        """Memory counter bases of the eight sprites."""
        return tuple(self._mc_base)

    def reset(self) -> None:
        """Clear DMA and counters, set all expansion flip-flops."""
        self._exp_flop = 0xFF
        self._dma = 0
        self._mc_base = [0] * SPRITES
        self._mc = [0] * SPRITES

    def update_mc(self) -> None:
        """Advance the memory counters after the DMA has been processed."""
        for i, mask in _masks():
            if self._dma & mask:
                self._mc[i] = (self._mc[i] + 3) & 0x3F

    def update_mc_base(self) -> None:
        """Update the memory counter bases, ending DMA for finished sprites."""
        for i, mask in _masks():
            if self._exp_flop & mask:
                self._mc_base[i] = self._mc[i]
                if self._mc_base[i] == 0x3F:
                    self._dma &= ~mask & 0xFF

    def check_exp(self) -> None:
        """Toggle the expansion flip-flops of y-expanded sprites under DMA."""
        self._exp_flop ^= self._dma & self._regs[_REG_Y_EXPANSION]

    def check_display(self) -> None:
        """Reload the memory counters from their bases."""
        self._mc = list(self._mc_base)

    def check_dma(self, raster_y: int, regs: Sequence[int]) -> None:
        """Start DMA for enabled sprites whose y coordinate matches the raster line."""
        y = raster_y & 0xFF
        enable = self._regs[_REG_ENABLE]
        for i, mask in _masks():
            if enable & mask and y == regs[(i << 1) + 1] and not self._dma & mask:
                self._dma |= mask
                self._mc_base[i] = 0
                self._exp_flop |= mask

    def line_crunch(self, data: int, line_cycle: int) -> None:
        """Handle a write to the y-expansion register (sprite crunch)."""
        for i, mask in _masks():
            if not data & mask and not self._exp_flop & mask:
                if line_cycle == 14:
                    mc_i = self._mc[i]
                    base_i = self._mc_base[i]
                    self._mc[i] = (0x2A & (base_i & mc_i)) | (0x15 & (base_i | mc_i))
                self._exp_flop |= mask

    def is_dma(self, val: int) -> bool:
        """Whether DMA is active for any sprite in the bit mask ``val``."""
        return bool(self._dma & val)