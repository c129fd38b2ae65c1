"""Register-level front end shared by the SID filter models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, Sequence

# A lookup table produced by a filter model configuration.
Table = Sequence[int]


class FilterModelConfig(Protocol):
    """Lookup tables a filter model provides.

    ``mixer[n]`` and ``summer[n]`` are the tables for ``n`` inputs,
    ``volume[v]`` the amplifier table for master volume ``v`` and
    ``resonance[r]`` the feedback table for resonance setting ``r``.
    """

    mixer: Sequence[Table]
    summer: Sequence[Table]
    volume: Sequence[Table]
    resonance: Sequence[Table]


def _summer_mixer_index(routing: int) -> int:
    """Pack the summer input count (high nibble) and mixer input count (low nibble)."""
    n_sum = 0
    n_mix = 0

    for bit in (0x01, 0x02):
        if routing & bit:
            n_sum += 0x10
        else:
            n_mix += 1

    # Voice 3 may be muted when it is not routed through the filter.
    if routing & 0x04:
        n_sum += 0x10
    elif not routing & 0x80:
        n_mix += 1

    if routing & 0x08:
        n_sum += 0x10
    else:
        n_mix += 1

    # Filter outputs (low, band, high pass) enabled into the mixer.
    n_mix += sum(1 for bit in (0x10, 0x20, 0x40) if routing & bit)

    return (n_sum | n_mix) & 0xFF


_SUM_FLT_RESULTS = bytes(_summer_mixer_index(i) for i in range(256))


class Filter(ABC):
    """Filter registers, routing and table selection common to all chip models.

    Subclasses implement :meth:`updated_center_frequency` to react to cutoff
    changes and use the selected tables to run the filter itself.
    """

    def __init__(self, config: FilterModelConfig) -> None:
        self._config = config
        self._mixer = config.mixer
        self._summer = config.summer
        self._volume = config.volume
        self._resonance = config.resonance

        self._current_volume: Table | None = None
        self._current_mixer: Table | None = None
        self._current_summer: Table | None = None
        self._current_resonance: Table | None = None

        # Filter state: high pass, band pass, low pass and external input.
        self._vhp = 0
        self._vbp = 0
        self._vlp = 0
        self._ve = 0

        self._fc = 0
        self._voice3_mask = -1
        # Bits: mute voice 3, hp, bp, lp, filter ext, filter v3, v2, v1.
        self._filter_mode_routing = 0

    @property
    def config(self) -> FilterModelConfig:
        """Model configuration the tables come from."""
        return self._config

    @property
    def fc(self) -> int:
        """11-bit cutoff frequency register value."""
        return self._fc

    @property
    def mode_routing(self) -> int:
        """Combined mode and routing bits."""
        return self._filter_mode_routing

    @property
    def voice3_mask(self) -> int:
        """``0`` when voice 3 is silenced, ``-1`` (all bits) otherwise."""
        return self._voice3_mask

    @property
    def current_volume(self) -> Table | None:
        """Volume amplifier table in use."""
        return self._current_volume

    @property
    def current_mixer(self) -> Table | None:
        """Voice/filter mixer table in use."""
        return self._current_mixer

    @property
    def current_summer(self) -> Table | None:
        """Filter input summer table in use."""
        return self._current_summer

    @property
    def current_resonance(self) -> Table | None:
        """Resonance table in use."""
        return self._current_resonance

    @abstractmethod
    def updated_center_frequency(self) -> None:
        """React to a change of the cutoff frequency."""

    def _update_mixing(self) -> None:
        # Voice 3 is silenced by voice3off if it is not routed through the filter.
        self._voice3_mask = 0 if (self._filter_mode_routing & 0x84) == 0x80 else -1

        n_sum_n_mix = _SUM_FLT_RESULTS[self._filter_mode_routing]
        self._current_summer = self._summer[n_sum_n_mix >> 4]
        self._current_mixer = self._mixer[n_sum_n_mix & 0x0F]

    def reset(self) -> None:
        """SID reset."""
        self.write_fc_lo(0)
        self.write_fc_hi(0)
        self.write_mode_vol(15)
        self.write_res_filt(0)

    def write_fc_lo(self, fc_lo: int) -> None:
        """Write the low cutoff register (three bits used)."""
        self._fc = (self._fc & 0x7F8) | (fc_lo & 0x07)
        self.updated_center_frequency()

    def write_fc_hi(self, fc_hi: int) -> None:
        """Write the high cutoff register."""
        self._fc = ((fc_hi << 3) & 0x7F8) | (self._fc & 0x07)
        self.updated_center_frequency()

    def write_res_filt(self, res_filt: int) -> None:
        """Write the resonance/filter routing register."""
        self._filter_mode_routing = (self._filter_mode_routing & 0xF0) | (res_filt & 0x0F)
        self._current_resonance = self._resonance[(res_filt >> 4) & 0x0F]
        self._update_mixing()

    def write_mode_vol(self, mode_vol: int) -> None:
        """Write the filter mode/volume register."""
        self._filter_mode_routing = (self._filter_mode_routing & 0x0F) | (mode_vol & 0xF0)
        self._current_volume = self._volume[mode_vol & 0x0F]
        self._update_mixing()