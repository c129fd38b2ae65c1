"""Cycle-level model of the SID ADSR envelope generator."""

from __future__ import annotations

from enum import Enum


class _State(Enum):
    ATTACK = 0
    DECAY_SUSTAIN = 1
    RELEASE = 2


# Rate counter comparison values for the 16 attack/decay/release settings.
_ADSR_TABLE = (
    0x007F, 0x3000, 0x1E00, 0x0660,
    0x0182, 0x5573, 0x000E, 0x3805,
    0x2424, 0x2220, 0x090C, 0x0ECD,
    0x010E, 0x23F7, 0x5237, 0x64A8,
)

# Envelope counter values at which the exponential decay period changes.
_EXPONENTIAL_PERIODS = {
    0xFF: 1,
    0x00: 1,
    0x5D: 2,
    0x36: 4,
    0x1A: 8,
    0x0E: 16,
    0x06: 30,
}


class EnvelopeGenerator:
    """ADSR envelope driven by a 15-bit LFSR rate counter.

    A second counter implements the piecewise exponential decay, with
    periods 1, 2, 4, 8, 16 and 30 at counter values 255, 93, 54, 26, 14
    and 6.
    """

    def __init__(self) -> None:
        self._lfsr = 0x7FFF
        self._rate = 0
        self._exponential_counter = 0
        self._exponential_counter_period = 1
        self._new_exponential_counter_period = 0
        self._state_pipeline = 0
        self._envelope_pipeline = 0
        self._exponential_pipeline = 0
        self._state = _State.RELEASE
        self._next_state = _State.RELEASE
        self._counter_enabled = True
        self._gate = False
        self._reset_lfsr = False
        self._envelope_counter = 0xAA
        self._attack = 0
        self._decay = 0
        self._sustain = 0
        self._release = 0
        self._env3 = 0

    def output(self) -> int:
        """Digital envelope output."""
        return self._envelope_counter

    def read_env(self) -> int:
        """ENV3 value, sampled at the first phase of the last clock."""
        return self._env3

    def reset(self) -> None:
        """SID reset; the envelope counter itself is left unchanged."""
        self._envelope_pipeline = 0
        self._state_pipeline = 0
        self._attack = 0
        self._decay = 0
        self._sustain = 0
        self._release = 0
        self._gate = False
        self._reset_lfsr = True
        self._exponential_counter = 0
        self._exponential_counter_period = 1
        self._new_exponential_counter_period = 0
        self._state = _State.RELEASE
        self._counter_enabled = True
        self._rate = _ADSR_TABLE[self._release]

    def write_control_reg(self, control: int) -> None:
        """Write the voice control register; only the gate bit matters here."""
        gate_next = (control & 0x01) != 0
        if gate_next == self._gate:
            return
        self._gate = gate_next

        if gate_next:
            self._next_state = _State.ATTACK
            self._state_pipeline = 2
            if self._reset_lfsr or self._exponential_pipeline == 2:
                fast = self._exponential_counter_period == 1 or self._exponential_pipeline == 2
                self._envelope_pipeline = 2 if fast else 4
            elif self._exponential_pipeline == 1:
                self._state_pipeline = 3
        else:
            self._next_state = _State.RELEASE
            self._state_pipeline = 3 if self._envelope_pipeline > 0 else 2

    def write_attack_decay(self, attack_decay: int) -> None:
        """Write the attack/decay register."""
        self._attack = (attack_decay >> 4) & 0x0F
        self._decay = attack_decay & 0x0F
        if self._state is _State.ATTACK:
            self._rate = _ADSR_TABLE[self._attack]
        elif self._state is _State.DECAY_SUSTAIN:
            self._rate = _ADSR_TABLE[self._decay]

    def write_sustain_release(self, sustain_release: int) -> None:
        """Write the sustain/release register."""
        # Both nibbles of the envelope counter are compared to the sustain value.
        self._sustain = (sustain_release & 0xF0) | ((sustain_release >> 4) & 0x0F)
        self._release = sustain_release & 0x0F
        if self._state is _State.RELEASE:
            self._rate = _ADSR_TABLE[self._release]

    def clock(self) -> None:
        """Advance the envelope by one cycle."""
        self._env3 = self._envelope_counter

        if self._new_exponential_counter_period > 0:
            self._exponential_counter_period = self._new_exponential_counter_period
            self._new_exponential_counter_period = 0

        if self._state_pipeline:
            self._state_change()

        envelope_step = False
        if self._envelope_pipeline:
            self._envelope_pipeline -= 1
            envelope_step = self._envelope_pipeline == 0

        if envelope_step:
            if self._counter_enabled:
                if self._state is _State.ATTACK:
                    self._envelope_counter = (self._envelope_counter + 1) & 0xFF
                    if self._envelope_counter == 0xFF:
                        self._next_state = _State.DECAY_SUSTAIN
                        self._state_pipeline = 3
                else:
                    self._envelope_counter = (self._envelope_counter - 1) & 0xFF
                    if self._envelope_counter == 0x00:
                        self._counter_enabled = False
                self._set_exponential_counter()
        else:
            exponential_step = False
            if self._exponential_pipeline:
                self._exponential_pipeline -= 1
                exponential_step = self._exponential_pipeline == 0

            if exponential_step:
                self._exponential_counter = 0
                if (
                    self._state is _State.DECAY_SUSTAIN
                    and self._envelope_counter != self._sustain
                ) or self._state is _State.RELEASE:
                    self._envelope_pipeline = 1
            elif self._reset_lfsr:
                self._lfsr = 0x7FFF
                self._reset_lfsr = False
                if self._state is _State.ATTACK:
                    self._exponential_counter = 0
                    self._envelope_pipeline = 2
                elif self._counter_enabled:
                    self._exponential_counter += 1
                    if self._exponential_counter == self._exponential_counter_period:
                        self._exponential_pipeline = (
                            2 if self._exponential_counter_period != 1 else 1
                        )

        if self._lfsr != self._rate:
            feedback = ((self._lfsr << 14) ^ (self._lfsr << 13)) & 0x4000
            self._lfsr = (self._lfsr >> 1) | feedback
        else:
            self._reset_lfsr = True

    def _state_change(self) -> None:
        self._state_pipeline -= 1
        nxt = self._next_state

        if nxt is _State.ATTACK:
            if self._state_pipeline == 1:
                # The decay rate is briefly active during the first attack cycle.
                self._rate = _ADSR_TABLE[self._decay]
            elif self._state_pipeline == 0:
                self._state = _State.ATTACK
                self._rate = _ADSR_TABLE[self._attack]
                self._counter_enabled = True
        elif nxt is _State.DECAY_SUSTAIN:
            if self._state_pipeline == 0:
                self._state = _State.DECAY_SUSTAIN
                self._rate = _ADSR_TABLE[self._decay]
        elif nxt is _State.RELEASE:
            if (self._state is _State.ATTACK and self._state_pipeline == 0) or (
                self._state is _State.DECAY_SUSTAIN and self._state_pipeline == 1
            ):
                self._state = _State.RELEASE
                self._rate = _ADSR_TABLE[self._release]

    def _set_exponential_counter(self) -> None:
        period = _EXPONENTIAL_PERIODS.get(self._envelope_counter)
        if period is not None:
            self._new_exponential_counter_period = period