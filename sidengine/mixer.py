"""Mixer that combines the output of up to three SID chips."""

from __future__ import annotations

from typing import Callable, MutableSequence, Protocol


class SidChip(Protocol):
    """What the mixer needs from a SID emulation."""

    buffer: MutableSequence[int]
    bufferpos: int

    def clock(self) -> None:
        """Bring the chip up to the present moment, filling ``buffer``."""


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _to_int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class Mixer:
    """Mix the sample buffers of the attached chips into mono or stereo output.

    Channel matrix::

          C1
        L 1.0
        R 1.0

          C1   C2
        L 1.0  0.0
        R 0.0  1.0

          C1       C2           C3
        L 1/1.707  0.707/1.707  0.0
        R 0.0      0.707/1.707  1/1.707
    """

    MAX_SIDS = 3
    SCALE_FACTOR = 1 << 16
    SQRT_0_5 = 0.70710678118654746
    C1 = int(1.0 / (1.0 + SQRT_0_5) * SCALE_FACTOR)
    C2 = int(SQRT_0_5 / (1.0 + SQRT_0_5) * SCALE_FACTOR)

    def __init__(self) -> None:
        self._chips: list[SidChip] = []
        self._buffers: list[MutableSequence[int]] = []
        self._samples = [0] * self.MAX_SIDS
        self._mix: list[Callable[[], int] | None] = [self._mono1, None]
        self._output: list[int] = []
        self._sample_count = 0
        self._sample_index = 0
        self._sample_rate = 0
        self._stereo = False
        self._wait = False

    # Mono mixing
    def _mono1(self) -> int:
        return self._samples[0]

    def _mono2(self) -> int:
        return _cdiv(self._samples[0] + self._samples[1], 2)

    def _mono3(self) -> int:
        return _cdiv(self._samples[0] + self._samples[1] + self._samples[2], 3)

    # Stereo mixing
    def _stereo_one_chip(self) -> int:
        return self._samples[0]

    def _stereo_ch1_two_chips(self) -> int:
        return self._samples[0]

    def _stereo_ch2_two_chips(self) -> int:
        return self._samples[1]

    def _stereo_ch1_three_chips(self) -> int:
        return _cdiv(self.C1 * self._samples[0] + self.C2 * self._samples[1], self.SCALE_FACTOR)

    def _stereo_ch2_three_chips(self) -> int:
        return _cdiv(self.C2 * self._samples[1] + self.C1 * self._samples[2], self.SCALE_FACTOR)

    def _update_params(self) -> None:
        count = len(self._buffers)
        if count == 1:
            self._mix = [
                self._stereo_one_chip if self._stereo else self._mono1,
                self._stereo_one_chip,
            ]
        elif count == 2:
            self._mix = [
                self._stereo_ch1_two_chips if self._stereo else self._mono2,
                self._stereo_ch2_two_chips,
            ]
        elif count == 3:
            self._mix = [
                self._stereo_ch1_three_chips if self._stereo else self._mono3,
                self._stereo_ch2_three_chips,
            ]

    def clock_chips(self) -> None:
        """Clock every chip up to the present moment."""
        for chip in self._chips:
            chip.clock()

    def reset_bufs(self) -> None:
        """Discard the samples the chips have produced."""
        for chip in self._chips:
            chip.bufferpos = 0

    def do_mix(self) -> None:
        """Move as many chip samples as fit into the output buffer."""
        if not self._chips:
            raise RuntimeError("no SID chips attached to the mixer")

        # With several chips their buffer positions match the first one's.
        sample_count = self._chips[0].bufferpos
        i = 0

        if len(self._buffers) == 1 and not self._stereo:
            to_copy = min(sample_count, self._sample_count - self._sample_index)
            start = self._sample_index
            self._output[start:start + to_copy] = [
                _to_int16(v) for v in self._buffers[0][:to_copy]
            ]
            self._sample_index += to_copy
            i = to_copy
        else:
            channels = 2 if self._stereo else 1
            left_mix = self._mix[0]
            right_mix = self._mix[1]
            while (
                i < sample_count
                and self._sample_index < self._sample_count
                and i + 1 < sample_count
            ):
                for k, buf in enumerate(self._buffers):
                    self._samples[k] = buf[i]
                i += 1

                self._output[self._sample_index] = _to_int16(left_mix())
                if channels == 2:
                    self._output[self._sample_index + 1] = _to_int16(right_mix())
                self._sample_index += channels

        samples_left = sample_count - i
        for buf in self._buffers:
            buf[:samples_left] = buf[i:i + samples_left]
        for chip in self._chips:
            chip.bufferpos = samples_left

        self._wait = samples_left > self._sample_count

    def begin(self, count: int) -> None:
        """Prepare an output buffer of ``count`` samples for a mixing cycle."""
        if self._stereo and count & 1:
            raise ValueError("stereo playback needs an even sample count")
        minimum = (int(self._stereo) + 1) * 100
        if count <= minimum:
            raise ValueError(f"sample count must be greater than {minimum}")

        self._sample_index = 0
        self._sample_count = count
        self._output = [0] * count
        self._wait = False

    def samples(self) -> list[int]:
        """The samples generated in the current cycle."""
        return self._output[:self._sample_index]

    def clear_sids(self) -> None:
        """Remove all chips from the mixer."""
        self._chips.clear()
        self._buffers.clear()

    def add_sid(self, chip: SidChip | None) -> None:
        """Attach a chip; ``None`` is ignored."""
        if chip is None:
            return
        if len(self._chips) >= self.MAX_SIDS:
            raise ValueError(f"at most {self.MAX_SIDS} SID chips are supported")
        self._chips.append(chip)
        self._buffers.append(chip.buffer)
        self._update_params()

    def get_sid(self, index: int) -> SidChip | None:
        """Return the chip at ``index``, or ``None`` if there is none."""
        if 0 <= index < len(self._chips):
            return self._chips[index]
        return None

    def set_stereo(self, stereo: bool) -> None:
        """Select stereo (``True``) or mono (``False``) mixing."""
        if self._stereo == stereo:
            return
        self._stereo = stereo
        self._update_params()

    @property
    def stereo(self) -> bool:
        """Whether stereo mixing is selected."""
        return self._stereo

    def set_samplerate(self, rate: int) -> None:
        """Set the output sample rate in Hertz."""
        self._sample_rate = rate

    @property
    def sample_rate(self) -> int:
        """Output sample rate in Hertz."""
        return self._sample_rate

    def not_finished(self) -> bool:
        """Whether the output buffer still has room."""
        return self._sample_index < self._sample_count

    def samples_generated(self) -> int:
        """Number of samples generated so far in this cycle."""
        return self._sample_index

    def wait(self) -> bool:
        """Whether the chips hold more samples than the output can take."""
        return self._wait

    def num_chips(self) -> int:
        """Number of attached chips."""
        return len(self._chips)