"""R-2R ladder DAC model with the non-linearities of the SID chip family."""

from __future__ import annotations

_R_INFINITY = 1e6


class Dac:
    """Estimate the analog output of an R-2R ladder DAC.

    The 6581 ladders lack the termination resistor at bit 0 and have a
    2R/R ratio of about 2.20; the 8580 ladders are terminated and linear.
    Transistors that are switched off still leak a small current, which
    ``leakage`` models as a fraction of the bit's contribution.
    """

    def __init__(self, bits: int, leakage: float = 0.0075) -> None:
        if bits < 0:
            raise ValueError("bit count must not be negative")
        self._leakage = leakage
        self._weights = [0.0] * bits

    @property
    def bits(self) -> int:
        """Number of input bits."""
        return len(self._weights)

    @property
    def weights(self) -> tuple[float, ...]:
        """Normalised analog contribution of each bit, lowest bit first."""
        return tuple(self._weights)

    def kinked_dac(self, is6581: bool) -> None:
        """Build the ladder model for a 6581 (``True``) or an 8580 (``False``)."""
        length = len(self._weights)
        ratio = 2.20 if is6581 else 2.00
        terminated = not is6581

        r = 1.0
        r2 = ratio * r
        weights = []
        for set_bit in range(length):
            vn = 1.0
            rn = r2 if terminated else _R_INFINITY

            # Tail resistance by repeated parallel substitution.
            for _ in range(set_bit):
                rn = r + r2 if rn == _R_INFINITY else r + (r2 * rn) / (r2 + rn)

            # Source transformation for the bit voltage.
            if rn == _R_INFINITY:
                rn = r2
            else:
                rn = (r2 * rn) / (r2 + rn)
                vn = vn * rn / r2

            # Propagate towards the output by repeated source transformation.
            for _ in range(set_bit + 1, length):
                rn += r
                current = vn / rn
                rn = (r2 * rn) / (r2 + rn)
                vn = rn * current

            weights.append(vn)

        total = sum(weights)
        self._weights = [w / total for w in weights] if total else weights

    def get_output(self, value: int) -> float:
        """Return the analog output for the digital input ``value``."""
        return sum(
            weight if value & (1 << bit) else weight * self._leakage
            for bit, weight in enumerate(self._weights)
        )