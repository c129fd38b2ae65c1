"""Relocator for o65 object images, trimmed to what a player driver needs."""

from __future__ import annotations

HEADER_SIZE = 8 + 9 * 2
"""Size of the fixed o65 header with 16-bit fields."""

_MAGIC = bytes((1, 0, ord("o"), ord("6"), ord("5")))

_MODE_32BIT = 0x2000
_MODE_PAGEWISE = 0x4000

_TEXT_SEGMENT = 2


class Reloc65Error(ValueError):
    """Raised when an o65 image cannot be relocated."""


def _get_word(buf: bytearray, idx: int) -> int:
    return buf[idx] | (buf[idx + 1] << 8)


def _set_word(buf: bytearray, idx: int, value: int) -> None:
    buf[idx] = value & 0xFF
    buf[idx + 1] = (value >> 8) & 0xFF


def _options_size(buf: bytearray, start: int) -> int:
    """Size of the header options section beginning at ``start``."""
    length = 0
    c = buf[start]
    while c:
        length += c
        c = buf[start + length]
    return length + 1


def _undef_size(buf: bytearray, start: int) -> int:
    """Size of the undefined references list beginning at ``start``."""
    length = 2
    count = _get_word(buf, start)
    while count:
        count -= 1
        while True:
            byte = buf[start + length]
            length += 1
            if byte:
                break
    return length


class Reloc65:
    """Relocate the text segment of an o65 image to a new base address."""

    def __init__(self, address: int) -> None:
        self._tbase = address
        self._tdiff = 0

    @property
    def address(self) -> int:
        """Target address of the text segment."""
        return self._tbase

    def reloc(self, data: bytes) -> bytes:
        """Return the text segment of ``data`` relocated to the target address.

        Raises :class:`Reloc65Error` if the image is not a supported o65 file.
        """
        buf = bytearray(data)
        try:
            return self._relocate(buf)
        except IndexError as exc:
            raise Reloc65Error("truncated o65 image") from exc

    def _relocate(self, buf: bytearray) -> bytes:
        if bytes(buf[: len(_MAGIC)]) != _MAGIC:
            raise Reloc65Error("not an o65 image")

        mode = _get_word(buf, 6)
        if mode & _MODE_32BIT:
            raise Reloc65Error("32 bit size not supported")
        if mode & _MODE_PAGEWISE:
            raise Reloc65Error("pagewise relocation not supported")

        hlen = HEADER_SIZE + _options_size(buf, HEADER_SIZE)

        tbase = _get_word(buf, 8)
        tlen = _get_word(buf, 10)
        self._tdiff = self._tbase - tbase
        dlen = _get_word(buf, 14)

        segt = hlen
        segd = segt + tlen
        utab = segd + dlen

        rttab = utab + _undef_size(buf, utab)
        rdtab = self._reloc_seg(buf, segt, tlen, rttab)
        extab = self._reloc_seg(buf, segd, dlen, rdtab)
        self._reloc_globals(buf, extab)

        _set_word(buf, 8, self._tbase)

        if segt + tlen > len(buf):
            raise Reloc65Error("truncated o65 image")
        return bytes(buf[segt:segt + tlen])

    def _reldiff(self, seg: int) -> int:
        return self._tdiff if seg == _TEXT_SEGMENT else 0

    def _reloc_seg(self, buf: bytearray, base: int, length: int, rtab: int) -> int:
        """Apply one relocation table to a segment; return the next table's offset."""
        adr = -1
        while buf[rtab]:
            entry = buf[rtab]
            if entry == 255:
                adr += 254
                rtab += 1
            else:
                adr += entry
                rtab += 1
                kind = buf[rtab] & 0xE0
                seg = buf[rtab] & 0x07
                rtab += 1
                pos = base + adr
                if kind == 0x80:
                    _set_word(buf, pos, _get_word(buf, pos) + self._reldiff(seg))
                elif kind == 0x40:
                    new_val = buf[pos] * 256 + buf[rtab] + self._reldiff(seg)
                    buf[pos] = (new_val >> 8) & 0xFF
                    buf[rtab] = new_val & 0xFF
                    rtab += 1
                elif kind == 0x20:
                    buf[pos] = (buf[pos] + self._reldiff(seg)) & 0xFF

                if not seg:
                    rtab += 2

            if adr > length:
                raise Reloc65Error("relocation table entries past segment end")

        return rtab + 1

    def _reloc_globals(self, buf: bytearray, pos: int) -> int:
        """Relocate the exported globals list; return the offset after it."""
        count = _get_word(buf, pos)
        pos += 2
        while count:
            while buf[pos]:
                pos += 1
            pos += 1
            seg = buf[pos]
            _set_word(buf, pos + 1, _get_word(buf, pos + 1) + self._reldiff(seg))
            pos += 3
            count -= 1
        return pos