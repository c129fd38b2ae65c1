"""Installer for the relocatable PSID player driver."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from sidengine.reloc65 import Reloc65, Reloc65Error

# Processor status bit of the interrupt disable flag.
_SR_INTERRUPT = 2

# The relocated image starts with 10 bytes of initialisation data.
_INIT_DATA_SIZE = 10


class Compatibility(IntEnum):
    """How closely a tune expects a real machine."""

    C64 = 0
    PSID = 1
    R64 = 2
    BASIC = 3


class SongSpeed(IntEnum):
    """Timing source of a song."""

    VBI = 0
    CIA_1A = 60


class ClockSpeed(IntEnum):
    """Video standard a tune was made for."""

    UNKNOWN = 0
    PAL = 1
    NTSC = 2
    ANY = 3


@dataclass(frozen=True)
class TuneInfo:
    """The tune properties the driver depends on."""

    load_addr: int
    c64_data_len: int
    init_addr: int
    play_addr: int
    current_song: int = 1
    song_speed: SongSpeed = SongSpeed.VBI
    clock_speed: ClockSpeed = ClockSpeed.PAL
    compatibility: Compatibility = Compatibility.C64
    reloc_start_page: int = 0
    reloc_pages: int = 0


class Memory(Protocol):
    """Machine memory as seen by the driver installer."""

    def fill_ram(self, start: int, value: int, count: int) -> None:
        """Fill ``count`` bytes of RAM from ``start`` with ``value``."""

    def copy_ram(self, start: int, data: bytes) -> None:
        """Copy ``data`` into RAM at ``start``."""

    def write_mem_byte(self, addr: int, value: int) -> None:
        """Write one byte of RAM."""

    def write_mem_word(self, addr: int, value: int) -> None:
        """Write a little-endian word to RAM."""

    def install_reset_hook(self, addr: int) -> None:
        """Point the reset vector at ``addr``."""

    def install_basic_trap(self, addr: int) -> None:
        """Trap execution of BASIC at ``addr``."""

    def set_basic_subtune(self, tune: int) -> None:
        """Select the subtune for BASIC tunes."""


class PsidDriverError(RuntimeError):
    """Raised when the driver cannot be relocated."""


def _little16(data: bytes, offset: int = 0) -> int:
    return data[offset] | (data[offset + 1] << 8)


def copy_poweron_pattern(mem: Memory, pattern: bytes) -> None:
    """Copy the power-on RAM settings of $0000-$03ff into memory.

    Each record is an offset byte (bit 7: a count byte follows), an optional
    count byte (bit 7: run-length compressed) and the data: a single byte
    when compressed, otherwise ``count`` bytes. Offsets and counts are
    stored one less than their value.
    """
    addr = 0
    i = 0
    size = len(pattern)
    while i < size:
        off = pattern[i]
        i += 1
        count = 0
        compressed = False

        if off & 0x80:
            off &= 0x7F
            count = pattern[i]
            i += 1
            if count & 0x80:
                count &= 0x7F
                compressed = True

        count += 1
        addr = (addr + off) & 0xFFFF

        if compressed:
            mem.fill_ram(addr, pattern[i], count)
            i += 1
        else:
            mem.copy_ram(addr, bytes(pattern[i:i + count]))
            i += count
        addr = (addr + count) & 0xFFFF


class PsidDriver:
    """Relocate the player driver into free RAM and install it for a tune."""

    def __init__(
        self,
        tune_info: TuneInfo,
        driver_image: bytes,
        poweron_pattern: bytes = b"",
    ) -> None:
        self._tune_info = tune_info
        self._driver_image = bytes(driver_image)
        self._poweron_pattern = bytes(poweron_pattern)
        self._reloc_driver: bytes | None = None
        self._driver_addr = 0
        self._driver_length = 0
        self._handshake_addr = 0

    @property
    def driver_addr(self) -> int:
        """Address the driver was relocated to."""
        return self._driver_addr

    @property
    def driver_length(self) -> int:
        """Driver length rounded up to whole pages."""
        return self._driver_length

    @property
    def handshake_addr(self) -> int:
        """Address of the handshake byte written by :meth:`install`."""
        return self._handshake_addr

    def iomap(self, addr: int) -> int:
        """Bank-select value for $01 needed to reach ``addr``; 0 leaves the default."""
        compatibility = self._tune_info.compatibility
        if compatibility in (Compatibility.R64, Compatibility.BASIC) or addr == 0:
            # Special case, set to 0x37 by the driver.
            return 0
        if addr < 0xA000:
            return 0x37  # BASIC ROM, KERNAL ROM, I/O
        if addr < 0xD000:
            return 0x36  # KERNAL ROM, I/O
        if addr >= 0xE000:
            return 0x35  # I/O only
        return 0x34  # RAM only

    def _free_page(self) -> int | None:
        info = self._tune_info
        startlp = info.load_addr >> 8
        endlp = (info.load_addr + (info.c64_data_len - 1)) >> 8
        for page in range(0x04, 0xD0):
            if startlp <= page <= endlp or 0xA0 <= page <= 0xBF:
                continue
            return page
        return None

    def drv_reloc(self) -> None:
        """Relocate the driver; raise :class:`PsidDriverError` on failure."""
        info = self._tune_info
        reloc_start_page = info.reloc_start_page & 0xFF
        reloc_pages = info.reloc_pages & 0xFF

        if info.compatibility == Compatibility.BASIC:
            # The driver only initialises and autoruns BASIC tunes.
            reloc_start_page = 0x04
            reloc_pages = 0x03

        if reloc_start_page == 0xFF:
            reloc_pages = 0
        elif reloc_start_page == 0:
            reloc_pages = 0
            # The driver is one page long; any free page in $0400-$cfff will do.
            page = self._free_page()
            if page is not None:
                reloc_start_page = page
                reloc_pages = 1

        if reloc_pages < 1:
            raise PsidDriverError("ERROR: No space to install psid driver in C64 ram")

        reloc_addr = (reloc_start_page << 8) & 0xFFFF

        try:
            relocated = Reloc65(reloc_addr - _INIT_DATA_SIZE).reloc(self._driver_image)
        except Reloc65Error as exc:
            raise PsidDriverError("ERROR: Failed whilst relocating psid driver") from exc
        if len(relocated) < _INIT_DATA_SIZE:
            raise PsidDriverError("ERROR: Failed whilst relocating psid driver")

        self._reloc_driver = relocated
        self._driver_addr = reloc_addr
        size = len(relocated) - _INIT_DATA_SIZE
        # Round length to the end of the page.
        self._driver_length = ((size + 0xFF) & 0xFF00) & 0xFFFF

    def install(self, mem: Memory, video: int) -> None:
        """Install the relocated driver; the tune must already be in memory.

        ``video`` is the PAL/NTSC switch value: 0 for NTSC, 1 for PAL.
        """
        driver = self._reloc_driver
        if driver is None:
            raise RuntimeError("the driver must be relocated before it is installed")

        info = self._tune_info
        video &= 0xFF
        is_basic = info.compatibility == Compatibility.BASIC

        mem.fill_ram(0, 0, 0x3FF)

        if info.compatibility >= Compatibility.R64:
            copy_poweron_pattern(mem, self._poweron_pattern)

        mem.write_mem_byte(0x02A6, video)
        mem.install_reset_hook(_little16(driver))

        if is_basic:
            mem.set_basic_subtune((info.current_song - 1) & 0xFF)
            mem.install_basic_trap(0xBF53)
        else:
            # IRQ handler vectors; RSID tunes only get the IRQ one.
            irq_len = 2 if info.compatibility == Compatibility.R64 else 6
            mem.copy_ram(0x0314, driver[2:2 + irq_len])
            restart = _little16(driver, 8)
            mem.install_basic_trap(0xFFE1)
            mem.write_mem_word(0x0328, restart)

        pos = self._driver_addr
        mem.copy_ram(pos, driver[_INIT_DATA_SIZE:])

        mem.write_mem_byte(pos, (info.current_song - 1) & 0xFF)
        pos += 1
        mem.write_mem_byte(pos, 0 if info.song_speed == SongSpeed.VBI else 1)
        pos += 1
        mem.write_mem_word(pos, 0xBF55 if is_basic else info.init_addr)
        pos += 2
        mem.write_mem_word(pos, info.play_addr)
        pos += 2
        mem.write_mem_byte(pos, self.iomap(info.init_addr))
        pos += 1
        mem.write_mem_byte(pos, self.iomap(info.play_addr))
        pos += 1
        mem.write_mem_byte(pos, video)
        pos += 1

        if info.clock_speed == ClockSpeed.PAL:
            clock_speed = 1
        elif info.clock_speed == ClockSpeed.NTSC:
            clock_speed = 0
        else:
            clock_speed = video
        mem.write_mem_byte(pos, clock_speed)
        pos += 1

        flags = 0 if info.compatibility >= Compatibility.R64 else 1 << _SR_INTERRUPT
        mem.write_mem_byte(pos, flags)
        pos += 1

        # Non-zero means: do not wait for the handshake.
        self._handshake_addr = pos
        no_wait = is_basic or info.play_addr == 0
        mem.write_mem_byte(pos, 1 if no_wait else 0)