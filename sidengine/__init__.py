"""SID player engine parts: DAC, envelope and filter routing, VIC-II timing, mixing, o65 relocation and PSID driver setup."""

__version__ = "0.1.0"