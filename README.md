# sidengine

Components of a Commodore 64 SID music player engine, in plain Python with
no third-party dependencies.

## What is inside

- `sidengine.dac.Dac`: R-2R ladder DAC model. `kinked_dac(is6581)` builds the
  ladder for a 6581 (unterminated, 2R/R = 2.20) or an 8580 (terminated,
  2R/R = 2.00); `get_output(value)` returns the analog output, with
  switched-off bits leaking a fraction `leakage` (default 0.0075).
- `sidengine.envelope.EnvelopeGenerator`: cycle-by-cycle ADSR envelope with
  its 15-bit LFSR rate counter, exponential decay and state pipelines.
  `output()` is the envelope counter, `read_env()` the ENV3 value.
- `sidengine.filter.Filter`: abstract base handling the filter registers
  (`write_fc_lo`, `write_fc_hi`, `write_res_filt`, `write_mode_vol`, `reset`)
  and choosing the summer, mixer, resonance and volume tables from a
  configuration object with `mixer`, `summer`, `volume` and `resonance`
  sequences. Subclasses implement `updated_center_frequency`.
- `sidengine.lightpen.Lightpen`: VIC-II light pen latch.
- `sidengine.sprites.Sprites`: VIC-II sprite DMA, expansion flip-flops and
  memory counters, reading the enable and y-expansion registers live from
  the register list it is given.
- `sidengine.vic.MOS656X`: abstract VIC-II raster timing for the models in
  `VicModel` (old NTSC, NTSC-M, PAL-B, PAL-N, PAL-M). It raises raster and
  light pen interrupts and drives the BA line through the methods a subclass
  implements, `interrupt(state)` and `set_ba(state)`. It is driven by a
  scheduler object providing `get_time(phase)`, `phase()`,
  `schedule(event, cycles, phase=None)` and `cancel(event)`, with phases from
  `Phase`.
- `sidengine.mixer.Mixer`: mixes the sample buffers of one to three chips into
  mono or stereo 16-bit output. A chip is any object with a `buffer` list, a
  `bufferpos` integer and a `clock()` method.
- `sidengine.reloc65.Reloc65`: relocates the text segment of an o65 object
  image and returns it; raises `Reloc65Error` for images that are not o65,
  use 32-bit sizes or pagewise relocation, or are truncated.
- `sidengine.psiddrv`: `PsidDriver` finds a free page for a player driver,
  relocates the driver image with `Reloc65` (`drv_reloc`, raising
  `PsidDriverError` on failure) and writes it with the tune's parameters into
  memory (`install`). Tune properties come in a `TuneInfo` dataclass using
  `Compatibility`, `SongSpeed` and `ClockSpeed`. `copy_poweron_pattern`
  unpacks a run-length encoded power-on RAM pattern. The memory object must
  provide `fill_ram`, `copy_ram`, `write_mem_byte`, `write_mem_word`,
  `install_reset_hook`, `install_basic_trap` and `set_basic_subtune`.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Examples

```python
from sidengine.dac import Dac
from sidengine.envelope import EnvelopeGenerator

dac = Dac(8, 0.0075)
dac.kinked_dac(True)          # 6581 ladder
print(dac.get_output(0x80))

env = EnvelopeGenerator()
env.reset()
env.write_attack_decay(0x00)
env.write_sustain_release(0xF0)
env.write_control_reg(0x01)   # gate on
for _ in range(1000):
    env.clock()
print(env.output())
```

Mixing one chip into a mono buffer:

```python
from sidengine.mixer import Mixer


class ConstantChip:
    def __init__(self):
        self.buffer = [0] * 5000
        self.bufferpos = 0

    def clock(self):
        self.buffer[self.bufferpos:self.bufferpos + 100] = [1000] * 100
        self.bufferpos += 100


mixer = Mixer()
mixer.add_sid(ConstantChip())
mixer.begin(400)              # must be more than 100 (200 in stereo)
while mixer.not_finished():
    mixer.clock_chips()
    mixer.do_mix()
print(len(mixer.samples()))   # 400
```

Relocating an o65 image:

```python
from sidengine.reloc65 import Reloc65, Reloc65Error

try:
    text = Reloc65(0x1000).reloc(image_bytes)
except Reloc65Error as exc:
    print("cannot relocate:", exc)
```

## What it does not do

This package is a set of parts, not a player. It has no SID sound
generator or voice waveforms, no concrete filter model or its lookup tables,
no CPU, CIA or memory map of the machine, no event scheduler, no tune file
loader and no audio output or command-line program. `PsidDriver` does not
ship a driver image or a power-on pattern: the caller supplies both as bytes.