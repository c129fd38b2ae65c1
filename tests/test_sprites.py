import pytest

from sidengine.sprites import SPRITES, Sprites


def make_regs(enable=0, y_expansion=0, ys=None):
    regs = bytearray(0x40)
    regs[0x15] = enable
    regs[0x17] = y_expansion
    for i, y in (ys or {}).items():
        regs[(i << 1) + 1] = y
    return regs


def test_reset_state():
    sprites = Sprites(make_regs())
    assert sprites.dma == 0
    assert sprites.exp_flop == 0xFF
    assert sprites.mc == (0,) * SPRITES
    assert sprites.mc_base == (0,) * SPRITES


def test_check_dma_starts_enabled_sprite_on_matching_line():
    regs = make_regs(enable=0b101, ys={0: 50, 2: 50, 1: 50})
    sprites = Sprites(regs)
    sprites.check_dma(50, regs)
    assert sprites.is_dma(0b001)
    assert not sprites.is_dma(0b010)
    assert sprites.is_dma(0b100)
    assert sprites.dma == 0b101


def test_check_dma_ignores_other_lines_and_masks_raster():
    regs = make_regs(enable=1, ys={0: 50})
    sprites = Sprites(regs)
    sprites.check_dma(51, regs)
    assert sprites.dma == 0
    sprites.check_dma(256 + 50, regs)
    assert sprites.is_dma(1)


def test_enable_register_is_read_live():
    regs = make_regs(enable=0, ys={3: 80})
    sprites = Sprites(regs)
    sprites.check_dma(80, regs)
    assert sprites.dma == 0
    regs[0x15] = 1 << 3
    sprites.check_dma(80, regs)
    assert sprites.is_dma(1 << 3)


def test_update_mc_only_for_dma_sprites():
    regs = make_regs(enable=1, ys={0: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    sprites.update_mc()
    assert sprites.mc[0] == 3
    assert sprites.mc[1:] == (0,) * (SPRITES - 1)


def test_dma_ends_after_full_sprite():
    regs = make_regs(enable=1, ys={0: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    for _ in range(20):
        sprites.update_mc()
        sprites.update_mc_base()
        assert sprites.is_dma(1)
    sprites.update_mc()
    sprites.update_mc_base()
    assert sprites.mc_base[0] == 0x3F
    assert not sprites.is_dma(1)


def test_check_dma_does_not_restart_active_sprite():
    regs = make_regs(enable=1, ys={0: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    sprites.update_mc()
    sprites.update_mc_base()
    sprites.check_dma(10, regs)
    assert sprites.mc_base[0] == 3


def test_check_exp_toggles_expanded_dma_sprites():
    regs = make_regs(enable=0b11, y_expansion=0b01, ys={0: 10, 1: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    sprites.check_exp()
    assert sprites.exp_flop == 0xFF ^ 0b01
    sprites.check_exp()
    assert sprites.exp_flop == 0xFF


def test_cleared_exp_flop_holds_mc_base():
    regs = make_regs(enable=1, y_expansion=1, ys={0: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    sprites.check_exp()
    sprites.update_mc()
    sprites.update_mc_base()
    assert sprites.mc_base[0] == 0
    assert sprites.mc[0] == 3


def test_check_display_copies_base_into_mc():
    regs = make_regs(enable=1, ys={0: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    sprites.update_mc()
    sprites.update_mc_base()
    sprites.update_mc()
    assert sprites.mc[0] != sprites.mc_base[0]
    sprites.check_display()
    assert sprites.mc == sprites.mc_base


@pytest.fixture
def crunch_ready():
    regs = make_regs(enable=1, y_expansion=1, ys={0: 10})
    sprites = Sprites(regs)
    sprites.check_dma(10, regs)
    sprites.check_exp()
    sprites.update_mc()
    return sprites


def test_line_crunch_at_cycle_14(crunch_ready):
    crunch_ready.line_crunch(0, 14)
    assert crunch_ready.mc[0] == 1
    assert crunch_ready.exp_flop == 0xFF


def test_line_crunch_elsewhere_keeps_mc(crunch_ready):
    before = crunch_ready.mc
    crunch_ready.line_crunch(0, 20)
    assert crunch_ready.mc == before
    assert crunch_ready.exp_flop == 0xFF


def test_line_crunch_ignored_when_bit_written_set(crunch_ready):
    before = crunch_ready.mc
    crunch_ready.line_crunch(1, 14)
    assert crunch_ready.mc == before
    assert crunch_ready.exp_flop == 0xFF ^ 1


def test_reset_after_activity():
    regs = make_regs(enable=0xFF, ys={i: 20 for i in range(SPRITES)})
    sprites = Sprites(regs)
    sprites.check_dma(20, regs)
    sprites.update_mc()
    sprites.reset()
    assert sprites.dma == 0
    assert sprites.mc == (0,) * SPRITES
    assert not sprites.is_dma(0xFF)