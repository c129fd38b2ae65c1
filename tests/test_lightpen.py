import pytest

from sidengine.lightpen import Lightpen


def make(height=312, width=63):
    lp = Lightpen()
    lp.set_screen_size(height, width)
    lp.reset()
    return lp


def test_reset_clears_coordinates():
    lp = make()
    assert lp.trigger(20, 100)
    lp.reset()
    assert (lp.x(), lp.y()) == (0, 0)
    assert lp.triggered is False


@pytest.mark.parametrize("width,expected", [(63, 0xD1), (65, 0xD5), (64, 0xD1)])
def test_retrigger_sets_fixed_x(width, expected):
    lp = make(width=width)
    assert lp.retrigger() is True
    assert lp.x() == expected
    assert lp.y() == 0


def test_retrigger_only_once_per_frame():
    lp = make()
    assert lp.retrigger() is True
    assert lp.retrigger() is False
    lp.untrigger()
    assert lp.retrigger() is True


def test_trigger_latches_raster_line():
    lp = make()
    assert lp.trigger(_first := 13, 100) is True
    assert lp.y() == 100
    assert lp.x() == 2


def test_trigger_only_once_until_untrigger():
    lp = make()
    assert lp.trigger(20, 50) is True
    assert lp.trigger(30, 60) is False
    assert lp.y() == 50
    lp.untrigger()
    assert lp.trigger(30, 60) is True
    assert lp.y() == 60


def test_last_line_latches_only_on_first_cycle():
    lp = make(height=312)
    assert lp.trigger(5, 311) is False
    assert lp.triggered is True
    assert (lp.x(), lp.y()) == (0, 0)

    lp.untrigger()
    assert lp.trigger(0, 311) is True
    assert lp.y() == 311 & 0xFF


def test_pal_x_advances_four_per_cycle():
    xs = []
    for cycle in range(13, 63):
        lp = make(width=63)
        lp.trigger(cycle, 10)
        xs.append(lp.x())
    assert all(b - a == 4 for a, b in zip(xs, xs[1:]))


def test_ntsc_x_stalls_at_cycle_61():
    lp61 = make(height=263, width=65)
    lp61.trigger(61, 10)
    lp62 = make(height=263, width=65)
    lp62.trigger(62, 10)
    assert lp61.x() == lp62.x()

    pal61 = make(width=63)
    pal61.trigger(61, 10)
    pal62 = make(width=63)
    pal62.trigger(62, 10)
    assert pal62.x() - pal61.x() == 4


def test_x_is_low_byte():
    for cycle in range(63):
        lp = make()
        lp.trigger(cycle, 300)
        assert 0 <= lp.x() <= 0xFF
        assert lp.y() == 300 & 0xFF