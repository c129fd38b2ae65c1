import pytest

from sidengine.dac import Dac


def test_unbuilt_dac_outputs_zero():
    dac = Dac(8)
    assert dac.get_output(0xFF) == 0.0
    assert dac.bits == 8


@pytest.mark.parametrize("is6581", [True, False])
def test_weights_are_normalised(is6581):
    dac = Dac(12)
    dac.kinked_dac(is6581)
    assert sum(dac.weights) == pytest.approx(1.0)
    assert all(w > 0 for w in dac.weights)


@pytest.mark.parametrize("is6581", [True, False])
def test_full_scale_is_one(is6581):
    dac = Dac(8, 0.0075)
    dac.kinked_dac(is6581)
    assert dac.get_output(0xFF) == pytest.approx(1.0)


def test_zero_input_equals_leakage():
    dac = Dac(8, 0.01)
    dac.kinked_dac(False)
    assert dac.get_output(0) == pytest.approx(0.01)


def test_8580_is_binary_weighted():
    dac = Dac(8, 0.0)
    dac.kinked_dac(False)
    weights = dac.weights
    for low, high in zip(weights, weights[1:]):
        assert high == pytest.approx(2 * low)


def test_8580_without_leakage_is_linear():
    dac = Dac(8, 0.0)
    dac.kinked_dac(False)
    step = dac.get_output(1)
    for value in (3, 17, 100, 255):
        assert dac.get_output(value) == pytest.approx(value * step)


def test_8580_output_is_monotonic():
    dac = Dac(8)
    dac.kinked_dac(False)
    outputs = [dac.get_output(v) for v in range(256)]
    assert outputs == sorted(outputs)


def test_6581_differs_from_8580():
    a = Dac(8, 0.0)
    a.kinked_dac(True)
    b = Dac(8, 0.0)
    b.kinked_dac(False)
    assert a.get_output(1) > b.get_output(1)


def test_negative_bits_rejected():
    with pytest.raises(ValueError):
        Dac(-1)