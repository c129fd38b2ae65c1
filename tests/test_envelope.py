from sidengine.envelope import EnvelopeGenerator


def _run(env, cycles):
    values = []
    for _ in range(cycles):
        env.clock()
        values.append(env.output())
    return values


def test_initial_output_and_env3():
    env = EnvelopeGenerator()
    assert env.output() == 0xAA
    assert env.read_env() == 0
    env.clock()
    assert env.read_env() == 0xAA


def test_reset_keeps_counter():
    env = EnvelopeGenerator()
    env.reset()
    assert env.output() == 0xAA


def test_read_env_lags_output_by_one_clock():
    env = EnvelopeGenerator()
    env.reset()
    env.write_attack_decay(0x00)
    env.write_control_reg(0x01)
    previous = env.output()
    for _ in range(2000):
        env.clock()
        assert env.read_env() == previous
        previous = env.output()


def test_attack_reaches_peak_then_decays_to_sustain():
    env = EnvelopeGenerator()
    env.reset()
    env.write_attack_decay(0x00)
    env.write_sustain_release(0xA0)
    env.write_control_reg(0x01)
    values = _run(env, 60000)
    assert max(values) == 0xFF
    assert values[-1] == 0xAA
    assert all(v == 0xAA for v in values[-1000:])


def test_attack_is_non_decreasing_until_peak():
    env = EnvelopeGenerator()
    env.reset()
    env.write_attack_decay(0x00)
    env.write_sustain_release(0xF0)
    env.write_control_reg(0x01)
    values = _run(env, 30000)
    peak = values.index(0xFF)
    rising = values[values.index(min(values[:peak + 1])):peak + 1]
    assert rising == sorted(rising)


def test_release_reaches_zero_and_freezes():
    env = EnvelopeGenerator()
    env.reset()
    env.write_attack_decay(0x00)
    env.write_sustain_release(0xF0)
    env.write_control_reg(0x01)
    _run(env, 20000)
    env.write_control_reg(0x00)
    values = _run(env, 200000)
    assert values[-1] == 0
    assert all(v == 0 for v in values[-5000:])


def test_release_is_non_increasing():
    env = EnvelopeGenerator()
    env.reset()
    env.write_attack_decay(0x00)
    env.write_sustain_release(0xF0)
    env.write_control_reg(0x01)
    _run(env, 20000)
    env.write_control_reg(0x00)
    values = _run(env, 100000)
    assert values == sorted(values, reverse=True)


def test_sustain_full_level_holds_peak():
    env = EnvelopeGenerator()
    env.reset()
    env.write_attack_decay(0x00)
    env.write_sustain_release(0xF0)
    env.write_control_reg(0x01)
    values = _run(env, 60000)
    assert values[-1] == 0xFF