import json
import math

import pytest

import silodem as sd

PARAMS = dict(
    length=0.7,
    width=0.3,
    hole=0.06,
    min_diameter=0.02,
    max_diameter=0.03,
    mass=0.01,
    kn=1e5,
    gamma=1.0,
    duration=5.0,
)


def test_defaults_and_time_step():
    config = sd.SiloConfig(**PARAMS).validate()
    assert config.gravity == (0.0, -10.0)
    assert config.fill_fraction == 0.5
    assert config.snapshot_every == 1000
    assert config.max_radius == 0.015
    assert math.isclose(config.time_step, 0.001 * math.sqrt(0.01 / 1e5))


def test_round_trip_through_json(tmp_path):
    config = sd.SiloConfig(**PARAMS, seed=3, max_particles=40)
    path = tmp_path / "silo.json"
    config.save(path)
    assert json.loads(path.read_text())["gravity"] == [0.0, -10.0]
    assert sd.SiloConfig.load(path) == config
    assert sd.SiloConfig.from_dict(config.to_dict()) == config


def test_unknown_key_is_rejected():
    with pytest.raises(KeyError):
        sd.SiloConfig.from_dict(dict(PARAMS, elastic_constant=1e5))


@pytest.mark.parametrize(
    "override",
    [
        dict(length=0.3),
        dict(hole=0.3),
        dict(mass=0.0),
        dict(kn=-1.0),
        dict(gamma=-0.1),
        dict(duration=0.0),
        dict(min_diameter=0.04),
        dict(fill_fraction=1.5),
        dict(snapshot_every=0),
        dict(gravity=(0.0, -10.0, 0.0)),
    ],
)
def test_invalid_values_are_rejected(override):
    with pytest.raises(ValueError):
        sd.SiloConfig(**dict(PARAMS, **override)).validate()
