import jax
jax.config.update("jax_enable_x64", True)

import pytest

import silodem as sd


@pytest.fixture
def small_config():
    return sd.SiloConfig(
        length=0.7,
        width=0.3,
        hole=0.06,
        min_diameter=0.02,
        max_diameter=0.03,
        mass=0.01,
        kn=1e5,
        gamma=1.0,
        duration=1.0,
        max_particles=15,
    )
