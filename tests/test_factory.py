import math

import numpy as np
import pytest

from body import BodyKind, BodySystem, RodBody
from config import PopulationConfig
from factory import BodyFactory


@pytest.fixture
def population():
    return PopulationConfig(particle_count=30, initial_mass=4, rod_length=12, seed=3)


def test_create_body_uses_population_defaults(bodies, config, population):
    factory = BodyFactory(bodies, population, config)
    point = factory.create_body(BodyKind.POINT, 10, 20)
    rod = factory.create_body(BodyKind.ROD, 30, 40, angle=1.0)

    assert point.mass == 4
    np.testing.assert_allclose(point.position, [10, 20])
    assert isinstance(rod, RodBody)
    assert rod.length == 12
    assert rod.angle == pytest.approx(1.0)


def test_create_body_overrides(bodies, config, population):
    rod = BodyFactory(bodies, population, config).create_body(BodyKind.ROD, 0, 0, mass=9, length=30)
    assert rod.mass == 9
    assert rod.length == 30
    assert 0.0 <= rod.angle < 2 * math.pi


def test_random_bodies_lie_in_the_world(bodies, config, population):
    BodyFactory(bodies, population, config).create_batch(particle_type='rod')
    assert len(bodies) == population.particle_count
    assert bodies.rod_mask.all()
    assert (bodies.positions[:, 0] < config.canvas_width).all()
    assert (bodies.positions[:, 1] < config.canvas_height).all()
    assert (bodies.positions >= 0).all()


@pytest.mark.parametrize("rod_ratio, expected_rods", [(0.0, 0), (1.0, 30)])
def test_mixed_population_follows_rod_ratio(bodies, config, population, rod_ratio, expected_rods):
    BodyFactory(bodies, population, config).create_batch(particle_type='mixed', rod_ratio=rod_ratio)
    assert int(bodies.rod_mask.sum()) == expected_rods


def test_batches_are_reproducible(config, population):
    first, second = BodySystem(), BodySystem()
    BodyFactory(first, population, config).create_batch(count=10, particle_type='mixed', rod_ratio=0.5)
    BodyFactory(second, population, config).create_batch(count=10, particle_type='mixed', rod_ratio=0.5)
    np.testing.assert_array_equal(first.positions, second.positions)
    np.testing.assert_array_equal(first.kinds, second.kinds)
    np.testing.assert_array_equal(first.angles, second.angles)


def test_unknown_particle_type(bodies, config, population):
    with pytest.raises(ValueError):
        BodyFactory(bodies, population, config).create_batch(particle_type='blob')
