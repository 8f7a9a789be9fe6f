import numpy as np
import pytest

from body import BodyKind
from clustering import ClusteringEngine
from constants import POINT_BODY
from forces import ForceEngine, _calculate_forces_numba

MASS = 5.0


def pair_forces(config, distance, cluster_index=(-1, -1), repulse=(), centers=None,
                kinds=(POINT_BODY, POINT_BODY)):
    """Evaluates the kernel for a single pair on the x axis."""
    positions = np.array([[100.0, 100.0], [100.0 + distance, 100.0]])
    if centers is None:
        centers = np.zeros((len(repulse), 2))
    return _calculate_forces_numba(
        positions,
        np.array([MASS, MASS]),
        np.array(kinds, dtype=np.int8),
        np.zeros(2),
        np.array([20.0, 20.0]),
        np.array(cluster_index, dtype=np.int64),
        np.array(repulse, dtype=np.bool_),
        np.asarray(centers, dtype=np.float64),
        config.threshold_distance, config.attraction_coefficient,
        config.repulsion_coefficient, config.sticky_force_coefficient,
        config.sticky_force_power,
    )


def attraction(config, d):
    return config.attraction_coefficient * MASS * MASS / d ** 2


def sticky(config, d):
    return config.sticky_force_coefficient * MASS * MASS / d ** config.sticky_force_power


@pytest.mark.parametrize("distance", [10.0, 30.0, 49.9, 50.0, 50.1, 55.0, 59.9, 60.0, 150.0])
def test_pair_forces_are_equal_and_opposite(config, distance):
    forces, torques = pair_forces(config, distance)
    np.testing.assert_array_equal(forces[0], -forces[1])
    np.testing.assert_array_equal(torques, [0.0, 0.0])


def test_long_range_attraction(config):
    forces, _ = pair_forces(config, 100.0)
    assert forces[0, 0] == pytest.approx(attraction(config, 100.0))
    assert forces[0, 1] == 0.0


def test_sticky_band_adds_to_attraction(config):
    forces, _ = pair_forces(config, 55.0)
    assert forces[0, 0] == pytest.approx(attraction(config, 55.0) + sticky(config, 55.0))


def test_sticky_band_ends_at_upper_edge(config):
    forces, _ = pair_forces(config, 60.0)
    assert forces[0, 0] == pytest.approx(attraction(config, 60.0))


def test_exact_threshold_uses_holding_force(config):
    forces, _ = pair_forces(config, 50.0)
    assert forces[0, 0] == pytest.approx(0.5 * sticky(config, 50.0))


def test_force_switches_mode_at_threshold(config):
    inside, _ = pair_forces(config, 50.0)
    # 1e-9 survives the offset of 100 that pair_forces adds.
    outside, _ = pair_forces(config, 50.0 + 1e-9)
    assert outside[0, 0] == pytest.approx(attraction(config, 50.0) + sticky(config, 50.0))
    assert inside[0, 0] != pytest.approx(outside[0, 0])


def test_force_is_continuous_away_from_threshold(config):
    near, _ = pair_forces(config, 80.0)
    nearer, _ = pair_forces(config, 80.0 + 1e-9)
    assert near[0, 0] == pytest.approx(nearer[0, 0], rel=1e-6)


def test_zero_distance_pair_is_skipped(config):
    forces, torques = pair_forces(config, 0.0)
    np.testing.assert_array_equal(forces, np.zeros((2, 2)))
    np.testing.assert_array_equal(torques, np.zeros(2))


def test_repulsion_between_different_clusters(config):
    forces, _ = pair_forces(config, 30.0, cluster_index=(0, -1), repulse=(True,))
    expected = config.repulsion_coefficient * MASS * MASS / 30.0 ** 2
    assert forces[0, 0] == pytest.approx(-expected)
    assert forces[1, 0] == pytest.approx(expected)


def test_non_repulsing_cluster_holds_together(config):
    forces, _ = pair_forces(config, 30.0, cluster_index=(0, 0), repulse=(False,),
                            centers=[[115.0, 100.0]])
    assert forces[0, 0] == pytest.approx(0.5 * sticky(config, 30.0))


def test_dispersing_cluster_pushes_out_from_center(config):
    forces, _ = pair_forces(config, 30.0, cluster_index=(0, 0), repulse=(True,),
                            centers=[[115.0, 100.0]])
    base = config.repulsion_coefficient * MASS * MASS / 30.0 ** 2
    # 0.5 radial outward plus 0.3 direct repulsion
    assert forces[0, 0] == pytest.approx(-0.8 * base)
    assert forces[1, 0] == pytest.approx(0.8 * base)
    assert forces[0, 1] == pytest.approx(0.0)


def test_radial_push_follows_center_not_partner(config):
    # Center off the pair axis: the radial part points away from it.
    forces, _ = pair_forces(config, 30.0, cluster_index=(0, 0), repulse=(True,),
                            centers=[[115.0, 130.0]])
    assert forces[0, 1] < 0
    assert forces[1, 1] < 0


def test_rod_force_acts_at_interaction_point(config, bodies, force_pass):
    rod = bodies.add_body(BodyKind.ROD, (100, 100), MASS, length=20, angle=0.0)
    bodies.add_body(BodyKind.POINT, (130, 105), MASS)

    forces, torques, _ = force_pass(bodies, config)

    # Nearest rod point is endpoint A at (110, 100); lever arm (10, 0).
    assert torques[0] == pytest.approx(10.0 * forces[0, 1])
    assert torques[0] > 0
    assert torques[1] == 0.0
    np.testing.assert_allclose(forces[0], -forces[1])
    np.testing.assert_allclose(rod.interaction_point((130, 105)), [110, 100])


def test_kernel_torque_matches_apply_force_at_point(config, bodies, force_pass):
    rod = bodies.add_body(BodyKind.ROD, (100, 100), MASS, length=20, angle=0.7)
    other = bodies.add_body(BodyKind.POINT, (95, 135), MASS)

    forces, torques, _ = force_pass(bodies, config)
    rod.apply_force_at_point(forces[0], rod.interaction_point(other.position))

    assert rod.angular_acceleration * rod.moment_of_inertia == pytest.approx(torques[0])
    np.testing.assert_allclose(rod.acceleration, forces[0] / MASS)


def test_apply_accumulates_accelerations(config, bodies):
    engine = ForceEngine()
    bodies.add_body(BodyKind.ROD, (100, 100), MASS, length=20, angle=0.0)
    bodies.add_body(BodyKind.POINT, (130, 105), 2 * MASS)
    clustering = ClusteringEngine()
    clustering.update(bodies, engine.proximity_edges(bodies, config))

    forces, torques = engine.compute(bodies, clustering, config)
    engine.apply(bodies, clustering, config)

    np.testing.assert_allclose(bodies.accelerations[0], forces[0] / MASS)
    np.testing.assert_allclose(bodies.accelerations[1], forces[1] / (2 * MASS))
    assert bodies.angular_accelerations[0] == pytest.approx(torques[0] / bodies.moments[0])
    assert bodies.angular_accelerations[1] == 0.0


def test_compute_requires_current_clusters(config, bodies):
    bodies.add_body(BodyKind.POINT, (0, 0), MASS)
    bodies.add_body(BodyKind.POINT, (10, 0), MASS)
    with pytest.raises(RuntimeError):
        ForceEngine().compute(bodies, ClusteringEngine(), config)


def test_proximity_edges(config, bodies):
    a = bodies.add_body(BodyKind.POINT, (0, 0), MASS)
    b = bodies.add_body(BodyKind.POINT, (39, 0), MASS)
    bodies.add_body(BodyKind.POINT, (80, 0), MASS)
    d = bodies.add_body(BodyKind.POINT, (0, 0), MASS)

    edges = ForceEngine().proximity_edges(bodies, config)

    # 80 - 39 = 41 is outside 0.8 * 50; (a, d) coincide and never bond.
    assert sorted(edges) == [(a.id, b.id), (b.id, d.id)]


def test_proximity_edges_use_ids_not_rows(config, bodies):
    first = bodies.add_body(BodyKind.POINT, (0, 0), MASS)
    second = bodies.add_body(BodyKind.POINT, (10, 0), MASS)
    third = bodies.add_body(BodyKind.POINT, (20, 0), MASS)
    bodies.remove_body(first.id)
    assert ForceEngine().proximity_edges(bodies, config) == [(second.id, third.id)]
