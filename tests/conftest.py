import logging

import pytest

from body import BodySystem
from clustering import ClusteringEngine
from config import SimulationConfig
from forces import ForceEngine
from repulsion import RepulsionScheduler


@pytest.fixture
def config():
    """A quiet configuration: no damping and a speed cap that never binds."""
    return SimulationConfig(
        threshold_distance=50.0,
        attraction_coefficient=0.1,
        repulsion_coefficient=0.2,
        sticky_force_coefficient=0.5,
        sticky_force_power=4.0,
        repulsion_delay=5.0,
        delay_increase=3.0,
        max_repulsion_delay=6.0,
        max_speed=1000.0,
        dampening_coefficient=0.0,
        canvas_width=800.0,
        canvas_height=600.0,
    )


@pytest.fixture
def bodies():
    return BodySystem()


@pytest.fixture
def force_pass():
    """Runs clustering, propagation and the force kernel without integrating."""
    def run(bodies, config):
        engine = ForceEngine()
        clustering = ClusteringEngine()
        clustering.update(bodies, engine.proximity_edges(bodies, config))
        RepulsionScheduler().propagate(bodies, clustering.clusters)
        forces, torques = engine.compute(bodies, clustering, config)
        return forces, torques, clustering
    return run


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
