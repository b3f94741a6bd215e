"""
Shared fixtures for the pulsesim test suite
"""

import logging

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from pulsesim.phasemodel import CallablePhaseModel  # noqa: E402
from pulsesim.vonmisesprofile import VonMisesProfile  # noqa: E402


@pytest.fixture(scope="module")
def profile():
    return VonMisesProfile(0.1, detrend=False)


@pytest.fixture(scope="module")
def detrended_profile():
    return VonMisesProfile(0.1, detrend=True)


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def linear_phase_model():
    """Factory of phase models sweeping phi0 -> phi1 linearly between t0 and t1"""
    def make(phi0, phi1, t0=0.0, t1=1.0):
        return CallablePhaseModel(lambda tt: phi0 + (phi1 - phi0) * (tt - t0) / (t1 - t0))
    return make


@pytest.fixture
def restore_root_logging():
    """Undo configure_logging() calls made by a test"""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for h in root.handlers[:]:
        if h not in handlers and not type(h).__module__.startswith("_pytest"):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
