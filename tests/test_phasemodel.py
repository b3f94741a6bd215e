"""Tests for the phase model capability and its use by the profile"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pulsesim.phasemodel import PhaseModel, CallablePhaseModel


class SpinningUpModel(PhaseModel):
    """phi(t) = f t + fdot t^2 / 2"""

    def __init__(self, freq, freq_dot):
        self.freq = freq
        self.freq_dot = freq_dot

    def eval_phases(self, times):
        times = np.asarray(times, dtype=float)
        return self.freq * times + 0.5 * self.freq_dot * times ** 2


def test_phase_model_is_abstract():
    with pytest.raises(TypeError):
        PhaseModel()


def test_phase_interval():
    pm = CallablePhaseModel(lambda tt: 2.0 * tt + 0.25)
    assert pm.phase_interval(1.0, 3.0) == (2.25, 6.25)
    with pytest.raises(ValueError):
        pm.phase_interval(3.0, 1.0)


def test_callable_phase_model_validation():
    with pytest.raises(TypeError):
        CallablePhaseModel(42)
    pm = CallablePhaseModel(lambda tt: np.zeros(3))
    with pytest.raises(ValueError):
        pm.eval_phases(np.arange(5.0))


def test_time_varying_frequency(profile):
    pm = SpinningUpModel(freq=3.0, freq_dot=0.4)
    nt = 500
    out = profile.eval_integrated_samples(0.0, 10.0, nt, pm, amplitude=2.0)

    edges = np.linspace(0.0, 10.0, nt + 1)
    phases = pm.eval_phases(edges)
    expected = [profile.eval_integrated_sample_slow(phases[jj], phases[jj + 1], 2.0) for jj in range(nt)]
    assert_allclose(out, expected, rtol=1e-6, atol=1e-12)


def test_spin_up_keeps_whole_period_average(profile):
    pm = SpinningUpModel(freq=1.0, freq_dot=2.0)
    # phi(2) = 2 + 4 = 6 whole rotations
    out = profile.eval_integrated_samples(0.0, 2.0, 1, pm)
    assert out[0] == pytest.approx(profile.mean_flux, rel=1e-12)
