"""Tests for the closed-form signal-to-noise estimates"""

import numpy as np
import pytest

from pulsesim.signaltonoise import single_pulse_snr, multi_pulse_snr
from pulsesim.vonmisesprofile import VonMisesProfile


def test_constant_profile():
    # flux 1 in every one of 1/(f dt) = 16 samples: snr = sqrt(16) / rms
    assert single_pulse_snr([1.0], 0.125, 0.5) == pytest.approx(4.0)
    assert single_pulse_snr([1.0], 0.125, 0.5, sample_rms=2.0) == pytest.approx(2.0)


def test_single_harmonic_attenuated_by_sinc():
    # rho(phi) = 2 a cos(2 pi phi) sampled in bins of 1/4 of a period
    a = 0.3
    dphi = 0.25
    expected = np.sqrt(2 * (a * np.sinc(dphi)) ** 2 / dphi)
    assert single_pulse_snr([0.0, a], dphi, 1.0) == pytest.approx(expected)


@pytest.mark.parametrize("total_time, dt_sample, pulse_freq, sample_rms", [
    (100.0, 1e-3, 1.0, 1.0),
    (3600.0, 6.4e-5, 30.0, 0.2),
    (1.0, 0.01, 0.5, 5.0),
])
@pytest.mark.parametrize("detrend", [False, True])
def test_multi_pulse_consistent_with_single_pulse(profile, detrended_profile, detrend, total_time, dt_sample,
                                                  pulse_freq, sample_rms):
    p = detrended_profile if detrend else profile
    single = p.get_single_pulse_signal_to_noise(dt_sample, pulse_freq, sample_rms)
    multi = p.get_multi_pulse_signal_to_noise(total_time, dt_sample, pulse_freq, sample_rms)
    assert multi == pytest.approx(single * np.sqrt(total_time * pulse_freq), rel=1e-14)


@pytest.mark.parametrize("detrend", [False, True])
def test_matches_simulated_samples_for_fine_sampling(detrend, linear_phase_model):
    # sum over samples of (binned flux / rms)^2, one pulse period, pulse aligned with sample edges
    p = VonMisesProfile(0.1, detrend)
    nt = 2000
    samples = p.eval_integrated_samples(0.0, 1.0, nt, linear_phase_model(0.0, 1.0))
    direct = np.sqrt(np.sum(samples ** 2)) / 0.5
    assert p.get_single_pulse_signal_to_noise(1.0 / nt, 1.0, 0.5) == pytest.approx(direct, rel=1e-3)


def test_coarse_sampling_loses_signal(profile):
    fine = profile.get_single_pulse_signal_to_noise(1e-4, 1.0)
    coarse = profile.get_single_pulse_signal_to_noise(0.1, 1.0)
    # per unit of pulse phase, coarse bins smear the pulse
    assert coarse ** 2 * 0.1 < 0.99 * fine ** 2 * 1e-4


def test_detrending_lowers_snr(profile, detrended_profile):
    assert detrended_profile.get_single_pulse_signal_to_noise(1e-3, 1.0) < \
        profile.get_single_pulse_signal_to_noise(1e-3, 1.0)


def test_snr_inversely_proportional_to_rms(profile):
    assert profile.get_single_pulse_signal_to_noise(1e-3, 2.0, 4.0) == \
        pytest.approx(profile.get_single_pulse_signal_to_noise(1e-3, 2.0, 1.0) / 4.0)


@pytest.mark.parametrize("kwargs", [
    dict(dt_sample=0.0, pulse_freq=1.0),
    dict(dt_sample=1e-3, pulse_freq=-1.0),
    dict(dt_sample=1e-3, pulse_freq=1.0, sample_rms=0.0),
    dict(dt_sample=np.nan, pulse_freq=1.0),
])
def test_invalid_sampling_parameters(kwargs):
    with pytest.raises(ValueError):
        single_pulse_snr([1.0, 0.5], **kwargs)


def test_invalid_total_time():
    with pytest.raises(ValueError):
        multi_pulse_snr([1.0, 0.5], 0.0, 1e-3, 1.0)


def test_empty_coefficients():
    with pytest.raises(ValueError):
        single_pulse_snr([], 1e-3, 1.0)
