"""
signaltonoise.py holds closed-form estimates of the detection signal-to-noise
of a periodic signal, starting from the Fourier coefficients rho_m of its
profile (rho_m = rho_{-m}, real, amplitude = 1).

A profile sampled in time bins of width dt_sample is a boxcar-smoothed
profile, so each harmonic m is attenuated by sinc(m * pulse_freq * dt_sample).
With 1 / (pulse_freq * dt_sample) samples per pulse, Parseval's theorem gives

    snr^2 = [rho_0^2 + 2 sum_{m>=1} (rho_m sinc(m f dt))^2] / (f dt) / rms^2

for a single pulse. This is an approximation: the true (maximum likelihood)
SNR also depends weakly on where the pulses land with respect to the sample
boundaries. It is exact in the limit dt_sample -> 0.
"""

import numpy as np


def _check_positive(**kwargs):
    for name, value in kwargs.items():
        if not np.isfinite(value) or value <= 0:
            raise ValueError(f"{name} must be positive and finite (got {value})")


def single_pulse_snr(profile_fft, dt_sample: float, pulse_freq: float, sample_rms: float = 1.0) -> float:
    """
    Signal-to-noise of a single pulse

    :param profile_fft: Fourier coefficients rho_m, starting at m=0
    :type profile_fft: numpy.ndarray
    :param dt_sample: length of a time sample
    :type dt_sample: float
    :param pulse_freq: pulse frequency (same time units as dt_sample)
    :type pulse_freq: float
    :param sample_rms: rms noise fluctuation in each time sample
    :type sample_rms: float
    :return: snr
    :rtype: float
    """
    _check_positive(dt_sample=dt_sample, pulse_freq=pulse_freq, sample_rms=sample_rms)

    rho = np.asarray(profile_fft, dtype=float)
    if rho.ndim != 1 or rho.size == 0:
        raise ValueError("profile_fft must be a non-empty 1-d array")

    dphi = pulse_freq * dt_sample  # sample length in units of pulse phase
    mm = np.arange(rho.size)
    rho_binned = rho * np.sinc(mm * dphi)

    power = rho_binned[0] ** 2 + 2.0 * np.sum(rho_binned[1:] ** 2)
    return float(np.sqrt(power / dphi) / sample_rms)


def multi_pulse_snr(profile_fft, total_time: float, dt_sample: float, pulse_freq: float,
                    sample_rms: float = 1.0) -> float:
    """
    Signal-to-noise of a pulse train of duration total_time, treating the
    total_time * pulse_freq pulses as independent

    :param profile_fft: Fourier coefficients rho_m, starting at m=0
    :type profile_fft: numpy.ndarray
    :param total_time: duration of the pulse train
    :type total_time: float
    :param dt_sample: length of a time sample
    :type dt_sample: float
    :param pulse_freq: pulse frequency
    :type pulse_freq: float
    :param sample_rms: rms noise fluctuation in each time sample
    :type sample_rms: float
    :return: snr
    :rtype: float
    """
    _check_positive(total_time=total_time)
    return single_pulse_snr(profile_fft, dt_sample, pulse_freq, sample_rms) * np.sqrt(total_time * pulse_freq)
