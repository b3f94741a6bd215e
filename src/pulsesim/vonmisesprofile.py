"""
vonmisesprofile.py implements the von Mises pulse profile used to simulate
pulsars, i.e., a flux as a function of pulse phase phi

      rho(phi) = exp[ -2 kappa sin(pi*phi)^2 ]

where kappa is a narrowness parameter related to the duty cycle D (full width
at half maximum over period) by kappa = log(2) / (2 sin^2(pi*D/2)). The profile
is normalized to a peak flux of 1 before any detrending; most methods accept
an 'amplitude' to change the normalization.

The profile is tabulated once, at construction, on a phase grid of
internal_nphi bins. Alongside the samples we keep their running integral (the
antiderivative), so the average flux over an arbitrary phase interval is two
lookups rather than a fresh integration. This is what makes simulating long,
finely sampled time series tractable. The Fourier coefficients of the profile
are also kept, for the signal-to-noise estimates in signaltonoise.py.

To simulate a pulsar you need a profile and a phase model (see phasemodel.py),
then call eval_integrated_samples() or add_integrated_samples()
"""

import numbers

import numpy as np
from scipy.integrate import trapezoid

from pulsesim.phasemodel import PhaseModel, CallablePhaseModel
from pulsesim.signaltonoise import single_pulse_snr, multi_pulse_snr

# Log config
############
from pulsesim.logging_utils import get_logger

logger = get_logger(__name__)

# Peak-normalized accuracy of the linear interpolant on an automatically chosen grid
_INTERP_TOL = 1.0e-4
_MIN_NPHI = 64
# Fourier coefficients kept beyond the Nyquist mode internal_nphi/2
_NFFT_EXTRA = 10
# Time samples handled per call to the phase model
_BLOCK_SIZE = 1024
# Phase intervals narrower than this are evaluated at their midpoint
_MIN_DPHI = 1.0e-12


def vonmises_kappa(duty_cycle: float) -> float:
    """
    Narrowness parameter kappa of a von Mises profile with the given duty cycle
    :param duty_cycle: pulse FWHM / pulse period, in (0, 1)
    :type duty_cycle: float
    :return: kappa
    :rtype: float
    """
    return float(np.log(2.0) / (2.0 * np.sin(np.pi * duty_cycle / 2.0) ** 2))


def internal_nphi_for(kappa: float, min_internal_nphi: int = 0) -> int:
    """
    Number of phase bins used to tabulate the profile (always even)

    With min_internal_nphi=0, the grid is the coarsest one whose linear
    interpolation error, h^2 max|rho''| / 8 with max|rho''| = 4 pi^2 kappa,
    stays below _INTERP_TOL. Otherwise min_internal_nphi is used as given,
    rounded up to an even number.

    :param kappa: narrowness parameter
    :type kappa: float
    :param min_internal_nphi: requested number of bins, 0 for automatic
    :type min_internal_nphi: int
    :return: internal_nphi
    :rtype: int
    """
    if min_internal_nphi > 0:
        nphi = int(min_internal_nphi)
    else:
        nphi = max(_MIN_NPHI, int(np.ceil(np.pi * np.sqrt(kappa / (2.0 * _INTERP_TOL)))))
    return nphi + (nphi % 2)


def _readonly(arr):
    arr.setflags(write=False)
    return arr


class VonMisesProfile:
    """
        A von Mises pulse profile tabulated on a periodic phase grid

        Attributes
        ----------
        duty_cycle : float
            pulse full width at half maximum divided by the period, in (0, 1)
        detrend : bool
            if True, the mean flux is subtracted from the profile
        kappa : float
            narrowness parameter derived from duty_cycle
        internal_nphi : int
            number of phase bins used internally (even)
        mean_flux : float
            mean of the profile over a period, before detrending
        profile_grid : numpy.ndarray
            (possibly detrended) flux at phases i/internal_nphi, i = 0..internal_nphi
        antiderivative_grid : numpy.ndarray
            integral of profile_grid from phase 0 to phase i/internal_nphi

        Methods
        -------
        point_eval(phi, amplitude=1.0):
            instantaneous flux at pulse phase phi
        eval_integrated_samples(t0, t1, nt, phase_model, amplitude=1.0, out=None):
            average flux in each of nt time samples tiling [t0, t1)
        add_integrated_samples(out, t0, t1, nt, phase_model, amplitude=1.0):
            same as above, adding to the contents of out
        eval_integrated_sample_slow(phi0, phi1, amplitude=1.0):
            average flux over a phase interval, by direct integration (debugging)
        get_profile_fft(nout=0, dtype=numpy.float64, out=None):
            Fourier coefficients rho_m of the profile
        get_single_pulse_signal_to_noise(dt_sample, pulse_freq, sample_rms=1.0):
            SNR of a single pulse
        get_multi_pulse_signal_to_noise(total_time, dt_sample, pulse_freq, sample_rms=1.0):
            SNR of a pulse train
        """

    def __init__(self, duty_cycle: float, detrend: bool = False, min_internal_nphi: int = 0):
        """
        Constructs all the necessary attributes for the VonMisesProfile object

        Parameters
        ----------
            duty_cycle : float
                pulse FWHM / pulse period, a reasonable choice is 0.1 or so
            detrend : bool
                subtract the mean from the profile, default = False
            min_internal_nphi : int
                number of internal phase bins, default = 0, i.e., chosen from the
                duty cycle. A caller-forced value below the automatic one trades
                accuracy for speed
        """
        if isinstance(duty_cycle, bool) or not isinstance(duty_cycle, numbers.Real):
            raise TypeError(f"duty_cycle must be a real number (got {duty_cycle!r})")
        if not (0.0 < duty_cycle < 1.0):
            raise ValueError(f"duty_cycle must be in the open interval (0, 1) (got {duty_cycle})")
        if isinstance(min_internal_nphi, bool) or not isinstance(min_internal_nphi, numbers.Integral):
            raise TypeError(f"min_internal_nphi must be an integer (got {min_internal_nphi!r})")
        if min_internal_nphi < 0:
            raise ValueError(f"min_internal_nphi must be >= 0 (got {min_internal_nphi})")

        self.duty_cycle = float(duty_cycle)
        self.detrend = bool(detrend)
        self.kappa = vonmises_kappa(self.duty_cycle)
        self.internal_nphi = internal_nphi_for(self.kappa, int(min_internal_nphi))

        nphi = self.internal_nphi
        auto_nphi = internal_nphi_for(self.kappa)
        if nphi < auto_nphi:
            logger.warning(f'internal_nphi={nphi} is coarser than the {auto_nphi} bins needed to resolve '
                           f'a pulse with duty_cycle={self.duty_cycle}; simulated fluxes will be less accurate')

        # Sampling the profile, padded to nphi+1 so that interpolation never wraps
        phi = np.arange(nphi + 1) / nphi
        rho = np.exp(-2.0 * self.kappa * np.sin(np.pi * phi) ** 2)
        rho[nphi] = rho[0]

        self.mean_flux = float(trapezoid(rho, dx=1.0 / nphi))
        self._period_integral = 0.0 if self.detrend else self.mean_flux

        profile = rho - self.mean_flux if self.detrend else rho.copy()

        # Running sum of trapezoid areas, pinned to the exact one-period integral
        antider = np.zeros(nphi + 1)
        antider[1:] = np.cumsum(0.5 * (profile[1:] + profile[:-1])) / nphi
        antider[nphi] = self._period_integral

        # Direct cosine sum of the raw samples; modes above nphi/2 alias onto nphi - m
        nfft = nphi // 2 + _NFFT_EXTRA
        rho_m = np.fft.rfft(rho[:nphi]).real / nphi
        mm = np.arange(nfft) % nphi
        profile_fft = rho_m[np.minimum(mm, nphi - mm)]
        if self.detrend:
            profile_fft[0] = 0.0

        self._raw_profile = _readonly(rho)
        self.profile_grid = _readonly(profile)
        self.antiderivative_grid = _readonly(antider)
        self._profile_fft = _readonly(profile_fft)

        logger.debug(f'Built {self!r}: kappa={self.kappa:.6g}, internal_nphi={nphi}, '
                     f'mean_flux={self.mean_flux:.6g}')

    def __repr__(self):
        return (f"VonMisesProfile(duty_cycle={self.duty_cycle}, detrend={self.detrend}, "
                f"internal_nphi={self.internal_nphi})")

    def get_mean_flux(self) -> float:
        """Mean flux over a period, before detrending (amplitude=1)"""
        return self.mean_flux

    #################################################################
    def point_eval(self, phi, amplitude: float = 1.0):
        """
        Instantaneous flux at pulse phase phi (detrended if the profile is)
        :param phi: pulse phase(s), any real value
        :type phi: float | numpy.ndarray
        :param amplitude: normalization, default = 1
        :type amplitude: float
        :return: flux
        :rtype: float | numpy.ndarray
        """
        phi = np.asarray(phi, dtype=float)
        if not np.all(np.isfinite(phi)):
            raise ValueError("point_eval: phi must be finite")

        nphi = self.internal_nphi
        x = np.mod(phi, 1.0) * nphi
        ii = np.minimum(x.astype(int), nphi - 1)
        tt = x - ii
        flux = amplitude * ((1.0 - tt) * self.profile_grid[ii] + tt * self.profile_grid[ii + 1])

        return float(flux) if flux.ndim == 0 else flux

    def _antiderivative(self, frac):
        """Exact integral of the interpolated profile from 0 to frac, 0 <= frac <= 1"""
        nphi = self.internal_nphi
        x = frac * nphi
        ii = np.minimum(x.astype(int), nphi - 1)
        tt = x - ii
        y0 = self.profile_grid[ii]
        y1 = self.profile_grid[ii + 1]
        return self.antiderivative_grid[ii] + (tt * y0 + 0.5 * tt * tt * (y1 - y0)) / nphi

    def _interval_average(self, phi0, phi1):
        """
        Average flux over the phase intervals [phi0, phi1] (arrays, phi1 >= phi0)

        An interval spanning k whole periods plus a remainder integrates to
        k * period_integral plus a difference of two antiderivative lookups
        """
        k0 = np.floor(phi0)
        k1 = np.floor(phi1)
        integral = ((k1 - k0) * self._period_integral +
                    self._antiderivative(phi1 - k1) - self._antiderivative(phi0 - k0))

        width = phi1 - phi0
        narrow = width < _MIN_DPHI
        avg = integral / np.where(narrow, 1.0, width)
        if np.any(narrow):
            avg[narrow] = self.point_eval(0.5 * (phi0[narrow] + phi1[narrow]))
        return avg

    @staticmethod
    def _as_phase_model(phase_model):
        if isinstance(phase_model, PhaseModel):
            return phase_model
        if callable(phase_model):
            return CallablePhaseModel(phase_model)
        raise TypeError("phase_model must be a PhaseModel or a callable mapping times to phases")

    def _integrated_samples(self, t0, t1, nt, phase_model, work=None):
        if isinstance(nt, bool) or not isinstance(nt, numbers.Integral):
            raise TypeError(f"nt must be an integer (got {nt!r})")
        if nt <= 0:
            raise ValueError(f"nt must be > 0 (got {nt})")
        if not (np.isfinite(t0) and np.isfinite(t1)) or t1 <= t0:
            raise ValueError(f"expected finite t0 < t1 (got t0={t0}, t1={t1})")

        phase_model = self._as_phase_model(phase_model)
        nblock = min(nt, _BLOCK_SIZE)
        if work is None:
            work = np.empty(nblock + 1)
        elif np.shape(work) != (len(work),) or len(work) < nblock + 1:
            raise ValueError(f"work buffer must be a 1-d array of length >= {nblock + 1}")

        dt = (t1 - t0) / nt
        samples = np.empty(nt)

        for start in range(0, nt, _BLOCK_SIZE):
            stop = min(start + _BLOCK_SIZE, nt)
            edges = t0 + dt * np.arange(start, stop + 1)
            if stop == nt:
                edges[-1] = t1

            phi = work[:stop - start + 1]
            phi[:] = phase_model.eval_phases(edges)
            if not np.all(np.isfinite(phi)):
                raise ValueError("phase model returned non-finite phases")
            if np.any(np.diff(phi) < 0):
                raise ValueError(f"phase model is not monotonic in time between t={edges[0]} and t={edges[-1]}")

            samples[start:stop] = self._interval_average(phi[:-1], phi[1:])

        return samples

    def eval_integrated_samples(self, t0: float, t1: float, nt: int, phase_model, amplitude: float = 1.0,
                                out=None, work=None):
        """
        Average flux in each of nt equal time samples tiling [t0, t1)

        t0 is the beginning of the first sample and t1 the end of the last one,
        i.e., t1 = t0 + nt*dt. The phase model supplies the pulse phase at each
        sample boundary; phases must be non-decreasing in time.

        :param t0: start of the first time sample
        :type t0: float
        :param t1: end of the last time sample
        :type t1: float
        :param nt: number of time samples
        :type nt: int
        :param phase_model: PhaseModel, or a vectorized callable mapping times to phases
        :type phase_model: PhaseModel | callable
        :param amplitude: normalization, default = 1
        :type amplitude: float
        :param out: array of length nt to write to, default = None (newly allocated)
        :type out: numpy.ndarray | None
        :param work: working buffer for phases, length >= min(nt, 1024) + 1, default = None (allocated per call)
        :type work: numpy.ndarray | None
        :return: out
        :rtype: numpy.ndarray
        """
        if out is not None and np.shape(out) != (nt,):
            raise ValueError(f"out must have shape ({nt},) (got {np.shape(out)})")

        samples = self._integrated_samples(t0, t1, nt, phase_model, work)
        if out is None:
            return amplitude * samples
        out[:] = amplitude * samples
        return out

    def add_integrated_samples(self, out, t0: float, t1: float, nt: int, phase_model, amplitude: float = 1.0):
        """
        Like eval_integrated_samples(), but adds the simulated flux to out,
        e.g., to superpose several pulsars or a pulsar on top of noise
        :return: out
        :rtype: numpy.ndarray
        """
        if not isinstance(out, np.ndarray):
            raise TypeError("out must be a numpy array")
        if out.shape != (nt,):
            raise ValueError(f"out must have shape ({nt},) (got {out.shape})")

        out += amplitude * self._integrated_samples(t0, t1, nt, phase_model)
        return out

    def eval_integrated_sample_slow(self, phi0: float, phi1: float, amplitude: float = 1.0) -> float:
        """
        Average flux over the phase (not time) interval [phi0, phi1], integrating
        the tabulated raw profile directly. Meant for checking the fast path
        :param phi0: start phase
        :type phi0: float
        :param phi1: end phase, >= phi0
        :type phi1: float
        :param amplitude: normalization, default = 1
        :type amplitude: float
        :return: average flux
        :rtype: float
        """
        if not (np.isfinite(phi0) and np.isfinite(phi1)) or phi1 < phi0:
            raise ValueError(f"expected finite phi0 <= phi1 (got phi0={phi0}, phi1={phi1})")
        if phi1 == phi0:
            return self.point_eval(phi0, amplitude)

        nphi = self.internal_nphi
        grid = np.arange(nphi + 1) / nphi

        def integrate(a, b):
            inner = grid[(grid > a) & (grid < b)]
            xx = np.concatenate(([a], inner, [b]))
            return trapezoid(np.interp(xx, grid, self._raw_profile), xx)

        k0 = np.floor(phi0)
        k1 = np.floor(phi1)
        frac0 = phi0 - k0
        frac1 = phi1 - k1
        if k0 == k1:
            total = integrate(frac0, frac1)
        else:
            period = trapezoid(self._raw_profile, grid)
            total = integrate(frac0, 1.0) + (k1 - k0 - 1) * period + integrate(0.0, frac1)

        if self.detrend:
            total -= self.mean_flux * (phi1 - phi0)

        return float(amplitude * total / (phi1 - phi0))

    #################################################################
    def get_profile_fft(self, nout: int = 0, dtype=np.float64, out=None):
        """
        Fourier coefficients of the profile

            rho_m = int_0^1 dphi rho(phi) e^{2 pi i m phi}

        rho_m is real and rho_m = rho_{-m}, since the profile is symmetric. rho_0 is
        mean_flux, or 0 if detrended. internal_nphi/2 + 10 coefficients are computed;
        longer requests are zero-padded

        :param nout: number of coefficients, default = 0, i.e., internal_nphi/2 + 10
        :type nout: int
        :param dtype: numeric type of the returned array, default = numpy.float64
        :type dtype: numpy.dtype
        :param out: array to fill instead, its length sets nout, default = None
        :type out: numpy.ndarray | None
        :return: rho_m for m = 0 .. nout-1
        :rtype: numpy.ndarray
        """
        if out is not None:
            if np.ndim(out) != 1:
                raise ValueError("out must be a 1-d array")
            if nout not in (0, len(out)):
                raise ValueError(f"nout={nout} does not match len(out)={len(out)}")
            nout = len(out)
        else:
            if nout < 0:
                raise ValueError(f"nout must be >= 0 (got {nout})")
            if nout == 0:
                nout = len(self._profile_fft)
            out = np.empty(nout, dtype=dtype)

        ncopy = min(nout, len(self._profile_fft))
        out[:ncopy] = self._profile_fft[:ncopy]
        out[ncopy:] = 0
        return out

    #################################################################
    def _nonaliased_fft(self):
        return self._profile_fft[:self.internal_nphi // 2 + 1]

    def get_single_pulse_signal_to_noise(self, dt_sample: float, pulse_freq: float, sample_rms: float = 1.0) -> float:
        """
        SNR of a single pulse with amplitude=1, accounting for finite time
        resolution and detrending. An approximation (see signaltonoise.py)
        :param dt_sample: length of a time sample
        :type dt_sample: float
        :param pulse_freq: pulse frequency
        :type pulse_freq: float
        :param sample_rms: rms noise fluctuation in each time sample, default = 1
        :type sample_rms: float
        :return: snr
        :rtype: float
        """
        return single_pulse_snr(self._nonaliased_fft(), dt_sample, pulse_freq, sample_rms)

    def get_multi_pulse_signal_to_noise(self, total_time: float, dt_sample: float, pulse_freq: float,
                                        sample_rms: float = 1.0) -> float:
        """
        SNR of a pulse train of duration total_time with amplitude=1
        :return: snr
        :rtype: float
        """
        return multi_pulse_snr(self._nonaliased_fft(), total_time, dt_sample, pulse_freq, sample_rms)
