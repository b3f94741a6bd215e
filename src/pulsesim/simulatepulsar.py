"""
simulatepulsar.py simulates the time series of a pulsar with a von Mises pulse
profile, observed in equal time samples. The pulsar spins at a constant
frequency (pulse_freq, with phase phase0 at t=0); anything fancier should go
through VonMisesProfile.eval_integrated_samples() with a custom PhaseModel.

Input parameters are read from an optional .yaml file and may be overridden on
the command line. The yaml file is organized in sections:

    profile:  {duty_cycle: 0.1, detrend: false, min_internal_nphi: 0}
    pulsar:   {pulse_freq: 1.0, phase0: 0.0}
    sampling: {t0: 0.0, t1: 100.0, nt: 100000, amplitude: 1.0}
    noise:    {sample_rms: 0.0, seed: null}

The output is a dataframe of time-sample boundaries and flux, optionally
written to a .txt file, and optionally a .pdf plot of the profile and the
simulated time series. Expected single- and multi-pulse signal-to-noise
ratios are reported in the .log file.

Can be run from command line as "simulatepulsar". A quick summary of a profile
(kappa, grid size, mean flux, SNRs) is available as "profilesummary"
"""

import argparse
import copy

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import yaml

from pulsesim.vonmisesprofile import VonMisesProfile
from pulsesim.phasemodel import CallablePhaseModel

# Log config
############
from pulsesim.logging_utils import get_logger, configure_logging, verbosity_to_level

logger = get_logger(__name__)

_DEFAULT_CONFIG = {
    'profile': {'duty_cycle': 0.1, 'detrend': False, 'min_internal_nphi': 0},
    'pulsar': {'pulse_freq': 1.0, 'phase0': 0.0},
    'sampling': {'t0': 0.0, 't1': 100.0, 'nt': 100000, 'amplitude': 1.0},
    'noise': {'sample_rms': 0.0, 'seed': None},
}


def read_simulation_config(config_path: str | None = None) -> dict:
    """
    Read simulation parameters from a .yaml file, filling in defaults
    :param config_path: path to .yaml file, default = None (defaults only)
    :type config_path: str | None
    :return: flat dictionary of simulation parameters (keywords of simulatepulsar())
    :rtype: dict
    """
    config = copy.deepcopy(_DEFAULT_CONFIG)

    if config_path is not None:
        with open(config_path, "r") as f:
            cfg = yaml.safe_load(f) or {}
        if not isinstance(cfg, dict):
            raise ValueError(f"{config_path}: expected a mapping of sections at top level")

        for section, params in cfg.items():
            if section not in config:
                raise ValueError(f"{config_path}: unknown section '{section}', "
                                 f"allowed are {', '.join(config)}")
            params = params or {}
            if not isinstance(params, dict):
                raise ValueError(f"{config_path}: section '{section}' must be a mapping")
            for key, value in params.items():
                if key not in config[section]:
                    raise ValueError(f"{config_path}: unknown parameter '{key}' in section '{section}'")
                config[section][key] = value

    flat = {}
    for params in config.values():
        flat.update(params)
    return flat


def constant_frequency_phase_model(pulse_freq: float, phase0: float = 0.0) -> CallablePhaseModel:
    """Phase model of a pulsar spinning at a constant frequency, phi(t) = phase0 + pulse_freq * t"""
    if pulse_freq <= 0:
        raise ValueError(f"pulse_freq must be > 0 (got {pulse_freq})")
    return CallablePhaseModel(lambda tt: phase0 + pulse_freq * tt)


def simulatepulsar(duty_cycle: float = 0.1, detrend: bool = False, min_internal_nphi: int = 0,
                   pulse_freq: float = 1.0, phase0: float = 0.0, t0: float = 0.0, t1: float = 100.0,
                   nt: int = 100000, amplitude: float = 1.0, sample_rms: float = 0.0, seed: int | None = None,
                   outputFile: str | None = None, figure: str | None = None):
    """
    Simulate the binned time series of a pulsar with a von Mises profile

    :param duty_cycle: pulse FWHM / period
    :type duty_cycle: float
    :param detrend: subtract the mean flux
    :type detrend: bool
    :param min_internal_nphi: internal phase bins of the profile, 0 for automatic
    :type min_internal_nphi: int
    :param pulse_freq: spin frequency (1 / time units of t0, t1)
    :type pulse_freq: float
    :param phase0: pulse phase at t=0
    :type phase0: float
    :param t0: start of the first time sample
    :type t0: float
    :param t1: end of the last time sample
    :type t1: float
    :param nt: number of time samples
    :type nt: int
    :param amplitude: peak flux of the (non-detrended) profile
    :type amplitude: float
    :param sample_rms: rms of gaussian noise added to each sample, default = 0 (no noise)
    :type sample_rms: float
    :param seed: seed of the noise generator
    :type seed: int | None
    :param outputFile: name of output .txt file (without extension), default = None
    :type outputFile: str | None
    :param figure: name of output .pdf plot (without extension), default = None
    :type figure: str | None
    :return: sim_df, dataframe with columns time_start, time_end, flux
    :rtype: pandas.DataFrame
    """
    logger.info('\n Running simulatepulsar with input parameters: '
                '\n duty_cycle: ' + str(duty_cycle) +
                '\n detrend: ' + str(detrend) +
                '\n min_internal_nphi: ' + str(min_internal_nphi) +
                '\n pulse_freq: ' + str(pulse_freq) +
                '\n phase0: ' + str(phase0) +
                '\n t0: ' + str(t0) +
                '\n t1: ' + str(t1) +
                '\n nt: ' + str(nt) +
                '\n amplitude: ' + str(amplitude) +
                '\n sample_rms: ' + str(sample_rms) +
                '\n seed: ' + str(seed) +
                '\n outputFile: ' + str(outputFile) + '(.txt)' +
                '\n figure: ' + str(figure) + '(.pdf)\n')

    if sample_rms < 0:
        raise ValueError(f"sample_rms must be >= 0 (got {sample_rms})")

    profile = VonMisesProfile(duty_cycle, detrend, min_internal_nphi)
    phase_model = constant_frequency_phase_model(pulse_freq, phase0)

    flux = profile.eval_integrated_samples(t0, t1, nt, phase_model, amplitude)
    if sample_rms > 0:
        rng = np.random.default_rng(seed)
        flux += rng.normal(0.0, sample_rms, nt)

    # SNR scales linearly with amplitude; quoted per unit rms when noiseless
    dt_sample = (t1 - t0) / nt
    rms = sample_rms if sample_rms > 0 else 1.0
    snr_single = amplitude * profile.get_single_pulse_signal_to_noise(dt_sample, pulse_freq, rms)
    snr_multi = amplitude * profile.get_multi_pulse_signal_to_noise(t1 - t0, dt_sample, pulse_freq, rms)
    logger.info('\n ' + repr(profile) +
                '\n kappa: ' + str(profile.kappa) +
                '\n mean flux: ' + str(amplitude * profile.mean_flux) +
                '\n expected single pulse SNR: ' + str(snr_single) +
                '\n expected multi pulse SNR: ' + str(snr_multi) +
                ('' if sample_rms > 0 else ' (per unit sample rms, no noise added)') + '\n')

    edges = t0 + (t1 - t0) * np.arange(nt + 1) / nt
    sim_df = pd.DataFrame({'time_start': edges[:-1], 'time_end': edges[1:], 'flux': flux})

    if outputFile is not None:
        sim_df.to_csv(str(outputFile) + '.txt', sep=' ', index=False, float_format='%.12g')

    if figure is not None:
        plot_simulation(profile, sim_df, amplitude=amplitude, pulse_freq=pulse_freq, plotname=figure)

    logger.info('\n End of simulatepulsar run\n')

    return sim_df


def plot_simulation(profile, sim_df, amplitude: float = 1.0, pulse_freq: float | None = None, plotname=None):
    """
    Plot the profile over one period (top) and the simulated time series (bottom)
    :param profile: the simulated profile
    :type profile: VonMisesProfile
    :param sim_df: output of simulatepulsar()
    :type sim_df: pandas.DataFrame
    :param amplitude: amplitude used in the simulation
    :type amplitude: float
    :param pulse_freq: if given, the time series panel shows the first 3 pulse periods only
    :type pulse_freq: float | None
    :param plotname: name of .pdf file (without extension), default = None (plt.show())
    :type plotname: str | None
    """
    fig, axs = plt.subplots(2, 1, figsize=(10, 8), dpi=80, facecolor='w', edgecolor='k')

    phi = np.linspace(0, 1, 1000)
    axs[0].plot(phi, profile.point_eval(phi, amplitude), color='k', linewidth=1.5)
    axs[0].set_xlabel(r'$\,\mathrm{Phase\ (cycles)}$', fontsize=14)
    axs[0].set_ylabel(r'$\,\mathrm{Flux}$', fontsize=14)

    time_mid = 0.5 * (sim_df['time_start'] + sim_df['time_end'])
    mask = np.ones(len(sim_df), dtype=bool)
    if pulse_freq is not None:
        mask = (time_mid - time_mid.iloc[0]).to_numpy() <= 3.0 / pulse_freq
    axs[1].step(time_mid[mask], sim_df['flux'][mask], where='mid', color='k', linewidth=1.0)
    axs[1].set_xlabel(r'$\,\mathrm{Time}$', fontsize=14)
    axs[1].set_ylabel(r'$\,\mathrm{Flux}$', fontsize=14)

    for ax in axs:
        ax.tick_params(axis='both', labelsize=14, width=1.5)
        ax.grid(True, linestyle='--', alpha=0.3)
        for side in ['top', 'bottom', 'left', 'right']:
            ax.spines[side].set_linewidth(1.5)

    fig.tight_layout()

    if plotname is None:
        plt.show()
    else:
        fig.savefig(str(plotname) + '.pdf', format='pdf', dpi=300, bbox_inches="tight")
    plt.close(fig)
    return


def profilesummary(duty_cycle: float, dt_sample: float, pulse_freq: float, total_time: float | None = None,
                   sample_rms: float = 1.0, detrend: bool = False, min_internal_nphi: int = 0) -> dict:
    """
    Summary of a profile: kappa, internal grid, mean flux and signal-to-noise ratios
    :return: summary
    :rtype: dict
    """
    profile = VonMisesProfile(duty_cycle, detrend, min_internal_nphi)
    summary = {'duty_cycle': profile.duty_cycle, 'detrend': profile.detrend, 'kappa': profile.kappa,
               'internal_nphi': profile.internal_nphi, 'mean_flux': profile.mean_flux,
               'single_pulse_snr': profile.get_single_pulse_signal_to_noise(dt_sample, pulse_freq, sample_rms)}
    if total_time is not None:
        summary['multi_pulse_snr'] = profile.get_multi_pulse_signal_to_noise(total_time, dt_sample, pulse_freq,
                                                                             sample_rms)
    return summary


def main():
    parser = argparse.ArgumentParser(description="Simulate the time series of a pulsar with a von Mises profile")
    parser.add_argument("-c", "--config", help=".yaml file of simulation parameters (see module docstring)",
                        type=str, default=None)
    parser.add_argument("-dc", "--duty_cycle", help="Pulse FWHM / period, default=0.1", type=float, default=None)
    parser.add_argument("-dt", "--detrend", help="Subtract the mean flux, default=False", default=None,
                        action=argparse.BooleanOptionalAction)
    parser.add_argument("-np", "--min_internal_nphi", help="Internal phase bins, default=0 (automatic)",
                        type=int, default=None)
    parser.add_argument("-pf", "--pulse_freq", help="Pulse frequency, default=1", type=float, default=None)
    parser.add_argument("-ph", "--phase0", help="Pulse phase at t=0, default=0", type=float, default=None)
    parser.add_argument("-t0", "--t0", help="Start of first time sample, default=0", type=float, default=None)
    parser.add_argument("-t1", "--t1", help="End of last time sample, default=100", type=float, default=None)
    parser.add_argument("-nt", "--nt", help="Number of time samples, default=100000", type=int, default=None)
    parser.add_argument("-am", "--amplitude", help="Peak flux, default=1", type=float, default=None)
    parser.add_argument("-rm", "--sample_rms", help="Gaussian noise rms per sample, default=0", type=float,
                        default=None)
    parser.add_argument("-sd", "--seed", help="Seed of noise generator", type=int, default=None)
    parser.add_argument("-of", "--outputFile", help="Name of output .txt file (and of .log file), "
                                                    "default=simulatedpulsar", type=str, default='simulatedpulsar')
    parser.add_argument("-fg", "--figure", help="Name of output .pdf plot, default=None", type=str, default=None)
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="WARNING if absent, -v: INFO, -vv: DEBUG")
    args = parser.parse_args()

    configure_logging(console_level=verbosity_to_level(args.verbose), file_path=f"{args.outputFile}.log",
                      file_level="INFO", force=True)

    params = read_simulation_config(args.config)
    for key in params:
        value = getattr(args, key, None)
        if value is not None:
            params[key] = value

    simulatepulsar(**params, outputFile=args.outputFile, figure=args.figure)


def main_summary():
    parser = argparse.ArgumentParser(description="Print kappa, internal grid, mean flux and SNR of a von Mises "
                                                 "profile")
    parser.add_argument("duty_cycle", help="Pulse FWHM / period", type=float)
    parser.add_argument("dt_sample", help="Length of a time sample", type=float)
    parser.add_argument("pulse_freq", help="Pulse frequency", type=float)
    parser.add_argument("-tt", "--total_time", help="Duration of pulse train, default=None", type=float,
                        default=None)
    parser.add_argument("-rm", "--sample_rms", help="Noise rms per sample, default=1", type=float, default=1.0)
    parser.add_argument("-dt", "--detrend", help="Subtract the mean flux, default=False", default=False,
                        action=argparse.BooleanOptionalAction)
    parser.add_argument("-np", "--min_internal_nphi", help="Internal phase bins, default=0 (automatic)",
                        type=int, default=0)
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="WARNING if absent, -v: INFO, -vv: DEBUG")
    args = parser.parse_args()

    configure_logging(console_level=verbosity_to_level(args.verbose), force=True)

    summary = profilesummary(args.duty_cycle, args.dt_sample, args.pulse_freq, args.total_time,
                             args.sample_rms, args.detrend, args.min_internal_nphi)
    for key, value in summary.items():
        print(f"{key}: {value}")


if __name__ == '__main__':
    main()
