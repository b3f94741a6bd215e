"""
pulsesim: von Mises pulse profiles for simulating periodic astrophysical signals
"""

__version__ = "0.1.0"

from pulsesim.phasemodel import PhaseModel, CallablePhaseModel
from pulsesim.vonmisesprofile import VonMisesProfile, vonmises_kappa, internal_nphi_for
from pulsesim.signaltonoise import single_pulse_snr, multi_pulse_snr
