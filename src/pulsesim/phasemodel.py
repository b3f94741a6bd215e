"""
phasemodel.py defines the capability a pulse profile needs from a timing model:
mapping times onto (unwrapped) pulse phases. The profile never builds a phase
model itself; one is handed in on each call to eval_integrated_samples().

Any object deriving from PhaseModel and implementing eval_phases() will do. A
ready-made timing-solution evaluator (e.g., something returning total phases
from a .par file) can be wrapped with CallablePhaseModel
"""

from abc import ABC, abstractmethod

import numpy as np


class PhaseModel(ABC):
    """
        Abstract mapping from time to pulse phase

        Phases are *unwrapped*, i.e., they count whole rotations and must be
        non-decreasing in time. The spin frequency does not need to be constant.

        Methods
        -------
        eval_phases(times):
            pulse phase at each time (vectorized)
        phase_interval(t0, t1):
            pair of phases corresponding to the time boundaries t0 <= t1
        """

    @abstractmethod
    def eval_phases(self, times):
        """
        Pulse phase at each time

        :param times: times, in the units the model expects
        :type times: numpy.ndarray
        :return: unwrapped phases, same shape as times
        :rtype: numpy.ndarray
        """

    def phase_interval(self, t0: float, t1: float):
        """
        Phase boundaries of the time interval [t0, t1]

        :param t0: start time
        :type t0: float
        :param t1: end time
        :type t1: float
        :return: phi0, phi1
        :rtype: tuple
        """
        if t1 < t0:
            raise ValueError(f"phase_interval: expected t0 <= t1, got t0={t0}, t1={t1}")
        phi = np.asarray(self.eval_phases(np.array([t0, t1], dtype=float)), dtype=float)
        return float(phi[0]), float(phi[1])


class CallablePhaseModel(PhaseModel):
    """
        PhaseModel wrapping a vectorized function of time

        Attributes
        ----------
        func : callable
            maps an array of times onto an array of unwrapped phases
        """

    def __init__(self, func):
        if not callable(func):
            raise TypeError("CallablePhaseModel expects a callable mapping times to phases")
        self.func = func

    def eval_phases(self, times):
        times = np.asarray(times, dtype=float)
        phases = np.asarray(self.func(times), dtype=float)
        if phases.shape != times.shape:
            raise ValueError(f"phase function returned shape {phases.shape}, expected {times.shape}")
        return phases

    def __repr__(self):
        return f"CallablePhaseModel({self.func!r})"
