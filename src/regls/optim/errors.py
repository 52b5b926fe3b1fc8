"""Exceptions raised by the ZeroFPR solver."""

from __future__ import annotations

import math


class ZeroFPRError(RuntimeError):
    """Fatal solver failure, with the last valid diagnostics attached.

    Attributes
    ----------
    iteration : int
        Iteration at which the failure was detected (0 during initialization).
    gamma : float
        Step size at the time of failure.
    normfpr : float
        Last fixed-point residual norm.
    """

    def __init__(
        self,
        message: str,
        *,
        iteration: int = 0,
        gamma: float = math.nan,
        normfpr: float = math.nan,
    ) -> None:
        super().__init__(f"{message} (iteration={iteration}, gamma={gamma:.4e}, normfpr={normfpr:.4e})")
        self.iteration = iteration
        self.gamma = gamma
        self.normfpr = normfpr


class NonFiniteError(ZeroFPRError):
    """The smooth value, its gradient or the envelope became NaN or infinite."""


class HaltingPredicateError(ZeroFPRError):
    """A custom halting predicate raised or returned a non-boolean."""
