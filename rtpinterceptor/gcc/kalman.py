"""Scalar Kalman filter estimating the inter-group delay variation."""

from __future__ import annotations

import math

CHI = 0.001
_MILLISECOND = 1_000_000


def _to_micros(nanos: int) -> int:
    """Whole microseconds in ``nanos``, truncated toward zero."""
    micros = abs(nanos) // 1_000
    return micros if nanos >= 0 else -micros


class Kalman:
    """Kalman filter over durations in nanoseconds.

    ``estimate_error`` is given as a standard deviation and kept as a variance;
    when left out, the variance starts at 0.1.
    """

    def __init__(
        self,
        *,
        estimate: int = 0,
        process_uncertainty: float = 1e-3,
        estimate_error: float | None = None,
        measurement_uncertainty: float = 0.0,
        disable_measurement_uncertainty_updates: bool = False,
    ) -> None:
        self.gain = 0.0
        self.estimate = int(estimate)
        self.process_uncertainty = process_uncertainty
        self.estimate_error = 0.1 if estimate_error is None else estimate_error * estimate_error
        self.measurement_uncertainty = measurement_uncertainty
        self.disable_measurement_uncertainty_updates = disable_measurement_uncertainty_updates

    def update_estimate(self, measurement: int) -> int:
        """Fold in one measurement and return the new estimate in nanoseconds."""
        z = int(measurement) - self.estimate
        zms = float(_to_micros(z)) / 1000.0

        if not self.disable_measurement_uncertainty_updates:
            alpha = math.pow(1 - CHI, 30.0 / (1000.0 * 5 * float(_MILLISECOND)))
            root3 = 3 * math.sqrt(self.measurement_uncertainty)
            if zms > root3:
                self.measurement_uncertainty = max(
                    alpha * self.measurement_uncertainty + (1 - alpha) * root3 * root3, 1
                )
            self.measurement_uncertainty = max(
                alpha * self.measurement_uncertainty + (1 - alpha) * zms * zms, 1
            )

        estimate_uncertainty = self.estimate_error + self.process_uncertainty
        self.gain = estimate_uncertainty / (estimate_uncertainty + self.measurement_uncertainty)
        self.estimate += int(self.gain * zms * float(_MILLISECOND))
        self.estimate_error = (1 - self.gain) * estimate_uncertainty
        return self.estimate