"""Algorithms to align the heading of the IMU world frame with the ground frame of a model."""
from imureg.heading_correction._heading_correction import (
    HeadingCorrection,
    apply_heading_correction,
    compute_heading_correction,
)

__all__ = ["HeadingCorrection", "compute_heading_correction", "apply_heading_correction"]
