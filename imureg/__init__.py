"""Register wearable IMU frames onto rigid body models and correct their global heading."""

__version__ = "0.3.0"
