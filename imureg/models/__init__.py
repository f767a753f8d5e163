"""Body models that implement the interface required by the registration and calibration algorithms."""
from imureg.models._rigid_body_model import RigidBodyModel

__all__ = ["RigidBodyModel"]
