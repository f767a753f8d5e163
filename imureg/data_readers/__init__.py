"""Readers that convert vendor specific IMU exports into orientation tables."""
from imureg.data_readers._apdm_reader import APDMDataReader
from imureg.data_readers._xsens_reader import XsensDataReader

__all__ = ["XsensDataReader", "APDMDataReader"]
