"""Some custom helper types to make typehints and typechecking easier.

For user facing type declarations, please see `imureg.utils.datatype_helper`.
"""
from typing_extensions import Literal

_AxisName = Literal["x", "y", "z"]
