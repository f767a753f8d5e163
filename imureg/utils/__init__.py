"""A set of utility functions and datatype helpers used across imureg."""
