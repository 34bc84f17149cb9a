"""Scalar parameter validation shared by all public entry points."""

import numbers
from typing import Any, Union

import numpy as np

from .exceptions import ParameterError


def check_param(name: str,
                value: Any,
                whole_number: bool = False,
                positive: bool = False,
                non_negative: bool = True,
                at_least_one: bool = False,
                allow_inf: bool = False) -> Union[int, float]:
    """Validate a single numeric parameter and return it as a Python scalar.

    Args:
        name: Parameter name, used in error messages
        value: Value to check
        whole_number: Require an integral value (returned as int)
        positive: Require value > 0
        non_negative: Require value >= 0
        at_least_one: Require value >= 1
        allow_inf: Accept +inf (e.g. bottleneck order)

    Returns:
        The validated value

    Raises:
        ParameterError: If any constraint fails; the message names the parameter
    """
    if value is None:
        raise ParameterError(f"{name} must not be None.", name, value)

    if isinstance(value, (list, tuple, np.ndarray)):
        arr = np.asarray(value)
        if arr.size != 1:
            raise ParameterError(f"{name} must be a single value.", name, value)
        value = arr.reshape(-1)[0]
        if isinstance(value, np.generic):
            value = value.item()

    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        raise ParameterError(f"{name} must be numeric.", name, value)

    value = float(value) if not isinstance(value, numbers.Integral) else int(value)

    if isinstance(value, float) and np.isnan(value):
        raise ParameterError(f"{name} must not be NA/NaN.", name, value)

    if isinstance(value, float) and np.isinf(value) and not (allow_inf and value > 0):
        raise ParameterError(f"{name} must be finite.", name, value)

    if whole_number:
        if isinstance(value, float) and not value.is_integer():
            raise ParameterError(f"{name} must be a whole number.", name, value)
        value = int(value)

    if non_negative and value < 0:
        raise ParameterError(f"{name} must be non-negative.", name, value)

    if positive and value <= 0:
        raise ParameterError(f"{name} must be positive.", name, value)

    if at_least_one and value < 1:
        raise ParameterError(f"{name} must be at least one.", name, value)

    return value


def check_kernel_params(dim: Any, sigma: Any, t: Any):
    """Validate the (dim, sigma, t) triple shared by every kernel computation."""
    dim = check_param("dim", dim, whole_number=True)
    sigma = check_param("sigma", sigma, positive=True)
    t = check_param("t", t)
    return dim, float(sigma), float(t)
