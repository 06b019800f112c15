RTOL = 0.00001
ATOL = 1e-7

# geometric tolerance: absolute on coordinates and distance thresholds,
# relative (to the length under test) in the proximity graph predicates
EPSILON = 1e-9

ZERO_POLICIES = ("strict", "permissive")
ALTERNATIVES = ("two-sided", "greater", "less")

__all__ = [
    "RTOL",
    "ATOL",
    "EPSILON",
    "ConfigurationError",
    "TopologyError",
    "IsolationError",
    "NumericError",
    "IsolationWarning",
    "AlignmentWarning",
]


class ConfigurationError(ValueError):
    """Raised when an option is outside of its admissible set of values."""

    pass


class TopologyError(ValueError):
    """Raised when input geometry is degenerate for the requested builder."""

    pass


class IsolationError(ConfigurationError):
    """Raised when an isolated unit is met under ``zero_policy="strict"``."""

    pass


class NumericError(ArithmeticError):
    """Raised when a statistic or one of its moments is undefined."""

    pass


class IsolationWarning(UserWarning):
    """Warn about units without any neighbor."""

    pass


class AlignmentWarning(UserWarning):
    """Warn about attribute values matched to units by position."""

    pass


def _validate_epsilon(epsilon):
    if epsilon is None:
        return EPSILON
    try:
        epsilon = float(epsilon)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'epsilon' needs to be a number. '{epsilon}' was given.") from e
    if not epsilon >= 0:
        raise ConfigurationError(
            f"'epsilon' needs to be a non-negative number. '{epsilon}' was given."
        )
    return epsilon


def _validate_alternative(alternative):
    if alternative not in ALTERNATIVES:
        raise ConfigurationError(
            f"'alternative' needs to be one of {ALTERNATIVES}. "
            f"'{alternative}' was given instead."
        )
    return alternative


def _validate_zero_policy(zero_policy):
    if zero_policy not in ZERO_POLICIES:
        raise ConfigurationError(
            f"'zero_policy' needs to be one of {ZERO_POLICIES}. "
            f"'{zero_policy}' was given instead."
        )
    return zero_policy
