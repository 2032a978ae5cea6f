"""
Centralized runtime configuration read from the environment.

TRAJOPT_LOG_LEVEL sets the log level used by the server entry point (default INFO).
TRAJOPT_IPOPT_PRINT_LEVEL and TRAJOPT_IPOPT_MAX_ITER tune the inner NLP solver.
"""

import logging
import os

DEFAULT_IPOPT_MAX_ITER = 500


def get_log_level() -> int:
    """Return the configured logging level, falling back to INFO for unknown names."""
    name = os.environ.get("TRAJOPT_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _get_int(name: str, default: int) -> int:
    env = os.environ.get(name)
    if env is None or env.strip() == "":
        return default
    return int(env)


def get_ipopt_options() -> dict:
    """Return the CasADi/IPOPT options used for every inner solve."""
    print_level = _get_int("TRAJOPT_IPOPT_PRINT_LEVEL", 0)
    return {
        'ipopt.print_level': print_level,
        'ipopt.sb': 'yes',  # suppress banner
        'print_time': print_level > 0,
        'ipopt.max_iter': _get_int("TRAJOPT_IPOPT_MAX_ITER", DEFAULT_IPOPT_MAX_ITER),
        'ipopt.tol': 1e-8,
        'ipopt.acceptable_tol': 1e-6,
        'ipopt.linear_solver': 'mumps',
        'expand': True
    }
