"""Differential drive trajectory optimizer package."""

from .kinematics import Pose2D, Twist2D, propagate, create_propagate_function
from .optimizer import (
    MpcOptions,
    Path,
    PenaltyCoefficient,
    ReferencePathNotSetError,
    SolveSummary,
    TrajectoryOptimizer,
)

__all__ = [
    'Pose2D',
    'Twist2D',
    'propagate',
    'create_propagate_function',
    'MpcOptions',
    'Path',
    'PenaltyCoefficient',
    'ReferencePathNotSetError',
    'SolveSummary',
    'TrajectoryOptimizer',
]
