"""
Residual functions for the trajectory least-squares problem.

Every residual is a CasADi Function returning a 3-vector
[angle error, x error, y error] (or the twist difference), which the
optimizer scales and sums as 0.5 * scale * ||r||^2.
"""

import casadi as ca
import numpy as np

from .kinematics import create_propagate_function, heading_of_symbolic


def _pose_error(rotation_target: ca.MX, position_target: ca.MX,
                rotation: ca.MX, position: ca.MX) -> ca.MX:
    # Planar angle from target to pose, then the world-frame position offset
    angle = heading_of_symbolic(ca.mtimes(rotation_target.T, rotation))
    return ca.vertcat(angle, position - position_target)


def create_reference_path_residual() -> ca.Function:
    """
    Error between a free pose and its reference pose.

    Returns:
        f_reference: CasADi Function (rotation_ref, position_ref, rotation, position) -> 3-vector
    """
    rotation_ref = ca.MX.sym('rotation_ref', 2, 2)
    position_ref = ca.MX.sym('position_ref', 2)
    rotation = ca.MX.sym('rotation', 2, 2)
    position = ca.MX.sym('position', 2)

    residual = _pose_error(rotation_ref, position_ref, rotation, position)
    return ca.Function('f_reference', [rotation_ref, position_ref, rotation, position], [residual])


def create_velocity_change_residual() -> ca.Function:
    """
    Change in twist between consecutive steps.

    Returns:
        f_velocity: CasADi Function (twist, twist_prev) -> 3-vector
    """
    twist = ca.MX.sym('twist', 3)
    twist_prev = ca.MX.sym('twist_prev', 3)
    return ca.Function('f_velocity', [twist, twist_prev], [twist - twist_prev])


def create_kinematic_constraint_residual(time_step: float) -> ca.Function:
    """
    Deviation of a pose from the kinematic model's prediction.

    The previous pose is propagated with the previous twist for one time step
    and compared against the current pose.

    Args:
        time_step: Fixed step between consecutive poses (s)

    Returns:
        f_kinematic: CasADi Function
            (rotation, position, rotation_prev, position_prev, twist_prev) -> 3-vector
    """
    f_propagate = create_propagate_function()

    rotation = ca.MX.sym('rotation', 2, 2)
    position = ca.MX.sym('position', 2)
    rotation_prev = ca.MX.sym('rotation_prev', 2, 2)
    position_prev = ca.MX.sym('position_prev', 2)
    twist_prev = ca.MX.sym('twist_prev', 3)

    rotation_pred, position_pred = f_propagate(rotation_prev, position_prev, twist_prev, time_step)
    residual = _pose_error(rotation_pred, position_pred, rotation, position)

    return ca.Function(
        'f_kinematic',
        [rotation, position, rotation_prev, position_prev, twist_prev],
        [residual]
    )


def residual_cost(residual) -> float:
    """Unscaled cost 0.5 * ||r||^2 of an evaluated residual."""
    r = np.asarray(ca.DM(residual)).reshape(-1)
    return 0.5 * float(r @ r)
