"""
Differential drive kinematic model for trajectory optimization.

Pose (3 DOF, stored redundantly):
    rotation: 2x2 planar rotation block [[cos, -sin], [sin, cos]]
    position: [x, y] in the world frame (m)

Twist (body frame):
    [omega, vx, vy]
    - omega: angular rate (rad/s)
    - vx: forward velocity (m/s)
    - vy: lateral velocity (m/s), always zero for a differential drive

The model integrates a constant body twist exactly over a time step
(SE(2) exponential map), so a pure rotation in place never moves the
robot and a straight drive never turns it.
"""

from dataclasses import dataclass, field
import casadi as ca
import numpy as np

# Below this rotation increment the closed-form terms are replaced by their Taylor series
SMALL_ANGLE = 1e-6


def rotation_matrix(theta: float) -> np.ndarray:
    """Return the 2x2 rotation block for a heading angle."""
    c = np.cos(theta)
    s = np.sin(theta)
    return np.array([[c, -s], [s, c]])


def heading_of(rotation: np.ndarray) -> float:
    """Return the heading angle in (-pi, pi] of a 2x2 rotation block."""
    return float(np.arctan2(rotation[1, 0], rotation[0, 0]))


def angle_difference(a: np.ndarray, b: np.ndarray) -> float:
    """Planar angle that rotates `a` onto `b`, i.e. heading_of(a^T b)."""
    return heading_of(a.T @ b)


@dataclass(eq=False)
class Pose2D:
    """Planar pose with a rotation block and a position."""
    rotation: np.ndarray = field(default_factory=lambda: np.eye(2))
    position: np.ndarray = field(default_factory=lambda: np.zeros(2))

    def __post_init__(self):
        self.rotation = np.array(self.rotation, dtype=np.float64).reshape(2, 2)
        self.position = np.array(self.position, dtype=np.float64).reshape(2)

    @classmethod
    def from_xy_heading(cls, x: float, y: float, heading: float) -> "Pose2D":
        return cls(rotation_matrix(heading), np.array([x, y]))

    @property
    def x(self) -> float:
        return float(self.position[0])

    @property
    def y(self) -> float:
        return float(self.position[1])

    @property
    def heading(self) -> float:
        return heading_of(self.rotation)

    def copy(self) -> "Pose2D":
        return Pose2D(self.rotation.copy(), self.position.copy())


@dataclass
class Twist2D:
    """Body-frame velocity [omega, vx, vy]."""
    omega: float = 0.0
    vx: float = 0.0
    vy: float = 0.0

    @classmethod
    def from_vector(cls, v) -> "Twist2D":
        v = np.asarray(v, dtype=np.float64).reshape(3)
        return cls(float(v[0]), float(v[1]), float(v[2]))

    def as_vector(self) -> np.ndarray:
        return np.array([self.omega, self.vx, self.vy])


def _displacement_terms(phi: float) -> tuple[float, float]:
    """Return (sin(phi)/phi, (1 - cos(phi))/phi) with a small-angle fallback."""
    if abs(phi) < SMALL_ANGLE:
        return 1.0 - phi * phi / 6.0, phi / 2.0 - phi ** 3 / 24.0
    return np.sin(phi) / phi, (1.0 - np.cos(phi)) / phi


def propagate(pose: Pose2D, twist, dt: float) -> Pose2D:
    """
    Pose reached after holding a body twist constant for dt seconds.

    Args:
        pose: Starting pose
        twist: Twist2D or 3-vector [omega, vx, vy]
        dt: Time step (s)

    Returns:
        New Pose2D; the input pose is left untouched
    """
    if isinstance(twist, Twist2D):
        twist = twist.as_vector()
    omega, vx, vy = np.asarray(twist, dtype=np.float64).reshape(3)

    phi = omega * dt
    a, b = _displacement_terms(phi)

    # Body-frame displacement over the step
    dx = (a * vx - b * vy) * dt
    dy = (b * vx + a * vy) * dt

    position = pose.position + pose.rotation @ np.array([dx, dy])
    rotation = pose.rotation @ rotation_matrix(phi)
    return Pose2D(rotation, position)


def rotation_matrix_symbolic(theta: ca.MX) -> ca.MX:
    """Symbolic 2x2 rotation block."""
    c = ca.cos(theta)
    s = ca.sin(theta)
    return ca.vertcat(ca.horzcat(c, -s), ca.horzcat(s, c))


def heading_of_symbolic(rotation: ca.MX) -> ca.MX:
    return ca.atan2(rotation[1, 0], rotation[0, 0])


def create_propagate_function() -> ca.Function:
    """
    Create a CasADi function for the constant-twist pose propagation.

    Returns:
        f_propagate: CasADi Function (rotation, position, twist, dt) -> (rotation', position')
    """
    rotation = ca.MX.sym('rotation', 2, 2)
    position = ca.MX.sym('position', 2)
    twist = ca.MX.sym('twist', 3)
    dt = ca.MX.sym('dt')

    omega = twist[0]
    vx = twist[1]
    vy = twist[2]

    phi = omega * dt
    small = ca.fabs(phi) < SMALL_ANGLE

    # Guard the division so the unused branch stays finite
    phi_safe = ca.if_else(small, 1.0, phi)
    a = ca.if_else(small, 1 - phi**2 / 6, ca.sin(phi_safe) / phi_safe)
    b = ca.if_else(small, phi / 2 - phi**3 / 24, (1 - ca.cos(phi_safe)) / phi_safe)

    displacement = ca.vertcat(a * vx - b * vy, b * vx + a * vy) * dt

    position_next = position + ca.mtimes(rotation, displacement)
    rotation_next = ca.mtimes(rotation, rotation_matrix_symbolic(phi))

    return ca.Function('f_propagate', [rotation, position, twist, dt], [rotation_next, position_next])
