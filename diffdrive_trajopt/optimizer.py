"""
Short-horizon trajectory optimizer for differential drive robots using CasADi + IPOPT.

Formulation:
- Poses and twists at fixed time steps; index 0 is the fixed initial condition
- Reference tracking and velocity smoothness as scaled least-squares terms
- Kinematic consistency as a soft penalty term
- Outer penalty loop escalating the kinematic penalty until every
  constraint residual is below max_constraint_cost (or the cap is hit)
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Optional
import casadi as ca
import numpy as np

from .config import get_ipopt_options
from .kinematics import Pose2D, Twist2D, propagate
from .parameterization import DiffDriveTwistManifold, Rotation2DManifold
from .residuals import (
    create_kinematic_constraint_residual,
    create_reference_path_residual,
    create_velocity_change_residual,
    residual_cost,
)

logger = logging.getLogger(__name__)


@dataclass
class MpcOptions:
    """Horizon and weighting configuration, fixed for the optimizer's lifetime."""
    max_num_poses: int = 100
    time_step: float = 0.01                 # s between consecutive poses
    max_penalty_iterations: int = 8
    penalty_increase_factor: float = 5.0
    max_constraint_cost: float = 10e-3      # per kinematic residual, unscaled 0.5*||r||^2
    reference_loss_factor: float = 20.0
    velocity_loss_factor: float = 1.0


class ReferencePathNotSetError(RuntimeError):
    """Raised when solve() is called before a reference path was set."""


class PenaltyCoefficient:
    """
    Weight shared by every kinematic constraint residual of one problem build.

    Wraps an Opti parameter so the inner solver sees the current value;
    escalate() is the only place the weight changes.
    """

    def __init__(self, opti: ca.Opti, value: float = 1.0):
        self._opti = opti
        self.parameter = opti.parameter()
        self.value = float(value)
        opti.set_value(self.parameter, self.value)

    def escalate(self, factor: float):
        self.value *= factor
        self._opti.set_value(self.parameter, self.value)


@dataclass
class Path:
    """Ordered sequence of poses in one reference frame."""
    poses: list[Pose2D] = field(default_factory=list)
    frame_id: str = "map"

    def __len__(self):
        return len(self.poses)

    def __getitem__(self, index):
        return self.poses[index]

    def __iter__(self):
        return iter(self.poses)


@dataclass
class SolveSummary:
    """Outcome of one solve() call."""
    feasible: bool
    iterations: int                     # outer penalty iterations run
    penalty_coefficients: list[float]   # coefficient used on each outer iteration
    max_constraint_costs: list[float]   # worst kinematic residual cost after each outer iteration
    solver_iterations: list[int]        # IPOPT iterations per outer iteration
    solve_time_ms: float


@dataclass
class _Problem:
    """Handles into a built Opti problem, indexed from pose 1."""
    opti: ca.Opti
    penalty: PenaltyCoefficient
    rotation_bases: list = field(default_factory=list)
    rotation_deltas: list = field(default_factory=list)
    positions: list = field(default_factory=list)
    twist_bases: list = field(default_factory=list)
    twist_deltas: list = field(default_factory=list)


class TrajectoryOptimizer:
    """Penalty-method trajectory optimizer for differential drive robots."""

    def __init__(self, options: Optional[MpcOptions] = None):
        """
        Initialize the optimizer.

        Args:
            options: Horizon and weighting configuration (defaults if None)
        """
        self.options = options if options is not None else MpcOptions()

        # Residual functions
        self.f_reference = create_reference_path_residual()
        self.f_velocity = create_velocity_change_residual()
        self.f_kinematic = create_kinematic_constraint_residual(self.options.time_step)

        self.frame_id = "map"

        # Working state; index 0 is the fixed initial condition
        self._rotations = [np.eye(2)]
        self._positions = [np.zeros(2)]
        self._twists = [np.zeros(3)]

        self._reference_rotations = []
        self._reference_positions = []
        self._reference_path_set = False

        self.problem_size = 0
        self.last_summary: Optional[SolveSummary] = None

    def set_reference_path(self, reference_path):
        """
        Store the reference poses, truncated to the horizon.

        Args:
            reference_path: Path or sequence of Pose2D (at least 1)
        """
        poses = list(reference_path)
        if len(poses) == 0:
            raise ValueError("Reference path must contain at least 1 pose")

        self.problem_size = min(len(poses), self.options.max_num_poses)

        self._reference_rotations = [poses[i].rotation.copy() for i in range(self.problem_size)]
        self._reference_positions = [poses[i].position.copy() for i in range(self.problem_size)]
        self._reference_path_set = True

    def set_initial_pose(self, pose: Pose2D, frame_id: Optional[str] = None):
        """Overwrite the fixed initial pose; the output path uses its frame."""
        self._rotations = [pose.rotation.copy()]
        self._positions = [pose.position.copy()]
        if frame_id is not None:
            self.frame_id = frame_id

    def set_initial_twist(self, twist):
        """Overwrite the fixed initial twist (Twist2D or [omega, vx, vy])."""
        if isinstance(twist, Twist2D):
            twist = twist.as_vector()
        twist = np.array(twist, dtype=np.float64).reshape(3)
        if twist[DiffDriveTwistManifold.locked_index] != 0.0:
            logger.warning("Dropping lateral velocity %.3f m/s from initial twist.",
                           twist[DiffDriveTwistManifold.locked_index])
            twist[DiffDriveTwistManifold.locked_index] = 0.0
        self._twists = [twist]

    def solve(self) -> SolveSummary:
        """
        Optimize the trajectory against the current reference path.

        Returns:
            SolveSummary; an infeasible result is logged as a warning, not raised
        """
        if not self._reference_path_set:
            message = "Reference path must be set before calling solve()!"
            logger.error(message)
            raise ReferencePathNotSetError(message)

        start_time = time.time()
        self._generate_initial_values()

        if self.problem_size <= 1:
            # No free variables
            self.last_summary = SolveSummary(
                feasible=True, iterations=0, penalty_coefficients=[],
                max_constraint_costs=[], solver_iterations=[],
                solve_time_ms=(time.time() - start_time) * 1000
            )
            return self.last_summary

        problem = self._build_optimization_problem()

        penalty_coefficients = []
        max_constraint_costs = []
        solver_iterations = []
        feasible = False
        iteration = 0
        while iteration < self.options.max_penalty_iterations:
            iteration += 1
            penalty_coefficients.append(problem.penalty.value)
            solver_iterations.append(self._solve_inner(problem))

            max_cost = max(self.constraint_costs())
            max_constraint_costs.append(max_cost)
            logger.info("Penalty iteration %d: coefficient %g, max constraint cost %.3e, %d solver iterations",
                        iteration, problem.penalty.value, max_cost, solver_iterations[-1])

            if max_cost <= self.options.max_constraint_cost:
                feasible = True
                logger.info("Feasible solution found on iteration %d.", iteration)
                break

            if iteration < self.options.max_penalty_iterations:
                problem.penalty.escalate(self.options.penalty_increase_factor)

        if not feasible:
            logger.warning("Max constraint penalty iterations reached.")

        self.last_summary = SolveSummary(
            feasible=feasible,
            iterations=iteration,
            penalty_coefficients=penalty_coefficients,
            max_constraint_costs=max_constraint_costs,
            solver_iterations=solver_iterations,
            solve_time_ms=(time.time() - start_time) * 1000
        )
        return self.last_summary

    def get_optimal_path(self) -> Path:
        """Return poses 0..N-1 as produced by the last solve()."""
        n = min(self.problem_size, len(self._positions)) if self._reference_path_set else 1
        poses = [Pose2D(self._rotations[i].copy(), self._positions[i].copy()) for i in range(n)]
        return Path(poses=poses, frame_id=self.frame_id)

    def get_optimal_twists(self) -> list[Twist2D]:
        """Return twists 0..N-1 matching get_optimal_path()."""
        n = min(self.problem_size, len(self._twists)) if self._reference_path_set else 1
        return [Twist2D.from_vector(self._twists[i]) for i in range(n)]

    def constraint_costs(self) -> list[float]:
        """Unscaled cost of every kinematic constraint residual at the current state."""
        costs = []
        for i in range(1, min(self.problem_size, len(self._positions))):
            residual = self.f_kinematic(
                self._rotations[i], self._positions[i],
                self._rotations[i-1], self._positions[i-1],
                self._twists[i-1]
            )
            cost = residual_cost(residual)
            assert np.isfinite(cost), f"Could not evaluate kinematic constraint residual {i}"
            costs.append(cost)
        return costs

    def _generate_initial_values(self):
        """Fill indices 1..N-1 by propagating the initial pose with the initial twist held constant."""
        del self._rotations[1:]
        del self._positions[1:]
        del self._twists[1:]

        twist = self._twists[0]
        dt = self.options.time_step
        pose = Pose2D(self._rotations[0], self._positions[0])
        for _ in range(1, self.problem_size):
            pose = propagate(pose, twist, dt)
            self._rotations.append(pose.rotation)
            self._positions.append(pose.position)
            self._twists.append(twist.copy())

    def _build_optimization_problem(self) -> _Problem:
        opti = ca.Opti()
        problem = _Problem(opti=opti, penalty=PenaltyCoefficient(opti))

        # Index 0 is constant
        rotations = [ca.DM(self._rotations[0])]
        positions = [ca.DM(self._positions[0])]
        twists = [ca.DM(self._twists[0])]

        for _ in range(1, self.problem_size):
            rotation_base = opti.parameter(2, 2)
            rotation_delta = opti.variable(Rotation2DManifold.tangent_size)
            position = opti.variable(2)
            twist_base = opti.parameter(DiffDriveTwistManifold.ambient_size)
            twist_delta = opti.variable(DiffDriveTwistManifold.tangent_size)

            problem.rotation_bases.append(rotation_base)
            problem.rotation_deltas.append(rotation_delta)
            problem.positions.append(position)
            problem.twist_bases.append(twist_base)
            problem.twist_deltas.append(twist_delta)

            rotations.append(Rotation2DManifold.plus_symbolic(rotation_base, rotation_delta))
            positions.append(position)
            twists.append(DiffDriveTwistManifold.plus_symbolic(twist_base, twist_delta))

        # Start with the second element. For the first element the reference residual
        # is constant and the velocity residual is undefined.
        reference_cost = 0
        velocity_cost = 0
        constraint_cost = 0
        for i in range(1, self.problem_size):
            reference_cost += ca.sumsqr(self.f_reference(
                ca.DM(self._reference_rotations[i]), ca.DM(self._reference_positions[i]),
                rotations[i], positions[i]
            ))
            velocity_cost += ca.sumsqr(self.f_velocity(twists[i], twists[i-1]))
            constraint_cost += ca.sumsqr(self.f_kinematic(
                rotations[i], positions[i], rotations[i-1], positions[i-1], twists[i-1]
            ))

        opti.minimize(0.5 * (
            self.options.reference_loss_factor * reference_cost
            + self.options.velocity_loss_factor * velocity_cost
            + problem.penalty.parameter * constraint_cost
        ))
        opti.solver('ipopt', get_ipopt_options())

        logger.debug("Built problem with %d free poses", self.problem_size - 1)
        return problem

    def _solve_inner(self, problem: _Problem) -> int:
        """Solve from the current state and re-anchor it on the result. Returns IPOPT iterations."""
        opti = problem.opti
        n_free = self.problem_size - 1

        # Warm start: bases are the current state, increments start at zero
        for k in range(n_free):
            i = k + 1
            opti.set_value(problem.rotation_bases[k], self._rotations[i])
            opti.set_value(problem.twist_bases[k], self._twists[i])
            opti.set_initial(problem.rotation_deltas[k], 0)
            opti.set_initial(problem.positions[k], self._positions[i])
            opti.set_initial(problem.twist_deltas[k], np.zeros(DiffDriveTwistManifold.tangent_size))

        try:
            sol = opti.solve()
            value = sol.value
            stats = sol.stats()
        except RuntimeError as e:
            logger.warning("Inner solver did not converge: %s", e)
            value = opti.debug.value
            stats = opti.stats()

        for k in range(n_free):
            i = k + 1
            self._rotations[i] = Rotation2DManifold.plus(self._rotations[i], value(problem.rotation_deltas[k]))
            self._positions[i] = np.asarray(value(problem.positions[k]), dtype=np.float64).reshape(2)
            self._twists[i] = DiffDriveTwistManifold.plus(self._twists[i], value(problem.twist_deltas[k]))

        return int(stats.get('iter_count', 0))
