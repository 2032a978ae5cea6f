"""
Pydantic models for API request/response types.
"""

import math
from typing import Optional
from pydantic import BaseModel, Field

from .kinematics import Pose2D, Twist2D
from .optimizer import MpcOptions


# Pose models
class QuaternionModel(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def from_heading(cls, heading: float) -> "QuaternionModel":
        return cls(z=math.sin(heading / 2), w=math.cos(heading / 2))

    def to_heading(self) -> float:
        """Yaw about the z axis."""
        return math.atan2(2 * (self.w * self.z + self.x * self.y),
                          1 - 2 * (self.y * self.y + self.z * self.z))


class PoseRequest(BaseModel):
    x: float = Field(..., description="X position in meters")
    y: float = Field(..., description="Y position in meters")
    heading: Optional[float] = Field(None, description="Heading angle in radians")
    orientation: Optional[QuaternionModel] = Field(None, description="Orientation as quaternion (used if heading is omitted)")
    stamp: float = Field(0.0, description="Timestamp in seconds")

    def resolved_heading(self) -> float:
        if self.heading is not None:
            return self.heading
        if self.orientation is not None:
            return self.orientation.to_heading()
        return 0.0

    def to_pose(self) -> Pose2D:
        return Pose2D.from_xy_heading(self.x, self.y, self.resolved_heading())


class InitialPoseRequest(PoseRequest):
    frame_id: str = Field("map", description="Reference frame of the pose")


class TwistRequest(BaseModel):
    omega: float = Field(0.0, description="Angular rate (rad/s)")
    vx: float = Field(0.0, description="Forward velocity (m/s)")
    vy: float = Field(0.0, description="Lateral velocity (m/s), dropped for differential drive")

    def to_twist(self) -> Twist2D:
        return Twist2D(self.omega, self.vx, self.vy)


# Optimizer options
class MpcOptionsRequest(BaseModel):
    max_num_poses: int = Field(100, ge=1, le=1000, description="Horizon length in poses")
    time_step: float = Field(0.01, gt=0.0, description="Time between poses (s)")
    max_penalty_iterations: int = Field(8, ge=1, le=50, description="Outer penalty loop cap")
    penalty_increase_factor: float = Field(5.0, gt=1.0, description="Penalty escalation per outer iteration")
    max_constraint_cost: float = Field(10e-3, gt=0.0, description="Feasibility bound per kinematic residual")
    reference_loss_factor: float = Field(20.0, ge=0.0, description="Reference tracking weight")
    velocity_loss_factor: float = Field(1.0, ge=0.0, description="Velocity smoothness weight")

    def to_options(self) -> MpcOptions:
        return MpcOptions(**self.model_dump())


# Solve request/response
class SolveRequest(BaseModel):
    reference_path: list[PoseRequest] = Field(..., min_length=1)
    initial_pose: InitialPoseRequest
    initial_twist: TwistRequest = Field(default_factory=TwistRequest)
    options: Optional[MpcOptionsRequest] = None


class PoseResponse(BaseModel):
    x: float
    y: float
    heading: float
    orientation: QuaternionModel

    @classmethod
    def from_pose(cls, pose: Pose2D) -> "PoseResponse":
        heading = pose.heading
        return cls(x=pose.x, y=pose.y, heading=heading,
                   orientation=QuaternionModel.from_heading(heading))


class PenaltyStatsResponse(BaseModel):
    iterations: int
    penalty_coefficients: list[float]
    max_constraint_costs: list[float]
    solver_iterations: list[int]
    solve_time_ms: float


class SolveResponse(BaseModel):
    feasible: bool
    frame_id: str
    poses: list[PoseResponse]
    penalty_stats: PenaltyStatsResponse
