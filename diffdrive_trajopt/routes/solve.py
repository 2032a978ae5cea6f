"""
Trajectory solver endpoint.
"""

from fastapi import APIRouter, HTTPException

from ..models import SolveRequest, SolveResponse, PoseResponse, PenaltyStatsResponse
from ..optimizer import MpcOptions, ReferencePathNotSetError, TrajectoryOptimizer

router = APIRouter()


@router.post("/solve", response_model=SolveResponse)
def solve_trajectory(request: SolveRequest):
    """
    Fit a kinematically feasible trajectory to the given reference path.

    The solver minimizes reference tracking error and velocity changes while
    escalating a penalty on deviations from the differential drive model.
    An infeasible result is returned with feasible=false, not as an error.
    """
    options = request.options.to_options() if request.options else MpcOptions()

    # Optimizer instances are not shared between requests
    optimizer = TrajectoryOptimizer(options)
    optimizer.set_initial_pose(request.initial_pose.to_pose(), frame_id=request.initial_pose.frame_id)
    optimizer.set_initial_twist(request.initial_twist.to_twist())

    try:
        optimizer.set_reference_path([p.to_pose() for p in request.reference_path])
        summary = optimizer.solve()
    except (ValueError, ReferencePathNotSetError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Solver error: {str(e)}")

    path = optimizer.get_optimal_path()
    return SolveResponse(
        feasible=summary.feasible,
        frame_id=path.frame_id,
        poses=[PoseResponse.from_pose(pose) for pose in path],
        penalty_stats=PenaltyStatsResponse(
            iterations=summary.iterations,
            penalty_coefficients=summary.penalty_coefficients,
            max_constraint_costs=summary.max_constraint_costs,
            solver_iterations=summary.solver_iterations,
            solve_time_ms=summary.solve_time_ms
        )
    )
