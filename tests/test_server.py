"""Tests for the HTTP solve endpoint."""

import math

import pytest
from fastapi.testclient import TestClient

from diffdrive_trajopt.models import PoseRequest, QuaternionModel
from diffdrive_trajopt.server import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _straight_line_request(**extra) -> dict:
    request = {
        "reference_path": [{"x": 0.1 * i, "y": 0.0, "heading": 0.0, "stamp": 0.01 * i} for i in range(10)],
        "initial_pose": {"x": 0.0, "y": 0.0, "heading": 0.0, "frame_id": "odom"},
        "initial_twist": {"omega": 0.0, "vx": 1.0, "vy": 0.0},
    }
    request.update(extra)
    return request


class TestQuaternionConversion:

    @pytest.mark.parametrize("heading", [0.0, 0.5, -2.0, math.pi / 2])
    def test_heading_round_trip(self, heading):
        assert QuaternionModel.from_heading(heading).to_heading() == pytest.approx(heading)

    def test_heading_takes_precedence(self):
        pose = PoseRequest(x=0.0, y=0.0, heading=0.3, orientation=QuaternionModel.from_heading(1.0))
        assert pose.resolved_heading() == 0.3

    def test_orientation_used_without_heading(self):
        pose = PoseRequest(x=0.0, y=0.0, orientation=QuaternionModel.from_heading(1.0))
        assert pose.to_pose().heading == pytest.approx(1.0)


class TestSolveEndpoint:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_solve_straight_line(self, client):
        response = client.post("/solve", json=_straight_line_request())
        assert response.status_code == 200

        data = response.json()
        assert data["frame_id"] == "odom"
        assert len(data["poses"]) == 10
        assert data["poses"][0] == {
            "x": 0.0, "y": 0.0, "heading": 0.0,
            "orientation": {"x": 0.0, "y": 0.0, "z": 0.0, "w": 1.0},
        }
        assert data["penalty_stats"]["penalty_coefficients"][0] == 1.0

    def test_options_truncate_horizon(self, client):
        response = client.post("/solve", json=_straight_line_request(options={"max_num_poses": 4}))
        assert response.status_code == 200
        assert len(response.json()["poses"]) == 4

    def test_empty_reference_path_rejected(self, client):
        response = client.post("/solve", json=_straight_line_request(reference_path=[]))
        assert response.status_code == 422
