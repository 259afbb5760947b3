"""
Integration tests for the program state endpoints.

Part of STR-104: Program position advancement
"""
import pytest

from domain.models.position import ProgramPosition
from tests.fakes import build_schedule
from tests.helpers import FIXED_NOW, admin_headers, auth_headers

pytestmark = pytest.mark.integration


@pytest.fixture
def schedule(repos):
    repos.schedules.seed("program-1", build_schedule([2, 2]))
    return repos


def _seed_position(repos, **fields):
    repos.positions.seed(
        ProgramPosition(
            user_id="user-1",
            program_id="program-1",
            enrolled_at=FIXED_NOW,
            updated_at=FIXED_NOW,
            **fields,
        )
    )


class TestEnrollment:
    def test_enroll(self, client, schedule):
        response = client.post(
            "/users/user-1/program",
            json={"program_id": "program-1"},
            headers=auth_headers("user-1"),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["current_week"] == 1
        assert body["current_day_index"] is None
        assert body["current_cycle_iteration"] == 1

    def test_enroll_twice_conflicts(self, client, schedule):
        client.post("/users/user-1/program", json={"program_id": "program-1"}, headers=auth_headers("user-1"))
        response = client.post(
            "/users/user-1/program",
            json={"program_id": "program-1"},
            headers=auth_headers("user-1"),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_ENROLLED"

    def test_enroll_unknown_program(self, client, schedule):
        response = client.post(
            "/users/user-1/program",
            json={"program_id": "nope"},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 404

    def test_get_and_delete(self, client, schedule):
        _seed_position(schedule, current_day_index=1)

        response = client.get("/users/user-1/program", headers=auth_headers("user-1"))
        assert response.status_code == 200
        assert response.json()["current_day_index"] == 1

        assert client.delete("/users/user-1/program", headers=auth_headers("user-1")).status_code == 204
        assert client.get("/users/user-1/program", headers=auth_headers("user-1")).status_code == 404


class TestAdvance:
    def test_advance_walks_the_cycle(self, client, schedule):
        _seed_position(schedule)
        observed = []

        for _ in range(4):
            response = client.post("/users/user-1/program-state/advance", headers=auth_headers("user-1"))
            assert response.status_code == 200
            body = response.json()
            observed.append(
                (
                    body["current_week"],
                    body["current_day_index"],
                    body["current_cycle_iteration"],
                    body["cycle_completed"],
                )
            )

        assert observed == [
            (1, 1, 1, False),
            (2, 0, 1, False),
            (2, 1, 1, False),
            (1, 0, 2, True),
        ]

    def test_not_enrolled(self, client, schedule):
        response = client.post("/users/user-1/program-state/advance", headers=auth_headers("user-1"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_requires_authentication(self, client, schedule):
        _seed_position(schedule)

        response = client.post("/users/user-1/program-state/advance")

        assert response.status_code == 401
        assert schedule.positions.get("user-1").current_day_index is None

    def test_other_user_forbidden(self, client, schedule):
        _seed_position(schedule)

        response = client.post("/users/user-1/program-state/advance", headers=auth_headers("user-2"))

        assert response.status_code == 403
        assert schedule.positions.get("user-1").current_day_index is None

    def test_admin_may_advance(self, client, schedule):
        _seed_position(schedule)
        response = client.post("/users/user-1/program-state/advance", headers=admin_headers())
        assert response.status_code == 200

    def test_missing_schedule_hides_details(self, client, repos):
        repos.positions.seed(
            ProgramPosition(user_id="user-1", program_id="gone", enrolled_at=FIXED_NOW, updated_at=FIXED_NOW)
        )

        response = client.post("/users/user-1/program-state/advance", headers=auth_headers("user-1"))

        assert response.status_code == 500
        assert "gone" not in response.text
