"""HTTP API tests — FastAPI TestClient with the database swapped for in-memory mocks.

``get_db`` yields an AsyncMock session and ``get_repository`` returns a
MockResultRepository, so no PostgreSQL is needed.  Content is the bundled
v1/ directory.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from helpers.fakes import MockResultRepository

from onboarding_server.app import create_app
from onboarding_server.config import ServerSettings
from onboarding_server.dependencies import get_db, get_repository

HEADERS = {"X-User-ID": "u1"}
FLOWS = "/api/v1/flows"


async def _fake_db():
    yield AsyncMock()


def _build_client(repo: MockResultRepository, settings: ServerSettings, **client_kwargs) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_db] = _fake_db
    app.dependency_overrides[get_repository] = lambda: repo
    return TestClient(app, **client_kwargs)


class FlakyResultRepository(MockResultRepository):
    """MockResultRepository whose first ``failures`` saves raise ConnectionError."""

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures

    async def save_result(self, db, **kwargs):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("database went away")
        return await super().save_result(db, **kwargs)


@pytest.fixture
def repo():
    """Fresh MockResultRepository for each test."""
    return MockResultRepository()


@pytest.fixture
def client(repo):
    with _build_client(repo, ServerSettings()) as c:
        yield c


def _create(client, session_id="s1", headers=HEADERS, **body):
    if "chain_id" not in body and "partition" not in body:
        body["partition"] = "assessment"
    return client.post(FLOWS, json={"session_id": session_id, **body}, headers=headers)


def _answer(client, answer_id, session_id="s1"):
    return client.post(f"{FLOWS}/{session_id}/answer", json={"answer_id": answer_id}, headers=HEADERS)


# =====================================================================
# Creating flows
# =====================================================================


class TestCreateFlow:

    def test_partition_flow_returns_first_question(self, client):
        resp = _create(client, language="en")
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["type"] == "question"
        assert data["question"]["id"] == "q_goal"
        assert [a["id"] for a in data["question"]["answers"]] == [
            "goal_strength", "goal_mobility", "goal_rehab",
        ]
        assert data["chain_progress"] is None

    def test_chain_flow_includes_progress(self, client):
        resp = _create(client, chain_id="full_body_assessment")
        assert resp.status_code == 201, resp.text
        progress = resp.json()["chain_progress"]
        assert progress["current_step"] == 1
        assert progress["total_steps"] == 3
        assert progress["current_label"] == "Push"

    def test_duplicate_session_conflicts(self, client):
        assert _create(client).status_code == 201
        resp = _create(client)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Request conflicts with the current flow state"

    def test_same_session_id_for_other_user_is_independent(self, client):
        assert _create(client).status_code == 201
        assert _create(client, headers={"X-User-ID": "u2"}).status_code == 201

    def test_missing_user_header(self, client):
        resp = _create(client, headers={})
        assert resp.status_code == 401

    def test_unknown_chain(self, client):
        resp = _create(client, chain_id="no_such_chain")
        assert resp.status_code == 404

    def test_unknown_partition(self, client):
        resp = _create(client, partition="no_such_partition")
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "body",
        [
            {"session_id": "s1", "chain_id": "full_body_assessment", "partition": "assessment"},
            {"session_id": "s1"},
            {"session_id": "", "partition": "assessment"},
            {"session_id": "s1", "partition": "assessment", "language": "fr"},
        ],
    )
    def test_invalid_body(self, client, body):
        resp = client.post(FLOWS, json=body, headers=HEADERS)
        assert resp.status_code == 422, f"Expected validation error for {body}"


# =====================================================================
# Answering and navigation
# =====================================================================


class TestAnswerFlow:

    def test_answer_moves_to_next_question(self, client):
        _create(client)
        resp = _answer(client, "goal_strength")
        assert resp.status_code == 200, resp.text
        assert resp.json()["question"]["id"] == "q_experience"

        current = client.get(f"{FLOWS}/s1", headers=HEADERS).json()
        assert current["question"]["id"] == "q_experience"

    def test_invalid_answer(self, client):
        _create(client)
        resp = _answer(client, "not_an_answer")
        assert resp.status_code == 400

    def test_completion_stores_result(self, client, repo):
        _create(client)
        resp = _answer(client, "goal_mobility")
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["type"] == "completed"
        assert data["result"]["all_assigned_results"][0]["program_id"] == "mobility"

        row = repo.rows[("u1", "s1")]
        assert row.mode == "partition"
        assert row.partition == "assessment" and row.chain_id is None
        assert row.all_answers == {"assessment__q_goal": "goal_mobility"}
        assert row.steps_completed == 1

    def test_chain_completion_stores_merged_levels(self, client, repo):
        _create(client, chain_id="full_body_assessment")
        for answer_id in ("push_q1_a1", "pull_q1_a2"):
            assert _answer(client, answer_id).json()["type"] == "question"
        data = _answer(client, "pistol_yes").json()

        assert data["type"] == "completed"
        row = repo.rows[("u1", "s1")]
        assert row.mode == "chain" and row.chain_id == "full_body_assessment"
        assert row.merged_child_levels == {"push": 1, "pull": 2, "legs": 4}

    def test_completed_flow_reports_result_and_rejects_answers(self, client):
        _create(client)
        _answer(client, "goal_mobility")

        current = client.get(f"{FLOWS}/s1", headers=HEADERS).json()
        assert current["type"] == "completed"
        assert _answer(client, "goal_mobility").status_code == 409

    def test_back(self, client):
        _create(client)
        _answer(client, "goal_strength")
        resp = client.post(f"{FLOWS}/s1/back", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["question"]["id"] == "q_goal"

    def test_back_at_first_question_conflicts(self, client):
        _create(client)
        resp = client.post(f"{FLOWS}/s1/back", headers=HEADERS)
        assert resp.status_code == 409

    def test_hand_off_in_partition_flow_conflicts(self, client):
        _create(client)
        _answer(client, "goal_strength")
        assert _answer(client, "exp_lots").status_code == 409

    def test_info(self, client):
        _create(client, language="ru", gender="female")
        resp = client.get(f"{FLOWS}/s1/info", headers=HEADERS)
        assert resp.status_code == 200
        info = resp.json()
        assert info["user_id"] == "u1"
        assert info["partition"] == "assessment"
        assert info["language"] == "ru" and info["gender"] == "female"
        assert info["is_complete"] is False

    def test_flows_are_scoped_to_user(self, client):
        _create(client)
        resp = client.get(f"{FLOWS}/s1", headers={"X-User-ID": "u2"})
        assert resp.status_code == 404

    def test_delete(self, client):
        _create(client)
        assert client.delete(f"{FLOWS}/s1", headers=HEADERS).status_code == 204
        assert client.get(f"{FLOWS}/s1", headers=HEADERS).status_code == 404
        assert client.delete(f"{FLOWS}/s1", headers=HEADERS).status_code == 404

    def test_stored_result_blocks_reuse_of_session(self, client):
        _create(client)
        _answer(client, "goal_mobility")
        client.delete(f"{FLOWS}/s1", headers=HEADERS)
        assert _create(client).status_code == 409, (
            "A session with a stored result cannot be started again"
        )


# =====================================================================
# Results
# =====================================================================


class TestResults:

    def test_list_and_get(self, client):
        _create(client, session_id="s1")
        _answer(client, "goal_mobility", session_id="s1")

        page = client.get("/api/v1/results", headers=HEADERS).json()
        assert page["total"] == 1
        assert page["items"][0]["session_id"] == "s1"
        assert page["items"][0]["all_assigned_results"][0]["level_id"] == "beginner"

        resp = client.get("/api/v1/results/s1", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["total_steps"] == 1

    def test_missing_result(self, client):
        assert client.get("/api/v1/results/nope", headers=HEADERS).status_code == 404

    def test_page_limit_validated(self, client):
        resp = client.get("/api/v1/results", params={"limit": 0}, headers=HEADERS)
        assert resp.status_code == 422


# =====================================================================
# Reference data
# =====================================================================


class TestReference:

    def test_chains(self, client):
        chains = client.get("/api/v1/reference/chains").json()
        assert {c["id"] for c in chains} == {"full_body_assessment", "guided_onboarding"}

    def test_questionnaires(self, client):
        items = {q["id"]: q for q in client.get("/api/v1/reference/questionnaires").json()}
        assert items["assessment"] == {
            "id": "assessment", "question_count": 3, "first_question_id": "q_goal",
        }
        assert items["legs_assessment"]["question_count"] == 3

    def test_programs(self, client):
        programs = {p["id"]: p for p in client.get("/api/v1/reference/programs").json()}
        assert programs["full_body"]["is_master"] is True
        assert programs["full_body"]["child_program_ids"] == ["push", "pull", "legs"]

    def test_levels_sorted(self, client):
        levels = client.get("/api/v1/reference/levels").json()
        assert [lvl["id"] for lvl in levels] == [
            "beginner", "novice", "intermediate", "advanced", "elite",
        ]


# =====================================================================
# Proxy secret
# =====================================================================


class TestProxySecret:
    """With TRUSTED_PROXY_SECRET set, X-User-ID must come with a matching secret."""

    @pytest.fixture
    def guarded(self, repo):
        with _build_client(repo, ServerSettings(trusted_proxy_secret="s3cret")) as c:
            yield c

    def test_missing_secret(self, guarded):
        assert _create(guarded).status_code == 403

    def test_wrong_secret(self, guarded):
        resp = _create(guarded, headers={**HEADERS, "X-Proxy-Secret": "guess"})
        assert resp.status_code == 403

    def test_matching_secret(self, guarded):
        resp = _create(guarded, headers={**HEADERS, "X-Proxy-Secret": "s3cret"})
        assert resp.status_code == 201


# =====================================================================
# Failed result saves
# =====================================================================


class TestFailedSave:
    """A completion whose result cannot be stored leaves the session restartable."""

    @pytest.fixture
    def flaky_repo(self):
        return FlakyResultRepository(failures=1)

    @pytest.fixture
    def flaky(self, flaky_repo):
        with _build_client(flaky_repo, ServerSettings(), raise_server_exceptions=False) as c:
            yield c

    def test_failed_save_discards_flow(self, flaky, flaky_repo):
        _create(flaky)
        resp = _answer(flaky, "goal_mobility")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Internal server error"

        assert flaky_repo.rows == {}
        assert flaky.get(f"{FLOWS}/s1", headers=HEADERS).status_code == 404, (
            "A flow whose result was not stored must not linger as complete"
        )

    def test_session_can_be_rerun_after_failed_save(self, flaky, flaky_repo):
        _create(flaky)
        assert _answer(flaky, "goal_mobility").status_code == 500

        assert _create(flaky).status_code == 201
        resp = _answer(flaky, "goal_mobility")
        assert resp.status_code == 200, resp.text
        assert resp.json()["type"] == "completed"

        row = flaky_repo.rows[("u1", "s1")]
        assert row.all_answers == {"assessment__q_goal": "goal_mobility"}
        assert flaky.get("/api/v1/results/s1", headers=HEADERS).status_code == 200


# =====================================================================
# Health
# =====================================================================


class TestHealth:

    def test_database_up(self, client):
        conn = AsyncMock()
        engine = MagicMock()
        engine.connect.return_value.__aenter__.return_value = conn
        with patch("onboarding_server.app.get_engine", return_value=engine):
            resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "database": "ok", "live_flows": 0}
        conn.execute.assert_awaited_once()

    def test_database_down_is_503(self, client):
        _create(client)
        with patch("onboarding_server.app.get_engine", side_effect=ConnectionError("refused")):
            resp = client.get("/health")

        assert resp.status_code == 503, "Readiness must fail when the database is unreachable"
        assert resp.json() == {"status": "error", "database": "unavailable", "live_flows": 1}
