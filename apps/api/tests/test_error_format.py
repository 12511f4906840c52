"""RFC 9457 problem+json format for admin and session endpoints."""

import re

import pytest

from hub_api.errors import PROBLEM_BASE


@pytest.fixture
def client(test_client):
    return test_client


def _assert_problem(response, status):
    assert response.status_code == status
    assert response.headers["content-type"] == "application/problem+json"
    body = response.json()
    assert set(body) >= {"type", "title", "status", "detail", "instance"}
    assert body["status"] == status
    assert body["type"].startswith(PROBLEM_BASE)
    return body


def test_401_problem(client):
    _assert_problem(client.get("/v1/me"), 401)


def test_403_problem(client, member):
    body = _assert_problem(client.get("/v1/admin/roles", headers=member[1]), 403)
    assert body["title"] == "Forbidden"


def test_404_unknown_route(client):
    body = _assert_problem(client.get("/v1/does-not-exist"), 404)
    assert body["type"] == f"{PROBLEM_BASE}/http-404"


def test_422_request_validation(client, admin):
    body = _assert_problem(client.post("/v1/admin/roles", json={"name": "x"}, headers=admin[1]), 422)
    assert body["type"] == f"{PROBLEM_BASE}/request-validation"
    assert body["detail"].startswith("Invalid field")


def test_instance_is_opaque_trace_urn(client):
    body = client.get("/v1/me", headers={"X-Request-ID": "req-abc"}).json()

    assert body["instance"] == "urn:hub:trace:req-abc"
    assert "/v1/me" not in body["instance"]


def test_instance_generated_without_request_id(client):
    instance = client.get("/v1/me").json()["instance"]
    assert re.match(r"^urn:hub:trace:[0-9a-f-]{36}$", instance)
