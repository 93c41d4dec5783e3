import json

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from dental_booking.sanitize_middleware import SanitizationMiddleware
from dental_booking.utils.sanitization import (
    is_operator_query_key,
    sanitize,
    sanitize_query_pairs,
)


def _echo_app(max_body_bytes: int = 10240) -> FastAPI:
    app = FastAPI()
    app.add_middleware(SanitizationMiddleware, max_body_bytes=max_body_bytes)

    @app.post("/echo")
    async def echo(request: Request):
        body = await request.body()
        return {
            "body": (await request.json()) if body else None,
            "query": list(request.query_params.multi_items()),
        }

    @app.get("/echo")
    async def echo_query(request: Request):
        return {"query": list(request.query_params.multi_items())}

    @app.post("/raw")
    async def raw(request: Request):
        return {"raw": (await request.body()).decode()}

    return app


def test_sanitize_drops_operator_keys_at_every_level():
    removed = []
    data = {
        "name": "Ann",
        "$where": "sleep(1000)",
        "profile": {"email": {"$ne": None}, "a.b": 1, "ok": [{"$gt": 1, "keep": 2}]},
    }

    cleaned = sanitize(data, removed)

    assert cleaned == {"name": "Ann", "profile": {"email": {}, "ok": [{"keep": 2}]}}
    assert sorted(removed) == ["$gt", "$ne", "$where", "a.b"]
    # input untouched
    assert "$where" in data


def test_sanitize_leaves_scalars_alone():
    assert sanitize("$not-a-key") == "$not-a-key"
    assert sanitize(42) == 42
    assert sanitize(None) is None


def test_query_keys_with_bracket_operators_are_dropped():
    assert is_operator_query_key("email[$ne]")
    assert is_operator_query_key("$where")
    assert not is_operator_query_key("email")
    assert sanitize_query_pairs([("a", "1"), ("b[$gt]", "2"), ("c.d", "3")]) == [("a", "1")]


def test_middleware_cleans_json_body():
    client = TestClient(_echo_app())

    response = client.post("/echo", json={"name": "Ann", "$where": "1", "nested": {"$ne": 1}})

    assert response.status_code == 200
    assert response.json()["body"] == {"name": "Ann", "nested": {}}


def test_middleware_cleans_query_string():
    client = TestClient(_echo_app())

    response = client.get("/echo?page=2&$where=1&email[$ne]=x")

    assert response.json()["query"] == [["page", "2"]]


def test_middleware_passes_malformed_json_through():
    client = TestClient(_echo_app())

    response = client.post(
        "/raw", content=b'{"$where": broken', headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json()["raw"] == '{"$where": broken'


def test_middleware_rejects_oversized_json_body():
    client = TestClient(_echo_app(max_body_bytes=100))

    response = client.post("/echo", json={"message": "x" * 500})

    assert response.status_code == 413
    assert response.json()["error"] == "PAYLOAD_TOO_LARGE"
    assert response.json()["success"] is False


def test_intake_never_sees_operator_keys(client, submission, db):
    from dental_booking.models import Appointment

    submission["$where"] = "this.email"
    submission["createdAt"] = {"$gt": "2000-01-01"}

    response = client.post("/api/appointments", json=submission)

    assert response.status_code == 201
    assert db.query(Appointment).count() == 1


def test_middleware_cleans_json_sent_with_other_content_type():
    client = TestClient(_echo_app())

    response = client.post(
        "/raw",
        content=b'{"name": "Ann", "$where": "1==1"}',
        headers={"Content-Type": "text/plain"},
    )

    assert response.status_code == 200
    assert json.loads(response.json()["raw"]) == {"name": "Ann"}


def test_middleware_passes_deeply_nested_json_through():
    body = '{"name": ' + "[" * 3000 + "]" * 3000 + "}"
    client = TestClient(_echo_app())

    response = client.post("/raw", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json()["raw"] == body


def test_intake_rejects_deeply_nested_body(make_client, db):
    from dental_booking.models import Appointment

    client = make_client(require_captcha=False)
    body = '{"name": ' + "[" * 3000 + "]" * 3000 + "}"

    response = client.post(
        "/api/appointments", content=body, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert db.query(Appointment).count() == 0


def test_intake_cleans_plain_text_json(client, submission, db, monkeypatch):
    import importlib

    appointments_router = importlib.import_module("dental_booking.domain.appointments.router")
    from dental_booking.models import Appointment

    seen = []
    validate = appointments_router.validate_submission

    def recording_validate(payload, *args, **kwargs):
        seen.append(set(payload))
        return validate(payload, *args, **kwargs)

    monkeypatch.setattr(appointments_router, "validate_submission", recording_validate)
    submission["$where"] = "1==1"

    response = client.post(
        "/api/appointments",
        content=json.dumps(submission),
        headers={"Content-Type": "text/plain"},
    )

    assert response.status_code == 201
    assert "$where" not in seen[0]
    assert "name" in seen[0]
    assert db.query(Appointment).count() == 1
