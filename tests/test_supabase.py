"""Tests for the Supabase REST backend against a fake HTTP session."""

import asyncio
import json
import time
from datetime import date

import pytest
import requests

from finance_tracker.config import SupabaseSettings
from finance_tracker.models import CategoryDirection, PrivilegeSet, Transaction
from finance_tracker.services.backend import (
    AuthenticationError,
    DuplicateError,
    NotFoundError,
    ServiceUnavailableError,
    SupabaseAuthService,
    SupabaseClient,
    SupabaseFileStorage,
    SupabaseFinanceStorage,
    TransportError,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.text = "" if body is None else json.dumps(body)
        self.content = self.text.encode("utf-8")

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeHTTP:
    """Stands in for requests.Session; replays queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(*responses, read_attempts=1):
    settings = SupabaseSettings(
        url="https://abc.supabase.co/",
        anon_key="anon-key",
        read_attempts=read_attempts,
    )
    http = FakeHTTP(*responses)
    return SupabaseClient(settings, http=http), http


def token_payload(expires_in=3600, expires_at=None):
    return {
        "access_token": "user-token",
        "refresh_token": "refresh-1",
        "expires_in": expires_in,
        "expires_at": expires_at,
        "token_type": "bearer",
        "user": {"id": "remote-1", "email": "a@b.com", "aud": "authenticated"},
    }


class TestSupabaseClient:
    def test_select_builds_postgrest_query(self):
        client, http = make_client(FakeResponse(200, [{"id": 1}]))

        rows = client.select("persons", filters=[("email", "eq.a@b.com")], order="name.asc", limit=1)

        assert rows == [{"id": 1}]
        call = http.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://abc.supabase.co/rest/v1/persons"
        assert call["params"] == [
            ("select", "*"),
            ("email", "eq.a@b.com"),
            ("order", "name.asc"),
            ("limit", "1"),
        ]
        assert call["headers"]["apikey"] == "anon-key"
        assert call["headers"]["Authorization"] == "Bearer anon-key"

    @pytest.mark.parametrize("status,error", [
        (409, DuplicateError),
        (404, NotFoundError),
        (500, TransportError),
    ])
    def test_http_errors_are_mapped(self, status, error):
        client, _ = make_client(FakeResponse(status, {"message": "it broke"}))
        with pytest.raises(error) as exc_info:
            client.request("POST", "/rest/v1/persons", json={})
        assert exc_info.value.message == "it broke"
        assert exc_info.value.status_code == status

    def test_connection_failure(self):
        client, _ = make_client(requests.ConnectionError("refused"))
        with pytest.raises(ServiceUnavailableError):
            client.request("GET", "/rest/v1/persons")

    def test_reads_are_not_retried_by_default(self):
        client, http = make_client(requests.ConnectionError("refused"), FakeResponse(200, []))
        with pytest.raises(ServiceUnavailableError):
            client.select("persons")
        assert len(http.calls) == 1

    def test_reads_retry_when_configured(self):
        client, http = make_client(
            requests.Timeout("slow"),
            FakeResponse(200, [{"id": 1}]),
            read_attempts=2,
        )
        assert client.select("persons") == [{"id": 1}]
        assert len(http.calls) == 2

    def test_writes_are_never_retried(self):
        client, http = make_client(requests.ConnectionError("refused"), read_attempts=3)
        with pytest.raises(ServiceUnavailableError):
            client.insert("transactions", {"id": "t"})
        assert len(http.calls) == 1

    def test_empty_body_is_none(self):
        client, _ = make_client(FakeResponse(204))
        assert client.request("POST", "/auth/v1/logout") is None


class TestSupabaseFinanceStorage:
    def test_ensure_person_upserts_on_email(self):
        row = {"id": "p1", "email": "a@b.com", "name": None, "created_at": "2024-06-01T00:00:00+00:00"}
        client, http = make_client(FakeResponse(201, [row]))

        person = asyncio.run(SupabaseFinanceStorage(client).ensure_person("A@B.com"))

        assert person.id == "p1"
        call = http.calls[0]
        assert call["params"] == {"on_conflict": "email"}
        assert call["headers"]["Prefer"] == "resolution=ignore-duplicates,return=representation"
        assert call["json"]["email"] == "a@b.com"

    def test_ensure_person_reads_back_existing_row(self):
        row = {"id": "p-existing", "email": "a@b.com", "created_at": "2024-06-01T00:00:00+00:00"}
        client, http = make_client(FakeResponse(201, []), FakeResponse(200, [row]))

        person = asyncio.run(SupabaseFinanceStorage(client).ensure_person("a@b.com"))

        assert person.id == "p-existing"
        assert len(http.calls) == 2

    def test_list_types_filters_by_category_direction(self):
        rows = [{
            "id": "t1",
            "name": "Groceries",
            "category_id": "c1",
            "category": {"id": "c1", "name": "Food & Dining", "direction": "expense"},
        }]
        client, http = make_client(FakeResponse(200, rows))

        types = asyncio.run(SupabaseFinanceStorage(client).list_types(CategoryDirection.EXPENSE))

        assert types[0].direction == CategoryDirection.EXPENSE
        params = http.calls[0]["params"]
        assert ("category.direction", "eq.expense") in params
        assert "categories!inner" in dict(params)["select"]

    def test_list_transactions_parses_embedded_join(self):
        rows = [{
            "id": "tx1",
            "person_id": "p1",
            "type_id": "t1",
            "amount": 12.5,
            "date": "2024-06-01",
            "description": None,
            "bill_id": None,
            "created_at": "2024-06-01T10:00:00+00:00",
            "type": {
                "id": "t1",
                "name": "Salary",
                "category_id": "c2",
                "category": {"id": "c2", "name": "Salary", "direction": "income"},
            },
        }]
        client, http = make_client(FakeResponse(200, rows))

        txs = asyncio.run(SupabaseFinanceStorage(client).list_transactions(
            "p1", date_from=date(2024, 1, 1), date_to=date(2024, 6, 30)
        ))

        assert isinstance(txs[0], Transaction)
        assert txs[0].direction == CategoryDirection.INCOME
        params = http.calls[0]["params"]
        assert ("date", "gte.2024-01-01") in params
        assert ("date", "lte.2024-06-30") in params
        assert ("order", "date.desc,created_at.desc") in params

    def test_get_privileges(self):
        client, _ = make_client(
            FakeResponse(200, [{"user_id": "u1", "can_add_expense": True}]),
            FakeResponse(200, []),
        )
        storage = SupabaseFinanceStorage(client)
        assert asyncio.run(storage.get_privileges("u1")) == PrivilegeSet(can_add_expense=True)
        assert asyncio.run(storage.get_privileges("u2")) is None


class TestSupabaseFileStorage:
    def test_upload(self):
        client, http = make_client(FakeResponse(200, {"Key": "bills/u1/1.png"}))
        key = asyncio.run(SupabaseFileStorage(client).upload("bills", "u1/1.png", b"img", "image/png"))

        assert key == "bills/u1/1.png"
        call = http.calls[0]
        assert call["url"].endswith("/storage/v1/object/bills/u1/1.png")
        assert call["data"] == b"img"
        assert call["headers"]["Content-Type"] == "image/png"

    def test_existing_object_is_duplicate(self):
        client, _ = make_client(FakeResponse(400, {"error": "Duplicate", "message": "The resource already exists"}))
        with pytest.raises(DuplicateError):
            asyncio.run(SupabaseFileStorage(client).upload("bills", "u1/1.png", b"img", "image/png"))


class TestSupabaseAuthService:
    def test_sign_in_adopts_token(self):
        client, http = make_client(FakeResponse(200, token_payload()), FakeResponse(200, []))
        auth = SupabaseAuthService(client)

        session = asyncio.run(auth.sign_in_with_password("a@b.com", "secret"))
        client.select("persons")

        assert session.user.id == "remote-1"
        assert http.calls[0]["params"] == {"grant_type": "password"}
        assert http.calls[1]["headers"]["Authorization"] == "Bearer user-token"

    def test_rejected_credentials(self):
        client, _ = make_client(FakeResponse(400, {"error_description": "Invalid login credentials"}))
        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            asyncio.run(SupabaseAuthService(client).sign_in_with_password("a@b.com", "bad"))

    def test_token_response_without_user_is_rejected(self):
        payload = token_payload()
        del payload["user"]
        client, _ = make_client(FakeResponse(200, payload))
        auth = SupabaseAuthService(client)

        with pytest.raises(AuthenticationError, match="did not include a user"):
            asyncio.run(auth.sign_in_with_password("a@b.com", "secret"))
        assert asyncio.run(auth.get_session()) is None

    def test_token_response_with_invalid_user_is_rejected(self):
        payload = token_payload()
        payload["user"] = {"email": "a@b.com"}
        client, _ = make_client(FakeResponse(200, payload))
        with pytest.raises(AuthenticationError, match="invalid user"):
            asyncio.run(SupabaseAuthService(client).sign_in_with_password("a@b.com", "secret"))

    def test_refresh_without_user_signs_out(self):
        refreshed = token_payload()
        del refreshed["user"]
        client, _ = make_client(
            FakeResponse(200, token_payload(expires_at=time.time() - 10)),
            FakeResponse(200, refreshed),
        )
        auth = SupabaseAuthService(client)
        asyncio.run(auth.sign_in_with_password("a@b.com", "secret"))

        assert asyncio.run(auth.get_session()) is None

    def test_unreachable_service_is_not_an_auth_error(self):
        client, _ = make_client(requests.ConnectionError("refused"))
        with pytest.raises(ServiceUnavailableError):
            asyncio.run(SupabaseAuthService(client).sign_in_with_password("a@b.com", "x"))

    def test_sign_up_pending_confirmation(self):
        client, _ = make_client(FakeResponse(200, {"id": "remote-2", "email": "c@d.com"}))
        assert asyncio.run(SupabaseAuthService(client).sign_up("c@d.com", "pw")) is None

    def test_get_session_refreshes_expired_token(self):
        client, http = make_client(
            FakeResponse(200, token_payload(expires_at=time.time() - 10)),
            FakeResponse(200, token_payload()),
        )
        auth = SupabaseAuthService(client)
        asyncio.run(auth.sign_in_with_password("a@b.com", "secret"))

        session = asyncio.run(auth.get_session())

        assert session is not None
        assert http.calls[1]["params"] == {"grant_type": "refresh_token"}
        assert http.calls[1]["json"] == {"refresh_token": "refresh-1"}

    def test_sign_out_clears_even_when_logout_fails(self):
        client, http = make_client(FakeResponse(200, token_payload()), FakeResponse(500, {"message": "down"}))
        auth = SupabaseAuthService(client)
        asyncio.run(auth.sign_in_with_password("a@b.com", "secret"))

        asyncio.run(auth.sign_out())
        asyncio.run(auth.sign_out())

        assert asyncio.run(auth.get_session()) is None
        assert len(http.calls) == 2
