"""Tests for osca_forms.services.backend_client.BackendClient."""

import json
import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from osca_forms.services.backend_client import BackendClient, error_message_from
from tests.conftest import SAMPLE_BARANGAYS, SAMPLE_FIELDS, SAMPLE_GROUPS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _mock_response(body=None, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = b"" if body is None else json.dumps(body).encode()
    response.json.return_value = body
    response.raise_for_status = MagicMock()
    return response


def _mock_client(response: MagicMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=response)
    mock_client.request = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _status_error(status_code: int, body=None) -> httpx.HTTPStatusError:
    response = MagicMock()
    response.status_code = status_code
    if body is None:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return httpx.HTTPStatusError(f"{status_code}", request=MagicMock(), response=response)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_fields_parses_descriptors():
    """get_fields hits the given path and validates each descriptor."""
    mock_client = _mock_client(_mock_response(SAMPLE_FIELDS))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        client = BackendClient(base_url="http://backend:5000/")
        fields = await client.get_fields("/api/form-fields/register-field")

    assert len(fields) == len(SAMPLE_FIELDS)
    assert fields[0].field_name == "firstName"
    assert fields[0].required is True
    assert mock_client.get.call_args[0][0] == "http://backend:5000/api/form-fields/register-field"


@pytest.mark.asyncio
async def test_get_groups():
    mock_client = _mock_client(_mock_response(SAMPLE_GROUPS))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        groups = await BackendClient(base_url="http://b").get_groups()

    assert [g.group_key for g in groups] == ["personal", "address", "health", "family"]
    assert mock_client.get.call_args[0][0] == "http://b/api/form-fields/group"


@pytest.mark.asyncio
async def test_list_barangays_maps_barangay_name():
    mock_client = _mock_client(_mock_response(SAMPLE_BARANGAYS))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        barangays = await BackendClient(base_url="http://b").list_barangays()

    assert [(b.id, b.name) for b in barangays] == [(3, "Poblacion"), (5, "San Isidro"), (9, "Santa Cruz")]


@pytest.mark.asyncio
async def test_system_defaults_tolerate_null_values():
    mock_client = _mock_client(_mock_response({"municipality": "Lopez Jaena", "province": None}))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        defaults = await BackendClient(base_url="http://b").get_system_defaults()

    assert defaults.municipality == "Lopez Jaena"
    assert defaults.province == ""


@pytest.mark.asyncio
async def test_cookies_are_forwarded_to_httpx():
    mock_client = _mock_client(_mock_response([]))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient",
               return_value=mock_client) as mock_cls:
        await BackendClient(base_url="http://b", cookies={"connect.sid": "abc"}).get_groups()

    assert mock_cls.call_args[1]["cookies"] == {"connect.sid": "abc"}


# ---------------------------------------------------------------------------
# get_record
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_record_parses_record():
    body = {"id": 42, "firstName": "Juan", "barangay_id": 9, "form_data": "{}"}
    mock_client = _mock_client(_mock_response(body))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        record = await BackendClient(base_url="http://b").get_record("42")

    assert record.id == 42
    assert record.is_registered is True
    assert mock_client.get.call_args[0][0] == "http://b/api/senior-citizens/get/42"


@pytest.mark.asyncio
async def test_get_record_404_is_absent():
    response = _mock_response({"message": "Not found"}, status_code=404)
    response.raise_for_status = MagicMock(side_effect=_status_error(404))
    mock_client = _mock_client(response)

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        record = await BackendClient(base_url="http://b").get_record("7")

    assert record is None


@pytest.mark.asyncio
async def test_get_record_empty_body_is_absent():
    mock_client = _mock_client(_mock_response(None))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        record = await BackendClient(base_url="http://b").get_record("7")

    assert record is None


@pytest.mark.asyncio
async def test_get_record_server_error_propagates():
    response = _mock_response(None, status_code=500)
    response.raise_for_status = MagicMock(side_effect=_status_error(500))
    mock_client = _mock_client(response)

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(httpx.HTTPStatusError):
            await BackendClient(base_url="http://b").get_record("7")


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_submit_sends_every_value_as_multipart_part():
    mock_client = _mock_client(_mock_response({"message": "created"}))
    data = {"firstName": "Juan", "barangay_id": "3", "form_data": "{}"}
    files = {"photoFile": ("photo.png", b"img", "image/png")}

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        result = await BackendClient(base_url="http://b").submit(
            "POST", "/api/senior-citizens/create", data, files
        )

    assert result == {"message": "created"}
    args, kwargs = mock_client.request.call_args
    assert args == ("POST", "http://b/api/senior-citizens/create")
    assert kwargs["files"] == [
        ("firstName", (None, "Juan")),
        ("barangay_id", (None, "3")),
        ("form_data", (None, "{}")),
        ("photoFile", ("photo.png", b"img", "image/png")),
    ]


@pytest.mark.asyncio
async def test_submit_without_files_is_still_multipart():
    mock_client = _mock_client(_mock_response(None))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        result = await BackendClient(base_url="http://b").submit(
            "PUT", "/api/senior-citizens/update/42", {"firstName": "Juan"}
        )

    assert result == {}
    assert mock_client.request.call_args[1]["files"] == [("firstName", (None, "Juan"))]


@pytest.mark.asyncio
async def test_submit_raises_on_http_error():
    response = _mock_response({"message": "Duplicate"}, status_code=400)
    response.raise_for_status = MagicMock(side_effect=_status_error(400, {"message": "Duplicate"}))
    mock_client = _mock_client(response)

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        with pytest.raises(httpx.HTTPStatusError) as exc:
            await BackendClient(base_url="http://b").submit("POST", "/x", {})

    assert error_message_from(exc.value) == "Duplicate"


# ---------------------------------------------------------------------------
# error_message_from / is_available
# ---------------------------------------------------------------------------


def test_error_message_from_non_json_body():
    assert error_message_from(_status_error(502)) is None


def test_error_message_from_other_exceptions():
    assert error_message_from(httpx.ConnectError("refused")) is None
    assert error_message_from(RuntimeError("boom")) is None


@pytest.mark.asyncio
async def test_is_available_true():
    mock_client = _mock_client(_mock_response({}))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        assert await BackendClient(base_url="http://b").is_available() is True


@pytest.mark.asyncio
async def test_is_available_false_on_connection_error():
    mock_client = _mock_client(_mock_response({}))
    mock_client.get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))

    with patch("osca_forms.services.backend_client.httpx.AsyncClient", return_value=mock_client):
        assert await BackendClient(base_url="http://b").is_available() is False
