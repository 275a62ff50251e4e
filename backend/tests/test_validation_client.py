from unittest import mock

import pytest
import requests

from printshop.services.validation_client import PaperValidationClient, ValidationClientError


def _response(status, body=None):
    resp = mock.Mock()
    resp.status_code = status
    resp.ok = status < 400
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def sleep():
    with mock.patch("printshop.services.validation_client.time.sleep") as m:
        yield m


@pytest.fixture
def client():
    return PaperValidationClient(url="http://scanner.test/validate", token="t0k")


def test_sends_string_numbers_and_token(client, sleep):
    with mock.patch("printshop.services.validation_client.requests.post",
                    return_value=_response(200, {"valid": True})) as post:
        assert client.validate("X1", "Art Paper", 150, 65.5, 100) == {"valid": True}
    _, kwargs = post.call_args
    assert kwargs["json"] == {"barcode_id": "X1", "paper_type": "Art Paper", "gsm": "150", "width": "65.5", "length": "100"}
    assert kwargs["headers"]["Authorization"] == "Bearer t0k"
    sleep.assert_not_called()


def test_retries_server_errors_with_linear_backoff(client, sleep):
    responses = [_response(502, {"error": "x"}), _response(503, {"error": "x"}), _response(200, {"valid": False})]
    with mock.patch("printshop.services.validation_client.requests.post", side_effect=responses) as post:
        assert client.validate("X1", "Art Paper", 150, 65, 100) == {"valid": False}
    assert post.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]


def test_client_errors_are_not_retried(client, sleep):
    body = {"error": "Barcode not found in inventory", "details": "No paper stock found with barcode: X1"}
    with mock.patch("printshop.services.validation_client.requests.post", return_value=_response(404, body)) as post:
        with pytest.raises(ValidationClientError) as exc:
            client.validate("X1", "Art Paper", 150, 65, 100)
    assert post.call_count == 1
    assert exc.value.status_code == 404
    assert str(exc.value) == "No paper stock found with barcode: X1"
    sleep.assert_not_called()


def test_gives_up_after_retries_on_server_error(client, sleep):
    with mock.patch("printshop.services.validation_client.requests.post",
                    return_value=_response(500, {"error": "Database error"})) as post:
        with pytest.raises(ValidationClientError) as exc:
            client.validate("X1", "Art Paper", 150, 65, 100)
    assert post.call_count == 3
    assert exc.value.status_code == 500
    assert sleep.call_count == 2


def test_connection_failures(client, sleep):
    with mock.patch("printshop.services.validation_client.requests.post",
                    side_effect=requests.ConnectionError("refused")) as post:
        with pytest.raises(ValidationClientError) as exc:
            client.validate("X1", "Art Paper", 150, 65, 100)
    assert post.call_count == 3
    assert str(exc.value) == "Failed to connect to server after 3 attempts"


def test_non_json_response(client, sleep):
    with mock.patch("printshop.services.validation_client.requests.post", return_value=_response(200)):
        with pytest.raises(ValidationClientError) as exc:
            client.validate("X1", "Art Paper", 150, 65, 100)
    assert str(exc.value) == "Invalid response from server"
