import json

from app.platform.response import api_response, error_response


def test_success_envelope():
    response = api_response(data={"score": 72}, message="Analysis completed")

    assert response.status_code == 200
    assert json.loads(response.body) == {
        "status_code": 200,
        "status": "success",
        "message": "Analysis completed",
        "data": {"score": 72},
    }


def test_missing_data_is_empty_object():
    assert json.loads(api_response().body)["data"] == {}


def test_error_envelope_repeats_message_and_code():
    response = error_response("TIMEOUT", "Too slow", 500, detail="after 30s")

    body = json.loads(response.body)
    assert response.status_code == 500
    assert body["status"] == "error"
    assert body["message"] == "Too slow"
    assert body["data"] == {"error": "Too slow", "code": "TIMEOUT", "detail": "after 30s"}
