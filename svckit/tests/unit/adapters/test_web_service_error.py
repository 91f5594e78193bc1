from __future__ import annotations

import pickle
import threading
import time
from dataclasses import dataclass, field
from typing import Any, List

import requests

from svckit.adapters.api_errors import (
    WebServiceError,
    build_error_message,
    first_string,
    parse_error_payload,
)
from svckit.domain.response_status import ErrorResponse, ResponseError, ResponseStatus


@dataclass
class _EmptyDto:
    pass


class _LegacyDto:
    def __init__(self, status: Any) -> None:
        self.ResponseStatus = status


def _validation_dto() -> ErrorResponse:
    return ErrorResponse(
        response_status=ResponseStatus(
            error_code="VAL01",
            message="Bad input",
            stack_trace="at Service.Post()",
            errors=[ResponseError(field_name="Email")],
        )
    )


def _response(status: int, body: bytes, reason: str) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp._content = body
    resp.encoding = "utf-8"
    resp.url = "http://svc.local/users"
    return resp


def test_constructors() -> None:
    inner = ValueError("socket closed")

    bare = WebServiceError()
    with_message = WebServiceError("call failed")
    chained = WebServiceError("call failed", inner)

    assert str(bare) == ""
    assert bare.message is None
    assert str(with_message) == "call failed"
    assert chained.inner_exception is inner
    assert chained.__cause__ is inner


def test_without_dto_error_code_is_status_description() -> None:
    err = WebServiceError(status_code=404, status_description="Not Found")

    assert err.error_code == "Not Found"
    assert err.error_message is None
    assert err.server_stack_trace is None
    assert err.response_status is None
    assert err.get_field_errors() == []


def test_typed_dto_fields_are_extracted() -> None:
    err = WebServiceError(status_code=400, response_dto=_validation_dto())

    assert err.error_code == "VAL01"
    assert err.error_message == "Bad input"
    assert err.server_stack_trace == "at Service.Post()"
    field_errors = err.get_field_errors()
    assert len(field_errors) == 1
    assert field_errors[0].field_name == "Email"


def test_raw_mapping_dto_fields_are_extracted() -> None:
    dto = {
        "ResponseStatus": {
            "ErrorCode": "VAL01",
            "Message": "Bad input",
            "Errors": [{"FieldName": "Email"}],
        }
    }
    err = WebServiceError(response_dto=dto)

    assert err.error_code == "VAL01"
    assert err.error_message == "Bad input"
    assert [error.field_name for error in err.get_field_errors()] == ["Email"]


def test_dto_without_response_status_leaves_error_code_absent() -> None:
    # Unlike the no-DTO case, the status description is not used here.
    for dto in ({}, _EmptyDto()):
        err = WebServiceError(status_description="Bad Request", response_dto=dto)

        assert err.error_code is None
        assert err.error_message is None
        assert err.get_field_errors() == []


def test_unparseable_response_status_yields_no_fields() -> None:
    err = WebServiceError(response_dto={"ResponseStatus": "oops"})

    assert err.error_code is None
    assert err.error_message is None
    assert err.response_status is None


def test_derived_fields_are_memoized() -> None:
    err = WebServiceError(status_description="Conflict", response_dto=_validation_dto())

    assert err.error_code == "VAL01"
    err.response_dto = None

    assert err.error_code == "VAL01"
    assert err.error_message == "Bad input"


def test_response_status_probed_by_member_name() -> None:
    status = ResponseStatus(error_code="LEGACY")

    assert WebServiceError(response_dto=_LegacyDto(status)).response_status is status
    assert WebServiceError(response_dto=_LegacyDto("not a status")).response_status is None
    assert WebServiceError(response_dto=_EmptyDto()).response_status is None


def test_field_errors_never_none() -> None:
    dto = ErrorResponse(response_status=ResponseStatus(error_code="X"))
    dto.response_status.errors = None

    assert WebServiceError(response_dto=dto).get_field_errors() == []
    assert WebServiceError(response_dto=ErrorResponse()).get_field_errors() == []


def test_status_ranges() -> None:
    assert WebServiceError(status_code=422).is_any_400
    assert not WebServiceError(status_code=422).is_any_500
    assert WebServiceError(status_code=503).is_any_500


def test_from_response_decodes_typed_dto() -> None:
    body = (
        b'{"responseStatus": {"errorCode": "VAL01", "message": "Bad input",'
        b' "errors": [{"fieldName": "Email", "message": "required"}]}}'
    )
    resp = _response(400, body, "Bad Request")

    err = WebServiceError.from_response(resp, ErrorResponse)

    assert isinstance(err.response_dto, ErrorResponse)
    assert str(err) == "http://svc.local/users: Bad input (HTTP 400)"
    assert err.status_code == 400
    assert err.status_description == "Bad Request"
    assert err.response_body == body.decode("utf-8")
    assert err.error_code == "VAL01"
    assert err.get_field_errors()[0].message == "required"
    assert err.is_any_400


def test_from_response_with_non_json_body() -> None:
    resp = _response(502, b"<html>upstream down</html>", "Bad Gateway")

    err = WebServiceError.from_response(resp, context="GET users")

    assert err.response_dto is None
    assert str(err) == "GET users: <html>upstream down</html> (HTTP 502)"
    assert err.error_code == "Bad Gateway"
    assert err.is_any_500


def test_pickle_round_trip_keeps_state() -> None:
    err = WebServiceError("call failed", status_code=400, response_dto=_validation_dto())
    assert err.error_code == "VAL01"

    restored = pickle.loads(pickle.dumps(err))

    assert str(restored) == "call failed"
    assert restored.status_code == 400
    assert restored.error_code == "VAL01"


def test_payload_helpers_are_best_effort() -> None:
    assert parse_error_payload(_response(500, b"", "Server Error")) is None
    assert parse_error_payload(_response(500, b"x" * 600, "Server Error"), limit=10) == "x" * 10
    assert first_string({"detail": "  spaced  "}) == "spaced"
    assert first_string([{"title": 3}, {"message": "second"}]) == "second"
    assert build_error_message("ctx", 500, None) == "ctx: HTTP 500"


class _PropertyDto:
    def __init__(self, status: ResponseStatus) -> None:
        self._status = status

    @property
    def response_status(self) -> ResponseStatus:
        return self._status


@dataclass
class _PartiallyInitializedDto:
    response_status: ResponseStatus
    computed: str = field(init=False)


@dataclass
class _RaisingGetterDto:
    response_status: ResponseStatus

    @property
    def summary(self) -> str:
        raise RuntimeError("summary unavailable")


class _CountingError(WebServiceError):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.parse_calls = 0

    def _parse_response_dto(self):
        self.parse_calls += 1
        time.sleep(0.05)
        return super()._parse_response_dto()


def test_property_dto_fields_agree_with_response_status() -> None:
    err = WebServiceError(response_dto=_PropertyDto(ResponseStatus(error_code="VAL01", message="Bad input")))

    assert err.response_status.error_code == "VAL01"
    assert err.error_code == "VAL01"
    assert err.error_message == "Bad input"


def test_unset_declared_field_is_left_out_of_serialization() -> None:
    err = WebServiceError(response_dto=_PartiallyInitializedDto(ResponseStatus(error_code="X")))

    assert err.error_code == "X"


def test_raising_getter_yields_no_fields() -> None:
    err = WebServiceError(response_dto=_RaisingGetterDto(ResponseStatus(error_code="X")))

    assert err.error_code is None
    assert err.error_message is None


def test_cyclic_dto_yields_no_fields() -> None:
    dto: dict = {"ResponseStatus": {"ErrorCode": "LOOP"}}
    dto["self"] = dto

    err = WebServiceError(response_dto=dto)

    assert err.error_code is None
    assert err.server_stack_trace is None


def test_non_object_field_errors_are_dropped() -> None:
    dto = {"ResponseStatus": {"ErrorCode": "VAL01", "Errors": ["x", {"FieldName": "Email"}, 3]}}

    errors = WebServiceError(response_dto=dto).get_field_errors()

    assert errors == [ResponseError(field_name="Email")]


def test_concurrent_readers_parse_once() -> None:
    err = _CountingError(response_dto=_validation_dto())
    barrier = threading.Barrier(8)
    results: List[Any] = []

    def read() -> None:
        barrier.wait()
        results.append(err.error_code)

    threads = [threading.Thread(target=read) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert err.parse_calls == 1
    assert results == ["VAL01"] * 8
