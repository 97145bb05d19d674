"""Tests for perch.errors — exception hierarchy and error payloads."""

import pytest

from perch.errors import (
    BadRequest,
    ConfigurationError,
    GeneralError,
    HTTPError,
    MethodNotAllowed,
    NotAcceptable,
    NotFound,
    PerchError,
    SetupAlreadyCompletedError,
    UnsupportedMediaType,
)


class TestHierarchy:
    def test_http_error_is_perch_error(self) -> None:
        assert issubclass(HTTPError, PerchError)

    def test_named_kinds_are_http_errors(self) -> None:
        for kind in (BadRequest, NotFound, MethodNotAllowed, NotAcceptable, GeneralError):
            assert issubclass(kind, HTTPError)

    def test_registration_errors_are_perch_errors(self) -> None:
        assert issubclass(ConfigurationError, PerchError)
        assert issubclass(SetupAlreadyCompletedError, PerchError)


class TestHTTPError:
    def test_str_with_detail(self) -> None:
        err = HTTPError(status=400, detail="Bad request body")
        assert str(err) == "400: Bad request body"

    def test_str_without_detail(self) -> None:
        assert str(HTTPError(status=500)) == "500"

    def test_frozen(self) -> None:
        err = HTTPError(status=400)
        with pytest.raises(AttributeError):
            err.status = 500  # type: ignore[misc]

    def test_named_statuses(self) -> None:
        assert BadRequest().status == 400
        assert NotAcceptable().status == 406
        assert UnsupportedMediaType().status == 415
        assert GeneralError().status == 500


class TestToDict:
    def test_payload_shape(self) -> None:
        payload = NotFound("No todo 7").to_dict()
        assert payload == {
            "name": "NotFound",
            "message": "No todo 7",
            "code": 404,
            "className": "not-found",
        }

    def test_class_name_is_kebab_case(self) -> None:
        assert MethodNotAllowed().to_dict()["className"] == "method-not-allowed"

    def test_plain_http_error_name(self) -> None:
        assert HTTPError(status=418).to_dict()["name"] == "HTTPError"


class TestMethodNotAllowed:
    def test_allow_header_lists_methods(self) -> None:
        err = MethodNotAllowed(frozenset({"POST", "GET"}))
        assert err.headers == (("Allow", "GET, POST"),)
        assert "GET, POST" in err.detail

    def test_no_header_without_methods(self) -> None:
        err = MethodNotAllowed()
        assert err.headers == ()
        assert err.status == 405

    def test_custom_detail(self) -> None:
        err = MethodNotAllowed(frozenset({"GET"}), "Method `patch` is not supported.")
        assert err.detail == "Method `patch` is not supported."
        assert err.headers == (("Allow", "GET"),)
