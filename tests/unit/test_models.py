"""Unit tests for offlinecache.models."""

from __future__ import annotations

import pydantic
import pytest

from offlinecache.models.http import FetchRequest, StoredResponse


class TestFetchRequest:
    def test_identity_strips_fragment(self) -> None:
        request = FetchRequest(url="http://localhost:8080/index.html#section")
        assert request.identity == "http://localhost:8080/index.html"

    def test_identity_keeps_query(self) -> None:
        request = FetchRequest(url="http://localhost:8080/data?page=2")
        assert request.identity == "http://localhost:8080/data?page=2"

    @pytest.mark.parametrize(
        ("method", "cacheable"), [("GET", True), ("get", True), ("POST", False)]
    )
    def test_only_get_is_cacheable(self, method: str, cacheable: bool) -> None:
        assert FetchRequest(url="http://localhost:8080/", method=method).cacheable is cacheable


class TestStoredResponse:
    def test_clone_is_equal_but_independent(self) -> None:
        original = StoredResponse(
            url="http://localhost:8080/", status=200, headers={"a": "1"}, body=b"x"
        )
        copy = original.clone()
        assert copy == original
        assert copy is not original
        assert copy.headers is not original.headers

    def test_is_immutable(self) -> None:
        response = StoredResponse(url="http://localhost:8080/", status=200)
        with pytest.raises(pydantic.ValidationError):
            response.status = 500  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("status", "ok"), [(200, True), (204, True), (304, False), (500, False)]
    )
    def test_ok(self, status: int, ok: bool) -> None:
        assert StoredResponse(url="http://localhost:8080/", status=status).ok is ok
