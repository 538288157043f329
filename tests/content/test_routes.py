"""Tests for route normalization."""

import pytest
from routedoc.content.routes import normalize_route, routes_match


class TestNormalizeRoute:
    @pytest.mark.parametrize(
        ("route", "expected"),
        [
            ("hello world", "hello-world"),
            ("Hello World", "hello-world"),
            ("hello-world", "hello-world"),
            ("  Spaced   Out  ", "-spaced-out-"),
            ("tabs\tand\nnewlines", "tabs-and-newlines"),
            ("", ""),
            ("UPPER", "upper"),
        ],
    )
    def test_normalizes(self, route, expected):
        assert normalize_route(route) == expected

    @pytest.mark.parametrize(
        "route",
        ["hello world", "Hello  World", " a b ", "", "MiXeD\tCase", "already-clean", "Ünïcode Wörds"],
    )
    def test_idempotent(self, route):
        once = normalize_route(route)
        assert normalize_route(once) == once

    def test_non_string_is_total(self):
        assert normalize_route(2024) == "2024"


class TestRoutesMatch:
    def test_same_after_normalization(self):
        assert routes_match("Hello World", "hello-world")

    def test_different(self):
        assert not routes_match("hello", "world")
