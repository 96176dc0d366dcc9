"""Tests for route slug extraction, substitution and matching."""

from __future__ import annotations

import pytest

from uiflow.runtime.context import ActionExecutionContext, GlobalScope
from uiflow.runtime.slugs import (
    extract_route_params,
    match_route,
    resolve_slugged_path,
    resolve_url,
)
from uiflow.runtime.state import ContentScope


class TestExtractRouteParams:
    def test_names_in_order(self) -> None:
        assert extract_route_params("/users/:id/posts/:postId") == ["id", "postId"]

    def test_dotted_names(self) -> None:
        assert extract_route_params("/users/:user.id") == ["user.id"]

    def test_none(self) -> None:
        assert extract_route_params("/about") == []


class TestResolveSluggedPath:
    def test_substitutes_values(self) -> None:
        assert resolve_slugged_path("/users/:id/edit", {"id": 42}) == "/users/42/edit"

    def test_nested_param(self) -> None:
        assert resolve_slugged_path("/users/:user.id", {"user": {"id": 7}}) == "/users/7"

    def test_values_are_url_quoted(self) -> None:
        assert resolve_slugged_path("/search/:q", {"q": "a b/c"}) == "/search/a%20b%2Fc"

    def test_booleans(self) -> None:
        assert resolve_slugged_path("/flags/:on", {"on": True}) == "/flags/true"

    def test_missing_param_kept(self) -> None:
        assert resolve_slugged_path("/users/:id", {}) == "/users/:id"


class TestMatchRoute:
    def test_extracts_params(self) -> None:
        assert match_route("/users/:id/posts/:postId", "/users/7/posts/3") == {
            "id": "7",
            "postId": "3",
        }

    def test_trailing_slash_ignored(self) -> None:
        assert match_route("/users/:id", "/users/7/") == {"id": "7"}

    @pytest.mark.parametrize(
        "pathname",
        ["/users", "/users/7/extra", "/accounts/7"],
    )
    def test_non_matching(self, pathname: str) -> None:
        assert match_route("/users/:id", pathname) == {}


class TestResolveUrl:
    def test_params_first(self) -> None:
        context = ActionExecutionContext(global_scope=GlobalScope())
        context.global_scope.set_state("id", "from-state")
        assert resolve_url("/items/:id", context, {"id": 1}) == "/items/1"

    def test_falls_back_to_global_and_content_state(self) -> None:
        content = ContentScope()
        content.set_content_state("tab", "billing")
        context = ActionExecutionContext(global_scope=GlobalScope(), content=content)
        context.global_scope.set_state("org", "acme")

        assert resolve_url("/:org/settings/:tab", context) == "/acme/settings/billing"

    def test_no_colon_unchanged(self) -> None:
        context = ActionExecutionContext(global_scope=GlobalScope())
        assert resolve_url("/plain/path", context, {"id": 1}) == "/plain/path"

    def test_absolute_url_port_kept(self) -> None:
        context = ActionExecutionContext(global_scope=GlobalScope())
        assert (
            resolve_url("http://localhost:8000/items/:id", context, {"id": 3})
            == "http://localhost:8000/items/3"
        )
