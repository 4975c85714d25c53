"""
Tests for RouteTree assembly and lookup.
"""

import pytest

from api.procedures import (
    DuplicateRouteError,
    Procedure,
    ProcedureBuildError,
    RouteTree,
    RouteTreeFrozenError,
)
from api.procedures.routes import join_path


def endpoint(method, path, name=None):
    return Procedure.base().finalize(method, path, lambda ctx: {}, output=dict, name=name or f"{method.lower()}_x")


@pytest.fixture
def tree():
    tree = RouteTree()
    posts = tree.subroute("/posts")
    posts.config({
        "/": {"GET": endpoint("GET", "/", "list_posts")},
        "/gallery": {"POST": endpoint("POST", "/gallery", "create_gallery")},
        "/<uuid>": {
            "GET": endpoint("GET", "/<uuid>", "get_post"),
            "DELETE": endpoint("DELETE", "/<uuid>", "delete_post"),
        },
    })
    return tree


class TestAssembly:
    def test_subroute_returns_same_node(self, tree):
        assert tree.subroute("/posts") is tree.subroute("posts/")

    def test_nested_subroutes_concatenate(self):
        tree = RouteTree()
        tree.subroute("/admin").subroute("/users").config({"/": {"GET": endpoint("GET", "/")}})
        assert [e.full_path for e in tree.iter_endpoints()] == ["/admin/users"]

    def test_duplicate_method_path_is_rejected(self, tree):
        with pytest.raises(DuplicateRouteError) as exc_info:
            tree.subroute("/posts").config({"/gallery": {"POST": endpoint("POST", "/gallery", "again")}})
        assert exc_info.value.full_path == "/posts/gallery"

    def test_duplicate_via_different_node_is_rejected(self, tree):
        with pytest.raises(DuplicateRouteError):
            tree.config({"/posts/gallery": {"POST": endpoint("POST", "/posts/gallery")}})

    def test_same_shape_different_param_name_is_duplicate(self, tree):
        with pytest.raises(DuplicateRouteError):
            tree.subroute("/posts").config({"/<slug>": {"GET": endpoint("GET", "/<slug>")}})

    def test_first_registration_survives_duplicate(self, tree):
        with pytest.raises(DuplicateRouteError):
            tree.subroute("/posts").config({"/gallery": {"POST": endpoint("POST", "/gallery", "again")}})
        tree.freeze()
        assert tree.lookup("POST", "/posts/gallery").endpoint.name == "create_gallery"

    def test_method_mismatch_is_build_error(self):
        with pytest.raises(ProcedureBuildError):
            RouteTree().config({"/": {"POST": endpoint("GET", "/")}})

    def test_path_mismatch_is_build_error(self):
        with pytest.raises(ProcedureBuildError):
            RouteTree().config({"/a": {"GET": endpoint("GET", "/b")}})

    def test_mount_uses_endpoint_method_and_path(self):
        tree = RouteTree()
        tree.subroute("/search").mount(endpoint("GET", "/", "search"))
        assert [(e.method, e.full_path) for e in tree.iter_endpoints()] == [("GET", "/search")]

    def test_registration_order_is_preserved(self, tree):
        assert [e.endpoint.name for e in tree.iter_endpoints()] == [
            "list_posts", "create_gallery", "get_post", "delete_post",
        ]


class TestFreeze:
    def test_registration_after_freeze_is_rejected(self, tree):
        tree.freeze()
        with pytest.raises(RouteTreeFrozenError):
            tree.subroute("/posts").config({"/article": {"POST": endpoint("POST", "/article")}})
        with pytest.raises(RouteTreeFrozenError):
            tree.subroute("/new-namespace")

    def test_lookup_requires_freeze(self, tree):
        with pytest.raises(RuntimeError):
            tree.lookup("GET", "/posts")


class TestLookup:
    def test_static_route(self, tree):
        match = tree.freeze().lookup("GET", "/posts")
        assert match.endpoint.name == "list_posts"
        assert match.path_params == {}

    def test_trailing_slash_tolerated(self, tree):
        assert tree.freeze().lookup("GET", "/posts/").endpoint.name == "list_posts"

    def test_path_params_extracted(self, tree):
        match = tree.freeze().lookup("DELETE", "/posts/abc-123")
        assert match.endpoint.name == "delete_post"
        assert match.path_params == {"uuid": "abc-123"}

    def test_static_segment_wins_over_param(self, tree):
        assert tree.freeze().lookup("POST", "/posts/gallery").endpoint.name == "create_gallery"

    def test_unknown_path_is_none(self, tree):
        assert tree.freeze().lookup("GET", "/nope") is None

    def test_known_path_wrong_method_is_none(self, tree):
        assert tree.freeze().lookup("PATCH", "/posts/abc") is None


@pytest.mark.parametrize("prefix,suffix,expected", [
    ("/", "/", "/"),
    ("/posts", "/", "/posts"),
    ("/posts/", "gallery/", "/posts/gallery"),
    ("", "/<uuid>/schedule", "/<uuid>/schedule"),
])
def test_join_path(prefix, suffix, expected):
    assert join_path(prefix, suffix) == expected
