"""
Site route tree.

    /auth/...    routes/auth.py
    /posts/...   routes/posts.py
    /search      routes/search.py

build_route_tree() returns an open tree; create_app() freezes it.
"""
from api.procedures import RouteTree
from services.container import Services

from .auth import register_auth_routes
from .posts import register_post_routes
from .procedures import SiteProcedures, build_procedures
from .search import register_search_routes


def build_route_tree(services: Services) -> RouteTree:
    procedures = build_procedures(services)
    tree = RouteTree()
    register_auth_routes(tree.subroute("/auth"), services, procedures)
    register_post_routes(tree.subroute("/posts"), services, procedures)
    register_search_routes(tree.subroute("/search"), services, procedures)
    return tree


__all__ = ['build_route_tree', 'build_procedures', 'SiteProcedures']
