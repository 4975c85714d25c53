"""
Search Route - delegates to the search index collaborator.
"""
from api.contracts.pydantic_models import SearchHitOut, SearchOut, SearchQuery
from api.procedures import RouteNode
from services.container import Services

from .procedures import SiteProcedures


def register_search_routes(node: RouteNode, services: Services, procedures: SiteProcedures) -> None:

    async def search_posts(ctx):
        """Full-text search over published posts"""
        query: SearchQuery = ctx.query
        hits = await services.search.search(query.q, limit=query.limit, kind=query.kind)
        return SearchOut(
            query=query.q,
            hits=[SearchHitOut.model_validate(hit) for hit in hits],
        )

    node.config({
        "/": {
            "GET": procedures.public.with_query_validation(SearchQuery)
            .finalize("GET", "/", search_posts, output=SearchOut),
        },
    })
