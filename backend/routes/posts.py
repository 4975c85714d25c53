"""
Post Routes - gallery and article management.

Endpoints:
- GET    /posts                  public, paginated listing
- GET    /posts/<uuid>           public, single post
- POST   /posts/gallery          admin
- POST   /posts/article          admin, editor
- PATCH  /posts/<uuid>           admin, editor
- DELETE /posts/<uuid>           admin
- POST   /posts/<uuid>/schedule  admin, editor

Handlers return PostOut built from the stored record; internal columns
(author id, search index state) never leave this module.
"""
import logging
from datetime import timezone

from api.contracts.pydantic_models import (
    ArticlePostBody,
    DeletedOut,
    GalleryPostBody,
    PostListOut,
    PostListQuery,
    PostOut,
    PostPatchBody,
    ScheduleOut,
    SchedulePostBody,
)
from api.procedures import NotFoundError, RouteNode, ValidationError
from services.container import Services
from services.stores import utcnow

from .procedures import SiteProcedures

logger = logging.getLogger(__name__)


def _post_out(record) -> PostOut:
    return PostOut.model_validate(record)


def _author_fields(user) -> dict:
    return {"author_id": user.id, "author_name": user.display_name or user.email}


def register_post_routes(node: RouteNode, services: Services, procedures: SiteProcedures) -> None:

    async def _existing(uuid: str):
        record = await services.posts.get(uuid)
        if record is None:
            raise NotFoundError(f"Post {uuid} not found")
        return record

    async def list_posts(ctx):
        """List posts, newest first"""
        query: PostListQuery = ctx.query
        records, total = await services.posts.list(
            page=query.page,
            limit=query.limit,
            kind=query.kind,
            status=query.status,
            tags=query.tag,
        )
        return PostListOut(
            items=[_post_out(r) for r in records],
            page=query.page,
            limit=query.limit,
            total=total,
        )

    async def get_post(ctx):
        """Fetch a single post"""
        return _post_out(await _existing(ctx.params["uuid"]))

    async def create_gallery(ctx):
        """Create and publish a gallery post"""
        body: GalleryPostBody = ctx.input
        now = utcnow()
        record = await services.posts.create({
            **body.model_dump(),
            "kind": "gallery",
            "status": "published",
            "published_at": now,
            **_author_fields(ctx.user),
        })
        await services.search.index(record)
        logger.info(f"post_created kind=gallery uuid={record.uuid} user_id={ctx.user.id}")
        return _post_out(record)

    async def create_article(ctx):
        """Create an article post (draft unless publish=true)"""
        body: ArticlePostBody = ctx.input
        fields = body.model_dump(exclude={"publish"})
        if fields.get("canonical_url") is not None:
            fields["canonical_url"] = str(fields["canonical_url"])
        record = await services.posts.create({
            **fields,
            "kind": "article",
            "status": "published" if body.publish else "draft",
            "published_at": utcnow() if body.publish else None,
            **_author_fields(ctx.user),
        })
        if body.publish:
            await services.search.index(record)
        logger.info(f"post_created kind=article uuid={record.uuid} status={record.status} user_id={ctx.user.id}")
        return _post_out(record)

    async def update_post(ctx):
        """Partially update a post"""
        body: PostPatchBody = ctx.input
        current = await _existing(ctx.params["uuid"])
        changes = body.model_dump(exclude_unset=True)

        if current.kind == "gallery" and "body" in changes:
            raise ValidationError(fields=[{"field": "body", "message": "Gallery posts have no body"}])
        if current.kind == "article" and {"credits", "main_image_caption"} & set(changes):
            raise ValidationError(fields=[
                {"field": name, "message": "Only gallery posts carry this field"}
                for name in ("credits", "main_image_caption") if name in changes
            ])

        status = changes.get("status")
        if status is not None and status != current.status:
            if current.status == "scheduled":
                await services.scheduler.cancel(current.uuid)
                changes["publish_at"] = None
            if status == "published":
                changes["published_at"] = utcnow()

        record = await services.posts.update(current.uuid, changes)
        if record is None:
            raise NotFoundError(f"Post {current.uuid} not found")
        await services.search.index(record)
        return _post_out(record)

    async def delete_post(ctx):
        """Delete a post"""
        uuid = ctx.params["uuid"]
        if not await services.posts.delete(uuid):
            raise NotFoundError(f"Post {uuid} not found")
        await services.search.remove(uuid)
        await services.scheduler.cancel(uuid)
        logger.info(f"post_deleted uuid={uuid} user_id={ctx.user.id}")
        return DeletedOut(uuid=uuid, deleted=True)

    async def schedule_post(ctx):
        """Schedule timed publication of a post"""
        body: SchedulePostBody = ctx.input
        publish_at = body.publish_at
        if publish_at.tzinfo is None:
            publish_at = publish_at.replace(tzinfo=timezone.utc)
        if publish_at <= utcnow():
            raise ValidationError(fields=[{"field": "publishAt", "message": "Must be in the future"}])

        current = await _existing(ctx.params["uuid"])
        if current.status == "published":
            raise ValidationError(fields=[{"field": "uuid", "message": "Post is already published"}])

        job = await services.scheduler.schedule(current.uuid, publish_at)
        record = await services.posts.update(current.uuid, {"status": "scheduled", "publish_at": publish_at})
        if record is None:
            await services.scheduler.cancel(current.uuid)
            raise NotFoundError(f"Post {current.uuid} not found")
        return ScheduleOut(uuid=record.uuid, status=record.status, publish_at=publish_at, job_id=job.job_id)

    public, staff, admin = procedures.public, procedures.staff, procedures.admin

    node.config({
        "/": {
            "GET": public.with_query_validation(PostListQuery)
            .finalize("GET", "/", list_posts, output=PostListOut),
        },
        "/gallery": {
            "POST": admin.with_body_validation(GalleryPostBody)
            .finalize("POST", "/gallery", create_gallery, output=PostOut),
        },
        "/article": {
            "POST": staff.with_body_validation(ArticlePostBody)
            .finalize("POST", "/article", create_article, output=PostOut),
        },
        "/<uuid>": {
            "GET": public.finalize("GET", "/<uuid>", get_post, output=PostOut),
            "PATCH": staff.with_body_validation(PostPatchBody)
            .finalize("PATCH", "/<uuid>", update_post, output=PostOut),
            "DELETE": admin.finalize("DELETE", "/<uuid>", delete_post, output=DeletedOut),
        },
        "/<uuid>/schedule": {
            "POST": staff.with_body_validation(SchedulePostBody)
            .finalize("POST", "/<uuid>/schedule", schedule_post, output=ScheduleOut),
        },
    })
