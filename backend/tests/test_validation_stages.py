"""
Tests for the validation adapter (body / query stages).
"""

import asyncio

import pytest

from api.contracts.pydantic_models import GalleryPostBody, PostListQuery, SearchQuery
from api.procedures import Continue, Halt, IncomingRequest, Locals, ResponseDraft
from api.procedures.validation import body_validation_stage, collect_query_params, query_validation_stage

VALID_GALLERY = {
    "title": "Harbour at dawn",
    "excerpt": "Twelve frames from the morning shift.",
    "credits": "Photos: J. Tan",
    "link": "harbour-at-dawn",
    "type": "photo",
    "mainImageUuid": "3f2c9a6e-1d7b-4a53-9a57-0b8f2a6b1c11",
    "mainImageCaption": "The first ferry leaves at 5:40.",
}


def call(stage, request):
    return asyncio.run(stage(request, ResponseDraft(), Locals()))


def post(body, is_json=True):
    return IncomingRequest(method="POST", path="/posts/gallery", body=body, body_is_json=is_json)


def get(query):
    return IncomingRequest(method="GET", path="/posts", query=query)


class TestBodyValidation:
    def test_valid_body_provides_parsed_model(self):
        outcome = call(body_validation_stage(GalleryPostBody), post(VALID_GALLERY))

        assert isinstance(outcome, Continue)
        parsed = outcome.patch["input"]
        assert isinstance(parsed, GalleryPostBody)
        assert parsed.main_image_uuid == VALID_GALLERY["mainImageUuid"]
        assert parsed.tags == []

    def test_every_failing_field_is_reported(self):
        body = dict(VALID_GALLERY)
        del body["type"]
        del body["credits"]
        body["title"] = ""

        outcome = call(body_validation_stage(GalleryPostBody), post(body))

        assert isinstance(outcome, Halt)
        assert outcome.response.status_code == 400
        error = outcome.response.body["error"]
        assert error["kind"] == "ValidationError"
        assert {f["field"] for f in error["fields"]} == {"type", "credits", "title"}

    def test_unknown_fields_are_rejected(self):
        outcome = call(body_validation_stage(GalleryPostBody), post({**VALID_GALLERY, "authorId": 1}))

        assert isinstance(outcome, Halt)
        assert [f["field"] for f in outcome.response.body["error"]["fields"]] == ["authorId"]

    @pytest.mark.parametrize("body,is_json", [(None, True), ([1, 2], True), ("title=x", False)])
    def test_missing_or_non_object_body(self, body, is_json):
        outcome = call(body_validation_stage(GalleryPostBody), post(body, is_json))

        assert isinstance(outcome, Halt)
        assert outcome.response.body["error"]["fields"][0]["field"] == "body"

    def test_stage_declares_contract(self):
        s = body_validation_stage(GalleryPostBody)
        assert s.provides == frozenset({"input"})
        assert s.contract == ("input", GalleryPostBody)


class TestQueryValidation:
    def test_defaults_apply_when_absent(self):
        outcome = call(query_validation_stage(PostListQuery), get({}))

        query = outcome.patch["query"]
        assert (query.page, query.limit, query.status, query.kind, query.tag) == (1, 20, "published", None, None)

    def test_scalars_are_coerced(self):
        outcome = call(query_validation_stage(PostListQuery), get({"page": ["3"], "limit": ["50"], "kind": ["gallery"]}))

        query = outcome.patch["query"]
        assert (query.page, query.limit, query.kind) == (3, 50, "gallery")

    def test_repeated_params_feed_list_fields(self):
        outcome = call(query_validation_stage(PostListQuery), get({"tag[]": ["news", "sport"], "tag": ["arts,food"]}))
        assert outcome.patch["query"].tag == ["news", "sport", "arts", "food"]

    def test_bounds_violation_halts(self):
        outcome = call(query_validation_stage(PostListQuery), get({"limit": ["500"], "page": ["0"]}))

        assert isinstance(outcome, Halt)
        assert {f["field"] for f in outcome.response.body["error"]["fields"]} == {"limit", "page"}

    def test_unknown_params_are_ignored(self):
        outcome = call(query_validation_stage(SearchQuery), get({"q": ["harbour"], "_": ["1712345"]}))
        assert isinstance(outcome, Continue)
        assert outcome.patch["query"].q == "harbour"

    def test_required_param_missing(self):
        outcome = call(query_validation_stage(SearchQuery), get({}))

        assert isinstance(outcome, Halt)
        assert outcome.response.body["error"]["fields"][0]["field"] == "q"


def test_collect_query_params_takes_first_scalar():
    assert collect_query_params({"page": ["2", "9"]}, PostListQuery) == {"page": "2"}
