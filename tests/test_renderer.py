"""Tests for the list and detail page renderers."""

import pytest

from inkwell.comments import SubmissionOutcome, SubmissionStatus
from inkwell.exceptions import NotFound, StoreUnavailable
from inkwell.renderer import DetailRenderer, ListRenderer, render_error_page


class TestListRenderer:
    @pytest.mark.asyncio
    async def test_renders_every_post(self, store, sanity, clock):
        sanity.add_post("second-post", title="Second Post")
        clock.now = 12.0

        snapshot = await ListRenderer(store, clock=clock).render()

        assert [p.title for p in snapshot.posts] == ["Hello World", "Second Post"]
        assert snapshot.generated_at == 12.0
        assert 'href="/post/hello-world"' in snapshot.html
        assert 'href="/post/second-post"' in snapshot.html
        assert "by Ada Lovelace" in snapshot.html
        assert "https://cdn.sanity.io/images/testproj/test/hero01-1200x800.jpg" in snapshot.html

    @pytest.mark.asyncio
    async def test_recomputed_on_every_call(self, store, sanity, clock):
        renderer = ListRenderer(store, clock=clock)

        await renderer.render()
        sanity.add_post("second-post", title="Second Post")
        snapshot = await renderer.render()

        assert len(sanity.queries) == 2
        assert "Second Post" in snapshot.html

    @pytest.mark.asyncio
    async def test_empty_store(self, store, sanity, clock):
        sanity.posts.clear()

        snapshot = await ListRenderer(store, clock=clock).render()

        assert snapshot.posts == []
        assert "No posts yet." in snapshot.html


class TestDetailRenderer:
    @pytest.mark.asyncio
    async def test_snapshot_contents(self, store, clock):
        clock.now = 42.0

        snapshot = await DetailRenderer(store, clock=clock).render("hello-world")

        assert snapshot.slug == "hello-world"
        assert snapshot.generated_at == 42.0
        assert snapshot.post.id == "post-hello-world"
        assert "<h1>Hello World</h1>" in snapshot.html
        assert "<p>Body of hello-world</p>" in snapshot.html
        assert '<meta name="generated-at" content="42.000">' in snapshot.html
        assert 'name="_id" value="post-hello-world"' in snapshot.html
        assert "Blog post by" in snapshot.html

    @pytest.mark.asyncio
    async def test_only_approved_comments_shown(self, store, sanity, clock):
        sanity.comments.extend(
            [
                {"_id": "c1", "_createdAt": "2024-01-16T10:00:00Z", "name": "Bo",
                 "comment": "Visible words", "approved": True,
                 "post": {"_ref": "post-hello-world"}},
                {"_id": "c2", "_createdAt": "2024-01-16T11:00:00Z", "name": "Cy",
                 "comment": "Hidden words", "approved": False,
                 "post": {"_ref": "post-hello-world"}},
            ]
        )

        snapshot = await DetailRenderer(store, clock=clock).render("hello-world")

        assert "Visible words" in snapshot.html
        assert "Hidden words" not in snapshot.html

    @pytest.mark.asyncio
    async def test_unknown_slug_fails_fast(self, store, clock):
        with pytest.raises(NotFound):
            await DetailRenderer(store, clock=clock).render("nope")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store, sanity, clock):
        sanity.fail_reads = True

        with pytest.raises(StoreUnavailable):
            await DetailRenderer(store, clock=clock).render("hello-world")

    @pytest.mark.asyncio
    async def test_comment_text_is_escaped(self, store, sanity, clock):
        sanity.comments.append(
            {"_id": "c1", "_createdAt": "2024-01-16T10:00:00Z", "name": "<b>Eve</b>",
             "comment": "<script>alert(1)</script>", "approved": True,
             "post": {"_ref": "post-hello-world"}}
        )

        snapshot = await DetailRenderer(store, clock=clock).render("hello-world")

        assert "<script>alert(1)</script>" not in snapshot.html
        assert "&lt;script&gt;" in snapshot.html


class TestRenderPage:
    @pytest.mark.asyncio
    async def test_pending_outcome_shows_confirmation(self, store, clock):
        renderer = DetailRenderer(store, clock=clock)
        snapshot = await renderer.render("hello-world")
        outcome = SubmissionOutcome(
            SubmissionStatus.PENDING,
            {"_id": "post-hello-world", "name": "Bo", "email": "b@x.io", "comment": "Hi"},
            comment_id="comment-1",
        )

        html = renderer.render_page(snapshot.post, snapshot.generated_at, outcome)

        assert "Thank you for submitting your comment" in html
        assert "Once it has been approved, it will appear below!" in html
        assert "<form" not in html

    @pytest.mark.asyncio
    async def test_invalid_outcome_keeps_values_and_shows_errors(self, store, clock):
        renderer = DetailRenderer(store, clock=clock)
        snapshot = await renderer.render("hello-world")
        outcome = SubmissionOutcome(
            SubmissionStatus.INVALID,
            {"_id": "post-hello-world", "name": "Bo", "email": "", "comment": "Hi there"},
            errors={"email": "The Email Field is required"},
        )

        html = renderer.render_page(snapshot.post, snapshot.generated_at, outcome)

        assert 'data-field="email"' in html
        assert "The Email Field is required" in html
        assert "The Name Field is required" not in html
        assert 'value="Bo"' in html
        assert "Hi there</textarea>" in html

    @pytest.mark.asyncio
    async def test_failed_outcome_keeps_form_editable(self, store, clock):
        renderer = DetailRenderer(store, clock=clock)
        snapshot = await renderer.render("hello-world")
        outcome = SubmissionOutcome(
            SubmissionStatus.FAILED,
            {"_id": "post-hello-world", "name": "Bo", "email": "b@x.io", "comment": "Hi"},
        )

        html = renderer.render_page(snapshot.post, snapshot.generated_at, outcome)

        assert "could not be submitted" in html
        assert "<form" in html
        assert 'value="b@x.io"' in html


def test_error_page():
    html = render_error_page(404, "Post not found", "Nothing here.")

    assert "404 · Post not found" in html
    assert "Nothing here." in html
