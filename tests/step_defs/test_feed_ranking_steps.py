"""Step definitions for feed ranking BDD tests."""

import asyncio
from datetime import timedelta

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from feed_ranker import Author, FeedOptions, FeedService, FeedWeights, MemoryDataSource, PostCreate

scenarios("../features/feed_ranking.feature")


@pytest.fixture
def context():
    """Shared context between steps."""
    return {}


def _ids(text):
    return [part.strip() for part in text.split(",") if part.strip()]


# Given steps


@given("the standard blog catalog")
def standard_catalog(context, memory_source, frozen_clock):
    """Use the populated in-memory catalog."""
    context["source"] = memory_source


@given("an empty blog")
def empty_blog(context, frozen_clock):
    """Start from an empty in-memory data source."""
    context["source"] = MemoryDataSource()


@given(parsers.parse('author "{author}" published {count:d} posts {hours:d} hours ago with {reactions:d} reactions'))
def author_posts(context, now, author, count, hours, reactions):
    """Add a batch of posts by one author."""
    source = context["source"]

    async def add():
        await source.add_author(Author(id=author, username=author, display_name=author.title()))
        for i in range(count):
            await source.add_post(
                PostCreate(
                    id=f"{author}{i}",
                    title=f"{author.title()} post {i}",
                    author_id=author,
                    published_at=now - timedelta(hours=hours, minutes=i),
                    reaction_count=reactions,
                )
            )

    asyncio.run(add())


# When steps


@when(parsers.parse('"{user_id}" requests page {page:d} of their feed'))
def request_feed(context, user_id, page):
    """Rank one page of the feed."""
    service = FeedService(context["source"], weights=FeedWeights())
    context["result"] = asyncio.run(service.get_feed_posts(FeedOptions(user_id=user_id, page=page)))


@when(parsers.parse('"{user_id}" requests page {page:d} of their feed excluding read posts'))
def request_unread_feed(context, user_id, page):
    """Rank one page of the feed without read posts."""
    service = FeedService(context["source"], weights=FeedWeights())
    options = FeedOptions(user_id=user_id, page=page, exclude_read=True)
    context["result"] = asyncio.run(service.get_feed_posts(options))


@when("I request the trending posts")
def request_trending(context):
    """Fetch the trending listing."""
    context["trending"] = asyncio.run(FeedService(context["source"], weights=FeedWeights()).get_trending_posts())


# Then steps


@then(parsers.parse('the feed should list posts "{ids}"'))
def feed_lists_posts(context, ids):
    """Verify the exact ranking."""
    assert [p.id for p in context["result"].posts] == _ids(ids)


@then(parsers.parse('the feed should not contain post "{post_id}"'))
def feed_excludes_post(context, post_id):
    """Verify a post is absent."""
    assert post_id not in {p.id for p in context["result"].posts}


@then(parsers.parse("the feed should contain {count:d} posts"))
def feed_has_count(context, count):
    """Verify the page size."""
    assert len(context["result"].posts) == count


@then("every post should carry a relevance score")
def posts_are_scored(context):
    """Verify every post was scored."""
    assert all(p.relevance_score is not None for p in context["result"].posts)


@then("the scores should be in descending order")
def scores_descend(context):
    """Verify the ranking order."""
    scores = [p.relevance_score for p in context["result"].posts]
    assert scores == sorted(scores, reverse=True)


@then("the feed should report no more pages")
def no_more_pages(context):
    """Verify the pagination flag."""
    assert context["result"].has_more is False


@then(parsers.parse("no author should appear more than {limit:d} times in a row"))
def author_runs_are_short(context, limit):
    """Verify the diversity window."""
    authors = [p.author.id for p in context["result"].posts]
    run_length = 1
    for previous, current in zip(authors, authors[1:]):
        run_length = run_length + 1 if current == previous else 1
        assert run_length <= limit


@then(parsers.parse('the trending list should be "{ids}"'))
def trending_list(context, ids):
    """Verify the trending order."""
    assert [p.id for p in context["trending"]] == _ids(ids)
