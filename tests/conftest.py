"""Shared fixtures: Reddit listing payloads and parsed posts."""

from typing import Any, Dict

import pytest

from vocal_scribe.reddit_client import RedditPost


LONG_BODY = (
    "I moved into a new apartment last month and the neighbour upstairs "
    "has been practising the tuba every night at exactly three in the morning."
)


def make_post_data(post_id: str = "abc123", body: str = LONG_BODY, **overrides) -> Dict[str, Any]:
    data = {
        "id": post_id,
        "subreddit": "tifu",
        "title": f"TIFU by asking my neighbour about the tuba ({post_id})",
        "selftext": body,
        "author": "throwaway_42",
        "score": 1234,
        "created_utc": 1700000000.0,
        "permalink": f"/r/tifu/comments/{post_id}/tifu_tuba/",
        "url": f"https://www.reddit.com/r/tifu/comments/{post_id}/tifu_tuba/",
        "num_comments": 56,
        "stickied": False,
    }
    data.update(overrides)
    return data


def listing(*children: Dict[str, Any], kind: str = "t3") -> Dict[str, Any]:
    return {
        "kind": "Listing",
        "data": {"children": [{"kind": kind, "data": c} for c in children]},
    }


@pytest.fixture
def post_listing():
    """Hot listing with two long posts, one short one and a link post."""
    return listing(
        make_post_data("p1"),
        make_post_data("p2", body="Too short to narrate."),
        make_post_data("p3", subreddit="AskReddit"),
        make_post_data("p4", body=""),
    )


@pytest.fixture
def sample_posts():
    return [
        RedditPost(
            id="p1",
            subreddit="tifu",
            title="TIFU by asking about the tuba",
            body=LONG_BODY,
            author="throwaway_42",
            score=1234,
            created_utc=1700000000.0,
            permalink="/r/tifu/comments/p1/tifu_tuba/",
            url="https://www.reddit.com/r/tifu/comments/p1/tifu_tuba/",
            num_comments=56,
        ),
        RedditPost(
            id="p2",
            subreddit="AmItheAsshole",
            title="AITA for **refusing** to lend my [car](https://example.com)?",
            body=LONG_BODY,
            author="someone",
            score=99,
            created_utc=1700000500.0,
            permalink="/r/AmItheAsshole/comments/p2/aita_car/",
            url="https://www.reddit.com/r/AmItheAsshole/comments/p2/aita_car/",
            num_comments=7,
        ),
    ]
