"""
Title Generator Module
Builds default YouTube title, description and tags from the selected posts.
"""

from .reddit_client import RedditPost
from .youtube_uploader import VideoMetadata


TITLE_LENGTH = 80
CREDIT_LINE = "This video was automatically generated using RedditVocalScribe."


def generate_title(posts: list[RedditPost]) -> str:
    """Uses the first post's title, marking that more posts follow."""
    if not posts:
        return ""
    title = posts[0].title[:TITLE_LENGTH]
    if len(posts) > 1:
        title += " & more"
    return title


def generate_description(posts: list[RedditPost]) -> str:
    """Credits every source post."""
    sources = "".join(
        f'Source: Reddit post "{post.title}" from r/{post.subreddit}\n'
        f"Link: {post.link}\n\n"
        for post in posts
    )
    return f"{sources}{CREDIT_LINE}"


def generate_tags(posts: list[RedditPost]) -> list[str]:
    """One tag per post's subreddit, keeping the first occurrence."""
    return list(dict.fromkeys(post.subreddit for post in posts))


def parse_tags(raw: str) -> list[str]:
    """Splits a comma-separated tag string as typed by the user."""
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def default_metadata(
    posts: list[RedditPost],
    privacy_status: str = "private",
    category: str = "22"
) -> VideoMetadata:
    return VideoMetadata(
        title=generate_title(posts),
        description=generate_description(posts),
        tags=generate_tags(posts),
        category=category,
        privacy_status=privacy_status
    )
