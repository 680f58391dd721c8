"""
Reddit Client Module
OAuth login and post listing against the authenticated Reddit API.
"""

import re
import secrets
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from .errors import MalformedResponseError, NotAuthenticatedError, ServiceError


@dataclass(frozen=True)
class RedditPost:
    """A Reddit self-post as returned by the listing endpoint."""
    id: str
    subreddit: str
    title: str
    body: str
    author: str
    score: int
    created_utc: float
    permalink: str
    url: str
    num_comments: int

    @property
    def full_text(self) -> str:
        """Returns the text read out for this post."""
        return f"{self.title} {self.body}"

    @property
    def link(self) -> str:
        return f"https://reddit.com{self.permalink}"


def _require(data: dict, key: str, kind, context: str):
    value = data.get(key)
    # bool is an int subclass; never accept it for numeric fields
    if isinstance(value, bool) or not isinstance(value, kind):
        raise MalformedResponseError(
            f"{context}: expected {key!r} to be {getattr(kind, '__name__', kind)}, "
            f"got {type(value).__name__}"
        )
    return value


def _listing_children(payload: Any, context: str) -> list[dict]:
    """Unwraps a Reddit Listing into its children's data dicts."""
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"{context}: response is not an object")
    data = payload.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("children"), list):
        raise MalformedResponseError(f"{context}: missing data.children")

    children = []
    for child in data["children"]:
        if not isinstance(child, dict) or not isinstance(child.get("data"), dict):
            raise MalformedResponseError(f"{context}: listing child has no data")
        children.append(child["data"])
    return children


def parse_post(data: dict) -> RedditPost:
    """Converts a raw listing entry into a RedditPost."""
    context = "post"
    return RedditPost(
        id=_require(data, "id", str, context),
        subreddit=_require(data, "subreddit", str, context),
        title=_require(data, "title", str, context),
        body=_require(data, "selftext", str, context),
        # Deleted accounts come back as null
        author=data.get("author") if isinstance(data.get("author"), str) else "[deleted]",
        score=_require(data, "score", int, context),
        created_utc=float(_require(data, "created_utc", (int, float), context)),
        permalink=_require(data, "permalink", str, context),
        url=_require(data, "url", str, context),
        num_comments=_require(data, "num_comments", int, context),
    )


class RedditOAuth:
    """Authorization-code OAuth flow for a Reddit web app."""

    AUTHORIZE_URL = "https://www.reddit.com/api/v1/authorize"
    TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
    SCOPE = "identity read history mysubreddits"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        user_agent: str = "python:reddit-vocal-scribe:1.0.0",
        timeout: float = 10
    ):
        if not client_id:
            raise ValueError("A Reddit client ID is required")
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @staticmethod
    def new_state() -> str:
        return secrets.token_urlsafe(12)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "state": state,
            "redirect_uri": self.redirect_uri,
            "duration": "permanent",
            "scope": self.SCOPE,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    @staticmethod
    def parse_redirect(redirect_url: str, expected_state: Optional[str] = None) -> str:
        """
        Extracts the authorization code from the URL Reddit redirected to.

        Raises:
            ServiceError: if Reddit reported an error, the state does not
                match, or no code is present
        """
        query = parse_qs(urlparse(redirect_url.strip()).query)

        if "error" in query:
            raise ServiceError(f"Reddit authorization failed: {query['error'][0]}")

        state = query.get("state", [None])[0]
        if expected_state and state != expected_state:
            raise ServiceError("OAuth state mismatch")

        code = query.get("code", [None])[0]
        if not code:
            raise ServiceError("No authorization code in redirect URL")
        return code

    def exchange_code(self, code: str) -> str:
        """Exchanges an authorization code for an access token."""
        try:
            response = self.session.post(
                self.TOKEN_URL,
                auth=(self.client_id, self.client_secret),
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                },
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ServiceError(f"Token exchange failed: {e}") from e
        except ValueError as e:
            raise MalformedResponseError("Token response is not JSON") from e

        if not isinstance(data, dict):
            raise MalformedResponseError("Token response is not an object")
        if "error" in data:
            raise ServiceError(f"Token exchange failed: {data['error']}")

        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            raise MalformedResponseError("Token response has no access_token")
        return token


class RedditClient:
    """Reads subscriptions and posts for an authenticated Reddit user."""

    BASE_URL = "https://oauth.reddit.com"

    # Posts with shorter bodies make for too little narration
    MIN_BODY_LENGTH = 100

    def __init__(
        self,
        token: str,
        user_agent: str = "python:reddit-vocal-scribe:1.0.0",
        timeout: float = 10
    ):
        if not token:
            raise NotAuthenticatedError("Reddit access token is missing")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "User-Agent": user_agent,
        })

    def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.BASE_URL}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise ServiceError(f"Request to {path} failed: {e}") from e
        except ValueError as e:
            raise MalformedResponseError(f"Response from {path} is not JSON") from e

    def list_subscribed_subreddits(self) -> list[str]:
        """Returns the display names of the user's subscribed subreddits."""
        children = _listing_children(
            self._get_json("/subreddits/mine/subscriber"),
            "subreddits"
        )
        return [_require(c, "display_name", str, "subreddit") for c in children]

    def list_posts(self, subreddit: str, limit: int = 25) -> list[RedditPost]:
        """
        Fetches hot posts from a subreddit.

        Only self-posts with a body longer than MIN_BODY_LENGTH characters
        are kept, in listing order.
        """
        children = _listing_children(
            self._get_json(f"/r/{subreddit}/hot", params={"limit": limit}),
            f"r/{subreddit}"
        )

        posts = []
        for child in children:
            body = child.get("selftext")
            if not isinstance(body, str) or len(body) <= self.MIN_BODY_LENGTH:
                continue
            posts.append(parse_post(child))
        return posts


def clean_text(text: str) -> str:
    """Cleans Reddit markdown for TTS and display."""
    if not text:
        return ""

    # Remove markdown links [text](url) -> text
    text = re.sub(r'\[([^\]]+)\]\([^\)]+\)', r'\1', text)

    # Remove URLs
    text = re.sub(r'https?://\S+', '', text)

    # Remove Reddit formatting
    text = re.sub(r'\*\*([^\*]+)\*\*', r'\1', text)  # Bold
    text = re.sub(r'\*([^\*]+)\*', r'\1', text)  # Italic
    text = re.sub(r'~~([^~]+)~~', r'\1', text)  # Strikethrough
    text = re.sub(r'&amp;', '&', text)
    text = re.sub(r'&lt;', '<', text)
    text = re.sub(r'&gt;', '>', text)
    text = re.sub(r'&#x200B;', '', text)

    # Clean whitespace
    text = re.sub(r'[ \t]{2,}', ' ', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def narration_text(posts: list[RedditPost], clean: bool = True) -> str:
    """Joins the selected posts into the text that gets spoken."""
    parts = [post.full_text for post in posts]
    if clean:
        parts = [clean_text(p) for p in parts]
    return " ".join(p for p in parts if p)
