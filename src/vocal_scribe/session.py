"""
Session Module
Holds the credentials collected while walking the wizard.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional


@dataclass
class Session:
    """
    Credential store passed explicitly to the adapters.

    Values live for as long as the session object does. When a path is
    given they are also written to a JSON file, and removed again by
    logout().
    """
    reddit_client_id: str = ""
    reddit_client_secret: str = ""
    reddit_redirect_uri: str = ""
    reddit_access_token: Optional[str] = None
    reddit_auth_state: Optional[str] = None
    elevenlabs_api_key: str = ""
    path: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str]) -> "Session":
        """Loads a saved session, or returns an empty one bound to path."""
        if path and os.path.exists(path):
            try:
                with open(path) as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                print(f"⚠️ Could not read session file {path}: {e}")
                data = {}
            if not isinstance(data, dict):
                print(f"⚠️ Ignoring session file {path}: expected a JSON object")
                data = {}
            known = {f.name for f in fields(cls)} - {"path"}
            values = {k: v for k, v in data.items() if k in known}
            return cls(path=path, **values)
        return cls(path=path)

    @property
    def is_reddit_authenticated(self) -> bool:
        return bool(self.reddit_access_token)

    def remember_reddit_app(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        state: str
    ):
        """Stores the app credentials needed once the OAuth redirect returns."""
        self.reddit_client_id = client_id
        self.reddit_client_secret = client_secret
        self.reddit_redirect_uri = redirect_uri
        self.reddit_auth_state = state
        self.save()

    def login_reddit(self, access_token: str):
        self.reddit_access_token = access_token
        self.reddit_auth_state = None
        self.save()

    def set_elevenlabs_key(self, api_key: str):
        self.elevenlabs_api_key = api_key
        self.save()

    def logout(self):
        """Forgets every stored credential and deletes the session file."""
        for f in fields(self):
            if f.name == "path":
                continue
            setattr(self, f.name, f.default)
        if self.path and os.path.exists(self.path):
            os.remove(self.path)

    def save(self):
        if not self.path:
            return
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        data.pop("path")
        # Owner read/write only
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.chmod(self.path, 0o600)
