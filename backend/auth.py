from __future__ import annotations

import base64
import hashlib
import json

from cryptography.fernet import Fernet, InvalidToken
from fastapi import Header, HTTPException

from backend.settings import get_settings

USER_ID_KEYS = ("id", "userId", "_id")


def _fernet() -> Fernet:
    settings = get_settings()
    digest = hashlib.sha256(settings.backend_session_secret.encode("utf-8")).digest()
    key = base64.urlsafe_b64encode(digest)
    return Fernet(key)


def issue_token(user_id: str, **claims) -> str:
    payload = {"id": str(user_id), **claims}
    return _fernet().encrypt(json.dumps(payload).encode("utf-8")).decode("utf-8")


def decode_token(token: str) -> str | None:
    """Return the user id carried by a bearer token, or None when it is unusable."""
    settings = get_settings()
    try:
        raw = _fernet().decrypt(token.encode("utf-8"), ttl=settings.token_ttl)
        payload = json.loads(raw.decode("utf-8"))
    except (InvalidToken, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    for key in USER_ID_KEYS:
        value = payload.get(key)
        if value:
            return str(value)
    return None


async def require_user_id(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = authorization[len("Bearer ") :].strip()
    user_id = decode_token(token) if token else None
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


if __name__ == "__main__":
    import sys

    if len(sys.argv) != 2:
        sys.exit("usage: python -m backend.auth <user-id>")
    print(issue_token(sys.argv[1]))
