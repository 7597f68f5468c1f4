"""
Security module — resolves the API caller to a session identity.

Auth Flow:
1. The frontend signs in against Supabase Auth and gets a JWT
2. Frontend sends the JWT as a Bearer token
3. In "supabase" mode the token is validated with Supabase Auth
4. In "mock" mode tokens of the form "mock-<user_id>" are accepted
5. The identity becomes the author (user_id) of every attendance write

Sign-in and sign-out flows stay with Supabase Auth.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from rollcall.core.config import settings
from rollcall.schemas.auth import Identity

security_scheme = HTTPBearer()


# ---------------------------------------------------------------------------
# Mock users (local development without Supabase Auth)
# ---------------------------------------------------------------------------
MOCK_USERS = {
    "dev-token": Identity(
        user_id="00000000-0000-0000-0000-000000000001",
        email="coordenacao@tsunami.local",
    ),
}


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> Identity:
    """Validate the Bearer token and return the caller's identity."""
    token = credentials.credentials

    if settings.AUTH_MODE == "mock":
        return _mock_auth(token)

    return await _supabase_auth(request, token)


def _mock_auth(token: str) -> Identity:
    user = MOCK_USERS.get(token)
    if user:
        return user

    if token.startswith("mock-") and len(token) > 5:
        return Identity(user_id=token[5:])

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token.",
    )


async def _supabase_auth(request: Request, token: str) -> Identity:
    store = request.app.state.attendance.store
    identity = await store.get_user(token)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session token",
        )
    return identity
