import logging
from typing import Optional

from rollcall.core.errors import RemoteStoreError, Unauthenticated
from rollcall.core.store import RemoteStore
from rollcall.schemas.auth import Identity

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Resolves the author of a write.

    An explicit identity (the authenticated API caller) always wins. Otherwise
    the store session is asked, falling back to the last identity the session
    returned. Explicit identities are never cached.
    """

    def __init__(self, store: RemoteStore):
        self.store = store
        self._last_session: Optional[Identity] = None

    async def resolve(self, identity: Optional[Identity] = None) -> Identity:
        if identity is not None:
            return identity

        try:
            session = await self.store.get_session()
        except RemoteStoreError as e:
            logger.warning("Session lookup failed, trying cached identity: %s", e)
            session = None

        if session is not None:
            self._last_session = session
            return session
        if self._last_session is not None:
            return self._last_session
        raise Unauthenticated()
