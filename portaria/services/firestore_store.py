# portaria/services/firestore_store.py
"""
Firestore reads for visitor tracking.

Collections:
  users       — visitors, looked up by display_name prefix
  tokens      — tracking tags; users_assigned holds user document references
  tokenSteps  — location pings; tokenRef points back at the token

All methods return raw dicts with the document id under "id". Callers
validate them into schemas. Firestore API errors surface as BackendUnavailable.
"""

from datetime import datetime
from typing import Any, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from portaria.config import settings
from portaria.errors import BackendUnavailable
from portaria.utils.logger import get_logger

logger = get_logger(__name__)

USERS = "users"
TOKENS = "tokens"
TOKEN_STEPS = "tokenSteps"

# Highest code point Firestore sorts; closes a prefix range query
_PREFIX_END = "\uf8ff"


def _as_dict(snapshot) -> dict[str, Any]:
    return {**(snapshot.to_dict() or {}), "id": snapshot.id}


class FirestoreStore:
    def __init__(self, client: Optional[firestore.AsyncClient] = None):
        if client is None:
            client = firestore.AsyncClient(
                project=settings.FIRESTORE_PROJECT_ID,
                database=settings.FIRESTORE_DATABASE,
            )
        self.client = client

    def token_reference(self, token_id: str):
        return self.client.collection(TOKENS).document(token_id)

    def user_reference(self, uid: str):
        return self.client.collection(USERS).document(uid)

    async def _collect(self, query, action: str) -> list[dict[str, Any]]:
        try:
            return [_as_dict(snap) async for snap in query.stream()]
        except GoogleAPIError as exc:
            logger.error(f"[FIRESTORE] {action} failed: {exc}")
            raise BackendUnavailable(f"Firestore {action} failed: {exc}") from exc

    async def find_users_by_name(self, name: str) -> list[dict[str, Any]]:
        prefix = name.upper().strip()
        query = (
            self.client.collection(USERS)
            .where(filter=FieldFilter("display_name", ">=", prefix))
            .where(filter=FieldFilter("display_name", "<=", prefix + _PREFIX_END))
        )
        return await self._collect(query, f"user lookup '{prefix}'")

    async def find_tokens_by_uid(self, uid: str) -> list[dict[str, Any]]:
        query = self.client.collection(TOKENS).where(
            filter=FieldFilter("users_assigned", "array_contains", self.user_reference(uid))
        )
        return await self._collect(query, f"tokens of user {uid}")

    async def find_steps_by_token(self, token_id: str) -> list[dict[str, Any]]:
        query = self.client.collection(TOKEN_STEPS).where(
            filter=FieldFilter("tokenRef", "==", self.token_reference(token_id))
        )
        return await self._collect(query, f"steps of token {token_id}")

    async def scan_steps(self) -> list[dict[str, Any]]:
        return await self._collect(self.client.collection(TOKEN_STEPS), "full step scan")

    async def steps_between(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        query = (
            self.client.collection(TOKEN_STEPS)
            .where(filter=FieldFilter("last_updated", ">=", start))
            .where(filter=FieldFilter("last_updated", "<=", end))
        )
        return await self._collect(query, "step window")

    async def close(self):
        # AsyncClient has no close(); the lazily built GAPIC client owns the gRPC channel
        api = self.client._firestore_api_internal
        if api is not None:
            await api.transport.close()
