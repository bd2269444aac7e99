# portaria/services/token_resolver.py
"""
Token reference resolution and step loading.

Writers have stored token references as Firestore document references,
{"type": ..., "referencePath": "tokens/ID"} export objects, "/tokens/ID" and
"tokens/ID" paths, and bare ids. canonicalize() folds all of them into one
TokenReference as soon as the value is read.

Step lookup first asks for steps whose tokenRef equals the token's document
reference. When that finds nothing the whole tokenSteps collection is scanned
and any step whose stored reference contains the id is kept; the result
records which route produced it.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import ValidationError

from portaria.errors import AmbiguousReference, PayloadValidationError, ResolutionError
from portaria.schemas.tracking import LocationStep, ResolvedSteps
from portaria.services.firestore_store import FirestoreStore
from portaria.utils.logger import get_logger
from portaria.utils.timeutils import coerce_timestamp

TOKENS_SEGMENT = "/tokens/"
TOKENS_PREFIX = "tokens/"

ReferenceKind = Literal["structured", "path", "bare", "serialized"]


@dataclass(frozen=True)
class TokenReference:
    token_id: str
    kind: ReferenceKind

    @property
    def lossy(self) -> bool:
        """Serialized references are a last resort and rarely match anything."""
        return self.kind == "serialized"


def reference_path(value: Any) -> Optional[str]:
    """Path of a structured reference (DocumentReference or export object), else None."""
    if isinstance(value, Mapping):
        path = value.get("referencePath", value.get("path"))
    else:
        path = getattr(value, "path", None)
    return path if isinstance(path, str) and path else None


def stored_reference_text(value: Any) -> str:
    """Flatten a stored tokenRef to the string form used for matching and display."""
    if isinstance(value, str):
        return value
    return reference_path(value) or ""


def token_id_from_text(text: str) -> str:
    return text.rstrip("/").rsplit("/", 1)[-1]


def canonicalize(raw: Any, strict: bool = False, logger: Optional[logging.Logger] = None) -> TokenReference:
    logger = logger or get_logger(__name__)

    if isinstance(raw, str):
        text = raw.strip()
        if TOKENS_SEGMENT in text:
            ref = TokenReference(token_id_from_text(text.split(TOKENS_SEGMENT, 1)[1]), "path")
        else:
            stripped = text.lstrip("/")
            if stripped.startswith(TOKENS_PREFIX):
                stripped = stripped[len(TOKENS_PREFIX):]
            ref = TokenReference(stripped.strip("/"), "bare" if stripped == text else "path")
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        ref = TokenReference(str(raw), "bare")
    elif (path := reference_path(raw)) is not None:
        ref = TokenReference(token_id_from_text(path), "structured")
    else:
        if strict:
            raise AmbiguousReference(f"Unrecognised token reference shape: {type(raw).__name__}")
        serialized = json.dumps(raw, sort_keys=True, default=str)
        logger.warning(f"[TRACKING] Unrecognised token reference {serialized} — using serialized form (lossy)")
        ref = TokenReference(serialized, "serialized")

    if not ref.token_id:
        raise AmbiguousReference(f"Token reference {raw!r} has no id")
    return ref


def _coordinates(doc: Mapping) -> tuple[float, float]:
    position = doc.get("last_position")
    if isinstance(position, Mapping):
        lat, lng = position.get("latitude"), position.get("longitude")
    elif position is not None:
        lat, lng = getattr(position, "latitude", None), getattr(position, "longitude", None)   # GeoPoint
    else:
        lat, lng = doc.get("latitude"), doc.get("longitude")
    return lat or 0.0, lng or 0.0


def parse_step(doc: Mapping) -> LocationStep:
    """Validate a raw tokenSteps document. A missing timestamp is backfilled from last_updated."""
    lat, lng = _coordinates(doc)
    speed = doc.get("last_speed_kmh", doc.get("speed"))
    try:
        return LocationStep(
            id=doc["id"],
            token_ref=stored_reference_text(doc.get("tokenRef")),
            timestamp=coerce_timestamp(doc.get("timestamp")) or coerce_timestamp(doc.get("last_updated")),
            latitude=lat,
            longitude=lng,
            accuracy=doc.get("accuracy"),
            address=doc.get("address"),
            speed=speed,
            user_id=doc.get("userId"),
        )
    except (KeyError, ValidationError) as exc:
        raise PayloadValidationError(f"Step document {doc.get('id')!r} is malformed: {exc}") from exc


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def sort_steps(steps: list[LocationStep]) -> list[LocationStep]:
    """Ascending by timestamp; steps without one sort first."""
    return sorted(steps, key=lambda s: s.timestamp or _EPOCH)


def reference_contains(stored: Any, token_id: str) -> bool:
    text = stored_reference_text(stored)
    return bool(text) and token_id in text


class TokenReferenceResolver:
    def __init__(self, store: FirestoreStore, logger: Optional[logging.Logger] = None, strict: bool = False):
        self.store = store
        self.logger = logger or get_logger(__name__)
        self.strict = strict

    async def resolve_steps(self, raw_ref: Any) -> ResolvedSteps:
        ref = canonicalize(raw_ref, strict=self.strict, logger=self.logger)
        token_id = ref.token_id

        try:
            docs = await self.store.find_steps_by_token(token_id)
            resolved_via = "direct"
            if not docs:
                self.logger.info(f"[TRACKING] No steps referencing tokens/{token_id} — scanning all steps")
                all_docs = await self.store.scan_steps()
                docs = [d for d in all_docs if reference_contains(d.get("tokenRef"), token_id)]
                resolved_via = "fallback_scan" if docs else "none"
        except Exception as exc:
            raise ResolutionError(f"Loading steps for token {token_id} failed: {exc}") from exc

        steps = sort_steps([parse_step(d) for d in docs])
        self.logger.info(f"[TRACKING] token {token_id} ({ref.kind}) → {len(steps)} step(s) via {resolved_via}")
        return ResolvedSteps(token_id=token_id, steps=steps, resolved_via=resolved_via)
