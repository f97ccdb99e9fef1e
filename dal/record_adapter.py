"""Convert loosely-typed backend payloads into canonical ImageRecords."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from models.image_record import ImageRecord

logger = logging.getLogger(__name__)

# Numeric timestamps above this are epoch milliseconds (1e11 s is year 5138).
EPOCH_MILLIS_CUTOFF = 1e11


def parse_confidence(raw: Any) -> float:
    """Return a float score from numbers or strings such as "87.5%"."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        text = raw.strip().rstrip("%").strip()
        try:
            return float(text)
        except ValueError:
            return 0.0
    return 0.0


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings or epoch seconds (or milliseconds) into an aware UTC datetime.

    Unparseable or out-of-range values yield None rather than dropping the record.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        moment = raw
    elif isinstance(raw, (int, float)):
        seconds = raw / 1000 if abs(raw) > EPOCH_MILLIS_CUTOFF else raw
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Out-of-range upload timestamp %r", raw)
            return None
    else:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Unparseable upload timestamp %r", raw)
            return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _first_text(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def record_from_payload(payload: Dict[str, Any]) -> ImageRecord:
    """Build an ImageRecord from one `classified-images` entry.

    Raises:
        ValueError: If the payload has no usable integer id.
    """
    try:
        image_id = int(payload["id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Image payload without a valid id: {payload!r}") from exc

    user_field = payload.get("user")
    user = user_field if isinstance(user_field, dict) else {}
    user_id = user.get("id") if user else (user_field if isinstance(user_field, int) else None)

    return ImageRecord(
        id=image_id,
        disease_label=_first_text(payload.get("predicted_class"), payload.get("disease_classification")) or "Unknown",
        confidence_score=parse_confidence(payload.get("confidence_score")),
        verified=bool(payload.get("is_verified") or False),
        uploaded_at=parse_timestamp(payload.get("uploaded_at") or payload.get("upload_date")),
        model_used=_first_text(payload.get("model_used")),
        disease_type=_first_text(payload.get("disease_type")),
        filename=_first_text(payload.get("original_filename")),
        image_url=_first_text(payload.get("image_url"), payload.get("image")),
        user_id=user_id,
        username=user.get("username"),
    )


def records_from_payloads(payloads: Iterable[Dict[str, Any]]) -> List[ImageRecord]:
    """Adapt a batch of payloads, skipping (and logging) malformed entries."""
    records: List[ImageRecord] = []
    for payload in payloads:
        try:
            records.append(record_from_payload(payload))
        except ValueError as exc:
            logger.warning("Skipping image payload: %s", exc)
    return records
