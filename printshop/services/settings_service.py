"""
Scoring weights configuration — stored as JSON in system_config.

Business Rules:
- Weights are price / rating / delivery_time / reliability, whole numbers
  0-100 that must sum to exactly 100
- An invalid update is rejected before anything is written
- Until an admin stores weights, the defaults from Settings apply
- Reads go through a short in-memory cache; every write invalidates it

Called by: routers/settings.py, routers/recommendations.py, startup.py
Depends on: models (SystemConfig), scoring (ScoringWeights), config
"""

import json
import logging
import os
import time
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import InvalidConfiguration
from ..models import SystemConfig
from ..scoring import ScoringWeights

log = logging.getLogger(__name__)

WEIGHTS_KEY = "supplier_recommendation_weights"
WEIGHTS_DESCRIPTION = "Supplier recommendation weights (price, rating, delivery_time, reliability)"

_weights_cache: ScoringWeights | None = None
_weights_cache_ts: float = 0
_CACHE_TTL = 0 if os.environ.get("TESTING") else 60


def default_scoring_weights() -> ScoringWeights:
    return ScoringWeights(
        price=settings.weight_price,
        rating=settings.weight_rating,
        delivery_time=settings.weight_delivery_time,
        reliability=settings.weight_reliability,
    )


def invalidate_cache() -> None:
    global _weights_cache, _weights_cache_ts
    _weights_cache = None
    _weights_cache_ts = 0


def _load_weights(db: Session) -> ScoringWeights:
    row = db.query(SystemConfig).filter(SystemConfig.key == WEIGHTS_KEY).first()
    if not row:
        return default_scoring_weights().validate()
    try:
        data = json.loads(row.value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"Stored scoring weights are not valid JSON: {exc}")
    if not isinstance(data, dict):
        raise InvalidConfiguration("Stored scoring weights must be a JSON object")
    return ScoringWeights.from_dict(data).validate()


def get_scoring_weights(db: Session) -> ScoringWeights:
    """Current weights, validated. A bad stored value raises InvalidConfiguration."""
    global _weights_cache, _weights_cache_ts
    if _weights_cache is None or time.time() - _weights_cache_ts > _CACHE_TTL:
        _weights_cache = _load_weights(db)
        _weights_cache_ts = time.time()
    return _weights_cache


def update_scoring_weights(
    db: Session, weights: ScoringWeights | dict, updated_by: str | None = None
) -> ScoringWeights:
    if isinstance(weights, dict):
        weights = ScoringWeights.from_dict(weights)
    weights.validate()

    row = db.query(SystemConfig).filter(SystemConfig.key == WEIGHTS_KEY).first()
    old_value = row.value if row else None
    if not row:
        row = SystemConfig(key=WEIGHTS_KEY, description=WEIGHTS_DESCRIPTION)
        db.add(row)
    row.value = json.dumps(weights.to_dict())
    row.updated_by = updated_by
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    invalidate_cache()
    log.info(f"Scoring weights changed: {old_value} -> {row.value} by {updated_by}")
    return weights


def seed_default_weights(db: Session) -> bool:
    """Store the default weights if none exist. Returns True when a row was created."""
    if db.query(SystemConfig).filter(SystemConfig.key == WEIGHTS_KEY).first():
        return False
    weights = default_scoring_weights().validate()
    db.add(
        SystemConfig(
            key=WEIGHTS_KEY,
            value=json.dumps(weights.to_dict()),
            description=WEIGHTS_DESCRIPTION,
            updated_by="system",
        )
    )
    db.commit()
    invalidate_cache()
    log.info("Seeded default scoring weights")
    return True
