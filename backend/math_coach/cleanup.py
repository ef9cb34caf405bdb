from __future__ import annotations
from datetime import datetime, timedelta
import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import KeyValueEntry

logger = logging.getLogger(__name__)


def purge_expired(db: Session, expiry: timedelta) -> int:
	# Readers expire lazily; this removes rows no learner came back for
	threshold = datetime.utcnow() - expiry
	res = db.execute(delete(KeyValueEntry).where(KeyValueEntry.updated_at < threshold))
	db.commit()
	removed = res.rowcount or 0
	if removed:
		logger.info("Purged %d expired storage entries", removed)
	return removed
