"""
EnrichmentRun — Redis-backed per-user run registry.

At most one enrichment run per user. The registry owns the run's status and
latest BatchResult; callers poll it instead of holding callbacks.

Keys:
    enrichment:{user_id}          → JSON blob of run state (TTL-swept)
    enrichment:{user_id}:lock     → mutex, SET NX with the run timeout as expiry
    enrichment:{user_id}:cancel   → cooperative cancel flag
"""
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from app.extensions import redis_client as r
from app.config import ENRICHMENT_PROGRESS_TTL, ENRICHMENT_RUN_TIMEOUT
from app.pipeline.base import BatchResult

logger = logging.getLogger('models.enrichment_run')

RUNNING = 'running'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
FAILED = 'failed'

FINISHED_STATUSES = (COMPLETED, CANCELLED, FAILED)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EnrichmentRun:

    PREFIX = 'enrichment'

    def __init__(self, user_id: str, force: bool = False, status: str = RUNNING):
        self.user_id = user_id
        self.force = force
        self.status = status
        self.result = BatchResult()
        self.error = ''
        self.started_at = _now_iso()
        self.updated_at = self.started_at
        self.finished_at = None
        self.cancel_observed = False

    # ── Redis keys ────────────────────────────────────────────────────

    @classmethod
    def state_key(cls, user_id: str) -> str:
        return f'{cls.PREFIX}:{user_id}'

    @classmethod
    def lock_key(cls, user_id: str) -> str:
        return f'{cls.PREFIX}:{user_id}:lock'

    @classmethod
    def cancel_key(cls, user_id: str) -> str:
        return f'{cls.PREFIX}:{user_id}:cancel'

    # ── Serialization ─────────────────────────────────────────────────

    @property
    def done(self) -> bool:
        return self.status in FINISHED_STATUSES

    def to_dict(self) -> Dict:
        return {
            'user_id': self.user_id,
            'status': self.status,
            'force': self.force,
            'done': self.done,
            'result': self.result.to_dict(),
            'error': self.error or None,
            'started_at': self.started_at,
            'updated_at': self.updated_at,
            'finished_at': self.finished_at,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> 'EnrichmentRun':
        run = cls.__new__(cls)
        run.user_id = d['user_id']
        run.force = d.get('force', False)
        run.status = d.get('status', RUNNING)
        run.result = BatchResult.from_dict(d.get('result') or {})
        run.error = d.get('error') or ''
        run.started_at = d.get('started_at', '')
        run.updated_at = d.get('updated_at', run.started_at)
        run.finished_at = d.get('finished_at')
        run.cancel_observed = False
        return run

    # ── Persistence ───────────────────────────────────────────────────

    def save(self):
        """Persist state. Running entries outlive the job timeout; finished ones expire quickly."""
        self.updated_at = _now_iso()
        ttl = ENRICHMENT_PROGRESS_TTL if self.done else ENRICHMENT_RUN_TIMEOUT
        r.setex(self.state_key(self.user_id), ttl, json.dumps(self.to_dict()))
        return self

    @classmethod
    def load(cls, user_id: str) -> Optional['EnrichmentRun']:
        data = r.get(cls.state_key(user_id))
        if not data:
            return None
        return cls.from_dict(json.loads(data))

    # ── Mutual exclusion ──────────────────────────────────────────────

    def acquire(self) -> bool:
        """Claim the per-user lock. False if another run holds it."""
        acquired = r.set(self.lock_key(self.user_id), self.started_at,
                         nx=True, ex=ENRICHMENT_RUN_TIMEOUT)
        if acquired:
            r.delete(self.cancel_key(self.user_id))
        return bool(acquired)

    def release(self):
        r.delete(self.lock_key(self.user_id))

    @classmethod
    def is_running(cls, user_id: str) -> bool:
        return bool(r.exists(cls.lock_key(user_id)))

    # ── Progress sink + cancel handle ─────────────────────────────────

    def update_progress(self, result: BatchResult):
        self.result = result
        self.save()

    def is_cancelled(self) -> bool:
        """Checked by the pipeline before each unit; a True answer means it stopped early."""
        cancelled = bool(r.exists(self.cancel_key(self.user_id)))
        if cancelled:
            self.cancel_observed = True
        return cancelled

    @classmethod
    def request_cancel(cls, user_id: str) -> bool:
        """Flag the active run for cancellation. False if nothing is running."""
        if not cls.is_running(user_id):
            return False
        r.setex(cls.cancel_key(user_id), ENRICHMENT_RUN_TIMEOUT, '1')
        logger.info("Cancellation requested", extra={'user_id': user_id})
        return True

    # ── Terminal states ───────────────────────────────────────────────

    def complete(self, result: BatchResult, cancelled: bool = False):
        self.result = result
        self.status = CANCELLED if cancelled else COMPLETED
        self.finished_at = _now_iso()
        self.save()

    def fail(self, reason: str = ''):
        self.status = FAILED
        self.error = reason or 'Enrichment failed'
        self.result.set_error_message(self.error)
        self.finished_at = _now_iso()
        self.save()
