"""
Enrichment manager — runs one user's contact/company enrichment.

Flow for a run:
  SELECT eligible contacts → GROUP by employer domain → per domain:
  ORGANIZATION (unless fresh) → per contact: CACHE or PERSON lookup

One sequential worker per run. Every unit is committed and checkpointed so a
crash, a cancel or an exhausted credit balance keeps the work already paid for.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.database import get_session
from app.models.enrichment_run import EnrichmentRun
from app.pipeline.base import BatchResult, Outcome, resolve_or_fetch, utcnow
from app.pipeline.credit_breaker import CREDITS_EXHAUSTED_MESSAGE, CreditBreaker
from app.pipeline.eligibility import DEFAULT_POLICY, EnrichmentPolicy, select_eligible
from app.pipeline.grouping import group_by_domain
from app.pipeline.organization import OrganizationAdapter
from app.pipeline.person import PersonAdapter
from app.pipeline.progress import ProgressBridge
from app.services.apollo import ApolloClient
from app.services.store import commit_unit, load_user_contacts, user_ids_with_contacts

logger = logging.getLogger('pipeline.manager')

JOB_TIMEOUT = 4 * 3600


@dataclass
class EnrichmentOptions:
    force: bool = False


# ── Lazy RQ queue (avoids import-time Redis connection) ───────────────────

_queue = None

def _get_queue():
    global _queue
    if _queue is None:
        from app.extensions import redis_client
        from rq import Queue
        _queue = Queue('enrichment', connection=redis_client)
    return _queue


# ── Core run ──────────────────────────────────────────────────────────────────

def run_enrichment(
    user_id: str,
    options: EnrichmentOptions = None,
    on_progress: Callable[[BatchResult], None] = None,
    cancel=None,
    *,
    client: ApolloClient = None,
    session=None,
    policy: EnrichmentPolicy = DEFAULT_POLICY,
    clock: Callable = utcnow,
) -> BatchResult:
    """
    Enrich every eligible contact of `user_id`.

    Never raises for provider trouble: exhausted credits end the run early with
    `error_message` set, transient failures are counted in `errors`. The
    returned result equals the last snapshot sent to `on_progress`, and
    total == enriched + skipped + errors.
    """
    options = options or EnrichmentOptions()
    client = client or ApolloClient.from_config()
    owns_session = session is None
    if owns_session:
        session = get_session()

    try:
        contacts = load_user_contacts(session, user_id)
        result = BatchResult(total=len(contacts))
        bridge = ProgressBridge(result, on_progress, cancel)
        breaker = CreditBreaker('apollo')
        people = PersonAdapter(force=options.force, policy=policy)
        organizations = OrganizationAdapter(force=options.force, policy=policy)

        eligible, not_selected = select_eligible(contacts, options.force, clock(), policy)
        result.skipped += not_selected
        logger.info("user=%s force=%s total=%d to_enrich=%d skipped=%d",
                    user_id, options.force, len(contacts), len(eligible), not_selected,
                    extra={'user_id': user_id})
        bridge.checkpoint()

        remaining = len(eligible)
        groups = group_by_domain(eligible)
        logger.info("Grouped into %d domains", sum(1 for g in groups if g.has_domain))

        for group in groups:
            if bridge.cancelled:
                break

            if group.has_domain:
                _enrich_company(session, group, organizations, client, breaker, result, clock)
                bridge.checkpoint()

            for contact in group.contacts:
                if bridge.cancelled:
                    break
                outcome = resolve_or_fetch(people, session, contact, client, breaker, clock())
                _record(session, result, outcome, people.describe(contact), breaker)
                remaining -= 1
                bridge.checkpoint()

        if remaining:
            logger.info("Cancelled with %d contacts left", remaining, extra={'user_id': user_id})
            result.skipped += remaining

        logger.info("user=%s done: enriched=%d skipped=%d errors=%d credits=%d",
                    user_id, result.enriched, result.skipped, result.errors, result.credits_used,
                    extra={'user_id': user_id})
        return bridge.checkpoint()
    finally:
        if owns_session:
            session.close()


def _enrich_company(session, group, adapter, client, breaker, result, clock):
    """Organization step for one domain. Does not touch contact counters."""
    company = group.company
    outcome = resolve_or_fetch(adapter, session, company, client, breaker, clock())

    if outcome.spent_credit:
        result.credits_used += 1
        if not commit_unit(session, f'company {group.domain}'):
            return
    if outcome is Outcome.NOT_FOUND:
        logger.info("Company %s: not found in Apollo", group.domain, extra={'domain': group.domain})
    elif outcome is Outcome.FAILED:
        logger.warning("Company %s: lookup failed, will retry next run", group.domain,
                       extra={'domain': group.domain})
    elif outcome is Outcome.QUOTA_EXHAUSTED:
        logger.warning("Credits exhausted on company %s: %s", group.domain, breaker.reason,
                       extra={'domain': group.domain})
        result.set_error_message(CREDITS_EXHAUSTED_MESSAGE)


def _record(session, result, outcome: Outcome, label: str, breaker: CreditBreaker):
    """Persist one contact unit and count it in exactly one bucket."""
    if outcome.spent_credit:
        result.credits_used += 1
    if outcome is Outcome.QUOTA_EXHAUSTED:
        logger.warning("Credits exhausted on %s: %s", label, breaker.reason)
        result.set_error_message(CREDITS_EXHAUSTED_MESSAGE)

    counter = outcome.counter
    if outcome not in (Outcome.BREAKER_OPEN, Outcome.QUOTA_EXHAUSTED, Outcome.FAILED):
        if not commit_unit(session, label):
            counter = 'errors'
    elif outcome is Outcome.FAILED:
        logger.warning("Lookup failed for %s, left for next run", label)

    setattr(result, counter, getattr(result, counter) + 1)
    logger.debug("%s → %s", label, outcome.value, extra={'outcome': outcome.value})


# ── Background execution ──────────────────────────────────────────────────────

def launch_enrichment(user_id: str, force: bool = False) -> Optional[EnrichmentRun]:
    """
    Register a run and enqueue it as a background RQ job.

    Returns None when a run for this user is already active.
    """
    ApolloClient.from_config()  # fail fast when the key is missing

    run = EnrichmentRun(user_id, force=force)
    if not run.acquire():
        logger.info("Enrichment already running", extra={'user_id': user_id})
        return None

    run.save()
    try:
        _get_queue().enqueue(execute_enrichment_job, user_id, force, job_timeout=JOB_TIMEOUT)
    except Exception as e:
        logger.error("Failed to enqueue enrichment: %s", e, extra={'user_id': user_id})
        run.fail(f'Could not start enrichment: {e}')
        run.release()
        raise
    return run


def launch_enrichment_for_all_users(force: bool = False) -> List[str]:
    """
    Queue a run for every user with contacts (periodic sweep).

    Users whose run is already active are left alone; a failure to queue one
    user is logged and does not stop the sweep. Returns the queued user ids.
    """
    session = get_session()
    try:
        user_ids = user_ids_with_contacts(session)
    finally:
        session.close()

    queued = []
    for user_id in user_ids:
        try:
            if launch_enrichment(user_id, force=force) is not None:
                queued.append(user_id)
        except Exception as e:
            logger.error("Failed to queue enrichment: %s", e, extra={'user_id': user_id})

    logger.info("Sweep queued %d of %d users", len(queued), len(user_ids))
    return queued


def execute_enrichment_job(user_id: str, force: bool = False) -> dict:
    """RQ entry point. Always leaves the registry in a terminal state and the lock free."""
    run = EnrichmentRun.load(user_id) or EnrichmentRun(user_id, force=force)
    try:
        result = run_enrichment(
            user_id,
            EnrichmentOptions(force=force),
            on_progress=run.update_progress,
            cancel=run,
        )
        run.complete(result, cancelled=run.cancel_observed)
    except Exception as e:
        logger.error("Enrichment failed: %s", e, exc_info=True, extra={'user_id': user_id})
        run.fail(str(e) or e.__class__.__name__)
    finally:
        run.release()
    return run.to_dict()


def get_enrichment_progress(user_id: str) -> Optional[dict]:
    run = EnrichmentRun.load(user_id)
    return run.to_dict() if run else None


def cancel_enrichment(user_id: str) -> bool:
    return EnrichmentRun.request_cancel(user_id)
