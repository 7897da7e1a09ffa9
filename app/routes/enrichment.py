"""
Enrichment routes — start / poll / cancel a contact enrichment run, plus
stats, profile top-up and single company lookup.
"""
import logging
from functools import wraps

from flask import Blueprint, request, jsonify, g

from app.database import session_scope
from app.pipeline.manager import (
    launch_enrichment, get_enrichment_progress, cancel_enrichment,
)
from app.pipeline.organization import lookup_company
from app.pipeline.profile import enrich_user_profile
from app.services.apollo import ApolloNotConfiguredError, ApolloTransientError, QuotaExhaustedError
from app.services.store import get_enrichment_stats

logger = logging.getLogger('routes.enrichment')

bp = Blueprint('enrichment', __name__, url_prefix='/api/enrichment')


def require_user(view):
    """Reject requests the gateway did not attach a user to."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = (request.headers.get('X-User-Id') or '').strip()
        if not user_id:
            return jsonify({'error': 'Authentication required'}), 401
        g.user_id = user_id
        return view(*args, **kwargs)
    return wrapper


# ── Stats ────────────────────────────────────────────────────────────────────

@bp.route('/status')
@require_user
def status():
    """Contact/company enrichment coverage for the current user."""
    try:
        with session_scope() as session:
            return jsonify(get_enrichment_stats(session, g.user_id))
    except Exception as e:
        logger.error("Enrichment status error: %s", e, extra={'user_id': g.user_id})
        return jsonify({'error': 'Failed to fetch enrichment status'}), 500


# ── Batch run ────────────────────────────────────────────────────────────────

@bp.route('/contacts', methods=['POST'])
@require_user
def start_contacts():
    """Start a background enrichment run for the current user."""
    data = request.get_json(silent=True) or {}
    force = data.get('force') is True

    try:
        run = launch_enrichment(g.user_id, force=force)
    except ApolloNotConfiguredError as e:
        return jsonify({'error': str(e)}), 503
    except Exception as e:
        logger.error("Could not start enrichment: %s", e, extra={'user_id': g.user_id})
        return jsonify({'error': 'Failed to start enrichment'}), 500

    if run is None:
        return jsonify({
            'error': 'Enrichment already in progress',
            'progress': get_enrichment_progress(g.user_id),
        }), 409

    return jsonify({'message': 'Enrichment started', 'run': run.to_dict()}), 202


@bp.route('/progress')
@require_user
def progress():
    """Latest state of the current (or just finished) run, or null."""
    return jsonify({'contacts': get_enrichment_progress(g.user_id)})


@bp.route('/cancel', methods=['POST'])
@require_user
def cancel():
    if not cancel_enrichment(g.user_id):
        return jsonify({'error': 'No enrichment in progress'}), 404
    return jsonify({'message': 'Cancellation requested'}), 202


# ── Profile + company lookups ────────────────────────────────────────────────

@bp.route('/profile', methods=['POST'])
@require_user
def profile():
    """Fill the current user's empty profile fields from Apollo."""
    try:
        with session_scope() as session:
            updated = enrich_user_profile(session, g.user_id)
    except ApolloNotConfiguredError as e:
        return jsonify({'error': str(e)}), 503
    return jsonify({'updated': updated})


@bp.route('/company/<domain>')
@require_user
def company(domain):
    """Stored company by domain, or one Apollo lookup that stores it."""
    try:
        with session_scope() as session:
            return jsonify(lookup_company(session, domain))
    except ApolloNotConfiguredError as e:
        return jsonify({'error': str(e)}), 503
    except QuotaExhaustedError:
        return jsonify({'error': 'Apollo credits exhausted'}), 402
    except ApolloTransientError as e:
        logger.warning("Company lookup failed for %s: %s", domain, e, extra={'domain': domain})
        return jsonify({'error': 'Failed to look up company'}), 502
