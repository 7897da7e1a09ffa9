"""
Apollo.io client — exact-email person match and organization enrich by domain.

Every successful call costs one credit. Errors are split three ways so the
pipeline can react differently:
  - None                  → provider has no data (billable, durable miss)
  - QuotaExhaustedError   → credits gone, stop spending for this run
  - ApolloTransientError  → network / timeout / malformed / unexpected status
"""
import logging
import re
import time
from typing import Dict, Optional

import requests

from app.config import (
    APOLLO_API_KEY, APOLLO_API_URL, APOLLO_TIMEOUT_SECONDS,
    ENRICHMENT_THROTTLE_SECONDS,
)

logger = logging.getLogger('services.apollo')


class ApolloError(Exception):
    """Base class for provider failures."""
    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class ApolloTransientError(ApolloError):
    """Retryable on the next run; the record stays unstamped."""


class QuotaExhaustedError(ApolloError):
    """Insufficient credits / plan quota reached."""


class ApolloNotConfiguredError(RuntimeError):
    """APOLLO_API_KEY is missing."""


class ApolloClient:
    """
    Thin requests-based client.

    Consecutive calls are spaced by `throttle_seconds` (sequential worker,
    explicit delay) and each request carries a timeout so a hung call cannot
    stall a whole run.
    """

    BASE_URL = APOLLO_API_URL

    # Status codes that may mean "out of credits" depending on the body
    _QUOTA_AMBIGUOUS = (403, 422, 429)
    _QUOTA_RE = re.compile(r'credit|quota|insufficient', re.IGNORECASE)
    # Plan-limit wording; on 429 it also appears in per-minute rate-limit replies
    _PLAN_LIMIT_RE = re.compile(r'upgrade your plan|limit reached', re.IGNORECASE)

    _OBFUSCATED_RE = re.compile(r'\*{2,}')

    def __init__(self, api_key: str, base_url: str = None,
                 timeout: float = APOLLO_TIMEOUT_SECONDS,
                 throttle_seconds: float = ENRICHMENT_THROTTLE_SECONDS,
                 sleep=time.sleep):
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.throttle_seconds = throttle_seconds
        self._sleep = sleep
        self._last_call = None
        self.calls = 0

    @classmethod
    def from_config(cls, **kwargs) -> 'ApolloClient':
        if not APOLLO_API_KEY:
            raise ApolloNotConfiguredError('APOLLO_API_KEY is not configured')
        return cls(APOLLO_API_KEY, **kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match_person_by_email(self, email: str) -> Optional[Dict]:
        """
        POST /people/match with the email only.

        Returns the raw `person` object (id, name, title, headline,
        linkedin_url, photo_url, twitter_url, city, state, country,
        employment_history, ...) or None.
        """
        data = self._request('POST', '/people/match', json={'email': email})
        if not data:
            return None
        return data.get('person') or None

    def enrich_organization_by_domain(self, domain: str) -> Optional[Dict]:
        """
        GET /organizations/enrich?domain=...

        Returns the raw `organization` object (id, name, industry,
        estimated_num_employees, founded_year, funding fields, ...) or None.
        """
        data = self._request('GET', '/organizations/enrich', params={'domain': domain})
        if not data:
            return None
        return data.get('organization') or None

    @staticmethod
    def has_real_person_data(person: Optional[Dict]) -> bool:
        """A bare id with every field null is treated as not found."""
        if not person or not person.get('id'):
            return False
        return bool(
            person.get('title') or person.get('linkedin_url')
            or person.get('photo_url') or person.get('headline')
        )

    @staticmethod
    def is_obfuscated_name(name: str) -> bool:
        """Free-tier responses mask names like 'Sh***K'."""
        return bool(name) and bool(ApolloClient._OBFUSCATED_RE.search(name))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _throttle(self):
        if self._last_call is None or self.throttle_seconds <= 0:
            return
        elapsed = time.monotonic() - self._last_call
        if elapsed < self.throttle_seconds:
            self._sleep(self.throttle_seconds - elapsed)

    def _request(self, method: str, path: str, **kwargs) -> Optional[Dict]:
        """Single Apollo call. Returns parsed JSON, or None on 404."""
        self._throttle()
        self.calls += 1
        try:
            resp = requests.request(
                method,
                f"{self.base_url}{path}",
                headers={
                    'Content-Type':  'application/json',
                    'x-api-key':     self.api_key,
                    'Cache-Control': 'no-cache',
                },
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApolloTransientError(f"{method} {path} failed: {e}") from e
        finally:
            self._last_call = time.monotonic()

        if resp.status_code == 404:
            return None
        if resp.status_code == 402:
            raise QuotaExhaustedError(self._error_text(resp) or 'Payment required', status_code=402)
        if resp.status_code in self._QUOTA_AMBIGUOUS:
            text = self._error_text(resp)
            if self._is_quota_text(resp.status_code, text):
                raise QuotaExhaustedError(text, status_code=resp.status_code)
            if resp.status_code == 429:
                logger.warning("Rate limited on %s", path)
            raise ApolloTransientError(f"{path} returned {resp.status_code}: {text[:200]}",
                                       status_code=resp.status_code)
        if not resp.ok:
            logger.error("Error %s on %s", resp.status_code, path)
            raise ApolloTransientError(f"{path} returned {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ApolloTransientError(f"{path} returned malformed JSON") from e
        if not isinstance(data, dict):
            raise ApolloTransientError(f"{path} returned unexpected payload")
        return data

    @classmethod
    def _is_quota_text(cls, status_code: int, text: str) -> bool:
        if cls._QUOTA_RE.search(text):
            return True
        return status_code != 429 and bool(cls._PLAN_LIMIT_RE.search(text))

    @staticmethod
    def _error_text(resp) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or ''
        if isinstance(body, dict):
            return str(body.get('error') or body.get('message') or body.get('errors') or '')
        return str(body)
