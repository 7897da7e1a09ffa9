"""
Credit-exhaustion breaker — run-scoped, in memory.

States:
  - CLOSED → normal operation, paid calls pass through
  - OPEN   → the provider reported exhausted credits; every later call
             short-circuits with BreakerOpenError

There is no HALF_OPEN probe: credits do not come back within a run, and the
breaker is discarded when the run ends.
"""
import logging
from app.services.apollo import QuotaExhaustedError

logger = logging.getLogger('pipeline.credit_breaker')

# State constants
CLOSED = 'closed'
OPEN = 'open'

CREDITS_EXHAUSTED_MESSAGE = (
    'Apollo credits exhausted. Enrichment stopped early; '
    'remaining contacts will be retried on the next run.'
)


class BreakerOpenError(Exception):
    """Raised when calling through a tripped breaker."""
    def __init__(self, name):
        self.name = name
        super().__init__(f"Credit breaker '{name}' is OPEN, no further paid calls this run")


class CreditBreaker:
    """
    Usage:
        breaker = CreditBreaker('apollo')
        profile = breaker.call(client.match_person_by_email, email)

    Trips on QuotaExhaustedError (re-raised to the caller); any other
    exception passes through without changing state.
    """

    def __init__(self, name='apollo'):
        self.name = name
        self.state = CLOSED
        self.reason = ''
        self.calls = 0

    @property
    def tripped(self):
        return self.state == OPEN

    def trip(self, reason=''):
        if self.state == OPEN:
            return
        self.state = OPEN
        self.reason = reason or CREDITS_EXHAUSTED_MESSAGE
        logger.warning("Credit breaker '%s' OPENED after %d calls: %s", self.name, self.calls, reason)

    def call(self, func, *args, **kwargs):
        """Execute func through the breaker."""
        if self.state == OPEN:
            raise BreakerOpenError(self.name)

        self.calls += 1
        try:
            return func(*args, **kwargs)
        except QuotaExhaustedError as e:
            self.trip(str(e))
            raise
