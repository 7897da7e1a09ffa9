"""
Centralized configuration — all env vars, enrichment policy constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Apollo.io ─────────────────────────────────────────────────────────────────
APOLLO_API_KEY = os.getenv('APOLLO_API_KEY')
APOLLO_API_URL = os.getenv('APOLLO_API_URL', 'https://api.apollo.io/api/v1')
APOLLO_TIMEOUT_SECONDS = float(os.getenv('APOLLO_TIMEOUT_SECONDS', '30'))

# ── Enrichment policy ─────────────────────────────────────────────────────────
# Matched data is re-checked after the staleness window; a miss may be retried
# after the cooldown. The cooldown must stay shorter than the window.
ENRICHMENT_STALENESS_DAYS = float(os.getenv('ENRICHMENT_STALENESS_DAYS', '7'))
ENRICHMENT_RETRY_COOLDOWN_HOURS = float(os.getenv('ENRICHMENT_RETRY_COOLDOWN_HOURS', '24'))

# Delay between consecutive paid calls (provider rate limit)
ENRICHMENT_THROTTLE_SECONDS = float(os.getenv('ENRICHMENT_THROTTLE_SECONDS', '0.2'))

# ── Run registry ──────────────────────────────────────────────────────────────
ENRICHMENT_PROGRESS_TTL = int(os.getenv('ENRICHMENT_PROGRESS_TTL', '300'))      # finished runs
ENRICHMENT_RUN_TIMEOUT = int(os.getenv('ENRICHMENT_RUN_TIMEOUT', str(6 * 3600)))  # lock expiry

# ── Address filters ───────────────────────────────────────────────────────────
# Shared mailboxes never resolve to a single person
GENERIC_LOCAL_PARTS = frozenset({
    'info', 'support', 'sales', 'hello', 'hi', 'contact', 'contacts',
    'admin', 'administrator', 'office', 'team', 'help', 'helpdesk',
    'billing', 'accounts', 'accounting', 'finance', 'invoices',
    'marketing', 'press', 'media', 'pr', 'news', 'newsletter',
    'hr', 'jobs', 'careers', 'recruiting', 'talent',
    'noreply', 'no-reply', 'donotreply', 'do-not-reply', 'notifications',
    'mailer-daemon', 'postmaster', 'webmaster', 'hostmaster', 'abuse',
    'security', 'legal', 'privacy', 'compliance',
    'service', 'services', 'customerservice', 'feedback', 'enquiries',
    'inquiries', 'partners', 'partnerships', 'events', 'booking', 'bookings',
    'orders', 'shop', 'store', 'calendar', 'meetings', 'scheduling',
})

# Consumer providers: the email domain says nothing about the employer
CONSUMER_EMAIL_DOMAINS = frozenset({
    'gmail.com', 'googlemail.com', 'yahoo.com', 'hotmail.com', 'outlook.com',
    'live.com', 'icloud.com', 'me.com', 'aol.com', 'mail.ru', 'yandex.ru',
    'protonmail.com', 'proton.me', 'gmx.com', 'gmx.de',
})
