"""
Centralized configuration — all env vars and constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Flask ─────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Branding / links ─────────────────────────────────────────────────────────
BRAND_NAME = os.getenv('BRAND_NAME', 'Tactical Growth Labs')
BRAND_TAGLINE = os.getenv('BRAND_TAGLINE', 'Revenue Optimization for Tactical Gear Brands')
APP_URL = os.getenv('APP_URL', 'http://localhost:8080')
CALENDAR_URL = os.getenv('CALENDAR_URL', '#')

# ── SendGrid ──────────────────────────────────────────────────────────────────
SENDGRID_API_KEY = os.getenv('SENDGRID_API_KEY')
SENDGRID_API_URL = 'https://api.sendgrid.com/v3/mail/send'
FROM_EMAIL = os.getenv('FROM_EMAIL', 'hello@tacticalgrowthlabs.com')
FROM_NAME = os.getenv('FROM_NAME', BRAND_NAME)
OWNER_NOTIFY_EMAIL = os.getenv('OWNER_NOTIFY_EMAIL')

# ── GoHighLevel ───────────────────────────────────────────────────────────────
GHL_API_KEY = os.getenv('GHL_API_KEY')
GHL_LOCATION_ID = os.getenv('GHL_LOCATION_ID')
GHL_API_URL = 'https://services.leadconnectorhq.com'
GHL_API_VERSION = '2021-07-28'
GHL_PIPELINE_ID = os.getenv('GHL_PIPELINE_ID', 'rqrDtKP2rtXBtqCwd0kt')
GHL_PIPELINE_STAGE_ID = os.getenv('GHL_PIPELINE_STAGE_ID', 'bbd9c31a-ef08-4164-b30c-18b53194fb8a')
GHL_WEBHOOK_URL = os.getenv('GHL_WEBHOOK_URL')
GHL_BRAND_TAG = os.getenv('GHL_BRAND_TAG', 'tactical-growth-labs')

# ── Auth ─────────────────────────────────────────────────────────────────────
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD')
ADMIN_TOKEN_TTL = int(os.getenv('ADMIN_TOKEN_TTL', 24 * 60 * 60))

# ── Opportunity value: share of estimated revenue by leak bucket ─────────────
OPPORTUNITY_UPLIFT_SHARE = {
    'major': 0.30,
    'meaningful': 0.15,
    'solid': 0.05,
}

# ── Intake form options ───────────────────────────────────────────────────────
REVENUE_RANGES = {
    'under-50k':  'Under $50k/month',
    '50k-150k':   '$50k – $150k/month',
    '150k-500k':  '$150k – $500k/month',
    '500k-plus':  '$500k+/month',
}

# ── Circuit breakers per integration ──────────────────────────────────────────
BREAKER_SETTINGS = {
    'sendgrid': {'failure_threshold': 5, 'reset_timeout': 120},
    'ghl':      {'failure_threshold': 3, 'reset_timeout': 180},
}
