"""
Circuit breakers for outbound integrations (SendGrid, GoHighLevel).

State lives in Redis so every gunicorn worker sees the same picture:
  - CLOSED    → calls pass through
  - OPEN      → failure_threshold consecutive failures; calls short-circuit
  - HALF_OPEN → reset_timeout elapsed since the last failure; next call is a trial

Redis being unavailable never blocks a call: the breaker reads as CLOSED.
"""
import logging
import time

from app.config import BREAKER_SETTINGS

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised instead of calling a service whose breaker is OPEN."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN — service unavailable")


class CircuitBreaker:
    """
    Redis-backed breaker around one external service.

        cb = get_breaker('sendgrid')
        response = cb.call(requests.post, url, json=payload, timeout=10)
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    def _last_failure_at(self):
        last = self.redis.get(self._key('last_failure'))
        return float(last) if last else None

    @property
    def state(self):
        try:
            current = self.redis.get(self._key('state')) or CLOSED
            if current == OPEN:
                last = self._last_failure_at()
                if last and time.time() - last > self.reset_timeout:
                    self.redis.set(self._key('state'), HALF_OPEN)
                    return HALF_OPEN
            return current
        except Exception:
            return CLOSED

    @property
    def failure_count(self):
        try:
            return int(self.redis.get(self._key('failures')) or 0)
        except Exception:
            return 0

    def call(self, func, *args, **kwargs):
        """Run func(*args, **kwargs) unless the circuit is OPEN."""
        if self.state == OPEN:
            retry_after = None
            try:
                last = self._last_failure_at()
                if last:
                    retry_after = max(0, self.reset_timeout - (time.time() - last))
            except Exception:
                pass
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _on_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.hset(self._key('health'), 'last_success', str(time.time()))
            pipe.execute()
        except Exception:
            logger.debug("Could not record success for '%s'", self.name)

    def _on_failure(self, error):
        try:
            count = self.redis.incr(self._key('failures'))
            self.redis.set(self._key('last_failure'), str(time.time()))
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_failure', str(time.time()))
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            pipe.execute()
            if count >= self.failure_threshold:
                self.redis.set(self._key('state'), OPEN)
        except Exception:
            logger.debug("Could not record failure for '%s'", self.name)
            return

        if count >= self.failure_threshold:
            logger.warning("Circuit '%s' OPENED after %d failures: %s", self.name, count, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s", self.name, count, self.failure_threshold, error)

    def reset(self):
        """Force the breaker back to CLOSED."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    def get_health(self):
        """Counters and state for the /api/health endpoint."""
        health = {
            'name': self.name,
            'state': 'unknown',
            'failure_count': 0,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': 0,
            'total_failure': 0,
            'last_error': '',
        }
        try:
            data = self.redis.hgetall(self._key('health')) or {}
            health.update(
                state=self.state,
                failure_count=self.failure_count,
                total_success=int(data.get('success', 0)),
                total_failure=int(data.get('failure', 0)),
                last_error=data.get('last_error', ''),
            )
        except Exception:
            pass
        return health


# ── Registry ──────────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Get or create the breaker for a service (one per name)."""
    if name not in _registry:
        if redis_client is None:
            from app.extensions import redis_client
        settings = dict(BREAKER_SETTINGS.get(name, {}), **kwargs)
        _registry[name] = CircuitBreaker(name, redis_client, **settings)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """(Re)create a breaker for every configured integration."""
    breakers = {
        name: CircuitBreaker(name, redis_client, **settings)
        for name, settings in BREAKER_SETTINGS.items()
    }
    _registry.update(breakers)
    return breakers
