"""
Circuit breaker with Redis-backed state and health tracking.

Guards the outbound calls of the engine (OpenAI completions, Slack webhook).
States:
  - CLOSED    normal operation, calls pass through
  - OPEN      too many consecutive failures, calls fail fast with CircuitOpenError
  - HALF_OPEN reset_timeout elapsed, the next call is a probe

Redis keys: cb:{name}:state, cb:{name}:failures, cb:{name}:last_failure and the
cb:{name}:health hash read by /api/health. If Redis is unreachable the
breaker stays closed.
"""
import logging
import time
from functools import wraps

from redis.exceptions import RedisError

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'

# name -> (failure_threshold, reset_timeout seconds)
BREAKER_SETTINGS = {
    'openai': (5, 60),
    'slack': (3, 300),
}


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN, service unavailable")


class CircuitBreaker:
    """
    Redis-backed circuit breaker.

    Usage:
        cb = CircuitBreaker('openai', redis_client, failure_threshold=5, reset_timeout=60)
        result = cb.call(client.chat.completions.create, **kwargs)

    Or as a decorator:
        @cb.protect
        def post_webhook(...): ...
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    # ── State ─────────────────────────────────────────────────────────

    @property
    def state(self):
        try:
            s = self.redis.get(self._key('state'))
            if s is None:
                return CLOSED
            if s == OPEN and self._seconds_since_failure() > self.reset_timeout:
                self._set_state(HALF_OPEN)
                return HALF_OPEN
            return s
        except RedisError:
            return CLOSED

    def _seconds_since_failure(self):
        last = self.redis.get(self._key('last_failure'))
        return time.time() - float(last) if last else float('inf')

    def _set_state(self, new_state):
        try:
            self.redis.set(self._key('state'), new_state)
        except RedisError:
            logger.debug("Could not persist state for circuit '%s'", self.name)

    @property
    def failure_count(self):
        try:
            val = self.redis.get(self._key('failures'))
            return int(val) if val else 0
        except RedisError:
            return 0

    # ── Health ────────────────────────────────────────────────────────

    def _record(self, outcome, error_msg=''):
        try:
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('health'), outcome, 1)
            pipe.hset(self._key('health'), f'last_{outcome}', str(time.time()))
            if error_msg:
                pipe.hset(self._key('health'), 'last_error', str(error_msg)[:200])
            pipe.execute()
        except RedisError:
            logger.debug("Could not record %s for circuit '%s'", outcome, self.name)

    def get_health(self):
        """Return health metrics dict for this service."""
        health = {
            'name': self.name,
            'state': 'unknown',
            'failure_count': 0,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': 0,
            'total_failure': 0,
            'last_success': None,
            'last_failure': None,
            'last_error': '',
        }
        try:
            data = self.redis.hgetall(self._key('health'))
        except RedisError:
            return health
        health.update({
            'state': self.state,
            'failure_count': self.failure_count,
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_success': float(data['last_success']) if data.get('last_success') else None,
            'last_failure': float(data['last_failure']) if data.get('last_failure') else None,
            'last_error': data.get('last_error', ''),
        })
        return health

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Execute func through the circuit breaker."""
        if self.state == OPEN:
            retry_after = None
            try:
                elapsed = self._seconds_since_failure()
                if elapsed != float('inf'):
                    retry_after = max(0, self.reset_timeout - elapsed)
            except RedisError:
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
            pipe.execute()
        except RedisError:
            logger.debug("Could not close circuit '%s'", self.name)
        self._record('success')

    def _on_failure(self, error):
        try:
            new_count = self.redis.incr(self._key('failures'))
            self.redis.set(self._key('last_failure'), str(time.time()))
            if new_count >= self.failure_threshold:
                self._set_state(OPEN)
                logger.warning(
                    "Circuit '%s' OPENED after %d failures (threshold=%d): %s",
                    self.name, new_count, self.failure_threshold, error,
                )
            else:
                logger.info(
                    "Circuit '%s' failure %d/%d: %s",
                    self.name, new_count, self.failure_threshold, error,
                )
        except RedisError:
            logger.debug("Could not count failure for circuit '%s'", self.name)
        self._record('failure', str(error))

    def reset(self):
        """Manually reset the circuit breaker to closed state."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except RedisError as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    def protect(self, func):
        """Decorator form of the circuit breaker."""
        @wraps(func)
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)
        return wrapper


# ── Registry ──────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Get or create a named circuit breaker (singleton per name)."""
    if name not in _registry:
        if redis_client is None:
            from lead_engine.extensions import redis_client as rc
            redis_client = rc
        if not kwargs and name in BREAKER_SETTINGS:
            threshold, timeout = BREAKER_SETTINGS[name]
            kwargs = {'failure_threshold': threshold, 'reset_timeout': timeout}
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    """Return all registered circuit breakers."""
    return dict(_registry)


def init_breakers(redis_client):
    """Register the breakers for every external service the engine calls."""
    breakers = {
        name: CircuitBreaker(name, redis_client, failure_threshold=threshold, reset_timeout=timeout)
        for name, (threshold, timeout) in BREAKER_SETTINGS.items()
    }
    _registry.update(breakers)
    return breakers
