"""
Request pipeline: Authenticate -> AdmitAndAccount -> Handle.

Each stage either returns the context the next stage needs or raises a
GatewayError that short-circuits the request. The quota check and the
increment are a single ledger call made before the upstream request, so a
slow or failing upstream never holds anything on the ledger. A request that
was admitted and then failed upstream stays counted.
"""
from typing import Any, Dict, Optional

from config import Settings
from db.usage_ledger import Admission, Clock, UsageLedger, utc_day, utc_now
from errors import AuthError, ConfigError, QuotaExceeded, UpstreamError, UpstreamUnavailable, ValidationError
from llm.circuit_breaker import CircuitBreaker
from llm.llm_client import CompletionProxy
from logging_config import get_logger
from services.identity import Identity, IdentityStore
from services.schedule import ScheduleLookup

logger = get_logger("gateway.pipeline")


class Gateway:
    def __init__(
        self,
        settings: Settings,
        identities: IdentityStore,
        ledger: UsageLedger,
        schedule: ScheduleLookup,
        proxy: Optional[CompletionProxy] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self.identities = identities
        self.ledger = ledger
        self.schedule = schedule
        self.proxy = proxy
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            error_threshold=settings.circuit_error_threshold,
            time_window=settings.circuit_window_seconds,
        )
        self._clock = clock

    @property
    def daily_limit(self) -> int:
        return self.settings.daily_limit

    def today(self) -> str:
        return utc_day(self._clock())

    # Stage 1
    def authenticate(self, api_key: Optional[str]) -> Identity:
        identity = self.identities.resolve(api_key)
        if identity is None:
            logger.info("Rejected API key", supplied=bool(api_key))
            raise AuthError()
        return identity

    # Stage 2
    async def admit(self, identity: Identity) -> Admission:
        admission = await self.ledger.admit_and_increment(identity.fingerprint, self.today(), self.daily_limit)
        if not admission.admitted:
            logger.info("Daily limit reached", identity=identity.log_id, count=admission.count, limit=self.daily_limit)
            raise QuotaExceeded(self.daily_limit)
        return admission

    # Stage 3 handlers
    async def usage(self, identity: Identity) -> Dict[str, int]:
        count = await self.ledger.get_count(identity.fingerprint, self.today())
        return {
            "usage": count,
            "limit": self.daily_limit,
            "remaining": max(0, self.daily_limit - count),
        }

    def key_info(self) -> Dict[str, int]:
        return {"keys": self.identities.count, "dailyLimit": self.daily_limit}

    def require_proxy(self) -> CompletionProxy:
        if self.proxy is None:
            raise ConfigError()
        return self.proxy

    async def complete(self, identity: Identity, prompt: Any) -> Dict[str, str]:
        """Validate, admit, then forward; nothing is charged for requests rejected before admission"""
        proxy = self.require_proxy()
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required")
        if self.circuit_breaker.is_open():
            raise UpstreamUnavailable()

        admission = await self.admit(identity)

        try:
            answer = await proxy.complete(prompt)
        except UpstreamError as e:
            # Caller-caused 4xx responses say nothing about upstream health
            if e.is_outage:
                self.circuit_breaker.record_error()
            logger.warning(
                "Completion failed after admission",
                identity=identity.log_id,
                count=admission.count,
                upstream_status=e.upstream_status,
                reason=e.reason,
            )
            raise

        self.circuit_breaker.record_success()
        logger.info("Completion served", identity=identity.log_id, count=admission.count)
        return {"a": answer}


def build_gateway(
    settings: Settings,
    ledger: UsageLedger,
    http_client=None,
    clock: Clock = utc_now,
    schedule: Optional[ScheduleLookup] = None,
) -> Gateway:
    """Assemble the pipeline from settings; the proxy is left out when no upstream key is configured"""
    identities = IdentityStore(settings.api_keys)
    if identities.count == 0:
        logger.warning("No API keys configured, authenticated routes will reject every request")

    proxy = None
    if settings.completions_enabled:
        proxy = CompletionProxy(settings, http_client)
    else:
        logger.warning("OPENAI_API_KEY is not set, completions are disabled")

    if schedule is None:
        schedule = ScheduleLookup.from_file(settings.schedule_file)

    return Gateway(
        settings=settings,
        identities=identities,
        ledger=ledger,
        schedule=schedule,
        proxy=proxy,
        clock=clock,
    )
