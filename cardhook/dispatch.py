"""Bounded-time webhook delivery with a fail-fast capacity limit."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx

from cardhook.card.wire import CONTENT_TYPE
from cardhook.config import DispatchConfig
from cardhook.host import LOG_TAG
from cardhook.models import DeliveryResult, DeliveryStatus
from cardhook.utils.logging import get_logger, redact_url

log = get_logger(__name__)

LogSink = Callable[[str], None]


def describe_failure(result: DeliveryResult) -> str:
    if result.status is DeliveryStatus.DELIVERED:
        return f"HTTP {result.status_code}"
    return result.error or result.status.value


class Dispatcher:
    """Posts serialized cards to webhook URLs.

    Each delivery is a single attempt bounded by its timeout. At most
    ``max_workers`` deliveries are in flight at once; a delivery beyond that
    is rejected immediately instead of waiting for a free slot. Failures are
    returned as DeliveryResult values and never raised.
    """

    def __init__(self, config: DispatchConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=False,
            headers={"User-Agent": config.user_agent},
        )
        self._in_flight = 0

    @property
    def capacity(self) -> int:
        return self._config.max_workers

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Dispatcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def deliver(
        self,
        url: str,
        payload: bytes,
        timeout: float | None = None,
        *,
        target: str = "",
        sink: LogSink | None = None,
    ) -> DeliveryResult:
        target = target or url
        timeout = timeout or self._config.default_timeout

        if self._in_flight >= self._config.max_workers:
            result = DeliveryResult(
                target=target,
                status=DeliveryStatus.REJECTED_CAPACITY,
                error=f"rejected, {self._in_flight} deliveries already in flight",
            )
            self._report(result, url, sink)
            return result

        # The slot is taken before the first await so concurrent callers see it.
        self._in_flight += 1
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    url,
                    content=payload,
                    headers={"Content-Type": CONTENT_TYPE},
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            result = DeliveryResult(
                target=target,
                status=DeliveryStatus.TIMEOUT,
                error=f"timed out after {timeout:g}s",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            result = DeliveryResult(
                target=target,
                status=DeliveryStatus.CONNECTION_ERROR,
                error=f"connection error: {str(e) or type(e).__name__}",
            )
        else:
            result = DeliveryResult(
                target=target,
                status=DeliveryStatus.DELIVERED,
                status_code=response.status_code,
            )
        finally:
            self._in_flight -= 1

        self._report(result, url, sink)
        return result

    def _report(self, result: DeliveryResult, url: str, sink: LogSink | None) -> None:
        if result.succeeded:
            log.info("webhook_delivered", target=result.target, status_code=result.status_code)
            return

        reason = describe_failure(result)
        log.warning(
            "webhook_delivery_failed",
            target=result.target,
            url=url,
            status=result.status.value,
            reason=reason,
        )
        if sink is not None:
            sink(redact_url(f"{LOG_TAG} Failed to notify webhook: {result.target} ({reason})"))
