"""Lightweight per-shop client for the Admin GraphQL API"""
from __future__ import annotations

import time, logging, requests
from typing import Any, Callable, Dict, List, Optional
from requests import HTTPError, Timeout, RequestException

from aisummary.core.config import settings
from aisummary.core.errors import UpstreamError
from aisummary.integrations.shopify.graphql_queries import (
    SHOP_PING,
    LIST_WEBHOOKS,
    CREATE_WEBHOOK,
    WEBHOOK_TOPICS,
)


logger = logging.getLogger(__name__)


# ---------------- endpoint & auth ----------------

def _graphql_endpoint(shop: str) -> str:
    # myshopify domain + API version
    return f"https://{shop}/admin/api/{settings.SHOPIFY_API_VERSION}/graphql.json"


def _resolve_token(access_token: Optional[str]) -> str:
    # explicit (offline session) token first, then the custom-app token from settings
    token: Any = access_token or settings.SHOPIFY_ADMIN_TOKEN
    if hasattr(token, "get_secret_value"):
        token = token.get_secret_value()
    if not token:
        raise UpstreamError("no Shopify access token available")
    return str(token)


class ShopifyClient:

    def __init__(
        self,
        shop: str,
        access_token: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not shop:
            raise ValueError("shop is required")
        self.shop = shop
        self._access_token = access_token
        self._http = session or requests.Session()
        self._sleep = sleep

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": _resolve_token(self._access_token),
            "User-Agent": "AISummarySync/ShopifyClient (+python)",
        }

    '''
    Shared GraphQL POST (logging + retry). Returns the full response body;
    callers read what they need from data[...].
        1) HTTP 5xx / network errors: exponential backoff retry
        2) HTTP 4xx: no retry
        3) 429 throttling: honour Retry-After, otherwise backoff
        4) non-JSON body: retry, then UpstreamError
    Top-level GraphQL errors are NOT raised here; the body is returned as-is
    so callers decide (the catalog fetcher treats them as fatal).
    '''
    def graphql(
        self,
        query: str,
        variables: Optional[dict] = None,
        *,
        timeout: Optional[int] = None,
        op_name: str = "",
    ) -> dict:

        timeout = timeout or settings.SHOPIFY_HTTP_TIMEOUT
        max_retries = max(0, int(settings.SHOPIFY_HTTP_RETRIES))
        backoff_ms = max(50, int(settings.SHOPIFY_HTTP_BACKOFF_MS))

        payload = {"query": query, "variables": variables or {}}
        # never log the query text or variable values
        safe_vars_keys = list(payload["variables"].keys())

        for attempt in range(max_retries + 1):
            start = time.perf_counter()
            backoff_s = (backoff_ms / 1000.0) * (2 ** attempt)
            try:
                resp = self._http.post(
                    _graphql_endpoint(self.shop),
                    headers=self._headers(),
                    json=payload,
                    timeout=timeout,
                )
                latency_ms = int((time.perf_counter() - start) * 1000)

                try:
                    resp.raise_for_status()
                except HTTPError as e:
                    status = resp.status_code

                    if status == 429 and attempt < max_retries:
                        retry_after = resp.headers.get("Retry-After")
                        try:
                            sleep_s = max(0.1, float(retry_after))
                        except (TypeError, ValueError):
                            sleep_s = backoff_s
                        logger.warning(
                            "shopify.graphql.429_throttled shop=%s op=%s latency_ms=%s attempt=%s/%s retry_after=%s",
                            self.shop, op_name, latency_ms, attempt, max_retries, retry_after)
                        self._sleep(sleep_s)
                        continue

                    logger.warning(
                        "shopify.graphql.http_error shop=%s op=%s status=%s latency_ms=%s attempt=%s/%s",
                        self.shop, op_name, status, latency_ms, attempt, max_retries)

                    if 500 <= status < 600 and attempt < max_retries:
                        self._sleep(backoff_s)
                        continue
                    raise UpstreamError(f"Shopify HTTP {status} on {op_name or 'graphql'}") from e

                try:
                    data = resp.json()
                except ValueError as e:
                    if attempt < max_retries:
                        logger.warning("shopify.graphql.non_json shop=%s op=%s attempt=%s/%s",
                            self.shop, op_name, attempt, max_retries)
                        self._sleep(backoff_s)
                        continue
                    raise UpstreamError(f"GraphQL response is not JSON: status={resp.status_code}") from e

                if not isinstance(data, dict):
                    raise UpstreamError(f"GraphQL response is not an object on {op_name or 'graphql'}")

                if data.get("errors"):
                    logger.error("shopify.graphql.gql_errors shop=%s op=%s latency_ms=%s errors=%s",
                        self.shop, op_name, latency_ms, data["errors"])
                else:
                    logger.info("shopify.graphql.ok shop=%s op=%s latency_ms=%s attempt=%s vars=%s",
                        self.shop, op_name, latency_ms, attempt, safe_vars_keys)
                return data

            except Timeout as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.graphql.timeout shop=%s op=%s latency_ms=%s attempt=%s/%s",
                    self.shop, op_name, latency_ms, attempt, max_retries)
                if attempt == max_retries:
                    raise UpstreamError(f"Shopify timeout on {op_name or 'graphql'}") from e
                self._sleep(backoff_s)

            except RequestException as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.graphql.request_exception shop=%s op=%s latency_ms=%s attempt=%s/%s err=%s",
                    self.shop, op_name, latency_ms, attempt, max_retries, type(e).__name__)
                if attempt == max_retries:
                    raise UpstreamError(f"Shopify request failed on {op_name or 'graphql'}: {e}") from e
                self._sleep(backoff_s)

        raise UpstreamError(f"Shopify request failed after retries on {op_name or 'graphql'}")


    # connectivity probe: token / domain / API version
    def ping(self) -> dict:
        data = self.graphql(SHOP_PING, op_name="shop.ping")
        if data.get("errors"):
            raise UpstreamError(f"shop ping failed: {data['errors']}")
        return (data.get("data") or {}).get("shop") or {}


    # ---------- webhook subscriptions (new shop / new environment) ----------
    """
    Idempotent: make sure each consumed topic is subscribed with callback_url.
       - same topic + callback already present -> "noop"
       - otherwise -> webhookSubscriptionCreate -> "created"
    Returns one result dict per topic.
    """
    def ensure_webhooks(self, callback_url: str, topics: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        wanted = topics or list(WEBHOOK_TOPICS.keys())
        enums = [WEBHOOK_TOPICS[t] for t in wanted]

        listed = self.graphql(LIST_WEBHOOKS, {"first": 100, "topics": enums}, op_name="webhook.list")
        if listed.get("errors"):
            raise UpstreamError(f"webhook list failed: {listed['errors']}")
        edges = ((listed.get("data") or {}).get("webhookSubscriptions") or {}).get("edges") or []

        existing = set()
        for e in edges:
            node = e.get("node") or {}
            ep = node.get("endpoint") or {}
            if ep.get("__typename") == "WebhookHttpEndpoint":
                existing.add((node.get("topic"), ep.get("callbackUrl")))

        results: List[Dict[str, Any]] = []
        for topic in enums:
            if (topic, callback_url) in existing:
                results.append({"action": "noop", "topic": topic, "callbackUrl": callback_url})
                continue

            c = self.graphql(CREATE_WEBHOOK, {"topic": topic, "cb": callback_url}, op_name="webhook.create")
            body = (c.get("data") or {}).get("webhookSubscriptionCreate") or {}
            ue = body.get("userErrors") or []
            if c.get("errors") or ue:
                raise UpstreamError(f"webhook create failed topic={topic}: {c.get('errors') or ue}")
            node = body.get("webhookSubscription") or {}
            results.append({"action": "created", "id": node.get("id"), "topic": topic, "callbackUrl": callback_url})
        return results
