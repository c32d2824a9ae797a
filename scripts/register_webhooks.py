#!/usr/bin/env python3
from __future__ import annotations
import os, sys, json, argparse

from aisummary.core.config import settings
from aisummary.integrations.shopify.shopify_client import ShopifyClient
from aisummary.integrations.shopify.graphql_queries import WEBHOOK_TOPICS


'''
Ops script (CI/CD or local): make sure the shop is subscribed to every consumed topic.
    - callback from --callback, else {SHOPIFY_APP_URL}{API_PREFIX}/webhooks/shopify
    - idempotent: topics already pointing at the callback are left alone
    usage:
    python scripts/register_webhooks.py --shop your-store.myshopify.com \
        --callback "https://<public-domain>/api/v1/webhooks/shopify"
'''
def main() -> None:
    ap = argparse.ArgumentParser(description="Ensure Shopify webhook subscriptions for the sync app.")
    ap.add_argument("--shop", required=True, help="xxx.myshopify.com")
    ap.add_argument("--token", default=None, help="Admin access token (defaults to SHOPIFY_ADMIN_TOKEN)")
    ap.add_argument("--callback", help="Public HTTPS callback URL")
    ap.add_argument("--topic", action="append", choices=sorted(WEBHOOK_TOPICS), help="Limit to these topics (repeatable)")
    args = ap.parse_args()

    callback = args.callback or os.getenv("SHOPIFY_WEBHOOK_CALLBACK")
    if not callback and settings.SHOPIFY_APP_URL:
        callback = f"{settings.SHOPIFY_APP_URL.rstrip('/')}{settings.API_PREFIX}/webhooks/shopify"
    if not callback:
        print("ERROR: provide --callback, SHOPIFY_WEBHOOK_CALLBACK or SHOPIFY_APP_URL", file=sys.stderr)
        sys.exit(2)

    client = ShopifyClient(args.shop, args.token)
    result = client.ensure_webhooks(callback, topics=args.topic)
    print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
