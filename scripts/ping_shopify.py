#!/usr/bin/env python3
from __future__ import annotations
import argparse, json

from aisummary.integrations.shopify.shopify_client import ShopifyClient


'''
Connectivity probe: shop domain + API version + Admin token.
    python scripts/ping_shopify.py --shop your-store.myshopify.com
A shop name / myshopifyDomain / plan in the output means all three are fine.
'''
def main() -> None:
    ap = argparse.ArgumentParser(description="Ping the Shopify Admin GraphQL API for one shop.")
    ap.add_argument("--shop", required=True, help="xxx.myshopify.com")
    ap.add_argument("--token", default=None, help="Admin access token (defaults to SHOPIFY_ADMIN_TOKEN)")
    args = ap.parse_args()

    cli = ShopifyClient(args.shop, args.token)
    print(json.dumps(cli.ping(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
