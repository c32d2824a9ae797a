#!/usr/bin/env python3
from __future__ import annotations
import argparse, json

from aisummary.core.logging import configure_logging
from aisummary.db.session import session_scope
from aisummary.services.product_summary_service import regenerate_all_summaries


'''
Maintenance: delete every AI summary of a shop and generate them again from the mirrored products.
    python scripts/regenerate_summaries.py --shop your-store.myshopify.com
Runs in this process (not on the worker); calls are paced by GENERATION_DELAY_MS.
'''
def main() -> None:
    configure_logging()
    ap = argparse.ArgumentParser(description="Regenerate all AI summaries for one shop.")
    ap.add_argument("--shop", required=True, help="xxx.myshopify.com")
    args = ap.parse_args()

    with session_scope() as db:
        result = regenerate_all_summaries(db, args.shop.strip().lower())
    print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
