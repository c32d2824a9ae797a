
from __future__ import annotations
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import (
    DateTime, String, Integer, UniqueConstraint, Index, Text, func, text,
)
from sqlalchemy.orm import Mapped, mapped_column
from aisummary.db.base import Base, JSONDocument



"""
  Mirrored Shopify product, one row per (shop, shopify_product_id).
  Nested parts of the product document live in JSON columns; an upsert replaces every column.
"""
class Product(Base):

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    shop:               Mapped[str] = mapped_column(String(255), nullable=False)   # xxx.myshopify.com
    shopify_product_id: Mapped[str] = mapped_column(String(255), nullable=False)   # gid://shopify/Product/123

    title:            Mapped[str]           = mapped_column(Text, nullable=False, default="")
    description:      Mapped[str]           = mapped_column(Text, nullable=False, default="")   # plain text
    description_html: Mapped[Optional[str]] = mapped_column(Text)
    handle:           Mapped[Optional[str]] = mapped_column(String(255))
    status:           Mapped[Optional[str]] = mapped_column(String(16))    # ACTIVE / DRAFT / ARCHIVED
    vendor:           Mapped[Optional[str]] = mapped_column(String(255))
    product_type:     Mapped[Optional[str]] = mapped_column(String(255))
    online_store_url: Mapped[Optional[str]] = mapped_column(Text)

    tags:     Mapped[List[str]]            = mapped_column(JSONDocument, nullable=False, default=list)
    options:  Mapped[List[Dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    variants: Mapped[List[Dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    images:   Mapped[List[Dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)

    featured_image:  Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    seo:             Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    price_range:     Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    total_inventory: Mapped[Optional[int]]            = mapped_column(Integer)

    # Shopify-side timestamps (ISO-8601 strings as delivered)
    shopify_created_at:   Mapped[Optional[str]] = mapped_column(String(64))
    shopify_updated_at:   Mapped[Optional[str]] = mapped_column(String(64))
    shopify_published_at: Mapped[Optional[str]] = mapped_column(String(64))

    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)  # last mirror time

    __table_args__ = (
        UniqueConstraint("shop", "shopify_product_id", name="ux_products_shop_product"),
        Index("idx_products_shop", "shop"),
    )



"""
  AI summary cache, one-to-one with Product.
  original_title / original_description are the fingerprint the summary was generated from.
"""
class AISummary(Base):

    __tablename__ = "ai_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    shop:               Mapped[str] = mapped_column(String(255), nullable=False)
    shopify_product_id: Mapped[str] = mapped_column(String(255), nullable=False)

    product_title:        Mapped[Optional[str]] = mapped_column(Text)
    original_title:       Mapped[str]           = mapped_column(Text, nullable=False, default="")
    original_description: Mapped[str]           = mapped_column(Text, nullable=False, default="")
    enhanced_title:       Mapped[str]           = mapped_column(Text, nullable=False)
    enhanced_description: Mapped[str]           = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)   # first insert only
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("shop", "shopify_product_id", name="ux_ai_summaries_shop_product"),
        Index("idx_ai_summaries_shop", "shop"),
    )



"""
  Append-only audit record, one per full-sync attempt (success or failure).
"""
class SyncLog(Base):

    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    shop:           Mapped[str]           = mapped_column(String(255), nullable=False)
    status:         Mapped[str]           = mapped_column(String(16), nullable=False)    # success / failed
    products_count: Mapped[int]           = mapped_column(Integer, nullable=False, server_default=text("0"))
    duration_ms:    Mapped[int]           = mapped_column(Integer, nullable=False, server_default=text("0"))
    error_message:  Mapped[Optional[str]] = mapped_column(Text)
    job_id:         Mapped[Optional[str]] = mapped_column(String(255))                    # installation job, when the pass had one

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("idx_sync_logs_shop_ts", "shop", "timestamp"),)
