# Admin GraphQL documents used by the catalog fetcher and the ops scripts


# product node selection; variants / images connection sizes are filled in at build time
_PRODUCT_FIELDS = r"""
        id
        title
        description
        descriptionHtml
        handle
        status
        vendor
        productType
        tags
        createdAt
        updatedAt
        publishedAt
        onlineStoreUrl
        options { id name values position }
        variants(first: %(variants_first)d) {
          edges {
            node {
              id
              title
              price
              compareAtPrice
              sku
              barcode
              inventoryQuantity
              image { id url altText width height }
            }
          }
        }
        images(first: %(images_first)d) {
          edges {
            node { id url altText width height }
          }
        }
        featuredImage { id url altText width height }
        seo { title description }
        priceRangeV2 {
          minVariantPrice { amount currencyCode }
          maxVariantPrice { amount currencyCode }
        }
        totalInventory
"""


# one page of the catalog, cursor pagination
_PRODUCTS_PAGE = r"""
query ProductsPage($first: Int!, $after: String) {
  products(first: $first, after: $after) {
    edges {
      cursor
      node {
%(fields)s
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""


PRODUCTS_COUNT = """
query ProductsCount {
  productsCount(limit: null) { count precision }
}
""".strip()


SHOP_PING = """
{
  shop {
    name
    myshopifyDomain
    plan { displayName }
  }
}
""".strip()


def build_products_page_query(variants_first: int = 100, images_first: int = 250) -> str:
    fields = _PRODUCT_FIELDS % {
        "variants_first": max(1, int(variants_first)),
        "images_first": max(1, int(images_first)),
    }
    return (_PRODUCTS_PAGE % {"fields": fields}).strip()


# ---------- webhook subscriptions ----------
LIST_WEBHOOKS = """
query ListWebhooks($first: Int!, $topics: [WebhookSubscriptionTopic!]) {
  webhookSubscriptions(first: $first, topics: $topics) {
    edges {
      node {
        id
        topic
        endpoint {
          __typename
          ... on WebhookHttpEndpoint { callbackUrl }
        }
      }
    }
  }
}
""".strip()


CREATE_WEBHOOK = """
mutation CreateWebhook($topic: WebhookSubscriptionTopic!, $cb: URL!) {
  webhookSubscriptionCreate(
    topic: $topic
    webhookSubscription: { callbackUrl: $cb, format: JSON }
  ) {
    userErrors { field message }
    webhookSubscription {
      id
      topic
      endpoint { __typename ... on WebhookHttpEndpoint { callbackUrl } }
    }
  }
}
""".strip()


# REST-style webhook topic -> GraphQL enum, for the topics this app consumes
WEBHOOK_TOPICS = {
    "app/uninstalled": "APP_UNINSTALLED",
    "app/scopes_update": "APP_SCOPES_UPDATE",
    "products/create": "PRODUCTS_CREATE",
    "products/update": "PRODUCTS_UPDATE",
    "products/delete": "PRODUCTS_DELETE",
}
