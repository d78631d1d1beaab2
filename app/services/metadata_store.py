"""
Catalog-backed store for temporary variants.

The catalog is the only persistence: lifecycle state lives in ``custom``
namespace metafields on each variant. ``VariantStore`` is the interface the
provisioner and the sweeper depend on; ``ShopifyVariantStore`` implements it
over the GraphQL Admin API. No call is retried at this layer.
"""
import logging
from typing import Any, Dict, List, Optional
from app.core.errors import CatalogMissingPayloadError, CatalogUserError
from app.core.shopify_client import ShopifyClient
from app.schemas.variant import METAFIELD_NAMESPACE, CatalogVariant, VariantDraft

logger = logging.getLogger(__name__)

DEFAULT_OPTION_NAME = "Title"

PRODUCT_VARIANTS_QUERY = """
query ProductTemporaryVariants($id: ID!, $first: Int!) {
  product(id: $id) {
    id
    variants(first: $first) {
      edges {
        node {
          id
          legacyResourceId
          displayName
          title
          price
          metafields(first: 20, namespace: "custom") {
            edges { node { namespace key value } }
          }
        }
      }
    }
  }
}
"""

TEMPORARY_VARIANTS_QUERY = """
query TemporaryVariants($first: Int!, $query: String!) {
  productVariants(first: $first, query: $query) {
    edges {
      node {
        id
        legacyResourceId
        displayName
        title
        price
        product { id }
        metafields(first: 20, namespace: "custom") {
          edges { node { namespace key value } }
        }
      }
    }
  }
}
"""

PRODUCT_OPTIONS_QUERY = """
query ProductOptions($id: ID!) {
  product(id: $id) {
    options { name values }
  }
}
"""

CREATE_VARIANTS_MUTATION = """
mutation ProductVariantsCreate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkCreate(productId: $productId, variants: $variants) {
    productVariants {
      id
      legacyResourceId
      displayName
      title
      price
      metafields(first: 20, namespace: "custom") {
        edges { node { namespace key value } }
      }
    }
    userErrors { field message }
  }
}
"""

DELETE_VARIANTS_MUTATION = """
mutation ProductVariantsBulkDelete($productId: ID!, $variantsIds: [ID!]!) {
  productVariantsBulkDelete(productId: $productId, variantsIds: $variantsIds) {
    product { id }
    userErrors { field message }
  }
}
"""


def _edges(container: Any) -> List[Dict[str, Any]]:
    if not isinstance(container, dict):
        return []
    return [edge.get("node") or {} for edge in container.get("edges") or []]


def parse_variant(node: Dict[str, Any], product_id: Optional[str] = None) -> CatalogVariant:
    metadata = {}
    for field in _edges(node.get("metafields")):
        if field.get("namespace", METAFIELD_NAMESPACE) != METAFIELD_NAMESPACE:
            continue
        if field.get("key") is not None and field.get("value") is not None:
            metadata[field["key"]] = str(field["value"])
    product = node.get("product") or {}
    legacy_id = node.get("legacyResourceId")
    price = node.get("price")
    return CatalogVariant(
        id=node["id"],
        legacy_resource_id=str(legacy_id) if legacy_id is not None else None,
        display_name=node.get("displayName"),
        title=node.get("title"),
        price=str(price) if price is not None else None,
        product_id=product.get("id") or product_id,
        metadata=metadata,
    )


class VariantStore:
    async def list_product_variants(self, product_gid: str, limit: int = 100) -> List[CatalogVariant]:
        raise NotImplementedError

    async def list_temporary_variants(self, limit: int = 250) -> List[CatalogVariant]:
        raise NotImplementedError

    async def get_first_option_name(self, product_gid: str) -> str:
        raise NotImplementedError

    async def create_variant(self, product_gid: str, draft: VariantDraft) -> CatalogVariant:
        raise NotImplementedError

    async def delete_variants(self, product_gid: str, variant_ids: List[str]) -> None:
        raise NotImplementedError


class ShopifyVariantStore(VariantStore):
    def __init__(self, client: Optional[ShopifyClient] = None):
        self.client = client or ShopifyClient()

    async def list_product_variants(self, product_gid: str, limit: int = 100) -> List[CatalogVariant]:
        data = await self.client.graphql(PRODUCT_VARIANTS_QUERY, {"id": product_gid, "first": limit})
        product = data.get("product")
        if product is None:
            raise CatalogMissingPayloadError(f"Product {product_gid} not found")
        return [parse_variant(node, product_gid) for node in _edges(product.get("variants"))]

    async def list_temporary_variants(self, limit: int = 250) -> List[CatalogVariant]:
        data = await self.client.graphql(
            TEMPORARY_VARIANTS_QUERY,
            {"first": limit, "query": f"metafield.{METAFIELD_NAMESPACE}.temporary:true"},
        )
        return [parse_variant(node) for node in _edges(data.get("productVariants"))]

    async def get_first_option_name(self, product_gid: str) -> str:
        data = await self.client.graphql(PRODUCT_OPTIONS_QUERY, {"id": product_gid})
        product = data.get("product")
        if product is None:
            raise CatalogMissingPayloadError(f"Product {product_gid} not found")
        options = product.get("options") or []
        if options and options[0].get("name"):
            return options[0]["name"]
        return DEFAULT_OPTION_NAME

    async def create_variant(self, product_gid: str, draft: VariantDraft) -> CatalogVariant:
        variables = {
            "productId": product_gid,
            "variants": [{
                "price": draft.price,
                "inventoryPolicy": draft.inventory_policy,
                "optionValues": [{"name": draft.option_value, "optionName": draft.option_name}],
                "metafields": [field.model_dump() for field in draft.metafields],
            }],
        }
        data = await self.client.graphql(CREATE_VARIANTS_MUTATION, variables)
        result = data.get("productVariantsBulkCreate")
        if not result:
            raise CatalogMissingPayloadError("productVariantsBulkCreate result missing", details=data)
        if result.get("userErrors"):
            raise CatalogUserError.from_user_errors(result["userErrors"])
        created = result.get("productVariants") or []
        if not created:
            raise CatalogMissingPayloadError("No variant returned from productVariantsBulkCreate", details=result)
        return parse_variant(created[0], product_gid)

    async def delete_variants(self, product_gid: str, variant_ids: List[str]) -> None:
        data = await self.client.graphql(
            DELETE_VARIANTS_MUTATION,
            {"productId": product_gid, "variantsIds": variant_ids},
        )
        result = data.get("productVariantsBulkDelete")
        if not result:
            raise CatalogMissingPayloadError("productVariantsBulkDelete result missing", details=data)
        if result.get("userErrors"):
            raise CatalogUserError.from_user_errors(result["userErrors"])
