# storefront/domain/repositories/graph_repo.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from neo4j import READ_ACCESS, WRITE_ACCESS, AsyncDriver

from storefront.core.logging import json_preview
from storefront.domain.models.graph import Interaction

logger = logging.getLogger(__name__)

# Relationship types cannot be query parameters in Cypher; they are interpolated
# from this whitelist only.
_INTERACTION_TYPES = {i.value for i in Interaction}

# traversal edges used by every "user touched product" query
_ENGAGED = "VIEWED|PURCHASED"


class GraphRepo:
    """
    Cypher adapter for the interaction graph.

    Nodes: (:Product {id, name, category, brand, price, rating}), (:User {id, name, email}).
    Edges: (:User)-[:VIEWED|PURCHASED|SEARCHED {timestamp, weight}]->(:Product),
           (:Product)-[:SIMILAR_TO {weight}]->(:Product).

    Interaction edges are only ever CREATEd, never updated. Errors propagate; callers
    wrap every call in best_effort().
    """

    def __init__(self, driver: AsyncDriver, database: str = "neo4j"):
        self.driver = driver
        self.database = database

    async def _read(self, query: str, **params: Any) -> List[Dict[str, Any]]:
        logger.debug("cypher read params=%s", json_preview(params, limit=300))
        async with self.driver.session(database=self.database, default_access_mode=READ_ACCESS) as session:
            result = await session.run(query, params)
            return await result.data()

    async def _write(self, query: str, **params: Any) -> Dict[str, Any]:
        logger.debug("cypher write params=%s", json_preview(params, limit=300))
        async with self.driver.session(database=self.database, default_access_mode=WRITE_ACCESS) as session:
            result = await session.run(query, params)
            record = await result.single()
            return record.data() if record else {}

    # ---------- projections ----------
    async def merge_product(self, props: Dict[str, Any]) -> bool:
        row = await self._write(
            """
            MERGE (p:Product {id: $id})
            SET p.name = $name,
                p.category = $category,
                p.brand = $brand,
                p.price = $price,
                p.rating = $rating
            RETURN p.id AS id
            """,
            **props,
        )
        return bool(row)

    async def merge_user(self, props: Dict[str, Any]) -> bool:
        row = await self._write(
            """
            MERGE (u:User {id: $id})
            SET u.name = $name,
                u.email = $email
            RETURN u.id AS id
            """,
            **props,
        )
        return bool(row)

    async def delete_product(self, product_id: str) -> int:
        row = await self._write(
            "MATCH (p:Product {id: $id}) DETACH DELETE p RETURN count(p) AS deleted",
            id=product_id,
        )
        return int(row.get("deleted", 0))

    async def delete_user(self, user_id: str) -> int:
        row = await self._write(
            "MATCH (u:User {id: $id}) DETACH DELETE u RETURN count(u) AS deleted",
            id=user_id,
        )
        return int(row.get("deleted", 0))

    # ---------- edges ----------
    async def create_similarity(self, product_id_1: str, product_id_2: str, weight: float = 1) -> bool:
        row = await self._write(
            """
            MATCH (p1:Product {id: $id1}), (p2:Product {id: $id2})
            CREATE (p1)-[r:SIMILAR_TO {weight: $weight}]->(p2)
            RETURN count(r) AS created
            """,
            id1=product_id_1,
            id2=product_id_2,
            weight=weight,
        )
        return int(row.get("created", 0)) > 0

    async def create_interaction(
        self,
        user_id: str,
        product_id: str,
        kind: Interaction,
        timestamp_ms: int,
        weight: float = 1,
    ) -> bool:
        """
        Append one interaction edge. The user node is created on first sight, since
        request identity is its only source. Returns False if the product node is missing.
        """
        rel = Interaction(kind).value
        if rel not in _INTERACTION_TYPES:
            raise ValueError(f"unsupported interaction type {rel}")
        row = await self._write(
            f"""
            MERGE (u:User {{id: $userId}})
            WITH u
            MATCH (p:Product {{id: $productId}})
            CREATE (u)-[r:{rel} {{timestamp: $timestamp, weight: $weight}}]->(p)
            RETURN count(r) AS created
            """,
            userId=user_id,
            productId=product_id,
            timestamp=timestamp_ms,
            weight=weight,
        )
        return int(row.get("created", 0)) > 0

    # ---------- traversals ----------
    async def similar_to(self, product_id: str, cap: int) -> List[Dict[str, Any]]:
        return await self._read(
            """
            MATCH (p:Product {id: $productId})-[:SIMILAR_TO]-(rec:Product)
            WHERE rec.id <> $productId
            WITH DISTINCT rec
            RETURN rec AS product
            ORDER BY coalesce(rec.rating, 0) DESC, rec.id ASC
            LIMIT $cap
            """,
            productId=product_id,
            cap=cap,
        )

    async def collaborative_candidates(self, user_id: str, cap: int) -> List[Dict[str, Any]]:
        return await self._read(
            f"""
            MATCH (u:User {{id: $userId}})-[:{_ENGAGED}]->(:Product)-[:SIMILAR_TO]-(rec:Product)
            WHERE NOT (u)-[:{_ENGAGED}]->(rec)
            WITH rec, count(*) AS paths
            RETURN rec AS product, paths
            ORDER BY paths DESC, coalesce(rec.rating, 0) DESC, rec.id ASC
            LIMIT $cap
            """,
            userId=user_id,
            cap=cap,
        )

    async def interaction_counts(self, cutoff_ms: int, cap: int) -> List[Dict[str, Any]]:
        return await self._read(
            f"""
            MATCH (:User)-[r:{_ENGAGED}]->(p:Product)
            WHERE r.timestamp > $cutoff
            WITH p, count(r) AS interactions
            RETURN p AS product, interactions
            ORDER BY interactions DESC, coalesce(p.rating, 0) DESC, p.id ASC
            LIMIT $cap
            """,
            cutoff=cutoff_ms,
            cap=cap,
        )

    async def shared_product_counts(self, user_id: str, cap: int) -> List[Dict[str, Any]]:
        return await self._read(
            f"""
            MATCH (u1:User {{id: $userId}})-[:{_ENGAGED}]->(p:Product)<-[:{_ENGAGED}]-(u2:User)
            WHERE u1 <> u2
            WITH u2, count(DISTINCT p) AS common
            RETURN u2 AS user, common
            ORDER BY common DESC, u2.id ASC
            LIMIT $cap
            """,
            userId=user_id,
            cap=cap,
        )

    async def category_links(self, category: str, cap: int) -> List[Dict[str, Any]]:
        return await self._read(
            """
            MATCH (p1:Product {category: $category})-[:SIMILAR_TO]-(p2:Product)
            WHERE p2.category IS NOT NULL AND p2.category <> $category
            WITH p2.category AS category, count(*) AS frequency
            RETURN category, frequency
            ORDER BY frequency DESC, category ASC
            LIMIT $cap
            """,
            category=category,
            cap=cap,
        )

    async def ping(self) -> bool:
        rows = await self._read("RETURN 1 AS num")
        return bool(rows) and rows[0].get("num") == 1
