"""Tests for the Cypher adapter against a recording driver."""
import pytest
from neo4j import READ_ACCESS, WRITE_ACCESS

from fakes import FakeDriver
from storefront.domain.models.graph import Interaction
from storefront.domain.repositories.graph_repo import GraphRepo
from storefront.domain.services.graph_svc import GraphEngine


@pytest.mark.asyncio
async def test_merge_product_passes_properties_as_parameters():
    driver = FakeDriver(replies=[[{"id": "p1"}]])
    repo = GraphRepo(driver, database="shop")

    props = {"id": "p1", "name": "Mug", "category": "mugs", "brand": "Acme", "price": 9.5, "rating": 4.0}
    assert await repo.merge_product(props) is True

    run = driver.runs[0]
    assert "MERGE (p:Product {id: $id})" in run["query"]
    assert run["params"] == props
    assert run["database"] == "shop"
    assert run["mode"] == WRITE_ACCESS
    assert driver.closed_sessions == 1


@pytest.mark.asyncio
async def test_interaction_type_is_the_relationship_label():
    driver = FakeDriver(replies=[[{"created": 1}]])
    repo = GraphRepo(driver)

    assert await repo.create_interaction("u1", "p1", Interaction.PURCHASED, 1234, 2) is True
    run = driver.runs[0]
    assert "MERGE (u:User {id: $userId})" in run["query"]
    assert "CREATE (u)-[r:PURCHASED {timestamp: $timestamp, weight: $weight}]->(p)" in run["query"]
    assert run["params"] == {"userId": "u1", "productId": "p1", "timestamp": 1234, "weight": 2}


@pytest.mark.asyncio
async def test_unknown_interaction_type_never_reaches_the_server():
    driver = FakeDriver()
    repo = GraphRepo(driver)
    with pytest.raises(ValueError):
        await repo.create_interaction("u1", "p1", "LIKED", 1)
    assert driver.runs == []


@pytest.mark.asyncio
async def test_missing_nodes_create_nothing():
    driver = FakeDriver(replies=[[{"created": 0}]])
    assert await GraphRepo(driver).create_similarity("p1", "p2") is False


@pytest.mark.asyncio
async def test_reads_use_read_sessions_and_return_rows():
    rows = [{"product": {"id": "p2", "name": "Cup", "rating": 4.5}, "interactions": 3}]
    driver = FakeDriver(replies=[rows])
    repo = GraphRepo(driver)

    assert await repo.interaction_counts(cutoff_ms=1000, cap=5) == rows
    run = driver.runs[0]
    assert run["mode"] == READ_ACCESS
    assert run["params"] == {"cutoff": 1000, "cap": 5}
    assert "r.timestamp > $cutoff" in run["query"]


@pytest.mark.asyncio
async def test_delete_returns_count():
    driver = FakeDriver(replies=[[{"deleted": 1}], []])
    repo = GraphRepo(driver)
    assert await repo.delete_user("u1") == 1
    assert await repo.delete_user("u1") == 0
    assert "DETACH DELETE" in driver.runs[0]["query"]


@pytest.mark.asyncio
async def test_engine_hydrates_rows_from_repo():
    driver = FakeDriver(replies=[[
        {"product": {"id": "p2", "name": "Cup", "category": "mugs", "rating": None}, "paths": 2},
        {"product": {"id": "p3", "name": "Pot", "category": "tea", "rating": 4.0}, "paths": 2},
    ]])
    engine = GraphEngine(GraphRepo(driver))

    result = await engine.collaborative("u1", limit=10)
    assert [(r.product.id, r.score, r.product.rating) for r in result] == [("p3", 2, 4.0), ("p2", 2, 0.0)]
    assert driver.runs[0]["params"] == {"userId": "u1", "cap": 10}


@pytest.mark.asyncio
async def test_engine_treats_malformed_rows_as_empty():
    driver = FakeDriver(replies=[[{"unexpected": 1}]])
    engine = GraphEngine(GraphRepo(driver))
    assert await engine.trending(limit=5, now=10_000) == []
