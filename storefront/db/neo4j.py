# storefront/db/neo4j.py
import logging

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable

from storefront.core.config import Settings

logger = logging.getLogger(__name__)


class Neo4jConnection:
    """
    Owns the async Neo4j driver for the interaction graph.
    The graph is an analytics side-channel: a failed connect leaves `driver` as None
    and recommendation queries return empty results.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.database = settings.NEO4J_DATABASE
        self.driver: AsyncDriver | None = None

    async def connect(self) -> None:
        if not self.settings.NEO4J_URI:
            logger.warning("no NEO4J_URI configured, skipping graph connection")
            return

        driver = AsyncGraphDatabase.driver(
            self.settings.NEO4J_URI,
            auth=(self.settings.NEO4J_USER, self.settings.NEO4J_PASSWORD),
            connection_timeout=self.settings.graph_timeout_s * 5,
        )
        try:
            await driver.verify_connectivity()
            self.driver = driver
            logger.info("neo4j connected uri=%s", self.settings.NEO4J_URI)
        except (ServiceUnavailable, Neo4jError, OSError) as e:
            logger.warning("neo4j connection failed, graph disabled err=%s", e)
            await driver.close()
            self.driver = None

    async def disconnect(self) -> None:
        if self.driver:
            await self.driver.close()
            self.driver = None
            logger.info("neo4j disconnected")
