# storefront/db/mongo.py
import logging

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from storefront.core.config import Settings

logger = logging.getLogger(__name__)


class MongoConnection:
    """
    Owns the Motor client for the authoritative document store.
    Built once at startup and handed to the repositories.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        assert self._db is not None, "Mongo DB not initialized"
        return self._db

    def _new_client(self) -> AsyncIOMotorClient:
        kwargs = dict(
            uuidRepresentation="standard",
            tz_aware=True,
            serverSelectionTimeoutMS=6000,
            connectTimeoutMS=6000,
        )
        if self.settings.MONGO_TLS:
            kwargs.update(tls=True, tlsCAFile=certifi.where())
        return AsyncIOMotorClient(self.settings.MONGO_URI, **kwargs)

    async def connect(self) -> None:
        """
        Create the client and ping it.
        A failed ping keeps a lazy client: the first real query retries the connection.
        """
        self._client = self._new_client()
        self._db = self._client[self.settings.MONGO_DB]
        try:
            await self._client.admin.command("ping")
            logger.info("mongo connected db=%s", self.settings.MONGO_DB)
        except Exception as e:
            logger.warning("mongo ping at startup failed, keeping lazy client err=%s", e)

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except Exception as e:
            logger.warning("mongo ping failed err=%s", e)
            return False

    async def disconnect(self) -> None:
        if self._client:
            self._client.close()
            logger.info("mongo disconnected")
        self._client = None
        self._db = None
