import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from fastapi import Request

from config.config import MONGODB_URI, DATABASE_NAME
from helpers.DateTimeSerializer import DateTimeSerializerVisitor

logger = logging.getLogger(__name__)

# (collection, keys, options)
INDEXES = [
    ("volunteers", [("registrationId", ASCENDING)], {"unique": True}),
    ("events", [("status", ASCENDING), ("softDelete", ASCENDING)], {}),
    ("volunteer_assignments", [("volunteerId", ASCENDING), ("eventId", ASCENDING)], {"unique": True}),
    ("volunteer_assignments", [("eventId", ASCENDING)], {}),
    ("work_submissions", [("volunteerId", ASCENDING), ("createdAt", DESCENDING)], {}),
    ("work_submissions", [("status", ASCENDING), ("createdAt", DESCENDING)], {}),
    ("volunteer_points", [("volunteerId", ASCENDING)], {"unique": True}),
    ("volunteer_points", [("points", DESCENDING)], {}),
    ("audit_logs", [("module", ASCENDING), ("timestamp", DESCENDING)], {}),
]


def get_db(request: Request):
    """Dependency to get database instance from app state"""
    return request.app.state.db


class Database:
    def __init__(self, client=None, database_name: str = DATABASE_NAME):
        self.MONGO_URI = MONGODB_URI
        self.database_name = database_name
        self.client = client
        self.db = None

    def connect(self):
        if self.client is None:
            self.client = AsyncIOMotorClient(self.MONGO_URI)
        self.db = self.client[self.database_name]
        logger.info("Connected to MongoDB database '%s'", self.database_name)

    async def ensure_indexes(self):
        for collection_name, keys, options in INDEXES:
            await self.db[collection_name].create_index(keys, **options)

    def serializer(self, obj):
        visitor = DateTimeSerializerVisitor()
        return visitor.visit(obj)

    def _clean(self, document):
        if document is None:
            return None
        document["_id"] = str(document["_id"])
        return self.serializer(document)

    def get_collection(self, collection_name):
        """Get a collection object for direct MongoDB operations"""
        return self.db[collection_name]

    async def add(self, collection_name, data):
        """Insert a document; DuplicateKeyError propagates to the caller."""
        collection = self.db[collection_name]
        result = await collection.insert_one(data)
        data["_id"] = str(result.inserted_id)
        return self.serializer(data)

    async def find_many(self, collection_name, query=None, projection=None, sort=None, skip=None, limit=None):
        """Find multiple documents matching query"""
        collection = self.db[collection_name]
        options = {}
        if sort:
            options["sort"] = sort
        if skip:
            options["skip"] = skip
        if limit:
            options["limit"] = limit
        cursor = collection.find(query or {}, projection, **options)

        documents = []
        async for doc in cursor:
            documents.append(self._clean(doc))
        return documents

    async def find_one(self, collection_name, query):
        """Find a single document (returns document directly or None)"""
        collection = self.db[collection_name]
        document = await collection.find_one(query)
        return self._clean(document)

    async def count(self, collection_name, query=None):
        collection = self.db[collection_name]
        return await collection.count_documents(query or {})

    async def find_one_and_update(self, collection_name, query, update_string, upsert=False):
        """Atomically apply update_string to the first match and return the updated document, or None."""
        collection = self.db[collection_name]
        document = await collection.find_one_and_update(
            query,
            update_string,
            upsert=upsert,
            return_document=ReturnDocument.AFTER,
        )
        return self._clean(document)

    async def update(self, collection_name, query, update_string, upsert=False):
        collection = self.db[collection_name]
        result = await collection.update_one(query, update_string, upsert=upsert)

        return {
            "matched_count": result.matched_count,
            "modified_count": result.modified_count,
            "upserted_id": result.upserted_id,
        }

    async def delete(self, collection_name, query):
        collection = self.db[collection_name]
        result = await collection.delete_one(query)
        return result.deleted_count
