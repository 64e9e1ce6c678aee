"""
MongoDB access for the restaurants service.

The collection lives on ``app.state.restaurants`` and reaches the route
handlers through the ``get_restaurants`` dependency.
"""

import logging
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "restaurants-app"
COLLECTION = "restaurants"


def connect(database_url: str) -> MongoClient:
    """Open a client and make sure the server answers a ping."""
    client = MongoClient(database_url)
    try:
        client.admin.command("ping")
    except PyMongoError:
        client.close()
        raise
    logger.info("Connected to MongoDB")
    return client


def get_collection(client: MongoClient) -> Collection:
    return client.get_default_database(default=DEFAULT_DATABASE)[COLLECTION]


def get_restaurants(request: Request) -> Collection:
    """FastAPI dependency: the restaurants collection bound to this app."""
    return request.app.state.restaurants


def parse_object_id(value: str) -> Optional[ObjectId]:
    # An id that is not a valid ObjectId can never match a stored document
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None
