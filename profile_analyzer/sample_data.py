"""Demo profiler data.

Nothing here is used as an implicit fallback: callers pass the output of
:func:`load_sample_profile` or :func:`generate_sample_data` to
``analyze_profile`` explicitly.
"""

from __future__ import annotations

import copy
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

SAMPLE_COLLECTIONS = ("users", "products", "orders", "categories", "reviews")
SAMPLE_OPERATION_KINDS = ("query", "update", "insert", "remove", "command", "getmore")

_BOOKSTORE_PROFILE: List[Dict[str, Any]] = [
    {
        "op": "command",
        "ns": "bookstore.books",
        "command": {
            "aggregate": "books",
            "pipeline": [
                {"$lookup": {"from": "authors", "localField": "authorId", "foreignField": "_id", "as": "author"}},
                {"$unwind": "$author"},
                {"$lookup": {"from": "categories", "localField": "categoryId", "foreignField": "_id", "as": "category"}},
                {"$unwind": "$category"},
                {
                    "$match": {
                        "$and": [
                            {"title": {"$regex": "fantasy", "$options": "i"}},
                            {"price": {"$gte": 20, "$lte": 50}},
                        ]
                    }
                },
                {"$project": {"_id": 1, "title": 1, "price": 1, "author.name": 1, "category.name": 1}},
                {"$skip": 0},
                {"$limit": 25},
            ],
            "cursor": {},
        },
        "keysExamined": 0,
        "docsExamined": 150000,
        "cursorExhausted": True,
        "numYield": 10,
        "nreturned": 25,
        "queryHash": "C3B2D1E8",
        "planCacheKey": "A7F92C4B",
        "millis": 850,
        "planSummary": "COLLSCAN",
        "ts": {"$date": "2025-03-03T10:00:00.000Z"},
        "client": "192.168.1.100",
        "appName": "bookstoreApp",
        "allUsers": [{"user": "bookstoreAdmin", "db": "bookstore"}],
        "user": "bookstoreAdmin@bookstore",
    },
    {
        "op": "command",
        "ns": "bookstore.orders",
        "command": {
            "aggregate": "orders",
            "pipeline": [
                {"$lookup": {"from": "users", "localField": "userId", "foreignField": "_id", "as": "user"}},
                {"$unwind": "$user"},
                {"$lookup": {"from": "orderItems", "localField": "_id", "foreignField": "orderId", "as": "orderItems"}},
                {"$unwind": "$orderItems"},
                {"$lookup": {"from": "books", "localField": "orderItems.bookId", "foreignField": "_id", "as": "book"}},
                {"$unwind": "$book"},
                {
                    "$lookup": {
                        "from": "addresses",
                        "localField": "shippingAddressId",
                        "foreignField": "_id",
                        "as": "shippingAddress",
                    }
                },
                {"$unwind": "$shippingAddress"},
                {
                    "$match": {
                        "orderDate": {
                            "$gte": {"$date": "2024-01-01T00:00:00Z"},
                            "$lte": {"$date": "2024-12-31T23:59:59Z"},
                        },
                        "status": "PROCESSING",
                    }
                },
                {
                    "$group": {
                        "_id": "$_id",
                        "orderValue": {"$sum": {"$multiply": ["$orderItems.quantity", "$book.price"]}},
                        "user": {"$first": "$user"},
                        "shippingAddress": {"$first": "$shippingAddress"},
                        "items": {"$push": {"bookTitle": "$book.title", "quantity": "$orderItems.quantity"}},
                    }
                },
                {
                    "$project": {
                        "_id": 1,
                        "orderValue": 1,
                        "user.firstName": 1,
                        "user.lastName": 1,
                        "shippingAddress.city": 1,
                        "items": 1,
                    }
                },
                {"$skip": 50},
                {"$limit": 10},
            ],
            "cursor": {},
        },
        "keysExamined": 250000,
        "docsExamined": 500000,
        "cursorExhausted": True,
        "numYield": 20,
        "nreturned": 10,
        "queryHash": "7A12FC9D",
        "planCacheKey": "3E5B82A6",
        "millis": 1200,
        "planSummary": "COLLSCAN",
        "ts": {"$date": "2025-03-03T10:05:30.000Z"},
        "client": "192.168.1.150",
        "appName": "bookstoreAdminPanel",
        "allUsers": [{"user": "adminUser", "db": "bookstore"}],
        "user": "adminUser@bookstore",
    },
    {
        "op": "command",
        "ns": "bookstore.categories",
        "command": {
            "aggregate": "categories",
            "pipeline": [
                {"$lookup": {"from": "books", "localField": "_id", "foreignField": "categoryId", "as": "books"}},
                {"$match": {"name": {"$in": ["Science Fiction", "Fantasy", "Mystery"]}}},
                {"$project": {"_id": 1, "name": 1, "bookCount": {"$size": "$books"}}},
                {"$sort": {"bookCount": -1}},
            ],
            "cursor": {},
        },
        "keysExamined": 10000,
        "docsExamined": 15000,
        "cursorExhausted": True,
        "numYield": 2,
        "nreturned": 3,
        "queryHash": "5F8E3A2B",
        "planCacheKey": "9C2D7A1F",
        "millis": 300,
        "planSummary": "IXSCAN { name: 1 }",
        "ts": {"$date": "2025-03-03T10:10:00.000Z"},
        "client": "192.168.1.200",
        "appName": "bookstoreWebApp",
        "allUsers": [{"user": "guest", "db": "bookstore"}],
        "user": "guest@bookstore",
    },
]


def load_sample_profile() -> List[Dict[str, Any]]:
    """Fresh copy of the three-operation bookstore fixture."""

    return copy.deepcopy(_BOOKSTORE_PROFILE)


def generate_sample_data(
    count: int = 100,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Random operations across a handful of ``test.*`` collections.

    Roughly 30% of the generated queries are collection scans with 500 ms of
    extra latency so the index recommendations have something to find.
    """

    rng = rng or random.Random()
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    operations: List[Dict[str, Any]] = []
    for _ in range(count):
        collection = rng.choice(SAMPLE_COLLECTIONS)
        kind = rng.choice(SAMPLE_OPERATION_KINDS)
        is_query = kind == "query"
        operation: Dict[str, Any] = {
            "op": kind,
            "ns": f"test.{collection}",
            "millis": rng.randint(1, 1000),
            "ts": stamp,
            "docsExamined": rng.randint(1, 1000) if is_query else 0,
            "nreturned": rng.randint(0, 99) if is_query else 0,
        }
        if is_query:
            operation["query"] = {"status": "active"}
            if rng.random() < 0.3:
                operation["planSummary"] = "COLLSCAN"
                operation["millis"] += 500
            else:
                operation["planSummary"] = "IXSCAN"
        operations.append(operation)
    return operations


__all__ = ["SAMPLE_COLLECTIONS", "SAMPLE_OPERATION_KINDS", "generate_sample_data", "load_sample_profile"]
