import logging
import math
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

import settings
from auth import require_email_domain
from database import CATEGORIES, create_document, find_by_id, get_db, get_documents, object_id, serialize, store_errors
from errors import APIError
from routes import cache_control
from schemas import Category, CategoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

require_staff = require_email_domain(settings.CATEGORIES_ADMIN_DOMAIN)

# Car body types are stored as categories of type "carType" keyed by value
CAR_TYPES = {"SUV", "Sedan", "Hatchback", "Convertible", "Coupe"}


@router.get("", dependencies=[Depends(cache_control(600))])
def list_categories(page: int = Query(1, ge=1), limit: int = Query(10, ge=1), sort: str = "name",
                    db: Database = Depends(get_db)):
    # Documents missing the sort field are left out, as with an ordered index scan
    query = {sort: {"$exists": True}}
    with store_errors("Failed to fetch categories"):
        total = db[CATEGORIES].count_documents(query)
        cursor = db[CATEGORIES].find(query).sort(sort, 1).skip((page - 1) * limit).limit(limit)
        categories = [serialize(c) for c in cursor]
    return {
        "categories": categories,
        "currentPage": page,
        "totalPages": math.ceil(total / limit),
        "totalItems": total,
    }


@router.get("/type/{category_type}", dependencies=[Depends(cache_control(600))])
def categories_by_type(category_type: str, db: Database = Depends(get_db)):
    if category_type in CAR_TYPES:
        query = {"type": "carType", "value": category_type}
    else:
        query = {"type": category_type}
    with store_errors("Failed to fetch categories"):
        return get_documents(db, CATEGORIES, query)


@router.get("/featured", dependencies=[Depends(cache_control(600))])
def featured_categories(db: Database = Depends(get_db)):
    with store_errors("Failed to fetch featured categories"):
        return get_documents(db, CATEGORIES, {"featured": True})


@router.get("/search", dependencies=[Depends(cache_control(60))])
def search_categories(q: str = "", db: Database = Depends(get_db)):
    if not q:
        return []
    prefix = {"$gte": q, "$lte": q + "\uf8ff"}
    merged = {}
    with store_errors("Failed to search categories"):
        for field in ("name", "type"):
            for doc in db[CATEGORIES].find({field: prefix}):
                merged[str(doc["_id"])] = serialize(doc)
    return list(merged.values())


@router.get("/slug/{slug}", dependencies=[Depends(cache_control(600))])
def get_category_by_slug(slug: str, db: Database = Depends(get_db)):
    with store_errors("Failed to get category"):
        doc = db[CATEGORIES].find_one({"slug": slug})
    if not doc:
        raise APIError(404, "Category not found")
    return serialize(doc)


@router.get("/{category_id}", dependencies=[Depends(cache_control(600))])
def get_category(category_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to get category"):
        doc = find_by_id(db, CATEGORIES, category_id)
    if not doc:
        raise APIError(404, "Category not found")
    return serialize(doc)


@router.post("", status_code=201, dependencies=[Depends(require_staff), Depends(cache_control(0))])
def create_category(payload: Category, db: Database = Depends(get_db)):
    with store_errors("Failed to create category"):
        if db[CATEGORIES].find_one({"slug": payload.slug}):
            raise APIError(400, "Category with this slug already exists")
        now = datetime.now(timezone.utc)
        category = {**payload.model_dump(), "carCount": 0, "createdAt": now, "updatedAt": now}
        category_id = create_document(db, CATEGORIES, category)
    logger.info("Created category %s (%s)", category_id, payload.slug)
    return {"id": category_id, **category}


@router.put("/{category_id}", dependencies=[Depends(require_staff), Depends(cache_control(0))])
def update_category(category_id: str, payload: CategoryUpdate, db: Database = Depends(get_db)):
    updates = payload.model_dump(exclude_unset=True)
    with store_errors("Failed to update category"):
        doc = find_by_id(db, CATEGORIES, category_id)
        if not doc:
            raise APIError(404, "Category not found")
        slug = updates.get("slug")
        if slug and slug != doc.get("slug") and db[CATEGORIES].find_one({"slug": slug}):
            raise APIError(400, "Category with this slug already exists")
        updates["updatedAt"] = datetime.now(timezone.utc)
        db[CATEGORIES].update_one({"_id": doc["_id"]}, {"$set": updates})
        return serialize(db[CATEGORIES].find_one({"_id": doc["_id"]}))


@router.delete("/{category_id}", dependencies=[Depends(require_staff), Depends(cache_control(0))])
def delete_category(category_id: str, db: Database = Depends(get_db)):
    oid = object_id(category_id)
    with store_errors("Failed to delete category"):
        if oid is None or db[CATEGORIES].find_one({"_id": oid}, {"_id": 1}) is None:
            raise APIError(404, "Category not found")
        db[CATEGORIES].delete_one({"_id": oid})
    logger.info("Deleted category %s", category_id)
    return {"message": "Category deleted successfully"}
