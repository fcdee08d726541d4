import asyncio
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError
from pymongo import UpdateOne
from pymongo.database import Database

import settings
from auth import require_email_domain
from database import (
    BRANDS,
    CARS,
    CATEGORIES,
    create_document,
    find_by_id,
    get_db,
    get_documents,
    object_id,
    serialize,
    store_errors,
)
from errors import APIError
from routes import cache_control
from schemas import BulkUpdateItem, BulkUpdateRequest, Car, CarUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

require_staff = require_email_domain(settings.CARS_ADMIN_DOMAIN)

SEARCH_LIMIT = 10
SEARCH_FIELDS = ("name", "brand", "model", "description")


def _check_categories(db: Database, category_ids):
    """Every referenced category must exist. Not atomic with the write that follows."""
    for category_id in set(category_ids):
        if find_by_id(db, CATEGORIES, category_id) is None:
            raise APIError(400, f"Category {category_id} does not exist")


def _in_price_range(car: dict, min_price: Optional[float], max_price: Optional[float]) -> bool:
    price = car.get("dailyPrice")
    if not isinstance(price, (int, float)):
        return True
    if min_price is not None and price < min_price:
        return False
    if max_price is not None and price > max_price:
        return False
    return True


def _count_collections(db: Database) -> dict:
    """Count cars, brands and categories one after another.

    A failed count is logged and reported as zero.
    """
    counts = {}
    for key, collection in (("totalCars", CARS), ("totalBrands", BRANDS), ("totalCategories", CATEGORIES)):
        try:
            counts[key] = db[collection].count_documents({})
        except Exception:
            logger.exception("Error counting %s", collection)
            counts[key] = 0
    return counts


@router.get("/featured", dependencies=[Depends(cache_control(600))])
def featured_cars(db: Database = Depends(get_db)):
    with store_errors("Failed to fetch featured cars"):
        return get_documents(db, CARS, {"featured": True})


@router.get("/type/{car_type}", dependencies=[Depends(cache_control(300))])
def cars_by_type(car_type: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch cars by type"):
        return get_documents(db, CARS, {"type": car_type})


@router.get("/fuel-type/{fuel_type}", dependencies=[Depends(cache_control(300))])
def cars_by_fuel_type(fuel_type: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch cars by fuel type"):
        return get_documents(db, CARS, {"fuelType": fuel_type})


@router.get("/tag/{tag}", dependencies=[Depends(cache_control(300))])
def cars_by_tag(tag: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch cars by tag"):
        return get_documents(db, CARS, {"tags": tag})


@router.get("/brand/{brand}", dependencies=[Depends(cache_control(300))])
def cars_by_brand(brand: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch cars by brand"):
        return get_documents(db, CARS, {"brand": brand})


@router.get("/category/{category_id}", dependencies=[Depends(cache_control(300))])
def cars_by_category(category_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch cars by category"):
        return get_documents(db, CARS, {"categories": category_id})


@router.get("/search", dependencies=[Depends(cache_control(60))])
def search_cars(query: str = "", db: Database = Depends(get_db)):
    if not query:
        return []
    pattern = {"$regex": re.escape(query), "$options": "i"}
    filter_dict = {"$or": [{field: pattern} for field in SEARCH_FIELDS]}
    with store_errors("Internal server error"):
        return get_documents(db, CARS, filter_dict, limit=SEARCH_LIMIT)


@router.get("", dependencies=[Depends(cache_control(300))])
def list_cars(brand: Optional[str] = None, transmission: Optional[str] = None,
              car_type: Optional[str] = Query(None, alias="type"),
              fuelType: Optional[str] = None, available: Optional[str] = None,
              minPrice: Optional[float] = None, maxPrice: Optional[float] = None,
              db: Database = Depends(get_db)):
    filter_dict = {}
    if brand:
        filter_dict["brand"] = brand
    if transmission:
        filter_dict["transmission"] = transmission
    if car_type:
        filter_dict["type"] = car_type
    if fuelType:
        filter_dict["fuelType"] = fuelType
    if available is not None:
        filter_dict["available"] = available == "true"
    with store_errors("Failed to fetch cars"):
        cars = get_documents(db, CARS, filter_dict)
    return [c for c in cars if _in_price_range(c, minPrice, maxPrice)]


@router.get("/admin/analytics")
async def analytics(db: Database = Depends(get_db), user: dict = Depends(require_staff)):
    logger.info("Analytics requested by %s", user.get("email"))
    try:
        loop = asyncio.get_running_loop()
        # On timeout the future is abandoned; counts already issued still run to completion
        counts = await asyncio.wait_for(loop.run_in_executor(None, _count_collections, db),
                                        timeout=settings.ANALYTICS_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error("Analytics request timed out")
        raise APIError(504, "Request timed out",
                       details="The analytics request took too long to process")
    return counts


@router.post("/admin/bulk-update", dependencies=[Depends(cache_control(0))])
def bulk_update(payload: BulkUpdateRequest, db: Database = Depends(get_db), user: dict = Depends(require_staff)):
    updates = payload.updates
    if not isinstance(updates, list) or not updates:
        raise APIError(400, "Invalid updates format")

    operations = []
    with store_errors("Failed to perform bulk update"):
        for index, entry in enumerate(updates):
            try:
                item = BulkUpdateItem.model_validate(entry)
            except ValidationError:
                logger.warning("Skipping invalid update at index %d", index)
                continue
            oid = object_id(item.id)
            data = item.data.model_dump(exclude_unset=True)
            if oid is None or not data:
                logger.warning("Skipping invalid update at index %d", index)
                continue
            if data.get("categories"):
                try:
                    _check_categories(db, data["categories"])
                except APIError as e:
                    logger.warning("Skipping update at index %d: %s", index, e.detail)
                    continue
            operations.append(UpdateOne({"_id": oid}, {"$set": data}))

        # Entries whose id matches no car count as skipped
        updated = db[CARS].bulk_write(operations).matched_count if operations else 0
    skipped = len(updates) - updated
    logger.info("Bulk update by %s: %d applied, %d skipped", user.get("email"), updated, skipped)
    return {
        "success": True,
        "message": f"Updated {updated} cars",
        "updated": updated,
        "skipped": skipped,
    }


@router.delete("/admin/{car_id}", dependencies=[Depends(require_staff), Depends(cache_control(0))])
def admin_delete_car(car_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to delete car"):
        doc = find_by_id(db, CARS, car_id)
        if not doc:
            raise APIError(404, "Car not found")
        db[CARS].delete_one({"_id": doc["_id"]})
    logger.info("Car %s deleted", car_id)
    return {"success": True, "message": "Car deleted successfully", "id": car_id}


@router.get("/{car_id}", dependencies=[Depends(cache_control(300))])
def get_car(car_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch car"):
        doc = find_by_id(db, CARS, car_id)
    if not doc:
        raise APIError(404, "Car not found")
    return serialize(doc)


@router.post("", status_code=201, dependencies=[Depends(cache_control(0))])
def create_car(payload: Car, db: Database = Depends(get_db)):
    car = payload.model_dump()
    with store_errors("Failed to create car"):
        _check_categories(db, car["categories"])
        car_id = create_document(db, CARS, car)
    return {"id": car_id, **car}


@router.put("/{car_id}", dependencies=[Depends(cache_control(0))])
def update_car(car_id: str, payload: CarUpdate, db: Database = Depends(get_db)):
    updates = payload.model_dump(exclude_unset=True)
    with store_errors("Failed to update car"):
        doc = find_by_id(db, CARS, car_id)
        if not doc:
            raise APIError(404, "Car not found")
        if updates.get("categories"):
            _check_categories(db, updates["categories"])
        if updates:
            db[CARS].update_one({"_id": doc["_id"]}, {"$set": updates})
    return {"id": car_id, **updates}


@router.delete("/{car_id}", dependencies=[Depends(cache_control(0))])
def delete_car(car_id: str, db: Database = Depends(get_db)):
    oid = object_id(car_id)
    with store_errors("Failed to delete car"):
        res = db[CARS].delete_one({"_id": oid}) if oid is not None else None
    if res is None or res.deleted_count == 0:
        raise APIError(404, "Car not found")
    return {"message": "Car deleted successfully"}


@router.post("/{car_id}/categories/{category_id}",
             dependencies=[Depends(require_staff), Depends(cache_control(0))])
def add_car_category(car_id: str, category_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to add category"):
        car = find_by_id(db, CARS, car_id)
        if not car:
            raise APIError(404, "Car not found")
        if find_by_id(db, CATEGORIES, category_id) is None:
            raise APIError(404, "Category not found")
        if category_id in car.get("categories", []):
            raise APIError(400, "Category already added to this car")
        db[CARS].update_one({"_id": car["_id"]}, {"$addToSet": {"categories": category_id}})
    return {"message": "Category added successfully"}


@router.delete("/{car_id}/categories/{category_id}",
               dependencies=[Depends(require_staff), Depends(cache_control(0))])
def remove_car_category(car_id: str, category_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to remove category"):
        car = find_by_id(db, CARS, car_id)
        if not car:
            raise APIError(404, "Car not found")
        db[CARS].update_one({"_id": car["_id"]}, {"$pull": {"categories": category_id}})
    return {"message": "Category removed successfully"}
