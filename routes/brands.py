from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import BRANDS, create_document, find_by_id, get_db, get_documents, object_id, serialize, store_errors
from errors import APIError
from schemas import Brand, BrandUpdate

router = APIRouter()

TEXT_FIELDS = {"name", "logo", "slug"}


@router.get("/slug/{slug}")
def get_brand_by_slug(slug: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch brand by slug"):
        return serialize(db[BRANDS].find_one({"slug": slug}))


@router.get("/featured")
def featured_brands(db: Database = Depends(get_db)):
    with store_errors("Failed to fetch featured brands"):
        return get_documents(db, BRANDS, {"featured": True})


@router.get("")
def list_brands(db: Database = Depends(get_db)):
    with store_errors("Failed to fetch brands"):
        return get_documents(db, BRANDS)


@router.get("/{brand_id}")
def get_brand(brand_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch brand"):
        doc = find_by_id(db, BRANDS, brand_id)
    if not doc:
        raise APIError(404, "Brand not found")
    return serialize(doc)


@router.post("", status_code=201)
def create_brand(payload: Brand, db: Database = Depends(get_db)):
    brand = {**payload.model_dump(), "carCount": 0}
    with store_errors("Failed to create brand"):
        brand_id = create_document(db, BRANDS, brand)
    return {"id": brand_id, **brand}


@router.put("/{brand_id}")
def update_brand(brand_id: str, payload: BrandUpdate, db: Database = Depends(get_db)):
    # Only provided values are applied; blank name/logo/slug leave the stored value alone
    updates = {k: v for k, v in payload.model_dump(exclude_none=True).items()
               if v != "" or k not in TEXT_FIELDS}
    oid = object_id(brand_id)
    with store_errors("Failed to update brand"):
        found = oid is not None and db[BRANDS].find_one({"_id": oid}, {"_id": 1}) is not None
        if found and updates:
            db[BRANDS].update_one({"_id": oid}, {"$set": updates})
    if not found:
        raise APIError(404, "Brand not found")
    return {"id": brand_id, **updates}


@router.delete("/{brand_id}")
def delete_brand(brand_id: str, db: Database = Depends(get_db)):
    oid = object_id(brand_id)
    with store_errors("Failed to delete brand"):
        res = db[BRANDS].delete_one({"_id": oid}) if oid is not None else None
    if res is None or res.deleted_count == 0:
        raise APIError(404, "Brand not found")
    return {"message": "Brand deleted successfully"}
