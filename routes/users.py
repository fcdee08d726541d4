from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import USERS, create_document, find_by_id, get_db, object_id, serialize, store_errors
from errors import APIError
from schemas import FavoriteIn, User, UserUpdate

router = APIRouter()


def serialize_user(doc) -> dict:
    user = serialize(doc)
    user.pop("password", None)
    return user


def _require_user(db: Database, user_id: str):
    oid = object_id(user_id)
    if oid is None or db[USERS].find_one({"_id": oid}, {"_id": 1}) is None:
        raise APIError(404, "User not found")
    return oid


@router.get("")
def list_users(db: Database = Depends(get_db)):
    with store_errors("Failed to fetch users"):
        return [serialize_user(u) for u in db[USERS].find({})]


@router.get("/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to fetch user"):
        doc = find_by_id(db, USERS, user_id)
    if not doc:
        raise APIError(404, "User not found")
    return serialize_user(doc)


@router.post("", status_code=201)
def create_user(payload: User, db: Database = Depends(get_db)):
    with store_errors("Failed to create user"):
        # Not atomic: two concurrent sign-ups with one email can both pass
        if db[USERS].find_one({"email": payload.email}):
            raise APIError(400, "Email already registered")
        user_doc = {
            **payload.model_dump(),
            "createdAt": datetime.now(timezone.utc),
            "rentals": [],
            "favorites": [],
        }
        user_id = create_document(db, USERS, user_doc)
    return {"id": user_id, **user_doc}


@router.put("/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Database = Depends(get_db)):
    updates = payload.model_dump(exclude_unset=True)
    with store_errors("Failed to update user"):
        oid = _require_user(db, user_id)
        if updates:
            db[USERS].update_one({"_id": oid}, {"$set": updates})
    return {"id": user_id, **updates}


@router.post("/{user_id}/favorites")
def add_favorite(user_id: str, payload: FavoriteIn, db: Database = Depends(get_db)):
    if not payload.carId:
        raise APIError(400, "Car ID is required")
    with store_errors("Failed to add car to favorites"):
        oid = _require_user(db, user_id)
        db[USERS].update_one({"_id": oid}, {"$addToSet": {"favorites": payload.carId}})
    return {"message": "Car added to favorites"}


@router.delete("/{user_id}/favorites/{car_id}")
def remove_favorite(user_id: str, car_id: str, db: Database = Depends(get_db)):
    with store_errors("Failed to remove car from favorites"):
        oid = _require_user(db, user_id)
        db[USERS].update_one({"_id": oid}, {"$pull": {"favorites": car_id}})
    return {"message": "Car removed from favorites"}
