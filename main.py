import logging
import math
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Depends, Body, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pymongo.database import Database

from aggregates import daily_counts, page_params, total_pages, with_ratings
from auth import verify_token, verify_admin
from config import Settings
from database import (
    APPLICATIONS,
    REVIEWS,
    SCHOLARSHIPS,
    USERS,
    connect,
    delete_result,
    get_db,
    insert_result,
    oid,
    serialize,
    update_result,
)
from errors import BadRequest, InternalError, NotFound, register_error_handlers
from identity import FirebaseVerifier
from payments import PaymentError, StripePayments, to_minor_units
from schemas import (
    REQUIRED_APPLICATION_FIELDS,
    REQUIRED_SCHOLARSHIP_FIELDS,
    PaymentIntentRequest,
    RoleUpdateRequest,
    StatusUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------- Helpers ----------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_payments(request: Request):
    payments = getattr(request.app.state, "payments", None)
    if payments is None:
        raise InternalError("Payment processor not configured")
    return payments


def without_id(body: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in body.items() if k != "_id"}


def all_reviews(db: Database):
    return list(db[REVIEWS].find())


# ---------- App factory ----------

def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None,
               verifier=None, payments=None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if app.state.db is None:
            client = connect(settings.mongodb_uri)
            app.state.db = client[settings.db_name]
        if app.state.verifier is None:
            app.state.verifier = FirebaseVerifier.from_service_key(settings.fb_service_key)
        if app.state.payments is None:
            app.state.payments = StripePayments(settings.stripe_secret_key, settings.payment_currency)
        logger.info("ScholarLink API started")
        try:
            yield
        finally:
            if client is not None:
                client.close()
                logger.info("MongoDB client closed")

    app = FastAPI(title="ScholarLink API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database
    app.state.verifier = verifier
    app.state.payments = payments

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    return app


# ---------- Basic Routes ----------

@router.get("/", response_class=PlainTextResponse)
def root():
    return "ScholarLink Server is running..."


# ---------- Payments ----------

@router.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentRequest, payments=Depends(get_payments)):
    if not payload.amount or not math.isfinite(payload.amount) or payload.amount <= 0:
        raise BadRequest("Amount is required")
    try:
        client_secret = payments.create_intent(to_minor_units(payload.amount))
    except PaymentError:
        raise InternalError("Failed to create payment intent")
    return {"clientSecret": client_secret}


# ---------- Users ----------

@router.get("/users/by-email")
def get_user_by_email(email: Optional[str] = None, decoded=Depends(verify_token),
                      db: Database = Depends(get_db)):
    if not email:
        raise BadRequest("Email query param is required")
    user = db[USERS].find_one({"email": email})
    if not user:
        raise NotFound("User not found")
    return serialize(user)


@router.get("/users")
def list_users(role: Optional[str] = None, admin=Depends(verify_admin),
               db: Database = Depends(get_db)):
    query = {"role": role} if role else {}
    return [serialize(u) for u in db[USERS].find(query)]


@router.get("/users/{email}/role")
def get_user_role(email: str, db: Database = Depends(get_db)):
    user = db[USERS].find_one({"email": email}, {"role": 1, "email": 1, "created_at": 1})
    if not user:
        raise NotFound("User not found")
    return serialize(user)


# The user mutation routes report counts instead of raising NotFound;
# callers inspect matchedCount / deletedCount.
@router.patch("/users/{user_id}/role")
def update_user_role(user_id: str, payload: RoleUpdateRequest, db: Database = Depends(get_db)):
    result = db[USERS].update_one({"_id": oid(user_id)}, {"$set": {"role": payload.role}})
    return update_result(result)


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db)):
    return delete_result(db[USERS].delete_one({"_id": oid(user_id)}))


@router.post("/users")
def save_user(body: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    email = body.get("email")
    if not email:
        raise BadRequest("Email is required")
    if db[USERS].find_one({"email": email}):
        db[USERS].update_one({"email": email}, {"$set": {"last_logged_in": now_iso()}})
        return {"message": "User already exist", "inserted": False}
    user = without_id(body)
    user.setdefault("role", "user")
    user.setdefault("created_at", now_iso())
    user.setdefault("last_logged_in", user["created_at"])
    inserted_id = db[USERS].insert_one(user).inserted_id
    return {**insert_result(inserted_id), "inserted": True}


# ---------- Scholarships ----------

@router.get("/all-scholarships")
def all_scholarships(db: Database = Depends(get_db)):
    return [serialize(s) for s in db[SCHOLARSHIPS].find()]


@router.get("/scholarships")
def list_scholarships(search: Optional[str] = "", page: Optional[str] = None,
                      limit: Optional[str] = None, db: Database = Depends(get_db)):
    params = page_params(page, limit)
    pattern = {"$regex": re.escape(search or ""), "$options": "i"}
    query = {"$or": [
        {"scholarshipName": pattern},
        {"universityName": pattern},
        {"degree": pattern},
    ]}
    total = db[SCHOLARSHIPS].count_documents(query)
    cursor = db[SCHOLARSHIPS].find(query).skip(params["skip"]).limit(params["limit"])
    scholarships = with_ratings([serialize(s) for s in cursor], all_reviews(db))
    return {
        "scholarships": scholarships,
        "total": total,
        "page": params["page"],
        "limit": params["limit"],
        "totalPages": total_pages(total, params["limit"]),
    }


@router.get("/top-scholarships")
def top_scholarships(db: Database = Depends(get_db)):
    cursor = db[SCHOLARSHIPS].find().sort([("applicationFee", 1), ("postDate", -1)]).limit(6)
    return with_ratings([serialize(s) for s in cursor], all_reviews(db))


@router.get("/scholarships/{scholarship_id}")
def get_scholarship(scholarship_id: str, decoded=Depends(verify_token),
                    db: Database = Depends(get_db)):
    scholarship = db[SCHOLARSHIPS].find_one({"_id": oid(scholarship_id)})
    if not scholarship:
        raise NotFound("Scholarship not found")
    return serialize(scholarship)


@router.post("/scholarships")
def add_scholarship(body: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    for field in REQUIRED_SCHOLARSHIP_FIELDS:
        if not body.get(field):
            raise BadRequest(f"Missing field: {field}")
    scholarship = without_id(body)
    scholarship["createdAt"] = datetime.now(timezone.utc)
    return insert_result(db[SCHOLARSHIPS].insert_one(scholarship).inserted_id)


@router.put("/scholarships/{scholarship_id}")
def update_scholarship(scholarship_id: str, body: Dict[str, Any] = Body(...),
                       db: Database = Depends(get_db)):
    update = without_id(body)
    if not update:
        raise BadRequest("No fields to update")
    result = db[SCHOLARSHIPS].update_one({"_id": oid(scholarship_id)}, {"$set": update})
    if result.matched_count == 0:
        raise NotFound("Scholarship not found")
    return {"message": "Scholarship updated successfully"}


@router.delete("/scholarships/{scholarship_id}")
def delete_scholarship(scholarship_id: str, db: Database = Depends(get_db)):
    result = db[SCHOLARSHIPS].delete_one({"_id": oid(scholarship_id)})
    if result.deleted_count == 0:
        raise NotFound("Scholarship not found")
    return {"message": "Scholarship deleted successfully"}


# ---------- Applications ----------

@router.get("/applied-scholarships")
def list_applied_scholarships(sort: Optional[str] = None, decoded=Depends(verify_token),
                              db: Database = Depends(get_db)):
    cursor = db[APPLICATIONS].find()
    if sort == "date":
        cursor = cursor.sort("date", -1)
    elif sort == "deadline":
        cursor = cursor.sort("deadline", 1)
    return [serialize(a) for a in cursor]


@router.get("/applications")
def list_user_applications(userEmail: Optional[str] = None, decoded=Depends(verify_token),
                           db: Database = Depends(get_db)):
    if not userEmail:
        raise BadRequest("userEmail query parameter is required")
    return [serialize(a) for a in db[APPLICATIONS].find({"userEmail": userEmail})]


@router.post("/applied-scholarships")
def submit_application(body: Dict[str, Any] = Body(...), db: Database = Depends(get_db)):
    if any(not body.get(f) for f in REQUIRED_APPLICATION_FIELDS):
        raise BadRequest("Missing required application fields")
    application = without_id(body)
    application["createdAt"] = datetime.now(timezone.utc)
    inserted_id = db[APPLICATIONS].insert_one(application).inserted_id
    return {"insertedId": str(inserted_id)}


@router.put("/applications/{app_id}")
def update_application(app_id: str, body: Dict[str, Any] = Body(...),
                       db: Database = Depends(get_db)):
    update = without_id(body)
    if not update:
        raise BadRequest("No fields to update")
    result = db[APPLICATIONS].update_one({"_id": oid(app_id)}, {"$set": update})
    if result.matched_count == 0:
        raise NotFound("Application not found")
    return update_result(result)


@router.patch("/applications/{app_id}")
def update_application_status(app_id: str, payload: StatusUpdateRequest,
                              db: Database = Depends(get_db)):
    result = db[APPLICATIONS].update_one(
        {"_id": oid(app_id)}, {"$set": {"applicationStatus": payload.applicationStatus}}
    )
    if result.matched_count == 0:
        raise NotFound("Application not found")
    return update_result(result)


@router.delete("/applications/{app_id}")
def delete_application(app_id: str, db: Database = Depends(get_db)):
    result = db[APPLICATIONS].delete_one({"_id": oid(app_id)})
    if result.deleted_count == 0:
        raise NotFound("Application not found")
    return delete_result(result)


# ---------- Stats & analytics ----------

@router.get("/stats")
def stats(db: Database = Depends(get_db)):
    return {
        "scholarshipsCount": db[SCHOLARSHIPS].estimated_document_count(),
        "applicationsCount": db[APPLICATIONS].estimated_document_count(),
        "reviewsCount": db[REVIEWS].estimated_document_count(),
        "usersCount": db[USERS].estimated_document_count(),
    }


@router.get("/analytics/applications-per-scholarship")
def applications_per_category(db: Database = Depends(get_db)):
    return list(db[APPLICATIONS].aggregate([
        {"$group": {"_id": "$subjectCategory", "count": {"$sum": 1}}},
        {"$project": {"_id": 0, "scholarshipName": "$_id", "count": 1}}
    ]))


@router.get("/analytics/user-roles")
def user_roles(db: Database = Depends(get_db)):
    return list(db[USERS].aggregate([
        {"$group": {"_id": "$role", "count": {"$sum": 1}}},
        {"$project": {"_id": 0, "role": "$_id", "count": 1}}
    ]))


@router.get("/analytics/daily-applications")
def daily_applications(db: Database = Depends(get_db)):
    return daily_counts(a.get("date") for a in db[APPLICATIONS].find({}, {"date": 1}))


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
