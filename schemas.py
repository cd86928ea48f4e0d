"""
Database Schemas for the ScholarLink scholarship platform

Documents are stored as sent by the client, so only the shapes the API
validates itself are modelled here: reviews (checked by check_reviews.py)
and the request bodies with a fixed layout.

Collections: users, scholarships, appliedScholarships, reviews.
"""
from typing import Annotated, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, EmailStr

# String form of a scholarship ObjectId; the review/application join key
ObjectIdStr = Annotated[str, Field(pattern=r"^[0-9a-fA-F]{24}$")]

Role = Literal["user", "moderator", "admin"]

REQUIRED_SCHOLARSHIP_FIELDS = (
    "scholarshipName",
    "universityName",
    "universityImage",
    "country",
    "city",
    "worldRank",
    "subjectCategory",
    "scholarshipCategory",
    "degree",
    "applicationFee",
    "serviceCharge",
    "deadline",
    "postDate",
    "postedBy",
)

REQUIRED_APPLICATION_FIELDS = ("userEmail", "userId", "scholarshipId", "paymentId")


# ---------- Collections ----------

class Review(BaseModel):
    model_config = ConfigDict(extra="allow")

    scholarshipId: ObjectIdStr
    rating: float = Field(..., ge=0, le=5)
    userEmail: Optional[EmailStr] = None
    comment: Optional[str] = None


# ---------- Request bodies ----------

class PaymentIntentRequest(BaseModel):
    amount: Optional[float] = None


class RoleUpdateRequest(BaseModel):
    role: Role


class StatusUpdateRequest(BaseModel):
    # free-form; clients own the status vocabulary
    applicationStatus: str = Field(..., min_length=1)
