import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from identity import IdentityError
from main import create_app
from payments import PaymentError

ADMIN_EMAIL = "admin@example.com"
USER_EMAIL = "student@example.com"


class FakeVerifier:
    def __init__(self):
        self.tokens = {
            "admin-token": {"email": ADMIN_EMAIL, "uid": "a1"},
            "user-token": {"email": USER_EMAIL, "uid": "u1"},
        }

    def verify(self, token):
        if token not in self.tokens:
            raise IdentityError("invalid token")
        return self.tokens[token]


class FakePayments:
    def __init__(self):
        self.amounts = []
        self.fail = False

    def create_intent(self, amount_minor):
        if self.fail:
            raise PaymentError("card_declined")
        self.amounts.append(amount_minor)
        return f"pi_secret_{amount_minor}"


@pytest.fixture
def db():
    return mongomock.MongoClient()["scholarLinkDB"]


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def client(db, payments):
    app = create_app(Settings(cors_origins=["*"]), database=db, verifier=FakeVerifier(), payments=payments)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(db):
    db["users"].insert_one({"email": ADMIN_EMAIL, "role": "admin"})
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def user_headers(db):
    db["users"].insert_one({"email": USER_EMAIL, "role": "user"})
    return {"Authorization": "Bearer user-token"}


def make_scholarship(**overrides):
    doc = {
        "scholarshipName": "Global Excellence",
        "universityName": "Oxford University",
        "universityImage": "https://img.example.com/oxford.png",
        "country": "UK",
        "city": "Oxford",
        "worldRank": 3,
        "subjectCategory": "Engineering",
        "scholarshipCategory": "Full fund",
        "degree": "Masters",
        "applicationFee": 50,
        "serviceCharge": 10,
        "deadline": "2026-12-31",
        "postDate": "2026-01-15",
        "postedBy": "admin@example.com",
    }
    doc.update(overrides)
    return doc
