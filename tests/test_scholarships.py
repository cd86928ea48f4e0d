import pytest
from bson import ObjectId

from schemas import REQUIRED_SCHOLARSHIP_FIELDS
from tests.conftest import make_scholarship


def seed(db, count, **overrides):
    return [db["scholarships"].insert_one(make_scholarship(scholarshipName=f"Award {i}", **overrides)).inserted_id
            for i in range(count)]


def test_root_liveness(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.text == "ScholarLink Server is running..."


def test_listing_paginates(client, db):
    seed(db, 23)
    res = client.get("/scholarships", params={"page": 3, "limit": 10})
    body = res.json()
    assert body["total"] == 23
    assert body["page"] == 3
    assert body["limit"] == 10
    assert body["totalPages"] == 3
    assert len(body["scholarships"]) == 3


def test_listing_defaults(client, db):
    seed(db, 12)
    body = client.get("/scholarships").json()
    assert (body["page"], body["limit"], body["totalPages"]) == (1, 10, 2)
    assert len(body["scholarships"]) == 10


def test_empty_search_matches_everything(client, db):
    seed(db, 4)
    assert client.get("/scholarships", params={"search": ""}).json()["total"] == 4


def test_search_is_case_insensitive_across_fields(client, db):
    db["scholarships"].insert_one(make_scholarship(scholarshipName="Rhodes", universityName="Oxford", degree="PhD"))
    db["scholarships"].insert_one(make_scholarship(scholarshipName="Fulbright", universityName="MIT", degree="Masters"))
    db["scholarships"].insert_one(make_scholarship(scholarshipName="Chevening", universityName="LSE", degree="Bachelor"))
    assert client.get("/scholarships", params={"search": "rhod"}).json()["total"] == 1
    assert client.get("/scholarships", params={"search": "mit"}).json()["total"] == 1
    assert client.get("/scholarships", params={"search": "phd"}).json()["total"] == 1
    assert client.get("/scholarships", params={"search": "zzz"}).json()["total"] == 0


def test_search_treats_input_literally(client, db):
    db["scholarships"].insert_one(make_scholarship(scholarshipName="C++ Grant"))
    assert client.get("/scholarships", params={"search": "c++"}).json()["total"] == 1


def test_listing_attaches_average_rating(client, db):
    rated, unrated = seed(db, 2)
    for r in (3, 4, 5):
        db["reviews"].insert_one({"scholarshipId": str(rated), "rating": r})
    items = {s["_id"]: s for s in client.get("/scholarships").json()["scholarships"]}
    assert items[str(rated)]["averageRating"] == 4.0
    assert items[str(unrated)]["averageRating"] is None


def test_top_scholarships_order_and_size(client, db):
    db["scholarships"].insert_one(make_scholarship(scholarshipName="cheap-old", applicationFee=5, postDate="2026-01-01"))
    db["scholarships"].insert_one(make_scholarship(scholarshipName="cheap-new", applicationFee=5, postDate="2026-05-01"))
    for fee in (100, 90, 80, 70, 60):
        db["scholarships"].insert_one(make_scholarship(scholarshipName=f"fee-{fee}", applicationFee=fee))
    res = client.get("/top-scholarships").json()
    assert len(res) == 6
    assert [s["scholarshipName"] for s in res[:3]] == ["cheap-new", "cheap-old", "fee-60"]
    assert all("averageRating" in s for s in res)


def test_all_scholarships(client, db):
    seed(db, 3)
    assert len(client.get("/all-scholarships").json()) == 3


def test_get_scholarship_requires_token(client, db, user_headers):
    (_id,) = seed(db, 1)
    assert client.get(f"/scholarships/{_id}").status_code == 401
    res = client.get(f"/scholarships/{_id}", headers=user_headers)
    assert res.status_code == 200
    assert res.json()["_id"] == str(_id)
    assert client.get(f"/scholarships/{ObjectId()}", headers=user_headers).status_code == 404


def test_create_scholarship_stamps_created_at(client, db):
    res = client.post("/scholarships", json=make_scholarship())
    assert res.status_code == 200
    doc = db["scholarships"].find_one({"_id": ObjectId(res.json()["insertedId"])})
    assert doc["createdAt"] is not None


@pytest.mark.parametrize("field", ["degree", "universityImage", "postedBy"])
def test_create_scholarship_names_missing_field(client, field):
    body = make_scholarship()
    del body[field]
    res = client.post("/scholarships", json=body)
    assert res.status_code == 400
    assert res.json() == {"error": f"Missing field: {field}"}


def test_create_scholarship_reports_first_missing_field(client):
    body = make_scholarship()
    del body["degree"]
    del body["city"]
    res = client.post("/scholarships", json=body)
    assert res.json()["error"] == "Missing field: city"
    assert REQUIRED_SCHOLARSHIP_FIELDS.index("city") < REQUIRED_SCHOLARSHIP_FIELDS.index("degree")


def test_update_scholarship(client, db):
    (_id,) = seed(db, 1)
    res = client.put(f"/scholarships/{_id}", json={"city": "London", "_id": "ignored"})
    assert res.status_code == 200
    assert res.json() == {"message": "Scholarship updated successfully"}
    assert db["scholarships"].find_one({"_id": _id})["city"] == "London"


def test_update_missing_scholarship_is_404(client):
    res = client.put(f"/scholarships/{ObjectId()}", json={"city": "London"})
    assert res.status_code == 404


def test_delete_scholarship(client, db):
    (_id,) = seed(db, 1)
    res = client.delete(f"/scholarships/{_id}")
    assert res.status_code == 200
    assert res.json() == {"message": "Scholarship deleted successfully"}
    assert client.get("/all-scholarships").json() == []

    res = client.delete(f"/scholarships/{_id}")
    assert res.status_code == 404
    assert res.json() == {"error": "Scholarship not found"}


def test_listing_survives_non_finite_rating(client, db):
    (_id,) = seed(db, 1)
    db["reviews"].insert_one({"scholarshipId": str(_id), "rating": "Infinity"})
    res = client.get("/scholarships")
    assert res.status_code == 200
    assert res.json()["scholarships"][0]["averageRating"] is None
    assert client.get("/top-scholarships").status_code == 200
