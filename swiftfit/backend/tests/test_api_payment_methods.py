from swiftfit_api.db import models


def _card(student_id, card_id="ccof:abc", **extra):
    return {"studentProfileId": student_id, "squareCardId": card_id, "cardBrand": "VISA", "last4": "4242", **extra}


def test_create_and_list_cards(api_client, make_profile):
    client, act_as = api_client
    student = make_profile()
    act_as(student)

    first = client.post("/api/payment-methods", json=_card(student.id, isDefault=True))
    second = client.post("/api/payment-methods", json=_card(student.id, "ccof:def", isDefault=True))

    assert first.status_code == 201
    assert second.status_code == 201
    listed = client.get("/api/payment-methods").json()
    assert [(card["squareCardId"], card["isDefault"]) for card in listed] == [
        ("ccof:abc", False),
        ("ccof:def", True),
    ]
    single = client.get("/api/payment-methods", params={"id": first.json()["id"]}).json()
    assert single["squareCardId"] == "ccof:abc"


def test_card_validation(api_client, make_profile):
    client, act_as = api_client
    student = make_profile()
    act_as(student)
    client.post("/api/payment-methods", json=_card(student.id))

    duplicate = client.post("/api/payment-methods", json=_card(student.id))
    empty = client.post("/api/payment-methods", json=_card(student.id, "   "))
    missing = client.post("/api/payment-methods", json={"studentProfileId": student.id})
    bad_id = client.get("/api/payment-methods", params={"id": "x"})

    assert duplicate.json()["code"] == "DUPLICATE_SQUARE_CARD_ID"
    assert empty.json()["code"] == "EMPTY_SQUARE_CARD_ID"
    assert missing.json()["code"] == "MISSING_SQUARE_CARD_ID"
    assert bad_id.json()["code"] == "INVALID_ID"


def test_cards_belong_to_their_owner(api_client, make_profile):
    client, act_as = api_client
    owner, stranger = make_profile(), make_profile()
    act_as(owner)
    card_id = client.post("/api/payment-methods", json=_card(owner.id)).json()["id"]

    act_as(stranger)
    assert client.get("/api/payment-methods", params={"id": card_id}).status_code == 403
    assert client.post("/api/payment-methods", json=_card(owner.id, "ccof:new")).status_code == 403
    assert client.delete(f"/api/payment-methods/{card_id}").status_code == 403

    act_as(make_profile(models.UserRole.admin))
    assert client.delete(f"/api/payment-methods/{card_id}").status_code == 204
    assert client.get("/api/payment-methods", params={"id": card_id}).status_code == 404
