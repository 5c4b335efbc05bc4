from tests.fakes import SHIPPING_ADDRESS, auth_headers

BASE = "/api/account/addresses/"


def _add(client, headers, **overrides):
    payload = dict(SHIPPING_ADDRESS, **overrides)
    response = client.post(BASE, json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["address"]


def test_requires_login(client):
    assert client.get(BASE).status_code == 401


def test_first_address_becomes_default(client, user_headers):
    first = _add(client, user_headers)
    second = _add(client, user_headers, label="Office")

    assert first["isDefault"] is True
    assert second["isDefault"] is False
    assert second["label"] == "Office"


def test_new_default_replaces_old(client, user_headers):
    first = _add(client, user_headers)
    second = _add(client, user_headers, isDefault=True)

    addresses = client.get(BASE, headers=user_headers).json()["addresses"]

    assert [a["id"] for a in addresses] == [second["id"], first["id"]]
    assert [a["isDefault"] for a in addresses] == [True, False]


def test_make_default(client, user_headers):
    first = _add(client, user_headers)
    second = _add(client, user_headers)

    response = client.post(f"{BASE}{second['id']}/make-default", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["address"]["isDefault"] is True
    assert client.get(f"{BASE}{first['id']}", headers=user_headers).json()["address"]["isDefault"] is False


def test_deleting_default_promotes_another(client, user_headers):
    first = _add(client, user_headers)
    second = _add(client, user_headers)

    assert client.delete(f"{BASE}{first['id']}", headers=user_headers).status_code == 200

    addresses = client.get(BASE, headers=user_headers).json()["addresses"]
    assert len(addresses) == 1
    assert addresses[0]["id"] == second["id"]
    assert addresses[0]["isDefault"] is True


def test_update_address(client, user_headers):
    address = _add(client, user_headers)

    response = client.patch(f"{BASE}{address['id']}", json={"city": "Nagpur", "pincode": "440001"}, headers=user_headers)

    assert response.status_code == 200
    assert response.json()["address"]["city"] == "Nagpur"
    assert response.json()["address"]["pincode"] == "440001"
    assert response.json()["address"]["fullName"] == "Asha Verma"


def test_update_ignores_null_required_fields(client, user_headers):
    address = _add(client, user_headers, landmark="Near City Mall")

    response = client.patch(
        f"{BASE}{address['id']}",
        json={"fullName": None, "pincode": None, "isDefault": None, "landmark": None},
        headers=user_headers,
    )

    assert response.status_code == 200
    updated = response.json()["address"]
    assert updated["fullName"] == "Asha Verma"
    assert updated["pincode"] == "411001"
    assert updated["isDefault"] is True
    assert updated["landmark"] is None


def test_default_cannot_be_unset_directly(client, user_headers):
    first = _add(client, user_headers)
    second = _add(client, user_headers)

    response = client.patch(f"{BASE}{first['id']}", json={"isDefault": False, "label": "Old home"}, headers=user_headers)

    assert response.status_code == 200
    assert response.json()["address"]["isDefault"] is True
    assert response.json()["address"]["label"] == "Old home"

    response = client.patch(f"{BASE}{second['id']}", json={"isDefault": False}, headers=user_headers)
    assert response.json()["address"]["isDefault"] is False


def test_validation(client, user_headers):
    response = client.post(BASE, json=dict(SHIPPING_ADDRESS, pincode="4110"), headers=user_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert "pincode" in body["errors"]


def test_other_users_address_is_hidden(client, session, user_headers, other_user):
    address = _add(client, user_headers)
    other = auth_headers(session, other_user)

    assert client.get(f"{BASE}{address['id']}", headers=other).status_code == 404
    assert client.delete(f"{BASE}{address['id']}", headers=other).json() == {"error": "Address not found"}
