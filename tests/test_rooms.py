import pytest
from fastapi import status
from app.models.room import Room
from tests.conf_tests import client, clear_db, test_db, auth_headers, other_tenant_headers, at, make_booking, make_room


@pytest.fixture
def test_room(test_db):
    return make_room(test_db, "Room A", capacity=10, category="Premium")


# Tests
def test_create_room_unauthorized():
    response = client.post(
        "/rooms/", json={"name": "Room B", "capacity": 5}
    )
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


def test_create_room_success(auth_headers):
    room_data = {"name": "Room B", "capacity": 5, "category": "VIP", "price_per_hour": 45}
    response = client.post("/rooms/", json=room_data, headers=auth_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["tenant_id"] == 1
    assert data["category"] == "VIP"
    assert data["is_active"] is True


def test_create_room_duplicate_name(auth_headers, test_room):
    response = client.post("/rooms/", json={"name": test_room.name, "capacity": 5}, headers=auth_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_same_room_name_in_other_tenant(other_tenant_headers, test_room):
    response = client.post("/rooms/", json={"name": test_room.name, "capacity": 5}, headers=other_tenant_headers)
    assert response.status_code == status.HTTP_201_CREATED


def test_get_rooms_with_data(auth_headers, test_room):
    response = client.get("/rooms/", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == test_room.id
    assert data[0]["name"] == test_room.name


def test_get_rooms_hides_inactive(auth_headers, test_db, test_room):
    make_room(test_db, "Closed Room", is_active=False)
    response = client.get("/rooms/", headers=auth_headers)
    assert [room["id"] for room in response.json()] == [test_room.id]
    response = client.get("/rooms/?include_inactive=true", headers=auth_headers)
    assert len(response.json()) == 2


def test_get_rooms_other_tenant(other_tenant_headers, test_room):
    response = client.get("/rooms/", headers=other_tenant_headers)
    assert response.json() == []


def test_get_room_success(auth_headers, test_room):
    response = client.get(f"/rooms/{test_room.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == test_room.id
    assert data["capacity"] == test_room.capacity
    assert data["category"] == test_room.category


def test_get_room_not_found(auth_headers):
    response = client.get("/rooms/9999", headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Room not found"


def test_update_room_unauthorized(test_room):
    response = client.put(f"/rooms/{test_room.id}", json={"name": "Updated Name"})
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


def test_update_room_success(auth_headers, test_room):
    update_data = {
        "name": "Updated Room",
        "capacity": 15,
        "category": "VIP",
    }
    response = client.put(
        f"/rooms/{test_room.id}", json=update_data, headers=auth_headers
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["name"] == update_data["name"]
    assert data["capacity"] == update_data["capacity"]
    assert data["category"] == update_data["category"]


def test_partial_update_room(auth_headers, test_room):
    update_data = {"capacity": 20}
    response = client.put(
        f"/rooms/{test_room.id}", json=update_data, headers=auth_headers
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["capacity"] == 20
    assert data["name"] == test_room.name
    assert data["category"] == test_room.category


def test_update_room_not_found(auth_headers):
    response = client.put(
        "/rooms/9999", json={"name": "Non-existent Room"}, headers=auth_headers
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_delete_room_unauthorized(test_room):
    response = client.delete(f"/rooms/{test_room.id}")
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


def test_delete_room_success(auth_headers, test_room, test_db):
    room_id = test_room.id
    response = client.delete(f"/rooms/{room_id}", headers=auth_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    test_db.expire_all()
    deleted_room = test_db.query(Room).filter(Room.id == room_id).first()
    assert deleted_room is None


def test_delete_room_with_bookings(auth_headers, test_room, test_db):
    make_booking(test_db, test_room, at(18), at(20))
    response = client.delete(f"/rooms/{test_room.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_delete_room_not_found(auth_headers):
    response = client.delete("/rooms/9999", headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
