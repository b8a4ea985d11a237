from fastapi import status
from tests.conf_tests import client, clear_db, auth_headers, other_tenant_headers

WEEK = [
    {"day_of_week": 0, "is_closed": True},
    {"day_of_week": 5, "open_time": "20:00:00", "close_time": "04:00:00"},
    {"day_of_week": 6, "open_time": "18:00:00", "close_time": "02:00:00"},
]


def test_get_business_hours_empty(auth_headers):
    response = client.get("/business-hours/", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == []


def test_replace_business_hours(auth_headers):
    response = client.put("/business-hours/", json={"hours": WEEK}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [day["day_of_week"] for day in data] == [0, 5, 6]
    assert data[0]["is_closed"] is True
    assert data[0]["open_time"] is None
    assert data[1]["close_time"] == "04:00:00"

    response = client.put("/business-hours/", json={"hours": WEEK[:1]}, headers=auth_headers)
    assert [day["day_of_week"] for day in response.json()] == [0]


def test_business_hours_are_tenant_scoped(auth_headers, other_tenant_headers):
    client.put("/business-hours/", json={"hours": WEEK}, headers=auth_headers)
    response = client.get("/business-hours/", headers=other_tenant_headers)
    assert response.json() == []


def test_open_day_requires_times(auth_headers):
    response = client.put(
        "/business-hours/", json={"hours": [{"day_of_week": 2, "open_time": "10:00:00"}]}, headers=auth_headers
    )
    assert response.status_code == 422


def test_day_of_week_range(auth_headers):
    response = client.put(
        "/business-hours/", json={"hours": [{"day_of_week": 7, "is_closed": True}]}, headers=auth_headers
    )
    assert response.status_code == 422


def test_duplicate_days_rejected(auth_headers):
    response = client.put("/business-hours/", json={"hours": [WEEK[0], WEEK[0]]}, headers=auth_headers)
    assert response.status_code == 422


def test_business_hours_unauthorized():
    response = client.get("/business-hours/")
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]
