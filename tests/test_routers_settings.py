"""
test_routers_settings.py — Tests for printshop/routers/settings.py

Called by: pytest
Depends on: printshop/routers/settings.py, tests/conftest.py
"""

WEIGHTS_URL = "/api/settings/scoring-weights"


class TestScoringWeightsApi:
    def test_staff_reads_defaults(self, client):
        resp = client.get(WEIGHTS_URL)
        assert resp.status_code == 200
        assert resp.json() == {
            "price": 40,
            "rating": 30,
            "delivery_time": 20,
            "reliability": 10,
            "total": 100,
        }

    def test_admin_updates(self, admin_client):
        resp = admin_client.put(
            WEIGHTS_URL, json={"price": 10, "rating": 40, "deliveryTime": 30, "reliability": 20}
        )
        assert resp.status_code == 200
        assert resp.json()["delivery_time"] == 30
        assert admin_client.get(WEIGHTS_URL).json()["rating"] == 40

    def test_bad_sum_is_invalid_configuration(self, admin_client):
        resp = admin_client.put(
            WEIGHTS_URL, json={"price": 50, "rating": 30, "delivery_time": 20, "reliability": 10}
        )
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == "invalid_configuration"
        assert "sum to 100" in body["detail"]["message"]

    def test_out_of_range_value(self, admin_client):
        resp = admin_client.put(
            WEIGHTS_URL, json={"price": 140, "rating": -20, "delivery_time": -20, "reliability": 0}
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_staff_cannot_update(self, client):
        resp = client.put(
            WEIGHTS_URL, json={"price": 25, "rating": 25, "delivery_time": 25, "reliability": 25}
        )
        assert resp.status_code == 403

    def test_customer_cannot_read(self, customer_client):
        assert customer_client.get(WEIGHTS_URL).status_code == 403
