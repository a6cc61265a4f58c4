from datetime import datetime

import pytest

from conftest import auth_headers, make_booking, make_service
from servicehub.models import Feedback


@pytest.fixture
def activity(db, admin, customer):
    cleaning = make_service(db, admin, price=100.0)
    plumbing = make_service(db, admin, name="Pipe Fix", category="Plumbing", price=250.0)
    make_booking(db, customer, cleaning, status="completed", total_price=100.0, created_at=datetime(2030, 1, 5))
    make_booking(db, customer, plumbing, status="completed", total_price=250.0, created_at=datetime(2030, 1, 20))
    make_booking(db, customer, plumbing, status="completed", total_price=80.0, created_at=datetime(2030, 3, 2))
    make_booking(db, customer, cleaning, status="cancelled", total_price=500.0, created_at=datetime(2030, 2, 1))
    db.add(Feedback(user_id=customer.id, rating=5, comment="great"))
    db.commit()


class TestDashboard:
    def test_revenue_counts_completed_only(self, client, admin, activity):
        response = client.get("/api/dashboard/revenue", headers=auth_headers(admin))
        assert response.json() == {"total": 430.0}

    def test_counts(self, client, admin, activity):
        headers = auth_headers(admin)
        assert client.get("/api/dashboard/services/count", headers=headers).json() == {"count": 2}
        assert client.get("/api/dashboard/feedbacks/count", headers=headers).json() == {"count": 1}

    @pytest.mark.parametrize("path", ["/api/dashboard/services/category-stats", "/api/dashboard/services/category"])
    def test_category_stats(self, client, admin, activity, path):
        assert client.get(path, headers=auth_headers(admin)).json() == {"Cleaning": 1, "Plumbing": 1}

    @pytest.mark.parametrize("path", ["/api/dashboard/bookings/monthly-revenue", "/api/dashboard/bookings/monthly"])
    def test_monthly_revenue(self, client, admin, activity, path):
        assert client.get(path, headers=auth_headers(admin)).json() == {"2030-01": 350.0, "2030-03": 80.0}

    def test_empty(self, client, admin):
        assert client.get("/api/dashboard/revenue", headers=auth_headers(admin)).json() == {"total": 0.0}

    def test_admin_only(self, client, customer):
        assert client.get("/api/dashboard/revenue", headers=auth_headers(customer)).status_code == 403
