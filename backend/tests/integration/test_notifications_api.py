"""
Integration tests for the notification feed API.
"""

from unittest.mock import patch

from tests.utils import auth_headers, create_notification, create_user


class TestNotificationFeed:

    def test_feed_and_unread_count(self, client, db_session):
        user = create_user(db_session, "doc@example.com")
        create_notification(db_session, user, title="old", read=True)
        create_notification(db_session, user, title="new")

        response = client.get("/api/notifications", headers=auth_headers(user))

        assert response.status_code == 200
        data = response.json()
        assert [n["title"] for n in data["notifications"]] == ["new", "old"]
        assert data["unread_count"] == 1

    def test_limit_bounds(self, client, db_session):
        user = create_user(db_session, "doc@example.com")

        assert client.get("/api/notifications", params={"limit": 0}, headers=auth_headers(user)).status_code == 400
        assert client.get("/api/notifications", params={"limit": 51}, headers=auth_headers(user)).status_code == 400

    def test_requires_authentication(self, client):
        assert client.get("/api/notifications").status_code == 401


class TestMarkRead:

    def test_mark_read_returns_server_count(self, client, db_session):
        user = create_user(db_session, "doc@example.com")
        first = create_notification(db_session, user, title="first")
        create_notification(db_session, user, title="second")

        response = client.post(f"/api/notifications/{first.id}/read", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["notification"]["read"] is True
        assert response.json()["unread_count"] == 1

    def test_count_uses_the_fetched_window(self, client, db_session):
        user = create_user(db_session, "doc@example.com")
        notifications = [create_notification(db_session, user, title=f"n{i}") for i in range(12)]

        feed = client.get("/api/notifications", params={"limit": 20}, headers=auth_headers(user)).json()
        response = client.post(
            f"/api/notifications/{notifications[0].id}/read", params={"limit": 20}, headers=auth_headers(user),
        )

        assert feed["unread_count"] == 12
        assert response.json()["unread_count"] == 11

    def test_failed_write_reports_error_and_keeps_count(self, client, db_session):
        user = create_user(db_session, "doc@example.com")
        notification = create_notification(db_session, user)

        with patch(
            "services.notification_service.NotificationService.mark_as_read",
            side_effect=RuntimeError("database unavailable"),
        ):
            response = client.post(f"/api/notifications/{notification.id}/read", headers=auth_headers(user))

        assert response.status_code == 500
        feed = client.get("/api/notifications", headers=auth_headers(user)).json()
        assert feed["unread_count"] == 1

    def test_cannot_mark_other_users_notification(self, client, db_session):
        user = create_user(db_session, "doc@example.com")
        other = create_user(db_session, "other@example.com")
        notification = create_notification(db_session, other)

        response = client.post(f"/api/notifications/{notification.id}/read", headers=auth_headers(user))

        assert response.status_code == 404

    def test_mark_all_read(self, client, db_session):
        user = create_user(db_session, "doc@example.com")
        create_notification(db_session, user)
        create_notification(db_session, user)

        response = client.post("/api/notifications/read-all", headers=auth_headers(user))

        assert response.json() == {"updated": 2, "unread_count": 0}
        assert client.get("/api/notifications", headers=auth_headers(user)).json()["unread_count"] == 0
