"""Auth endpoints: token handling, user sync, signup, profile and LINE link."""

from lms_api.utils.enums import UserRole


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestMissingCredentials:
    """Every guarded endpoint answers 401 with the failure envelope."""

    def test_no_header_returns_401(self, test_client):
        for method, path in [
            ("post", "/api/auth/sync"),
            ("post", "/api/auth/sync-user"),
            ("get", "/api/auth/user"),
            ("post", "/api/auth/verify-token"),
            ("put", "/api/auth/profile"),
            ("post", "/api/auth/line"),
            ("delete", "/api/auth/line"),
        ]:
            r = getattr(test_client, method)(path)
            assert r.status_code == 401, path
            assert r.json() == {"success": False, "error": "No token provided"}, path

    def test_non_bearer_scheme_returns_401(self, test_client):
        r = test_client.post("/api/auth/sync", headers={"Authorization": "Basic abc"})
        assert r.status_code == 401
        assert r.json()["success"] is False

    def test_invalid_token_returns_401(self, test_client):
        r = test_client.post("/api/auth/verify-token", headers=auth("forged"))
        assert r.status_code == 401
        assert r.json() == {"success": False, "error": "Invalid token"}
        assert r.headers.get("www-authenticate") == "Bearer"


class TestSync:
    def test_first_sync_creates_student(self, test_client, count_users):
        r = test_client.post("/api/auth/sync", headers=auth("new-token"))
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        user = body["user"]
        assert user["firebaseUid"] == "uid-new"
        assert user["email"] == "new@example.com"
        assert user["name"] == "New User"
        assert user["avatarUrl"] == "https://example.com/new.png"
        assert user["role"] == UserRole.STUDENT
        assert user["isActive"] is True
        assert user["emailVerified"] is True
        assert user["lastLoginAt"] is not None
        assert count_users() == 1

    def test_body_overrides_token_profile(self, test_client):
        r = test_client.post(
            "/api/auth/sync",
            headers=auth("new-token"),
            json={"name": "Custom", "image": "https://example.com/c.png", "emailVerified": False},
        )
        assert r.status_code == 200
        user = r.json()["user"]
        assert user["name"] == "Custom"
        assert user["avatarUrl"] == "https://example.com/c.png"
        assert user["emailVerified"] is False

    def test_repeated_sync_keeps_one_row(self, test_client, count_users):
        first = test_client.post("/api/auth/sync", headers=auth("new-token")).json()["user"]
        second = test_client.post("/api/auth/sync", headers=auth("new-token")).json()["user"]
        assert first["id"] == second["id"]
        assert count_users() == 1

    def test_sync_keeps_role(self, test_client, seed_user):
        seed_user("uid-student", "student@example.com", role=UserRole.INSTRUCTOR)
        r = test_client.post("/api/auth/sync", headers=auth("student-token"), json={"name": "Renamed"})
        assert r.status_code == 200
        user = r.json()["user"]
        assert user["name"] == "Renamed"
        assert user["role"] == UserRole.INSTRUCTOR
        assert user["isActive"] is True

    def test_deactivated_user_cannot_sync(self, test_client, seed_user, fetch_user):
        seed_user("uid-student", "student@example.com", name="Student", is_active=False)
        r = test_client.post("/api/auth/sync", headers=auth("student-token"), json={"name": "Renamed"})
        assert r.status_code == 403
        assert r.json() == {"success": False, "error": "User account is deactivated"}

        row = fetch_user("student@example.com")
        assert row.last_login_at is None
        assert row.name == "Student"
        assert row.is_active is False

    def test_token_without_email_is_rejected(self, test_client, count_users):
        r = test_client.post("/api/auth/sync", headers=auth("noemail-token"))
        assert r.status_code == 400
        assert r.json() == {"success": False, "error": "Account has no email address"}
        assert count_users() == 0

    def test_email_owned_by_other_account_conflicts(self, test_client, seed_user):
        seed_user("uid-other", "new@example.com")
        r = test_client.post("/api/auth/sync", headers=auth("new-token"))
        assert r.status_code == 409
        assert r.json()["success"] is False


class TestSyncUser:
    def test_returns_filtered_projection(self, test_client):
        r = test_client.post("/api/auth/sync-user", headers=auth("new-token"))
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert set(body["user"]) == {"id", "firebaseUid", "email", "name", "avatar", "role"}
        assert body["user"]["avatar"] == "https://example.com/new.png"
        assert body["user"]["role"] == UserRole.STUDENT

    def test_deactivated_user_is_forbidden(self, test_client, seed_user, fetch_user):
        seed_user("uid-student", "student@example.com", is_active=False)
        r = test_client.post("/api/auth/sync-user", headers=auth("student-token"))
        assert r.status_code == 403
        assert r.json() == {"success": False, "error": "User account is deactivated"}
        assert fetch_user("student@example.com").last_login_at is None


class TestGetUser:
    def test_unknown_user_returns_404(self, test_client):
        r = test_client.get("/api/auth/user", headers=auth("student-token"))
        assert r.status_code == 404
        assert r.json() == {"success": False, "error": "User not found"}

    def test_returns_local_row(self, test_client, student):
        r = test_client.get("/api/auth/user", headers=auth("student-token"))
        assert r.status_code == 200
        user = r.json()["user"]
        assert user["id"] == student
        assert user["email"] == "student@example.com"

    def test_deactivated_user_is_forbidden(self, test_client, seed_user):
        seed_user("uid-student", "student@example.com", is_active=False)
        r = test_client.get("/api/auth/user", headers=auth("student-token"))
        assert r.status_code == 403
        assert r.json() == {"success": False, "error": "User account is deactivated"}


class TestVerifyToken:
    def test_unknown_local_user_is_unauthenticated(self, test_client, count_users):
        r = test_client.post("/api/auth/verify-token", headers=auth("new-token"))
        assert r.status_code == 401
        assert r.json() == {"success": False, "error": "User not found"}
        assert count_users() == 0

    def test_resolves_existing_user(self, test_client, student):
        r = test_client.post("/api/auth/verify-token", headers=auth("student-token"))
        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "user": {
                "id": student,
                "firebaseUid": "uid-student",
                "email": "student@example.com",
                "role": UserRole.STUDENT,
            },
        }

    def test_deactivated_user_is_forbidden(self, test_client, seed_user):
        seed_user("uid-student", "student@example.com", is_active=False)
        r = test_client.post("/api/auth/verify-token", headers=auth("student-token"))
        assert r.status_code == 403
        assert r.json()["success"] is False


class TestSimpleSignup:
    def test_second_signup_with_same_email_conflicts(self, test_client):
        first = test_client.post("/api/auth/simple-signup", json={"email": "a@x.com", "name": "A"})
        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["data"]["id"] is not None
        assert body["data"]["role"] == UserRole.STUDENT

        second = test_client.post("/api/auth/simple-signup", json={"email": "a@x.com", "name": "A"})
        assert second.status_code == 409
        assert second.json() == {"success": False, "error": "User already exists"}

    def test_missing_fields_return_400(self, test_client):
        r = test_client.post("/api/auth/simple-signup", json={"email": "a@x.com"})
        assert r.status_code == 400
        assert r.json() == {"success": False, "error": "Missing required fields"}

    def test_first_login_claims_signup_row(self, test_client, count_users):
        signup = test_client.post("/api/auth/simple-signup", json={"email": "a@x.com", "name": "A"})
        user_id = signup.json()["data"]["id"]

        r = test_client.post("/api/auth/sync", headers=auth("signup-token"))
        assert r.status_code == 200
        user = r.json()["user"]
        assert user["id"] == user_id
        assert user["firebaseUid"] == "uid-signup"
        assert count_users() == 1


class TestProfile:
    def test_update_name_and_avatar(self, test_client, student):
        r = test_client.put(
            "/api/auth/profile",
            headers=auth("student-token"),
            json={"name": "New Name", "avatar": "https://example.com/me.png"},
        )
        assert r.status_code == 200
        user = r.json()["user"]
        assert user["name"] == "New Name"
        assert user["avatarUrl"] == "https://example.com/me.png"

    def test_partial_update_keeps_other_fields(self, test_client, seed_user):
        seed_user("uid-student", "student@example.com", name="Keep", avatar_url="https://example.com/old.png")
        r = test_client.put("/api/auth/profile", headers=auth("student-token"), json={"name": "Changed"})
        assert r.status_code == 200
        user = r.json()["user"]
        assert user["name"] == "Changed"
        assert user["avatarUrl"] == "https://example.com/old.png"


class TestLineLink:
    def test_link_and_unlink(self, test_client, student):
        r = test_client.post("/api/auth/line", headers=auth("student-token"), json={"lineUserId": "U123"})
        assert r.status_code == 200
        assert r.json()["user"]["lineUserId"] == "U123"

        r = test_client.delete("/api/auth/line", headers=auth("student-token"))
        assert r.status_code == 200
        assert r.json()["user"]["lineUserId"] is None

    def test_line_id_owned_by_other_user_conflicts(self, test_client, student, seed_user):
        seed_user("uid-admin", "admin@example.com", line_user_id="U123")
        r = test_client.post("/api/auth/line", headers=auth("student-token"), json={"lineUserId": "U123"})
        assert r.status_code == 409
        assert r.json()["success"] is False

    def test_relinking_same_id_is_idempotent(self, test_client, student):
        for _ in range(2):
            r = test_client.post("/api/auth/line", headers=auth("student-token"), json={"lineUserId": "U123"})
            assert r.status_code == 200
            assert r.json()["user"]["lineUserId"] == "U123"
