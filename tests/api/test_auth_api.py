"""
API Tests for authentication and role checks
"""

import pytest


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_and_me(self, client, tutor, password):
        response = await client.post("/auth/login", json={
            "email": "tutor@classmeasures.co.ke",
            "password": password
        })

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "tutor"
        assert "hashed_password" not in body["user"]
        assert set(body) == {"access_token", "refresh_token", "token_type", "expires_in", "user"}

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "tutor@classmeasures.co.ke"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, tutor):
        response = await client.post("/auth/login", json={
            "email": "tutor@classmeasures.co.ke",
            "password": "not-the-password"
        })

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_missing_token(self, client, db):
        response = await client.get("/auth/me")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_token_cannot_be_used_as_access(self, client, tutor, password):
        login = await client.post("/auth/login", json={
            "email": "tutor@classmeasures.co.ke",
            "password": password
        })
        refresh = login.json()["refresh_token"]

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {refresh}"})
        assert me.status_code == 401

        renewed = await client.post("/auth/refresh", json={"refresh_token": refresh})
        assert renewed.status_code == 200
        assert renewed.json()["access_token"]

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client, tutor, auth_headers):
        headers = auth_headers(tutor)

        response = await client.post("/auth/logout", headers=headers)
        assert response.status_code == 200

        again = await client.get("/auth/me", headers=headers)
        assert again.status_code == 401
        assert again.json()["detail"] == "Token has been revoked"


class TestUserManagement:

    @pytest.mark.asyncio
    async def test_admin_creates_users(self, client, admin, auth_headers, password):
        response = await client.post("/auth/users", headers=auth_headers(admin), json={
            "email": "New.Parent@classmeasures.co.ke",
            "name": "Wambui",
            "password": password,
            "role": "parent"
        })

        assert response.status_code == 201
        assert response.json()["data"]["email"] == "new.parent@classmeasures.co.ke"

        duplicate = await client.post("/auth/users", headers=auth_headers(admin), json={
            "email": "new.parent@classmeasures.co.ke",
            "name": "Wambui",
            "password": password,
            "role": "parent"
        })
        assert duplicate.status_code == 409

        listing = await client.get("/auth/users", params={"role": "parent"}, headers=auth_headers(admin))
        assert listing.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_tutor_cannot_manage_users(self, client, tutor, auth_headers):
        response = await client.get("/auth/users", headers=auth_headers(tutor))

        assert response.status_code == 403


class TestRoleChecks:

    @pytest.mark.asyncio
    async def test_parent_cannot_create_program(self, client, parent, auth_headers):
        response = await client.post("/programs/", headers=auth_headers(parent), json={
            "name": "Junior Coders",
            "category": "Coding",
            "description": "Scratch",
            "age_group": "6-10",
            "price": 4500
        })

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_parent_sees_only_own_children(self, client, parent, make_student, auth_headers):
        own = await make_student("Amani", parent_id=str(parent["_id"]))
        other = await make_student("Baraka")

        listing = await client.get("/students/", headers=auth_headers(parent))
        assert [s["student_id"] for s in listing.json()["data"]] == [own["student_id"]]

        hidden = await client.get(f"/students/{other['student_id']}", headers=auth_headers(parent))
        assert hidden.status_code == 404

    @pytest.mark.asyncio
    async def test_parent_may_only_edit_contact(self, client, parent, make_student, auth_headers):
        own = await make_student("Amani", parent_id=str(parent["_id"]))

        allowed = await client.put(
            f"/students/{own['student_id']}",
            headers=auth_headers(parent),
            json={"emergency_contact": "+254722000000"}
        )
        assert allowed.status_code == 200
        assert allowed.json()["data"]["emergency_contact"] == "+254722000000"

        forbidden = await client.put(
            f"/students/{own['student_id']}",
            headers=auth_headers(parent),
            json={"age": 10}
        )
        assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "x-process-time" in response.headers
