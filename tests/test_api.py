"""API endpoint tests: health, authentication and error shape."""


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_register_user(client):
    """Test user registration."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "newuser@example.com", "password": "password123", "name": "New User"},
    )
    assert response.status_code == 201
    data = response.json()
    assert "access_token" in data
    assert data["user"]["email"] == "newuser@example.com"


def test_register_duplicate_email(client, auth_headers):
    """Test registration with duplicate email fails."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "test@example.com", "password": "password123"},
    )
    assert response.status_code == 400
    assert "already registered" in response.json()["error"]


def test_login(client, auth_headers):
    """Test user login."""
    response = client.post(
        "/api/v1/auth/login", json={"email": "test@example.com", "password": "testpass123"}
    )
    assert response.status_code == 200
    assert "access_token" in response.json()


def test_login_wrong_password(client, auth_headers):
    """Test login with wrong password."""
    response = client.post(
        "/api/v1/auth/login", json={"email": "test@example.com", "password": "wrongpass"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Incorrect email or password"


def test_get_current_user(client, auth_headers):
    """Test getting current user info."""
    response = client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == auth_headers.user_id


def test_missing_token_is_unauthorized(client):
    """Requests without a bearer token get a 401 with an error message."""
    response = client.get("/api/v1/inventory")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token_is_unauthorized(client):
    """A garbage token is rejected."""
    response = client.post(
        "/api/v1/cooking/undo",
        headers={"Authorization": "Bearer not-a-token"},
        json={"cookingHistoryId": "abc"},
    )
    assert response.status_code == 401
    assert "error" in response.json()


def test_validation_errors_are_400_with_error_field(client, auth_headers):
    """Malformed bodies map to 400 and name the offending fields."""
    response = client.post(
        "/api/v1/cooking/prepare",
        headers=auth_headers,
        json={"recipeIngredients": ["salt"], "userInventory": []},
    )
    assert response.status_code == 400
    assert "recipeTitle" in response.json()["error"]


def test_unknown_route_uses_error_field(client):
    """Framework HTTP errors share the same JSON shape."""
    response = client.get("/api/v1/does-not-exist")
    assert response.status_code == 404
    assert "error" in response.json()
