from settings import Settings


def test_defaults():
    settings = Settings()

    assert settings.database_url == "mongodb://localhost:27017/"
    assert settings.database_name == "Ecommerce"
    assert settings.collection_name == "Userdata"
    assert settings.port == 3000
    assert settings.orders_route_returns_cart is True


def test_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "mongodb://db.internal:27017/")
    monkeypatch.setenv("DATABASE_NAME", "Shop")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("ORDERS_ROUTE_RETURNS_CART", "false")
    monkeypatch.setenv("ENVIRONMENT", "Production")

    settings = Settings.from_env()

    assert settings.database_url == "mongodb://db.internal:27017/"
    assert settings.database_name == "Shop"
    assert settings.port == 8080
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.orders_route_returns_cart is False
    assert settings.environment == "production"
