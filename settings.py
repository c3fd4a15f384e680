"""
Runtime configuration for the UserService API.

Everything is read from environment variables so the same application can be
served by uvicorn on a host or imported by a serverless platform.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017/"
    database_name: str = "Ecommerce"
    collection_name: str = "Userdata"
    db_timeout_ms: int = 5000
    host: str = "0.0.0.0"
    port: int = 3000
    static_dir: str = "public"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    # GET /Order/{username} has always answered with the cart
    orders_route_returns_cart: bool = True
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            collection_name=os.getenv("COLLECTION_NAME", cls.collection_name),
            db_timeout_ms=int(os.getenv("DB_TIMEOUT_MS", str(cls.db_timeout_ms))),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
            static_dir=os.getenv("STATIC_DIR", cls.static_dir),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            orders_route_returns_cart=_as_bool(os.getenv("ORDERS_ROUTE_RETURNS_CART", "true")),
            environment=(os.getenv("ENVIRONMENT") or os.getenv("ENV") or cls.environment).lower(),
        )
