import asyncio
import os

from dotenv import load_dotenv
import httpx
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from scanbook.core.database import resolve_async_database_url

# 1. Load .env before reading any settings
load_dotenv()

DB_LABELS = {
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "sqlite": "SQLite (testing)",
}

HEALTH_QUERIES = {
    "postgresql": "SELECT version();",
    "mysql": "SELECT VERSION();",
    "sqlite": "SELECT sqlite_version();",
}


async def verify_database():
    print("-" * 30)
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        print("❌ Error: DATABASE_URL is not set")
        return False

    try:
        async_url = resolve_async_database_url(db_url)
        url = make_url(async_url)
    except Exception as exc:  # noqa: BLE001 - surface clear setup errors
        print(f"❌ Unsupported database configuration: {exc}")
        return False

    backend = url.get_backend_name()
    label = DB_LABELS.get(backend, backend)
    print(f"🔍 Checking {label} connection...")
    print(f"ℹ️  DSN: {url.render_as_string(hide_password=True)}")

    query = HEALTH_QUERIES.get(backend, "SELECT 1")

    try:
        engine = create_async_engine(async_url, echo=False)
        async with engine.connect() as conn:
            result = await conn.execute(text(query))
            version = result.scalar()
            print(f"✅ {label} connection OK, server reports: {version}")
        await engine.dispose()
        return True
    except Exception as e:  # noqa: BLE001 - surface connection failure
        print(f"❌ {label} connection failed: {e}")
        return False


async def verify_keycloak():
    print("-" * 30)
    print("🔍 Checking Keycloak signing keys...")
    server = os.getenv("KEYCLOAK_AUTH_SERVER_URL")
    realm = os.getenv("KEYCLOAK_REALM")
    if not server or not realm:
        print("❌ Error: KEYCLOAK_AUTH_SERVER_URL and KEYCLOAK_REALM must both be set")
        return False

    certs_url = f"{server.rstrip('/')}/realms/{realm}/protocol/openid-connect/certs"
    print(f"ℹ️  JWKS: {certs_url}")

    try:
        async with httpx.AsyncClient(timeout=float(os.getenv("KEYCLOAK_TIMEOUT_SECONDS", "5"))) as client:
            response = await client.get(certs_url)
            response.raise_for_status()
            keys = response.json().get("keys") or []
    except Exception as e:  # noqa: BLE001 - surface connection failure
        print(f"❌ Keycloak request failed: {e}")
        return False

    if not keys:
        print("❌ Keycloak answered but published no signing keys")
        return False
    print(f"✅ Keycloak reachable, {len(keys)} signing key(s) published")
    return True


async def main():
    print("🚀 Verifying environment configuration...")

    db_ok = await verify_database()
    keycloak_ok = await verify_keycloak()

    print("-" * 30)
    if db_ok and keycloak_ok:
        print("🎉 All core services are configured correctly.")
    else:
        print("⚠️  Warning: some checks failed, review your .env file and running containers.")


if __name__ == "__main__":
    asyncio.run(main())
