import asyncio
from modulehub.database import init_models


async def create_tables():
    print("🚀 Creating database tables...")
    await init_models()
    print("✅ All tables created successfully!")


if __name__ == "__main__":
    asyncio.run(create_tables())
