import os

# In-memory SQLite for the whole test run; must be set before config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("MPESA_BASE_URL", "https://daraja.test")
