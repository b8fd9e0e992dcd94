from app.core.config import settings
from app.core.database import Base, get_db, engine, SessionLocal, utcnow
from app.core.security import (
    PasswordHasher,
    TokenSigner,
    generate_secure_token,
    hash_token,
)
