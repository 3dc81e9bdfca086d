from passlib.context import CryptContext

# Argon2 for tutor and admin passwords
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    """Checks if the typed password matches the saved hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    """Hash a plain password for storage on a tutor or admin account."""
    return pwd_context.hash(password)
