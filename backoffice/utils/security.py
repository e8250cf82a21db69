import bcrypt


def hash_password(password: str) -> str:
    """bcrypt-хэш пароля (строкой, чтобы класть в users.password_hash)"""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # битый хэш в базе
        return False
