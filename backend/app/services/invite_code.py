import secrets
# No 0/O or 1/I: codes are read aloud and typed on phones
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

def generate_code(length: int = 5) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
