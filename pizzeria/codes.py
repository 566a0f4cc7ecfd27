import secrets
import string

ORDER_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_ORDER_CODE_LENGTH = 8


def generate_order_code(length: int = DEFAULT_ORDER_CODE_LENGTH) -> str:
    """Random public tracking code, e.g. "K7Q2M9XA". Uniqueness is enforced by the store."""
    return "".join(secrets.choice(ORDER_CODE_ALPHABET) for _ in range(length))
