import hashlib

NAME_PREFIX = "n-"


def hash_name(entity_type: str, name: str) -> str:
    """Generate coordination record name: n-{sha1(entity_type::name)}."""
    digest = hashlib.sha1(f"{entity_type}::{name}".encode()).hexdigest()
    return f"{NAME_PREFIX}{digest}"
