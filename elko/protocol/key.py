import functools

from cryptography.hazmat.primitives import hashes


KEY_SIZE = 32


@functools.lru_cache(maxsize=None)
def derive_key(service_id: str) -> bytes:
    """
    Derive the 32-byte frame integrity key for a service.

    The key is the SHA-256 digest of the UTF-8 encoded service id. It is
    never transmitted; both ends derive it from the service identity.
    """
    if not service_id:
        raise ValueError("Service id must be a non-empty string")

    digest = hashes.Hash(hashes.SHA256())
    digest.update(service_id.encode("utf-8"))

    return digest.finalize()
