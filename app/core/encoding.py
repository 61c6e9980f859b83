from typing import Union

from fido2.utils import websafe_decode


def canonical_b64decode(value: Union[str, bytes]) -> bytes:
    """Decode base64 or base64url text, padded or not. Bytes pass through unchanged."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value.strip().replace("+", "-").replace("/", "_").rstrip("=")
    return websafe_decode(text)
