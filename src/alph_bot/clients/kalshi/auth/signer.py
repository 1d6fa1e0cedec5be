"""RSA-PSS signature generation for Kalshi API authentication."""

import base64
from pathlib import Path

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey


class RsaPssSigner:
    """Handles RSA-PSS signature generation for API requests.

    Kalshi signs the concatenation ``timestamp + METHOD + path`` where the
    path includes the API prefix but excludes the query string. The
    signature uses SHA-256 with MGF1 and the maximum salt length and is sent
    base64-encoded.
    """

    def __init__(self, private_key: RSAPrivateKey) -> None:
        """Initialize the signer with an RSA private key.

        Args:
            private_key: The RSA private key for signing requests.

        """
        self.private_key = private_key

    def generate_signature(self, timestamp: str, method: str, path: str) -> str:
        """Generate an RSA-PSS signature for an API request.

        Args:
            timestamp: Unix timestamp in milliseconds as string.
            method: HTTP method (GET, POST, etc.).
            path: Request path; anything after ``?`` is ignored.

        Returns:
            Base64-encoded signature.

        """
        message = f"{timestamp}{method.upper()}{path.split('?', 1)[0]}"
        signature = self.private_key.sign(
            message.encode("utf-8"),
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.MAX_LENGTH,
            ),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("ascii")

    @staticmethod
    def load_private_key(key_data: bytes) -> RSAPrivateKey:
        """Load an RSA private key from PEM bytes.

        Raises:
            ValueError: If the data does not hold an RSA private key.

        """
        private_key = serialization.load_pem_private_key(key_data, password=None)
        if not isinstance(private_key, RSAPrivateKey):
            raise ValueError("The provided key is not an RSA private key")
        return private_key

    @classmethod
    def load_private_key_from_file(cls, key_path: str) -> RSAPrivateKey:
        """Load an RSA private key from a PEM file.

        Args:
            key_path: Path to the PEM-encoded private key file.

        Returns:
            The loaded RSAPrivateKey object.

        Raises:
            FileNotFoundError: If the key file doesn't exist.
            ValueError: If the file doesn't contain a valid RSA key.

        """
        path = Path(key_path)
        if not path.exists():
            raise FileNotFoundError(f"Private key file not found: {key_path}")
        return cls.load_private_key(path.read_bytes())
